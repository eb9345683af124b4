class TestExtensionStore:
    def test_missing_row_reads_empty(self, app, make_item):
        item = app.items.insert_or_replace(make_item("x"))
        assert app.extensions.get_ocr_text(item.id) == ""
        assert app.extensions.get_icon(item.id) == ""

    def test_put_and_get(self, app, make_item):
        item = app.items.insert_or_replace(make_item("x"))
        app.extensions.put_ocr_text(item.id, "scanned words")
        app.extensions.put_icon(item.id, "data:image/png;base64,AAAA")
        assert app.extensions.get_ocr_text(item.id) == "scanned words"
        assert app.extensions.get_icon(item.id) == "data:image/png;base64,AAAA"

    def test_writing_one_column_keeps_the_other(self, app, make_item):
        item = app.items.insert_or_replace(make_item("x"))
        app.extensions.put_icon(item.id, "icon")
        app.extensions.put_ocr_text(item.id, "first")
        app.extensions.put_ocr_text(item.id, "second")
        assert app.extensions.get_icon(item.id) == "icon"
        assert app.extensions.get_ocr_text(item.id) == "second"

    def test_icon_only_row_reads_empty_ocr(self, app, make_item):
        item = app.items.insert_or_replace(make_item("x"))
        app.extensions.put_icon(item.id, "icon")
        assert app.extensions.get_ocr_text(item.id) == ""

    def test_search_by_ocr(self, app, make_item):
        old = app.items.insert_or_replace(make_item("/a.png", timestamp=100))
        new = app.items.insert_or_replace(make_item("/b.png", timestamp=200))
        other = app.items.insert_or_replace(make_item("/c.png", timestamp=300))
        app.extensions.put_ocr_text(old.id, "Invoice 2023")
        app.extensions.put_ocr_text(new.id, "final INVOICE")
        app.extensions.put_ocr_text(other.id, "receipt")
        assert [i.id for i in app.extensions.search_by_ocr("invoice")] == [new.id, old.id]

    def test_search_by_ocr_treats_wildcards_literally(self, app, make_item):
        pct = app.items.insert_or_replace(make_item("/a.png"))
        plain = app.items.insert_or_replace(make_item("/b.png"))
        app.extensions.put_ocr_text(pct.id, "50% off")
        app.extensions.put_ocr_text(plain.id, "500 off")
        assert [i.id for i in app.extensions.search_by_ocr("0%")] == [pct.id]

    def test_search_by_ocr_folds_non_ascii_case(self, app, make_item):
        item = app.items.insert_or_replace(make_item("/a.png"))
        app.items.insert_or_replace(make_item("/b.png"))
        app.extensions.put_ocr_text(item.id, "ПРИВЕТ мир")
        assert [i.id for i in app.extensions.search_by_ocr("привет")] == [item.id]
        assert [i.id for i in app.extensions.search_by_ocr("МИР")] == [item.id]
