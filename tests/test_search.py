import pytest

from clipkeep.errors import ValidationError
from clipkeep.models import ItemType
from clipkeep.search import FilterKind, ItemFilter, parse_time_range


@pytest.fixture
def corpus(app, make_item):
    items = {
        "text": app.items.insert_or_replace(make_item("Meeting notes for Monday", timestamp=1_000)),
        "noted": app.items.insert_or_replace(make_item("misc", notes="meeting agenda", timestamp=2_000)),
        "image": app.items.insert_or_replace(make_item("/shots/a.png", item_type=ItemType.IMAGE, timestamp=3_000)),
        "other": app.items.insert_or_replace(make_item("unrelated", timestamp=4_000)),
    }
    app.extensions.put_ocr_text(items["image"].id, "MEETING room whiteboard")
    return items


class TestItemFilter:
    @pytest.mark.parametrize("value", [None, ""])
    def test_parse_empty(self, value):
        assert ItemFilter.parse(value) is None

    def test_parse_type(self):
        assert ItemFilter.parse("image") == ItemFilter(FilterKind.TYPE, "image")

    def test_parse_private(self):
        assert ItemFilter.parse("private") == ItemFilter.private()

    def test_parse_folder_id(self):
        assert ItemFilter.parse("3f2a-folder") == ItemFilter(FilterKind.FOLDER, "3f2a-folder")

    def test_of_type_rejects_unknown(self):
        with pytest.raises(ValidationError):
            ItemFilter.of_type("video")

    def test_values_are_bound_not_inlined(self):
        clause, params = ItemFilter.folder("x' OR 1=1 --").where_clause()
        assert "x'" not in clause
        assert params == ("x' OR 1=1 --",)


class TestParseTimeRange:
    def test_no_bounds(self):
        assert parse_time_range(None, None) is None

    def test_numeric_strings(self):
        assert parse_time_range("10", "20") == (10, 20)

    @pytest.mark.parametrize("start,end", [(10, None), (None, 10), (20, 10), ("soon", 10), (True, 10)])
    def test_invalid(self, start, end):
        with pytest.raises(ValidationError):
            parse_time_range(start, end)


class TestSearch:
    def test_matches_content_notes_and_ocr(self, app, corpus):
        results = app.search.search("meeting")
        assert [i.id for i in results] == [corpus["image"].id, corpus["noted"].id, corpus["text"].id]

    def test_type_filter(self, app, corpus):
        results = app.search.search("meeting", ItemFilter.of_type("text"))
        assert [i.id for i in results] == [corpus["noted"].id, corpus["text"].id]

    def test_private_filter(self, app, corpus):
        app.privacy.mark(corpus["noted"].id)
        results = app.search.search("meeting", ItemFilter.private())
        assert [i.id for i in results] == [corpus["noted"].id]

    def test_folder_filter(self, app, corpus):
        folder_id = app.folders.create("Work")
        app.folders.add_item(folder_id, corpus["text"].id)
        app.folders.add_item(folder_id, corpus["other"].id)
        results = app.search.search("meeting", ItemFilter.folder(folder_id))
        assert [i.id for i in results] == [corpus["text"].id]

    def test_time_range_is_inclusive(self, app, corpus):
        results = app.search.search("meeting", start=1_000, end=2_000)
        assert [i.id for i in results] == [corpus["noted"].id, corpus["text"].id]

    def test_empty_query_matches_everything(self, app, corpus):
        assert len(app.search.search("")) == 4

    def test_like_wildcards_are_literal(self, app, make_item):
        literal = app.items.insert_or_replace(make_item("file_name.txt"))
        app.items.insert_or_replace(make_item("filexname.txt"))
        assert [i.id for i in app.search.search("file_name")] == [literal.id]

    def test_non_ascii_case_is_folded(self, app, make_item):
        item = app.items.insert_or_replace(make_item("Größe ÄNDERN"))
        noted = app.items.insert_or_replace(make_item("misc", notes="Ελληνικά"))
        app.items.insert_or_replace(make_item("ascii only"))
        assert [i.id for i in app.search.search("änd")] == [item.id]
        assert [i.id for i in app.search.search("ΕΛΛΗΝ")] == [noted.id]
        assert [i.id for i in app.search.search("GRÖSSE")] == [item.id]

    def test_invalid_range_raises(self, app, corpus):
        with pytest.raises(ValidationError):
            app.search.search("meeting", start=5)
