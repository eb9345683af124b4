import json

import pytest

from clipkeep.app import ClipkeepApp
from clipkeep.commands import COMMANDS, CommandResult, invoke
from clipkeep.config import Settings


class TestInvoke:
    def test_unknown_command(self, app):
        result = invoke(app, "explode")
        assert result.ok is False
        assert result.error == "Unknown command: explode"

    def test_missing_parameter(self, app):
        result = invoke(app, "get_item")
        assert result.ok is False
        assert result.error.startswith("Invalid parameters for get_item")

    def test_unexpected_parameter(self, app):
        result = invoke(app, "get_all", colour="blue")
        assert result.ok is False
        assert "Invalid parameters" in result.error

    def test_domain_error_becomes_error_result(self, app):
        result = invoke(app, "toggle_favorite", id="ghost")
        assert result.ok is False
        assert "ghost" in result.error

    def test_registry_covers_every_store(self):
        expected = {
            "insert_item", "get_item", "delete_item", "delete_all", "filter_by_type", "rewrite_paths",
            "create_folder", "add_to_folder", "remove_from_folder", "filter_by_folder",
            "put_ocr_text", "get_icon", "search_ocr",
            "mark_passwords", "mark_bank_cards", "mark_id_numbers", "mark_phone_numbers", "auto_mark",
            "check_item_privacy", "expire_older_than", "enforce_max_count", "trigger_cleanup",
            "sync_merge", "sync_merge_encrypted", "export_snapshot", "search", "set_db_path",
        }
        assert expected <= set(COMMANDS)


class TestCommandResult:
    def test_success_json(self, app):
        result = invoke(app, "insert_text", text="héllo")
        payload = json.loads(result.to_json())
        assert payload["ok"] is True
        assert payload["data"]["content"] == "héllo"
        assert payload["data"]["item_type"] == "text"
        assert "héllo" in result.to_json()

    def test_error_json(self):
        assert json.loads(CommandResult(ok=False, error="nope").to_json()) == {"ok": False, "error": "nope"}

    def test_lists_are_serialized(self, app, make_item):
        app.items.insert_or_replace(make_item("a"))
        data = invoke(app, "get_all").to_dict()["data"]
        assert isinstance(data, list)
        assert data[0]["content"] == "a"

    def test_none_result(self, app):
        assert invoke(app, "get_latest").to_dict() == {"ok": True, "data": None}


class TestItemCommands:
    def test_insert_item_from_dict(self, app):
        record = {"id": "x1", "item_type": "image", "content": "files/x.png", "size": 3,
                  "is_favorite": False, "notes": "", "timestamp": 5}
        assert invoke(app, "insert_item", item=record).ok
        assert invoke(app, "get_item", id="x1").data.content == "files/x.png"

    def test_insert_item_rejects_bad_type(self, app):
        record = {"id": "x1", "item_type": "video", "content": "c", "timestamp": 5}
        result = invoke(app, "insert_item", item=record)
        assert result.ok is False
        assert "video" in result.error

    def test_delete_all_private(self, app, make_item):
        secret = app.items.insert_or_replace(make_item("s"))
        app.items.insert_or_replace(make_item("p"))
        app.privacy.mark(secret.id)
        assert invoke(app, "delete_all", item_type="private").data == 1
        assert app.items.count() == 1

    def test_search_with_folder_id(self, app, make_item):
        item = app.items.insert_or_replace(make_item("report"))
        app.items.insert_or_replace(make_item("report copy"))
        folder_id = invoke(app, "create_folder", name="Work").data
        invoke(app, "add_to_folder", folder_id=folder_id, item_id=item.id)
        result = invoke(app, "search", query="report", item_type=folder_id)
        assert [i.id for i in result.data] == [item.id]

    def test_search_bad_range(self, app):
        result = invoke(app, "search", query="x", start=10, end=1)
        assert result.ok is False

    def test_set_db_path(self, app, make_item, tmp_path):
        app.items.insert_or_replace(make_item("a"))
        new_path = tmp_path / "moved" / "other.db"
        assert invoke(app, "set_db_path", path=str(new_path)).data == str(new_path)
        assert invoke(app, "get_all").data == []
        assert invoke(app, "get_latest").data is None


class TestPrivacyCommands:
    def test_auto_mark_uses_overrides(self, app, make_item):
        item = app.items.insert_or_replace(make_item("13812345678"))
        assert invoke(app, "auto_mark", phone=False).data == 1
        assert app.privacy.is_private(item.id) is False
        assert invoke(app, "auto_mark").data == 1
        assert app.privacy.is_private(item.id) is True

    def test_check_item_privacy(self, app, make_item):
        item = app.items.insert_or_replace(make_item("13812345678"))
        assert invoke(app, "check_item_privacy", id=item.id).data is True

    def test_check_missing_item(self, app):
        result = invoke(app, "check_item_privacy", id="ghost")
        assert result.ok is False


class TestRetentionCommands:
    def test_trigger_without_worker(self, app):
        result = invoke(app, "trigger_cleanup")
        assert result.ok is False
        assert result.error == "cleanup worker not started"

    def test_trigger_with_worker(self, app):
        app.start_retention()
        assert invoke(app, "trigger_cleanup").data == "cleanup triggered"

    def test_run_retention_overrides(self, app, make_item):
        for i in range(3):
            app.items.insert_or_replace(make_item(f"t{i}"))
        assert invoke(app, "run_retention", retention_days=0, max_history_items=1).data == 2


class TestSyncCommand:
    @pytest.mark.parametrize("as_text", [True, False])
    def test_sync_merge(self, app, as_text):
        snapshot = {
            "items": [{"id": "r1", "item_type": "text", "content": "remote", "timestamp": 1}],
            "folders": [{"id": "f1", "name": "Remote"}],
            "folder_items": [{"folder_id": "f1", "item_id": "r1"}],
        }
        payload = json.dumps(snapshot) if as_text else snapshot
        result = invoke(app, "sync_merge", payload=payload)
        assert result.to_dict()["data"] == {"items": 1, "folders": 1, "folder_items": 1, "extensions": 0}

    def test_sync_merge_bad_json(self, app):
        result = invoke(app, "sync_merge", payload="{oops")
        assert result.ok is False
        assert "JSON" in result.error


class TestFolderCommands:
    def test_name_parameter_reaches_folder_commands(self, app, make_item):
        item = app.items.insert_or_replace(make_item("a"))
        created = invoke(app, "create_folder", name="Work")
        assert created.ok is True

        assert invoke(app, "rename_folder", folder_id=created.data, name="Projects").data == 1
        invoke(app, "add_to_folder", folder_id=created.data, item_id=item.id)
        assert [i.id for i in invoke(app, "filter_by_folder", name="Projects").data] == [item.id]


class TestBadInput:
    @pytest.mark.parametrize(
        "name,params",
        [
            ("expire_older_than", {"days": "abc"}),
            ("expire_older_than", {"days": -1}),
            ("enforce_max_count", {"max_items": "lots"}),
            ("enforce_max_count", {"max_items": None}),
            ("run_retention", {"retention_days": "soon"}),
            ("run_retention", {"retention_days": -3}),
            ("run_retention", {"max_history_items": [1]}),
        ],
    )
    def test_bad_numbers_are_error_results(self, app, name, params):
        result = invoke(app, name, **params)
        assert result.ok is False
        assert result.error

    @pytest.mark.parametrize(
        "overrides",
        [{"size": "big"}, {"content": None}, {"content": 42}, {"notes": ["x"]}],
    )
    def test_bad_item_fields_are_error_results(self, app, overrides):
        record = {"id": "x1", "item_type": "text", "content": "c", "size": 1, "timestamp": 5, **overrides}
        result = invoke(app, "insert_item", item=record)
        assert result.ok is False
        assert app.items.get("x1") is None

    def test_non_object_item(self, app):
        assert invoke(app, "insert_item", item="text").ok is False

    def test_bad_folder_count_in_snapshot(self, app):
        result = invoke(app, "sync_merge", payload={"folders": [{"id": "f", "name": "n", "num_items": "many"}]})
        assert result.ok is False


class TestEncryptedSyncCommands:
    def test_export_then_merge_encrypted(self, app, tmp_path, make_item):
        key = "00" * 32
        app.items.insert_or_replace(make_item("secret text", item_id="s1", notes="n"))
        exported = invoke(app, "export_snapshot", dek_hex=key).to_dict()["data"]
        assert exported["items"][0]["content"] != "secret text"

        with ClipkeepApp(db_path=tmp_path / "other.db", storage_root=tmp_path, settings=Settings()) as other:
            result = invoke(other, "sync_merge_encrypted", payload=json.dumps(exported), dek_hex=key)
            assert result.ok is True
            assert other.items.get("s1").content == "secret text"

    def test_bad_key_is_error_result(self, app):
        result = invoke(app, "sync_merge_encrypted", payload={}, dek_hex="abcd")
        assert result.ok is False
        assert "32 bytes" in result.error
