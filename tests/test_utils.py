from pathlib import Path
from unittest.mock import patch

import pytest

from clipkeep.models import ItemType
from clipkeep.utils import (
    delete_resource,
    ensure_dirs,
    escape_like,
    is_relative_resource,
    normalize_separators,
    now_ms,
    resolve_resource_path,
)


class TestNowMs:
    def test_is_milliseconds(self):
        with patch("clipkeep.utils.time.time", return_value=1_700_000_000.5):
            assert now_ms() == 1_700_000_000_500


class TestPaths:
    def test_normalize_separators(self):
        assert normalize_separators("a\\b\\c") == "a/b/c"

    @pytest.mark.parametrize("content", ["files/a", "./files/a", "files\\a", ".\\files\\a"])
    def test_relative_resources(self, content):
        assert is_relative_resource(content) is True

    @pytest.mark.parametrize("content", ["/abs/files/a", "myfiles/a", "C:\\files\\a"])
    def test_absolute_resources(self, content):
        assert is_relative_resource(content) is False

    def test_resolve_relative(self, tmp_path):
        assert resolve_resource_path("./files/sub/a.png", tmp_path) == tmp_path / "files" / "sub" / "a.png"

    def test_resolve_absolute(self, tmp_path):
        assert resolve_resource_path("/tmp/x.png", tmp_path) == Path("/tmp/x.png")


class TestDeleteResource:
    def test_missing_path(self, tmp_path):
        assert delete_resource(tmp_path / "nope", ItemType.FILE, "i1") is False

    def test_file(self, tmp_path):
        target = tmp_path / "a.txt"
        target.write_text("a")
        assert delete_resource(target, ItemType.FILE, "i1") is True
        assert not target.exists()

    def test_directory_stored_as_file_type(self, tmp_path):
        target = tmp_path / "dir"
        target.mkdir()
        (target / "inner.txt").write_text("x")
        assert delete_resource(target, ItemType.FILE, "i1") is True
        assert not target.exists()

    def test_failure_returns_false(self, tmp_path):
        target = tmp_path / "dir"
        target.mkdir()
        with patch("clipkeep.utils.shutil.rmtree", side_effect=OSError("busy")):
            assert delete_resource(target, ItemType.FOLDER, "i1") is False
        assert target.exists()


class TestEscapeLike:
    def test_escapes_wildcards_and_escape_char(self):
        assert escape_like("50%_off\\") == "50\\%\\_off\\\\"

    def test_plain_text_unchanged(self):
        assert escape_like("hello") == "hello"


class TestEnsureDirs:
    def test_creates_data_and_files_dirs(self, tmp_path):
        data_dir = tmp_path / "data"
        with patch("clipkeep.utils.DATA_DIR", data_dir), patch("clipkeep.utils.FILES_DIR", data_dir / "files"):
            ensure_dirs()
        assert (data_dir / "files").is_dir()
