"""
Tests for the command line entry point.
"""

import json
import logging

import pytest

from tabsync.main import main, parse_args
from tabsync.storage.local_store import LocalStore
from tabsync.storage.models import EntityKind


@pytest.fixture
def db_env(mock_env, monkeypatch, tmp_path):
    db_path = tmp_path / "state" / "tabsync.db"
    monkeypatch.setenv("TABSYNC_DATABASE_PATH", str(db_path))
    return db_path


@pytest.fixture
def root_level():
    root = logging.getLogger()
    original = root.level
    yield root
    root.setLevel(original)


class TestParseArgs:
    """Tests for argument parsing."""

    def test_resolve_arguments(self):
        args = parse_args(["resolve", "--merge", "remotePrimary", "--browser", "append"])

        assert args.command == "resolve"
        assert args.merge == "remotePrimary"
        assert args.browser == "append"

    def test_browser_defaults_to_skip(self):
        assert parse_args(["resolve", "--merge", "replace"]).browser == "skip"

    def test_unknown_strategy_rejected(self):
        with pytest.raises(SystemExit):
            parse_args(["resolve", "--merge", "sideways"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestMain:
    """Tests for main."""

    def test_configuration_error(self, clean_env):
        assert main(["status"]) == 1

    def test_status(self, db_env):
        assert main(["status"]) == 0
        assert db_env.exists()

    def test_resolve_without_download(self, db_env):
        assert main(["resolve", "--merge", "replace"]) == 1

    def test_discard_without_pending(self, db_env):
        assert main(["discard"]) == 0

    def test_snapshot_without_bookmarks_file(self, db_env):
        assert main(["snapshot"]) == 1

    def test_export_and_import(self, db_env, tmp_path, monkeypatch, sample_category):
        LocalStore(db_env).replace_collection(EntityKind.CATEGORIES, [sample_category])
        export_file = tmp_path / "export.json"

        assert main(["export", str(export_file)]) == 0
        data = json.loads(export_file.read_text(encoding="utf-8"))
        assert data["categories"][0]["id"] == "dev"

        other_db = tmp_path / "other.db"
        monkeypatch.setenv("TABSYNC_DATABASE_PATH", str(other_db))
        assert main(["import", str(export_file)]) == 0
        assert LocalStore(other_db).get_collection(EntityKind.CATEGORIES) == [sample_category]

    def test_import_invalid_file(self, db_env, tmp_path):
        bad_file = tmp_path / "bad.json"
        bad_file.write_text('{"bookmarks": []}', encoding="utf-8")

        assert main(["import", str(bad_file)]) == 1

    def test_import_missing_file(self, db_env, tmp_path):
        assert main(["import", str(tmp_path / "missing.json")]) == 1

    def test_log_level_applied(self, db_env, monkeypatch, root_level):
        monkeypatch.setenv("LOG_LEVEL", "warning")

        assert main(["status"]) == 0
        assert root_level.level == logging.WARNING

    def test_unknown_log_level_falls_back_to_info(self, db_env, monkeypatch, root_level):
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        assert main(["status"]) == 0
        assert root_level.level == logging.INFO
