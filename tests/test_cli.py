"""Tests for the notion-sync command line."""

import json
from unittest.mock import MagicMock, patch

import pytest

from notion_sync import __version__
from notion_sync.cli import main, run
from notion_sync.sync.models import (
    ItemAction,
    ItemResult,
    SyncDirection,
    SyncError,
    SyncResult,
)
from notion_sync.sync.state import SyncState, empty_state

_OK = SyncResult(
    pulled=[
        ItemResult(
            id="p1",
            slug="intro",
            title="Intro",
            direction=SyncDirection.PULL,
            action=ItemAction.CREATED,
        )
    ]
)
_FAILED = SyncResult(errors=[SyncError(message="boom", kind="ConnectivityError")])


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Empty CWD/HOME, credentials in env, no .env loading or logging setup."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("NOTION_SYNC_CONFIG", raising=False)
    monkeypatch.delenv("NOTION_SYNC_STATE_FILE", raising=False)
    monkeypatch.delenv("NOTION_SYNC_CONFLICT_STRATEGY", raising=False)
    monkeypatch.delenv("NOTION_SYNC_OUTPUT_DIR", raising=False)
    monkeypatch.setenv("NOTION_TOKEN", "secret_cli")
    monkeypatch.setenv("NOTION_DATABASE_ID", "db123")
    with patch("notion_sync.cli.load_dotenv"), patch("notion_sync.cli.setup_logging"):
        yield tmp_path


@pytest.fixture
def engine():
    with patch("notion_sync.cli.SyncEngine") as engine_cls, patch(
        "notion_sync.cli.NotionClient"
    ):
        instance = MagicMock()
        instance.pull.return_value = _OK
        instance.push.return_value = _OK
        instance.bidirectional.return_value = _OK
        engine_cls.return_value = instance
        yield engine_cls


class TestDispatch:
    def test_sync_pulls(self, engine, capsys):
        assert main(["sync"]) == 0
        engine.return_value.pull.assert_called_once_with(full=False, dry_run=False)
        assert "intro (Intro)" in capsys.readouterr().out

    def test_bidirectional(self, engine):
        assert main(["sync", "--bidirectional", "--full"]) == 0
        engine.return_value.bidirectional.assert_called_once_with(
            full=True, dry_run=False
        )

    def test_push_dry_run(self, engine):
        assert main(["push", "--dry-run"]) == 0
        engine.return_value.push.assert_called_once_with(full=False, dry_run=True)

    def test_flags_reach_config(self, engine):
        main(["sync", "-o", "site/docs", "--strategy", "local-wins", "--state-file", "l.json"])
        config = engine.call_args.args[1]
        assert config.output_dir == "site/docs"
        assert config.conflict_strategy == "local-wins"
        assert config.state_file == "l.json"
        assert config.notion_token == "secret_cli"

    def test_errors_give_exit_code_1(self, engine, capsys):
        engine.return_value.pull.return_value = _FAILED
        assert main(["sync"]) == 1
        assert "boom" in capsys.readouterr().out

    def test_json_output(self, engine, capsys):
        assert main(["sync", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["ok"] is True
        assert data["counts"]["created"] == 1


class TestConfigErrors:
    def test_missing_token(self, engine, monkeypatch, capsys):
        monkeypatch.delenv("NOTION_TOKEN")
        assert main(["sync"]) == 1
        assert "Notion token not found" in capsys.readouterr().err
        engine.assert_not_called()

    def test_invalid_yaml_config(self, engine, isolated, capsys):
        config_dir = isolated / ".notion_sync"
        config_dir.mkdir()
        (config_dir / "config.yml").write_text("sync:\n  conflict_strategy: coin-flip\n")
        assert main(["sync"]) == 1
        assert "Invalid config file" in capsys.readouterr().err

    def test_unknown_strategy_flag(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["sync", "--strategy", "coin-flip"])
        assert excinfo.value.code == 2


class TestStatusAndInit:
    def test_status_without_credentials(self, monkeypatch, isolated, capsys):
        monkeypatch.delenv("NOTION_TOKEN")
        state = empty_state()
        state["containerId"] = "db123"
        SyncState.update_entry(state, "p1", {"slug": "intro", "remoteLastEdited": "t"})
        SyncState(isolated / "ledger.json").save(state)

        assert main(["status", "--state-file", "ledger.json"]) == 0

        out = capsys.readouterr().out
        assert "Tracked records: 1" in out
        assert "intro -> p1" in out

    def test_status_json(self, isolated, capsys):
        assert main(["status", "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["records"] == {}

    def test_init_writes_starter(self, isolated, capsys):
        assert main(["init"]) == 0
        assert (isolated / ".notion_sync" / "config.yml").is_file()
        assert "config.yml" in capsys.readouterr().out


def test_version(capsys):
    with pytest.raises(SystemExit):
        main(["--version"])
    assert __version__ in capsys.readouterr().out


def test_run_handles_keyboard_interrupt():
    with patch("notion_sync.cli.main", side_effect=KeyboardInterrupt):
        with pytest.raises(SystemExit) as excinfo:
            run()
    assert excinfo.value.code == 130
