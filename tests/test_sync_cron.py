from datetime import date

import pytest

from cake_sync import sync_cron
from cake_sync.exceptions import StorageError
from cake_sync.main import SyncSummary
from cake_sync.settings import REQUIRED_SECRETS, SyncMode


@pytest.fixture
def secrets_env(monkeypatch):
    monkeypatch.setenv("CAKE_API_KEY", "test-cake-key")
    monkeypatch.setenv("SUPABASE_DB_URL", "postgresql://db")
    monkeypatch.setenv("SUPABASE_DB_PASSWORD", "pw")
    for name in ("SYNC_MODE", "SYNC_START_DATE", "SNAPSHOT_DATE"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_missing_configuration_exits_1(monkeypatch, capsys):
    for name in REQUIRED_SECRETS:
        monkeypatch.delenv(name, raising=False)

    assert sync_cron.run_cron(env_file=None) == 1
    assert "Missing environment variables" in capsys.readouterr().err


def test_successful_run_exits_0(secrets_env, capsys):
    seen = {}

    def fake_run_sync(settings, as_of=None):
        seen['mode'] = settings.SYNC_MODE
        summary = SyncSummary(mode=settings.SYNC_MODE, start_date=date(2025, 12, 1), end_date=as_of)
        summary.rows_written = 4
        return summary

    secrets_env.setattr(sync_cron, "run_sync", fake_run_sync)

    assert sync_cron.run_cron(as_of=date(2026, 1, 3), env_file=None) == 0
    assert seen['mode'] is SyncMode.SNAPSHOT
    out = capsys.readouterr().out
    assert "CAKE SYNC SUMMARY" in out
    assert "test-cake-key" not in out


def test_fatal_error_exits_1_with_message_on_stderr(secrets_env, capsys):
    def failing_run_sync(settings, as_of=None):
        raise StorageError("duplicate key value violates unique constraint")

    secrets_env.setattr(sync_cron, "run_sync", failing_run_sync)

    assert sync_cron.run_cron(env_file=None) == 1
    err = capsys.readouterr().err
    assert "StorageError" in err
    assert "duplicate key value" in err


def test_empty_range_exits_0_without_touching_network(secrets_env):
    secrets_env.setenv("SYNC_START_DATE", "2026-02-01")

    assert sync_cron.run_cron(as_of=date(2026, 1, 31), env_file=None) == 0


def test_main_exits_with_run_code(monkeypatch):
    monkeypatch.setattr(sync_cron, "run_cron", lambda: 1)

    with pytest.raises(SystemExit) as excinfo:
        sync_cron.main()

    assert excinfo.value.code == 1
