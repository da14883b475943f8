import json
from typing import Any, Callable, Dict, List, Optional

import pytest

from cake_sync.settings import load_settings


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Stands in for requests.Session; `handler` maps request params to a response."""

    def __init__(self, handler: Callable[[Dict[str, str]], FakeResponse]):
        self.handler = handler
        self.headers: Dict[str, str] = {}
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url, params=None, timeout=None):
        self.calls.append({'url': url, 'params': dict(params or {}), 'timeout': timeout})
        return self.handler(dict(params or {}))

    def close(self):
        self.closed = True


class FakeDatabase:
    """In-memory stand-in for DatabasePersistence keyed like the real table."""

    def __init__(self, fail_on_call: Optional[int] = None):
        self.rows: Dict[tuple, Dict[str, Any]] = {}
        self.upsert_calls: List[list] = []
        self.connected = False
        self.connect_count = 0
        self.fail_on_call = fail_on_call

    def connect(self):
        self.connected = True
        self.connect_count += 1

    def disconnect(self):
        self.connected = False

    def upsert_earnings(self, records):
        from cake_sync.exceptions import StorageError

        assert self.connected, "upsert without an open connection"
        self.upsert_calls.append(list(records))
        if self.fail_on_call == len(self.upsert_calls):
            raise StorageError("simulated write failure")
        for record in records:
            self.rows[record.key] = record.to_row()
        return {'rows_processed': len(records)}


@pytest.fixture
def make_settings(monkeypatch):
    for name in ("SYNC_MODE", "SYNC_START_DATE", "SNAPSHOT_DATE", "SYNC_WINDOW_DAYS",
                 "SPARK_ID_PATTERN", "SPARK_ID_IGNORE_CASE", "EARNINGS_TABLE"):
        monkeypatch.delenv(name, raising=False)

    def _make(**overrides):
        values = {
            'CAKE_API_KEY': "test-cake-key",
            'SUPABASE_DB_URL': "postgresql://sync@db.example.com:5432/postgres",
            'SUPABASE_DB_PASSWORD': "test-db-password",
        }
        values.update(overrides)
        return load_settings(env_file=None, **values)

    return _make


def cake_payload(rows):
    return FakeResponse(200, {'row_count': len(rows), 'data': rows})
