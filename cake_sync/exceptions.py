"""
Error taxonomy for the CAKE earnings sync.

Which of these abort a run and which only skip a window is decided by the
sync strategy in main.py, not here.
"""

from typing import Optional


class SyncError(Exception):
    """Base class for every error raised by the sync job."""
    pass


class ConfigError(SyncError):
    """Required configuration is missing or invalid."""
    pass


class FetchError(SyncError):
    """The CAKE reporting API could not deliver a report."""
    pass


class TransportError(FetchError):
    """Network-level failure reaching CAKE (DNS, connect, reset, timeout)."""
    pass


class RemoteError(FetchError):
    """CAKE answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str, url: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(f"CAKE responded with HTTP {status_code}: {body}")


class SchemaError(SyncError):
    """The report payload does not have the documented shape."""
    pass


class StorageError(SyncError):
    """The upsert into the earnings table failed."""
    pass
