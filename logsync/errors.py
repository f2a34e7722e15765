"""Exception hierarchy for LOGSYNC."""


class LogSyncError(Exception):
    """Base class for all LOGSYNC errors."""


class StoreError(LogSyncError):
    """Persisted event store could not be read or written."""


class TransportError(LogSyncError):
    """Send/receive failure on the realtime connection."""


class NotSignedInError(LogSyncError):
    """No valid credential is available."""
