"""
Custom exceptions for key-value sync.

These exceptions describe failures inside the sync subsystem. None of them
is ever raised into application code: the remote adapter converts them
into failed SyncOutcome values and the diagnostics sink records them.
Local store I/O errors are the one exception that does propagate, because
the local store keeps its normal synchronous contract.
"""


class KVSyncError(Exception):
    """Base exception for all key-value sync errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationAbsentError(KVSyncError):
    """Raised when the remote endpoint or credential is not configured."""

    def __init__(self, backend: str, missing: list[str]):
        super().__init__(
            f"Remote sync not configured for {backend}: missing {', '.join(missing)}",
            {"backend": backend, "missing": missing},
        )
        self.backend = backend
        self.missing = missing


class ClientInitError(KVSyncError):
    """Raised when the remote client cannot be constructed or initialized."""

    def __init__(self, backend: str, endpoint: str | None = None, cause: Exception | None = None):
        details: dict = {"backend": backend}
        if endpoint:
            details["endpoint"] = endpoint
        if cause:
            details["cause"] = str(cause)
        message = f"Failed to initialize {backend} client"
        if endpoint:
            message += f" for {endpoint}"
        super().__init__(message, details)
        self.backend = backend
        self.endpoint = endpoint
        self.cause = cause


class RemoteCallError(KVSyncError):
    """Raised when an individual remote upsert, delete or query fails."""

    def __init__(
        self,
        operation: str,
        key: str | None = None,
        cause: Exception | None = None,
        payload: dict | None = None,
    ):
        details: dict = {"operation": operation}
        if key is not None:
            details["key"] = key
        if payload:
            details["payload"] = payload
        if cause:
            details["cause"] = str(cause)
        message = f"Remote {operation} failed"
        if key is not None:
            message += f" for key {key!r}"
        if cause:
            message += f": {cause}"
        super().__init__(message, details)
        self.operation = operation
        self.key = key
        self.cause = cause


class LocalStoreIOError(KVSyncError):
    """Raised when the local store cannot read or persist its file."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Local store I/O error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause
