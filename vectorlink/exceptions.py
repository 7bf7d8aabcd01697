"""
Exceptions for VectorLink.

Hierarchy:
    VectorLinkError
    ├── ConfigurationError
    ├── ScanError
    ├── RemoteError
    │   ├── RemoteOperationError
    │   └── NetworkError
    ├── CancellationError
    └── SyncInProgress
"""


class VectorLinkError(Exception):
    """Base exception for VectorLink operations."""


class ConfigurationError(VectorLinkError):
    """Raised when a required setting (API key, vector store id) is missing."""


class ScanError(VectorLinkError):
    """Raised when the local collection cannot be enumerated or read."""


class RemoteError(VectorLinkError):
    """Base class for failures talking to the remote service."""


class NetworkError(RemoteError):
    """Raised when a request fails in transport or returns a non-2xx status."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class RemoteOperationError(RemoteError):
    """Raised when a single create/update/delete step fails.

    Args:
        message: Human readable cause
        stage: Step that failed ("create_blob", "register_record", ...)
    """

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.stage = stage


class CancellationError(VectorLinkError):
    """Internal signal: a history walk was superseded by a newer request."""


class SyncInProgress(VectorLinkError):
    """Raised when a sync is requested while another one is running."""

    def __init__(self, message: str = "A sync is already in progress"):
        super().__init__(message)
