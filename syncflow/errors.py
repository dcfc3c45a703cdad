"""
Error classes for syncflow.

Run-level errors abort a sync before anything is written:
- ConfigError: missing API key, missing repository root
- EmptyRepositoryError: no valid workflow definitions were loaded

Record-level errors are raised by the remote client and caught by the
orchestrator, which marks the single record as errored and moves on:
- TransportError: the request never produced a response (DNS, refused, timeout)
- ApiError: the service answered with a non-2xx status
- MissingIdentifierError: a create call succeeded but returned no id
"""

from typing import Optional


class SyncError(Exception):
    """Base exception for syncflow."""
    pass


class ConfigError(SyncError):
    """Invalid or incomplete configuration. Fatal."""
    pass


class EmptyRepositoryError(SyncError):
    """The repository root holds no loadable workflow definitions. Fatal."""
    pass


class TransportError(SyncError):
    """
    A request to the remote service failed.

    Attributes:
        method: HTTP method of the failed call
        path: request path relative to the base URL
    """

    def __init__(self, message: str, method: str = "", path: str = "") -> None:
        super().__init__(message)
        self.method = method
        self.path = path


class ApiError(TransportError):
    """
    Non-2xx response from the remote service.

    The response body is kept verbatim; n8n puts the actual validation message there.
    """

    def __init__(self, method: str, path: str, status: int, body: str = "", reason: Optional[str] = None) -> None:
        self.status = status
        self.body = body
        self.reason = reason or ""
        msg = f"{method} {path} -> {status} {self.reason}".rstrip()
        if body:
            msg = f"{msg} {body}"
        super().__init__(msg, method=method, path=path)


class MissingIdentifierError(TransportError):
    """Create call returned a body without a usable workflow id."""
    pass
