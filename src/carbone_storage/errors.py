"""Error taxonomy for storage operations.

Every remote failure surfaces as a ``StorageError`` subclass so callers can
branch on the class (or ``kind``) instead of matching message strings.
"""

from enum import Enum
from typing import Optional

from azure.core.exceptions import AzureError


class ErrorKind(str, Enum):
    """Classification of a storage failure."""

    ACCESS_DENIED = "AccessDenied"
    NOT_FOUND = "NotFound"
    UPSTREAM = "Upstream"


class StorageError(Exception):
    """Base class for blob storage failures.

    Attributes:
        kind: Failure classification
        status_code: HTTP status returned by the service, if any
        message: Service or transport message
        error_code: Azure storage error code (e.g. ``BlobNotFound``), if any
    """

    kind: ErrorKind = ErrorKind.UPSTREAM

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(str(self))

    def __str__(self) -> str:
        parts = [self.kind.value]
        if self.status_code is not None:
            parts.append(str(self.status_code))
        if self.error_code:
            parts.append(self.error_code)
        return f"{' '.join(parts)}: {self.message}"


class AccessDeniedError(StorageError):
    """The storage account refused the request (HTTP 403)."""

    kind = ErrorKind.ACCESS_DENIED


class ArtifactNotFoundError(StorageError):
    """The requested blob does not exist (HTTP 404)."""

    kind = ErrorKind.NOT_FOUND


class UpstreamError(StorageError):
    """Any other non-success status or transport failure."""

    kind = ErrorKind.UPSTREAM


def classify_azure_error(exc: AzureError, not_found: bool = True) -> StorageError:
    """Translate an azure SDK exception into the storage error taxonomy.

    Args:
        exc: Exception raised by the azure SDK
        not_found: Whether a 404 maps to ``ArtifactNotFoundError``; upload
            paths pass False so a missing container reads as an upstream error

    Returns:
        StorageError subclass instance (not raised)
    """
    status_code = getattr(exc, "status_code", None)
    error_code = getattr(exc, "error_code", None)
    if error_code is not None:
        error_code = str(getattr(error_code, "value", error_code))
    message = getattr(exc, "message", None) or str(exc)

    if status_code == 403:
        return AccessDeniedError(message, status_code, error_code)
    if status_code == 404 and not_found:
        return ArtifactNotFoundError(message, status_code, error_code)
    return UpstreamError(message, status_code, error_code)
