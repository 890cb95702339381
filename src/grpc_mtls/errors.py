"""
Error types for mTLS credential construction.

Every failure raised while building credentials is one of three kinds:
an I/O failure reading one of the PEM artifacts, a parse failure of the
material that was read, or a configuration failure (invalid role or
settings).
"""

from enum import Enum
from typing import Any, Optional


class Artifact(Enum):
    """The three PEM artifacts a credential is built from."""

    CERTIFICATE = "certificate"
    KEY = "key"
    CERTIFICATE_AUTHORITY = "certificate authority"


class ParseFailure(Enum):
    """Which validation step rejected the material."""

    KEY_PAIR = "failed to load key pair"
    CERTIFICATE_AUTHORITY = "failed to append certificate authority to pool"


class MTLSError(Exception):
    """Base class for all credential construction errors."""


class CredentialIOError(MTLSError):
    """An artifact could not be opened or fully read.

    Attributes:
        artifact: Which artifact failed, or None for a bare load
        path: The identifier handed to the storage backend
        cause: The underlying OSError
    """

    def __init__(
        self,
        path: str,
        cause: Optional[BaseException] = None,
        artifact: Optional[Artifact] = None,
        action: str = "read",
    ):
        self.artifact = artifact
        self.path = path
        self.cause = cause

        target = f"{artifact.value} file" if artifact else "file"
        message = f"failed to {action} {target} {path!r}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class CredentialParseError(MTLSError):
    """Bytes were read but did not form a usable key pair or CA pool."""

    def __init__(self, reason: ParseFailure, detail: Optional[str] = None):
        self.reason = reason
        self.detail = detail

        message = reason.value
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CredentialConfigError(MTLSError, ValueError):
    """Invalid role or configuration. A caller bug, never retryable."""


def is_retryable_error(exception: Any) -> bool:
    """Determine if a credential build failure is worth retrying.

    Only I/O failures may resolve on their own (a file being replaced,
    a backend coming back). Parse and configuration errors need new input.

    Args:
        exception: The exception to check

    Returns:
        True if the error is retryable, False otherwise
    """
    return isinstance(exception, CredentialIOError)
