"""Error hierarchy for the couchify SDK.

Every error raised by the SDK is a :class:`CouchifyError` carrying a
machine-readable ``code`` (an :class:`ErrorCode`), a ``message``, a
structured ``context`` dict and, when it wraps another exception, a
``cause``.

Errors produced from a CouchDB response derive from
:class:`CouchifyHTTPError` and expose the server's ``error`` / ``reason``
pair::

    try:
        client.create_database("game")
    except CouchifyPreconditionFailedError as exc:
        assert exc.error == "file_exists"
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar


class ErrorCode(str, Enum):
    """Machine-readable error codes; compare with ``==`` or serialise as is."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    NETWORK_ERROR = "NETWORK_ERROR"


class CouchifyError(Exception):
    """Base exception for all couchify errors.

    Parameters
    ----------
    message:
        A developer-facing description of what went wrong.
    context:
        Structured diagnostic data.  For HTTP failures the keys are
        ``method``, ``path``, ``status_code``, ``error`` and ``reason``.
    cause:
        The underlying exception, chained as ``__cause__``.
    code:
        Overrides the class's default :attr:`code`.
    """

    default_code: ClassVar[ErrorCode | None] = None

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        *,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code: str | None = code if code is not None else self.default_code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def status_code(self) -> int | None:
        """HTTP status of the failed response, when there was one."""
        return self.context.get("status_code")

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Errors mapped from a CouchDB response status
# ---------------------------------------------------------------------------

class CouchifyHTTPError(CouchifyError):
    """A non-retryable error response from CouchDB.

    Subclasses set :attr:`status` to the status code they stand for.
    """

    status: ClassVar[int | None] = None

    @property
    def error(self) -> str:
        """CouchDB's short error token, e.g. ``"conflict"``."""
        return self.context.get("error", "")

    @property
    def reason(self) -> str:
        """CouchDB's human-readable explanation."""
        return self.context.get("reason", "")


class CouchifyValidationError(CouchifyHTTPError):
    """CouchDB returned 400 (or an unmapped 4xx), or the caller passed
    arguments the SDK refuses to send.

    The second case is raised locally, before any request is made: an
    empty document id, or a seed input with a malformed or duplicate
    design document id.  Such errors carry no ``status_code`` in their
    context, so :attr:`status_code` is ``None`` even though the class
    :attr:`status` is 400.  Catch this class for both cases and check
    :attr:`status_code` to tell them apart.
    """

    default_code = ErrorCode.VALIDATION_ERROR
    status = 400


class CouchifyAuthError(CouchifyHTTPError):
    """401: the request carried no valid credentials."""

    default_code = ErrorCode.AUTH_ERROR
    status = 401


class CouchifyPermissionError(CouchifyHTTPError):
    """403: the user may not perform this operation.

    Only database admins may write design documents, so a seed run with
    member credentials ends here.
    """

    default_code = ErrorCode.PERMISSION_ERROR
    status = 403


class CouchifyNotFoundError(CouchifyHTTPError):
    """404: the database or document does not exist."""

    default_code = ErrorCode.NOT_FOUND
    status = 404


class CouchifyConflictError(CouchifyHTTPError):
    """409: a write carried a stale or missing revision.

    During a seed this means another writer touched the same design
    document between the revision read and the write.  Re-running the
    seed resolves it.
    """

    default_code = ErrorCode.CONFLICT
    status = 409


class CouchifyPreconditionFailedError(CouchifyHTTPError):
    """412: typically ``file_exists`` when creating a database that
    already exists."""

    default_code = ErrorCode.PRECONDITION_FAILED
    status = 412


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------

class CouchifyRetryExhaustedError(CouchifyError):
    """Every attempt at a retryable request failed.

    Context keys: ``attempts``, ``last_status_code``.
    """

    default_code = ErrorCode.RETRY_EXHAUSTED


class CouchifyNetworkError(CouchifyError):
    """No response arrived (timeout, DNS failure, connection reset).

    Context keys: ``path``, ``attempt``.
    """

    default_code = ErrorCode.NETWORK_ERROR
