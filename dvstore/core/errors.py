"""Error Taxonomy — tagged API errors and the classifier that normalizes every failure.

Invariants:
    - Every ApiError carries an explicit ErrorKind discriminant
    - _STATUS_BY_KIND is total over ErrorKind (checked at import)
    - Clients only ever see status_code + message; cause stays in internal logs
    - Unknown errors classify as 500 "Internal server error"
    - A cancelled request classifies as 408 regardless of the handler's own error

Design Decisions:
    - Kind enum + status table over isinstance chains: a new kind without a
      status fails at import instead of falling through to 500
    - Subclasses (BadRequestError, ...) only pin the kind; classification reads kind
"""

import logging
from dataclasses import dataclass
from enum import Enum

INTERNAL_SERVER_ERROR = "Internal server error"
CLIENT_CANCELLED = "client cancelled request"


class ErrorKind(str, Enum):
    """Discriminant for every error the API can return."""
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"
    CLIENT_CANCELLED = "client_cancelled"
    INTERNAL = "internal"


_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.UNSUPPORTED_MEDIA_TYPE: 415,
    ErrorKind.CLIENT_CANCELLED: 408,
    ErrorKind.INTERNAL: 500,
}

_missing = set(ErrorKind) - set(_STATUS_BY_KIND)
if _missing:
    raise RuntimeError(f"ErrorKind without status code: {sorted(k.value for k in _missing)}")


def status_for(kind: ErrorKind) -> int:
    return _STATUS_BY_KIND[kind]


class ApiError(Exception):
    """Error with an explicit HTTP status and a message safe for clients."""

    def __init__(
        self,
        message: str = "",
        kind: ErrorKind = ErrorKind.INTERNAL,
        cause: BaseException | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message or INTERNAL_SERVER_ERROR
        self.cause = cause
        self.status_code = status_code or status_for(kind)

    def __str__(self) -> str:
        return f"api error[status={self.status_code},msg={self.message}]: {self.cause}"


class BadRequestError(ApiError):
    """Client sent something unparseable or invalid."""
    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message, ErrorKind.BAD_REQUEST, cause)


class NotFoundError(ApiError):
    """Lookup miss."""
    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message, ErrorKind.NOT_FOUND, cause)


class ConflictError(ApiError):
    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message, ErrorKind.CONFLICT, cause)


class UnsupportedMediaTypeError(ApiError):
    def __init__(self, content_type: str):
        super().__init__(
            f"unsupported media type {content_type} (only application/json supported)",
            ErrorKind.UNSUPPORTED_MEDIA_TYPE,
        )


class ClientCancelledError(ApiError):
    def __init__(self, cause: BaseException | None = None):
        super().__init__(CLIENT_CANCELLED, ErrorKind.CLIENT_CANCELLED, cause)


class DefinitionNotFoundError(NotFoundError):
    """Store has no definition for the requested config hash."""
    def __init__(self, config_hash: bytes):
        super().__init__("Definition not found")
        self.config_hash = config_hash


class DefinitionExistsError(ConflictError):
    def __init__(self, config_hash: bytes, cause: BaseException | None = None):
        super().__init__("Definition already exists", cause)
        self.config_hash = config_hash


class DatabaseError(ApiError):
    """Database operation failed. Message names the operation only."""
    def __init__(self, operation: str, cause: BaseException | None = None):
        super().__init__(f"Database {operation} failed", ErrorKind.INTERNAL, cause)
        self.operation = operation


@dataclass(frozen=True)
class ClassifiedError:
    """Normalized outcome of a failed request."""
    status_code: int
    message: str
    cause: BaseException | None

    @property
    def log_level(self) -> int:
        # 4xx are client errors, expected and common.
        if 400 <= self.status_code < 500:
            return logging.DEBUG
        return logging.ERROR

    def to_response(self) -> dict:
        return {"code": self.status_code, "message": self.message}


def classify(err: BaseException, cancelled: bool = False) -> ClassifiedError:
    """Map any error to a status code, safe message and internal cause."""
    if cancelled:
        err = ClientCancelledError(cause=err)

    if not isinstance(err, ApiError):
        return ClassifiedError(500, INTERNAL_SERVER_ERROR, err)

    return ClassifiedError(
        status_code=err.status_code or 500,
        message=err.message or INTERNAL_SERVER_ERROR,
        cause=err.cause,
    )
