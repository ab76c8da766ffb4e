"""
Mapping of flow errors onto HTTP responses.
"""
from fastapi import HTTPException, status

from synlitics.core.errors import (
    AuthError,
    FlowError,
    NotAuthenticatedError,
    ProcessingError,
    ProfileError,
    UploadError,
    ValidationError,
)

_STATUS_BY_ERROR = [
    (AuthError, status.HTTP_401_UNAUTHORIZED),
    (NotAuthenticatedError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ProfileError, status.HTTP_502_BAD_GATEWAY),
    (UploadError, status.HTTP_400_BAD_REQUEST),
    (ProcessingError, status.HTTP_502_BAD_GATEWAY),
]


def to_http_exception(error: FlowError) -> HTTPException:
    """Convert a flow error into an HTTPException carrying its message."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)
