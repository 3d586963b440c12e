from fastapi import HTTPException, status

from timbel.core.exceptions import (
    AuthorizationError,
    DomainError,
    InvalidStatusTransitionError,
    NotFoundError,
    ProvisioningError,
    ValidationError,
)

# Most specific first
_STATUS_BY_ERROR = (
    (InvalidStatusTransitionError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ProvisioningError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(error: DomainError) -> HTTPException:
    """Map a business rule violation to an HTTP error naming the rule"""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            break
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(
        status_code=status_code,
        detail={"code": error.code, "message": error.message}
    )
