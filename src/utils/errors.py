"""
HTTP Error Mapping
Translates lifecycle engine errors into FastAPI HTTP exceptions
Source: https://fastapi.tiangolo.com/tutorial/handling-errors/
"""

from fastapi import HTTPException, status

from src.core.exceptions import (
    BusinessRuleError,
    ForbiddenError,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
    StaleEntityError,
    TransitionRequirementsError,
    ValidationError,
)


class PermissionDeniedError(HTTPException):
    """Raised when user lacks permission"""

    def __init__(self, detail: str = "Permission denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ResourceNotFoundError(HTTPException):
    """Raised when resource not found"""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(HTTPException):
    """Raised when a request breaks a business rule"""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ConflictError(HTTPException):
    """Raised when resource conflict occurs"""

    def __init__(self, detail: str = "Resource conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


# Most specific class first; lookup walks the exception's MRO
ERROR_STATUS_CODES: dict[type[LifecycleError], int] = {
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    StaleEntityError: status.HTTP_409_CONFLICT,
    TransitionRequirementsError: status.HTTP_400_BAD_REQUEST,
    BusinessRuleError: status.HTTP_400_BAD_REQUEST,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    LifecycleError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_code_for(exc: LifecycleError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_exception(exc: LifecycleError) -> HTTPException:
    """
    Convert a lifecycle error to an HTTPException.

    Internal defects (ValidationError) are reported with a generic detail.
    """
    code = status_code_for(exc)
    if code == status.HTTP_403_FORBIDDEN:
        return PermissionDeniedError(str(exc))
    if code == status.HTTP_404_NOT_FOUND:
        return ResourceNotFoundError(str(exc))
    if code == status.HTTP_409_CONFLICT:
        return ConflictError(str(exc))
    if code == status.HTTP_400_BAD_REQUEST:
        return BadRequestError(str(exc))
    return HTTPException(status_code=code, detail="Internal error")
