"""
Error taxonomy shared by every route.

Each error is an HTTPException so handlers can simply raise it; the
`reason` attribute is rendered in the response body next to the message
so clients can tell failures apart without parsing text.
"""
from typing import Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    reason = "error"
    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(
            status_code=status_code or self.default_status_code,
            detail=detail,
        )


class NotFoundError(AppError):
    """Resource missing, or the caller may not know it exists."""
    reason = "not_found"
    default_status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedError(AppError):
    """Caller is authenticated but lacks the role or does not own the resource."""
    reason = "unauthorized"
    default_status_code = status.HTTP_403_FORBIDDEN


class PreconditionFailedError(AppError):
    reason = "precondition_failed"
    default_status_code = status.HTTP_400_BAD_REQUEST


class ValidationFailedError(AppError):
    reason = "validation_failed"
    default_status_code = 422


class TransientStoreError(AppError):
    reason = "transient_store_failure"
    default_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
