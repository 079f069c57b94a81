"""
Workflow exceptions.

Every error carries its HTTP status code so routers can let it propagate
unchanged; FastAPI renders it like any other HTTPException.
"""

from typing import Dict, Optional

from fastapi import HTTPException, status


class LeaveWorkflowError(HTTPException):
    """Base class for errors raised by the leave workflow."""

    def __init__(self, status_code: int, detail, error_code: Optional[str] = None):
        super().__init__(status_code=status_code, detail=detail)
        self.error_code = error_code or self.__class__.__name__


class ValidationError(LeaveWorkflowError):
    """Malformed or missing input. Nothing is persisted."""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, str]] = None,
    ):
        self.message = message
        self.field_errors = field_errors or {}
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": message, "field_errors": self.field_errors},
        )


class InvalidStateError(LeaveWorkflowError):
    """Transition not permitted from the application's current status."""

    def __init__(self, detail: str = "Transition not allowed", current_status: Optional[str] = None):
        self.current_status = current_status
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ConflictError(LeaveWorkflowError):
    """The application changed between read and write."""

    def __init__(self, detail: str = "Application was modified concurrently, reload and retry"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class NotFoundError(LeaveWorkflowError):

    def __init__(self, detail: str = "Resource not found", resource_id: Optional[str] = None):
        self.resource_id = resource_id
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthorizationError(LeaveWorkflowError):

    def __init__(self, detail: str = "Insufficient permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
