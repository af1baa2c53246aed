"""
Error Handling Module for the Mutabaah Service

This module provides centralized error handling with:
- Custom exception hierarchy
- Standardized error responses
- Error logging
- Database and raw-source read error handling
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID
import logging

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import (
    SQLAlchemyError,
    IntegrityError,
    OperationalError,
    DataError,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

# Configure logging
logger = logging.getLogger("mutabaah.errors")


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


class ErrorCode(str, Enum):
    """Standardized error codes for the application"""

    # Validation Errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_MONTH = "INVALID_MONTH"

    # Authentication/Authorization Errors (401/403)
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    TOKEN_INVALID = "TOKEN_INVALID"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    NOT_ASSIGNED_REVIEWER = "NOT_ASSIGNED_REVIEWER"

    # Resource Errors (404/409)
    NOT_FOUND = "NOT_FOUND"
    EMPLOYEE_NOT_FOUND = "EMPLOYEE_NOT_FOUND"
    SUBMISSION_NOT_FOUND = "SUBMISSION_NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    CONCURRENT_TRANSITION = "CONCURRENT_TRANSITION"
    SUBMISSION_FINALIZED = "SUBMISSION_FINALIZED"
    INVALID_TRANSITION = "INVALID_TRANSITION"

    # Business Logic Errors (422)
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"
    ACTIVATION_REQUIRED = "ACTIVATION_REQUIRED"
    NO_REVIEWER_ASSIGNED = "NO_REVIEWER_ASSIGNED"

    # Upstream Errors (503)
    SOURCE_READ_ERROR = "SOURCE_READ_ERROR"

    # Database Errors (500)
    DATABASE_ERROR = "DATABASE_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DATA_INTEGRITY_ERROR = "DATA_INTEGRITY_ERROR"

    # Internal Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppException(Exception):
    """Base exception for all application exceptions"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.timestamp = _utc_timestamp()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response"""
        result = {
            "code": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = self.details
        return result


# ============================================================================
# Validation Exceptions
# ============================================================================

class ValidationException(AppException):
    """Base validation exception"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            field=field,
        )


class MissingFieldException(ValidationException):
    """A required request field was not supplied"""

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"'{field}' is required",
            field=field,
            code=ErrorCode.MISSING_FIELD,
        )


class InvalidMonthException(ValidationException):
    """Month key is malformed or lies in the future"""

    def __init__(self, month_key: str, reason: str):
        super().__init__(
            message=f"Invalid month '{month_key}': {reason}",
            field="month_key",
            code=ErrorCode.INVALID_MONTH,
            details={"month_key": month_key},
        )


# ============================================================================
# Authentication/Authorization Exceptions
# ============================================================================

class AuthenticationException(AppException):
    """Base authentication exception"""

    def __init__(
        self,
        message: str = "Authentication required",
        code: ErrorCode = ErrorCode.UNAUTHORIZED,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
        )


class TokenInvalidException(AuthenticationException):
    """Token is invalid"""

    def __init__(self, message: str = "Invalid access token"):
        super().__init__(
            message=message,
            code=ErrorCode.TOKEN_INVALID,
        )


class AuthorizationException(AppException):
    """Authorization denied exception"""

    def __init__(
        self,
        message: str = "Permission denied",
        required_permission: Optional[str] = None,
        code: ErrorCode = ErrorCode.FORBIDDEN,
    ):
        details = {}
        if required_permission:
            details["required_permission"] = required_permission
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details,
        )


class InsufficientPermissionsException(AuthorizationException):
    """Insufficient permissions"""

    def __init__(self, required_permission: str, user_role: Optional[str] = None):
        super().__init__(
            message=f"Insufficient permissions. Required: {required_permission}",
            required_permission=required_permission,
            code=ErrorCode.INSUFFICIENT_PERMISSIONS,
        )
        if user_role:
            self.details["current_role"] = user_role


class NotAssignedReviewerException(AuthorizationException):
    """Actor is not the assigned reviewer for this stage"""

    def __init__(self, stage: str, actor_id: str):
        super().__init__(
            message=f"Employee '{actor_id}' is not the assigned {stage} for this request",
            required_permission=stage,
            code=ErrorCode.NOT_ASSIGNED_REVIEWER,
        )


# ============================================================================
# Resource Exceptions
# ============================================================================

class NotFoundException(AppException):
    """Resource not found exception"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Union[str, UUID]] = None,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
    ):
        if message is None:
            if resource_id:
                message = f"{resource_type} with ID '{resource_id}' not found"
            else:
                message = f"{resource_type} not found"
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": str(resource_id) if resource_id else None},
        )


class EmployeeNotFoundException(NotFoundException):
    """Employee not found"""

    def __init__(self, employee_id: str):
        super().__init__(
            resource_type="Employee",
            resource_id=employee_id,
            code=ErrorCode.EMPLOYEE_NOT_FOUND,
        )


class SubmissionNotFoundException(NotFoundException):
    """Monthly submission not found"""

    def __init__(self, submission_id: Union[str, UUID]):
        super().__init__(
            resource_type="MonthlySubmission",
            resource_id=submission_id,
            code=ErrorCode.SUBMISSION_NOT_FOUND,
        )


class ConflictException(AppException):
    """Resource conflict exception"""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        code: ErrorCode = ErrorCode.RESOURCE_CONFLICT,
        details: Optional[Dict[str, Any]] = None,
    ):
        _details = details or {}
        if resource_type:
            _details["resource_type"] = resource_type
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=_details,
        )


class ConcurrentTransitionConflict(ConflictException):
    """Another reviewer changed the request first; the caller may retry"""

    def __init__(self, resource_type: str, resource_id: Union[str, UUID], expected_status: str):
        super().__init__(
            message=f"{resource_type} '{resource_id}' is no longer '{expected_status}'. Reload and try again.",
            resource_type=resource_type,
            code=ErrorCode.CONCURRENT_TRANSITION,
            details={
                "resource_id": str(resource_id),
                "expected_status": expected_status,
                "retryable": True,
            },
        )


class SubmissionFinalizedException(ConflictException):
    """Review attempted on an approved or rejected request"""

    def __init__(self, resource_type: str, resource_id: Union[str, UUID], current_status: str):
        super().__init__(
            message=f"{resource_type} '{resource_id}' is already {current_status} and cannot be reviewed again",
            resource_type=resource_type,
            code=ErrorCode.SUBMISSION_FINALIZED,
            details={"resource_id": str(resource_id), "current_status": current_status},
        )


class InvalidTransitionException(ConflictException):
    """Review stage does not match the pending stage"""

    def __init__(self, resource_id: Union[str, UUID], current_status: str, acting_stage: str):
        super().__init__(
            message=f"Submission '{resource_id}' is '{current_status}', not pending review by {acting_stage}",
            resource_type="MonthlySubmission",
            code=ErrorCode.INVALID_TRANSITION,
            details={
                "resource_id": str(resource_id),
                "current_status": current_status,
                "acting_stage": acting_stage,
            },
        )


# ============================================================================
# Business Logic Exceptions
# ============================================================================

class BusinessRuleException(AppException):
    """Business rule violation exception"""

    def __init__(
        self,
        message: str,
        rule: Optional[str] = None,
        code: ErrorCode = ErrorCode.BUSINESS_RULE_VIOLATION,
        details: Optional[Dict[str, Any]] = None,
    ):
        _details = details or {}
        if rule:
            _details["violated_rule"] = rule
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=_details,
        )


class ActivationRequiredException(BusinessRuleException):
    """Month has not been activated by the employee"""

    def __init__(self, employee_id: str, month_key: str):
        super().__init__(
            message=f"Mutabaah for {month_key} has not been activated",
            rule="MONTH_ACTIVATED",
            code=ErrorCode.ACTIVATION_REQUIRED,
            details={"employee_id": employee_id, "month_key": month_key},
        )


class NoReviewerAssignedException(BusinessRuleException):
    """Employee has neither a mentor nor a supervisor"""

    def __init__(self, employee_id: str):
        super().__init__(
            message="No mentor or supervisor is assigned, so the report cannot be reviewed",
            rule="REVIEWER_ASSIGNED",
            code=ErrorCode.NO_REVIEWER_ASSIGNED,
            details={"employee_id": employee_id},
        )


# ============================================================================
# Upstream Source Exceptions
# ============================================================================

class SourceReadException(AppException):
    """A raw activity source could not be read"""

    def __init__(self, source: str, original_error: Optional[Exception] = None):
        super().__init__(
            code=ErrorCode.SOURCE_READ_ERROR,
            message=f"Failed to read activity source '{source}'",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"source": source},
            original_error=original_error,
        )


# ============================================================================
# Exception Handlers
# ============================================================================

def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    field: Optional[str] = None,
) -> JSONResponse:
    """Create a standardized error response"""
    content = {
        "detail": {
            "code": code.value,
            "message": message,
            "timestamp": _utc_timestamp(),
        }
    }
    if field:
        content["detail"]["field"] = field
    if details:
        content["detail"]["details"] = details

    return JSONResponse(status_code=status_code, content=content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle AppException"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"AppException: {exc.code.value} - {exc.message}",
        extra={
            "code": exc.code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
        },
        exc_info=exc.original_error,
    )

    return create_error_response(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        field=exc.field,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException"""
    code_map = {
        400: ErrorCode.INVALID_INPUT,
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.FORBIDDEN,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.RESOURCE_CONFLICT,
        422: ErrorCode.VALIDATION_ERROR,
        500: ErrorCode.INTERNAL_ERROR,
        503: ErrorCode.SOURCE_READ_ERROR,
    }

    error_code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    logger.warning(
        f"HTTPException: {exc.status_code} - {message}",
        extra={"path": request.url.path, "method": request.method},
    )

    return create_error_response(
        code=error_code,
        message=message,
        status_code=exc.status_code,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors"""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    # A required field that was simply not sent gets its own code
    missing = [e for e in errors if e["type"] == "missing"]
    code = ErrorCode.MISSING_FIELD if missing and len(missing) == len(errors) else ErrorCode.VALIDATION_ERROR

    logger.warning(
        f"ValidationError: {len(errors)} validation errors",
        extra={"path": request.url.path, "method": request.method, "errors": errors},
    )

    return create_error_response(
        code=code,
        message="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": errors},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy errors"""
    error_message = "A database error occurred"
    error_code = ErrorCode.DATABASE_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(exc, IntegrityError):
        error_message = "Data integrity constraint violated"
        error_code = ErrorCode.DATA_INTEGRITY_ERROR
        error_str = str(exc.orig).lower() if exc.orig else ""
        if "unique" in error_str or "duplicate" in error_str:
            error_message = "A record with this value already exists"
            error_code = ErrorCode.DUPLICATE_ENTRY
            status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, OperationalError):
        error_message = "Database operation failed"
        error_code = ErrorCode.CONNECTION_ERROR
    elif isinstance(exc, DataError):
        error_message = "Invalid data format for database"
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    logger.error(
        f"SQLAlchemyError: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    return create_error_response(
        code=error_code,
        message=error_message,
        status_code=status_code,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions"""
    logger.critical(
        f"UnhandledException: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    # Don't expose internal error details
    return create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


# Export all exceptions for easy importing
__all__ = [
    # Base
    "AppException",
    "ErrorCode",

    # Validation
    "ValidationException",
    "MissingFieldException",
    "InvalidMonthException",

    # Auth
    "AuthenticationException",
    "TokenInvalidException",
    "AuthorizationException",
    "InsufficientPermissionsException",
    "NotAssignedReviewerException",

    # Resource
    "NotFoundException",
    "EmployeeNotFoundException",
    "SubmissionNotFoundException",
    "ConflictException",
    "ConcurrentTransitionConflict",
    "SubmissionFinalizedException",
    "InvalidTransitionException",

    # Business Logic
    "BusinessRuleException",
    "ActivationRequiredException",
    "NoReviewerAssignedException",

    # Upstream
    "SourceReadException",

    # Handlers
    "setup_exception_handlers",
    "create_error_response",
]
