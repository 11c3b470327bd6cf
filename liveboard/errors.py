"""
liveboard/errors.py
Centralized error codes and the operation result envelope.

CORE PRINCIPLES:
- Every controller operation returns an OperationResult, never raises.
- Silent no-ops are successes, not errors.
- Errors are user-safe (no stack traces) and machine-readable.

RESULT STRUCTURE:
{
    "success": bool,
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE" (null on success),
    "data": {} (optional),
    "details": {} (optional, failure context / log_id)
}
"""

import logging
import uuid
from typing import Optional, Dict, Any
from fastapi import status
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""
    
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID = "AUTH_INVALID"
    FORBIDDEN = "FORBIDDEN"
    
    NOT_FOUND = "NOT_FOUND"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"
    POINTS_NOT_FOUND = "POINTS_NOT_FOUND"
    
    INVALID_ROUND = "INVALID_ROUND"
    NO_WINNERS_PROVIDED = "NO_WINNERS_PROVIDED"
    
    INVALID_STATE = "INVALID_STATE"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
    SCORING_FAILED = "SCORING_FAILED"
    
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


class OperationResult(BaseModel):
    """Explicit success/failure result returned by every controller operation."""
    success: bool
    message: str
    code: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    details: Optional[Dict[str, Any]] = None


def ok(message: str, data: Optional[Dict[str, Any]] = None) -> OperationResult:
    return OperationResult(success=True, message=message, data=data)


def fail(
    message: str,
    code: str,
    details: Optional[Dict[str, Any]] = None,
    data: Optional[Dict[str, Any]] = None
) -> OperationResult:
    return OperationResult(success=False, message=message, code=code, details=details, data=data)


def new_log_id() -> str:
    """Short correlation id shared between the log line and the failure result."""
    return str(uuid.uuid4())[:8]


NOT_FOUND_CODES = {
    ErrorCode.NOT_FOUND,
    ErrorCode.EVENT_NOT_FOUND,
    ErrorCode.PARTICIPANT_NOT_FOUND,
    ErrorCode.POINTS_NOT_FOUND,
}

ERROR_MAPPING = {
    ErrorCode.VALIDATION_ERROR: (422, "Validation Error"),
    ErrorCode.INVALID_INPUT: (status.HTTP_400_BAD_REQUEST, "Bad Request"),
    ErrorCode.INVALID_ROUND: (status.HTTP_400_BAD_REQUEST, "Invalid Round"),
    ErrorCode.NO_WINNERS_PROVIDED: (status.HTTP_400_BAD_REQUEST, "No Winners Provided"),
    ErrorCode.INVALID_STATE: (status.HTTP_400_BAD_REQUEST, "Invalid State"),
    ErrorCode.ALREADY_COMPLETED: (status.HTTP_409_CONFLICT, "Conflict"),
    ErrorCode.SCORING_FAILED: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Scoring Failed"),
    ErrorCode.AUTH_REQUIRED: (status.HTTP_401_UNAUTHORIZED, "Unauthorized"),
    ErrorCode.AUTH_INVALID: (status.HTTP_401_UNAUTHORIZED, "Unauthorized"),
    ErrorCode.FORBIDDEN: (status.HTTP_403_FORBIDDEN, "Forbidden"),
    ErrorCode.PERSISTENCE_ERROR: (status.HTTP_503_SERVICE_UNAVAILABLE, "Service Unavailable"),
    ErrorCode.INTERNAL_ERROR: (status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Error"),
}


def http_status_for(code: Optional[str]) -> int:
    """Map a result code onto the HTTP status the router answers with."""
    if code is None:
        return status.HTTP_200_OK
    if code in NOT_FOUND_CODES:
        return status.HTTP_404_NOT_FOUND
    return ERROR_MAPPING.get(code, (status.HTTP_400_BAD_REQUEST, "Bad Request"))[0]


def to_error_response(result: OperationResult) -> ErrorResponse:
    """Convert a failure result into the error envelope."""
    if result.code in NOT_FOUND_CODES:
        error = "Not Found"
    else:
        error = ERROR_MAPPING.get(result.code, (None, "Bad Request"))[1]
    return ErrorResponse(
        error=error,
        message=result.message,
        code=result.code or ErrorCode.INTERNAL_ERROR,
        details=result.details
    )
