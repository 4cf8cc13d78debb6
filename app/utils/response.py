from typing import Any, Optional, Dict
from fastapi.responses import JSONResponse

from app.core.errors import (
    ConflictError,
    ContestError,
    GatewayError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    StaleWriteError,
)


def success_response(
    message: str = "Success",
    data: Any = None,
    status_code: int = 200
) -> JSONResponse:
    """
    Standard success response
    
    Args:
        message: Success message
        data: Response data (optional)
        status_code: HTTP status code (default: 200)
    
    Returns:
        JSONResponse with success format
    """
    response = {
        "success": True,
        "message": message
    }
    
    if data is not None:
        response["data"] = data
    
    return JSONResponse(content=response, status_code=status_code)


def error_response(
    message: str = "Error",
    status_code: int = 400
) -> JSONResponse:
    """
    Standard error response
    
    Args:
        message: Error message
        status_code: HTTP status code (default: 400)
    
    Returns:
        JSONResponse with error format
    """
    return JSONResponse(
        content={
            "success": False,
            "message": message
        },
        status_code=status_code
    )


def unauthorized_response(
    message: str = "Unauthorized"
) -> JSONResponse:
    """
    Standard unauthorized response
    
    Args:
        message: Unauthorized message
    
    Returns:
        JSONResponse with unauthorized format (401)
    """
    return JSONResponse(
        content={
            "success": False,
            "message": message
        },
        status_code=401
    )


# Most specific class first
ERROR_STATUS_CODES = [
    (ConflictError, 409),
    (StaleWriteError, 409),
    (NotFoundError, 404),
    (InvalidTransitionError, 400),
    (GatewayError, 503),
    (PersistenceError, 503),
]


def contest_error_response(error: ContestError) -> JSONResponse:
    """
    Map a ContestError onto the standard error response
    
    Args:
        error: Raised contest error
    
    Returns:
        JSONResponse with the status code for the error type (400 when unmapped)
    """
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return error_response(message=error.message, status_code=status_code)
    return error_response(message=error.message, status_code=400)
