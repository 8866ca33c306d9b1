from fastapi import HTTPException

from app.core.exceptions import (
    AppError,
    InvalidSurveyFormatError,
    MappingConflictError,
    NotFoundError,
    ValidationError,
)

def http_error(error: AppError) -> HTTPException:
    """Translate a service error into the matching HTTP response."""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=error.message)
    if isinstance(error, InvalidSurveyFormatError):
        return HTTPException(
            status_code=400,
            detail={"message": error.message, "suggestions": error.suggestions},
        )
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=error.message)
    if isinstance(error, MappingConflictError):
        return HTTPException(status_code=409, detail=error.message)
    return HTTPException(status_code=500, detail=error.message)
