class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

class NotFoundError(AppError):
    """Raised when a requested survey, mapping or source does not exist."""
    pass

class ValidationError(AppError):
    """Raised when input validation fails."""
    pass

class MappingConflictError(AppError):
    """Raised when a (survey source, raw value) pair is already mapped."""
    pass

class InvalidSurveyFormatError(ValidationError):
    """Raised when an uploaded file matches neither the long nor the wide layout."""
    def __init__(self, message: str, suggestions: list = None):
        super().__init__(message)
        self.suggestions = suggestions or []

class BlendingConfigError(ValidationError):
    """Raised when a blending configuration cannot be applied."""
    pass
