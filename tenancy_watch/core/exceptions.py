class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error

class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass

class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass

class ValidationError(AppError):
    """Raised when input validation fails."""
    pass

class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass

class TokenUnavailableError(AppError):
    """Raised when the listing access token cannot be obtained."""
    pass

class HarvestAbortedError(AppError):
    """Raised when a harvest cannot continue (first page or too many failed pages)."""
    pass

class JobConflictError(AppError):
    """Raised when a harvest job is already running for a source type."""
    pass

class JobNotFoundError(AppError):
    """Raised when no harvest job matches the request."""
    pass

class NoDocumentError(AppError):
    """Raised when a case has no attached document to analyse."""
    pass

class DocumentUnavailableError(AppError):
    """Raised when none of a case's documents could be downloaded."""
    pass

class ExtractionError(AppError):
    """Raised when a model response cannot be turned into an extraction result."""
    pass
