"""Custom exception classes for the application."""


class DealRadarException(Exception):
    """Base exception for all DealRadar errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class SourceError(DealRadarException):
    """Raised when a marketplace source returns an unusable response."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class RateLimitExceeded(DealRadarException):
    """Raised when a source's daily request quota is used up."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Daily rate limit exceeded for {source}")


class SourceNotConfiguredError(DealRadarException):
    """Raised when a source needs credentials that are not set."""

    def __init__(self, source: str, hint: str = ""):
        self.source = source
        message = f"{source} API not configured"
        if hint:
            message = f"{message} - {hint}"
        super().__init__(message)
