"""Domain exceptions raised by the collaborator clients."""


class AppError(Exception):
    """Base error carrying an HTTP-style status code."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ScraperError(AppError):
    """Crawling provider could not be reached or refused the request."""

    def __init__(self, message: str = "Failed to scrape content", status_code: int = 500):
        super().__init__(message, status_code)


class ConfigurationError(AppError):
    """A collaborator is missing the credentials it needs."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message, status_code)
