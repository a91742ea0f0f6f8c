"""Custom exception classes for the application."""


class PriceWatchException(Exception):
    """Base exception for all PriceWatch errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(PriceWatchException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class ScrapeError(PriceWatchException):
    """Raised when one scrape attempt fails.

    ``retryable`` tells the retry controller whether another attempt
    against the same target can succeed.
    """

    retryable: bool = True


class FetchError(ScrapeError):
    """Raised on transport failures, timeouts and non-2xx responses."""


class InvalidTargetError(FetchError):
    """Raised when a target URL cannot be fetched at all."""

    retryable = False

    def __init__(self, url: str):
        super().__init__(f"Invalid product URL: {url!r}")


class ExtractionError(ScrapeError):
    """Raised when a required field is missing from the fetched page."""


class StorageError(PriceWatchException):
    """Raised when persisting a scrape result fails."""


class SweepInProgressError(PriceWatchException):
    """Raised when a sweep is requested while another one is still running."""

    def __init__(self):
        super().__init__("A price check sweep is already running")
