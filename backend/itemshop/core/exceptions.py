"""Custom exception classes for the application."""


class ItemShopException(Exception):
    """Base exception for all item shop errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(ItemShopException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class ScraperError(ItemShopException):
    """Raised when a scraper encounters an error."""

    def __init__(self, source: str, message: str):
        super().__init__(f"Scraper error for {source}: {message}")


class EmptyCatalogError(ScraperError):
    """Raised when a scrape completes but yields no categories.

    The pipeline itself treats an empty catalog as a valid result; the
    scraper service raises this so the retry policy can try again.
    """

    def __init__(self, source: str):
        super().__init__(source, "catalog is empty")


class SnapshotUnavailableError(ItemShopException):
    """Raised when no catalog snapshot has been stored yet."""

    def __init__(self):
        super().__init__("No catalog snapshot is available")


class ScrapeInProgressError(ItemShopException):
    """Raised when a scrape is requested while another one is running."""

    def __init__(self):
        super().__init__("A scrape is already running")
