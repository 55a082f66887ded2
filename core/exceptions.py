"""Custom exception classes for the track search service."""


class AuxstreamError(Exception):
    """Base exception for all search service errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class QueryValidationError(AuxstreamError):
    """Raised when a search query is empty after normalization."""

    pass


class UnsupportedSourceError(AuxstreamError):
    """Raised when a search names a source tag that does not exist."""

    pass


class SourceNotConfiguredError(AuxstreamError):
    """Raised when a search targets a provider that has no credentials."""

    pass


class ProviderError(AuxstreamError):
    """Raised when an external provider API call fails."""

    pass


class CacheError(AuxstreamError):
    """Raised when the cache store is unreachable or returns garbage."""

    pass


class ScraperError(AuxstreamError):
    """Raised when a page cannot be fetched or scraped."""

    pass


class UnsupportedURLError(ScraperError):
    """Raised when a URL matches no known source host."""

    pass


class NoScraperError(ScraperError):
    """Raised when a source is recognized but has no registered scraper."""

    pass


class ServiceInitializationError(AuxstreamError):
    """Raised when a service fails to initialize."""

    pass


class ConfigurationError(AuxstreamError):
    """Raised when there's a configuration error."""

    pass
