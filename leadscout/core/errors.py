"""Exceptions raised by the search pipeline."""


class LeadScoutError(RuntimeError):
    """Base class for reportable search and import failures."""


class InvalidRequest(LeadScoutError, ValueError):
    """Raised when a search request is missing its business type or area."""


class GeocodeFailed(LeadScoutError):
    """Raised when the only (or first) area of a crawl cannot be located."""


class ProviderUnavailable(LeadScoutError):
    """Raised when the places provider cannot be reached or rejects a call."""
