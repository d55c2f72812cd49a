"""
Exceptions raised by the refresh pipeline.

Handlers in ``country_api.main`` translate these into HTTP responses;
everything below the API layer lets them propagate unchanged.
"""


class CountryAPIError(Exception):
    """Base exception for errors raised by this service."""

    pass


class ExternalAPIError(CountryAPIError):
    """
    Raised when an external data source cannot be used.

    Covers timeouts, connection failures, non-2xx responses and
    a non-success result reported by the source itself.
    """

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Could not fetch data from {source}: {message}")


class MalformedResponseError(ExternalAPIError):
    """Raised when an external payload does not match the expected schema."""

    pass
