"""Custom exception hierarchy for the EC2 target discovery daemon."""


class DiscoveryError(Exception):
    """Base exception for all daemon errors."""


class ConfigError(DiscoveryError):
    """Invalid or missing configuration."""


class TransportError(DiscoveryError):
    """Error issuing a request to the EC2 API."""

    def __init__(self, message: str, status_code: int | None = None, response_body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class ParseError(DiscoveryError):
    """An API response could not be decoded; ``payload`` holds the raw bytes."""

    def __init__(self, message: str, payload: bytes = b""):
        super().__init__(message)
        self.payload = payload


class InventoryError(DiscoveryError):
    """A paginated fetch was aborted; the cause is chained via ``__cause__``."""

    def __init__(self, message: str, action: str = ""):
        super().__init__(message)
        self.action = action


class OutputError(DiscoveryError):
    """The discovered targets could not be written."""
