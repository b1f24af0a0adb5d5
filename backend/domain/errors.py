class ServiceMapError(Exception):
    """Base error for the service map backend."""


class LoadFailure(ServiceMapError):
    """Raised when a persisted snapshot is missing or cannot be parsed."""

    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to load {self.path}: {reason}")


class NetworkFailure(ServiceMapError):
    """Raised when a search or geocode request fails or times out."""
