"""
Custom exceptions for swcache.
"""


class SwCacheError(Exception):
    """Base exception for all swcache errors."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class NetworkError(SwCacheError):
    """Raised when a network request fails."""

    def __init__(self, url: str, status_code: int | None = None, details: str | None = None):
        message = f"Network request failed: {url}"
        if status_code:
            message += f" (status {status_code})"
        super().__init__(message, details=details)
        self.url = url
        self.status_code = status_code


class CacheError(SwCacheError):
    """Raised when a cache storage operation fails."""

    def __init__(self, operation: str, details: str | None = None):
        super().__init__(f"Cache error during {operation}", details=details)
        self.operation = operation


class InstallError(SwCacheError):
    """Raised when a router version fails to populate its static store."""

    def __init__(self, version: str, details: str | None = None):
        super().__init__(f"Install failed for version {version}", details=details)
        self.version = version


class LifecycleError(SwCacheError):
    """Raised on a lifecycle transition that is not allowed."""

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Invalid lifecycle transition: {current} -> {target}",
        )
        self.current = current
        self.target = target


class ValidationError(SwCacheError):
    """Raised when data validation fails."""

    def __init__(self, field: str, value: str, reason: str):
        super().__init__(
            f"Validation failed for {field}",
            details=f"Value '{value}' is invalid: {reason}",
        )
        self.field = field
        self.value = value
        self.reason = reason
