from prsync.core.exceptions.errors import (
    ConfigError,
    ConnectionFailed,
    GitAPIError,
    InvalidURL,
    NotFound,
    PRSyncError,
    TooManyRequests,
    UnsupportedService,
)

__all__ = [
    "PRSyncError",
    "ConfigError",
    "UnsupportedService",
    "InvalidURL",
    "GitAPIError",
    "ConnectionFailed",
    "TooManyRequests",
    "NotFound",
]
