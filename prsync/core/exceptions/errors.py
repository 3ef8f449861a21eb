class PRSyncError(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(PRSyncError):
    pass


class UnsupportedService(ConfigError):
    def __init__(self, host: str) -> None:
        self.host = host
        super().__init__(f'Unsupported service ({host})')


class InvalidURL(PRSyncError, ValueError):
    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f'Invalid URL ({url})')


class GitAPIError(PRSyncError):
    pass


class ConnectionFailed(GitAPIError):
    pass


class TooManyRequests(GitAPIError):
    pass


class NotFound(GitAPIError):
    def __init__(self, message: str, resource: str = 'resource') -> None:
        self.resource = resource
        super().__init__(message)
