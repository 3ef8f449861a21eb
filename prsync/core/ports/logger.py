from typing import Protocol, runtime_checkable


@runtime_checkable
class Logger(Protocol):
    """Structured logger.

    Keyword arguments are context (``host=``, ``branch=``, ``pull_request=``)
    rendered by the backend next to the message.
    """

    def debug(self, message: str, **context: object) -> None: ...

    def info(self, message: str, **context: object) -> None: ...

    def warning(self, message: str, **context: object) -> None: ...

    def error(self, message: str, **context: object) -> None: ...

    def exception(self, message: str, **context: object) -> None: ...
