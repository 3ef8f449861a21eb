import logging
from typing import Any, Union

from prsync.core.ports.logger import Logger

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


class _ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = getattr(record, 'context', None)
        if not context:
            return base
        pairs = ' '.join(f'{key}={_render(value)}' for key, value in context.items())
        return f'{base} | {pairs}'


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value if value and ' ' not in value else repr(value)
    return repr(value) if isinstance(value, (list, tuple, dict)) else str(value)


class ConsoleLogger(Logger):
    def __init__(self, name: str, level: Union[int, str] = logging.INFO) -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(_ContextFormatter(LOG_FORMAT))
            self._logger.addHandler(handler)
        self._logger.propagate = False

    def debug(self, message: str, **context: Any) -> None:
        self._logger.debug(message, extra={'context': context})

    def info(self, message: str, **context: Any) -> None:
        self._logger.info(message, extra={'context': context})

    def warning(self, message: str, **context: Any) -> None:
        self._logger.warning(message, extra={'context': context})

    def error(self, message: str, **context: Any) -> None:
        self._logger.error(message, extra={'context': context})

    def exception(self, message: str, **context: Any) -> None:
        self._logger.exception(message, extra={'context': context})
