from prsync.infra.logging.console import ConsoleLogger
from prsync.infra.logging.logfire import LogfireLogger, configure_logfire

__all__ = ["ConsoleLogger", "LogfireLogger", "configure_logfire"]
