from prsync.config.settings import (
    DaemonSettings,
    LoggingSettings,
    ServiceSettings,
    Settings,
    StateSettings,
    load_services_file,
    load_settings,
    parse_project,
    parse_service,
)

__all__ = [
    'Settings',
    'ServiceSettings',
    'LoggingSettings',
    'DaemonSettings',
    'StateSettings',
    'load_settings',
    'load_services_file',
    'parse_project',
    'parse_service',
]
