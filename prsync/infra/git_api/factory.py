from typing import Dict, Iterable

from prsync.config.settings import ServiceSettings
from prsync.core.exceptions import ConfigError
from prsync.core.ports.clock import Clock
from prsync.core.ports.logger import Logger
from prsync.core.ports.service import Service
from prsync.infra.github.service import GitHubService
from prsync.infra.gitlab.service import GitLabService


def build_service(settings: ServiceSettings, clock: Clock, logger: Logger) -> Service:
    if settings.service == 'github':
        return GitHubService(
            settings.host,
            api_endpoint=settings.api_endpoint,
            access_token=settings.access_token,
            clock=clock,
            logger=logger,
            mergeability_timeout=settings.mergeability_timeout,
            commit_strategy=settings.commit_strategy,
        )
    if settings.service == 'gitlab':
        return GitLabService(
            settings.host,
            api_endpoint=settings.api_endpoint,
            access_token=settings.access_token,
            clock=clock,
            logger=logger,
            commit_strategy=settings.commit_strategy,
        )
    raise ConfigError(f'Unknown service {settings.service!r} for {settings.host}')


def build_services(
    settings: Iterable[ServiceSettings], clock: Clock, logger: Logger
) -> Dict[str, Service]:
    services: Dict[str, Service] = {}
    for entry in settings:
        if entry.host in services:
            raise ConfigError(f'Service for {entry.host} configured twice')
        services[entry.host] = build_service(entry, clock, logger)
    return services
