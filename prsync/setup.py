from typing import Callable, Optional, Sequence

from prsync.config import Settings, load_settings
from prsync.core.jobs import ReconciliationEngine
from prsync.core.ports.builder import Builder
from prsync.core.ports.logger import Logger
from prsync.core.ports.source_control import SourceControl
from prsync.core.ports.workspace_updater import WorkspaceUpdater
from prsync.core.schema.package import PackageRepository
from prsync.infra import (
    Client,
    ConsoleLogger,
    FileStateStore,
    LogfireLogger,
    ProcessUpdater,
    PullRequestCache,
    SystemClock,
    build_services,
    configure_logfire,
)


def build_engine(
    buildconf: PackageRepository,
    packages: Sequence[PackageRepository],
    source_control: SourceControl,
    builder: Builder,
    updater: Optional[WorkspaceUpdater] = None,
    settings: Optional[Settings] = None,
    update_workspace: Optional[Callable[[], None]] = None,
) -> ReconciliationEngine:
    settings = settings or load_settings()
    logger = _build_logger(settings)
    clock = SystemClock()

    services = build_services(settings.services, clock, logger)
    client = Client(
        services,
        clock,
        logger,
        max_retries=settings.daemon.max_retries,
    )
    cache = PullRequestCache(FileStateStore(settings.state.base_dir))

    engine = ReconciliationEngine(
        logger=logger,
        poll_interval=settings.daemon.poll_interval,
        clock=clock,
        client=client,
        buildconf=buildconf,
        packages=packages,
        cache=cache,
        source_control=source_control,
        builder=builder,
        updater=updater or ProcessUpdater(clock, logger, update=update_workspace),
        project=settings.daemon.project,
        max_age=settings.daemon.max_age_days,
    )
    engine.check_services()
    return engine


def run_daemon(
    buildconf: PackageRepository,
    packages: Sequence[PackageRepository],
    source_control: SourceControl,
    builder: Builder,
    updater: Optional[WorkspaceUpdater] = None,
    settings: Optional[Settings] = None,
    update_workspace: Optional[Callable[[], None]] = None,
) -> None:
    engine = build_engine(
        buildconf,
        packages,
        source_control,
        builder,
        updater=updater,
        settings=settings,
        update_workspace=update_workspace,
    )
    try:
        engine.run()
    except KeyboardInterrupt:
        engine.stop()


def _build_logger(settings: Settings) -> Logger:
    if settings.logging.backend == 'console':
        return ConsoleLogger(settings.logging.name)
    if settings.logging.backend == 'logfire':
        if not settings.logging.logfire_token:
            raise ValueError(
                'Logfire backend selected but PRSYNC_LOGFIRE_TOKEN is not set'
            )
        configure_logfire(settings.logging.logfire_token)
        return LogfireLogger(settings.logging.name)
    raise ValueError(f'Unknown logging backend {settings.logging.backend}')
