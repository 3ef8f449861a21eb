import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

import yaml

from prsync.core.exceptions import ConfigError
from prsync.core.schema.buildconf_branch import PROJECT_NAME_RX

SERVICE_KINDS = ('github', 'gitlab')
DEFAULT_MERGEABILITY_TIMEOUT = 60.0


@dataclass(frozen=True, slots=True)
class ServiceSettings:
    host: str
    service: str
    access_token: Optional[str]
    api_endpoint: Optional[str] = None
    mergeability_timeout: float = DEFAULT_MERGEABILITY_TIMEOUT
    commit_strategy: Optional[str] = None


@dataclass(frozen=True, slots=True)
class LoggingSettings:
    backend: str
    name: str
    logfire_token: Optional[str]


@dataclass(frozen=True, slots=True)
class DaemonSettings:
    project: str
    poll_interval: float
    max_age_days: int
    max_retries: int


@dataclass(frozen=True, slots=True)
class StateSettings:
    base_dir: str


@dataclass(frozen=True, slots=True)
class Settings:
    services: Tuple[ServiceSettings, ...]
    logging: LoggingSettings
    daemon: DaemonSettings
    state: StateSettings


def load_settings() -> Settings:
    from dotenv import load_dotenv

    load_dotenv()

    services_file = _ge_env_or_default("PRSYNC_SERVICES_FILE")
    if services_file:
        services = load_services_file(services_file)
    else:
        services = (
            ServiceSettings(
                host="github.com",
                service="github",
                access_token=_ge_env_or_default("GITHUB_TOKEN"),
            ),
        )

    return Settings(
        services=services,
        logging=LoggingSettings(
            backend=_ge_env_or_default("PRSYNC_LOGGER_BACKEND", "console").lower(),
            name=_ge_env_or_default("PRSYNC_LOGGER_NAME", "prsync"),
            logfire_token=_ge_env_or_default("PRSYNC_LOGFIRE_TOKEN"),
        ),
        daemon=DaemonSettings(
            project=parse_project(_ge_env_or_default("PRSYNC_PROJECT", "daemon")),
            poll_interval=_env_float("PRSYNC_POLL_INTERVAL", 60.0),
            max_age_days=_env_int("PRSYNC_MAX_AGE_DAYS", 120),
            max_retries=_env_int("PRSYNC_MAX_RETRIES", 5),
        ),
        state=StateSettings(
            base_dir=_ge_env_or_default("PRSYNC_STATE_DIR", ".prsync/state"),
        ),
    )


def load_services_file(path: str) -> Tuple[ServiceSettings, ...]:
    with open(path, encoding="utf-8") as stream:
        entries = yaml.safe_load(stream) or []
    if not isinstance(entries, list):
        raise ConfigError(f"{path}: expected a list of services")
    return tuple(parse_service(entry) for entry in entries)


def parse_project(name: str) -> str:
    if not PROJECT_NAME_RX.fullmatch(name):
        raise ConfigError(
            f"Invalid project name {name!r}, expected letters, digits, '_', '-' or '.'"
        )
    return name


def parse_service(entry: Mapping[str, Any]) -> ServiceSettings:
    host = entry.get("host")
    if not host:
        raise ConfigError("Service entry is missing its host")

    kind = str(entry.get("service") or "").lower()
    if kind not in SERVICE_KINDS:
        raise ConfigError(f"Unknown service {kind!r} for {host}")

    timeout = entry.get("mergeability_timeout")
    return ServiceSettings(
        host=str(host).lower(),
        service=kind,
        access_token=entry.get("access_token"),
        api_endpoint=entry.get("api_endpoint"),
        mergeability_timeout=(
            DEFAULT_MERGEABILITY_TIMEOUT if timeout is None else float(timeout)
        ),
        commit_strategy=entry.get("commit_strategy"),
    )


def _ge_env_or_default(name: str, default: Any = None) -> Any:
    value = os.getenv(name)
    if not value:
        return default
    return value


def _env_int(name: str, default: int) -> int:
    return int(_ge_env_or_default(name, default) or 0)


def _env_float(name: str, default: float) -> float:
    return float(_ge_env_or_default(name, default) or 0)
