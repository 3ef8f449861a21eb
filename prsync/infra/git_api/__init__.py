from prsync.infra.git_api.client import Client, humanize_time
from prsync.infra.git_api.factory import build_service, build_services

__all__ = ["Client", "humanize_time", "build_service", "build_services"]
