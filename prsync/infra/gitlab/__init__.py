from prsync.infra.gitlab.service import GitLabService

__all__ = ["GitLabService"]
