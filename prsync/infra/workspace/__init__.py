from prsync.infra.workspace.updater import ProcessUpdater

__all__ = ["ProcessUpdater"]
