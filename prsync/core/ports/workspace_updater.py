from datetime import datetime
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class WorkspaceUpdater(Protocol):
    def update_failed(self) -> Optional[datetime]:
        """Time of the last failed workspace update, or None."""
        ...

    def update_if_requested(self) -> None:
        """Update the workspace when this process was restarted to do so."""
        ...

    def restart_and_update(self) -> None:
        ...
