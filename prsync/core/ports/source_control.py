from typing import Protocol, runtime_checkable


@runtime_checkable
class SourceControl(Protocol):
    def commit_and_push(self, branch_name: str, content: str) -> None:
        """Commit ``content`` as the override file on ``branch_name`` and
        force-push that ref to the buildconf remote."""
        ...
