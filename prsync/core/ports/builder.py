from typing import Protocol, runtime_checkable

from prsync.core.schema.change import Change


@runtime_checkable
class Builder(Protocol):
    def post_change(self, change: Change) -> bool:
        ...
