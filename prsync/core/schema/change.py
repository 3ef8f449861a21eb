from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional


@dataclass(frozen=True, slots=True)
class Change:
    """What the downstream builder is told when something must be rebuilt."""

    author: str
    branch: str
    revision: str
    repository: str
    when: Optional[datetime]
    project: str
    properties: Mapping[str, Any] = field(default_factory=dict)
