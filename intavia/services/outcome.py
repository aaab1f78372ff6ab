from dataclasses import dataclass, field
from typing import Any, List


@dataclass
class Outcome:
    """
    Result of a primary state change plus any secondary failures.

    Secondary side effects (email, calendar, storage) never undo the primary change;
    their failures are collected here so routes can return them as `warnings`.
    """
    value: Any
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
