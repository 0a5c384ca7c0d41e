from enum import Enum
from typing import Final


class Status(Enum):
    PENDING = ("pending", "○")
    IN_PROGRESS = ("in-progress", "●")
    COMPLETED = ("completed", "✓")
    UNKNOWN = ("?", "?")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def icon(self) -> str:
        return self.value[1]

    @classmethod
    def from_string(cls, value: str) -> "Status":
        val = normalize_task_status(value, allow_unknown=True)
        for status in cls:
            if status.value[0] == val:
                return status
        return cls.UNKNOWN


_CANONICAL_CODES: Final[frozenset[str]] = frozenset({"pending", "in-progress", "completed"})

_ALIASES: Final[dict[str, str]] = {
    "todo": "pending",
    "active": "in-progress",
    "in_progress": "in-progress",
    "done": "completed",
}


def normalize_task_status(value: str, *, allow_unknown: bool = False) -> str:
    """Normalize task status input to the store's status code.

    Canonical task statuses: pending, in-progress, completed.

    When allow_unknown=True, returns the normalized token (lowercased, spaces→dashes)
    even if it is not a known status.
    """
    token = (value or "").strip().lower().replace(" ", "-")
    if not token:
        return token
    token = _ALIASES.get(token, token)
    if token in _CANONICAL_CODES:
        return token
    if allow_unknown:
        return token
    raise ValueError(f"Invalid task status: {value!r}")


# Feature index groups in navigator order.
FEATURE_GROUPS: Final[tuple[str, ...]] = ("approved", "planned", "refinement", "backlog")

FEATURE_GROUP_LABELS: Final[dict[str, str]] = {
    "current": "Current",
    "approved": "Accepted",
    "planned": "Planned",
    "refinement": "Refining",
    "backlog": "Backlog",
}
