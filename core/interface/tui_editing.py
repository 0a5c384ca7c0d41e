"""Draft-vs-persisted editing for tasks, documents, feature metadata and credentials."""

import copy
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from core import ValidationError
from infrastructure.credentials import validate_api_key

Commit = Callable[[Dict[str, Any]], Any]

CLOSED = "closed"
OPEN = "open"

FEATURE_DESCRIPTION_MIN = 10


@dataclass
class EditDraft:
    original_snapshot: Dict[str, Any]
    working_copy: Dict[str, Any]
    dirty: bool = False


def _lines(value: Any) -> List[str]:
    if isinstance(value, str):
        raw = value.split("\n")
    elif isinstance(value, (list, tuple)):
        raw = [str(v) for v in value]
    else:
        raw = []
    return [line.strip() for line in raw if line.strip()]


class EditSession:
    """Closed -> open(draft) -> save/cancel -> closed.

    Subclasses declare `fields` and `multiline`; `normalize` maps a field's
    working value to the shape sent to the store.
    """

    kind = "record"
    fields: Tuple[str, ...] = ()
    multiline: Tuple[str, ...] = ()
    defaults: Dict[str, Any] = {}

    def __init__(self) -> None:
        self.draft: Optional[EditDraft] = None
        self.state = CLOSED
        self.target: Dict[str, str] = {}
        self.active_field = 0
        self.scroll = 0

    @property
    def is_open(self) -> bool:
        return self.state == OPEN and self.draft is not None

    def open(self, record: Dict[str, Any], **target: str) -> EditDraft:
        snapshot = {name: copy.deepcopy(record.get(name, self.defaults.get(name, ""))) for name in self.fields}
        self.draft = EditDraft(original_snapshot=snapshot, working_copy=copy.deepcopy(snapshot))
        self.state = OPEN
        self.target = dict(target)
        self.active_field = 0
        self.scroll = 0
        return self.draft

    def _require_open(self) -> EditDraft:
        if not self.is_open:
            raise RuntimeError(f"{self.kind} editor is not open")
        assert self.draft is not None
        return self.draft

    def mutate(self, name: str, value: Any) -> None:
        draft = self._require_open()
        if name not in self.fields:
            raise KeyError(name)
        draft.working_copy[name] = value
        draft.dirty = True

    def cancel(self) -> None:
        self.draft = None
        self.state = CLOSED

    def normalize(self, name: str, value: Any) -> Any:
        return value

    def normalized(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return {name: self.normalize(name, values.get(name)) for name in self.fields}

    def validate(self, values: Dict[str, Any]) -> None:
        return None

    def diff(self) -> Dict[str, Any]:
        draft = self._require_open()
        before = self.normalized(draft.original_snapshot)
        after = self.normalized(draft.working_copy)
        return {name: after[name] for name in self.fields if after[name] != before[name]}

    def save(self, commit: Commit) -> Dict[str, Any]:
        """Validate, close, then hand the changed fields to `commit` once (skipped when nothing changed)."""
        draft = self._require_open()
        self.validate(self.normalized(draft.working_copy))
        changes = self.diff()
        self.cancel()
        if changes:
            commit(changes)
        return changes

    # Keystroke helpers: the cursor always sits at the end of the active field.

    @property
    def field_name(self) -> str:
        return self.fields[self.active_field]

    def field_text(self, name: Optional[str] = None) -> str:
        draft = self._require_open()
        value = draft.working_copy.get(name or self.field_name)
        if isinstance(value, (list, tuple)):
            return "\n".join(str(v) for v in value)
        return "" if value is None else str(value)

    def insert(self, text: str) -> None:
        name = self.field_name
        if text == "\n" and name not in self.multiline:
            return
        self.mutate(name, self.field_text(name) + text)

    def backspace(self) -> None:
        name = self.field_name
        current = self.field_text(name)
        if current:
            self.mutate(name, current[:-1])

    def next_field(self) -> str:
        self.active_field = (self.active_field + 1) % len(self.fields)
        self.scroll = 0
        return self.field_name

    def prev_field(self) -> str:
        self.active_field = (self.active_field - 1) % len(self.fields)
        self.scroll = 0
        return self.field_name


class TaskEditSession(EditSession):
    kind = "task"
    fields = ("title", "description", "acceptance_criteria")
    multiline = ("description", "acceptance_criteria")
    defaults = {"acceptance_criteria": []}

    def normalize(self, name: str, value: Any) -> Any:
        if name == "acceptance_criteria":
            return _lines(value)
        return "" if value is None else str(value).strip()

    def validate(self, values: Dict[str, Any]) -> None:
        if not values["title"]:
            raise ValidationError("title", "Task title cannot be empty")


class DocumentEditSession(EditSession):
    kind = "document"
    fields = ("body",)
    multiline = ("body",)

    def normalize(self, name: str, value: Any) -> Any:
        return "" if value is None else str(value)


class FeatureMetaEditSession(EditSession):
    kind = "feature"
    fields = ("name", "description")

    def normalize(self, name: str, value: Any) -> Any:
        return "" if value is None else str(value).strip()

    def validate(self, values: Dict[str, Any]) -> None:
        if not values["name"]:
            raise ValidationError("name", "Feature name cannot be empty")
        if len(values["description"]) < FEATURE_DESCRIPTION_MIN:
            raise ValidationError(
                "description", f"Description must be at least {FEATURE_DESCRIPTION_MIN} characters"
            )


class CredentialsEditSession(EditSession):
    kind = "credentials"
    fields = ("api_key",)
    masked = True

    def normalize(self, name: str, value: Any) -> Any:
        return "" if value is None else str(value).strip()

    def validate(self, values: Dict[str, Any]) -> None:
        validate_api_key(values["api_key"])


__all__ = [
    "EditDraft",
    "EditSession",
    "TaskEditSession",
    "DocumentEditSession",
    "FeatureMetaEditSession",
    "CredentialsEditSession",
]
