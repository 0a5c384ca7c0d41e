"""Closed set of events consumed by the input router."""

from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class KeyEvent:
    """A keystroke by canonical name: `up`, `ctrl+c`, `esc` ... or a single printable character."""

    key: str

    @property
    def is_printable(self) -> bool:
        return len(self.key) == 1 and self.key.isprintable()


@dataclass(frozen=True)
class ResizeEvent:
    width: int
    height: int


@dataclass(frozen=True)
class AsyncResult:
    request_id: int
    kind: str
    payload: Any = None
    error: Optional[BaseException] = None


Event = Union[KeyEvent, ResizeEvent, AsyncResult]

__all__ = ["KeyEvent", "ResizeEvent", "AsyncResult", "Event"]
