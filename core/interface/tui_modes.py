"""Input-owning overlays and the stack that holds them."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Tuple, Union

from core import ModeConflictError


@dataclass(frozen=True)
class Normal:
    pass


@dataclass(frozen=True)
class CommandPalette:
    pass


@dataclass(frozen=True)
class ConfirmDialog:
    target: str
    action: str = "destroy"


@dataclass(frozen=True)
class SetupWizard:
    step: Any
    project_root: Path
    created: Tuple[Path, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class InlineEditor:
    kind: str
    session: Any


Mode = Union[Normal, CommandPalette, ConfirmDialog, SetupWizard, InlineEditor]

NORMAL = Normal()


class ModeStack:
    """Stack of overlays above Normal. Only one overlay may be open at a time."""

    max_depth = 1

    def __init__(self) -> None:
        self._stack: List[Mode] = []

    @property
    def active(self) -> Mode:
        return self._stack[-1] if self._stack else NORMAL

    @property
    def is_normal(self) -> bool:
        return not self._stack

    def push(self, mode: Mode) -> Mode:
        if isinstance(mode, Normal):
            raise ValueError("Normal is the base mode and cannot be pushed")
        if len(self._stack) >= self.max_depth:
            raise ModeConflictError(
                f"cannot open {type(mode).__name__} while {type(self.active).__name__} is active"
            )
        self._stack.append(mode)
        return mode

    def replace(self, mode: Mode) -> Mode:
        """Swap the active overlay in place (wizard steps, editor redraws)."""
        if not self._stack:
            raise ValueError("no overlay to replace")
        self._stack[-1] = mode
        return mode

    def pop(self) -> Mode:
        if not self._stack:
            return NORMAL
        return self._stack.pop()


__all__ = [
    "Normal",
    "CommandPalette",
    "ConfirmDialog",
    "SetupWizard",
    "InlineEditor",
    "Mode",
    "NORMAL",
    "ModeStack",
]
