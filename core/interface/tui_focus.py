"""Panel focus and the detail tab that follows it."""

from dataclasses import dataclass
from typing import Dict

PANEL_NAVIGATOR = 0
PANEL_DETAIL = 1
PANEL_TASKS = 2
PANEL_COUNT = 3

TAB_DATA = "data"
TAB_TASKS = "tasks"

PANEL_TABS: Dict[int, str] = {PANEL_DETAIL: TAB_DATA, PANEL_TASKS: TAB_TASKS}


@dataclass
class ScrollOffsets:
    navigator: int = 0
    content: int = 0


class FocusController:
    """Owns the focus index. Entering the detail or task panel selects its tab and rewinds the content view."""

    def __init__(self, offsets: ScrollOffsets, focus: int = PANEL_NAVIGATOR) -> None:
        self.offsets = offsets
        self._focus = max(0, min(int(focus), PANEL_COUNT - 1))
        self._tab = PANEL_TABS.get(self._focus, TAB_DATA)

    @property
    def focus(self) -> int:
        return self._focus

    @property
    def tab(self) -> str:
        return self._tab

    def advance(self) -> int:
        return self._enter((self._focus + 1) % PANEL_COUNT)

    def step_left(self) -> int:
        return self._enter(max(0, self._focus - 1))

    def step_right(self) -> int:
        return self._enter(min(PANEL_COUNT - 1, self._focus + 1))

    def focus_panel(self, panel: int) -> int:
        if not 0 <= panel < PANEL_COUNT:
            return self._focus
        return self._enter(panel)

    def _enter(self, panel: int) -> int:
        if panel == self._focus:
            return self._focus
        self._focus = panel
        tab = PANEL_TABS.get(panel)
        if tab is not None:
            self._tab = tab
            self.offsets.content = 0
        return self._focus


__all__ = [
    "PANEL_NAVIGATOR",
    "PANEL_DETAIL",
    "PANEL_TASKS",
    "PANEL_COUNT",
    "TAB_DATA",
    "TAB_TASKS",
    "ScrollOffsets",
    "FocusController",
]
