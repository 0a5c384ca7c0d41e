"""The session aggregate plus the panel-local updates that operate on it."""

import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from application.feature_client import FeatureClient
from application.ports import AgentChannel
from core import Feature, FeatureDetail, FeaturesIndex, FeatureTask
from util.viewport import clamp_offset, ensure_visible, scroll_by, split_lines

from .messages import translate
from .tui_background import BackgroundRunner
from .tui_completion import CompletionMenu
from .tui_focus import FocusController, ScrollOffsets, TAB_DATA
from .tui_modes import ModeStack

LINES_PER_TASK = 8
# Rows taken by header, tab bar, prompt and footer around the panels.
NAVIGATOR_CHROME = 6
CONTENT_CHROME = 8
STATUS_TTL = 4.0


class SessionState:
    """Everything the router mutates. One per process; nothing here is global."""

    def __init__(
        self,
        client: FeatureClient,
        runner: BackgroundRunner,
        project_root: Optional[Path] = None,
        agent: Optional[AgentChannel] = None,
        external_editor: Optional[str] = None,
        width: int = 120,
        height: int = 32,
    ) -> None:
        self.client = client
        self.runner = runner
        self.agent = agent
        self.project_root = Path(project_root or Path.cwd())
        self.external_editor = external_editor
        self.modes = ModeStack()
        self.offsets = ScrollOffsets()
        self.focus = FocusController(self.offsets)
        self.palette = CompletionMenu()
        self.buffer = ""
        self.status = ""
        self.status_expires: Optional[float] = None
        self.features: Optional[FeaturesIndex] = None
        self.feature_selection: Optional[int] = None
        self.task_selection: Optional[int] = None
        self.detail: Optional[FeatureDetail] = None
        self.document: Optional[str] = None
        # True once the PRD load for the selected feature has answered (body or not found).
        self.document_loaded = False
        self.pending: Dict[str, int] = {}
        self._request_seq = 0
        self.width = width
        self.height = height
        self.ctrl_c_armed = False
        self.exit_requested = False

    # Status line ---------------------------------------------------------

    def set_status_message(self, message: str, ttl: Optional[float] = STATUS_TTL) -> None:
        self.status = message
        self.status_expires = (time.time() + ttl) if ttl else None

    def status_text(self, now: Optional[float] = None) -> str:
        ts = now if now is not None else time.time()
        if self.status_expires is not None and ts > self.status_expires:
            return ""
        return self.status

    # Background requests -------------------------------------------------

    def next_request(self, kind: str) -> int:
        """Allocate a request id for `kind`; any older request of the same kind becomes stale."""
        self._request_seq += 1
        self.pending[kind] = self._request_seq
        return self._request_seq

    def take_pending(self, kind: str, request_id: int) -> bool:
        if self.pending.get(kind) != request_id:
            return False
        del self.pending[kind]
        return True

    def cancel_pending(self, kind: str) -> None:
        self.pending.pop(kind, None)

    def submit(self, kind: str, fn) -> int:
        request_id = self.next_request(kind)
        self.runner.submit(request_id, kind, fn)
        return request_id

    # Viewports -----------------------------------------------------------

    @property
    def navigator_height(self) -> int:
        return max(1, self.height - NAVIGATOR_CHROME)

    @property
    def content_height(self) -> int:
        return max(1, self.height - CONTENT_CHROME)

    def clamp_offsets(self) -> None:
        self.offsets.navigator = clamp_offset(
            self.offsets.navigator, len(navigator_rows(self.features)), self.navigator_height
        )
        self.offsets.content = clamp_offset(self.offsets.content, len(content_lines(self)), self.content_height)

    # Selections ----------------------------------------------------------

    @property
    def all_features(self) -> List[Feature]:
        return self.features.all_features() if self.features else []

    @property
    def selected_feature(self) -> Optional[Feature]:
        features = self.all_features
        idx = self.feature_selection
        if idx is None or not (0 <= idx < len(features)):
            return None
        return features[idx]

    @property
    def selected_task(self) -> Optional[FeatureTask]:
        if self.detail is None:
            return None
        return self.detail.task_at(self.task_selection)


def wrap_index(current: Optional[int], delta: int, total: int) -> Optional[int]:
    if total <= 0:
        return None
    if current is None:
        return 0 if delta >= 0 else total - 1
    return (current + delta) % total


def navigator_rows(index: Optional[FeaturesIndex]) -> List[Tuple[str, Optional[str]]]:
    """(text, feature id) rows of the navigator; headers carry no id."""
    if index is None:
        return []
    rows: List[Tuple[str, Optional[str]]] = []
    for label, features in index.groups():
        if label == "Current":
            if not features:
                continue
            rows.append((f"★ {label}", None))
            for feature in features:
                rows.append((f"  {feature.name}", None))
            continue
        rows.append((f"{label} ({len(features)})", None))
        for feature in features:
            rows.append((f"  {feature.name}", feature.id))
    return rows


def navigator_line_of(index: Optional[FeaturesIndex], feature_id: Optional[str]) -> Optional[int]:
    for line, (_, row_id) in enumerate(navigator_rows(index)):
        if row_id is not None and row_id == feature_id:
            return line
    return None


def detail_lines(state: SessionState) -> List[str]:
    feature = state.selected_feature
    if feature is None:
        return [translate("NO_FEATURE_SELECTED")]
    lines = [
        f"Name: {feature.name}",
        f"ID: {feature.id}",
        f"Status: {feature.status}",
        "",
        "Description:",
        *(split_lines(feature.description) or ["-"]),
        "",
        "PRD:",
    ]
    if state.document is None:
        lines.append(translate("NO_DATA"))
    else:
        lines.extend(split_lines(state.document) or ["-"])
    return lines


def task_lines(state: SessionState) -> List[str]:
    """Fixed-height task boxes, LINES_PER_TASK rows each."""
    if state.detail is None or not state.detail.tasks:
        return [translate("NO_DATA")]
    lines: List[str] = []
    for number, task in enumerate(state.detail.tasks, start=1):
        marker = "▶" if state.task_selection == number - 1 else " "
        box = [
            f"{marker} {number}. {task.status_value.icon} {task.title}",
            f"   {task.description.splitlines()[0] if task.description else ''}",
            "   Acceptance criteria:",
        ]
        for criterion in task.acceptance_criteria[: LINES_PER_TASK - 4]:
            box.append(f"   • {criterion}")
        box = box[: LINES_PER_TASK - 1]
        box.extend([""] * (LINES_PER_TASK - len(box)))
        lines.extend(box)
    return lines


def content_lines(state: SessionState) -> List[str]:
    if state.focus.tab == TAB_DATA:
        return detail_lines(state)
    return task_lines(state)


def ensure_feature_visible(state: SessionState) -> None:
    feature = state.selected_feature
    line = navigator_line_of(state.features, feature.id if feature else None)
    if line is None:
        return
    state.offsets.navigator = ensure_visible(
        state.offsets.navigator,
        state.navigator_height,
        line,
        1,
        content_height=len(navigator_rows(state.features)),
    )


def ensure_task_visible(state: SessionState) -> None:
    if state.task_selection is None or state.detail is None:
        return
    state.offsets.content = ensure_visible(
        state.offsets.content,
        state.content_height,
        state.task_selection * LINES_PER_TASK,
        LINES_PER_TASK,
        content_height=len(state.detail.tasks) * LINES_PER_TASK,
    )


def request_feature_detail(state: SessionState) -> None:
    feature = state.selected_feature
    clear_detail(state)
    if feature is None:
        state.cancel_pending("feature")
        state.cancel_pending("document")
        return
    client = state.client
    feature_id = feature.id
    state.submit("feature", lambda: client.get_feature(feature_id))
    state.submit("document", lambda: (feature_id, client.get_document(feature_id)))


def refresh_feature_detail(state: SessionState) -> None:
    """Reload the selected feature's tasks without dropping the current view."""
    feature = state.selected_feature
    if feature is None:
        return
    client = state.client
    feature_id = feature.id
    state.submit("feature", lambda: client.get_feature(feature_id))


def move_feature_selection(state: SessionState, delta: int) -> None:
    new_index = wrap_index(state.feature_selection, delta, len(state.all_features))
    if new_index == state.feature_selection:
        return
    state.feature_selection = new_index
    ensure_feature_visible(state)
    request_feature_detail(state)


def move_task_selection(state: SessionState, delta: int) -> None:
    total = len(state.detail.tasks) if state.detail else 0
    state.task_selection = wrap_index(state.task_selection, delta, total)
    ensure_task_visible(state)


def scroll_content(state: SessionState, delta: int) -> None:
    state.offsets.content = scroll_by(
        state.offsets.content, delta, len(detail_lines(state)), state.content_height
    )


def apply_features(state: SessionState, index: FeaturesIndex) -> None:
    previous = state.selected_feature.id if state.selected_feature else None
    state.features = index
    features = index.all_features()
    keep = index.index_of(previous) if previous else None
    state.feature_selection = keep if keep is not None else (0 if features else None)
    state.clamp_offsets()
    ensure_feature_visible(state)
    if keep is None:
        request_feature_detail(state)


def apply_detail(state: SessionState, detail: FeatureDetail) -> None:
    feature = state.selected_feature
    if feature is None or feature.id != detail.id:
        return
    state.detail = detail
    if not detail.tasks:
        state.task_selection = None
    elif state.task_selection is None or state.task_selection >= len(detail.tasks):
        state.task_selection = 0
    state.clamp_offsets()


def clear_detail(state: SessionState) -> None:
    state.detail = None
    state.document = None
    state.document_loaded = False
    state.task_selection = None
    state.offsets.content = 0


__all__ = [
    "LINES_PER_TASK",
    "SessionState",
    "wrap_index",
    "navigator_rows",
    "navigator_line_of",
    "detail_lines",
    "task_lines",
    "content_lines",
    "ensure_feature_visible",
    "ensure_task_visible",
    "request_feature_detail",
    "refresh_feature_detail",
    "move_feature_selection",
    "move_task_selection",
    "scroll_content",
    "apply_features",
    "apply_detail",
    "clear_detail",
]
