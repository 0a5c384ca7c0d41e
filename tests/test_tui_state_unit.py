from types import SimpleNamespace

from core import FeatureDetail, FeaturesIndex
from core.interface.tui_background import InlineRunner
from core.interface.tui_state import (
    LINES_PER_TASK,
    SessionState,
    apply_detail,
    apply_features,
    move_task_selection,
    navigator_line_of,
    navigator_rows,
    scroll_content,
    task_lines,
    wrap_index,
)

INDEX = FeaturesIndex.from_dict({
    "approved": [{"id": "auth", "name": "Auth"}],
    "planned": [{"id": "billing", "name": "Billing"}],
    "current_features": ["billing"],
})


def detail_with(count, feature_id="auth"):
    return FeatureDetail.from_dict(
        feature_id,
        {"tasks": [{"id": f"t{i}", "name": f"Task {i}", "acceptance_criteria": ["ok"]} for i in range(count)]},
    )


def build(height=32):
    client = SimpleNamespace(
        get_feature=lambda fid: detail_with(2, fid),
        get_document=lambda fid: "",
        list_features=lambda: INDEX,
    )
    return SessionState(client, InlineRunner(), height=height)


def test_wrap_index():
    assert wrap_index(None, 1, 3) == 0
    assert wrap_index(None, -1, 3) == 2
    assert wrap_index(2, 1, 3) == 0
    assert wrap_index(0, 1, 0) is None


def test_navigator_rows_group_headers_and_current():
    rows = navigator_rows(INDEX)
    assert rows[0] == ("★ Current", None)
    assert rows[1] == ("  Billing", None)
    assert ("Accepted (1)", None) in rows
    assert ("Refining (0)", None) in rows
    assert navigator_line_of(INDEX, "billing") == rows.index(("  Billing", "billing"))
    assert navigator_rows(None) == []


def test_apply_features_keeps_selection_by_id():
    state = build()
    apply_features(state, INDEX)
    assert state.selected_feature.id == "auth"
    state.feature_selection = 1
    assert state.runner.submitted == ["feature", "document"]
    reordered = FeaturesIndex.from_dict({
        "approved": [{"id": "new", "name": "New"}, {"id": "billing", "name": "Billing"}],
    })
    apply_features(state, reordered)
    assert state.selected_feature.id == "billing"
    assert state.feature_selection == 1


def test_apply_detail_ignores_other_features():
    state = build()
    apply_features(state, INDEX)
    apply_detail(state, detail_with(3, "billing"))
    assert state.detail is None
    apply_detail(state, detail_with(3, "auth"))
    assert state.task_selection == 0


def test_task_boxes_have_fixed_height():
    state = build()
    apply_features(state, INDEX)
    apply_detail(state, detail_with(3))
    lines = task_lines(state)
    assert len(lines) == 3 * LINES_PER_TASK
    assert lines[0].startswith("▶ 1.")
    assert lines[LINES_PER_TASK].startswith("  2.")


def test_moving_task_selection_keeps_box_visible():
    state = build(height=20)
    apply_features(state, INDEX)
    apply_detail(state, detail_with(5))
    assert state.content_height == 12
    move_task_selection(state, 1)
    move_task_selection(state, 1)
    # Task 3 spans lines 16..23 and must fit a 12-line viewport.
    assert state.offsets.content == 3 * LINES_PER_TASK - 12
    move_task_selection(state, -2)
    assert state.offsets.content == 0


def test_scroll_content_stops_at_end():
    state = build(height=10)
    apply_features(state, INDEX)
    state.document = "\n".join(f"line {i}" for i in range(30))
    for _ in range(100):
        scroll_content(state, 1)
    total = len(state.document.split("\n")) + 8
    assert state.offsets.content == total - state.content_height


def test_status_message_expires():
    state = build()
    state.set_status_message("hello", ttl=2)
    assert state.status_text(now=state.status_expires - 1) == "hello"
    assert state.status_text(now=state.status_expires + 1) == ""
    state.set_status_message("sticky", ttl=None)
    assert state.status_text(now=10**12) == "sticky"
