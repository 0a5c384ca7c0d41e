from unittest.mock import Mock

import pytest

from application import project_setup
from core import FeatureDetail, FeaturesIndex, InvokerError, NotFoundError
from core.interface.tui_background import InlineRunner
from core.interface.tui_editing import TaskEditSession
from core.interface.tui_events import AsyncResult, KeyEvent, ResizeEvent
from core.interface.tui_focus import PANEL_DETAIL, PANEL_NAVIGATOR, PANEL_TASKS, TAB_TASKS
from core.interface.tui_modes import CommandPalette, ConfirmDialog, InlineEditor, SetupWizard
from core.interface.tui_router import InputRouter
from core.interface.tui_state import SessionState
from core.interface.tui_wizard import WizardStep

INDEX = {
    "approved": [{"id": "auth", "name": "Auth", "description": "Login flow"}],
    "backlog": [{"id": "search", "name": "Search", "description": "Full-text search"}],
    "current_features": ["auth"],
}

DETAILS = {
    "auth": {
        "index": {"name": "Auth"},
        "tasks": [
            {"id": "t1", "name": "Write tests", "description": "cover login", "acceptance_criteria": ["passes"]},
            {"id": "t2", "name": "Ship", "acceptance_criteria": []},
        ],
    },
    "search": {"index": {"name": "Search"}, "tasks": []},
}


class FakeClient:
    def __init__(self, fail_saves=False, document_errors=None):
        self.fail_saves = fail_saves
        self.document_errors = document_errors or {}
        self.calls = []

    def list_features(self):
        self.calls.append(("list_features",))
        return FeaturesIndex.from_dict(INDEX)

    def get_feature(self, feature_id):
        self.calls.append(("get_feature", feature_id))
        return FeatureDetail.from_dict(feature_id, DETAILS[feature_id])

    def get_document(self, feature_id):
        self.calls.append(("get_document", feature_id))
        if feature_id in self.document_errors:
            raise self.document_errors[feature_id]
        return f"# {feature_id} PRD"

    def _save(self, *call):
        self.calls.append(call)
        if self.fail_saves:
            raise InvokerError("store unavailable", tool=call[0])

    def update_task(self, feature_id, task_id, diff):
        self._save("update_task", feature_id, task_id, diff)

    def update_document(self, feature_id, body):
        self._save("update_document", feature_id, body)

    def update_feature(self, feature_id, diff):
        self._save("update_feature", feature_id, diff)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


def build(tmp_path, client=None, agent=None, editor_launcher=None, external_editor=None):
    runner = InlineRunner()
    state = SessionState(
        client or FakeClient(),
        runner,
        project_root=tmp_path,
        agent=agent,
        external_editor=external_editor,
    )
    router = InputRouter(state, editor_launcher=editor_launcher)
    runner.bind(router.dispatch)
    return router, state, runner


def press(router, *keys):
    for key in keys:
        router.dispatch(KeyEvent(key))


def type_text(router, text):
    press(router, *text)


def load_features(router, runner):
    type_text(router, "/features")
    press(router, "enter")
    runner.drain()


def test_features_command_loads_navigator_and_detail(tmp_path):
    router, state, runner = build(tmp_path)
    type_text(router, "/features")
    assert isinstance(state.modes.active, CommandPalette)
    press(router, "enter")
    assert state.modes.is_normal
    assert state.buffer == ""
    runner.drain()

    assert state.selected_feature.id == "auth"
    assert state.detail.id == "auth"
    assert state.task_selection == 0
    assert state.document == "# auth PRD"
    assert state.status == "Loaded 2 features"


def open_task_session():
    session = TaskEditSession()
    session.open({"title": "Write tests", "description": "cover login"}, feature_id="auth", task_id="t1")
    return session


OVERLAYS = {
    "palette": lambda root: CommandPalette(),
    "confirm": lambda root: ConfirmDialog(target=str(root / ".tdd-pro")),
    "wizard": lambda root: SetupWizard(step=WizardStep.INTRO, project_root=root),
    "editor": lambda root: InlineEditor(kind="task", session=open_task_session()),
}


@pytest.mark.parametrize("overlay", sorted(OVERLAYS))
def test_overlay_blocks_focus_and_selection_changes(tmp_path, monkeypatch, overlay):
    router, state, runner = build(tmp_path)
    load_features(router, runner)
    spy = Mock()
    for name in ("advance", "step_left", "step_right", "focus_panel"):
        setattr(state.focus, name, getattr(spy, name))
    for name in ("move_feature_selection", "move_task_selection", "scroll_content"):
        monkeypatch.setattr(f"core.interface.tui_router.{name}", getattr(spy, name))

    mode = OVERLAYS[overlay](tmp_path)
    state.modes.push(mode)
    press(router, "tab", "left", "right", "up", "down")

    assert state.modes.active is mode
    assert spy.mock_calls == []
    assert state.focus.focus == PANEL_NAVIGATOR
    assert state.selected_feature.id == "auth"


def test_palette_tab_completes_and_esc_keeps_buffer(tmp_path):
    router, state, _ = build(tmp_path)
    type_text(router, "/fea")
    assert [item.label for item in state.palette.items] == ["/features"]
    press(router, "tab")
    assert state.buffer == "/features"
    press(router, "esc")
    assert state.modes.is_normal
    assert state.buffer == "/features"


def test_palette_closes_when_slash_is_deleted(tmp_path):
    router, state, _ = build(tmp_path)
    type_text(router, "/h")
    press(router, "backspace", "backspace")
    assert state.modes.is_normal
    assert state.buffer == ""


def test_unknown_command_reports_status(tmp_path):
    router, state, _ = build(tmp_path)
    type_text(router, "/bogus")
    press(router, "esc", "enter")
    assert state.status == "Unknown command: /bogus"


def test_ctrl_c_clears_then_quits(tmp_path):
    router, state, _ = build(tmp_path)
    type_text(router, "hello")
    press(router, "ctrl+c")
    assert state.buffer == ""
    assert not state.exit_requested
    press(router, "ctrl+c")
    assert state.exit_requested


def test_ctrl_c_on_empty_buffer_quits(tmp_path):
    router, state, _ = build(tmp_path)
    press(router, "ctrl+c")
    assert state.exit_requested


def test_focus_keys_and_panel_shortcuts(tmp_path):
    router, state, runner = build(tmp_path)
    load_features(router, runner)
    press(router, "tab")
    assert state.focus.focus == PANEL_DETAIL
    press(router, "t")
    assert state.focus.focus == PANEL_TASKS
    assert state.focus.tab == TAB_TASKS
    assert state.status == "Switched to Tasks view"
    press(router, "esc")
    assert state.focus.focus == PANEL_NAVIGATOR


def test_panel_keys_type_into_non_empty_buffer(tmp_path):
    router, state, runner = build(tmp_path)
    load_features(router, runner)
    type_text(router, "xet")
    assert state.buffer == "xet"
    assert state.focus.focus == PANEL_NAVIGATOR


def test_navigator_selection_wraps_and_reloads_detail(tmp_path):
    router, state, runner = build(tmp_path)
    load_features(router, runner)
    press(router, "up")
    assert state.selected_feature.id == "search"
    assert state.detail is None
    runner.drain()
    assert state.detail.id == "search"
    assert state.task_selection is None
    press(router, "down")
    runner.drain()
    assert state.selected_feature.id == "auth"


def test_task_selection_wraps(tmp_path):
    router, state, runner = build(tmp_path)
    load_features(router, runner)
    press(router, "t", "down")
    assert state.task_selection == 1
    press(router, "down")
    assert state.task_selection == 0


def test_stale_results_are_dropped(tmp_path):
    router, state, _ = build(tmp_path)
    first = state.next_request("features")
    second = state.next_request("features")
    router.dispatch(AsyncResult(first, "features", payload=FeaturesIndex.from_dict(INDEX)))
    assert state.features is None
    router.dispatch(AsyncResult(second, "features", payload=FeaturesIndex.from_dict(INDEX)))
    assert state.features is not None


def test_unsupported_event_type_raises(tmp_path):
    router, _, _ = build(tmp_path)
    with pytest.raises(TypeError):
        router.dispatch("enter")


def test_task_edit_saves_only_changed_fields(tmp_path):
    client = FakeClient()
    router, state, runner = build(tmp_path, client=client)
    load_features(router, runner)
    press(router, "t", "enter")
    assert isinstance(state.modes.active, InlineEditor)
    assert state.status == "Editing task: Write tests"
    type_text(router, "!")
    press(router, "ctrl+s")
    assert state.modes.is_normal
    runner.drain()

    assert ("update_task", "auth", "t1", {"title": "Write tests!"}) in client.calls
    assert state.status == "Task edited: Write tests!"


def test_task_edit_cancel_makes_no_call(tmp_path):
    client = FakeClient()
    router, state, runner = build(tmp_path, client=client)
    load_features(router, runner)
    press(router, "t", "e")
    type_text(router, "changed")
    press(router, "esc")
    runner.drain()
    assert state.modes.is_normal
    assert not [call for call in client.calls if call[0] == "update_task"]
    assert state.status == "Task edit cancelled"


def test_unchanged_save_reports_no_changes(tmp_path):
    client = FakeClient()
    router, state, runner = build(tmp_path, client=client)
    load_features(router, runner)
    press(router, "t", "enter", "ctrl+s")
    assert state.modes.is_normal
    assert state.status == "No changes to save"
    assert not [call for call in client.calls if call[0] == "update_task"]


def test_save_failure_lands_on_status_line(tmp_path):
    client = FakeClient(fail_saves=True)
    router, state, runner = build(tmp_path, client=client)
    load_features(router, runner)
    press(router, "t", "enter")
    type_text(router, "!")
    press(router, "ctrl+s")
    runner.drain()
    assert state.modes.is_normal
    assert state.status == "Error saving task: store unavailable"


def test_feature_editor_validation_keeps_editor_open(tmp_path):
    router, state, runner = build(tmp_path)
    load_features(router, runner)
    press(router, "d", "enter")
    mode = state.modes.active
    assert isinstance(mode, InlineEditor) and mode.kind == "feature"
    press(router, *["backspace"] * 4)
    press(router, "enter")
    assert state.modes.active is mode
    assert state.status == "Feature name cannot be empty"


def test_feature_editor_saves_and_reloads_features(tmp_path):
    client = FakeClient()
    router, state, runner = build(tmp_path, client=client)
    load_features(router, runner)
    press(router, "d", "enter")
    type_text(router, " v2")
    press(router, "enter")
    runner.drain()
    assert ("update_feature", "auth", {"name": "Auth v2"}) in client.calls
    assert client.calls.count(("list_features",)) == 2


def test_document_editor_inline_without_external_editor(tmp_path):
    client = FakeClient()
    router, state, runner = build(tmp_path, client=client)
    load_features(router, runner)
    press(router, "E")
    mode = state.modes.active
    assert isinstance(mode, InlineEditor) and mode.kind == "document"
    press(router, "enter")
    type_text(router, "More")
    press(router, "ctrl+s")
    runner.drain()
    assert ("update_document", "auth", "# auth PRD\nMore") in client.calls
    assert state.document == "# auth PRD\nMore"
    assert state.status == "PRD saved successfully"


def test_document_editor_uses_external_editor(tmp_path):
    client = FakeClient()
    launches = []
    router, state, runner = build(
        tmp_path,
        client=client,
        editor_launcher=lambda request_id, feature_id, body: launches.append((request_id, feature_id, body)),
        external_editor="vim",
    )
    load_features(router, runner)
    press(router, "d", "e")
    assert state.modes.is_normal
    request_id, feature_id, body = launches[0]
    assert (feature_id, body) == ("auth", "# auth PRD")

    router.dispatch(AsyncResult(request_id, "external_edit", payload="# auth PRD\nedited"))
    runner.drain()
    assert ("update_document", "auth", "# auth PRD\nedited") in client.calls


def test_external_editor_failure_reports_status(tmp_path):
    launches = []
    router, state, runner = build(
        tmp_path,
        editor_launcher=lambda *args: launches.append(args),
        external_editor="vim",
    )
    load_features(router, runner)
    press(router, "E")
    router.dispatch(AsyncResult(launches[0][0], "external_edit", error=RuntimeError("vim crashed")))
    assert state.status == "PRD edit failed: vim crashed"


def test_document_editor_waits_for_pending_prd(tmp_path):
    client = FakeClient()
    router, state, runner = build(tmp_path, client=client)
    load_features(router, runner)
    press(router, "down")
    assert state.selected_feature.id == "search"
    assert "document" in state.pending

    press(router, "E")
    type_text(router, "x")
    press(router, "ctrl+s")
    assert state.modes.is_normal
    assert state.status == "Cannot edit: PRD is still loading"
    assert not [call for call in client.calls if call[0] == "update_document"]

    press(router, "esc")
    runner.drain()
    press(router, "E")
    mode = state.modes.active
    assert isinstance(mode, InlineEditor)
    assert mode.session.draft.working_copy == {"body": "# search PRD"}


def test_external_editor_waits_for_pending_prd(tmp_path):
    launches = []
    router, state, runner = build(
        tmp_path,
        editor_launcher=lambda *args: launches.append(args),
        external_editor="vim",
    )
    load_features(router, runner)
    press(router, "down", "E")
    assert launches == []
    assert state.status == "Cannot edit: PRD is still loading"

    runner.drain()
    press(router, "E")
    assert launches[0][1:] == ("search", "# search PRD")


def test_missing_prd_opens_empty_editor(tmp_path):
    client = FakeClient(document_errors={"auth": NotFoundError("auth")})
    router, state, runner = build(tmp_path, client=client)
    load_features(router, runner)
    assert state.document is None
    press(router, "E")
    mode = state.modes.active
    assert isinstance(mode, InlineEditor)
    assert mode.session.draft.working_copy == {"body": ""}


def test_failed_prd_load_blocks_editing(tmp_path):
    client = FakeClient(document_errors={"auth": InvokerError("store unavailable", tool="get-feature-document")})
    router, state, runner = build(tmp_path, client=client)
    load_features(router, runner)
    assert state.status == "Error loading PRD: store unavailable"
    press(router, "E")
    assert state.modes.is_normal
    assert state.status == "Cannot edit: PRD could not be loaded"


def test_edit_without_selection_reports_reason(tmp_path):
    router, state, _ = build(tmp_path)
    state.features = FeaturesIndex()
    press(router, "t", "e")
    assert state.modes.is_normal
    assert state.status == "Cannot edit: No feature selected"


def test_destroy_cancel_leaves_state(tmp_path, monkeypatch):
    (tmp_path / ".tdd-pro").mkdir()
    remove = Mock()
    monkeypatch.setattr(project_setup, "remove_state_dir", remove)
    router, state, _ = build(tmp_path)
    type_text(router, "/destroy")
    press(router, "enter")
    assert isinstance(state.modes.active, ConfirmDialog)
    press(router, "x")
    assert isinstance(state.modes.active, ConfirmDialog)
    press(router, "esc")
    assert state.modes.is_normal
    remove.assert_not_called()
    assert state.status == "Destroy cancelled"


def test_destroy_confirm_removes_state(tmp_path):
    project_setup.create_structure(tmp_path)
    router, state, runner = build(tmp_path)
    load_features(router, runner)
    type_text(router, "/destroy")
    press(router, "enter", "Y")
    assert not (tmp_path / ".tdd-pro").exists()
    assert state.features is None
    assert state.detail is None
    assert state.status == "TDD-Pro project destroyed successfully"


def test_init_wizard_writes_configs_step_by_step(tmp_path):
    router, state, _ = build(tmp_path)
    type_text(router, "/init")
    press(router, "enter")
    assert isinstance(state.modes.active, SetupWizard)
    assert (tmp_path / ".tdd-pro" / "features" / "index.yml").exists()
    press(router, "enter", "y")
    assert (tmp_path / ".mcp.json").exists()
    press(router, "n", "n")
    assert state.modes.is_normal
    assert not (tmp_path / ".cursor").exists()
    assert state.status == "TDD-Pro initialized successfully! Created: .mcp.json"


def test_init_when_already_initialized(tmp_path):
    (tmp_path / ".tdd-pro").mkdir()
    router, state, _ = build(tmp_path)
    type_text(router, "/init")
    press(router, "enter")
    assert state.modes.is_normal
    assert state.status.startswith("Project already initialized")


def test_wizard_escape_aborts_without_rollback(tmp_path):
    router, state, _ = build(tmp_path)
    type_text(router, "/init")
    press(router, "enter", "esc")
    assert state.modes.is_normal
    assert (tmp_path / ".tdd-pro").exists()
    assert state.status == "MCP configuration cancelled"


def test_auth_dialog_saves_key(tmp_path):
    router, state, _ = build(tmp_path)
    type_text(router, "/auth")
    press(router, "enter")
    mode = state.modes.active
    assert isinstance(mode, InlineEditor) and mode.kind == "credentials"
    type_text(router, "sk-ant-" + "k" * 20)
    press(router, "enter")
    assert state.modes.is_normal
    assert (tmp_path / "config" / "tdd-pro" / "auth.json").exists()
    assert state.status.startswith("API key saved to")


def test_auth_dialog_rejects_bad_key(tmp_path):
    router, state, _ = build(tmp_path)
    type_text(router, "/auth")
    press(router, "enter")
    type_text(router, "bad")
    press(router, "enter")
    assert isinstance(state.modes.active, InlineEditor)
    assert "sk-ant-" in state.status


def test_agent_message_reply_on_status(tmp_path):
    agent = Mock()
    agent.send.return_value = "Start with a failing test"
    router, state, runner = build(tmp_path, agent=agent)
    type_text(router, "hi coach")
    press(router, "enter")
    assert state.status == "Waiting for reply..."
    runner.drain()
    agent.send.assert_called_once_with("hi coach")
    assert state.status == "Start with a failing test"


def test_agent_missing(tmp_path):
    router, state, _ = build(tmp_path)
    type_text(router, "hi")
    press(router, "enter")
    assert state.status == "Coaching agent is not configured"


def test_resize_clamps_offsets(tmp_path):
    router, state, runner = build(tmp_path)
    load_features(router, runner)
    state.offsets.navigator = 50
    router.dispatch(ResizeEvent(width=80, height=10))
    assert state.width == 80
    assert state.navigator_height == 4
    assert state.offsets.navigator == 3
