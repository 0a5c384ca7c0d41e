"""Top-level event dispatch: active overlay first, then focus-driven panels."""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from application import project_setup
from core import ModeConflictError, NotFoundError, ValidationError
from infrastructure.credentials import auth_status, save_api_key
from util.viewport import scroll_by, split_lines

from . import tui_wizard
from .messages import translate
from .tui_completion import CommandCompletionProvider, CompletionEngine, parse_command
from .tui_editing import (
    CredentialsEditSession,
    DocumentEditSession,
    EditSession,
    FeatureMetaEditSession,
    TaskEditSession,
)
from .tui_events import AsyncResult, Event, KeyEvent, ResizeEvent
from .tui_focus import PANEL_DETAIL, PANEL_NAVIGATOR, PANEL_TASKS
from .tui_modes import CommandPalette, ConfirmDialog, InlineEditor, Mode, Normal, SetupWizard
from .tui_state import (
    SessionState,
    apply_detail,
    apply_features,
    clear_detail,
    ensure_feature_visible,
    ensure_task_visible,
    move_feature_selection,
    move_task_selection,
    refresh_feature_detail,
    request_feature_detail,
    scroll_content,
)

logger = logging.getLogger("tddpro.tui")

# Single-letter panel keys, honored only while the prompt buffer is empty.
PANEL_KEYS = ("t", "d", "e", "E")

# Launches $EDITOR for (request_id, feature_id, body); the result comes back as an "external_edit" AsyncResult.
EditorLauncher = Callable[[int, str, str], None]


class InputRouter:
    def __init__(
        self,
        state: SessionState,
        engine: Optional[CompletionEngine] = None,
        editor_launcher: Optional[EditorLauncher] = None,
    ) -> None:
        self.state = state
        self.engine = engine or CompletionEngine(
            CommandCompletionProvider(lambda: project_setup.is_initialized(state.project_root))
        )
        self.editor_launcher = editor_launcher
        self.external_edits: Dict[int, DocumentEditSession] = {}
        self.commands: Dict[str, Callable[[str], None]] = {
            "/help": self._cmd_help,
            "/features": self._cmd_features,
            "/init": self._cmd_init,
            "/auth": self._cmd_auth,
            "/destroy": self._cmd_destroy,
            "/quit": self._cmd_quit,
        }
        self._result_handlers: Dict[str, Callable[[AsyncResult], None]] = {
            "features": self._on_features,
            "feature": self._on_feature,
            "document": self._on_document,
            "save_task": self._on_task_saved,
            "save_document": self._on_document_saved,
            "save_feature": self._on_feature_saved,
            "agent": self._on_agent_reply,
            "external_edit": self._on_external_edit,
        }

    # Dispatch ------------------------------------------------------------

    def dispatch(self, event: Event) -> None:
        if isinstance(event, KeyEvent):
            self.handle_key(event)
        elif isinstance(event, ResizeEvent):
            self.handle_resize(event)
        elif isinstance(event, AsyncResult):
            self.handle_result(event)
        else:
            raise TypeError(f"unsupported event: {type(event).__name__}")

    def handle_key(self, event: KeyEvent) -> None:
        mode = self.state.modes.active
        if isinstance(mode, Normal):
            self._normal_key(event)
        elif isinstance(mode, CommandPalette):
            self._palette_key(event)
        elif isinstance(mode, ConfirmDialog):
            self._confirm_key(mode, event)
        elif isinstance(mode, SetupWizard):
            self._wizard_key(mode, event)
        elif isinstance(mode, InlineEditor):
            self._editor_key(mode, event)
        else:
            raise TypeError(f"unsupported mode: {type(mode).__name__}")

    def handle_resize(self, event: ResizeEvent) -> None:
        self.state.width = max(1, event.width)
        self.state.height = max(1, event.height)
        self.state.clamp_offsets()
        ensure_feature_visible(self.state)
        if self.state.focus.focus == PANEL_TASKS:
            ensure_task_visible(self.state)

    def handle_result(self, result: AsyncResult) -> None:
        if not self.state.take_pending(result.kind, result.request_id):
            logger.debug("dropping stale %s #%s", result.kind, result.request_id)
            self.external_edits.pop(result.request_id, None)
            return
        handler = self._result_handlers.get(result.kind)
        if handler is None:
            logger.warning("no handler for %s result", result.kind)
            return
        handler(result)

    def _push(self, mode: Mode) -> bool:
        try:
            self.state.modes.push(mode)
        except ModeConflictError as exc:
            logger.warning("%s", exc)
            self.state.set_status_message(translate("OVERLAY_BUSY"))
            return False
        return True

    # Normal mode ---------------------------------------------------------

    def _normal_key(self, event: KeyEvent) -> None:
        state = self.state
        key = event.key
        if key == "ctrl+c":
            if state.buffer and not state.ctrl_c_armed:
                state.buffer = ""
                state.ctrl_c_armed = True
                state.set_status_message("", ttl=None)
                return
            state.exit_requested = True
            return
        state.ctrl_c_armed = False

        if key == "enter":
            if state.buffer.strip():
                self._submit_buffer()
            else:
                self._panel_enter()
            return
        if key == "backspace":
            state.buffer = state.buffer[:-1]
            self._maybe_open_palette()
            return
        if key == "esc":
            if state.buffer:
                state.buffer = ""
            else:
                state.focus.focus_panel(PANEL_NAVIGATOR)
            return
        if key == "tab":
            state.focus.advance()
            return
        if key == "left":
            state.focus.step_left()
            return
        if key == "right":
            state.focus.step_right()
            return
        if key in ("up", "down"):
            self._panel_move(-1 if key == "up" else 1)
            return
        if event.is_printable:
            if not state.buffer and state.features is not None and key in PANEL_KEYS:
                self._panel_key(key)
                return
            state.buffer += key
            self._maybe_open_palette()

    def _maybe_open_palette(self) -> None:
        if self.state.buffer.startswith("/") and self._push(CommandPalette()):
            self._refresh_completions()

    def _refresh_completions(self) -> None:
        self.state.palette.update(self.engine.complete_buffer(self.state.buffer))

    def _submit_buffer(self) -> None:
        state = self.state
        text = state.buffer.strip()
        if text.startswith("/"):
            command, arg = parse_command(text)
            if command in self.commands:
                state.buffer = ""
                self.execute(command, arg)
            else:
                state.set_status_message(translate("UNKNOWN_COMMAND", command=command))
            return
        state.buffer = ""
        self._send_to_agent(text)

    def execute(self, command: str, arg: str = "") -> None:
        handler = self.commands.get(command)
        if handler is None:
            self.state.set_status_message(translate("UNKNOWN_COMMAND", command=command))
            return
        handler(arg)

    def _panel_move(self, delta: int) -> None:
        state = self.state
        focus = state.focus.focus
        if focus == PANEL_NAVIGATOR:
            move_feature_selection(state, delta)
        elif focus == PANEL_DETAIL:
            scroll_content(state, delta)
        elif focus == PANEL_TASKS:
            move_task_selection(state, delta)

    def _panel_key(self, key: str) -> None:
        state = self.state
        if key == "t":
            state.focus.focus_panel(PANEL_TASKS)
            state.set_status_message(translate("SWITCHED_TASKS"))
        elif key == "d":
            state.focus.focus_panel(PANEL_DETAIL)
            state.set_status_message(translate("SWITCHED_DATA"))
        elif key == "E":
            self.open_document_editor()
        elif key == "e":
            focus = state.focus.focus
            if focus == PANEL_TASKS:
                self.open_task_editor()
            elif focus == PANEL_DETAIL:
                self.open_document_editor()
            else:
                state.set_status_message(translate("CANNOT_EDIT", reason="focus the Feature Data or Tasks panel"))

    def _panel_enter(self) -> None:
        focus = self.state.focus.focus
        if focus == PANEL_NAVIGATOR:
            request_feature_detail(self.state)
        elif focus == PANEL_DETAIL:
            self.open_feature_editor()
        elif focus == PANEL_TASKS:
            self.open_task_editor()

    # Editors -------------------------------------------------------------

    def _open_editor(self, session: EditSession) -> bool:
        return self._push(InlineEditor(kind=session.kind, session=session))

    def open_task_editor(self) -> None:
        state = self.state
        feature = state.selected_feature
        task = state.selected_task
        if feature is None:
            state.set_status_message(translate("CANNOT_EDIT", reason=translate("NO_FEATURE_SELECTED")))
            return
        if task is None:
            state.set_status_message(translate("CANNOT_EDIT", reason=translate("NO_TASK_SELECTED")))
            return
        session = TaskEditSession()
        session.open(task.edit_fields(), feature_id=feature.id, task_id=task.id)
        if self._open_editor(session):
            state.set_status_message(translate("EDIT_TASK_START", title=task.title))

    def open_document_editor(self) -> None:
        state = self.state
        feature = state.selected_feature
        if feature is None:
            state.set_status_message(translate("CANNOT_EDIT", reason=translate("NO_FEATURE_SELECTED")))
            return
        if not state.document_loaded:
            reason = "DOC_LOADING" if "document" in state.pending else "DOC_NOT_LOADED"
            state.set_status_message(translate("CANNOT_EDIT", reason=translate(reason)))
            return
        session = DocumentEditSession()
        session.open({"body": state.document or ""}, feature_id=feature.id)
        if state.external_editor and self.editor_launcher is not None:
            request_id = state.next_request("external_edit")
            self.external_edits[request_id] = session
            state.set_status_message(translate("DOC_EDIT_START", name=feature.name))
            self.editor_launcher(request_id, feature.id, state.document or "")
            return
        if self._open_editor(session):
            state.set_status_message(translate("DOC_EDIT_START", name=feature.name))

    def open_feature_editor(self) -> None:
        state = self.state
        feature = state.selected_feature
        if feature is None:
            state.set_status_message(translate("CANNOT_EDIT", reason=translate("NO_FEATURE_SELECTED")))
            return
        session = FeatureMetaEditSession()
        session.open(feature.meta_fields(), feature_id=feature.id)
        self._open_editor(session)

    def _editor_key(self, mode: InlineEditor, event: KeyEvent) -> None:
        session = mode.session
        key = event.key
        if key in ("esc", "ctrl+c"):
            session.cancel()
            self.state.modes.pop()
            self.state.set_status_message(translate(_CANCEL_MESSAGES.get(mode.kind, "TASK_EDIT_CANCELLED")))
            return
        multiline = bool(session.multiline)
        if key == "ctrl+s" or (key == "enter" and not multiline):
            self._save_editor(mode)
            return
        if key == "enter":
            if session.field_name in session.multiline:
                session.insert("\n")
            else:
                session.next_field()
            return
        if key == "tab" or (key == "down" and len(session.fields) > 1):
            session.next_field()
            return
        if key == "up" and len(session.fields) > 1:
            session.prev_field()
            return
        if key in ("up", "down"):
            lines = split_lines(session.field_text())
            session.scroll = scroll_by(session.scroll, -1 if key == "up" else 1, len(lines), self.state.content_height)
            return
        if key == "backspace":
            session.backspace()
            return
        if event.is_printable:
            session.insert(key)

    def _save_editor(self, mode: InlineEditor) -> None:
        state = self.state
        session = mode.session
        try:
            changes = session.save(self._committer(session))
        except ValidationError as exc:
            state.set_status_message(exc.message)
            return
        state.modes.pop()
        if not changes:
            state.set_status_message(translate("NO_CHANGES"))

    def _committer(self, session: EditSession) -> Callable[[Dict[str, Any]], None]:
        state = self.state
        client = state.client
        target = dict(session.target)

        if isinstance(session, TaskEditSession):
            title = session.draft.original_snapshot.get("title", "") if session.draft else ""

            def commit_task(diff: Dict[str, Any]) -> None:
                def call() -> str:
                    client.update_task(target["feature_id"], target["task_id"], diff)
                    return diff.get("title", title)

                state.submit("save_task", call)

            return commit_task

        if isinstance(session, DocumentEditSession):

            def commit_document(diff: Dict[str, Any]) -> None:
                body = diff["body"]

                def call():
                    client.update_document(target["feature_id"], body)
                    return target["feature_id"], body

                state.submit("save_document", call)

            return commit_document

        if isinstance(session, FeatureMetaEditSession):

            def commit_feature(diff: Dict[str, Any]) -> None:
                def call() -> str:
                    client.update_feature(target["feature_id"], diff)
                    return diff.get("name", target["feature_id"])

                state.submit("save_feature", call)

            return commit_feature

        if isinstance(session, CredentialsEditSession):

            def commit_credentials(diff: Dict[str, Any]) -> None:
                try:
                    path = save_api_key(diff["api_key"])
                except OSError as exc:
                    state.set_status_message(translate("SAVE_FAILED", what="credentials", error=exc))
                    return
                state.set_status_message(translate("AUTH_SAVED", path=path))

            return commit_credentials

        raise TypeError(f"unsupported editor: {type(session).__name__}")

    # Command palette -----------------------------------------------------

    def _palette_key(self, event: KeyEvent) -> None:
        state = self.state
        key = event.key
        if key == "esc":
            self._close_palette()
            return
        if key == "ctrl+c":
            state.buffer = ""
            state.ctrl_c_armed = True
            self._close_palette()
            return
        if key in ("up", "down"):
            state.palette.move(-1 if key == "up" else 1)
            return
        if key == "tab":
            item = state.palette.current
            if item is not None:
                state.buffer = item.insert_value
                self._refresh_completions()
            return
        if key == "enter":
            command, arg = parse_command(state.buffer)
            if command not in self.commands:
                item = state.palette.current
                command, arg = (item.insert_value, "") if item is not None else (command, arg)
            state.buffer = ""
            self._close_palette()
            self.execute(command, arg)
            return
        if key == "backspace":
            state.buffer = state.buffer[:-1]
        elif event.is_printable:
            state.buffer += key
        else:
            return
        if state.buffer.startswith("/"):
            self._refresh_completions()
        else:
            self._close_palette()

    def _close_palette(self) -> None:
        self.state.palette.clear()
        self.state.modes.pop()

    # Confirm dialog ------------------------------------------------------

    def _confirm_key(self, mode: ConfirmDialog, event: KeyEvent) -> None:
        state = self.state
        key = event.key
        if key in ("y", "Y"):
            state.modes.pop()
            try:
                project_setup.remove_state_dir(Path(mode.target))
            except (OSError, ValueError) as exc:
                state.set_status_message(translate("DESTROY_FAILED", error=exc))
                return
            state.features = None
            state.feature_selection = None
            clear_detail(state)
            state.set_status_message(translate("DESTROY_DONE"))
        elif key in ("n", "N", "esc", "ctrl+c"):
            state.modes.pop()
            state.set_status_message(translate("DESTROY_CANCELLED"))

    # Setup wizard --------------------------------------------------------

    def _wizard_key(self, mode: SetupWizard, event: KeyEvent) -> None:
        state = self.state
        key = event.key
        if key in ("esc", "ctrl+c"):
            state.modes.pop()
            state.set_status_message(translate("WIZARD_CANCELLED"))
            return
        if key in ("y", "Y", "enter"):
            yes = True
        elif key in ("n", "N"):
            yes = False
        else:
            return
        try:
            following, message = tui_wizard.answer(mode, yes)
        except OSError as exc:
            state.modes.pop()
            state.set_status_message(translate("WIZARD_WRITE_FAILED", error=exc), ttl=None)
            return
        if following is None:
            state.modes.pop()
            state.set_status_message(message or translate("WIZARD_DONE"), ttl=None)
        else:
            state.modes.replace(following)

    # Commands ------------------------------------------------------------

    def _cmd_help(self, arg: str) -> None:
        self.state.set_status_message(translate("HELP"), ttl=None)

    def _cmd_features(self, arg: str) -> None:
        state = self.state
        client = state.client
        state.focus.focus_panel(PANEL_NAVIGATOR)
        state.set_status_message(translate("LOADING_FEATURES"), ttl=None)
        state.submit("features", client.list_features)

    def _cmd_init(self, arg: str) -> None:
        state = self.state
        root = Path(arg).expanduser() if arg else state.project_root
        if project_setup.is_initialized(root):
            state.set_status_message(translate("ALREADY_INITIALIZED"))
            return
        try:
            wizard = tui_wizard.start(root)
        except OSError as exc:
            state.set_status_message(translate("INIT_FAILED", error=exc))
            return
        self._push(wizard)

    def _cmd_auth(self, arg: str) -> None:
        session = CredentialsEditSession()
        session.open({"api_key": ""})
        if self._open_editor(session):
            self.state.set_status_message(auth_status(), ttl=None)

    def _cmd_destroy(self, arg: str) -> None:
        state = self.state
        target = project_setup.find_state_dir(state.project_root)
        if target is None:
            state.set_status_message(translate("DESTROY_NOTHING"))
            return
        self._push(ConfirmDialog(target=str(target)))

    def _cmd_quit(self, arg: str) -> None:
        self.state.exit_requested = True

    def _send_to_agent(self, text: str) -> None:
        state = self.state
        agent = state.agent
        if agent is None:
            state.set_status_message(translate("AGENT_UNAVAILABLE"))
            return
        state.set_status_message(translate("AGENT_WAITING"), ttl=None)
        state.submit("agent", lambda: agent.send(text))

    # Async results -------------------------------------------------------

    def _on_features(self, result: AsyncResult) -> None:
        state = self.state
        if result.error is not None:
            state.set_status_message(translate("LOAD_FAILED", what="features", error=result.error), ttl=None)
            return
        apply_features(state, result.payload)
        count = len(state.all_features)
        key = "FEATURES_LOADED" if count else "NO_FEATURES"
        state.set_status_message(translate(key, count=count))

    def _on_feature(self, result: AsyncResult) -> None:
        state = self.state
        if result.error is not None:
            state.detail = None
            state.task_selection = None
            state.clamp_offsets()
            state.set_status_message(translate("LOAD_FAILED", what="feature", error=result.error))
            return
        apply_detail(state, result.payload)

    def _on_document(self, result: AsyncResult) -> None:
        state = self.state
        if result.error is not None:
            state.document = None
            # A missing PRD is editable from scratch; any other failure is not.
            state.document_loaded = isinstance(result.error, NotFoundError)
            if not state.document_loaded:
                state.set_status_message(translate("LOAD_FAILED", what="PRD", error=result.error))
            return
        feature_id, body = result.payload
        feature = state.selected_feature
        if feature is not None and feature.id == feature_id:
            state.document = body
            state.document_loaded = True
            state.clamp_offsets()

    def _report_save(self, result: AsyncResult, what: str) -> bool:
        if result.error is None:
            return True
        self.state.set_status_message(translate("SAVE_FAILED", what=what, error=result.error), ttl=None)
        return False

    def _on_task_saved(self, result: AsyncResult) -> None:
        if not self._report_save(result, "task"):
            return
        self.state.set_status_message(translate("TASK_SAVED", title=result.payload))
        refresh_feature_detail(self.state)

    def _on_document_saved(self, result: AsyncResult) -> None:
        if not self._report_save(result, "PRD"):
            return
        feature_id, body = result.payload
        feature = self.state.selected_feature
        if feature is not None and feature.id == feature_id:
            self.state.document = body
            self.state.clamp_offsets()
        self.state.set_status_message(translate("DOC_SAVED"))

    def _on_feature_saved(self, result: AsyncResult) -> None:
        if not self._report_save(result, "feature"):
            return
        self.state.set_status_message(translate("FEATURE_SAVED", name=result.payload))
        self.state.submit("features", self.state.client.list_features)

    def _on_agent_reply(self, result: AsyncResult) -> None:
        if result.error is not None:
            self.state.set_status_message(translate("AGENT_FAILED", error=result.error), ttl=None)
            return
        self.state.set_status_message(str(result.payload), ttl=None)

    def _on_external_edit(self, result: AsyncResult) -> None:
        state = self.state
        session = self.external_edits.pop(result.request_id, None)
        if session is None or not session.is_open:
            return
        if result.error is not None:
            session.cancel()
            state.set_status_message(translate("DOC_EDIT_FAILED", error=result.error), ttl=None)
            return
        session.mutate("body", result.payload)
        changes = session.save(self._committer(session))
        if not changes:
            state.set_status_message(translate("NO_CHANGES"))


_CANCEL_MESSAGES = {
    "task": "TASK_EDIT_CANCELLED",
    "document": "DOC_EDIT_CANCELLED",
    "feature": "FEATURE_EDIT_CANCELLED",
    "credentials": "AUTH_CANCELLED",
}


__all__ = ["InputRouter", "PANEL_KEYS"]
