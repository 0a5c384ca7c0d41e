"""prompt_toolkit shell: translates keystrokes into events and draws SessionState."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from prompt_toolkit.application import Application, run_in_terminal
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import HSplit, Layout, VSplit, Window
from prompt_toolkit.layout.containers import ConditionalContainer
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension

import config
from application.feature_client import FeatureClient
from application.ports import AgentChannel
from infrastructure.external_editor import edit_text

from .tui_background import BackgroundRunner
from .tui_events import AsyncResult, Event, KeyEvent, ResizeEvent
from .tui_modes import Normal
from .tui_render import (
    build_style,
    render_content,
    render_footer,
    render_navigator,
    render_overlay,
    render_prompt,
    render_status,
)
from .tui_router import InputRouter
from .tui_state import SessionState

logger = logging.getLogger("tddpro.tui")

# prompt_toolkit key name -> router key name.
KEY_NAMES = (
    ("up", "up"),
    ("down", "down"),
    ("left", "left"),
    ("right", "right"),
    ("tab", "tab"),
    ("escape", "esc"),
    ("enter", "enter"),
    ("c-c", "ctrl+c"),
    ("c-s", "ctrl+s"),
    ("backspace", "backspace"),
)

NAVIGATOR_WIDTH = 0.3


class TddProTUI:
    def __init__(
        self,
        client: FeatureClient,
        project_root: Optional[Path] = None,
        agent: Optional[AgentChannel] = None,
        external_editor: Optional[str] = None,
        runner: Optional[BackgroundRunner] = None,
    ) -> None:
        self.runner = runner or BackgroundRunner()
        self.state = SessionState(
            client,
            self.runner,
            project_root=project_root,
            agent=agent,
            external_editor=external_editor,
        )
        self.router = InputRouter(self.state, editor_launcher=self._launch_editor)
        self.style = build_style()
        self.app: Optional[Application] = None
        self._size = (0, 0)

    def dispatch(self, event: Event) -> None:
        self.router.dispatch(event)
        if self.app is None:
            return
        if self.state.exit_requested:
            self.app.exit()
            return
        self.app.invalidate()

    # Editor ------------------------------------------------------------

    def _launch_editor(self, request_id: int, feature_id: str, body: str) -> None:
        editor = self.state.external_editor or ""
        future = run_in_terminal(lambda: edit_text(editor, body, feature_id), in_executor=True)

        def done(fut) -> None:
            error = fut.exception()
            if error is not None:
                self.dispatch(AsyncResult(request_id, "external_edit", error=error))
            else:
                self.dispatch(AsyncResult(request_id, "external_edit", payload=fut.result()))

        asyncio.ensure_future(future).add_done_callback(done)

    # Layout ------------------------------------------------------------

    def _width(self, share: float) -> int:
        return max(10, int(self.state.width * share) - 1)

    def _before_render(self, app: Application) -> None:
        size = app.output.get_size()
        current = (size.columns, size.rows)
        if current != self._size:
            self._size = current
            # Rendering only reads state; the resize lands on the next loop turn.
            app.loop.call_soon(self.dispatch, ResizeEvent(width=size.columns, height=size.rows))

    def _build_layout(self) -> Layout:
        overlay_visible = Condition(lambda: not isinstance(self.state.modes.active, Normal))
        body = VSplit([
            Window(
                FormattedTextControl(lambda: render_navigator(self.state, self._width(NAVIGATOR_WIDTH))),
                width=Dimension(weight=3),
            ),
            Window(width=1, char="│", style="class:border"),
            Window(
                FormattedTextControl(lambda: render_content(self.state, self._width(1 - NAVIGATOR_WIDTH))),
                width=Dimension(weight=7),
            ),
        ])
        root = HSplit([
            body,
            ConditionalContainer(
                Window(
                    FormattedTextControl(lambda: render_overlay(self.state, self._width(1.0))),
                    height=lambda: Dimension(max=self.state.content_height),
                    style="class:dialog",
                ),
                filter=overlay_visible,
            ),
            Window(FormattedTextControl(lambda: render_status(self.state, self._width(1.0))), height=1),
            Window(FormattedTextControl(lambda: render_prompt(self.state)), height=1),
            Window(FormattedTextControl(lambda: render_footer(self.state)), height=1),
        ])
        return Layout(root)

    def _build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        def bind(pt_key: str, name: str) -> None:
            @kb.add(pt_key, eager=True)
            def _(event):
                self.dispatch(KeyEvent(name))

        for pt_key, name in KEY_NAMES:
            bind(pt_key, name)

        @kb.add(Keys.Any)
        def _(event):
            key = event.key_sequence[0].key if event.key_sequence else None
            if not isinstance(key, str) or len(key) != 1 or not key.isprintable():
                return
            self.dispatch(KeyEvent(key))

        return kb

    def _bind_runner(self) -> None:
        loop = asyncio.get_running_loop()
        self.runner.bind_loop(loop, self.dispatch)

    def build_app(self) -> Application:
        self.app = Application(
            layout=self._build_layout(),
            key_bindings=self._build_key_bindings(),
            style=self.style,
            full_screen=True,
            before_render=self._before_render,
        )
        self.app.ttimeoutlen = config.ttimeoutlen()
        return self.app

    def run(self) -> None:
        app = self.app or self.build_app()
        app.run(pre_run=self._bind_runner)


__all__ = ["TddProTUI", "KEY_NAMES"]
