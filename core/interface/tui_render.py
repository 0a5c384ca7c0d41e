"""FormattedText builders. Pure reads of SessionState."""

from typing import Dict, List, Tuple

from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.styles import Style
from wcwidth import wcwidth

from infrastructure.credentials import mask_key
from util.viewport import split_lines, visible_slice

from .messages import translate
from .tui_focus import PANEL_DETAIL, PANEL_NAVIGATOR, PANEL_TASKS, TAB_DATA
from .tui_modes import CommandPalette, ConfirmDialog, InlineEditor, SetupWizard
from .tui_state import SessionState, content_lines, navigator_rows

Fragments = List[Tuple[str, str]]

THEME: Dict[str, str] = {
    "": "#d7dfe6",
    "header": "#ffb347 bold",
    "border": "#4b525a",
    "border.focused": "#9ad974 bold",
    "text.dim": "#97a0a9",
    "selected": "bg:#3b3b3b #d7dfe6 bold",
    "tab.active": "bg:#4b525a #ffffff bold",
    "tab": "#97a0a9",
    "status": "#e5c07b",
    "prompt": "#9ad974 bold",
    "dialog": "bg:#2b2f33 #e8eaec",
    "dialog.title": "bg:#2b2f33 #ffb347 bold",
    "field.active": "bg:#3d4047 #ffffff",
}


def build_style() -> Style:
    return Style.from_dict(THEME)


def display_width(text: str) -> int:
    return sum(max(0, wcwidth(ch) or 0) for ch in text)


def trim_display(text: str, width: int) -> str:
    if width <= 0:
        return ""
    used = 0
    out = []
    for ch in text:
        w = max(0, wcwidth(ch) or 0)
        if used + w > width:
            break
        out.append(ch)
        used += w
    return "".join(out)


def pad_display(text: str, width: int) -> str:
    trimmed = trim_display(text, width)
    return trimmed + " " * max(0, width - display_width(trimmed))


def _panel_title(title: str, focused: bool, width: int) -> Fragments:
    style = "class:border.focused" if focused else "class:border"
    return [(style, pad_display(f"─ {title} ", width)), ("", "\n")]


def render_navigator(state: SessionState, width: int) -> FormattedText:
    focused = state.focus.focus == PANEL_NAVIGATOR
    frags: Fragments = _panel_title(translate("PANEL_NAVIGATOR"), focused, width)
    rows = navigator_rows(state.features)
    if not rows:
        rows = [(translate("NO_FEATURES") if state.features is not None else "/features", None)]
    selected = state.selected_feature
    texts = [text for text, _ in rows]
    start = state.offsets.navigator
    for offset, line in enumerate(visible_slice(texts, state.navigator_height, start)):
        idx = start + offset
        row_id = rows[idx][1] if idx < len(rows) else None
        is_selected = selected is not None and row_id == selected.id
        style = "class:selected" if is_selected else ("class:header" if row_id is None and line and not line.startswith(" ") else "")
        frags.append((style, pad_display(line, width)))
        frags.append(("", "\n"))
    return FormattedText(frags)


def render_tabs(state: SessionState, width: int) -> Fragments:
    data_active = state.focus.tab == TAB_DATA
    return [
        ("class:tab.active" if data_active else "class:tab", f" {translate('PANEL_DATA')} "),
        ("", " "),
        ("class:tab" if data_active else "class:tab.active", f" {translate('PANEL_TASKS')} "),
        ("", "\n"),
    ]


def render_content(state: SessionState, width: int) -> FormattedText:
    focused = state.focus.focus in (PANEL_DETAIL, PANEL_TASKS)
    title = translate("PANEL_DATA") if state.focus.tab == TAB_DATA else translate("PANEL_TASKS")
    frags: Fragments = _panel_title(title, focused, width)
    frags.extend(render_tabs(state, width))
    for line in visible_slice(content_lines(state), state.content_height, state.offsets.content):
        style = "class:selected" if line.startswith("▶") else ""
        frags.append((style, pad_display(line, width)))
        frags.append(("", "\n"))
    return FormattedText(frags)


def render_palette(state: SessionState, width: int) -> Fragments:
    frags: Fragments = []
    for idx, item in enumerate(state.palette.items):
        style = "class:selected" if idx == state.palette.selected else "class:dialog"
        frags.append((style, pad_display(f" {item.label:<12} {item.description}", width)))
        frags.append(("", "\n"))
    return frags


def render_editor(mode: InlineEditor, width: int, height: int) -> Fragments:
    session = mode.session
    if not session.is_open:
        return []
    masked = getattr(session, "masked", False)
    title = translate("AUTH_TITLE") if masked else f"Edit {mode.kind}"
    if session.draft.dirty:
        title = f"{title} ({translate('EDITOR_MODIFIED')})"
    frags: Fragments = [("class:dialog.title", pad_display(f" {title} ", width)), ("", "\n")]
    for idx, name in enumerate(session.fields):
        active = idx == session.active_field
        text = session.field_text(name)
        if masked:
            text = mask_key(text)
        frags.append(("class:dialog.title" if active else "class:dialog", pad_display(f" {name}:", width)))
        frags.append(("", "\n"))
        lines = split_lines(text) or [""]
        if name in session.multiline:
            lines = visible_slice(lines, max(1, height - 2 * len(session.fields) - 2), session.scroll if active else 0)
        for line in lines:
            style = "class:field.active" if active else "class:dialog"
            frags.append((style, pad_display(f"   {line}", width)))
            frags.append(("", "\n"))
    return frags


def render_overlay(state: SessionState, width: int) -> FormattedText:
    mode = state.modes.active
    if isinstance(mode, CommandPalette):
        return FormattedText(render_palette(state, width))
    if isinstance(mode, ConfirmDialog):
        return FormattedText([
            ("class:dialog.title", pad_display(f" {translate('DESTROY_TITLE')}", width)),
            ("", "\n"),
            ("class:dialog", pad_display(f" {translate('DESTROY_BODY', target=mode.target)}", width)),
        ])
    if isinstance(mode, SetupWizard):
        return FormattedText([
            ("class:dialog.title", pad_display(f" {mode.step.title}", width)),
            ("", "\n"),
            ("class:dialog", pad_display(f" {mode.step.body}", width)),
        ])
    if isinstance(mode, InlineEditor):
        return FormattedText(render_editor(mode, width, state.content_height))
    return FormattedText([])


def render_prompt(state: SessionState) -> FormattedText:
    return FormattedText([("class:prompt", "> "), ("", state.buffer)])


def render_status(state: SessionState, width: int) -> FormattedText:
    return FormattedText([("class:status", pad_display(state.status_text(), width))])


def render_footer(state: SessionState) -> FormattedText:
    mode = state.modes.active
    if isinstance(mode, CommandPalette):
        key = "FOOTER_PALETTE"
    elif isinstance(mode, ConfirmDialog):
        key = "FOOTER_CONFIRM"
    elif isinstance(mode, SetupWizard):
        key = "FOOTER_WIZARD"
    elif isinstance(mode, InlineEditor):
        key = "FOOTER_EDITOR" if mode.session.multiline else "FOOTER_FORM"
    else:
        key = "FOOTER_NORMAL"
    return FormattedText([("class:text.dim", translate(key))])


__all__ = [
    "THEME",
    "build_style",
    "display_width",
    "trim_display",
    "pad_display",
    "render_navigator",
    "render_content",
    "render_overlay",
    "render_prompt",
    "render_status",
    "render_footer",
]
