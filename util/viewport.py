"""Fixed-height viewport math shared by every scrollable panel."""

from typing import List, Sequence


def max_scroll(lines: Sequence[str], viewport_height: int) -> int:
    return max(0, len(lines) - max(0, viewport_height))


def clamp_offset(offset: int, content_height: int, viewport_height: int) -> int:
    """Clamp offset into [0, max(0, content_height - viewport_height)]."""
    upper = max(0, content_height - max(0, viewport_height))
    return max(0, min(int(offset), upper))


def visible_slice(lines: Sequence[str], viewport_height: int, offset: int) -> List[str]:
    """
    Return exactly `viewport_height` lines starting at the clamped `offset`.

    Short content is right-padded with blank lines so panels always render
    at a fixed height.
    """
    height = max(0, int(viewport_height))
    if height == 0:
        return []
    start = clamp_offset(offset, len(lines), height)
    window = list(lines[start : start + height])
    if len(window) < height:
        window.extend([""] * (height - len(window)))
    return window


def ensure_visible(
    offset: int,
    viewport_height: int,
    target_start: int,
    target_height: int,
    content_height: int,
) -> int:
    """
    Snap `offset` so the target region [target_start, target_start + target_height) is on screen.

    Target above the window -> offset = target_start.
    Target below the window -> offset = target_start + target_height - viewport_height.
    Otherwise the offset is kept. The result is always re-clamped against the
    content height.
    """
    height = max(1, int(viewport_height))
    span = max(1, int(target_height))
    new_offset = int(offset)
    if target_start < new_offset:
        new_offset = target_start
    elif target_start + span > new_offset + height:
        new_offset = target_start + span - height
    return clamp_offset(new_offset, content_height, height)


def scroll_by(offset: int, delta: int, content_height: int, viewport_height: int) -> int:
    # No-op at either boundary.
    return clamp_offset(offset + delta, content_height, viewport_height)


def split_lines(text: str) -> List[str]:
    if not text:
        return []
    return text.split("\n")


__all__ = [
    "max_scroll",
    "clamp_offset",
    "visible_slice",
    "ensure_visible",
    "scroll_by",
    "split_lines",
]
