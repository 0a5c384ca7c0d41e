"""Slash-command completion: contextual command set, fuzzy filter, priority order."""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .messages import translate


@dataclass(frozen=True)
class CompletionItem:
    label: str
    description: str
    insert_value: str
    is_command: bool = True


class FuzzyMatcher:
    """Pattern characters must appear in order; consecutive, word-start and text-start hits score higher."""

    CONSECUTIVE_BONUS = 10
    START_BONUS = 15
    BOUNDARY_BONUS = 10
    GAP_PENALTY = 1
    WORD_SEPARATORS = "-_/.\\"

    @classmethod
    def match(cls, pattern: str, text: str) -> Tuple[bool, int]:
        if not pattern:
            return True, 0
        pattern_lower = pattern.lower()
        text_lower = text.lower()
        pi = 0
        score = 0
        prev_match_idx = -1
        for ti, char in enumerate(text_lower):
            if pi < len(pattern_lower) and char == pattern_lower[pi]:
                if prev_match_idx >= 0:
                    gap = ti - prev_match_idx - 1
                    if gap == 0:
                        score += cls.CONSECUTIVE_BONUS
                    else:
                        score -= gap * cls.GAP_PENALTY
                if ti == 0:
                    score += cls.START_BONUS
                elif text_lower[ti - 1] in cls.WORD_SEPARATORS:
                    score += cls.BOUNDARY_BONUS
                prev_match_idx = ti
                pi += 1
        if pi == len(pattern_lower):
            return True, score
        return False, 0


# Fixed relative order for the core commands; everything else sorts by score.
COMMAND_PRIORITY: Dict[str, int] = {
    "/help": 1,
    "/features": 2,
    "/init": 3,
    "/auth": 4,
}
EXIT_COMMAND = "/quit"


def _command(label: str, key: str) -> CompletionItem:
    return CompletionItem(label=label, description=translate(key), insert_value=label, is_command=True)


class CommandCompletionProvider:
    def __init__(self, is_initialized: Callable[[], bool]) -> None:
        self.is_initialized = is_initialized

    def contextual_commands(self) -> List[CompletionItem]:
        commands = [
            _command("/help", "CMD_HELP"),
            _command("/features", "CMD_FEATURES"),
        ]
        if not self.is_initialized():
            commands.append(_command("/init", "CMD_INIT"))
        commands.append(_command("/auth", "CMD_AUTH"))
        commands.append(_command(EXIT_COMMAND, "CMD_QUIT"))
        return commands


def order_matches(matches: List[Tuple[CompletionItem, int]]) -> List[CompletionItem]:
    """Priority commands first in their fixed order, then the rest by descending score, exit last."""

    def sort_key(entry: Tuple[int, Tuple[CompletionItem, int]]):
        position, (item, score) = entry
        if item.label == EXIT_COMMAND:
            return (2, 0, 0, position)
        priority = COMMAND_PRIORITY.get(item.label)
        if priority is not None:
            return (0, priority, 0, position)
        return (1, 0, -score, position)

    ranked = sorted(enumerate(matches), key=sort_key)
    return [item for _, (item, _) in ranked]


class CompletionEngine:
    def __init__(self, provider: CommandCompletionProvider) -> None:
        self.provider = provider

    @staticmethod
    def query_from_buffer(buffer: str) -> str:
        return buffer[1:] if buffer.startswith("/") else buffer

    def complete(self, query: str) -> List[CompletionItem]:
        commands = self.provider.contextual_commands()
        if not query:
            return commands
        matches: List[Tuple[CompletionItem, int]] = []
        for item in commands:
            ok, score = FuzzyMatcher.match(query, item.label)
            if ok:
                matches.append((item, score))
        return order_matches(matches)

    def complete_buffer(self, buffer: str) -> List[CompletionItem]:
        return self.complete(self.query_from_buffer(buffer))


class CompletionMenu:
    """Palette selection over the latest completion list; moves clamp at the ends."""

    def __init__(self) -> None:
        self.items: List[CompletionItem] = []
        self.selected: Optional[int] = None

    def update(self, items: List[CompletionItem]) -> None:
        self.items = list(items)
        self.selected = 0 if self.items else None

    def move(self, delta: int) -> Optional[int]:
        if not self.items:
            self.selected = None
            return None
        current = self.selected or 0
        self.selected = max(0, min(current + delta, len(self.items) - 1))
        return self.selected

    @property
    def current(self) -> Optional[CompletionItem]:
        if self.selected is None or not (0 <= self.selected < len(self.items)):
            return None
        return self.items[self.selected]

    def clear(self) -> None:
        self.items = []
        self.selected = None


def parse_command(text: str) -> Tuple[str, str]:
    """Split "/cmd arg words" into ("/cmd", "arg words")."""
    stripped = (text or "").strip()
    if " " in stripped:
        head, tail = stripped.split(" ", 1)
        return head, tail.strip()
    return stripped, ""


__all__ = [
    "CompletionItem",
    "FuzzyMatcher",
    "COMMAND_PRIORITY",
    "EXIT_COMMAND",
    "CommandCompletionProvider",
    "CompletionEngine",
    "CompletionMenu",
    "order_matches",
    "parse_command",
]
