import logging
import os
import shlex
import subprocess
import tempfile
from pathlib import Path

from core import TddProError

logger = logging.getLogger("tddpro.editor")


class ExternalEditorError(TddProError):
    pass


def edit_text(editor: str, text: str, feature_id: str) -> str:
    """Open `text` in $EDITOR via a temp markdown file and return what was saved."""
    fd, name = tempfile.mkstemp(prefix=f"tdd-pro-{feature_id}-prd-", suffix=".md")
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        command = shlex.split(editor) + [str(path)]
        try:
            subprocess.run(command, check=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise ExternalEditorError(str(exc)) from exc
        return path.read_text(encoding="utf-8")
    finally:
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("could not remove %s: %s", path, exc)


__all__ = ["edit_text", "ExternalEditorError"]
