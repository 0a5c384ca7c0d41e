from pathlib import Path
import os
import sys
from typing import Optional

from core import ServerNotFoundError

SERVER_RELATIVE = Path("packages") / "tdd-pro" / "mcp-stdio-server.ts"
INSTALLED_SERVER = Path(".tdd-pro") / "bin" / "tdd-pro-mcp"
SEARCH_DEPTH = 6


def _upward(start: Path, depth: int = SEARCH_DEPTH) -> Optional[Path]:
    current = start
    for _ in range(depth):
        candidate = current / SERVER_RELATIVE
        if candidate.exists():
            return candidate
        if current.parent == current:
            break
        current = current.parent
    return None


def find_server_path(program: Optional[Path] = None) -> Path:
    """Resolve the stdio MCP server.

    Priority:
    1. TDDPRO_MCP_PATH env variable (explicit override).
    2. Installed binary ~/.tdd-pro/bin/tdd-pro-mcp.
    3. TDDPRO_PATH checkout root.
    4. Upward search from the running program.
    """
    override = os.environ.get("TDDPRO_MCP_PATH", "").strip()
    if override:
        candidate = Path(override).expanduser()
        if candidate.exists():
            return candidate.resolve()

    installed = Path.home() / INSTALLED_SERVER
    if installed.exists():
        return installed

    checkout = os.environ.get("TDDPRO_PATH", "").strip()
    if checkout:
        candidate = Path(checkout).expanduser() / SERVER_RELATIVE
        if candidate.exists():
            return candidate.resolve()

    origin = Path(program or sys.argv[0] or ".").expanduser().resolve()
    found = _upward(origin.parent if origin.is_file() else origin)
    if found is not None:
        return found

    raise ServerNotFoundError(
        "Could not find mcp-stdio-server.ts. Set TDDPRO_PATH or TDDPRO_MCP_PATH, or check your installation."
    )


__all__ = ["find_server_path", "SERVER_RELATIVE", "INSTALLED_SERVER"]
