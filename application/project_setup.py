"""Project-level state on disk: the .tdd-pro tree and editor MCP configs."""

import json
import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger("tddpro.setup")

STATE_DIR_NAME = ".tdd-pro"
SERVER_NAME = "tdd-pro"

INDEX_TEMPLATE = """# TDD-Pro Features Index
# This file tracks the status and organization of features in your project

# Features organized by status:
approved: []      # Ready for implementation
planned: []       # Planned and designed
refinement: []    # Being refined and specified
backlog: []       # Future features

# Current feature being worked on (optional)
current: null
"""

# Wizard step name -> config file relative to the project root.
MCP_CONFIG_TARGETS: Dict[str, Path] = {
    "root": Path(".mcp.json"),
    "cursor": Path(".cursor") / ".mcp.json",
    "vscode": Path(".vscode") / ".mcp.json",
}


def home_state_dir() -> Path:
    return Path.home() / STATE_DIR_NAME


def find_state_dir(start: Path) -> Optional[Path]:
    """Walk up from `start`; a project-local .tdd-pro wins over ~/.tdd-pro."""
    home_dir = home_state_dir().resolve()
    found_home: Optional[Path] = None
    current = Path(start).resolve()
    while True:
        candidate = current / STATE_DIR_NAME
        if candidate.is_dir():
            if candidate.resolve() == home_dir:
                found_home = candidate
            else:
                return candidate
        if current.parent == current:
            break
        current = current.parent
    return found_home


def is_initialized(start: Path) -> bool:
    return find_state_dir(start) is not None


def create_structure(project_root: Path) -> Path:
    """Create .tdd-pro/features/index.yml under `project_root`; returns the index path."""
    features_dir = Path(project_root) / STATE_DIR_NAME / "features"
    features_dir.mkdir(parents=True, exist_ok=True)
    index_path = features_dir / "index.yml"
    index_path.write_text(INDEX_TEMPLATE, encoding="utf-8")
    logger.info("created %s", index_path)
    return index_path


def server_entry(project_root: Path) -> Dict:
    command = Path(project_root) / "packages" / "tdd-pro" / "mcp-stdio-server.ts"
    return {"command": str(command), "args": [], "env": {"NODE_ENV": "development"}}


def write_mcp_config(project_root: Path, target: str) -> Path:
    """Write (or merge into) one editor MCP config file."""
    path = Path(project_root) / MCP_CONFIG_TARGETS[target]
    path.parent.mkdir(parents=True, exist_ok=True)
    config: Dict = {"mcpServers": {}}
    if path.exists():
        try:
            existing = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("overwriting unreadable %s: %s", path, exc)
        else:
            if isinstance(existing, dict):
                config = existing
                if not isinstance(config.get("mcpServers"), dict):
                    config["mcpServers"] = {}
    config["mcpServers"][SERVER_NAME] = server_entry(project_root)
    path.write_text(json.dumps(config, indent=2), encoding="utf-8")
    return path


def remove_state_dir(target: Path) -> Path:
    """Remove a .tdd-pro directory. Irreversible."""
    target = Path(target)
    if target.name != STATE_DIR_NAME:
        raise ValueError(f"refusing to remove {target}: not a {STATE_DIR_NAME} directory")
    shutil.rmtree(target)
    logger.warning("removed %s", target)
    return target


def created_labels(paths: List[Path], project_root: Path) -> List[str]:
    labels = []
    for path in paths:
        try:
            labels.append(str(path.relative_to(project_root)))
        except ValueError:
            labels.append(str(path))
    return labels
