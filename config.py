from __future__ import annotations

import logging
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger("tddpro.config")

DEFAULT_API_URL = "localhost:800"
DEFAULT_TTIMEOUTLEN = 0.05


def config_dir() -> Path:
    """~/.config/tdd-pro, honoring XDG_CONFIG_HOME."""
    base = os.environ.get("XDG_CONFIG_HOME", "").strip()
    root = Path(base).expanduser() if base else Path.home() / ".config"
    return root / "tdd-pro"


def config_path() -> Path:
    return config_dir() / "config.yml"


def _load_config() -> Dict[str, Any]:
    path = config_path()
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("ignoring unreadable %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def load_api_url() -> str:
    return str(_load_config().get("api", "") or DEFAULT_API_URL).strip()


def get_editor() -> Optional[str]:
    """External editor command, or None for the inline editor."""
    value = os.environ.get("EDITOR", "").strip()
    return value or None


def ttimeoutlen() -> float:
    raw = os.environ.get("TDDPRO_TUI_TTIMEOUTLEN", "").strip()
    if not raw:
        return DEFAULT_TTIMEOUTLEN
    try:
        return max(0.0, float(raw))
    except ValueError:
        return DEFAULT_TTIMEOUTLEN
