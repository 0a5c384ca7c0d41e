"""Coaching-agent API key storage in $XDG_CONFIG_HOME/tdd-pro/auth.json."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from config import config_dir
from core import ValidationError

logger = logging.getLogger("tddpro.auth")

ENV_KEY = "ANTHROPIC_API_KEY"
KEY_PREFIX = "sk-ant-"
MIN_KEY_LENGTH = 20


def auth_path() -> Path:
    return config_dir() / "auth.json"


def validate_api_key(value: str) -> str:
    key = (value or "").strip()
    if not key:
        raise ValidationError("api_key", "API key is required")
    if not key.startswith(KEY_PREFIX):
        raise ValidationError("api_key", f"API key should start with '{KEY_PREFIX}'")
    if len(key) < MIN_KEY_LENGTH:
        raise ValidationError("api_key", "API key appears to be too short")
    return key


def load_stored_key() -> Optional[str]:
    path = auth_path()
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("cannot read %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        return None
    return str(data.get("claude_api_key") or "") or None


def save_api_key(value: str) -> Path:
    key = validate_api_key(value)
    path = auth_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"claude_api_key": key}, indent=2), encoding="utf-8")
    os.chmod(path, 0o600)
    return path


def get_api_key() -> Optional[str]:
    env_value = os.environ.get(ENV_KEY, "").strip()
    if env_value:
        return env_value
    return load_stored_key()


def has_credentials() -> bool:
    return get_api_key() is not None


def auth_status() -> str:
    if os.environ.get(ENV_KEY, "").strip():
        return f"Authenticated via {ENV_KEY} environment variable"
    if not auth_path().exists():
        return "Not authenticated - no credentials found"
    if not has_credentials():
        return "Not authenticated - no API key configured"
    return f"Authenticated via stored credentials ({auth_path()})"


def mask_key(value: str) -> str:
    return "•" * len(value or "")
