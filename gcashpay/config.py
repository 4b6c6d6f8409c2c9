from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from gcashpay.errors import ConfigError


def _parse_csv_ints(raw: str) -> List[int]:
    ids: List[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.append(int(part))
        except ValueError:
            pass
    return ids


def _data_dir() -> str:
    return os.getenv("DATA_DIR", os.path.join(os.getcwd(), "data"))


@dataclass
class Settings:
    app_env: str = field(default_factory=lambda: os.getenv("APP_ENV", "production"))
    tz: str = field(default_factory=lambda: os.getenv("TZ", "Asia/Manila"))

    uisp_base_url: str = field(default_factory=lambda: os.getenv("UISP_BASE_URL", ""))
    uisp_app_key: str = field(default_factory=lambda: os.getenv("UISP_APP_KEY", ""))
    uisp_timeout_seconds: float = field(default_factory=lambda: float(os.getenv("UISP_TIMEOUT_SECONDS", "20")))
    # UISP user id recorded on created payments (optional)
    uisp_user_id: Optional[int] = field(default_factory=lambda: int(os.environ["UISP_USER_ID"]) if os.getenv("UISP_USER_ID", "").strip().isdigit() else None)

    telegram_bot_token: str = field(default_factory=lambda: os.getenv("TELEGRAM_BOT_TOKEN", ""))
    telegram_admin_ids: List[int] = field(default_factory=lambda: _parse_csv_ints(os.getenv("TELEGRAM_ADMIN_IDS", "")))

    data_dir: str = field(default_factory=_data_dir)
    payments_file: str = field(default_factory=lambda: os.getenv("PAYMENTS_FILE", os.path.join(_data_dir(), "pending_payments.json")))
    plugin_config_path: str = field(default_factory=lambda: os.getenv("PLUGIN_CONFIG_PATH", os.path.join(_data_dir(), "config.json")))

    # Inactivity window for the step-1 draft of a submission
    session_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("SESSION_TTL_SECONDS", "600")))


def load_plugin_config(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """Read the plugin's config.json as a flat mapping.

    A missing or empty file is an empty config; anything that is not a JSON
    object raises ConfigError.
    """
    p = Path(path)
    if not p.exists():
        return {}
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read plugin config {p}: {e}") from e
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Plugin config {p} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Plugin config {p} must be a JSON object")
    return data


settings = Settings()


def read_plugin_config() -> Dict[str, Any]:
    """Plugin config for request handlers; an unreadable file is logged and treated as empty."""
    try:
        return load_plugin_config(settings.plugin_config_path)
    except ConfigError as e:
        logging.getLogger(__name__).error("plugin config unreadable", extra={"extra": {"err": e.message}})
        return {}
