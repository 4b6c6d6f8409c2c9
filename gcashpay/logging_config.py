from __future__ import annotations

import json
import logging
import logging.config
import os
import re
from typing import Any, Dict


# ================= Sensitive Data Masking ================= #
# UISP app key header as it shows up in repr'd request headers
_APP_KEY_HEADER_RE = re.compile(r"(X-Auth-App-Key['\"]?\s*[:=]\s*['\"]?)([A-Za-z0-9+/=._-]+)", re.IGNORECASE)
# Telegram bot token, e.g. inside api.telegram.org/bot<token>/sendMessage
_BOT_TOKEN_RE = re.compile(r"\b(\d{6,12}):([A-Za-z0-9_-]{30,})\b")
_SECRET_KV_RE = re.compile(r"((?:recaptchaSecretKey|secret|app_key)['\"]?\s*[:=]\s*['\"]?)([^'\"\s,}]+)", re.IGNORECASE)

_SECRET_KEYS = {"x-auth-app-key", "app_key", "uisp_app_key", "recaptchasecretkey", "secret", "token", "telegram_bot_token"}


def _mask_tail(val: str, keep: int = 4) -> str:
    if not isinstance(val, str):
        return val
    if len(val) <= keep:
        return "[REDACTED]"
    return "***" + val[-keep:]


def _sanitize_str(s: str) -> str:
    if not isinstance(s, str) or not s:
        return s
    s = _APP_KEY_HEADER_RE.sub(lambda m: m.group(1) + "[REDACTED]", s)
    s = _BOT_TOKEN_RE.sub(lambda m: m.group(1) + ":[REDACTED]", s)
    s = _SECRET_KV_RE.sub(lambda m: m.group(1) + "[REDACTED]", s)
    return s


def _sanitize_obj(obj: Any) -> Any:
    if isinstance(obj, dict):
        out: Dict[Any, Any] = {}
        for k, v in obj.items():
            if str(k).lower() in _SECRET_KEYS:
                out[k] = _mask_tail(v) if isinstance(v, str) else "[REDACTED]"
            else:
                out[k] = _sanitize_obj(v)
        return out
    if isinstance(obj, (list, tuple)):
        return type(obj)(_sanitize_obj(v) for v in obj)
    if isinstance(obj, str):
        return _sanitize_str(obj)
    return obj


class SensitiveDataFilter(logging.Filter):
    """Masks API keys and tokens in the message, its args and the ``extra`` payload."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        try:
            if isinstance(record.msg, str):
                record.msg = _sanitize_str(record.msg)
            if record.args:
                if isinstance(record.args, tuple):
                    record.args = tuple(_sanitize_obj(a) for a in record.args)
                elif isinstance(record.args, dict):
                    record.args = _sanitize_obj(record.args)
            if hasattr(record, "extra") and isinstance(record.extra, dict):
                record.extra = _sanitize_obj(record.extra)
        except Exception:
            # Never break logging
            pass
        return True


def _structured(record: logging.LogRecord) -> Dict[str, Any]:
    extra = getattr(record, "extra", None)
    return _sanitize_obj(extra) if isinstance(extra, dict) else {}


class JsonFormatter(logging.Formatter):
    """One JSON object per line; the ``extra`` payload is merged at top level."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        line: Dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "event": _sanitize_str(record.getMessage()),
        }
        line.update(_structured(record))
        if record.exc_info:
            line["exc_info"] = _sanitize_str(self.formatException(record.exc_info))
        return json.dumps(line, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Plain formatter that appends the structured ``extra`` payload as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        base = super().format(record)
        pairs = " ".join(f"{k}={v}" for k, v in _structured(record).items())
        return f"{base} {pairs}" if pairs else base


def _bool(val: str | None, default: bool) -> bool:
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _file_writable(path: str) -> bool:
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "a", encoding="utf-8"):
            pass
    except OSError:
        return False
    return True


def _handler(base: Dict[str, Any], level: str, formatter: str) -> Dict[str, Any]:
    return {**base, "level": level, "formatter": formatter, "filters": ["sensitive"]}


def setup_logging() -> None:
    """Configure logging for the bot and the healthcheck.

    ENV:
      - APP_ENV: production|staging|development (default: production)
      - LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: INFO in prod, DEBUG otherwise)
      - LOG_FORMAT: json|text (default: json in prod, text otherwise)
      - LOG_TO_FILE: 1/0 (default: 1 when the log file is writable)
      - LOG_FILE_PATH: path to log file (default: ./logs/gcashpay.log)
    """
    app_env = os.getenv("APP_ENV", "production").lower()
    prod = app_env == "production"
    level = os.getenv("LOG_LEVEL", "INFO" if prod else "DEBUG").upper()
    fmt = os.getenv("LOG_FORMAT", "json" if prod else "text").lower()
    formatter = "json" if fmt == "json" else "plain"
    log_file = os.getenv("LOG_FILE_PATH", os.path.join(os.getcwd(), "logs", "gcashpay.log"))
    to_file = _bool(os.getenv("LOG_TO_FILE"), True) and _file_writable(log_file)

    handlers: Dict[str, Dict[str, Any]] = {
        "console": _handler({"class": "logging.StreamHandler", "stream": "ext://sys.stdout"}, level, formatter),
    }
    if to_file:
        handlers["file"] = _handler(
            {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": log_file,
                "maxBytes": 5 * 1024 * 1024,
                "backupCount": 3,
                "encoding": "utf-8",
                "delay": True,
            },
            level,
            formatter,
        )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"sensitive": {"()": SensitiveDataFilter}},
            "formatters": {
                "json": {"()": JsonFormatter},
                "plain": {"()": TextFormatter, "fmt": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
            },
            "handlers": handlers,
            "root": {"level": level, "handlers": list(handlers)},
            "loggers": {
                "aiogram": {"level": level},
                # request lines carry the UISP URL on every call
                "httpx": {"level": "WARNING" if prod else "INFO"},
                "httpcore": {"level": "WARNING"},
            },
        }
    )
    logging.getLogger(__name__).info(
        "logging configured",
        extra={"extra": {"env": app_env, "level": level, "format": fmt, "file": log_file if to_file else None}},
    )
