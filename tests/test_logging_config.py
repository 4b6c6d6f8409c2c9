from __future__ import annotations

import logging

import pytest

from gcashpay.logging_config import JsonFormatter, SensitiveDataFilter, _sanitize_obj, _sanitize_str, setup_logging

BOT_TOKEN = "123456789:AAHdqTcvCH1vGWJxfSeofSAs0K5PALDsaw"


def test_sanitize_app_key_header_masked() -> None:
    out = _sanitize_str("headers={'X-Auth-App-Key': 'k3yV4lue-xyz'}")
    assert "k3yV4lue" not in out
    assert "[REDACTED]" in out


def test_sanitize_bot_token_in_url_masked() -> None:
    out = _sanitize_str(f"POST https://api.telegram.org/bot{BOT_TOKEN}/sendMessage")
    assert "AAHdqTcv" not in out
    assert "123456789:[REDACTED]" in out


def test_sanitize_recaptcha_secret_kv_masked() -> None:
    out = _sanitize_str('{"recaptchaSecretKey":"6LcSECRET","gcashName":"Juan"}')
    assert "6LcSECRET" not in out
    assert '"gcashName":"Juan"' in out


def test_sanitize_nested_objects() -> None:
    obj = {
        "headers": {"X-Auth-App-Key": "abcdef123456"},
        "nested": [{"token": "abc"}, {"url": f"https://api.telegram.org/bot{BOT_TOKEN}/getMe"}],
        "amount": 250,
    }
    out = _sanitize_obj(obj)
    assert out["headers"]["X-Auth-App-Key"] == "***3456"
    assert out["nested"][0]["token"] == "[REDACTED]"
    assert "[REDACTED]" in out["nested"][1]["url"]
    assert out["amount"] == 250


def test_filter_and_json_formatter_mask_extra() -> None:
    record = logging.LogRecord("gcashpay.test", logging.INFO, __file__, 1, "uisp call", None, None)
    record.extra = {"uisp_app_key": "supersecretkey", "ref": "REF-001"}
    SensitiveDataFilter().filter(record)
    line = JsonFormatter().format(record)
    assert "supersecretkey" not in line
    assert '"ref": "REF-001"' in line


def test_httpx_logger_level_warning_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("LOG_TO_FILE", "0")
    setup_logging()
    logger = logging.getLogger("httpx")
    assert logger.level == logging.WARNING or logger.getEffectiveLevel() == logging.WARNING
