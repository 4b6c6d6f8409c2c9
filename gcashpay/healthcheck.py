import asyncio
import os
import sys
from pathlib import Path

import httpx

from gcashpay.config import load_plugin_config, settings
from gcashpay.errors import ConfigError, StorageError
from gcashpay.storage.record_store import RecordStore
from gcashpay.uisp.client import get_client

# Healthcheck: validate ENV, bot token presence, that the payment records and
# plugin config are readable, and optional UISP reachability.
#
# You can skip the UISP check by setting HEALTHCHECK_SKIP_UISP=1
# (useful in staging or when UISP is temporarily unavailable).


def _check_storage() -> bool:
    try:
        RecordStore(settings.payments_file).load_all()
    except StorageError as e:
        print(f"payments file unreadable: {e.message}", file=sys.stderr)
        return False
    data_dir = Path(settings.payments_file).parent
    if data_dir.exists() and not os.access(data_dir, os.W_OK):
        print(f"data dir not writable: {data_dir}", file=sys.stderr)
        return False
    return True


def _check_plugin_config() -> bool:
    try:
        load_plugin_config(settings.plugin_config_path)
        return True
    except ConfigError as e:
        print(e.message, file=sys.stderr)
        return False


async def _check_uisp() -> bool:
    if not settings.uisp_base_url or not settings.uisp_app_key:
        return False
    client = await get_client()
    try:
        await client.list_payment_methods()
        return True
    except httpx.HTTPError:
        return False
    finally:
        await client.aclose()


def main() -> int:
    if not settings.telegram_bot_token:
        print("missing TELEGRAM_BOT_TOKEN", file=sys.stderr)
        return 1

    if not _check_storage() or not _check_plugin_config():
        return 1

    skip_uisp = os.getenv("HEALTHCHECK_SKIP_UISP", "0").strip().lower() in {"1", "true", "yes", "on"}
    if not skip_uisp and not asyncio.run(_check_uisp()):
        print("uisp not ready", file=sys.stderr)
        return 1

    print("ok")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
