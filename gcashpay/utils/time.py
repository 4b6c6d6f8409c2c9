from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from gcashpay.config import settings

# Matches the timestamps already present in pending_payments.json
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def local_tz(name: str | None = None) -> ZoneInfo:
    try:
        return ZoneInfo(name or settings.tz)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def local_now(tz: str | None = None) -> datetime:
    return datetime.now(local_tz(tz))


def today(tz: str | None = None) -> date:
    return local_now(tz).date()


def format_timestamp(dt: datetime | None = None) -> str:
    return (dt or local_now()).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), TIMESTAMP_FORMAT)
    except ValueError:
        try:
            return datetime.fromisoformat(value.strip()).replace(tzinfo=None)
        except ValueError:
            return None
