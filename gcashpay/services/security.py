from __future__ import annotations

import os
from typing import Any, Set


def _admin_ids() -> Set[int]:
    raw = os.getenv("TELEGRAM_ADMIN_IDS", "")
    return {int(x.strip()) for x in raw.split(",") if x.strip().isdigit()}


def is_admin_uid(uid: int | None) -> bool:
    return bool(uid and uid in _admin_ids())


def actor_name(user: Any) -> str:
    """Display identifier recorded as approvedBy/rejectedBy."""
    if user is None:
        return "admin"
    username = getattr(user, "username", None)
    if username:
        return f"@{username}"
    full = " ".join(p for p in (getattr(user, "first_name", None), getattr(user, "last_name", None)) if p).strip()
    if full:
        return full
    uid = getattr(user, "id", None)
    return f"tg:{uid}" if uid is not None else "admin"
