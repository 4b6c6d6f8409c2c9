from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict, Optional, Tuple

from gcashpay.config import settings


class SessionStore:
    """Short-lived per-user state keyed like ``INTENT:PAY:<uid>``.

    Payloads are stored as JSON text so only plain data crosses steps. An entry
    expires ``ttl`` seconds after its last ``set``; expired entries read as None.
    """

    def __init__(self, default_ttl: int | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.default_ttl = default_ttl if default_ttl is not None else settings.session_ttl_seconds
        self._clock = clock
        self._items: Dict[str, Tuple[float, str]] = {}

    def set(self, key: str, payload: dict, ttl: int | None = None) -> None:
        lifetime = self.default_ttl if ttl is None else ttl
        data = json.dumps(payload, ensure_ascii=False)
        self._items[key] = (self._clock() + lifetime, data)

    def get(self, key: str) -> Optional[dict[str, Any]]:
        item = self._items.get(key)
        if item is None:
            return None
        expires_at, data = item
        if self._clock() >= expires_at:
            self._items.pop(key, None)
            return None
        try:
            return json.loads(data)
        except ValueError:
            self._items.pop(key, None)
            return None

    def clear(self, key: str) -> None:
        self._items.pop(key, None)

    def purge_expired(self) -> int:
        now = self._clock()
        stale = [k for k, (exp, _) in self._items.items() if now >= exp]
        for k in stale:
            del self._items[k]
        return len(stale)

    def __len__(self) -> int:
        return len(self._items)


# Process-wide store used by the bot handlers
sessions = SessionStore()
