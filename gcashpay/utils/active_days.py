from __future__ import annotations

import logging
import re
from typing import FrozenSet, Set

logger = logging.getLogger(__name__)

_RANGE_DASH_RE = re.compile(r"\s*-\s*")
_SPLIT_RE = re.compile(r"[,\s]+")
_DAY_RE = re.compile(r"^\d{1,2}$")
_RANGE_RE = re.compile(r"^(\d{1,2})-(\d{1,2})$")

MIN_DAY = 1
MAX_DAY = 31


def parse_active_days(spec: str | None) -> FrozenSet[int]:
    """Parse a day-of-month spec like ``"1-10, 15"`` into the set of days.

    Tokens are split on commas and whitespace, ``a-b`` is inclusive. Days
    outside 1..31, reversed ranges and junk tokens are dropped. Month length is
    not considered, so ``31`` simply never matches in shorter months.
    """
    if not spec or not spec.strip():
        return frozenset()
    normalized = _RANGE_DASH_RE.sub("-", spec.strip())
    days: Set[int] = set()
    for token in _SPLIT_RE.split(normalized):
        if not token:
            continue
        if _DAY_RE.match(token):
            day = int(token)
            if MIN_DAY <= day <= MAX_DAY:
                days.add(day)
            else:
                logger.debug("active days: out of range %s in %r", token, spec)
            continue
        m = _RANGE_RE.match(token)
        if m:
            start, end = int(m.group(1)), int(m.group(2))
            if start > end:
                logger.debug("active days: reversed range %s in %r", token, spec)
                continue
            days.update(d for d in range(max(start, MIN_DAY), min(end, MAX_DAY) + 1))
            continue
        logger.debug("active days: ignoring token %r in %r", token, spec)
    return frozenset(days)


def is_active_on(spec: str | None, day: int) -> bool:
    # An empty spec means the account is always active
    if not spec or not spec.strip():
        return True
    return day in parse_active_days(spec)
