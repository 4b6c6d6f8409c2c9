from __future__ import annotations

import logging
from typing import Any, List, Mapping, Sequence

from gcashpay.models import ReceivingAccount
from gcashpay.utils.active_days import is_active_on

logger = logging.getLogger(__name__)

MAX_ACCOUNTS = 3


def _cfg_str(config: Mapping[str, Any], key: str) -> str:
    value = config.get(key)
    return "" if value is None else str(value).strip()


def receiving_accounts(config: Mapping[str, Any]) -> List[ReceivingAccount]:
    """Receiving accounts in slot order.

    Slot 1 reads ``gcashNumber``/``gcashName``/``gcashQrCode``/``gcashActiveDays``;
    slots 2 and 3 read the same keys suffixed with the slot number.
    """
    accounts: List[ReceivingAccount] = []
    for slot in range(1, MAX_ACCOUNTS + 1):
        suffix = "" if slot == 1 else str(slot)
        accounts.append(
            ReceivingAccount(
                slot=slot,
                number=_cfg_str(config, f"gcashNumber{suffix}"),
                name=_cfg_str(config, f"gcashName{suffix}"),
                qr_code=_cfg_str(config, f"gcashQrCode{suffix}"),
                active_days=_cfg_str(config, f"gcashActiveDays{suffix}"),
            )
        )
    return accounts


def select_active_account(accounts: Sequence[ReceivingAccount], day: int) -> ReceivingAccount:
    """First configured account whose active days include ``day``, else account 1."""
    if not accounts:
        raise ValueError("no receiving accounts configured")
    for acc in accounts:
        if acc.is_configured and is_active_on(acc.active_days, day):
            return acc
    logger.info("no receiving account active today; falling back to slot 1", extra={"extra": {"day": day}})
    return accounts[0]
