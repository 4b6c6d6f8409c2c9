from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

from aiogram import Bot

from gcashpay.models import PaymentClaim
from gcashpay.utils.money import pesos

logger = logging.getLogger(__name__)

_review_bot: Optional[Bot] = None
_review_bot_lock = asyncio.Lock()


def _review_chat_id() -> Optional[int]:
    raw = os.getenv("LOG_CHAT_ID", "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("notify.bad_chat_id", extra={"extra": {"LOG_CHAT_ID": raw}})
        return None


async def _bot() -> Optional[Bot]:
    global _review_bot
    async with _review_bot_lock:
        if _review_bot is None:
            token = os.getenv("TELEGRAM_BOT_TOKEN", "").strip()
            if not token:
                return None
            _review_bot = Bot(token=token)
        return _review_bot


def new_claim_text(claim: PaymentClaim) -> str:
    return (
        "🕒 New GCash payment claim\n"
        f"ID: {claim.id}\n"
        f"Client: {claim.client_name} ({claim.account_number})\n"
        f"Amount: {pesos(claim.amount)}\n"
        f"Ref: {claim.reference_number}\n"
        f"Paid to: {claim.gcash_name} {claim.gcash_number}\n"
        "Review with /claims"
    )


async def notify_new_claim(claim: PaymentClaim) -> bool:
    """Tell the review chat a claim is waiting. False when nothing was sent."""
    chat_id = _review_chat_id()
    if chat_id is None:
        return False
    bot = await _bot()
    if bot is None:
        logger.warning("notify.no_token", extra={"extra": {"claim": claim.id}})
        return False
    try:
        await bot.send_message(chat_id=chat_id, text=new_claim_text(claim))
    except Exception as e:
        # the claim is already saved; a lost notice only delays review
        logger.warning("notify.new_claim_failed", extra={"extra": {"claim": claim.id, "err": str(e)}})
        return False
    return True


async def aclose_bot() -> None:
    global _review_bot
    if _review_bot is not None:
        try:
            await _review_bot.session.close()
        finally:
            _review_bot = None
