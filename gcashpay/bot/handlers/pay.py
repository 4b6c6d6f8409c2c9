from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from aiogram import F, Router
from aiogram.filters import Command, CommandStart
from aiogram.types import BufferedInputFile, Message

from gcashpay.config import read_plugin_config, settings
from gcashpay.errors import (
    DuplicateReference,
    IntakeError,
    SessionExpired,
    StorageError,
    ValidationError,
)
from gcashpay.models import ClaimDraft, ReceivingAccount
from gcashpay.services.account_selector import receiving_accounts
from gcashpay.services.claims import ClaimWorkflow
from gcashpay.services.notifications import notify_new_claim
from gcashpay.storage.record_store import get_store
from gcashpay.uisp.client import get_client
from gcashpay.utils.money import pesos
from gcashpay.utils.qr import generate_qr_png
from gcashpay.utils.session_store import sessions

router = Router()
logger = logging.getLogger(__name__)

STAGE_ACCOUNT = "await_account"
STAGE_AMOUNT = "await_amount"
STAGE_REFERENCE = "await_ref"

# The chat stage outlives the step-1 draft so an expired draft can be reported
STAGE_TTL_SECONDS = 3600

_DIGIT_MAP = str.maketrans({",": "", " ": "", "₱": ""})


def _stage_key(uid: int) -> str:
    return f"INTENT:PAY:{uid}"


def _draft_key(uid: int) -> str:
    return f"INTENT:CLAIM:{uid}"


def _uid(message: Message) -> Optional[int]:
    return getattr(getattr(message, "from_user", None), "id", None)


def _stage(message: Message) -> Optional[Dict[str, Any]]:
    uid = _uid(message)
    return sessions.get(_stage_key(uid)) if uid else None


def _in_stage(*names: str):
    def _check(message: Message) -> bool:
        txt = getattr(message, "text", None)
        if not isinstance(txt, str) or txt.startswith("/"):
            return False
        st = _stage(message)
        return bool(st and st.get("stage") in names)

    return _check


def _workflow(api: Any = None, config: Optional[Dict[str, Any]] = None) -> ClaimWorkflow:
    return ClaimWorkflow(
        get_store(),
        sessions,
        api,
        config if config is not None else read_plugin_config(),
        tz=settings.tz,
    )


def _account_for(draft: ClaimDraft, config: Dict[str, Any]) -> Optional[ReceivingAccount]:
    for acc in receiving_accounts(config):
        if acc.number and acc.number == draft.gcash_number:
            return acc
    return None


def _step2_text(draft: ClaimDraft) -> str:
    return (
        "Step 2 of 2\n"
        f"Account: {draft.client_name} ({draft.account_number})\n"
        f"Amount to send: {pesos(draft.amount)}\n\n"
        f"Send the payment via GCash to:\n{draft.gcash_name}\n{draft.gcash_number}\n\n"
        "Then reply with the GCash reference number."
    )


@router.message(CommandStart())
async def start_handler(message: Message) -> None:
    await message.answer("Pay your internet bill with GCash.\nSend /pay to begin, /cancel to stop.")


@router.message(Command("pay"))
async def pay_start(message: Message) -> None:
    uid = _uid(message)
    if not uid:
        return
    sessions.purge_expired()
    sessions.clear(_draft_key(uid))
    sessions.set(_stage_key(uid), {"stage": STAGE_ACCOUNT}, ttl=STAGE_TTL_SECONDS)
    logger.info("pay.start", extra={"extra": {"uid": uid}})
    await message.answer("Step 1 of 2\nEnter your account number:")


@router.message(Command("cancel"))
async def pay_cancel(message: Message) -> None:
    uid = _uid(message)
    if not uid:
        return
    sessions.clear(_stage_key(uid))
    sessions.clear(_draft_key(uid))
    await message.answer("❌ Payment cancelled.")


@router.message(_in_stage(STAGE_ACCOUNT))
async def pay_account_number(message: Message) -> None:
    uid = _uid(message)
    account_number = (message.text or "").strip()
    if not account_number:
        await message.answer("Account number is required.")
        return
    sessions.set(_stage_key(uid), {"stage": STAGE_AMOUNT, "account_number": account_number}, ttl=STAGE_TTL_SECONDS)
    await message.answer("Enter the amount you will pay (PHP):")


@router.message(_in_stage(STAGE_AMOUNT))
async def pay_amount(message: Message) -> None:
    uid = _uid(message)
    st = _stage(message) or {}
    account_number = str(st.get("account_number") or "")
    amount = (message.text or "").strip().translate(_DIGIT_MAP)
    config = read_plugin_config()
    client = await get_client()
    try:
        draft = await _workflow(client, config).verify_account(_draft_key(uid), account_number, amount)
    except ValidationError as e:
        # account number is already in hand; only the amount can be wrong here
        await message.answer(f"❌ {e.message}\nEnter the amount you will pay (PHP):")
        return
    except IntakeError as e:
        sessions.set(_stage_key(uid), {"stage": STAGE_ACCOUNT}, ttl=STAGE_TTL_SECONDS)
        await message.answer(f"❌ {e.message}\nEnter your account number:")
        return
    finally:
        await client.aclose()

    sessions.set(_stage_key(uid), {"stage": STAGE_REFERENCE}, ttl=STAGE_TTL_SECONDS)
    acc = _account_for(draft, config)
    text = _step2_text(draft)
    if acc and acc.qr_code:
        try:
            await message.answer_photo(photo=acc.qr_code, caption=text)
            return
        except Exception as e:
            logger.warning("pay.qr_image_failed", extra={"extra": {"err": str(e)}})
    if draft.gcash_number:
        png = generate_qr_png(draft.gcash_number)
        await message.answer_photo(photo=BufferedInputFile(png, filename="gcash.png"), caption=text)
        return
    await message.answer(text)


@router.message(_in_stage(STAGE_REFERENCE))
async def pay_reference(message: Message) -> None:
    uid = _uid(message)
    reference = (message.text or "").strip()
    try:
        claim = _workflow(config={}).submit_reference(_draft_key(uid), reference)
    except SessionExpired as e:
        sessions.set(_stage_key(uid), {"stage": STAGE_ACCOUNT}, ttl=STAGE_TTL_SECONDS)
        await message.answer(f"❌ {e.message}\nStep 1 of 2\nEnter your account number:")
        return
    except (ValidationError, DuplicateReference) as e:
        await message.answer(f"❌ {e.message}\nReply with the GCash reference number.")
        return
    except StorageError as e:
        await message.answer(f"❌ {e.message} Please try again later.")
        return

    sessions.clear(_stage_key(uid))
    await message.answer(
        f"✅ Payment submitted successfully! Reference: {claim.reference_number}. Please wait for verification."
    )
    await notify_new_claim(claim)


@router.message(F.text & ~F.text.startswith("/"))
async def pay_fallback(message: Message) -> None:
    await message.answer("Send /pay to submit a GCash payment.")
