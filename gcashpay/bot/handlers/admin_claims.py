from __future__ import annotations

import logging
from typing import Any, Optional

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message

from gcashpay.config import read_plugin_config, settings
from gcashpay.errors import StorageError, ValidationError
from gcashpay.models import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED, PaymentClaim
from gcashpay.services.review import FILTER_ALL, ClaimSummary, ReviewResult, ReviewWorkflow
from gcashpay.services.security import actor_name, is_admin_uid
from gcashpay.storage.record_store import get_store
from gcashpay.uisp.client import get_client
from gcashpay.utils.money import pesos

router = Router()
logger = logging.getLogger(__name__)

PAGE_SIZE = 10
NO_ACCESS = "⛔️ Access denied."


def _status_emoji(st: str) -> str:
    return {
        STATUS_PENDING: "🕒",
        STATUS_APPROVED: "✅",
        STATUS_REJECTED: "❌",
    }.get((st or "").lower(), "ℹ️")


def _workflow(api: Any = None) -> ReviewWorkflow:
    return ReviewWorkflow(get_store(), api, read_plugin_config())


def summary_text(summary: ClaimSummary, status_filter: str) -> str:
    c, t = summary.counts, summary.totals
    return (
        f"💳 GCash payments • {status_filter}\n"
        f"🕒 Pending: {c.get(STATUS_PENDING, 0)} ({pesos(t.get(STATUS_PENDING, 0))})\n"
        f"✅ Approved: {c.get(STATUS_APPROVED, 0)} ({pesos(t.get(STATUS_APPROVED, 0))})\n"
        f"❌ Rejected: {c.get(STATUS_REJECTED, 0)}\n"
        f"Σ All: {c.get(FILTER_ALL, 0)}"
    )


def claim_text(claim: PaymentClaim) -> str:
    lines = [
        f"{_status_emoji(claim.status)} {claim.id} | {claim.status}",
        f"Client: {claim.client_name} ({claim.account_number})",
        f"Amount: {pesos(claim.amount)}",
        f"Ref: {claim.reference_number}",
        f"GCash: {claim.gcash_name} {claim.gcash_number}".rstrip(),
        f"Submitted: {claim.created_at}",
    ]
    if claim.approved_at:
        lines.append(f"Approved: {claim.approved_at} by {claim.approved_by} • UISP #{claim.uisp_payment_id}")
    if claim.rejected_at:
        lines.append(f"Rejected: {claim.rejected_at} by {claim.rejected_by}")
    return "\n".join(lines)


def claim_keyboard(claim: PaymentClaim) -> InlineKeyboardMarkup:
    if claim.is_pending:
        row = [
            InlineKeyboardButton(text="Approve ✅", callback_data=f"claim:approve:{claim.id}"),
            InlineKeyboardButton(text="Reject ❌", callback_data=f"claim:reject:{claim.id}"),
        ]
    else:
        row = [InlineKeyboardButton(text="Delete 🗑", callback_data=f"claim:delete:{claim.id}")]
    return InlineKeyboardMarkup(inline_keyboard=[row])


@router.message(Command("claims"))
async def admin_claims_list(message: Message, command: Optional[CommandObject] = None) -> None:
    if not (message.from_user and is_admin_uid(message.from_user.id)):
        await message.answer(NO_ACCESS)
        return
    status_filter = ((command.args if command else None) or STATUS_PENDING).strip().lower()
    wf = _workflow()
    try:
        claims = wf.list_claims(status_filter)
        summary = wf.summarize()
    except ValidationError as e:
        await message.answer(f"{e.message}\nUse: /claims [pending|approved|rejected|all]")
        return
    except StorageError as e:
        await message.answer(f"❌ {e.message}")
        return
    await message.answer(summary_text(summary, status_filter))
    if not claims:
        await message.answer("No payments to show.")
        return
    for claim in claims[:PAGE_SIZE]:
        await message.answer(claim_text(claim), reply_markup=claim_keyboard(claim))
    if len(claims) > PAGE_SIZE:
        await message.answer(f"… and {len(claims) - PAGE_SIZE} more.")


def _claim_id(cb: CallbackQuery) -> Optional[str]:
    parts = (cb.data or "").split(":", 2)
    return parts[2] if len(parts) == 3 and parts[2] else None


async def _finish(cb: CallbackQuery, result: ReviewResult, label: str) -> None:
    if result.ignored:
        await cb.answer("Already processed or not found", show_alert=True)
        return
    if result.failed:
        await cb.answer(result.message[:200], show_alert=True)
        return
    try:
        if result.claim is not None and label != "Deleted":
            await cb.message.edit_text(claim_text(result.claim), reply_markup=claim_keyboard(result.claim))
        else:
            await cb.message.edit_text((cb.message.text or "") + f"\n\n{label}")
    except Exception:
        pass
    await cb.answer(result.message or label)


@router.callback_query(F.data.startswith("claim:approve:"))
async def cb_claim_approve(cb: CallbackQuery) -> None:
    if not (cb.from_user and is_admin_uid(cb.from_user.id)):
        await cb.answer(NO_ACCESS, show_alert=True)
        return
    claim_id = _claim_id(cb)
    if not claim_id:
        await cb.answer("Invalid id", show_alert=True)
        return
    client = await get_client()
    try:
        result = await _workflow(client).approve(claim_id, actor_name(cb.from_user), actor_id=settings.uisp_user_id)
    finally:
        await client.aclose()
    logger.info("admin.claim_approve", extra={"extra": {"id": claim_id, "outcome": result.outcome, "uid": cb.from_user.id}})
    await _finish(cb, result, "Approved")


@router.callback_query(F.data.startswith("claim:reject:"))
async def cb_claim_reject(cb: CallbackQuery) -> None:
    if not (cb.from_user and is_admin_uid(cb.from_user.id)):
        await cb.answer(NO_ACCESS, show_alert=True)
        return
    claim_id = _claim_id(cb)
    if not claim_id:
        await cb.answer("Invalid id", show_alert=True)
        return
    result = _workflow().reject(claim_id, actor_name(cb.from_user))
    logger.info("admin.claim_reject", extra={"extra": {"id": claim_id, "outcome": result.outcome, "uid": cb.from_user.id}})
    await _finish(cb, result, "Rejected")


@router.callback_query(F.data.startswith("claim:delete:"))
async def cb_claim_delete(cb: CallbackQuery) -> None:
    if not (cb.from_user and is_admin_uid(cb.from_user.id)):
        await cb.answer(NO_ACCESS, show_alert=True)
        return
    claim_id = _claim_id(cb)
    if not claim_id:
        await cb.answer("Invalid id", show_alert=True)
        return
    result = _workflow().delete(claim_id)
    logger.info("admin.claim_delete", extra={"extra": {"id": claim_id, "outcome": result.outcome, "uid": cb.from_user.id}})
    await _finish(cb, result, "Deleted")
