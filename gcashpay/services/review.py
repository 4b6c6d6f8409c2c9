from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from gcashpay.errors import ExternalApiError, StorageError, ValidationError
from gcashpay.models import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    STATUSES,
    PaymentClaim,
)
from gcashpay.storage.record_store import RecordStore
from gcashpay.utils.time import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

OUTCOME_OK = "ok"
OUTCOME_IGNORED = "ignored"
OUTCOME_FAILED = "failed"

FILTER_ALL = "all"

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


@dataclass
class ReviewResult:
    outcome: str
    message: str = ""
    claim: Optional[PaymentClaim] = None

    @property
    def ok(self) -> bool:
        return self.outcome == OUTCOME_OK

    @property
    def ignored(self) -> bool:
        return self.outcome == OUTCOME_IGNORED

    @property
    def failed(self) -> bool:
        return self.outcome == OUTCOME_FAILED


@dataclass
class ClaimSummary:
    counts: Dict[str, int] = field(default_factory=dict)
    totals: Dict[str, Decimal] = field(default_factory=dict)


def _ignored(claim: Optional[PaymentClaim] = None) -> ReviewResult:
    return ReviewResult(OUTCOME_IGNORED, "", claim)


def build_payment_note(reference_number: str) -> str:
    return f"GCash Payment - Ref: {reference_number}"


class ReviewWorkflow:
    """Admin side of the claim lifecycle: approve, reject, delete, list.

    Transitions that do not apply (unknown id, claim no longer pending) come
    back as ``ignored`` and write nothing.
    """

    def __init__(self, store: RecordStore, api: Any, config: Optional[Mapping[str, Any]] = None) -> None:
        self.store = store
        self.api = api
        self.config: Mapping[str, Any] = config or {}

    # ----- read path -----

    def get(self, claim_id: str) -> Optional[PaymentClaim]:
        for claim in self.store.load_all():
            if claim.id == claim_id:
                return claim
        return None

    def list_claims(self, status_filter: str = STATUS_PENDING) -> List[PaymentClaim]:
        status_filter = (status_filter or STATUS_PENDING).strip().lower()
        if status_filter != FILTER_ALL and status_filter not in STATUSES:
            raise ValidationError(f"Unknown filter: {status_filter}")
        records = self.store.load_all()
        if status_filter != FILTER_ALL:
            records = [r for r in records if r.status == status_filter]
        # newest first; sorted() is stable so equal timestamps keep file order
        return sorted(records, key=lambda r: parse_timestamp(r.created_at) or datetime.min, reverse=True)

    def summarize(self) -> ClaimSummary:
        records = self.store.load_all()
        summary = ClaimSummary(
            counts={s: 0 for s in STATUSES},
            totals={s: Decimal("0") for s in STATUSES},
        )
        for r in records:
            if r.status in summary.counts:
                summary.counts[r.status] += 1
                summary.totals[r.status] += r.amount
        summary.counts[FILTER_ALL] = len(records)
        return summary

    # ----- transitions -----

    def _locate(self, claim_id: str) -> Tuple[List[PaymentClaim], Optional[int]]:
        records = self.store.load_all()
        for idx, claim in enumerate(records):
            if claim.id == claim_id:
                return records, idx
        return records, None

    async def resolve_method_id(self) -> Optional[str]:
        selector = str(self.config.get("paymentMethodId") or "").strip()
        if not selector:
            return None
        if _UUID_RE.match(selector):
            return selector
        try:
            methods = await self.api.list_payment_methods()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("review.payment_method_lookup_failed", extra={"extra": {"selector": selector, "err": str(e)}})
            return None
        for method in methods if isinstance(methods, list) else []:
            if isinstance(method, dict) and str(method.get("name") or "").lower() == selector.lower():
                return method.get("id")
        logger.info("review.payment_method_not_found", extra={"extra": {"selector": selector}})
        return None

    async def build_payment_request(self, claim: PaymentClaim, actor_id: Any = None) -> Dict[str, Any]:
        try:
            client_id: Any = int(claim.client_id)
        except (TypeError, ValueError):
            client_id = claim.client_id
        request: Dict[str, Any] = {
            "clientId": client_id,
            "amount": float(claim.amount),
            "note": build_payment_note(claim.reference_number),
            "applyToInvoicesAutomatically": True,
            "userId": actor_id,
        }
        method_id = await self.resolve_method_id()
        if method_id:
            request["methodId"] = method_id
        return request

    async def approve(self, claim_id: str, actor: str, *, actor_id: Any = None) -> ReviewResult:
        try:
            records, idx = self._locate(claim_id)
        except StorageError as e:
            return ReviewResult(OUTCOME_FAILED, e.message)
        if idx is None or not records[idx].is_pending:
            return _ignored(records[idx] if idx is not None else None)
        claim = records[idx]

        payload = await self.build_payment_request(claim, actor_id)
        try:
            response = await self.api.create_payment(payload)
        except (httpx.HTTPError, ValueError, ExternalApiError) as e:
            logger.warning("review.approve_api_failed", extra={"extra": {"id": claim_id, "err": str(e)}})
            return ReviewResult(OUTCOME_FAILED, f"Error: {e}", claim)
        payment_id = response.get("id") if isinstance(response, dict) else None
        if not payment_id:
            err = ExternalApiError()
            logger.warning("review.approve_no_payment_id", extra={"extra": {"id": claim_id}})
            return ReviewResult(OUTCOME_FAILED, err.message, claim)

        claim.status = STATUS_APPROVED
        claim.uisp_payment_id = payment_id
        claim.approved_at = format_timestamp()
        claim.approved_by = actor or "admin"
        try:
            self.store.save_all(records)
        except StorageError as e:
            # the payment already exists in UISP; keep enough in the log to reconcile by hand
            logger.error(
                "review.approve_save_failed",
                extra={"extra": {"id": claim_id, "uisp_payment_id": payment_id, "err": e.message}},
            )
            return ReviewResult(OUTCOME_FAILED, f"Payment {payment_id} was created in UISP but could not be recorded: {e.message}")
        logger.info("review.approved", extra={"extra": {"id": claim_id, "uisp_payment_id": payment_id, "by": claim.approved_by}})
        return ReviewResult(OUTCOME_OK, f"Payment approved and posted to UISP! Payment ID: {payment_id}", claim)

    def reject(self, claim_id: str, actor: str) -> ReviewResult:
        try:
            records, idx = self._locate(claim_id)
            if idx is None or not records[idx].is_pending:
                return _ignored(records[idx] if idx is not None else None)
            claim = records[idx]
            claim.status = STATUS_REJECTED
            claim.rejected_at = format_timestamp()
            claim.rejected_by = actor or "admin"
            self.store.save_all(records)
        except StorageError as e:
            return ReviewResult(OUTCOME_FAILED, e.message)
        logger.info("review.rejected", extra={"extra": {"id": claim_id, "by": claim.rejected_by}})
        return ReviewResult(OUTCOME_OK, "Payment rejected.", claim)

    def delete(self, claim_id: str) -> ReviewResult:
        try:
            records, idx = self._locate(claim_id)
            if idx is None:
                return _ignored()
            claim = records.pop(idx)
            self.store.save_all(records)
        except StorageError as e:
            return ReviewResult(OUTCOME_FAILED, e.message)
        logger.info("review.deleted", extra={"extra": {"id": claim_id, "status": claim.status}})
        return ReviewResult(OUTCOME_OK, "Payment record deleted.", claim)
