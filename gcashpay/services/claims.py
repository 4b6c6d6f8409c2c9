from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from gcashpay.errors import (
    AccountNotFound,
    DirectoryLookupError,
    DuplicateReference,
    SessionExpired,
    ValidationError,
)
from gcashpay.models import STATUS_PENDING, ClaimDraft, PaymentClaim, new_claim_id, to_decimal
from gcashpay.services.account_selector import receiving_accounts, select_active_account
from gcashpay.storage.record_store import RecordStore
from gcashpay.utils.session_store import SessionStore
from gcashpay.utils.time import format_timestamp, today

logger = logging.getLogger(__name__)


def client_display_name(client: Mapping[str, Any]) -> str:
    name = f"{client.get('firstName') or ''} {client.get('lastName') or ''}".strip()
    return name or str(client.get("companyName") or "").strip()


class ClaimWorkflow:
    """Public two-step submission: identify the payer, then record the reference.

    Step 1 state lives in ``sessions`` under a caller-supplied key and expires
    with the store's TTL; step 2 turns it into a persisted pending claim.
    """

    def __init__(
        self,
        store: RecordStore,
        sessions: SessionStore,
        api: Any,
        config: Optional[Mapping[str, Any]] = None,
        tz: Optional[str] = None,
    ) -> None:
        self.store = store
        self.sessions = sessions
        self.api = api
        self.config: Mapping[str, Any] = config or {}
        self.tz = tz

    async def verify_account(
        self,
        session_key: str,
        account_number: str,
        amount: Any,
        *,
        day: Optional[int] = None,
    ) -> ClaimDraft:
        account_number = (account_number or "").strip()
        if not account_number:
            raise ValidationError("Account number is required.")
        try:
            value = to_decimal(str(amount).strip().replace(",", "") if amount is not None else "")
        except ValueError:
            raise ValidationError("Please enter a valid amount.") from None
        if value <= 0:
            raise ValidationError("Please enter a valid amount.")

        client = await self._find_client(account_number)
        if client is None:
            logger.info("claim.account_not_found", extra={"extra": {"account": account_number}})
            raise AccountNotFound()

        account = select_active_account(
            receiving_accounts(self.config),
            day if day is not None else today(self.tz).day,
        )
        draft = ClaimDraft(
            client_id=client.get("id"),
            client_name=client_display_name(client),
            account_number=account_number,
            amount=value,
            gcash_number=account.number,
            gcash_name=account.name,
        )
        self.sessions.set(session_key, draft.to_payload())
        logger.info(
            "claim.step1_ok",
            extra={"extra": {"client_id": draft.client_id, "amount": str(value), "gcash_slot": account.slot}},
        )
        return draft

    async def _find_client(self, account_number: str) -> Optional[Dict[str, Any]]:
        try:
            clients = await self.api.list_clients()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("claim.client_lookup_failed", extra={"extra": {"err": str(e)}})
            raise DirectoryLookupError() from e
        if not isinstance(clients, list):
            logger.warning("claim.client_lookup_malformed", extra={"extra": {"type": type(clients).__name__}})
            raise DirectoryLookupError()
        for client in clients:
            # exact, case-sensitive match on the customer's account number
            if isinstance(client, dict) and client.get("userIdent") == account_number:
                return client
        return None

    def current_draft(self, session_key: str) -> Optional[ClaimDraft]:
        payload = self.sessions.get(session_key)
        if not payload:
            return None
        try:
            return ClaimDraft.from_payload(payload)
        except (KeyError, ValueError):
            self.sessions.clear(session_key)
            return None

    def submit_reference(self, session_key: str, reference_number: str) -> PaymentClaim:
        reference_number = (reference_number or "").strip()
        if not reference_number:
            raise ValidationError("GCash reference number is required.")
        draft = self.current_draft(session_key)
        if draft is None:
            raise SessionExpired()

        records = self.store.load_all()
        if any(r.reference_number == reference_number for r in records):
            logger.info("claim.duplicate_reference", extra={"extra": {"ref": reference_number}})
            raise DuplicateReference()

        claim = PaymentClaim(
            id=new_claim_id(),
            client_id=draft.client_id,
            client_name=draft.client_name,
            account_number=draft.account_number,
            amount=draft.amount,
            reference_number=reference_number,
            status=STATUS_PENDING,
            created_at=format_timestamp(),
            gcash_number=draft.gcash_number,
            gcash_name=draft.gcash_name,
        )
        records.append(claim)
        self.store.save_all(records)
        self.sessions.clear(session_key)
        logger.info(
            "claim.submitted",
            extra={"extra": {"id": claim.id, "client_id": claim.client_id, "ref": reference_number}},
        )
        return claim

    def cancel(self, session_key: str) -> None:
        self.sessions.clear(session_key)
