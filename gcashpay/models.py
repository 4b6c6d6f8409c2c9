from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)

# JSON key -> attribute name, in the order records are written to disk
_FIELD_MAP = (
    ("id", "id"),
    ("clientId", "client_id"),
    ("clientName", "client_name"),
    ("accountNumber", "account_number"),
    ("amount", "amount"),
    ("referenceNumber", "reference_number"),
    ("status", "status"),
    ("createdAt", "created_at"),
    ("gcashNumber", "gcash_number"),
    ("gcashName", "gcash_name"),
    ("uispPaymentId", "uisp_payment_id"),
    ("approvedAt", "approved_at"),
    ("approvedBy", "approved_by"),
    ("rejectedAt", "rejected_at"),
    ("rejectedBy", "rejected_by"),
)
_REQUIRED = ("id", "clientId", "amount", "referenceNumber", "status")
_LIFECYCLE_KEYS = ("uispPaymentId", "approvedAt", "approvedBy", "rejectedAt", "rejectedBy")
_KNOWN_KEYS = {k for k, _ in _FIELD_MAP}


def new_claim_id() -> str:
    return f"gcash_{uuid.uuid4().hex[:13]}"


def to_decimal(value: Any) -> Decimal:
    """Decimal from a JSON number or numeric string. Raises ValueError."""
    if isinstance(value, bool):
        raise ValueError("amount must be numeric")
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"not a number: {value!r}") from e
    if not d.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return d


def _json_number(d: Decimal) -> int | float:
    if d == d.to_integral_value():
        return int(d)
    return float(d)


@dataclass
class PaymentClaim:
    id: str
    client_id: Any
    amount: Decimal
    reference_number: str
    status: str = STATUS_PENDING
    client_name: str = ""
    account_number: str = ""
    created_at: str = ""
    gcash_number: str = ""
    gcash_name: str = ""
    uisp_payment_id: Optional[Any] = None
    approved_at: Optional[str] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[str] = None
    rejected_by: Optional[str] = None
    # Keys found on disk that this model does not know about
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentClaim":
        missing = [k for k in _REQUIRED if k not in data]
        if missing:
            raise ValueError(f"missing fields: {', '.join(missing)}")
        kwargs: Dict[str, Any] = {}
        for key, attr in _FIELD_MAP:
            if key in data:
                kwargs[attr] = data[key]
        kwargs["id"] = str(data["id"])
        kwargs["amount"] = to_decimal(data["amount"])
        kwargs["reference_number"] = str(data["referenceNumber"])
        # unknown keys and explicit lifecycle nulls are carried through untouched
        kwargs["extra"] = {
            k: v for k, v in data.items() if k not in _KNOWN_KEYS or (k in _LIFECYCLE_KEYS and v is None)
        }
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for key, attr in _FIELD_MAP:
            value = getattr(self, attr)
            if key == "amount":
                value = _json_number(value)
            elif value is None and key in _LIFECYCLE_KEYS:
                # only written once set
                continue
            out[key] = value
        for key, value in self.extra.items():
            out.setdefault(key, value)
        return out


@dataclass
class ReceivingAccount:
    slot: int
    number: str = ""
    name: str = ""
    qr_code: str = ""
    active_days: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.number.strip() and self.name.strip())


@dataclass
class ClaimDraft:
    """Step-1 state of a submission, kept in the session store until step 2."""

    client_id: Any
    client_name: str
    account_number: str
    amount: Decimal
    gcash_number: str = ""
    gcash_name: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return {
            "client_id": self.client_id,
            "client_name": self.client_name,
            "account_number": self.account_number,
            "amount": str(self.amount),
            "gcash_number": self.gcash_number,
            "gcash_name": self.gcash_name,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ClaimDraft":
        return cls(
            client_id=payload["client_id"],
            client_name=str(payload.get("client_name") or ""),
            account_number=str(payload.get("account_number") or ""),
            amount=to_decimal(payload["amount"]),
            gcash_number=str(payload.get("gcash_number") or ""),
            gcash_name=str(payload.get("gcash_name") or ""),
        )
