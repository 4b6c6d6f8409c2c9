from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP


def pesos(amount: int | float | Decimal) -> str:
    d = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"₱{d:,}"
