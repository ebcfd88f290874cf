# Overview: Pure totals calculation for document line items.

"""
Totals Calculator

subtotal = sum(quantity * unit_price_cents)
tax      = round_half_up(subtotal * tax_rate_bps / 10000), or 0 when disabled
total    = subtotal + tax

Integer cents in, integer cents out. Order independent, no I/O, no
validation (callers validate at the boundary).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class Totals:
    subtotal_cents: int
    tax_cents: int
    total_cents: int

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
        }


def _field(item: Any, name: str) -> int:
    if isinstance(item, dict):
        return item[name]
    return getattr(item, name)


def line_amount_cents(quantity: int, unit_price_cents: int) -> int:
    return quantity * unit_price_cents


def tax_for(subtotal_cents: int, tax_rate_bps: int) -> int:
    """Half-up rounding to the cent, done in integers to avoid float drift."""
    numerator = subtotal_cents * tax_rate_bps
    return (numerator + BPS_DENOMINATOR // 2) // BPS_DENOMINATOR


def calculate_totals(items: Iterable[Any], *, tax_enabled: bool, tax_rate_bps: int) -> Totals:
    subtotal = sum(
        line_amount_cents(_field(item, "quantity"), _field(item, "unit_price_cents"))
        for item in items
    )
    tax = tax_for(subtotal, tax_rate_bps) if tax_enabled else 0
    return Totals(subtotal_cents=subtotal, tax_cents=tax, total_cents=subtotal + tax)
