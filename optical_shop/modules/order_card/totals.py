"""
order_card/totals.py

Pure payment math for an order card: estimate, tax, discount, advance and
balance from the line items and the three raw advance inputs.

Only the raw advance channels are read; the aggregated advance is an output
and never feeds back in. Formatting belongs in the form.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable

from ...constants import DISCOUNT_PERCENTAGE, DISCOUNT_FIXED
from ...utils.formatters import parse_amount
from ...utils.validators import ValidationError, parse_float
from .ledger import item_base, item_tax, item_total
from .record import OrderRecord

__all__ = [
    "Totals",
    "clamp_non_negative",
    "compute_totals",
    "recompute_totals",
    "apply_bulk_discount",
]


@dataclass(frozen=True)
class Totals:
    base_amount: float
    tax_total: float
    discount_total: float
    estimate: float
    final_amount: float
    total_advance: float
    balance: float


def clamp_non_negative(x: float) -> float:
    """Return x if x > 0, else 0.0."""
    return x if x > 0.0 else 0.0


def compute_totals(
    items: Iterable,
    cash,
    card_upi,
    other,
    previous_advance: float = 0.0,
) -> Totals:
    """
    base     = sum(rate*qty)
    tax      = sum(rate*qty*tax%/100)
    discount = sum(discount_amount)
    estimate = base + tax
    final    = estimate - discount
    advance  = previous_advance + cash + card_upi + other   (blank -> 0)
    balance  = max(0, final - advance)

    All outputs rounded to 2 decimals.
    """
    items = list(items)
    base = sum(item_base(i) for i in items)
    tax = sum(item_tax(i) for i in items)
    discount = sum(float(i.discount_amount) for i in items)
    estimate = base + tax
    final = estimate - discount
    advance = (
        float(previous_advance or 0.0)
        + parse_amount(cash)
        + parse_amount(card_upi)
        + parse_amount(other)
    )
    balance = clamp_non_negative(final - advance)
    return Totals(
        base_amount=round(base, 2),
        tax_total=round(tax, 2),
        discount_total=round(discount, 2),
        estimate=round(estimate, 2),
        final_amount=round(final, 2),
        total_advance=round(advance, 2),
        balance=round(balance, 2),
    )


def recompute_totals(record: OrderRecord) -> OrderRecord:
    """Return a copy of `record` whose payment carries freshly derived totals."""
    p = record.payment
    t = compute_totals(
        record.items,
        p.cash_advance,
        p.card_upi_advance,
        p.other_advance,
        p.previous_advance,
    )
    payment = replace(
        p,
        estimate=t.estimate,
        tax_total=t.tax_total,
        discount_total=t.discount_total,
        final_amount=t.final_amount,
        total_advance=t.total_advance,
        balance=t.balance,
    )
    return replace(record, payment=payment)


def apply_bulk_discount(items: list, value, discount_type: str) -> float:
    """
    Spread one order-level discount over the items in proportion to each
    item's share of the total with tax. Returns the discount applied.

    Percentage: total_with_tax * value / 100 (value must be <= 100).
    Fixed:      min(value, total_with_tax).
    Existing item discounts are replaced, not added to.
    """
    if discount_type not in (DISCOUNT_PERCENTAGE, DISCOUNT_FIXED):
        raise ValidationError(f"Unknown discount type '{discount_type}'.")
    amount = parse_float(value, "Discount")
    if amount <= 0:
        raise ValidationError("Please enter a discount greater than zero.")
    if discount_type == DISCOUNT_PERCENTAGE and amount > 100:
        raise ValidationError("Discount percentage cannot exceed 100.")

    total_with_tax = sum(item_total(i) for i in items)
    if total_with_tax <= 0:
        raise ValidationError("Add items before applying a discount.")

    if discount_type == DISCOUNT_PERCENTAGE:
        discount = total_with_tax * amount / 100.0
    else:
        discount = min(amount, total_with_tax)

    discount = round(discount, 2)
    shares = [round(discount * item_total(i) / total_with_tax, 2) for i in items]
    # rounding remainder goes to the last item with a non-zero total
    last = max(n for n, i in enumerate(items) if item_total(i) > 0)
    shares[last] = round(shares[last] + discount - sum(shares), 2)

    for item, share in zip(items, shares):
        line_total = item_total(item)
        share = min(max(0.0, share), line_total)
        item.discount_amount = round(share, 2)
        item.discount_percent = round(share / line_total * 100.0, 2) if line_total else 0.0
        item.amount = round(line_total - share, 2)
    return discount
