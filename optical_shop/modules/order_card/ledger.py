from __future__ import annotations

from .record import LineItem
from ...utils.validators import (
    ValidationError,
    non_empty,
    parse_float,
    is_strictly_positive_number,
)


def item_base(item: LineItem) -> float:
    return float(item.rate) * int(item.qty)


def item_tax(item: LineItem) -> float:
    return item_base(item) * float(item.tax_percent) / 100.0


def item_total(item: LineItem) -> float:
    """Rate x qty plus tax, before any discount."""
    return item_base(item) + item_tax(item)


def _parse_qty(value) -> int:
    number = parse_float(value, "Quantity")
    if not float(number).is_integer():
        raise ValidationError("Quantity must be a whole number.")
    if number < 1:
        raise ValidationError("Quantity must be at least 1.")
    return int(number)


def _settle(item: LineItem, discount_amount: float, total: float) -> None:
    # amount + discount_amount == total, discount within [0, total]
    discount_amount = min(max(0.0, discount_amount), total)
    item.discount_amount = round(discount_amount, 2)
    item.discount_percent = round(discount_amount / total * 100.0, 2) if total else 0.0
    item.amount = round(total - discount_amount, 2)


class LineItemLedger:
    """
    Add/update/remove line items on a record's item list, in place.

    Every numeric edit leaves the item satisfying
        amount == rate*qty + tax - discount_amount
    with discount_amount clamped to [0, rate*qty + tax].
    """

    def __init__(self, items: list, item_cls: type = LineItem):
        self.items = items
        self.item_cls = item_cls

    def _at(self, index: int) -> LineItem:
        if not 0 <= index < len(self.items):
            raise IndexError(f"No item at position {index}.")
        return self.items[index]

    def add_item(self, item_name: str, rate, qty=None, *, item_code: str = "", **extra) -> LineItem:
        if not non_empty(item_name):
            raise ValidationError("Please enter an item name.")
        if not is_strictly_positive_number(rate):
            raise ValidationError("Please enter a valid rate greater than zero.")
        unknown = set(extra) - set(self.item_cls.TEXT_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown item field(s): {', '.join(sorted(unknown))}.")

        qty_i = 1 if qty in (None, "") else _parse_qty(qty)
        rate_f = float(rate)

        item = self.item_cls(
            si=len(self.items) + 1,
            item_code=item_code or "",
            item_name=str(item_name).strip(),
            rate=rate_f,
            qty=qty_i,
            amount=round(rate_f * qty_i, 2),
            **{k: "" if v is None else str(v) for k, v in extra.items()},
        )
        self.items.append(item)
        return item

    def update_item_field(self, index: int, field: str, value) -> LineItem:
        item = self._at(index)

        if field in item.NUMERIC_FIELDS:
            if field == "qty":
                item.qty = _parse_qty(value)
            else:
                number = parse_float(value, field.replace("_", " ").capitalize())
                if number < 0:
                    raise ValidationError(f"{field.replace('_', ' ').capitalize()} cannot be negative.")
                setattr(item, field, number)
            _settle(item, float(item.discount_amount), item_total(item))

        elif field == "discount_percent":
            total = item_total(item)
            if total == 0:
                return item
            pct = min(100.0, max(0.0, parse_float(value, "Discount %")))
            _settle(item, total * pct / 100.0, total)

        elif field == "discount_amount":
            total = item_total(item)
            if total == 0:
                return item
            _settle(item, parse_float(value, "Discount"), total)

        elif field in item.TEXT_FIELDS:
            setattr(item, field, "" if value is None else str(value))

        else:
            raise ValidationError(f"Unknown item field '{field}'.")
        return item

    def remove_item(self, index: int) -> LineItem:
        # remaining si values are kept as assigned
        item = self._at(index)
        del self.items[index]
        return item
