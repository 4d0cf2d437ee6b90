from __future__ import annotations

import copy
from dataclasses import dataclass, fields, is_dataclass, replace
from datetime import date
import logging
from typing import Callable, Optional

from ...utils.formatters import clean_field_input, compute_ipd, format_date_for_input
from ...utils.helpers import add_months
from ...utils.validators import ValidationError, is_non_negative_number, non_empty
from .identifiers import IdentifierGenerator, resolve_reference_no
from .ledger import LineItemLedger
from .record import LineItem, OrderRecord, PaymentSummary, SearchSuggestion
from .totals import apply_bulk_discount, recompute_totals

_log = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"

Path = tuple

# field path -> input kind for format_date_for_input
DATE_FIELDS = {
    ("date",): "date",
    ("delivery_date",): "datetime-local",
    ("status_date",): "datetime-local",
    ("retest_date",): "date",
    ("expiry_date",): "date",
    ("customer", "birth_day"): "date",
    ("customer", "marriage_anniversary"): "date",
}
PD_FIELDS = {("right_eye", "dv", "pd"), ("left_eye", "dv", "pd")}
ADVANCE_PATHS = {("payment", name) for name in PaymentSummary.ADVANCE_FIELDS}


@dataclass(frozen=True)
class Notice:
    message: str
    severity: str = SUCCESS


def replace_path(obj, path: Path, value):
    """
    Return a copy of the dataclass tree `obj` with the leaf at `path` set to
    `value`; every dataclass along the path is copied, siblings are shared.

        replace_path(record, ("right_eye", "dv", "sph"), "-1.25")
    """
    def _step(node, remaining: Path):
        if not remaining:
            return value
        head, rest = remaining[0], remaining[1:]
        if not is_dataclass(node) or head not in {f.name for f in fields(node)}:
            raise ValidationError(f"Unknown field '{'.'.join(path)}'.")
        return replace(node, **{head: _step(getattr(node, head), rest)})

    return _step(obj, tuple(path))


def get_path(obj, path: Path):
    """Read the leaf at `path`, e.g. get_path(record, ("customer", "name"))."""
    node = obj
    for segment in path:
        node = getattr(node, segment)
    return node


def new_order_record(ids: IdentifierGenerator, today: date) -> OrderRecord:
    prescription_no = ids.prescription_no()
    return OrderRecord(
        prescription_no=prescription_no,
        reference_no=ids.reference_no(prescription_no),
        date=today.isoformat(),
        delivery_date=format_date_for_input(add_months(today, 1).isoformat(), "datetime-local"),
        status_date=format_date_for_input(today.isoformat(), "datetime-local"),
    )


class OrderFormState:
    """
    Owns the single nested OrderRecord behind an order card.

    All edits go through this object. Totals are recomputed synchronously
    after item operations and advance edits; IPD after RPD/LPD edits.
    User-facing outcomes are reported through `notify(Notice)`.
    """

    def __init__(
        self,
        ids: Optional[IdentifierGenerator] = None,
        notify: Optional[Callable[[Notice], None]] = None,
        today: Callable[[], date] = date.today,
        record_factory: Callable[[IdentifierGenerator, date], OrderRecord] = new_order_record,
        item_cls: type = LineItem,
        on_change: Optional[Callable[[OrderRecord], None]] = None,
    ):
        self.ids = ids or IdentifierGenerator()
        self._notify = notify
        self._today = today
        self._record_factory = record_factory
        self.item_cls = item_cls
        self.on_change = on_change
        self._record = record_factory(self.ids, today())

    # ---- record access ----------------------------------------------------

    @property
    def record(self) -> OrderRecord:
        return self._record

    def _set_record(self, record: OrderRecord) -> None:
        self._record = record
        if self.on_change is not None:
            self.on_change(record)

    def _emit(self, message: str, severity: str = SUCCESS) -> None:
        if self._notify is not None:
            self._notify(Notice(message, severity))

    def _ledger(self) -> LineItemLedger:
        return LineItemLedger(self._record.items, self.item_cls)

    # ---- field edits ------------------------------------------------------

    def set_field(self, path: Path, value) -> OrderRecord:
        path = tuple(path)
        if not path:
            raise ValidationError("Empty field path.")
        if path[0] == "items":
            raise ValidationError("Line items are edited through the item operations.")
        if path[0] == "payment" and path not in ADVANCE_PATHS:
            raise ValidationError(f"'{'.'.join(path)}' is calculated and cannot be edited.")

        if path in DATE_FIELDS:
            value = format_date_for_input(value, DATE_FIELDS[path])

        record = replace_path(self._record, path, value)

        if path in PD_FIELDS:
            record = replace(
                record,
                ipd=compute_ipd(record.right_eye.dv.pd, record.left_eye.dv.pd),
            )
        if path in ADVANCE_PATHS:
            record = recompute_totals(record)

        self._set_record(record)
        return record

    def set_numeric_field(self, path: Path, text: str) -> OrderRecord:
        path = tuple(path)
        return self.set_field(path, clean_field_input(path[-1], text))

    def set_flag(self, path: Path, checked: bool) -> OrderRecord:
        return self.set_field(path, bool(checked))

    # ---- items ------------------------------------------------------------

    def add_item(self, item_name: str, rate, qty=None, **extra):
        try:
            item = self._ledger().add_item(item_name, rate, qty, **extra)
        except ValidationError as e:
            self._emit(str(e), ERROR)
            return None
        self._set_record(recompute_totals(self._record))
        self._emit("Manual item added")
        return item

    def update_item(self, index: int, field: str, value):
        try:
            item = self._ledger().update_item_field(index, field, value)
        except (ValidationError, IndexError) as e:
            self._emit(str(e), ERROR)
            return None
        self._set_record(recompute_totals(self._record))
        return item

    def remove_item(self, index: int):
        try:
            item = self._ledger().remove_item(index)
        except IndexError as e:
            self._emit(str(e), ERROR)
            return None
        self._set_record(recompute_totals(self._record))
        self._emit("Item deleted")
        return item

    def apply_discount(self, value, discount_type: str):
        try:
            applied = apply_bulk_discount(self._record.items, value, discount_type)
        except ValidationError as e:
            self._emit(str(e), ERROR)
            return None
        self._set_record(recompute_totals(self._record))
        self._emit("Discount applied successfully!")
        return applied

    # ---- bulk replace / reset ---------------------------------------------

    def load_suggestion(self, suggestion: SearchSuggestion) -> OrderRecord:
        """
        Replace the record with a stored one. Items and the stored payment
        figures are shown as stored; new advances start at 0.00 and are
        added on top of the stored total advance.
        """
        record = copy.deepcopy(suggestion.record)
        snapshot = suggestion.payment_snapshot
        payment = replace(
            snapshot,
            cash_advance="0.00",
            card_upi_advance="0.00",
            other_advance="0.00",
            previous_advance=snapshot.total_advance,
        )
        record = replace(
            record,
            reference_no=resolve_reference_no(record.prescription_no, record.reference_no),
            payment=payment,
        )
        _log.info("Loaded prescription %s (id=%s)", record.prescription_no, suggestion.id)
        self._set_record(record)
        self._emit("Prescription details loaded")
        return record

    def reset(self) -> OrderRecord:
        record = self._record_factory(self.ids, self._today())
        self._set_record(record)
        self._emit("Form cleared")
        return record

    def mark_saved(self, order_id: int, prescription_id: int, order_no: str = "") -> OrderRecord:
        """
        After a successful save the typed advances are stored; fold them into
        previous_advance so saving again does not add them twice. A generated
        order number becomes the reference number so the next save finds the
        same order.
        """
        rec = self._record
        payment = replace(
            rec.payment,
            cash_advance="0.00",
            card_upi_advance="0.00",
            other_advance="0.00",
            previous_advance=rec.payment.total_advance,
        )
        record = replace(rec, payment=payment, order_id=order_id, prescription_id=prescription_id)
        if order_no and not (rec.reference_no or "").strip():
            record = replace(record, reference_no=order_no)
        self._set_record(record)
        return record

    # ---- save gate --------------------------------------------------------

    def validate_for_save(self) -> None:
        rec = self._record
        if not non_empty(rec.prescription_no):
            raise ValidationError("Prescription number is required.")
        labels = {
            "cash_advance": "Cash advance",
            "card_upi_advance": "Card/UPI advance",
            "other_advance": "Other advance",
        }
        for name, label in labels.items():
            raw = getattr(rec.payment, name)
            if non_empty(raw) and not is_non_negative_number(raw):
                raise ValidationError(f"{label} must be a non-negative number.")
