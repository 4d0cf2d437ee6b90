from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
import logging
import sqlite3
from typing import Callable, Optional

from ...constants import DEFAULT_ORDER_STATUS
from ...database.repositories import DomainError, OrdersRepo, PrescriptionsRepo
from ...utils.formatters import format_date_for_input, parse_amount
from .identifiers import IdentifierGenerator, item_type_for
from .record import OrderRecord, VisionReading
from .totals import compute_totals

_log = logging.getLogger(__name__)

# Save steps; each failure message names the step that failed.
LOOKUP_PRESCRIPTION = "Error looking up prescription"
CREATE_PRESCRIPTION = "Failed to create a new prescription"
CHECK_ORDER = "Failed to check for existing order"
CREATE_ORDER = "Failed to create order"
INSERT_ITEMS = "Failed to insert order items"
CREATE_PAYMENT = "Failed to create payment record"
UPDATE_ORDER = "Failed to update order"
DELETE_ITEMS = "Failed to delete order items"
FETCH_PAYMENT = "Failed to fetch current payment"
UPDATE_PAYMENT = "Failed to update payment"

UNNAMED = "Unnamed"
UNKNOWN_PRESCRIBER = "Unknown"

_STORE_ERRORS = (sqlite3.Error, DomainError)


class PersistenceError(Exception):
    """A save step failed. Steps completed before it stay applied."""

    def __init__(self, step: str, detail: str):
        self.step = step
        self.detail = detail
        super().__init__(f"{step}: {detail}")


@dataclass(frozen=True)
class SaveResult:
    order_id: int
    prescription_id: int
    created: bool
    message: str
    order_no: str = ""


def _or_none(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _eye_row(eye: str, vision: str, reading: VisionReading) -> dict:
    return {
        "eye_type": eye,
        "vision_type": vision,
        "sph": _or_none(reading.sph),
        "cyl": _or_none(reading.cyl),
        "ax": _or_none(reading.ax),
        "add_power": _or_none(reading.add),
        "vn": _or_none(reading.vn),
        "rpd": _or_none(reading.pd) if (eye, vision) == ("right", "distance") else None,
        "lpd": _or_none(reading.pd) if (eye, vision) == ("left", "distance") else None,
    }


class PersistenceGateway:
    """
    Maps an OrderRecord onto prescription/order/item/payment rows.

    save():
      1. prescription by number, else create it (with eye rows and remarks)
      2. order by reference number (ORD-<millis> when blank)
      3. new order  -> insert order, items, payment
      4. known order -> update order, replace items, add the newly entered
         advances to the stored ones (accumulate on resubmit)
    """

    def __init__(
        self,
        prescriptions: PrescriptionsRepo,
        orders: OrdersRepo,
        ids: Optional[IdentifierGenerator] = None,
        clock: Callable[[], datetime] = datetime.now,
        item_type: Callable[[str, str], str] = item_type_for,
    ):
        self.prescriptions = prescriptions
        self.orders = orders
        self.ids = ids or IdentifierGenerator(clock=clock)
        self._clock = clock
        self._item_type = item_type

    @contextmanager
    def _step(self, step: str):
        try:
            yield
        except _STORE_ERRORS as e:
            _log.error("%s: %s", step, e)
            raise PersistenceError(step, str(e)) from e

    # ---- row builders -----------------------------------------------------

    def _today(self) -> str:
        return self._clock().date().isoformat()

    def _prescription_row(self, record: OrderRecord) -> dict:
        c = record.customer
        row = {
            "prescription_no": record.prescription_no,
            "reference_no": _or_none(record.reference_no),
            "title": _or_none(c.title),
            "name": _or_none(c.name) or UNNAMED,
            "gender": _or_none(c.gender),
            "age": _or_none(c.age),
            "customer_code": _or_none(c.customer_code),
            "birth_day": _or_none(c.birth_day),
            "marriage_anniversary": _or_none(c.marriage_anniversary),
            "address": _or_none(c.address),
            "city": _or_none(c.city),
            "state": _or_none(c.state),
            "pin_code": _or_none(c.pin_code),
            "phone_landline": _or_none(c.phone_landline),
            "mobile_no": _or_none(c.mobile_no),
            "email": _or_none(c.email),
            "ipd": _or_none(record.ipd),
            "prescribed_by": _or_none(c.prescribed_by) or UNKNOWN_PRESCRIBER,
            "class": _or_none(c.class_name),
            "booking_by": _or_none(c.booking_by),
            "balance_lens": 1 if record.balance_lens else 0,
            "date": format_date_for_input(record.date) or self._today(),
            "retest_after": _or_none(record.retest_date),
        }
        expiry = getattr(record, "expiry_date", None)
        if expiry is not None:
            row["expiry_date"] = _or_none(expiry)
        return row

    @staticmethod
    def _eye_rows(record: OrderRecord) -> list[dict]:
        return [
            _eye_row("right", "distance", record.right_eye.dv),
            _eye_row("right", "near", record.right_eye.nv),
            _eye_row("left", "distance", record.left_eye.dv),
            _eye_row("left", "near", record.left_eye.nv),
        ]

    def _order_row(self, record: OrderRecord, prescription_id: int, order_no: str) -> dict:
        return {
            "prescription_id": prescription_id,
            "order_no": order_no,
            "bill_no": _or_none(record.bill_no),
            "order_date": format_date_for_input(record.date) or self._today(),
            "delivery_date": format_date_for_input(record.delivery_date) or self._today(),
            "status": record.order_status or DEFAULT_ORDER_STATUS,
            "status_date": _or_none(record.status_date),
        }

    def _item_rows(self, record: OrderRecord) -> list[dict]:
        return [
            {**item.to_row(), "item_type": self._item_type(item.item_code, item.item_name)}
            for item in record.items
        ]

    @staticmethod
    def _payment_row(record: OrderRecord, cash: float, card_upi: float, other: float) -> dict:
        # advance and balance are always written explicitly
        t = compute_totals(record.items, cash, card_upi, other)
        return {
            "payment_estimate": t.estimate,
            "tax_amount": t.tax_total,
            "discount_amount": t.discount_total,
            "final_amount": t.final_amount,
            "advance_cash": round(cash, 2),
            "advance_card_upi": round(card_upi, 2),
            "advance_other": round(other, 2),
            "total_advance": t.total_advance,
            "balance": t.balance,
        }

    # ---- save -------------------------------------------------------------

    def save(self, record: OrderRecord) -> SaveResult:
        with self._step(LOOKUP_PRESCRIPTION):
            prescription_id = self.prescriptions.find_id_by_number(record.prescription_no)

        if prescription_id is None:
            with self._step(CREATE_PRESCRIPTION):
                prescription_id = self.prescriptions.create(
                    self._prescription_row(record),
                    self._eye_rows(record),
                    record.remarks.codes(),
                )
            _log.info("Created prescription %s (id=%s)", record.prescription_no, prescription_id)

        order_no = (record.reference_no or "").strip() or self.ids.order_no()
        with self._step(CHECK_ORDER):
            order_id = self.orders.find_id_by_order_no(order_no)

        header = self._order_row(record, prescription_id, order_no)
        items = self._item_rows(record)
        p = record.payment
        new_cash = parse_amount(p.cash_advance)
        new_card = parse_amount(p.card_upi_advance)
        new_other = parse_amount(p.other_advance)

        if order_id is None:
            with self._step(CREATE_ORDER):
                order_id = self.orders.create(header)
            if items:
                with self._step(INSERT_ITEMS):
                    self.orders.insert_items(order_id, items)
            with self._step(CREATE_PAYMENT):
                self.orders.insert_payment(
                    order_id, self._payment_row(record, new_cash, new_card, new_other)
                )
            _log.info("Saved new order %s (id=%s)", order_no, order_id)
            return SaveResult(
                order_id, prescription_id, True,
                f"Order saved successfully! Order ID: {order_id}", order_no,
            )

        with self._step(UPDATE_ORDER):
            self.orders.update(order_id, header)
        with self._step(DELETE_ITEMS):
            self.orders.delete_items(order_id)
        if items:
            with self._step(INSERT_ITEMS):
                self.orders.insert_items(order_id, items)
        with self._step(FETCH_PAYMENT):
            stored = self.orders.get_payment(order_id)

        if stored is None:
            with self._step(CREATE_PAYMENT):
                self.orders.insert_payment(
                    order_id, self._payment_row(record, new_cash, new_card, new_other)
                )
        else:
            row = self._payment_row(
                record,
                parse_amount(stored["advance_cash"]) + new_cash,
                parse_amount(stored["advance_card_upi"]) + new_card,
                parse_amount(stored["advance_other"]) + new_other,
            )
            with self._step(UPDATE_PAYMENT):
                self.orders.update_payment(order_id, row)
        _log.info("Updated order %s (id=%s)", order_no, order_id)
        return SaveResult(
            order_id, prescription_id, False, "Order updated successfully", order_no
        )
