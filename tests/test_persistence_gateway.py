# tests/test_persistence_gateway.py

from datetime import timedelta
import itertools
import random
import sqlite3

import pytest

from optical_shop.database.repositories import OrdersRepo, PrescriptionsRepo
from optical_shop.modules.order_card.gateway import (
    CREATE_ORDER,
    INSERT_ITEMS,
    LOOKUP_PRESCRIPTION,
    UNKNOWN_PRESCRIBER,
    UNNAMED,
    PersistenceError,
    PersistenceGateway,
)
from optical_shop.modules.order_card.identifiers import IdentifierGenerator
from optical_shop.modules.order_card.search import lookup_suggestions
from optical_shop.modules.order_card.state import OrderFormState

from conftest import FIXED_NOW, FIXED_TODAY


@pytest.fixture()
def gateway(conn, ids):
    return PersistenceGateway(
        PrescriptionsRepo(conn), OrdersRepo(conn), ids=ids, clock=lambda: FIXED_NOW
    )


@pytest.fixture()
def state(ids):
    s = OrderFormState(ids=ids, today=lambda: FIXED_TODAY)
    s.set_field(("customer", "name"), "Asha Rao")
    s.set_field(("customer", "mobile_no"), "9800000000")
    s.set_field(("customer", "prescribed_by"), "Dr. K")
    s.set_numeric_field(("right_eye", "dv", "sph"), "-1.25")
    s.set_numeric_field(("right_eye", "dv", "pd"), "32")
    s.set_numeric_field(("left_eye", "dv", "pd"), "31")
    s.set_flag(("remarks", "anti_reflection_lenses"), True)
    s.add_item("Titan frame", "250", item_code="FRM0001", brand_name="Titan")
    s.update_item(0, "tax_percent", "8")
    return s


def _payment(conn, order_id):
    return conn.execute("SELECT * FROM order_payments WHERE order_id=?", (order_id,)).fetchone()


def test_first_save_creates_everything(conn, gateway, state):
    state.set_field(("payment", "cash_advance"), "50")
    result = gateway.save(state.record)

    assert result.created is True
    assert result.message == f"Order saved successfully! Order ID: {result.order_id}"

    p = conn.execute("SELECT * FROM prescriptions WHERE id=?", (result.prescription_id,)).fetchone()
    assert p["prescription_no"] == state.record.prescription_no
    assert p["ipd"] == "63.0"
    assert p["date"] == "2024-05-07"

    eyes = conn.execute(
        "SELECT eye_type, vision_type, sph, rpd, lpd FROM eye_prescriptions "
        "WHERE prescription_id=? ORDER BY id",
        (result.prescription_id,),
    ).fetchall()
    assert [tuple(r) for r in eyes] == [
        ("right", "distance", "-1.25", "32", None),
        ("right", "near", None, None, None),
        ("left", "distance", None, None, "31"),
        ("left", "near", None, None, None),
    ]
    remarks = conn.execute("SELECT remark_type FROM prescription_remarks").fetchall()
    assert [r[0] for r in remarks] == ["anti_reflection_lenses"]

    order = conn.execute("SELECT * FROM orders WHERE id=?", (result.order_id,)).fetchone()
    assert order["order_no"] == state.record.reference_no
    assert order["status"] == "Processing"

    item = conn.execute("SELECT * FROM order_items WHERE order_id=?", (result.order_id,)).fetchone()
    assert item["item_type"] == "Frames"
    assert item["brand_name"] == "Titan"

    pay = _payment(conn, result.order_id)
    assert pay["payment_estimate"] == 270
    assert pay["advance_cash"] == 50
    assert pay["total_advance"] == 50
    assert pay["balance"] == 220


def test_saved_order_comes_back_through_search(conn, gateway, state):
    state.set_field(("payment", "cash_advance"), "50")
    gateway.save(state.record)

    [found] = lookup_suggestions(PrescriptionsRepo(conn), "Asha Rao", "name")
    assert found.record.right_eye.dv.sph == "-1.25"
    assert found.record.remarks.anti_reflection_lenses is True
    assert [i.item_name for i in found.record.items] == ["Titan frame"]
    assert found.payment_snapshot.cash_advance == "50.00"
    assert found.payment_snapshot.balance == 220.0


def test_resubmit_accumulates_advances(conn, gateway, state):
    state.set_field(("payment", "cash_advance"), "100")
    first = gateway.save(state.record)
    state.mark_saved(first.order_id, first.prescription_id)

    state.set_field(("payment", "cash_advance"), "50")
    state.add_item("Blue cut lens", "100")
    second = gateway.save(state.record)

    assert second.created is False
    assert second.message == "Order updated successfully"
    assert second.order_id == first.order_id
    assert second.prescription_id == first.prescription_id

    pay = _payment(conn, first.order_id)
    assert pay["advance_cash"] == 150
    assert pay["total_advance"] == 150
    assert pay["payment_estimate"] == 370
    assert pay["balance"] == 220
    assert pay["updated_at"] is not None

    items = conn.execute(
        "SELECT item_name, item_type FROM order_items WHERE order_id=? ORDER BY si", (first.order_id,)
    ).fetchall()
    assert [tuple(r) for r in items] == [("Titan frame", "Frames"), ("Blue cut lens", "Lens")]
    assert conn.execute("SELECT COUNT(*) FROM prescriptions").fetchone()[0] == 1


def test_missing_payment_row_is_recreated(conn, gateway, state):
    first = gateway.save(state.record)
    with conn:
        conn.execute("DELETE FROM order_payments WHERE order_id=?", (first.order_id,))
    state.set_field(("payment", "other_advance"), "10")
    gateway.save(state.record)
    pay = _payment(conn, first.order_id)
    assert pay["advance_other"] == 10
    assert pay["balance"] == 260


def test_blank_reference_gets_an_order_number(conn, gateway, state, ids):
    state.set_field(("reference_no",), "")
    result = gateway.save(state.record)
    order = conn.execute("SELECT order_no FROM orders WHERE id=?", (result.order_id,)).fetchone()
    assert order["order_no"] == f"ORD-{int(FIXED_NOW.timestamp() * 1000)}"


def test_blank_reference_resave_updates_the_same_order(conn, state):
    ticks = itertools.count()
    ids = IdentifierGenerator(
        clock=lambda: FIXED_NOW + timedelta(seconds=next(ticks)), rng=random.Random(3)
    )
    gateway = PersistenceGateway(
        PrescriptionsRepo(conn), OrdersRepo(conn), ids=ids, clock=lambda: FIXED_NOW
    )
    state.set_field(("reference_no",), "")
    state.set_field(("payment", "cash_advance"), "40")
    first = gateway.save(state.record)
    state.mark_saved(first.order_id, first.prescription_id, first.order_no)
    assert first.order_no.startswith("ORD-")
    assert state.record.reference_no == first.order_no

    second = gateway.save(state.record)
    assert second.created is False
    assert second.order_id == first.order_id
    assert conn.execute("SELECT COUNT(*) FROM orders").fetchone()[0] == 1
    pay = _payment(conn, first.order_id)
    assert pay["total_advance"] == 40
    assert pay["balance"] == state.record.payment.balance == 230


def test_blank_name_and_prescriber_get_placeholders(conn, gateway, ids):
    s = OrderFormState(ids=ids, today=lambda: FIXED_TODAY)
    result = gateway.save(s.record)
    p = conn.execute("SELECT name, prescribed_by FROM prescriptions WHERE id=?",
                     (result.prescription_id,)).fetchone()
    assert (p["name"], p["prescribed_by"]) == (UNNAMED, UNKNOWN_PRESCRIBER)
    assert conn.execute("SELECT COUNT(*) FROM order_items").fetchone()[0] == 0


# ---------- failing steps ----------

class _Prescriptions:
    def __init__(self, fail=False):
        self.fail = fail

    def find_id_by_number(self, number):
        if self.fail:
            raise sqlite3.OperationalError("disk I/O error")
        return 1


class _Orders:
    def __init__(self, fail_on):
        self.fail_on = fail_on
        self.calls = []

    def _call(self, name, result=None):
        self.calls.append(name)
        if name == self.fail_on:
            raise sqlite3.IntegrityError(f"{name} rejected")
        return result

    def find_id_by_order_no(self, order_no):
        return self._call("find_id_by_order_no")

    def create(self, header):
        return self._call("create", 11)

    def insert_items(self, order_id, items):
        return self._call("insert_items", [])

    def insert_payment(self, order_id, payment):
        return self._call("insert_payment", 1)


def test_lookup_failure_names_the_step(ids, state):
    gateway = PersistenceGateway(_Prescriptions(fail=True), _Orders(None), ids=ids)
    with pytest.raises(PersistenceError) as exc:
        gateway.save(state.record)
    assert exc.value.step == LOOKUP_PRESCRIPTION
    assert str(exc.value) == "Error looking up prescription: disk I/O error"


def test_order_create_failure_stops_the_save(ids, state):
    orders = _Orders("create")
    gateway = PersistenceGateway(_Prescriptions(), orders, ids=ids)
    with pytest.raises(PersistenceError, match=CREATE_ORDER):
        gateway.save(state.record)
    assert orders.calls == ["find_id_by_order_no", "create"]


def test_item_failure_keeps_earlier_steps(ids, state):
    orders = _Orders("insert_items")
    gateway = PersistenceGateway(_Prescriptions(), orders, ids=ids)
    with pytest.raises(PersistenceError) as exc:
        gateway.save(state.record)
    assert exc.value.step == INSERT_ITEMS
    assert exc.value.detail == "insert_items rejected"
    assert orders.calls == ["find_id_by_order_no", "create", "insert_items"]
