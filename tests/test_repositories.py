# tests/test_repositories.py

from dataclasses import astuple
import sqlite3

import pytest

from optical_shop.constants import SCHEMA_VERSION
from optical_shop.database.repositories import (
    CONTACT_LENS_TABLES,
    OPTICAL_TABLES,
    DomainError,
    OrdersRepo,
    PrescriptionsRepo,
)

HEADER = {"prescribed_by": "Dr. K", "date": "2024-05-07"}


def _tables(conn):
    return {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}


def test_schema_has_both_product_lines(conn):
    names = _tables(conn)
    for tables in (OPTICAL_TABLES, CONTACT_LENS_TABLES):
        for table in astuple(tables):
            assert table in names
    assert conn.execute("SELECT version FROM schema_version").fetchone()[0] == SCHEMA_VERSION
    assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1


def test_prescription_create_requires_number_and_name(conn):
    repo = PrescriptionsRepo(conn)
    with pytest.raises(DomainError):
        repo.create({**HEADER, "prescription_no": "", "name": "Asha"})
    with pytest.raises(DomainError):
        repo.create({**HEADER, "prescription_no": "P1", "name": "  "})


def test_prescription_numbers_are_unique(conn):
    repo = PrescriptionsRepo(conn)
    repo.create({**HEADER, "prescription_no": "P1", "name": "Asha"})
    with pytest.raises(sqlite3.IntegrityError):
        repo.create({**HEADER, "prescription_no": "P1", "name": "Ravi"})
    assert conn.execute("SELECT COUNT(*) FROM prescriptions").fetchone()[0] == 1


def test_get_attaches_children_newest_order_first(conn):
    prescriptions, orders = PrescriptionsRepo(conn), OrdersRepo(conn)
    pid = prescriptions.create(
        {**HEADER, "prescription_no": "P1", "name": "Asha"},
        eyes=[{"eye_type": "right", "vision_type": "distance", "sph": "-1.00"}],
        remark_types=["bifocal_lenses"],
    )
    old = orders.create({"prescription_id": pid, "order_no": "ORD-1"})
    new = orders.create({"prescription_id": pid, "order_no": "ORD-2"})
    orders.insert_items(new, [
        {"si": 2, "item_name": "Lens", "rate": 100, "qty": 1, "amount": 100},
        {"si": 1, "item_name": "Frame", "rate": 250, "qty": 1, "amount": 250},
    ])
    orders.insert_payment(new, {"payment_estimate": 350, "balance": 350})

    rec = prescriptions.get(pid)
    assert [e["sph"] for e in rec["eyes"]] == ["-1.00"]
    assert [r["remark_type"] for r in rec["remarks"]] == ["bifocal_lenses"]
    assert [o["id"] for o in rec["orders"]] == [new, old]
    assert [i["item_name"] for i in rec["orders"][0]["items"]] == ["Frame", "Lens"]
    assert rec["orders"][0]["payments"][0]["balance"] == 350
    assert rec["orders"][1]["items"] == []
    assert prescriptions.get(999) is None


def test_search_rejects_unknown_column(conn):
    with pytest.raises(DomainError):
        PrescriptionsRepo(conn).search("email", "x")


def test_orders_require_number_and_existing_rows(conn):
    pid = PrescriptionsRepo(conn).create({**HEADER, "prescription_no": "P1", "name": "Asha"})
    orders = OrdersRepo(conn)
    with pytest.raises(DomainError):
        orders.create({"prescription_id": pid, "order_no": " "})
    with pytest.raises(DomainError):
        orders.update(42, {"status": "Ready"})
    with pytest.raises(DomainError):
        orders.update_payment(42, {"balance": 0})

    oid = orders.create({"prescription_id": pid, "order_no": "ORD-1"})
    assert orders.find_id_by_order_no("ORD-1") == oid
    assert orders.find_id_by_order_no("ORD-9") is None
    orders.update(oid, {"status": "Ready"})
    assert orders.get(oid)["status"] == "Ready"


def test_replace_items(conn):
    pid = PrescriptionsRepo(conn).create({**HEADER, "prescription_no": "P1", "name": "Asha"})
    orders = OrdersRepo(conn)
    oid = orders.create({"prescription_id": pid, "order_no": "ORD-1"})
    item_ids = orders.insert_items(oid, [{"si": 1, "item_name": "Frame"}, {"si": 2, "item_name": "Lens"}])
    assert len(item_ids) == 2
    orders.delete_items(oid)
    assert orders.list_items(oid) == []


def test_contact_lens_tables_are_separate(conn):
    PrescriptionsRepo(conn, CONTACT_LENS_TABLES).create(
        {**HEADER, "prescription_no": "CL1", "name": "Asha", "expiry_date": "2025-05-07"}
    )
    assert PrescriptionsRepo(conn).find_id_by_number("CL1") is None
    assert PrescriptionsRepo(conn, CONTACT_LENS_TABLES).find_id_by_number("CL1") is not None
