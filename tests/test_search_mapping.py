# tests/test_search_mapping.py

import logging

import pytest

from optical_shop.database.repositories import PrescriptionsRepo
from optical_shop.modules.order_card.record import ContactLensRecord, EyeMeasurement
from optical_shop.modules.order_card.search import (
    find_eye_value,
    lookup_suggestions,
    row_to_suggestion,
)
from optical_shop.utils.validators import ValidationError


def _row(**overrides):
    row = {
        "id": 3,
        "prescription_no": "P2405-070042",
        "reference_no": None,
        "title": None,
        "name": "Asha",
        "gender": "Female",
        "mobile_no": "9800000000",
        "class": "A",
        "date": "2024-05-01T00:00",
        "balance_lens": 1,
        "ipd": "63.5",
        "retest_after": "2024-11-01",
        "eyes": [
            {"eye_type": "right", "vision_type": "distance", "sph": "-1.00", "vn": None, "rpd": "32"},
            {"eye_type": "left", "vision_type": "distance", "sph": "-0.75", "vn": "6/6", "lpd": "31.5"},
        ],
        "remarks": [{"remark_type": "progressive_lenses"}],
        "orders": [
            {
                "id": 9,
                "bill_no": "B7",
                "order_date": "2024-05-01",
                "delivery_date": "2024-06-01",
                "status": "Ready",
                "status_date": None,
                "items": [
                    {"si": 1, "item_code": "FRM0001", "item_name": "Frame", "rate": 250,
                     "qty": 1, "amount": 270, "tax_percent": 8, "discount_amount": None},
                ],
                "payments": [
                    {"advance_cash": 50, "advance_card_upi": 0, "advance_other": None,
                     "payment_estimate": 270, "tax_amount": 20, "discount_amount": 0,
                     "final_amount": 270, "total_advance": 50, "balance": 220},
                ],
            },
        ],
    }
    row.update(overrides)
    return row


def test_find_eye_value_accepts_older_spellings():
    rows = [{"eyeType": "Right", "type": "dv", "sphere": "-1.25", "visual_acuity": ""}]
    assert find_eye_value(rows, "right", "distance", "sph") == "-1.25"
    assert find_eye_value(rows, "right", "distance", "vn", "6/") == "6/"
    assert find_eye_value(rows, "left", "distance", "sph", "none") == "none"
    assert find_eye_value(None, "right", "near", "sph") == ""


def test_find_eye_value_uses_first_matching_row():
    rows = [
        {"eye_type": "right", "vision_type": "near", "add_power": "+2.00"},
        {"eye_type": "right", "vision_type": "near", "add_power": "+2.50"},
    ]
    assert find_eye_value(rows, "right", "near", "add") == "+2.00"


def test_row_to_suggestion_maps_every_section():
    s = row_to_suggestion(_row())
    rec = s.record
    assert s.id == 3
    assert rec.prescription_id == 3
    assert rec.customer.title == "Mr."
    assert rec.customer.name == "Asha"
    assert rec.customer.class_name == "A"
    assert rec.date == "2024-05-01"
    assert rec.balance_lens is True
    assert rec.retest_date == "2024-11-01"
    assert rec.right_eye.dv.sph == "-1.00"
    assert rec.right_eye.dv.vn == "6/"
    assert rec.right_eye.dv.pd == "32"
    assert rec.left_eye.dv.pd == "31.5"
    assert rec.left_eye.nv.vn == "N"
    assert rec.remarks.progressive_lenses is True
    assert rec.remarks.for_constant_use is False

    assert rec.bill_no == "B7"
    assert rec.order_id == 9
    assert rec.order_status == "Ready"
    assert rec.delivery_date == "2024-06-01T00:00"
    # no status date stored: falls back to the order date
    assert rec.status_date == "2024-05-01T00:00"

    assert len(rec.items) == 1
    assert rec.items[0].rate == 250.0
    assert rec.items[0].discount_amount == 0.0

    snap = s.payment_snapshot
    assert snap.cash_advance == "50.00"
    assert snap.other_advance == "0.00"
    assert snap.estimate == 270.0
    assert snap.balance == 220.0
    assert rec.payment == snap


def test_row_without_orders_keeps_order_defaults():
    rec = row_to_suggestion(_row(orders=[])).record
    assert rec.items == []
    assert rec.order_status == "Processing"
    assert rec.order_id is None
    assert rec.payment.total_advance == 0.0


def test_broken_section_falls_back_and_logs(caplog):
    caplog.set_level(logging.WARNING)
    s = row_to_suggestion(_row(eyes=[42], remarks=[{"kind": "x"}]))
    assert s.record.right_eye == EyeMeasurement()
    assert s.record.remarks.progressive_lenses is False
    # unaffected sections still map
    assert s.record.customer.name == "Asha"
    assert s.payment_snapshot.balance == 220.0
    assert "Could not map right eye" in caplog.text
    assert "Could not map remarks" in caplog.text


def test_contact_lens_record_carries_expiry():
    rec = row_to_suggestion(_row(expiry_date="2025-05-01T00:00"), record_cls=ContactLensRecord).record
    assert isinstance(rec, ContactLensRecord)
    assert rec.expiry_date == "2025-05-01"


# ---------- against the database ----------

@pytest.fixture()
def repo(conn):
    r = PrescriptionsRepo(conn)
    r.create({"prescription_no": "P2405-070042", "name": "Asha Rao", "mobile_no": "9800000000",
              "prescribed_by": "Dr. K", "date": "2024-05-07"})
    r.create({"prescription_no": "P2405-070043", "name": "Ravi", "mobile_no": "9811111111",
              "prescribed_by": "Dr. K", "date": "2024-05-07"})
    return r


def test_lookup_exact_number(repo):
    found = lookup_suggestions(repo, "P2405-070042", "prescription_no")
    assert [s.record.customer.name for s in found] == ["Asha Rao"]
    # numbers match exactly only
    assert lookup_suggestions(repo, "P2405", "prescription_no") == []


def test_lookup_name_and_mobile_fall_back_to_contains(repo):
    assert [s.record.prescription_no for s in lookup_suggestions(repo, "asha", "name")] == ["P2405-070042"]
    found = lookup_suggestions(repo, "98", "mobile_no")
    # newest first
    assert [s.record.prescription_no for s in found] == ["P2405-070043", "P2405-070042"]


def test_lookup_blank_and_unknown_field(repo):
    assert lookup_suggestions(repo, "   ", "name") == []
    with pytest.raises(ValidationError):
        lookup_suggestions(repo, "x", "email")
