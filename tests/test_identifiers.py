# tests/test_identifiers.py

import re

from optical_shop.modules.order_card.identifiers import (
    OTHER_ITEM_TYPE,
    item_type_for,
    resolve_reference_no,
)

from conftest import FIXED_NOW


def test_prescription_numbers_follow_the_date_pattern(ids):
    assert re.fullmatch(r"P2405-07\d{4}", ids.prescription_no())
    assert re.fullmatch(r"CL2405-07\d{4}", ids.contact_lens_prescription_no())


def test_reference_no_defaults_to_prescription_no(ids):
    assert ids.reference_no("P2405-070042") == "P2405-070042"
    assert re.fullmatch(r"REF2405-\d{5}", ids.reference_no())


def test_item_codes_by_kind(ids):
    assert re.fullmatch(r"FRM\d{4}", ids.item_code("Frames"))
    assert re.fullmatch(r"SUN\d{4}", ids.item_code("Sun Glasses"))
    assert re.fullmatch(r"LEN\d{4}", ids.item_code("Lens"))
    assert re.fullmatch(r"CL\d{4}", ids.item_code("Contact Lens"))
    assert re.fullmatch(r"ITM\d{4}", ids.item_code("Lens cloth"))


def test_order_no_uses_epoch_millis(ids):
    assert ids.order_no() == f"ORD-{int(FIXED_NOW.timestamp() * 1000)}"


def test_resolve_reference_no():
    assert resolve_reference_no("P1", "") == "P1"
    assert resolve_reference_no("P1", None) == "P1"
    assert resolve_reference_no("P1", "  ") == "P1"
    assert resolve_reference_no("P1", "R9") == "R9"


def test_item_type_prefers_code_prefix_then_name():
    assert item_type_for("FRM0001", "Lens cleaner") == "Frames"
    assert item_type_for("SUN0001", "") == "Sun Glasses"
    assert item_type_for("LEN0001", "") == "Lens"
    assert item_type_for("CL0001", "") == "Contact Lens"
    assert item_type_for("", "Titan frame") == "Frames"
    assert item_type_for(None, "Ray-Ban Sunglasses") == "Sun Glasses"
    assert item_type_for("", "Blue cut lens") == "Lens"
    assert item_type_for("", "Contact lens monthly") == "Contact Lens"
    assert item_type_for("", "Hard case") == OTHER_ITEM_TYPE
