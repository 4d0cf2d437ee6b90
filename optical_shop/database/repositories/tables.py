from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class TableSet:
    """Table names for one product line (spectacles or contact lenses)."""
    prescriptions: str
    eyes: str
    remarks: str
    orders: str
    items: str
    payments: str


OPTICAL_TABLES = TableSet(
    prescriptions="prescriptions",
    eyes="eye_prescriptions",
    remarks="prescription_remarks",
    orders="orders",
    items="order_items",
    payments="order_payments",
)

CONTACT_LENS_TABLES = TableSet(
    prescriptions="contact_lens_prescriptions",
    eyes="contact_lens_eyes",
    remarks="contact_lens_remarks",
    orders="contact_lens_orders",
    items="contact_lens_items",
    payments="contact_lens_payments",
)
