from __future__ import annotations

from dataclasses import dataclass, field, fields, asdict
from typing import ClassVar, Optional

from ...constants import (
    DEFAULT_UNIT,
    DEFAULT_TITLE,
    DEFAULT_GENDER,
    DEFAULT_ORDER_STATUS,
    DISTANCE_VN_DEFAULT,
    NEAR_VN_DEFAULT,
    REMARK_TYPES,
)
from ...utils.formatters import parse_amount


@dataclass
class LineItem:
    si: int
    item_code: str
    item_name: str
    unit: str = DEFAULT_UNIT
    tax_percent: float = 0.0
    rate: float = 0.0
    qty: int = 1
    amount: float = 0.0
    discount_amount: float = 0.0
    discount_percent: float = 0.0
    brand_name: str = ""
    lens_index: str = ""
    coating: str = ""

    NUMERIC_FIELDS: ClassVar[tuple] = ("rate", "qty", "tax_percent")
    DISCOUNT_FIELDS: ClassVar[tuple] = ("discount_percent", "discount_amount")
    TEXT_FIELDS: ClassVar[tuple] = (
        "item_code", "item_name", "unit", "brand_name", "lens_index", "coating",
    )

    def to_row(self) -> dict:
        return asdict(self)

    @classmethod
    def from_row(cls, row: dict) -> "LineItem":
        """Build from a stored items row; unknown keys are ignored, NULLs fall back to defaults."""
        values = {}
        for f in fields(cls):
            if f.name not in row or row[f.name] is None:
                continue
            raw = row[f.name]
            if f.name in ("si", "qty"):
                values[f.name] = int(parse_amount(raw))
            elif f.name in ("rate", "amount", "tax_percent", "discount_amount", "discount_percent"):
                values[f.name] = parse_amount(raw)
            else:
                values[f.name] = str(raw)
        values.setdefault("si", 1)
        values.setdefault("item_code", "")
        values.setdefault("item_name", "")
        return cls(**values)


@dataclass
class ContactLensItem(LineItem):
    side: str = ""
    base_curve: str = ""
    power: str = ""
    material: str = ""
    disposal: str = ""
    diameter: str = ""
    sph: str = ""
    cyl: str = ""
    axis: str = ""
    lens_code: str = ""

    TEXT_FIELDS: ClassVar[tuple] = LineItem.TEXT_FIELDS + (
        "side", "base_curve", "power", "material", "disposal",
        "diameter", "sph", "cyl", "axis", "lens_code",
    )


@dataclass
class VisionReading:
    sph: str = ""
    cyl: str = ""
    ax: str = ""
    add: str = ""
    vn: str = ""
    # RPD on the right eye's distance reading, LPD on the left's
    pd: str = ""


def _distance() -> VisionReading:
    return VisionReading(vn=DISTANCE_VN_DEFAULT)


def _near() -> VisionReading:
    return VisionReading(vn=NEAR_VN_DEFAULT)


@dataclass
class EyeMeasurement:
    dv: VisionReading = field(default_factory=_distance)
    nv: VisionReading = field(default_factory=_near)


@dataclass
class Remarks:
    for_constant_use: bool = False
    for_distance_vision_only: bool = False
    for_near_vision_only: bool = False
    separate_glasses: bool = False
    bifocal_lenses: bool = False
    progressive_lenses: bool = False
    anti_reflection_lenses: bool = False
    anti_radiation_lenses: bool = False
    under_corrected: bool = False

    def codes(self) -> list[str]:
        return [REMARK_TYPES[f.name] for f in fields(self) if getattr(self, f.name)]

    @classmethod
    def from_codes(cls, codes) -> "Remarks":
        present = set(codes)
        return cls(**{flag: code in present for flag, code in REMARK_TYPES.items()})


@dataclass
class Customer:
    title: str = DEFAULT_TITLE
    name: str = ""
    gender: str = DEFAULT_GENDER
    age: str = ""
    customer_code: str = ""
    birth_day: str = ""
    marriage_anniversary: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pin_code: str = ""
    phone_landline: str = ""
    mobile_no: str = ""
    email: str = ""
    prescribed_by: str = ""
    class_name: str = ""
    booking_by: str = ""


@dataclass
class PaymentSummary:
    """
    Raw advance channels (text as typed) are the inputs; every float below
    them is written by the totals reconciler only.
    """
    cash_advance: str = "0.00"
    card_upi_advance: str = "0.00"
    other_advance: str = "0.00"
    estimate: float = 0.0
    tax_total: float = 0.0
    discount_total: float = 0.0
    final_amount: float = 0.0
    total_advance: float = 0.0
    balance: float = 0.0
    # advances already stored for a loaded order
    previous_advance: float = 0.0

    ADVANCE_FIELDS: ClassVar[tuple] = ("cash_advance", "card_upi_advance", "other_advance")


@dataclass
class OrderRecord:
    prescription_no: str = ""
    reference_no: str = ""
    bill_no: str = ""
    date: str = ""
    delivery_date: str = ""
    customer: Customer = field(default_factory=Customer)
    right_eye: EyeMeasurement = field(default_factory=EyeMeasurement)
    left_eye: EyeMeasurement = field(default_factory=EyeMeasurement)
    ipd: str = ""
    balance_lens: bool = False
    remarks: Remarks = field(default_factory=Remarks)
    items: list = field(default_factory=list)
    payment: PaymentSummary = field(default_factory=PaymentSummary)
    order_status: str = DEFAULT_ORDER_STATUS
    status_date: str = ""
    retest_date: str = ""
    prescription_id: Optional[int] = None
    order_id: Optional[int] = None


@dataclass
class ContactLensRecord(OrderRecord):
    expiry_date: str = ""


@dataclass(frozen=True)
class SearchSuggestion:
    id: int
    record: OrderRecord
    payment_snapshot: PaymentSummary
