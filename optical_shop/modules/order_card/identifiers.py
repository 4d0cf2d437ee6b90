from __future__ import annotations

from datetime import datetime
import random
from typing import Callable, Optional

from ...constants import ITEM_CODE_PREFIXES, DEFAULT_ITEM_CODE_PREFIX

# Item-code prefix -> persisted item_type
_PREFIX_TYPES = (("FRM", "Frames"), ("SUN", "Sun Glasses"), ("LEN", "Lens"), ("CL", "Contact Lens"))
_NAME_TYPES = (("contact", "Contact Lens"), ("frame", "Frames"), ("sun", "Sun Glasses"), ("glass", "Sun Glasses"), ("lens", "Lens"))
OTHER_ITEM_TYPE = "Other"


class IdentifierGenerator:
    """
    Human-readable identifiers for prescriptions, references, items and orders.

    Clock and random source are injected so tests can pin them:
        IdentifierGenerator(clock=lambda: datetime(2024, 5, 7), rng=random.Random(1))
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        rng: Optional[random.Random] = None,
    ):
        self._clock = clock
        self._rng = rng or random.Random()

    def _digits(self, width: int) -> str:
        return f"{self._rng.randrange(10 ** width):0{width}d}"

    def prescription_no(self) -> str:
        """P{YY}{MM}-{DD}{RRRR}, e.g. P2405-070042."""
        now = self._clock()
        return f"P{now:%y%m}-{now:%d}{self._digits(4)}"

    def contact_lens_prescription_no(self) -> str:
        now = self._clock()
        return f"CL{now:%y%m}-{now:%d}{self._digits(4)}"

    def reference_no(self, prescription_no: str | None = None) -> str:
        """The prescription number when one is given, else REF{YY}{MM}-{RRRRR}."""
        if prescription_no:
            return prescription_no
        now = self._clock()
        return f"REF{now:%y%m}-{self._digits(5)}"

    def item_code(self, kind: str) -> str:
        prefix = ITEM_CODE_PREFIXES.get(kind, DEFAULT_ITEM_CODE_PREFIX)
        return f"{prefix}{self._digits(4)}"

    def order_no(self) -> str:
        return f"ORD-{int(self._clock().timestamp() * 1000)}"


def resolve_reference_no(prescription_no: str, candidate: str | None) -> str:
    candidate = (candidate or "").strip()
    if candidate and candidate != prescription_no:
        return candidate
    return prescription_no


def item_type_for(item_code: str | None, item_name: str | None) -> str:
    """
    Persisted item type: code prefix first (FRM/SUN/LEN/CL), then keywords in
    the item name, else "Other".
    """
    code = item_code or ""
    for prefix, item_type in _PREFIX_TYPES:
        if code.startswith(prefix):
            return item_type
    name = (item_name or "").lower()
    for keyword, item_type in _NAME_TYPES:
        if keyword in name:
            return item_type
    return OTHER_ITEM_TYPE
