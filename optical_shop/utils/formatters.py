"""
utils/formatters.py

Pure text helpers for order-entry inputs: date normalisation, numeric
cleaning of prescription cells, amount parsing/formatting and IPD.

Nothing here touches Qt or the database.
"""
from __future__ import annotations

import re

from .validators import try_parse_float

__all__ = [
    "format_date_for_input",
    "clean_axis",
    "clean_numeric",
    "clean_field_input",
    "parse_amount",
    "format_amount",
    "compute_ipd",
]

_NON_DIGIT = re.compile(r"[^0-9]")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")

AXIS_MIN = 0
AXIS_MAX = 180


# -----------------------------
# Dates
# -----------------------------

def format_date_for_input(value, kind: str = "date") -> str:
    """
    Normalise a stored date/datetime string for a date or datetime input.

    - empty or non-string -> ""
    - kind="date": drop any "T..." time part ("2024-05-01T10:30" -> "2024-05-01")
    - kind="datetime-local": keep a present time part, else append "T00:00"
    """
    if not value or not isinstance(value, str):
        return ""
    date_part = value.split("T", 1)[0]
    if kind == "datetime-local":
        return value if "T" in value else f"{date_part}T00:00"
    return date_part


# -----------------------------
# Prescription cells
# -----------------------------

def clean_axis(text: str) -> str:
    """Digits only, clamped to 0..180; "" when nothing numeric remains."""
    digits = _NON_DIGIT.sub("", text or "")
    if not digits:
        return ""
    n = int(digits)
    if n > AXIS_MAX:
        return str(AXIS_MAX)
    if n < AXIS_MIN:
        return str(AXIS_MIN)
    return digits


def clean_numeric(text: str) -> str:
    return _NON_NUMERIC.sub("", text or "")


def clean_field_input(leaf: str, text: str) -> str:
    """
    Dispatch on the last segment of a field path:
      rpd/lpd/pd -> unchanged, ax -> clean_axis, anything else -> clean_numeric.
    """
    if leaf in ("rpd", "lpd", "pd"):
        return text
    if leaf == "ax":
        return clean_axis(text)
    return clean_numeric(text)


def compute_ipd(rpd, lpd) -> str:
    """RPD + LPD to one decimal when either side is positive, else an empty string."""
    ok_r, r = try_parse_float(rpd if str(rpd or "").strip() else "0")
    ok_l, l = try_parse_float(lpd if str(lpd or "").strip() else "0")
    if not (ok_r and ok_l):
        return ""
    if r > 0 or l > 0:
        return f"{r + l:.1f}"
    return ""


# -----------------------------
# Amounts
# -----------------------------

def parse_amount(text) -> float:
    """Decimal parse of a raw input; blank or unparsable -> 0.0."""
    if text is None:
        return 0.0
    if isinstance(text, (int, float)):
        return float(text)
    stripped = str(text).strip()
    if not stripped:
        return 0.0
    ok, val = try_parse_float(stripped)
    return val if ok else 0.0


def format_amount(value) -> str:
    """Two decimals, no thousands separators ("270.00")."""
    return f"{parse_amount(value):.2f}"
