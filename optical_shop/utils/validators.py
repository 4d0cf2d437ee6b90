# optical_shop/utils/validators.py


class ValidationError(ValueError):
    """A user-correctable input problem (missing field, bad number)."""


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_float(x):
    """
    Best-effort parse to float.

    Returns:
        (ok: bool, value: float|None)

    ok == False means parsing failed and value is None.
    """
    try:
        return True, float(x)
    except (TypeError, ValueError):
        return False, None


def parse_float(x, label: str = "Value") -> float:
    """
    Strict parse to float; raises ValidationError with a clear message on failure.
    """
    ok, val = try_parse_float(x)
    if not ok:
        raise ValidationError(f"{label}: could not parse '{x}' as a number.")
    return val  # type: ignore[return-value]


def is_non_negative_number(x) -> bool:
    """
    True iff x parses to a float and value >= 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val >= 0)


def is_strictly_positive_number(x) -> bool:
    """
    True iff x parses to a float and value > 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val > 0)
