from __future__ import annotations

from contextlib import closing
import logging
from pathlib import Path
import sqlite3
from typing import Callable, Iterable, Optional

from PySide6.QtCore import QObject, QRunnable, QThreadPool, QTimer, Signal, Slot

from ...constants import (
    SEARCH_DEBOUNCE_MS,
    SUGGESTION_LIMIT,
    DEFAULT_TITLE,
    DEFAULT_GENDER,
    DEFAULT_ORDER_STATUS,
    DISTANCE_VN_DEFAULT,
    NEAR_VN_DEFAULT,
)
from ...database import get_connection
from ...database.repositories import PrescriptionsRepo, TableSet, OPTICAL_TABLES
from ...utils.formatters import format_amount, format_date_for_input, parse_amount
from ...utils.validators import ValidationError
from .record import (
    Customer,
    EyeMeasurement,
    LineItem,
    OrderRecord,
    PaymentSummary,
    Remarks,
    SearchSuggestion,
    VisionReading,
)

_log = logging.getLogger(__name__)

# search target -> prescriptions column
SEARCH_FIELDS = {
    "prescription_no": "prescription_no",
    "reference_no": "reference_no",
    "name": "name",
    "mobile_no": "mobile_no",
}
# targets that fall back to a contains match when nothing matches exactly
_CONTAINS_FALLBACK = ("name", "mobile_no")

# ---- historical spellings accepted in stored eye rows ----
_EYE_KEYS = ("eye_type", "eyeType", "eye")
_VISION_KEYS = ("vision_type", "visionType", "type")
_VISION_ALIASES = {
    "distance": ("distance", "dv", "distance_vision"),
    "near": ("near", "nv", "near_vision"),
}
_FIELD_ALIASES = {
    "sph": ("sph", "sphere"),
    "cyl": ("cyl", "cylinder"),
    "ax": ("ax", "axis"),
    "add": ("add_power", "add", "addition"),
    "add_power": ("add_power", "add", "addition"),
    "vn": ("vn", "visual_acuity", "va"),
    "rpd": ("rpd", "right_pd", "pupillary_distance_right"),
    "lpd": ("lpd", "left_pd", "pupillary_distance_left"),
}


def _first_present(row: dict, keys: Iterable[str]):
    for k in keys:
        if k in row and row[k] is not None:
            return row[k]
    return None


def find_eye_value(rows, eye: str, vision: str, field: str, default: str = "") -> str:
    """
    Value of `field` in the first row for (eye, vision), tolerant to older
    column spellings. Missing row, missing field or an empty value -> default.
    """
    visions = _VISION_ALIASES.get(vision, (vision,))
    for row in rows or ():
        row_eye = str(_first_present(row, _EYE_KEYS)).lower()
        row_vision = str(_first_present(row, _VISION_KEYS)).lower()
        if row_eye != eye.lower() or row_vision not in visions:
            continue
        value = _first_present(row, _FIELD_ALIASES.get(field, (field,)))
        return str(value) if value not in (None, "") else default
    return default


# -----------------------------
# Row -> suggestion mapping
# -----------------------------

def _text(row: dict, key: str, default: str = "") -> str:
    value = row.get(key)
    return default if value in (None, "") else str(value)


def _customer(row: dict) -> Customer:
    return Customer(
        title=_text(row, "title", DEFAULT_TITLE),
        name=_text(row, "name"),
        gender=_text(row, "gender", DEFAULT_GENDER),
        age=_text(row, "age"),
        customer_code=_text(row, "customer_code"),
        birth_day=format_date_for_input(row.get("birth_day")),
        marriage_anniversary=format_date_for_input(row.get("marriage_anniversary")),
        address=_text(row, "address"),
        city=_text(row, "city"),
        state=_text(row, "state"),
        pin_code=_text(row, "pin_code"),
        phone_landline=_text(row, "phone_landline"),
        mobile_no=_text(row, "mobile_no"),
        email=_text(row, "email"),
        prescribed_by=_text(row, "prescribed_by"),
        class_name=_text(row, "class"),
        booking_by=_text(row, "booking_by"),
    )


def _eye(rows, eye: str) -> EyeMeasurement:
    pd_field = "rpd" if eye == "right" else "lpd"

    def reading(vision: str, vn_default: str, pd: str = "") -> VisionReading:
        return VisionReading(
            sph=find_eye_value(rows, eye, vision, "sph"),
            cyl=find_eye_value(rows, eye, vision, "cyl"),
            ax=find_eye_value(rows, eye, vision, "ax"),
            add=find_eye_value(rows, eye, vision, "add"),
            vn=find_eye_value(rows, eye, vision, "vn", vn_default),
            pd=pd,
        )

    return EyeMeasurement(
        dv=reading("distance", DISTANCE_VN_DEFAULT, find_eye_value(rows, eye, "distance", pd_field)),
        nv=reading("near", NEAR_VN_DEFAULT),
    )


def _payment_snapshot(payment: Optional[dict]) -> PaymentSummary:
    if not payment:
        return PaymentSummary()
    return PaymentSummary(
        cash_advance=format_amount(payment.get("advance_cash")),
        card_upi_advance=format_amount(payment.get("advance_card_upi")),
        other_advance=format_amount(payment.get("advance_other")),
        estimate=parse_amount(payment.get("payment_estimate")),
        tax_total=parse_amount(payment.get("tax_amount")),
        discount_total=parse_amount(payment.get("discount_amount")),
        final_amount=parse_amount(payment.get("final_amount")),
        total_advance=parse_amount(payment.get("total_advance")),
        balance=parse_amount(payment.get("balance")),
    )


_MAPPING_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


def row_to_suggestion(
    row: dict,
    item_cls: type = LineItem,
    record_cls: type = OrderRecord,
) -> SearchSuggestion:
    """
    Map one joined prescription dict (see PrescriptionsRepo.search) to a
    suggestion. Each section maps independently; a broken section is logged
    and left at its defaults.
    """
    pid = row.get("id")
    eyes = row.get("eyes") or []
    orders = row.get("orders") or []
    latest = orders[0] if orders else None

    def section(name: str, build, default):
        try:
            return build()
        except _MAPPING_ERRORS as e:
            _log.warning("Could not map %s for prescription id=%s: %s", name, pid, e)
            return default

    right_eye = section("right eye", lambda: _eye(eyes, "right"), EyeMeasurement())
    left_eye = section("left eye", lambda: _eye(eyes, "left"), EyeMeasurement())
    remarks = section(
        "remarks",
        lambda: Remarks.from_codes(r["remark_type"] for r in row.get("remarks") or []),
        Remarks(),
    )
    items = section(
        "items",
        lambda: [item_cls.from_row(r) for r in (latest or {}).get("items") or []],
        [],
    )
    snapshot = section(
        "payment",
        lambda: _payment_snapshot(((latest or {}).get("payments") or [None])[0]),
        PaymentSummary(),
    )

    values = dict(
        prescription_no=_text(row, "prescription_no"),
        reference_no=_text(row, "reference_no"),
        date=format_date_for_input(row.get("date")),
        customer=section("customer", lambda: _customer(row), Customer()),
        right_eye=right_eye,
        left_eye=left_eye,
        ipd=_text(row, "ipd"),
        balance_lens=bool(row.get("balance_lens")),
        remarks=remarks,
        items=items,
        payment=snapshot,
        retest_date=format_date_for_input(row.get("retest_after")),
        prescription_id=pid,
    )
    if latest:
        values.update(
            bill_no=_text(latest, "bill_no"),
            delivery_date=format_date_for_input(latest.get("delivery_date"), "datetime-local"),
            order_status=_text(latest, "status", DEFAULT_ORDER_STATUS),
            status_date=format_date_for_input(
                latest.get("status_date") or latest.get("order_date"), "datetime-local"
            ),
            order_id=latest.get("id"),
        )
    if "expiry_date" in record_cls.__dataclass_fields__:
        values["expiry_date"] = format_date_for_input(row.get("expiry_date"))

    return SearchSuggestion(id=pid, record=record_cls(**values), payment_snapshot=snapshot)


def lookup_suggestions(
    repo: PrescriptionsRepo,
    query: str,
    field: str,
    limit: int = SUGGESTION_LIMIT,
    item_cls: type = LineItem,
    record_cls: type = OrderRecord,
) -> list[SearchSuggestion]:
    """Exact match first; name/mobile fall back to a contains match."""
    query = (query or "").strip()
    if not query:
        return []
    column = SEARCH_FIELDS.get(field)
    if column is None:
        raise ValidationError(f"Cannot search by '{field}'.")
    rows = repo.search(column, query, exact=True, limit=limit)
    if not rows and field in _CONTAINS_FALLBACK:
        rows = repo.search(column, query, exact=False, limit=limit)
    return [row_to_suggestion(r, item_cls, record_cls) for r in rows]


def make_lookup(
    *,
    conn: Optional[sqlite3.Connection] = None,
    db_path: Optional[Path | str] = None,
    tables: TableSet = OPTICAL_TABLES,
    item_cls: type = LineItem,
    record_cls: type = OrderRecord,
) -> Callable[[str, str], list]:
    """
    Build the lookup callable for SuggestionSearch.

    With `conn` every lookup reuses it (same thread only). With `db_path`
    each lookup opens and closes its own connection, which is what a
    worker thread needs.
    """
    if (conn is None) == (db_path is None):
        raise ValueError("Pass exactly one of conn or db_path.")

    def lookup(query: str, field: str) -> list:
        if conn is not None:
            return lookup_suggestions(
                PrescriptionsRepo(conn, tables), query, field,
                item_cls=item_cls, record_cls=record_cls,
            )
        with closing(get_connection(db_path)) as own:
            return lookup_suggestions(
                PrescriptionsRepo(own, tables), query, field,
                item_cls=item_cls, record_cls=record_cls,
            )

    return lookup


# -----------------------------
# Debounced search object
# -----------------------------

class _LookupRunnable(QRunnable):
    def __init__(self, work: Callable[[], None]) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self._work = work

    @Slot()
    def run(self) -> None:  # type: ignore[override]
        self._work()


class SuggestionSearch(QObject):
    """
    Debounced suggestion lookup.

    - request() restarts one single-shot timer; only the last query within
      the debounce window is looked up.
    - Each dispatched lookup gets a sequence number; a result is delivered
      only if it belongs to the latest dispatch, so slow older lookups can
      never overwrite newer suggestions.
    - With a QThreadPool the lookup runs on a worker; otherwise inline.
    """

    suggestionsChanged = Signal(list)
    searchFailed = Signal(str)
    _resultReady = Signal(int, object, str)

    def __init__(
        self,
        lookup: Callable[[str, str], list],
        *,
        pool: Optional[QThreadPool] = None,
        debounce_ms: int = SEARCH_DEBOUNCE_MS,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._lookup = lookup
        self._pool = pool
        self._seq = 0
        self._pending: tuple[str, str] = ("", "")

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(debounce_ms)
        self._timer.timeout.connect(self._dispatch)

        self._resultReady.connect(self._deliver)

    @property
    def latest_sequence(self) -> int:
        return self._seq

    def request(self, query: str, field: str) -> None:
        if not (query or "").strip():
            self.clear()
            return
        self._pending = (query.strip(), field)
        self._timer.start()

    def flush(self) -> None:
        """Run the pending lookup now instead of waiting for the timer."""
        if self._timer.isActive():
            self._timer.stop()
            self._dispatch()

    def clear(self) -> None:
        self._timer.stop()
        # results still in flight are now stale
        self._seq += 1
        self.suggestionsChanged.emit([])

    def _dispatch(self) -> None:
        query, field = self._pending
        self._seq += 1
        seq = self._seq
        if self._pool is None:
            self._run(seq, query, field)
        else:
            self._pool.start(_LookupRunnable(lambda: self._run(seq, query, field)))

    def _run(self, seq: int, query: str, field: str) -> None:
        try:
            results = self._lookup(query, field)
        except Exception as e:
            _log.error("Suggestion search for %r by %s failed: %s", query, field, e)
            self._resultReady.emit(seq, [], str(e) or e.__class__.__name__)
            return
        self._resultReady.emit(seq, results, "")

    @Slot(int, object, str)
    def _deliver(self, seq: int, results, error: str) -> None:
        if seq != self._seq:
            _log.debug("Dropping stale suggestions (seq %s, latest %s)", seq, self._seq)
            return
        self.suggestionsChanged.emit(list(results))
        if error:
            self.searchFailed.emit(f"Search failed: {error}")
