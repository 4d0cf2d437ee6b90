from __future__ import annotations
import sqlite3
from typing import Iterable

from ...constants import SUGGESTION_LIMIT
from .errors import DomainError
from .sql_helpers import insert_row
from .tables import TableSet, OPTICAL_TABLES


class PrescriptionsRepo:
    """
    Prescriptions (customer + eye readings + remarks) for one product line.

    Key behavior:
      - `search()` returns plain dicts with the joined children attached:
        rec["eyes"], rec["remarks"], rec["orders"] (newest first), and per
        order o["items"] (by si) and o["payments"].
      - Writes commit per call; callers sequence multi-table saves themselves.
    """

    SEARCHABLE_COLUMNS = ("prescription_no", "reference_no", "name", "mobile_no")

    def __init__(self, conn: sqlite3.Connection, tables: TableSet = OPTICAL_TABLES):
        # ensure rows behave like dicts/tuples
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.tables = tables

    @staticmethod
    def _ensure_non_empty(value: str | None, field_label: str) -> None:
        if value is None or str(value).strip() == "":
            raise DomainError(f"{field_label} cannot be empty.")

    # ---- Queries ----------------------------------------------------------

    def find_id_by_number(self, prescription_no: str) -> int | None:
        row = self.conn.execute(
            f"SELECT id FROM {self.tables.prescriptions} WHERE prescription_no=?",
            (prescription_no,),
        ).fetchone()
        return int(row["id"]) if row else None

    def get(self, prescription_id: int) -> dict | None:
        row = self.conn.execute(
            f"SELECT * FROM {self.tables.prescriptions} WHERE id=?",
            (prescription_id,),
        ).fetchone()
        return self._with_children(row) if row else None

    def search(
        self,
        column: str,
        value: str,
        *,
        exact: bool = True,
        limit: int = SUGGESTION_LIMIT,
    ) -> list[dict]:
        """
        Exact (`=`) or contains (`LIKE %value%`, case-insensitive) match on one
        searchable column, newest prescription first.
        """
        if column not in self.SEARCHABLE_COLUMNS:
            raise DomainError(f"Cannot search prescriptions by '{column}'.")
        if exact:
            where, param = f"{column} = ?", value
        else:
            where, param = f"{column} LIKE ?", f"%{value}%"
        rows = self.conn.execute(
            f"SELECT * FROM {self.tables.prescriptions} "
            f"WHERE {where} ORDER BY id DESC LIMIT ?",
            (param, int(limit)),
        ).fetchall()
        return [self._with_children(r) for r in rows]

    def _with_children(self, row: sqlite3.Row) -> dict:
        t = self.tables
        rec = dict(row)
        pid = rec["id"]
        rec["eyes"] = [
            dict(r)
            for r in self.conn.execute(
                f"SELECT * FROM {t.eyes} WHERE prescription_id=? ORDER BY id", (pid,)
            ).fetchall()
        ]
        rec["remarks"] = [
            dict(r)
            for r in self.conn.execute(
                f"SELECT * FROM {t.remarks} WHERE prescription_id=? ORDER BY id", (pid,)
            ).fetchall()
        ]
        orders = []
        for o in self.conn.execute(
            f"SELECT * FROM {t.orders} WHERE prescription_id=? "
            f"ORDER BY created_at DESC, id DESC",
            (pid,),
        ).fetchall():
            order = dict(o)
            order["items"] = [
                dict(r)
                for r in self.conn.execute(
                    f"SELECT * FROM {t.items} WHERE order_id=? ORDER BY si, id",
                    (order["id"],),
                ).fetchall()
            ]
            order["payments"] = [
                dict(r)
                for r in self.conn.execute(
                    f"SELECT * FROM {t.payments} WHERE order_id=?", (order["id"],)
                ).fetchall()
            ]
            orders.append(order)
        rec["orders"] = orders
        return rec

    # ---- Mutations --------------------------------------------------------

    def create(
        self,
        header: dict,
        eyes: Iterable[dict] = (),
        remark_types: Iterable[str] = (),
    ) -> int:
        """
        Insert a prescription row plus its eye readings and remark rows.
        `header` keys are column names of the prescriptions table.
        """
        self._ensure_non_empty(header.get("prescription_no"), "Prescription number")
        self._ensure_non_empty(header.get("name"), "Name")
        t = self.tables
        with self.conn:
            pid = insert_row(self.conn, t.prescriptions, header)
            for eye in eyes:
                insert_row(self.conn, t.eyes, {"prescription_id": pid, **eye})
            for remark_type in remark_types:
                insert_row(
                    self.conn, t.remarks, {"prescription_id": pid, "remark_type": remark_type}
                )
        return pid
