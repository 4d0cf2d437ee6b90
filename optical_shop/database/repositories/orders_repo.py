from __future__ import annotations
import sqlite3
from typing import Iterable

from .errors import DomainError
from .sql_helpers import insert_row, update_row
from .tables import TableSet, OPTICAL_TABLES


class OrdersRepo:
    """
    Orders, their line items and the single payment row per order.

    Item dicts are inserted as-is: keys must be column names of the items
    table (contact-lens item tables carry extra columns).
    """

    def __init__(self, conn: sqlite3.Connection, tables: TableSet = OPTICAL_TABLES):
        conn.row_factory = sqlite3.Row
        self.conn = conn
        self.tables = tables

    # ---- Orders -----------------------------------------------------------

    def find_id_by_order_no(self, order_no: str) -> int | None:
        row = self.conn.execute(
            f"SELECT id FROM {self.tables.orders} WHERE order_no=?", (order_no,)
        ).fetchone()
        return int(row["id"]) if row else None

    def get(self, order_id: int) -> sqlite3.Row | None:
        return self.conn.execute(
            f"SELECT * FROM {self.tables.orders} WHERE id=?", (order_id,)
        ).fetchone()

    def create(self, header: dict) -> int:
        if not str(header.get("order_no") or "").strip():
            raise DomainError("Order number cannot be empty.")
        with self.conn:
            return insert_row(self.conn, self.tables.orders, header)

    def update(self, order_id: int, header: dict) -> None:
        with self.conn:
            if update_row(self.conn, self.tables.orders, "id", order_id, header) == 0:
                raise DomainError(f"Order {order_id} not found.")

    # ---- Items ------------------------------------------------------------

    def list_items(self, order_id: int) -> list[sqlite3.Row]:
        return self.conn.execute(
            f"SELECT * FROM {self.tables.items} WHERE order_id=? ORDER BY si, id",
            (order_id,),
        ).fetchall()

    def delete_items(self, order_id: int) -> None:
        with self.conn:
            self.conn.execute(f"DELETE FROM {self.tables.items} WHERE order_id=?", (order_id,))

    def insert_items(self, order_id: int, items: Iterable[dict]) -> list[int]:
        with self.conn:
            return [
                insert_row(self.conn, self.tables.items, {"order_id": order_id, **it})
                for it in items
            ]

    # ---- Payment ----------------------------------------------------------

    def get_payment(self, order_id: int) -> sqlite3.Row | None:
        return self.conn.execute(
            f"SELECT * FROM {self.tables.payments} WHERE order_id=?", (order_id,)
        ).fetchone()

    def insert_payment(self, order_id: int, payment: dict) -> int:
        with self.conn:
            return insert_row(self.conn, self.tables.payments, {"order_id": order_id, **payment})

    def update_payment(self, order_id: int, payment: dict) -> None:
        values = {**payment, "updated_at": _now_sql(self.conn)}
        with self.conn:
            if update_row(self.conn, self.tables.payments, "order_id", order_id, values) == 0:
                raise DomainError(f"No payment row for order {order_id}.")


def _now_sql(conn: sqlite3.Connection) -> str:
    return conn.execute("SELECT CURRENT_TIMESTAMP").fetchone()[0]
