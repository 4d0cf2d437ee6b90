from pathlib import Path
import sqlite3
import sys

from .repositories.tables import OPTICAL_TABLES, CONTACT_LENS_TABLES

# One product line = prescriptions + eyes + remarks + orders + items + payments.
# Spectacle orders and contact-lens orders use the same shape on separate tables.
_TABLE_SET_SQL = r"""
/* -------- prescriptions (customer + prescription header) -------- */
CREATE TABLE IF NOT EXISTS {prescriptions} (
    id                   INTEGER PRIMARY KEY AUTOINCREMENT,
    prescription_no      TEXT UNIQUE NOT NULL,
    reference_no         TEXT,
    title                TEXT,
    name                 TEXT NOT NULL,
    gender               TEXT,
    age                  TEXT,
    customer_code        TEXT,
    birth_day            TEXT,
    marriage_anniversary TEXT,
    address              TEXT,
    city                 TEXT,
    state                TEXT,
    pin_code             TEXT,
    phone_landline       TEXT,
    mobile_no            TEXT,
    email                TEXT,
    ipd                  TEXT,
    prescribed_by        TEXT NOT NULL,
    class                TEXT,
    booking_by           TEXT,
    balance_lens         INTEGER NOT NULL DEFAULT 0 CHECK (balance_lens IN (0,1)),
    date                 DATE NOT NULL,
    retest_after         TEXT,
    expiry_date          TEXT,
    created_at           TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_{prescriptions}_name   ON {prescriptions}(name);
CREATE INDEX IF NOT EXISTS idx_{prescriptions}_mobile ON {prescriptions}(mobile_no);

/* -------- eye readings: one row per eye x vision type -------- */
CREATE TABLE IF NOT EXISTS {eyes} (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    prescription_id INTEGER NOT NULL,
    eye_type        TEXT NOT NULL CHECK (eye_type IN ('right','left')),
    vision_type     TEXT NOT NULL CHECK (vision_type IN ('distance','near')),
    sph             TEXT,
    cyl             TEXT,
    ax              TEXT,
    add_power       TEXT,
    vn              TEXT,
    rpd             TEXT,
    lpd             TEXT,
    FOREIGN KEY (prescription_id) REFERENCES {prescriptions}(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_{eyes}_prescription ON {eyes}(prescription_id);

CREATE TABLE IF NOT EXISTS {remarks} (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    prescription_id INTEGER NOT NULL,
    remark_type     TEXT NOT NULL,
    FOREIGN KEY (prescription_id) REFERENCES {prescriptions}(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_{remarks}_prescription ON {remarks}(prescription_id);

/* -------- orders -------- */
CREATE TABLE IF NOT EXISTS {orders} (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    prescription_id INTEGER NOT NULL,
    order_no        TEXT UNIQUE NOT NULL,
    bill_no         TEXT,
    order_date      DATE,
    delivery_date   DATE,
    status          TEXT NOT NULL DEFAULT 'Processing',
    status_date     TEXT,
    remarks         TEXT,
    created_at      TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (prescription_id) REFERENCES {prescriptions}(id)
);
CREATE INDEX IF NOT EXISTS idx_{orders}_prescription ON {orders}(prescription_id);

CREATE TABLE IF NOT EXISTS {items} (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    order_id         INTEGER NOT NULL,
    si               INTEGER NOT NULL CHECK (si >= 1),
    item_type        TEXT,
    item_code        TEXT,
    item_name        TEXT NOT NULL,
    unit             TEXT,
    rate             NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(rate AS REAL) >= 0),
    qty              INTEGER NOT NULL DEFAULT 1 CHECK (qty >= 1),
    amount           NUMERIC NOT NULL DEFAULT 0,
    tax_percent      NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(tax_percent AS REAL) >= 0),
    discount_percent NUMERIC NOT NULL DEFAULT 0,
    discount_amount  NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(discount_amount AS REAL) >= 0),
    brand_name       TEXT,
    lens_index       TEXT,
    coating          TEXT{item_extra_columns},
    FOREIGN KEY (order_id) REFERENCES {orders}(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_{items}_order ON {items}(order_id);

/* total_advance and balance are written by the application, not generated */
CREATE TABLE IF NOT EXISTS {payments} (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    order_id         INTEGER UNIQUE NOT NULL,
    payment_estimate NUMERIC NOT NULL DEFAULT 0,
    tax_amount       NUMERIC NOT NULL DEFAULT 0,
    discount_amount  NUMERIC NOT NULL DEFAULT 0,
    final_amount     NUMERIC NOT NULL DEFAULT 0,
    advance_cash     NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(advance_cash AS REAL) >= 0),
    advance_card_upi NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(advance_card_upi AS REAL) >= 0),
    advance_other    NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(advance_other AS REAL) >= 0),
    total_advance    NUMERIC NOT NULL DEFAULT 0,
    balance          NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(balance AS REAL) >= 0),
    created_at       TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at       TIMESTAMP,
    FOREIGN KEY (order_id) REFERENCES {orders}(id) ON DELETE CASCADE
);
"""

_CONTACT_LENS_ITEM_COLUMNS = """,
    side             TEXT,
    base_curve       TEXT,
    power            TEXT,
    material         TEXT,
    disposal         TEXT,
    diameter         TEXT,
    sph              TEXT,
    cyl              TEXT,
    axis             TEXT,
    lens_code        TEXT"""


def build_sql() -> str:
    parts = ["PRAGMA foreign_keys = ON;"]
    for tables, extra in ((OPTICAL_TABLES, ""), (CONTACT_LENS_TABLES, _CONTACT_LENS_ITEM_COLUMNS)):
        parts.append(
            _TABLE_SET_SQL.format(
                prescriptions=tables.prescriptions,
                eyes=tables.eyes,
                remarks=tables.remarks,
                orders=tables.orders,
                items=tables.items,
                payments=tables.payments,
                item_extra_columns=extra,
            )
        )
    return "\n".join(parts)


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply the idempotent schema on an open connection (used by tests with :memory:)."""
    conn.executescript(build_sql())
    conn.commit()


def init_schema(db_path: Path | str = "optical_shop.db") -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        apply_schema(conn)


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else Path(__file__).resolve().parents[1] / "data" / "optical_shop.db"
    init_schema(target)
    print(f"✓ DB applied to {target}")
