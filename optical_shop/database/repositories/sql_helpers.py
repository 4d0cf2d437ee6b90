from __future__ import annotations
import sqlite3

# Table and column names come from TableSet / dataclass fields, never from user input.


def insert_row(conn: sqlite3.Connection, table: str, values: dict) -> int:
    cols = list(values)
    sql = (
        f"INSERT INTO {table} ({', '.join(cols)}) "
        f"VALUES ({', '.join('?' for _ in cols)})"
    )
    cur = conn.execute(sql, [values[c] for c in cols])
    return int(cur.lastrowid)


def update_row(conn: sqlite3.Connection, table: str, key: str, key_value, values: dict) -> int:
    cols = list(values)
    sql = f"UPDATE {table} SET {', '.join(f'{c}=?' for c in cols)} WHERE {key}=?"
    cur = conn.execute(sql, [values[c] for c in cols] + [key_value])
    return cur.rowcount
