# optical_shop/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - Every test gets its own in-memory SQLite DB with the full schema
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON (get_connection)
# - Identifiers come from a pinned clock and a seeded random source
# - Silence benign Qt signal warnings
# ---------------------------------------------------------------------

from __future__ import annotations

from datetime import date, datetime
import os
import random
import re

# Run Qt headless when no display is available.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6 import QtCore

from optical_shop.database import get_connection
from optical_shop.modules.order_card.identifiers import IdentifierGenerator

FIXED_NOW = datetime(2024, 5, 7, 10, 30)
FIXED_TODAY = date(2024, 5, 7)


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):  # alias to match code that expects an `app` fixture
    return qapp


# ---------- Silence benign Qt warnings ----------
_BENIGN_QT_PATTERNS = [
    r"^QObject::connect: .* already connected",
    r"^QObject::disconnect: Unexpected null parameter",
    r"^QBasicTimer::stop: Failed\. Platform timer not running\.",
]


@pytest.fixture(autouse=True, scope="session")
def _silence_benign_qt():
    """Filter common harmless Qt messages during tests."""
    original = QtCore.qInstallMessageHandler(None)
    rx = [re.compile(p) for p in _BENIGN_QT_PATTERNS]

    def handler(msg_type, context, message):
        text = str(message)
        for r in rx:
            if r.search(text):
                return  # swallow benign messages
        QtCore.qInstallMessageHandler(None)
        try:
            QtCore.qDebug(message)
        finally:
            QtCore.qInstallMessageHandler(handler)

    QtCore.qInstallMessageHandler(handler)
    try:
        yield
    finally:
        QtCore.qInstallMessageHandler(original)


# ---------- Per-test database ----------
@pytest.fixture()
def conn():
    """Fresh in-memory DB with both product lines' tables."""
    con = get_connection(":memory:")
    try:
        yield con
    finally:
        con.close()


# ---------- Deterministic identifiers ----------
@pytest.fixture()
def ids() -> IdentifierGenerator:
    return IdentifierGenerator(clock=lambda: FIXED_NOW, rng=random.Random(7))
