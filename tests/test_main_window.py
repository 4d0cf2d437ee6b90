# tests/test_main_window.py

import pytest

pytest.importorskip("PySide6")

from optical_shop.main import MainWindow
from optical_shop.modules.contact_lens import ContactLensController
from optical_shop.modules.order_card import OrderCardController


def test_main_window_hosts_both_pages(qtbot, conn):
    win = MainWindow(conn)
    qtbot.addWidget(win)

    titles = [win.nav.item(i).text() for i in range(win.nav.count())]
    assert titles == ["Order Card", "Contact Lens"]
    assert [type(m) for m in win.modules] == [OrderCardController, ContactLensController]
    assert win.stack.count() == 2

    win.nav.setCurrentRow(1)
    assert win.stack.currentWidget() is win.modules[1].get_widget()
