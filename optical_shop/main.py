from PySide6.QtWidgets import (
    QApplication,
    QMainWindow,
    QWidget,
    QListWidget,
    QListWidgetItem,
    QStackedWidget,
    QHBoxLayout,
    QSizePolicy,
)
from PySide6.QtCore import Qt, QThreadPool
import sqlite3
import sys

from .config import DB_PATH
from .constants import APP_NAME
from .database import get_connection
from .modules.base_module import BaseModule
from .modules.contact_lens import ContactLensController
from .modules.order_card import OrderCardController
from .utils.loggers import get_logger
from .utils.ui_helpers import error

log = get_logger()


class MainWindow(QMainWindow):
    """Navigation list on the left, one stacked page per module."""

    def __init__(self, conn: sqlite3.Connection, db_path=DB_PATH, pool: QThreadPool | None = None):
        super().__init__()
        self.setWindowTitle(APP_NAME)
        self.setWindowFlag(Qt.WindowMinimizeButtonHint, True)
        self.setWindowFlag(Qt.WindowMaximizeButtonHint, True)
        self.setMinimumSize(1024, 640)

        self.conn = conn

        central = QWidget(self)
        row = QHBoxLayout(central)
        self.setCentralWidget(central)

        self.nav = QListWidget()
        self.nav.setFixedWidth(130)
        self.nav.setSizePolicy(QSizePolicy.Fixed, QSizePolicy.Expanding)
        self.stack = QStackedWidget()
        row.addWidget(self.nav)
        row.addWidget(self.stack, 1)

        self.modules: list[BaseModule] = []
        self.nav.currentRowChanged.connect(self.stack.setCurrentIndex)

        for controller_cls in (OrderCardController, ContactLensController):
            self.add_module(controller_cls(conn, db_path=db_path, pool=pool))

        if self.nav.count():
            self.nav.setCurrentRow(0)

    def add_module(self, module: BaseModule):
        self.nav.addItem(QListWidgetItem(module.title))
        self.stack.addWidget(module.get_widget())
        self.modules.append(module)


def main():
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)

    try:
        conn = get_connection(DB_PATH)
    except sqlite3.Error as e:
        log.error("Could not open database %s: %s", DB_PATH, e)
        error(None, APP_NAME, f"Could not open the database:\n{DB_PATH}\n\n{e}")
        return 1

    log.info("Using database %s", DB_PATH)
    win = MainWindow(conn, DB_PATH, QThreadPool.globalInstance())
    win.resize(1200, 800)
    win.show()
    code = app.exec()
    conn.close()
    return code


if __name__ == "__main__":
    sys.exit(main())
