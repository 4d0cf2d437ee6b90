from __future__ import annotations

import logging
from pathlib import Path
import sqlite3
from typing import Optional

from PySide6.QtCore import Qt, QThreadPool
from PySide6.QtWidgets import QWidget

from ...constants import SEARCH_DEBOUNCE_MS
from ...database.repositories import OrdersRepo, PrescriptionsRepo, OPTICAL_TABLES
from ...utils.validators import ValidationError
from ..base_module import BaseModule
from .form import OrderCardForm
from .gateway import PersistenceError, PersistenceGateway, SaveResult
from .identifiers import IdentifierGenerator
from .record import LineItem, OrderRecord
from .search import SuggestionSearch, make_lookup
from .state import ERROR, Notice, OrderFormState, new_order_record

_log = logging.getLogger(__name__)


class OrderCardController(BaseModule):
    """
    Order card page: wires OrderCardForm to the form state, the debounced
    suggestion search and the persistence gateway.

    Key behavior:
      - Every widget edit goes through OrderFormState; the form re-renders
        from the record on each change (state.on_change).
      - Search runs on `pool` with its own connection when both `pool` and
        `db_path` are given, otherwise inline on `conn`.
      - Validation and save failures are shown in the form's notice label.

    Subclasses swap the product line through the class attributes below.
    """

    title = "Order Card"
    FORM_CLS = OrderCardForm
    TABLES = OPTICAL_TABLES
    ITEM_CLS = LineItem
    RECORD_CLS = OrderRecord
    record_factory = staticmethod(new_order_record)

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        ids: Optional[IdentifierGenerator] = None,
        db_path: Optional[Path | str] = None,
        pool: Optional[QThreadPool] = None,
        debounce_ms: int = SEARCH_DEBOUNCE_MS,
    ):
        super().__init__()
        self.conn = conn
        self.ids = ids or IdentifierGenerator()
        self.view = self.FORM_CLS()
        self.view.items_model.on_edit = self._edit_item

        self.state = OrderFormState(
            ids=self.ids,
            notify=self._show_notice,
            record_factory=self.record_factory,
            item_cls=self.ITEM_CLS,
            on_change=self.view.set_record,
        )
        self.gateway = PersistenceGateway(
            PrescriptionsRepo(conn, self.TABLES),
            OrdersRepo(conn, self.TABLES),
            ids=self.ids,
        )

        threaded = pool is not None and db_path is not None
        lookup = make_lookup(
            conn=None if threaded else conn,
            db_path=db_path if threaded else None,
            tables=self.TABLES,
            item_cls=self.ITEM_CLS,
            record_cls=self.RECORD_CLS,
        )
        self.search = SuggestionSearch(
            lookup, pool=pool if threaded else None, debounce_ms=debounce_ms, parent=self
        )

        self._wire()
        self.view.set_record(self.state.record)

    # ------------------------------------------------------------------ #
    # BaseModule API
    # ------------------------------------------------------------------ #

    def get_widget(self) -> QWidget:
        return self.view

    # ------------------------------------------------------------------ #
    # Wiring
    # ------------------------------------------------------------------ #

    def _wire(self):
        v = self.view
        for path, w in v.text_inputs.items():
            w.textEdited.connect(lambda text, p=path: self._edit(p, text))
        for path, w in v.numeric_inputs.items():
            w.textEdited.connect(lambda text, p=path: self._edit(p, text, numeric=True))
        for path, cmb in v.combo_inputs.items():
            cmb.currentTextChanged.connect(lambda text, p=path: self._edit(p, text))
        for path, chk in v.flag_inputs.items():
            chk.toggled.connect(lambda checked, p=path: self.state.set_flag(p, checked))
        for path, (w, fmt) in v.date_inputs.items():
            w.dateTimeChanged.connect(lambda dt, p=path, f=fmt: self._edit(p, dt.toString(f)))

        v.edt_search.textEdited.connect(self._on_search_text)
        v.edt_search.returnPressed.connect(self.search.flush)
        v.cmb_search_field.currentIndexChanged.connect(
            lambda _=None: self._on_search_text(v.edt_search.text())
        )
        v.lst_suggestions.itemActivated.connect(self._on_suggestion_chosen)
        v.lst_suggestions.itemClicked.connect(self._on_suggestion_chosen)
        self.search.suggestionsChanged.connect(v.set_suggestions)
        self.search.searchFailed.connect(lambda msg: self._show_notice(Notice(msg, ERROR)))

        v.btn_add_item.clicked.connect(self.add_item)
        v.btn_remove_item.clicked.connect(self.remove_selected_item)
        v.btn_apply_discount.clicked.connect(self.apply_discount)
        v.btn_clear.clicked.connect(self.clear)
        v.btn_save.clicked.connect(self.save)

    # ------------------------------------------------------------------ #
    # Handlers
    # ------------------------------------------------------------------ #

    def _show_notice(self, notice: Notice) -> None:
        if notice.severity == ERROR:
            _log.warning("%s", notice.message)
        self.view.notice.show_notice(notice.message, notice.severity)

    def _edit(self, path: tuple, value, numeric: bool = False) -> None:
        try:
            if numeric:
                self.state.set_numeric_field(path, value)
            else:
                self.state.set_field(path, value)
        except ValidationError as e:
            self._show_notice(Notice(str(e), ERROR))

    def _edit_item(self, row: int, field: str, value):
        return self.state.update_item(row, field, value)

    def _on_search_text(self, text: str) -> None:
        self.search.request(text, self.view.search_target())

    def _on_suggestion_chosen(self, item) -> None:
        suggestion = item.data(Qt.UserRole)
        if suggestion is None:
            return
        self.state.load_suggestion(suggestion)
        self.view.edt_search.clear()
        self.search.clear()

    def add_item(self):
        entry = self.view.item_entry()
        extra = {k: v.strip() for k, v in entry["extra"].items() if v.strip()}
        item = self.state.add_item(
            entry["item_name"],
            entry["rate"],
            entry["qty"] or None,
            item_code=self.ids.item_code(entry["kind"]),
            **extra,
        )
        if item is not None:
            self.view.clear_item_entry()
        return item

    def remove_selected_item(self):
        row = self.view.tbl_items.selected_row()
        if row is None:
            self._show_notice(Notice("Select an item to delete.", ERROR))
            return None
        return self.state.remove_item(row)

    def apply_discount(self):
        applied = self.state.apply_discount(
            self.view.edt_discount_value.text(), self.view.cmb_discount_type.currentData()
        )
        if applied is not None:
            self.view.edt_discount_value.clear()
        return applied

    def clear(self):
        self.search.clear()
        self.view.edt_search.clear()
        return self.state.reset()

    def save(self) -> SaveResult | None:
        try:
            self.state.validate_for_save()
        except ValidationError as e:
            self._show_notice(Notice(str(e), ERROR))
            return None
        try:
            result = self.gateway.save(self.state.record)
        except PersistenceError as e:
            self._show_notice(Notice(str(e), ERROR))
            return None
        self.state.mark_saved(result.order_id, result.prescription_id, result.order_no)
        self._show_notice(Notice(result.message))
        return result
