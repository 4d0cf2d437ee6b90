from typing import Callable, Optional

from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex

from ...utils.formatters import format_amount
from .record import LineItem


class LineItemsTableModel(QAbstractTableModel):
    """
    Line items of the current order card.

    Editable cells do not write to the item directly: they call
    `on_edit(row, field, value)` (the form state's update_item) and the
    controller pushes the refreshed list back with replace().
    """

    # (header, LineItem field, editable)
    COLUMNS = [
        ("#", "si", False),
        ("Code", "item_code", True),
        ("Item", "item_name", True),
        ("Unit", "unit", True),
        ("Rate", "rate", True),
        ("Qty", "qty", True),
        ("Tax %", "tax_percent", True),
        ("Disc %", "discount_percent", True),
        ("Disc Amt", "discount_amount", True),
        ("Amount", "amount", False),
    ]
    MONEY_FIELDS = {"rate", "tax_percent", "discount_percent", "discount_amount", "amount"}

    def __init__(
        self,
        rows: list[LineItem],
        on_edit: Optional[Callable[[int, str, object], object]] = None,
        columns: Optional[list] = None,
    ):
        super().__init__()
        self._rows = list(rows)
        self.on_edit = on_edit
        self._columns = columns or self.COLUMNS

    def rowCount(self, parent=QModelIndex()):
        return len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        return len(self._columns)

    def field_at(self, column: int) -> str:
        return self._columns[column][1]

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid():
            return None
        item = self._rows[index.row()]
        field = self.field_at(index.column())
        value = getattr(item, field, "")

        if role == Qt.DisplayRole:
            return format_amount(value) if field in self.MONEY_FIELDS else str(value)
        if role == Qt.EditRole:
            return str(value)
        if role == Qt.TextAlignmentRole and field in self.MONEY_FIELDS | {"qty", "si"}:
            return Qt.AlignRight | Qt.AlignVCenter
        return None

    def flags(self, index):
        base = super().flags(index)
        if index.isValid() and self._columns[index.column()][2] and self.on_edit is not None:
            return base | Qt.ItemIsEditable
        return base

    def setData(self, index, value, role=Qt.EditRole):
        if role != Qt.EditRole or not index.isValid() or self.on_edit is None:
            return False
        result = self.on_edit(index.row(), self.field_at(index.column()), value)
        return result is not None

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            return self._columns[section][0]
        return super().headerData(section, orientation, role)

    # --- helpers ------------------------------------------------------------

    def at(self, row: int) -> LineItem:
        return self._rows[row]

    def replace(self, rows: list[LineItem]):
        rows = list(rows)
        if len(rows) == len(self._rows) and rows:
            # same shape (cell edit): no reset while an editor may still be open
            self._rows = rows
            self.dataChanged.emit(
                self.index(0, 0), self.index(len(rows) - 1, len(self._columns) - 1)
            )
            return
        self.beginResetModel()
        self._rows = rows
        self.endResetModel()
