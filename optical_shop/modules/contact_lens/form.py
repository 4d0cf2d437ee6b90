from PySide6.QtWidgets import QGroupBox

from ..order_card.form import OrderCardForm
from ..order_card.model import LineItemsTableModel


class ContactLensForm(OrderCardForm):
    """Order card variant for contact lenses: lens attributes per line and an expiry date."""

    TITLE = "Contact Lens Order"
    ITEM_KINDS = ("Contact Lens",)
    ITEM_EXTRA_FIELDS = (
        ("side", "Side"),
        ("base_curve", "BC"),
        ("power", "Power"),
        ("diameter", "DIA"),
        ("material", "Material"),
        ("disposal", "Disposal"),
    )
    ITEM_COLUMNS = LineItemsTableModel.COLUMNS[:3] + [
        ("Side", "side", True),
        ("BC", "base_curve", True),
        ("Power", "power", True),
        ("DIA", "diameter", True),
        ("Disposal", "disposal", True),
    ] + LineItemsTableModel.COLUMNS[4:]

    def _build_status(self) -> QGroupBox:
        box = super()._build_status()
        self.status_layout.addRow("Expiry Date:", self._date(("expiry_date",)))
        return box
