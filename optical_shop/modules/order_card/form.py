from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QGridLayout, QFormLayout, QGroupBox,
    QLineEdit, QComboBox, QCheckBox, QLabel, QPushButton, QDateEdit,
    QDateTimeEdit, QListWidget, QListWidgetItem, QScrollArea,
)
from PySide6.QtCore import Qt, QDate, QDateTime

from ...constants import ITEM_KINDS, ORDER_STATUSES, DISCOUNT_PERCENTAGE, DISCOUNT_FIXED
from ...utils.formatters import format_amount
from ...widgets.notice_label import NoticeLabel
from ...widgets.table_view import TableView
from .model import LineItemsTableModel
from .record import OrderRecord, SearchSuggestion
from .state import get_path

DATE_FMT = "yyyy-MM-dd"
DATETIME_FMT = "yyyy-MM-dd'T'HH:mm"


class OrderCardForm(QWidget):
    """
    Spectacle order card: search, customer, eye grid, remarks, items,
    discount, payment and status.

    The form keeps no state of its own. Inputs are registered by record path
    (text_inputs, numeric_inputs, combo_inputs, flag_inputs, date_inputs) so
    the controller can wire them generically, and set_record() renders a
    whole OrderRecord with signals blocked.
    """

    TITLE = "Order Card"
    ITEM_KINDS = ITEM_KINDS[:3]
    ITEM_COLUMNS = LineItemsTableModel.COLUMNS
    # extra line-item attributes offered in the add strip: (field, placeholder)
    ITEM_EXTRA_FIELDS = (("brand_name", "Brand"), ("lens_index", "Index"), ("coating", "Coating"))
    EYE_FIELDS = (("sph", "SPH"), ("cyl", "CYL"), ("ax", "AXIS"), ("add", "ADD"), ("vn", "V/N"))
    REMARK_LABELS = {
        "for_constant_use": "For constant use",
        "for_distance_vision_only": "For distance vision only",
        "for_near_vision_only": "For near vision only",
        "separate_glasses": "Separate glasses",
        "bifocal_lenses": "Bi-focal lenses",
        "progressive_lenses": "Progressive lenses",
        "anti_reflection_lenses": "Anti-reflection lenses",
        "anti_radiation_lenses": "Anti-radiation lenses",
        "under_corrected": "Under corrected",
    }
    SEARCH_TARGETS = (
        ("Prescription No", "prescription_no"),
        ("Reference No", "reference_no"),
        ("Name", "name"),
        ("Mobile", "mobile_no"),
    )

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle(self.TITLE)

        self.text_inputs: dict[tuple, QLineEdit] = {}
        self.numeric_inputs: dict[tuple, QLineEdit] = {}
        self.combo_inputs: dict[tuple, QComboBox] = {}
        self.flag_inputs: dict[tuple, QCheckBox] = {}
        self.date_inputs: dict[tuple, tuple] = {}

        body = QWidget()
        lay = QVBoxLayout(body)
        lay.addWidget(self._build_search())
        top = QHBoxLayout()
        top.addWidget(self._build_header())
        top.addWidget(self._build_customer(), 1)
        lay.addLayout(top)
        mid = QHBoxLayout()
        mid.addWidget(self._build_prescription(), 1)
        mid.addWidget(self._build_remarks())
        lay.addLayout(mid)
        lay.addWidget(self._build_items(), 1)
        bottom = QHBoxLayout()
        bottom.addWidget(self._build_discount())
        bottom.addWidget(self._build_payment(), 1)
        bottom.addWidget(self._build_status())
        lay.addLayout(bottom)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(body)

        self.notice = NoticeLabel()
        self.btn_clear = QPushButton("Clear Order")
        self.btn_save = QPushButton("Save Order")
        self.btn_save.setDefault(True)
        actions = QHBoxLayout()
        actions.addWidget(self.notice, 1)
        actions.addWidget(self.btn_clear)
        actions.addWidget(self.btn_save)

        root = QVBoxLayout(self)
        root.addWidget(scroll, 1)
        root.addLayout(actions)

    # ------------------------------------------------------------------ #
    # Input factories (register by record path)
    # ------------------------------------------------------------------ #

    def _text(self, path: tuple, placeholder: str = "") -> QLineEdit:
        w = QLineEdit()
        w.setPlaceholderText(placeholder)
        self.text_inputs[path] = w
        return w

    def _numeric(self, path: tuple, placeholder: str = "") -> QLineEdit:
        w = QLineEdit()
        w.setPlaceholderText(placeholder)
        w.setAlignment(Qt.AlignRight)
        self.numeric_inputs[path] = w
        return w

    def _combo(self, path: tuple, values, editable: bool = False) -> QComboBox:
        w = QComboBox()
        w.addItems(list(values))
        w.setEditable(editable)
        self.combo_inputs[path] = w
        return w

    def _date(self, path: tuple) -> QDateEdit:
        w = QDateEdit()
        w.setCalendarPopup(True)
        w.setDisplayFormat(DATE_FMT)
        self.date_inputs[path] = (w, DATE_FMT)
        return w

    def _datetime(self, path: tuple) -> QDateTimeEdit:
        w = QDateTimeEdit()
        w.setCalendarPopup(True)
        w.setDisplayFormat("yyyy-MM-dd HH:mm")
        self.date_inputs[path] = (w, DATETIME_FMT)
        return w

    # ------------------------------------------------------------------ #
    # Sections
    # ------------------------------------------------------------------ #

    def _build_search(self) -> QGroupBox:
        box = QGroupBox("Search")
        v = QVBoxLayout(box)
        row = QHBoxLayout()
        self.cmb_search_field = QComboBox()
        for label, field in self.SEARCH_TARGETS:
            self.cmb_search_field.addItem(label, field)
        self.edt_search = QLineEdit()
        self.edt_search.setPlaceholderText("Type to search previous prescriptions…")
        row.addWidget(self.cmb_search_field)
        row.addWidget(self.edt_search, 1)
        v.addLayout(row)
        self.lst_suggestions = QListWidget()
        self.lst_suggestions.setMaximumHeight(110)
        self.lst_suggestions.setVisible(False)
        v.addWidget(self.lst_suggestions)
        return box

    def _build_header(self) -> QGroupBox:
        box = QGroupBox("Order")
        f = QFormLayout(box)
        self.edt_prescription_no = self._text(("prescription_no",))
        self.edt_reference_no = self._text(("reference_no",))
        f.addRow("Prescription No:", self.edt_prescription_no)
        f.addRow("Reference No:", self.edt_reference_no)
        f.addRow("Bill No:", self._text(("bill_no",)))
        f.addRow("Date:", self._date(("date",)))
        f.addRow("Delivery:", self._datetime(("delivery_date",)))
        f.addRow("Class:", self._text(("customer", "class_name")))
        f.addRow("Booking By:", self._text(("customer", "booking_by")))
        return box

    def _build_customer(self) -> QGroupBox:
        box = QGroupBox("Customer")
        g = QGridLayout(box)
        c = ("customer",)
        title = self._combo(c + ("title",), ("Mr.", "Mrs.", "Ms.", "Dr.", "Master", "Baby"), editable=True)
        self.edt_name = self._text(c + ("name",), "Name")
        g.addWidget(QLabel("Name:"), 0, 0)
        g.addWidget(title, 0, 1)
        g.addWidget(self.edt_name, 0, 2, 1, 3)
        g.addWidget(QLabel("Gender:"), 1, 0)
        g.addWidget(self._combo(c + ("gender",), ("Male", "Female", "Other")), 1, 1)
        g.addWidget(QLabel("Age:"), 1, 2)
        g.addWidget(self._text(c + ("age",)), 1, 3)
        g.addWidget(self._text(c + ("customer_code",), "Customer code"), 1, 4)
        g.addWidget(QLabel("Address:"), 2, 0)
        g.addWidget(self._text(c + ("address",)), 2, 1, 1, 4)
        g.addWidget(self._text(c + ("city",), "City"), 3, 1)
        g.addWidget(self._text(c + ("state",), "State"), 3, 2)
        g.addWidget(self._text(c + ("pin_code",), "PIN"), 3, 3)
        g.addWidget(QLabel("Phone:"), 4, 0)
        g.addWidget(self._text(c + ("phone_landline",), "Landline"), 4, 1)
        self.edt_mobile = self._text(c + ("mobile_no",), "Mobile")
        g.addWidget(self.edt_mobile, 4, 2)
        g.addWidget(self._text(c + ("email",), "Email"), 4, 3, 1, 2)
        g.addWidget(QLabel("Birthday:"), 5, 0)
        g.addWidget(self._text(c + ("birth_day",), "YYYY-MM-DD"), 5, 1)
        g.addWidget(QLabel("Anniversary:"), 5, 2)
        g.addWidget(self._text(c + ("marriage_anniversary",), "YYYY-MM-DD"), 5, 3)
        g.addWidget(QLabel("Prescribed By:"), 6, 0)
        g.addWidget(self._text(c + ("prescribed_by",)), 6, 1, 1, 2)
        return box

    def _build_prescription(self) -> QGroupBox:
        box = QGroupBox("Prescription")
        g = QGridLayout(box)
        for col, (_, label) in enumerate(self.EYE_FIELDS, start=2):
            g.addWidget(QLabel(label), 0, col, Qt.AlignCenter)
        g.addWidget(QLabel("PD"), 0, 2 + len(self.EYE_FIELDS), Qt.AlignCenter)

        row = 1
        for eye, eye_label, pd_label in (("right_eye", "Right", "RPD"), ("left_eye", "Left", "LPD")):
            g.addWidget(QLabel(eye_label), row, 0)
            for vision, vision_label in (("dv", "D.V."), ("nv", "N.V.")):
                g.addWidget(QLabel(vision_label), row, 1)
                for col, (field, _) in enumerate(self.EYE_FIELDS, start=2):
                    # visual acuity is notation ("6/6", "N6"), not a number
                    make = self._text if field == "vn" else self._numeric
                    g.addWidget(make((eye, vision, field)), row, col)
                if vision == "dv":
                    g.addWidget(self._numeric((eye, "dv", "pd"), pd_label), row, 2 + len(self.EYE_FIELDS))
                row += 1

        self.edt_ipd = QLineEdit()
        self.edt_ipd.setReadOnly(True)
        g.addWidget(QLabel("IPD"), row, 1)
        g.addWidget(self.edt_ipd, row, 2)
        self.chk_balance_lens = QCheckBox("Balance lens")
        self.flag_inputs[("balance_lens",)] = self.chk_balance_lens
        g.addWidget(self.chk_balance_lens, row, 3, 1, 2)
        return box

    def _build_remarks(self) -> QGroupBox:
        box = QGroupBox("Remarks")
        v = QVBoxLayout(box)
        for flag, label in self.REMARK_LABELS.items():
            chk = QCheckBox(label)
            self.flag_inputs[("remarks", flag)] = chk
            v.addWidget(chk)
        v.addStretch(1)
        return box

    def _build_items(self) -> QGroupBox:
        box = QGroupBox("Items")
        v = QVBoxLayout(box)

        strip = QHBoxLayout()
        self.cmb_item_kind = QComboBox()
        self.cmb_item_kind.addItems(list(self.ITEM_KINDS))
        self.edt_item_name = QLineEdit()
        self.edt_item_name.setPlaceholderText("Item name")
        self.edt_item_rate = QLineEdit()
        self.edt_item_rate.setPlaceholderText("Rate")
        self.edt_item_qty = QLineEdit()
        self.edt_item_qty.setPlaceholderText("Qty")
        self.edt_item_qty.setMaximumWidth(60)
        strip.addWidget(self.cmb_item_kind)
        strip.addWidget(self.edt_item_name, 2)
        strip.addWidget(self.edt_item_rate)
        strip.addWidget(self.edt_item_qty)
        self.item_extra_inputs: dict[str, QLineEdit] = {}
        for field, placeholder in self.ITEM_EXTRA_FIELDS:
            w = QLineEdit()
            w.setPlaceholderText(placeholder)
            self.item_extra_inputs[field] = w
            strip.addWidget(w)
        self.btn_add_item = QPushButton("Add Item")
        strip.addWidget(self.btn_add_item)
        v.addLayout(strip)

        self.items_model = LineItemsTableModel([], columns=self.ITEM_COLUMNS)
        self.tbl_items = TableView()
        self.tbl_items.setModel(self.items_model)
        v.addWidget(self.tbl_items, 1)

        row = QHBoxLayout()
        row.addStretch(1)
        self.btn_remove_item = QPushButton("Delete Item")
        row.addWidget(self.btn_remove_item)
        v.addLayout(row)
        return box

    def _build_discount(self) -> QGroupBox:
        box = QGroupBox("Discount")
        f = QFormLayout(box)
        self.cmb_discount_type = QComboBox()
        self.cmb_discount_type.addItem("Percentage", DISCOUNT_PERCENTAGE)
        self.cmb_discount_type.addItem("Fixed amount", DISCOUNT_FIXED)
        self.edt_discount_value = QLineEdit()
        self.edt_discount_value.setPlaceholderText("0")
        self.btn_apply_discount = QPushButton("Apply Discount")
        f.addRow("Type:", self.cmb_discount_type)
        f.addRow("Value:", self.edt_discount_value)
        f.addRow("", self.btn_apply_discount)
        return box

    def _build_payment(self) -> QGroupBox:
        box = QGroupBox("Payment")
        f = QFormLayout(box)
        f.setFieldGrowthPolicy(QFormLayout.AllNonFixedFieldsGrow)

        def value_label() -> QLabel:
            lbl = QLabel("0.00")
            lbl.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
            return lbl

        self.lbl_estimate = value_label()
        self.lbl_tax = value_label()
        self.lbl_discount = value_label()
        self.lbl_total_advance = value_label()
        self.lbl_balance = value_label()
        self.lbl_balance.setStyleSheet("font-weight: bold;")

        f.addRow("Estimate:", self.lbl_estimate)
        f.addRow("Tax:", self.lbl_tax)
        f.addRow("Discount:", self.lbl_discount)
        f.addRow("Cash Advance:", self._numeric(("payment", "cash_advance"), "0.00"))
        f.addRow("Card/UPI Advance:", self._numeric(("payment", "card_upi_advance"), "0.00"))
        f.addRow("Other Advance:", self._numeric(("payment", "other_advance"), "0.00"))
        f.addRow("Total Advance:", self.lbl_total_advance)
        f.addRow("Balance:", self.lbl_balance)
        return box

    def _build_status(self) -> QGroupBox:
        box = QGroupBox("Status")
        f = QFormLayout(box)
        self.status_layout = f
        f.addRow("Order Status:", self._combo(("order_status",), ORDER_STATUSES))
        f.addRow("Status Date:", self._datetime(("status_date",)))
        f.addRow("Retest After:", self._text(("retest_date",), "YYYY-MM-DD"))
        return box

    # ------------------------------------------------------------------ #
    # Rendering
    # ------------------------------------------------------------------ #

    @staticmethod
    def _set_text(w: QLineEdit, text: str) -> None:
        # leave the cursor alone when nothing changed
        if w.text() != text:
            w.setText(text)

    def set_record(self, record: OrderRecord) -> None:
        for path, w in list(self.text_inputs.items()) + list(self.numeric_inputs.items()):
            self._set_text(w, str(get_path(record, path) or ""))

        for path, cmb in self.combo_inputs.items():
            value = str(get_path(record, path) or "")
            cmb.blockSignals(True)
            idx = cmb.findText(value)
            if idx >= 0:
                cmb.setCurrentIndex(idx)
            elif cmb.isEditable():
                cmb.setEditText(value)
            cmb.blockSignals(False)

        for path, chk in self.flag_inputs.items():
            chk.blockSignals(True)
            chk.setChecked(bool(get_path(record, path)))
            chk.blockSignals(False)

        for path, (w, fmt) in self.date_inputs.items():
            value = str(get_path(record, path) or "")
            w.blockSignals(True)
            if fmt == DATE_FMT:
                d = QDate.fromString(value, DATE_FMT)
                if d.isValid():
                    w.setDate(d)
            else:
                dt = QDateTime.fromString(value, DATETIME_FMT)
                if dt.isValid():
                    w.setDateTime(dt)
            w.blockSignals(False)

        self._set_text(self.edt_ipd, record.ipd)
        self.items_model.replace(record.items)

        p = record.payment
        self.lbl_estimate.setText(format_amount(p.estimate))
        self.lbl_tax.setText(format_amount(p.tax_total))
        self.lbl_discount.setText(format_amount(p.discount_total))
        self.lbl_total_advance.setText(format_amount(p.total_advance))
        self.lbl_balance.setText(format_amount(p.balance))

    def set_suggestions(self, suggestions: list[SearchSuggestion]) -> None:
        self.lst_suggestions.clear()
        for s in suggestions:
            c = s.record.customer
            text = " · ".join(x for x in (s.record.prescription_no, c.name, c.mobile_no) if x)
            item = QListWidgetItem(text)
            item.setData(Qt.UserRole, s)
            self.lst_suggestions.addItem(item)
        self.lst_suggestions.setVisible(bool(suggestions))

    def search_target(self) -> str:
        return self.cmb_search_field.currentData()

    def item_entry(self) -> dict:
        """Current add-item strip values."""
        return {
            "kind": self.cmb_item_kind.currentText(),
            "item_name": self.edt_item_name.text(),
            "rate": self.edt_item_rate.text(),
            "qty": self.edt_item_qty.text(),
            "extra": {f: w.text() for f, w in self.item_extra_inputs.items()},
        }

    def clear_item_entry(self) -> None:
        for w in [self.edt_item_name, self.edt_item_rate, self.edt_item_qty, *self.item_extra_inputs.values()]:
            w.clear()
