from datetime import date

from ...database.repositories import CONTACT_LENS_TABLES
from ...utils.formatters import format_date_for_input
from ...utils.helpers import add_months
from ..order_card.controller import OrderCardController
from ..order_card.identifiers import IdentifierGenerator
from ..order_card.record import ContactLensItem, ContactLensRecord
from .form import ContactLensForm


def new_contact_lens_record(ids: IdentifierGenerator, today: date) -> ContactLensRecord:
    prescription_no = ids.contact_lens_prescription_no()
    return ContactLensRecord(
        prescription_no=prescription_no,
        reference_no=ids.reference_no(prescription_no),
        date=today.isoformat(),
        delivery_date=format_date_for_input(add_months(today, 1).isoformat(), "datetime-local"),
        status_date=format_date_for_input(today.isoformat(), "datetime-local"),
        expiry_date=today.isoformat(),
    )


class ContactLensController(OrderCardController):
    """Contact-lens orders: same card behavior over the contact-lens tables."""

    title = "Contact Lens"
    FORM_CLS = ContactLensForm
    TABLES = CONTACT_LENS_TABLES
    ITEM_CLS = ContactLensItem
    RECORD_CLS = ContactLensRecord
    record_factory = staticmethod(new_contact_lens_record)
