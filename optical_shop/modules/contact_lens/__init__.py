from .controller import ContactLensController, new_contact_lens_record
from .form import ContactLensForm

__all__ = ["ContactLensController", "ContactLensForm", "new_contact_lens_record"]
