from .controller import OrderCardController
from .form import OrderCardForm
from .state import OrderFormState, new_order_record

__all__ = ["OrderCardController", "OrderCardForm", "OrderFormState", "new_order_record"]
