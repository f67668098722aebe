"""Importing this package registers every table on Base.metadata"""

from src.service.shared_kernel.driven_adapter.model.audit_log_model import (
    PurchaseAuditModel,
    RevocationLogModel,
    ValidationAttemptModel,
)
from src.service.shared_kernel.driven_adapter.model.event_model import EventModel
from src.service.shared_kernel.driven_adapter.model.inventory_reservation_model import (
    InventoryReservationModel,
)
from src.service.shared_kernel.driven_adapter.model.purchase_intent_model import (
    PurchaseIntentModel,
)
from src.service.shared_kernel.driven_adapter.model.ticket_model import TicketModel
from src.service.shared_kernel.driven_adapter.model.user_model import UserModel


__all__ = [
    'EventModel',
    'InventoryReservationModel',
    'PurchaseAuditModel',
    'PurchaseIntentModel',
    'RevocationLogModel',
    'TicketModel',
    'UserModel',
    'ValidationAttemptModel',
]
