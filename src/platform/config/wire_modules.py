"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.gate.app.command import revoke_ticket_use_case, validate_ticket_use_case
from src.service.purchase.app.command import (
    handle_payment_notification_use_case,
    open_purchase_use_case,
)
from src.service.purchase.app.query import get_purchase_status_use_case
from src.service.shared_kernel.driving_adapter.auth import role_auth


WIRE_MODULES: list[ModuleType] = [
    open_purchase_use_case,
    handle_payment_notification_use_case,
    get_purchase_status_use_case,
    validate_ticket_use_case,
    revoke_ticket_use_case,
    role_auth,
]
