"""
Ticket batch issuance for one confirmed purchase.

Exactly `quantity` tickets, sequence numbers 1..quantity. The first ticket is the
parent of the group, the others reference it. Each ticket carries its own QR payload
and a registry token id derived from the server-generated ticket id.
"""

from datetime import datetime

from uuid_utils.compat import uuid7

from src.platform.exception.exceptions import DomainError
from src.platform.logging.loguru_io import Logger
from src.service.purchase.domain.entity.purchase_intent_entity import (
    PurchaseIntent,
    PurchaseIntentStatus,
)
from src.service.shared_kernel.domain.entity.ticket_entity import Ticket
from src.service.shared_kernel.domain.value_object.qr_payload import (
    QrPayload,
    build_validation_hash,
)
from src.service.shared_kernel.domain.value_object.registry_token import (
    derive_registry_token_id,
)


@Logger.io
def issue_ticket_batch(*, intent: PurchaseIntent, issued_at: datetime) -> list[Ticket]:
    if intent.status != PurchaseIntentStatus.CONFIRMED:
        raise DomainError('Tickets can only be issued for a confirmed purchase')

    bound_names = intent.bound_names
    tickets: list[Ticket] = []
    parent_id = None

    for sequence_number in range(1, intent.quantity + 1):
        ticket_id = uuid7()
        token_id = derive_registry_token_id(ticket_id)
        bound_name = bound_names.for_sequence(sequence_number) if bound_names else None
        validation_hash = build_validation_hash(
            ticket_id=ticket_id, payment_id=intent.id, issued_at=issued_at
        )
        payload = QrPayload(
            ticket_id=ticket_id,
            validation_hash=validation_hash,
            registry_token_id=token_id,
            event_id=intent.event_id,
            bound_name=bound_name,
            issued_at=issued_at,
        )

        tickets.append(
            Ticket(
                id=ticket_id,
                event_id=intent.event_id,
                payment_id=intent.id,
                user_id=intent.user_id,
                sequence_number=sequence_number,
                group_size=intent.quantity,
                parent_ticket_id=parent_id,
                qr_payload=payload.encode(),
                validation_hash=validation_hash,
                registry_token_id=token_id,
                bound_name=bound_name,
                issued_at=issued_at,
            )
        )
        if parent_id is None:
            parent_id = ticket_id

    return tickets
