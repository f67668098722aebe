from src.service.shared_kernel.domain.entity.ticket_entity import Ticket
from src.service.shared_kernel.domain.enum.ticket_status import RegistrationStatus, TicketStatus
from src.service.shared_kernel.driven_adapter.model import TicketModel


def ticket_model_to_entity(model: TicketModel) -> Ticket:
    return Ticket(
        id=model.id,
        event_id=model.event_id,
        payment_id=model.payment_id,
        user_id=model.user_id,
        sequence_number=model.sequence_number,
        group_size=model.group_size,
        parent_ticket_id=model.parent_ticket_id,
        qr_payload=model.qr_payload,
        validation_hash=model.validation_hash,
        registry_token_id=model.registry_token_id,
        bound_name=model.bound_name,
        status=TicketStatus(model.status),
        registration_status=RegistrationStatus(model.registration_status),
        registration_tx_ref=model.registration_tx_ref,
        registration_error=model.registration_error,
        registration_error_category=model.registration_error_category,
        registration_attempts=model.registration_attempts,
        issued_at=model.issued_at,
        used_at=model.used_at,
        revoked_at=model.revoked_at,
    )


def ticket_entity_to_model(ticket: Ticket) -> TicketModel:
    return TicketModel(
        id=ticket.id,
        event_id=ticket.event_id,
        payment_id=ticket.payment_id,
        user_id=ticket.user_id,
        sequence_number=ticket.sequence_number,
        group_size=ticket.group_size,
        parent_ticket_id=ticket.parent_ticket_id,
        status=ticket.status.value,
        qr_payload=ticket.qr_payload,
        validation_hash=ticket.validation_hash,
        registry_token_id=ticket.registry_token_id,
        registration_status=ticket.registration_status.value,
        registration_attempts=ticket.registration_attempts,
        bound_name=ticket.bound_name,
        issued_at=ticket.issued_at,
    )
