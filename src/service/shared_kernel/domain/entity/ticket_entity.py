from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import attrs

from src.service.shared_kernel.domain.enum.ticket_status import RegistrationStatus, TicketStatus


@attrs.define
class Ticket:
    id: UUID
    event_id: int
    payment_id: UUID
    user_id: int
    sequence_number: int
    group_size: int
    qr_payload: str
    validation_hash: str
    registry_token_id: str
    parent_ticket_id: Optional[UUID] = None
    bound_name: Optional[str] = None
    status: TicketStatus = TicketStatus.VALID
    registration_status: RegistrationStatus = RegistrationStatus.PENDING
    registration_tx_ref: Optional[str] = None
    registration_error: Optional[str] = None
    registration_error_category: Optional[str] = None
    registration_attempts: int = 0
    issued_at: datetime = attrs.field(factory=lambda: datetime.now(timezone.utc))
    used_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None

    @property
    def is_parent(self) -> bool:
        return self.parent_ticket_id is None

    @property
    def ticket_number(self) -> str:
        """Human readable number printed on the ticket and shown to gate staff"""
        return f'{str(self.payment_id)[-8:].upper()}-{self.sequence_number:02d}'

    @property
    def entry_type(self) -> str:
        if self.group_size > 1:
            return f'Group Entry ({self.sequence_number} of {self.group_size})'
        return 'Single Entry'
