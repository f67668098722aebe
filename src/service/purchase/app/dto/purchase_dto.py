from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Optional
from uuid import UUID

import attrs

from src.service.purchase.domain.entity.purchase_intent_entity import PurchaseIntent
from src.service.shared_kernel.domain.entity.ticket_entity import Ticket
from src.service.shared_kernel.domain.enum.ticket_status import RegistrationStatus


@attrs.define(frozen=True)
class OpenPurchaseResult:
    purchase_id: UUID
    checkout_url: str
    mobile_deep_links: dict[str, str]
    expires_at: datetime
    amount: Decimal
    currency: str


@attrs.define(frozen=True)
class IssuanceResult:
    purchase_id: UUID
    tickets: list[Ticket]
    replayed: bool = False


class NotificationOutcome(StrEnum):
    PROCESSED = 'processed'
    REPLAYED = 'replayed'
    IGNORED = 'ignored'
    FAILED = 'failed'


@attrs.define(frozen=True)
class NotificationResult:
    outcome: NotificationOutcome
    purchase_id: Optional[UUID] = None
    ticket_ids: list[UUID] = attrs.field(factory=list)


@attrs.define(frozen=True)
class PurchaseStatusView:
    intent: PurchaseIntent
    tickets: list[Ticket] = attrs.field(factory=list)

    @property
    def registration_counts(self) -> dict[str, int]:
        counts = {status.value: 0 for status in RegistrationStatus}
        for ticket in self.tickets:
            counts[ticket.registration_status.value] += 1
        return counts
