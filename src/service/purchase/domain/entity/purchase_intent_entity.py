from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import Any, Optional
from uuid import UUID

import attrs

from src.platform.logging.loguru_io import Logger
from src.service.purchase.domain.value_object.bound_names import BoundNames
from src.service.purchase.domain.value_object.reservation_token import ReservationToken


CENT = Decimal('0.01')


class PurchaseIntentStatus(StrEnum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    FAILED = 'failed'


@attrs.define
class PurchaseIntent:
    id: UUID
    user_id: int
    event_id: int
    reservation_id: UUID
    quantity: int
    amount: Decimal
    currency: str
    expires_at: datetime
    status: PurchaseIntentStatus = PurchaseIntentStatus.PENDING
    external_order_id: Optional[str] = None
    external_transaction_id: Optional[str] = None
    metadata: dict[str, Any] = attrs.field(factory=dict)
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        id: UUID,
        user_id: int,
        reservation: ReservationToken,
        bound_names: BoundNames,
        currency: str,
    ) -> 'PurchaseIntent':
        amount = (reservation.unit_price * reservation.quantity).quantize(
            CENT, rounding=ROUND_HALF_UP
        )
        return cls(
            id=id,
            user_id=user_id,
            event_id=reservation.event_id,
            reservation_id=reservation.reservation_id,
            quantity=reservation.quantity,
            amount=amount,
            currency=currency,
            expires_at=reservation.expires_at,
            metadata={'bound_names': list(bound_names.names)},
            created_at=datetime.now(timezone.utc),
        )

    @property
    def bound_names(self) -> BoundNames | None:
        names = self.metadata.get('bound_names')
        if not names or len(names) != self.quantity:
            return None
        return BoundNames(names=tuple(names))

    @property
    def formatted_amount(self) -> str:
        return str(self.amount.quantize(CENT))

    def amount_matches(self, captured: Decimal, *, epsilon: Decimal) -> bool:
        return abs(captured - self.amount) <= epsilon

    def is_expired(self, *, now: datetime) -> bool:
        return self.status == PurchaseIntentStatus.PENDING and now >= self.expires_at
