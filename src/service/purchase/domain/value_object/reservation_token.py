from datetime import datetime
from decimal import Decimal
from uuid import UUID

import attrs


@attrs.define(frozen=True)
class ReservationToken:
    """Proof of a capacity hold; releasing it twice is a no-op"""

    reservation_id: UUID
    event_id: int
    quantity: int
    unit_price: Decimal
    expires_at: datetime
