from datetime import datetime, timedelta
from typing import Optional

import attrs

from src.service.shared_kernel.domain.entity.ticket_entity import Ticket


@attrs.define(frozen=True)
class GateTicketView:
    """Ticket joined with the event window and the holder's account name"""

    ticket: Ticket
    event_name: str
    event_date: datetime
    event_end_date: Optional[datetime] = None
    holder_name: Optional[str] = None

    def event_end(self, *, default_duration_hours: int) -> datetime:
        return self.event_end_date or self.event_date + timedelta(hours=default_duration_hours)
