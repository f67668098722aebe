from datetime import datetime
from typing import Optional
from uuid import UUID

import attrs


@attrs.define(frozen=True)
class ValidationAttempt:
    scanner_id: int
    verdict: str
    reason: str
    ticket_id: Optional[UUID] = None
    location: Optional[str] = None
    device_id: Optional[str] = None
    registry_status: Optional[str] = None
    identity_match: Optional[str] = None
    created_at: Optional[datetime] = None
