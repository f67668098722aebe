from datetime import datetime
from typing import Optional
from uuid import UUID

import attrs

from src.service.gate.domain.validation_decision import IdentityMatch, Verdict
from src.service.gate.domain.value_object.ui_feedback import UiFeedback


@attrs.define(frozen=True)
class ScannerContext:
    admin_id: int
    location: Optional[str] = None
    device_id: Optional[str] = None


@attrs.define(frozen=True)
class TicketInfo:
    ticket_id: UUID
    ticket_number: str
    event_name: str
    holder_name: Optional[str]
    bound_name: Optional[str]
    entry_type: str


@attrs.define(frozen=True)
class RegistryCheck:
    checked: bool = False
    reachable: bool = False
    state: Optional[str] = None
    identity_match: Optional[IdentityMatch] = None


@attrs.define(frozen=True)
class ValidationReport:
    verdict: Verdict
    reason: str
    warnings: tuple[str, ...] = ()
    ticket_id: Optional[UUID] = None
    ticket_info: Optional[TicketInfo] = None
    registry: RegistryCheck = attrs.field(factory=RegistryCheck)

    @property
    def ui_feedback(self) -> UiFeedback:
        return UiFeedback.for_verdict(self.verdict)


@attrs.define(frozen=True)
class RevocationResult:
    ticket_id: UUID
    revoked_at: datetime
    registry_revocation_scheduled: bool
