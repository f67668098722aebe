"""
Door validation decision

Pure function of (ticket, event window, registry answer, identity check).
Priority, first match wins:

1. registry reachable and says revoked          → revoked
2. database says revoked                        → revoked
3. registry reachable and does not know a token
   the database recorded as minted              → invalid
4. database status not valid                    → invalid (already used)
5. event end + grace passed                     → invalid
6. identity mismatch                            → valid_with_warning
7. otherwise                                    → valid (warnings annotate a degraded registry)

The database stays authoritative whenever the registry cannot be consulted.
"""

from datetime import datetime, timedelta
from enum import StrEnum
from typing import Optional

import attrs

from src.service.shared_kernel.domain.entity.ticket_entity import Ticket
from src.service.shared_kernel.domain.enum.ticket_status import RegistrationStatus, TicketStatus
from src.service.shared_kernel.domain.value_object.registry_status import (
    RegistryTokenState,
    RegistryTokenStatus,
)


class Verdict(StrEnum):
    VALID = 'valid'
    VALID_WITH_WARNING = 'valid_with_warning'
    INVALID = 'invalid'
    REVOKED = 'revoked'
    ERROR = 'error'

    @property
    def admits_entry(self) -> bool:
        return self in (Verdict.VALID, Verdict.VALID_WITH_WARNING)


class IdentityMatch(StrEnum):
    VERIFIED = 'verified'
    MISMATCH = 'mismatch'
    DATABASE_ONLY = 'database_only'
    BLOCKCHAIN_ONLY = 'blockchain_only'
    LEGACY_TICKET = 'legacy_ticket'


@attrs.define(frozen=True)
class ValidationDecision:
    verdict: Verdict
    reason: str
    warnings: tuple[str, ...] = ()


def _normalize(name: str) -> str:
    return ' '.join(name.split()).casefold()


def classify_identity(
    *,
    database_name: Optional[str],
    registry_name: Optional[str],
    qr_name: Optional[str] = None,
) -> IdentityMatch:
    if database_name and qr_name and _normalize(database_name) != _normalize(qr_name):
        return IdentityMatch.MISMATCH
    if database_name and registry_name:
        if _normalize(database_name) == _normalize(registry_name):
            return IdentityMatch.VERIFIED
        return IdentityMatch.MISMATCH
    if database_name:
        return IdentityMatch.DATABASE_ONLY
    if registry_name:
        return IdentityMatch.BLOCKCHAIN_ONLY
    return IdentityMatch.LEGACY_TICKET


def decide(
    *,
    ticket: Ticket,
    event_end: datetime,
    registry: Optional[RegistryTokenStatus],
    identity: IdentityMatch,
    now: datetime,
    grace_minutes: int,
) -> ValidationDecision:
    """`registry` is None when the ticket carries no token and the registry was not asked"""
    registry_answered = registry is not None and registry.reachable
    warnings: list[str] = []

    if registry_answered and registry.state == RegistryTokenState.REVOKED:
        return ValidationDecision(Verdict.REVOKED, 'Ticket revoked on registry')

    if ticket.status == TicketStatus.REVOKED:
        return ValidationDecision(Verdict.REVOKED, 'Ticket has been revoked')

    if registry_answered and registry.state == RegistryTokenState.UNKNOWN:
        if ticket.registration_status == RegistrationStatus.MINTED:
            return ValidationDecision(Verdict.INVALID, 'Ticket not on registry')
        warnings.append(f'Registry registration {ticket.registration_status.value}')

    if ticket.status != TicketStatus.VALID:
        return ValidationDecision(Verdict.INVALID, 'Ticket already used')

    if now > event_end + timedelta(minutes=grace_minutes):
        return ValidationDecision(Verdict.INVALID, 'Event has ended')

    if registry is not None and not registry.reachable:
        warnings.append('Registry unreachable, database status used')

    if identity == IdentityMatch.MISMATCH:
        warnings.append('Bound name differs between records, check photo ID')
        return ValidationDecision(
            Verdict.VALID_WITH_WARNING, 'Identity mismatch', tuple(warnings)
        )

    return ValidationDecision(Verdict.VALID, 'Valid ticket', tuple(warnings))
