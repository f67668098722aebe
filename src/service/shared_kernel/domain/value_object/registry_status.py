"""Value objects exchanged with the revocation registry gateway"""

from enum import StrEnum
from typing import Optional
from uuid import UUID

import attrs


class RegistryTokenState(StrEnum):
    VALID = 'valid'
    REVOKED = 'revoked'
    UNKNOWN = 'unknown'

    @classmethod
    def from_code(cls, code: int | str | None) -> 'RegistryTokenState':
        # Registry contract status codes: 1 = valid, 2 = revoked, anything else = never registered
        return {'1': cls.VALID, '2': cls.REVOKED}.get(str(code), cls.UNKNOWN)


class RegistrationFailureCategory(StrEnum):
    TIMEOUT = 'timeout'
    NETWORK = 'network'
    REJECTED = 'rejected'
    INSUFFICIENT_FUNDS = 'insufficient_funds'


@attrs.define(frozen=True)
class RegistryTokenStatus:
    reachable: bool
    state: RegistryTokenState = RegistryTokenState.UNKNOWN
    bound_name: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def unreachable(cls, error: str) -> 'RegistryTokenStatus':
        return cls(reachable=False, error=error)


@attrs.define(frozen=True)
class TicketRegistration:
    """One ticket handed to the registry: (ticket id, token id) plus the bound identity"""

    ticket_id: UUID
    token_id: str
    bound_name: Optional[str] = None


@attrs.define(frozen=True)
class RegistrationOutcome:
    success: bool
    tx_ref: Optional[str] = None
    reason: Optional[str] = None
    category: Optional[RegistrationFailureCategory] = None

    @classmethod
    def succeeded(cls, tx_ref: str) -> 'RegistrationOutcome':
        return cls(success=True, tx_ref=tx_ref)

    @classmethod
    def failed(cls, *, reason: str, category: RegistrationFailureCategory) -> 'RegistrationOutcome':
        return cls(success=False, reason=reason, category=category)
