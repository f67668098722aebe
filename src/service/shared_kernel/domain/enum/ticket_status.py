"""Ticket lifecycle enums shared by issuance, registry mirroring and the gate"""

from enum import StrEnum


class TicketStatus(StrEnum):
    VALID = 'valid'
    USED = 'used'
    REVOKED = 'revoked'


class RegistrationStatus(StrEnum):
    PENDING = 'pending'
    MINTED = 'minted'
    FAILED = 'failed'
