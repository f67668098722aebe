"""
QR payload carried by every issued ticket.

Two wire forms decode to the same value object:

- Structured JSON (current):
    {"ticket_id": "...", "registry_token_id": "...", "event_id": 1,
     "bound_name": "Alice", "validation_hash": "...", "issued_at": "2026-01-01T00:00:00+00:00"}
- Legacy colon-delimited string (tickets printed by the previous scanner app):
    TICKET:<ticket_id>:<validation_hash>:<registry_token_id>:<bound_name>
  registry_token_id may be empty, bound_name is optional and may itself contain ':'.
"""

from datetime import datetime
import hashlib
from typing import Any, Optional
from uuid import UUID

import attrs
import orjson

from src.platform.exception.exceptions import DomainError


LEGACY_PREFIX = 'TICKET'


class MalformedQrCodeError(DomainError):
    def __init__(self, message: str = 'Malformed code') -> None:
        super().__init__(message, 400)


def build_validation_hash(*, ticket_id: UUID, payment_id: UUID, issued_at: datetime) -> str:
    raw = f'{ticket_id}-{payment_id}-{int(issued_at.timestamp() * 1000)}'
    return hashlib.sha256(raw.encode()).hexdigest()


@attrs.define(frozen=True)
class QrPayload:
    ticket_id: UUID
    validation_hash: str
    registry_token_id: Optional[str] = None
    event_id: Optional[int] = None
    bound_name: Optional[str] = None
    issued_at: Optional[datetime] = None
    is_legacy: bool = False

    def encode(self) -> str:
        body: dict[str, Any] = {
            'ticket_id': str(self.ticket_id),
            'registry_token_id': self.registry_token_id,
            'event_id': self.event_id,
            'validation_hash': self.validation_hash,
            'issued_at': self.issued_at.isoformat() if self.issued_at else None,
        }
        if self.bound_name:
            body['bound_name'] = self.bound_name
        return orjson.dumps(body).decode()

    def encode_legacy(self) -> str:
        parts = [
            LEGACY_PREFIX,
            str(self.ticket_id),
            self.validation_hash,
            self.registry_token_id or '',
        ]
        if self.bound_name:
            parts.append(self.bound_name)
        return ':'.join(parts)

    @classmethod
    def decode(cls, raw: str) -> 'QrPayload':
        """Parse either wire form, raising MalformedQrCodeError when neither fits."""
        if not isinstance(raw, str) or not raw.strip():
            raise MalformedQrCodeError()
        text = raw.strip()
        if text.startswith('{'):
            return cls._decode_structured(text)
        if text.startswith(f'{LEGACY_PREFIX}:'):
            return cls._decode_legacy(text)
        raise MalformedQrCodeError()

    @classmethod
    def _decode_structured(cls, text: str) -> 'QrPayload':
        try:
            body = orjson.loads(text)
        except orjson.JSONDecodeError:
            raise MalformedQrCodeError()
        if not isinstance(body, dict):
            raise MalformedQrCodeError()

        validation_hash = body.get('validation_hash')
        if not isinstance(validation_hash, str) or not validation_hash:
            raise MalformedQrCodeError()

        event_id = body.get('event_id')
        if event_id is not None and not isinstance(event_id, int):
            raise MalformedQrCodeError()

        token = body.get('registry_token_id')
        return cls(
            ticket_id=_parse_ticket_id(body.get('ticket_id')),
            validation_hash=validation_hash,
            registry_token_id=str(token) if token not in (None, '') else None,
            event_id=event_id,
            bound_name=_clean_name(body.get('bound_name')),
            issued_at=_parse_datetime(body.get('issued_at')),
        )

    @classmethod
    def _decode_legacy(cls, text: str) -> 'QrPayload':
        parts = text.split(':', 4)
        if len(parts) < 4:
            raise MalformedQrCodeError()
        _, ticket_id, validation_hash, token = parts[:4]
        if not validation_hash:
            raise MalformedQrCodeError()
        return cls(
            ticket_id=_parse_ticket_id(ticket_id),
            validation_hash=validation_hash,
            registry_token_id=token or None,
            bound_name=_clean_name(parts[4]) if len(parts) == 5 else None,
            is_legacy=True,
        )


def _parse_ticket_id(value: Any) -> UUID:
    if not isinstance(value, str):
        raise MalformedQrCodeError()
    try:
        return UUID(value)
    except ValueError:
        raise MalformedQrCodeError()


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _clean_name(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None
