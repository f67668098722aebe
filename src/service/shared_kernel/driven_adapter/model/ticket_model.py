from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.platform.database.column_types import UtcDateTime
from src.platform.database.orm_db_setting import Base


class TicketModel(Base):
    __tablename__ = 'ticket'
    __table_args__ = (
        # One batch per confirmed purchase
        UniqueConstraint('payment_id', 'sequence_number', name='uq_ticket_payment_sequence'),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)  # UUID7
    event_id: Mapped[int] = mapped_column(ForeignKey('event.id'), nullable=False, index=True)
    payment_id: Mapped[UUID] = mapped_column(
        ForeignKey('purchase_intent.id'), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    group_size: Mapped[int] = mapped_column(Integer, nullable=False)
    parent_ticket_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default='valid', nullable=False)
    qr_payload: Mapped[str] = mapped_column(Text, nullable=False)
    validation_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    registry_token_id: Mapped[str] = mapped_column(String(80), unique=True, nullable=False)
    registration_status: Mapped[str] = mapped_column(
        String(20), default='pending', nullable=False, index=True
    )
    registration_tx_ref: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    registration_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    registration_error_category: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    registration_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bound_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    issued_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    used_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
