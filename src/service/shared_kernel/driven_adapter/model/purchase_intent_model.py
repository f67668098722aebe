from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.platform.database.column_types import UtcDateTime
from src.platform.database.orm_db_setting import Base


class PurchaseIntentModel(Base):
    __tablename__ = 'purchase_intent'
    __table_args__ = (Index('ix_purchase_intent_status_expires_at', 'status', 'expires_at'),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)  # UUID7
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    event_id: Mapped[int] = mapped_column(ForeignKey('event.id'), nullable=False, index=True)
    reservation_id: Mapped[UUID] = mapped_column(
        ForeignKey('inventory_reservation.id'), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default='pending', nullable=False)
    external_order_id: Mapped[Optional[str]] = mapped_column(
        String(128), unique=True, nullable=True
    )
    external_transaction_id: Mapped[Optional[str]] = mapped_column(
        String(128), index=True, nullable=True
    )
    intent_metadata: Mapped[dict[str, Any]] = mapped_column(
        'metadata', JSON, nullable=False, default=dict
    )
    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UtcDateTime, server_default=func.now(), nullable=False
    )
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
