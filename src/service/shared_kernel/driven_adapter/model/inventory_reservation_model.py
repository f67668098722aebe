from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.platform.database.column_types import UtcDateTime
from src.platform.database.orm_db_setting import Base


class InventoryReservationModel(Base):
    __tablename__ = 'inventory_reservation'

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)  # UUID7
    event_id: Mapped[int] = mapped_column(ForeignKey('event.id'), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default='active', nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UtcDateTime, server_default=func.now(), nullable=False
    )
    released_at: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
