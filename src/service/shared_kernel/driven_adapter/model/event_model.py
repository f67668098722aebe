from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.platform.database.column_types import UtcDateTime
from src.platform.database.orm_db_setting import Base


class EventModel(Base):
    __tablename__ = 'event'
    __table_args__ = (
        CheckConstraint(
            'available >= 0 AND available <= total', name='ck_event_available_within_total'
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    venue: Mapped[str] = mapped_column(String(255), nullable=False, default='')
    event_date: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(UtcDateTime, nullable=True)
    total: Mapped[int] = mapped_column(Integer, nullable=False)
    available: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UtcDateTime, server_default=func.now(), nullable=False
    )
