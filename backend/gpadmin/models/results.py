# backend/gpadmin/models/results.py

from datetime import datetime

from sqlalchemy import Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db import Base
from .event import new_id


class RaceResult(Base):
    """
    Результат пилота в гонке события.
    Храним базовые очки, бонусы (командный/личный) и итог.
    """
    __tablename__ = "race_results"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    event_id: Mapped[str] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    race_number: Mapped[int] = mapped_column(Integer, nullable=False)
    pilot_id: Mapped[str] = mapped_column(
        ForeignKey("pilots.id", ondelete="CASCADE"),
        nullable=False,
    )

    final_position: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str | None] = mapped_column(String(10), nullable=True)
    category_position: Mapped[int | None] = mapped_column(Integer, nullable=True)

    points_base: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bonus_collective: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bonus_individual: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
    )

    event = relationship("Event", back_populates="race_results")
    pilot = relationship("Pilot", back_populates="race_results")
