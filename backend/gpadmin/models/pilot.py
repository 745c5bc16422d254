# backend/gpadmin/models/pilot.py

import enum
from datetime import datetime

from sqlalchemy import (
    String,
    DateTime,
    Integer,
    Float,
    Boolean,
    Enum,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db import Base
from .event import new_id


class PilotLevel(str, enum.Enum):
    ELITE = "elite"
    AMATEUR = "amateur"
    BEGINNER = "beginner"


class KartClass(str, enum.Enum):
    CC390 = "390cc"
    CC270 = "270cc"


class Pilot(Base):
    __tablename__ = "pilots"
    __table_args__ = (
        UniqueConstraint("event_id", "number", name="uq_pilots_event_number"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    event_id: Mapped[str] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # номер пилота в чемпионате
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    login_code: Mapped[str | None] = mapped_column(String, nullable=True)

    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str | None] = mapped_column(String, nullable=True)

    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    social: Mapped[str | None] = mapped_column(String, nullable=True)
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)

    level: Mapped[PilotLevel] = mapped_column(
        Enum(PilotLevel),
        nullable=False,
        default=PilotLevel.BEGINNER,
    )
    kart: Mapped[KartClass] = mapped_column(
        Enum(KartClass),
        nullable=False,
        default=KartClass.CC270,
    )
    has_time_attack: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    marshal: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)  # комиссар

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
    )

    event = relationship("Event", back_populates="pilots")
    race_results = relationship(
        "RaceResult",
        back_populates="pilot",
        cascade="all, delete-orphan",
    )

    def full_name(self) -> str:
        parts = [p for p in [self.first_name, self.last_name] if p]
        return " ".join(parts)
