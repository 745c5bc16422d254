# backend/gpadmin/models/event.py

import enum
import uuid
from datetime import date as day, datetime

from sqlalchemy import String, Date, DateTime, Enum, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db import Base


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"


def new_id() -> str:
    return str(uuid.uuid4())


class Event(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    slug: Mapped[str | None] = mapped_column(String, unique=True, index=True, nullable=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    location: Mapped[str | None] = mapped_column(String, nullable=True)
    date: Mapped[day | None] = mapped_column(Date, nullable=True)
    status: Mapped[EventStatus] = mapped_column(
        Enum(EventStatus),
        nullable=False,
        default=EventStatus.ACTIVE,
    )
    # maxPilots, timeAttackSessions, sessionMaxCapacity, qualyGroups, teamsCount, raceCount
    config: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
    )

    pilots = relationship(
        "Pilot",
        back_populates="event",
        cascade="all, delete-orphan",
    )
    module_states = relationship(
        "EventModuleState",
        back_populates="event",
        cascade="all, delete-orphan",
    )
    race_results = relationship(
        "RaceResult",
        back_populates="event",
        cascade="all, delete-orphan",
    )
