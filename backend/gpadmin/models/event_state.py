# backend/gpadmin/models/event_state.py

import enum
from datetime import datetime

from sqlalchemy import String, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db import Base
from .event import new_id


class ModuleKey(str, enum.Enum):
    PILOTS = "pilots"
    TIME_ATTACK = "timeAttack"
    QUALY = "qualy"
    TEAMS = "teams"
    RACES = "races"
    RESULTS = "results"
    RAFFLES = "raffles"
    RAFFLES_HISTORY = "rafflesHistory"


class EventModuleState(Base):
    """
    Состояние одного модуля события (пилоты, тайм-атака, квала, ...).
    Payload хранится как JSON-документ; одна строка на пару (event_id, module_key).
    """
    __tablename__ = "event_state"
    __table_args__ = (
        UniqueConstraint("event_id", "module_key", name="uq_event_state_module"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    event_id: Mapped[str] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    module_key: Mapped[str] = mapped_column(String(32), nullable=False)
    payload: Mapped[dict | list | None] = mapped_column(JSON, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    event = relationship("Event", back_populates="module_states")
