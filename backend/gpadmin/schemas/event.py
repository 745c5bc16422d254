# backend/gpadmin/schemas/event.py

from pydantic import BaseModel

from .base import PayloadModel


class RuntimeConfig(PayloadModel):
    """Рабочие параметры события (хранятся в events.config)."""

    max_pilots: int = 80
    time_attack_sessions: int = 5
    session_max_capacity: int = 20
    qualy_groups: int = 3
    teams_count: int = 10
    race_count: int = 2


class EventInput(BaseModel):
    name: str
    date: str
    location: str
    max_participants: int
    session_max_capacity: int
    teams_count: int
    time_attack_sessions: int
    qualy_groups: int
    race_count: int
