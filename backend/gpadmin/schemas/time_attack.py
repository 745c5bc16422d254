# backend/gpadmin/schemas/time_attack.py

import enum

from .base import PayloadModel


class SessionStatus(str, enum.Enum):
    PENDING = "pending"
    CLOSED = "closed"


class TimeAttackTime(PayloadModel):
    pilot_id: str
    raw_time: float
    corrected_time: float


class TimeAttackSession(PayloadModel):
    id: str
    name: str
    start_time: str
    duration: int
    max_capacity: int
    assigned_pilots: list[str] = []
    status: SessionStatus = SessionStatus.PENDING
    reference_time: float | None = None
    times: list[TimeAttackTime] = []

    @property
    def is_closed(self) -> bool:
        return self.status == SessionStatus.CLOSED

    @property
    def free_slots(self) -> int:
        return max(self.max_capacity - len(self.assigned_pilots), 0)


class TimeAttackRankingRow(PayloadModel):
    pilot_id: str
    best_time: float
    sessions_disputed: int
