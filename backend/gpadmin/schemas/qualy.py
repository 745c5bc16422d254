# backend/gpadmin/schemas/qualy.py

import enum

from .base import PayloadModel


class QualyStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class QualyTime(PayloadModel):
    pilot_id: str
    qualy_time: float


class QualySession(PayloadModel):
    id: str
    name: str
    group_name: str
    start_time: str
    duration: int
    max_capacity: int
    assigned_pilots: list[str] = []
    status: QualyStatus = QualyStatus.PENDING
    times: list[QualyTime] = []

    def time_for(self, pilot_id: str) -> float | None:
        for entry in self.times:
            if entry.pilot_id == pilot_id:
                return entry.qualy_time
        return None


class QualyRecord(PayloadModel):
    """Лучшее время пилота в квалификации его группы (None, пока не записано)."""

    pilot_id: str
    group: str = ""
    qualy_time: float | None = None
