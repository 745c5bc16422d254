# backend/gpadmin/schemas/standings.py

import enum

from .base import PayloadModel


class StandingSource(str, enum.Enum):
    TIME_ATTACK = "time-attack"
    QUALY = "qualy"
    BEST_OF_BOTH = "best of both"


class CombinedStandingRow(PayloadModel):
    pilot_id: str
    pilot_number: int
    full_name: str
    final_time: float
    source: StandingSource
    # True, если итоговое время взято из тайм-атаки (в том числе при равенстве)
    from_time_attack: bool
