# backend/gpadmin/schemas/results.py

import enum

from .base import PayloadModel


class RaceKey(str, enum.Enum):
    RACE1 = "race1"
    RACE2 = "race2"

    @property
    def number(self) -> int:
        return 1 if self is RaceKey.RACE1 else 2


class RacePilot(PayloadModel):
    pilot_id: str
    pilot_number: int
    full_name: str
    team_name: str = ""
    category: str
    classification_position: int = 0


class RaceResultEntry(PayloadModel):
    race: RaceKey
    pilot_id: str
    pilot_number: int
    full_name: str
    category: str
    team_name: str = ""
    final_position: int
    category_position: int
    base_points: int
    collective_bonus: int
    individual_bonus: int
    final_points: int


class RaceComputedResult(PayloadModel):
    entries: list[RaceResultEntry] = []
    general_winner_pilot_id: str | None = None
    winning_category: str | None = None
    opposite_category_first_pilot_id: str | None = None
    calculated_at: str | None = None


class StoredResults(PayloadModel):
    race1: RaceComputedResult = RaceComputedResult()
    race2: RaceComputedResult = RaceComputedResult()


class TeamRecord(PayloadModel):
    id: str
    name: str
    members: list[str] = []


class IndividualStandingRow(PayloadModel):
    pilot_id: str
    pilot_number: int
    full_name: str
    points_race1: int
    points_race2: int
    total_points: int


class TeamMemberPoints(PayloadModel):
    pilot_id: str
    pilot_number: int
    full_name: str
    race1_points: int
    race2_points: int
    total_points: int


class TeamStandingRow(PayloadModel):
    team_id: str
    team_name: str
    total_points: int
    breakdown: list[TeamMemberPoints]
