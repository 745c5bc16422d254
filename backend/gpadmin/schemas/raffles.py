# backend/gpadmin/schemas/raffles.py

from .base import PayloadModel


class RaffleRules(PayloadModel):
    exclude_previous_winners: bool = False
    only270: bool = False
    only390: bool = False
    only_time_attack: bool = False


class RaffleParticipant(PayloadModel):
    id: str
    name: str
    number: int


class Raffle(PayloadModel):
    id: str
    title: str
    description: str = ""
    rules: RaffleRules = RaffleRules()
    allow_duplicates: bool = False
    winner: RaffleParticipant | None = None
    participants_snapshot: list[RaffleParticipant] = []
    created_at: str | None = None


class RaffleHistoryEntry(PayloadModel):
    raffle_id: str
    raffle_title: str
    winner_id: str
    winner_name: str
    date: str
