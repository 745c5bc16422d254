# backend/gpadmin/services/raffles.py
"""
Розыгрыши призов среди пилотов события.

Состояние хранится в двух модулях: raffles (сами розыгрыши со снимком
участников) и rafflesHistory (победители, свежие сверху). Функции не меняют
входные списки, а возвращают новые.
"""

import math
import random
import uuid
from datetime import datetime, timezone
from typing import Any, Sequence

from ..core.logging import get_logger
from ..models.pilot import KartClass
from ..schemas.pilot import PilotRecord
from ..schemas.raffles import Raffle, RaffleHistoryEntry, RaffleParticipant, RaffleRules
from .errors import RaffleError

logger = get_logger(__name__)

DEFAULT_TITLE = "Sorteo"
DEFAULT_WINNER_NAME = "Piloto"


def _now_iso(now: datetime | None = None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def _find(raffles: Sequence[Raffle], raffle_id: str) -> Raffle:
    for raffle in raffles:
        if raffle.id == raffle_id:
            return raffle
    raise RaffleError("not-found", f"Raffle {raffle_id!r} not found")


def _clean_title(title: str | None) -> str:
    title = (title or "").strip()
    if not title:
        raise RaffleError("invalid-title", "Raffle title is required")
    return title


# --- розыгрыши -----------------------------------------------------


def create_raffle(
    raffles: Sequence[Raffle],
    title: str,
    description: str = "",
    rules: RaffleRules | None = None,
    allow_duplicates: bool = False,
    now: datetime | None = None,
) -> tuple[list[Raffle], Raffle]:
    raffle = Raffle(
        id=f"raffle-{uuid.uuid4().hex[:12]}",
        title=_clean_title(title),
        description=(description or "").strip(),
        rules=rules or RaffleRules(),
        allow_duplicates=allow_duplicates,
        created_at=_now_iso(now),
    )
    logger.info("Created raffle %s (%s)", raffle.id, raffle.title)
    return [raffle, *raffles], raffle


def update_raffle(
    raffles: Sequence[Raffle],
    raffle_id: str,
    title: str,
    description: str = "",
    rules: RaffleRules | None = None,
    allow_duplicates: bool = False,
) -> list[Raffle]:
    """Правила уже разыгранного розыгрыша не меняются."""
    current = _find(raffles, raffle_id)
    update = {
        "title": _clean_title(title),
        "description": (description or "").strip(),
        "allow_duplicates": allow_duplicates,
    }
    if current.winner is None and rules is not None:
        update["rules"] = rules

    return [r.model_copy(update=update) if r.id == raffle_id else r for r in raffles]


def delete_raffle(
    raffles: Sequence[Raffle],
    history: Sequence[RaffleHistoryEntry],
    raffle_id: str,
) -> tuple[list[Raffle], list[RaffleHistoryEntry]]:
    _find(raffles, raffle_id)
    return (
        [r for r in raffles if r.id != raffle_id],
        [h for h in history if h.raffle_id != raffle_id],
    )


def reset_raffle(
    raffles: Sequence[Raffle],
    history: Sequence[RaffleHistoryEntry],
    raffle_id: str,
) -> tuple[list[Raffle], list[RaffleHistoryEntry]]:
    """Сбрасывает победителя и снимок участников, запись в истории удаляется."""
    _find(raffles, raffle_id)
    return (
        [
            r.model_copy(update={"winner": None, "participants_snapshot": []}) if r.id == raffle_id else r
            for r in raffles
        ],
        [h for h in history if h.raffle_id != raffle_id],
    )


# --- участники и розыгрыш ------------------------------------------


def valid_participants(
    raffle: Raffle,
    pilots: Sequence[PilotRecord],
    history: Sequence[RaffleHistoryEntry],
) -> list[RaffleParticipant]:
    """
    Пилоты, которые проходят правила розыгрыша.

    Без allow_duplicates исключаются победители розыгрышей с тем же названием
    (без учёта регистра), с exclude_previous_winners вообще все победители.
    """
    rules = raffle.rules
    if rules.only270 and rules.only390:
        return []

    previous_winners = {h.winner_id for h in history}
    title = raffle.title.strip().lower()
    same_title_winners = {h.winner_id for h in history if h.raffle_title.strip().lower() == title}

    result = []
    for pilot in pilots:
        if rules.exclude_previous_winners and pilot.id in previous_winners:
            continue
        if not raffle.allow_duplicates and pilot.id in same_title_winners:
            continue
        if rules.only270 and pilot.kart != KartClass.CC270:
            continue
        if rules.only390 and pilot.kart != KartClass.CC390:
            continue
        if rules.only_time_attack and not pilot.has_time_attack:
            continue
        result.append(RaffleParticipant(id=pilot.id, name=pilot.full_name(), number=pilot.number))
    return result


def draw_winner(
    raffles: Sequence[Raffle],
    history: Sequence[RaffleHistoryEntry],
    raffle_id: str,
    pilots: Sequence[PilotRecord],
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> tuple[list[Raffle], list[RaffleHistoryEntry], RaffleParticipant]:
    raffle = _find(raffles, raffle_id)
    if raffle.winner is not None:
        raise RaffleError("already-drawn", f"Raffle {raffle_id!r} already has a winner")

    participants = valid_participants(raffle, pilots, history)
    if not participants:
        raise RaffleError("no-participants", "No valid participants for this raffle")

    winner = (rng or random.Random()).choice(participants)
    drawn = raffle.model_copy(update={"winner": winner, "participants_snapshot": participants})
    entry = RaffleHistoryEntry(
        raffle_id=raffle.id,
        raffle_title=raffle.title,
        winner_id=winner.id,
        winner_name=winner.name,
        date=_now_iso(now),
    )

    logger.info(
        "Raffle %s drawn: winner %s out of %d participants",
        raffle.id, winner.id, len(participants),
    )
    return (
        [drawn if r.id == raffle_id else r for r in raffles],
        [entry, *(h for h in history if h.raffle_id != raffle_id)],
        winner,
    )


# --- загрузка из payload ------------------------------------------


def _date_value(value: Any) -> str | None:
    """ISO-строка как есть; число считается миллисекундами unix-времени."""
    if isinstance(value, str) and value.strip():
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        if not math.isfinite(value):
            return None
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()
    except (OverflowError, ValueError, OSError):
        return None


def _participant(value: Any) -> RaffleParticipant | None:
    if not isinstance(value, dict):
        return None
    pilot_id, name, number = value.get("id"), value.get("name"), value.get("number")
    if not isinstance(pilot_id, str) or not isinstance(name, str):
        return None
    if isinstance(number, str):
        try:
            number = int(number.strip())
        except ValueError:
            return None
    if isinstance(number, bool) or not isinstance(number, int):
        return None
    return RaffleParticipant(id=pilot_id, name=name, number=number)


def normalize_raffles(value: Any) -> list[Raffle]:
    raffles = []
    for item in value if isinstance(value, list) else []:
        if not isinstance(item, dict) or not isinstance(item.get("id"), str):
            continue
        raw_rules = item.get("rules") if isinstance(item.get("rules"), dict) else {}
        raw_snapshot = item.get("participantsSnapshot")
        snapshot = [
            p for p in map(_participant, raw_snapshot if isinstance(raw_snapshot, list) else [])
            if p is not None
        ]
        title = item.get("title")
        description = item.get("description")

        raffles.append(
            Raffle(
                id=item["id"],
                title=title if isinstance(title, str) else DEFAULT_TITLE,
                description=description if isinstance(description, str) else "",
                rules=RaffleRules(
                    exclude_previous_winners=bool(raw_rules.get("excludePreviousWinners")),
                    only270=bool(raw_rules.get("only270")),
                    only390=bool(raw_rules.get("only390")),
                    only_time_attack=bool(raw_rules.get("onlyTimeAttack")),
                ),
                allow_duplicates=bool(item.get("allowDuplicates")),
                winner=_participant(item.get("winner")),
                participants_snapshot=snapshot,
                created_at=_date_value(item.get("createdAt")),
            )
        )
    return raffles


def normalize_history(value: Any) -> list[RaffleHistoryEntry]:
    """История победителей, свежие сверху; записи без raffleId/winnerId отбрасываются."""
    entries = []
    for item in value if isinstance(value, list) else []:
        if not isinstance(item, dict):
            continue
        raffle_id, winner_id = item.get("raffleId"), item.get("winnerId")
        if not isinstance(raffle_id, str) or not isinstance(winner_id, str):
            continue
        title, name = item.get("raffleTitle"), item.get("winnerName")
        entries.append(
            RaffleHistoryEntry(
                raffle_id=raffle_id,
                raffle_title=title if isinstance(title, str) else DEFAULT_TITLE,
                winner_id=winner_id,
                winner_name=name if isinstance(name, str) else DEFAULT_WINNER_NAME,
                date=_date_value(item.get("date")) or _now_iso(),
            )
        )
    entries.sort(key=lambda entry: entry.date, reverse=True)
    return entries
