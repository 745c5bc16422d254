# backend/gpadmin/services/event_data.py
"""
Загрузка и сохранение данных события в типизированном виде.

Пилоты берутся из таблицы pilots (если там пусто, то из payload модуля
pilots), сессии тайм-атаки, квала, команды, результаты и розыгрыши берутся из хранилища
состояния модулей.
"""

from typing import Any

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..core.logging import get_logger
from ..models.event import Event
from ..models.event_state import ModuleKey
from ..models.results import RaceResult
from ..schemas.pilot import PilotRecord
from ..schemas.qualy import QualySession
from ..schemas.raffles import Raffle, RaffleHistoryEntry
from ..schemas.results import RaceComputedResult, RaceKey, StoredResults, TeamRecord
from ..schemas.standings import CombinedStandingRow
from ..schemas.time_attack import TimeAttackSession
from . import qualy as qualy_service
from . import time_attack as time_attack_service
from .event_state import EventStateStore
from .events import runtime_config
from .pilots import list_pilots, pilot_records
from .raffles import normalize_history, normalize_raffles
from .results_engine import normalize_results, normalize_teams
from .standings import compute_combined_standings

logger = get_logger(__name__)


# --- пилоты --------------------------------------------------------


def pilots_from_payload(payload: Any) -> list[PilotRecord]:
    """Пилоты из payload модуля pilots (старый формат хранения)."""
    records = []
    for raw in payload if isinstance(payload, list) else []:
        if not isinstance(raw, dict):
            continue
        try:
            records.append(
                PilotRecord(
                    id=raw["id"],
                    number=raw.get("number", raw.get("numeroPiloto")),
                    first_name=raw.get("firstName", raw.get("nombre")) or "",
                    last_name=raw.get("lastName", raw.get("apellidos")),
                    level=raw.get("level", "beginner"),
                    kart=raw.get("kart", "270cc"),
                    has_time_attack=bool(raw.get("hasTimeAttack")),
                )
            )
        except (KeyError, ValidationError):
            logger.warning("Skipping malformed pilot payload: %r", raw)
    return sorted((r for r in records if r.id), key=lambda r: r.number)


def load_pilot_records(db: Session, event: Event) -> list[PilotRecord]:
    pilots = list_pilots(db, event.id)
    if pilots:
        return pilot_records(pilots)
    return pilots_from_payload(EventStateStore(db).load(event.id, ModuleKey.PILOTS, []))


# --- тайм-атака ----------------------------------------------------


def load_time_attack_sessions(
    db: Session, event: Event, pilots: list[PilotRecord] | None = None
) -> list[TimeAttackSession]:
    """Сессии тайм-атаки события; при первом обращении создаётся и сохраняется базовый набор."""
    store = EventStateStore(db)
    config = runtime_config(event)
    pilots = pilots if pilots is not None else load_pilot_records(db, event)

    stored = store.load(event.id, ModuleKey.TIME_ATTACK, [])
    if not isinstance(stored, list) or not stored:
        sessions = time_attack_service.create_default_sessions(
            config.session_max_capacity, config.time_attack_sessions
        )
        save_time_attack_sessions(db, event, sessions)
        logger.info("Initialized %d time attack sessions for event %s", len(sessions), event.id)
        return sessions

    return time_attack_service.normalize_sessions(
        stored, pilots, config.session_max_capacity, config.time_attack_sessions
    )


def save_time_attack_sessions(db: Session, event: Event, sessions: list[TimeAttackSession]) -> None:
    EventStateStore(db).put(event.id, ModuleKey.TIME_ATTACK, [s.to_payload() for s in sessions])


# --- квалификация --------------------------------------------------


def load_qualy_sessions(
    db: Session, event: Event, pilots: list[PilotRecord] | None = None
) -> list[QualySession]:
    store = EventStateStore(db)
    config = runtime_config(event)
    pilots = pilots if pilots is not None else load_pilot_records(db, event)

    stored = store.load(event.id, ModuleKey.QUALY, None)
    if stored is not None:
        sessions = qualy_service.normalize_qualy_sessions(
            stored, pilots, config.qualy_groups, config.max_pilots
        )
        if qualy_service.should_auto_assign(sessions) and pilots:
            sessions = qualy_service.assign_pilots(sessions, pilots, config.qualy_groups, config.max_pilots)
        return sessions

    sessions = qualy_service.build_default_qualy_sessions(config.qualy_groups, config.max_pilots, len(pilots))
    sessions = qualy_service.assign_pilots(sessions, pilots, config.qualy_groups, config.max_pilots)
    save_qualy_sessions(db, event, sessions)
    return sessions


def save_qualy_sessions(db: Session, event: Event, sessions: list[QualySession]) -> None:
    EventStateStore(db).put(event.id, ModuleKey.QUALY, [s.to_payload() for s in sessions])


# --- гонки и команды ----------------------------------------------


def load_results(db: Session, event: Event) -> StoredResults:
    return normalize_results(EventStateStore(db).load(event.id, ModuleKey.RESULTS, None))


def load_teams(db: Session, event: Event) -> list[TeamRecord]:
    return normalize_teams(EventStateStore(db).load(event.id, ModuleKey.TEAMS, []))


def save_teams(db: Session, event: Event, teams: list[TeamRecord]) -> None:
    EventStateStore(db).put(event.id, ModuleKey.TEAMS, [t.to_payload() for t in teams])


def save_race_result(db: Session, event: Event, race: RaceKey, result: RaceComputedResult) -> StoredResults:
    """Сохраняет результат гонки в модуль results и дублирует строки в race_results."""
    current = load_results(db, event)
    updated = current.model_copy(update={race.value: result})
    EventStateStore(db).put(event.id, ModuleKey.RESULTS, updated.to_payload())

    db.query(RaceResult).filter(
        RaceResult.event_id == event.id,
        RaceResult.race_number == race.number,
    ).delete()

    # строки в race_results только для пилотов из таблицы pilots
    known = {p.id for p in list_pilots(db, event.id)}
    for entry in result.entries:
        if entry.pilot_id not in known:
            continue
        db.add(
            RaceResult(
                event_id=event.id,
                race_number=race.number,
                pilot_id=entry.pilot_id,
                final_position=entry.final_position,
                category=entry.category,
                category_position=entry.category_position,
                points_base=entry.base_points,
                bonus_collective=entry.collective_bonus,
                bonus_individual=entry.individual_bonus,
                total_points=entry.final_points,
            )
        )
    db.commit()
    return updated


# --- розыгрыши ---------------------------------------------------


def load_raffles(db: Session, event: Event) -> list[Raffle]:
    return normalize_raffles(EventStateStore(db).load(event.id, ModuleKey.RAFFLES, []))


def load_raffle_history(db: Session, event: Event) -> list[RaffleHistoryEntry]:
    return normalize_history(EventStateStore(db).load(event.id, ModuleKey.RAFFLES_HISTORY, []))


def save_raffles(
    db: Session,
    event: Event,
    raffles: list[Raffle],
    history: list[RaffleHistoryEntry],
) -> None:
    store = EventStateStore(db)
    store.put(event.id, ModuleKey.RAFFLES, [r.to_payload() for r in raffles])
    store.put(event.id, ModuleKey.RAFFLES_HISTORY, [h.to_payload() for h in history])


# --- сводный зачёт -------------------------------------------------


def build_event_standings(db: Session, event: Event) -> list[CombinedStandingRow]:
    pilots = load_pilot_records(db, event)
    sessions = load_time_attack_sessions(db, event, pilots)
    records = qualy_service.qualy_records(load_qualy_sessions(db, event, pilots))
    return compute_combined_standings(pilots, sessions, records)
