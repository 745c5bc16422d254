# backend/gpadmin/services/time_attack.py
"""
Реестр сессий тайм-атаки.

Все функции работают над списком TimeAttackSession и возвращают новый список,
исходный не меняется. Сессия закрывается один раз: pending → closed.
"""

import re
import sys
import uuid
from typing import Any, Iterable, Mapping, Sequence

from ..core.logging import get_logger
from ..schemas.pilot import PilotRecord
from ..schemas.time_attack import (
    SessionStatus,
    TimeAttackRankingRow,
    TimeAttackSession,
    TimeAttackTime,
)
from ..utils.clock import clock_range, is_valid_clock, shift_clock
from ..utils.numbers import positive_int
from .errors import SessionError
from .standings import valid_time

logger = get_logger(__name__)

DEFAULT_SESSION_CAPACITY = 20
DEFAULT_SESSION_DURATION = 10
DEFAULT_SESSION_COUNT = 5
FIRST_SESSION_START = "09:30"
SESSION_STAGGER_MINUTES = 15


# --- вспомогательные функции --------------------------------------


def session_number(name: str) -> int:
    """T3 → 3; имена без номера уходят в конец сортировки."""
    digits = re.sub(r"[^0-9]", "", name or "")
    number = int(digits) if digits else 0
    return number if number > 0 else sys.maxsize


def sort_sessions(sessions: Iterable[TimeAttackSession]) -> list[TimeAttackSession]:
    return sorted(sessions, key=lambda s: session_number(s.name))


def session_time_range(session: TimeAttackSession) -> str:
    return clock_range(session.start_time, session.duration)


def _find(sessions: Sequence[TimeAttackSession], session_id: str) -> TimeAttackSession:
    for session in sessions:
        if session.id == session_id:
            return session
    raise SessionError("not-found", f"Time attack session {session_id!r} not found")


def _replace(
    sessions: Sequence[TimeAttackSession], updated: TimeAttackSession
) -> list[TimeAttackSession]:
    return [updated if s.id == updated.id else s for s in sessions]


def _round_time(value: float) -> float:
    return round(value, 3)


# --- создание ------------------------------------------------------


def create_default_sessions(
    max_capacity: int = DEFAULT_SESSION_CAPACITY,
    session_count: int = DEFAULT_SESSION_COUNT,
) -> list[TimeAttackSession]:
    """Базовый набор T1..Tn, старт в 09:30 с шагом 15 минут."""
    count = positive_int(session_count) or DEFAULT_SESSION_COUNT
    capacity = positive_int(max_capacity) or DEFAULT_SESSION_CAPACITY

    sessions = []
    for index in range(count):
        name = f"T{index + 1}"
        sessions.append(
            TimeAttackSession(
                id=f"session-{name.lower()}",
                name=name,
                start_time=shift_clock(FIRST_SESSION_START, index * SESSION_STAGGER_MINUTES),
                duration=DEFAULT_SESSION_DURATION,
                max_capacity=capacity,
            )
        )
    return sessions


def add_session(
    sessions: Sequence[TimeAttackSession],
    default_capacity: int = DEFAULT_SESSION_CAPACITY,
) -> tuple[list[TimeAttackSession], TimeAttackSession]:
    """Добавляет следующую сессию: номер max+1, старт через 15 минут после последней."""
    ordered = sort_sessions(sessions)

    numbers = [session_number(s.name) for s in ordered if session_number(s.name) != sys.maxsize]
    next_number = max(numbers) + 1 if numbers else len(ordered) + 1

    if ordered and is_valid_clock(ordered[-1].start_time):
        start_time = shift_clock(ordered[-1].start_time, SESSION_STAGGER_MINUTES)
    else:
        start_time = FIRST_SESSION_START

    first = ordered[0] if ordered else None
    session = TimeAttackSession(
        id=str(uuid.uuid4()),
        name=f"T{next_number}",
        start_time=start_time,
        duration=first.duration if first else DEFAULT_SESSION_DURATION,
        max_capacity=first.max_capacity if first else default_capacity,
    )
    return sort_sessions([*ordered, session]), session


def delete_session(sessions: Sequence[TimeAttackSession], session_id: str) -> list[TimeAttackSession]:
    _find(sessions, session_id)
    if len(sessions) <= 1:
        raise SessionError("last-session", "Cannot delete the last time attack session")
    return [s for s in sessions if s.id != session_id]


# --- жизненный цикл и параметры ----------------------------------


def close_session(sessions: Sequence[TimeAttackSession], session_id: str) -> list[TimeAttackSession]:
    """pending → closed. Повторное закрытие ничего не меняет."""
    session = _find(sessions, session_id)
    if session.is_closed:
        return list(sessions)

    logger.info("Closing time attack session %s (%d times)", session.name, len(session.times))
    closed = session.model_copy(update={"status": SessionStatus.CLOSED})
    return recalculate_corrected_times(sort_sessions(_replace(sessions, closed)))


def update_start_time(
    sessions: Sequence[TimeAttackSession], session_id: str, start_time: str
) -> list[TimeAttackSession]:
    if not is_valid_clock(start_time):
        raise SessionError("invalid-time", f"Invalid start time {start_time!r}, expected HH:MM")
    session = _find(sessions, session_id)
    return sort_sessions(_replace(sessions, session.model_copy(update={"start_time": start_time})))


def update_duration(
    sessions: Sequence[TimeAttackSession], session_id: str, duration
) -> list[TimeAttackSession]:
    safe_duration = positive_int(duration)
    if safe_duration is None:
        raise SessionError("invalid-duration", "Duration must be a positive number of minutes")
    session = _find(sessions, session_id)
    return sort_sessions(_replace(sessions, session.model_copy(update={"duration": safe_duration})))


def update_capacity(
    sessions: Sequence[TimeAttackSession], session_id: str, max_capacity
) -> list[TimeAttackSession]:
    """Меняет вместимость; лишние пилоты (с конца списка) снимаются вместе со временами."""
    capacity = positive_int(max_capacity)
    if capacity is None:
        raise SessionError("invalid-capacity", "Capacity must be a positive integer")
    session = _find(sessions, session_id)

    assigned = session.assigned_pilots[:capacity]
    times = [t for t in session.times if t.pilot_id in assigned]
    updated = session.model_copy(
        update={"max_capacity": capacity, "assigned_pilots": assigned, "times": times}
    )
    return sort_sessions(_replace(sessions, updated))


# --- пилоты и времена ---------------------------------------------


def toggle_assignment(
    sessions: Sequence[TimeAttackSession], session_id: str, pilot: PilotRecord
) -> list[TimeAttackSession]:
    """Добавляет пилота в сессию или снимает его, если он уже там."""
    session = _find(sessions, session_id)
    already_assigned = pilot.id in session.assigned_pilots

    if not already_assigned:
        if session.is_closed:
            raise SessionError("closed", f"Session {session.name} is closed")
        if len(session.assigned_pilots) >= session.max_capacity:
            raise SessionError("full", f"Session {session.name} is full")
        if not pilot.has_time_attack:
            raise SessionError("not-eligible", f"Pilot #{pilot.number} is not registered for time attack")
        assigned = [*session.assigned_pilots, pilot.id]
    else:
        assigned = [p for p in session.assigned_pilots if p != pilot.id]

    updated = session.model_copy(
        update={
            "assigned_pilots": assigned,
            "times": [t for t in session.times if t.pilot_id in assigned],
        }
    )
    return recalculate_corrected_times(sort_sessions(_replace(sessions, updated)))


def save_session_times(
    sessions: Sequence[TimeAttackSession],
    session_id: str,
    raw_times: Mapping[str, Any],
) -> list[TimeAttackSession]:
    """
    Записывает сырые времена пилотов сессии.

    Учитываются только назначенные пилоты с конечным временем > 0;
    остальные времена сессии сбрасываются.
    """
    session = _find(sessions, session_id)
    if session.is_closed:
        raise SessionError("closed", f"Session {session.name} is closed")

    valid = {}
    for pilot_id, raw in raw_times.items():
        value = valid_time(raw)
        if pilot_id in session.assigned_pilots and value is not None:
            valid[pilot_id] = value

    times = [
        TimeAttackTime(pilot_id=pilot_id, raw_time=valid[pilot_id], corrected_time=valid[pilot_id])
        for pilot_id in session.assigned_pilots
        if pilot_id in valid
    ]
    logger.info("Saved %d times for time attack session %s", len(times), session.name)

    updated = session.model_copy(update={"reference_time": None, "times": times})
    return recalculate_corrected_times(sort_sessions(_replace(sessions, updated)))


def recalculate_corrected_times(sessions: Iterable[TimeAttackSession]) -> list[TimeAttackSession]:
    """Скорректированное время = сырое, округлённое до тысячных; времена неназначенных пилотов отбрасываются."""
    result = []
    for session in sessions:
        times = [
            t.model_copy(update={"corrected_time": _round_time(t.raw_time)})
            for t in session.times
            if t.pilot_id in session.assigned_pilots
        ]
        result.append(session.model_copy(update={"times": times}))
    return result


def best_reference_time(sessions: Iterable[TimeAttackSession]) -> float | None:
    values = [valid_time(s.reference_time) for s in sessions]
    values = [v for v in values if v is not None]
    return min(values) if values else None


def time_attack_ranking(
    sessions: Iterable[TimeAttackSession],
    pilots: Sequence[PilotRecord] = (),
) -> list[TimeAttackRankingRow]:
    """
    Лучшее время каждого пилота и число сессий, в которых у него есть время.

    При равном времени выше тот, кто провёл больше сессий, затем меньший номер.
    """
    best: dict[str, float] = {}
    disputed: dict[str, set[str]] = {}

    for session in sessions:
        for entry in session.times:
            value = valid_time(entry.corrected_time)
            if value is None:
                value = valid_time(entry.raw_time)
            if value is None:
                continue
            if entry.pilot_id not in best or value < best[entry.pilot_id]:
                best[entry.pilot_id] = value
            disputed.setdefault(entry.pilot_id, set()).add(session.id)

    rows = [
        TimeAttackRankingRow(
            pilot_id=pilot_id,
            best_time=_round_time(value),
            sessions_disputed=len(disputed[pilot_id]),
        )
        for pilot_id, value in best.items()
    ]
    numbers = {p.id: p.number for p in pilots}
    rows.sort(key=lambda row: (
        row.best_time,
        -row.sessions_disputed,
        numbers.get(row.pilot_id, sys.maxsize),
    ))
    return rows


# --- загрузка из payload ------------------------------------------


def normalize_sessions(
    payload: Any,
    pilots: Sequence[PilotRecord],
    max_capacity: int = DEFAULT_SESSION_CAPACITY,
    session_count: int = DEFAULT_SESSION_COUNT,
) -> list[TimeAttackSession]:
    """
    Разбирает сохранённый payload модуля timeAttack.

    Битые поля заменяются значениями по умолчанию, пилоты без допуска
    к тайм-атаке отбрасываются. Пустой или непонятный payload → базовый набор.
    """
    defaults = create_default_sessions(max_capacity, session_count)
    eligible = {p.id for p in pilots if p.has_time_attack}

    if not isinstance(payload, list) or not payload:
        return defaults

    stored_sessions = [
        item for item in payload
        if isinstance(item, dict) and isinstance(item.get("name"), str)
    ]

    normalized = []
    for index, stored in enumerate(stored_sessions):
        base = defaults[index] if index < len(defaults) else defaults[-1]

        times = []
        raw_times = stored.get("times")
        for raw_entry in raw_times if isinstance(raw_times, list) else []:
            if not isinstance(raw_entry, dict):
                continue
            pilot_id = raw_entry.get("pilotId")
            raw_time = valid_time(raw_entry.get("rawTime"))
            if not isinstance(pilot_id, str) or raw_time is None or pilot_id not in eligible:
                continue
            times.append(TimeAttackTime(pilot_id=pilot_id, raw_time=raw_time, corrected_time=raw_time))

        assigned_raw = stored.get("assignedPilots")
        if isinstance(assigned_raw, list):
            assigned = list(dict.fromkeys(
                p for p in assigned_raw if isinstance(p, str) and p in eligible
            ))
        else:
            assigned = list(base.assigned_pilots)

        name = stored["name"] if stored["name"].strip() else base.name
        start_time = stored.get("startTime")

        normalized.append(
            TimeAttackSession(
                id=stored["id"] if isinstance(stored.get("id"), str) else base.id,
                name=name,
                start_time=start_time if is_valid_clock(start_time) else base.start_time,
                duration=positive_int(stored.get("duration")) or base.duration,
                max_capacity=positive_int(stored.get("maxCapacity")) or base.max_capacity,
                assigned_pilots=assigned,
                status=SessionStatus.CLOSED if stored.get("status") == "closed" else SessionStatus.PENDING,
                reference_time=None,
                times=times,
            )
        )

    if not normalized:
        return defaults
    return recalculate_corrected_times(sort_sessions(normalized))
