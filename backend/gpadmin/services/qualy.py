# backend/gpadmin/services/qualy.py
"""
Квалификация по группам: распределение пилотов по сессиям Q1..Qn и запись
лучшего времени каждого пилота.
"""

import math
import random
import sys
import uuid
from typing import Any, Callable, Iterable, Mapping, Sequence

from ..core.logging import get_logger
from ..models.pilot import KartClass, PilotLevel
from ..schemas.pilot import PilotRecord
from ..schemas.qualy import QualyRecord, QualySession, QualyStatus, QualyTime
from ..utils.clock import is_valid_clock, shift_clock
from ..utils.numbers import positive_int
from .errors import SessionError
from .standings import valid_time
from .time_attack import session_number

logger = get_logger(__name__)

QUALY_DURATION_MINUTES = 5
DEFAULT_QUALY_GROUPS = 3
FIRST_QUALY_START = "11:30"
QUALY_STAGGER_MINUTES = 10

PilotOrder = Callable[[list[PilotRecord]], list[PilotRecord]]

_LEVEL_PRIORITY = {PilotLevel.ELITE: 0, PilotLevel.AMATEUR: 1, PilotLevel.BEGINNER: 2}
_KART_PRIORITY = {KartClass.CC390: 0, KartClass.CC270: 1}


# --- порядок пилотов для распределения ---------------------------


def order_by_number(pilots: list[PilotRecord]) -> list[PilotRecord]:
    return sorted(pilots, key=lambda p: p.number)


def order_by_level(pilots: list[PilotRecord]) -> list[PilotRecord]:
    return sorted(pilots, key=lambda p: (_LEVEL_PRIORITY[p.level], p.number))


def order_by_kart(pilots: list[PilotRecord]) -> list[PilotRecord]:
    return sorted(pilots, key=lambda p: (_KART_PRIORITY[p.kart], p.number))


def shuffled(rng: random.Random | None = None) -> PilotOrder:
    rng = rng or random.Random()

    def order(pilots: list[PilotRecord]) -> list[PilotRecord]:
        result = list(pilots)
        rng.shuffle(result)
        return result

    return order


ASSIGNMENT_ORDERS: dict[str, PilotOrder] = {
    "number": order_by_number,
    "level": order_by_level,
    "kart": order_by_kart,
}


# --- конфигурация групп -------------------------------------------


def qualy_session_config(groups_count) -> list[tuple[str, str, str]]:
    """[(name, group_name, start_time), ...] для Q1..Qn."""
    groups = positive_int(groups_count) or DEFAULT_QUALY_GROUPS
    return [
        (
            f"Q{index + 1}",
            f"Grupo {index + 1}",
            shift_clock(FIRST_QUALY_START, index * QUALY_STAGGER_MINUTES),
        )
        for index in range(groups)
    ]


def effective_groups_count(groups_count, sessions: Iterable[QualySession] = ()) -> int:
    """Число групп не меньше, чем уже есть сессий (и их максимального номера)."""
    sessions = list(sessions)
    base = positive_int(groups_count) or 1
    numbers = [session_number(s.name) for s in sessions]
    max_number = max((n for n in numbers if n != sys.maxsize), default=0)
    return max(base, max_number, len(sessions), 1)


def _status_for(assigned: Sequence[str], times: Sequence[QualyTime]) -> QualyStatus:
    if assigned and len(times) == len(assigned):
        return QualyStatus.COMPLETED
    return QualyStatus.PENDING


def sort_qualy_sessions(sessions: Iterable[QualySession]) -> list[QualySession]:
    return sorted(sessions, key=lambda s: session_number(s.name))


def build_default_qualy_sessions(
    groups_count,
    max_participants,
    pilot_count: int = 0,
) -> list[QualySession]:
    config = qualy_session_config(groups_count)
    participants = positive_int(max_participants) or max(pilot_count, 1)
    capacity = max(1, math.ceil(participants / len(config)))

    return [
        QualySession(
            id=f"qualy-{name.lower()}",
            name=name,
            group_name=group_name,
            start_time=start_time,
            duration=QUALY_DURATION_MINUTES,
            max_capacity=capacity,
        )
        for name, group_name, start_time in config
    ]


# --- распределение ------------------------------------------------


def _best_times(sessions: Iterable[QualySession]) -> dict[str, float]:
    best: dict[str, float] = {}
    for session in sessions:
        for entry in session.times:
            value = valid_time(entry.qualy_time)
            if value is None:
                continue
            if entry.pilot_id not in best or value < best[entry.pilot_id]:
                best[entry.pilot_id] = value
    return best


def _build_from_assignments(
    config: list[tuple[str, str, str]],
    sessions: Sequence[QualySession],
    assignments: Mapping[str, list[str]],
) -> list[QualySession]:
    """Собирает сессии по новому распределению, сохраняя уже записанные времена пилотов."""
    existing = {s.name: s for s in sessions}
    best = _best_times(sessions)
    total_assigned = sum(len(s.assigned_pilots) for s in sessions) or 1

    result = []
    for name, group_name, start_time in config:
        base = existing.get(name)
        capacity = base.max_capacity if base else max(1, math.ceil(total_assigned / len(config)))
        assigned = list(assignments.get(name, []))[:capacity]
        times = [QualyTime(pilot_id=p, qualy_time=best[p]) for p in assigned if p in best]

        result.append(
            QualySession(
                id=base.id if base else f"qualy-{name.lower()}",
                name=name,
                group_name=group_name,
                start_time=start_time,
                duration=base.duration if base else QUALY_DURATION_MINUTES,
                max_capacity=capacity,
                assigned_pilots=assigned,
                status=_status_for(assigned, times),
                times=times,
            )
        )
    return result


def assign_pilots(
    sessions: Sequence[QualySession],
    pilots: Sequence[PilotRecord],
    groups_count,
    max_participants,
    order: PilotOrder = order_by_number,
) -> list[QualySession]:
    """
    Раскладывает пилотов по группам по кругу (1-й → Q1, 2-й → Q2, ...)
    в порядке, заданном order. В расчёт идут первые max_participants пилотов.
    """
    limit = positive_int(max_participants) or len(pilots)
    ordered = order(list(pilots))[:limit]
    config = qualy_session_config(effective_groups_count(groups_count, sessions))

    assignments: dict[str, list[str]] = {name: [] for name, _, _ in config}
    for index, pilot in enumerate(ordered):
        name = config[index % len(config)][0]
        assignments[name].append(pilot.id)

    logger.info("Assigned %d pilots to %d qualy groups", len(ordered), len(config))
    return _build_from_assignments(config, sessions, assignments)


def assign_manual(
    sessions: Sequence[QualySession],
    pilots: Sequence[PilotRecord],
    groups_count,
    max_participants,
    manual: Mapping[str, Sequence[str]],
) -> list[QualySession]:
    """Ручное распределение {session_id: [pilot_id, ...]}; пилот попадает только в первую группу."""
    limit = positive_int(max_participants) or len(pilots)
    eligible = {p.id for p in order_by_number(list(pilots))[:limit]}
    config = qualy_session_config(effective_groups_count(groups_count, sessions))

    requested = {
        s.name: [p for p in manual.get(s.id, []) if p in eligible]
        for s in sessions
    }

    used: set[str] = set()
    assignments: dict[str, list[str]] = {}
    for name, _, _ in config:
        unique = []
        for pilot_id in requested.get(name, []):
            if pilot_id in used:
                continue
            used.add(pilot_id)
            unique.append(pilot_id)
        assignments[name] = unique

    return _build_from_assignments(config, sessions, assignments)


def reset_assignments(sessions: Iterable[QualySession]) -> list[QualySession]:
    return [
        s.model_copy(update={"assigned_pilots": [], "times": [], "status": QualyStatus.PENDING})
        for s in sessions
    ]


def should_auto_assign(sessions: Sequence[QualySession]) -> bool:
    return all(not s.assigned_pilots for s in sessions)


# --- сессии --------------------------------------------------------


def _find(sessions: Sequence[QualySession], session_id: str) -> QualySession:
    for session in sessions:
        if session.id == session_id:
            return session
    raise SessionError("not-found", f"Qualy session {session_id!r} not found")


def add_qualy_session(
    sessions: Sequence[QualySession], pilot_count: int = 0
) -> tuple[list[QualySession], QualySession]:
    ordered = sort_qualy_sessions(sessions)
    numbers = [session_number(s.name) for s in ordered if session_number(s.name) != sys.maxsize]
    next_number = max(numbers) + 1 if numbers else len(ordered) + 1

    if ordered and is_valid_clock(ordered[-1].start_time):
        start_time = shift_clock(ordered[-1].start_time, QUALY_STAGGER_MINUTES)
    else:
        start_time = FIRST_QUALY_START

    first = ordered[0] if ordered else None
    session = QualySession(
        id=str(uuid.uuid4()),
        name=f"Q{next_number}",
        group_name=f"Grupo {next_number}",
        start_time=start_time,
        duration=first.duration if first else QUALY_DURATION_MINUTES,
        max_capacity=first.max_capacity if first else max(1, math.ceil(pilot_count / max(len(ordered), 1))),
    )
    return sort_qualy_sessions([*ordered, session]), session


def delete_qualy_session(sessions: Sequence[QualySession], session_id: str) -> list[QualySession]:
    _find(sessions, session_id)
    if len(sessions) <= 1:
        raise SessionError("last-session", "Cannot delete the last qualy session")
    return [s for s in sessions if s.id != session_id]


def update_qualy_capacity(
    sessions: Sequence[QualySession], session_id: str, max_capacity
) -> list[QualySession]:
    capacity = positive_int(max_capacity)
    if capacity is None:
        raise SessionError("invalid-capacity", "Capacity must be a positive integer")
    session = _find(sessions, session_id)

    assigned = session.assigned_pilots[:capacity]
    times = [t for t in session.times if t.pilot_id in assigned]
    updated = session.model_copy(
        update={
            "max_capacity": capacity,
            "assigned_pilots": assigned,
            "times": times,
            "status": _status_for(assigned, times),
        }
    )
    return [updated if s.id == session_id else s for s in sessions]


def save_qualy_times(
    sessions: Iterable[QualySession], entries: Mapping[str, Any]
) -> list[QualySession]:
    """
    entries: {pilot_id: время или None}.
    Валидное время записывается, невалидное/None стирает время пилота,
    пилоты, которых нет в entries, не трогаются.
    """
    result = []
    for session in sessions:
        times = []
        for pilot_id in session.assigned_pilots:
            if pilot_id not in entries:
                existing = session.time_for(pilot_id)
                if existing is not None:
                    times.append(QualyTime(pilot_id=pilot_id, qualy_time=existing))
                continue
            value = valid_time(entries[pilot_id])
            if value is not None:
                times.append(QualyTime(pilot_id=pilot_id, qualy_time=value))

        result.append(
            session.model_copy(
                update={"times": times, "status": _status_for(session.assigned_pilots, times)}
            )
        )
    return result


def qualy_records(sessions: Iterable[QualySession]) -> list[QualyRecord]:
    """Плоский список записей квалы: по одной на назначенного пилота, в порядке сессий."""
    return [
        QualyRecord(
            pilot_id=pilot_id,
            group=session.group_name,
            qualy_time=session.time_for(pilot_id),
        )
        for session in sessions
        for pilot_id in session.assigned_pilots
    ]


# --- загрузка из payload ------------------------------------------


def is_legacy_records(payload: Any) -> bool:
    """Старый формат: плоский список {pilotId, group, qualyTime} вместо сессий."""
    return (
        isinstance(payload, list)
        and bool(payload)
        and all(isinstance(item, dict) and "pilotId" in item for item in payload)
    )


def migrate_legacy_records(
    records: Sequence[Any],
    pilots: Sequence[PilotRecord],
    groups_count,
    max_participants,
) -> list[QualySession]:
    """
    Переводит плоские записи квалы в сессии.

    Пилоты раскладываются по группам по номерам, время переносится, только
    если группа записи совпадает с группой сессии (или не указана).
    При повторах берётся последняя запись пилота.
    """
    by_pilot = {
        item["pilotId"]: item
        for item in records
        if isinstance(item, dict) and isinstance(item.get("pilotId"), str)
    }
    defaults = build_default_qualy_sessions(groups_count, max_participants, len(pilots))
    sessions = assign_pilots(defaults, pilots, groups_count, max_participants)

    result = []
    for session in sessions:
        times = []
        for pilot_id in session.assigned_pilots:
            found = by_pilot.get(pilot_id)
            if found is None:
                continue
            group = found.get("group")
            if isinstance(group, str) and group.strip() and group.strip() != session.group_name:
                continue
            value = valid_time(found.get("qualyTime"))
            if value is not None:
                times.append(QualyTime(pilot_id=pilot_id, qualy_time=value))
        result.append(
            session.model_copy(update={
                "times": times,
                "status": _status_for(session.assigned_pilots, times),
            })
        )

    logger.info("Migrated %d legacy qualy records into %d sessions", len(by_pilot), len(result))
    return result


def normalize_qualy_sessions(
    payload: Any,
    pilots: Sequence[PilotRecord],
    groups_count,
    max_participants,
) -> list[QualySession]:
    """Разбирает payload модуля qualy; сессии сопоставляются по имени (Q1, Q2, ...)."""
    if is_legacy_records(payload):
        return migrate_legacy_records(payload, pilots, groups_count, max_participants)

    stored_list = [s for s in payload if isinstance(s, dict)] if isinstance(payload, list) else []
    named = [s for s in stored_list if isinstance(s.get("name"), str) and s["name"].strip()]

    groups = max(
        positive_int(groups_count) or 1,
        len(named),
        max((n for n in (session_number(s["name"]) for s in named) if n != sys.maxsize), default=0),
    )
    defaults = build_default_qualy_sessions(groups, max_participants, len(pilots))
    if not named:
        return defaults

    known = {p.id for p in pilots}
    by_name = {s["name"]: s for s in named}

    result = []
    for base in defaults:
        stored = by_name.get(base.name)
        if stored is None:
            result.append(base)
            continue

        capacity = positive_int(stored.get("maxCapacity")) or base.max_capacity
        assigned_raw = stored.get("assignedPilots")
        if isinstance(assigned_raw, list):
            assigned = list(dict.fromkeys(p for p in assigned_raw if isinstance(p, str) and p in known))
        else:
            assigned = []
        assigned = assigned[:capacity]

        times = []
        raw_times = stored.get("times")
        for raw_entry in raw_times if isinstance(raw_times, list) else []:
            if not isinstance(raw_entry, dict):
                continue
            pilot_id = raw_entry.get("pilotId")
            value = valid_time(raw_entry.get("qualyTime"))
            if pilot_id in assigned and value is not None:
                times.append(QualyTime(pilot_id=pilot_id, qualy_time=value))

        group_name = stored.get("groupName")
        start_time = stored.get("startTime")
        result.append(
            QualySession(
                id=stored["id"] if isinstance(stored.get("id"), str) else base.id,
                name=base.name,
                group_name=group_name if isinstance(group_name, str) and group_name.strip() else base.group_name,
                start_time=start_time if is_valid_clock(start_time) else base.start_time,
                duration=positive_int(stored.get("duration")) or base.duration,
                max_capacity=capacity,
                assigned_pilots=assigned,
                status=_status_for(assigned, times),
                times=times,
            )
        )
    return sort_qualy_sessions(result)
