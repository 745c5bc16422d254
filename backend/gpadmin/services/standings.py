# backend/gpadmin/services/standings.py
"""
Сводный зачёт: лучшее время пилота из тайм-атаки и квалификации.

Чистая функция над снимками пилотов, сессий тайм-атаки и записей квалы.
Некорректные времена (не число, NaN, ±inf, 0, отрицательные) считаются
отсутствующими и никогда не приводят к исключению.
"""

import math
from typing import Iterable, Sequence

from ..schemas.pilot import PilotRecord
from ..schemas.qualy import QualyRecord
from ..schemas.standings import CombinedStandingRow, StandingSource
from ..schemas.time_attack import TimeAttackSession


def valid_time(value) -> float | None:
    """Время как float, если оно конечное и > 0, иначе None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def best_time_attack_by_pilot(sessions: Iterable[TimeAttackSession]) -> dict[str, float]:
    best: dict[str, float] = {}
    for session in sessions:
        for entry in session.times:
            corrected = valid_time(entry.corrected_time)
            if corrected is None:
                continue
            current = best.get(entry.pilot_id)
            # строго меньше: при равенстве остаётся первое
            if current is None or corrected < current:
                best[entry.pilot_id] = corrected
    return best


def best_qualy_by_pilot(records: Iterable[QualyRecord]) -> dict[str, float]:
    # если у пилота несколько записей, берём минимальное время
    best: dict[str, float] = {}
    for record in records:
        qualy = valid_time(record.qualy_time)
        if qualy is None:
            continue
        current = best.get(record.pilot_id)
        if current is None or qualy < current:
            best[record.pilot_id] = qualy
    return best


def compute_combined_standings(
    pilots: Sequence[PilotRecord],
    sessions: Sequence[TimeAttackSession],
    qualy_records: Sequence[QualyRecord],
) -> list[CombinedStandingRow]:
    """
    Одна строка на пилота с лучшим из двух времён.

    Сортировка: по итоговому времени, при равенстве по номеру пилота.
    Пилоты без единого валидного времени в выдачу не попадают.
    """
    time_attack = best_time_attack_by_pilot(sessions)
    qualy = best_qualy_by_pilot(qualy_records)

    rows: list[CombinedStandingRow] = []
    seen: set[str] = set()

    for pilot in pilots:
        if pilot.id in seen:
            continue
        seen.add(pilot.id)

        ta_time = time_attack.get(pilot.id)
        qualy_time = qualy.get(pilot.id)

        if ta_time is not None and qualy_time is not None:
            final_time = min(ta_time, qualy_time)
            source = StandingSource.BEST_OF_BOTH
            from_time_attack = ta_time <= qualy_time
        elif ta_time is not None:
            final_time = ta_time
            source = StandingSource.TIME_ATTACK
            from_time_attack = True
        elif qualy_time is not None:
            final_time = qualy_time
            source = StandingSource.QUALY
            from_time_attack = False
        else:
            continue

        rows.append(
            CombinedStandingRow(
                pilot_id=pilot.id,
                pilot_number=pilot.number,
                full_name=pilot.full_name(),
                final_time=final_time,
                source=source,
                from_time_attack=from_time_attack,
            )
        )

    rows.sort(key=lambda row: (row.final_time, row.pilot_number))
    return rows
