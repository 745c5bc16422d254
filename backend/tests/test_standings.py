import math

import pytest

from backend.gpadmin.schemas.qualy import QualyRecord
from backend.gpadmin.schemas.standings import StandingSource
from backend.gpadmin.schemas.time_attack import TimeAttackSession, TimeAttackTime
from backend.gpadmin.services.standings import (
    best_qualy_by_pilot,
    best_time_attack_by_pilot,
    compute_combined_standings,
    valid_time,
)

from conftest import make_pilot


def session(session_id: str, times: dict[str, float]) -> TimeAttackSession:
    # конструктор модели не проверяет времена: так можно подложить NaN/0
    return TimeAttackSession(
        id=session_id,
        name=session_id.upper(),
        start_time="09:30",
        duration=10,
        max_capacity=20,
        assigned_pilots=list(times),
        times=[
            TimeAttackTime(pilot_id=pilot_id, raw_time=value, corrected_time=value)
            for pilot_id, value in times.items()
        ],
    )


def qualy(pilot_id: str, value) -> QualyRecord:
    return QualyRecord(pilot_id=pilot_id, group="Grupo 1", qualy_time=value)


@pytest.mark.parametrize(
    "value", [0, -1.5, float("nan"), float("inf"), float("-inf"), None, "42.5", True, 10**400]
)
def test_valid_time_rejects_unusable_values(value):
    assert valid_time(value) is None


def test_valid_time_accepts_positive_numbers():
    assert valid_time(42) == 42.0
    assert valid_time(0.001) == 0.001


def test_time_attack_only_pilot():
    pilots = [make_pilot("p1", 7)]
    rows = compute_combined_standings(pilots, [session("t1", {"p1": 42.5})], [])

    assert len(rows) == 1
    row = rows[0]
    assert row.final_time == 42.5
    assert row.source == StandingSource.TIME_ATTACK
    assert row.from_time_attack is True


def test_qualy_only_pilot():
    pilots = [make_pilot("p2", 3)]
    rows = compute_combined_standings(pilots, [], [qualy("p2", 40.0)])

    assert [(r.pilot_id, r.final_time, r.source, r.from_time_attack) for r in rows] == [
        ("p2", 40.0, StandingSource.QUALY, False)
    ]


def test_mixed_example_sorted_by_time():
    pilots = [make_pilot("p1", 7), make_pilot("p2", 3)]
    rows = compute_combined_standings(
        pilots, [session("t1", {"p1": 42.5})], [qualy("p2", 40.0)]
    )

    assert [r.pilot_id for r in rows] == ["p2", "p1"]
    assert rows[0].source == StandingSource.QUALY
    assert rows[1].source == StandingSource.TIME_ATTACK


def test_both_sources_take_minimum():
    pilots = [make_pilot("p1", 1), make_pilot("p2", 2)]
    rows = compute_combined_standings(
        pilots,
        [session("t1", {"p1": 41.0, "p2": 39.0})],
        [qualy("p1", 40.0), qualy("p2", 45.0)],
    )

    by_id = {r.pilot_id: r for r in rows}
    assert by_id["p1"].final_time == 40.0
    assert by_id["p1"].source == StandingSource.BEST_OF_BOTH
    assert by_id["p1"].from_time_attack is False
    assert by_id["p2"].final_time == 39.0
    assert by_id["p2"].from_time_attack is True


def test_equal_times_prefer_time_attack():
    pilots = [make_pilot("p1", 7)]
    rows = compute_combined_standings(pilots, [session("t1", {"p1": 30.0})], [qualy("p1", 30.0)])

    assert rows[0].source == StandingSource.BEST_OF_BOTH
    assert rows[0].from_time_attack is True
    assert rows[0].final_time == 30.0


def test_pilots_without_times_are_absent():
    pilots = [make_pilot("p1", 1), make_pilot("p2", 2), make_pilot("p3", 3)]
    rows = compute_combined_standings(
        pilots,
        [session("t1", {"p1": 50.0, "p3": 0})],
        [qualy("p2", None), qualy("p3", float("nan"))],
    )

    assert [r.pilot_id for r in rows] == ["p1"]


def test_invalid_times_never_selected():
    pilots = [make_pilot("p1", 1)]
    rows = compute_combined_standings(
        pilots,
        [
            session("t1", {"p1": float("inf")}),
            session("t2", {"p1": -3.0}),
            session("t3", {"p1": 55.0}),
        ],
        [qualy("p1", 0), qualy("p1", float("-inf"))],
    )

    assert len(rows) == 1
    assert rows[0].final_time == 55.0
    assert rows[0].source == StandingSource.TIME_ATTACK
    assert all(math.isfinite(r.final_time) and r.final_time > 0 for r in rows)


def test_best_time_attack_across_sessions():
    best = best_time_attack_by_pilot(
        [session("t1", {"p1": 44.0, "p2": 43.0}), session("t2", {"p1": 42.0})]
    )
    assert best == {"p1": 42.0, "p2": 43.0}


def test_duplicate_qualy_records_use_minimum():
    records = [qualy("p1", 41.0), qualy("p1", 39.5), qualy("p1", 40.0)]
    assert best_qualy_by_pilot(records) == {"p1": 39.5}


def test_ties_broken_by_pilot_number():
    pilots = [make_pilot("a", 12), make_pilot("b", 4), make_pilot("c", 8)]
    rows = compute_combined_standings(
        pilots, [session("t1", {"a": 40.0, "b": 40.0, "c": 39.0})], []
    )

    assert [r.pilot_number for r in rows] == [8, 4, 12]


def test_output_is_sorted_and_idempotent():
    pilots = [make_pilot(f"p{i}", i) for i in range(1, 6)]
    sessions = [session("t1", {"p1": 45.1, "p2": 44.9, "p4": 46.0})]
    records = [qualy("p3", 44.9), qualy("p5", 43.0), qualy("p1", 45.0)]

    first = compute_combined_standings(pilots, sessions, records)
    second = compute_combined_standings(pilots, sessions, records)

    assert first == second
    keys = [(r.final_time, r.pilot_number) for r in first]
    assert keys == sorted(keys)


def test_duplicate_pilot_entries_produce_single_row():
    pilot = make_pilot("p1", 1)
    rows = compute_combined_standings([pilot, pilot], [session("t1", {"p1": 50.0})], [])
    assert len(rows) == 1


def test_unknown_pilots_in_times_are_ignored():
    rows = compute_combined_standings(
        [make_pilot("p1", 1)], [session("t1", {"ghost": 30.0})], [qualy("ghost", 29.0)]
    )
    assert rows == []


def test_full_name_comes_from_registry():
    pilots = [make_pilot("p1", 1, first_name="Marta", last_name="Rivas Peña")]
    rows = compute_combined_standings(pilots, [], [qualy("p1", 40.0)])
    assert rows[0].full_name == "Marta Rivas Peña"
