from backend.gpadmin.models.event_state import ModuleKey
from backend.gpadmin.models.results import RaceResult
from backend.gpadmin.schemas.results import RaceKey
from backend.gpadmin.schemas.standings import StandingSource
from backend.gpadmin.services import event_data
from backend.gpadmin.services import qualy as qualy_service
from backend.gpadmin.services import results_engine
from backend.gpadmin.services import time_attack as ta
from backend.gpadmin.services.event_state import EventStateStore


def test_pilot_records_from_table(db, event, seeded_pilots):
    records = event_data.load_pilot_records(db, event)
    assert [r.number for r in records] == [1, 2, 3, 4, 5, 6]
    assert records[5].has_time_attack is False


def test_pilot_records_fall_back_to_module_payload(db, event):
    EventStateStore(db).put(
        event.id,
        ModuleKey.PILOTS,
        [
            {"id": "x2", "number": 2, "firstName": "Lucía", "kart": "390cc", "hasTimeAttack": True},
            {"id": "x1", "number": 1, "firstName": "Raúl"},
            {"number": 3},
        ],
    )

    records = event_data.load_pilot_records(db, event)
    assert [r.id for r in records] == ["x1", "x2"]
    assert records[1].kart.value == "390cc"


def test_time_attack_defaults_are_persisted(db, event):
    sessions = event_data.load_time_attack_sessions(db, event)

    assert [s.name for s in sessions] == ["T1", "T2", "T3"]
    assert all(s.max_capacity == 4 for s in sessions)
    stored = EventStateStore(db).get(event.id, ModuleKey.TIME_ATTACK)
    assert [s["name"] for s in stored] == ["T1", "T2", "T3"]


def test_qualy_defaults_auto_assign(db, event, seeded_pilots):
    sessions = event_data.load_qualy_sessions(db, event)

    assert [s.name for s in sessions] == ["Q1", "Q2"]
    assert sum(len(s.assigned_pilots) for s in sessions) == 6


def test_event_standings_combine_both_sources(db, event, seeded_pilots):
    pilots = event_data.load_pilot_records(db, event)
    p1, p2, p3 = pilots[0], pilots[1], pilots[2]

    sessions = event_data.load_time_attack_sessions(db, event, pilots)
    sessions = ta.toggle_assignment(sessions, sessions[0].id, p1)
    sessions = ta.toggle_assignment(sessions, sessions[0].id, p2)
    sessions = ta.save_session_times(sessions, sessions[0].id, {p1.id: 42.5, p2.id: 41.0})
    event_data.save_time_attack_sessions(db, event, sessions)

    qualy_sessions = event_data.load_qualy_sessions(db, event, pilots)
    qualy_sessions = qualy_service.save_qualy_times(qualy_sessions, {p2.id: 41.5, p3.id: 40.0})
    event_data.save_qualy_sessions(db, event, qualy_sessions)

    rows = event_data.build_event_standings(db, event)

    assert [(r.pilot_number, r.final_time, r.source) for r in rows] == [
        (3, 40.0, StandingSource.QUALY),
        (2, 41.0, StandingSource.BEST_OF_BOTH),
        (1, 42.5, StandingSource.TIME_ATTACK),
    ]


def test_save_race_result_writes_module_and_rows(db, event, seeded_pilots):
    pilots = event_data.load_pilot_records(db, event)
    race_pilots = results_engine.build_race_pilots([], pilots, {})
    rows = [(p, index + 1) for index, p in enumerate(race_pilots)]
    result = results_engine.compute_race_results(RaceKey.RACE1, rows)

    stored = event_data.save_race_result(db, event, RaceKey.RACE1, result)
    assert len(stored.race1.entries) == 6
    assert event_data.load_results(db, event).race1.winning_category == "390cc"
    assert db.query(RaceResult).filter(RaceResult.race_number == 1).count() == 6

    # повторное сохранение заменяет строки гонки
    event_data.save_race_result(db, event, RaceKey.RACE1, results_engine.compute_race_results(RaceKey.RACE1, rows[:2]))
    assert db.query(RaceResult).filter(RaceResult.race_number == 1).count() == 2
