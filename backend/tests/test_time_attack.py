import pytest

from backend.gpadmin.schemas.time_attack import SessionStatus
from backend.gpadmin.services import time_attack as ta
from backend.gpadmin.services.errors import SessionError

from conftest import make_pilot


@pytest.fixture
def sessions():
    return ta.create_default_sessions(max_capacity=2, session_count=3)


def test_default_sessions_layout(sessions):
    assert [s.name for s in sessions] == ["T1", "T2", "T3"]
    assert [s.id for s in sessions] == ["session-t1", "session-t2", "session-t3"]
    assert [s.start_time for s in sessions] == ["09:30", "09:45", "10:00"]
    assert all(s.duration == 10 and s.max_capacity == 2 for s in sessions)
    assert all(s.status == SessionStatus.PENDING for s in sessions)


def test_default_sessions_fall_back_on_bad_config():
    sessions = ta.create_default_sessions(max_capacity=0, session_count=-1)
    assert len(sessions) == ta.DEFAULT_SESSION_COUNT
    assert sessions[0].max_capacity == ta.DEFAULT_SESSION_CAPACITY


def test_session_number_sorting():
    assert ta.session_number("T12") == 12
    assert ta.session_number("libre") > ta.session_number("T99")


def test_add_session_continues_numbering(sessions):
    updated, added = ta.add_session(sessions)

    assert added.name == "T4"
    assert added.start_time == "10:15"
    assert added.max_capacity == 2
    assert [s.name for s in updated] == ["T1", "T2", "T3", "T4"]
    # исходный список не меняется
    assert len(sessions) == 3


def test_delete_session(sessions):
    updated = ta.delete_session(sessions, "session-t2")
    assert [s.name for s in updated] == ["T1", "T3"]


def test_cannot_delete_last_session():
    only = ta.create_default_sessions(session_count=1)
    with pytest.raises(SessionError) as info:
        ta.delete_session(only, only[0].id)
    assert info.value.reason == "last-session"


def test_unknown_session_is_not_found(sessions):
    with pytest.raises(SessionError) as info:
        ta.close_session(sessions, "missing")
    assert info.value.reason == "not-found"


def test_toggle_assignment_adds_and_removes(sessions):
    pilot = make_pilot("p1", 1)
    assigned = ta.toggle_assignment(sessions, "session-t1", pilot)
    assert assigned[0].assigned_pilots == ["p1"]

    removed = ta.toggle_assignment(assigned, "session-t1", pilot)
    assert removed[0].assigned_pilots == []


def test_toggle_assignment_respects_capacity(sessions):
    sessions = ta.toggle_assignment(sessions, "session-t1", make_pilot("p1", 1))
    sessions = ta.toggle_assignment(sessions, "session-t1", make_pilot("p2", 2))

    with pytest.raises(SessionError) as info:
        ta.toggle_assignment(sessions, "session-t1", make_pilot("p3", 3))
    assert info.value.reason == "full"


def test_toggle_assignment_rejects_ineligible_pilot(sessions):
    with pytest.raises(SessionError) as info:
        ta.toggle_assignment(sessions, "session-t1", make_pilot("p1", 1, has_time_attack=False))
    assert info.value.reason == "not-eligible"


def test_closed_session_is_frozen(sessions):
    pilot = make_pilot("p1", 1)
    sessions = ta.toggle_assignment(sessions, "session-t1", pilot)
    sessions = ta.save_session_times(sessions, "session-t1", {"p1": 42.1234})
    sessions = ta.close_session(sessions, "session-t1")

    assert sessions[0].is_closed
    with pytest.raises(SessionError) as info:
        ta.save_session_times(sessions, "session-t1", {"p1": 40.0})
    assert info.value.reason == "closed"
    with pytest.raises(SessionError):
        ta.toggle_assignment(sessions, "session-t1", make_pilot("p2", 2))

    # повторное закрытие ничего не меняет
    assert ta.close_session(sessions, "session-t1") == sessions


def test_save_times_keeps_only_valid_assigned(sessions):
    sessions = ta.toggle_assignment(sessions, "session-t1", make_pilot("p1", 1))
    sessions = ta.toggle_assignment(sessions, "session-t1", make_pilot("p2", 2))

    sessions = ta.save_session_times(
        sessions,
        "session-t1",
        {"p1": 42.12345, "p2": float("nan"), "stranger": 30.0},
    )

    times = sessions[0].times
    assert [t.pilot_id for t in times] == ["p1"]
    assert times[0].raw_time == 42.12345
    assert times[0].corrected_time == 42.123


def test_capacity_shrink_drops_tail(sessions):
    sessions = ta.toggle_assignment(sessions, "session-t1", make_pilot("p1", 1))
    sessions = ta.toggle_assignment(sessions, "session-t1", make_pilot("p2", 2))
    sessions = ta.save_session_times(sessions, "session-t1", {"p1": 41.0, "p2": 42.0})

    sessions = ta.update_capacity(sessions, "session-t1", 1)
    assert sessions[0].assigned_pilots == ["p1"]
    assert [t.pilot_id for t in sessions[0].times] == ["p1"]

    with pytest.raises(SessionError) as info:
        ta.update_capacity(sessions, "session-t1", 0)
    assert info.value.reason == "invalid-capacity"


def test_start_time_and_duration_validation(sessions):
    updated = ta.update_start_time(sessions, "session-t2", "12:05")
    assert updated[1].start_time == "12:05"
    assert ta.session_time_range(updated[1]) == "12:05 – 12:15"

    with pytest.raises(SessionError) as info:
        ta.update_start_time(sessions, "session-t2", "25:00")
    assert info.value.reason == "invalid-time"

    with pytest.raises(SessionError) as info:
        ta.update_duration(sessions, "session-t2", -5)
    assert info.value.reason == "invalid-duration"
    assert ta.update_duration(sessions, "session-t2", 8)[1].duration == 8


def test_ranking_uses_best_time_per_pilot(sessions):
    p1, p2 = make_pilot("p1", 1), make_pilot("p2", 2)
    sessions = ta.toggle_assignment(sessions, "session-t1", p1)
    sessions = ta.toggle_assignment(sessions, "session-t1", p2)
    sessions = ta.toggle_assignment(sessions, "session-t2", p1)
    sessions = ta.save_session_times(sessions, "session-t1", {"p1": 44.0, "p2": 43.5})
    sessions = ta.save_session_times(sessions, "session-t2", {"p1": 43.0})

    ranking = ta.time_attack_ranking(sessions)
    assert [(r.pilot_id, r.best_time, r.sessions_disputed) for r in ranking] == [
        ("p1", 43.0, 2),
        ("p2", 43.5, 1),
    ]


def test_normalize_sessions_repairs_payload():
    pilots = [make_pilot("p1", 1), make_pilot("p2", 2, has_time_attack=False)]
    payload = [
        {
            "id": "s-a",
            "name": "T2",
            "startTime": "bad",
            "duration": "x",
            "maxCapacity": 3,
            "assignedPilots": ["p1", "p2", "p1", 5],
            "status": "closed",
            "times": [
                {"pilotId": "p1", "rawTime": 40.5},
                {"pilotId": "p2", "rawTime": 39.0},
                {"pilotId": "p1", "rawTime": -1},
            ],
        },
        {"id": "s-b", "name": "T1", "startTime": "09:00"},
        "garbage",
    ]

    sessions = ta.normalize_sessions(payload, pilots, max_capacity=5, session_count=2)

    assert [s.name for s in sessions] == ["T1", "T2"]
    t2 = sessions[1]
    assert t2.id == "s-a"
    assert t2.assigned_pilots == ["p1"]
    assert t2.is_closed
    assert t2.duration == ta.DEFAULT_SESSION_DURATION
    assert [(t.pilot_id, t.raw_time) for t in t2.times] == [("p1", 40.5)]
    assert sessions[0].start_time == "09:00"


def test_normalize_sessions_empty_payload_gives_defaults():
    sessions = ta.normalize_sessions(None, [], max_capacity=7, session_count=2)
    assert [s.name for s in sessions] == ["T1", "T2"]
    assert sessions[0].max_capacity == 7


@pytest.mark.parametrize("times", [5, True, "p1", {"pilotId": "p1", "rawTime": 40.0}])
def test_normalize_sessions_ignores_non_list_times(times):
    pilots = [make_pilot("p1", 1)]
    payload = [{"name": "T1", "assignedPilots": ["p1"], "times": times}]

    sessions = ta.normalize_sessions(payload, pilots, max_capacity=5, session_count=1)

    assert sessions[0].assigned_pilots == ["p1"]
    assert sessions[0].times == []


def test_normalize_sessions_ignores_huge_times():
    pilots = [make_pilot("p1", 1)]
    payload = [{"name": "T1", "assignedPilots": ["p1"], "times": [{"pilotId": "p1", "rawTime": 10**400}]}]

    sessions = ta.normalize_sessions(payload, pilots, max_capacity=5, session_count=1)

    assert sessions[0].times == []


def test_ranking_ties_prefer_more_sessions_then_number(sessions):
    p1, p2, p3 = make_pilot("p1", 1), make_pilot("p2", 2), make_pilot("p3", 3)
    sessions = ta.toggle_assignment(sessions, "session-t1", p1)
    sessions = ta.toggle_assignment(sessions, "session-t1", p3)
    sessions = ta.toggle_assignment(sessions, "session-t2", p2)
    sessions = ta.toggle_assignment(sessions, "session-t2", p3)
    sessions = ta.save_session_times(sessions, "session-t1", {"p1": 43.0, "p3": 44.0})
    sessions = ta.save_session_times(sessions, "session-t2", {"p2": 43.0, "p3": 43.0})

    ranking = ta.time_attack_ranking(sessions, [p3, p2, p1])

    assert [(r.pilot_id, r.sessions_disputed) for r in ranking] == [("p3", 2), ("p1", 1), ("p2", 1)]
