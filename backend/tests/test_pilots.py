import re

import pytest

from backend.gpadmin.models.pilot import KartClass, PilotLevel
from backend.gpadmin.schemas.pilot import PilotInput
from backend.gpadmin.services import pilots as pilots_service


def test_create_pilot_generates_login_code(db, event):
    pilot = pilots_service.create_pilot(db, event.id, PilotInput(number=7, first_name=" Marta "))

    assert pilot.first_name == "Marta"
    assert re.fullmatch(r"GP-007-\d{4}", pilot.login_code)


def test_explicit_login_code_is_uppercased(db, event):
    pilot = pilots_service.create_pilot(
        db, event.id, PilotInput(number=8, first_name="Iván", login_code="gp-008-abcd")
    )
    assert pilot.login_code == "GP-008-ABCD"


def test_number_must_be_unique_per_event(db, event):
    pilots_service.create_pilot(db, event.id, PilotInput(number=3, first_name="Sara"))
    with pytest.raises(ValueError, match="already taken"):
        pilots_service.create_pilot(db, event.id, PilotInput(number=3, first_name="Pablo"))


def test_blank_name_is_rejected(db, event):
    with pytest.raises(ValueError):
        pilots_service.create_pilot(db, event.id, PilotInput(number=4, first_name="   "))


def test_list_is_ordered_by_number(db, event):
    for number in (5, 1, 3):
        pilots_service.create_pilot(db, event.id, PilotInput(number=number, first_name=f"N{number}"))

    assert [p.number for p in pilots_service.list_pilots(db, event.id)] == [1, 3, 5]


def test_update_pilot(db, event, seeded_pilots):
    pilot = seeded_pilots[0]
    data = PilotInput(number=1, first_name="Adrián", kart=KartClass.CC270, has_time_attack=False)
    updated = pilots_service.update_pilot(db, pilot, data)

    assert updated.first_name == "Adrián"
    assert updated.kart == KartClass.CC270
    assert updated.has_time_attack is False

    with pytest.raises(ValueError):
        pilots_service.update_pilot(db, pilot, PilotInput(number=2, first_name="Adrián"))


def test_get_pilot_checks_event(db, event, seeded_pilots):
    pilot = seeded_pilots[0]
    assert pilots_service.get_pilot(db, event.id, pilot.id) is pilot
    assert pilots_service.get_pilot(db, "other-event", pilot.id) is None


def test_delete_pilot(db, event, seeded_pilots):
    pilots_service.delete_pilot(db, seeded_pilots[0])
    assert len(pilots_service.list_pilots(db, event.id)) == 5


def test_mock_pilots_are_deterministic():
    first = pilots_service.create_mock_pilots(15)
    second = pilots_service.create_mock_pilots(15)

    assert first == second
    assert [p.number for p in first] == list(range(1, 16))
    assert [p.level for p in first[:3]] == [PilotLevel.ELITE, PilotLevel.AMATEUR, PilotLevel.BEGINNER]
    assert [p.has_time_attack for p in first[:6]] == [False, True, True, True, True, False]
    assert all(p.kart == KartClass.CC390 for p in first if p.level == PilotLevel.ELITE)


def test_seed_only_fills_empty_event(db, event):
    assert pilots_service.seed_mock_pilots(db, event.id, 10) == 10
    assert pilots_service.seed_mock_pilots(db, event.id, 10) == 0
    assert len(pilots_service.list_pilots(db, event.id)) == 10
