import random
from datetime import datetime, timezone

import pytest

from backend.gpadmin.models.pilot import KartClass
from backend.gpadmin.schemas.raffles import RaffleHistoryEntry, RaffleRules
from backend.gpadmin.services import raffles as rf
from backend.gpadmin.services.errors import RaffleError

from conftest import make_pilot

NOW = datetime(2026, 5, 10, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def pilots():
    return [
        make_pilot("p1", 1, kart=KartClass.CC390),
        make_pilot("p2", 2, kart=KartClass.CC390, has_time_attack=False),
        make_pilot("p3", 3, kart=KartClass.CC270),
        make_pilot("p4", 4, kart=KartClass.CC270, has_time_attack=False),
    ]


def won(raffle_title: str, winner_id: str) -> RaffleHistoryEntry:
    return RaffleHistoryEntry(
        raffle_id=f"old-{winner_id}",
        raffle_title=raffle_title,
        winner_id=winner_id,
        winner_name=winner_id.upper(),
        date="2026-05-09T12:00:00+00:00",
    )


def ids(participants):
    return [p.id for p in participants]


def test_create_requires_title():
    with pytest.raises(RaffleError) as info:
        rf.create_raffle([], "   ")
    assert info.value.reason == "invalid-title"


def test_create_puts_newest_first():
    raffles, first = rf.create_raffle([], "Casco", now=NOW)
    raffles, second = rf.create_raffle(raffles, " Guantes ", description=" talla M ")

    assert [r.id for r in raffles] == [second.id, first.id]
    assert second.title == "Guantes"
    assert second.description == "talla M"
    assert first.created_at == NOW.isoformat()


def test_kart_and_time_attack_rules(pilots):
    _, raffle = rf.create_raffle([], "Sorteo")

    only270 = raffle.model_copy(update={"rules": RaffleRules(only270=True)})
    only390_ta = raffle.model_copy(update={"rules": RaffleRules(only390=True, only_time_attack=True)})
    both = raffle.model_copy(update={"rules": RaffleRules(only270=True, only390=True)})

    assert ids(rf.valid_participants(raffle, pilots, [])) == ["p1", "p2", "p3", "p4"]
    assert ids(rf.valid_participants(only270, pilots, [])) == ["p3", "p4"]
    assert ids(rf.valid_participants(only390_ta, pilots, [])) == ["p1"]
    assert rf.valid_participants(both, pilots, []) == []


def test_previous_winners_and_duplicates(pilots):
    history = [won("Casco", "p1"), won("Gorra", "p2")]
    _, casco = rf.create_raffle([], "casco ")

    # без дубликатов исключается победитель розыгрыша с тем же названием
    assert ids(rf.valid_participants(casco, pilots, history)) == ["p2", "p3", "p4"]

    allow = casco.model_copy(update={"allow_duplicates": True})
    assert ids(rf.valid_participants(allow, pilots, history)) == ["p1", "p2", "p3", "p4"]

    exclude = allow.model_copy(update={"rules": RaffleRules(exclude_previous_winners=True)})
    assert ids(rf.valid_participants(exclude, pilots, history)) == ["p3", "p4"]


def test_draw_is_reproducible_with_seeded_rng(pilots):
    raffles, raffle = rf.create_raffle([], "Casco")
    history = [won("Gorra", "p4")]

    raffles, history, winner = rf.draw_winner(
        raffles, history, raffle.id, pilots, rng=random.Random(7), now=NOW
    )

    participants = rf.valid_participants(raffle, pilots, [])
    assert winner == random.Random(7).choice(participants)
    assert raffles[0].winner == winner
    assert raffles[0].participants_snapshot == participants
    assert history[0].raffle_id == raffle.id
    assert history[0].winner_id == winner.id
    assert history[0].date == NOW.isoformat()
    assert len(history) == 2


def test_draw_refuses_twice_and_without_participants(pilots):
    raffles, raffle = rf.create_raffle([], "Casco")
    raffles, history, _ = rf.draw_winner(raffles, [], raffle.id, pilots, rng=random.Random(1))

    with pytest.raises(RaffleError) as info:
        rf.draw_winner(raffles, history, raffle.id, pilots)
    assert info.value.reason == "already-drawn"

    raffles, empty = rf.create_raffle(raffles, "Nada", rules=RaffleRules(only270=True, only390=True))
    with pytest.raises(RaffleError) as info:
        rf.draw_winner(raffles, history, empty.id, pilots)
    assert info.value.reason == "no-participants"

    with pytest.raises(RaffleError) as info:
        rf.draw_winner(raffles, history, "missing", pilots)
    assert info.value.reason == "not-found"


def test_update_keeps_rules_after_draw(pilots):
    raffles, raffle = rf.create_raffle([], "Casco", rules=RaffleRules(only270=True))
    raffles, history, _ = rf.draw_winner(raffles, [], raffle.id, pilots, rng=random.Random(2))

    raffles = rf.update_raffle(
        raffles, raffle.id, "Casco grande", rules=RaffleRules(only390=True), allow_duplicates=True
    )

    assert raffles[0].title == "Casco grande"
    assert raffles[0].allow_duplicates is True
    assert raffles[0].rules == RaffleRules(only270=True)


def test_reset_and_delete_drop_history(pilots):
    raffles, raffle = rf.create_raffle([], "Casco")
    raffles, history, _ = rf.draw_winner(raffles, [won("Gorra", "p4")], raffle.id, pilots)

    reset, reset_history = rf.reset_raffle(raffles, history, raffle.id)
    assert reset[0].winner is None
    assert reset[0].participants_snapshot == []
    assert [h.raffle_id for h in reset_history] == ["old-p4"]

    remaining, remaining_history = rf.delete_raffle(raffles, history, raffle.id)
    assert remaining == []
    assert [h.raffle_id for h in remaining_history] == ["old-p4"]

    with pytest.raises(RaffleError):
        rf.reset_raffle(remaining, remaining_history, raffle.id)


def test_normalize_raffles_tolerates_stored_payloads():
    payload = [
        {
            "id": "r1",
            "title": "Casco",
            "rules": {"only270": 1, "onlyTimeAttack": True, "onlyConfirmed": True},
            "allowDuplicates": "yes",
            "winner": {"id": "p3", "name": "Ana Ruiz", "number": "3"},
            "participantsSnapshot": [
                {"id": "p3", "name": "Ana Ruiz", "number": "3"},
                {"id": "p9", "name": "Sin número", "number": "x"},
                "garbage",
            ],
            "createdAt": 1700000000000,
        },
        {"id": "r2", "title": 5, "rules": "all", "participantsSnapshot": 4, "createdAt": 10**400},
        {"title": "Sin id"},
        "garbage",
    ]

    raffles = rf.normalize_raffles(payload)

    assert [r.id for r in raffles] == ["r1", "r2"]
    r1, r2 = raffles
    assert r1.rules == RaffleRules(only270=True, only_time_attack=True)
    assert r1.allow_duplicates is True
    assert r1.winner.number == 3
    assert [p.id for p in r1.participants_snapshot] == ["p3"]
    assert r1.created_at == "2023-11-14T22:13:20+00:00"
    assert r2.title == rf.DEFAULT_TITLE
    assert r2.rules == RaffleRules()
    assert r2.participants_snapshot == []
    assert r2.created_at is None
    assert rf.normalize_raffles({"id": "r1"}) == []


def test_normalize_history_sorts_newest_first():
    payload = [
        {"raffleId": "r1", "raffleTitle": "Casco", "winnerId": "p1", "winnerName": "Ana", "date": "2026-05-09T10:00:00+00:00"},
        {"raffleId": "r2", "winnerId": "p2", "date": "2026-05-10T10:00:00+00:00"},
        {"raffleId": "r3", "winnerId": 7},
        None,
    ]

    history = rf.normalize_history(payload)

    assert [h.raffle_id for h in history] == ["r2", "r1"]
    assert history[0].raffle_title == rf.DEFAULT_TITLE
    assert history[0].winner_name == rf.DEFAULT_WINNER_NAME
    assert rf.normalize_history("nope") == []
