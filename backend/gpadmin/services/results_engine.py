# backend/gpadmin/services/results_engine.py
"""
Очки за гонки.

В гонке едут две категории картов (390cc и 270cc). Очки считаются по месту
внутри категории: 40, 38, 36, ... но не меньше 2. Категория победителя гонки
получает коллективный бонус +20, а её пилоты, финишировавшие выше первого
пилота другой категории, ещё и личный бонус +20.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from pydantic import ValidationError

from ..core.logging import get_logger
from ..models.pilot import KartClass
from ..schemas.pilot import PilotRecord
from ..schemas.standings import CombinedStandingRow
from ..schemas.results import (
    IndividualStandingRow,
    RaceComputedResult,
    RaceKey,
    RacePilot,
    RaceResultEntry,
    StoredResults,
    TeamMemberPoints,
    TeamRecord,
    TeamStandingRow,
)

logger = get_logger(__name__)

COLLECTIVE_BONUS = 20
INDIVIDUAL_BONUS = 20
NO_TEAM = "Sin equipo"

_OPPOSITE = {
    KartClass.CC390.value: KartClass.CC270.value,
    KartClass.CC270.value: KartClass.CC390.value,
}


def category_base_points(category_position: int) -> int:
    return max(40 - (category_position - 1) * 2, 2)


def build_race_pilots(
    standings: Sequence[CombinedStandingRow],
    pilots: Sequence[PilotRecord],
    team_names: Mapping[str, str],
) -> list[RacePilot]:
    """Участники гонки в порядке сводного зачёта; неклассифицированные в конце с позицией 0."""
    by_id = {p.id: p for p in pilots}
    classified = {row.pilot_id: index + 1 for index, row in enumerate(standings)}

    ordered = [by_id[row.pilot_id] for row in standings if row.pilot_id in by_id]
    ordered += sorted((p for p in pilots if p.id not in classified), key=lambda p: p.number)

    return [
        RacePilot(
            pilot_id=pilot.id,
            pilot_number=pilot.number,
            full_name=pilot.full_name(),
            team_name=team_names.get(pilot.id, NO_TEAM),
            category=pilot.kart.value,
            classification_position=classified.get(pilot.id, 0),
        )
        for pilot in ordered
    ]


def compute_race_results(
    race: RaceKey,
    rows: Iterable[tuple[RacePilot, int]],
    now: datetime | None = None,
) -> RaceComputedResult:
    """rows: (пилот, место на финише)."""
    ordered = sorted(rows, key=lambda row: row[1])
    if not ordered:
        return RaceComputedResult()

    winner, _ = ordered[0]
    winning_category = winner.category
    opposite = _OPPOSITE.get(winning_category)
    first_opposite = next(
        ((pilot, position) for pilot, position in ordered if pilot.category == opposite),
        None,
    )

    category_ranks: dict[str, int] = {}
    entries = []
    for pilot, position in ordered:
        category_rank = category_ranks.get(pilot.category, 0) + 1
        category_ranks[pilot.category] = category_rank

        in_winning = pilot.category == winning_category
        base = category_base_points(category_rank)
        collective = COLLECTIVE_BONUS if in_winning else 0
        individual = (
            INDIVIDUAL_BONUS
            if in_winning and first_opposite is not None and position < first_opposite[1]
            else 0
        )

        entries.append(
            RaceResultEntry(
                race=race,
                pilot_id=pilot.pilot_id,
                pilot_number=pilot.pilot_number,
                full_name=pilot.full_name,
                category=pilot.category,
                team_name=pilot.team_name,
                final_position=position,
                category_position=category_rank,
                base_points=base,
                collective_bonus=collective,
                individual_bonus=individual,
                final_points=base + collective + individual,
            )
        )

    now = now or datetime.now(timezone.utc)
    logger.info(
        "Computed %s: %d entries, winner %s (%s)",
        race.value, len(entries), winner.pilot_id, winning_category,
    )
    return RaceComputedResult(
        entries=entries,
        general_winner_pilot_id=winner.pilot_id,
        winning_category=winning_category,
        opposite_category_first_pilot_id=first_opposite[0].pilot_id if first_opposite else None,
        calculated_at=now.isoformat(),
    )


def _points_by_pilot(result: RaceComputedResult) -> dict[str, RaceResultEntry]:
    return {entry.pilot_id: entry for entry in result.entries}


def build_individual_standings(results: StoredResults) -> list[IndividualStandingRow]:
    race1 = _points_by_pilot(results.race1)
    race2 = _points_by_pilot(results.race2)

    rows = []
    for pilot_id in dict.fromkeys([*race1, *race2]):
        first = race1.get(pilot_id)
        second = race2.get(pilot_id)
        known = first or second
        points1 = first.final_points if first else 0
        points2 = second.final_points if second else 0
        rows.append(
            IndividualStandingRow(
                pilot_id=pilot_id,
                pilot_number=known.pilot_number,
                full_name=known.full_name,
                points_race1=points1,
                points_race2=points2,
                total_points=points1 + points2,
            )
        )

    rows.sort(key=lambda row: (-row.total_points, row.pilot_number))
    return rows


def build_team_standings(results: StoredResults, teams: Sequence[TeamRecord]) -> list[TeamStandingRow]:
    race1 = _points_by_pilot(results.race1)
    race2 = _points_by_pilot(results.race2)

    rows = []
    for team in teams:
        breakdown = []
        for pilot_id in team.members:
            first = race1.get(pilot_id)
            second = race2.get(pilot_id)
            known = first or second
            points1 = first.final_points if first else 0
            points2 = second.final_points if second else 0
            breakdown.append(
                TeamMemberPoints(
                    pilot_id=pilot_id,
                    pilot_number=known.pilot_number if known else 0,
                    full_name=known.full_name if known else "Piloto sin resultado",
                    race1_points=points1,
                    race2_points=points2,
                    total_points=points1 + points2,
                )
            )
        if not breakdown:
            continue
        rows.append(
            TeamStandingRow(
                team_id=team.id,
                team_name=team.name,
                total_points=sum(item.total_points for item in breakdown),
                breakdown=breakdown,
            )
        )

    rows.sort(key=lambda row: -row.total_points)
    return rows


def normalize_race_result(value: Any) -> RaceComputedResult:
    """Разбирает сохранённый результат гонки; битые записи отбрасываются."""
    if not isinstance(value, dict):
        return RaceComputedResult()

    entries = []
    raw_entries = value.get("entries")
    for raw_entry in raw_entries if isinstance(raw_entries, list) else []:
        try:
            entries.append(RaceResultEntry.model_validate(raw_entry))
        except ValidationError:
            logger.warning("Skipping malformed race result entry: %r", raw_entry)

    def _str_or_none(key: str) -> str | None:
        item = value.get(key)
        return item if isinstance(item, str) else None

    category = value.get("winningCategory")
    return RaceComputedResult(
        entries=entries,
        general_winner_pilot_id=_str_or_none("generalWinnerPilotId"),
        winning_category=category if category in _OPPOSITE else None,
        opposite_category_first_pilot_id=_str_or_none("oppositeCategoryFirstPilotId"),
        calculated_at=_str_or_none("calculatedAt"),
    )


def normalize_results(value: Any) -> StoredResults:
    if not isinstance(value, dict):
        return StoredResults()
    return StoredResults(
        race1=normalize_race_result(value.get("race1")),
        race2=normalize_race_result(value.get("race2")),
    )


def normalize_teams(value: Any) -> list[TeamRecord]:
    teams = []
    for raw_team in value if isinstance(value, list) else []:
        try:
            teams.append(TeamRecord.model_validate(raw_team))
        except ValidationError:
            logger.warning("Skipping malformed team: %r", raw_team)
    return teams
