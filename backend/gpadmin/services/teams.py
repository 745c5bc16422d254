# backend/gpadmin/services/teams.py
"""
Команды на гонки.

Автосборка идёт по порядку сводного зачёта: пилоты делятся на две половины,
каждая команда получает двух лучших и двух худших ещё не взятых пилотов из
каждой половины, остальные раскладываются по кругу.
"""

import math
from typing import Sequence

from ..core.logging import get_logger
from ..schemas.results import TeamRecord

logger = get_logger(__name__)


def team_placeholders(count: int) -> list[TeamRecord]:
    return [
        TeamRecord(id=f"team-{index + 1}", name=f"Equipo {index + 1}")
        for index in range(max(count, 0))
    ]


def build_teams_by_pattern(ordered_pilot_ids: Sequence[str], teams_count: int) -> list[TeamRecord]:
    safe_count = max(teams_count, 1)
    members: list[list[str]] = [[] for _ in range(safe_count)]

    group_size = math.ceil(len(ordered_pilot_ids) / 2)
    group1 = list(ordered_pilot_ids[:group_size])
    group2 = list(ordered_pilot_ids[group_size:])
    pattern_teams = min(safe_count, group_size // 4)

    for index in range(pattern_teams):
        front = index * 2
        for group in (group1, group2):
            back = len(group) - index * 2
            # позиции 1-based: двое сверху и двое снизу
            for position in (front + 1, front + 2, back - 1, back):
                if 1 <= position <= len(group):
                    pilot_id = group[position - 1]
                    if pilot_id not in members[index]:
                        members[index].append(pilot_id)

    used = {pilot_id for team in members for pilot_id in team}
    remaining = [p for p in ordered_pilot_ids if p not in used]
    for index, pilot_id in enumerate(remaining):
        team = members[index % safe_count]
        if pilot_id not in team:
            team.append(pilot_id)

    logger.info("Built %d teams for %d pilots", safe_count, len(ordered_pilot_ids))
    return [
        placeholder.model_copy(update={"members": team})
        for placeholder, team in zip(team_placeholders(safe_count), members)
    ]


def move_pilot(teams: Sequence[TeamRecord], pilot_id: str, team_id: str | None) -> list[TeamRecord]:
    """Переносит пилота в команду team_id (None: убрать из всех команд)."""
    if team_id is not None and all(team.id != team_id for team in teams):
        raise ValueError(f"Team {team_id!r} not found")

    result = []
    for team in teams:
        members = [m for m in team.members if m != pilot_id]
        if team.id == team_id:
            members.append(pilot_id)
        result.append(team.model_copy(update={"members": members}))
    return result


def team_name_by_pilot(teams: Sequence[TeamRecord]) -> dict[str, str]:
    return {pilot_id: team.name for team in teams for pilot_id in team.members}
