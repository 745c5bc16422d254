# backend/gpadmin/api/routes/admin_results.py

from fastapi import APIRouter, Request, Depends, Form, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ...core.config import get_settings
from ...db import get_db
from ...schemas.results import RaceKey
from ...services import event_data
from ...services import results_engine
from ...services import teams as teams_service
from ...services.events import runtime_config
from ...utils.jinja_filters import build_templates
from ...utils.numbers import parse_int
from .admin import admin_auth, get_event_or_404

router = APIRouter(
    prefix="/admin/events/{event_id}",
    tags=["admin"],
    dependencies=[Depends(admin_auth)],
)

templates = build_templates(get_settings().TEMPLATE_DIR)


def _race_or_404(event, race: str) -> RaceKey:
    """Гонка из URL; гонки сверх race_count события не существуют."""
    races = list(RaceKey)[: runtime_config(event).race_count]
    try:
        race_key = RaceKey(race)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown race {race!r}")
    if race_key not in races:
        raise HTTPException(status_code=404, detail=f"Unknown race {race!r}")
    return race_key


def _ordered_pilot_ids(db: Session, event) -> list[str]:
    """Порядок сводного зачёта; пока времён нет, по номерам."""
    standings = event_data.build_event_standings(db, event)
    if standings:
        return [row.pilot_id for row in standings]
    return [p.id for p in event_data.load_pilot_records(db, event)]


# --- команды -------------------------------------------------------


@router.get("/teams", include_in_schema=False)
async def admin_teams(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    pilots = event_data.load_pilot_records(db, event)
    teams = event_data.load_teams(db, event) or teams_service.team_placeholders(
        runtime_config(event).teams_count
    )
    assigned = {pilot_id for team in teams for pilot_id in team.members}

    return templates.TemplateResponse(
        request,
        "admin_teams.html",
        {
            "event": event,
            "teams": teams,
            "pilots_by_id": {p.id: p for p in pilots},
            "unassigned": [p for p in pilots if p.id not in assigned],
        },
    )


@router.post("/teams/auto", include_in_schema=False)
def admin_teams_auto(event_id: str, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    teams = teams_service.build_teams_by_pattern(
        _ordered_pilot_ids(db, event), runtime_config(event).teams_count
    )
    event_data.save_teams(db, event, teams)
    return RedirectResponse(url=f"/admin/events/{event.id}/teams", status_code=303)


@router.post("/teams/move", include_in_schema=False)
def admin_teams_move(
    event_id: str,
    pilot_id: str = Form(...),
    team_id: str = Form(""),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    teams = event_data.load_teams(db, event) or teams_service.team_placeholders(
        runtime_config(event).teams_count
    )
    try:
        teams = teams_service.move_pilot(teams, pilot_id, team_id or None)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    event_data.save_teams(db, event, teams)
    return RedirectResponse(url=f"/admin/events/{event.id}/teams", status_code=303)


@router.post("/teams/reset", include_in_schema=False)
def admin_teams_reset(event_id: str, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    event_data.save_teams(db, event, [])
    return RedirectResponse(url=f"/admin/events/{event.id}/teams", status_code=303)


# --- результаты гонок ---------------------------------------------


@router.get("/results", include_in_schema=False)
async def admin_results(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    pilots = event_data.load_pilot_records(db, event)
    teams = event_data.load_teams(db, event)
    standings = event_data.build_event_standings(db, event)
    results = event_data.load_results(db, event)

    race_pilots = results_engine.build_race_pilots(
        standings, pilots, teams_service.team_name_by_pilot(teams)
    )
    races = list(RaceKey)[: runtime_config(event).race_count]

    return templates.TemplateResponse(
        request,
        "admin_results.html",
        {
            "event": event,
            "races": races,
            "race_pilots": race_pilots,
            "results": results,
            "individual": results_engine.build_individual_standings(results),
            "team_rows": results_engine.build_team_standings(results, teams),
        },
    )


@router.post("/results/{race}", include_in_schema=False)
async def admin_submit_race(
    event_id: str,
    race: str,
    request: Request,
    db: Session = Depends(get_db),
):
    """Места на финише: поля pos_<pilot_id>; пустое поле: пилот не финишировал."""
    event = get_event_or_404(db, event_id)
    race_key = _race_or_404(event, race)
    form = await request.form()

    positions: dict[str, int] = {}
    for key, value in form.multi_items():
        if not key.startswith("pos_") or not isinstance(value, str):
            continue
        position = parse_int(value)
        if position is None:
            continue
        if position <= 0:
            raise HTTPException(status_code=400, detail="Positions must be positive")
        positions[key[len("pos_"):]] = position

    if len(set(positions.values())) != len(positions):
        raise HTTPException(status_code=400, detail="Duplicate finishing positions")

    pilots = event_data.load_pilot_records(db, event)
    teams = event_data.load_teams(db, event)
    standings = event_data.build_event_standings(db, event)
    race_pilots = results_engine.build_race_pilots(
        standings, pilots, teams_service.team_name_by_pilot(teams)
    )

    rows = [(p, positions[p.pilot_id]) for p in race_pilots if p.pilot_id in positions]
    result = results_engine.compute_race_results(race_key, rows)
    event_data.save_race_result(db, event, race_key, result)

    return RedirectResponse(url=f"/admin/events/{event.id}/results", status_code=303)
