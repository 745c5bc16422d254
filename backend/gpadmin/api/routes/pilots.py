# backend/gpadmin/api/routes/pilots.py

from fastapi import APIRouter, Request, HTTPException, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ...core.config import get_settings
from ...db import get_db
from ...models.results import RaceResult
from ...services import event_data
from ...services.events import get_event
from ...services.pilots import get_pilot
from ...utils.jinja_filters import build_templates

router = APIRouter(prefix="/events/{identifier}/pilots", tags=["pilots"])

templates = build_templates(get_settings().TEMPLATE_DIR)


@router.get("/{pilot_id}", include_in_schema=False)
async def pilot_detail(
    identifier: str,
    pilot_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event(db, identifier)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    pilot = get_pilot(db, event.id, pilot_id)
    if not pilot:
        raise HTTPException(status_code=404, detail="Pilot not found")

    # место и время в сводном зачёте
    standings = event_data.build_event_standings(db, event)
    position, standing = next(
        ((index + 1, row) for index, row in enumerate(standings) if row.pilot_id == pilot.id),
        (None, None),
    )

    stmt = (
        select(RaceResult)
        .where(RaceResult.event_id == event.id, RaceResult.pilot_id == pilot.id)
        .order_by(RaceResult.race_number.asc())
    )
    race_results = db.scalars(stmt).all()

    return templates.TemplateResponse(
        request,
        "pilot_detail.html",
        {
            "event": event,
            "pilot": pilot,
            "position": position,
            "standing": standing,
            "race_results": race_results,
        },
    )
