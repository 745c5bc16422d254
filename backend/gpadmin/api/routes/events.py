# backend/gpadmin/api/routes/events.py

from fastapi import APIRouter, Request, HTTPException, Depends
from sqlalchemy.orm import Session

from ...core.config import get_settings
from ...db import get_db
from ...models.event import Event
from ...services import event_data
from ...services import qualy as qualy_service
from ...services import time_attack as time_attack_service
from ...services.events import get_event
from ...utils.jinja_filters import build_templates

router = APIRouter(prefix="/events", tags=["events"])

templates = build_templates(get_settings().TEMPLATE_DIR)


def _event_or_404(db: Session, identifier: str) -> Event:
    event = get_event(db, identifier)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.get("/{identifier}", include_in_schema=False)
async def event_detail(
    request: Request,
    identifier: str,
    db: Session = Depends(get_db),
):
    """Публичная страница события: пилоты, тайм-атака, квала и сводный зачёт."""
    event = _event_or_404(db, identifier)

    pilots = event_data.load_pilot_records(db, event)
    sessions = event_data.load_time_attack_sessions(db, event, pilots)
    qualy_sessions = event_data.load_qualy_sessions(db, event, pilots)
    standings = event_data.build_event_standings(db, event)

    return templates.TemplateResponse(
        request,
        "event_detail.html",
        {
            "event": event,
            "pilots": pilots,
            "pilots_by_id": {p.id: p for p in pilots},
            "ranking": time_attack_service.time_attack_ranking(sessions, pilots),
            "qualy_records": qualy_service.qualy_records(qualy_sessions),
            "standings": standings,
            "leader_time": standings[0].final_time if standings else None,
        },
    )


@router.get("/{identifier}/standings.json")
def event_standings_json(identifier: str, db: Session = Depends(get_db)):
    event = _event_or_404(db, identifier)
    rows = event_data.build_event_standings(db, event)
    return {
        "eventId": event.id,
        "standings": [row.to_payload() for row in rows],
    }
