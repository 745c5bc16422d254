# backend/gpadmin/api/routes/pages.py

from fastapi import APIRouter, Request, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ...core.config import get_settings
from ...db import get_db
from ...models.event import Event, EventStatus
from ...utils.jinja_filters import build_templates

router = APIRouter()

templates = build_templates(get_settings().TEMPLATE_DIR)


@router.get("/", include_in_schema=False, name="index")
async def index(
    request: Request,
    db: Session = Depends(get_db),
):
    # черновики наружу не показываем
    stmt = (
        select(Event)
        .where(Event.status != EventStatus.DRAFT)
        .order_by(Event.date.desc(), Event.created_at.desc())
    )
    events = db.scalars(stmt).all()

    return templates.TemplateResponse(
        request,
        "index.html",
        {"events": events},
    )
