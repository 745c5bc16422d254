# backend/gpadmin/api/routes/admin.py

import secrets
from typing import Any

from fastapi import (
    APIRouter,
    Request,
    Depends,
    Form,
    HTTPException,
    Body,
)
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.orm import Session

from ...core.config import get_settings
from ...core.logging import get_logger
from ...db import get_db
from ...models.event import Event
from ...models.event_state import ModuleKey
from ...schemas.event import EventInput
from ...services import events as events_service
from ...services.event_state import EventStateStore
from ...utils.jinja_filters import build_templates

logger = get_logger(__name__)

# --- Basic-авторизация (логин/пароль из настроек) -----------------

security = HTTPBasic()


def admin_auth(credentials: HTTPBasicCredentials = Depends(security)) -> str:
    settings = get_settings()
    correct_username = secrets.compare_digest(
        credentials.username.encode(), settings.ADMIN_USER.encode()
    )
    correct_password = secrets.compare_digest(
        credentials.password.encode(), settings.ADMIN_PASSWORD.encode()
    )

    if not (correct_username and correct_password):
        logger.warning("Rejected admin login for %r", credentials.username)
        # попросим браузер показать стандартное окошко логина/пароля
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(admin_auth)],  # защита всех /admin/*
)

templates = build_templates(get_settings().TEMPLATE_DIR)


# --- вспомогательные функции --------------------------------------


def get_event_or_404(db: Session, event_id: str) -> Event:
    event = events_service.get_event(db, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def _event_input(
    name: str,
    date_str: str,
    location: str,
    max_participants: int,
    session_max_capacity: int,
    teams_count: int,
    time_attack_sessions: int,
    qualy_groups: int,
    race_count: int,
) -> EventInput:
    return EventInput(
        name=name,
        date=date_str,
        location=location,
        max_participants=max_participants,
        session_max_capacity=session_max_capacity,
        teams_count=teams_count,
        time_attack_sessions=time_attack_sessions,
        qualy_groups=qualy_groups,
        race_count=race_count,
    )


# --- ручки админки -------------------------------------------------


@router.get("/", include_in_schema=False)
async def admin_index(request: Request, db: Session = Depends(get_db)):
    """Базовый экран админки: список событий."""
    events = events_service.list_events(db)

    return templates.TemplateResponse(
        request,
        "admin_index.html",
        {
            "events": events,
            "default_event_id": get_settings().DEFAULT_EVENT_ID,
        },
    )


@router.get("/events/new", include_in_schema=False)
async def admin_new_event_form(request: Request, error: str | None = None):
    """Форма создания нового события."""
    return templates.TemplateResponse(
        request,
        "admin_event_form.html",
        {"event": None, "config": None, "error": error},
    )


@router.post("/events/new", include_in_schema=False)
async def admin_create_event(
    name: str = Form(...),
    date_str: str = Form(...),
    location: str = Form(...),
    max_participants: int = Form(80),
    session_max_capacity: int = Form(20),
    teams_count: int = Form(10),
    time_attack_sessions: int = Form(5),
    qualy_groups: int = Form(3),
    race_count: int = Form(2),
    db: Session = Depends(get_db),
):
    data = _event_input(
        name, date_str, location, max_participants, session_max_capacity,
        teams_count, time_attack_sessions, qualy_groups, race_count,
    )
    try:
        event = events_service.create_event(db, data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return RedirectResponse(url=f"/admin/events/{event.id}", status_code=303)


@router.get("/events/{event_id}", include_in_schema=False)
async def admin_event_dashboard(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    store = EventStateStore(db)

    modules = {key.value: store.load(event.id, key) is not None for key in ModuleKey}

    return templates.TemplateResponse(
        request,
        "admin_event.html",
        {
            "event": event,
            "config": events_service.runtime_config(event),
            "pilots_count": len(event.pilots),
            "modules": modules,
        },
    )


@router.get("/events/{event_id}/edit", include_in_schema=False)
async def admin_edit_event(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)

    return templates.TemplateResponse(
        request,
        "admin_event_form.html",
        {
            "event": event,
            "config": events_service.runtime_config(event),
            "error": None,
        },
    )


@router.post("/events/{event_id}/edit", include_in_schema=False)
async def admin_update_event(
    event_id: str,
    name: str = Form(...),
    date_str: str = Form(...),
    location: str = Form(...),
    max_participants: int = Form(...),
    session_max_capacity: int = Form(...),
    teams_count: int = Form(...),
    time_attack_sessions: int = Form(...),
    qualy_groups: int = Form(...),
    race_count: int = Form(...),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    data = _event_input(
        name, date_str, location, max_participants, session_max_capacity,
        teams_count, time_attack_sessions, qualy_groups, race_count,
    )
    try:
        events_service.update_event(db, event, data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return RedirectResponse(url=f"/admin/events/{event.id}", status_code=303)


@router.post("/events/{event_id}/delete", include_in_schema=False)
def admin_delete_event(event_id: str, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    events_service.delete_event(db, event)
    return RedirectResponse(url="/admin/", status_code=303)


# --- JSON-состояние модулей ---------------------------------------


def _module_key_or_404(module_key: str) -> ModuleKey:
    try:
        return ModuleKey(module_key)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown module {module_key!r}")


@router.get("/api/events/{event_id}/modules/{module_key}")
def get_module_state(event_id: str, module_key: str, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    key = _module_key_or_404(module_key)
    # ошибка чтения не ломает клиента: вернём null
    return {"eventId": event.id, "moduleKey": key.value, "payload": EventStateStore(db).load(event.id, key)}


@router.put("/api/events/{event_id}/modules/{module_key}")
def save_module_state(
    event_id: str,
    module_key: str,
    payload: Any = Body(...),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    key = _module_key_or_404(module_key)
    EventStateStore(db).put(event.id, key, payload)
    return {"status": "ok"}


@router.delete("/api/events/{event_id}/modules/{module_key}")
def delete_module_state(event_id: str, module_key: str, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    key = _module_key_or_404(module_key)
    EventStateStore(db).delete(event.id, key)
    return {"status": "ok"}
