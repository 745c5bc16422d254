# backend/gpadmin/api/routes/admin_classification.py

from fastapi import APIRouter, Request, Depends, Form, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ...core.config import get_settings
from ...core.logging import get_logger
from ...db import get_db
from ...services import event_data
from ...services import qualy as qualy_service
from ...services import time_attack as time_attack_service
from ...services.errors import SessionError
from ...services.events import patch_runtime_config, runtime_config
from ...utils.jinja_filters import build_templates
from ...utils.numbers import parse_float, parse_int
from .admin import admin_auth, get_event_or_404

logger = get_logger(__name__)

router = APIRouter(
    prefix="/admin/events/{event_id}",
    tags=["admin"],
    dependencies=[Depends(admin_auth)],
)

templates = build_templates(get_settings().TEMPLATE_DIR)

# коды ошибок, которые означают конфликт с текущим состоянием сессии
_CONFLICT_REASONS = {"closed", "full", "last-session", "not-eligible"}


def session_http_error(exc: SessionError) -> HTTPException:
    if exc.reason == "not-found":
        return HTTPException(status_code=404, detail=str(exc))
    if exc.reason in _CONFLICT_REASONS:
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _form_values(form, prefix: str) -> dict[str, str]:
    """{pilot_id: value} из полей вида time_<pilot_id>."""
    return {
        key[len(prefix):]: value
        for key, value in form.multi_items()
        if key.startswith(prefix) and isinstance(value, str)
    }


# --- тайм-атака ----------------------------------------------------


@router.get("/time-attack", include_in_schema=False)
async def admin_time_attack(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    pilots = event_data.load_pilot_records(db, event)
    sessions = event_data.load_time_attack_sessions(db, event, pilots)

    return templates.TemplateResponse(
        request,
        "admin_time_attack.html",
        {
            "event": event,
            "sessions": sessions,
            "pilots": pilots,
            "pilots_by_id": {p.id: p for p in pilots},
            "eligible": [p for p in pilots if p.has_time_attack],
            "ranking": time_attack_service.time_attack_ranking(sessions, pilots),
            "time_range": time_attack_service.session_time_range,
        },
    )


def _redirect_time_attack(event_id: str) -> RedirectResponse:
    return RedirectResponse(url=f"/admin/events/{event_id}/time-attack", status_code=303)


@router.post("/time-attack/init", include_in_schema=False)
def admin_time_attack_init(event_id: str, db: Session = Depends(get_db)):
    """Сбрасывает тайм-атаку к базовому набору сессий."""
    event = get_event_or_404(db, event_id)
    config = runtime_config(event)
    sessions = time_attack_service.create_default_sessions(
        config.session_max_capacity, config.time_attack_sessions
    )
    event_data.save_time_attack_sessions(db, event, sessions)
    logger.info("Reset time attack for event %s", event.id)
    return _redirect_time_attack(event.id)


@router.post("/time-attack/add", include_in_schema=False)
def admin_time_attack_add(event_id: str, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    config = runtime_config(event)
    sessions = event_data.load_time_attack_sessions(db, event)

    sessions, _ = time_attack_service.add_session(sessions, config.session_max_capacity)
    event_data.save_time_attack_sessions(db, event, sessions)
    patch_runtime_config(db, event, time_attack_sessions=len(sessions))
    return _redirect_time_attack(event.id)


@router.post("/time-attack/{session_id}/close", include_in_schema=False)
def admin_time_attack_close(event_id: str, session_id: str, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    sessions = event_data.load_time_attack_sessions(db, event)
    try:
        sessions = time_attack_service.close_session(sessions, session_id)
    except SessionError as exc:
        raise session_http_error(exc) from exc

    event_data.save_time_attack_sessions(db, event, sessions)
    return _redirect_time_attack(event.id)


@router.post("/time-attack/{session_id}/delete", include_in_schema=False)
def admin_time_attack_delete(event_id: str, session_id: str, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    sessions = event_data.load_time_attack_sessions(db, event)
    try:
        sessions = time_attack_service.delete_session(sessions, session_id)
    except SessionError as exc:
        raise session_http_error(exc) from exc

    event_data.save_time_attack_sessions(db, event, sessions)
    patch_runtime_config(db, event, time_attack_sessions=len(sessions))
    return _redirect_time_attack(event.id)


@router.post("/time-attack/{session_id}/assign", include_in_schema=False)
def admin_time_attack_assign(
    event_id: str,
    session_id: str,
    pilot_id: str = Form(...),
    db: Session = Depends(get_db),
):
    """Добавить/снять пилота в сессии."""
    event = get_event_or_404(db, event_id)
    pilots = event_data.load_pilot_records(db, event)
    pilot = next((p for p in pilots if p.id == pilot_id), None)
    if pilot is None:
        raise HTTPException(status_code=404, detail="Pilot not found")

    sessions = event_data.load_time_attack_sessions(db, event, pilots)
    try:
        sessions = time_attack_service.toggle_assignment(sessions, session_id, pilot)
    except SessionError as exc:
        raise session_http_error(exc) from exc

    event_data.save_time_attack_sessions(db, event, sessions)
    return _redirect_time_attack(event.id)


@router.post("/time-attack/{session_id}/times", include_in_schema=False)
async def admin_time_attack_times(
    event_id: str,
    session_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    form = await request.form()
    raw_times = {
        pilot_id: parse_float(value)
        for pilot_id, value in _form_values(form, "time_").items()
    }

    sessions = event_data.load_time_attack_sessions(db, event)
    try:
        sessions = time_attack_service.save_session_times(sessions, session_id, raw_times)
    except SessionError as exc:
        raise session_http_error(exc) from exc

    event_data.save_time_attack_sessions(db, event, sessions)
    return _redirect_time_attack(event.id)


@router.post("/time-attack/{session_id}/capacity", include_in_schema=False)
def admin_time_attack_capacity(
    event_id: str,
    session_id: str,
    max_capacity: str = Form(...),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    sessions = event_data.load_time_attack_sessions(db, event)
    try:
        sessions = time_attack_service.update_capacity(sessions, session_id, parse_int(max_capacity))
    except SessionError as exc:
        raise session_http_error(exc) from exc

    event_data.save_time_attack_sessions(db, event, sessions)
    return _redirect_time_attack(event.id)


@router.post("/time-attack/{session_id}/start", include_in_schema=False)
def admin_time_attack_start(
    event_id: str,
    session_id: str,
    start_time: str = Form(...),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    sessions = event_data.load_time_attack_sessions(db, event)
    try:
        sessions = time_attack_service.update_start_time(sessions, session_id, start_time.strip())
    except SessionError as exc:
        raise session_http_error(exc) from exc

    event_data.save_time_attack_sessions(db, event, sessions)
    return _redirect_time_attack(event.id)


@router.post("/time-attack/{session_id}/duration", include_in_schema=False)
def admin_time_attack_duration(
    event_id: str,
    session_id: str,
    duration: str = Form(...),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    sessions = event_data.load_time_attack_sessions(db, event)
    try:
        sessions = time_attack_service.update_duration(sessions, session_id, parse_int(duration))
    except SessionError as exc:
        raise session_http_error(exc) from exc

    event_data.save_time_attack_sessions(db, event, sessions)
    return _redirect_time_attack(event.id)


# --- квалификация --------------------------------------------------


def _redirect_qualy(event_id: str) -> RedirectResponse:
    return RedirectResponse(url=f"/admin/events/{event_id}/qualy", status_code=303)


@router.get("/qualy", include_in_schema=False)
async def admin_qualy(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    pilots = event_data.load_pilot_records(db, event)
    sessions = event_data.load_qualy_sessions(db, event, pilots)

    return templates.TemplateResponse(
        request,
        "admin_qualy.html",
        {
            "event": event,
            "sessions": sessions,
            "pilots": pilots,
            "pilots_by_id": {p.id: p for p in pilots},
            "strategies": [*qualy_service.ASSIGNMENT_ORDERS, "random"],
        },
    )


@router.post("/qualy/assign", include_in_schema=False)
async def admin_qualy_assign(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Распределение пилотов по группам.
    strategy: number | level | kart | random | manual
    (для manual поля group_<pilot_id> = id сессии).
    """
    event = get_event_or_404(db, event_id)
    config = runtime_config(event)
    form = await request.form()
    strategy = str(form.get("strategy") or "number")

    pilots = event_data.load_pilot_records(db, event)
    sessions = event_data.load_qualy_sessions(db, event, pilots)

    if strategy == "manual":
        manual: dict[str, list[str]] = {}
        for pilot_id, session_id in _form_values(form, "group_").items():
            if session_id:
                manual.setdefault(session_id, []).append(pilot_id)
        sessions = qualy_service.assign_manual(
            sessions, pilots, config.qualy_groups, config.max_pilots, manual
        )
    else:
        if strategy == "random":
            order = qualy_service.shuffled()
        elif strategy in qualy_service.ASSIGNMENT_ORDERS:
            order = qualy_service.ASSIGNMENT_ORDERS[strategy]
        else:
            raise HTTPException(status_code=400, detail=f"Unknown strategy {strategy!r}")
        sessions = qualy_service.assign_pilots(
            sessions, pilots, config.qualy_groups, config.max_pilots, order
        )

    event_data.save_qualy_sessions(db, event, sessions)
    return _redirect_qualy(event.id)


@router.post("/qualy/times", include_in_schema=False)
async def admin_qualy_times(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    form = await request.form()
    entries = {
        pilot_id: parse_float(value)
        for pilot_id, value in _form_values(form, "time_").items()
    }

    sessions = event_data.load_qualy_sessions(db, event)
    sessions = qualy_service.save_qualy_times(sessions, entries)
    event_data.save_qualy_sessions(db, event, sessions)
    return _redirect_qualy(event.id)


@router.post("/qualy/reset", include_in_schema=False)
def admin_qualy_reset(event_id: str, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    sessions = qualy_service.reset_assignments(event_data.load_qualy_sessions(db, event))
    event_data.save_qualy_sessions(db, event, sessions)
    return _redirect_qualy(event.id)


@router.post("/qualy/add", include_in_schema=False)
def admin_qualy_add(event_id: str, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    pilots = event_data.load_pilot_records(db, event)
    sessions = event_data.load_qualy_sessions(db, event, pilots)

    sessions, _ = qualy_service.add_qualy_session(sessions, len(pilots))
    event_data.save_qualy_sessions(db, event, sessions)
    patch_runtime_config(db, event, qualy_groups=len(sessions))
    return _redirect_qualy(event.id)


@router.post("/qualy/{session_id}/delete", include_in_schema=False)
def admin_qualy_delete(event_id: str, session_id: str, db: Session = Depends(get_db)):
    event = get_event_or_404(db, event_id)
    sessions = event_data.load_qualy_sessions(db, event)
    try:
        sessions = qualy_service.delete_qualy_session(sessions, session_id)
    except SessionError as exc:
        raise session_http_error(exc) from exc

    event_data.save_qualy_sessions(db, event, sessions)
    patch_runtime_config(db, event, qualy_groups=len(sessions))
    return _redirect_qualy(event.id)


@router.post("/qualy/{session_id}/capacity", include_in_schema=False)
def admin_qualy_capacity(
    event_id: str,
    session_id: str,
    max_capacity: str = Form(...),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    sessions = event_data.load_qualy_sessions(db, event)
    try:
        sessions = qualy_service.update_qualy_capacity(sessions, session_id, parse_int(max_capacity))
    except SessionError as exc:
        raise session_http_error(exc) from exc

    event_data.save_qualy_sessions(db, event, sessions)
    return _redirect_qualy(event.id)


# --- сводный зачёт -------------------------------------------------


@router.get("/standings", include_in_schema=False)
async def admin_standings(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    rows = event_data.build_event_standings(db, event)

    return templates.TemplateResponse(
        request,
        "admin_standings.html",
        {
            "event": event,
            "rows": rows,
            "leader_time": rows[0].final_time if rows else None,
        },
    )
