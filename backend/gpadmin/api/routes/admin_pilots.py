# backend/gpadmin/api/routes/admin_pilots.py

from fastapi import APIRouter, Request, Depends, Form, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ...core.config import get_settings
from ...db import get_db
from ...models.pilot import KartClass, PilotLevel
from ...schemas.pilot import PilotInput
from ...services import pilots as pilots_service
from ...utils.jinja_filters import build_templates
from ...utils.numbers import parse_float, parse_int
from .admin import admin_auth, get_event_or_404

router = APIRouter(
    prefix="/admin/events/{event_id}/pilots",
    tags=["admin"],
    dependencies=[Depends(admin_auth)],
)

templates = build_templates(get_settings().TEMPLATE_DIR)


def _pilot_input(
    number: str,
    first_name: str,
    last_name: str,
    login_code: str,
    age: str,
    phone: str,
    social: str,
    weight: str,
    level: str,
    kart: str,
    has_time_attack: bool,
    marshal: bool,
) -> PilotInput:
    # ValidationError от pydantic тоже ValueError
    return PilotInput(
        number=parse_int(number) or 0,
        first_name=first_name,
        last_name=last_name or None,
        login_code=login_code or None,
        age=parse_int(age),
        phone=phone or None,
        social=social or None,
        weight=parse_float(weight),
        level=level,
        kart=kart,
        has_time_attack=has_time_attack,
        marshal=marshal,
    )


@router.get("/", include_in_schema=False)
async def admin_pilots_list(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    pilots = pilots_service.list_pilots(db, event.id)

    return templates.TemplateResponse(
        request,
        "admin_pilots.html",
        {"event": event, "pilots": pilots},
    )


@router.get("/new", include_in_schema=False)
async def admin_new_pilot_form(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    return templates.TemplateResponse(
        request,
        "admin_pilot_form.html",
        {
            "event": event,
            "pilot": None,
            "levels": list(PilotLevel),
            "karts": list(KartClass),
        },
    )


@router.post("/new", include_in_schema=False)
async def admin_create_pilot(
    event_id: str,
    number: str = Form(...),
    first_name: str = Form(...),
    last_name: str = Form(""),
    login_code: str = Form(""),
    age: str = Form(""),
    phone: str = Form(""),
    social: str = Form(""),
    weight: str = Form(""),
    level: str = Form(PilotLevel.BEGINNER.value),
    kart: str = Form(KartClass.CC270.value),
    has_time_attack: bool = Form(False),
    marshal: bool = Form(False),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    try:
        data = _pilot_input(
            number, first_name, last_name, login_code, age, phone, social,
            weight, level, kart, has_time_attack, marshal,
        )
        pilots_service.create_pilot(db, event.id, data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return RedirectResponse(url=f"/admin/events/{event.id}/pilots/", status_code=303)


@router.post("/seed", include_in_schema=False)
def admin_seed_pilots(
    event_id: str,
    total: int = Form(80),
    db: Session = Depends(get_db),
):
    """Тестовые пилоты для пустого события."""
    event = get_event_or_404(db, event_id)
    pilots_service.seed_mock_pilots(db, event.id, total)
    return RedirectResponse(url=f"/admin/events/{event.id}/pilots/", status_code=303)


@router.get("/{pilot_id}/edit", include_in_schema=False)
async def admin_edit_pilot(
    event_id: str,
    pilot_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    pilot = pilots_service.get_pilot(db, event.id, pilot_id)
    if not pilot:
        raise HTTPException(status_code=404, detail="Pilot not found")

    return templates.TemplateResponse(
        request,
        "admin_pilot_form.html",
        {
            "event": event,
            "pilot": pilot,
            "levels": list(PilotLevel),
            "karts": list(KartClass),
        },
    )


@router.post("/{pilot_id}/edit", include_in_schema=False)
async def admin_update_pilot(
    event_id: str,
    pilot_id: str,
    number: str = Form(...),
    first_name: str = Form(...),
    last_name: str = Form(""),
    login_code: str = Form(""),
    age: str = Form(""),
    phone: str = Form(""),
    social: str = Form(""),
    weight: str = Form(""),
    level: str = Form(PilotLevel.BEGINNER.value),
    kart: str = Form(KartClass.CC270.value),
    has_time_attack: bool = Form(False),
    marshal: bool = Form(False),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    pilot = pilots_service.get_pilot(db, event.id, pilot_id)
    if not pilot:
        raise HTTPException(status_code=404, detail="Pilot not found")

    try:
        data = _pilot_input(
            number, first_name, last_name, login_code, age, phone, social,
            weight, level, kart, has_time_attack, marshal,
        )
        pilots_service.update_pilot(db, pilot, data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return RedirectResponse(url=f"/admin/events/{event.id}/pilots/", status_code=303)


@router.post("/{pilot_id}/delete", include_in_schema=False)
def admin_delete_pilot(
    event_id: str,
    pilot_id: str,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    pilot = pilots_service.get_pilot(db, event.id, pilot_id)
    if not pilot:
        raise HTTPException(status_code=404, detail="Pilot not found")

    pilots_service.delete_pilot(db, pilot)
    return RedirectResponse(url=f"/admin/events/{event.id}/pilots/", status_code=303)
