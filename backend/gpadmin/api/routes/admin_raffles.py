# backend/gpadmin/api/routes/admin_raffles.py

from fastapi import APIRouter, Request, Depends, Form, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ...core.config import get_settings
from ...db import get_db
from ...schemas.raffles import RaffleRules
from ...services import event_data
from ...services import raffles as raffles_service
from ...services.errors import RaffleError
from ...utils.jinja_filters import build_templates
from .admin import admin_auth, get_event_or_404

router = APIRouter(
    prefix="/admin/events/{event_id}/raffles",
    tags=["admin"],
    dependencies=[Depends(admin_auth)],
)

templates = build_templates(get_settings().TEMPLATE_DIR)


def raffle_http_error(exc: RaffleError) -> HTTPException:
    if exc.reason == "not-found":
        return HTTPException(status_code=404, detail=str(exc))
    if exc.reason in ("already-drawn", "no-participants"):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _rules(
    exclude_previous_winners: bool,
    only270: bool,
    only390: bool,
    only_time_attack: bool,
) -> RaffleRules:
    return RaffleRules(
        exclude_previous_winners=exclude_previous_winners,
        only270=only270,
        only390=only390,
        only_time_attack=only_time_attack,
    )


def _redirect(event_id: str) -> RedirectResponse:
    return RedirectResponse(url=f"/admin/events/{event_id}/raffles/", status_code=303)


@router.get("/", include_in_schema=False)
async def admin_raffles(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    pilots = event_data.load_pilot_records(db, event)
    raffles = event_data.load_raffles(db, event)
    history = event_data.load_raffle_history(db, event)

    return templates.TemplateResponse(
        request,
        "admin_raffles.html",
        {
            "event": event,
            "raffles": raffles,
            "history": history[:5],
            "eligible_counts": {
                r.id: len(raffles_service.valid_participants(r, pilots, history))
                for r in raffles
            },
        },
    )


@router.get("/history", include_in_schema=False)
async def admin_raffles_history(
    event_id: str,
    request: Request,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    return templates.TemplateResponse(
        request,
        "admin_raffles_history.html",
        {"event": event, "history": event_data.load_raffle_history(db, event)},
    )


@router.post("/new", include_in_schema=False)
def admin_create_raffle(
    event_id: str,
    title: str = Form(""),
    description: str = Form(""),
    allow_duplicates: bool = Form(False),
    exclude_previous_winners: bool = Form(False),
    only270: bool = Form(False),
    only390: bool = Form(False),
    only_time_attack: bool = Form(False),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    raffles = event_data.load_raffles(db, event)
    history = event_data.load_raffle_history(db, event)
    try:
        raffles, _ = raffles_service.create_raffle(
            raffles,
            title,
            description,
            _rules(exclude_previous_winners, only270, only390, only_time_attack),
            allow_duplicates,
        )
    except RaffleError as exc:
        raise raffle_http_error(exc) from exc

    event_data.save_raffles(db, event, raffles, history)
    return _redirect(event.id)


@router.post("/{raffle_id}/edit", include_in_schema=False)
def admin_update_raffle(
    event_id: str,
    raffle_id: str,
    title: str = Form(""),
    description: str = Form(""),
    allow_duplicates: bool = Form(False),
    exclude_previous_winners: bool = Form(False),
    only270: bool = Form(False),
    only390: bool = Form(False),
    only_time_attack: bool = Form(False),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    raffles = event_data.load_raffles(db, event)
    history = event_data.load_raffle_history(db, event)
    try:
        raffles = raffles_service.update_raffle(
            raffles,
            raffle_id,
            title,
            description,
            _rules(exclude_previous_winners, only270, only390, only_time_attack),
            allow_duplicates,
        )
    except RaffleError as exc:
        raise raffle_http_error(exc) from exc

    event_data.save_raffles(db, event, raffles, history)
    return _redirect(event.id)


@router.post("/{raffle_id}/draw", include_in_schema=False)
def admin_draw_raffle(
    event_id: str,
    raffle_id: str,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    pilots = event_data.load_pilot_records(db, event)
    raffles = event_data.load_raffles(db, event)
    history = event_data.load_raffle_history(db, event)
    try:
        raffles, history, _ = raffles_service.draw_winner(raffles, history, raffle_id, pilots)
    except RaffleError as exc:
        raise raffle_http_error(exc) from exc

    event_data.save_raffles(db, event, raffles, history)
    return _redirect(event.id)


@router.post("/{raffle_id}/reset", include_in_schema=False)
def admin_reset_raffle(
    event_id: str,
    raffle_id: str,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    try:
        raffles, history = raffles_service.reset_raffle(
            event_data.load_raffles(db, event),
            event_data.load_raffle_history(db, event),
            raffle_id,
        )
    except RaffleError as exc:
        raise raffle_http_error(exc) from exc

    event_data.save_raffles(db, event, raffles, history)
    return _redirect(event.id)


@router.post("/{raffle_id}/delete", include_in_schema=False)
def admin_delete_raffle(
    event_id: str,
    raffle_id: str,
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    try:
        raffles, history = raffles_service.delete_raffle(
            event_data.load_raffles(db, event),
            event_data.load_raffle_history(db, event),
            raffle_id,
        )
    except RaffleError as exc:
        raise raffle_http_error(exc) from exc

    event_data.save_raffles(db, event, raffles, history)
    return _redirect(event.id)
