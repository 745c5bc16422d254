# backend/gpadmin/services/events.py

from datetime import date
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..core.logging import get_logger
from ..models.event import Event, EventStatus
from ..schemas.event import EventInput, RuntimeConfig
from ..utils.numbers import positive_int
from ..utils.slug import generate_slug, unique_slug

logger = get_logger(__name__)

INVALID_EVENT = "Invalid event data."


def validate_event_input(data: EventInput) -> date:
    """Проверяет поля события; возвращает дату."""
    if not data.name.strip() or not data.date.strip() or not data.location.strip():
        raise ValueError(INVALID_EVENT)

    numeric = [
        data.max_participants,
        data.session_max_capacity,
        data.teams_count,
        data.time_attack_sessions,
        data.qualy_groups,
        data.race_count,
    ]
    if any(positive_int(value) is None for value in numeric):
        raise ValueError(INVALID_EVENT)

    try:
        return date.fromisoformat(data.date.strip())
    except ValueError as exc:
        raise ValueError(INVALID_EVENT) from exc


def config_from_input(data: EventInput) -> RuntimeConfig:
    return RuntimeConfig(
        max_pilots=data.max_participants,
        time_attack_sessions=data.time_attack_sessions,
        session_max_capacity=data.session_max_capacity,
        qualy_groups=data.qualy_groups,
        teams_count=data.teams_count,
        race_count=data.race_count,
    )


def parse_runtime_config(config: Any) -> RuntimeConfig:
    """
    Рабочие параметры из events.config.
    Если обязательных полей нет или они битые, берутся параметры по умолчанию.
    """
    defaults = RuntimeConfig()
    if not isinstance(config, dict):
        return defaults

    max_pilots = positive_int(config.get("maxPilots", config.get("maxParticipants")))
    sessions = positive_int(config.get("timeAttackSessions"))
    groups = positive_int(config.get("qualyGroups"))
    teams = positive_int(config.get("teamsCount"))
    races = positive_int(config.get("raceCount", config.get("racesCount")))

    if not (max_pilots and sessions and groups and teams and races):
        return defaults

    return RuntimeConfig(
        max_pilots=max_pilots,
        time_attack_sessions=sessions,
        session_max_capacity=positive_int(config.get("sessionMaxCapacity")) or max_pilots,
        qualy_groups=groups,
        teams_count=teams,
        race_count=races,
    )


def runtime_config(event: Event) -> RuntimeConfig:
    return parse_runtime_config(event.config)


def patch_runtime_config(db: Session, event: Event, **changes: int) -> RuntimeConfig:
    """Частичное обновление config (например, после добавления сессии)."""
    current = runtime_config(event)
    updates = {k: v for k, v in changes.items() if positive_int(v) is not None}
    patched = current.model_copy(update=updates)
    event.config = patched.to_payload()
    db.add(event)
    db.commit()
    return patched


def list_events(db: Session) -> list[Event]:
    stmt = select(Event).order_by(Event.created_at.desc())
    return list(db.scalars(stmt).all())


def get_event(db: Session, identifier: str) -> Event | None:
    """По id или slug."""
    stmt = select(Event).where(or_(Event.id == identifier, Event.slug == identifier)).limit(1)
    return db.scalar(stmt)


def _existing_slugs(db: Session, base: str, exclude_id: str | None = None) -> set[str]:
    normalized = generate_slug(base)
    stmt = select(Event.id, Event.slug).where(
        or_(Event.slug == normalized, Event.slug.like(f"{normalized}-%"))
    )
    return {slug for event_id, slug in db.execute(stmt).all() if slug and event_id != exclude_id}


def create_event(db: Session, data: EventInput) -> Event:
    event_date = validate_event_input(data)

    event = Event(
        name=data.name.strip(),
        slug=unique_slug(data.name, _existing_slugs(db, data.name)),
        location=data.location.strip(),
        date=event_date,
        status=EventStatus.ACTIVE,
        config=config_from_input(data).to_payload(),
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Created event %s (%s)", event.name, event.id)
    return event


def update_event(db: Session, event: Event, data: EventInput) -> Event:
    event_date = validate_event_input(data)

    if data.name.strip() != event.name:
        event.slug = unique_slug(data.name, _existing_slugs(db, data.name, exclude_id=event.id))
    event.name = data.name.strip()
    event.location = data.location.strip()
    event.date = event_date
    event.config = config_from_input(data).to_payload()

    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Updated event %s", event.id)
    return event


def delete_event(db: Session, event: Event) -> None:
    db.delete(event)
    db.commit()
    logger.info("Deleted event %s", event.id)
