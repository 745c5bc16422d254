# backend/gpadmin/services/pilots.py

import random

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.logging import get_logger
from ..models.pilot import KartClass, Pilot, PilotLevel
from ..schemas.pilot import PilotInput, PilotRecord

logger = get_logger(__name__)

_LEVEL_CYCLE = [PilotLevel.ELITE, PilotLevel.AMATEUR, PilotLevel.BEGINNER]

_FIRST_NAMES = [
    "Adrián", "Marta", "Sergio", "Lucía", "Carlos", "Nerea", "Iván", "Paula", "Álvaro", "Claudia",
    "Rubén", "Elena", "Jorge", "Aitana", "Raúl", "Noelia", "Dani", "Irene", "Pablo", "Sara",
]
_SURNAMES = [
    "Lozano", "Rivas", "Peña", "Bermúdez", "Mendoza", "Solís", "Ferrer", "Crespo", "Navarro", "Herrera",
    "Romero", "Delgado", "Pascual", "Varela", "Campos", "Soto", "Requena", "Cabrera", "Llorente", "Marín",
]


def build_login_code(number: int, rng: random.Random | None = None) -> str:
    """GP-007-0421"""
    rng = rng or random.Random()
    return f"GP-{max(1, int(number)):03d}-{rng.randrange(10000):04d}"


def list_pilots(db: Session, event_id: str) -> list[Pilot]:
    stmt = (
        select(Pilot)
        .where(Pilot.event_id == event_id)
        .order_by(Pilot.number.asc(), Pilot.created_at.desc())
    )
    return list(db.scalars(stmt).all())


def pilot_records(pilots: list[Pilot]) -> list[PilotRecord]:
    return [PilotRecord.model_validate(p) for p in pilots]


def get_pilot(db: Session, event_id: str, pilot_id: str) -> Pilot | None:
    pilot = db.get(Pilot, pilot_id)
    if pilot is None or pilot.event_id != event_id:
        return None
    return pilot


def _ensure_number_free(db: Session, event_id: str, number: int, exclude_id: str | None = None) -> None:
    stmt = select(Pilot).where(Pilot.event_id == event_id, Pilot.number == number)
    existing = db.scalar(stmt)
    if existing is not None and existing.id != exclude_id:
        raise ValueError(f"Pilot number {number} is already taken in this event.")


def _apply(pilot: Pilot, data: PilotInput) -> None:
    pilot.number = data.number
    pilot.first_name = data.first_name.strip()
    pilot.last_name = (data.last_name or "").strip() or None
    pilot.age = data.age
    pilot.phone = (data.phone or "").strip() or None
    pilot.social = (data.social or "").strip() or None
    pilot.weight = data.weight
    pilot.level = data.level
    pilot.kart = data.kart
    pilot.has_time_attack = data.has_time_attack
    pilot.marshal = data.marshal


def create_pilot(db: Session, event_id: str, data: PilotInput) -> Pilot:
    if not data.first_name.strip():
        raise ValueError("Invalid pilot data.")
    _ensure_number_free(db, event_id, data.number)

    login_code = (data.login_code or "").strip().upper() or build_login_code(data.number)
    pilot = Pilot(event_id=event_id, login_code=login_code)
    _apply(pilot, data)

    db.add(pilot)
    db.commit()
    db.refresh(pilot)
    logger.info("Created pilot #%d %s for event %s", pilot.number, pilot.full_name(), event_id)
    return pilot


def update_pilot(db: Session, pilot: Pilot, data: PilotInput) -> Pilot:
    if not data.first_name.strip():
        raise ValueError("Invalid pilot data.")
    _ensure_number_free(db, pilot.event_id, data.number, exclude_id=pilot.id)

    _apply(pilot, data)
    login_code = (data.login_code or "").strip().upper()
    if login_code:
        pilot.login_code = login_code

    db.add(pilot)
    db.commit()
    db.refresh(pilot)
    return pilot


def delete_pilot(db: Session, pilot: Pilot) -> None:
    db.delete(pilot)
    db.commit()
    logger.info("Deleted pilot #%d from event %s", pilot.number, pilot.event_id)


# --- тестовые данные ----------------------------------------------


def create_mock_pilots(total: int = 80) -> list[PilotInput]:
    """Детерминированный набор пилотов для наполнения пустого события."""
    result = []
    for index in range(total):
        first_name = _FIRST_NAMES[index % len(_FIRST_NAMES)]
        surname_a = _SURNAMES[index % len(_SURNAMES)]
        surname_b = _SURNAMES[(index * 3 + 7) % len(_SURNAMES)]
        level = _LEVEL_CYCLE[index % 3]

        result.append(
            PilotInput(
                number=index + 1,
                first_name=first_name,
                last_name=f"{surname_a} {surname_b}",
                age=18 + index % 18,
                phone=f"+34 6{10000000 + index * 137}",
                social=f"@{first_name.lower()}.{surname_a.lower()}{index + 1}",
                weight=None if index % 6 == 0 else float(56 + index % 28),
                level=level,
                kart=KartClass.CC390 if level == PilotLevel.ELITE or index % 2 == 0 else KartClass.CC270,
                has_time_attack=index % 5 != 0,
                marshal=index % 11 == 0,
            )
        )
    return result


def seed_mock_pilots(db: Session, event_id: str, total: int = 80) -> int:
    """Наполняет событие тестовыми пилотами, если в нём ещё никого нет."""
    if list_pilots(db, event_id):
        return 0

    rng = random.Random(event_id)
    for data in create_mock_pilots(total):
        pilot = Pilot(event_id=event_id, login_code=build_login_code(data.number, rng))
        _apply(pilot, data)
        db.add(pilot)
    db.commit()
    logger.info("Seeded %d mock pilots for event %s", total, event_id)
    return total
