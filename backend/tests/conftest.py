import os

# до импорта приложения: модульный engine не должен создавать файл БД
os.environ.setdefault("GPADMIN_DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.gpadmin import models  # noqa: F401
from backend.gpadmin.db import Base, get_db
from backend.gpadmin.main import app
from backend.gpadmin.models.pilot import KartClass, PilotLevel
from backend.gpadmin.schemas.event import EventInput
from backend.gpadmin.schemas.pilot import PilotInput, PilotRecord
from backend.gpadmin.services.events import create_event
from backend.gpadmin.services.pilots import create_pilot

ADMIN = ("admin", "admin")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def event_input(**overrides) -> EventInput:
    data = {
        "name": "GP Valencia",
        "date": "2026-05-10",
        "location": "Kartódromo Lucas Guerrero",
        "max_participants": 12,
        "session_max_capacity": 4,
        "teams_count": 2,
        "time_attack_sessions": 3,
        "qualy_groups": 2,
        "race_count": 2,
    }
    data.update(overrides)
    return EventInput(**data)


@pytest.fixture
def event(db):
    return create_event(db, event_input())


@pytest.fixture
def seeded_pilots(db, event):
    """Шесть пилотов: #1-#3 390cc, #4-#6 270cc; у #6 нет тайм-атаки."""
    pilots = []
    for number in range(1, 7):
        pilots.append(
            create_pilot(
                db,
                event.id,
                PilotInput(
                    number=number,
                    first_name=f"Piloto{number}",
                    last_name="Test",
                    level=PilotLevel.ELITE if number <= 2 else PilotLevel.AMATEUR,
                    kart=KartClass.CC390 if number <= 3 else KartClass.CC270,
                    has_time_attack=number != 6,
                ),
            )
        )
    return pilots


def make_pilot(pilot_id: str, number: int, **overrides) -> PilotRecord:
    data = {
        "id": pilot_id,
        "number": number,
        "first_name": pilot_id.upper(),
        "has_time_attack": True,
    }
    data.update(overrides)
    return PilotRecord(**data)
