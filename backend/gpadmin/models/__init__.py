# backend/gpadmin/models/__init__.py

from .event import Event, EventStatus  # noqa: F401
from .pilot import Pilot, PilotLevel, KartClass  # noqa: F401
from .event_state import EventModuleState, ModuleKey  # noqa: F401
from .results import RaceResult  # noqa: F401
