# backend/gpadmin/schemas/pilot.py

from pydantic import BaseModel, ConfigDict, Field

from ..models.pilot import PilotLevel, KartClass
from .base import PayloadModel


class PilotRecord(PayloadModel):
    """Неизменяемый снимок пилота для расчётов (тайм-атака, квала, зачёт)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    number: int
    first_name: str
    last_name: str | None = None
    level: PilotLevel = PilotLevel.BEGINNER
    kart: KartClass = KartClass.CC270
    has_time_attack: bool = False

    def full_name(self) -> str:
        parts = [p for p in [self.first_name, self.last_name] if p]
        return " ".join(parts)


class PilotInput(BaseModel):
    number: int = Field(gt=0)
    first_name: str = Field(min_length=1)
    last_name: str | None = None
    login_code: str | None = None
    age: int | None = None
    phone: str | None = None
    social: str | None = None
    weight: float | None = None
    level: PilotLevel = PilotLevel.BEGINNER
    kart: KartClass = KartClass.CC270
    has_time_attack: bool = False
    marshal: bool = False
