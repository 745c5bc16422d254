# backend/gpadmin/schemas/base.py

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PayloadModel(BaseModel):
    """Базовая модель для JSON-payload модулей: в хранилище ключи camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
