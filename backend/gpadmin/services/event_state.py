# backend/gpadmin/services/event_state.py
"""
Хранилище состояния модулей события: один JSON-документ на (event_id, module_key).

Payload сохраняется в конверте {"version": N, "data": ...}; старые документы
без конверта читаются как версия 0.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.logging import get_logger
from ..models.event_state import EventModuleState, ModuleKey

logger = get_logger(__name__)

PAYLOAD_VERSION = 1


def wrap_payload(data: Any) -> dict:
    return {"version": PAYLOAD_VERSION, "data": data}


def unwrap_payload(stored: Any) -> tuple[int, Any]:
    """(версия, данные) из сохранённого документа."""
    if isinstance(stored, dict) and set(stored) == {"version", "data"}:
        return stored["version"], stored["data"]
    return 0, stored


class EventStateStore:
    def __init__(self, db: Session):
        self.db = db

    def _row(self, event_id: str, module_key: ModuleKey) -> EventModuleState | None:
        stmt = select(EventModuleState).where(
            EventModuleState.event_id == event_id,
            EventModuleState.module_key == module_key.value,
        )
        return self.db.scalar(stmt)

    def get(self, event_id: str, module_key: str | ModuleKey) -> Any | None:
        """Payload модуля или None, если он ещё не сохранялся."""
        key = ModuleKey(module_key)
        row = self._row(event_id, key)
        if row is None:
            return None
        _, data = unwrap_payload(row.payload)
        return data

    def put(self, event_id: str, module_key: str | ModuleKey, payload: Any) -> None:
        """Вставка или перезапись (upsert)."""
        key = ModuleKey(module_key)
        row = self._row(event_id, key)
        if row is None:
            row = EventModuleState(event_id=event_id, module_key=key.value)
            self.db.add(row)
        row.payload = wrap_payload(payload)
        row.updated_at = datetime.utcnow()
        self.db.commit()
        logger.debug("Saved module %s for event %s", key.value, event_id)

    def delete(self, event_id: str, module_key: str | ModuleKey) -> None:
        key = ModuleKey(module_key)
        row = self._row(event_id, key)
        if row is None:
            return
        self.db.delete(row)
        self.db.commit()
        logger.info("Deleted module %s for event %s", key.value, event_id)

    def load(self, event_id: str, module_key: str | ModuleKey, fallback: Any = None) -> Any:
        """Как get, но ошибка БД или пустое значение дают fallback."""
        try:
            payload = self.get(event_id, module_key)
        except SQLAlchemyError:
            logger.exception("Failed to load module %s for event %s", module_key, event_id)
            self.db.rollback()
            return fallback
        return fallback if payload is None else payload
