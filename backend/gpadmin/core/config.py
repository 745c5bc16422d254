# backend/gpadmin/core/config.py

import os
from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parent.parent


class Settings:
    def __init__(self):
        self.PROJECT_NAME = "GP Kart Admin"

        # База: по умолчанию локальный SQLite рядом с точкой запуска
        self.DATABASE_URL = os.environ.get(
            "GPADMIN_DATABASE_URL", "sqlite:///./gpadmin.db"
        )

        # учётка админки (HTTP Basic)
        self.ADMIN_USER = os.environ.get("GPADMIN_ADMIN_USER", "admin")
        self.ADMIN_PASSWORD = os.environ.get("GPADMIN_ADMIN_PASSWORD", "admin")

        # событие, которое открывается по умолчанию
        self.DEFAULT_EVENT_ID = os.environ.get("GPADMIN_DEFAULT_EVENT_ID", "gp-test-2026")

        self.LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
        self.LOG_FORMAT = os.environ.get("LOG_FORMAT")

        # uvicorn при запуске через gpadmin / python -m
        self.HOST = os.environ.get("GPADMIN_HOST", "127.0.0.1")
        self.PORT = int(os.environ.get("GPADMIN_PORT", "8000"))

        # Путь к папке с шаблонами Jinja и статике
        self.TEMPLATE_DIR = str(PACKAGE_DIR / "templates")
        self.STATIC_DIR = str(PACKAGE_DIR / "static")


# создаём единственный экземпляр настроек
_settings = Settings()


def get_settings() -> Settings:
    return _settings
