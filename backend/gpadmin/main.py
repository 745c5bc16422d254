# backend/gpadmin/main.py

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .api.routes import pages, events, pilots
from .api.routes import admin, admin_pilots, admin_classification, admin_results, admin_raffles
from .core.config import get_settings
from .core.logging import configure_logging
from .db import Base, engine

from . import models  # noqa: F401  # важно, чтобы модели подхватились

settings = get_settings()
configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

app = FastAPI(title=settings.PROJECT_NAME)

Base.metadata.create_all(bind=engine)

app.mount("/static", StaticFiles(directory=settings.STATIC_DIR), name="static")

app.include_router(pages.router)
app.include_router(events.router)
app.include_router(pilots.router)
app.include_router(admin.router)
app.include_router(admin_pilots.router)
app.include_router(admin_classification.router)
app.include_router(admin_results.router)
app.include_router(admin_raffles.router)


def run() -> None:
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
