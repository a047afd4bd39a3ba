from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from autoapply.api.routes import router as api_router
from autoapply.config import get_settings
from autoapply.db.init import init_database


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name)

    @app.on_event("startup")
    def _startup() -> None:
        init_database()

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    return app
