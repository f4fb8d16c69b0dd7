# ==============================
# FastAPI App Factory
# ==============================
from __future__ import annotations

from fastapi import FastAPI

from gateway.api.routes_render import router as render_router


def create_app() -> FastAPI:
    app = FastAPI(title="datalys", version="0.1.0")
    app.include_router(render_router, prefix="/api")
    return app
