"""SLD Check — single-line diagram consistency backend

Responsibilities:
  1. Stateless validation of diagrams, nets and single components
  2. Cycle guard for proposed edges
  3. Project document parsing / export (no storage)
  4. In-memory editing sessions with net undo/redo
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sld.config import get_settings
from sld.routers import graph, project, session, validation


def configure_logging() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()

    application = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        description=(
            "Single-line power diagram consistency checks.\n\n"
            "Voltage/phase compatibility, breaker capacity, acyclic wiring "
            "and net edit history."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ─── Validation (stateless) ───
    application.include_router(
        validation.router, prefix="/api/validation", tags=["Validation"]
    )

    # ─── Graph guard ───
    application.include_router(graph.router, prefix="/api/graph", tags=["Graph"])

    # ─── Project documents ───
    application.include_router(
        project.router, prefix="/api/projects", tags=["Projects"]
    )

    # ─── Editing sessions ───
    application.include_router(
        session.router, prefix="/api/sessions", tags=["Sessions"]
    )

    return application


app = create_app()


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "sld-check", "version": "0.1.0"}
