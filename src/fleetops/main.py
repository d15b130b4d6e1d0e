"""FastAPI application entry point."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api.routes import health, pods, routes, telemetry
from .config import settings


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Driver telemetry, delivery route optimization and offline proof-of-delivery sync.",
    )
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    prefix = settings.api_prefix

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "version": __version__,
            "status": "running",
            "health": f"{prefix}/health",
            "endpoints": {
                "optimize_route": f"{prefix}/routes/optimize",
                "telemetry_queue": f"{prefix}/telemetry/queue",
                "pending_pods": f"{prefix}/pods/pending",
            },
            "docs": "/docs",
        }

    for router in (health.router, routes.router, telemetry.router, pods.router):
        app.include_router(router, prefix=prefix)
    return app


app = create_app()
