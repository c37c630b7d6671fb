"""Application factory and top-level wiring for the laptop inventory service.

``create_app`` brings configuration, database tables, middleware, error
handling and the product routes together into one FastAPI instance.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import AppSettings, settings as default_settings
from .core.errors import register_exception_handlers
from .db.session import Base, engine as default_engine
from .middlewares import RequestIdMiddleware

# Importing the models registers them with the metadata used by ``create_all``.
from .models import laptop as _laptop  # noqa: F401

logger = logging.getLogger(__name__)


def create_app(settings: AppSettings | None = None, engine=None) -> FastAPI:
    settings = settings or default_settings
    engine = engine if engine is not None else default_engine

    Base.metadata.create_all(bind=engine)

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings

    # Browsers from unlisted origins get no CORS headers; clients that send no
    # Origin header (curl, scripts) are served as usual.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    from .routers import api_products as api_products_router

    app.include_router(api_products_router.router)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    if settings.METRICS_ENABLED:
        from prometheus_fastapi_instrumentator import Instrumentator

        Instrumentator().instrument(app).expose(app, include_in_schema=False)

    logger.info(
        "app.configured",
        extra={"extra_data": {"env": settings.APP_ENV, "origins": settings.ALLOWED_ORIGINS}},
    )
    return app


__all__ = ["create_app"]
