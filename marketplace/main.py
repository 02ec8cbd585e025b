# marketplace/main.py
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from marketplace.api.routes import categories as categories_router
from marketplace.api.routes import clients as clients_router
from marketplace.api.routes import providers as providers_router
from marketplace.api.routes import services as services_router
from marketplace.core.config import Settings, get_settings
from marketplace.core.errors import register_error_handlers
from marketplace.core.logging import configure_logging
from marketplace.db.base import Database


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging()

    app = FastAPI(title=settings.project_name, version=settings.app_version)
    app.state.settings = settings
    app.state.database = database or Database(settings.database_url, echo=settings.sql_echo)

    @app.on_event("startup")
    def startup():
        logger.info("Starting {} ({})", settings.project_name, settings.environment)
        app.state.database.create_all()

    @app.on_event("shutdown")
    def shutdown():
        app.state.database.dispose()

    @app.get("/")
    def root():
        return {"message": "Service Marketplace API running"}

    @app.get("/health")
    def health():
        connected = app.state.database.can_connect()
        return {"success": connected, "data": {"database": "up" if connected else "down"}}

    if settings.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_error_handlers(app)

    app.include_router(categories_router.router, prefix=settings.api_prefix)
    app.include_router(services_router.router, prefix=settings.api_prefix)
    app.include_router(providers_router.router, prefix=settings.api_prefix)
    app.include_router(clients_router.router, prefix=settings.api_prefix)
    return app


app = create_app()
