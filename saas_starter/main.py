# saas_starter/main.py
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from saas_starter import __version__
from saas_starter.api.routes import account, auth, dashboard, health, stripe, team
from saas_starter.core.config import Settings
from saas_starter.core.errors import register_exception_handlers
from saas_starter.core.logging_config import setup_logging
from saas_starter.core.session import SessionManager
from saas_starter.db.session import init_db, make_engine, make_session_factory
from saas_starter.middleware.request_logging import RequestLoggingMiddleware
from saas_starter.middleware.session_refresh import SessionRefreshMiddleware
from saas_starter.services.stripe_gateway import StripeGateway

log = logging.getLogger("saas_starter.app")


def create_app(
    settings: Optional[Settings] = None,
    *,
    payment_gateway: Optional[StripeGateway] = None,
    engine: Optional[Engine] = None,
) -> FastAPI:
    """
    Build the application and the collaborators it owns: DB engine and
    session factory, Session Manager, payment gateway. Handlers reach them
    through the dependencies in core.auth.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    engine = engine or make_engine(settings.database_url)
    if settings.enable_create_all:
        # dev-only convenience; production runs alembic
        init_db(engine)

    app = FastAPI(title="SaaS Starter", version=__version__)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.session_manager = SessionManager(
        settings.auth_secret,
        ttl=timedelta(hours=settings.session_ttl_hours),
    )
    app.state.payment_gateway = payment_gateway or StripeGateway(
        settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
    )

    register_exception_handlers(app)

    # added last = outermost
    app.add_middleware(SessionRefreshMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(auth.router, prefix="/api")
    app.include_router(account.router, prefix="/api")
    app.include_router(team.router, prefix="/api")
    app.include_router(stripe.router, prefix="/api")
    app.include_router(health.router, prefix="/api")
    app.include_router(dashboard.router)

    @app.on_event("shutdown")
    def _dispose_engine() -> None:
        engine.dispose()

    log.info("app ready (db=%s, stripe=%s)", engine.url.render_as_string(hide_password=True),
             "on" if settings.stripe_secret_key else "off")
    return app
