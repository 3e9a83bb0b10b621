import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.exceptions import register_exception_handlers
from .api.routes import router as accounts_router
from .core.config import Settings, get_settings
from .core.db import create_engine_for_url, init_db
from .services import AccountService, InMemoryAccountStore, SqlAccountStore


logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if settings.store_backend == "memory":
            store = InMemoryAccountStore()
        else:
            engine = create_engine_for_url(settings.database_url, settings.store_timeout)
            init_db(engine)
            store = SqlAccountStore(engine)

        app.state.account_service = AccountService(
            store,
            lock_timeout=settings.lock_timeout,
            max_retries=settings.max_retries,
        )
        logger.info("app.started", extra={"store_backend": settings.store_backend})
        yield
        if engine is not None:
            engine.dispose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(accounts_router)
    register_exception_handlers(app)
    return app


app = create_app()
