# sakany/app/main.py
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.cors import CORSMiddleware

from sakany.app.api.router import api_router
from sakany.app.core.config import Settings, get_settings
from sakany.app.core.exceptions import InternalError, SakanyError, ValidationFailed
from sakany.app.core.logging import configure_logging
from sakany.app.db.init_db import create_tables, seed_properties
from sakany.app.db.session import build_engine, build_sessionmaker
from sakany.app.security.sessions import ChallengeStore, SessionManager

logger = logging.getLogger(__name__)


# --- LIFESPAN: create tables and seed listings on startup ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    await create_tables(state.engine)
    if state.settings.SEED_SAMPLE_PROPERTIES:
        await seed_properties(state.sessionmaker, state.property_write_lock)
    yield
    await state.engine.dispose()


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SakanyError)
    async def sakany_error_handler(request: Request, exc: SakanyError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return await sakany_error_handler(request, ValidationFailed())

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Database error on %s %s", request.method, request.url.path)
        return await sakany_error_handler(request, InternalError())


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )

    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessionmaker = build_sessionmaker(engine)
    app.state.sessions = SessionManager(settings.SESSION_TTL_SECONDS)
    app.state.challenges = ChallengeStore(
        settings.MFA_CHALLENGE_TTL_SECONDS,
        settings.MFA_MAX_ATTEMPTS,
    )
    app.state.user_write_lock = asyncio.Lock()
    app.state.property_write_lock = asyncio.Lock()

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.BACKEND_CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/")
    def root():
        return {"message": "Welcome to the Sakany real estate API"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("sakany.app.main:app", host="127.0.0.1", port=8000, reload=True)
