"""FastAPI application wiring for the citizen identity service."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.errors import install_error_handlers
from .api.routes import router as v1_router
from .config import Settings, get_settings
from .domain.service import AccountService
from .repository import AccountRepository
from .security.passwords import BcryptPasswordHasher
from .security.tokens import JwtTokenIssuer

logger = logging.getLogger(__name__)

settings = get_settings()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_account_service(
    settings: Settings, repository: AccountRepository, secret: str | None = None
) -> AccountService:
    """Construct the service with concrete collaborators; fails fast on a missing secret."""
    secret = secret or settings.signing_secret()
    return AccountService(
        repository,
        BcryptPasswordHasher(rounds=settings.bcrypt_rounds),
        JwtTokenIssuer(secret, settings.jwt_issuer),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, services) for the app lifecycle."""
    configure_logging(settings.log_level)
    secret = settings.signing_secret()
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    try:
        repository = AccountRepository(pool)
        repository.ensure_schema()
        app.state.pool = pool
        app.state.account_service = build_account_service(settings, repository, secret)
        app.state.jwt_secret = secret
        app.state.jwt_issuer = settings.jwt_issuer
        logger.info("%s %s started (env=%s)", settings.app_name, settings.version, settings.environment)
        yield
    finally:
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

# CORS for local frontend dev
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)

install_error_handlers(app)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(v1_router)
