"""
===============================================================================
TARJETA CRC — app/api/main.py (Aplicación FastAPI)
===============================================================================

Responsibilities:
  - Armar la app: routers /auth y /2fa, handlers RFC7807, middlewares.
  - Ciclo de vida: abrir/cerrar el pool de Postgres (salvo APP_ENV=test).
  - Health: /healthz (liveness + ping DB) y /readyz.
  - OpenAPI con esquema BearerAuth y operaciones públicas marcadas.

Collaborators:
  - app.container (is_test_env)
  - crosscutting.middleware.RequestContextMiddleware
  - infrastructure.db.pool

Notes:
  - Starlette ejecuta primero el último middleware agregado: CORS responde
    preflights antes de que se genere request_id.
===============================================================================
"""

from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from pydantic import ValidationError

from ..container import is_test_env
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.middleware import REQUEST_ID_HEADER, RequestContextMiddleware
from ..infrastructure.db.errors import DatabaseConnectionError
from ..infrastructure.db.pool import close_pool, init_pool, ping
from .auth_routes import router as auth_router
from .exception_handlers import register_exception_handlers
from .two_factor_routes import router as two_factor_router

API_TITLE = "StoreRating Identity API"
API_VERSION = "0.1.0"

# Operaciones sin Bearer en el esquema OpenAPI.
PUBLIC_PATHS = frozenset(
    {
        "/healthz",
        "/readyz",
        "/auth/register",
        "/auth/register/store-owner",
        "/auth/login",
        "/auth/login/2fa",
        "/auth/verify-email",
        "/auth/resend-verification",
        "/auth/forgot-password",
        "/auth/reset-password",
    }
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    with_pool = not is_test_env()
    if with_pool:
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )
    logger.info(
        "Identity API lista",
        extra={
            "app_env": settings.app_env,
            "db_pool": with_pool,
            "redis_cache": bool(settings.redis_url),
            "fake_mail": settings.fake_mail,
        },
    )
    try:
        yield
    finally:
        if with_pool:
            close_pool()
        logger.info("Identity API detenida")


def _cors_options() -> dict:
    try:
        settings = get_settings()
        origins = settings.get_allowed_origins_list()
        credentials = settings.cors_allow_credentials
    except ValidationError:
        origins, credentials = ["http://localhost:3000"], False
    return {
        "allow_origins": origins,
        "allow_credentials": credentials,
        "allow_methods": ["GET", "POST", "OPTIONS"],
        "allow_headers": ["Content-Type", "Authorization", REQUEST_ID_HEADER],
        "expose_headers": [REQUEST_ID_HEADER],
    }


def _openapi_with_bearer(app: FastAPI):
    def build() -> dict:
        if app.openapi_schema:
            return app.openapi_schema

        schema = get_openapi(title=app.title, version=app.version, routes=app.routes)
        schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "Access token (header o cookie). "
                "/auth/refresh-token recibe el refresh token.",
            }
        }
        for path, operations in schema.get("paths", {}).items():
            security = [] if path in PUBLIC_PATHS else [{"BearerAuth": []}]
            for operation in operations.values():
                if isinstance(operation, dict):
                    operation["security"] = security

        app.openapi_schema = schema
        return schema

    return build


# =============================================================================
# Health
# =============================================================================
health_router = APIRouter(tags=["health"])


def _db_status() -> str:
    if is_test_env():
        return "skipped"
    try:
        return "connected" if ping() else "disconnected"
    except DatabaseConnectionError as exc:
        logger.warning("healthz: DB no disponible", extra={"error": str(exc)})
        return "disconnected"


@health_router.get("/healthz")
def healthz(request: Request):
    """ok=False solo si la DB (fuera de test) no responde."""
    db = _db_status()
    return {
        "ok": db != "disconnected",
        "db": db,
        "request_id": getattr(request.state, "request_id", None),
    }


@health_router.get("/readyz")
def readyz(request: Request):
    return {
        "ok": _db_status() != "disconnected",
        "request_id": getattr(request.state, "request_id", None),
    }


def create_app() -> FastAPI:
    application = FastAPI(
        title=API_TITLE,
        version=API_VERSION,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "auth", "description": "Registro, login y sesiones JWT"},
            {"name": "2fa", "description": "Segundo factor TOTP"},
            {"name": "health", "description": "Liveness / readiness"},
        ],
    )
    application.openapi = _openapi_with_bearer(application)

    application.add_middleware(RequestContextMiddleware)
    application.add_middleware(CORSMiddleware, **_cors_options())

    application.include_router(auth_router)
    application.include_router(two_factor_router)
    application.include_router(health_router)
    register_exception_handlers(application)
    return application


app = create_app()
