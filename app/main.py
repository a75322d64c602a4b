import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.routes.admin_route import admin_router
from app.api.routes.auth_route import auth_router
from app.api.routes.payment_route import payment_router
from app.api.routes.points_route import points_router
from app.api.routes.tools_route import tools_router
from app.api.routes.user_route import user_router
from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.db.session import get_db, init_db


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables before serving requests."""
    if not settings.jwt_secret:
        logger.warning("JWT_SECRET is not set; logins will fail until it is configured")
    await init_db()
    logger.info(f"Flux AI API started ({settings.environment})")
    yield


def create_app() -> FastAPI:
    """
    Build the Flux AI API application.

    Wires CORS for the frontend origin, the JSON error envelope, and the
    auth, user, points, tools, payment and admin routers.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Flux AI API",
        description="Authentication, points ledger and payments for Flux AI image tools",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Cookies are only sent cross-origin to an explicit origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(user_router, prefix="/api/user", tags=["user"])
    app.include_router(points_router, prefix="/api/points", tags=["points"])
    app.include_router(tools_router, prefix="/api/tools", tags=["tools"])
    app.include_router(payment_router, prefix="/api", tags=["payments"])
    app.include_router(admin_router, prefix="/api/admin", tags=["admin"])

    @app.get("/health")
    async def health_check(db: AsyncSession = Depends(get_db)):
        """Liveness plus a round trip to the database."""
        await db.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "ok"}

    @app.get("/")
    async def root():
        return {"message": "Flux AI API", "version": app.version, "docs": app.docs_url}

    return app
