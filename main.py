"""
Retrace Admin Backend - Main API Server
FastAPI application guarding the administrative side of the Retrace site.

Features:
- Admin password login with per-client lockout
- Session cookie issuance / check / logout
- Static bearer-token authorization for administrative API routes
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file BEFORE other imports
load_dotenv()

from contextlib import asynccontextmanager
from typing import Optional
from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.loader import GateConfig, get_config
from retrace_admin.services.attempt_tracker import AttemptTracker, attempt_store_info
from retrace_admin.utils.error_handler import register_exception_handlers
from retrace_admin.utils.structured_logger import get_logger, setup_structured_logging

# Configure logging
setup_structured_logging(
    level=os.getenv("LOG_LEVEL", "INFO"),
    json_output=os.getenv("LOG_FORMAT", "json").lower() != "plain",
)
logger = get_logger(__name__)


def get_cors_origins() -> list:
    """Get allowed CORS origins from environment or use defaults."""
    env_origins = os.getenv("CORS_ORIGINS", "")
    if env_origins:
        return [origin.strip() for origin in env_origins.split(",") if origin.strip()]

    return [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "https://retrace.to",
        "https://www.retrace.to",
    ]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(
    config: Optional[GateConfig] = None,
    tracker: Optional[AttemptTracker] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Gate configuration (defaults to get_config())
        tracker: Login attempt tracker (defaults to one built from config).
                 Each app owns its tracker; nothing is shared at module level.
    """
    config = config or get_config()
    tracker = tracker or AttemptTracker.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler"""
        store = attempt_store_info(app.state.attempt_tracker.store)
        logger.info(
            "Starting Retrace admin backend...",
            extra={"environment": config.environment, "attempt_store": store["backend"]},
        )
        if not store["durable"]:
            logger.info("Login attempt state is in-memory and resets on restart")
        if not config.admin_password_hash:
            logger.warning("ADMIN_PASSWORD_HASH is not set; admin login will answer 500")
        if not config.bearer_token:
            logger.warning("BEARER_TOKEN is not set; protected API routes will answer 500")
        yield
        logger.info("Shutting down...")

    app = FastAPI(
        title="Retrace Admin Backend",
        description="Admin access gate for the Retrace feedback and analytics backend",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.attempt_tracker = tracker

    # ==================== Middleware Setup ====================
    # NOTE: middleware runs in REVERSE order of addition.
    # Last added = first to process requests.

    from retrace_admin.middleware.security_headers import SecurityHeadersMiddleware
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=not config.is_local)

    from retrace_admin.middleware.request_id_middleware import RequestIdMiddleware
    app.add_middleware(RequestIdMiddleware)

    # CORS MUST be added LAST so its headers reach error responses too
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    # ==================== Health Endpoints ====================

    @app.get("/health")
    async def health_check():
        """Basic health check endpoint for load balancers"""
        return {
            "status": "healthy",
            "attempt_store": attempt_store_info(app.state.attempt_tracker.store)["backend"],
            "timestamp": _utc_now(),
        }

    @app.get("/health/live")
    async def liveness_check():
        """Liveness check"""
        return {"status": "alive", "timestamp": _utc_now()}

    # ==================== Routers & Error Handlers ====================

    from retrace_admin.api.routes import include_routers
    include_routers(app)

    register_exception_handlers(app)

    return app


app = create_app()


# ==================== Run Server ====================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8080))
    host = os.getenv("HOST", "127.0.0.1")
    reload = os.getenv("RELOAD", "false").lower() == "true"

    logger.info(f"Starting server on {host}:{port} (reload={reload})")

    uvicorn.run(
        "main:app" if reload else app,
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )
