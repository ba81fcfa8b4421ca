"""
Main FastAPI application for the order support chatbot.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .routes import chat, behavior, admin, storefront
from .services import Services, get_default_services
from .middleware.metrics import MetricsMiddleware, metrics_endpoint
from config.settings import Settings, get_settings
from database.session import init_db, close_db
from llm.orchestrator import ConversationNotFound, PersistenceError

logger = logging.getLogger(__name__)


def _register_exception_handlers(app: FastAPI):
    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"error": "Invalid body", "details": details})

    @app.exception_handler(ConversationNotFound)
    async def conversation_not_found(request: Request, exc: ConversationNotFound):
        return JSONResponse(status_code=404, content={"error": "Conversation not found"})

    @app.exception_handler(PersistenceError)
    async def persistence_error(request: Request, exc: PersistenceError):
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(SQLAlchemyError)
    async def datastore_error(request: Request, exc: SQLAlchemyError):
        logger.error(f"Datastore error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": "Datastore unavailable"})


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    services = services or get_default_services()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Order support chatbot starting up...")
        session_factory = await init_db(settings.database_url)
        services.initialize(settings, session_factory)
        logger.info("Order support chatbot ready")
        yield
        logger.info("Order support chatbot shutting down...")
        await close_db()

    app = FastAPI(
        title=settings.api_title,
        description="Customer-support chat with order context, escalation and proactive prompts.",
        version=settings.api_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Prometheus metrics middleware
    app.add_middleware(MetricsMiddleware)

    _register_exception_handlers(app)

    prefix = settings.api_prefix
    app.include_router(chat.router, prefix=prefix, tags=["Chat"])
    app.include_router(behavior.router, prefix=prefix, tags=["Behavior"])
    app.include_router(admin.router, prefix=f"{prefix}/admin", tags=["Admin"])
    app.include_router(storefront.router, prefix=prefix, tags=["Storefront"])

    # --- Prometheus metrics endpoint ---
    app.get("/metrics", tags=["Monitoring"])(metrics_endpoint)

    # Health check
    @app.get("/health")
    async def health():
        return {"ok": True, "services": services.health()}

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    s = get_settings()
    uvicorn.run(app, host=s.api_host, port=s.api_port)
