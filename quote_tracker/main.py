"""
Quote Tracker - Main Application

FastAPI application serving the quote lifecycle:
- Price estimates
- Quote submission and client tracking
- Admin status workflow and notes
- Reminder sweeps
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quote_tracker.api.routes import cron, pricing, quotes
from quote_tracker.config.settings import Settings, settings as default_settings
from quote_tracker.database.base import build_engine, build_session_factory, close_db, init_db
from quote_tracker.scheduler import build_scheduler
from quote_tracker.services.notifications import MailTransport, NotificationDispatcher, build_transport
from quote_tracker.services.quotes import QuoteService, QuoteStore, SQLAlchemyQuoteStore
from quote_tracker.utils.errors import QuoteError, TransientStoreError
from quote_tracker.utils.logging import get_logger, request_logger, setup_logging

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    store: QuoteStore | None = None,
    transport: MailTransport | None = None,
) -> FastAPI:
    """
    Build the application.
    
    Args:
        settings: Configuration; the environment-loaded settings by default
        store: Quote store; a database-backed store is created at startup
            when omitted
        transport: Mail transport; chosen from the email settings when omitted
    """
    settings = settings or default_settings
    
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        setup_logging(settings)
        logger.info("Starting Quote Tracker", version=settings.app_version)
        
        engine = None
        quote_store = store
        if quote_store is None:
            engine = build_engine(settings.database, echo=settings.debug)
            await init_db(engine)
            quote_store = SQLAlchemyQuoteStore(build_session_factory(engine))
            logger.info("Database initialized")
        
        app.state.settings = settings
        app.state.store = quote_store
        app.state.quote_service = QuoteService(quote_store, settings=settings)
        app.state.dispatcher = NotificationDispatcher(
            store=quote_store,
            transport=transport or build_transport(settings.email),
            settings=settings,
        )
        
        scheduler = None
        if settings.scheduler_enabled:
            scheduler = build_scheduler(app.state.dispatcher, settings)
            scheduler.start()
        
        yield
        
        # Shutdown
        logger.info("Shutting down Quote Tracker")
        if scheduler is not None:
            scheduler.shutdown(wait=False)
        if engine is not None:
            await close_db(engine)
    
    app = FastAPI(
        title=settings.app_name,
        description="""
## Quote Tracker API

Quote lifecycle and notification delivery.

- **Pricing**: feature-breakdown estimates and catalog prices
- **Quotes**: submission, admin workflow, notes and client tracking
- **Cron**: reminder sweep for quotes still pending after 48 hours

Clients track a quote with the access token returned at submission.
The cron endpoint requires `Authorization: Bearer <CRON_SECRET>`.
        """,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs" if settings.debug else None,
        redoc_url=f"{settings.api_prefix}/redoc" if settings.debug else None,
    )
    
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing."""
        start_time = time.time()
        
        request_logger.log_request(method=request.method, path=request.url.path)
        
        response = await call_next(request)
        
        request_logger.log_response(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=(time.time() - start_time) * 1000,
        )
        
        return response
    
    # Exception handlers
    @app.exception_handler(QuoteError)
    async def quote_exception_handler(request: Request, exc: QuoteError):
        """Typed lifecycle errors map straight onto their status codes."""
        log = logger.error if isinstance(exc, TransientStoreError) else logger.info
        log(
            "request_failed",
            code=exc.code,
            error_message=exc.message,
            path=request.url.path,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
    
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors with per-field messages."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "Datos de entrada inválidos",
                "code": "VALIDATION_ERROR",
                "details": [
                    {
                        "field": ".".join(str(part) for part in error["loc"][1:]),
                        "message": error["msg"],
                        "type": error["type"],
                    }
                    for error in exc.errors()
                ],
            },
        )
    
    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors."""
        logger.error(
            "Unhandled exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
        )
        
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Error interno del servidor",
                "code": "INTERNAL_ERROR",
            },
        )
    
    # Include routers
    app.include_router(pricing.router, prefix=f"{settings.api_prefix}/pricing", tags=["Pricing"])
    app.include_router(quotes.router, prefix=f"{settings.api_prefix}/quotes", tags=["Quotes"])
    app.include_router(cron.router, prefix=f"{settings.api_prefix}/cron", tags=["Cron"])
    
    # Health check endpoint
    @app.get("/health", tags=["System"])
    async def health_check(request: Request):
        """System health check endpoint."""
        try:
            database_ok = await request.app.state.store.ping()
        except TransientStoreError:
            database_ok = False
        
        return JSONResponse(
            status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "healthy" if database_ok else "degraded",
                "database": "ok" if database_ok else "unavailable",
                "version": settings.app_version,
                "environment": settings.environment,
            },
        )
    
    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": f"{settings.api_prefix}/docs" if settings.debug else "Disabled in production",
        }
    
    return app


app = create_app()


def run() -> None:
    import uvicorn
    
    uvicorn.run(
        "quote_tracker.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
    )


if __name__ == "__main__":
    run()
