import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.core.access_gate import AccessGateMiddleware
from app.core.dependencies import new_cookie_jar
from app.core.events import ChangeBus
from app.core.rate_limit import limiter
from app.core.view_cache import ViewCache
from app.database.supabase_client import create_store
from app.modules.auth.providers import create_identity_provider
from app.modules.users import routes as users_routes
from app.modules.auth import routes as auth_routes
from app.modules.competitions import routes as competitions_routes
from app.modules.participations import routes as participations_routes
from app.modules.changes import routes as changes_routes
from app.modules.pages import routes as pages_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"] = list(message["headers"]) + [
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ]
            await send(message)

        await self.app(scope, receive, send_with_headers)


def create_app(store=None, identity=None) -> FastAPI:
    """Build the application; tests pass their own store and identity provider"""
    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        redirect_slashes=False,
    )

    app.state.store = store if store is not None else create_store()
    app.state.identity = identity if identity is not None else create_identity_provider(app.state.store)
    app.state.events = ChangeBus(log_size=settings.change_log_size)
    app.state.view_cache = ViewCache(
        app.state.events,
        ttl_seconds=settings.view_cache_ttl_seconds,
        max_entries=settings.view_cache_max_entries,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # Last added runs first: CORS, security headers, then the access gate
    app.add_middleware(AccessGateMiddleware, cookie_jar_factory=new_cookie_jar)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include module routes
    app.include_router(users_routes.router, prefix="/api/v1")
    app.include_router(auth_routes.router, prefix="/api/v1")
    app.include_router(competitions_routes.router, prefix="/api/v1")
    app.include_router(participations_routes.router, prefix="/api/v1")
    app.include_router(changes_routes.router, prefix="/api/v1")
    app.include_router(pages_routes.router)

    @app.on_event("startup")
    async def startup_event():
        logger.info(f"Application startup (store backend: {settings.store_backend})")

    @app.on_event("shutdown")
    async def shutdown_event():
        app.state.view_cache.close()
        logger.info("Application shutdown")

    @app.get("/health")
    @limiter.exempt
    async def health():
        return {"status": "healthy"}

    @app.get("/ready")
    @limiter.exempt
    async def ready():
        """Readiness check: reports which store backend is wired in."""
        return {"status": "ready", "store_backend": settings.store_backend}

    return app


app = create_app()
