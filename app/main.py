import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.config import settings
from app.core.rate_limit import limiter
from app.modules.auth import routes as auth_routes
from app.modules.admin import routes as admin_routes
from app.modules.projects import routes as projects_routes
from app.modules.piles import routes as piles_routes
from app.modules.field_entry import routes as field_entry_routes
from app.modules.analytics import routes as analytics_routes
from app.modules.heatmap import routes as heatmap_routes
from app.modules.pile_lookup import routes as pile_lookup_routes
from app.modules.production import routes as production_routes
from app.modules.weather import routes as weather_routes
from app.modules.invitations import routes as invitations_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
# httpx logs every outbound request at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="PileTrackerPro API",
    description="Pile installation tracking for solar projects",
    version="0.1.0",
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# Responses are JSON or file downloads; the interactive docs pages load Swagger UI assets
API_SECURITY_HEADERS = [
    (b"X-Content-Type-Options", b"nosniff"),
    (b"X-Frame-Options", b"DENY"),
    (b"X-XSS-Protection", b"1; mode=block"),
    (b"Referrer-Policy", b"no-referrer"),
]
API_CSP_HEADER = (b"Content-Security-Policy", b"default-src 'none'; frame-ancestors 'none'")
HSTS_HEADER = (b"Strict-Transport-Security", b"max-age=31536000; includeSubDomains")
DOCS_PATHS = ("/docs", "/redoc", "/openapi.json")


class SecurityHeadersMiddleware:
    def __init__(self, app, hsts: bool = False):
        self.app = app
        self.headers = API_SECURITY_HEADERS + ([HSTS_HEADER] if hsts else [])

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = list(self.headers)
        if not scope["path"].startswith(DOCS_PATHS):
            headers.append(API_CSP_HEADER)

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend(headers)
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api")
app.include_router(admin_routes.router, prefix="/api")
app.include_router(projects_routes.router, prefix="/api")
app.include_router(piles_routes.router, prefix="/api")
app.include_router(field_entry_routes.router, prefix="/api")
app.include_router(analytics_routes.router, prefix="/api")
app.include_router(heatmap_routes.router, prefix="/api")
app.include_router(heatmap_routes.coordinate_systems_router, prefix="/api")
app.include_router(pile_lookup_routes.router, prefix="/api")
app.include_router(production_routes.router, prefix="/api")
app.include_router(weather_routes.router, prefix="/api")
app.include_router(invitations_routes.router, prefix="/api")
app.include_router(invitations_routes.public_router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")
    if not settings.supabase_service_role_key:
        logger.warning("SUPABASE_SERVICE_ROLE_KEY is not set; /api/admin and invitation acceptance will fail")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")


@app.get("/")
@limiter.exempt
async def root():
    return {"message": "PileTrackerPro API", "docs": "/docs", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy", "service": settings.app_name, "environment": settings.environment}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness: Supabase is configured; admin and invitation features also need the service key"""
    if not settings.supabase_url or not settings.supabase_key:
        return JSONResponse(status_code=503, content={"status": "not ready", "detail": "Supabase is not configured"})
    return {
        "status": "ready",
        "admin_features": bool(settings.supabase_service_role_key),
        "invitation_email": bool(settings.resend_api_key)
    }
