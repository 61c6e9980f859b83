import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.core.errors import AppError
from app.database.supabase_client import Database
from app.modules.auth import routes as auth_routes
from app.modules.biometrics import routes as biometrics_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup")
    database = app.state.database
    if not database.is_open:
        database.open()
    try:
        yield
    finally:
        database.close()
        logger.info("Application shutdown")


limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
    lifespan=lifespan,
)
app.state.limiter = limiter
app.state.database = Database(settings)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def clear_challenge_cookie(request: Request, response: Response) -> Response:
    """Expire the challenge cookie if the failing request had taken a binding."""
    cookie = getattr(request.state, "challenge_cookie", None)
    if cookie is not None:
        cookie.clear(response)
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    # Internal reason goes to the log only; clients get the public message
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    else:
        logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    response = JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message})
    return clear_challenge_cookie(request, response)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    response = await request_validation_exception_handler(request, exc)
    return clear_challenge_cookie(request, response)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        response = JSONResponse(status_code=500, content={"detail": "Internal server error"})
    else:
        response = JSONResponse(status_code=500, content={"detail": str(exc)})
    return clear_challenge_cookie(request, response)


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
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(biometrics_routes.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": "Welcome to biometric-auth-backend", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: the store handle must be open."""
    if not app.state.database.is_open:
        return JSONResponse(status_code=503, content={"status": "not ready"})
    return {"status": "ready"}
