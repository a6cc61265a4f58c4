import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import models so every table is registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS, SECURITY_HEADERS_ENABLED
from .database import Base, engine
from .domain.admin.router import router as admin_router
from .domain.auth.router import router as auth_router
from .domain.billing.router import plans_router, subscriptions_router
from .domain.bookings.router import router as bookings_router
from .domain.catalog.router import router as services_router
from .domain.chat.router import router as chat_router
from .domain.feedback.router import router as feedback_router
from .domain.users.router import router as users_router
from .realtime import sio
from .routes.appointments import router as appointments_router
from .routes.contact import router as contact_router
from .routes.dashboard import router as dashboard_router
from .routes.faqs import router as faqs_router
from .routes.newsletter import router as newsletter_router
from .routes.notifications import router as notifications_router
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
for noisy in ("httpx", "httpcore", "engineio", "socketio"):
    logging.getLogger(noisy).setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        get_redis_client()
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - Rate limiting will operate in memory only: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="ServiceHub API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(status_code=401, content={"detail": "Not authorized, no token"})

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors with their ctx exceptions turned into strings"""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(admin_router)
app.include_router(bookings_router)
app.include_router(services_router)
app.include_router(feedback_router)
app.include_router(plans_router)
app.include_router(subscriptions_router)
app.include_router(chat_router)
app.include_router(contact_router)
app.include_router(faqs_router)
app.include_router(newsletter_router)
app.include_router(notifications_router)
app.include_router(appointments_router)
app.include_router(dashboard_router)

# Socket.IO shares the ASGI app under /socket.io
socket_app = socketio.ASGIApp(sio)
app.mount("/socket.io", socket_app)


@app.get("/")
async def root():
    return {"message": "ServiceHub API is running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
