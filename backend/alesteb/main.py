from contextlib import asynccontextmanager
import logging
import os
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from alesteb.core.config import settings
from alesteb.core.errors import AppError, translate_db_error
from alesteb.core.logging import configure_logging
from alesteb.core.rate_limit import limiter
from alesteb.db.session import create_db_engine, init_db
from alesteb.services.email import EmailSender
from alesteb.services.image_store import LocalImageStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings)

    engine = create_db_engine(settings)
    init_db(engine)
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)

    app.state.engine = engine
    app.state.image_store = LocalImageStore(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
    app.state.email_sender = EmailSender(settings.RESEND_API_KEY, settings.RESEND_FROM)
    if not app.state.email_sender.configured:
        logger.warning("RESEND_API_KEY is not set, emails will not be sent")

    logger.info("ALESTEB API started (env=%s)", settings.ENV)
    yield

    engine.dispose()
    logger.info("ALESTEB API stopped")


app = FastAPI(
    title="ALESTEB API",
    version="1.0.0",
    lifespan=lifespan
)
app.state.limiter = limiter

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Error handling ===

def actor_id(request: Request):
    return getattr(request.state, "user_id", None)


def error_response(request: Request, error: AppError) -> JSONResponse:
    if error.status_code >= 500:
        logger.error(
            "%s %s failed (user=%s): %s %s",
            request.method, request.url.path, actor_id(request), error.code, error.message,
        )
    return JSONResponse(status_code=error.status_code, content=jsonable_encoder(error.to_dict()))


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return error_response(request, exc)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    client = request.client.host if request.client else None
    logger.warning("Rate limit hit on %s %s from %s", request.method, request.url.path, client)
    return JSONResponse(
        status_code=429,
        content={"status": "error", "code": "RATE_LIMITED", "message": "Too many requests, try again later"},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.debug("Database error on %s %s: %s", request.method, request.url.path, exc)
    return error_response(request, translate_db_error(exc))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "code": code, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    body = {
        "status": "error",
        "code": "VALIDATION_ERROR",
        "message": "Invalid input",
        "details": exc.errors(),
    }
    return JSONResponse(status_code=400, content=jsonable_encoder(body))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled error on %s %s (user=%s)", request.method, request.url.path, actor_id(request)
    )
    message = str(exc) if settings.ENV == "development" else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"status": "error", "code": "INTERNAL_ERROR", "message": message},
    )


# Import routers after app creation to avoid circular imports
from alesteb.api import (
    auth,
    users,
    roles,
    permissions,
    categories,
    products,
    discounts,
    banners,
    sales,
    providers,
    expenses,
    purchase_orders,
    finance,
    contact,
    stats
)

# Routers - all already have /api prefix
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(roles.router)
app.include_router(permissions.router)
app.include_router(categories.router)
app.include_router(products.router)
app.include_router(discounts.router)
app.include_router(banners.router)
app.include_router(sales.router)
app.include_router(providers.router)
app.include_router(expenses.router)
app.include_router(purchase_orders.router)
app.include_router(finance.router)
app.include_router(contact.router)
app.include_router(stats.router)

# Static files for uploads; the directory is created in the lifespan
app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


@app.get("/")
def root():
    return {"status": "ok", "service": "alesteb-api"}


@app.get("/api/health")
def health_check():
    return {
        "status": "healthy",
        "env": settings.ENV
    }
