import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import accounts, automation, bookings, profiles, support_chat
from .core.config import DEFAULT_JWT_SECRET, get_settings
from .core.db import create_tables, dispose_engine
from .core.errors import ApiError
from .core.responses import ErrorCodes, error_response

settings = get_settings()
logging.basicConfig(level=settings.log_level.upper())

app = FastAPI(title="Room Booking Backend")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(accounts.router, prefix="/auth", tags=["auth"])
app.include_router(profiles.router, prefix="/profile", tags=["profile"])
app.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
app.include_router(support_chat.router, prefix="/chat", tags=["chat"])
app.include_router(automation.router, prefix="/automation", tags=["automation"])


@app.exception_handler(ApiError)
async def handle_api_error(request: Request, exc: ApiError):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message, exc.details),
    )


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_response(ErrorCodes.VALIDATION_ERROR, "Invalid request data.", {"errors": errors}),
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    details = {"error": str(exc)} if get_settings().is_development else None
    return JSONResponse(
        status_code=500,
        content=error_response(ErrorCodes.INTERNAL_ERROR, "Internal server error.", details),
    )


@app.on_event("startup")
async def on_startup():
    if settings.jwt_secret == DEFAULT_JWT_SECRET and not settings.is_development:
        logger.warning("JWT_SECRET is not set; tokens are signed with the default development secret")
    if settings.create_tables_on_startup:
        await create_tables()


@app.on_event("shutdown")
async def on_shutdown():
    await dispose_engine()


@app.get("/health")
async def healthcheck():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
