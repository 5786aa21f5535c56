import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import models, models_booking, models_schedule  # noqa: F401 - register tables
from .config import CREATE_TABLES_ON_STARTUP
from .database import Base, engine
from .domain.bookings.router import organizer_router
from .domain.bookings.router import router as bookings_router
from .domain.scheduling.router import router as scheduling_router
from .errors import BookingError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    if CREATE_TABLES_ON_STARTUP:
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
                raise

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Booking Core API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    """Map engine failures to their status code with a {"error", "detail"} body"""
    if exc.status_code >= 500:
        logger.error(f"❌ {exc.kind} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"error": "ValidationError", "detail": jsonable_encoder(exc.errors())},
    )


app.include_router(scheduling_router)
app.include_router(bookings_router)
app.include_router(organizer_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
