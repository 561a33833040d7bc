# salon_booking/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from salon_booking.config import config
from salon_booking.db import create_db_and_tables
from salon_booking.errors import BookingError
from salon_booking.routers import (
    admins_routes,
    appointments_routes,
    auth_routes,
    services_routes,
    settings_routes,
    time_blocks_routes,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield


app = FastAPI(title=config.app_name, lifespan=lifespan)

app.include_router(auth_routes.router)
app.include_router(admins_routes.router)
app.include_router(services_routes.router)
app.include_router(appointments_routes.router)
app.include_router(time_blocks_routes.router)
app.include_router(settings_routes.router)


@app.exception_handler(BookingError)
def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"error": "Validation error", "details": details}),
    )


@app.exception_handler(StarletteHTTPException)
def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health")
def health_check():
    return {"status": "ok"}
