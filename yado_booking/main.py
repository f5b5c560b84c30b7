# yado_booking/main.py

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from yado_booking.config import ALLOWED_ORIGINS
from yado_booking.logging_config import setup_logging
from yado_booking.middleware import RequestIDMiddleware
from yado_booking.routes.availability import router as availability_router
from yado_booking.routes.health import router as health_router
from yado_booking.routes.metrics import router as metrics_router
from yado_booking.routes.payment import router as payment_router
from yado_booking.routes.pricing import router as pricing_router
from yado_booking.routes.reservations import router as reservations_router

# Initialize structured logging
setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Yado Booking API",
    description="Direct booking API for a single guest house: rates, availability, reservations",
    version="1.0.0",
)

app.add_middleware(RequestIDMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if "*" not in ALLOWED_ORIGINS else ["*"],
    allow_credentials="*" not in ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health_router, tags=["Health"])
app.include_router(metrics_router, tags=["Metrics"])
app.include_router(pricing_router, prefix="/api", tags=["Pricing"])
app.include_router(availability_router, prefix="/api", tags=["Availability"])
app.include_router(reservations_router, prefix="/api", tags=["Reservations"])
app.include_router(payment_router, prefix="/api", tags=["Payment"])
