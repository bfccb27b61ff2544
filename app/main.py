# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.exception_handlers import register_exception_handlers
from app.core.logging import configure_logging
from app.services.payment import PaymentGatewayClient

logger = logging.getLogger(__name__)


# Runs once at startup and once at shutdown. The gateway client holds an
# httpx connection pool, so it is built here and closed on the way out.
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Application starting up...")
    app.state.payment_gateway = PaymentGatewayClient.from_settings(settings)
    yield
    app.state.payment_gateway.close()
    logger.info("Application shutting down...")


app = FastAPI(
    title="Booking Lifecycle Service",
    version="1.0.0",
    description="""
        **Event ticketing: from booking to the door**

        ## Features

        * **Events**: Organizers create, publish, cancel and complete events
        * **Bookings**: Participants book tickets against live capacity
        * **Payments**: Gateway orders and signature-verified reconciliation
        * **Tickets**: Invitation codes, signed QR payloads and one-time OTPs
        * **Check-in**: One-time credential verification at entry
        * **Reports**: Ticket, revenue and attendance statistics per event

        ## Authentication

        Endpoints require JWT authentication via the `Authorization: Bearer <token>` header,
        except `/payments/verify`, which is authenticated by the gateway signature.
        """,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def read_root():
    return {"status": "Booking Lifecycle Service is running"}
