# app/api/deps.py
from typing import Generator
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.schemas.token import TokenPayload
from app.db.session import SessionLocal
from app.services.booking import AttendanceVerifier, BookingService, CredentialService
from app.services.event_service import EventService
from app.services.payment import PaymentGatewayClient, PaymentReconciliationService


def get_db() -> Generator:
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# This tells FastAPI where to look for the token.
# The `tokenUrl` doesn't have to be a real endpoint in this service,
# it's just for the OpenAPI documentation.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


def get_current_user(token: str = Depends(oauth2_scheme)) -> TokenPayload:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=["HS256"])
        token_data = TokenPayload(**payload)
    except (JWTError, ValueError):
        # Catches any error from jose or Pydantic validation
        raise credentials_exception

    return token_data


def require_organizer(
    current_user: TokenPayload = Depends(get_current_user),
) -> TokenPayload:
    if not current_user.is_organizer:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organizer role required",
        )
    return current_user


def get_payment_gateway(request: Request) -> PaymentGatewayClient:
    """The gateway client built at startup (see app.main lifespan)."""
    gateway = getattr(request.app.state, "payment_gateway", None)
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment service is not configured",
        )
    return gateway


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db)


def get_credential_service(db: Session = Depends(get_db)) -> CredentialService:
    return CredentialService(db)


def get_attendance_verifier(db: Session = Depends(get_db)) -> AttendanceVerifier:
    return AttendanceVerifier(db)


def get_reconciliation_service(
    db: Session = Depends(get_db),
    gateway: PaymentGatewayClient = Depends(get_payment_gateway),
) -> PaymentReconciliationService:
    return PaymentReconciliationService(db, gateway)


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    return EventService(db)
