# app/api/deps.py
from typing import Generator, Optional
from fastapi import Depends, HTTPException, status, Security
from fastapi.security import OAuth2PasswordBearer, APIKeyHeader
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.schemas.token import TokenPayload
from app.db.session import SessionLocal
from app.services.collaboration_engine import CollaborationService
from app.services.notifier import Notifier, get_notifier
from app.services.offer_engine import OfferService
from app.services.payment.gateway_factory import get_payment_gateway
from app.services.payment.gateway_interface import PaymentGateway


def get_db() -> Generator:
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# The `tokenUrl` is only used by the OpenAPI docs; tokens are issued elsewhere.
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


# Header used by the tracking redirector and payment webhooks
api_key_header = APIKeyHeader(name="X-Internal-Api-Key", auto_error=False)


def get_internal_api_key(api_key: str = Security(api_key_header)) -> str:
    """
    Checks for and validates the internal API key from the request header.
    """
    if api_key == settings.INTERNAL_API_KEY:
        return api_key
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing Internal API Key",
    )


# --- Service dependencies ---

def get_notifier_dep() -> Notifier:
    return get_notifier()


def get_payment_gateway_dep() -> Optional[PaymentGateway]:
    return get_payment_gateway()


def get_collaboration_service(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier_dep),
    gateway: Optional[PaymentGateway] = Depends(get_payment_gateway_dep),
) -> CollaborationService:
    return CollaborationService(db, notifier=notifier, gateway=gateway)


def get_offer_service(
    db: Session = Depends(get_db),
    collaborations: CollaborationService = Depends(get_collaboration_service),
) -> OfferService:
    return OfferService(db, collaborations=collaborations)
