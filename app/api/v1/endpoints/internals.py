# app/api/v1/endpoints/internals.py
"""
Service-to-service endpoints, guarded by the internal API key.

Used by the tracking redirector (click counts), the payment webhook
handler (fee confirmation) and ops (manual sweeps, gateway health).
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.api import deps
from app.schemas.collaboration import ClickIncrement
from app.services.collaboration_engine import CollaborationService
from app.services.offer_engine import OfferService
from app.services.payment.gateway_interface import PaymentGateway

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(deps.get_internal_api_key)],
)


@router.post("/tracking/{token}/clicks")
def record_clicks(
    token: str,
    body: ClickIncrement,
    service: CollaborationService = Depends(deps.get_collaboration_service),
):
    collaboration = service.traffic.record_clicks_by_token(token, body.delta)
    return {
        "collaboration_id": collaboration.id,
        "clicks_generated": collaboration.clicks_generated,
        "bonus_status": service.bonus_status(collaboration).value,
    }


@router.post("/collaborations/{collaboration_id}/platform-fee/confirm")
def confirm_platform_fee(
    collaboration_id: str,
    service: CollaborationService = Depends(deps.get_collaboration_service),
):
    collaboration = service.confirm_platform_fee(collaboration_id)
    return {
        "collaboration_id": collaboration.id,
        "status": collaboration.status,
        "platform_fee_status": collaboration.platform_fee_status,
    }


@router.post("/offers/expire")
def run_expiry_sweep(service: OfferService = Depends(deps.get_offer_service)):
    expired = service.expire_sweep()
    logger.info(f"Manual expiry sweep expired {expired} offers")
    return {"expired": expired}


@router.post("/collaborations/deadline-reminders")
def run_deadline_reminders(service: CollaborationService = Depends(deps.get_collaboration_service)):
    sent = service.warn_content_deadlines()
    logger.info(f"Manual deadline sweep sent {sent} reminders")
    return {"sent": sent}


@router.get("/payment-gateway/health")
async def payment_gateway_health(
    gateway: Optional[PaymentGateway] = Depends(deps.get_payment_gateway_dep),
):
    """503 when no gateway is configured or it cannot reach its API."""
    if gateway is None:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"healthy": False, "gateway": None, "message": "Payment gateway is not configured"},
        )
    result = await gateway.health_check()
    body = {
        "healthy": result.healthy,
        "gateway": gateway.code,
        "latency_ms": result.latency_ms,
        "message": result.message,
    }
    if not result.healthy:
        logger.warning(f"Payment gateway {gateway.code} unhealthy: {result.message}")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body
