# app/api/v1/endpoints/collaborations.py
"""Collaboration endpoints: agreement signing, content, payment, cancellation."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from app.api import deps
from app.models.collaboration import Collaboration
from app.schemas.agreement import AgreementResponse
from app.schemas.collaboration import (
    CancellationRequest,
    CancellationResponse,
    CollaborationResponse,
    CollaborationStatus,
    ContentReview,
    ContentSubmission,
    PaymentBreakdownResponse,
    TermsAmendment,
)
from app.schemas.token import TokenPayload
from app.services.collaboration_engine import CollaborationService

router = APIRouter(prefix="/collaborations", tags=["Collaborations"])


def _to_response(service: CollaborationService, collaboration: Collaboration) -> CollaborationResponse:
    response = CollaborationResponse.model_validate(collaboration)
    breakdown = service.payment_breakdown(collaboration) if collaboration.agreement else None
    return response.model_copy(
        update={
            "affiliate_link": service.affiliate_link(collaboration),
            "bonus_status": service.bonus_status(collaboration).value,
            "payment_breakdown": (
                PaymentBreakdownResponse.model_validate(breakdown) if breakdown else None
            ),
        }
    )


@router.get("", response_model=List[CollaborationResponse])
def list_collaborations(
    status_filter: Optional[CollaborationStatus] = Query(default=None, alias="status"),
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Collaborations where the caller is the host or the creator."""
    items = service.list_for_party(
        current_user.sub, status=status_filter.value if status_filter else None
    )
    return [_to_response(service, c) for c in items]


@router.get("/{collaboration_id}", response_model=CollaborationResponse)
def get_collaboration(
    collaboration_id: str,
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return _to_response(service, service.get_for_party(collaboration_id, current_user.sub))


# --- Agreement ---

@router.get("/{collaboration_id}/agreement", response_model=AgreementResponse)
def get_agreement(
    collaboration_id: str,
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    service.get_for_party(collaboration_id, current_user.sub)
    return service.agreements.get_for_collaboration(collaboration_id)


@router.post("/{collaboration_id}/agreement/sign", response_model=AgreementResponse)
def sign_agreement(
    collaboration_id: str,
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Sign as whichever party the caller is. The second signature executes the agreement."""
    return service.sign_agreement(collaboration_id, current_user.sub)


@router.post("/{collaboration_id}/agreement/amend", response_model=AgreementResponse)
def amend_agreement(
    collaboration_id: str,
    amendment: TermsAmendment,
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Host changes cash or deliverables before execution. Both signatures reset."""
    return service.amend_terms(
        collaboration_id,
        current_user.sub,
        cash_amount_minor=amendment.cash_amount_minor,
        deliverables=amendment.deliverables,
    )


@router.post("/{collaboration_id}/platform-fee", response_model=CollaborationResponse)
async def pay_platform_fee(
    collaboration_id: str,
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Charge the flat post-for-stay fee. Activates the collaboration if it was waiting on it."""
    collaboration = await service.pay_platform_fee(collaboration_id, current_user.sub)
    return _to_response(service, collaboration)


# --- Content ---

@router.post("/{collaboration_id}/content", response_model=CollaborationResponse)
def submit_content(
    collaboration_id: str,
    submission: ContentSubmission,
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    collaboration = service.submit_content(collaboration_id, current_user.sub, submission.links)
    return _to_response(service, collaboration)


@router.post("/{collaboration_id}/content/review", response_model=CollaborationResponse)
def review_content(
    collaboration_id: str,
    review: ContentReview,
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    collaboration = service.review_content(
        collaboration_id, current_user.sub, review.decision.value, feedback=review.feedback
    )
    return _to_response(service, collaboration)


# --- Payment ---

@router.post("/{collaboration_id}/pay", response_model=CollaborationResponse)
async def pay_collaboration(
    collaboration_id: str,
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Charge cash plus platform markup and complete. Safe to retry after a gateway failure."""
    collaboration = await service.pay(collaboration_id, current_user.sub)
    return _to_response(service, collaboration)


@router.post("/{collaboration_id}/complete", response_model=CollaborationResponse)
def complete_collaboration(
    collaboration_id: str,
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Complete a deal without cash compensation."""
    return _to_response(service, service.complete(collaboration_id, current_user.sub))


@router.post("/{collaboration_id}/traffic-bonus/pay", response_model=CollaborationResponse)
async def pay_traffic_bonus(
    collaboration_id: str,
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    collaboration = await service.pay_traffic_bonus(collaboration_id, current_user.sub)
    return _to_response(service, collaboration)


# --- Cancellation ---

@router.post("/{collaboration_id}/cancellation", response_model=CollaborationResponse)
def request_cancellation(
    collaboration_id: str,
    request_in: CancellationRequest,
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    collaboration = service.request_cancellation(
        collaboration_id, current_user.sub, reason=request_in.reason
    )
    return _to_response(service, collaboration)


@router.post("/{collaboration_id}/cancellation/respond", response_model=CollaborationResponse)
def respond_to_cancellation(
    collaboration_id: str,
    response_in: CancellationResponse,
    service: CollaborationService = Depends(deps.get_collaboration_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """The other party accepts (cancelled) or declines (prior status restored)."""
    collaboration = service.respond_cancellation(
        collaboration_id, current_user.sub, response_in.decision.value
    )
    return _to_response(service, collaboration)
