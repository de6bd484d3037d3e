# app/api/v1/endpoints/offers.py
"""Offer endpoints: send, list, respond, withdraw, resend."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from app.api import deps
from app.schemas.offer import (
    OfferCreate,
    OfferRespond,
    OfferResponse,
    OfferStatus,
    OfferTerms,
    TransitionLogResponse,
)
from app.schemas.token import TokenPayload
from app.services.offer_engine import OfferService

router = APIRouter(prefix="/offers", tags=["Offers"])


@router.post("", response_model=OfferResponse, status_code=201)
def create_offer(
    offer_in: OfferCreate,
    service: OfferService = Depends(deps.get_offer_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Send an offer to a creator. The caller is the host."""
    terms = OfferTerms(**offer_in.model_dump(exclude={"creator_id", "property_id"}))
    return service.create(
        host_id=current_user.sub,
        creator_id=offer_in.creator_id,
        property_id=offer_in.property_id,
        terms=terms,
    )


@router.get("", response_model=List[OfferResponse])
def list_offers(
    role: str = Query(default="host", pattern="^(host|creator)$"),
    status_filter: Optional[OfferStatus] = Query(default=None, alias="status"),
    service: OfferService = Depends(deps.get_offer_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Offers the caller sent (role=host) or received (role=creator)."""
    status_value = status_filter.value if status_filter else None
    if role == "creator":
        return service.list_for_creator(current_user.sub, status=status_value)
    return service.list_for_host(current_user.sub, status=status_value)


@router.get("/{offer_id}", response_model=OfferResponse)
def get_offer(
    offer_id: str,
    service: OfferService = Depends(deps.get_offer_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return service.get_for_party(offer_id, current_user.sub)


@router.get("/{offer_id}/history", response_model=List[TransitionLogResponse])
def get_offer_history(
    offer_id: str,
    service: OfferService = Depends(deps.get_offer_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Every transition and negotiation round, oldest first."""
    service.get_for_party(offer_id, current_user.sub)
    return service.history(offer_id)


@router.post("/{offer_id}/respond", response_model=OfferResponse)
def respond_to_offer(
    offer_id: str,
    response_in: OfferRespond,
    service: OfferService = Depends(deps.get_offer_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Accept, decline or counter. Creator on pending offers, host on countered ones."""
    return service.respond_counter(
        offer_id,
        current_user.sub,
        response_in.action.value,
        re_counter_cash_amount_minor=response_in.re_counter_cash_amount_minor,
        re_counter_message=response_in.re_counter_message,
    )


@router.post("/{offer_id}/withdraw", response_model=OfferResponse)
def withdraw_offer(
    offer_id: str,
    service: OfferService = Depends(deps.get_offer_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return service.withdraw(offer_id, current_user.sub)


@router.post("/{offer_id}/resend", response_model=OfferResponse, status_code=201)
def resend_offer(
    offer_id: str,
    service: OfferService = Depends(deps.get_offer_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Send the terms of an expired or declined offer again as a new offer."""
    return service.resend(offer_id, current_user.sub)


@router.post("/{offer_id}/view", response_model=OfferResponse)
def mark_offer_viewed(
    offer_id: str,
    service: OfferService = Depends(deps.get_offer_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return service.mark_viewed(offer_id, current_user.sub)
