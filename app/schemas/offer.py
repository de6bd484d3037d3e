# app/schemas/offer.py
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class OfferStatus(str, Enum):
    PENDING = "pending"
    COUNTERED = "countered"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    WITHDRAWN = "withdrawn"
    EXPIRED = "expired"


# Every status change the offer engine makes must be listed here.
# Terminal statuses have no way out; resend creates a new offer instead.
VALID_OFFER_TRANSITIONS = {
    OfferStatus.PENDING.value: {
        OfferStatus.COUNTERED.value,
        OfferStatus.ACCEPTED.value,
        OfferStatus.DECLINED.value,
        OfferStatus.WITHDRAWN.value,
        OfferStatus.EXPIRED.value,
    },
    OfferStatus.COUNTERED.value: {
        OfferStatus.PENDING.value,
        OfferStatus.ACCEPTED.value,
        OfferStatus.DECLINED.value,
        OfferStatus.WITHDRAWN.value,
        OfferStatus.EXPIRED.value,
    },
    OfferStatus.ACCEPTED.value: set(),
    OfferStatus.DECLINED.value: set(),
    OfferStatus.WITHDRAWN.value: set(),
    OfferStatus.EXPIRED.value: set(),
}

OPEN_OFFER_STATUSES = {status for status, targets in VALID_OFFER_TRANSITIONS.items() if targets}

RESENDABLE_OFFER_STATUSES = {OfferStatus.EXPIRED.value, OfferStatus.DECLINED.value}


class OfferType(str, Enum):
    FLAT = "flat"
    FLAT_WITH_BONUS = "flat-with-bonus"
    POST_FOR_STAY = "post-for-stay"


class OfferAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    COUNTER = "counter"
    RE_COUNTER = "re-counter"


class OfferTerms(BaseModel):
    """Negotiable terms of an offer. Business rules live in offer_validation."""

    offer_type: OfferType
    cash_amount_minor: int = 0
    stay_nights: Optional[int] = None
    traffic_bonus_enabled: bool = False
    traffic_bonus_threshold_clicks: Optional[int] = None
    traffic_bonus_amount_minor: Optional[int] = None
    deliverables: List[str] = Field(default_factory=list)
    message: Optional[str] = None
    content_deadline_days: int = 30


class OfferCreate(OfferTerms):
    creator_id: str
    property_id: str


class OfferRespond(BaseModel):
    action: OfferAction
    re_counter_cash_amount_minor: Optional[int] = None
    re_counter_message: Optional[str] = None


class OfferResponse(BaseModel):
    id: str
    host_id: str
    creator_id: str
    property_id: str
    offer_type: str
    cash_amount_minor: int
    stay_nights: Optional[int] = None
    traffic_bonus_enabled: bool
    traffic_bonus_threshold_clicks: Optional[int] = None
    traffic_bonus_amount_minor: Optional[int] = None
    deliverables: List[str]
    message: Optional[str] = None
    content_deadline_days: int
    counter_cash_amount_minor: Optional[int] = None
    counter_message: Optional[str] = None
    negotiation_round: int
    status: str
    created_at: datetime
    expires_at: datetime
    responded_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    resent_from_id: Optional[str] = None
    row_version: int

    model_config = {"from_attributes": True}


class TransitionLogResponse(BaseModel):
    action: str
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    actor_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    created_at: datetime

    model_config = {"from_attributes": True}
