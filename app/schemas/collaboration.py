# app/schemas/collaboration.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class CollaborationStatus(str, Enum):
    PENDING_AGREEMENT = "pending-agreement"
    ACTIVE = "active"
    CONTENT_SUBMITTED = "content-submitted"
    APPROVED = "approved"
    COMPLETED = "completed"
    CANCELLATION_REQUESTED = "cancellation-requested"
    CANCELLED = "cancelled"


_S = CollaborationStatus

# Statuses a cancellation can be requested from, and restored to on a decline
CANCELLABLE_STATUSES = {
    _S.PENDING_AGREEMENT.value,
    _S.ACTIVE.value,
    _S.CONTENT_SUBMITTED.value,
    _S.APPROVED.value,
}

# Every status change the engine makes must be listed here.
VALID_TRANSITIONS = {
    _S.PENDING_AGREEMENT.value: {_S.ACTIVE.value, _S.CANCELLATION_REQUESTED.value},
    _S.ACTIVE.value: {_S.CONTENT_SUBMITTED.value, _S.CANCELLATION_REQUESTED.value},
    _S.CONTENT_SUBMITTED.value: {
        _S.APPROVED.value,
        _S.ACTIVE.value,
        _S.CANCELLATION_REQUESTED.value,
    },
    _S.APPROVED.value: {_S.COMPLETED.value, _S.CANCELLATION_REQUESTED.value},
    _S.CANCELLATION_REQUESTED.value: CANCELLABLE_STATUSES | {_S.CANCELLED.value},
    _S.COMPLETED.value: set(),
    _S.CANCELLED.value: set(),
}


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, set())


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PENDING = "pending"
    COMPLETED = "completed"


class PlatformFeeStatus(str, Enum):
    NOT_REQUIRED = "not-required"
    UNPAID = "unpaid"
    PENDING = "pending"
    COMPLETED = "completed"


class PartyRole(str, Enum):
    HOST = "host"
    CREATOR = "creator"


class ReviewDecision(str, Enum):
    APPROVE = "approve"
    REQUEST_CHANGES = "request-changes"


class CancellationDecision(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"


class BonusStatus(str, Enum):
    DISABLED = "disabled"
    ACCRUING = "accruing"
    PAYABLE = "payable"
    PAID = "paid"


class DeadlineStage(str, Enum):
    """Content deadline reminders, by calendar days left until the deadline."""
    THREE_DAYS = "3-day"
    ONE_DAY = "1-day"
    DAY_OF = "day-of"
    PASSED = "passed"


class ContentSubmission(BaseModel):
    links: List[str]


class ContentReview(BaseModel):
    decision: ReviewDecision
    feedback: Optional[str] = None


class CancellationRequest(BaseModel):
    reason: Optional[str] = None


class CancellationResponse(BaseModel):
    decision: CancellationDecision


class TermsAmendment(BaseModel):
    cash_amount_minor: Optional[int] = None
    deliverables: Optional[List[str]] = None


class ClickIncrement(BaseModel):
    delta: int = Field(default=1)


class PaymentBreakdownResponse(BaseModel):
    cash_amount_minor: int
    host_fee_minor: int
    host_total_minor: int
    creator_fee_minor: int
    creator_net_minor: int
    platform_revenue_minor: int

    model_config = {"from_attributes": True}


class CollaborationResponse(BaseModel):
    id: str
    offer_id: str
    agreement_id: Optional[str] = None
    host_id: str
    creator_id: str
    property_id: str
    status: str
    fee_pending: bool
    payment_status: str
    payment_amount_minor: Optional[int] = None
    paid_at: Optional[datetime] = None
    platform_fee_status: str
    platform_fee_paid_at: Optional[datetime] = None
    content_links: List[str]
    content_submitted_at: Optional[datetime] = None
    content_approved_at: Optional[datetime] = None
    change_request_feedback: Optional[str] = None
    clicks_generated: int
    affiliate_token: Optional[str] = None
    traffic_bonus_earned_at: Optional[datetime] = None
    traffic_bonus_paid_at: Optional[datetime] = None
    cancellation_requested_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancellation_requested_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    row_version: int

    # Derived
    affiliate_link: Optional[str] = None
    bonus_status: Optional[str] = None
    payment_breakdown: Optional[PaymentBreakdownResponse] = None

    model_config = {"from_attributes": True}
