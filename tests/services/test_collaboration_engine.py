"""
Tests for CollaborationService.

Verifies:
- Post-for-stay activation waits on the platform fee and resumes once it is paid
- Content submission and review, including change requests
- Payment charges cash plus markup once, and gateway failures leave state unchanged
- Non-cash completion
- Cooperative cancellation: request, accept, decline and the payment guard
- Every status change stays inside VALID_TRANSITIONS
- Content deadline reminders, each stage sent once
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core.config import settings
from app.core.errors import (
    Forbidden,
    GatewayFailure,
    InvalidTransition,
    ValidationError,
)
from app.crud import crud_transition_log
from app.schemas.collaboration import VALID_TRANSITIONS, DeadlineStage, can_transition
from app.services.collaboration_engine import CollaborationService, deadline_stage
from app.services.payment.gateway_interface import (
    ChargePurpose,
    ChargeResult,
    ChargeStatus,
    PaymentGatewayError,
)
from tests.utils.offer import (
    CREATOR_ID,
    HOST_ID,
    accept_offer,
    approved_collaboration,
    execute_agreement,
    notified_events,
    post_for_stay_terms,
)


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _declined():
    return ChargeResult(
        status=ChargeStatus.FAILED,
        failure_code="card_declined",
        failure_message="Your card was declined.",
    )


# --------------------------------------------------------------------------- #
# Post-for-stay platform fee
# --------------------------------------------------------------------------- #

class TestPlatformFee:
    def test_execution_defers_activation_until_fee_paid(self, offer_service, collaboration_service, notifier):
        collaboration = execute_agreement(offer_service, post_for_stay_terms())

        assert collaboration.status == "pending-agreement"
        assert collaboration.fee_pending is True
        assert collaboration.platform_fee_status == "unpaid"
        assert collaboration.affiliate_token
        assert not [e for e in notified_events(notifier) if e[0] == "collaboration.activated"]

    def test_paying_fee_activates(self, offer_service, collaboration_service, gateway, notifier):
        collaboration = execute_agreement(offer_service, post_for_stay_terms())

        collaboration = run_async(collaboration_service.pay_platform_fee(collaboration.id, HOST_ID))

        assert collaboration.status == "active"
        assert collaboration.fee_pending is False
        assert collaboration.platform_fee_status == "completed"
        assert collaboration.platform_fee_paid_at is not None

        params = gateway.charge.call_args.args[0]
        assert params.amount == 9900
        assert params.purpose == ChargePurpose.PLATFORM_FEE
        assert params.idempotency_key == f"platform-fee:{collaboration.id}"
        assert params.payer_id == HOST_ID

        events = notified_events(notifier)
        assert ("platform_fee.paid", collaboration.id, HOST_ID) in events
        assert ("collaboration.activated", collaboration.id, CREATOR_ID) in events

    def test_fee_paid_before_execution(self, offer_service, collaboration_service):
        collaboration = accept_offer(offer_service, post_for_stay_terms())
        collaboration = run_async(collaboration_service.pay_platform_fee(collaboration.id, HOST_ID))
        assert collaboration.status == "pending-agreement"
        assert collaboration.platform_fee_status == "completed"

        collaboration_service.sign_agreement(collaboration.id, HOST_ID)
        collaboration_service.sign_agreement(collaboration.id, CREATOR_ID)

        collaboration = collaboration_service.get(collaboration.id)
        assert collaboration.status == "active"
        assert collaboration.fee_pending is False

    def test_fee_failure_leaves_collaboration_waiting(self, offer_service, collaboration_service, gateway):
        collaboration = execute_agreement(offer_service, post_for_stay_terms())
        gateway.charge.return_value = _declined()

        with pytest.raises(GatewayFailure) as exc_info:
            run_async(collaboration_service.pay_platform_fee(collaboration.id, HOST_ID))

        assert exc_info.value.current_status == "pending-agreement"
        assert exc_info.value.retry_after == 5
        collaboration = collaboration_service.get(collaboration.id)
        assert collaboration.platform_fee_status == "unpaid"
        assert collaboration.fee_pending is True

    def test_cash_deal_has_no_fee(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        with pytest.raises(InvalidTransition):
            run_async(collaboration_service.pay_platform_fee(collaboration.id, HOST_ID))

    def test_fee_cannot_be_paid_twice(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service, post_for_stay_terms())
        run_async(collaboration_service.pay_platform_fee(collaboration.id, HOST_ID))
        with pytest.raises(InvalidTransition):
            run_async(collaboration_service.pay_platform_fee(collaboration.id, HOST_ID))

    def test_confirm_is_idempotent(self, offer_service, collaboration_service, notifier):
        collaboration = execute_agreement(offer_service, post_for_stay_terms())

        collaboration_service.confirm_platform_fee(collaboration.id)
        collaboration = collaboration_service.confirm_platform_fee(collaboration.id)

        assert collaboration.status == "active"
        paid = [e for e in notified_events(notifier) if e[0] == "platform_fee.paid"]
        assert len(paid) == 1


# --------------------------------------------------------------------------- #
# Content
# --------------------------------------------------------------------------- #

class TestContent:
    def test_submit_content(self, offer_service, collaboration_service, notifier):
        collaboration = execute_agreement(offer_service)

        collaboration = collaboration_service.submit_content(
            collaboration.id, CREATOR_ID, [" https://instagram.com/reel/abc "]
        )

        assert collaboration.status == "content-submitted"
        assert collaboration.content_links == ["https://instagram.com/reel/abc"]
        assert collaboration.content_submitted_at is not None
        assert ("content.submitted", collaboration.id, HOST_ID) in notified_events(notifier)

    def test_only_creator_submits(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        with pytest.raises(Forbidden):
            collaboration_service.submit_content(collaboration.id, HOST_ID, ["https://x.com/p/1"])

    def test_submit_requires_active(self, offer_service, collaboration_service):
        collaboration = accept_offer(offer_service)
        with pytest.raises(InvalidTransition) as exc_info:
            collaboration_service.submit_content(collaboration.id, CREATOR_ID, ["https://x.com/p/1"])
        assert exc_info.value.current_status == "pending-agreement"

    def test_submit_requires_valid_links(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        with pytest.raises(ValidationError):
            collaboration_service.submit_content(collaboration.id, CREATOR_ID, [])
        with pytest.raises(ValidationError):
            collaboration_service.submit_content(collaboration.id, CREATOR_ID, ["not a link"])

    def test_approve(self, offer_service, collaboration_service, notifier):
        collaboration = approved_collaboration(offer_service)

        assert collaboration.status == "approved"
        assert collaboration.content_approved_at is not None
        assert ("content.approved", collaboration.id, CREATOR_ID) in notified_events(notifier)

    def test_request_changes_returns_to_active(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        collaboration_service.submit_content(collaboration.id, CREATOR_ID, ["https://x.com/p/1"])

        collaboration = collaboration_service.review_content(
            collaboration.id, HOST_ID, "request-changes", feedback="Please tag the property"
        )

        assert collaboration.status == "active"
        assert collaboration.change_request_feedback == "Please tag the property"
        collaboration = collaboration_service.submit_content(
            collaboration.id, CREATOR_ID, ["https://x.com/p/2"]
        )
        assert collaboration.status == "content-submitted"

    def test_request_changes_needs_feedback(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        collaboration_service.submit_content(collaboration.id, CREATOR_ID, ["https://x.com/p/1"])

        with pytest.raises(ValidationError):
            collaboration_service.review_content(collaboration.id, HOST_ID, "request-changes", feedback="meh")
        assert collaboration_service.get(collaboration.id).status == "content-submitted"

    def test_only_host_reviews(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        collaboration_service.submit_content(collaboration.id, CREATOR_ID, ["https://x.com/p/1"])
        with pytest.raises(Forbidden):
            collaboration_service.review_content(collaboration.id, CREATOR_ID, "approve")


# --------------------------------------------------------------------------- #
# Payment / completion
# --------------------------------------------------------------------------- #

class TestPayment:
    def test_pay_charges_cash_plus_markup_and_completes(self, offer_service, collaboration_service, gateway, notifier):
        collaboration = approved_collaboration(offer_service)

        collaboration = run_async(collaboration_service.pay(collaboration.id, HOST_ID))

        assert collaboration.status == "completed"
        assert collaboration.payment_status == "completed"
        assert collaboration.payment_amount_minor == 57500
        assert collaboration.paid_at is not None
        assert collaboration.completed_at is not None

        gateway.charge.assert_awaited_once()
        params = gateway.charge.call_args.args[0]
        assert params.amount == 57500
        assert params.purpose == ChargePurpose.HOST_MARKUP
        assert params.idempotency_key == f"collab-payment:{collaboration.id}"
        assert params.currency == settings.PAYMENT_CURRENCY

        events = notified_events(notifier)
        assert ("payment.completed", collaboration.id, CREATOR_ID) in events
        assert ("collaboration.completed", collaboration.id, HOST_ID) in events

    def test_declined_payment_leaves_state_unchanged(self, offer_service, collaboration_service, gateway):
        collaboration = approved_collaboration(offer_service)
        gateway.charge.return_value = _declined()

        with pytest.raises(GatewayFailure) as exc_info:
            run_async(collaboration_service.pay(collaboration.id, HOST_ID))

        assert exc_info.value.current_status == "approved"
        collaboration = collaboration_service.get(collaboration.id)
        assert collaboration.status == "approved"
        assert collaboration.payment_status == "unpaid"

    def test_retry_after_failure_uses_same_idempotency_key(self, offer_service, collaboration_service, gateway):
        collaboration = approved_collaboration(offer_service)
        gateway.charge.return_value = _declined()
        with pytest.raises(GatewayFailure):
            run_async(collaboration_service.pay(collaboration.id, HOST_ID))

        gateway.charge.return_value = ChargeResult(status=ChargeStatus.SUCCEEDED, charge_id="pi_retry")
        collaboration = run_async(collaboration_service.pay(collaboration.id, HOST_ID))

        assert collaboration.status == "completed"
        keys = [c.args[0].idempotency_key for c in gateway.charge.call_args_list]
        assert keys == [f"collab-payment:{collaboration.id}"] * 2

    def test_gateway_error_is_reported(self, offer_service, collaboration_service, gateway):
        collaboration = approved_collaboration(offer_service)
        gateway.charge.side_effect = PaymentGatewayError(
            code="PROVIDER_ERROR", message="Payment service temporarily unavailable", retryable=True
        )

        with pytest.raises(GatewayFailure):
            run_async(collaboration_service.pay(collaboration.id, HOST_ID))
        assert collaboration_service.get(collaboration.id).payment_status == "unpaid"

    def test_gateway_timeout_is_reported(self, offer_service, collaboration_service, gateway, monkeypatch):
        collaboration = approved_collaboration(offer_service)

        async def slow_charge(params):
            await asyncio.sleep(1)

        gateway.charge.side_effect = slow_charge
        monkeypatch.setattr(settings, "PAYMENT_GATEWAY_TIMEOUT_SECONDS", 0.01)

        with pytest.raises(GatewayFailure) as exc_info:
            run_async(collaboration_service.pay(collaboration.id, HOST_ID))
        assert "timed out" in exc_info.value.message
        assert collaboration_service.get(collaboration.id).status == "approved"

    def test_missing_gateway_is_reported(self, db, notifier, offer_service):
        collaboration = approved_collaboration(offer_service)
        service = CollaborationService(db, notifier=notifier, gateway=None)

        with pytest.raises(GatewayFailure):
            run_async(service.pay(collaboration.id, HOST_ID))

    def test_pay_requires_approval(self, offer_service, collaboration_service, gateway):
        collaboration = execute_agreement(offer_service)
        with pytest.raises(InvalidTransition) as exc_info:
            run_async(collaboration_service.pay(collaboration.id, HOST_ID))
        assert exc_info.value.current_status == "active"
        gateway.charge.assert_not_awaited()

    def test_only_host_pays(self, offer_service, collaboration_service):
        collaboration = approved_collaboration(offer_service)
        with pytest.raises(Forbidden):
            run_async(collaboration_service.pay(collaboration.id, CREATOR_ID))

    def test_post_for_stay_completes_without_cash(self, offer_service, collaboration_service, gateway):
        collaboration = execute_agreement(offer_service, post_for_stay_terms())
        run_async(collaboration_service.pay_platform_fee(collaboration.id, HOST_ID))
        collaboration_service.submit_content(collaboration.id, CREATOR_ID, ["https://x.com/p/1"])
        collaboration_service.review_content(collaboration.id, HOST_ID, "approve")

        with pytest.raises(InvalidTransition):
            run_async(collaboration_service.pay(collaboration.id, HOST_ID))
        collaboration = collaboration_service.complete(collaboration.id, HOST_ID)

        assert collaboration.status == "completed"
        assert gateway.charge.await_count == 1

    def test_cash_deal_cannot_skip_payment(self, offer_service, collaboration_service):
        collaboration = approved_collaboration(offer_service)
        with pytest.raises(InvalidTransition):
            collaboration_service.complete(collaboration.id, HOST_ID)

    def test_payment_breakdown(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        breakdown = collaboration_service.payment_breakdown(collaboration)
        assert breakdown.host_total_minor == 57500
        assert breakdown.creator_net_minor == 42500

    def test_affiliate_link(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        link = collaboration_service.affiliate_link(collaboration)
        assert link == f"{settings.AFFILIATE_LINK_BASE_URL}/{collaboration.affiliate_token}"
        assert collaboration_service.affiliate_link(accept_offer(offer_service)) is None

    def test_affiliate_token_is_unguessable(self, offer_service, collaboration_service):
        first = execute_agreement(offer_service)
        second = execute_agreement(offer_service)
        # 16 random bytes, url-safe base64
        assert len(first.affiliate_token) >= 22
        assert first.affiliate_token != second.affiliate_token


# --------------------------------------------------------------------------- #
# Cancellation
# --------------------------------------------------------------------------- #

class TestCancellation:
    def test_request_and_accept(self, offer_service, collaboration_service, notifier):
        collaboration = execute_agreement(offer_service)

        collaboration = collaboration_service.request_cancellation(
            collaboration.id, CREATOR_ID, reason="Family emergency"
        )
        assert collaboration.status == "cancellation-requested"
        assert collaboration.cancellation_requested_by == CREATOR_ID
        assert collaboration.cancellation_reason == "Family emergency"
        assert ("cancellation.requested", collaboration.id, HOST_ID) in notified_events(notifier)

        collaboration = collaboration_service.respond_cancellation(collaboration.id, HOST_ID, "accept")

        assert collaboration.status == "cancelled"
        assert collaboration.cancelled_at is not None
        assert ("cancellation.accepted", collaboration.id, CREATOR_ID) in notified_events(notifier)

    def test_decline_restores_previous_status(self, offer_service, collaboration_service, notifier):
        collaboration = execute_agreement(offer_service)
        collaboration_service.submit_content(collaboration.id, CREATOR_ID, ["https://x.com/p/1"])
        collaboration_service.request_cancellation(collaboration.id, HOST_ID)

        collaboration = collaboration_service.respond_cancellation(collaboration.id, CREATOR_ID, "decline")

        assert collaboration.status == "content-submitted"
        assert collaboration.cancellation_declined_at is not None
        assert ("cancellation.declined", collaboration.id, HOST_ID) in notified_events(notifier)

    def test_requester_cannot_respond(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        collaboration_service.request_cancellation(collaboration.id, CREATOR_ID)
        with pytest.raises(Forbidden):
            collaboration_service.respond_cancellation(collaboration.id, CREATOR_ID, "accept")

    def test_respond_requires_open_request(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        with pytest.raises(InvalidTransition) as exc_info:
            collaboration_service.respond_cancellation(collaboration.id, HOST_ID, "accept")
        assert exc_info.value.current_status == "active"

    def test_cannot_cancel_completed(self, offer_service, collaboration_service):
        collaboration = approved_collaboration(offer_service)
        run_async(collaboration_service.pay(collaboration.id, HOST_ID))
        with pytest.raises(InvalidTransition) as exc_info:
            collaboration_service.request_cancellation(collaboration.id, CREATOR_ID)
        assert exc_info.value.current_status == "completed"

    def test_cannot_cancel_while_payment_pending(self, db, offer_service, collaboration_service):
        collaboration = approved_collaboration(offer_service)
        collaboration.payment_status = "pending"
        db.commit()

        with pytest.raises(InvalidTransition):
            collaboration_service.request_cancellation(collaboration.id, CREATOR_ID)

    def test_stranger_cannot_request(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        with pytest.raises(Forbidden):
            collaboration_service.request_cancellation(collaboration.id, "someone_else")

    def test_cancelled_collaboration_cannot_be_paid(self, offer_service, collaboration_service, gateway):
        collaboration = approved_collaboration(offer_service)
        collaboration_service.request_cancellation(collaboration.id, CREATOR_ID)
        collaboration_service.respond_cancellation(collaboration.id, HOST_ID, "accept")

        with pytest.raises(InvalidTransition) as exc_info:
            run_async(collaboration_service.pay(collaboration.id, HOST_ID))
        assert exc_info.value.current_status == "cancelled"
        gateway.charge.assert_not_awaited()

    def test_decline_resumes_deferred_activation(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service, post_for_stay_terms())
        collaboration_service.request_cancellation(collaboration.id, CREATOR_ID)
        collaboration_service.confirm_platform_fee(collaboration.id)
        assert collaboration_service.get(collaboration.id).status == "cancellation-requested"

        collaboration = collaboration_service.respond_cancellation(collaboration.id, HOST_ID, "decline")

        assert collaboration.status == "active"


# --------------------------------------------------------------------------- #
# Transition table
# --------------------------------------------------------------------------- #

class TestTransitionTable:
    def _moves(self, db, collaboration_id):
        return [
            (log.from_status, log.to_status)
            for log in crud_transition_log.list_for_entity(
                db, entity_type="collaboration", entity_id=collaboration_id
            )
            if log.from_status is not None and log.from_status != log.to_status
        ]

    def test_lifecycle_moves_are_listed(self, db, offer_service, collaboration_service, gateway):
        collaboration = execute_agreement(offer_service)
        collaboration_service.request_cancellation(collaboration.id, HOST_ID)
        collaboration_service.respond_cancellation(collaboration.id, CREATOR_ID, "decline")
        collaboration_service.submit_content(collaboration.id, CREATOR_ID, ["https://x.com/p/1"])
        collaboration_service.review_content(collaboration.id, HOST_ID, "request-changes", feedback="Please tag the property account")
        collaboration_service.submit_content(collaboration.id, CREATOR_ID, ["https://x.com/p/2"])
        collaboration_service.review_content(collaboration.id, HOST_ID, "approve")
        run_async(collaboration_service.pay(collaboration.id, HOST_ID))

        moves = self._moves(db, collaboration.id)
        assert moves == [
            ("pending-agreement", "active"),
            ("active", "cancellation-requested"),
            ("cancellation-requested", "active"),
            ("active", "content-submitted"),
            ("content-submitted", "active"),
            ("active", "content-submitted"),
            ("content-submitted", "approved"),
            ("approved", "completed"),
        ]
        for from_status, to_status in moves:
            assert can_transition(from_status, to_status)

    def test_cancellation_moves_are_listed(self, db, offer_service, collaboration_service):
        collaboration = accept_offer(offer_service)
        collaboration_service.request_cancellation(collaboration.id, CREATOR_ID)
        collaboration_service.respond_cancellation(collaboration.id, HOST_ID, "accept")

        for from_status, to_status in self._moves(db, collaboration.id):
            assert can_transition(from_status, to_status)

    def test_terminal_statuses_have_no_way_out(self):
        assert VALID_TRANSITIONS["completed"] == set()
        assert VALID_TRANSITIONS["cancelled"] == set()
        assert not can_transition("cancelled", "active")
        assert not can_transition("pending-agreement", "completed")

    def test_cancelled_collaboration_rejects_every_action(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        collaboration_service.request_cancellation(collaboration.id, CREATOR_ID)
        collaboration_service.respond_cancellation(collaboration.id, HOST_ID, "accept")

        for action in (
            lambda: collaboration_service.submit_content(collaboration.id, CREATOR_ID, ["https://x.com/p/1"]),
            lambda: collaboration_service.request_cancellation(collaboration.id, HOST_ID),
            lambda: collaboration_service.complete(collaboration.id, HOST_ID),
        ):
            with pytest.raises(InvalidTransition) as exc_info:
                action()
            assert exc_info.value.current_status == "cancelled"


# --------------------------------------------------------------------------- #
# Content deadline reminders
# --------------------------------------------------------------------------- #

class TestContentDeadlines:
    def test_stage_by_calendar_day(self):
        deadline = datetime(2026, 5, 20, 9, 0, tzinfo=timezone.utc)
        assert deadline_stage(deadline, deadline - timedelta(days=10)) is None
        assert deadline_stage(deadline, deadline - timedelta(days=3)) == DeadlineStage.THREE_DAYS
        assert deadline_stage(deadline, deadline - timedelta(days=2)) is None
        assert deadline_stage(deadline, deadline - timedelta(days=1)) == DeadlineStage.ONE_DAY
        # Later on the same day as the deadline still counts as day-of
        assert deadline_stage(deadline, deadline + timedelta(hours=10)) == DeadlineStage.DAY_OF
        assert deadline_stage(deadline, deadline + timedelta(days=1)) == DeadlineStage.PASSED

    def test_each_stage_sent_once(self, offer_service, collaboration_service, notifier):
        collaboration = execute_agreement(offer_service)
        deadline = collaboration.agreement.content_deadline

        for days_before, event in (
            (3, "content.deadline_approaching"),
            (1, "content.deadline_approaching"),
            (0, "content.deadline_today"),
        ):
            now = deadline - timedelta(days=days_before)
            assert collaboration_service.warn_content_deadlines(now=now) == 1
            assert collaboration_service.warn_content_deadlines(now=now) == 0
            assert notified_events(notifier)[-1] == (event, collaboration.id, CREATOR_ID)

        collaboration = collaboration_service.get(collaboration.id)
        assert collaboration.deadline_3day_warned_at is not None
        assert collaboration.deadline_1day_warned_at is not None
        assert collaboration.deadline_day_of_warned_at is not None
        assert collaboration.status == "active"

    def test_passed_deadline_tells_both_parties(self, offer_service, collaboration_service, notifier):
        collaboration = execute_agreement(offer_service)
        version = collaboration.row_version
        passed = collaboration.agreement.content_deadline + timedelta(days=2)

        assert collaboration_service.warn_content_deadlines(now=passed) == 1
        assert collaboration_service.warn_content_deadlines(now=passed + timedelta(days=1)) == 0

        events = [e for e in notified_events(notifier) if e[0] == "content.deadline_passed"]
        assert events == [
            ("content.deadline_passed", collaboration.id, CREATOR_ID),
            ("content.deadline_passed", collaboration.id, HOST_ID),
        ]
        collaboration = collaboration_service.get(collaboration.id)
        assert collaboration.status == "active"
        assert collaboration.deadline_passed_notified_at is not None
        assert collaboration.row_version == version

    def test_no_reminder_on_off_days(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        deadline = collaboration.agreement.content_deadline

        assert collaboration_service.warn_content_deadlines(now=deadline - timedelta(days=10)) == 0
        assert collaboration_service.warn_content_deadlines(now=deadline - timedelta(days=2)) == 0

    def test_no_reminder_once_content_submitted(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service)
        deadline = collaboration.agreement.content_deadline
        collaboration_service.submit_content(collaboration.id, CREATOR_ID, ["https://x.com/p/1"])

        assert collaboration_service.warn_content_deadlines(now=deadline) == 0
        assert collaboration_service.warn_content_deadlines(now=deadline + timedelta(days=1)) == 0

    def test_no_reminder_while_fee_pending(self, offer_service, collaboration_service):
        collaboration = execute_agreement(offer_service, post_for_stay_terms())
        assert collaboration.status == "pending-agreement"

        deadline = collaboration.agreement.content_deadline
        assert collaboration_service.warn_content_deadlines(now=deadline) == 0
