# tests/api/v1/test_collaborations_api.py
from unittest.mock import AsyncMock

from app.api import deps
from app.services.payment.gateway_interface import ChargeResult, ChargeStatus, HealthCheckResult
from tests.utils.auth import get_internal_headers, get_user_authentication_headers
from tests.utils.offer import CREATOR_ID, HOST_ID, PROPERTY_ID

HOST = get_user_authentication_headers(HOST_ID)
CREATOR = get_user_authentication_headers(CREATOR_ID)


def _accepted_collaboration(test_client, **terms):
    payload = {
        "creator_id": CREATOR_ID,
        "property_id": PROPERTY_ID,
        "offer_type": "flat",
        "cash_amount_minor": 50000,
        "deliverables": ["2 Instagram Reels"],
    }
    payload.update(terms)
    offer = test_client.post("/api/v1/offers", headers=HOST, json=payload).json()
    test_client.post(f"/api/v1/offers/{offer['id']}/respond", headers=CREATOR, json={"action": "accept"})
    return test_client.get("/api/v1/collaborations", headers=HOST).json()[0]


def _sign_both(test_client, collaboration_id):
    test_client.post(f"/api/v1/collaborations/{collaboration_id}/agreement/sign", headers=HOST)
    return test_client.post(f"/api/v1/collaborations/{collaboration_id}/agreement/sign", headers=CREATOR)


def test_collaboration_e2e(test_client, gateway):
    # 1. Accepted offer spawns a collaboration awaiting signatures
    collaboration = _accepted_collaboration(test_client)
    cid = collaboration["id"]
    assert collaboration["status"] == "pending-agreement"
    assert collaboration["payment_breakdown"]["host_total_minor"] == 57500
    assert collaboration["affiliate_link"] is None

    # 2. Both parties read and sign the agreement
    response = test_client.get(f"/api/v1/collaborations/{cid}/agreement", headers=CREATOR)
    assert response.status_code == 200
    assert "COLLABORATION AGREEMENT" in response.json()["agreement_text"]

    response = _sign_both(test_client, cid)
    assert response.status_code == 200, response.text
    assert response.json()["is_fully_executed"] is True

    response = test_client.get(f"/api/v1/collaborations/{cid}", headers=CREATOR)
    collaboration = response.json()
    assert collaboration["status"] == "active"
    assert collaboration["affiliate_link"].endswith(collaboration["affiliate_token"])

    # 3. Creator submits content, host approves
    response = test_client.post(
        f"/api/v1/collaborations/{cid}/content",
        headers=CREATOR,
        json={"links": ["https://instagram.com/reel/abc"]},
    )
    assert response.json()["status"] == "content-submitted"

    response = test_client.post(
        f"/api/v1/collaborations/{cid}/content/review", headers=HOST, json={"decision": "approve"}
    )
    assert response.json()["status"] == "approved"

    # 4. Host pays cash plus markup
    response = test_client.post(f"/api/v1/collaborations/{cid}/pay", headers=HOST)
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "completed"
    assert response.json()["payment_amount_minor"] == 57500
    assert gateway.charge.await_count == 1


def test_signing_twice_is_conflict(test_client):
    cid = _accepted_collaboration(test_client)["id"]
    test_client.post(f"/api/v1/collaborations/{cid}/agreement/sign", headers=HOST)

    response = test_client.post(f"/api/v1/collaborations/{cid}/agreement/sign", headers=HOST)

    assert response.status_code == 409
    assert response.json()["error"]["category"] == "already_signed"


def test_amend_agreement(test_client):
    cid = _accepted_collaboration(test_client)["id"]
    response = test_client.post(
        f"/api/v1/collaborations/{cid}/agreement/amend",
        headers=HOST,
        json={"cash_amount_minor": 60000},
    )
    assert response.status_code == 200, response.text
    assert response.json()["version"] == 2
    assert response.json()["cash_amount_minor"] == 60000


def test_gateway_failure_returns_502_with_retry_after(test_client, gateway):
    cid = _accepted_collaboration(test_client)["id"]
    _sign_both(test_client, cid)
    test_client.post(f"/api/v1/collaborations/{cid}/content", headers=CREATOR,
                     json={"links": ["https://x.com/p/1"]})
    test_client.post(f"/api/v1/collaborations/{cid}/content/review", headers=HOST,
                     json={"decision": "approve"})
    gateway.charge.return_value = ChargeResult(
        status=ChargeStatus.FAILED, failure_code="card_declined", failure_message="Declined"
    )

    response = test_client.post(f"/api/v1/collaborations/{cid}/pay", headers=HOST)

    assert response.status_code == 502
    assert response.headers["Retry-After"] == "5"
    error = response.json()["error"]
    assert error["category"] == "gateway_failure"
    assert error["current_status"] == "approved"
    assert error["payment_status"] == "unpaid"


def test_post_for_stay_fee_flow(test_client):
    collaboration = _accepted_collaboration(
        test_client, offer_type="post-for-stay", cash_amount_minor=0, stay_nights=2
    )
    cid = collaboration["id"]
    assert collaboration["platform_fee_status"] == "unpaid"
    _sign_both(test_client, cid)

    response = test_client.get(f"/api/v1/collaborations/{cid}", headers=HOST)
    assert response.json()["status"] == "pending-agreement"
    assert response.json()["fee_pending"] is True

    response = test_client.post(f"/api/v1/collaborations/{cid}/platform-fee", headers=HOST)
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "active"
    assert response.json()["payment_breakdown"]["host_fee_minor"] == 9900


def test_cancellation_flow(test_client):
    cid = _accepted_collaboration(test_client)["id"]
    _sign_both(test_client, cid)

    response = test_client.post(
        f"/api/v1/collaborations/{cid}/cancellation", headers=CREATOR, json={"reason": "Sick"}
    )
    assert response.json()["status"] == "cancellation-requested"

    response = test_client.post(
        f"/api/v1/collaborations/{cid}/cancellation/respond", headers=CREATOR, json={"decision": "accept"}
    )
    assert response.status_code == 403

    response = test_client.post(
        f"/api/v1/collaborations/{cid}/cancellation/respond", headers=HOST, json={"decision": "decline"}
    )
    assert response.json()["status"] == "active"


def test_internal_click_tracking(test_client):
    collaboration = _accepted_collaboration(
        test_client,
        offer_type="flat-with-bonus",
        traffic_bonus_enabled=True,
        traffic_bonus_threshold_clicks=10,
        traffic_bonus_amount_minor=5000,
    )
    _sign_both(test_client, collaboration["id"])
    token = test_client.get(
        f"/api/v1/collaborations/{collaboration['id']}", headers=HOST
    ).json()["affiliate_token"]

    response = test_client.post(f"/api/v1/internal/tracking/{token}/clicks", json={"delta": 4})
    assert response.status_code == 401

    response = test_client.post(
        f"/api/v1/internal/tracking/{token}/clicks", headers=get_internal_headers(), json={"delta": 12}
    )
    assert response.status_code == 200, response.text
    assert response.json()["clicks_generated"] == 12
    assert response.json()["bonus_status"] == "payable"

    response = test_client.post(
        f"/api/v1/collaborations/{collaboration['id']}/traffic-bonus/pay", headers=HOST
    )
    assert response.status_code == 200, response.text
    assert response.json()["bonus_status"] == "paid"


def test_internal_confirm_fee_and_sweep(test_client):
    collaboration = _accepted_collaboration(
        test_client, offer_type="post-for-stay", cash_amount_minor=0, stay_nights=2
    )
    _sign_both(test_client, collaboration["id"])

    response = test_client.post(
        f"/api/v1/internal/collaborations/{collaboration['id']}/platform-fee/confirm",
        headers=get_internal_headers(),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "active"

    response = test_client.post("/api/v1/internal/offers/expire", headers=get_internal_headers())
    assert response.json() == {"expired": 0}


def test_internal_deadline_reminders(test_client):
    response = test_client.post("/api/v1/internal/collaborations/deadline-reminders")
    assert response.status_code == 401

    collaboration = _accepted_collaboration(test_client)
    _sign_both(test_client, collaboration["id"])

    # The deadline is weeks away
    response = test_client.post(
        "/api/v1/internal/collaborations/deadline-reminders", headers=get_internal_headers()
    )
    assert response.status_code == 200
    assert response.json() == {"sent": 0}


def test_payment_gateway_health(test_client, gateway):
    gateway.health_check = AsyncMock(return_value=HealthCheckResult(healthy=True, latency_ms=12.0, message="ok"))

    response = test_client.get("/api/v1/internal/payment-gateway/health", headers=get_internal_headers())

    assert response.status_code == 200
    assert response.json() == {"healthy": True, "gateway": "mock", "latency_ms": 12.0, "message": "ok"}


def test_payment_gateway_unhealthy(test_client, gateway):
    gateway.health_check = AsyncMock(
        return_value=HealthCheckResult(healthy=False, latency_ms=5000.0, message="timeout")
    )

    response = test_client.get("/api/v1/internal/payment-gateway/health", headers=get_internal_headers())

    assert response.status_code == 503
    assert response.json()["healthy"] is False
    assert response.json()["message"] == "timeout"


def test_payment_gateway_not_configured(test_client):
    test_client.app.dependency_overrides[deps.get_payment_gateway_dep] = lambda: None

    response = test_client.get("/api/v1/internal/payment-gateway/health", headers=get_internal_headers())

    assert response.status_code == 503
    assert response.json()["gateway"] is None
