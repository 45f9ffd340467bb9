"""
HTTP tests for the payment webhook and Stripe session endpoints
"""
from datetime import date, timedelta
from unittest.mock import patch

import pytest
from fastapi import Depends

from auth_utils import create_jwt
from crud.user import UserRepository
from database import get_db
from database_models import utcnow
from routers.premium_router import get_premium_status_service
from services.access_gate import should_block_access
from services.premium_service import PremiumStatusService


async def no_subscription(email):
    return False


@pytest.fixture
def api(client):
    from main import app

    def service_without_processor(db=Depends(get_db)):
        return PremiumStatusService(db, subscription_lookup=no_subscription)

    app.dependency_overrides[get_premium_status_service] = service_without_processor
    return client


def _create(run_db, email, days_ago=0):
    async def create(session):
        await UserRepository(session).create_user(email, trial_start_date=utcnow() - timedelta(days=days_ago))
    run_db(create)


def _stored(run_db, email):
    async def load(session):
        user = await UserRepository(session).get_user_by_email(email)
        if user is None:
            return None
        return (user.is_paying, user.subscription_status, user.next_due_date)
    return run_db(load)


def _all_emails(run_db):
    from sqlalchemy import select
    from database_models import User

    async def load(session):
        result = await session.execute(select(User.email))
        return sorted(result.scalars().all())
    return run_db(load)


def test_paid_webhook_updates_account(api, run_db):
    _create(run_db, "a@b.com")

    response = api.post(
        "/api/billing/webhook",
        json={"email": "A@B.com", "status": "paid", "next_due_date": "2099-01-01"},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Payment status updated successfully"}
    assert _stored(run_db, "a@b.com") == (True, "active", date(2099, 1, 1))


def test_webhook_replay_is_idempotent(api, run_db):
    _create(run_db, "a@b.com")
    payload = {"email": "a@b.com", "status": "paid", "next_due_date": "2099-01-01"}

    api.post("/api/billing/webhook", json=payload)
    once = _stored(run_db, "a@b.com")
    api.post("/api/billing/webhook", json=payload)

    assert _stored(run_db, "a@b.com") == once


@pytest.mark.parametrize("payload", [
    {"status": "paid"},
    {"email": "a@b.com"},
    {"email": "", "status": ""},
])
def test_webhook_missing_fields_is_rejected_without_mutation(api, run_db, payload):
    _create(run_db, "a@b.com")

    response = api.post("/api/billing/webhook", json=payload)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert _stored(run_db, "a@b.com") == (False, "trial", None)


def test_webhook_non_json_body_is_rejected(api):
    response = api.post(
        "/api/billing/webhook",
        content=b"email=a@b.com",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == 400


def test_webhook_unknown_email_is_404_without_mutation(api, run_db):
    _create(run_db, "a@b.com")

    response = api.post("/api/billing/webhook", json={"email": "ghost@b.com", "status": "paid"})

    assert response.status_code == 404
    assert _all_emails(run_db) == ["a@b.com"]
    assert _stored(run_db, "a@b.com") == (False, "trial", None)


def test_webhook_only_accepts_post(api):
    assert api.get("/api/billing/webhook").status_code == 405


def test_webhook_secret_is_enforced_when_configured(api, run_db):
    _create(run_db, "a@b.com")
    payload = {"email": "a@b.com", "status": "paid"}

    with patch("routers.billing_router.settings.payment_webhook_secret", "s3cret"):
        rejected = api.post("/api/billing/webhook", json=payload, headers={"X-Webhook-Secret": "wrong"})
        accepted = api.post("/api/billing/webhook", json=payload, headers={"X-Webhook-Secret": "s3cret"})

    assert rejected.status_code == 401
    assert accepted.status_code == 200


def test_webhook_persistence_failure_is_500(api, run_db):
    from backend.utils.errors import PersistenceError

    _create(run_db, "a@b.com")

    with patch("crud.user.UserRepository.update_payment_state", side_effect=PersistenceError("disk full")):
        response = api.post("/api/billing/webhook", json={"email": "a@b.com", "status": "paid"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "disk full"}


def test_trial_lapses_then_payment_restores_access(api, run_db):
    _create(run_db, "a@b.com", days_ago=8)
    headers = {"Authorization": f"Bearer {create_jwt('a@b.com')}"}

    expired = api.get("/api/premium/status", headers=headers).json()
    assert expired["status"] == "expired"
    assert expired["trialExpired"] is True
    assert expired["trialDaysLeft"] == 0
    assert should_block_access(expired["status"], expired["isPaying"], expired["nextDueDate"]) is True

    webhook = api.post(
        "/api/billing/webhook",
        json={"email": "a@b.com", "status": "paid", "next_due_date": "2099-01-01"},
    )
    assert webhook.status_code == 200

    restored = api.get("/api/premium/status", headers=headers).json()
    assert restored["status"] == "active"
    assert restored["isPremium"] is True
    assert restored["nextDueDate"] == "2099-01-01"
    assert should_block_access(restored["status"], restored["isPaying"], restored["nextDueDate"]) is False


def test_checkout_requires_authentication(api):
    response = api.post("/api/billing/create-checkout-session")

    assert response.status_code == 401
    assert response.json()["error"] == "auth_error"


def test_checkout_without_stripe_configuration(api):
    headers = {"Authorization": f"Bearer {create_jwt('a@b.com')}"}

    with patch("services.billing_service.settings.stripe_secret_key", None):
        response = api.post("/api/billing/create-checkout-session", headers=headers)

    assert response.status_code == 400
    assert response.json()["ok"] is False
    assert "STRIPE_SECRET_KEY" in response.json()["message"]


def test_portal_returns_session_url(api):
    headers = {"Authorization": f"Bearer {create_jwt('a@b.com')}"}

    async def fake_portal(self, email):
        assert email == "a@b.com"
        return {"data": "https://billing.example/session", "is_error": False}

    with patch("services.billing_service.BillingService.create_billing_portal_session", fake_portal):
        response = api.post("/api/billing/portal", headers=headers)

    assert response.status_code == 200
    assert response.json()["data"] == {"url": "https://billing.example/session"}
