"""
Billing flows with the Stripe SDK mocked out.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from stripe import StripeError


@pytest.fixture
def stripe_mock(monkeypatch):
    mock = MagicMock()
    mock.Customer.list.return_value = {"data": []}
    monkeypatch.setattr("services.subscription_service.stripe", mock)
    return mock


def _parse(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def test_first_check_starts_trial(client, student, stripe_mock):
    response = client.post("/functions/check-subscription", headers=student["headers"])
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["subscribed"] is True
    assert body["subscription_tier"] == "trial"
    trial_end = _parse(body["trial_end"])
    if trial_end.tzinfo is None:
        trial_end = trial_end.replace(tzinfo=timezone.utc)
    remaining = trial_end - datetime.now(timezone.utc)
    assert timedelta(days=13) < remaining <= timedelta(days=14)

    stored = client.get("/subscriptions/me", headers=student["headers"]).json()
    assert stored["subscription_tier"] == "trial"
    stripe_mock.Customer.list.assert_called_with(api_key="sk_test_dummy", email=student["email"], limit=1)


def test_active_subscription_is_premium(client, student, stripe_mock):
    stripe_mock.Customer.list.return_value = {"data": [{"id": "cus_123"}]}
    stripe_mock.Subscription.list.return_value = {"data": [{"current_period_end": 1900000000}]}

    body = client.post("/functions/check-subscription", headers=student["headers"]).json()
    assert body["subscribed"] is True
    assert body["subscription_tier"] == "premium"
    assert _parse(body["subscription_end"]).year == 2030


def _days_later(monkeypatch, days):
    later = datetime.now(timezone.utc) + timedelta(days=days)
    monkeypatch.setattr("services.subscription_service.utcnow", lambda: later)


def test_trial_without_customer_expires(client, student, stripe_mock, monkeypatch):
    client.post("/functions/check-subscription", headers=student["headers"])

    _days_later(monkeypatch, 10)
    body = client.post("/functions/check-subscription", headers=student["headers"]).json()
    assert body["subscription_tier"] == "trial"

    _days_later(monkeypatch, 15)
    body = client.post("/functions/check-subscription", headers=student["headers"]).json()
    assert body["subscribed"] is False
    assert body["subscription_tier"] is None
    stored = client.get("/subscriptions/me", headers=student["headers"]).json()
    assert stored["subscribed"] is False


def test_customer_without_subscription_after_trial(client, student, stripe_mock, monkeypatch):
    client.post("/functions/check-subscription", headers=student["headers"])
    stripe_mock.Customer.list.return_value = {"data": [{"id": "cus_77"}]}
    stripe_mock.Subscription.list.return_value = {"data": []}

    body = client.post("/functions/check-subscription", headers=student["headers"]).json()
    assert body["subscription_tier"] == "trial"

    _days_later(monkeypatch, 15)
    body = client.post("/functions/check-subscription", headers=student["headers"]).json()
    assert body["subscribed"] is False
    assert body["subscription_tier"] is None
    stored = client.get("/subscriptions/me", headers=student["headers"]).json()
    assert stored["subscribed"] is False


def test_create_checkout(client, student, stripe_mock):
    stripe_mock.Customer.create.return_value = {"id": "cus_new"}
    stripe_mock.checkout.Session.create.return_value = {"id": "cs_1", "url": "https://checkout.test/cs_1"}

    response = client.post(
        "/functions/create-checkout", json={"origin": "https://app.edukeeper.test"}, headers=student["headers"]
    )
    assert response.status_code == 200, response.text
    assert response.json() == {"url": "https://checkout.test/cs_1"}

    kwargs = stripe_mock.checkout.Session.create.call_args.kwargs
    assert kwargs["customer"] == "cus_new"
    assert kwargs["mode"] == "subscription"
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 490
    assert kwargs["line_items"][0]["price_data"]["currency"] == "eur"
    assert kwargs["subscription_data"] == {"trial_period_days": 14}
    assert kwargs["success_url"] == "https://app.edukeeper.test/success"
    assert kwargs["cancel_url"] == "https://app.edukeeper.test/cancel"


def test_customer_portal_requires_customer(client, student, stripe_mock):
    response = client.post("/functions/customer-portal", headers=student["headers"])
    assert response.status_code == 400

    stripe_mock.Customer.list.return_value = {"data": [{"id": "cus_9"}]}
    stripe_mock.billing_portal.Session.create.return_value = {"url": "https://billing.test/p"}
    response = client.post(
        "/functions/customer-portal", json={"origin": "https://app.edukeeper.test"}, headers=student["headers"]
    )
    assert response.json() == {"url": "https://billing.test/p"}
    kwargs = stripe_mock.billing_portal.Session.create.call_args.kwargs
    assert kwargs["return_url"] == "https://app.edukeeper.test/subscription"


def test_stripe_error_maps_to_502(client, student, stripe_mock):
    stripe_mock.Customer.list.side_effect = StripeError("network down")
    response = client.post("/functions/check-subscription", headers=student["headers"])
    assert response.status_code == 502
    assert response.json()["error"]["type"] == "PaymentServiceException"


def test_subscription_interest_without_sign_in(client):
    response = client.post(
        "/functions/send-subscription-interest",
        json={"email": "parent@example.com", "name": "Parent", "message": "Intéressé par l'offre famille"},
    )
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Intérêt pour l'abonnement enregistré",
        "email_sent": False,
    }

    response = client.post("/functions/send-subscription-interest", json={"message": "Anonyme"})
    assert response.status_code == 200
