import json

import pytest
import stripe

from app.core.config import settings


def _checkout_completed(session_id, user_id, points=200, payment_status="paid"):
    return {
        "id": f"evt_{session_id}",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "client_reference_id": str(user_id),
                "payment_status": payment_status,
                "amount_total": 999,
                "currency": "usd",
                "metadata": {"user_id": str(user_id), "price_id": "price_basic", "points": str(points)},
            }
        },
    }


@pytest.fixture
def signed_events(monkeypatch):
    """Accept any non-empty signature and return the JSON body as the event."""
    calls = []

    def fake_construct_event(payload, sig_header, secret):
        calls.append((sig_header, secret))
        if sig_header != "t=1,v1=valid":
            raise stripe.SignatureVerificationError("No signatures found", sig_header)
        return json.loads(payload)

    monkeypatch.setattr(stripe.Webhook, "construct_event", fake_construct_event)
    return calls


async def test_checkout_completed_credits_points_once(client, make_user, balance_of, signed_events):
    user = await make_user(points=3)
    event = _checkout_completed("cs_test_1", user.id)
    headers = {"stripe-signature": "t=1,v1=valid"}

    first = await client.post("/api/webhook", content=json.dumps(event), headers=headers)
    second = await client.post("/api/webhook", content=json.dumps(event), headers=headers)

    assert first.status_code == 200
    assert first.json() == {"received": True, "processed": True}
    assert second.status_code == 200
    assert second.json() == {"received": True, "processed": False}
    assert await balance_of(user.id) == 203
    assert signed_events[0][1] == settings.stripe_webhook_secret


async def test_distinct_sessions_each_credit(client, make_user, balance_of, signed_events):
    user = await make_user(points=0)
    headers = {"stripe-signature": "t=1,v1=valid"}

    for session_id in ("cs_test_a", "cs_test_b"):
        event = _checkout_completed(session_id, user.id, points=100)
        await client.post("/api/webhook", content=json.dumps(event), headers=headers)

    assert await balance_of(user.id) == 200


async def test_points_fall_back_to_price_mapping(client, make_user, balance_of, signed_events):
    user = await make_user(points=0)
    event = _checkout_completed("cs_test_price", user.id)
    event["data"]["object"]["metadata"] = {"price_id": "price_pro"}

    response = await client.post(
        "/api/webhook", content=json.dumps(event), headers={"stripe-signature": "t=1,v1=valid"}
    )

    assert response.json()["processed"] is True
    assert await balance_of(user.id) == 1000


async def test_invalid_points_metadata_is_rejected(client, make_user, balance_of, signed_events):
    user = await make_user(points=0)
    event = _checkout_completed("cs_test_badpoints", user.id)
    event["data"]["object"]["metadata"]["points"] = "lots"

    response = await client.post(
        "/api/webhook", content=json.dumps(event), headers={"stripe-signature": "t=1,v1=valid"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert await balance_of(user.id) == 0


async def test_unpaid_session_is_not_credited(client, make_user, balance_of, signed_events):
    user = await make_user(points=0)
    event = _checkout_completed("cs_test_unpaid", user.id, payment_status="unpaid")

    response = await client.post(
        "/api/webhook", content=json.dumps(event), headers={"stripe-signature": "t=1,v1=valid"}
    )

    assert response.json()["processed"] is False
    assert await balance_of(user.id) == 0


async def test_other_event_types_are_acknowledged(client, signed_events):
    event = {"id": "evt_other", "type": "customer.created", "data": {"object": {}}}

    response = await client.post(
        "/api/webhook", content=json.dumps(event), headers={"stripe-signature": "t=1,v1=valid"}
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "processed": False}


async def test_webhook_without_signature(client, make_user, balance_of, signed_events):
    user = await make_user(points=0)
    event = _checkout_completed("cs_test_nosig", user.id)

    response = await client.post("/api/webhook", content=json.dumps(event))

    assert response.status_code == 400
    assert response.json()["error"]["reason"] == "signature_missing"
    assert signed_events == []
    assert await balance_of(user.id) == 0


async def test_webhook_with_bad_signature(client, make_user, balance_of, signed_events):
    user = await make_user(points=0)
    event = _checkout_completed("cs_test_badsig", user.id)

    response = await client.post(
        "/api/webhook", content=json.dumps(event), headers={"stripe-signature": "t=1,v1=forged"}
    )

    assert response.status_code == 400
    assert response.json()["error"]["reason"] == "signature_invalid"
    assert await balance_of(user.id) == 0


async def test_create_checkout_session(client, make_user, auth_headers, monkeypatch):
    user = await make_user(email="buyer@example.com")
    captured = {}

    def fake_create(**params):
        captured.update(params)
        return {"id": "cs_test_new", "url": "https://checkout.stripe.com/c/pay/cs_test_new"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    response = await client.post(
        "/api/checkout/session", json={"priceId": "price_basic"}, headers=auth_headers(user)
    )

    assert response.status_code == 200
    assert response.json() == {"id": "cs_test_new", "url": "https://checkout.stripe.com/c/pay/cs_test_new"}
    assert captured["mode"] == "payment"
    assert captured["client_reference_id"] == str(user.id)
    assert captured["line_items"] == [{"price": "price_basic", "quantity": 1}]
    assert captured["metadata"]["points"] == "200"


async def test_checkout_with_unknown_price(client, make_user, auth_headers):
    user = await make_user()

    response = await client.post(
        "/api/checkout/session", json={"priceId": "price_unknown"}, headers=auth_headers(user)
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_checkout_requires_authentication(client):
    response = await client.post("/api/checkout/session", json={"priceId": "price_basic"})
    assert response.status_code == 401
