import pytest


def _as(user_id):
    return {"X-User-Id": user_id}


@pytest.mark.asyncio
async def test_current_subscription_defaults_to_free(api_client):
    response = await api_client.get("/subscriptions/current", headers=_as("alice"))

    assert response.status_code == 200
    subscription = response.json()["subscription"]
    assert subscription["plan"] == "free"
    assert subscription["status"] == "active"
    assert subscription["isActive"] is False


@pytest.mark.asyncio
async def test_create_and_cancel(api_client, befriend, container):
    friendship = await befriend("alice", "bob")

    created = await api_client.post(
        "/subscriptions/create",
        json={"paymentMethodId": "pm_card"},
        headers=_as("alice"),
    )
    assert created.status_code == 201
    assert created.json()["subscription"]["plan"] == "premium"
    assert created.json()["subscription"]["isActive"] is True
    stored = await container.relationships.get_friendship(friendship.id)
    assert stored.communication_level.value == "video"

    duplicate = await api_client.post("/subscriptions/create", headers=_as("alice"))
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "SUBSCRIPTION_EXISTS"

    cancelled = await api_client.post("/subscriptions/cancel", headers=_as("alice"))
    assert cancelled.status_code == 200
    assert cancelled.json()["subscription"]["status"] == "cancelled"
    stored = await container.relationships.get_friendship(friendship.id)
    assert stored.communication_level.value == "chat"


@pytest.mark.asyncio
async def test_cancel_without_subscription(api_client):
    response = await api_client.post("/subscriptions/cancel", headers=_as("alice"))
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NO_SUBSCRIPTION"


@pytest.mark.asyncio
async def test_webhook_is_unauthenticated_and_applies_event(api_client, make_premium, container):
    premium = await make_premium("alice")

    response = await api_client.post(
        "/subscriptions/webhook",
        json={
            "type": "customer.subscription.updated",
            "data": {"object": {"id": premium.external_subscription_id, "status": "past_due"}},
        },
    )

    assert response.status_code == 200
    assert response.json() == {"received": True}
    current = await container.ledger.get_current("alice")
    assert current.status.value == "past_due"


@pytest.mark.asyncio
async def test_webhook_rejects_garbage(api_client):
    not_json = await api_client.post(
        "/subscriptions/webhook",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )
    assert not_json.status_code == 400
    assert not_json.json()["error"]["code"] == "WEBHOOK_ERROR"

    malformed = await api_client.post("/subscriptions/webhook", json={"type": "invoice.payment_failed"})
    assert malformed.status_code == 400


@pytest.mark.asyncio
async def test_webhook_rejects_unreadable_period_end(api_client, make_premium, container):
    premium = await make_premium("alice")

    for period_end in ("soon", 10**20):
        response = await api_client.post(
            "/subscriptions/webhook",
            json={
                "type": "customer.subscription.updated",
                "data": {
                    "object": {
                        "id": premium.external_subscription_id,
                        "status": "active",
                        "current_period_end": period_end,
                    }
                },
            },
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "WEBHOOK_ERROR"

    current = await container.ledger.get_current("alice")
    assert current.end_date == premium.end_date
