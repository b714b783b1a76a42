"""HTTP tests for /v1/subscriptions, including the full subscribe/cancel flow."""

CREATOR = {"X-User-Id": "creator-1"}
FAN = {"X-User-Id": "fan-1"}


def _plan(client, **fields):
    body = {"name": "Gold", "price": "9.99", "billing_interval": "month", "interval_count": 1, **fields}
    return client.post("/v1/plans", json=body, headers=CREATOR).json()["data"]


def _subscribe(client, plan, headers=FAN, **fields):
    return client.post(
        "/v1/subscriptions",
        json={"creator_id": plan["creator_id"], "plan_id": plan["id"], **fields},
        headers=headers,
    )


def test_subscribe_cancel_flow(client):
    plan = _plan(client)

    resp = _subscribe(client, plan)
    assert resp.status_code == 201, resp.text
    sub = resp.json()["data"]
    assert sub["id"] == "fan-1_creator-1"
    assert sub["status"] == "active"
    assert sub["final_price"] is None
    assert sub["end_date"].startswith("2024-02-29T12:00:00")

    active = client.get("/v1/subscriptions/to/creator-1/active", headers=FAN)
    assert active.status_code == 200
    assert active.json()["data"]["id"] == sub["id"]

    listing = client.get("/v1/subscriptions/by-creator/creator-1", headers=CREATOR).json()
    assert listing["count"] == 1

    resp = client.put(f"/v1/subscriptions/{sub['id']}/cancel", headers=FAN)
    assert resp.status_code == 200
    cancelled = resp.json()["data"]
    assert cancelled["status"] == "cancelled"
    assert cancelled["will_renew"] is False
    assert cancelled["next_billing_date"] is None

    resp = client.put(f"/v1/subscriptions/{sub['id']}/cancel", headers=FAN)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "already_inactive"

    assert client.get("/v1/subscriptions/to/creator-1/active", headers=FAN).status_code == 404
    latest = client.get("/v1/subscriptions/to/creator-1/latest", headers=FAN).json()["data"]
    assert latest["status"] == "cancelled"

    # Cancelled but still inside the paid window
    assert client.get("/v1/subscriptions/by-creator/creator-1", headers=CREATOR).json()["count"] == 1


def test_subscribe_with_promo(client):
    plan = _plan(client, price="20.00")
    client.post(
        "/v1/promo-codes",
        json={"code": "SAVE25", "discount_percent": "25", "applicable_plan_ids": [plan["id"]]},
        headers=CREATOR,
    )
    sub = _subscribe(client, plan, promo_code="SAVE25").json()["data"]
    assert sub["final_price"] == "15.00"
    assert sub["promo_code"] == "SAVE25"


def test_subscribe_with_offset_less_promo_expiry(client):
    plan = _plan(client, price="20.00")
    resp = client.post(
        "/v1/promo-codes",
        json={
            "code": "SAVE",
            "discount_percent": "25",
            "applicable_plan_ids": [plan["id"]],
            "expires_at": "2030-01-01T00:00:00",
        },
        headers=CREATOR,
    )
    assert resp.status_code == 201, resp.text

    resp = _subscribe(client, plan, promo_code="SAVE")
    assert resp.status_code == 201, resp.text
    assert resp.json()["data"]["final_price"] == "15.00"


def test_subscribe_errors(client):
    cheap = _plan(client, price="3.00")
    resp = _subscribe(client, cheap)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "price_out_of_bounds"

    plan = _plan(client)
    resp = _subscribe(client, plan, headers=CREATOR)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "self_subscription_forbidden"

    resp = _subscribe(client, plan, promo_code="NOPE")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_promo"

    assert _subscribe(client, plan).status_code == 201
    resp = _subscribe(client, plan)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "already_subscribed"

    resp = client.post(
        "/v1/subscriptions", json={"creator_id": "creator-2", "plan_id": plan["id"]}, headers=FAN
    )
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "plan_creator_mismatch"


def test_subscriber_list_is_creator_only(client):
    resp = client.get("/v1/subscriptions/by-creator/creator-1", headers=FAN)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "forbidden"


def test_my_subscriptions_and_visibility(client):
    plan = _plan(client)
    sub = _subscribe(client, plan).json()["data"]

    mine = client.get("/v1/subscriptions/me", headers=FAN).json()
    assert [s["id"] for s in mine["data"]] == [sub["id"]]
    assert client.get("/v1/subscriptions/me", params={"status": "cancelled"}, headers=FAN).json()["count"] == 0

    assert client.get(f"/v1/subscriptions/{sub['id']}", headers=CREATOR).status_code == 200
    resp = client.get(f"/v1/subscriptions/{sub['id']}", headers={"X-User-Id": "stranger"})
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "not_authorized"

    resp = client.put(f"/v1/subscriptions/{sub['id']}/cancel", headers=CREATOR)
    assert resp.status_code == 403
