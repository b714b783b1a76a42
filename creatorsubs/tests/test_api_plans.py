"""HTTP tests for /v1/plans and /v1/promo-codes."""

CREATOR = {"X-User-Id": "creator-1"}
OTHER = {"X-User-Id": "creator-2"}

GOLD = {"name": "Gold", "price": "9.99", "billing_interval": "month", "interval_count": 1}


def _create_plan(client, body=None, headers=CREATOR):
    resp = client.post("/v1/plans", json=body or GOLD, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def test_create_and_fetch_plan(client):
    plan = _create_plan(client)
    assert plan["creator_id"] == "creator-1"
    assert plan["price"] == "9.99"
    assert plan["billing_interval"] == "month"

    resp = client.get(f"/v1/plans/{plan['id']}", headers=OTHER)
    assert resp.status_code == 200
    assert resp.json()["data"]["id"] == plan["id"]


def test_create_for_someone_else_forbidden(client):
    resp = client.post("/v1/plans", json={**GOLD, "creator_id": "creator-2"}, headers=CREATOR)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "forbidden"


def test_list_creator_plans(client):
    _create_plan(client)
    _create_plan(client, {**GOLD, "name": "Silver", "price": "4.99"})
    resp = client.get("/v1/plans/creator/creator-1", headers=OTHER)
    body = resp.json()
    assert resp.status_code == 200
    assert body["count"] == 2
    assert {p["name"] for p in body["data"]} == {"Gold", "Silver"}


def test_missing_plan_404(client):
    resp = client.get("/v1/plans/nope", headers=CREATOR)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "plan_not_found"


def test_update_and_delete_are_owner_only(client):
    plan = _create_plan(client)

    resp = client.put(f"/v1/plans/{plan['id']}", json={"name": "Mine"}, headers=OTHER)
    assert resp.status_code == 403

    resp = client.put(f"/v1/plans/{plan['id']}", json={"is_active": False}, headers=CREATOR)
    assert resp.status_code == 200
    assert resp.json()["data"]["is_active"] is False

    assert client.delete(f"/v1/plans/{plan['id']}", headers=OTHER).status_code == 403
    resp = client.delete(f"/v1/plans/{plan['id']}", headers=CREATOR)
    assert resp.status_code == 200
    assert resp.json()["data"] == {"plan_id": plan["id"], "deleted": True}
    assert client.get(f"/v1/plans/{plan['id']}", headers=CREATOR).status_code == 404


def test_null_update_rejected_and_plan_still_readable(client):
    plan = _create_plan(client)

    resp = client.put(f"/v1/plans/{plan['id']}", json={"is_active": None}, headers=CREATOR)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"

    resp = client.get(f"/v1/plans/{plan['id']}", headers=CREATOR)
    assert resp.status_code == 200
    assert resp.json()["data"]["is_active"] is True
    assert client.get("/v1/plans/creator/creator-1", headers=CREATOR).json()["count"] == 1


def test_sub_cent_price_rejected(client):
    resp = client.post("/v1/plans", json={**GOLD, "price": "50.004"}, headers=CREATOR)
    assert resp.status_code == 422


def test_set_default_plan(client):
    free = _create_plan(client, {"name": "Free", "price": "0"})
    resp = client.post(
        "/v1/plans/creator/set-default",
        json={"plan_id": free["id"], "subscription_type": "free"},
        headers=CREATOR,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["default_subscription_plan_id"] == free["id"]

    resp = client.get("/v1/plans/creator/creator-1/default", headers=OTHER)
    assert resp.json()["data"]["default_subscription_type"] == "free"


def test_set_default_errors(client):
    free = _create_plan(client, {"name": "Free", "price": "0"})

    resp = client.post("/v1/plans/creator/set-default", json={"subscription_type": "paid"}, headers=CREATOR)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "plan_required"

    resp = client.post(
        "/v1/plans/creator/set-default",
        json={"plan_id": free["id"], "subscription_type": "paid"},
        headers=CREATOR,
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "type_mismatch"

    resp = client.post(
        "/v1/plans/creator/set-default",
        json={"plan_id": free["id"], "subscription_type": "free"},
        headers=OTHER,
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_plan"


def test_promo_code_crud(client):
    plan = _create_plan(client)
    resp = client.post(
        "/v1/promo-codes",
        json={"code": "SAVE10", "discount_percent": "10", "applicable_plan_ids": [plan["id"]]},
        headers=CREATOR,
    )
    assert resp.status_code == 201
    promo = resp.json()["data"]

    listed = client.get("/v1/promo-codes", headers=CREATOR).json()
    assert listed["count"] == 1
    assert client.get("/v1/promo-codes", headers=OTHER).json()["count"] == 0
    assert client.get(f"/v1/promo-codes/{promo['id']}", headers=OTHER).status_code == 403

    resp = client.put(f"/v1/promo-codes/{promo['id']}", json={"is_active": False}, headers=CREATOR)
    assert resp.json()["data"]["is_active"] is False

    assert client.delete(f"/v1/promo-codes/{promo['id']}", headers=CREATOR).status_code == 200
    resp = client.get(f"/v1/promo-codes/{promo['id']}", headers=CREATOR)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "promo_code_not_found"


def test_promo_for_foreign_plan_rejected(client):
    plan = _create_plan(client)
    resp = client.post(
        "/v1/promo-codes",
        json={"code": "STEAL", "discount_percent": "50", "applicable_plan_ids": [plan["id"]]},
        headers=OTHER,
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_plan"
