from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta


def _iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def _post_txn(api_client, headers, date, amount, txn_type="deposit", **extra):
    body = {
        "date": _iso(date),
        "amount": amount,
        "externalIBAN": "NL05INGB0374182583",
        "type": txn_type,
        "description": "test",
    }
    body.update(extra)
    resp = api_client.post("/api/v1/transactions", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def test_missing_or_unknown_session_is_unauthorized(api_client):
    assert api_client.get("/api/v1/transactions").status_code == 401
    resp = api_client.get("/api/v1/transactions", headers={"X-session-ID": "nope"})
    assert resp.status_code == 401


def test_session_id_query_param_is_accepted(api_client, session_headers):
    session_id = session_headers["X-session-ID"]
    resp = api_client.get("/api/v1/transactions", params={"session_id": session_id})
    assert resp.status_code == 200
    assert resp.json() == []


def test_transaction_crud_roundtrip(api_client, session_headers):
    created = _post_txn(api_client, session_headers, datetime(2024, 1, 5, 10, 0), 213.12)
    assert created["amount"] == 213.12
    assert created["externalIBAN"] == "NL05INGB0374182583"
    assert created["category"] is None

    txn_id = created["id"]
    got = api_client.get(f"/api/v1/transactions/{txn_id}", headers=session_headers)
    assert got.status_code == 200
    assert got.json()["type"] == "deposit"

    updated = api_client.put(
        f"/api/v1/transactions/{txn_id}",
        json={"date": "2024-01-06T10:00:00.000Z", "amount": 10, "type": "withdrawal"},
        headers=session_headers,
    )
    assert updated.status_code == 200
    assert updated.json()["type"] == "withdrawal"
    assert updated.json()["externalIBAN"] is None

    assert api_client.delete(f"/api/v1/transactions/{txn_id}", headers=session_headers).status_code == 204
    assert api_client.get(f"/api/v1/transactions/{txn_id}", headers=session_headers).status_code == 404


def test_invalid_transaction_input_is_405(api_client, session_headers):
    resp = api_client.post(
        "/api/v1/transactions",
        json={"date": "2024-01-05T10:00:00.000Z", "amount": 10, "type": "gift"},
        headers=session_headers,
    )
    assert resp.status_code == 405

    resp = api_client.post(
        "/api/v1/transactions",
        json={"date": "2024-01-05T10:00:00.000Z", "type": "deposit"},
        headers=session_headers,
    )
    assert resp.status_code == 405

    resp = api_client.post(
        "/api/v1/transactions",
        json={"date": "2024-01-05T10:00:00.000Z", "amount": -3, "type": "deposit"},
        headers=session_headers,
    )
    assert resp.status_code == 405


def test_other_sessions_transaction_is_not_found(api_client, session_headers):
    created = _post_txn(api_client, session_headers, datetime(2024, 1, 5), 5)
    other = {"X-session-ID": api_client.post("/api/v1/sessions").json()["id"]}

    assert api_client.get(f"/api/v1/transactions/{created['id']}", headers=other).status_code == 404
    assert api_client.delete(f"/api/v1/transactions/{created['id']}", headers=other).status_code == 404


def test_transaction_list_paginates_and_filters_by_category(api_client, session_headers):
    cat = api_client.post("/api/v1/categories", json={"name": "Food"}, headers=session_headers).json()
    ids = []
    for day in range(1, 5):
        extra = {"category": {"id": cat["id"], "name": "Food"}} if day % 2 == 0 else {}
        ids.append(_post_txn(api_client, session_headers, datetime(2024, 1, day), day, **extra)["id"])

    page = api_client.get("/api/v1/transactions", params={"offset": 1, "limit": 2}, headers=session_headers)
    assert [t["id"] for t in page.json()] == ids[1:3]

    food = api_client.get("/api/v1/transactions", params={"category": "Food"}, headers=session_headers)
    assert [t["id"] for t in food.json()] == [ids[1], ids[3]]
    assert food.json()[0]["category"] == {"id": cat["id"], "name": "Food"}

    too_big = api_client.get("/api/v1/transactions", params={"limit": 101}, headers=session_headers)
    assert too_big.status_code == 405


def test_patch_transaction_category(api_client, session_headers):
    txn = _post_txn(api_client, session_headers, datetime(2024, 1, 5), 5)
    cat = api_client.post("/api/v1/categories", json={"name": "Misc"}, headers=session_headers).json()

    resp = api_client.patch(
        f"/api/v1/transactions/{txn['id']}/category",
        json={"category_id": cat["id"]},
        headers=session_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["category"]["name"] == "Misc"

    other = {"X-session-ID": api_client.post("/api/v1/sessions").json()["id"]}
    foreign = api_client.post("/api/v1/categories", json={"name": "Theirs"}, headers=other).json()
    resp = api_client.patch(
        f"/api/v1/transactions/{txn['id']}/category",
        json={"category_id": foreign["id"]},
        headers=session_headers,
    )
    assert resp.status_code == 404


def test_balance_history_week_scenario(api_client, session_headers):
    now = _now()
    _post_txn(api_client, session_headers, now - relativedelta(months=3), 200)
    _post_txn(api_client, session_headers, now - timedelta(hours=2), 500)
    _post_txn(api_client, session_headers, now - timedelta(hours=2), 100, "withdrawal")

    resp = api_client.get(
        "/api/v1/balance/history",
        params={"interval": "week", "intervals": 1},
        headers=session_headers,
    )
    assert resp.status_code == 200
    (bucket,) = resp.json()
    assert (bucket["open"], bucket["close"], bucket["high"], bucket["low"], bucket["volume"]) == (
        200,
        600,
        700,
        200,
        600,
    )


def test_balance_history_defaults_and_empty_session(api_client, session_headers):
    resp = api_client.get("/api/v1/balance/history", headers=session_headers)
    assert resp.status_code == 200
    (bucket,) = resp.json()
    assert bucket["close"] == 0
    assert bucket["volume"] == 0

    resp = api_client.get("/api/v1/balance/history", params={"intervals": 5, "interval": "day"}, headers=session_headers)
    assert len(resp.json()) == 5


def test_balance_history_rejects_bad_parameters(api_client, session_headers):
    resp = api_client.get("/api/v1/balance/history", params={"interval": "wrong"}, headers=session_headers)
    assert resp.status_code == 405

    resp = api_client.get("/api/v1/balance/history", params={"intervals": 0}, headers=session_headers)
    assert resp.status_code == 405


def test_balance_history_rejects_interval_count_above_cap(api_client, session_headers):
    resp = api_client.get(
        "/api/v1/balance/history",
        params={"interval": "hour", "intervals": 500},
        headers=session_headers,
    )
    assert resp.status_code == 405

    resp = api_client.get(
        "/api/v1/balance/history",
        params={"interval": "hour", "intervals": 200},
        headers=session_headers,
    )
    assert resp.status_code == 200
    assert len(resp.json()) == 200
