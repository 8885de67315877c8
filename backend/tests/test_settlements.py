import pytest

from conftest import TestingSessionLocal, register
from tripsplit.models import Expense


@pytest.fixture
def setup_trip(client, auth_headers, second_user):
    trip = client.post("/api/trips", json={"name": "Test"}, headers=auth_headers).json()
    res = client.post(f"/api/trips/{trip['id']}/participants", json={
        "name": "User Two", "email": "user2@example.com"
    }, headers=auth_headers)
    me, other = (p["id"] for p in res.json()["participants"])
    return trip["id"], me, other


def _spend(client, headers, trip_id, paid_by, split, amount):
    res = client.post("/api/expenses", json={
        "trip_id": trip_id, "paid_by": paid_by, "amount": amount, "split_between": split
    }, headers=headers)
    assert res.status_code == 200


def login_second_user(client):
    res = client.post("/api/auth/login", json={"email": "user2@example.com", "password": "testpass123"})
    data = res.json()
    return data["user"], {"Authorization": f"Bearer {data['access_token']}"}


def test_settlements_balanced(client, auth_headers, setup_trip):
    tid, me, other = setup_trip
    _spend(client, auth_headers, tid, me, [me, other], 100.0)
    res = client.get(f"/api/settlements/trip/{tid}", headers=auth_headers)
    assert res.status_code == 200
    data = res.json()
    assert {b["participant_id"]: b["net_balance"] for b in data["balances"]} == {me: 50.0, other: -50.0}
    assert data["settlements"] == [{"from_participant_id": other, "to_participant_id": me, "amount": 50.0}]
    assert data["progress"]["total"] == 100.0
    assert data["progress"]["settled"] == 0.0


def test_family_shares_flow_through(client, auth_headers, setup_trip):
    tid, me, other = setup_trip
    client.patch(f"/api/trips/{tid}/participants/{other}", json={"default_shares": 3}, headers=auth_headers)
    _spend(client, auth_headers, tid, me, [me, other], 100.0)
    data = client.get(f"/api/settlements/trip/{tid}", headers=auth_headers).json()
    assert data["settlements"][0]["amount"] == 75.0


def test_confirmed_payment_changes_balances(client, auth_headers, setup_trip):
    tid, me, other = setup_trip
    _spend(client, auth_headers, tid, me, [me, other], 100.0)
    _, headers2 = login_second_user(client)
    me_user = client.get(f"/api/trips/{tid}", headers=auth_headers).json()["participants"][0]["user_id"]

    pay = client.post("/api/payments", json={"trip_id": tid, "to_user_id": me_user, "amount": 30.0}, headers=headers2)
    assert pay.status_code == 200
    assert pay.json()["status"] == "pending"

    data = client.get(f"/api/settlements/trip/{tid}", headers=auth_headers).json()
    assert data["settlements"][0]["amount"] == 50.0

    res = client.patch(f"/api/payments/{pay.json()['id']}", json={"status": "confirmed"}, headers=auth_headers)
    assert res.status_code == 200

    data = client.get(f"/api/settlements/trip/{tid}", headers=auth_headers).json()
    assert {b["participant_id"]: b["net_balance"] for b in data["balances"]} == {me: 20.0, other: -20.0}
    assert data["settlements"][0]["amount"] == 20.0
    assert data["progress"]["settled"] == 30.0
    assert data["progress"]["percentage"] == 30.0


def test_inconsistent_trip_is_refused_but_dashboard_flags_it(client, auth_headers, setup_trip):
    tid, me, other = setup_trip
    _spend(client, auth_headers, tid, me, [me, other], 100.0)
    elsewhere = client.post("/api/trips", json={"name": "Elsewhere"}, headers=auth_headers).json()
    stray = elsewhere["participants"][0]["id"]

    db = TestingSessionLocal()
    db.add(Expense(trip_id=tid, paid_by=stray, amount=40.0))
    db.commit()
    db.close()

    res = client.get(f"/api/settlements/trip/{tid}", headers=auth_headers)
    assert res.status_code == 409
    assert "inconsistency" in res.json()["detail"]

    res = client.get("/api/settlements/dashboard", headers=auth_headers)
    assert res.status_code == 200
    data = res.json()
    assert data["incomplete"] is True
    assert data["warning_count"] == 1
    assert data["owed_to_me"][0]["total_amount"] == 50.0


def test_dashboard_both_directions(client, auth_headers, setup_trip):
    tid, me, other = setup_trip
    _spend(client, auth_headers, tid, me, [me, other], 60.0)

    data = client.get("/api/settlements/dashboard", headers=auth_headers).json()
    assert data["owed_by_me"] == []
    assert data["owed_to_me"][0]["participant_name"] == "User Two"
    assert data["owed_to_me"][0]["trips"] == [{"trip_id": tid, "trip_name": "Test", "amount": 30.0}]

    _, headers2 = login_second_user(client)
    data = client.get("/api/settlements/dashboard", headers=headers2).json()
    assert data["owed_to_me"] == []
    assert data["owed_by_me"][0]["total_amount"] == 30.0
    assert data["incomplete"] is False


def test_outsider_cannot_read_settlements(client, auth_headers, setup_trip):
    tid, _, _ = setup_trip
    _, headers = register(client, "nosy@example.com", "Nosy")
    assert client.get(f"/api/settlements/trip/{tid}", headers=headers).status_code == 403


def test_suggested_payments_add_up_to_the_credit(client, auth_headers, setup_trip):
    tid, me, other = setup_trip
    res = client.post(f"/api/trips/{tid}/participants", json={"name": "Guest"}, headers=auth_headers)
    guest = res.json()["participants"][2]["id"]
    _spend(client, auth_headers, tid, me, [me, other, guest], 10.0)

    data = client.get(f"/api/settlements/trip/{tid}", headers=auth_headers).json()
    assert [(s["from_participant_id"], s["amount"]) for s in data["settlements"]] == [(other, 3.33), (guest, 3.34)]
    credit = next(b["net_balance"] for b in data["balances"] if b["participant_id"] == me)
    assert credit == 6.67


def test_trip_stats(client, auth_headers, setup_trip):
    tid, me, other = setup_trip
    client.post("/api/expenses", json={
        "trip_id": tid, "paid_by": me, "amount": 75.0, "split_between": [me, other], "category": "food"
    }, headers=auth_headers)
    _spend(client, auth_headers, tid, other, [me, other], 25.0)

    res = client.get(f"/api/settlements/trip/{tid}/stats", headers=auth_headers)
    assert res.status_code == 200
    data = res.json()
    assert data["total_expenses"] == 100.0
    assert data["expense_count"] == 2
    assert data["category_totals"] == [
        {"category": "food", "amount": 75.0, "percentage": 75.0},
        {"category": "other", "amount": 25.0, "percentage": 25.0},
    ]
    assert {s["participant_id"]: s["paid"] for s in data["participant_spending"]} == {me: 75.0, other: 25.0}
