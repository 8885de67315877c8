import pytest

from conftest import register


@pytest.fixture
def shared_trip(client, auth_headers, second_user):
    trip = client.post("/api/trips", json={"name": "Shared"}, headers=auth_headers).json()
    client.post(f"/api/trips/{trip['id']}/participants", json={
        "name": "User Two", "email": "user2@example.com"
    }, headers=auth_headers)
    res = client.post("/api/auth/login", json={"email": "user2@example.com", "password": "testpass123"})
    headers2 = {"Authorization": f"Bearer {res.json()['access_token']}"}
    return trip["id"], trip["created_by"], headers2


def test_record_and_list_payments(client, auth_headers, shared_trip):
    tid, owner_id, headers2 = shared_trip
    res = client.post("/api/payments", json={"trip_id": tid, "to_user_id": owner_id, "amount": 50.0}, headers=headers2)
    assert res.status_code == 200
    assert res.json()["status"] == "pending"

    res = client.get(f"/api/payments?trip_id={tid}", headers=auth_headers)
    payments = res.json()
    assert len(payments) == 1
    assert payments[0]["amount"] == 50.0


def test_payment_validation(client, auth_headers, shared_trip, second_user):
    tid, owner_id, headers2 = shared_trip
    assert client.post("/api/payments", json={
        "trip_id": tid, "to_user_id": owner_id, "amount": -5.0
    }, headers=headers2).status_code == 422
    assert client.post("/api/payments", json={
        "trip_id": tid, "to_user_id": second_user["id"], "amount": 5.0
    }, headers=headers2).status_code == 400
    assert client.post("/api/payments", json={
        "trip_id": tid, "to_user_id": 999, "amount": 5.0
    }, headers=headers2).status_code == 400


def test_only_recipient_confirms(client, auth_headers, shared_trip):
    tid, owner_id, headers2 = shared_trip
    pid = client.post("/api/payments", json={
        "trip_id": tid, "to_user_id": owner_id, "amount": 20.0
    }, headers=headers2).json()["id"]

    res = client.patch(f"/api/payments/{pid}", json={"status": "confirmed"}, headers=headers2)
    assert res.status_code == 403

    res = client.patch(f"/api/payments/{pid}", json={"status": "settled"}, headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["status"] == "settled"

    res = client.patch(f"/api/payments/{pid}", json={"status": "bogus"}, headers=auth_headers)
    assert res.status_code == 422


def test_outsider_cannot_touch_payments(client, auth_headers, shared_trip):
    tid, owner_id, headers2 = shared_trip
    pid = client.post("/api/payments", json={
        "trip_id": tid, "to_user_id": owner_id, "amount": 20.0
    }, headers=headers2).json()["id"]
    _, nosy = register(client, "nosy@example.com", "Nosy")
    assert client.get(f"/api/payments?trip_id={tid}", headers=nosy).status_code == 403
    assert client.patch(f"/api/payments/{pid}", json={"status": "pending"}, headers=nosy).status_code == 403
    assert client.patch("/api/payments/999", json={"status": "pending"}, headers=nosy).status_code == 404


def test_sender_cannot_undo_a_confirmation(client, auth_headers, shared_trip):
    tid, owner_id, headers2 = shared_trip
    pid = client.post("/api/payments", json={
        "trip_id": tid, "to_user_id": owner_id, "amount": 20.0
    }, headers=headers2).json()["id"]
    assert client.patch(f"/api/payments/{pid}", json={"status": "pending"}, headers=headers2).status_code == 200

    client.patch(f"/api/payments/{pid}", json={"status": "confirmed"}, headers=auth_headers)
    res = client.patch(f"/api/payments/{pid}", json={"status": "pending"}, headers=headers2)
    assert res.status_code == 403

    res = client.patch(f"/api/payments/{pid}", json={"status": "pending"}, headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["status"] == "pending"
