"""
Integration tests for the tracking note endpoints.

Runs the full FastAPI app against a temporary tracking file.
"""

from __future__ import annotations


def test_empty_store(api_client):
    assert api_client.get("/api/tracking").json() == {"records": []}
    assert api_client.get("/api/tracking/24BE0001").json() == {"tracking_records": []}


def test_post_then_read_newest_first(api_client):
    first = {"mrn": "24BE0002", "tracking_data": {"action": "note", "note": "called broker", "user": "Ann"}}
    second = {"mrn": "24BE0002", "tracking_data": {"action": "checked", "user": "Bob"}}

    response = api_client.post("/api/tracking", json=first)
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Tracking recorded"}
    api_client.post("/api/tracking", json=second)

    entries = api_client.get("/api/tracking/24BE0002").json()["tracking_records"]
    assert [e["user"] for e in entries] == ["Bob", "Ann"]
    assert all(e["timestamp"] for e in entries)

    records = api_client.get("/api/tracking").json()["records"]
    assert [r["MRN"] for r in records] == ["24BE0002"]


def test_user_defaults_to_signed_in_operator(api_client, easy_auth_headers):
    api_client.post(
        "/api/tracking",
        json={"mrn": "24BE0003", "tracking_data": {"action": "note", "note": "x"}},
        headers=easy_auth_headers(),
    )
    api_client.post(
        "/api/tracking",
        json={"mrn": "24BE0003", "tracking_data": {"action": "note", "user": "Explicit"}},
        headers=easy_auth_headers(),
    )
    entries = api_client.get("/api/tracking/24BE0003").json()["tracking_records"]
    assert [e["user"] for e in entries] == ["Explicit", "Jane Operator"]


def test_missing_fields_are_400(api_client):
    for body in ({}, {"mrn": "X"}, {"tracking_data": {"a": 1}}, {"mrn": "", "tracking_data": {"a": 1}}):
        response = api_client.post("/api/tracking", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}


def test_empty_tracking_data_is_accepted(api_client):
    response = api_client.post("/api/tracking", json={"mrn": "X", "tracking_data": {}})
    assert response.status_code == 200
    entries = api_client.get("/api/tracking/X").json()["tracking_records"]
    assert len(entries) == 1
    assert entries[0]["timestamp"]

    response = api_client.post("/api/tracking/bulk", json={"records": [{"mrn": "Y", "tracking_data": {}}]})
    assert response.json() == {"success": True, "message": "1 records updated successfully"}


def test_empty_body_is_400(api_client):
    response = api_client.post("/api/tracking")
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields"}


def test_oversized_tracking_data_is_400(api_client):
    response = api_client.post("/api/tracking", json={"mrn": "X", "tracking_data": {"note": "x" * 10_001}})
    assert response.status_code == 400
    assert "too long" in response.json()["error"]
    assert api_client.get("/api/tracking").json() == {"records": []}


def test_bulk_update(api_client, tracking_store):
    body = {
        "records": [
            {"mrn": "A", "tracking_data": {"action": "checked", "user": "Ann"}},
            {"mrn": "B", "tracking_data": {"action": "checked", "user": "Ann"}},
            {"mrn": "A", "tracking_data": {"action": "note", "note": "again", "user": "Ann"}},
        ]
    }
    response = api_client.post("/api/tracking/bulk", json=body)
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "3 records updated successfully"}
    assert [e["action"] for e in tracking_store.get_entries("A")] == ["note", "checked"]


def test_bulk_requires_records_array(api_client):
    for body in ({}, {"records": "nope"}, {"records": {"mrn": "A"}}):
        response = api_client.post("/api/tracking/bulk", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid input containing records array"}


def test_bulk_rejects_whole_batch_on_bad_item(api_client, tracking_store):
    body = {
        "records": [
            {"mrn": "A", "tracking_data": {"action": "checked"}},
            {"mrn": "B"},
        ]
    }
    response = api_client.post("/api/tracking/bulk", json=body)
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields"}
    assert tracking_store.list_records() == []


def test_bulk_batch_size_limit(api_client):
    records = [{"mrn": f"M{i}", "tracking_data": {"action": "checked"}} for i in range(501)]
    response = api_client.post("/api/tracking/bulk", json={"records": records})
    assert response.status_code == 400
    assert "maximum 500" in response.json()["error"]


def test_corrupt_file_is_500_without_details(api_client, tracking_store):
    tracking_store.path.write_text("{oops", encoding="utf-8")
    response = api_client.get("/api/tracking")
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to read tracking data"
    assert str(tracking_store.path) not in response.text
