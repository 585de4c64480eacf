import os
import sys
from uuid import uuid4

from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from servicematch.main import app
from servicematch.services.matching_engine import matching_engine

client = TestClient(app)
store = matching_engine.store


def _category() -> str:
    return f"roofing{uuid4().hex[:6]}"


def _schedule() -> dict:
    return {"date": "2026-11-02", "time": "10:00"}


def _login(user_id: str) -> str:
    login = client.post("/auth/login", json={"user_id": user_id, "password": "servicematch-demo"})
    assert login.status_code == 200
    return login.json()["access_token"]


def test_health_ok():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_ready_reports_catalogue():
    response = client.get("/ready")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ready"
    assert payload["approved_providers"] >= 4
    assert payload["push_enabled"] is False


def test_auth_login_and_me():
    token = _login("client_api")
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user_id"] == "client_api"


def test_auth_rejects_bad_password():
    response = client.post("/auth/login", json={"user_id": "client_api", "password": "nope"})
    assert response.status_code == 401


def test_provider_login_requires_catalogue_entry():
    missing = client.post(
        "/auth/login",
        json={"user_id": "prov_missing", "password": "servicematch-demo", "role": "provider"},
    )
    assert missing.status_code == 404

    login = client.post("/auth/login", json={"user_id": "prov_1", "password": "servicematch-demo", "role": "provider"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    refreshed = client.post("/auth/refresh", headers={"Authorization": f"Bearer {token}"})
    assert refreshed.status_code == 200
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {refreshed.json()['access_token']}"})
    assert me.json()["user_id"] == "prov_1"
    assert me.json()["role"] == "provider"

    assert client.post("/auth/refresh").status_code == 401


def test_discover_seeded_electricians_hides_suspended():
    response = client.post(
        "/matching/discover",
        json={"category": "electrical", "location": {"area": "Kilimani"}, "schedule": _schedule()},
    )
    assert response.status_code == 200
    payload = response.json()
    ids = [row["provider_id"] for row in payload["providers"]]
    assert "prov_5" not in ids
    assert ids[0] == "prov_1"
    assert payload["providers"][0]["match_type"] == "exact-service"
    assert payload["category"] == "electrical"
    assert payload["location"] == "Kilimani"


def test_discover_accepts_category_object():
    category = _category()
    provider = store.add_provider(name="Paa Masters", status="approved", service_areas=["Karen"])
    store.add_listing(provider_id=provider.id, category=category, title="Roof Repair", price=6000)

    response = client.post(
        "/matching/discover",
        json={
            "category": {"id": category, "name": "Roofing"},
            "location": {"area": "Karen"},
            "schedule": _schedule(),
            "providers_needed": 1,
        },
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["total_found"] == 1
    assert payload["providers"][0]["provider_id"] == provider.id
    assert payload["search_strategies"]["exact_services"] == 1


def test_discover_with_no_matches_is_empty_success():
    response = client.post(
        "/matching/discover",
        json={"category": _category(), "location": {"area": "Karen"}, "schedule": _schedule()},
    )
    assert response.status_code == 200
    assert response.json()["providers"] == []


def test_discover_rejects_malformed_request():
    missing_area = client.post(
        "/matching/discover",
        json={"category": "electrical", "location": {"area": "  "}, "schedule": _schedule()},
    )
    assert missing_area.status_code == 422

    bad_date = client.post(
        "/matching/discover",
        json={"category": "electrical", "location": {"area": "Kilimani"}, "schedule": {"date": "02/11/2026", "time": "10:00"}},
    )
    assert bad_date.status_code == 422

    too_many = client.post(
        "/matching/discover",
        json={"category": "electrical", "location": {"area": "Kilimani"}, "schedule": _schedule(), "providers_needed": 50},
    )
    assert too_many.status_code == 422


def test_provider_listings_route():
    response = client.get("/providers/prov_2/listings")
    assert response.status_code == 200
    assert {row["title"] for row in response.json()} >= {"Deep Cleaning", "Office Cleaning"}

    missing = client.get("/providers/prov_missing/listings")
    assert missing.status_code == 404


def test_auto_booking_end_to_end():
    category = _category()
    provider = store.add_provider(name="Juu Roofers", status="approved", skills=[category], service_areas=["Karen"])
    client_id = f"client_{uuid4().hex[:6]}"

    response = client.post(
        "/bookings",
        json={
            "client_id": client_id,
            "category": category,
            "location": {"area": "Karen"},
            "schedule": _schedule(),
            "urgency": "urgent",
        },
    )
    assert response.status_code == 201
    booking = response.json()
    assert booking["provider_id"] == provider.id
    assert booking["service_id"]
    assert booking["assignment_method"] == "auto-assigned"
    assert booking["status"] == "pending"

    listings = client.get(f"/providers/{provider.id}/listings").json()
    assert [row["id"] for row in listings] == [booking["service_id"]]
    assert listings[0]["origin"] == "synthesized"

    fetched = client.get(f"/bookings/{booking['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["booking_number"] == booking["booking_number"]

    inbox = client.get("/notifications", params={"user_id": provider.id, "booking_only": True})
    assert inbox.status_code == 200
    assert any(row["title"] == "New booking request" for row in inbox.json())


def test_booking_with_suspended_selection_returns_field_error():
    category = _category()
    provider = store.add_provider(name="Paa Suspended", status="suspended", service_areas=["Karen"])
    listing = store.add_listing(provider_id=provider.id, category=category, title="Roof Repair", price=6000)
    client_id = f"client_{uuid4().hex[:6]}"

    response = client.post(
        "/bookings",
        json={
            "client_id": client_id,
            "category": category,
            "location": {"area": "Karen"},
            "schedule": _schedule(),
            "selected_provider": {"_id": provider.id, "service": {"_id": listing.id}},
        },
    )
    assert response.status_code == 400
    assert response.json()["detail"]["field"] == "id"

    bookings = client.get("/bookings", params={"client_id": client_id})
    assert bookings.status_code == 200
    assert bookings.json() == []


def test_camel_case_selection_books_chosen_provider():
    chosen = store.add_provider(name="Zz Chosen", status="approved", skills=["Electrician"], service_areas=["Kilimani"])
    client_id = f"client_{uuid4().hex[:6]}"

    response = client.post(
        "/bookings",
        json={
            "clientId": client_id,
            "category": "electrical",
            "location": {"area": "Kilimani"},
            "schedule": _schedule(),
            "providersNeeded": 2,
            "paymentTiming": "pay-now",
            "selectedProvider": {"id": chosen.id},
        },
    )
    assert response.status_code == 201
    booking = response.json()
    assert booking["provider_id"] == chosen.id
    assert booking["client_id"] == client_id
    assert booking["assignment_method"] == "synthesized-fallback"
    assert booking["payment"]["status"] == "completed"
    assert booking["metadata"]["providers_needed"] == 2


def test_booking_without_candidates_is_not_found():
    response = client.post(
        "/bookings",
        json={"client_id": "client_api", "category": _category(), "location": {"area": "Karen"}, "schedule": _schedule()},
    )
    assert response.status_code == 404


def test_booking_token_must_match_client():
    token = _login("client_other")
    response = client.post(
        "/bookings",
        json={"client_id": "client_api", "category": "electrical", "location": {"area": "Kilimani"}, "schedule": _schedule()},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 403


def test_booking_status_updates_and_notifies_client():
    category = _category()
    provider = store.add_provider(name="Paa Pros", status="approved", service_areas=["Karen"])
    listing = store.add_listing(provider_id=provider.id, category=category, title="Roof Repair", price=6000)
    client_id = f"client_{uuid4().hex[:6]}"

    created = client.post(
        "/bookings",
        json={
            "client_id": client_id,
            "category": category,
            "location": {"area": "Karen"},
            "schedule": _schedule(),
            "selected_provider": {"id": provider.id, "serviceId": listing.id},
        },
    )
    assert created.status_code == 201
    booking_id = created.json()["id"]
    assert created.json()["assignment_method"] == "user-selected"

    forbidden = client.post(f"/bookings/{booking_id}/status", json={"actor_user_id": client_id, "status": "confirmed"})
    assert forbidden.status_code == 403

    invalid = client.post(f"/bookings/{booking_id}/status", json={"actor_user_id": provider.id, "status": "completed"})
    assert invalid.status_code == 400

    confirmed = client.post(f"/bookings/{booking_id}/status", json={"actor_user_id": provider.id, "status": "confirmed"})
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"

    inbox = client.get("/notifications", params={"user_id": client_id}).json()
    titles = [row["title"] for row in inbox]
    assert "Booking updated" in titles
    assert "Booking received" in titles

    unread = inbox[0]
    marked = client.post(f"/notifications/{unread['id']}/read", params={"user_id": client_id})
    assert marked.status_code == 200
    assert marked.json()["read"] is True

    count = client.get("/notifications/unread-count", params={"user_id": client_id}).json()
    assert count["unread"] == len(inbox) - 1
    cleared = client.post("/notifications/read-all", params={"user_id": client_id}).json()
    assert cleared["marked"] == len(inbox) - 1
    assert client.get("/notifications", params={"user_id": client_id, "unread_only": True}).json() == []


def test_status_update_for_unknown_booking():
    response = client.post("/bookings/bk_missing/status", json={"actor_user_id": "prov_1", "status": "confirmed"})
    assert response.status_code == 404


def test_register_device():
    response = client.post("/notifications/devices", json={"user_id": "client_api", "device_token": "tok-123"})
    assert response.status_code == 200
    assert response.json() == {"status": "registered", "platform": "android"}
