import pytest

from ridebooking.core.exceptions import ProviderAuthError, RouteNotFound

QUOTE_BODY = {"pickup": {"lat": 24.8607, "lon": 67.0011}, "drop": {"lat": 24.9180, "lon": 67.0971}}


def _book(test_client, book_body) -> dict:
    response = test_client.post("/rides", json=book_body)
    assert response.status_code == 201
    return response.json()


@pytest.mark.unit
def test_health(test_client):
    response = test_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.unit
def test_quote(test_client):
    response = test_client.post("/rides/quote", json=QUOTE_BODY)

    assert response.status_code == 200
    data = response.json()
    assert set(data["fares"]) == {"bike", "rickshaw", "car"}
    assert data["route"]["is_estimate"] is False
    assert data["display"]["bike"].startswith("PKR ")


@pytest.mark.unit
def test_quote_estimate_when_provider_fails(test_client, provider):
    provider.outcomes = [ProviderAuthError("bad key")]

    response = test_client.post("/rides/quote", json=QUOTE_BODY)

    assert response.status_code == 200
    assert response.json()["route"]["is_estimate"] is True
    assert response.json()["route"]["error_class"] == "auth"


@pytest.mark.unit
def test_quote_outside_service_area(test_client):
    response = test_client.post(
        "/rides/quote",
        json={"pickup": {"lat": 24.8607, "lon": 67.0011}, "drop": {"lat": 25.2048, "lon": 55.2708}},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "ServiceAreaRestricted"


@pytest.mark.unit
def test_quote_invalid_coordinates(test_client):
    response = test_client.post(
        "/rides/quote",
        json={"pickup": {"lat": 124.0, "lon": 67.0011}, "drop": {"lat": 24.9180, "lon": 67.0971}},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidCoordinates"


@pytest.mark.unit
def test_quote_route_not_found(test_client, provider):
    provider.outcomes = [RouteNotFound("no road")]

    response = test_client.post("/rides/quote", json=QUOTE_BODY)

    assert response.status_code == 404
    assert response.json()["error"] == "RouteNotFound"


@pytest.mark.unit
def test_book_and_get(test_client, book_body):
    ride = _book(test_client, book_body)

    assert ride["status"] == "pending"
    assert ride["fare_display"].startswith("PKR ")
    assert ride["progress_percentage"] == 0

    response = test_client.get(f"/rides/{ride['id']}")
    assert response.status_code == 200
    assert response.json()["fare"] == ride["fare"]


@pytest.mark.unit
def test_book_rejects_bad_body(test_client, book_body):
    book_body["payment_method"] = "barter"

    response = test_client.post("/rides", json=book_body)

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


@pytest.mark.unit
def test_book_twice_conflicts(test_client, book_body):
    _book(test_client, book_body)

    response = test_client.post("/rides", json=book_body)

    assert response.status_code == 409
    assert response.json()["error"] == "ActiveRideConflict"


@pytest.mark.unit
def test_get_missing_ride(test_client):
    response = test_client.get("/rides/missing")

    assert response.status_code == 404
    assert response.json()["error"] == "RideNotFound"


@pytest.mark.unit
def test_full_lifecycle(test_client, book_body, vehicle_body):
    ride_id = _book(test_client, book_body)["id"]

    accepted = test_client.put(
        f"/rides/{ride_id}/accept", json={"driver_id": "driver-1", "vehicle": vehicle_body}
    )
    started = test_client.put(f"/rides/{ride_id}/start")
    completed = test_client.put(f"/rides/{ride_id}/complete")
    rated = test_client.put(f"/rides/{ride_id}/rate", json={"by": "passenger", "rating": 5})

    assert accepted.status_code == 200
    assert accepted.json()["vehicle"]["plate"] == "KHA-1234"
    assert started.json()["status"] == "in-progress"
    assert completed.json()["status"] == "completed"
    assert completed.json()["completed_at"] >= completed.json()["started_at"]
    assert rated.json()["passenger_rating"] == 5


@pytest.mark.unit
def test_accept_without_vehicle(test_client, book_body):
    ride_id = _book(test_client, book_body)["id"]

    response = test_client.put(f"/rides/{ride_id}/accept", json={"driver_id": "driver-1"})

    assert response.status_code == 400
    assert response.json()["error"] == "MissingVehicleInfo"


@pytest.mark.unit
def test_invalid_transition(test_client, book_body):
    ride_id = _book(test_client, book_body)["id"]

    response = test_client.put(f"/rides/{ride_id}/complete")

    assert response.status_code == 409
    assert response.json()["error"] == "InvalidStatusTransition"
    assert response.json()["details"] == {"current": "pending", "target": "completed"}


@pytest.mark.unit
def test_cancel_with_and_without_reason(test_client, book_body):
    ride_id = _book(test_client, book_body)["id"]

    response = test_client.put(f"/rides/{ride_id}/cancel", json={"reason": "found another ride"})

    assert response.status_code == 200
    assert response.json()["cancellation_reason"] == "found another ride"

    book_body["passenger_id"] = "passenger-2"
    other_id = _book(test_client, book_body)["id"]
    response = test_client.put(f"/rides/{other_id}/cancel")

    assert response.json()["cancellation_reason"] == "No reason provided"


@pytest.mark.unit
def test_cancel_reason_too_long(test_client, book_body):
    ride_id = _book(test_client, book_body)["id"]

    response = test_client.put(f"/rides/{ride_id}/cancel", json={"reason": "x" * 501})

    assert response.status_code == 400


@pytest.mark.unit
def test_rate_before_completion(test_client, book_body):
    ride_id = _book(test_client, book_body)["id"]

    response = test_client.put(f"/rides/{ride_id}/rate", json={"by": "driver", "rating": 4})

    assert response.status_code == 409
    assert response.json()["error"] == "RatingNotAllowed"


@pytest.mark.unit
def test_passenger_and_driver_listings(test_client, book_body, vehicle_body):
    ride_id = _book(test_client, book_body)["id"]
    accept = {"driver_id": "driver-1", "vehicle": vehicle_body}
    test_client.put(f"/rides/{ride_id}/accept", json=accept)

    passenger = test_client.get("/rides/passenger/passenger-1").json()
    driver = test_client.get("/rides/driver/driver-1").json()
    filtered = test_client.get("/rides/passenger/passenger-1", params={"status": "cancelled"}).json()

    assert passenger["count"] == 1
    assert driver["rides"][0]["id"] == ride_id
    assert filtered["count"] == 0


@pytest.mark.unit
def test_active_rides(test_client, book_body, vehicle_body):
    assert test_client.get("/rides/passenger/passenger-1/active").json() is None

    ride_id = _book(test_client, book_body)["id"]
    accept = {"driver_id": "driver-1", "vehicle": vehicle_body}
    test_client.put(f"/rides/{ride_id}/accept", json=accept)

    assert test_client.get("/rides/passenger/passenger-1/active").json()["id"] == ride_id
    assert test_client.get("/rides/driver/driver-1/active").json()["id"] == ride_id
    assert test_client.get("/rides/driver/driver-2/active").json() is None


@pytest.mark.unit
def test_nearby_rides(test_client, book_body):
    ride_id = _book(test_client, book_body)["id"]

    near = test_client.get("/rides/nearby", params={"lat": 24.8610, "lon": 67.0015}).json()
    far = test_client.get("/rides/nearby", params={"lat": 31.5204, "lon": 74.3587}).json()

    assert [r["id"] for r in near["rides"]] == [ride_id]
    assert far["count"] == 0


@pytest.mark.unit
def test_nearby_invalid_point(test_client):
    response = test_client.get("/rides/nearby", params={"lat": 95.0, "lon": 67.0})

    assert response.status_code == 400


@pytest.mark.unit
def test_routing_stats(test_client, book_body):
    _book(test_client, book_body)

    response = test_client.get("/routing/stats")

    assert response.status_code == 200
    data = response.json()
    assert data["provider_calls"] == 1
    assert data["cache_size"] == 1
    assert data["sweeper_running"] is True
