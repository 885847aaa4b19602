"""
End-to-end API Tests.

Generate options, select one, drive every leg and check the shipment is
notified exactly once, through the HTTP surface.
"""

import pytest

from cargo_backend.tests.factories import create_carrier, create_deposit, create_tariff


@pytest.fixture
async def catalog(db_session):
    """Standard tariff, one deposit between Cordoba and Rosario, three carriers."""
    await create_tariff(db_session)
    deposit = await create_deposit(db_session, "Villa Maria", -32.4075, -63.2403)
    for i in range(3):
        await create_carrier(db_session, f"API00{i}")
    return {"deposit_id": deposit.id}


async def generate(client, auth_headers, **extra):
    payload = {"origin": "Cordoba", "destination": "Rosario", "weight_kg": "500", "volume_m3": "5"}
    payload.update(extra)
    return await client.post("/v1/route-options", json=payload, headers=auth_headers)


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["redis"] == "up"


@pytest.mark.asyncio
async def test_missing_credentials_rejected(client):
    response = await client.get("/v1/geo/resolve", params={"query": "Cordoba"})

    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_unreadable_token_rejected(client):
    response = await client.get(
        "/v1/geo/resolve", params={"query": "Cordoba"}, headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"


@pytest.mark.asyncio
async def test_resolve_and_unknown_address(client, auth_headers):
    found = await client.get("/v1/geo/resolve", params={"query": "Rosario"}, headers=auth_headers)
    missing = await client.get("/v1/geo/resolve", params={"query": "Atlantis"}, headers=auth_headers)

    assert found.status_code == 200
    assert found.json() == {"latitude": -32.9442, "longitude": -60.6505}
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "ERR_GEO_001"


@pytest.mark.asyncio
async def test_out_of_range_coordinates(client, auth_headers):
    response = await client.get("/v1/geo/resolve", params={"query": "95,10"}, headers=auth_headers)

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_GEO_002"


@pytest.mark.asyncio
async def test_distance_endpoint(client, auth_headers):
    response = await client.get(
        "/v1/distance",
        params={"origin": "-31.4201,-64.1888", "destination": "Rosario"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "haversine"
    assert float(body["distance_km"]) > 300
    assert body["duration_label"].endswith("m")


@pytest.mark.asyncio
async def test_price_estimate(client, auth_headers, catalog):
    response = await client.post(
        "/v1/pricing/estimate",
        json={"origin": "Cordoba", "destination": "Rosario", "weight_kg": "500", "volume_m3": "5"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["distance_source"] == "haversine"
    # 50 fee + 2.00 per km
    assert float(body["total_cost"]) == pytest.approx(50 + 2 * float(body["distance_km"]), abs=0.01)


@pytest.mark.asyncio
async def test_price_estimate_outside_bands(client, auth_headers, catalog, fake_providers):
    response = await client.post(
        "/v1/pricing/estimate",
        json={"origin": "Cordoba", "destination": "Rosario", "weight_kg": "5000", "volume_m3": "5"},
        headers=auth_headers,
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_TARIFF_001"
    assert fake_providers.requests == []


@pytest.mark.asyncio
async def test_request_validation_envelope(client, auth_headers):
    response = await client.post(
        "/v1/route-options",
        json={"origin": "Cordoba", "destination": "Rosario", "weight_kg": "-1", "volume_m3": "5"},
        headers=auth_headers,
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_full_shipment_flow(client, auth_headers, catalog, shipment_port):
    options = await generate(client, auth_headers, via_deposit_ids=[catalog["deposit_id"]])
    assert options.status_code == 200
    body = options.json()
    assert body["total_options"] == 1
    option = body["options"][0]
    assert len(option["legs"]) == 2

    selected = await client.post(
        "/v1/routes",
        json={"shipment_id": 77, "option_id": option["option_id"]},
        headers=auth_headers,
    )
    assert selected.status_code == 201
    route = selected.json()
    assert route["status"] == "ACTIVE"
    assert [leg["state"] for leg in route["legs"]] == ["SCHEDULED", "SCHEDULED"]

    costs = ["100.00", "150.00"]
    for leg, cost in zip(route["legs"], costs):
        started = await client.post(f"/v1/legs/{leg['id']}/start", headers=auth_headers)
        assert started.status_code == 200
        assert started.json()["leg"]["state"] == "IN_PROGRESS"

        completed = await client.post(
            f"/v1/legs/{leg['id']}/complete",
            json={"actual_cost": cost, "actual_duration_minutes": "60"},
            headers=auth_headers,
        )
        assert completed.status_code == 200
        assert completed.json()["carrier_released"] is True

    cascade = completed.json()["cascade"]
    assert cascade["triggered"] is True
    assert cascade["notified"] is True
    assert float(cascade["final_cost"]) == 250.0

    assert len(shipment_port.in_transit_calls) == 1
    assert shipment_port.in_transit_calls[0]["shipment_id"] == 77
    assert len(shipment_port.calls) == 1
    assert shipment_port.calls[0]["shipment_id"] == 77
    assert shipment_port.calls[0]["credential"] == auth_headers["Authorization"].split(" ", 1)[1]

    actual = await client.get("/v1/pricing/shipments/77/actual", headers=auth_headers)
    assert actual.status_code == 200
    assert actual.json()["route_status"] == "COMPLETED"
    assert float(actual.json()["total_cost"]) == 250.0
    assert actual.json()["completed_legs"] == 2

    audit = await client.get("/v1/admin/ops/audit", params={"action": "SHIPMENT_COMPLETION_NOTIFIED"}, headers=auth_headers)
    assert len(audit.json()) == 1


@pytest.mark.asyncio
async def test_options_ranked_and_reselection_conflict(client, auth_headers, catalog):
    body = (await generate(client, auth_headers)).json()
    assert [o["rank_index"] for o in body["options"]] == list(range(1, body["total_options"] + 1))
    option_id = body["options"][0]["option_id"]

    first = await client.post("/v1/routes", json={"shipment_id": 9, "option_id": option_id}, headers=auth_headers)
    second = await client.post("/v1/routes", json={"shipment_id": 9, "option_id": option_id}, headers=auth_headers)

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["error_code"] == "ERR_ROUTE_002"


@pytest.mark.asyncio
async def test_unknown_option(client, auth_headers):
    response = await client.post("/v1/routes", json={"shipment_id": 9, "option_id": "expired"}, headers=auth_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_invalid_transition_envelope(client, auth_headers, catalog):
    option_id = (await generate(client, auth_headers)).json()["options"][0]["option_id"]
    route = (await client.post("/v1/routes", json={"shipment_id": 3, "option_id": option_id}, headers=auth_headers)).json()

    response = await client.post(f"/v1/legs/{route['legs'][0]['id']}/complete", headers=auth_headers)

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_LEG_001"


@pytest.mark.asyncio
async def test_failed_notification_retry_via_api(client, auth_headers, catalog, shipment_port):
    option_id = (await generate(client, auth_headers)).json()["options"][0]["option_id"]
    route = (await client.post("/v1/routes", json={"shipment_id": 5, "option_id": option_id}, headers=auth_headers)).json()
    shipment_port.fail = True

    for leg in route["legs"]:
        await client.post(f"/v1/legs/{leg['id']}/start", headers=auth_headers)
        completed = await client.post(f"/v1/legs/{leg['id']}/complete", headers=auth_headers)

    assert completed.status_code == 200
    dlq_id = completed.json()["cascade"]["dlq_id"]
    assert dlq_id is not None

    queued = await client.get("/v1/admin/ops/dlq", headers=auth_headers)
    assert [item["id"] for item in queued.json()] == [dlq_id]

    shipment_port.fail = False
    retried = await client.post(f"/v1/admin/ops/dlq/{dlq_id}/retry", headers=auth_headers)

    assert retried.status_code == 200
    assert retried.json()["delivered"] is True
    assert retried.json()["status"] == "PROCESSED"
    assert (await client.get("/v1/admin/ops/dlq", headers=auth_headers)).json() == []


@pytest.mark.asyncio
async def test_catalog_registration(client, auth_headers):
    tariff = await client.post(
        "/v1/admin/catalog/tariffs",
        json={
            "name": "Winter",
            "fixed_management_fee": "40",
            "fuel_unit_price": "1.2",
            "bands": [{"volume_min": "0", "volume_max": "10", "cost_per_distance_unit": "2.5"}],
        },
        headers=auth_headers,
    )
    assert tariff.status_code == 201
    assert len(tariff.json()["bands"]) == 1

    carrier = {
        "plate": "AA000AA",
        "max_weight_kg": "1000",
        "max_volume_m3": "10",
        "cost_per_distance_unit": "1.0",
    }
    created = await client.post("/v1/admin/catalog/carriers", json=carrier, headers=auth_headers)
    duplicate = await client.post("/v1/admin/catalog/carriers", json=carrier, headers=auth_headers)

    assert created.status_code == 201
    assert created.json()["available"] is True
    assert duplicate.status_code == 409
    assert duplicate.json()["error_code"] == "ERR_CONFLICT"


@pytest.mark.asyncio
async def test_catalog_rejects_inverted_band(client, auth_headers):
    response = await client.post(
        "/v1/admin/catalog/tariffs",
        json={
            "name": "Broken",
            "fixed_management_fee": "40",
            "fuel_unit_price": "1.2",
            "bands": [{"volume_min": "10", "volume_max": "5", "cost_per_distance_unit": "2.5"}],
        },
        headers=auth_headers,
    )

    assert response.status_code == 400
