"""
Peripheral device endpoint tests
"""
import uuid

import pytest

API = "/api/devices"


@pytest.mark.asyncio
async def test_create_device(client, create_device_type):
    device_type = await create_device_type()

    response = await client.post(
        API,
        json={"uid": "123", "vendor": "V", "status": "ONLINE", "device_type_id": device_type["id"]},
    )

    assert response.status_code == 201
    device = response.json()
    assert device["uid"] == "123"
    assert device["vendor"] == "V"
    assert device["status"] == "ONLINE"
    assert device["gateway_id"] is None
    assert device["gateway"] is None
    assert device["last_seen_at"] is None
    assert device["device_type"]["id"] == device_type["id"]


@pytest.mark.asyncio
async def test_create_device_large_uid_round_trips_as_string(client, create_device_type):
    device_type = await create_device_type()

    response = await client.post(
        API,
        json={"uid": "9223372036854775807", "vendor": "V", "status": "OFFLINE", "device_type_id": device_type["id"]},
    )

    assert response.status_code == 201
    assert response.json()["uid"] == "9223372036854775807"


@pytest.mark.asyncio
async def test_create_device_duplicate_uid(client, create_device):
    device = await create_device()

    response = await client.post(
        API,
        json={"uid": device["uid"], "vendor": "Other", "status": "ONLINE", "device_type_id": device["device_type_id"]},
    )

    assert response.status_code == 409
    assert response.json()["error"] == "Device UID already exists"


@pytest.mark.asyncio
async def test_create_device_invalid_uid(client, create_device_type):
    device_type = await create_device_type()

    response = await client.post(
        API,
        json={"uid": "12ab", "vendor": "V", "status": "ONLINE", "device_type_id": device_type["id"]},
    )

    assert response.status_code == 400
    [issue] = response.json()["details"]
    assert issue["field"] == "body.uid"
    assert issue["code"] == "invalid_format"


@pytest.mark.asyncio
async def test_create_device_unknown_device_type(client):
    response = await client.post(
        API,
        json={"uid": "77", "vendor": "V", "status": "ONLINE", "device_type_id": 4242},
    )

    assert response.status_code == 404
    assert response.json()["error"] == "Device type not found"


@pytest.mark.asyncio
async def test_create_device_attached_to_gateway(client, create_device_type, create_gateway, gateway_logs):
    device_type = await create_device_type()
    gateway = await create_gateway()

    response = await client.post(
        API,
        json={
            "uid": "555",
            "vendor": "V",
            "status": "ONLINE",
            "device_type_id": device_type["id"],
            "gateway_id": gateway["id"],
        },
    )

    assert response.status_code == 201
    device = response.json()
    assert device["gateway_id"] == gateway["id"]
    assert device["gateway"]["tenant"]["id"] == gateway["tenant_id"]

    latest = (await gateway_logs(gateway["id"]))[0]
    assert latest["action"] == "DEVICE_ATTACHED"


@pytest.mark.asyncio
async def test_create_device_unknown_gateway(client, create_device_type):
    device_type = await create_device_type()

    response = await client.post(
        API,
        json={
            "uid": "556",
            "vendor": "V",
            "status": "ONLINE",
            "device_type_id": device_type["id"],
            "gateway_id": str(uuid.uuid4()),
        },
    )

    assert response.status_code == 404
    assert response.json()["error"] == "Gateway not found"


@pytest.mark.asyncio
async def test_create_device_on_full_gateway(client, create_device_type, create_gateway, create_device):
    device_type = await create_device_type()
    gateway = await create_gateway()
    for _ in range(10):
        await create_device(device_type_id=device_type["id"], gateway_id=gateway["id"])

    response = await client.post(
        API,
        json={
            "uid": "557",
            "vendor": "V",
            "status": "ONLINE",
            "device_type_id": device_type["id"],
            "gateway_id": gateway["id"],
        },
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Gateway already has the maximum number of devices (10)"


@pytest.mark.asyncio
async def test_list_devices(client, create_device):
    first = await create_device()
    second = await create_device()

    response = await client.get(API)

    assert response.status_code == 200
    assert {d["id"] for d in response.json()} == {first["id"], second["id"]}


@pytest.mark.asyncio
async def test_get_missing_device(client):
    response = await client.get(f"{API}/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json()["error"] == "Device not found"


@pytest.mark.asyncio
async def test_update_device(client, create_device):
    device = await create_device()

    response = await client.patch(
        f"{API}/{device['id']}",
        json={"vendor": "Siemens", "status": "MAINTENANCE", "last_seen_at": "2024-05-01T10:00:00Z"},
    )

    assert response.status_code == 200
    updated = response.json()
    assert updated["vendor"] == "Siemens"
    assert updated["status"] == "MAINTENANCE"
    assert updated["last_seen_at"].startswith("2024-05-01T10:00:00")
    assert updated["uid"] == device["uid"]


@pytest.mark.asyncio
async def test_update_device_type_reference(client, create_device, create_device_type):
    device = await create_device()
    other_type = await create_device_type(name="Relay")

    response = await client.patch(f"{API}/{device['id']}", json={"device_type_id": other_type["id"]})

    assert response.status_code == 200
    assert response.json()["device_type"]["name"] == "Relay"


@pytest.mark.asyncio
async def test_update_device_unknown_device_type(client, create_device):
    device = await create_device()

    response = await client.patch(f"{API}/{device['id']}", json={"device_type_id": 4242})

    assert response.status_code == 404
    assert response.json()["error"] == "Device type not found"


@pytest.mark.asyncio
async def test_update_device_uid_is_immutable(client, create_device):
    device = await create_device()

    response = await client.patch(f"{API}/{device['id']}", json={"uid": "1"})

    assert response.status_code == 400
    assert response.json()["details"][0]["message"] == "Unrecognized key(s) in object: 'uid'"


@pytest.mark.asyncio
async def test_update_missing_device(client):
    response = await client.patch(f"{API}/{uuid.uuid4()}", json={"vendor": "X"})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_device(client, create_device):
    device = await create_device()

    response = await client.delete(f"{API}/{device['id']}")
    assert response.status_code == 204

    assert (await client.get(f"{API}/{device['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_delete_missing_device(client):
    response = await client.delete(f"{API}/{uuid.uuid4()}")

    assert response.status_code == 404
