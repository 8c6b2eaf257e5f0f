"""
Device type endpoint tests
"""
import pytest

API = "/api/device-types"


@pytest.mark.asyncio
async def test_create_device_type(client):
    response = await client.post(API, json={"name": "Relay", "description": "Switching relay"})

    assert response.status_code == 201
    data = response.json()
    assert isinstance(data["id"], int)
    assert data["name"] == "Relay"
    assert data["description"] == "Switching relay"


@pytest.mark.asyncio
async def test_create_device_type_name_too_long(client):
    response = await client.post(API, json={"name": "x" * 51, "description": "d"})

    assert response.status_code == 400
    [issue] = response.json()["details"]
    assert issue["field"] == "body.name"
    assert issue["code"] == "too_big"


@pytest.mark.asyncio
async def test_list_device_types_includes_devices(client, create_device_type, create_device):
    device_type = await create_device_type()
    device = await create_device(device_type_id=device_type["id"])

    response = await client.get(API)

    assert response.status_code == 200
    [listed] = response.json()
    assert [d["id"] for d in listed["devices"]] == [device["id"]]


@pytest.mark.asyncio
async def test_get_device_type(client, create_device_type):
    device_type = await create_device_type(name="Meter")

    response = await client.get(f"{API}/{device_type['id']}")

    assert response.status_code == 200
    assert response.json()["name"] == "Meter"
    assert response.json()["devices"] == []


@pytest.mark.asyncio
async def test_get_missing_device_type(client):
    response = await client.get(f"{API}/999")

    assert response.status_code == 404
    assert response.json()["error"] == "Device type not found"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("raw_id", "code"),
    [("0", "too_small"), ("abc", "invalid_type")],
)
async def test_device_type_id_must_be_positive_integer(client, raw_id, code):
    response = await client.get(f"{API}/{raw_id}")

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "params.device_type_id"
    assert response.json()["details"][0]["code"] == code


@pytest.mark.asyncio
async def test_update_device_type(client, create_device_type):
    device_type = await create_device_type()

    response = await client.patch(f"{API}/{device_type['id']}", json={"description": "Indoor sensor"})

    assert response.status_code == 200
    assert response.json()["name"] == "Thermometer"
    assert response.json()["description"] == "Indoor sensor"


@pytest.mark.asyncio
async def test_update_missing_device_type(client):
    response = await client.patch(f"{API}/999", json={"name": "X"})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_device_type(client, create_device_type):
    device_type = await create_device_type()

    response = await client.delete(f"{API}/{device_type['id']}")
    assert response.status_code == 204

    response = await client.get(f"{API}/{device_type['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_device_type_in_use(client, create_device):
    device = await create_device()

    response = await client.delete(f"{API}/{device['device_type_id']}")

    assert response.status_code == 409
    assert response.json()["error"] == "Device type is in use"
