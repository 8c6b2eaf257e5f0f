"""
Tenant endpoint tests
"""
import uuid

import pytest

API = "/api/tenants"


@pytest.mark.asyncio
async def test_create_tenant(client):
    response = await client.post(API, json={"name": "Acme", "contact_email": "ops@acme.com"})

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Acme"
    assert data["contact_email"] == "ops@acme.com"
    uuid.UUID(data["id"])
    assert data["created_at"]


@pytest.mark.asyncio
async def test_create_tenant_validation(client):
    response = await client.post(API, json={"name": "", "contact_email": "nope"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert body["code"] == "VALIDATION_ERROR"
    fields = {issue["field"]: issue["code"] for issue in body["details"]}
    assert fields == {"body.name": "too_small", "body.contact_email": "invalid_format"}


@pytest.mark.asyncio
async def test_list_tenants_includes_gateways_and_devices(client, create_gateway, create_device, attach):
    gateway = await create_gateway()
    device = await create_device()
    await attach(gateway["id"], device["id"])

    response = await client.get(API)

    assert response.status_code == 200
    tenants = response.json()
    assert len(tenants) == 1
    gateways = tenants[0]["gateways"]
    assert [g["id"] for g in gateways] == [gateway["id"]]
    assert gateways[0]["devices"][0]["id"] == device["id"]
    assert gateways[0]["devices"][0]["device_type"]["name"] == "Thermometer"


@pytest.mark.asyncio
async def test_get_tenant(client, create_tenant):
    tenant = await create_tenant(name="Globex")

    response = await client.get(f"{API}/{tenant['id']}")

    assert response.status_code == 200
    assert response.json()["name"] == "Globex"
    assert response.json()["gateways"] == []


@pytest.mark.asyncio
async def test_get_missing_tenant(client):
    response = await client.get(f"{API}/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json()["error"] == "Tenant not found"
    assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_get_tenant_with_malformed_id(client):
    response = await client.get(f"{API}/not-a-uuid")

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "params.tenant_id"
    assert response.json()["details"][0]["code"] == "invalid_format"


@pytest.mark.asyncio
async def test_update_tenant_applies_only_sent_fields(client, create_tenant):
    tenant = await create_tenant()

    response = await client.put(f"{API}/{tenant['id']}", json={"name": "Acme Corp"})

    assert response.status_code == 200
    assert response.json()["name"] == "Acme Corp"
    assert response.json()["contact_email"] == "ops@acme.com"


@pytest.mark.asyncio
async def test_update_tenant_rejects_null(client, create_tenant):
    tenant = await create_tenant()

    response = await client.put(f"{API}/{tenant['id']}", json={"contact_email": None})

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "body.contact_email"


@pytest.mark.asyncio
async def test_update_missing_tenant(client):
    response = await client.put(f"{API}/{uuid.uuid4()}", json={"name": "X"})

    assert response.status_code == 404
    assert response.json()["error"] == "Tenant not found"


@pytest.mark.asyncio
async def test_delete_tenant(client, create_tenant):
    tenant = await create_tenant()

    response = await client.delete(f"{API}/{tenant['id']}")
    assert response.status_code == 204
    assert response.content == b""

    response = await client.get(f"{API}/{tenant['id']}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_tenant_owning_gateways(client, create_gateway):
    gateway = await create_gateway()

    response = await client.delete(f"{API}/{gateway['tenant_id']}")

    assert response.status_code == 409
    assert response.json()["error"] == "Tenant still owns gateways"
    assert (await client.get(f"/api/gateways/{gateway['id']}")).status_code == 200


@pytest.mark.asyncio
async def test_delete_missing_tenant(client):
    response = await client.delete(f"{API}/{uuid.uuid4()}")

    assert response.status_code == 404
