"""
Shared fixtures.

The database URL is pointed at in-memory SQLite before anything from
``src`` is imported; every test gets a freshly created schema.
"""
import itertools
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"
os.environ["RUN_DB_INIT"] = "false"
os.environ["DEBUG"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient

from src.core.database import async_session_maker, drop_db, engine, init_db
from src.main import app

API = "/api"

_serials = itertools.count(1)
_uids = itertools.count(1000)


@pytest.fixture
async def database():
    await init_db()
    yield
    await drop_db()
    await engine.dispose()


@pytest.fixture
async def session(database):
    async with async_session_maker() as db:
        yield db


@pytest.fixture
async def client(database):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def create_tenant(client):
    async def _create(**overrides):
        payload = {"name": "Acme", "contact_email": "ops@acme.com", **overrides}
        response = await client.post(f"{API}/tenants", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def create_device_type(client):
    async def _create(**overrides):
        payload = {"name": "Thermometer", "description": "Temperature sensor", **overrides}
        response = await client.post(f"{API}/device-types", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def create_gateway(client, create_tenant):
    async def _create(tenant_id=None, **overrides):
        if tenant_id is None:
            tenant_id = (await create_tenant())["id"]
        n = next(_serials)
        payload = {
            "serial_number": f"SN-{n}",
            "name": f"Gateway {n}",
            "ipv4_address": f"10.0.{n // 250}.{n % 250 + 1}",
            "status": "ACTIVE",
            "tenant_id": tenant_id,
            **overrides,
        }
        response = await client.post(f"{API}/gateways", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def create_device(client, create_device_type):
    async def _create(device_type_id=None, **overrides):
        if device_type_id is None:
            device_type_id = (await create_device_type())["id"]
        payload = {
            "uid": str(next(_uids)),
            "vendor": "Bosch",
            "status": "ONLINE",
            "device_type_id": device_type_id,
            **overrides,
        }
        response = await client.post(f"{API}/devices", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def attach(client):
    async def _attach(gateway_id, device_id):
        return await client.post(
            f"{API}/gateways/{gateway_id}/devices",
            json={"deviceId": device_id},
        )

    return _attach


@pytest.fixture
def gateway_logs(client):
    async def _logs(gateway_id):
        response = await client.get(f"{API}/gateways/{gateway_id}/logs")
        assert response.status_code == 200, response.text
        return response.json()

    return _logs
