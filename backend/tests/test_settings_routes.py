import anyio
import httpx
import pytest

from main import app
from app.object_store import ObjectStore
from app.services import StorageService, get_storage_service

RULE = {
    "AllowedOrigins": ["https://shop.example.com"],
    "AllowedMethods": ["GET", "PUT"],
    "AllowedHeaders": ["*"],
    "ExposeHeaders": ["ETag", "Content-Length", "Content-Type"],
    "MaxAgeSeconds": 3600,
}


@pytest.fixture()
def backend(fake_client):
    app.dependency_overrides[get_storage_service] = lambda: StorageService(
        ObjectStore(fake_client, "files")
    )
    yield fake_client
    app.dependency_overrides.clear()


def call(method, url, **kwargs):
    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://127.0.0.1") as client:
            return await client.request(method, url, **kwargs)

    return anyio.run(scenario)


def test_no_cors_configuration_is_empty_rules(backend):
    resp = call("GET", "/settings")

    assert resp.status_code == 200
    assert resp.json() == {"rules": []}


def test_replace_and_read_rules(backend):
    resp = call("POST", "/settings", json={"rules": [RULE]})

    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert backend.cors_rules == [RULE]
    assert call("GET", "/settings").json() == {"rules": [RULE]}


def test_optional_rule_fields_are_not_sent(backend):
    call("POST", "/settings", json={"rules": [{"AllowedOrigins": ["*"], "AllowedMethods": ["GET"]}]})

    assert backend.cors_rules == [{"AllowedOrigins": ["*"], "AllowedMethods": ["GET"]}]


@pytest.mark.parametrize(
    "payload",
    [{}, {"rules": [{"AllowedOrigins": ["*"]}]}, {"rules": [{**RULE, "Unknown": 1}]}],
)
def test_malformed_rules_are_rejected(backend, payload):
    resp = call("POST", "/settings", json=payload)

    assert resp.status_code == 400
    assert "error" in resp.json()
    assert backend.cors_rules is None


def test_store_error_on_read(backend):
    backend.fail_with = ("AccessDenied", "Access Denied")

    resp = call("GET", "/settings")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Access Denied"}
