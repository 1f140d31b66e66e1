# tests/test_admin_endpoints.py
import pytest
from fastapi.testclient import TestClient

from tenant_relay.main import create_app
from tenant_relay.settings import settings
from tenant_relay.turns.models import RuntimeOutput
from tenant_relay.turns.runtime import AbstractRuntimeClient
from tenant_relay.utils.security import generate_fernet_key

ADMIN_HEADERS = {"X-Admin-API-Key": "test-admin-key"}


class EchoRuntime(AbstractRuntimeClient):
    """Replies with the API key it was handed so tests can see which credentials won."""

    def __init__(self):
        self.credentials = []

    async def interact(self, user_id, utterance, credentials):
        self.credentials.append(credentials)
        return [RuntimeOutput(type="text", value=f"{credentials.api_key}:{utterance}")]


def _activity(tenant_id: str, text: str = "hello", company: str = "Acme") -> dict:
    return {
        "type": "message",
        "text": text,
        "from": {"id": "user-7", "name": "Pat"},
        "conversation": {"id": "conv-1", "tenantId": tenant_id},
        "channelData": {"team": {"id": "team-1", "name": company}},
    }


@pytest.fixture
def runtime():
    return EchoRuntime()


@pytest.fixture
def client(monkeypatch, runtime):
    monkeypatch.setattr(settings, "storage_backend", "memory")
    monkeypatch.setattr(settings, "admin_api_key", "test-admin-key")
    monkeypatch.setattr(settings, "secondary_index_enabled", False)
    monkeypatch.setattr(settings, "notification_webhook_url", None)
    monkeypatch.setattr(settings, "relay_encryption_key", None)
    monkeypatch.setattr(settings, "voiceflow_api_key", "env-key")
    monkeypatch.setattr(settings, "voiceflow_version", "production")
    with TestClient(create_app(runtime_client=runtime)) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["storage_backend"] == "memory"


def test_admin_routes_require_key(client):
    assert client.get("/admin/tenants/").status_code == 401
    assert client.get("/admin/tenants/", headers={"X-Admin-API-Key": "wrong"}).status_code == 403


def test_admin_routes_disabled_without_server_key(client, monkeypatch):
    monkeypatch.setattr(settings, "admin_api_key", None)
    assert client.get("/admin/tenants/", headers=ADMIN_HEADERS).status_code == 503


def test_unknown_tenant_is_404(client):
    response = client.get("/admin/tenants/nobody", headers=ADMIN_HEADERS)
    assert response.status_code == 404


def test_first_message_creates_tenant(client):
    response = client.post("/api/messages", json=_activity("tenant-42"))

    assert response.status_code == 200
    body = response.json()
    assert body["record_status"] == "committed"
    assert body["credentials_source"] == "default"
    assert body["outputs"][0]["value"] == "env-key:hello"

    record = client.get("/admin/tenants/tenant-42", headers=ADMIN_HEADERS)
    assert record.status_code == 200
    assert record.headers["etag"]
    data = record.json()
    assert data["id"] == "tenant-42"
    assert data["userId"] == "user-7"
    assert data["companyName"] == "Acme"
    assert "lastSeen" in data


def test_non_message_activity_is_skipped(client):
    response = client.post(
        "/api/messages",
        json={"type": "conversationUpdate", "conversation": {"tenantId": "tenant-9"}},
    )

    assert response.json()["record_status"] == "skipped"
    assert client.get("/admin/tenants/tenant-9", headers=ADMIN_HEADERS).status_code == 404


def test_credentials_update_applies_to_next_message(client):
    client.post("/api/messages", json=_activity("tenant-42"))
    etag = client.get("/admin/tenants/tenant-42", headers=ADMIN_HEADERS).headers["etag"]

    response = client.put(
        "/admin/tenants/tenant-42/provider-credentials",
        json={"voiceflow_secret": "tenant-secret", "voiceflow_version": "v2"},
        headers={**ADMIN_HEADERS, "If-Match": etag},
    )
    assert response.status_code == 200
    assert response.json()["voiceflowSecret"] == "********"
    assert response.headers["etag"] != etag

    turn = client.post("/api/messages", json=_activity("tenant-42", text="again")).json()
    assert turn["credentials_source"] == "tenant"
    assert turn["outputs"][0]["value"] == "tenant-secret:again"


def test_stale_if_match_is_409(client):
    client.post("/api/messages", json=_activity("tenant-42"))
    etag = client.get("/admin/tenants/tenant-42", headers=ADMIN_HEADERS).headers["etag"]
    client.post("/api/messages", json=_activity("tenant-42"))

    response = client.put(
        "/admin/tenants/tenant-42/provider-credentials",
        json={"voiceflow_secret": "tenant-secret"},
        headers={**ADMIN_HEADERS, "If-Match": etag},
    )

    assert response.status_code == 409


def test_credentials_for_missing_tenant_is_404(client):
    response = client.put(
        "/admin/tenants/ghost/provider-credentials",
        json={"voiceflow_secret": "s"},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 404


def test_reserved_fields_rejected(client):
    client.post("/api/messages", json=_activity("tenant-42"))

    response = client.patch(
        "/admin/tenants/tenant-42/fields",
        json={"fields": {"lastSeen": "2000-01-01T00:00:00+00:00"}},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 422


def test_admin_fields_survive_message_upsert(client):
    client.post("/api/messages", json=_activity("tenant-42"))
    client.patch(
        "/admin/tenants/tenant-42/fields",
        json={"fields": {"plan": "enterprise", "companyName": "Acme Corp"}},
        headers=ADMIN_HEADERS,
    )

    client.post("/api/messages", json=_activity("tenant-42", company="Renamed Team"))

    data = client.get("/admin/tenants/tenant-42", headers=ADMIN_HEADERS).json()
    assert data["plan"] == "enterprise"
    assert data["companyName"] == "Acme Corp"


def test_list_tenants_is_ordered(client):
    for tenant_id in ("tenant-b", "tenant-a", "tenant-c"):
        client.post("/api/messages", json=_activity(tenant_id))

    response = client.get("/admin/tenants/", params={"limit": 2}, headers=ADMIN_HEADERS)

    assert [t["id"] for t in response.json()] == ["tenant-a", "tenant-b"]


def test_secret_encrypted_at_rest_when_key_configured(monkeypatch, runtime):
    monkeypatch.setattr(settings, "storage_backend", "memory")
    monkeypatch.setattr(settings, "admin_api_key", "test-admin-key")
    monkeypatch.setattr(settings, "secondary_index_enabled", False)
    monkeypatch.setattr(settings, "notification_webhook_url", None)
    monkeypatch.setattr(settings, "relay_encryption_key", generate_fernet_key())
    app = create_app(runtime_client=runtime)

    with TestClient(app) as client:
        client.post("/api/messages", json=_activity("tenant-42"))
        client.put(
            "/admin/tenants/tenant-42/provider-credentials",
            json={"voiceflow_secret": "sk-live"},
            headers=ADMIN_HEADERS,
        )
        stored = app.state.tenant_backend._documents["tenant-42"][0]
        turn = client.post("/api/messages", json=_activity("tenant-42")).json()

    assert stored["voiceflowSecret"] != "sk-live"
    assert turn["outputs"][0]["value"] == "sk-live:hello"


def test_numeric_admin_field_keeps_message_path_working(client):
    client.post("/api/messages", json=_activity("tenant-42"))

    patched = client.patch(
        "/admin/tenants/tenant-42/fields",
        json={"fields": {"voiceflowVersion": 3}},
        headers=ADMIN_HEADERS,
    )
    turn = client.post("/api/messages", json=_activity("tenant-42"))

    assert patched.status_code == 200
    assert patched.json()["voiceflowVersion"] == "3"
    assert turn.status_code == 200
    assert turn.json()["record_status"] == "committed"
