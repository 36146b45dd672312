"""
SealNote Backend — Note Route Tests
=====================================

What:  The HTTP API end to end: FastAPI app → services → per-test SQLite.
How:   httpx AsyncClient over ASGITransport (see conftest.test_client).
"""

import re
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from app.config import settings
from app.exceptions import ConstraintViolationError, StorageError, TransientStorageError
from app.services.note_service import note_service

NOTE_BODY = {"ciphertext": "U2FsdGVkX19hYmNk", "hmac": "f00dfeed", "crypto_version": "v1"}


def note_id_from(view_url: str) -> str:
    return view_url.rsplit("/", 1)[-1]


def parse_time(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


async def create(client, **overrides) -> dict:
    response = await client.post("/api/note", json={**NOTE_BODY, **overrides})
    assert response.status_code == 200, response.text
    return response.json()


class TestPing:

    @pytest.mark.asyncio
    async def test_hello_world(self, test_client):
        response = await test_client.get("/api/test")
        assert response.status_code == 200
        assert response.text == "Hello world!"


class TestCreateNote:

    @pytest.mark.asyncio
    async def test_returns_view_url_and_expiry(self, test_client):
        body = await create(test_client)

        assert re.match(r"^https?://", body["view_url"])
        assert body["view_url"].startswith(f"{settings.public_base_url}/note/")
        uuid.UUID(note_id_from(body["view_url"]))
        assert parse_time(body["expire_time"]) > datetime.now(timezone.utc)

    @pytest.mark.asyncio
    async def test_default_lifetime(self, test_client):
        before = datetime.now(timezone.utc)
        body = await create(test_client)

        expected = before + timedelta(seconds=settings.note_default_ttl_seconds)
        assert abs(parse_time(body["expire_time"]) - expected) < timedelta(seconds=5)

    @pytest.mark.asyncio
    async def test_requested_expiry_kept(self, test_client):
        requested = datetime.now(timezone.utc) + timedelta(hours=2)
        body = await create(test_client, expire_time=requested.isoformat())
        assert parse_time(body["expire_time"]) == requested

    @pytest.mark.asyncio
    async def test_past_expiry_rejected(self, test_client):
        past = (datetime.now(timezone.utc) - timedelta(minutes=1)).isoformat()
        response = await test_client.post("/api/note", json={**NOTE_BODY, "expire_time": past})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "expire_time"

    @pytest.mark.asyncio
    async def test_expiry_beyond_max_rejected(self, test_client):
        too_far = datetime.now(timezone.utc) + timedelta(seconds=settings.note_max_ttl_seconds + 3600)
        response = await test_client.post(
            "/api/note", json={**NOTE_BODY, "expire_time": too_far.isoformat()}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_ciphertext(self, test_client):
        response = await test_client.post("/api/note", json={"hmac": "f00d"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_too_many_embeds(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "max_embeds_per_note", 1)
        embeds = [
            {"embed_id": "a", "ciphertext": "x", "hmac": "y"},
            {"embed_id": "b", "ciphertext": "x", "hmac": "y"},
        ]
        response = await test_client.post("/api/note", json={**NOTE_BODY, "embeds": embeds})
        assert response.status_code == 422

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["ciphertext", "hmac"])
    async def test_empty_embed_field_rejected(self, test_client, field):
        embed = {"embed_id": "a", "ciphertext": "x", "hmac": "y", field: ""}
        response = await test_client.post("/api/note", json={**NOTE_BODY, "embeds": [embed]})
        assert response.status_code == 422

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["ciphertext", "hmac"])
    async def test_oversized_embed_field_rejected(self, test_client, monkeypatch, field):
        monkeypatch.setattr(settings, "max_payload_chars", 1024)
        embed = {"embed_id": "a", "ciphertext": "x", "hmac": "y", field: "z" * 1025}
        response = await test_client.post("/api/note", json={**NOTE_BODY, "embeds": [embed]})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_duplicate_embed_is_server_error(self, test_client):
        embeds = [
            {"embed_id": "same", "ciphertext": "x", "hmac": "y"},
            {"embed_id": "same", "ciphertext": "z", "hmac": "w"},
        ]
        response = await test_client.post("/api/note", json={**NOTE_BODY, "embeds": embeds})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "server_error"
        # No storage internals in the response
        assert "same" not in body["message"]
        assert "details" not in body


class TestGetNote:

    @pytest.mark.asyncio
    async def test_round_trip(self, test_client):
        created = await create(test_client)
        note_id = note_id_from(created["view_url"])

        response = await test_client.get(f"/api/note/{note_id}")

        assert response.status_code == 200
        assert response.headers["cache-control"] == "no-store"
        body = response.json()
        assert body["id"] == note_id
        assert body["ciphertext"] == NOTE_BODY["ciphertext"]
        assert body["hmac"] == NOTE_BODY["hmac"]
        assert body["crypto_version"] == "v1"
        assert parse_time(body["expire_time"]) == parse_time(created["expire_time"])
        assert parse_time(body["insert_time"]) <= datetime.now(timezone.utc)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("note_id", ["NaN", "non-existing-id"])
    async def test_malformed_id_not_found(self, test_client, note_id):
        response = await test_client.get(f"/api/note/{note_id}")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_unknown_id_not_found(self, test_client):
        response = await test_client.get(f"/api/note/{uuid.uuid4()}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_readable_twice_by_default(self, test_client):
        note_id = note_id_from((await create(test_client))["view_url"])

        assert (await test_client.get(f"/api/note/{note_id}")).status_code == 200
        assert (await test_client.get(f"/api/note/{note_id}")).status_code == 200

    @pytest.mark.asyncio
    async def test_burn_on_view(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "delete_note_on_view", True)
        note_id = note_id_from((await create(test_client))["view_url"])

        assert (await test_client.get(f"/api/note/{note_id}")).status_code == 200
        assert (await test_client.get(f"/api/note/{note_id}")).status_code == 404


class TestGetEmbed:

    @pytest.mark.asyncio
    async def test_fetch_embed(self, test_client):
        embeds = [
            {"embed_id": "photo", "ciphertext": "cGhvdG8=", "hmac": "p1"},
            {"embed_id": "doc", "ciphertext": "ZG9j", "hmac": "d1"},
        ]
        note_id = note_id_from((await create(test_client, embeds=embeds))["view_url"])

        response = await test_client.get(f"/api/note/{note_id}/embed/doc")

        assert response.status_code == 200
        body = response.json()
        assert body == {"note_id": note_id, "embed_id": "doc", "ciphertext": "ZG9j", "hmac": "d1"}

    @pytest.mark.asyncio
    async def test_unknown_embed(self, test_client):
        note_id = note_id_from((await create(test_client))["view_url"])
        response = await test_client.get(f"/api/note/{note_id}/embed/missing")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_malformed_note_id(self, test_client):
        response = await test_client.get("/api/note/NaN/embed/photo")
        assert response.status_code == 404


class TestDeleteNote:

    @pytest.mark.asyncio
    async def test_delete_then_gone(self, test_client):
        embeds = [{"embed_id": "photo", "ciphertext": "cGhvdG8=", "hmac": "p1"}]
        note_id = note_id_from((await create(test_client, embeds=embeds))["view_url"])

        response = await test_client.delete(f"/api/note/{note_id}")
        assert response.status_code == 204

        assert (await test_client.get(f"/api/note/{note_id}")).status_code == 404
        assert (await test_client.get(f"/api/note/{note_id}/embed/photo")).status_code == 404
        assert (await test_client.delete(f"/api/note/{note_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_malformed_id(self, test_client):
        response = await test_client.delete("/api/note/NaN")
        assert response.status_code == 404


class TestHealth:

    @pytest.mark.asyncio
    async def test_healthy(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_unhealthy_when_database_down(self, test_client, monkeypatch):
        async def probe_fails():
            return False

        monkeypatch.setattr("app.routes.health.check_connection", probe_fails)
        response = await test_client.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"


class TestStorageFailures:
    """Storage errors become generic 5xx bodies; the context stays in the log."""

    CONTEXT = {"operation": "create_note", "original_error": "OperationalError"}

    @pytest.mark.asyncio
    async def test_transient_error_on_create(self, test_client, monkeypatch):
        monkeypatch.setattr(
            note_service, "create_note",
            AsyncMock(side_effect=TransientStorageError(context=self.CONTEXT)),
        )
        response = await test_client.post("/api/note", json=NOTE_BODY)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "5"
        body = response.json()
        assert body["error"] == "service_unavailable"
        assert "details" not in body
        assert "OperationalError" not in response.text

    @pytest.mark.asyncio
    async def test_transient_error_on_get(self, test_client, monkeypatch):
        monkeypatch.setattr(
            note_service, "get_note",
            AsyncMock(side_effect=TransientStorageError(retry_after=30)),
        )
        response = await test_client.get(f"/api/note/{uuid.uuid4()}")

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "30"

    @pytest.mark.asyncio
    async def test_storage_error_on_get(self, test_client, monkeypatch):
        monkeypatch.setattr(
            note_service, "get_note",
            AsyncMock(side_effect=StorageError(context={"operation": "get_note", "original_error": "DBAPIError"})),
        )
        response = await test_client.get(f"/api/note/{uuid.uuid4()}")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "server_error"
        assert body["request_id"]
        assert "details" not in body
        assert "DBAPIError" not in response.text
        assert "Retry-After" not in response.headers

    @pytest.mark.asyncio
    async def test_storage_error_on_create(self, test_client, monkeypatch):
        monkeypatch.setattr(
            note_service, "create_note",
            AsyncMock(side_effect=StorageError(context=self.CONTEXT)),
        )
        response = await test_client.post("/api/note", json=NOTE_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "server_error"

    @pytest.mark.asyncio
    async def test_constraint_violation_on_create(self, test_client, monkeypatch):
        monkeypatch.setattr(
            note_service, "create_note",
            AsyncMock(side_effect=ConstraintViolationError(context=self.CONTEXT)),
        )
        response = await test_client.post("/api/note", json=NOTE_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "server_error"
        assert "create_note" not in response.text
