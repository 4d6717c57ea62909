"""
Ebook Shelf Backend — HTTP API Tests
======================================

What:  End-to-end tests of /api/ebooks and /health through the ASGI app.
Why:   Verifies the wire contract: camelCase fields, status codes, the error
       envelope and multipart handling.
How:   HTTPX AsyncClient over ASGITransport; the record and image stores are
       replaced with the in-memory fakes via dependency overrides.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.config import PLACEHOLDER_IMAGE_URL
from app.exceptions import DatabaseError, ImageStoreError


DUNE = {"title": "Dune", "bookLink": "https://example.com/dune.pdf"}


class TestEbookLifecycle:

    @pytest.mark.asyncio
    async def test_create_update_delete_scenario(self, test_client):
        """Create without a cover, rename, delete, then the record is gone."""
        response = await test_client.post("/api/ebooks", data=DUNE)
        assert response.status_code == 201
        created = response.json()
        assert created["title"] == "Dune"
        assert created["bookLink"] == "https://example.com/dune.pdf"
        assert created["imageUrl"] == PLACEHOLDER_IMAGE_URL
        assert created["imageRef"] is None
        assert "createdAt" in created
        ebook_id = created["id"]

        response = await test_client.put(f"/api/ebooks/{ebook_id}", data={"title": "Dune Messiah"})
        assert response.status_code == 200
        assert response.json()["title"] == "Dune Messiah"
        assert response.json()["bookLink"] == created["bookLink"]

        response = await test_client.delete(f"/api/ebooks/{ebook_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["id"] == ebook_id
        assert body["imageDeleted"] is None

        response = await test_client.get(f"/api/ebooks/{ebook_id}")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_list_and_get(self, test_client):
        first = (await test_client.post("/api/ebooks", data=DUNE)).json()
        second = (await test_client.post(
            "/api/ebooks", data={"title": "Emma", "bookLink": "https://example.com/emma.epub"}
        )).json()

        response = await test_client.get("/api/ebooks")
        assert response.status_code == 200
        assert [e["id"] for e in response.json()] == [first["id"], second["id"]]

        response = await test_client.get(f"/api/ebooks/{second['id']}")
        assert response.status_code == 200
        assert response.json() == second

    @pytest.mark.asyncio
    async def test_list_empty(self, test_client):
        response = await test_client.get("/api/ebooks")
        assert response.status_code == 200
        assert response.json() == []


class TestCovers:

    @pytest.mark.asyncio
    async def test_create_with_cover(self, test_client, image_store, sample_image_bytes):
        response = await test_client.post(
            "/api/ebooks",
            data=DUNE,
            files={"ebookImage": ("cover.jpg", sample_image_bytes, "image/jpeg")},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["imageRef"] in image_store.objects
        assert body["imageUrl"] == image_store.objects[body["imageRef"]]

    @pytest.mark.asyncio
    async def test_replace_and_delete_cover(self, test_client, image_store, sample_image_bytes):
        cover = {"ebookImage": ("cover.jpg", sample_image_bytes, "image/jpeg")}
        created = (await test_client.post("/api/ebooks", data=DUNE, files=cover)).json()

        response = await test_client.put(f"/api/ebooks/{created['id']}", files=cover)
        assert response.status_code == 200
        updated = response.json()
        assert updated["imageRef"] != created["imageRef"]
        assert created["imageRef"] not in image_store.objects

        response = await test_client.delete(f"/api/ebooks/{created['id']}")
        assert response.json()["message"] == "Ebook and its image deleted successfully"
        assert response.json()["imageDeleted"] is True
        assert image_store.objects == {}

    @pytest.mark.asyncio
    async def test_non_image_rejected(self, test_client, image_store):
        response = await test_client.post(
            "/api/ebooks",
            data=DUNE,
            files={"ebookImage": ("book.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "ebookImage"
        assert image_store.objects == {}

    @pytest.mark.asyncio
    async def test_spoofed_image_rejected(self, test_client, image_store, record_store):
        response = await test_client.post(
            "/api/ebooks",
            data=DUNE,
            files={"ebookImage": ("cover.png", b"#!/bin/sh\nrm -rf /\n", "image/png")},
        )

        assert response.status_code == 400
        assert response.json()["details"]["declared_type"] == "image/png"
        assert image_store.objects == {}
        assert record_store.rows == {}

    @pytest.mark.asyncio
    async def test_oversized_part_rejected_before_reading(self, test_client, image_store, monkeypatch, sample_image_bytes):
        from app.config import settings

        monkeypatch.setattr(settings, "max_image_size", 1024)

        response = await test_client.post(
            "/api/ebooks",
            data=DUNE,
            files={"ebookImage": ("cover.jpg", sample_image_bytes + b"\x00" * 2048, "image/jpeg")},
        )

        assert response.status_code == 400
        assert "exceeds maximum" in response.json()["message"]
        assert image_store.objects == {}

    @pytest.mark.asyncio
    async def test_empty_file_part_means_no_image(self, test_client, image_store):
        response = await test_client.post(
            "/api/ebooks",
            data=DUNE,
            files={"ebookImage": ("", b"", "application/octet-stream")},
        )

        assert response.status_code == 201
        assert response.json()["imageUrl"] == PLACEHOLDER_IMAGE_URL
        assert image_store.objects == {}

    @pytest.mark.asyncio
    async def test_cover_cleanup_failure_reported_on_delete(self, test_client, image_store, sample_image_bytes):
        created = (await test_client.post(
            "/api/ebooks",
            data=DUNE,
            files={"ebookImage": ("cover.jpg", sample_image_bytes, "image/jpeg")},
        )).json()
        image_store.fail_with["delete"] = ImageStoreError()

        response = await test_client.delete(f"/api/ebooks/{created['id']}")

        assert response.status_code == 200
        assert response.json()["imageDeleted"] is False
        assert response.json()["warning"]
        assert (await test_client.get(f"/api/ebooks/{created['id']}")).status_code == 404


class TestErrors:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "data",
        [
            {"bookLink": "https://example.com/dune.pdf"},
            {"title": "Dune"},
            {"title": "   ", "bookLink": "https://example.com/dune.pdf"},
        ],
    )
    async def test_create_missing_fields(self, test_client, record_store, data):
        response = await test_client.post("/api/ebooks", data=data)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Please provide title and bookLink"
        assert record_store.rows == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    async def test_unknown_id_is_404(self, test_client, method):
        url = f"/api/ebooks/{uuid.uuid4()}"
        if method == "put":
            response = await test_client.put(url, data={"title": "x"})
        else:
            response = await getattr(test_client, method)(url)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, test_client):
        response = await test_client.get("/api/ebooks/not-an-id")

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "id"

    @pytest.mark.asyncio
    async def test_store_failure_is_500_without_internals(self, test_client, record_store):
        record_store.fail_with["find_all"] = DatabaseError(
            context={"operation": "find_all", "error_type": "OperationalError"}
        )

        response = await test_client.get("/api/ebooks")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "server_error"
        assert "OperationalError" not in body["message"]
        assert "details" not in body

    @pytest.mark.asyncio
    async def test_image_host_failure_is_500(self, test_client, image_store, record_store, sample_image_bytes):
        image_store.fail_with["upload"] = ImageStoreError()

        response = await test_client.post(
            "/api/ebooks",
            data=DUNE,
            files={"ebookImage": ("cover.jpg", sample_image_bytes, "image/jpeg")},
        )

        assert response.status_code == 500
        assert response.json()["error"] == "server_error"
        assert record_store.rows == {}


class TestRequestId:

    @pytest.mark.asyncio
    async def test_generated_request_id(self, test_client):
        response = await test_client.get("/api/ebooks")
        assert response.headers.get("X-Request-ID")

    @pytest.mark.asyncio
    async def test_request_id_echoed_in_errors(self, test_client):
        response = await test_client.get(
            f"/api/ebooks/{uuid.uuid4()}", headers={"X-Request-ID": "trace-123"}
        )
        assert response.headers["X-Request-ID"] == "trace-123"
        assert response.json()["request_id"] == "trace-123"


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_without_backends(self, test_client):
        """No lifespan ran: no database and no image store on app.state."""
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["database"] == "disconnected"
        assert body["image_store"] == "unconfigured"

    @pytest.mark.asyncio
    async def test_healthy(self, test_app, test_client, image_store):
        test_app.state.database = MagicMock(ping=AsyncMock())
        test_app.state.image_store = image_store

        body = (await test_client.get("/health")).json()

        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["image_store"] == "available"

    @pytest.mark.asyncio
    async def test_image_host_unreachable_is_degraded(self, test_app, test_client, image_store):
        test_app.state.database = MagicMock(ping=AsyncMock())
        test_app.state.image_store = image_store
        image_store.healthy = False

        body = (await test_client.get("/health")).json()

        assert body["status"] == "degraded"
        assert body["image_store"] == "unavailable"

    @pytest.mark.asyncio
    async def test_missing_credentials_reported_as_unconfigured(self, test_app, test_client, image_store, monkeypatch):
        """A store exists but Cloudinary credentials are incomplete."""
        from app.config import settings

        monkeypatch.setattr(settings, "cloudinary_api_secret", "")
        test_app.state.database = MagicMock(ping=AsyncMock())
        test_app.state.image_store = image_store

        body = (await test_client.get("/health")).json()

        assert body["status"] == "degraded"
        assert body["image_store"] == "unconfigured"


class TestLifespan:

    @pytest.mark.asyncio
    async def test_startup_and_shutdown(self):
        """Startup connects the database and creates the image store; shutdown disposes the engine."""
        from app.database import Database
        from app.main import create_app, lifespan
        from app.services.cloudinary_service import CloudinaryImageStore

        app = create_app()
        with patch.object(Database, "dispose", new_callable=AsyncMock) as dispose:
            async with lifespan(app):
                await app.state.database.ping()
                assert isinstance(app.state.image_store, CloudinaryImageStore)
                dispose.assert_not_awaited()

        dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_startup_requires_database_url(self, monkeypatch):
        from app.config import settings
        from app.main import create_app, lifespan

        monkeypatch.setattr(settings, "database_url", "")

        with pytest.raises(ValueError, match="DATABASE_URL"):
            async with lifespan(create_app()):
                pass

    @pytest.mark.asyncio
    async def test_startup_fails_when_database_unreachable(self, monkeypatch, tmp_path):
        """The engine is released and startup aborts."""
        from app.config import settings
        from app.database import Database
        from app.main import create_app, lifespan

        missing = tmp_path / "no-such-dir" / "ebooks.db"
        monkeypatch.setattr(settings, "database_url", f"sqlite+aiosqlite:///{missing}")
        app = create_app()

        with patch.object(Database, "dispose", new_callable=AsyncMock) as dispose:
            with pytest.raises(RuntimeError, match="Database is unreachable"):
                async with lifespan(app):
                    pass

        dispose.assert_awaited_once()
        assert getattr(app.state, "database", None) is None


class TestReadImage:
    """Tests for reading the multipart cover part."""

    @pytest.mark.asyncio
    async def test_oversized_part_is_never_read(self, monkeypatch):
        from app.config import settings
        from app.exceptions import ValidationError
        from app.routes.ebooks import read_image

        monkeypatch.setattr(settings, "max_image_size", 1024)
        upload = MagicMock(filename="cover.jpg", content_type="image/jpeg", size=4096)
        upload.read = AsyncMock()
        upload.close = AsyncMock()

        with pytest.raises(ValidationError, match="exceeds maximum"):
            await read_image(upload)

        upload.read.assert_not_awaited()
        upload.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_part_is_read_and_closed(self, sample_image_bytes):
        from app.routes.ebooks import read_image

        upload = MagicMock(filename="cover.jpg", content_type="image/jpeg", size=len(sample_image_bytes))
        upload.read = AsyncMock(return_value=sample_image_bytes)
        upload.close = AsyncMock()

        image = await read_image(upload)

        assert image.content == sample_image_bytes
        assert image.content_type == "image/jpeg"
        upload.close.assert_awaited_once()
