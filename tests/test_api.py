"""Tests for the HTTP surface: routing, error mapping and authentication."""

from __future__ import annotations

import io
import os
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

import httpx
import pytest
from fastapi import FastAPI, status
from PIL import Image, features

from mediaprocessor.config import get_settings
from mediaprocessor.errors import ObjectNotFoundError, ObjectTooLargeError, StorageForbiddenError
from mediaprocessor.main import create_app
from mediaprocessor.transform.pool import ComputePool

CACHE_CONTROL = "public, max-age=31536000, immutable"


class FakeStorage:
    """Stands in for StorageProxyClient; serves objects from a dict."""

    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects = objects or {}
        self.errors: dict[str, Exception] = {}
        self.fetched: list[str] = []

    async def fetch(self, key: str) -> bytes:
        self.fetched.append(key)
        if key in self.errors:
            raise self.errors[key]
        if key not in self.objects:
            raise ObjectNotFoundError(key)
        return self.objects[key]

    async def aclose(self) -> None:
        pass


def _init_app_state(app: FastAPI, storage: FakeStorage, **env_overrides: str) -> None:
    """Manually initialize app state (ASGITransport does not trigger lifespan)."""
    with patch.dict(os.environ, env_overrides):
        settings = get_settings()
    app.state.settings = settings
    app.state.compute_pool = ComputePool(settings)
    app.state.storage_client = storage


async def _make_client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac
    pool: ComputePool = app.state.compute_pool
    pool.shutdown()


@pytest.fixture()
def storage(make_image_bytes: Callable[..., bytes]) -> FakeStorage:
    return FakeStorage(
        {
            "photos/landscape.png": make_image_bytes(size=(200, 100), fmt="PNG"),
            "photos/portrait.jpg": make_image_bytes(size=(40, 20), fmt="JPEG", orientation=6),
            "docs/readme.txt": b"plain text, not an image",
        }
    )


@pytest.fixture()
def app(storage: FakeStorage) -> FastAPI:
    """Create a fresh app instance with default settings."""
    application = create_app()
    _init_app_state(application, storage)
    return application


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    """Async HTTP client for testing the app."""
    async for ac in _make_client(app):
        yield ac


def _image(response: httpx.Response) -> Image.Image:
    image = Image.open(io.BytesIO(response.content))
    image.load()
    return image


class TestHealthEndpoint:
    async def test_health_returns_ok(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ok"
        assert data["concurrent_requests"] == 0
        assert data["queue_depth"] == 0


class TestTransformEndpoint:
    async def test_returns_image_with_cache_headers(self, client: httpx.AsyncClient, storage: FakeStorage) -> None:
        response = await client.get("/photos/landscape.png")
        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"] == "image/png"
        assert response.headers["cache-control"] == CACHE_CONTROL
        assert _image(response).size == (200, 100)
        assert storage.fetched == ["photos/landscape.png"]

    async def test_resize(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/photos/landscape.png", params={"w": 50, "h": 50})
        assert response.status_code == status.HTTP_200_OK
        assert _image(response).size == (50, 25)

    async def test_format_alias(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/photos/landscape.png", params={"f": "jpg", "q": 70})
        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"] == "image/jpeg"
        assert _image(response).format == "JPEG"

    @pytest.mark.skipif(not features.check("webp"), reason="Pillow built without WebP")
    async def test_resize_to_webp(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/photos/landscape.png", params={"w": 100, "f": "webp"})
        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"] == "image/webp"
        assert _image(response).size == (100, 50)

    async def test_orientation_applied(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/photos/portrait.jpg")
        assert response.status_code == status.HTTP_200_OK
        image = _image(response)
        assert image.size == (20, 40)
        assert len(image.getexif()) == 0

    async def test_object_not_found(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/photos/missing.png")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "object not found"}

    async def test_undecodable_object(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/docs/readme.txt")
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json() == {"error": "image decode failed"}

    async def test_storage_forbidden_is_bad_gateway(self, client: httpx.AsyncClient, storage: FakeStorage) -> None:
        storage.errors["photos/locked.png"] = StorageForbiddenError("photos/locked.png")
        response = await client.get("/photos/locked.png")
        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json() == {"error": "storage unavailable"}
        assert "locked" not in response.text

    async def test_object_too_large(self, client: httpx.AsyncClient, storage: FakeStorage) -> None:
        storage.errors["photos/huge.png"] = ObjectTooLargeError("photos/huge.png", 10_000, 1_000)
        response = await client.get("/photos/huge.png")
        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE

    async def test_server_busy(self, client: httpx.AsyncClient) -> None:
        with patch.object(ComputePool, "run", new=AsyncMock(side_effect=TimeoutError)):
            response = await client.get("/photos/landscape.png")
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json() == {"error": "server busy, try again later"}


class TestRequestValidation:
    @pytest.mark.parametrize(
        "path",
        ["/a%5Cb.png", "/photos/%252e%252e/secret.png", "/photos/%252e%252e%252fsecret.png"],
    )
    async def test_traversal_rejected(self, client: httpx.AsyncClient, storage: FakeStorage, path: str) -> None:
        response = await client.get(path)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "invalid key: path traversal detected"}
        assert storage.fetched == []

    async def test_invalid_characters(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/photos/my%20photo.png")
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "key contains invalid characters"}

    async def test_unsupported_format(self, client: httpx.AsyncClient, storage: FakeStorage) -> None:
        response = await client.get("/photos/landscape.png", params={"f": "gif"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "unsupported format 'gif'. supported: jpg, png, webp, avif"}
        assert storage.fetched == []

    @pytest.mark.parametrize(
        ("params", "message"),
        [
            ({"w": 0}, "width must be 1-4096, got 0"),
            ({"h": 5000}, "height must be 1-4096, got 5000"),
            ({"q": 101}, "quality must be 1-100, got 101"),
        ],
    )
    async def test_out_of_range_params(
        self,
        client: httpx.AsyncClient,
        storage: FakeStorage,
        params: dict[str, int],
        message: str,
    ) -> None:
        response = await client.get("/photos/landscape.png", params=params)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": message}
        assert storage.fetched == []

    async def test_non_integer_param(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/photos/landscape.png", params={"w": "abc"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "invalid query parameter 'w'"}

    async def test_oversized_source_without_params(
        self, client: httpx.AsyncClient, storage: FakeStorage, make_image_bytes: Callable[..., bytes]
    ) -> None:
        storage.objects["photos/wide.png"] = make_image_bytes(size=(4097, 1), fmt="PNG")
        response = await client.get("/photos/wide.png")
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "image resolution 4097x1 exceeds maximum 4096x4096"}


class TestAuthentication:
    async def test_no_auth_required_by_default(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/photos/landscape.png")
        assert response.status_code == status.HTTP_200_OK

    async def test_auth_required_when_api_key_set(self, storage: FakeStorage) -> None:
        app = create_app()
        _init_app_state(app, storage, MEDIAPROCESSOR_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get("/photos/landscape.png")
            assert response.status_code == status.HTTP_401_UNAUTHORIZED
            assert response.json() == {"error": "invalid or missing API key"}
            assert response.headers["www-authenticate"] == "Bearer"
        assert storage.fetched == []

    async def test_auth_passes_with_correct_key(self, storage: FakeStorage) -> None:
        app = create_app()
        _init_app_state(app, storage, MEDIAPROCESSOR_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get(
                "/photos/landscape.png",
                headers={"Authorization": "Bearer test-secret-key"},
            )
            assert response.status_code == status.HTTP_200_OK

    async def test_auth_fails_with_wrong_key(self, storage: FakeStorage) -> None:
        app = create_app()
        _init_app_state(app, storage, MEDIAPROCESSOR_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get(
                "/photos/landscape.png",
                headers={"Authorization": "Bearer wrong-key"},
            )
            assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_health_is_public(self, storage: FakeStorage) -> None:
        app = create_app()
        _init_app_state(app, storage, MEDIAPROCESSOR_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get("/health")
            assert response.status_code == status.HTTP_200_OK


class TestCors:
    async def test_preflight_allows_get(self, client: httpx.AsyncClient) -> None:
        response = await client.options(
            "/photos/landscape.png",
            headers={"Origin": "https://example.org", "Access-Control-Request-Method": "GET"},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.headers["access-control-allow-origin"] == "*"
        assert "GET" in response.headers["access-control-allow-methods"]
