"""Tests for GET /qr, rendered with the real segno renderer."""

import pytest

from core.keys import StaticKeyStore
from core.ratelimit import RateLimiter
from tests.fakes import PNG_SIGNATURE, FakeQrRenderer

pytestmark = [pytest.mark.unit, pytest.mark.usefixtures("fake_cairosvg")]


class TestQrGet:
    async def test_renders_png_by_default(self, client):
        response = await client.get("/qr", params={"text": "hello world"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["cache-control"] == "public, max-age=604800"
        assert response.content.startswith(PNG_SIGNATURE)

    async def test_renders_svg(self, client):
        response = await client.get("/qr", params={"text": "hello", "format": "svg"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/svg+xml"
        assert b"<svg" in response.content

    async def test_only_lowercase_svg_selects_svg(self, client):
        response = await client.get("/qr", params={"text": "hello", "format": "SVG"})

        assert response.headers["content-type"] == "image/png"

    async def test_kanji_mode(self, client):
        response = await client.get("/qr", params={"text": "日本語", "mode": "sjis"})

        assert response.status_code == 200
        assert response.content.startswith(PNG_SIGNATURE)

    async def test_missing_text_returns_error_image(self, client):
        response = await client.get("/qr")

        assert response.status_code == 500
        assert response.headers["content-type"] == "image/png"
        assert b"You are missing variable `text`" in response.content

    async def test_malformed_text_returns_error_image(self, client):
        # %25 decodes to a bare "%", which cannot be decoded a second time
        response = await client.get("/qr?text=100%25")

        assert response.status_code == 500
        assert response.headers["content-type"] == "image/png"
        assert b"URI malformed" in response.content

    async def test_malformed_text_as_svg_still_returns_png(self, client):
        response = await client.get("/qr?text=100%25&format=svg")

        assert response.status_code == 500
        assert response.headers["content-type"] == "image/png"

    async def test_encoding_failure_returns_error_image(self, client):
        response = await client.get("/qr", params={"text": "x" * 8000})

        assert response.status_code == 500
        assert response.headers["content-type"] == "image/png"
        assert b"Could not generate QR" in response.content

    async def test_text_is_decoded_twice(self, app, client):
        renderer = FakeQrRenderer()
        app.state.qr_renderer = renderer

        await client.get("/qr?text=a%2520b")

        assert renderer.calls[0].text == "a b"

    @pytest.mark.parametrize(
        ("query", "size", "margin"),
        [
            ("", 150, 4),
            ("&size=300&margin=2", 300, 2),
            ("&size=3000", 3000, 4),
            ("&size=3001", 150, 4),
            ("&size=-5&margin=-1", 150, 4),
            ("&size=big&margin=0", 150, 4),
        ],
    )
    async def test_size_and_margin_normalization(
        self, app, client, query, size, margin
    ):
        renderer = FakeQrRenderer()
        app.state.qr_renderer = renderer

        response = await client.get(f"/qr?text=hi{query}")

        assert response.status_code == 200
        assert (renderer.calls[0].size, renderer.calls[0].margin) == (size, margin)

    async def test_not_rate_limited(self, app, client):
        app.state.rate_limiter = RateLimiter(1, StaticKeyStore())

        for _ in range(5):
            response = await client.get("/qr", params={"text": "hello"})
            assert response.status_code == 200
