"""Pytest configuration and shared fixtures.

This module provides:
- Test settings isolated from the developer's .env
- Fake chart renderer standing in for the external chart service
- A cairosvg stand-in so error images/PDFs don't need the Cairo library
- FastAPI app and httpx AsyncClient for route tests
"""

import sys
from collections.abc import AsyncGenerator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from core.config import Settings, clear_settings_cache
from main import create_app
from tests.fakes import (
    PDF_SIGNATURE,
    PNG_SIGNATURE,
    FakeChartRenderer,
    make_settings,
)


@pytest.fixture(autouse=True)
def _clear_settings():
    """Clear lru_cache between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def fake_cairosvg(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """cairosvg stand-in whose output embeds the SVG source after a signature."""
    module = MagicMock()
    module.svg2png.side_effect = lambda bytestring: PNG_SIGNATURE + bytestring
    module.svg2pdf.side_effect = lambda bytestring: PDF_SIGNATURE + bytestring
    monkeypatch.setitem(sys.modules, "cairosvg", module)
    return module


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def chart_renderer() -> FakeChartRenderer:
    return FakeChartRenderer()


@pytest.fixture
def app(test_settings: Settings, chart_renderer: FakeChartRenderer) -> FastAPI:
    application = create_app(test_settings)
    application.state.chart_renderer = chart_renderer
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
