"""Shared pytest fixtures for Content Canvas tests."""

import io
import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import httpx
import pytest
from PIL import Image

from contentcanvas.core.capability import GenerationCapability, GenerationRequest
from contentcanvas.core.config import ContentCanvasConfig
from contentcanvas.core.images import encode_image
from contentcanvas.core.recency import RecencyStore


class FakeCapability(GenerationCapability):
    """In-memory generation capability.

    ``responses`` is consumed in order; each item is either a list of images
    to return or an exception to raise.  Once exhausted, every call returns
    ``number_of_images`` copies of ``default_image``.
    """

    name = "Fake"

    def __init__(self, default_image: str, responses=None, text="enhanced", configured=True):
        self.default_image = default_image
        self.responses = list(responses or [])
        self.text = text
        self.configured = configured
        self.requests: list[GenerationRequest] = []
        self.text_calls: list[dict] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def generate(self, request: GenerationRequest) -> list[str]:
        self.requests.append(request)
        if self.responses:
            outcome = self.responses.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return [self.default_image] * request.number_of_images

    async def complete_text(self, instruction, contents, *, max_output_tokens=250, temperature=0.5):
        self.text_calls.append(
            {
                "instruction": instruction,
                "contents": contents,
                "max_output_tokens": max_output_tokens,
                "temperature": temperature,
            }
        )
        if isinstance(self.text, BaseException):
            raise self.text
        return self.text


def make_image_ref(size=(8, 6), color=(200, 30, 30), mode="RGB") -> str:
    """Build a small solid-colour PNG data URL."""
    return encode_image(Image.new(mode, size, color))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> ContentCanvasConfig:
    """Create a test configuration rooted in a temporary data directory.

    Credentials are cleared so no test ever reaches a real service.
    """
    return ContentCanvasConfig(
        _env_file=None,
        data_dir=temp_dir / "data",
        gemini_api_key=None,
        pexels_api_key=None,
        unsplash_access_key=None,
        pixabay_api_key=None,
    )


@pytest.fixture
def sample_image() -> str:
    """An 8x6 red PNG data URL."""
    return make_image_ref()


@pytest.fixture
def other_image() -> str:
    """A 8x6 blue PNG data URL, distinguishable from ``sample_image``."""
    return make_image_ref(color=(20, 40, 220))


@pytest.fixture
def fake_capability(sample_image: str) -> FakeCapability:
    return FakeCapability(sample_image)


@pytest.fixture
def memory_store() -> RecencyStore:
    """A non-persistent recency store with small caps."""
    return RecencyStore(history_limit=5, recent_prompt_limit=3)


def stock_handler(request: httpx.Request) -> httpx.Response:
    """Mock transport answering for all three stock providers and image downloads."""
    host = request.url.host
    if host == "api.pexels.com":
        return httpx.Response(
            200,
            json={
                "photos": [
                    {
                        "id": 1,
                        "alt": "Lake",
                        "photographer": "Ana",
                        "src": {"medium": "https://images.pexels.com/p1-m.jpg", "large2x": "https://images.pexels.com/p1-l.jpg"},
                    }
                ]
            },
        )
    if host == "api.unsplash.com":
        return httpx.Response(
            200,
            json={
                "results": [
                    {
                        "id": "abc",
                        "alt_description": None,
                        "user": {"name": "Ben"},
                        "urls": {"regular": "https://images.unsplash.com/u1-r.jpg", "full": "https://images.unsplash.com/u1-f.jpg"},
                    }
                ]
            },
        )
    if host == "pixabay.com":
        return httpx.Response(
            200,
            json={
                "hits": [
                    {
                        "id": 1,
                        "tags": "lake, mountain",
                        "user": "Cy",
                        "webformatURL": "https://cdn.pixabay.com/x1-w.jpg",
                        "largeImageURL": "https://cdn.pixabay.com/x1-l.jpg",
                    }
                ]
            },
        )
    if host in ("images.pexels.com", "images.unsplash.com", "cdn.pixabay.com"):
        image = Image.new("RGB", (4, 4), (0, 128, 0))
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG")
        return httpx.Response(200, content=buffer.getvalue(), headers={"content-type": "image/jpeg"})
    return httpx.Response(404)


@pytest.fixture
def stock_transport() -> httpx.MockTransport:
    return httpx.MockTransport(stock_handler)


@pytest.fixture
def test_client(test_config, fake_capability, stock_transport):
    """FastAPI TestClient wired to the fake capability and mock stock providers."""
    from fastapi.testclient import TestClient

    from contentcanvas.api.main import create_app
    from contentcanvas.stock.aggregator import ProviderAggregator

    test_config.pexels_api_key = "pexels-key"
    aggregator = ProviderAggregator.from_config(test_config, transport=stock_transport)
    app = create_app(
        settings=test_config,
        capability=fake_capability,
        store=RecencyStore.from_config(test_config),
        aggregator=aggregator,
    )
    with TestClient(app) as client:
        yield client


@pytest.fixture
def capability_factory():
    """Return the :class:`FakeCapability` class for tests that script responses."""
    return FakeCapability


@pytest.fixture
def image_factory():
    """Return :func:`make_image_ref` for tests that need specific sizes or colours."""
    return make_image_ref
