"""Shared pytest fixtures for Nano Banana tests."""

import base64
import io
import shutil
import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from nanobanana.api.main import app
from nanobanana.core.config import NanoBananaConfig

PROVIDER_ENV_VARS = (
    "NANOBANANA_PROJECT_ID",
    "GOOGLE_CLOUD_PROJECT",
    "NANOBANANA_REGION",
    "GOOGLE_CLOUD_LOCATION",
    "NANOBANANA_MODEL",
    "NANOBANANA_API_ENDPOINT",
    "NANOBANANA_API_KEY",
    "NANOBANANA_SERVER_PORT",
)


class FakeVertexClient:
    """Stand-in for VertexClient that records calls.

    Returns ``response`` from every call, or raises ``error`` when set.
    """

    def __init__(self, settings: NanoBananaConfig, response: Any = None, error: Exception | None = None):
        self.settings = settings
        self.response = response if response is not None else {"candidates": []}
        self.error = error
        self.calls: list[dict] = []

    async def generate_content(self, payload: dict, timeout: float) -> Any:
        self.calls.append({"payload": payload, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


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
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove provider environment variables so defaults are observable."""
    for name in PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def test_config(clean_env) -> NanoBananaConfig:
    """Create a complete provider configuration for testing.

    Returns:
        NanoBananaConfig pointing at a fake endpoint with an API key, so no
        Application Default Credentials are needed.
    """
    return NanoBananaConfig(
        _env_file=None,
        project_id="test-project",
        region="us-central1",
        model="gemini-test-image",
        api_endpoint="https://vertex.test",
        api_key="test-key",
    )


@pytest.fixture
def fake_vertex(test_config: NanoBananaConfig) -> FakeVertexClient:
    """Fake upstream client returning an empty response by default."""
    return FakeVertexClient(test_config)


@pytest.fixture
def test_client(fake_vertex: FakeVertexClient) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with the upstream client replaced by a fake.

    The lifespan runs on entering the context and installs a real
    VertexClient; it is swapped for the fake afterwards.
    """
    with TestClient(app) as client:
        original = app.state.vertex_client
        app.state.vertex_client = fake_vertex
        try:
            yield client
        finally:
            app.state.vertex_client = original


@pytest.fixture
def png_b64() -> str:
    """A tiny valid PNG, base64-encoded."""
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(255, 215, 0)).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def text_candidate() -> dict:
    """Provider candidate carrying two text parts."""
    return {
        "content": {"role": "model", "parts": [{"text": "A ripe banana"}, {"text": "on a table."}]},
        "finishReason": "STOP",
    }


@pytest.fixture
def image_candidate(png_b64: str) -> dict:
    """Provider candidate carrying a single inline image."""
    return {
        "content": {
            "role": "model",
            "parts": [{"inlineData": {"mimeType": "image/png", "data": png_b64}}],
        },
        "finishReason": "STOP",
    }
