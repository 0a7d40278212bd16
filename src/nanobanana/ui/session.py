"""Async client session for the generation API.

:class:`GenerationSession` plays the role of the browser form and gallery:
it posts prompts to ``/api/generate-image``, turns each success into a
:class:`~nanobanana.ui.models.HistoryEntry` and keeps those entries in an
in-memory, append-only list that only :meth:`GenerationSession.clear_history`
empties.  Nothing is persisted.

Overlapping calls are allowed and are not coordinated: each request is
validated and completes on its own, and entries are appended in completion
order.

Usage
-----
::

    async with GenerationSession("http://localhost:3001") as session:
        entry = await session.generate("a banana wearing sunglasses")
        again = await session.variant(entry)
        save_image(again.images[0], 0, again.prompt, Path("downloads"))
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import random
import re
from pathlib import Path
from typing import Any

import httpx
from PIL import Image

from nanobanana.api.models import GenerationParams
from nanobanana.core.errors import ValidationError
from nanobanana.ui.models import HistoryEntry, UploadedImage

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate-image"
DEFAULT_BASE_URL = "http://localhost:3001"

# Variant seeds are drawn from [0, MAX_VARIANT_SEED).
MAX_VARIANT_SEED = 1_000_000

# Extra seconds the HTTP client waits beyond the server-side deadline, so the
# server's 504 arrives before the client gives up.
CLIENT_TIMEOUT_MARGIN = 10

DOWNLOAD_FALLBACK_NAME = "nano-banana"


class GenerationFailed(Exception):
    """The API rejected or failed a generation request.

    Attributes:
        status_code: HTTP status returned by the API.
        code: Error code from the envelope (``validation_error``, ...).
        message: Human-readable message from the envelope.
        details: Optional envelope details.
    """

    def __init__(self, status_code: int, code: str, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details

    @classmethod
    def from_response(cls, status_code: int, body: Any) -> "GenerationFailed":
        """Build the exception from an error response body.

        Accepts the structured envelope and falls back gracefully for bodies
        that are not JSON or use a bare ``{"error": "message"}``.
        """
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return cls(
                status_code,
                str(error.get("code", "unknown_error")),
                str(error.get("message", "Generation failed")),
                error.get("details"),
            )
        if isinstance(error, str) and error:
            return cls(status_code, "unknown_error", error)
        return cls(status_code, "unknown_error", f"Generation failed with HTTP {status_code}")


def download_filename(prompt: str, index: int) -> str:
    """Return the file name used when saving image *index* of a prompt.

    The prompt is lowercased, runs of anything but ``a-z0-9`` become ``-``,
    and the result is cut to 40 characters.

    Examples:
        >>> download_filename("A Banana, in Space!", 0)
        'a-banana-in-space--1.png'
    """
    stem = re.sub(r"[^a-z0-9]+", "-", prompt.lower())[:40] or DOWNLOAD_FALLBACK_NAME
    return f"{stem}-{index + 1}.png"


def save_image(image_b64: str, index: int, prompt: str, directory: Path) -> Path:
    """Decode a generated image and save it as PNG.

    Args:
        image_b64: Base64 image payload from a history entry.
        index: Position of the image in its entry (0-based).
        prompt: Prompt of the entry, used for the file name.
        directory: Target directory; created if missing.

    Returns:
        Path of the written file.

    Raises:
        ValueError: If the payload is not valid base64 or not an image.
    """
    try:
        raw = base64.b64decode(image_b64, validate=True)
    except binascii.Error as e:
        raise ValueError("Image payload is not valid base64") from e

    directory.mkdir(parents=True, exist_ok=True)
    path = directory / download_filename(prompt, index)

    try:
        with Image.open(io.BytesIO(raw)) as image:
            image.save(path, format="PNG")
    except OSError as e:
        raise ValueError("Image payload could not be decoded") from e

    logger.info(f"Saved image to {path}")
    return path


class GenerationSession:
    """In-memory generation history bound to one API server.

    Args:
        base_url: Root URL of the API server.
        params: Default parameters for :meth:`generate`.
        client: Optional pre-built ``httpx.AsyncClient`` (tests pass one with
            a mock transport).  A client passed in is not closed by the
            session.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        params: GenerationParams | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.default_params = params or GenerationParams()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url)
        self._history: list[HistoryEntry] = []

    async def __aenter__(self) -> "GenerationSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @property
    def history(self) -> list[HistoryEntry]:
        """Entries in completion order (oldest first)."""
        return list(self._history)

    def newest_first(self) -> list[HistoryEntry]:
        """Entries in reverse completion order, as the gallery shows them."""
        return list(reversed(self._history))

    def clear_history(self) -> None:
        logger.info(f"Clearing {len(self._history)} history entries")
        self._history.clear()

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def build_request_body(
        self,
        prompt: str,
        params: GenerationParams,
        image: UploadedImage | None = None,
    ) -> dict:
        """Build the JSON body for ``POST /api/generate-image``."""
        body: dict[str, Any] = {
            "prompt": prompt,
            "params": params.model_dump(by_alias=True, exclude_none=True),
        }
        if image is not None:
            body["image"] = image.to_request()
        return body

    async def generate(
        self,
        prompt: str,
        params: GenerationParams | None = None,
        image: UploadedImage | None = None,
    ) -> HistoryEntry:
        """Generate from *prompt* and append the result to the history.

        Args:
            prompt: Prompt text; surrounding whitespace is dropped.
            params: Parameters for this call; defaults to the session's.
            image: Optional input image.

        Returns:
            The new history entry.

        Raises:
            ValidationError: If the prompt is blank (no request is sent).
            GenerationFailed: If the API answers with an error.
            httpx.HTTPError: If the API cannot be reached.
        """
        prompt = prompt.strip()
        if not prompt:
            raise ValidationError("A prompt is required before generating")

        params = params or self.default_params
        response = await self._client.post(
            GENERATE_PATH,
            json=self.build_request_body(prompt, params, image),
            timeout=params.timeout + CLIENT_TIMEOUT_MARGIN,
        )

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.is_success:
            raise GenerationFailed.from_response(response.status_code, data)
        if not isinstance(data, dict):
            raise GenerationFailed(
                response.status_code, "invalid_response", "Server returned an unreadable body"
            )

        entry = self._entry_from_response(prompt, params, image, data)
        self._history.append(entry)
        logger.info(f"Generation {entry.id} completed with {len(entry.images)} image(s)")
        return entry

    async def variant(self, entry: HistoryEntry, rng: random.Random | None = None) -> HistoryEntry:
        """Re-run *entry* with a fresh random seed.

        The prompt, other parameters and input image are reused unchanged.
        """
        seed = (rng or random).randrange(MAX_VARIANT_SEED)
        params = entry.params.model_copy(update={"seed": seed})
        return await self.generate(entry.prompt, params, entry.input_image)

    @staticmethod
    def _entry_from_response(
        prompt: str,
        params: GenerationParams,
        image: UploadedImage | None,
        data: dict,
    ) -> HistoryEntry:
        raw_images = data.get("images")
        if not isinstance(raw_images, list):
            raw_images = []
        images = [value for value in raw_images if isinstance(value, str)]
        if not images and isinstance(data.get("image"), str):
            images.append(data["image"])

        metadata = data.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}

        # Prefer the parameters as the server normalized them.
        echoed = metadata.get("params")
        if isinstance(echoed, dict):
            params = GenerationParams.model_validate(echoed)

        text = data.get("text")
        return HistoryEntry(
            prompt=prompt,
            text=text if isinstance(text, str) else "",
            images=images,
            params=params,
            metadata=metadata,
            input_image=image,
        )
