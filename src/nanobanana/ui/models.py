"""Data models for the client session: input images and history entries."""

import base64
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from PIL import Image

from nanobanana.api.models import GenerationParams

logger = logging.getLogger(__name__)


def generate_entry_id() -> str:
    """Return a sortable, collision-resistant history entry id."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class UploadedImage:
    """Input image attached to a prompt.

    The payload is kept as base64 text, exactly as it is sent to the API, and
    is never written anywhere.
    """

    data: str
    mime_type: str
    name: str = ""

    @classmethod
    def from_path(cls, path: Path | str) -> "UploadedImage":
        """Load an image file, detecting its MIME type from the content.

        Args:
            path: Image file to read.

        Returns:
            UploadedImage with the file's base64 payload.

        Raises:
            OSError: If the file cannot be read or is not an image Pillow
                recognises.
        """
        path = Path(path)
        raw = path.read_bytes()
        with Image.open(path) as img:
            mime_type = Image.MIME.get(img.format or "", "image/png")
        logger.debug(f"Loaded {path.name} as {mime_type} ({len(raw)} bytes)")
        return cls(
            data=base64.b64encode(raw).decode("ascii"),
            mime_type=mime_type,
            name=path.name,
        )

    def to_request(self) -> dict:
        """Return the ``image`` object of a generate request body."""
        return {"data": self.data, "mimeType": self.mime_type}


@dataclass
class HistoryEntry:
    """One successful generation, as kept in the session history.

    Attributes:
        prompt: Prompt that was sent (trimmed).
        text: Generated text, possibly empty.
        images: Generated images as base64 strings.
        params: Normalized parameters echoed back by the server.
        metadata: Server-provided metadata (model, latency, finish reasons).
        input_image: Image that accompanied the prompt, if any.
    """

    prompt: str
    text: str
    images: list[str]
    params: GenerationParams
    metadata: dict[str, Any] = field(default_factory=dict)
    input_image: UploadedImage | None = None
    id: str = field(default_factory=generate_entry_id)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def has_images(self) -> bool:
        return bool(self.images)
