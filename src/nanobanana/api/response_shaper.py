"""Flatten the provider's ``generateContent`` response.

The provider returns zero or more candidates, each holding a list of parts
that may be text, inline image data, or (for thinking models) internal
"thought" text.  Each candidate is classified into one of four kinds before
its content is collected, so every shape is handled explicitly:

==============  ============================================
Kind            Meaning
==============  ============================================
``EMPTY``       No usable parts (blocked, truncated, absent)
``TEXT``        Text parts only
``IMAGE``       Inline image parts only
``MIXED``       Both text and image parts
==============  ============================================

The shaped result concatenates every text fragment in order (newline-joined)
and collects every image across all candidates.  A response with no
candidates, or a body that is not the expected structure at all, shapes to
empty text and no images: it is not an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CandidateKind(str, Enum):
    EMPTY = "empty"
    TEXT = "text"
    IMAGE = "image"
    MIXED = "mixed"


@dataclass(frozen=True)
class InlineImage:
    data: str
    mime_type: str = "image/png"


@dataclass(frozen=True)
class ShapedCandidate:
    """Content extracted from one provider candidate."""

    kind: CandidateKind
    texts: tuple[str, ...] = ()
    images: tuple[InlineImage, ...] = ()
    finish_reason: str | None = None


@dataclass
class ShapedResponse:
    """Flat, client-facing view of a provider response.

    Attributes:
        candidates: Per-candidate classification, in provider order.
        block_reason: ``promptFeedback.blockReason`` when the provider
            refused the prompt outright.
    """

    candidates: list[ShapedCandidate] = field(default_factory=list)
    block_reason: str | None = None

    @property
    def text(self) -> str:
        return "\n".join(text for candidate in self.candidates for text in candidate.texts)

    @property
    def images(self) -> list[str]:
        return [image.data for candidate in self.candidates for image in candidate.images]

    @property
    def image(self) -> str | None:
        images = self.images
        return images[0] if images else None

    @property
    def finish_reasons(self) -> list[str]:
        return [c.finish_reason for c in self.candidates if c.finish_reason]

    @property
    def image_mime_types(self) -> list[str]:
        return [image.mime_type for candidate in self.candidates for image in candidate.images]


def _inline_image(part: dict) -> InlineImage | None:
    # The REST API answers in camelCase; some proxies re-encode to snake_case.
    inline = part.get("inlineData") or part.get("inline_data")
    if not isinstance(inline, dict):
        return None
    data = inline.get("data")
    if not isinstance(data, str) or not data:
        return None
    mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
    return InlineImage(data=data, mime_type=mime_type)


def classify_candidate(candidate: Any) -> ShapedCandidate:
    """Classify one provider candidate and extract its content."""
    if not isinstance(candidate, dict):
        return ShapedCandidate(kind=CandidateKind.EMPTY)

    finish_reason = candidate.get("finishReason")
    if not isinstance(finish_reason, str):
        finish_reason = None

    content = candidate.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        parts = []

    texts: list[str] = []
    images: list[InlineImage] = []
    for part in parts:
        if not isinstance(part, dict):
            continue
        image = _inline_image(part)
        if image is not None:
            images.append(image)
            continue
        text = part.get("text")
        if isinstance(text, str) and text and not part.get("thought"):
            texts.append(text)

    if texts and images:
        kind = CandidateKind.MIXED
    elif images:
        kind = CandidateKind.IMAGE
    elif texts:
        kind = CandidateKind.TEXT
    else:
        kind = CandidateKind.EMPTY

    return ShapedCandidate(
        kind=kind,
        texts=tuple(texts),
        images=tuple(images),
        finish_reason=finish_reason,
    )


def shape_response(payload: Any) -> ShapedResponse:
    """Shape a decoded provider response.

    Args:
        payload: Decoded JSON body of a successful provider call.  Anything
            other than a dict is treated as an empty response.

    Returns:
        The :class:`ShapedResponse`.
    """
    if not isinstance(payload, dict):
        logger.warning("Provider response is not a JSON object; treating as empty")
        return ShapedResponse()

    raw_candidates = payload.get("candidates")
    if not isinstance(raw_candidates, list):
        raw_candidates = []

    block_reason = None
    feedback = payload.get("promptFeedback")
    if isinstance(feedback, dict) and isinstance(feedback.get("blockReason"), str):
        block_reason = feedback["blockReason"]

    return ShapedResponse(
        candidates=[classify_candidate(c) for c in raw_candidates],
        block_reason=block_reason,
    )
