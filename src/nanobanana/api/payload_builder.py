"""Build the Vertex AI ``generateContent`` request body.

The provider expects one ``user`` turn made of parts, a ``generationConfig``
block and per-category ``safetySettings``.  This module maps a normalized
:class:`~nanobanana.api.models.GenerateRequest` onto that shape::

    {
      "contents": [{"role": "user", "parts": [{"text": ...}, {"inlineData": ...}]}],
      "generationConfig": {
        "candidateCount": 2,
        "responseModalities": ["TEXT", "IMAGE"],
        "imageConfig": {"aspectRatio": "16:9"},
        "seed": 42
      },
      "safetySettings": [{"category": ..., "threshold": ...}, ...],
      "systemInstruction": {...}          # only when localeAware
    }

The single 0-1 safety slider is translated to the provider's four-level scale
with fixed breakpoints; see :func:`safety_level`.
"""

from __future__ import annotations

from nanobanana.api.models import GenerateRequest

HARM_CATEGORIES: tuple[str, ...] = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)

# (upper bound inclusive, provider threshold), checked in order.
SAFETY_BREAKPOINTS: tuple[tuple[float, str], ...] = (
    (0.25, "BLOCK_NONE"),
    (0.5, "BLOCK_ONLY_HIGH"),
    (0.75, "BLOCK_MEDIUM_AND_ABOVE"),
)
STRICTEST_SAFETY_LEVEL = "BLOCK_LOW_AND_ABOVE"

RESPONSE_MODALITIES = ["TEXT", "IMAGE"]


def safety_level(threshold: float) -> str:
    """Translate the 0-1 safety slider into a provider threshold name.

    Higher slider values block more content:

    ============  ==========================
    Slider        Provider threshold
    ============  ==========================
    <= 0.25       ``BLOCK_NONE``
    <= 0.5        ``BLOCK_ONLY_HIGH``
    <= 0.75       ``BLOCK_MEDIUM_AND_ABOVE``
    > 0.75        ``BLOCK_LOW_AND_ABOVE``
    ============  ==========================
    """
    for upper, level in SAFETY_BREAKPOINTS:
        if threshold <= upper:
            return level
    return STRICTEST_SAFETY_LEVEL


def locale_instruction(accept_language: str | None) -> str:
    """Return the system instruction used when ``localeAware`` is set.

    Args:
        accept_language: Raw ``Accept-Language`` header, if the client sent
            one.  Only the first (preferred) language tag is used.
    """
    preferred = ""
    if accept_language:
        preferred = accept_language.split(",")[0].split(";")[0].strip()
    if preferred and preferred != "*":
        return (
            f"Write any text in the locale '{preferred}', and follow its conventions "
            "for dates, numbers and units in generated images."
        )
    return (
        "Write any text in the same language as the prompt, and follow that "
        "language's regional conventions in generated images."
    )


def build_payload(req: GenerateRequest, *, accept_language: str | None = None) -> dict:
    """Build the provider request body for a normalized request.

    Args:
        req: Validated and clamped generation request.
        accept_language: ``Accept-Language`` header of the incoming request,
            used only when ``req.params.locale_aware`` is true.

    Returns:
        JSON-serialisable ``generateContent`` body.
    """
    params = req.params

    parts: list[dict] = [{"text": req.prompt}]
    if req.image is not None:
        parts.append(
            {
                "inlineData": {
                    "mimeType": req.image.mime_type,
                    "data": req.image.data,
                }
            }
        )

    generation_config: dict = {
        "candidateCount": params.batch_size,
        "responseModalities": list(RESPONSE_MODALITIES),
        "imageConfig": {"aspectRatio": params.aspect_ratio},
    }
    if params.seed is not None:
        generation_config["seed"] = params.seed

    level = safety_level(params.safety_threshold)
    payload: dict = {
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": generation_config,
        "safetySettings": [
            {"category": category, "threshold": level} for category in HARM_CATEGORIES
        ],
    }

    if params.locale_aware:
        payload["systemInstruction"] = {
            "parts": [{"text": locale_instruction(accept_language)}],
        }

    return payload
