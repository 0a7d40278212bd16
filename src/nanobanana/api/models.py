"""Pydantic request and response models for the generation API.

These models define the JSON contract of ``POST /api/generate``.  Unlike a
typical FastAPI schema they are deliberately lenient about generation
parameters: every parameter validator runs in ``mode="before"`` and clamps or
defaults the raw value through :mod:`nanobanana.api.normalization`, so a
request can only be rejected for a missing/blank prompt or an unusable input
image.

Wire names are camelCase (``aspectRatio``, ``mimeType``) to match the browser
client; Python attributes are snake_case.

Models
------
GenerationParams
    Normalized generation parameters.
ImageInput
    Optional inline input image (base64 payload plus MIME type).
GenerateRequest
    Full request body.
GenerateResponse
    Shaped success response.
ErrorResponse
    The structured error envelope, for OpenAPI documentation.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from nanobanana.api.normalization import (
    DEFAULT_ASPECT_RATIO,
    DEFAULT_BATCH_SIZE,
    DEFAULT_SAFETY_THRESHOLD,
    DEFAULT_TIMEOUT,
    MAX_BATCH_SIZE,
    MAX_SAFETY_THRESHOLD,
    MAX_TIMEOUT,
    MIN_BATCH_SIZE,
    MIN_SAFETY_THRESHOLD,
    MIN_TIMEOUT,
    clamp_float,
    clamp_int,
    normalize_aspect_ratio,
    parse_flag,
    parse_seed,
    split_data_url,
)
from nanobanana.core.errors import ValidationError


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerationParams(_CamelModel):
    """Generation parameters after clamping.

    Attributes:
        aspect_ratio: One of ``1:1``, ``16:9``, ``9:16``.  Unknown values fall
            back to ``1:1``.
        batch_size: Number of candidates to request, clamped to 1-4.
        locale_aware: Ask the model to answer in the user's language.
        safety_threshold: Content-filter strictness slider, clamped to 0-1.
        timeout: Upstream deadline in seconds, clamped to 5-300.
        seed: Optional deterministic seed; omitted when not a number.
    """

    aspect_ratio: str = Field(default=DEFAULT_ASPECT_RATIO)
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE)
    locale_aware: bool = Field(default=False)
    safety_threshold: float = Field(default=DEFAULT_SAFETY_THRESHOLD)
    timeout: int = Field(default=DEFAULT_TIMEOUT)
    seed: int | None = Field(default=None)

    @field_validator("aspect_ratio", mode="before")
    @classmethod
    def _aspect_ratio(cls, value: Any) -> str:
        return normalize_aspect_ratio(value)

    @field_validator("batch_size", mode="before")
    @classmethod
    def _batch_size(cls, value: Any) -> int:
        return clamp_int(value, MIN_BATCH_SIZE, MAX_BATCH_SIZE, DEFAULT_BATCH_SIZE)

    @field_validator("locale_aware", mode="before")
    @classmethod
    def _locale_aware(cls, value: Any) -> bool:
        return parse_flag(value)

    @field_validator("safety_threshold", mode="before")
    @classmethod
    def _safety_threshold(cls, value: Any) -> float:
        return clamp_float(
            value, MIN_SAFETY_THRESHOLD, MAX_SAFETY_THRESHOLD, DEFAULT_SAFETY_THRESHOLD
        )

    @field_validator("timeout", mode="before")
    @classmethod
    def _timeout(cls, value: Any) -> int:
        return clamp_int(value, MIN_TIMEOUT, MAX_TIMEOUT, DEFAULT_TIMEOUT)

    @field_validator("seed", mode="before")
    @classmethod
    def _seed(cls, value: Any) -> int | None:
        return parse_seed(value)


class ImageInput(_CamelModel):
    """Inline input image.

    ``data`` may be bare base64 or a ``data:`` URL; in the latter case the
    prefix is stripped and its MIME type is used when ``mimeType`` is absent.
    """

    data: str
    mime_type: str

    @model_validator(mode="before")
    @classmethod
    def _unwrap_data_url(cls, values: Any) -> Any:
        if not isinstance(values, dict) or not isinstance(values.get("data"), str):
            return values
        payload, mime_type = split_data_url(values["data"].strip())
        values = {**values, "data": payload}
        if mime_type and not (values.get("mimeType") or values.get("mime_type")):
            values["mimeType"] = mime_type
        return values

    @field_validator("data")
    @classmethod
    def _valid_base64(cls, value: str) -> str:
        if not value:
            raise ValueError("image data must not be empty")
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("image data must be valid base64") from e
        return value

    @field_validator("mime_type")
    @classmethod
    def _image_mime_type(cls, value: str) -> str:
        value = value.strip().lower()
        if not value.startswith("image/"):
            raise ValueError("mimeType must be an image/* type")
        return value


class GenerateRequest(_CamelModel):
    """Request body for ``POST /api/generate``.

    Attributes:
        prompt: Trimmed, non-empty prompt text.
        image: Optional input image for image-to-image prompts.
        params: Normalized generation parameters; defaults when absent.
    """

    prompt: str
    image: ImageInput | None = None
    params: GenerationParams = Field(default_factory=GenerationParams)

    @field_validator("prompt", mode="before")
    @classmethod
    def _non_blank_prompt(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("prompt must be a string")
        value = value.strip()
        if not value:
            raise ValueError("prompt must not be empty")
        return value

    @field_validator("params", mode="before")
    @classmethod
    def _default_params(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, GenerationParams)) else {}


class GenerateResponse(BaseModel):
    """Shaped success response.

    Attributes:
        text: All text fragments, newline-joined.
        image: First generated image (base64), if any.
        images: Every generated image (base64), in candidate order.
        metadata: Normalized params, model, latency and finish reasons.
    """

    text: str = ""
    image: str | None = None
    images: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Any | None = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str = "ok"


def parse_generate_request(body: Any) -> GenerateRequest:
    """Validate and normalize a raw JSON body.

    Args:
        body: Decoded JSON value of the request body.

    Returns:
        The normalized :class:`GenerateRequest`.

    Raises:
        ValidationError: If the body is not an object, the prompt is missing
            or blank, or the input image is unusable.
    """
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return GenerateRequest.model_validate(body)
    except PydanticValidationError as e:
        problems = [
            {
                "field": ".".join(str(part) for part in err["loc"]),
                "message": err["msg"],
            }
            for err in e.errors(include_url=False)
        ]
        raise ValidationError(problems[0]["message"], details=problems) from e
