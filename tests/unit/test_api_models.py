"""Tests for nanobanana.api.models: request normalization models.

Tests cover:
- Default values for absent parameters.
- Clamping of out-of-range parameters (never rejection).
- Prompt validation (missing, blank, non-string).
- Input image validation and data URL handling.
- parse_generate_request error wrapping.
"""

from __future__ import annotations

import pytest

from nanobanana.api.models import (
    GenerateRequest,
    GenerateResponse,
    GenerationParams,
    ImageInput,
    parse_generate_request,
)
from nanobanana.core.errors import ValidationError


class TestGenerationParamsDefaults:
    """Absent values take the documented defaults."""

    def test_defaults(self):
        params = GenerationParams()
        assert params.aspect_ratio == "1:1"
        assert params.batch_size == 1
        assert params.locale_aware is False
        assert params.safety_threshold == 0.5
        assert params.timeout == 60
        assert params.seed is None

    def test_camel_case_wire_names(self):
        """Params are read from and dumped to camelCase."""
        params = GenerationParams.model_validate({"aspectRatio": "16:9", "batchSize": 2})
        assert params.aspect_ratio == "16:9"
        dumped = params.model_dump(by_alias=True)
        assert dumped["aspectRatio"] == "16:9"
        assert dumped["batchSize"] == 2
        assert "safetyThreshold" in dumped

    def test_explicit_nulls_use_defaults(self):
        params = GenerationParams.model_validate(
            {"batchSize": None, "timeout": None, "safetyThreshold": None}
        )
        assert params.batch_size == 1
        assert params.timeout == 60
        assert params.safety_threshold == 0.5


class TestGenerationParamsClamping:
    """Out-of-range values are clamped into range."""

    @pytest.mark.parametrize(("raw", "expected"), [(0, 1), (-3, 1), (99, 4), (4, 4), ("2", 2)])
    def test_batch_size(self, raw, expected):
        assert GenerationParams.model_validate({"batchSize": raw}).batch_size == expected

    @pytest.mark.parametrize(("raw", "expected"), [(-0.2, 0.0), (1.5, 1.0), (0.75, 0.75)])
    def test_safety_threshold(self, raw, expected):
        assert GenerationParams.model_validate({"safetyThreshold": raw}).safety_threshold == expected

    @pytest.mark.parametrize(("raw", "expected"), [(1, 5), (4.4, 5), (301, 300), (10_000, 300), (120, 120)])
    def test_timeout(self, raw, expected):
        assert GenerationParams.model_validate({"timeout": raw}).timeout == expected

    def test_unknown_aspect_ratio_replaced(self):
        assert GenerationParams.model_validate({"aspectRatio": "21:9"}).aspect_ratio == "1:1"

    def test_seed_string_forwarded(self):
        assert GenerationParams.model_validate({"seed": "99"}).seed == 99

    def test_seed_garbage_omitted(self):
        assert GenerationParams.model_validate({"seed": "lucky"}).seed is None

    def test_boolean_batch_size_ignored(self):
        """true is a checkbox value, not a count."""
        assert GenerationParams.model_validate({"batchSize": True}).batch_size == 1


class TestGenerateRequestPrompt:
    """Prompt validation."""

    def test_prompt_is_trimmed(self):
        req = GenerateRequest.model_validate({"prompt": "  a banana  "})
        assert req.prompt == "a banana"

    @pytest.mark.parametrize("prompt", ["", "   ", "\n\t"])
    def test_blank_prompt_rejected(self, prompt):
        with pytest.raises(Exception):
            GenerateRequest.model_validate({"prompt": prompt})

    def test_non_string_prompt_rejected(self):
        with pytest.raises(Exception):
            GenerateRequest.model_validate({"prompt": 42})

    def test_params_null_means_defaults(self):
        req = GenerateRequest.model_validate({"prompt": "x", "params": None})
        assert req.params == GenerationParams()

    @pytest.mark.parametrize("params", ["oops", 7, [1, 2], True])
    def test_non_object_params_mean_defaults(self, params):
        req = parse_generate_request({"prompt": "x", "params": params})
        assert req.params == GenerationParams()


class TestImageInput:
    """Input image validation."""

    def test_valid_image(self, png_b64):
        image = ImageInput.model_validate({"data": png_b64, "mimeType": "image/png"})
        assert image.data == png_b64
        assert image.mime_type == "image/png"

    def test_data_url_supplies_mime_type(self, png_b64):
        image = ImageInput.model_validate({"data": f"data:image/png;base64,{png_b64}"})
        assert image.data == png_b64
        assert image.mime_type == "image/png"

    def test_explicit_mime_type_wins(self, png_b64):
        image = ImageInput.model_validate(
            {"data": f"data:image/png;base64,{png_b64}", "mimeType": "image/webp"}
        )
        assert image.mime_type == "image/webp"

    def test_invalid_base64_rejected(self):
        with pytest.raises(Exception):
            ImageInput.model_validate({"data": "not base64!!", "mimeType": "image/png"})

    def test_non_image_mime_rejected(self, png_b64):
        with pytest.raises(Exception):
            ImageInput.model_validate({"data": png_b64, "mimeType": "application/pdf"})

    def test_empty_data_rejected(self):
        with pytest.raises(Exception):
            ImageInput.model_validate({"data": "", "mimeType": "image/png"})


class TestParseGenerateRequest:
    """parse_generate_request wraps Pydantic errors in ValidationError."""

    def test_valid_body(self):
        req = parse_generate_request({"prompt": "hi", "params": {"batchSize": 10}})
        assert req.prompt == "hi"
        assert req.params.batch_size == 4

    @pytest.mark.parametrize("body", [None, [], "prompt", 3])
    def test_non_object_body(self, body):
        with pytest.raises(ValidationError, match="JSON object"):
            parse_generate_request(body)

    def test_missing_prompt(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_generate_request({"params": {}})
        assert exc_info.value.details[0]["field"] == "prompt"

    def test_blank_prompt_details(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_generate_request({"prompt": "   "})
        assert exc_info.value.status_code == 400
        assert "prompt must not be empty" in exc_info.value.message

    def test_bad_image_field_path(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_generate_request({"prompt": "x", "image": {"data": "AAAA", "mimeType": "text/plain"}})
        assert exc_info.value.details[0]["field"] == "image.mimeType"


class TestGenerateResponse:
    """Response model defaults."""

    def test_empty_response(self):
        resp = GenerateResponse()
        assert resp.text == ""
        assert resp.image is None
        assert resp.images == []
        assert resp.metadata == {}
