"""Nano Banana: FastAPI Application.

This module is the single entry point for the relay service.  It defines the
FastAPI ``app`` instance, the REST routes, the error envelope handlers, and
the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
Each generation request is handled end-to-end on one task and holds no state
between requests:

1. **Validate**: the raw JSON body is normalized by
   :func:`~nanobanana.api.models.parse_generate_request` (blank prompt or
   unusable image → 400; every parameter is clamped, never rejected).
2. **Build**: :func:`~nanobanana.api.payload_builder.build_payload` maps the
   request onto the provider's ``generateContent`` body.
3. **Call**: :class:`~nanobanana.core.vertex_client.VertexClient` makes one
   call under the request's deadline.
4. **Shape**: :func:`~nanobanana.api.response_shaper.shape_response`
   flattens candidates into ``{text, image, images, metadata}``.

Any :class:`~nanobanana.core.errors.GenerationError` raised along the way
short-circuits to the JSON error envelope with the error's status; any other
exception becomes a 500 ``internal_error`` envelope.

Endpoints
---------
========  ========================  ==================================
Method    Path                      Purpose
========  ========================  ==================================
GET       ``/health``               Liveness probe
GET       ``/api/health``           Liveness probe (behind /api proxy)
POST      ``/api/generate``         Relay a prompt to the model
POST      ``/api/generate-image``   Alias used by the browser client
========  ========================  ==================================

Usage
-----
CLI (installed entry point)::

    nanobanana

Direct invocation::

    python -m nanobanana.api.main
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from nanobanana import __version__
from nanobanana.api.models import (
    ErrorResponse,
    GenerateResponse,
    HealthResponse,
    parse_generate_request,
)
from nanobanana.api.payload_builder import build_payload, safety_level
from nanobanana.api.response_shaper import shape_response
from nanobanana.core.config import config
from nanobanana.core.errors import GenerationError, InternalError, ValidationError
from nanobanana.core.vertex_client import VertexClient

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    404: "not_found",
    405: "method_not_allowed",
}

# ---------------------------------------------------------------------------
# Application lifecycle.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the shared :class:`VertexClient` and store it on ``app.state``.

    The client only holds configuration and the credential cache; each
    request opens its own HTTP connection.  Incomplete provider
    configuration is logged here but does not prevent start-up: generation
    requests report it as a ``configuration_error`` instead.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    app.state.vertex_client = VertexClient(config)
    if not config.project_id:
        logger.warning("No Google Cloud project configured; generation requests will fail.")
    logger.info("VertexClient initialised for model %s in %s.", config.model, config.region)

    yield


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Nano Banana",
    description="Relay for text and image prompts to a Vertex AI generative model.",
    version=__version__,
    lifespan=lifespan,
)

# The browser client is served by the Vite dev server on another port and
# reaches the API through its /api proxy or directly.
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error envelope handlers.
# ---------------------------------------------------------------------------


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    """Render any :class:`GenerationError` as the structured envelope."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors (unknown path, wrong method) as the envelope."""
    code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": code, "message": str(exc.detail)}},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render anything else as an ``internal_error`` without leaking details."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError("Unexpected error")
    return JSONResponse(status_code=error.status_code, content=error.to_envelope())


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid prompt or input image"},
    500: {"model": ErrorResponse, "description": "Configuration or internal error"},
    504: {"model": ErrorResponse, "description": "Provider timed out"},
}


@app.get("/health", response_model=HealthResponse)
@app.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe; does not touch the provider."""
    return HealthResponse()


@app.post("/api/generate", response_model=GenerateResponse, responses=_ERROR_RESPONSES)
@app.post("/api/generate-image", response_model=GenerateResponse, responses=_ERROR_RESPONSES)
async def generate(request: Request) -> GenerateResponse:
    """Relay one prompt to the model and return the shaped result.

    The body is read raw rather than declared as a Pydantic parameter so that
    malformed JSON and schema problems both surface as ``validation_error``
    (400) in the shared envelope instead of FastAPI's default 422.

    Args:
        request: Incoming request; its JSON body has the shape
            ``{prompt, image?: {data, mimeType}, params?: {...}}``.

    Returns:
        :class:`GenerateResponse` with ``text``, ``image``, ``images`` and
        ``metadata``.

    Raises:
        ValidationError: 400 for malformed JSON, blank prompt, bad image.
        ConfigurationError: 500 when provider configuration is missing.
        UpstreamError: Provider status passed through (502 if unreachable).
        GenerationTimeoutError: 504 when the deadline expires.
        InternalError: 500 for anything unanticipated.
    """
    # --- RECEIVED → VALIDATED ----------------------------------------------
    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError("Request body must be valid JSON") from e

    req = parse_generate_request(body)
    params = req.params
    logger.info(
        "Generation request: prompt_len=%d image=%s params=%s",
        len(req.prompt),
        req.image is not None,
        params.model_dump(by_alias=True),
    )

    client: VertexClient = request.app.state.vertex_client

    try:
        # --- VALIDATED → UPSTREAM_CALLED -----------------------------------
        payload = build_payload(req, accept_language=request.headers.get("accept-language"))
        started = time.perf_counter()
        raw = await client.generate_content(payload, timeout=params.timeout)
        latency_ms = int((time.perf_counter() - started) * 1000)

        # --- UPSTREAM_CALLED → SHAPED --------------------------------------
        shaped = shape_response(raw)
    except GenerationError:
        raise
    except Exception as e:
        logger.exception("Unexpected failure while generating")
        raise InternalError("Unexpected error during generation") from e

    logger.info(
        "Generation finished: candidates=%d images=%d latency_ms=%d",
        len(shaped.candidates),
        len(shaped.images),
        latency_ms,
    )

    # --- SHAPED → RESPONDED ------------------------------------------------
    return GenerateResponse(
        text=shaped.text,
        image=shaped.image,
        images=shaped.images,
        metadata={
            "model": client.settings.model,
            "params": params.model_dump(by_alias=True),
            "safetyLevel": safety_level(params.safety_threshold),
            "candidateCount": len(shaped.candidates),
            "candidateKinds": [c.kind.value for c in shaped.candidates],
            "finishReasons": shaped.finish_reasons,
            "blockReason": shaped.block_reason,
            "imageMimeTypes": shaped.image_mime_types,
            "hasInputImage": req.image is not None,
            "latencyMs": latency_ms,
        },
    )


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~nanobanana.core.config.config`
    (``NANOBANANA_SERVER_HOST``, ``NANOBANANA_SERVER_PORT``,
    ``NANOBANANA_LOG_LEVEL``).  Defaults to ``0.0.0.0:3001``, the backend
    address the browser client's dev proxy expects.

    This function is registered as the ``nanobanana`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "nanobanana.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
