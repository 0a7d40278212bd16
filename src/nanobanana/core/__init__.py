"""Core services for the Nano Banana relay.

- **NanoBananaConfig** / **config**: Pydantic Settings configuration loaded
  from ``NANOBANANA_*`` environment variables.
- **errors**: the error taxonomy rendered as the API's JSON envelope.
- **VertexClient**: the single-shot, deadline-bounded provider caller.
"""

from nanobanana.core.config import NanoBananaConfig, config
from nanobanana.core.errors import (
    ConfigurationError,
    GenerationError,
    GenerationTimeoutError,
    InternalError,
    UpstreamError,
    ValidationError,
)
from nanobanana.core.vertex_client import GoogleCredentials, VertexClient

__all__ = [
    "ConfigurationError",
    "GenerationError",
    "GenerationTimeoutError",
    "GoogleCredentials",
    "InternalError",
    "NanoBananaConfig",
    "UpstreamError",
    "ValidationError",
    "VertexClient",
    "config",
]
