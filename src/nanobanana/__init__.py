"""Nano Banana - prompt relay service for Vertex AI multimodal generation."""

__version__ = "0.1.0"

from nanobanana.core.config import NanoBananaConfig, config

__all__ = [
    "NanoBananaConfig",
    "config",
]
