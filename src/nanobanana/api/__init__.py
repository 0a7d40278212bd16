"""Nano Banana: FastAPI REST API layer.

Modules
-------
main
    FastAPI application with the route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic request/response models with clamping validators.
normalization
    Coercion and clamping helpers for generation parameters.
payload_builder
    Mapping of a normalized request onto the provider request body.
response_shaper
    Flattening of provider candidates into text and images.
"""
