"""Configuration management for the Nano Banana relay service.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the NANOBANANA_ prefix,
allowing deployments to point the service at a different project, region or
model without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (NANOBANANA_* prefix)
2. .env file in the working directory
3. Default values defined in NanoBananaConfig

The Google Cloud project and region additionally honour the standard
``GOOGLE_CLOUD_PROJECT`` and ``GOOGLE_CLOUD_LOCATION`` variables so that the
service picks up the same settings as the ``gcloud`` tooling.

Example .env file:
    NANOBANANA_PROJECT_ID=my-gcp-project
    NANOBANANA_REGION=us-central1
    NANOBANANA_MODEL=gemini-2.5-flash-image
    NANOBANANA_SERVER_PORT=3001

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Missing provider identifiers do NOT fail here: the service must start and
answer ``/health`` even when misconfigured, so the check is deferred to
:meth:`NanoBananaConfig.require_provider`, which the upstream client calls
for every generation request.

Usage Example
-------------
    from nanobanana.core.config import config

    print(config.model)
    print(config.base_url)
"""

from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from nanobanana.core.errors import ConfigurationError

GLOBAL_ENDPOINT = "https://aiplatform.googleapis.com"


class NanoBananaConfig(BaseSettings):
    """Main configuration for the Nano Banana relay service.

    Attributes
    ----------
    Provider Settings:
        project_id : str | None
            Google Cloud project that owns the Vertex AI quota (required for
            generation, optional for start-up)
        region : str
            Vertex AI location, ``global`` for the global endpoint
        model : str
            Publisher model name used for ``generateContent``
        api_endpoint : str | None
            Base URL override for the Vertex AI API (tests, proxies, VPC-SC)
        api_key : str | None
            API key sent instead of Application Default Credentials

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Listening port (1024-65535)
        cors_origins : list[str]
            Origins allowed by the CORS middleware
        log_level : str
            Root log level for the CLI entry point

    Examples
    --------
        >>> custom_config = NanoBananaConfig(
        ...     project_id="demo-project",
        ...     region="europe-west4",
        ... )
        >>> custom_config.base_url
        'https://europe-west4-aiplatform.googleapis.com'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="NANOBANANA_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Provider settings
    project_id: str | None = Field(
        default=None,
        description="Google Cloud project id used in the Vertex AI resource path",
        validation_alias=AliasChoices("NANOBANANA_PROJECT_ID", "GOOGLE_CLOUD_PROJECT"),
    )
    region: str = Field(
        default="us-central1",
        description="Vertex AI location ('global' selects the global endpoint)",
        validation_alias=AliasChoices("NANOBANANA_REGION", "GOOGLE_CLOUD_LOCATION"),
    )
    model: str = Field(
        default="gemini-2.5-flash-image",
        description="Publisher model name for generateContent",
    )
    api_endpoint: str | None = Field(
        default=None,
        description="Override for the Vertex AI base URL",
    )
    api_key: str | None = Field(
        default=None,
        description="API key to send instead of Application Default Credentials",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=3001,
        description="Server port",
        ge=1024,
        le=65535,
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API from a browser",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level applied by the CLI entry point",
    )

    @property
    def base_url(self) -> str:
        """Return the Vertex AI base URL without a trailing slash."""
        if self.api_endpoint:
            return self.api_endpoint.rstrip("/")
        if self.region == "global":
            return GLOBAL_ENDPOINT
        return f"https://{self.region}-aiplatform.googleapis.com"

    def require_provider(self) -> None:
        """Check that every identifier needed to reach the provider is set.

        Raises:
            ConfigurationError: If the project id, region or model is blank.
        """
        missing = [
            name
            for name in ("project_id", "region", "model")
            if not (getattr(self, name) or "").strip()
        ]
        if missing:
            raise ConfigurationError(
                "Provider configuration is incomplete",
                details={"missing": missing},
            )


# Global configuration instance
# Loads values from environment variables (NANOBANANA_* prefix) and .env file.
config = NanoBananaConfig()
