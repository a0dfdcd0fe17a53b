"""Configuration management for the image relay.

All configuration is loaded with Pydantic Settings from environment variables
carrying the ``IMAGERELAY_`` prefix, so deployments can be tuned without
code changes.

Environment Variable Loading
-----------------------------
Values are resolved in this order:
1. Environment variables (``IMAGERELAY_*``)
2. ``.env`` file in the working directory
3. Defaults defined in :class:`RelayConfig`

Example .env file:
    IMAGERELAY_API_KEY=...
    IMAGERELAY_USER_ID=...
    IMAGERELAY_USE_DYNAMIC_MODEL_SELECTION=true
    IMAGERELAY_DEFAULT_MODEL_IDENTIFIER=lightning-xl

Global Configuration Instance
------------------------------
A module-level ``config`` instance is created at import time and used by
the API application when no other configuration is supplied.  Tests build
their own :class:`RelayConfig` instances instead.

Secrets
-------
``api_key`` is a :class:`~pydantic.SecretStr` so it never shows up in
reprs or logs.  The upstream client unwraps it only when building the
``Authorization`` header.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class RelayConfig(BaseSettings):
    """Main configuration for the image relay.

    Attributes
    ----------
    Upstream Service:
        api_key : SecretStr
            Bearer token for the generation service
        user_id : str
            Account whose generation history ``/api/generations`` lists
        api_base_url : str
            Base URL of the generation service REST API
        request_timeout : float
            Timeout in seconds for each upstream request

    Model Selection:
        use_dynamic_model_selection : bool
            Pick the model from the enabled capabilities; when False the
            default model is always used
        default_model_identifier : str
            Public identifier of the fallback model
        models_file : Path | None
            Optional catalogue override; None uses the bundled catalogue

    Polling:
        poll_interval : float
            Seconds between status requests in ``wait_for_generation``

    Server:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        log_level : str
            Root logging level
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="IMAGERELAY_",
        case_sensitive=False,
    )

    # Upstream service
    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer token for the generation service",
    )
    user_id: str = Field(
        default="",
        description="User id whose generations are listed by /api/generations",
    )
    api_base_url: str = Field(
        default="https://cloud.leonardo.ai/api/rest/v1",
        description="Base URL of the generation REST API",
    )
    request_timeout: float = Field(
        default=60.0,
        description="Timeout in seconds for upstream requests",
        gt=0,
    )

    # Model selection
    use_dynamic_model_selection: bool = Field(
        default=True,
        description="Select the model from enabled capabilities",
    )
    default_model_identifier: str = Field(
        default="lightning-xl",
        description="Identifier of the fallback model",
    )
    models_file: Path | None = Field(
        default=None,
        description="Model catalogue JSON file (None uses the bundled catalogue)",
    )

    # Polling
    poll_interval: float = Field(
        default=0.5,
        description="Seconds between status polls",
        ge=0,
    )

    # Server
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=8000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root logging level",
    )


# Global configuration instance, loaded from IMAGERELAY_* variables and .env.
config = RelayConfig()
