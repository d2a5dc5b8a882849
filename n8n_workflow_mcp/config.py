"""Process configuration loaded from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from urllib.parse import urlsplit

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from n8n_workflow_mcp.errors import ConfigurationError

BASE_URL_ENV_VAR = "N8N_BASE_URL"
API_KEY_ENV_VAR = "N8N_API_KEY"
WEBHOOK_SECRET_ENV_VAR = "N8N_WEBHOOK_SECRET"
DEFAULT_TIMEOUT_SECONDS = 30.0

REQUIRED_VARIABLES_HELP = (
    f"  - {BASE_URL_ENV_VAR} (e.g., https://your-n8n-instance.com)",
    f"  - {API_KEY_ENV_VAR} (your n8n API key)",
    f"  - {WEBHOOK_SECRET_ENV_VAR} (optional)",
)


class ServerConfig(BaseModel):
    """Immutable connection settings for one n8n instance."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str
    api_key: str = Field(min_length=1)
    webhook_secret: str | None = None
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        """Require an absolute URL with scheme and host."""
        parts = urlsplit(value.strip())
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"{BASE_URL_ENV_VAR} must be a valid URL")
        return value.strip()

    @field_validator("webhook_secret")
    @classmethod
    def blank_secret_is_unset(cls, value: str | None) -> str | None:
        """Treat an empty secret as not configured."""
        return value or None


def _describe(error: ValidationError) -> str:
    """Join pydantic messages into one operator-facing sentence."""
    env_names = {
        "base_url": BASE_URL_ENV_VAR,
        "api_key": API_KEY_ENV_VAR,
        "webhook_secret": WEBHOOK_SECRET_ENV_VAR,
    }
    messages = []
    for detail in error.errors():
        field_name = str(detail["loc"][0]) if detail["loc"] else ""
        label = env_names.get(field_name, field_name)
        messages.append(f"{label}: {detail['msg']}")
    return ", ".join(messages)


def load_config(
    environ: Mapping[str, str] | None = None,
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> ServerConfig:
    """Build configuration from the environment and fail fast if invalid.

    When ``environ`` is omitted, ``./.env`` is loaded first without overriding
    variables that are already set.
    """
    if environ is None:
        load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
        environ = os.environ

    try:
        return ServerConfig(
            base_url=environ.get(BASE_URL_ENV_VAR, ""),
            api_key=environ.get(API_KEY_ENV_VAR, ""),
            webhook_secret=environ.get(WEBHOOK_SECRET_ENV_VAR),
            timeout_seconds=timeout_seconds,
        )
    except ValidationError as error:
        raise ConfigurationError(f"Invalid configuration: {_describe(error)}") from error
