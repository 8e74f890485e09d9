"""Process configuration loaded from environment variables.

Required: PORT, SECRET, ACCESS_TOKEN. Everything else has a default.
Validation happens once at startup; any missing or malformed value aborts
before the server binds a socket.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_API_URL = "https://api.cyanite.ai/graphql"
DEFAULT_CORS_ORIGIN_REGEX = r"^http://localhost:\d+$"
DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024

# Environment variable name -> AppConfig field
_ENV_FIELDS = {
    "PORT": "port",
    "SECRET": "secret",
    "ACCESS_TOKEN": "access_token",
    "API_URL": "api_url",
    "UPLOAD_DIR": "upload_dir",
    "MAX_UPLOAD_BYTES": "max_upload_bytes",
    "CORS_ORIGIN_REGEX": "cors_origin_regex",
    "AUDIT_LOG_PATH": "audit_log_path",
    "FETCH_TIMEOUT": "fetch_timeout",
}


class ConfigError(Exception):
    """Raised when the environment does not describe a runnable process."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__("Invalid configuration: " + "; ".join(problems))


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    port: int = Field(ge=1, le=65535)
    secret: str = Field(min_length=1)
    access_token: str = Field(min_length=1)
    api_url: str = DEFAULT_API_URL
    upload_dir: str = "uploads"
    max_upload_bytes: int = Field(default=DEFAULT_MAX_UPLOAD_BYTES, gt=0)
    cors_origin_regex: str = DEFAULT_CORS_ORIGIN_REGEX
    audit_log_path: str | None = None
    fetch_timeout: float | None = Field(default=None, gt=0)

    @field_validator("api_url")
    @classmethod
    def _check_api_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Build the config from ``environ`` (defaults to ``os.environ``)."""
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for var, field_name in _ENV_FIELDS.items():
            raw = env.get(var)
            # Empty strings count as unset so optional values fall back to defaults
            if raw is not None and raw.strip() != "":
                values[field_name] = raw.strip()

        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            field_to_env = {f: v for v, f in _ENV_FIELDS.items()}
            problems = []
            for error in exc.errors():
                field_name = str(error["loc"][0]) if error["loc"] else "?"
                var = field_to_env.get(field_name, field_name)
                problems.append(f"{var}: {error['msg']}")
            raise ConfigError(problems) from exc
