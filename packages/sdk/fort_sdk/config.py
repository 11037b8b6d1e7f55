"""
Configuration loading and validation.

Loads client configuration from a YAML file. The app secret is resolved from
the environment variable named in the file; it is never stored there.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    url: str = "http://localhost:8080"
    verify_tls: bool = True
    request_timeout_seconds: int = 30
    # Server pings every 15s by default; silence longer than this reconnects.
    stream_read_timeout_seconds: int = 60


class AppCredentialsConfig(BaseModel):
    app_key: str
    app_secret_env: str = "FORT_APP_SECRET"

    @property
    def app_secret(self) -> str | None:
        return os.environ.get(self.app_secret_env)


class LoggingConfig(BaseModel):
    level: str = "info"
    format: Literal["json", "text"] = "json"


class FortClientConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    app: AppCredentialsConfig
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def auth_headers(self) -> dict[str, str]:
        secret = self.app.app_secret
        if not secret:
            raise ValueError(
                f"App secret not set: environment variable {self.app.app_secret_env} is empty"
            )
        return {"X-App-Key": self.app.app_key, "X-App-Secret": secret}


def load_config(path: str | Path) -> FortClientConfig:
    """Load and validate client configuration from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return FortClientConfig.model_validate(raw)
