"""
Configuration Management Module

Process-level settings come from environment variables or a .env file.
Accounts, model bindings and access tokens come from a JSON config file.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
DEFAULT_ENDPOINT = "/v1/chat/completions"
DEFAULT_METHOD = "POST"
DEFAULT_COZE_HOST = "https://api.coze.com"


class Settings(BaseSettings):
    """
    Application Configuration Class

    All configuration items can be overridden by environment variables, with names matching fields (uppercase).
    """

    # Application Config
    APP_NAME: str = "Coze2OpenAI"
    DEBUG: bool = False

    # Path of the JSON file holding accounts, models and tokens
    CONFIG_PATH: str = "./config.json"
    # Listen address (port comes from the JSON config file)
    HOST: str = "0.0.0.0"

    # HTTP Client Config
    # Request timeout (seconds)
    HTTP_TIMEOUT: int = 1800

    # Coze Config
    # user_id sent with every chat; Coze requires one but conversations are not persisted
    COZE_USER_ID: str = "coze2openai"

    # What to do with system messages when the request has no user message:
    # "drop" discards them, "standalone" sends them as a user message, "reject" returns 400
    ORPHAN_SYSTEM_PROMPT: Literal["drop", "standalone", "reject"] = "drop"

    # Cancel the Coze chat when the client goes away before the answer is complete
    CANCEL_ON_DISCONNECT: bool = True
    # How often a blocking (non-stream) request checks for client disconnect (seconds)
    DISCONNECT_POLL_INTERVAL: float = 0.5

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get application configuration (Singleton)

    Returns:
        Settings: Application configuration instance
    """
    return Settings()


class ConfigError(Exception):
    """Raised when the gateway cannot be configured from the given file."""


class AccountConfig(BaseModel):
    """One Coze account: API host, personal access token and the bots it owns."""

    host: str = DEFAULT_COZE_HOST
    token: str = ""
    bots: list[str] = Field(default_factory=list)

    @field_validator("host")
    @classmethod
    def _normalize_host(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            return DEFAULT_COZE_HOST
        if "://" not in value:
            value = f"https://{value}"
        return value


class GatewayConfig(BaseModel):
    """Contents of the JSON config file."""

    port: int = DEFAULT_PORT
    endpoint: str = DEFAULT_ENDPOINT
    method: str = DEFAULT_METHOD

    accounts: list[AccountConfig] = Field(default_factory=list)
    # model name -> bot ids serving it
    models: dict[str, list[str]] = Field(default_factory=dict)
    # accepted bearer tokens; empty disables authentication
    tokens: list[str] = Field(default_factory=list)

    @field_validator("port")
    @classmethod
    def _default_port(cls, value: int) -> int:
        if value <= 0 or value >= 65535:
            return DEFAULT_PORT
        return value

    @field_validator("endpoint")
    @classmethod
    def _default_endpoint(cls, value: str) -> str:
        return value or DEFAULT_ENDPOINT

    @field_validator("method")
    @classmethod
    def _default_method(cls, value: str) -> str:
        return value.upper() or DEFAULT_METHOD


def load_gateway_config(path: str | Path) -> GatewayConfig:
    """
    Load the JSON config file

    Args:
        path: Config file path

    Returns:
        GatewayConfig: Parsed configuration with defaults applied

    Raises:
        ConfigError: File unreadable or not a valid config document
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.error("read config file error: %s", e)
        raise ConfigError(f"read config file error: {e}") from e

    try:
        return GatewayConfig.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error("parse config file error: %s", e)
        raise ConfigError(f"parse config file error: {e}") from e
