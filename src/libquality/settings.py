"""
Centralized application settings.

The configuration is shared across the CLI and the API server.
"""
from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Project-wide settings loaded from env or .env files."""

    model_config = SettingsConfigDict(env_prefix="LIBQUALITY_")

    mongo_uri: str = "mongodb://localhost:27017"
    mongo_database: str = "libquality"
    mongo_repositories_collection: str = "repositories"
    mongo_issues_collection: str = "issues"
    mongo_server_selection_timeout_ms: int = 5000
    github_api_base: str = "https://api.github.com"
    github_token: Optional[str] = None
    github_per_page: int = 100
    github_request_timeout: int = 30
    telemetry_enabled: bool = True
    flatten_errors: bool = False
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @field_validator("github_per_page")
    @classmethod
    def _clamp_per_page(cls, value: int) -> int:
        # GitHub rejects anything above 100 items per page.
        return min(max(value, 1), 100)

    @field_validator("github_api_base")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


_CONFIG_ENV_VAR = "LIBQUALITY_CONFIG_PATH"
_DEFAULT_CONFIG_FILE = Path("libquality_settings.toml")


def _load_toml_config() -> Dict[str, Any]:
    """Load configuration from the primary TOML file on disk."""
    candidates: List[Path] = []
    config_override = os.getenv(_CONFIG_ENV_VAR)
    if config_override:
        candidates.append(Path(config_override))
    candidates.append(_DEFAULT_CONFIG_FILE)

    for candidate in candidates:
        if candidate.is_file():
            with candidate.open("rb") as handle:
                return tomllib.load(handle)
    return {}


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def _flatten_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Translate grouped TOML sections into AppSettings keyword arguments."""
    data: Dict[str, Any] = {}

    mongo = raw.get("mongo", {})
    if mongo:
        if "uri" in mongo:
            data["mongo_uri"] = mongo["uri"]
        if "database" in mongo:
            data["mongo_database"] = mongo["database"]
        if "repositories_collection" in mongo:
            data["mongo_repositories_collection"] = mongo["repositories_collection"]
        if "issues_collection" in mongo:
            data["mongo_issues_collection"] = mongo["issues_collection"]
        if "server_selection_timeout_ms" in mongo:
            data["mongo_server_selection_timeout_ms"] = int(
                mongo["server_selection_timeout_ms"]
            )

    github = raw.get("github", {})
    if github:
        if "api_base" in github:
            data["github_api_base"] = github["api_base"]
        if "token" in github:
            data["github_token"] = _blank_to_none(github["token"])
        if "per_page" in github:
            data["github_per_page"] = int(github["per_page"])
        if "request_timeout" in github:
            data["github_request_timeout"] = int(github["request_timeout"])

    api_section = raw.get("api", {})
    if api_section:
        if "host" in api_section:
            data["api_host"] = api_section["host"]
        if "port" in api_section:
            data["api_port"] = int(api_section["port"])

    general = raw.get("general", {})
    if "telemetry_enabled" in general:
        data["telemetry_enabled"] = bool(general["telemetry_enabled"])
    if "flatten_errors" in general:
        data["flatten_errors"] = bool(general["flatten_errors"])

    logging_section = raw.get("logging", {})
    if "level" in logging_section:
        data["log_level"] = str(logging_section["level"]).upper()

    return data


def load_settings() -> AppSettings:
    raw = _load_toml_config()
    flattened = _flatten_config(raw)
    return AppSettings(**flattened)


settings = load_settings()
