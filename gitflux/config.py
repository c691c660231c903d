"""Configuration utilities for gitflux."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - older runtimes
    import tomli  # type: ignore[no-redef]
from pydantic import BaseModel, ValidationError, field_validator
from tomli_w import dump as toml_dump
import keyring
from keyring.errors import KeyringError

from .constants import API_DEFAULTS, CACHE_CONFIG, FETCH_DEFAULTS, RETRY_CONFIG
from .exceptions import ConfigurationError, InvalidPeriodError
from .periods import parse_period

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "gitflux"
CONFIG_FILE = CONFIG_DIR / "config.toml"
CONFIG_VERSION = "1.0.0"
KEYRING_SERVICE = "gitflux"
KEYRING_USERNAME = "github-pat"
TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GITHUB_ACCESS_TOKEN")


class ServerConfig(BaseModel):
    """Server connection details for GitHub deployments."""

    api_url: str = "https://api.github.com"
    web_url: str = "https://github.com"

    @field_validator("api_url", "web_url")
    @classmethod
    def validate_url(cls, v: str, info) -> str:
        """Validate URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"{info.field_name} must be a valid HTTP(S) URL, got: {v}")
        return v


class APIConfig(BaseModel):
    """Configuration for individual API requests."""

    timeout: int = API_DEFAULTS['timeout']
    max_retries: int = RETRY_CONFIG['max_retries']
    retry_base_delay: float = RETRY_CONFIG['base_delay']
    user_agent: str = "gitflux-analytics"

    @field_validator("timeout")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        """Validate that numeric fields are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got {v}")
        return v

    @field_validator("max_retries", "retry_base_delay")
    @classmethod
    def validate_non_negative(cls, v, info):
        """Validate that retry settings are not negative."""
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative, got {v}")
        return v


class FetchConfig(BaseModel):
    """Bounds for orchestrated, paginated fetches."""

    max_records: int = FETCH_DEFAULTS['max_records']
    rate_limit_threshold: int = FETCH_DEFAULTS['rate_limit_threshold']
    page_delay: float = FETCH_DEFAULTS['page_delay']
    per_page: int = API_DEFAULTS['per_page']
    max_review_prs: int = FETCH_DEFAULTS['max_review_prs']
    max_branch_details: int = FETCH_DEFAULTS['max_branch_details']

    @field_validator("max_records", "max_review_prs")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        """Validate that numeric fields are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got {v}")
        return v

    @field_validator("per_page")
    @classmethod
    def validate_per_page(cls, v: int) -> int:
        """GitHub caps page size at 100."""
        if not 1 <= v <= 100:
            raise ValueError(f"per_page must be between 1 and 100, got {v}")
        return v

    @field_validator("rate_limit_threshold", "page_delay", "max_branch_details")
    @classmethod
    def validate_non_negative(cls, v, info):
        """Validate that fields are not negative."""
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative, got {v}")
        return v


class CacheConfig(BaseModel):
    """Lifetimes and capacities of the two in-memory caches."""

    fetch_ttl_seconds: int = CACHE_CONFIG['fetch_ttl_seconds']
    fetch_max_entries: int = CACHE_CONFIG['fetch_max_entries']
    transform_ttl_seconds: int = CACHE_CONFIG['transform_ttl_seconds']
    transform_max_entries: int = CACHE_CONFIG['transform_max_entries']

    @field_validator("*")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        """Validate that numeric fields are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got {v}")
        return v


class DefaultsConfig(BaseModel):
    """Default values used when running analyses."""

    period: str = "30d"

    @field_validator("period")
    @classmethod
    def validate_period(cls, v: str) -> str:
        """Validate that the period token is known."""
        try:
            return parse_period(v).value
        except InvalidPeriodError as exc:
            raise ValueError(str(exc)) from exc


@dataclass(slots=True)
class Config:
    """Top-level configuration container."""

    version: str = CONFIG_VERSION
    server: ServerConfig = field(default_factory=ServerConfig)
    api: APIConfig = field(default_factory=APIConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @classmethod
    def load(cls, path: Path = CONFIG_FILE) -> "Config":
        """Load configuration data from disk.

        Args:
            path: Optional override for the configuration file path.

        Returns:
            Config: The loaded configuration object.

        Raises:
            ConfigurationError: If the configuration file is corrupted or invalid.
        """

        if not path.exists():
            return cls()

        try:
            with path.open("rb") as handle:
                raw: Dict[str, Any] = tomli.load(handle)
        except Exception as exc:
            raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

        version = raw.get("version", CONFIG_VERSION)

        try:
            server = ServerConfig(**raw.get("server", {}))
            api = APIConfig(**raw.get("api", {}))
            fetch = FetchConfig(**raw.get("fetch", {}))
            cache = CacheConfig(**raw.get("cache", {}))
            defaults = DefaultsConfig(**raw.get("defaults", {}))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

        return cls(version=version, server=server, api=api, fetch=fetch, cache=cache, defaults=defaults)

    def dump(self, path: Path = CONFIG_FILE, backup: bool = True) -> None:
        """Persist the configuration to disk.

        Args:
            path: Path to save the configuration file.
            backup: If True and config file exists, create a backup before overwriting.
        """

        path.parent.mkdir(parents=True, exist_ok=True)

        if backup and path.exists():
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            backup_path = path.parent / f"{path.stem}.{timestamp}.bak"
            shutil.copy2(path, backup_path)

        with path.open("wb") as handle:
            toml_dump(self.to_dict(), handle)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            **{name: section.model_dump() for name, section in self._sections().items()},
        }

    def _sections(self) -> Dict[str, BaseModel]:
        return {
            "server": self.server,
            "api": self.api,
            "fetch": self.fetch,
            "cache": self.cache,
            "defaults": self.defaults,
        }

    def update_auth(self, pat: str) -> None:
        """Store the PAT in the system keyring.

        Raises:
            RuntimeError: If the keyring backend refuses the credential.
        """
        try:
            keyring.set_password(KEYRING_SERVICE, KEYRING_USERNAME, pat)
        except KeyringError as exc:
            raise RuntimeError(
                f"Failed to store credentials securely: {exc}. "
                f"Set the GITHUB_TOKEN environment variable instead."
            ) from exc

    def get_pat(self) -> Optional[str]:
        """Return the GitHub token from the environment or the keyring.

        Returns:
            The token, or None to make unauthenticated requests.
        """
        for name in TOKEN_ENV_VARS:
            value = os.environ.get(name)
            if value:
                return value

        try:
            return keyring.get_password(KEYRING_SERVICE, KEYRING_USERNAME)
        except KeyringError as exc:
            logger.warning(f"Keyring unavailable, continuing unauthenticated: {exc}")
            return None

    def to_display_dict(self) -> Dict[str, Any]:
        """Return a serialisable representation for display purposes."""

        payload = self.to_dict()
        payload["auth"] = {"pat": "<set>" if self.get_pat() else "<not set>"}
        return payload

    def _resolve(self, key: str) -> tuple[BaseModel, str]:
        parts = key.split(".")
        if len(parts) != 2:
            raise ValueError(f"Invalid key format '{key}'. Expected format: section.field")

        section, field_name = parts
        sections = self._sections()

        if section not in sections:
            valid_sections = ", ".join(sections.keys())
            raise ValueError(f"Invalid section '{section}'. Valid sections: {valid_sections}")

        config_obj = sections[section]
        if field_name not in type(config_obj).model_fields:
            valid_fields = ", ".join(type(config_obj).model_fields.keys())
            raise ValueError(f"Invalid field '{field_name}' for section '{section}'. Valid fields: {valid_fields}")
        return config_obj, field_name

    def set_value(self, key: str, value: str) -> None:
        """Set a configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., 'fetch.page_delay')
            value: Value to set (will be converted to appropriate type)

        Raises:
            ValueError: If key is invalid or value cannot be converted
        """
        config_obj, field_name = self._resolve(key)

        current_data = config_obj.model_dump()
        current_data[field_name] = value
        try:
            validated_model = type(config_obj).model_validate(current_data)
        except ValidationError as exc:
            error_msg = "; ".join(
                f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}" for e in exc.errors()
            )
            raise ValueError(f"Validation error for {key}: {error_msg}") from exc

        for name in type(validated_model).model_fields:
            setattr(config_obj, name, getattr(validated_model, name))

    def get_value(self, key: str) -> Any:
        """Get a configuration value using dot notation.

        Raises:
            ValueError: If key is invalid
        """
        config_obj, field_name = self._resolve(key)
        return getattr(config_obj, field_name)
