"""Configuration for carbone-storage.

Configuration is a JSON file located through environment variables:
- CARBONE_AST_CONFIG_PATH: directory holding the file (default ./config)
- CARBONE_AST_CONFIG: file name (default config.json)

Credentials, container names and retry options may be overridden from the
environment; environment values always take precedence over the file.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "config.json"
DEFAULT_CONFIG_DIR = Path("config")
DEFAULT_TEMPLATE_DIR = Path("template")
DEFAULT_RENDER_DIR = Path("render")


class EnvOverrides(BaseSettings):
    """Environment variables recognized by the configuration provider."""

    model_config = SettingsConfigDict(case_sensitive=True, extra="ignore")

    # Config file location
    CARBONE_AST_CONFIG: str = DEFAULT_CONFIG_NAME
    CARBONE_AST_CONFIG_PATH: str = ""

    # Azure storage account
    AZURE_STORAGE_ACCOUNT: str = ""
    AZURE_STORAGE_KEY: str = ""
    AZURE_STORAGE_BLOB_ENDPOINT: str = ""

    # Containers
    CONTAINER_RENDERS: str = ""
    CONTAINER_TEMPLATES: str = ""

    # Retry policy
    STORAGE_MAX_TRIES: Optional[int] = None
    STORAGE_TRY_TIMEOUT_MS: Optional[int] = None
    STORAGE_RETRY_DELAY_MS: Optional[int] = None
    STORAGE_MAX_RETRY_DELAY_MS: Optional[int] = None
    STORAGE_RETRY_POLICY: str = ""


@dataclass(frozen=True)
class StorageCredentials:
    """Shared-key credentials for an Azure storage account."""

    account_name: str
    account_key: str

    @property
    def account_url(self) -> str:
        return f"https://{self.account_name}.blob.core.windows.net"


@dataclass(frozen=True)
class RetryOptions:
    """Client-level retry policy handed to the blob SDK.

    Attributes:
        max_tries: Total attempts per request, first try included
        try_timeout_ms: Per-attempt read timeout
        retry_delay_ms: Initial delay before the first retry
        max_retry_delay_ms: Upper bound on any single delay (exponential only)
        retry_policy_type: "EXPONENTIAL" or "FIXED"
    """

    max_tries: Optional[int] = None
    try_timeout_ms: Optional[int] = None
    retry_delay_ms: Optional[int] = None
    max_retry_delay_ms: Optional[int] = None
    retry_policy_type: Optional[str] = None

    _KEYS = {
        "max_tries": "maxTries",
        "try_timeout_ms": "tryTimeoutInMs",
        "retry_delay_ms": "retryDelayInMs",
        "max_retry_delay_ms": "maxRetryDelayInMs",
        "retry_policy_type": "retryPolicyType",
    }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RetryOptions":
        return cls(**{attr: data.get(key) for attr, key in cls._KEYS.items()})

    def to_dict(self) -> dict:
        return {
            key: getattr(self, attr)
            for attr, key in self._KEYS.items()
            if getattr(self, attr) is not None
        }

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass(frozen=True)
class StoreConfig:
    """Resolved, immutable storage configuration.

    Attributes:
        credentials: Storage account credentials (None disables remote storage)
        blob_endpoint: Blob service URL override (defaults to the account URL)
        templates_container: Container holding uploaded templates
        renders_container: Container holding generated renders
        template_path: Local template cache directory
        render_path: Local render cache directory
        retry: Client retry policy options
    """

    credentials: Optional[StorageCredentials] = None
    blob_endpoint: Optional[str] = None
    templates_container: Optional[str] = None
    renders_container: Optional[str] = None
    template_path: Optional[Path] = None
    render_path: Optional[Path] = None
    retry: RetryOptions = field(default_factory=RetryOptions)

    @property
    def template_dir(self) -> Path:
        return self.template_path or DEFAULT_TEMPLATE_DIR

    @property
    def render_dir(self) -> Path:
        return self.render_path or DEFAULT_RENDER_DIR

    @property
    def account_url(self) -> Optional[str]:
        if self.blob_endpoint:
            return self.blob_endpoint.rstrip("/")
        if self.credentials:
            return self.credentials.account_url
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StoreConfig":
        """Build a config from the JSON key spelling.

        Args:
            data: Mapping using the configuration file keys

        Returns:
            StoreConfig instance; unknown keys are ignored
        """
        credentials = None
        creds = data.get("storageCredentials")
        if creds and creds.get("accountName") and creds.get("accountKey"):
            credentials = StorageCredentials(
                account_name=creds["accountName"],
                account_key=creds["accountKey"],
            )

        template_path = data.get("templatePath")
        render_path = data.get("renderPath")

        return cls(
            credentials=credentials,
            blob_endpoint=data.get("blobEndpoint") or None,
            templates_container=data.get("templatesContainer") or None,
            renders_container=data.get("rendersContainer") or None,
            template_path=Path(template_path) if template_path else None,
            render_path=Path(render_path) if render_path else None,
            retry=RetryOptions.from_dict(data.get("storageRetryOptions") or {}),
        )

    def to_dict(self) -> dict:
        """Return the set keys in the configuration file spelling."""
        data: dict = {}
        if self.credentials:
            data["storageCredentials"] = {
                "accountName": self.credentials.account_name,
                "accountKey": self.credentials.account_key,
            }
        if self.blob_endpoint:
            data["blobEndpoint"] = self.blob_endpoint
        if self.templates_container:
            data["templatesContainer"] = self.templates_container
        if self.renders_container:
            data["rendersContainer"] = self.renders_container
        if self.template_path:
            data["templatePath"] = str(self.template_path)
        if self.render_path:
            data["renderPath"] = str(self.render_path)
        if not self.retry.is_empty():
            data["storageRetryOptions"] = self.retry.to_dict()
        return data


def get_config_path(env: Optional[EnvOverrides] = None) -> Path:
    """Get the configuration file path from the environment.

    Args:
        env: Parsed environment (read from os.environ when omitted)

    Returns:
        Path to the JSON configuration file
    """
    env = env or EnvOverrides()
    config_dir = Path(env.CARBONE_AST_CONFIG_PATH) if env.CARBONE_AST_CONFIG_PATH else DEFAULT_CONFIG_DIR
    return config_dir / env.CARBONE_AST_CONFIG


def read_config_file(path: Path) -> dict:
    """Read the JSON configuration file.

    A missing or malformed file yields an empty mapping.

    Args:
        path: Path to the JSON file

    Returns:
        Parsed mapping
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug(f"No configuration file at {path}")
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable configuration file {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Ignoring configuration file {path}: top level is not an object")
        return {}
    return data


def apply_env_overrides(data: Mapping[str, Any], env: Optional[EnvOverrides] = None) -> dict:
    """Overlay environment variables onto a configuration mapping.

    Args:
        data: Mapping in configuration file spelling (not modified)
        env: Parsed environment (read from os.environ when omitted)

    Returns:
        New mapping with the environment values applied
    """
    env = env or EnvOverrides()
    merged = dict(data)

    # Credentials only apply as a pair
    if env.AZURE_STORAGE_ACCOUNT and env.AZURE_STORAGE_KEY:
        merged["storageCredentials"] = {
            "accountName": env.AZURE_STORAGE_ACCOUNT,
            "accountKey": env.AZURE_STORAGE_KEY,
        }
    if env.AZURE_STORAGE_BLOB_ENDPOINT:
        merged["blobEndpoint"] = env.AZURE_STORAGE_BLOB_ENDPOINT
    if env.CONTAINER_RENDERS:
        merged["rendersContainer"] = env.CONTAINER_RENDERS
    if env.CONTAINER_TEMPLATES:
        merged["templatesContainer"] = env.CONTAINER_TEMPLATES

    retry_env = {
        "maxTries": env.STORAGE_MAX_TRIES,
        "tryTimeoutInMs": env.STORAGE_TRY_TIMEOUT_MS,
        "retryDelayInMs": env.STORAGE_RETRY_DELAY_MS,
        "maxRetryDelayInMs": env.STORAGE_MAX_RETRY_DELAY_MS,
        "retryPolicyType": env.STORAGE_RETRY_POLICY or None,
    }
    retry_env = {k: v for k, v in retry_env.items() if v is not None}
    if retry_env:
        retry = dict(merged.get("storageRetryOptions") or {})
        retry.update(retry_env)
        merged["storageRetryOptions"] = retry

    return merged


def load_config(path: Optional[Path] = None) -> StoreConfig:
    """Load configuration from file and environment.

    Args:
        path: Path to config file (defaults to the environment-derived location)

    Returns:
        StoreConfig instance
    """
    env = EnvOverrides()
    if path is None:
        path = get_config_path(env)
    return StoreConfig.from_dict(apply_env_overrides(read_config_file(path), env))


# Process-wide file contents, loaded on first get_config()
_config_data: Optional[dict] = None


def get_config() -> StoreConfig:
    """Get the shared configuration.

    The file is read on the first call only; environment overrides are
    re-applied on every call.

    Returns:
        StoreConfig instance
    """
    global _config_data

    env = EnvOverrides()
    if _config_data is None:
        _config_data = read_config_file(get_config_path(env))
    return StoreConfig.from_dict(apply_env_overrides(_config_data, env))


def set_config(value: Union[StoreConfig, Mapping[str, Any], None]) -> None:
    """Replace the shared configuration.

    Args:
        value: New configuration, or None to reload from file on next access
    """
    global _config_data

    if value is None:
        _config_data = None
    elif isinstance(value, StoreConfig):
        _config_data = value.to_dict()
    else:
        _config_data = dict(value)
