"""
Configuration system for basesync using Pydantic.
"""

import os
from pathlib import Path
from typing import Any, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


DEFAULT_COLOR_PALETTE = [
    "blueLight2",
    "cyanLight2",
    "tealLight2",
    "greenLight2",
    "yellowLight2",
    "orangeLight2",
    "redLight2",
    "pinkLight2",
    "purpleLight2",
    "grayLight2",
]


class AirtableConfig(BaseModel):
    """Airtable metadata API configuration."""

    api_key: Optional[str] = Field(None, description="Personal access token")
    api_url: str = Field(
        "https://api.airtable.com/v0", description="Airtable REST API root"
    )
    workspace_id: Optional[str] = Field(
        None, description="Workspace that new bases are created in"
    )
    timeout: int = Field(30, description="Request timeout in seconds")
    max_retries: int = Field(3, description="Retries on HTTP 429 responses")
    retry_delay: float = Field(1.0, description="Base retry delay in seconds")

    @property
    def meta_url(self) -> str:
        """Root of the schema (metadata) endpoints."""
        return f"{self.api_url.rstrip('/')}/meta"


class SyncConfig(BaseModel):
    """Schema synchronization configuration."""

    color_palette: List[str] = Field(
        default_factory=lambda: list(DEFAULT_COLOR_PALETTE),
        description="Colors assigned to select choices that have none",
    )
    base_name_prefix: str = Field(
        "Client Base", description="Name prefix for bases created without a name"
    )
    report_dir: Optional[str] = Field(
        None, description="Directory that sync reports are written to"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


class BaseSyncConfig(BaseSettings):
    """Main basesync configuration."""

    service_name: str = Field("basesync", description="Service name")
    debug: bool = Field(False, description="Enable debug mode")

    store: str = Field("airtable", description="Schema store provider")
    airtable: AirtableConfig = Field(
        default_factory=AirtableConfig, description="Airtable configuration"
    )
    sync: SyncConfig = Field(
        default_factory=SyncConfig, description="Synchronization configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BASESYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "BaseSyncConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def apply_environment_fallbacks(self) -> "BaseSyncConfig":
        """Fill Airtable credentials from the conventional AIRTABLE_* variables."""
        if not self.airtable.api_key or self.airtable.api_key.startswith("$"):
            self.airtable.api_key = os.getenv("AIRTABLE_API_KEY") or None
        if not self.airtable.workspace_id or self.airtable.workspace_id.startswith("$"):
            self.airtable.workspace_id = os.getenv("AIRTABLE_WORKSPACE_ID") or None
        return self

    def require_api_key(self) -> str:
        """Return the Airtable API key or fail with a configuration error."""
        if not self.airtable.api_key:
            raise ConfigurationError(
                "Airtable API key is not configured "
                "(set airtable.api_key, BASESYNC_AIRTABLE__API_KEY or AIRTABLE_API_KEY)"
            )
        return self.airtable.api_key

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_none=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )
