"""Configuration loading and Pydantic models for s3-mpu."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

DEFAULT_PART_SIZE = 5 * 1024 * 1024


class UploadConfig(BaseModel):
    """Multipart session tuning."""

    part_size: int = Field(default=DEFAULT_PART_SIZE, gt=0)
    concurrency: int | None = Field(default=4, ge=1)
    enforce_part_size_limits: bool = True


class ClientConfig(BaseModel):
    """S3 endpoint and credential configuration."""

    region: str = "us-east-1"
    endpoint_url: str = ""
    use_path_style: bool = False
    access_key_id: str = ""
    secret_access_key: str = ""
    max_attempts: int = Field(default=3, ge=1)


class LoggingConfig(BaseModel):
    """Log output configuration."""

    level: str = "INFO"
    format: str = "text"


class S3MpuConfig(BaseModel):
    """Top-level s3-mpu configuration."""

    upload: UploadConfig = Field(default_factory=UploadConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _parse_upload(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the upload section from YAML data into a dict for Pydantic."""
    if data is None:
        return {}
    return {
        "part_size": data.get("part_size", DEFAULT_PART_SIZE),
        "concurrency": data.get("concurrency", 4),
        "enforce_part_size_limits": data.get("enforce_part_size_limits", True),
    }


def _parse_client(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the client section from YAML data.

    Handles nested structure: client.credentials.access_key_id -> access_key_id
    """
    if data is None:
        return {}
    result: dict[str, Any] = {
        "region": data.get("region", "us-east-1"),
        "endpoint_url": data.get("endpoint_url", ""),
        "use_path_style": data.get("use_path_style", False),
        "max_attempts": data.get("max_attempts", 3),
    }
    credentials = data.get("credentials")
    if isinstance(credentials, dict):
        result["access_key_id"] = credentials.get("access_key_id", "")
        result["secret_access_key"] = credentials.get("secret_access_key", "")
    return result


def _parse_logging(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the logging section from YAML data."""
    if data is None:
        return {}
    return {
        "level": data.get("level", "INFO"),
        "format": data.get("format", "text"),
    }


def load_config(path: Path) -> S3MpuConfig:
    """Load an S3MpuConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated S3MpuConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        pydantic.ValidationError: If a value is out of range.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return S3MpuConfig(
        upload=UploadConfig(**_parse_upload(raw.get("upload"))),
        client=ClientConfig(**_parse_client(raw.get("client"))),
        logging=LoggingConfig(**_parse_logging(raw.get("logging"))),
    )
