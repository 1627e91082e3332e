"""
Wrapper settings.

Every setting defaults from the process environment; a ``.env`` file in the
working directory is loaded first so local overrides need no exports.

    TABLE_PREFIX / ENVIRONMENT_NAME      -> table_prefix ("local" if neither is set)
    DYNAMODB_ENDPOINT_URL                -> endpoint_url (DynamoDB Local, LocalStack)
    DYNAMODB_DELAY_AFTER_CREATE_TABLE_MS -> delay_after_create_table_ms
    DYNAMODB_DEBUG_LOGGING               -> enable_debug_logging
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

load_dotenv()

DEFAULT_DELAY_AFTER_CREATE_TABLE_MS = 5000
DEFAULT_TABLE_PREFIX = "local"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name, default)


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes")


def _env_table_prefix() -> Optional[str]:
    return os.getenv("TABLE_PREFIX") or os.getenv("ENVIRONMENT_NAME") or DEFAULT_TABLE_PREFIX


def _env_create_delay() -> int:
    return int(os.getenv("DYNAMODB_DELAY_AFTER_CREATE_TABLE_MS", DEFAULT_DELAY_AFTER_CREATE_TABLE_MS))


class DynamoDBConfig(BaseModel):
    """Client, naming, marshalling and diagnostics settings for one wrapper."""

    model_config = ConfigDict(validate_assignment=True)

    # Session and endpoint
    region_name: str = Field(default_factory=lambda: _env("AWS_REGION", "us-east-1"))
    aws_access_key_id: Optional[str] = Field(default_factory=lambda: _env("AWS_ACCESS_KEY_ID"))
    aws_secret_access_key: Optional[str] = Field(default_factory=lambda: _env("AWS_SECRET_ACCESS_KEY"))
    endpoint_url: Optional[str] = Field(
        default_factory=lambda: _env("DYNAMODB_ENDPOINT_URL"),
        description="Overrides the regional endpoint, e.g. http://localhost:8000"
    )

    # botocore client tuning
    max_pool_connections: int = Field(default=50, gt=0)
    retries: int = Field(default=3, ge=0, description="botocore max_attempts")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Connect and read timeout")

    # Tables
    table_prefix: Optional[str] = Field(
        default_factory=_env_table_prefix,
        description="Tables are named '<prefix>.<base name>'; None leaves base names untouched"
    )
    delay_after_create_table_ms: int = Field(
        default_factory=_env_create_delay,
        description="Pause after a new table turns ACTIVE, before TTL is enabled or the table is used"
    )

    # Item marshalling
    convert_empty_values: bool = Field(default=False, description="Write empty strings, bytes and sets as NULL")
    remove_undefined_values: bool = Field(default=True, description="Leave None-valued attributes out of items")

    # Diagnostics
    enable_debug_logging: bool = Field(
        default_factory=lambda: _env_flag("DYNAMODB_DEBUG_LOGGING"),
        description="Log request and page dumps, and list existing tables when one is missing"
    )

    @field_validator('region_name')
    @classmethod
    def region_required(cls, v):
        if not v:
            raise ValueError("AWS region name is required")
        return v

    @field_validator('table_prefix')
    @classmethod
    def prefix_not_empty(cls, v):
        """An empty prefix is ambiguous; None is the way to switch prefixing off."""
        if v is not None and not v:
            raise ValueError("prefix cannot be an empty string")
        return v

    @field_validator('delay_after_create_table_ms')
    @classmethod
    def delay_not_negative(cls, v):
        if v < 0:
            raise ValueError("delay_after_create_table_ms cannot be negative")
        return v

    def get_table_name(self, base_name: str) -> str:
        """Physical table name for a record type's base table name."""
        return f"{self.table_prefix}.{base_name}" if self.table_prefix else base_name

    @classmethod
    def from_env(cls) -> 'DynamoDBConfig':
        return cls()

    @classmethod
    def for_local_development(cls, endpoint_url: str = "http://localhost:8000") -> 'DynamoDBConfig':
        """Settings for DynamoDB Local: dummy credentials, no settle delay, debug output on."""
        return cls(
            region_name="us-east-1",
            aws_access_key_id="local",
            aws_secret_access_key="local",
            endpoint_url=endpoint_url,
            table_prefix=DEFAULT_TABLE_PREFIX,
            delay_after_create_table_ms=0,
            enable_debug_logging=True
        )
