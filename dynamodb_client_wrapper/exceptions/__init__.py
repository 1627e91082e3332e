# Base exception class
from .base import DynamoDBWrapperError

from .domain_exceptions import (
    ConfigurationError,
    ConflictError,
    ConnectionError,
    InfrastructureFault,
    InvalidArgumentError,
    ItemNotFoundError,
    NotFoundError,
    RetryableError,
    TableNotFoundError,
    ValidationError,
)

__all__ = [
    # Base exception
    "DynamoDBWrapperError",

    # Domain exceptions (alphabetically ordered)
    "ConfigurationError",
    "ConflictError",
    "ConnectionError",
    "InfrastructureFault",
    "InvalidArgumentError",
    "ItemNotFoundError",
    "NotFoundError",
    "RetryableError",
    "TableNotFoundError",
    "ValidationError",
]
