"""
Fault categories raised by the wrapper.

    DynamoDBWrapperError
    ├── InvalidArgumentError      bad caller input, raised before any call
    ├── ConfigurationError        record type / table request not usable as declared
    ├── NotFoundError
    │   ├── TableNotFoundError
    │   └── ItemNotFoundError
    ├── ConflictError             conditional write or table mutation rejected
    ├── InfrastructureFault       everything else the service reports
    │   ├── ConnectionError       client unavailable, closed or unauthorized
    │   └── RetryableError        throttling, temporary unavailability
    └── ValidationError           stored item does not fit its record model
"""

from typing import Any, Dict, Optional

from .base import DynamoDBWrapperError


def _present(**values: Any) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v}


class InvalidArgumentError(DynamoDBWrapperError):
    """Empty key strings, a missing range for a range-keyed table, empty prefix or TTL names."""

    def __init__(self, message: str, argument: Optional[str] = None):
        self.argument = argument
        super().__init__(message, None, _present(argument=argument))


class ConfigurationError(DynamoDBWrapperError):
    """
    A record type or table request cannot be used as declared: no Meta, no
    resolvable range field, or a create/update request the service rejects
    as malformed.
    """


class NotFoundError(DynamoDBWrapperError):
    """A table or item does not exist."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_name: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.resource_type = resource_type
        self.resource_name = resource_name
        super().__init__(message, original_error, _present(resource_type=resource_type, resource_name=resource_name))


class TableNotFoundError(NotFoundError):

    def __init__(self, table_name: str, operation: Optional[str] = None, original_error: Optional[Exception] = None):
        self.table_name = table_name
        self.operation = operation
        where = f"{operation} on {table_name}" if operation else table_name
        super().__init__(f"{where}: table does not exist", 'table', table_name, original_error)


class ItemNotFoundError(NotFoundError):
    """A read marked ``required`` found nothing under the key."""

    def __init__(self, table_name: str, key: Dict[str, Any], original_error: Optional[Exception] = None):
        self.table_name = table_name
        self.key = key
        super().__init__(f"No item in '{table_name}' for key {key}", 'item', table_name, original_error)
        self.context['key'] = key


class ConflictError(DynamoDBWrapperError):
    """
    The service refused a conditional mutation. For versioned writes this
    means another writer stored a newer version first; reload and retry.
    """

    def __init__(self, message: str, resource_id: Optional[str] = None, original_error: Optional[Exception] = None):
        self.resource_id = resource_id
        super().__init__(message, original_error, _present(resource_id=resource_id))


class InfrastructureFault(DynamoDBWrapperError):
    """Any other service failure; ``error_code`` carries the service's fault code."""


class ConnectionError(InfrastructureFault):
    pass


class RetryableError(InfrastructureFault):

    def __init__(self, message: str, retry_after_seconds: Optional[int] = None, original_error: Optional[Exception] = None):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message, original_error, _present(retry_after_seconds=retry_after_seconds))


class ValidationError(DynamoDBWrapperError):

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None, original_error: Optional[Exception] = None):
        self.errors = errors or {}
        super().__init__(message, original_error, _present(validation_errors=self.errors))
