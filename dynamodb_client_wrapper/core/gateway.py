"""
Thin DynamoDB Client Gateway

This module owns the one shared boto3 ``dynamodb`` client used by every
operation issued through a wrapper instance, and the translation of botocore
faults into the wrapper's exception hierarchy.

The gateway:

1. Builds the client lazily on first use and reuses it for all calls
2. Releases it on ``close()``, after which every call raises ConnectionError
3. Funnels every service call through ``call()`` so faults are logged with
   the operation and table name and re-raised as domain exceptions
4. Generates prefixed table names from record types

Table lifecycle, write and read APIs compose these building blocks; none of
them touch botocore directly.
"""

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import DynamoDBConfig
from ..exceptions import (
    ConfigurationError,
    ConflictError,
    ConnectionError,
    InfrastructureFault,
    RetryableError,
    TableNotFoundError,
)
from ..models.descriptor import ItemDescriptor
from ..utils import ItemMarshaller

logger = logging.getLogger(__name__)

# Operations whose ValidationException means the request itself is malformed
SCHEMA_OPERATIONS = ('CreateTable', 'UpdateTable', 'UpdateTimeToLive')

CONFLICT_CODES = {
    'ConditionalCheckFailedException': "Conditional check failed",
    'TransactionConflictException': "Transaction conflict",
    'ResourceInUseException': "Resource in use",
    'TableAlreadyExistsException': "Resource in use",
}
TABLE_MISSING_CODES = frozenset({'ResourceNotFoundException', 'TableNotFoundException'})
RETRYABLE_CODES = {
    'ProvisionedThroughputExceededException': "Throttled",
    'RequestLimitExceeded': "Throttled",
    'ThrottlingException': "Throttled",
    'TooManyRequestsException': "Throttled",
    'InternalServerError': "Service unavailable",
    'ServiceUnavailable': "Service unavailable",
    'ServiceUnavailableException': "Service unavailable",
}
AUTH_CODES = frozenset({
    'UnrecognizedClientException', 'AccessDeniedException', 'ExpiredTokenException',
    'InvalidSignatureException', 'IncompleteSignatureException',
})


def map_dynamodb_error(
    error: ClientError,
    operation: str,
    table_name: str,
    resource_id: Optional[str] = None
) -> Exception:
    """Translate a botocore ClientError into the wrapper's fault category.

    The returned exception keeps ``error`` as ``original_error``; callers
    raise it ``from`` the ClientError.
    """
    details = error.response.get('Error', {})
    code = details.get('Code', 'Unknown')
    where = f"{operation} on {table_name}" + (f" (resource: {resource_id})" if resource_id else "")
    detail = f"{where}: {details.get('Message', str(error))}"

    if code in TABLE_MISSING_CODES:
        return TableNotFoundError(table_name, operation, original_error=error)
    if code in CONFLICT_CODES:
        return ConflictError(f"{CONFLICT_CODES[code]} - {detail}", resource_id, original_error=error)
    if code == 'ValidationException' and operation in SCHEMA_OPERATIONS:
        return ConfigurationError(f"Malformed request - {detail}", original_error=error)
    if code in RETRYABLE_CODES:
        return RetryableError(f"{RETRYABLE_CODES[code]} - {detail}", original_error=error)
    if code in AUTH_CODES:
        return ConnectionError(f"Not authorized - {detail}", original_error=error)
    return InfrastructureFault(f"{code} - {detail}", original_error=error)


class DynamoDBGateway:
    """
    Shared client scope for one wrapper instance.

    Args:
        config: DynamoDB configuration
        logger: Any object exposing error/warning/info/debug; defaults to this module's logger
        client: Pre-built boto3 dynamodb client; used as-is and never closed by the gateway
    """

    def __init__(self, config: DynamoDBConfig, logger: Any = None, client: Any = None):
        self.config = config
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.marshaller = ItemMarshaller(
            convert_empty_values=config.convert_empty_values,
            remove_undefined_values=config.remove_undefined_values
        )
        self._client = client
        self._owns_client = client is None
        self._closed = False

    @property
    def debug(self) -> bool:
        return self.config.enable_debug_logging

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def client(self):
        """The shared boto3 client, built on first use."""
        if self._closed:
            raise ConnectionError("DynamoDB client has been closed")
        if self._client is None:
            self._client = self._build_client()
        return self._client

    def _build_client(self):
        cfg = self.config
        botocore_config = Config(
            retries={'max_attempts': cfg.retries},
            max_pool_connections=cfg.max_pool_connections,
            connect_timeout=cfg.timeout_seconds,
            read_timeout=cfg.timeout_seconds,
        )
        extra: Dict[str, Any] = {'endpoint_url': cfg.endpoint_url} if cfg.endpoint_url else {}
        try:
            session = boto3.Session(
                aws_access_key_id=cfg.aws_access_key_id,
                aws_secret_access_key=cfg.aws_secret_access_key,
                region_name=cfg.region_name
            )
            client = session.client('dynamodb', region_name=cfg.region_name, config=botocore_config, **extra)
        except (BotoCoreError, ValueError) as e:
            self.logger.error(f"Could not build the DynamoDB client for {cfg.region_name}: {e}")
            raise ConnectionError(f"Could not build the DynamoDB client: {e}", e) from e
        self.logger.debug(f"Built DynamoDB client (region={cfg.region_name}, endpoint={cfg.endpoint_url or 'default'})")
        return client

    def close(self) -> None:
        """Release the client. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        client, self._client = self._client, None
        if client is not None and self._owns_client:
            client.close()
            self.logger.debug("Closed DynamoDB client")

    def generate_table_name(self, target: Any) -> str:
        """Full table name for a record instance, record class or base name."""
        if isinstance(target, str):
            base_name = target
        else:
            base_name = ItemDescriptor.for_model(target).base_table_name
        return self.config.get_table_name(base_name)

    def call(self, operation: str, table_name: str, resource_id: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        """
        Issue one DynamoDB API call.

        Args:
            operation: API operation name, e.g. "PutItem", "DescribeTable"
            table_name: Table the call targets (used for error context)
            resource_id: Optional item identifier for error context
            **kwargs: Raw boto3 client parameters

        Returns:
            Raw DynamoDB response

        Raises:
            DynamoDBWrapperError: The mapped fault; missing tables are logged as
                warnings, everything else as errors
        """
        method = getattr(self.client, _snake_case(operation))
        try:
            return method(**kwargs)
        except ClientError as e:
            mapped = map_dynamodb_error(e, operation, table_name, resource_id)
            if isinstance(mapped, TableNotFoundError):
                self.logger.warning(f"{operation} on {table_name}: table does not exist")
            else:
                self.logger.error(f"{operation} on {table_name} failed: {mapped}")
            raise mapped from e
        except BotoCoreError as e:
            self.logger.error(f"{operation} on {table_name} failed: {e}")
            raise ConnectionError(f"{operation} on {table_name} failed: {e}", e) from e

    def __repr__(self) -> str:
        state = 'closed' if self._closed else ('open' if self._client is not None else 'idle')
        return f"DynamoDBGateway(region={self.config.region_name!r}, prefix={self.config.table_prefix!r}, {state})"


def _snake_case(operation: str) -> str:
    return ''.join(f"_{c.lower()}" if c.isupper() and i else c.lower() for i, c in enumerate(operation))


def create_gateway(config: Optional[DynamoDBConfig] = None, **kwargs) -> DynamoDBGateway:
    """
    Factory function to create a DynamoDBGateway instance.

    Args:
        config: DynamoDB configuration, read from the environment when omitted
        **kwargs: logger / client passed through to the gateway

    Returns:
        Configured DynamoDBGateway instance
    """
    return DynamoDBGateway(config or DynamoDBConfig.from_env(), **kwargs)


__all__ = ['DynamoDBGateway', 'create_gateway', 'map_dynamodb_error']
