"""
Item Write API

PutItem with optimistic concurrency:

1. A record with a version gets a conditional guard. An unsaved record
   (version -1) requires the version attribute to be absent; a saved record
   requires the stored version to equal the in-memory one.
2. The in-memory version is bumped before the call (tentative mutation).
3. If the call fails the bump is undone (compensating action) and the fault
   is re-raised; a version mismatch surfaces as ConflictError.
4. With ``create_table_if_not_exists`` a missing table is created from the
   record type and the write retried once, with self-healing turned off.

Records without a version are written unconditionally.
"""

import logging
from typing import Any, Dict, NamedTuple, Optional, Union

from ...core import DynamoDBGateway, TableLifecycleManager
from ...exceptions import DynamoDBWrapperError, TableNotFoundError
from ...models import INITIAL_VERSION, ItemDescriptor, PutItemOptions, VersionedItem
from ...utils import KEY_MARSHALLER, attribute_placeholder, build_key_mapping

logger = logging.getLogger(__name__)

RETURN_VALUES = ('NONE', 'ALL_OLD')


class VersionGuard(NamedTuple):
    """Condition for one versioned write and the version to restore if it fails."""
    condition_expression: str
    names: Dict[str, str]
    values: Dict[str, Any]
    previous_version: int


class ItemWriteApi:
    """
    Write-only API for records.

    Args:
        gateway: Shared client scope
        tables: Table lifecycle manager used for self-healing
    """

    def __init__(self, gateway: DynamoDBGateway, tables: TableLifecycleManager):
        self.gateway = gateway
        self.tables = tables

    @property
    def logger(self):
        return self.gateway.logger

    def put_item(self, item: Any, options: Optional[Union[PutItemOptions, Dict[str, Any]]] = None) -> bool:
        """
        Store a record.

        DynamoDB Operation: PutItem, with ConditionExpression for versioned records

        Args:
            item: Record instance
            options: PutItemOptions or an equivalent dict

        Returns:
            True; the record's in-memory version now matches the stored one

        Raises:
            ConflictError: The stored version differs (someone else wrote first)
            TableNotFoundError: The table is missing and self-healing is off
            DynamoDBWrapperError: Any other fault, after the version is rolled back
        """
        if isinstance(options, dict):
            options = PutItemOptions.model_validate(options)
        options = options or PutItemOptions()

        descriptor = ItemDescriptor.for_model(item)
        table_name = self.gateway.generate_table_name(descriptor.base_table_name)
        id_value = getattr(item, descriptor.identity_field, None)
        range_value = getattr(item, descriptor.sort_field, None) if descriptor.sort_field else None
        build_key_mapping(descriptor, id_value, range_value)
        resource_id = str(id_value)

        guard = self._apply_version_guard(item)
        try:
            request = self._build_put_request(item, table_name, guard)
            if self.gateway.debug:
                self.logger.debug(f"PutItem request: {request}")
            self.gateway.call('PutItem', table_name, resource_id=resource_id, **request)
        except Exception as e:
            self._rollback_version(item, guard)
            if isinstance(e, TableNotFoundError) and options.create_table_if_not_exists:
                return self._create_table_and_retry(item, table_name, options, e)
            if not isinstance(e, DynamoDBWrapperError):
                self.logger.error(f"PutItem on {table_name} failed for {resource_id}: {e}")
            raise

        self.logger.debug(f"Put item {resource_id} in {table_name}")
        return True

    def delete_item(
        self,
        item_class: Any,
        id: Any,
        range: Any = None,
        return_values: str = 'NONE'
    ) -> Union[bool, Any]:
        """
        Delete a record by key.

        DynamoDB Operation: DeleteItem

        Args:
            item_class: Record class
            id: Partition key value
            range: Sort key value, required for range-keyed tables
            return_values: 'NONE' or 'ALL_OLD'

        Returns:
            True for 'NONE'. For 'ALL_OLD' the deleted record, or False when
            nothing was stored under the key.
        """
        if return_values not in RETURN_VALUES:
            raise ValueError(f"return_values must be one of {RETURN_VALUES}")

        descriptor = ItemDescriptor.for_model(item_class)
        key = build_key_mapping(descriptor, id, range)
        table_name = self.gateway.generate_table_name(descriptor.base_table_name)

        response = self.gateway.call(
            'DeleteItem',
            table_name,
            resource_id=str(id),
            TableName=table_name,
            Key=KEY_MARSHALLER.marshall(key),
            ReturnValues=return_values
        )
        self.logger.debug(f"Deleted item {key} from {table_name}")

        if return_values == 'ALL_OLD':
            attributes = response.get('Attributes')
            if not attributes:
                return False
            return item_class.from_dynamodb_item(self.gateway.marshaller.unmarshall(attributes))
        return True

    # =========================================================================
    # Version guard
    # =========================================================================

    def _apply_version_guard(self, item: Any) -> Optional[VersionGuard]:
        """Build the write condition and bump the in-memory version."""
        if not isinstance(item, VersionedItem):
            return None
        version = item.get_version()
        if version is None:
            return None

        version_field = getattr(type(item), 'VERSION_FIELD', 'version')
        placeholder = attribute_placeholder(version_field)
        if version == INITIAL_VERSION:
            guard = VersionGuard(f"attribute_not_exists({placeholder})", {placeholder: version_field}, {}, version)
        else:
            guard = VersionGuard(f"{placeholder} = :version", {placeholder: version_field}, {':version': version}, version)

        item.increment_version()
        return guard

    @staticmethod
    def _rollback_version(item: Any, guard: Optional[VersionGuard]) -> None:
        if guard is not None:
            item.set_version(guard.previous_version)

    def _build_put_request(self, item: Any, table_name: str, guard: Optional[VersionGuard]) -> Dict[str, Any]:
        request: Dict[str, Any] = {
            'TableName': table_name,
            'Item': self.gateway.marshaller.marshall(item.to_dynamodb_item()),
        }
        if guard is not None:
            request['ConditionExpression'] = guard.condition_expression
            request['ExpressionAttributeNames'] = guard.names
            if guard.values:
                request['ExpressionAttributeValues'] = {
                    k: KEY_MARSHALLER.marshall_value(v) for k, v in guard.values.items()
                }
        return request

    # =========================================================================
    # Self-healing
    # =========================================================================

    def _create_table_and_retry(
        self,
        item: Any,
        table_name: str,
        options: PutItemOptions,
        error: TableNotFoundError
    ) -> bool:
        existing_tables = self.tables.list_tables()
        if table_name in existing_tables:
            self.logger.warning(f"PutItem on {table_name} reported a missing table, but the table is listed")
            raise error

        item_class = options.item_class or type(item)
        self.logger.info(f"Table {table_name} does not exist, creating it from {item_class.__name__}")
        self.tables.initialize_table(
            item_class,
            existing_tables=existing_tables,
            options=options.create_schema_options
        )

        retry_options = options.model_copy(update={'create_table_if_not_exists': False})
        return self.put_item(item, retry_options)
