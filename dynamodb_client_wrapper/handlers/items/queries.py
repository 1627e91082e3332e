"""
Item Read API

GetItem, Query and Scan with multi-page accumulation.

Paging stops when a page carries no LastEvaluatedKey, or once the number of
items read reaches ``limit``. The check happens between pages, so the last
page may take the result past the limit; results are not trimmed.

A missing table raises TableNotFoundError unless ``ignore_table_not_found``
is set, in which case whatever was read so far is returned.
"""

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from ...core import DynamoDBGateway, TableLifecycleManager
from ...exceptions import ItemNotFoundError, TableNotFoundError
from ...models import GetItemOptions, ItemDescriptor, QueryOptions, ScanOptions
from ...utils import (
    KEY_MARSHALLER,
    build_exclusive_start_key,
    build_key_condition,
    build_key_mapping,
    build_scan_filter,
    validate_key_values,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _coerce_options(options: Any, options_class: type):
    if options is None:
        return options_class()
    if isinstance(options, options_class):
        return options
    if isinstance(options, dict):
        return options_class.model_validate(options)
    # Widen GetItemOptions into QueryOptions / ScanOptions
    return options_class.model_validate(options.model_dump(exclude_unset=True))


class ItemReadApi:
    """
    Read-only API for records.

    Args:
        gateway: Shared client scope
        tables: Table lifecycle manager, used to list tables in debug mode
    """

    def __init__(self, gateway: DynamoDBGateway, tables: TableLifecycleManager):
        self.gateway = gateway
        self.tables = tables

    @property
    def logger(self):
        return self.gateway.logger

    def get_item(
        self,
        item_class: Type[T],
        id: Any,
        range: Any = None,
        options: Optional[Union[GetItemOptions, Dict[str, Any]]] = None
    ) -> Optional[T]:
        """
        Get one record by key.

        DynamoDB Operation: GetItem, or Query when ``options.index_name`` is set
        (the first match is returned)

        Args:
            item_class: Record class
            id: Partition key value
            range: Sort key value, required for range-keyed tables
            options: GetItemOptions or an equivalent dict

        Returns:
            The record, or None when absent and ``required`` is False

        Raises:
            InvalidArgumentError: Empty id/range, or range missing for a range-keyed table
            ItemNotFoundError: Absent and ``required`` (the default)
            TableNotFoundError: Table missing and not ignored
        """
        options = _coerce_options(options, GetItemOptions)
        descriptor = ItemDescriptor.for_model(item_class)
        table_name = self.gateway.generate_table_name(descriptor.base_table_name)

        if options.index_name:
            validate_key_values(id, range)
            query_options = _coerce_options(options, QueryOptions).model_copy(update={'ignore_table_not_found': False})
            try:
                items = self.get_items(item_class, id, range, query_options)
            except TableNotFoundError:
                if options.ignore_table_not_found:
                    return None
                raise
            if items:
                return items[0]
            if options.required:
                raise ItemNotFoundError(table_name, {'index': options.index_name, 'id': id, 'range': range})
            return None

        key = build_key_mapping(descriptor, id, range)
        request: Dict[str, Any] = {
            'TableName': table_name,
            'Key': KEY_MARSHALLER.marshall(key),
        }
        if options.consistent_read is not None:
            request['ConsistentRead'] = options.consistent_read

        try:
            response = self.gateway.call('GetItem', table_name, resource_id=str(id), **request)
        except TableNotFoundError:
            self._report_missing_table('GetItem', table_name)
            if options.ignore_table_not_found:
                return None
            raise

        attributes = response.get('Item')
        if not attributes:
            if options.required:
                raise ItemNotFoundError(table_name, key)
            return None
        return item_class.from_dynamodb_item(self.gateway.marshaller.unmarshall(attributes))

    def get_items(
        self,
        item_class: Type[T],
        id: Any = None,
        range: Any = None,
        options: Optional[Union[QueryOptions, ScanOptions, Dict[str, Any]]] = None
    ) -> List[T]:
        """Query when ``id`` is given, otherwise scan."""
        if id is not None:
            return self.query(item_class, id, range, options)
        return self.scan(item_class, None, range, options)

    def query(
        self,
        item_class: Type[T],
        id: Any,
        range: Any = None,
        options: Optional[Union[QueryOptions, Dict[str, Any]]] = None
    ) -> List[T]:
        """
        Read every record matching a key condition.

        DynamoDB Operation: Query, repeated with ExclusiveStartKey

        Raises:
            InvalidArgumentError: Empty id or range
            ConfigurationError: Range value without a resolvable range field
            TableNotFoundError: Table missing and not ignored
        """
        options = _coerce_options(options, QueryOptions)
        validate_key_values(id, range)
        descriptor = ItemDescriptor.for_model(item_class)
        table_name = self.gateway.generate_table_name(descriptor.base_table_name)
        self._check_index_options(options)

        condition = build_key_condition(
            descriptor,
            id,
            range,
            index_partition_key=options.index_partition_key_field_name,
            index_range_key=options.index_range_field_name,
            extra_names=options.expression_attribute_names,
            extra_values=options.expression_attribute_values,
        )
        request: Dict[str, Any] = {
            'TableName': table_name,
            'Select': 'ALL_ATTRIBUTES',
            'KeyConditionExpression': condition.expression,
            'ExpressionAttributeNames': condition.names,
            'ExpressionAttributeValues': self._marshall_values(condition.values),
        }
        if options.filter_expression:
            request['FilterExpression'] = options.filter_expression
        if options.scan_index_forward is not None:
            request['ScanIndexForward'] = options.scan_index_forward
        self._apply_read_options(request, descriptor, options)

        return self._paginate('Query', item_class, table_name, request, options)

    def scan(
        self,
        item_class: Type[T],
        id: Any = None,
        range: Any = None,
        options: Optional[Union[ScanOptions, Dict[str, Any]]] = None
    ) -> List[T]:
        """
        Read every record, optionally filtered.

        ``id`` / ``range`` become equality clauses of the FilterExpression,
        AND-joined with ``options.filter_expression``.

        DynamoDB Operation: Scan, repeated with ExclusiveStartKey
        """
        options = _coerce_options(options, ScanOptions)
        validate_key_values(id, range)
        descriptor = ItemDescriptor.for_model(item_class)
        table_name = self.gateway.generate_table_name(descriptor.base_table_name)
        self._check_index_options(options)

        request: Dict[str, Any] = {
            'TableName': table_name,
            'Select': 'ALL_ATTRIBUTES',
        }
        scan_filter = build_scan_filter(
            descriptor,
            id,
            range,
            index_partition_key=options.index_partition_key_field_name,
            index_range_key=options.index_range_field_name,
            filter_expression=options.filter_expression,
            extra_names=options.expression_attribute_names,
            extra_values=options.expression_attribute_values,
        )
        if scan_filter is not None:
            request['FilterExpression'] = scan_filter.expression
            if scan_filter.names:
                request['ExpressionAttributeNames'] = scan_filter.names
            if scan_filter.values:
                request['ExpressionAttributeValues'] = self._marshall_values(scan_filter.values)
        self._apply_read_options(request, descriptor, options)

        return self._paginate('Scan', item_class, table_name, request, options)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _marshall_values(values: Dict[str, Any]) -> Dict[str, Any]:
        return {k: KEY_MARSHALLER.marshall_value(v) for k, v in values.items()}

    def _check_index_options(self, options: GetItemOptions) -> None:
        if self.gateway.debug and options.index_name and not options.index_partition_key_field_name:
            self.logger.warning(
                f"Reading index {options.index_name} without index_partition_key_field_name; "
                f"the table's partition key will be used"
            )

    def _apply_read_options(self, request: Dict[str, Any], descriptor: ItemDescriptor, options: ScanOptions) -> None:
        if options.index_name:
            request['IndexName'] = options.index_name

        if options.consistent_read is not None:
            is_local_index = any(index.name == options.index_name for index in descriptor.local_indexes)
            if options.index_name and not is_local_index:
                if options.consistent_read:
                    self.logger.warning(
                        f"ConsistentRead is not supported on global index {options.index_name}; ignoring it"
                    )
            else:
                request['ConsistentRead'] = options.consistent_read

        if options.limit is not None:
            request['Limit'] = options.limit

        start_key = build_exclusive_start_key(
            descriptor, options.exclusive_start_key, options.index_partition_key_field_name
        )
        if start_key is not None:
            request['ExclusiveStartKey'] = KEY_MARSHALLER.marshall(start_key)

    def _paginate(
        self,
        operation: str,
        item_class: Type[T],
        table_name: str,
        request: Dict[str, Any],
        options: ScanOptions
    ) -> List[T]:
        items: List[T] = []
        try:
            while True:
                response = self.gateway.call(operation, table_name, **request)
                self._log_page(operation, table_name, response)

                for image in response.get('Items', []):
                    items.append(item_class.from_dynamodb_item(self.gateway.marshaller.unmarshall(image)))

                last_key = response.get('LastEvaluatedKey')
                if not last_key:
                    break
                if options.limit is not None and len(items) >= options.limit:
                    break
                request['ExclusiveStartKey'] = last_key
        except TableNotFoundError:
            self._report_missing_table(operation, table_name)
            if options.ignore_table_not_found:
                return items
            raise
        return items

    def _log_page(self, operation: str, table_name: str, response: Dict[str, Any]) -> None:
        if self.gateway.debug:
            self.logger.debug(f"{operation} on {table_name} returned: {response}")
        else:
            self.logger.debug(
                f"{operation} on {table_name}: Count={response.get('Count')} "
                f"ScannedCount={response.get('ScannedCount')} "
                f"LastEvaluatedKey={response.get('LastEvaluatedKey')}"
            )

    def _report_missing_table(self, operation: str, table_name: str) -> None:
        """In debug mode, log which tables do exist."""
        if not self.gateway.debug:
            return
        self.logger.warning(f"{operation}: table {table_name} not found; existing tables: {self.tables.list_tables()}")
