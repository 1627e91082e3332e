"""
Table Lifecycle Manager

Provisions and reconciles the tables record types live in:

- list / describe tables
- synthesize a CreateTable request from a record type's Meta declaration
- create a table, poll until ACTIVE, wait out the settle delay, enable TTL
- reconcile global secondary indexes against the declaration

Table descriptions are fetched fresh for every operation and never cached;
the service is the source of truth for schema decisions.
"""

import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import InfrastructureFault, InvalidArgumentError, TableNotFoundError
from ..models.descriptor import ItemDescriptor
from ..models.options import CreateSchemaOptions
from .gateway import DynamoDBGateway

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.5


class TableLifecycleManager:
    """
    Table provisioning API.

    ``create_table`` polls DescribeTable every 500 ms with no upper bound; a
    table stuck in CREATING blocks the caller. Wrap the call externally when a
    bounded wait is needed.
    """

    def __init__(self, gateway: DynamoDBGateway):
        self.gateway = gateway

    @property
    def logger(self):
        return self.gateway.logger

    @property
    def config(self):
        return self.gateway.config

    # =========================================================================
    # Inspection
    # =========================================================================

    def list_tables(self) -> List[str]:
        """
        List every table name in the account and region.

        DynamoDB Operation: ListTables, following LastEvaluatedTableName
        """
        table_names: List[str] = []
        request: Dict[str, Any] = {}
        while True:
            response = self.gateway.call('ListTables', '*', **request)
            table_names.extend(response.get('TableNames', []))
            last_table = response.get('LastEvaluatedTableName')
            if not last_table:
                break
            request['ExclusiveStartTableName'] = last_table
        return table_names

    def describe_table(self, table_name: str) -> Optional[Dict[str, Any]]:
        """
        Describe a table.

        Returns:
            The TableDescription, or None when the table does not exist

        Raises:
            DynamoDBWrapperError: Any fault other than a missing table
        """
        try:
            response = self.gateway.call('DescribeTable', table_name, TableName=table_name)
        except TableNotFoundError:
            return None
        return response.get('Table')

    # =========================================================================
    # Creation
    # =========================================================================

    def create_schema(self, item: Any, options: Optional[CreateSchemaOptions] = None) -> Dict[str, Any]:
        """
        Build a CreateTable request from a record class or instance.

        Args:
            item: Record class or instance declaring ``Meta(TableMeta)``
            options: Billing, streams, tags and throughput; defaults to
                PAY_PER_REQUEST with streams disabled

        Returns:
            CreateTable request parameters
        """
        if isinstance(options, dict):
            options = CreateSchemaOptions.model_validate(options)
        options = options or CreateSchemaOptions()

        descriptor = ItemDescriptor.for_model(item)
        request: Dict[str, Any] = {
            'TableName': self.gateway.generate_table_name(descriptor.base_table_name),
            'AttributeDefinitions': descriptor.attribute_definitions(),
            'KeySchema': descriptor.key_schema(),
        }

        local_indexes = descriptor.local_secondary_indexes()
        if local_indexes:
            request['LocalSecondaryIndexes'] = local_indexes

        global_indexes = descriptor.global_secondary_indexes()
        if global_indexes:
            if options.billing_mode == 'PROVISIONED' and options.provisioned_throughput:
                for index in global_indexes:
                    index.setdefault('ProvisionedThroughput', dict(options.provisioned_throughput))
            request['GlobalSecondaryIndexes'] = global_indexes

        request.update(options.to_request())
        return request

    def initialize_table(
        self,
        item_class: Any,
        existing_tables: Optional[Iterable[str]] = None,
        options: Optional[CreateSchemaOptions] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Ensure the table for a record type exists.

        Only issues CreateTable when the table is absent from ``existing_tables``
        (listed on demand when not supplied), so repeated calls are safe.

        Returns:
            The new table's description, or None when the table already existed
        """
        descriptor = ItemDescriptor.for_model(item_class)
        table_name = self.gateway.generate_table_name(descriptor.base_table_name)

        tables = list(existing_tables) if existing_tables is not None else self.list_tables()
        if table_name in tables:
            self.logger.info(f"Table {table_name} already exists")
            return None

        request = self.create_schema(item_class, options)
        return self.create_table(request, wait_for_active=True, ttl_attribute_name=descriptor.ttl_field)

    def create_table_if_not_exists(
        self,
        request: Dict[str, Any],
        wait_for_active: bool = True,
        ttl_attribute_name: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Create the table described by ``request`` unless it is already listed.

        Returns:
            The existing table's description, or the new one
        """
        table_name = request['TableName']
        if table_name in self.list_tables():
            self.logger.debug(f"Table {table_name} exists, skipping creation")
            return self.describe_table(table_name)
        return self.create_table(request, wait_for_active=wait_for_active, ttl_attribute_name=ttl_attribute_name)

    def create_table(
        self,
        request: Dict[str, Any],
        wait_for_active: bool = True,
        ttl_attribute_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create a table.

        DynamoDB Operations: CreateTable, DescribeTable (polled), UpdateTimeToLive

        Args:
            request: CreateTable parameters, see ``create_schema``
            wait_for_active: Poll until the table is ACTIVE, then sleep for
                the configured settle delay
            ttl_attribute_name: Enable TTL on this attribute once created

        Returns:
            The latest table description

        Raises:
            InvalidArgumentError: Empty TTL attribute name
            ConfigurationError: The service rejected the request as malformed
            InfrastructureFault: TTL could not be enabled
        """
        if ttl_attribute_name is not None and len(ttl_attribute_name) == 0:
            raise InvalidArgumentError("ttl attribute name cannot be an empty string", argument='ttl_attribute_name')

        table_name = request['TableName']
        self.logger.info(f"Creating table {table_name}")
        if self.gateway.debug:
            self.logger.debug(f"CreateTable request: {request}")

        response = self.gateway.call('CreateTable', table_name, **request)
        description = response.get('TableDescription', {})

        if wait_for_active:
            description = self.wait_for_active(table_name)
            delay_ms = self.config.delay_after_create_table_ms
            if delay_ms:
                self.logger.debug(f"Table {table_name} is ACTIVE, waiting {delay_ms}ms before use")
                time.sleep(delay_ms / 1000.0)

        if ttl_attribute_name:
            self.enable_time_to_live(table_name, ttl_attribute_name)

        self.logger.info(f"Created table {table_name}")
        return description

    def wait_for_active(self, table_name: str) -> Dict[str, Any]:
        """Poll DescribeTable every 500 ms until the table reports ACTIVE.

        Raises:
            DynamoDBWrapperError: Any DescribeTable fault, including the table
                having disappeared, aborts the wait
        """
        while True:
            response = self.gateway.call('DescribeTable', table_name, TableName=table_name)
            description = response.get('Table') or {}
            status = description.get('TableStatus')
            if status == 'ACTIVE':
                return description
            self.logger.debug(f"Table {table_name} is {status}, polling")
            time.sleep(POLL_INTERVAL_SECONDS)

    def enable_time_to_live(self, table_name: str, attribute_name: str) -> Dict[str, Any]:
        """
        Enable TTL on ``attribute_name``.

        Raises:
            InfrastructureFault: The service did not report TTL as enabled
        """
        response = self.gateway.call(
            'UpdateTimeToLive',
            table_name,
            TableName=table_name,
            TimeToLiveSpecification={'Enabled': True, 'AttributeName': attribute_name}
        )
        specification = response.get('TimeToLiveSpecification') or {}
        if not specification.get('Enabled'):
            self.logger.error(f"Failed to enable TTL on {table_name}.{attribute_name}: {response}")
            raise InfrastructureFault(
                f"Failed to enable TTL on {table_name}.{attribute_name}",
                context={'table_name': table_name, 'attribute_name': attribute_name, 'response': response}
            )
        self.logger.info(f"Enabled TTL on {table_name}.{attribute_name}")
        return specification

    # =========================================================================
    # Index reconciliation
    # =========================================================================

    def update_table(self, item: Any) -> Optional[Dict[str, Any]]:
        """
        Reconcile the table's global secondary indexes with the record type.

        Indexes are matched by name only; an index whose key schema changed
        but kept its name is left as is. Each delete and each create is its
        own UpdateTable call.

        Returns:
            The table description after reconciliation

        Raises:
            TableNotFoundError: The table does not exist
        """
        descriptor = ItemDescriptor.for_model(item)
        table_name = self.gateway.generate_table_name(descriptor.base_table_name)

        description = self.describe_table(table_name)
        if description is None:
            raise TableNotFoundError(table_name, 'UpdateTable')

        live_names = [index['IndexName'] for index in description.get('GlobalSecondaryIndexes', [])]
        declared_names = descriptor.global_index_names()

        for index_name in live_names:
            if index_name in declared_names:
                continue
            self.logger.info(f"Deleting global secondary index {index_name} from {table_name}")
            self.gateway.call(
                'UpdateTable',
                table_name,
                TableName=table_name,
                GlobalSecondaryIndexUpdates=[{'Delete': {'IndexName': index_name}}]
            )

        throughput = self._table_throughput(description)
        for index in descriptor.global_indexes:
            if index.name in live_names:
                continue
            create = index.to_dynamodb()
            if throughput:
                create.setdefault('ProvisionedThroughput', throughput)
            self.logger.info(f"Creating global secondary index {index.name} on {table_name}")
            self.gateway.call(
                'UpdateTable',
                table_name,
                TableName=table_name,
                AttributeDefinitions=descriptor.attribute_definitions(),
                GlobalSecondaryIndexUpdates=[{'Create': create}]
            )

        return self.describe_table(table_name)

    @staticmethod
    def _table_throughput(description: Dict[str, Any]) -> Optional[Dict[str, int]]:
        """Table capacity, for new indexes on PROVISIONED tables."""
        billing_mode = (description.get('BillingModeSummary') or {}).get('BillingMode', 'PROVISIONED')
        throughput = description.get('ProvisionedThroughput') or {}
        if billing_mode != 'PROVISIONED' or not throughput.get('ReadCapacityUnits'):
            return None
        return {
            'ReadCapacityUnits': throughput['ReadCapacityUnits'],
            'WriteCapacityUnits': throughput['WriteCapacityUnits'],
        }
