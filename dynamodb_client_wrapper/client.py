"""
DynamoDB Client Wrapper

Single entry point composing the gateway, the table lifecycle manager and
the item read/write APIs around one shared boto3 client.

Usage:
    from dynamodb_client_wrapper import DynamoDbClientWrapper, PutItemOptions

    with DynamoDbClientWrapper() as db:
        db.initialize_table(User)
        user = User(user_id="u1", name="Ada")
        db.put_item(user)
        same_user = db.get_item(User, "u1")
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from .config import DynamoDBConfig
from .core import DynamoDBGateway, TableLifecycleManager
from .exceptions import InvalidArgumentError
from .handlers import ItemReadApi, ItemWriteApi
from .models import CreateSchemaOptions, GetItemOptions, PutItemOptions, QueryOptions, ScanOptions

logger = logging.getLogger(__name__)


class DynamoDbClientWrapper:
    """
    Facade over table provisioning, versioned writes and paginated reads.

    Args:
        config: DynamoDB configuration; read from the environment when omitted.
            The wrapper keeps its own copy.
        logger: Any object exposing error/warning/info/debug
        client: Pre-built boto3 dynamodb client (e.g. for tests)
    """

    def __init__(self, config: Optional[DynamoDBConfig] = None, logger: Any = None, client: Any = None):
        self.config = (config or DynamoDBConfig.from_env()).model_copy()
        self.gateway = DynamoDBGateway(self.config, logger=logger, client=client)
        self.tables = TableLifecycleManager(self.gateway)
        self.writes = ItemWriteApi(self.gateway, self.tables)
        self.reads = ItemReadApi(self.gateway, self.tables)

    # =========================================================================
    # Resource scope
    # =========================================================================

    @property
    def client(self):
        """The shared boto3 client, built on first use."""
        return self.gateway.client

    @property
    def logger(self):
        return self.gateway.logger

    @property
    def closed(self) -> bool:
        return self.gateway.closed

    def close(self) -> None:
        """Release the client. Later calls raise ConnectionError."""
        self.gateway.close()

    def __enter__(self) -> 'DynamoDbClientWrapper':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    # =========================================================================
    # Table naming
    # =========================================================================

    @property
    def table_prefix(self) -> Optional[str]:
        return self.config.table_prefix

    @table_prefix.setter
    def table_prefix(self, prefix: Optional[str]) -> None:
        if prefix is not None and len(prefix) == 0:
            raise InvalidArgumentError("prefix cannot be an empty string", argument='prefix')
        self.config.table_prefix = prefix

    def generate_table_name(self, target: Any) -> str:
        """'<prefix>.<base name>' for a record instance, record class or base name."""
        return self.gateway.generate_table_name(target)

    # =========================================================================
    # Table lifecycle
    # =========================================================================

    def list_tables(self) -> List[str]:
        return self.tables.list_tables()

    def describe_table(self, table_name: str) -> Optional[Dict[str, Any]]:
        return self.tables.describe_table(table_name)

    def create_schema(self, item: Any, options: Optional[CreateSchemaOptions] = None) -> Dict[str, Any]:
        return self.tables.create_schema(item, options)

    def initialize_table(
        self,
        item_class: Any,
        existing_tables: Optional[Iterable[str]] = None,
        options: Optional[CreateSchemaOptions] = None
    ) -> Optional[Dict[str, Any]]:
        return self.tables.initialize_table(item_class, existing_tables, options)

    def create_table_if_not_exists(
        self,
        request: Dict[str, Any],
        wait_for_active: bool = True,
        ttl_attribute_name: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        return self.tables.create_table_if_not_exists(request, wait_for_active, ttl_attribute_name)

    def create_table(
        self,
        request: Dict[str, Any],
        wait_for_active: bool = True,
        ttl_attribute_name: Optional[str] = None
    ) -> Dict[str, Any]:
        return self.tables.create_table(request, wait_for_active, ttl_attribute_name)

    def update_table(self, item: Any) -> Optional[Dict[str, Any]]:
        return self.tables.update_table(item)

    # =========================================================================
    # Items
    # =========================================================================

    def put_item(self, item: Any, options: Optional[PutItemOptions] = None) -> bool:
        return self.writes.put_item(item, options)

    def delete_item(self, item_class: Any, id: Any, range: Any = None, return_values: str = 'NONE'):
        return self.writes.delete_item(item_class, id, range, return_values)

    def get_item(self, item_class: Any, id: Any, range: Any = None, options: Optional[GetItemOptions] = None):
        return self.reads.get_item(item_class, id, range, options)

    def get_items(self, item_class: Any, id: Any = None, range: Any = None, options: Optional[QueryOptions] = None):
        return self.reads.get_items(item_class, id, range, options)

    def query(self, item_class: Any, id: Any, range: Any = None, options: Optional[QueryOptions] = None):
        return self.reads.query(item_class, id, range, options)

    def scan(self, item_class: Any, id: Any = None, range: Any = None, options: Optional[ScanOptions] = None):
        return self.reads.scan(item_class, id, range, options)

    def __repr__(self) -> str:
        return f"DynamoDbClientWrapper({self.gateway!r})"


def create_client_wrapper(config: Optional[DynamoDBConfig] = None, **kwargs) -> DynamoDbClientWrapper:
    """
    Factory function to create a DynamoDbClientWrapper.

    Args:
        config: DynamoDB configuration, read from the environment when omitted
        **kwargs: logger / client passed through to the wrapper

    Returns:
        Configured DynamoDbClientWrapper instance
    """
    return DynamoDbClientWrapper(config, **kwargs)
