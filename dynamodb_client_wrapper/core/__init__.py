from .gateway import DynamoDBGateway, create_gateway, map_dynamodb_error
from .table_lifecycle import POLL_INTERVAL_SECONDS, TableLifecycleManager

__all__ = [
    "DynamoDBGateway",
    "POLL_INTERVAL_SECONDS",
    "TableLifecycleManager",
    "create_gateway",
    "map_dynamodb_error",
]
