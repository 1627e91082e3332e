from .config import DynamoDBConfig
from .exceptions import (
    ConfigurationError,
    ConflictError,
    ConnectionError,
    DynamoDBWrapperError,
    InfrastructureFault,
    InvalidArgumentError,
    ItemNotFoundError,
    NotFoundError,
    RetryableError,
    TableNotFoundError,
    ValidationError,
)
from .models import (
    # Records
    INITIAL_VERSION,
    DynamoItem,
    ExpiringMixin,
    VersionedMixin,
    # Table declaration
    ExpiringItem,
    IndexDefinition,
    ItemDescriptor,
    TableMeta,
    VersionedItem,
    # Request options
    CreateSchemaOptions,
    GetItemOptions,
    PutItemOptions,
    QueryOptions,
    ScanOptions,
)
from .core import (
    DynamoDBGateway,
    TableLifecycleManager,
    map_dynamodb_error,
)
from .handlers import ItemReadApi, ItemWriteApi
from .utils import ItemMarshaller
from .client import DynamoDbClientWrapper, create_client_wrapper

__version__ = "1.0.0"
__all__ = [
    # Entry point
    "DynamoDbClientWrapper",
    "create_client_wrapper",

    # Configuration
    "DynamoDBConfig",

    # Exceptions
    "ConfigurationError",
    "ConflictError",
    "ConnectionError",
    "DynamoDBWrapperError",
    "InfrastructureFault",
    "InvalidArgumentError",
    "ItemNotFoundError",
    "NotFoundError",
    "RetryableError",
    "TableNotFoundError",
    "ValidationError",

    # Records
    "INITIAL_VERSION",
    "DynamoItem",
    "ExpiringMixin",
    "VersionedMixin",

    # Table declaration
    "ExpiringItem",
    "IndexDefinition",
    "ItemDescriptor",
    "TableMeta",
    "VersionedItem",

    # Request options
    "CreateSchemaOptions",
    "GetItemOptions",
    "PutItemOptions",
    "QueryOptions",
    "ScanOptions",

    # Building blocks
    "DynamoDBGateway",
    "ItemMarshaller",
    "ItemReadApi",
    "ItemWriteApi",
    "TableLifecycleManager",
    "map_dynamodb_error",
]
