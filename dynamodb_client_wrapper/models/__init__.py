from .base import (
    INITIAL_VERSION,
    DynamoDBMixin,
    DynamoItem,
    ExpiringMixin,
    VersionedMixin,
)
from .descriptor import (
    ExpiringItem,
    IndexDefinition,
    ItemDescriptor,
    TableMeta,
    VersionedItem,
)
from .options import (
    CreateSchemaOptions,
    GetItemOptions,
    PutItemOptions,
    QueryOptions,
    ScanOptions,
)

__all__ = [
    # Base models and mixins
    "DynamoDBMixin",
    "DynamoItem",
    "ExpiringMixin",
    "INITIAL_VERSION",
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
]
