"""
Item Descriptors

Every record type self-describes the table it lives in through a nested
``Meta(TableMeta)`` class: the base table name, the partition (identity) key,
an optional sort (range) key, the attribute types needed for the key schema,
secondary indexes and an optional TTL field.

ItemDescriptor is the engine-facing view of that declaration. It renders the
DynamoDB structures (AttributeDefinitions, KeySchema, index definitions) that
the table lifecycle manager, key builders and read/write handlers consume.

Versioning and expiry are optional capabilities, expressed as protocols so a
record type can opt into either one independently.
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..exceptions import ConfigurationError

# Accepted spellings for attribute types; values are the DynamoDB scalar type codes
ATTRIBUTE_TYPE_ALIASES = {
    'S': 'S', 'string': 'S', 'str': 'S',
    'N': 'N', 'number': 'N', 'int': 'N', 'float': 'N',
    'B': 'B', 'binary': 'B', 'bytes': 'B',
}


# =============================================================================
# DynamoDB Table Metadata Classes
# =============================================================================

class IndexDefinition:
    """Defines a local or global secondary index.

    ``projection`` is None for ALL attributes, ``'KEYS_ONLY'``, or a list of
    non-key attribute names to INCLUDE.
    """

    def __init__(
        self,
        name: str,
        partition_key: str,
        sort_key: Optional[str] = None,
        projection: Optional[Any] = None,
        provisioned_throughput: Optional[Dict[str, int]] = None
    ):
        self.name = name
        self.partition_key = partition_key
        self.sort_key = sort_key
        self.projection = projection
        self.provisioned_throughput = provisioned_throughput

    def key_fields(self) -> List[str]:
        return [k for k in (self.partition_key, self.sort_key) if k]

    def key_schema(self) -> List[Dict[str, str]]:
        schema = [{'AttributeName': self.partition_key, 'KeyType': 'HASH'}]
        if self.sort_key:
            schema.append({'AttributeName': self.sort_key, 'KeyType': 'RANGE'})
        return schema

    def projection_spec(self) -> Dict[str, Any]:
        if self.projection is None or self.projection == 'ALL':
            return {'ProjectionType': 'ALL'}
        if self.projection == 'KEYS_ONLY':
            return {'ProjectionType': 'KEYS_ONLY'}
        return {'ProjectionType': 'INCLUDE', 'NonKeyAttributes': list(self.projection)}

    def to_dynamodb(self) -> Dict[str, Any]:
        """Render as an index entry for CreateTable / UpdateTable requests."""
        index = {
            'IndexName': self.name,
            'KeySchema': self.key_schema(),
            'Projection': self.projection_spec(),
        }
        if self.provisioned_throughput:
            index['ProvisionedThroughput'] = dict(self.provisioned_throughput)
        return index

    def __repr__(self) -> str:
        return f"IndexDefinition(name={self.name!r}, partition_key={self.partition_key!r}, sort_key={self.sort_key!r})"


class TableMeta:
    """Base class for table metadata definitions."""
    table_name: str
    partition_key: str
    sort_key: Optional[str] = None
    attribute_types: Dict[str, str] = {}
    local_indexes: List[IndexDefinition] = []
    global_indexes: List[IndexDefinition] = []
    ttl_field: Optional[str] = None

    @classmethod
    def get_key_fields(cls) -> List[str]:
        """Get DynamoDB item key field names."""
        fields = [cls.partition_key]
        if cls.sort_key:
            fields.append(cls.sort_key)
        return fields

    @classmethod
    def get_index_by_name(cls, index_name: str) -> Optional[IndexDefinition]:
        """Get a local or global index definition by name."""
        for index in list(cls.local_indexes) + list(cls.global_indexes):
            if index.name == index_name:
                return index
        return None


# =============================================================================
# Optional Capabilities
# =============================================================================

@runtime_checkable
class VersionedItem(Protocol):
    """A record whose writes are guarded by a version number.

    ``get_version`` returning None disables the guard for that record.
    """

    def get_version(self) -> Optional[int]: ...

    def set_version(self, version: int) -> int: ...

    def increment_version(self) -> int: ...


@runtime_checkable
class ExpiringItem(Protocol):
    """A record the table deletes automatically after ``get_expires_at()`` (Unix seconds)."""

    def get_expires_at(self) -> Optional[int]: ...

    def set_expires_at(self, seconds: float) -> int: ...


# =============================================================================
# Descriptor
# =============================================================================

class ItemDescriptor:
    """Read-only view of a record type's table declaration."""

    def __init__(self, model_class: type, meta: type):
        self.model_class = model_class
        self.meta = meta

        self.base_table_name: str = getattr(meta, 'table_name', None)
        self.identity_field: str = getattr(meta, 'partition_key', None)
        self.sort_field: Optional[str] = getattr(meta, 'sort_key', None) or None
        self.ttl_field: Optional[str] = getattr(meta, 'ttl_field', None) or getattr(model_class, 'TTL_FIELD', None)
        self.local_indexes: List[IndexDefinition] = list(getattr(meta, 'local_indexes', None) or [])
        self.global_indexes: List[IndexDefinition] = list(getattr(meta, 'global_indexes', None) or [])

        if not self.base_table_name:
            raise ConfigurationError(f"{model_class.__name__}.Meta must define table_name")
        if not self.identity_field:
            raise ConfigurationError(f"{model_class.__name__}.Meta must define partition_key")

        self.attribute_types: Dict[str, str] = {}
        for field_name, attribute_type in (getattr(meta, 'attribute_types', None) or {}).items():
            code = ATTRIBUTE_TYPE_ALIASES.get(attribute_type)
            if code is None:
                raise ConfigurationError(
                    f"{model_class.__name__}.Meta.attribute_types['{field_name}'] must be one of S, N, B "
                    f"(got {attribute_type!r})"
                )
            self.attribute_types[field_name] = code

    @classmethod
    def for_model(cls, model: Any) -> 'ItemDescriptor':
        """Build the descriptor for a record class or record instance.

        Raises:
            ConfigurationError: If the record type has no Meta declaration
        """
        model_class = model if isinstance(model, type) else type(model)
        meta = getattr(model_class, 'Meta', None)
        if meta is None:
            raise ConfigurationError(
                f"Model {model_class.__name__} must have a Meta class with table_name and partition_key attributes"
            )
        return cls(model_class, meta)

    def key_fields(self) -> List[str]:
        return [k for k in (self.identity_field, self.sort_field) if k]

    def attribute_type(self, field_name: str) -> str:
        return self.attribute_types.get(field_name, 'S')

    def attribute_definitions(self) -> List[Dict[str, str]]:
        """AttributeDefinitions for every table and index key field, each listed once."""
        names: List[str] = []
        for field_name in self.key_fields():
            if field_name not in names:
                names.append(field_name)
        for index in self.local_indexes + self.global_indexes:
            for field_name in index.key_fields():
                if field_name not in names:
                    names.append(field_name)
        return [{'AttributeName': name, 'AttributeType': self.attribute_type(name)} for name in names]

    def key_schema(self) -> List[Dict[str, str]]:
        schema = [{'AttributeName': self.identity_field, 'KeyType': 'HASH'}]
        if self.sort_field:
            schema.append({'AttributeName': self.sort_field, 'KeyType': 'RANGE'})
        return schema

    def local_secondary_indexes(self) -> Optional[List[Dict[str, Any]]]:
        if not self.local_indexes:
            return None
        return [index.to_dynamodb() for index in self.local_indexes]

    def global_secondary_indexes(self) -> Optional[List[Dict[str, Any]]]:
        if not self.global_indexes:
            return None
        return [index.to_dynamodb() for index in self.global_indexes]

    def global_index_names(self) -> List[str]:
        return [index.name for index in self.global_indexes]

    def __repr__(self) -> str:
        return (
            f"ItemDescriptor(model={self.model_class.__name__}, table={self.base_table_name!r}, "
            f"identity={self.identity_field!r}, sort={self.sort_field!r})"
        )
