"""
DynamoDB Client Wrapper Utilities

Key Features:
- Value marshalling between native Python values and the DynamoDB wire format
- Key building from a record type's descriptor
- Key-condition and filter expression building with escaped attribute names

Attribute names are always referenced through ``#placeholders`` so field names
that collide with DynamoDB reserved words (``name``, ``status``, ``data``...)
never break an expression. Expression values are returned as native Python
values; the handlers marshal them together with the item.
"""

import logging
import re
from typing import Any, Dict, List, NamedTuple, Optional

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from .exceptions import ConfigurationError, InvalidArgumentError
from .models.descriptor import ItemDescriptor

logger = logging.getLogger(__name__)

ID_VALUE_PLACEHOLDER = ':idval'
RANGE_VALUE_PLACEHOLDER = ':rangeval'

_PLACEHOLDER_UNSAFE = re.compile(r'[^0-9A-Za-z_]')
_DROP = object()


# =============================================================================
# Marshalling
# =============================================================================

class _BytesTypeDeserializer(TypeDeserializer):
    """Returns binary attributes as bytes rather than boto3 Binary wrappers."""

    def _deserialize_b(self, value):
        return bytes(value)


class ItemMarshaller:
    """Converts plain dictionaries to and from DynamoDB attribute values.

    Args:
        convert_empty_values: Write empty strings, bytes and sets as NULL
        remove_undefined_values: Drop map entries whose value is None
    """

    _serializer = TypeSerializer()
    _deserializer = _BytesTypeDeserializer()

    def __init__(self, convert_empty_values: bool = False, remove_undefined_values: bool = True):
        self.convert_empty_values = convert_empty_values
        self.remove_undefined_values = remove_undefined_values

    def _prepare(self, value: Any) -> Any:
        if value is None:
            return _DROP if self.remove_undefined_values else None
        if isinstance(value, dict):
            prepared = {}
            for k, v in value.items():
                v = self._prepare(v)
                if v is not _DROP:
                    prepared[k] = v
            return prepared
        if isinstance(value, (list, tuple)):
            return [None if v is _DROP else v for v in (self._prepare(v) for v in value)]
        if self.convert_empty_values and isinstance(value, (str, bytes, bytearray, set, frozenset)) and len(value) == 0:
            return None
        return value

    def marshall(self, item: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        """Serialize a native dictionary into a DynamoDB attribute map."""
        prepared = self._prepare(item)
        return {k: self._serializer.serialize(v) for k, v in prepared.items()}

    def marshall_value(self, value: Any) -> Dict[str, Any]:
        prepared = self._prepare(value)
        return self._serializer.serialize(None if prepared is _DROP else prepared)

    def unmarshall(self, image: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
        """Deserialize a DynamoDB attribute map into a native dictionary."""
        return {k: self._deserializer.deserialize(v) for k, v in image.items()}


# Key maps are never subject to empty-value conversion
KEY_MARSHALLER = ItemMarshaller(convert_empty_values=False, remove_undefined_values=True)


# =============================================================================
# Key Building
# =============================================================================

class ExpressionParts(NamedTuple):
    """A condition or filter expression with its placeholder maps."""
    expression: str
    names: Dict[str, str]
    values: Dict[str, Any]


def attribute_placeholder(field_name: str) -> str:
    """Return the ``#name`` placeholder used for an attribute.

    Example:
        >>> attribute_placeholder('user-id')
        '#user_id'
    """
    return '#' + _PLACEHOLDER_UNSAFE.sub('_', field_name)


def validate_key_values(id_value: Any = None, range_value: Any = None) -> None:
    """Reject empty-string identity and range values.

    Raises:
        InvalidArgumentError: If either value is an empty string
    """
    if isinstance(id_value, str) and len(id_value) == 0:
        raise InvalidArgumentError("id cannot be an empty string", argument='id')
    if isinstance(range_value, str) and len(range_value) == 0:
        raise InvalidArgumentError("range cannot be an empty string", argument='range')


def build_key_mapping(descriptor: ItemDescriptor, id_value: Any, range_value: Any = None) -> Dict[str, Any]:
    """Build the native primary-key dictionary for one record.

    Args:
        descriptor: Record type descriptor
        id_value: Partition key value
        range_value: Sort key value, required when the table declares one

    Returns:
        Key dictionary, e.g. ``{'user_id': 'u1', 'created': 42}``

    Raises:
        InvalidArgumentError: Missing or empty id, or missing range for a range-keyed table
        ConfigurationError: Range value given for a table without a sort key
    """
    validate_key_values(id_value, range_value)
    model_name = descriptor.model_class.__name__

    if id_value is None:
        raise InvalidArgumentError(f"{model_name}: id is required", argument='id')

    key = {descriptor.identity_field: id_value}

    if descriptor.sort_field:
        if range_value is None:
            raise InvalidArgumentError(
                f"{model_name} declares range field '{descriptor.sort_field}' but no range value was given",
                argument='range'
            )
        key[descriptor.sort_field] = range_value
    elif range_value is not None:
        raise ConfigurationError(f"{model_name} has no range field; cannot use range value {range_value!r}")

    return key


def build_exclusive_start_key(
    descriptor: ItemDescriptor,
    start_key: Any,
    index_partition_key: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """Normalize a start cursor.

    A dict is used as-is. A scalar is treated as a partition value of the
    (index) partition field.
    """
    if start_key is None:
        return None
    if isinstance(start_key, dict):
        return start_key
    return {index_partition_key or descriptor.identity_field: start_key}


# =============================================================================
# Expression Building
# =============================================================================

def _key_clauses(
    descriptor: ItemDescriptor,
    id_value: Any,
    range_value: Any,
    index_partition_key: Optional[str],
    index_range_key: Optional[str],
) -> ExpressionParts:
    clauses: List[str] = []
    names: Dict[str, str] = {}
    values: Dict[str, Any] = {}

    if id_value is not None:
        partition_field = index_partition_key or descriptor.identity_field
        placeholder = attribute_placeholder(partition_field)
        names[placeholder] = partition_field
        values[ID_VALUE_PLACEHOLDER] = id_value
        clauses.append(f"{placeholder} = {ID_VALUE_PLACEHOLDER}")

    if range_value is not None:
        range_field = index_range_key or descriptor.sort_field
        if not range_field:
            raise ConfigurationError(
                f"Range value given for {descriptor.model_class.__name__} but no range field is declared "
                f"or supplied for the index"
            )
        placeholder = attribute_placeholder(range_field)
        names[placeholder] = range_field
        values[RANGE_VALUE_PLACEHOLDER] = range_value
        clauses.append(f"{placeholder} = {RANGE_VALUE_PLACEHOLDER}")

    return ExpressionParts(' AND '.join(clauses), names, values)


def build_key_condition(
    descriptor: ItemDescriptor,
    id_value: Any,
    range_value: Any = None,
    index_partition_key: Optional[str] = None,
    index_range_key: Optional[str] = None,
    extra_names: Optional[Dict[str, str]] = None,
    extra_values: Optional[Dict[str, Any]] = None,
) -> ExpressionParts:
    """Build a KeyConditionExpression for a query.

    Example:
        >>> build_key_condition(descriptor, 'u1', 42)
        ExpressionParts(expression='#user_id = :idval AND #created = :rangeval',
                        names={'#user_id': 'user_id', '#created': 'created'},
                        values={':idval': 'u1', ':rangeval': 42})

    Raises:
        InvalidArgumentError: Empty or missing id, empty range
        ConfigurationError: Range value without a resolvable range field
    """
    validate_key_values(id_value, range_value)
    if id_value is None:
        raise InvalidArgumentError("id is required for a key condition", argument='id')

    parts = _key_clauses(descriptor, id_value, range_value, index_partition_key, index_range_key)
    names = dict(extra_names or {})
    names.update(parts.names)
    values = dict(extra_values or {})
    values.update(parts.values)
    return ExpressionParts(parts.expression, names, values)


def build_scan_filter(
    descriptor: ItemDescriptor,
    id_value: Any = None,
    range_value: Any = None,
    index_partition_key: Optional[str] = None,
    index_range_key: Optional[str] = None,
    filter_expression: Optional[str] = None,
    extra_names: Optional[Dict[str, str]] = None,
    extra_values: Optional[Dict[str, Any]] = None,
) -> Optional[ExpressionParts]:
    """Build a FilterExpression for a scan.

    Identity and range criteria become equality clauses AND-joined with the
    caller's own filter expression.

    Returns:
        ExpressionParts, or None when there is nothing to filter on
    """
    validate_key_values(id_value, range_value)

    parts = _key_clauses(descriptor, id_value, range_value, index_partition_key, index_range_key)
    clauses = []
    if filter_expression:
        clauses.append(f"({filter_expression})" if parts.expression else filter_expression)
    if parts.expression:
        clauses.append(parts.expression)
    if not clauses:
        return None

    names = dict(extra_names or {})
    names.update(parts.names)
    values = dict(extra_values or {})
    values.update(parts.values)
    return ExpressionParts(' AND '.join(clauses), names, values)
