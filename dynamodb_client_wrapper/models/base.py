"""
Base Model Components and Mixins

Record types are pydantic models composed from independent pieces:

- DynamoItem: the base every record derives from. It carries the
  ``created_at`` / ``updated_at`` Unix-second timestamps and the
  DynamoDB serialization API (``to_dynamodb_item`` / ``from_dynamodb_item``).
- VersionedMixin: opts the record into optimistic concurrency.
- ExpiringMixin: opts the record into automatic expiry via the table's TTL.

The mixins are optional and combine freely:

```python
class Session(ExpiringMixin, VersionedMixin, DynamoItem):
    session_id: str

    class Meta(TableMeta):
        table_name = "sessions"
        partition_key = "session_id"
```

The write engine never checks for these classes. It checks the
``VersionedItem`` / ``ExpiringItem`` protocols, so a record type may also
implement the accessors by hand.
"""

import logging
import time
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

# Version of a record that has never been stored
INITIAL_VERSION = -1


def _now() -> int:
    return int(time.time())


class DynamoDBMixin(BaseModel):
    """
    Mixin providing DynamoDB serialization and deserialization functionality.

    Conversions applied on the way out:
    - datetime / date → ISO string
    - float → Decimal (boto3 rejects floats for the Number type)
    - Enum → its value
    - nested dicts, lists and sets are converted recursively

    Decimals coming back from DynamoDB are coerced by pydantic into the
    declared int / float field types on the way in.
    """

    def to_dynamodb_item(self) -> Dict[str, Any]:
        """
        Convert model to a plain dict ready for the marshaller.

        ``None`` values are kept; whether they are written is decided by the
        marshaller's ``remove_undefined_values`` option.

        Returns:
            Dictionary of native DynamoDB-compatible Python values
        """
        def convert_for_dynamodb(obj):
            if isinstance(obj, dict):
                return {k: convert_for_dynamodb(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert_for_dynamodb(list_item) for list_item in obj]
            elif isinstance(obj, (set, frozenset)):
                return {convert_for_dynamodb(set_item) for set_item in obj}
            elif isinstance(obj, bool):
                return obj
            elif isinstance(obj, float):
                return Decimal(str(obj))
            elif isinstance(obj, (datetime, date)):
                return obj.isoformat()
            elif isinstance(obj, Enum):
                return obj.value
            else:
                return obj

        return convert_for_dynamodb(self.model_dump())

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]):
        """
        Create model instance from an unmarshalled DynamoDB item.

        Attributes the model does not declare are preserved when the model
        allows extra fields (DynamoItem does).

        Args:
            item: Plain dictionary produced by the marshaller

        Returns:
            Model instance

        Raises:
            ValidationError: If item data is invalid for the model
        """
        try:
            return cls(**item)
        except Exception as e:
            logger.error(f"Failed to convert DynamoDB item to {cls.__name__}: {e}")
            from ..exceptions import ValidationError
            raise ValidationError(f"Failed to convert DynamoDB item to {cls.__name__}: {e}", original_error=e) from e


class DynamoItem(DynamoDBMixin):
    """Base class for every stored record.

    Subclasses declare their table with a nested ``class Meta(TableMeta)``.
    """

    # Name of the attribute holding the expiry timestamp; None disables TTL
    TTL_FIELD: ClassVar[Optional[str]] = None

    created_at: int = Field(default_factory=_now, description="Creation time, Unix seconds")
    updated_at: int = Field(default_factory=_now, description="Last modification time, Unix seconds")

    model_config = ConfigDict(
        extra='allow',
        validate_assignment=True,
        populate_by_name=True,
    )

    def mark_updated(self) -> None:
        self.updated_at = _now()


class VersionedMixin(BaseModel):
    """
    Mixin enabling optimistic concurrency for a record.

    ``version`` starts at INITIAL_VERSION (-1, never stored). The write engine
    bumps it before every conditional write and rolls it back if the write
    fails, so after a successful first insert the version is 0.
    """

    VERSION_FIELD: ClassVar[str] = 'version'

    version: int = Field(default=INITIAL_VERSION, description="Stored version, -1 until first saved")

    def get_version(self) -> Optional[int]:
        return self.version

    def set_version(self, version: int) -> int:
        """Set the version and mark the record updated.

        Raises:
            ValueError: For negative versions, except rolling a failed first
                insert back from 0 to -1
        """
        if version is None:
            raise ValueError("version is required")
        if version < 0 and not (version == INITIAL_VERSION and self.version == 0):
            raise ValueError(f"version must be a non-negative integer (got {version})")
        self.version = version
        mark_updated = getattr(self, 'mark_updated', None)
        if mark_updated is not None:
            mark_updated()
        return self.version

    def increment_version(self) -> int:
        if self.get_version() is None:
            raise ValueError("cannot increment an undefined version")
        return self.set_version(self.version + 1)


class ExpiringMixin(BaseModel):
    """Mixin storing an ``expires_at`` Unix-seconds timestamp used as the table TTL attribute."""

    TTL_FIELD: ClassVar[Optional[str]] = 'expires_at'

    expires_at: int = Field(..., description="Expiry time, Unix seconds")

    @field_validator('expires_at', mode='before')
    @classmethod
    def truncate_expires_at(cls, v):
        """DynamoDB TTL only accepts whole seconds."""
        if isinstance(v, datetime):
            return int(v.timestamp())
        if isinstance(v, (float, Decimal)):
            return int(v)
        return v

    def get_expires_at(self) -> Optional[int]:
        return self.expires_at

    def set_expires_at(self, seconds: float) -> int:
        self.expires_at = int(seconds)
        mark_updated = getattr(self, 'mark_updated', None)
        if mark_updated is not None:
            mark_updated()
        return self.expires_at
