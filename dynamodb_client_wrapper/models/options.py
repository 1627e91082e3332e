"""
Request option models for table creation, reads and writes.

Options are pydantic models so callers may pass either an instance or a
plain dict; the handlers coerce dicts with ``Model.model_validate``.
"""

from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator

BILLING_MODES = ('PAY_PER_REQUEST', 'PROVISIONED')


class CreateSchemaOptions(BaseModel):
    """Table-level settings merged into a synthesized CreateTable request."""

    billing_mode: str = Field(default='PAY_PER_REQUEST', description="PAY_PER_REQUEST or PROVISIONED")
    stream_specification: Optional[Dict[str, Any]] = Field(
        default_factory=lambda: {'StreamEnabled': False},
        description="DynamoDB StreamSpecification; streams are disabled by default"
    )
    tags: Optional[List[Dict[str, str]]] = Field(default=None, description="[{'Key': ..., 'Value': ...}]")
    provisioned_throughput: Optional[Dict[str, int]] = Field(
        default=None,
        description="{'ReadCapacityUnits': n, 'WriteCapacityUnits': n}, required for PROVISIONED"
    )

    @field_validator('billing_mode')
    @classmethod
    def validate_billing_mode(cls, v):
        if v not in BILLING_MODES:
            raise ValueError(f"billing_mode must be one of {BILLING_MODES}")
        return v

    def to_request(self) -> Dict[str, Any]:
        request: Dict[str, Any] = {'BillingMode': self.billing_mode}
        if self.stream_specification is not None:
            request['StreamSpecification'] = dict(self.stream_specification)
        if self.tags:
            request['Tags'] = list(self.tags)
        if self.provisioned_throughput:
            request['ProvisionedThroughput'] = dict(self.provisioned_throughput)
        return request


class GetItemOptions(BaseModel):
    required: bool = Field(default=True, description="Raise ItemNotFoundError when nothing matches")
    consistent_read: Optional[bool] = None
    index_name: Optional[str] = None
    index_partition_key_field_name: Optional[str] = Field(
        default=None, description="Partition field of index_name; defaults to the table's identity field"
    )
    index_range_field_name: Optional[str] = Field(
        default=None, description="Sort field of index_name; defaults to the table's sort field"
    )
    ignore_table_not_found: bool = Field(default=False, description="Return no results instead of raising")


class ScanOptions(GetItemOptions):
    required: bool = False
    limit: Optional[int] = Field(default=None, gt=0, description="Stop paging once this many items are read")
    filter_expression: Optional[str] = None
    expression_attribute_values: Dict[str, Any] = Field(default_factory=dict)
    expression_attribute_names: Dict[str, str] = Field(default_factory=dict)
    exclusive_start_key: Optional[Any] = Field(
        default=None, description="Start cursor: a full key dict, or a partition value"
    )

    @field_validator('expression_attribute_values')
    @classmethod
    def validate_value_placeholders(cls, v):
        for placeholder in v:
            if not placeholder.startswith(':'):
                raise ValueError(f"value placeholder '{placeholder}' must start with ':'")
        return v

    @field_validator('expression_attribute_names')
    @classmethod
    def validate_name_placeholders(cls, v):
        for placeholder in v:
            if not placeholder.startswith('#'):
                raise ValueError(f"name placeholder '{placeholder}' must start with '#'")
        return v


class QueryOptions(ScanOptions):
    scan_index_forward: Optional[bool] = Field(default=None, description="False reverses sort-key order")


class PutItemOptions(BaseModel):
    """Write options.

    ``create_table_if_not_exists`` turns on self-healing: a write that fails
    because the table is missing creates the table from ``item_class`` and
    retries once.
    """

    create_table_if_not_exists: bool = False
    create_schema_options: Optional[CreateSchemaOptions] = None
    item_class: Optional[Type[BaseModel]] = Field(
        default=None, description="Record type used to build the table; defaults to type(item)"
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)
