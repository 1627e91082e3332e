"""
Tests for record models, descriptors and the marshaller.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from dynamodb_client_wrapper.exceptions import ConfigurationError, ValidationError
from dynamodb_client_wrapper.models import (
    INITIAL_VERSION,
    DynamoItem,
    ExpiringItem,
    IndexDefinition,
    ItemDescriptor,
    TableMeta,
    VersionedItem,
)
from dynamodb_client_wrapper.utils import ItemMarshaller
from helpers.records import Event, Note, Session


class Metric(DynamoItem):
    series: str
    at: int
    reading: Optional[float] = None

    class Meta(TableMeta):
        table_name = "metrics"
        partition_key = "series"
        sort_key = "at"
        attribute_types = {"at": "number", "bucket": "N"}
        local_indexes = [IndexDefinition("ByReading", partition_key="series", sort_key="bucket", projection="KEYS_ONLY")]
        global_indexes = [IndexDefinition("ByBucket", partition_key="bucket", projection=["reading"])]


class TestItemDescriptor:

    def test_simple_descriptor(self):
        descriptor = ItemDescriptor.for_model(Note)

        assert descriptor.base_table_name == "notes"
        assert descriptor.identity_field == "id"
        assert descriptor.sort_field is None
        assert descriptor.ttl_field is None
        assert descriptor.key_schema() == [{'AttributeName': 'id', 'KeyType': 'HASH'}]
        assert descriptor.attribute_definitions() == [{'AttributeName': 'id', 'AttributeType': 'S'}]
        assert descriptor.local_secondary_indexes() is None
        assert descriptor.global_secondary_indexes() is None

    def test_descriptor_from_instance(self):
        descriptor = ItemDescriptor.for_model(Note(id="n1"))

        assert descriptor.model_class is Note

    def test_attribute_definitions_cover_every_key_once(self):
        descriptor = ItemDescriptor.for_model(Metric)

        assert descriptor.attribute_definitions() == [
            {'AttributeName': 'series', 'AttributeType': 'S'},
            {'AttributeName': 'at', 'AttributeType': 'N'},
            {'AttributeName': 'bucket', 'AttributeType': 'N'},
        ]

    def test_index_rendering(self):
        descriptor = ItemDescriptor.for_model(Metric)

        assert descriptor.local_secondary_indexes() == [{
            'IndexName': 'ByReading',
            'KeySchema': [
                {'AttributeName': 'series', 'KeyType': 'HASH'},
                {'AttributeName': 'bucket', 'KeyType': 'RANGE'},
            ],
            'Projection': {'ProjectionType': 'KEYS_ONLY'},
        }]
        assert descriptor.global_secondary_indexes() == [{
            'IndexName': 'ByBucket',
            'KeySchema': [{'AttributeName': 'bucket', 'KeyType': 'HASH'}],
            'Projection': {'ProjectionType': 'INCLUDE', 'NonKeyAttributes': ['reading']},
        }]
        assert descriptor.global_index_names() == ['ByBucket']

    def test_expiring_record_declares_ttl_field(self):
        assert ItemDescriptor.for_model(Session).ttl_field == "expires_at"

    def test_missing_meta(self):
        class Loose(DynamoItem):
            pass

        with pytest.raises(ConfigurationError, match="Meta"):
            ItemDescriptor.for_model(Loose)

    def test_missing_partition_key(self):
        class NoKey(DynamoItem):
            class Meta(TableMeta):
                table_name = "nokey"

        with pytest.raises(ConfigurationError, match="partition_key"):
            ItemDescriptor.for_model(NoKey)

    def test_bad_attribute_type(self):
        class Odd(DynamoItem):
            class Meta(TableMeta):
                table_name = "odd"
                partition_key = "k"
                attribute_types = {"k": "BOOL"}

        with pytest.raises(ConfigurationError, match="attribute_types"):
            ItemDescriptor.for_model(Odd)

    def test_table_meta_helpers(self):
        assert Event.Meta.get_key_fields() == ["tenant_id", "event_id"]
        assert Event.Meta.get_index_by_name("KindIndex").partition_key == "kind"
        assert Event.Meta.get_index_by_name("Nope") is None


class TestVersionedMixin:

    def test_new_record_is_unsaved(self):
        note = Note(id="n1")

        assert note.get_version() == INITIAL_VERSION == -1
        assert isinstance(note, VersionedItem)

    def test_increment_from_unsaved(self):
        note = Note(id="n1")

        assert note.increment_version() == 0
        assert note.increment_version() == 1

    def test_negative_version_rejected(self):
        note = Note(id="n1", version=3)

        with pytest.raises(ValueError):
            note.set_version(-1)

    def test_rollback_from_zero_to_unsaved_allowed(self):
        note = Note(id="n1")
        note.increment_version()

        assert note.set_version(INITIAL_VERSION) == -1

    def test_set_version_marks_updated(self):
        note = Note(id="n1", updated_at=0)

        note.set_version(4)

        assert note.updated_at > 0

    def test_unversioned_record_is_not_versioned(self):
        assert not isinstance(Event(tenant_id="t", event_id="e"), VersionedItem)


class TestExpiringMixin:

    def test_expires_at_truncated(self):
        session = Session(session_id="s1", expires_at=1700000000.9)

        assert session.get_expires_at() == 1700000000
        assert isinstance(session, ExpiringItem)

    def test_set_expires_at(self):
        session = Session(session_id="s1", expires_at=1)

        assert session.set_expires_at(1800000000.5) == 1800000000

    def test_datetime_accepted(self):
        moment = datetime(2030, 1, 1, tzinfo=timezone.utc)

        assert Session(session_id="s1", expires_at=moment).expires_at == int(moment.timestamp())


class TestDynamoDBSerialization:

    def test_to_dynamodb_item_converts_floats(self):
        item = Metric(series="cpu", at=1, reading=0.5, created_at=10, updated_at=10).to_dynamodb_item()

        assert item == {
            'series': 'cpu', 'at': 1, 'reading': Decimal('0.5'), 'created_at': 10, 'updated_at': 10,
        }

    def test_from_dynamodb_item_coerces_decimals_and_keeps_unknown_attributes(self):
        note = Note.from_dynamodb_item({
            'id': 'n1', 'value': Decimal('2'), 'version': Decimal('1'),
            'created_at': Decimal('5'), 'updated_at': Decimal('6'), 'legacy': 'kept',
        })

        assert note.value == 2
        assert note.version == 1
        assert note.model_extra == {'legacy': 'kept'}

    def test_from_dynamodb_item_invalid(self):
        with pytest.raises(ValidationError, match="Note"):
            Note.from_dynamodb_item({'value': 'not-a-number'})


class TestItemMarshaller:

    def test_round_trip_of_a_record(self):
        marshaller = ItemMarshaller()
        native = {'id': 'n1', 'value': Decimal('2'), 'tags': {'a'}, 'nested': {'ok': True}}

        image = marshaller.marshall(native)

        assert image['id'] == {'S': 'n1'}
        assert image['value'] == {'N': '2'}
        assert image['nested'] == {'M': {'ok': {'BOOL': True}}}
        assert marshaller.unmarshall(image) == native

    def test_undefined_values_removed_by_default(self):
        image = ItemMarshaller().marshall({'id': 'n1', 'value': None, 'nested': {'gone': None}})

        assert image == {'id': {'S': 'n1'}, 'nested': {'M': {}}}

    def test_undefined_values_kept_as_null(self):
        image = ItemMarshaller(remove_undefined_values=False).marshall({'id': 'n1', 'value': None})

        assert image['value'] == {'NULL': True}

    def test_convert_empty_values(self):
        image = ItemMarshaller(convert_empty_values=True).marshall({'id': 'n1', 'name': '', 'raw': b''})

        assert image['name'] == {'NULL': True}
        assert image['raw'] == {'NULL': True}

    def test_empty_values_kept_without_conversion(self):
        image = ItemMarshaller().marshall({'id': 'n1', 'name': ''})

        assert image['name'] == {'S': ''}

    def test_binary_unmarshalled_as_bytes(self):
        assert ItemMarshaller().unmarshall({'raw': {'B': b'\x01'}}) == {'raw': b'\x01'}
