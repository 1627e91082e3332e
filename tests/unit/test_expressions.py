"""
Tests for key building and expression building in utils.py.
"""

import pytest

from dynamodb_client_wrapper.exceptions import ConfigurationError, InvalidArgumentError
from dynamodb_client_wrapper.models import ItemDescriptor
from dynamodb_client_wrapper.utils import (
    ExpressionParts,
    attribute_placeholder,
    build_exclusive_start_key,
    build_key_condition,
    build_key_mapping,
    build_scan_filter,
    validate_key_values,
)
from helpers.records import Event, Note


@pytest.fixture
def note_descriptor():
    return ItemDescriptor.for_model(Note)


@pytest.fixture
def event_descriptor():
    return ItemDescriptor.for_model(Event)


class TestValidateKeyValues:

    @pytest.mark.parametrize('id_value, range_value', [('', None), ('a', ''), ('', '')])
    def test_empty_strings_rejected(self, id_value, range_value):
        with pytest.raises(InvalidArgumentError):
            validate_key_values(id_value, range_value)

    def test_non_strings_and_none_accepted(self):
        validate_key_values(0, None)
        validate_key_values(None, 0)


class TestBuildKeyMapping:

    def test_identity_only(self, note_descriptor):
        assert build_key_mapping(note_descriptor, 'n1') == {'id': 'n1'}

    def test_identity_and_range(self, event_descriptor):
        assert build_key_mapping(event_descriptor, 't1', 'e1') == {'tenant_id': 't1', 'event_id': 'e1'}

    def test_missing_range_for_range_keyed_table(self, event_descriptor):
        with pytest.raises(InvalidArgumentError, match="event_id"):
            build_key_mapping(event_descriptor, 't1')

    def test_range_without_range_field(self, note_descriptor):
        with pytest.raises(ConfigurationError):
            build_key_mapping(note_descriptor, 'n1', 'r1')

    def test_missing_id(self, note_descriptor):
        with pytest.raises(InvalidArgumentError):
            build_key_mapping(note_descriptor, None)


class TestBuildKeyCondition:

    def test_identity_only(self, note_descriptor):
        parts = build_key_condition(note_descriptor, 'n1')

        assert parts == ExpressionParts('#id = :idval', {'#id': 'id'}, {':idval': 'n1'})

    def test_identity_and_range(self, event_descriptor):
        parts = build_key_condition(event_descriptor, 't1', 'e1')

        assert parts.expression == '#tenant_id = :idval AND #event_id = :rangeval'
        assert parts.names == {'#tenant_id': 'tenant_id', '#event_id': 'event_id'}
        assert parts.values == {':idval': 't1', ':rangeval': 'e1'}

    def test_index_override_names(self, event_descriptor):
        parts = build_key_condition(event_descriptor, 'login', '2024-01-01',
                                    index_partition_key='kind', index_range_key='created_day')

        assert parts.expression == '#kind = :idval AND #created_day = :rangeval'
        assert parts.names == {'#kind': 'kind', '#created_day': 'created_day'}

    def test_index_falls_back_to_table_sort_field(self, event_descriptor):
        parts = build_key_condition(event_descriptor, 'login', 'e1', index_partition_key='kind')

        assert parts.expression == '#kind = :idval AND #event_id = :rangeval'

    def test_range_without_resolvable_field(self, note_descriptor):
        with pytest.raises(ConfigurationError):
            build_key_condition(note_descriptor, 'n1', 'r1')

    def test_empty_id_rejected(self, note_descriptor):
        with pytest.raises(InvalidArgumentError):
            build_key_condition(note_descriptor, '')

    def test_extra_names_and_values_merged(self, note_descriptor):
        parts = build_key_condition(note_descriptor, 'n1',
                                    extra_names={'#v': 'value'}, extra_values={':min': 3})

        assert parts.names == {'#v': 'value', '#id': 'id'}
        assert parts.values == {':min': 3, ':idval': 'n1'}


class TestBuildScanFilter:

    def test_nothing_to_filter(self, note_descriptor):
        assert build_scan_filter(note_descriptor) is None

    def test_identity_clause(self, note_descriptor):
        parts = build_scan_filter(note_descriptor, 'n1')

        assert parts.expression == '#id = :idval'

    def test_caller_filter_only(self, note_descriptor):
        parts = build_scan_filter(note_descriptor, filter_expression='#v > :min',
                                  extra_names={'#v': 'value'}, extra_values={':min': 1})

        assert parts == ExpressionParts('#v > :min', {'#v': 'value'}, {':min': 1})

    def test_caller_filter_and_joined(self, event_descriptor):
        parts = build_scan_filter(event_descriptor, 't1', 'e1', filter_expression='#k = :k OR #k = :j')

        assert parts.expression == '(#k = :k OR #k = :j) AND #tenant_id = :idval AND #event_id = :rangeval'

    def test_range_only_uses_sort_field(self, event_descriptor):
        parts = build_scan_filter(event_descriptor, range_value='e1')

        assert parts.expression == '#event_id = :rangeval'


class TestPlaceholdersAndStartKeys:

    def test_placeholder_escapes_unsafe_characters(self):
        assert attribute_placeholder('user-id.v2') == '#user_id_v2'

    def test_scalar_start_key_maps_to_partition_field(self, note_descriptor):
        assert build_exclusive_start_key(note_descriptor, 'n5') == {'id': 'n5'}

    def test_scalar_start_key_maps_to_index_partition_field(self, event_descriptor):
        assert build_exclusive_start_key(event_descriptor, 'login', 'kind') == {'kind': 'login'}

    def test_dict_start_key_used_as_is(self, event_descriptor):
        key = {'tenant_id': 't1', 'event_id': 'e1'}

        assert build_exclusive_start_key(event_descriptor, key) is key

    def test_no_start_key(self, note_descriptor):
        assert build_exclusive_start_key(note_descriptor, None) is None
