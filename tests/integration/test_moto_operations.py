"""
End-to-end tests against moto's in-process DynamoDB.

These run every layer for real: schema synthesis, table creation and TTL,
conditional writes, pagination and index reconciliation.
"""

from unittest.mock import patch

import pytest

from dynamodb_client_wrapper import (
    ConflictError,
    DynamoItem,
    IndexDefinition,
    ItemNotFoundError,
    PutItemOptions,
    QueryOptions,
    ScanOptions,
    TableMeta,
    TableNotFoundError,
)
from helpers.records import Event, Note, Session


@pytest.fixture(autouse=True)
def no_sleep():
    with patch('dynamodb_client_wrapper.core.table_lifecycle.time.sleep'):
        yield


class TestVersionedWrites:

    def test_insert_update_read_scenario(self, moto_wrapper):
        moto_wrapper.initialize_table(Note)
        note = Note(id='a1', value=1)

        assert moto_wrapper.put_item(note) is True
        assert note.version == 0

        note.value = 2
        assert moto_wrapper.put_item(note) is True
        assert note.version == 1

        stored = moto_wrapper.get_item(Note, 'a1')
        assert stored.id == 'a1'
        assert stored.value == 2
        assert stored.version == 1

    def test_stale_copy_conflicts(self, moto_wrapper):
        moto_wrapper.initialize_table(Note)
        note = Note(id='a1', value=1)
        moto_wrapper.put_item(note)
        stale = note.model_copy()

        note.value = 2
        moto_wrapper.put_item(note)

        stale.value = 3
        with pytest.raises(ConflictError):
            moto_wrapper.put_item(stale)
        assert stale.version == 0
        assert moto_wrapper.get_item(Note, 'a1').value == 2

    def test_duplicate_first_insert_conflicts(self, moto_wrapper):
        moto_wrapper.initialize_table(Note)
        moto_wrapper.put_item(Note(id='a1'))
        twin = Note(id='a1')

        with pytest.raises(ConflictError):
            moto_wrapper.put_item(twin)
        assert twin.version == -1

    def test_self_healing_creates_missing_table(self, moto_wrapper):
        note = Note(id='a1', value=1)

        moto_wrapper.put_item(note, PutItemOptions(create_table_if_not_exists=True))

        assert 'test.notes' in moto_wrapper.list_tables()
        assert moto_wrapper.get_item(Note, 'a1').value == 1

    def test_missing_table_without_self_healing(self, moto_wrapper):
        with pytest.raises(TableNotFoundError):
            moto_wrapper.put_item(Note(id='a1'))


class TestReads:

    def test_get_item_required_semantics(self, moto_wrapper):
        moto_wrapper.initialize_table(Note)

        with pytest.raises(ItemNotFoundError):
            moto_wrapper.get_item(Note, 'missing')
        assert moto_wrapper.get_item(Note, 'missing', options={'required': False}) is None

    def test_query_with_limit_overshoots_by_at_most_one_page(self, moto_wrapper):
        moto_wrapper.initialize_table(Event)
        for i in range(10):
            moto_wrapper.put_item(Event(tenant_id='t1', event_id=f'e{i:02d}'))

        events = moto_wrapper.query(Event, 't1', options=QueryOptions(limit=4))

        assert len(events) >= 4
        assert [e.event_id for e in events][:4] == ['e00', 'e01', 'e02', 'e03']

    def test_query_all_pages(self, moto_wrapper):
        moto_wrapper.initialize_table(Event)
        for i in range(5):
            moto_wrapper.put_item(Event(tenant_id='t1', event_id=f'e{i}'))
        moto_wrapper.put_item(Event(tenant_id='t2', event_id='e0'))

        assert len(moto_wrapper.query(Event, 't1')) == 5
        assert len(moto_wrapper.scan(Event)) == 6
        assert [e.tenant_id for e in moto_wrapper.scan(Event, 't2')] == ['t2']

    def test_index_query(self, moto_wrapper):
        moto_wrapper.initialize_table(Event)
        moto_wrapper.put_item(Event(tenant_id='t1', event_id='e1', kind='login', created_day='2024-01-01'))
        moto_wrapper.put_item(Event(tenant_id='t2', event_id='e2', kind='logout', created_day='2024-01-01'))

        events = moto_wrapper.query(Event, 'login', options=QueryOptions(
            index_name='KindIndex', index_partition_key_field_name='kind'
        ))

        assert [e.event_id for e in events] == ['e1']

    def test_scan_missing_table_ignored(self, moto_wrapper):
        assert moto_wrapper.scan(Note, options=ScanOptions(ignore_table_not_found=True)) == []

    def test_delete_all_old(self, moto_wrapper):
        moto_wrapper.initialize_table(Note)
        moto_wrapper.put_item(Note(id='a1', value=9))

        deleted = moto_wrapper.delete_item(Note, 'a1', return_values='ALL_OLD')

        assert deleted.value == 9
        assert moto_wrapper.delete_item(Note, 'a1', return_values='ALL_OLD') is False


class TestTableLifecycle:

    def test_initialize_table_is_idempotent(self, moto_wrapper):
        assert moto_wrapper.initialize_table(Note)['TableStatus'] == 'ACTIVE'
        assert moto_wrapper.initialize_table(Note) is None
        assert moto_wrapper.list_tables().count('test.notes') == 1

    def test_expiring_record_enables_ttl(self, moto_wrapper):
        moto_wrapper.initialize_table(Session)

        ttl = moto_wrapper.client.describe_time_to_live(TableName='test.sessions')
        assert ttl['TimeToLiveDescription']['AttributeName'] == 'expires_at'

    def test_reconcile_indexes(self, moto_wrapper):
        class Before(DynamoItem):
            pk: str

            class Meta(TableMeta):
                table_name = 'reconciled'
                partition_key = 'pk'
                global_indexes = [IndexDefinition('A', partition_key='a'), IndexDefinition('B', partition_key='b')]

        class After(DynamoItem):
            pk: str

            class Meta(TableMeta):
                table_name = 'reconciled'
                partition_key = 'pk'
                global_indexes = [IndexDefinition('B', partition_key='b'), IndexDefinition('C', partition_key='c')]

        moto_wrapper.initialize_table(Before)

        description = moto_wrapper.update_table(After)

        assert {i['IndexName'] for i in description['GlobalSecondaryIndexes']} == {'B', 'C'}
