"""
Test configuration and fixtures for the DynamoDB client wrapper.

Unit tests drive the engines with Mock clients; integration tests use an
in-process DynamoDB provided by moto. Record types live in helpers/records.py.
"""

from unittest.mock import Mock

import boto3
import pytest
from moto import mock_aws

from dynamodb_client_wrapper import DynamoDbClientWrapper, DynamoDBConfig


@pytest.fixture
def test_config():
    """Configuration with no settle delay and a 'test' table prefix."""
    return DynamoDBConfig(
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        region_name="us-east-1",
        endpoint_url=None,
        table_prefix="test",
        delay_after_create_table_ms=0,
        enable_debug_logging=False
    )


@pytest.fixture
def debug_config(test_config):
    """Same as test_config with debug mode on."""
    return test_config.model_copy(update={'enable_debug_logging': True})


@pytest.fixture
def mock_client():
    """Mock low-level DynamoDB client with empty default responses."""
    client = Mock()
    client.list_tables.return_value = {'TableNames': []}
    client.put_item.return_value = {}
    client.get_item.return_value = {}
    client.delete_item.return_value = {}
    client.query.return_value = {'Items': [], 'Count': 0, 'ScannedCount': 0}
    client.scan.return_value = {'Items': [], 'Count': 0, 'ScannedCount': 0}
    return client


@pytest.fixture
def wrapper(test_config, mock_client):
    """Wrapper bound to the mock client."""
    return DynamoDbClientWrapper(test_config, client=mock_client)


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def moto_wrapper(aws_credentials, test_config):
    """Wrapper backed by moto's in-process DynamoDB."""
    with mock_aws():
        client = boto3.client('dynamodb', region_name='us-east-1')
        with DynamoDbClientWrapper(test_config, client=client) as db:
            yield db
