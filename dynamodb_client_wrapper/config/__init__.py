from .config import DEFAULT_DELAY_AFTER_CREATE_TABLE_MS, DynamoDBConfig

__all__ = ["DynamoDBConfig", "DEFAULT_DELAY_AFTER_CREATE_TABLE_MS"]
