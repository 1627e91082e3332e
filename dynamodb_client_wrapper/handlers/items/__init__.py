"""
Item CQRS APIs

Read API (queries.py):
- GetItem by key, or first match on an index
- Query / Scan with page accumulation up to an optional limit

Write API (commands.py):
- Version-guarded PutItem with rollback and self-healing table creation
- DeleteItem, optionally returning the deleted record
"""

from .commands import ItemWriteApi
from .queries import ItemReadApi

__all__ = [
    "ItemReadApi",
    "ItemWriteApi",
]
