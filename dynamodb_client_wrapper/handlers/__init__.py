"""
Handler Layer

Command Query Responsibility Segregation for record access:
- queries.py (read) optimizes for key conditions and paging
- commands.py (write) owns version guards and self-healing

Architecture:
handlers/ (this layer) -> core/ (gateway, table lifecycle) -> DynamoDB
handlers/ (this layer) <- models/ (records, descriptors, options)
"""

from .items.commands import ItemWriteApi
from .items.queries import ItemReadApi

__all__ = [
    'ItemReadApi',
    'ItemWriteApi',
]
