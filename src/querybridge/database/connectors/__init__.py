"""Backend adapters, one per supported database."""

from .base import BaseBackendAdapter
from .mongodb import MongoDBAdapter
from .mysql import MySQLAdapter
from .postgresql import PostgreSQLAdapter

__all__ = [
    "BaseBackendAdapter",
    "MongoDBAdapter",
    "MySQLAdapter",
    "PostgreSQLAdapter",
]
