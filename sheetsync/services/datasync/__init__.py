"""Data synchronization services for BigQuery and Firestore."""

from .base import ColumnSchema, ColumnType, LoadResult, SyncResult, TableSchema
from .bigquery import BigQueryService
from .firestore import FirestoreService

__all__ = [
    "ColumnSchema",
    "ColumnType",
    "LoadResult",
    "SyncResult",
    "TableSchema",
    "BigQueryService",
    "FirestoreService",
]
