from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class ColumnType(str, Enum):
    STRING = "STRING"
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    BOOLEAN = "BOOLEAN"
    DATETIME = "DATETIME"


class ColumnSchema(BaseModel):
    """Schema definition for a single destination column"""

    model_config = ConfigDict(frozen=True)

    name: str
    type: ColumnType = ColumnType.STRING
    mode: str = "NULLABLE"


class TableSchema(BaseModel):
    """Ordered column schemas, index-aligned with the source table"""

    model_config = ConfigDict(frozen=True)

    columns: tuple[ColumnSchema, ...]

    def type_at(self, index: int) -> ColumnType:
        if 0 <= index < len(self.columns):
            return self.columns[index].type
        return ColumnType.STRING

    @property
    def names(self) -> list[str]:
        return [column.name for column in self.columns]


class LoadResult(BaseModel):
    """Outcome of a successful BigQuery load job"""

    table_id: str
    job_id: str
    loaded_row_count: int
    table_created: bool = False


class SyncResult(BaseModel):
    """Result of a data synchronization operation for one source"""

    source: str
    destination: str | None = None
    success: bool
    records_exported: int
    table_created: bool = False
    error_message: str | None = None
    sync_timestamp: datetime
