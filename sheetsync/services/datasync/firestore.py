import logging
import math
import re
from collections.abc import Iterator, Sequence
from datetime import timezone, tzinfo
from typing import Any

import httpx

from sheetsync.core.config import SyncConfig
from sheetsync.core.errors import ConfigError, WriteError
from sheetsync.core.security import AccessToken
from sheetsync.core.timezone import to_zone
from sheetsync.services.datasync.cells import Cell, CellKind, is_blank_row, normalize_table

logger = logging.getLogger(__name__)

FIRESTORE_API_URL = "https://firestore.googleapis.com/v1"
MAX_DOCUMENT_ID_LENGTH = 1500

_PATH_UNSAFE = re.compile(r"[\s/]+")
_SIMPLE_FIELD = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def sanitize_document_id(value: str) -> str:
    return _PATH_UNSAFE.sub("_", value)[:MAX_DOCUMENT_ID_LENGTH]


def document_id(row: Sequence[Any], id_index: int | None, row_number: int) -> str:
    """
    Pick the document id for a row.

    Args:
        row: Data row cells
        id_index: Index of the ``id`` column, if the header has one
        row_number: 1-based row number in the source, header included
    """
    if id_index is not None and id_index < len(row):
        cell = Cell.of(row[id_index])
        if not cell.is_empty and cell.text.strip():
            return sanitize_document_id(cell.text.strip())
    return sanitize_document_id(f"ROW_{row_number}")


def field_names(header: Sequence[Any]) -> list[str]:
    """Field name per header label; repeated labels get ``_2``, ``_3`` suffixes"""
    seen: set[str] = set()
    names = []
    for index, label in enumerate(header):
        name = Cell.of(label).text.strip() or f"Col{index + 1}"
        candidate = name
        suffix = 2
        while candidate in seen:
            candidate = f"{name}_{suffix}"
            suffix += 1
        if candidate != name:
            logger.warning(f"Field '{name}' renamed to '{candidate}' to avoid a clash")
        seen.add(candidate)
        names.append(candidate)
    return names


def field_path(name: str) -> str:
    """Quote a field name for use in an update mask"""
    if _SIMPLE_FIELD.match(name):
        return name
    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


def to_firestore_value(value: Any, tz: tzinfo) -> dict[str, Any]:
    cell = Cell.of(value)
    if cell.kind is CellKind.EMPTY:
        return {"nullValue": None}
    if cell.kind is CellKind.INSTANT:
        instant = to_zone(cell.value, tz).astimezone(timezone.utc)
        return {"timestampValue": instant.isoformat().replace("+00:00", "Z")}
    if cell.kind is CellKind.NUMBER:
        if cell.is_integer:
            return {"integerValue": str(int(cell.value))}
        number = float(cell.value)
        # JSON has no literal for these; the REST API takes them as strings
        if math.isnan(number):
            return {"doubleValue": "NaN"}
        if math.isinf(number):
            return {"doubleValue": "Infinity" if number > 0 else "-Infinity"}
        return {"doubleValue": number}
    if cell.kind is CellKind.BOOLEAN:
        return {"booleanValue": cell.value}
    return {"stringValue": cell.text}


class FirestoreService:
    """Per-row document upserts through the Firestore batchWrite endpoint"""

    def __init__(self, config: SyncConfig, http_client: httpx.Client | None = None):
        self.config = config
        self.http_client = http_client

    @property
    def database_path(self) -> str:
        if not self.config.firestore_project_id:
            raise ConfigError("Firestore project id is not configured")
        return (
            f"projects/{self.config.firestore_project_id}"
            f"/databases/{self.config.firestore_database_id}"
        )

    @property
    def batch_write_url(self) -> str:
        return f"{FIRESTORE_API_URL}/{self.database_path}/documents:batchWrite"

    def build_writes(
        self, values: Sequence[Sequence[Any]], source_name: str
    ) -> list[dict[str, Any]]:
        """One full-field upsert per non-blank data row"""
        table = normalize_table(values)
        if len(table) < 2:
            return []

        header = table[0]
        names = field_names(header)
        id_index = next(
            (i for i, label in enumerate(header) if Cell.of(label).text.strip().lower() == "id"),
            None,
        )
        collection = sanitize_document_id(source_name)
        documents_root = f"{self.database_path}/documents/{collection}"
        tz = self.config.tzinfo

        writes = []
        for offset, row in enumerate(table[1:]):
            if is_blank_row(row):
                continue
            doc_id = document_id(row, id_index, offset + 2)
            fields = {name: to_firestore_value(value, tz) for name, value in zip(names, row)}
            writes.append(
                {
                    "update": {"name": f"{documents_root}/{doc_id}", "fields": fields},
                    # Explicit mask: every listed field is overwritten
                    "updateMask": {"fieldPaths": [field_path(name) for name in fields]},
                }
            )
        return writes

    def chunk(self, writes: list[dict[str, Any]]) -> Iterator[list[dict[str, Any]]]:
        size = self.config.batch_size
        for start in range(0, len(writes), size):
            yield writes[start : start + size]

    def sync(
        self,
        values: Sequence[Sequence[Any]],
        source_name: str,
        token: AccessToken | str,
    ) -> int:
        """
        Write every row of a source as a document; returns documents written.

        Chunks are sent in order and are not transactional: when a chunk is
        rejected the chunks before it stay applied.
        """
        if self.config.is_excluded(source_name):
            logger.info(f"Skipping excluded source '{source_name}'")
            return 0

        writes = self.build_writes(values, source_name)
        if not writes:
            logger.info(f"No rows to write for '{source_name}'")
            return 0

        access_token = token.access_token if isinstance(token, AccessToken) else token
        headers = {"Authorization": f"Bearer {access_token}"}

        if self.http_client is not None:
            return self._send_chunks(self.http_client, writes, source_name, headers)
        with httpx.Client(timeout=60.0) as client:
            return self._send_chunks(client, writes, source_name, headers)

    def _send_chunks(
        self,
        client: httpx.Client,
        writes: list[dict[str, Any]],
        source_name: str,
        headers: dict[str, str],
    ) -> int:
        written = 0
        for number, chunk in enumerate(self.chunk(writes), start=1):
            response = client.post(
                self.batch_write_url, json={"writes": chunk}, headers=headers
            )
            if response.status_code >= 300:
                logger.error(
                    f"Chunk {number} for '{source_name}' failed with {response.status_code}"
                    f" after {written} documents were written"
                )
                raise WriteError(source_name, response.status_code, response.text)

            self._log_rejected_writes(response, source_name, number)
            written += len(chunk)
            logger.debug(f"Chunk {number} for '{source_name}': {len(chunk)} documents")

        logger.info(f"Wrote {written} documents for '{source_name}'")
        return written

    @staticmethod
    def _log_rejected_writes(
        response: httpx.Response, source_name: str, number: int
    ) -> None:
        # batchWrite applies writes independently and reports each status
        try:
            payload = response.json()
        except ValueError:
            return
        if not isinstance(payload, dict):
            return
        statuses = payload.get("status", [])
        rejected = [status for status in statuses if status.get("code", 0) != 0]
        if rejected:
            logger.warning(
                f"Chunk {number} for '{source_name}': {len(rejected)} writes rejected,"
                f" first: {rejected[0].get('message', '')}"
            )
