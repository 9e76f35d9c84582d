import logging
from typing import Any

from pydantic import BaseModel, Field

from sheetsync.core.config import SyncConfig
from sheetsync.core.errors import AuthConfigError, WriteError
from sheetsync.core.provider_config import ServiceAccountConfig
from sheetsync.core.security import CredentialMinter
from sheetsync.core.timezone import utc_now
from sheetsync.services.datasync.base import SyncResult
from sheetsync.services.datasync.bigquery import BigQueryService
from sheetsync.services.datasync.firestore import FirestoreService

logger = logging.getLogger(__name__)


class SourceTable(BaseModel):
    """A named 2-D block of cell values; row 0 is the header"""

    name: str
    values: list[list[Any]] = Field(default_factory=list)
    hidden: bool = False


class DataSyncService:
    """Synchronizes source tables into BigQuery and Firestore"""

    def __init__(
        self,
        config: SyncConfig,
        credentials: ServiceAccountConfig | None = None,
        bigquery_service: BigQueryService | None = None,
        firestore_service: FirestoreService | None = None,
        minter: CredentialMinter | None = None,
    ):
        self.config = config
        self.credentials = credentials
        self.bigquery_service = bigquery_service or BigQueryService(config, credentials)
        self.firestore_service = firestore_service or FirestoreService(config)
        self.minter = minter or CredentialMinter()

    def select_sources(self, sources: list[SourceTable]) -> list[SourceTable]:
        selected = []
        for source in sources:
            if source.hidden and not self.config.include_hidden:
                logger.info(f"Skipping hidden source '{source.name}'")
                continue
            if self.config.is_excluded(source.name):
                logger.info(f"Skipping excluded source '{source.name}'")
                continue
            selected.append(source)
        return selected

    def test_connection(self) -> bool:
        return self.bigquery_service.test_connection()

    def sync_to_bigquery(self, sources: list[SourceTable]) -> dict[str, SyncResult]:
        """Load each source independently; one failing source never blocks the rest"""
        results: dict[str, SyncResult] = {}

        for source in self.select_sources(sources):
            try:
                load = self.bigquery_service.load(source.values, source.name)
                results[source.name] = SyncResult(
                    source=source.name,
                    destination=load.table_id,
                    success=True,
                    records_exported=load.loaded_row_count,
                    table_created=load.table_created,
                    sync_timestamp=utc_now(),
                )
            except Exception as e:
                logger.error(f"BigQuery sync failed for '{source.name}': {e}")
                results[source.name] = SyncResult(
                    source=source.name,
                    success=False,
                    records_exported=0,
                    error_message=str(e),
                    sync_timestamp=utc_now(),
                )

        return results

    def sync_to_firestore(self, sources: list[SourceTable]) -> dict[str, SyncResult]:
        """
        Write each source as a Firestore collection.

        All sources share one access token, so a credential failure aborts
        the whole invocation. A rejected chunk also aborts it; documents
        written before the failure are not rolled back.
        """
        if self.credentials is None:
            raise AuthConfigError("A service account is required for Firestore sync")

        selected = self.select_sources(sources)
        if not selected:
            return {}

        token = self.minter.mint(self.credentials)
        results: dict[str, SyncResult] = {}

        for source in selected:
            try:
                written = self.firestore_service.sync(source.values, source.name, token)
            except WriteError as e:
                logger.error(
                    f"Firestore sync aborted at '{source.name}' after "
                    f"{len(results)} completed sources"
                )
                e.partial_results = results
                raise
            results[source.name] = SyncResult(
                source=source.name,
                destination=source.name,
                success=True,
                records_exported=written,
                sync_timestamp=utc_now(),
            )

        return results


def summarize(results: dict[str, SyncResult]) -> list[str]:
    lines = []
    for name, result in results.items():
        if result.success:
            status = "created" if result.table_created else "updated"
            lines.append(
                f"✓ {name}: {result.records_exported:,} records -> "
                f"{result.destination} ({status})"
            )
        else:
            lines.append(f"✗ {name}: {result.error_message}")
    return lines
