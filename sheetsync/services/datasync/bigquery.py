import io
import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from google.api_core.exceptions import Forbidden, NotFound
from google.cloud import bigquery
from google.oauth2 import service_account

from sheetsync.core.config import SyncConfig
from sheetsync.core.errors import ConfigError, DataError, JobError, JobTimeoutError
from sheetsync.core.provider_config import ServiceAccountConfig
from sheetsync.services.datasync.base import LoadResult, TableSchema
from sheetsync.services.datasync.cells import normalize_table
from sheetsync.services.datasync.encoder import encode_table
from sheetsync.services.datasync.schema import infer_schema, sanitize_table_name

logger = logging.getLogger(__name__)

DONE = "DONE"


class BigQueryService:
    """Bulk-load synchronization of tabular data into BigQuery"""

    def __init__(
        self,
        config: SyncConfig,
        credentials: ServiceAccountConfig | None = None,
        client: bigquery.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.credentials = credentials
        self.sleep = sleep
        self._client = client

    def initialize_client(self) -> bigquery.Client:
        if self._client is None:
            project_id, _ = self._require_destination()
            if self.credentials is not None:
                credentials = service_account.Credentials.from_service_account_info(  # type: ignore[no-untyped-call]
                    self.credentials.credentials_info()
                )
                self._client = bigquery.Client(project=project_id, credentials=credentials)
            else:
                # Application Default Credentials
                self._client = bigquery.Client(project=project_id)
        return self._client

    def _require_destination(self) -> tuple[str, str]:
        missing = [
            name
            for name, value in (
                ("project_id", self.config.project_id),
                ("dataset_id", self.config.dataset_id),
            )
            if not value
        ]
        if missing:
            raise ConfigError(f"BigQuery destination is missing: {', '.join(missing)}")
        return self.config.project_id, self.config.dataset_id  # type: ignore[return-value]

    def get_table_name(self, source_name: str) -> str:
        """Destination table for a source; explicit overrides win"""
        override = self.config.table_overrides.get(source_name)
        if override:
            return override
        return sanitize_table_name(source_name)

    def dataset_reference(self) -> bigquery.DatasetReference:
        project_id, dataset_id = self._require_destination()
        return bigquery.DatasetReference(project_id, dataset_id)

    def table_reference(self, table_name: str) -> bigquery.TableReference:
        return self.dataset_reference().table(table_name)

    def test_connection(self) -> bool:
        try:
            client = self.initialize_client()
            query_job = client.query("SELECT 1 as test", location=self.config.location)
            result = list(query_job.result())
            return len(result) == 1 and result[0].test == 1
        except ConfigError:
            raise
        except Exception as e:
            logger.warning(f"BigQuery connection test failed: {e}")
            return False

    def dataset_exists(self) -> bool:
        """Check if the BigQuery dataset exists"""
        client = self.initialize_client()
        dataset_ref = self.dataset_reference()
        try:
            client.get_dataset(dataset_ref)
            return True
        except NotFound:
            return False
        except Forbidden as e:
            raise ConfigError(
                f"Permission denied reading dataset {dataset_ref.dataset_id}: {e}"
            ) from e

    def create_dataset_if_not_exists(self) -> bool:
        """Create the dataset when missing; returns True when it was created"""
        if self.dataset_exists():
            return False
        client = self.initialize_client()
        dataset = bigquery.Dataset(self.dataset_reference())
        dataset.location = self.config.location
        dataset.description = "Spreadsheet data synchronized by sheetsync"
        client.create_dataset(dataset, exists_ok=True)
        logger.info(f"Created dataset {dataset.dataset_id} in {self.config.location}")
        return True

    def table_exists(self, table_ref: bigquery.TableReference) -> bool:
        """
        Probe the destination table.

        A permission error is not treated as absence: creating a fresh table
        would hide the real problem, so it surfaces as a ConfigError.
        """
        client = self.initialize_client()
        try:
            client.get_table(table_ref)
            return True
        except NotFound:
            return False
        except Forbidden as e:
            raise ConfigError(
                f"Permission denied reading table {table_ref.table_id}: {e}"
            ) from e

    def build_job_config(self, schema: TableSchema | None) -> bigquery.LoadJobConfig:
        job_config = bigquery.LoadJobConfig()
        job_config.source_format = bigquery.SourceFormat.CSV
        job_config.field_delimiter = self.config.field_delimiter
        job_config.skip_leading_rows = 1
        job_config.allow_quoted_newlines = self.config.allow_quoted_newlines
        job_config.encoding = bigquery.Encoding.UTF_8
        job_config.write_disposition = self.config.write_disposition.value
        job_config.autodetect = False

        # An existing table keeps its own schema
        if schema is not None:
            job_config.schema = [
                bigquery.SchemaField(column.name, column.type.value, mode=column.mode)
                for column in schema.columns
            ]
        return job_config

    def wait_for_job(self, job: Any) -> Any:
        attempts = 0
        while job.state != DONE:
            if attempts >= self.config.max_poll_attempts:
                raise JobTimeoutError(job.job_id, attempts)
            self.sleep(self.config.poll_interval_seconds)
            attempts += 1
            job = self.initialize_client().get_job(
                job.job_id, project=job.project, location=job.location
            )
            logger.debug(f"Load job {job.job_id} state {job.state} (poll {attempts})")

        if job.error_result:
            raise JobError(
                job.error_result.get("message", "Load job failed"),
                [self._describe_error(error) for error in job.errors or []],
            )
        return job

    @staticmethod
    def _describe_error(error: dict[str, Any]) -> str:
        description = f"{error.get('message', '')} (reason: {error.get('reason', 'unknown')}"
        if error.get("location"):
            description += f", location: {error['location']}"
        return description + ")"

    def load(self, values: Sequence[Sequence[Any]], source_name: str) -> LoadResult:
        """Replace (or append to) the destination table with the given rows"""
        project_id, dataset_id = self._require_destination()
        table = normalize_table(values)
        if len(table) < 2:
            raise DataError(f"Source '{source_name}' has no data rows")

        table_name = self.get_table_name(source_name)
        table_ref = self.table_reference(table_name)
        table_id = f"{project_id}.{dataset_id}.{table_name}"

        schema = infer_schema(table[0], table[1:], self.config.inference_mode)
        payload = encode_table(
            table, self.config.field_delimiter, schema, self.config.tzinfo
        )

        if self.config.create_dataset:
            self.create_dataset_if_not_exists()
        exists = self.table_exists(table_ref)
        job_config = self.build_job_config(None if exists else schema)

        client = self.initialize_client()
        job = client.load_table_from_file(
            io.BytesIO(payload.encode("utf-8")),
            table_ref,
            job_config=job_config,
            location=self.config.location,
        )
        logger.info(
            f"Submitted load job {job.job_id} for '{source_name}' into {table_id}"
            f" (existing table: {exists})"
        )

        job = self.wait_for_job(job)
        loaded = len(table) - 1
        logger.info(f"Loaded {loaded} rows into {table_id}")
        return LoadResult(
            table_id=table_id,
            job_id=job.job_id,
            loaded_row_count=loaded,
            table_created=not exists,
        )
