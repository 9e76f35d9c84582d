from typing import Any


class SheetSyncError(Exception):
    """Base error for all sync failures."""


class ConfigError(SheetSyncError):
    """Raised when required destination coordinates or settings are missing."""


class DataError(SheetSyncError):
    """Raised when a source table is empty or malformed."""


class JobError(SheetSyncError):
    """Raised when a BigQuery load job finishes with an error result."""

    def __init__(self, message: str, details: list[str] | None = None):
        self.details = details or []
        full_message = message
        if self.details:
            full_message = f"{message}: {'; '.join(self.details)}"
        super().__init__(full_message)


class JobTimeoutError(SheetSyncError):
    """Raised when a load job does not reach DONE within the poll budget."""

    def __init__(self, job_id: str, attempts: int):
        self.job_id = job_id
        self.attempts = attempts
        super().__init__(
            f"Load job {job_id} did not finish after {attempts} poll attempts"
        )


class AuthConfigError(SheetSyncError):
    """Raised when service account key material is missing or unusable."""


class AuthExchangeError(SheetSyncError):
    """Raised when the token endpoint does not return an access token."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Token exchange failed ({status_code}): {body}")


class WriteError(SheetSyncError):
    """
    Raised when a Firestore batch write chunk is rejected.

    ``partial_results`` holds the sources fully written before the failure,
    keyed by source name.
    """

    def __init__(self, source: str, status_code: int, body: str):
        self.source = source
        self.status_code = status_code
        self.body = body
        self.partial_results: dict[str, Any] = {}
        super().__init__(
            f"Firestore write failed for '{source}' ({status_code}): {body}"
        )
