import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sheetsync.core.errors import AuthConfigError

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"


class ServiceAccountConfig(BaseModel):
    """
    Google service account key, as downloaded from the Cloud console.

    Only the identity and the private key are needed to mint tokens; the
    remaining fields are kept so the whole document can be handed to
    ``google.oauth2.service_account`` for the BigQuery client.
    """

    model_config = ConfigDict(extra="allow")

    type: str = Field(default="service_account", description="Service account type")
    project_id: str | None = Field(default=None, description="Google Cloud Project ID")
    private_key_id: str | None = Field(default=None, description="Private key ID")
    private_key: str = Field(..., description="PEM encoded RSA private key")
    client_email: str = Field(..., description="Service account email")
    client_id: str | None = Field(default=None, description="Client ID")
    token_uri: str = Field(default=DEFAULT_TOKEN_URI, description="Token URI")

    @field_validator("private_key")
    @classmethod
    def _unescape_newlines(cls, value: str) -> str:
        # Keys pasted into env vars usually carry literal "\n" sequences
        return value.replace("\\n", "\n")

    def credentials_info(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def parse_service_account(info: dict[str, Any]) -> ServiceAccountConfig:
    try:
        config = ServiceAccountConfig(**info)
    except ValidationError as e:
        missing = [".".join(str(loc) for loc in err["loc"]) for err in e.errors()]
        raise AuthConfigError(
            f"Service account is missing required fields: {', '.join(missing)}"
        ) from e
    if not config.client_email.strip() or not config.private_key.strip():
        raise AuthConfigError("Service account client_email and private_key must be set")
    return config


def load_service_account(path: str | Path) -> ServiceAccountConfig:
    try:
        info = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise AuthConfigError(f"Could not read service account file {path}: {e}") from e
    if not isinstance(info, dict):
        raise AuthConfigError(f"Service account file {path} must contain a JSON object")
    return parse_service_account(info)
