import json
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Protocol

import httpx
import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from jwt.algorithms import RSAAlgorithm
from jwt.utils import base64url_encode
from pydantic import BaseModel

from sheetsync.core.errors import AuthConfigError, AuthExchangeError
from sheetsync.core.provider_config import DEFAULT_TOKEN_URI, ServiceAccountConfig
from sheetsync.core.timezone import utc_now

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"
FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600


class Signer(Protocol):
    def sign(self, message: bytes, private_key_pem: str) -> bytes: ...


class RS256Signer:
    """Signs with RSASSA-PKCS1-v1_5 using SHA-256."""

    def __init__(self) -> None:
        self._algorithm = RSAAlgorithm(RSAAlgorithm.SHA256)

    def sign(self, message: bytes, private_key_pem: str) -> bytes:
        try:
            key = self._algorithm.prepare_key(private_key_pem)
        except (jwt.InvalidKeyError, UnsupportedAlgorithm, ValueError, TypeError) as e:
            raise AuthConfigError(f"Invalid service account private key: {e}") from e
        if not isinstance(key, RSAPrivateKey):
            raise AuthConfigError("Service account private key is not an RSA private key")
        return self._algorithm.sign(message, key)


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= self.expires_at

    @property
    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


def _segment(payload: dict[str, Any]) -> bytes:
    return base64url_encode(json.dumps(payload, separators=(",", ":")).encode())


class CredentialMinter:
    """
    Exchanges a signed service account assertion for an OAuth access token.

    Tokens are minted per call and never cached here.
    """

    def __init__(
        self,
        scope: str = FIRESTORE_SCOPE,
        token_uri: str = DEFAULT_TOKEN_URI,
        signer: Signer | None = None,
        http_client: httpx.Client | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.scope = scope
        self.token_uri = token_uri
        self.signer = signer or RS256Signer()
        self.http_client = http_client
        self.clock = clock

    def build_assertion(self, service_account: ServiceAccountConfig) -> str:
        if not service_account.client_email or not service_account.private_key:
            raise AuthConfigError("Service account client_email and private_key must be set")

        issued_at = int(self.clock().timestamp())
        header = {"alg": ALGORITHM, "typ": "JWT"}
        claims = {
            "iss": service_account.client_email,
            "scope": self.scope,
            "aud": self.token_uri,
            "iat": issued_at,
            "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
        }
        signing_input = _segment(header) + b"." + _segment(claims)
        signature = self.signer.sign(signing_input, service_account.private_key)
        return (signing_input + b"." + base64url_encode(signature)).decode()

    def mint(self, service_account: ServiceAccountConfig) -> AccessToken:
        assertion = self.build_assertion(service_account)
        form = {"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion}

        if self.http_client is not None:
            response = self.http_client.post(self.token_uri, data=form)
        else:
            with httpx.Client(timeout=15.0) as client:
                response = client.post(self.token_uri, data=form)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict) or not payload.get("access_token"):
            logger.error(f"Token exchange failed with status {response.status_code}")
            raise AuthExchangeError(response.status_code, response.text)

        expires_in = int(payload.get("expires_in", ASSERTION_LIFETIME_SECONDS))
        logger.info(f"Minted access token for {service_account.client_email}")
        return AccessToken(
            access_token=payload["access_token"],
            token_type=payload.get("token_type", "Bearer"),
            expires_at=self.clock() + timedelta(seconds=expires_in),
        )
