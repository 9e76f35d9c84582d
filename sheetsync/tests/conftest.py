import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from sheetsync.core.config import SyncConfig
from sheetsync.core.provider_config import ServiceAccountConfig


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key: rsa.RSAPrivateKey) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="function")
def service_account_info(private_key_pem: str) -> dict[str, str]:
    return {
        "type": "service_account",
        "project_id": "demo-project",
        "private_key_id": "abc123",
        "private_key": private_key_pem,
        "client_email": "sync@demo-project.iam.gserviceaccount.com",
        "client_id": "1234567890",
        "token_uri": "https://oauth2.googleapis.com/token",
    }


@pytest.fixture(scope="function")
def service_account(service_account_info: dict[str, str]) -> ServiceAccountConfig:
    return ServiceAccountConfig(**service_account_info)


@pytest.fixture(scope="function")
def sync_config() -> SyncConfig:
    return SyncConfig(
        project_id="demo-project",
        dataset_id="sheets",
        poll_interval_seconds=0,
        max_poll_attempts=3,
        firestore_project_id="demo-project",
    )

