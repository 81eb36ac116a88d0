"""
Shared fixtures.

RSA key generation is slow, so one keypair is generated per session and
written into each test's temporary key files. Tests that exercise
generation itself start from empty storage.
"""

import json

import pytest
from fastapi.testclient import TestClient

from nodemanager.api.app import create_app
from nodemanager.auth import PasswordHasher, basic_authorization, generate_keypair
from nodemanager.config import Settings


FAST_ITERATIONS = 1_000
VERSION_INFO = {"version": "0.5.2", "name": "Citadel 0.5.2", "requires": ">=0.5.0"}


def basic_header(password: str) -> dict[str, str]:
    return {"Authorization": basic_authorization(password)}


def jwt_header(token: str) -> dict[str, str]:
    return {"Authorization": f"JWT {token}"}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def keypair():
    """One RSA keypair for the whole run."""
    return generate_keypair()


@pytest.fixture
def hasher():
    """Hasher with a low iteration count."""
    return PasswordHasher(iterations=FAST_ITERATIONS)


@pytest.fixture
def settings(tmp_path, keypair):
    """Settings pointing every file at tmp_path, with keys already on disk."""
    private_key = tmp_path / "db" / "jwt-private-key" / "jwt.key"
    public_key = tmp_path / "db" / "jwt-public-key" / "jwt.pem"
    private_key.parent.mkdir(parents=True)
    public_key.parent.mkdir(parents=True)
    private_key.write_bytes(keypair.private_pem)
    public_key.write_bytes(keypair.public_pem)

    version_file = tmp_path / "info.json"
    version_file.write_text(json.dumps(VERSION_INFO))

    return Settings(
        _env_file=None,
        environment="test",
        debug=False,
        user_file=str(tmp_path / "db" / "user.json"),
        jwt_private_key_file=str(private_key),
        jwt_public_key_file=str(public_key),
        signal_dir=str(tmp_path / "signals"),
        status_dir=str(tmp_path / "statuses"),
        tor_hidden_service_dir=str(tmp_path / "tor"),
        version_file=str(version_file),
        log_dir=str(tmp_path / "logs"),
        password_hash_iterations=FAST_ITERATIONS,
    )


@pytest.fixture
def client(settings):
    """API client with the app's lifespan running."""
    with TestClient(create_app(settings)) as client:
        yield client


@pytest.fixture
def registered_client(client):
    """API client for a node that already has an account."""
    response = client.post("/v1/account/register", json={"name": "Satoshi", "password": "correct-horse-battery"})
    assert response.status_code == 200
    return client
