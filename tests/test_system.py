"""
HTTP tests for the supervisor-file system routes.

The supervisor's files are laid out under tmp_path by the `settings`
fixture: statuses/, signals/ and tor/<service>/hostname.
"""

import json

import pytest

from conftest import jwt_header


PASSWORD = "correct-horse-battery"

ONION = "abcdefghijklmnopqrstuvwxyz234567abcdefghijklmnopqrstuvwx.onion"


@pytest.fixture
def auth(registered_client):
    """Token headers for the registered node."""
    response = registered_client.post("/v1/account/login", json={"password": PASSWORD})
    return jwt_header(response.json()["jwt"])


def write_status(tmp_path, name, data):
    path = tmp_path / "statuses" / f"{name}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


def write_hostname(tmp_path, service, hostname=ONION):
    path = tmp_path / "tor" / service / "hostname"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(hostname + "\n")


# =============================================================================
# Guarding
# =============================================================================


class TestGuarding:
    @pytest.mark.parametrize("method,path", [
        ("GET", "/v1/system/dashboard-hidden-service"),
        ("GET", "/v1/system/electrum-connection-details"),
        ("GET", "/v1/system/bitcoin-p2p-connection-details"),
        ("GET", "/v1/system/update-status"),
        ("GET", "/v1/system/backup-status"),
        ("POST", "/v1/system/debug"),
        ("GET", "/v1/system/debug-result"),
        ("GET", "/v1/system/status"),
        ("DELETE", "/v1/system/memory-warning"),
    ])
    def test_requires_token(self, registered_client, method, path):
        response = registered_client.request(method, path)

        assert response.status_code == 401
        assert response.json() == "Invalid JWT"


# =============================================================================
# Status Files
# =============================================================================


class TestStatusFiles:
    def test_update_status(self, registered_client, auth, tmp_path):
        status = {"state": "installing", "progress": 40, "description": "Pulling images"}
        write_status(tmp_path, "update-status", status)

        response = registered_client.get("/v1/system/update-status", headers=auth)

        assert response.status_code == 200
        assert response.json() == status

    def test_update_status_missing(self, registered_client, auth):
        response = registered_client.get("/v1/system/update-status", headers=auth)

        assert response.status_code == 500
        assert response.json() == "Unable to get update status"

    def test_backup_status(self, registered_client, auth, tmp_path):
        write_status(tmp_path, "backup-status", {"status": "success", "timestamp": 1700000000})

        response = registered_client.get("/v1/system/backup-status", headers=auth)

        assert response.json() == {"status": "success", "timestamp": 1700000000}

    def test_backup_status_corrupt(self, registered_client, auth, tmp_path):
        (tmp_path / "statuses").mkdir(exist_ok=True)
        (tmp_path / "statuses" / "backup-status.json").write_text("[1, 2")

        response = registered_client.get("/v1/system/backup-status", headers=auth)

        assert response.status_code == 500
        assert response.json() == "Unable to get backup status"


# =============================================================================
# Debug
# =============================================================================


class TestDebug:
    def test_request_debug_writes_signal(self, registered_client, auth, tmp_path):
        response = registered_client.post("/v1/system/debug", headers=auth)

        assert response.status_code == 200
        assert response.json() == "Debug requested"
        assert (tmp_path / "signals" / "debug").read_text() == "true"

    def test_debug_result(self, registered_client, auth, tmp_path):
        write_status(tmp_path, "debug-status", {"status": "success", "debug": "...", "dmesg": "..."})

        response = registered_client.get("/v1/system/debug-result", headers=auth)

        assert response.status_code == 200
        assert response.json()["status"] == "success"

    def test_debug_result_missing(self, registered_client, auth):
        response = registered_client.get("/v1/system/debug-result", headers=auth)

        assert response.status_code == 500
        assert response.json() == "Unable to get debug results"


# =============================================================================
# Memory Warning
# =============================================================================


class TestMemoryWarning:
    def test_no_warning(self, registered_client, auth):
        response = registered_client.get("/v1/system/status", headers=auth)

        assert response.json() == {"highMemoryUsage": False}

    def test_warning_then_dismiss(self, registered_client, auth, tmp_path):
        (tmp_path / "statuses").mkdir(exist_ok=True)
        (tmp_path / "statuses" / "memory-warning").write_text("")
        assert registered_client.get("/v1/system/status", headers=auth).json() == {"highMemoryUsage": True}

        response = registered_client.delete("/v1/system/memory-warning", headers=auth)

        assert response.status_code == 200
        assert response.json() == "High memory warning dismissed"
        assert not (tmp_path / "statuses" / "memory-warning").exists()
        assert registered_client.get("/v1/system/status", headers=auth).json() == {"highMemoryUsage": False}

    def test_dismiss_without_warning(self, registered_client, auth):
        response = registered_client.delete("/v1/system/memory-warning", headers=auth)

        assert response.status_code == 200


# =============================================================================
# Connection Details
# =============================================================================


class TestConnectionDetails:
    def test_dashboard_hidden_service(self, registered_client, auth, tmp_path):
        write_hostname(tmp_path, "web")

        response = registered_client.get("/v1/system/dashboard-hidden-service", headers=auth)

        assert response.status_code == 200
        assert response.json() == ONION

    def test_dashboard_hidden_service_missing(self, registered_client, auth):
        response = registered_client.get("/v1/system/dashboard-hidden-service", headers=auth)

        assert response.status_code == 500
        assert response.json() == "Unable to get hidden service url"

    def test_electrum(self, registered_client, auth, tmp_path):
        write_hostname(tmp_path, "electrum")

        response = registered_client.get("/v1/system/electrum-connection-details", headers=auth)

        assert response.json() == {
            "address": ONION,
            "port": 50001,
            "connectionString": f"{ONION}:50001:t",
        }

    def test_bitcoin_p2p(self, registered_client, auth, tmp_path):
        write_hostname(tmp_path, "bitcoin-p2p")

        response = registered_client.get("/v1/system/bitcoin-p2p-connection-details", headers=auth)

        assert response.json() == {
            "address": ONION,
            "port": 8333,
            "connectionString": f"{ONION}:8333",
        }

    def test_hostname_not_written_yet(self, registered_client, auth, tmp_path):
        write_hostname(tmp_path, "bitcoin-p2p", hostname="")

        response = registered_client.get("/v1/system/bitcoin-p2p-connection-details", headers=auth)

        assert response.status_code == 500
        assert response.json() == "Unable to get Bitcoin P2P hidden service url"
