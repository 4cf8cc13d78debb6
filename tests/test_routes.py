"""HTTP tests for the contest, status, admin and cron routers."""

import pytest
from fastapi.testclient import TestClient

from app.core import config
from app.database import Database
from app.main import app
from app.routes.dependencies import get_contest_scheduler, get_contest_service

from conftest import CONTRACT, WALLET_A, WALLET_B, WALLET_C


def create_payload(name: str = "Alice vs Bob") -> dict:
    return {
        "name": name,
        "participant_one": {"handle": "alice", "wallet_address": WALLET_A.lower(), "zora_profile": "alice"},
        "participant_two": {"handle": "bob", "wallet_address": WALLET_B},
        "contract_address": CONTRACT,
    }


@pytest.fixture
def client(contest_service, contest_scheduler, monkeypatch):
    monkeypatch.setattr(config, "ADMIN_API_KEY", None)
    app.dependency_overrides[get_contest_service] = lambda: contest_service
    app.dependency_overrides[get_contest_scheduler] = lambda: contest_scheduler
    # No context manager: the lifespan (database, scheduler) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_contest(client) -> dict:
    response = client.post("/api/contests/create", json=create_payload())
    assert response.status_code == 201
    return response.json()["data"]["contest"]


# --- Contests ---

class TestContestRoutes:
    def test_create(self, client):
        contest = create_contest(client)

        assert contest["status"] == "awaiting_deposits"
        assert contest["participant_one"]["wallet_address"] == WALLET_A
        assert contest["contest_id"].startswith("alice-vs-bob-")

    def test_second_active_contest_conflicts(self, client):
        create_contest(client)

        response = client.post("/api/contests/create", json=create_payload("Round two"))

        assert response.status_code == 409
        assert response.json()["success"] is False

    def test_invalid_wallet_rejected(self, client):
        payload = create_payload()
        payload["participant_two"]["wallet_address"] = "0x1234"

        response = client.post("/api/contests/create", json=payload)
        assert response.status_code == 422

    def test_same_wallet_twice_rejected(self, client):
        payload = create_payload()
        payload["participant_two"]["wallet_address"] = WALLET_A

        response = client.post("/api/contests/create", json=payload)
        assert response.status_code == 422

    def test_active_contest(self, client):
        assert client.get("/api/contests/active").json()["data"] == {"contest": None}

        contest = create_contest(client)

        response = client.get("/api/contests/active")
        assert response.json()["data"]["contest"]["contest_id"] == contest["contest_id"]

    def test_unknown_contest(self, client):
        response = client.get("/api/contests/nope-1")
        assert response.status_code == 404


# --- Status ---

class TestStatusRoutes:
    def test_status_without_contest(self, client):
        response = client.get("/api/contest/status")
        assert response.status_code == 404

    def test_status_for_participant(self, client):
        contest = create_contest(client)

        response = client.get(
            "/api/contest/status",
            params={"contestId": contest["contest_id"], "userWallet": WALLET_B.lower()}
        )

        data = response.json()["data"]
        assert data["role"] == "participant_two"
        assert data["next_action"] == "Make your deposit"

    def test_status_for_spectator(self, client):
        create_contest(client)

        data = client.get("/api/contest/status", params={"userWallet": WALLET_C}).json()["data"]

        assert data["role"] == "spectator"
        assert data["user_status"] is None

    def test_lightweight_status(self, client):
        contest = create_contest(client)

        data = client.get("/api/contest/status/lightweight").json()["data"]

        assert data["contest_id"] == contest["contest_id"]
        assert data["status"] == "awaiting_deposits"


# --- Admin ---

class TestAdminRoutes:
    def test_override_then_terminal_is_final(self, client):
        contest = create_contest(client)
        url = f"/api/admin/contests/{contest['contest_id']}/status"

        response = client.patch(url, json={"status": "completed"})
        assert response.status_code == 200
        assert response.json()["data"]["contest"]["status"] == "completed"

        response = client.patch(url, json={"status": "active_battle"})
        assert response.status_code == 400

    def test_unknown_status_rejected(self, client):
        contest = create_contest(client)

        response = client.patch(
            f"/api/admin/contests/{contest['contest_id']}/status",
            json={"status": "paused"}
        )
        assert response.status_code == 422

    def test_admin_key_required_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(config, "ADMIN_API_KEY", "secret")

        assert client.get("/api/admin/contests/all").status_code == 401

        response = client.get("/api/admin/contests/all", headers={"X-Admin-Key": "secret"})
        assert response.status_code == 200
        assert response.json()["data"]["total"] == 0

    def test_metrics_update(self, client):
        contest = create_contest(client)

        response = client.patch(
            f"/api/admin/contests/{contest['contest_id']}/metrics",
            json={"participant_one_votes": 3, "participant_two_votes": 5}
        )

        metrics = response.json()["data"]["contest"]["metrics"]
        assert metrics["participant_one_votes"] == 3
        assert metrics["participant_two_votes"] == 5


# --- Cron ---

class TestCronRoutes:
    def test_monitor_contests_runs_tick(self, client):
        create_contest(client)

        response = client.post("/api/cron/monitor-contests")

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["deposits"]["processed"] == 1
        assert data["errors"] == []

    def test_health(self, client):
        response = client.get("/api/cron/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_unhealthy_on_chain_outage(self, client, chain):
        chain.fail_latest = True

        response = client.get("/api/cron/health")
        assert response.status_code == 503

    def test_root_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestStoreDependency:
    def test_unconnected_store_is_unavailable(self, monkeypatch):
        monkeypatch.setattr(Database, "store", None)

        response = TestClient(app).get("/api/contests/active")

        assert response.status_code == 503
        assert response.json()["success"] is False
