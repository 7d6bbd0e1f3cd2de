"""Tests for the HTTP surface with a fresh in-memory store per test."""

import pytest
from fastapi.testclient import TestClient

from assignment_engine.adapters.persistence.in_memory import InMemoryStore
from assignment_engine.domain.entities.account import Account
from assignment_engine.domain.entities.sales_rep import SalesRep
from assignment_engine.infrastructure.api.dependencies import get_store
from assignment_engine.main import app


@pytest.fixture
def store(rules, territory_map):
    accounts = [
        Account(account_id="P", name="Parent Co", is_parent=True, arr=300_000, territory="Pacific NW",
                current_owner_id="R1", current_owner_name="Rep One", is_customer=False),
        Account(account_id="C1", name="Child One", ultimate_parent_id="P", arr=100_000, territory="Pacific NW",
                current_owner_id="R1", current_owner_name="Rep One", is_customer=False, cre_count=4),
        Account(account_id="C2", name="Child Two", ultimate_parent_id="P", arr=50_000, territory="Pacific NW",
                current_owner_id="R1", current_owner_name="Rep One", is_customer=False,
                exclude_from_reassignment=True, lock_reason="strategic renewal"),
    ]
    reps = [
        SalesRep(rep_id="R1", name="Rep One", region="West"),
        SalesRep(rep_id="R3", name="Rep Three", region="West"),
        SalesRep(rep_id="OFF", name="Gone", region="West", is_active=False),
    ]
    return InMemoryStore(accounts=accounts, reps=reps, rules=rules, territory_map=territory_map)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["accounts"] == 3


def test_run_pass_and_list_proposals(client):
    response = client.post("/api/assignments/run")
    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["accounts"] == 3
    assert data["summary"]["unassigned"] == 0
    assert data["capacity"]["R1"]["prospect_arr"] == 450_000

    listing = client.get("/api/assignments").json()
    assert listing["total"] == 3
    assert data["warnings"] == {p["account_id"]: p["warnings"] for p in listing["proposals"] if p["warnings"]}
    quality = data["quality"]
    assert quality["after"]["continuity_rate"] == 1.0
    assert quality["after"]["parent_child_alignment"] == 1.0
    assert [c["metric"] for c in quality["changes"]][0] == "ARR CV"
    assert -100 <= quality["overall_improvement"] <= 100
    assert client.get("/api/assignments", params={"unassigned_only": True}).json()["total"] == 0


def test_account_detail(client):
    client.post("/api/assignments/run")

    data = client.get("/api/accounts/C1").json()

    assert data["cre_risk"] == "medium"
    assert data["proposal"]["proposed_owner_id"] == "R1"
    assert data["proposal"]["assignment_reason"] == "Follows parent Parent Co"


def test_unknown_account_is_404(client):
    assert client.get("/api/accounts/NOPE").status_code == 404
    response = client.post("/api/accounts/NOPE/reassign", json={"new_owner_id": "R3"})
    assert response.status_code == 404


def test_reassign_skips_locked_child(client, store):
    response = client.post("/api/accounts/P/reassign", json={"new_owner_id": "R3", "rationale": "rebalance"})

    assert response.status_code == 200
    data = response.json()
    assert data["applied"] is True
    assert data["state"] == "Applied"
    assert data["moved_account_ids"] == ["P", "C1"]
    assert data["skipped_locked_ids"] == ["C2"]
    assert data["audit_entry"]["children_moved"] == 1
    assert store.accounts["P"].has_split_ownership is True

    audit = client.get("/api/audit", params={"account_id": "P"}).json()
    assert audit["total"] == 1
    assert audit["entries"][0]["action"] == "hierarchy_reassignment"


def test_reassign_lock_override_requires_confirm(client, store):
    body = {"new_owner_id": "R3", "override_locks": True}

    pending = client.post("/api/accounts/P/reassign", json=body).json()
    assert pending["applied"] is False
    assert pending["state"] == "LockOverrideWarned"
    assert pending["requires_confirmation"] is True
    assert store.accounts["C2"].is_locked

    done = client.post("/api/accounts/P/reassign", json={**body, "confirm": True}).json()
    assert done["applied"] is True
    assert "LOCK_OVERRIDE" in done["warning_types"]
    assert not store.accounts["C2"].is_locked


def test_reassign_locked_target_is_cancelled(client):
    data = client.post("/api/accounts/C2/reassign", json={"new_owner_id": "R3"}).json()
    assert data["state"] == "Cancelled"
    assert data["blocking_ids"] == ["C2"]
    assert data["applied"] is False


def test_reassign_to_inactive_rep_is_422(client):
    response = client.post("/api/accounts/P/reassign", json={"new_owner_id": "OFF"})
    assert response.status_code == 422


def test_lock_endpoint(client, store):
    response = client.post("/api/accounts/P/lock", json={"locking": True, "reason": "exec sponsor"})
    assert response.status_code == 200
    assert response.json()["account"]["locked"] is True
    assert response.json()["audit_entry"]["action"] == "lock"
    assert store.accounts["P"].lock_reason == "exec sponsor"
    assert store.proposals["P"].rule_applied.value == "LOCKED"
    assert response.json()["proposals"][0]["assignment_reason"] == "Locked to current owner: exec sponsor"


def test_lock_reason_too_long_is_422(client):
    response = client.post("/api/accounts/P/lock", json={"locking": True, "reason": "x" * 501})
    assert response.status_code == 422


def test_ingest_snapshot_replaces_store(client, store, tmp_path):
    (tmp_path / "accounts.csv").write_text("Account ID,Account Name,ARR,Territory,Owner ID\nN1,New Co,1000,Pacific NW,R9\n")
    (tmp_path / "sales_reps.csv").write_text("Rep ID,Name,Region\nR9,Rep Nine,West\n")

    response = client.post("/api/snapshot/ingest", params={"data_dir": str(tmp_path)})

    assert response.status_code == 200
    assert response.json()["counts"] == {"accounts": 1, "reps": 1, "territories": 0}
    assert list(store.accounts) == ["N1"]


def test_ingest_snapshot_missing_dir_is_400(client, tmp_path):
    response = client.post("/api/snapshot/ingest", params={"data_dir": str(tmp_path / "missing")})
    assert response.status_code == 400
