from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import state
from config import ADMIN_TOKEN_ENV, DB_PATH_ENV
from app.main import app

from conftest import FINAL_STANDINGS, SEASON, TEAMS

PICK_A1 = f"{SEASON}_R1_A"
PICK_B1 = f"{SEASON}_R1_B"


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv(DB_PATH_ENV, str(tmp_path / "api.sqlite3"))
    monkeypatch.delenv(ADMIN_TOKEN_ENV, raising=False)
    state.reset_state_for_tests()
    with TestClient(app) as c:
        yield c
    state.reset_state_for_tests()


@pytest.fixture
def league(client):
    assert client.post("/api/seasons", json={"season_id": SEASON, "activate": True}).status_code == 200
    for tid in TEAMS:
        assert client.post("/api/teams", json={"team_id": tid, "name": f"Team {tid}"}).status_code == 200
    res = client.post("/api/picks/seed", json={"season_id": SEASON})
    assert res.json()["count"] == 12
    return client


def _bulk(rows):
    return {
        "season_id": SEASON,
        "standings": [
            {k: r[k] for k in ("team_id", "final_position", "seed", "elimination_round")} for r in rows
        ],
    }


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.json()["ok"] is True


def test_seasons_and_teams(league):
    active = league.get("/api/seasons/active").json()
    assert active["season"]["season_id"] == SEASON
    teams = league.get("/api/teams").json()
    assert [t["team_id"] for t in teams["teams"]] == list(TEAMS)

    res = league.post("/api/seasons/1999/activate")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "SEASON_NOT_FOUND"


def test_standings_bulk_rejects_invalid_bracket_before_writing(league):
    rows = list(FINAL_STANDINGS)
    rows[1] = dict(rows[1], elimination_round=5)  # second champion
    res = league.post("/api/standings/bulk", json=_bulk(rows))

    assert res.status_code == 400
    body = res.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "BRACKET_INVALID"
    assert [v["elimination_round"] for v in body["error"]["details"]["violations"]] == [5]
    assert league.get(f"/api/standings/season/{SEASON}").json()["count"] == 0


def test_standings_field_ranges_are_validated(league):
    rows = [dict(FINAL_STANDINGS[0], seed=16)]
    assert league.post("/api/standings/bulk", json=_bulk(rows)).status_code == 422


def test_standings_queries_and_draft_order(league):
    res = league.post("/api/standings/bulk", json=_bulk(FINAL_STANDINGS))
    assert res.status_code == 200
    assert res.json()["written"] == 6

    champions = league.get(f"/api/standings/season/{SEASON}/champions").json()["champions"]
    assert [c["team_id"] for c in champions] == ["A"]
    playoffs = league.get(f"/api/standings/season/{SEASON}/playoffs").json()
    assert [t["team_id"] for t in playoffs["teams"]] == ["A", "E", "C", "F"]

    bracket = league.get(f"/api/standings/season/{SEASON}/bracket").json()
    assert bracket["valid"] is True and bracket["final"] is True

    order = league.get(f"/api/standings/season/{SEASON}/draft-order").json()
    assert [o["team_id"] for o in order["order"]] == ["B", "D", "F", "C", "E", "A"]


def test_transfer_and_stale_owner(league):
    res = league.post(f"/api/picks/{PICK_A1}/transfer", json={"to_team_id": "C", "requested_by": "gm-a"})
    assert res.status_code == 200
    assert res.json()["event"]["to_team_id"] == "C"

    res = league.post(
        f"/api/picks/{PICK_A1}/transfer",
        json={"to_team_id": "D", "expected_from_team": "A"},
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "NOT_OWNER"
    assert res.json()["error"]["details"]["current_owner"] == "C"

    assert league.get(f"/api/picks/season/{SEASON}").json()["ownership"][PICK_A1] == "C"
    history = league.get(f"/api/picks/{PICK_A1}/history").json()["events"]
    assert len(history) == 1

    team = league.get("/api/picks/team/A").json()
    assert [p["pick_id"] for p in team["lost_picks"]] == [PICK_A1]

    assert league.get("/api/picks/2031_R1_A").status_code == 404


def test_swap_lifecycle(league):
    league.post(f"/api/picks/{PICK_A1}/transfer", json={"to_team_id": "C"})
    res = league.post(
        "/api/swaps",
        json={
            "season_id": SEASON,
            "swap_type": "best",
            "pick_a_id": PICK_B1,
            "pick_b_id": PICK_A1,
            "owned_by_team_id": "D",
        },
    )
    assert res.status_code == 200
    swap_id = res.json()["swap_id"]
    assert res.json()["status"] == "pending"

    # Not final yet: accepted, nothing moved.
    res = league.post(f"/api/swaps/{swap_id}/resolve")
    assert res.status_code == 202
    assert res.json()["error"]["code"] == "NOT_YET_RESOLVABLE"

    league.post("/api/standings/bulk", json=_bulk(FINAL_STANDINGS))
    assert league.get(f"/api/swaps/{swap_id}").json()["status"] == "resolvable"

    res = league.post(f"/api/swaps/{swap_id}/resolve")
    assert res.status_code == 200
    outcome = res.json()["outcome"]
    assert outcome["winning_pick_id"] == PICK_B1
    assert outcome["to_team_id"] == "D"

    again = league.post(f"/api/swaps/{swap_id}/resolve").json()["outcome"]
    assert again["event_id"] == outcome["event_id"]

    status = league.get(f"/api/swaps/{swap_id}").json()
    assert status["status"] == "resolved"
    assert league.get(f"/api/picks/season/{SEASON}").json()["ownership"][PICK_B1] == "D"

    res = league.delete(f"/api/swaps/{swap_id}")
    assert res.status_code == 409


def test_swap_declaration_errors(league):
    payload = {
        "season_id": SEASON,
        "swap_type": "best",
        "pick_a_id": PICK_A1,
        "pick_b_id": PICK_B1,
        "owned_by_team_id": "A",
    }
    res = league.post("/api/swaps", json=payload)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "SWAP_INVALID"

    assert league.post("/api/swaps", json=dict(payload, owned_by_team_id="D")).status_code == 200
    res = league.post("/api/swaps", json=dict(payload, owned_by_team_id="E"))
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "PICK_IN_SWAP"

    assert league.get("/api/swaps/SWAP__X__Y").status_code == 404
    assert league.get("/api/swaps", params={"status": "bogus"}).status_code == 400


def test_swap_owner_change_and_withdraw(league):
    res = league.post(
        "/api/swaps",
        json={
            "season_id": SEASON,
            "swap_type": "worst",
            "pick_a_id": PICK_A1,
            "pick_b_id": PICK_B1,
            "owned_by_team_id": "D",
        },
    )
    swap_id = res.json()["swap_id"]

    res = league.post(f"/api/swaps/{swap_id}/owner", json={"new_owner_team_id": "E"})
    assert res.status_code == 200
    assert res.json()["swap"]["owned_by_team_id"] == "E"
    assert [s["swap_id"] for s in league.get("/api/swaps", params={"team_id": "e"}).json()["swaps"]] == [swap_id]

    assert league.delete(f"/api/swaps/{swap_id}").json()["withdrawn"] is True
    assert league.get("/api/swaps").json()["count"] == 0


def test_resolve_pending_endpoint(league):
    league.post("/api/standings/bulk", json=_bulk(FINAL_STANDINGS))
    league.post(
        "/api/swaps",
        json={
            "season_id": SEASON,
            "swap_type": "best",
            "pick_a_id": PICK_A1,
            "pick_b_id": PICK_B1,
            "owned_by_team_id": "D",
        },
    )
    report = league.post(f"/api/swaps/season/{SEASON}/resolve-pending").json()
    assert len(report["resolved"]) == 1
    assert report["resolved"][0]["winning_pick_id"] == PICK_B1


def test_admin_token_guards_state_changes(client, monkeypatch):
    monkeypatch.setenv(ADMIN_TOKEN_ENV, "s3cret")

    res = client.post("/api/teams", json={"team_id": "A"})
    assert res.status_code == 401

    res = client.post("/api/teams", json={"team_id": "A"}, headers={"X-Admin-Token": "s3cret"})
    assert res.status_code == 200
    assert client.get("/api/teams").status_code == 200


@pytest.mark.parametrize(
    "path",
    [
        "/api/standings/season/0/champions",
        "/api/standings/season/-1/playoffs",
        "/api/standings/season/0/bracket",
        "/api/standings/season/0/draft-order",
    ],
)
def test_standings_reads_reject_non_positive_season(league, path):
    res = league.get(path)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "BAD_REQUEST"


def test_swap_for_unknown_team_is_rejected(league):
    res = league.post(
        "/api/swaps",
        json={
            "season_id": SEASON,
            "swap_type": "best",
            "pick_a_id": PICK_B1,
            "pick_b_id": PICK_A1,
            "owned_by_team_id": "ZZZ",
        },
    )
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "TEAM_NOT_FOUND"
    assert league.get("/api/swaps").json()["count"] == 0

    league.post("/api/standings/bulk", json=_bulk(FINAL_STANDINGS))
    report = league.post(f"/api/swaps/season/{SEASON}/resolve-pending")
    assert report.status_code == 200
    assert report.json()["resolved"] == [] and report.json()["failed"] == []
