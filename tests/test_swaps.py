from __future__ import annotations

import sqlite3

import pytest

from draft.errors import PICK_IN_SWAP, SWAP_INVALID, SWAP_NOT_FOUND, SWAP_RESOLVED, TEAM_NOT_FOUND, SwapError
from draft.swaps import SwapRegistry
from draft.types import SwapStatus, SwapType

from conftest import FINAL_STANDINGS, NEXT_SEASON, SEASON

PICK_A1 = f"{SEASON}_R1_A"
PICK_B1 = f"{SEASON}_R1_B"
SWAP_ID = f"SWAP__{PICK_A1}__{PICK_B1}"


@pytest.fixture
def registry(repo) -> SwapRegistry:
    return SwapRegistry(repo)


def test_declare_returns_canonical_id(registry):
    swap_id = registry.declare(SEASON, "best", PICK_B1, PICK_A1, "d")
    assert swap_id == SWAP_ID

    swap = registry.get(swap_id)
    assert swap.swap_type == SwapType.BEST
    assert swap.round == 1
    assert swap.owned_by_team_id == "D"
    assert swap.status == SwapStatus.PENDING
    assert swap.pick_ids == (PICK_B1, PICK_A1)


@pytest.mark.parametrize(
    "season_id, swap_type, pick_a, pick_b, owner",
    [
        (SEASON, "best", PICK_A1, PICK_A1, "D"),  # same pick
        (SEASON, "best", PICK_A1, f"{SEASON}_R2_B", "D"),  # round mismatch
        (SEASON, "best", PICK_A1, f"{NEXT_SEASON}_R1_B", "D"),  # season mismatch
        (NEXT_SEASON, "best", PICK_A1, PICK_B1, "D"),  # swap season != picks' season
        (SEASON, "best", PICK_A1, "2031_R1_B", "D"),  # unknown pick
        (SEASON, "middle", PICK_A1, PICK_B1, "D"),  # unknown swap type
        (SEASON, "worst", PICK_A1, PICK_B1, "A"),  # owner is an original team
        (SEASON, "worst", PICK_A1, PICK_B1, ""),  # no owner
    ],
)
def test_declare_rejects_structural_violations(registry, repo, season_id, swap_type, pick_a, pick_b, owner):
    with pytest.raises(SwapError) as ei:
        registry.declare(season_id, swap_type, pick_a, pick_b, owner)
    assert ei.value.code == SWAP_INVALID
    assert repo.list_swaps() == []


def test_owner_cannot_be_a_current_holder(registry, service):
    service.request_transfer(PICK_A1, "C", requested_by="ops")
    with pytest.raises(SwapError) as ei:
        registry.declare(SEASON, "best", PICK_A1, PICK_B1, "C")
    assert ei.value.code == SWAP_INVALID
    assert "C" in ei.value.details["involved_teams"]


def test_entitled_team_must_exist(registry, repo):
    with pytest.raises(SwapError) as ei:
        registry.declare(SEASON, "best", PICK_B1, PICK_A1, "zzz")
    assert ei.value.code == TEAM_NOT_FOUND
    assert ei.value.details["owned_by_team_id"] == "ZZZ"
    assert repo.list_swaps() == []

    swap_id = registry.declare(SEASON, "best", PICK_B1, PICK_A1, "D")
    with pytest.raises(SwapError) as ei:
        registry.transfer_right(swap_id, "ZZZ")
    assert ei.value.code == TEAM_NOT_FOUND
    assert registry.get(swap_id).owned_by_team_id == "D"


def test_swap_table_rejects_unknown_entitled_team(repo):
    with pytest.raises(sqlite3.IntegrityError):
        repo.insert_swap(
            swap_id=SWAP_ID,
            season_id=SEASON,
            round_no=1,
            swap_type="best",
            pick_a_id=PICK_A1,
            pick_b_id=PICK_B1,
            owned_by_team_id="ZZZ",
        )


def test_pick_can_be_in_only_one_pending_swap(registry):
    registry.declare(SEASON, "best", PICK_A1, PICK_B1, "D")
    with pytest.raises(SwapError) as ei:
        registry.declare(SEASON, "worst", PICK_B1, f"{SEASON}_R1_C", "E")
    assert ei.value.code == PICK_IN_SWAP
    assert ei.value.details["pending_swaps_by_pick"] == {PICK_B1: [SWAP_ID]}


def test_status_moves_from_pending_to_resolvable(registry, repo):
    swap_id = registry.declare(SEASON, "best", PICK_A1, PICK_B1, "D")
    assert registry.status(swap_id) == {"swap_id": swap_id, "status": "pending", "outcome": None}

    repo.upsert_standings(SEASON, FINAL_STANDINGS)
    assert registry.status(swap_id)["status"] == "resolvable"
    assert [s.swap_id for s in registry.list(status=SwapStatus.RESOLVABLE)] == [swap_id]
    assert registry.list(status=SwapStatus.PENDING) == []


def test_unknown_swap(registry):
    with pytest.raises(SwapError) as ei:
        registry.status("SWAP__X__Y")
    assert ei.value.code == SWAP_NOT_FOUND


def test_list_filters(registry):
    registry.declare(SEASON, "best", PICK_A1, PICK_B1, "D")
    registry.declare(NEXT_SEASON, "worst", f"{NEXT_SEASON}_R2_A", f"{NEXT_SEASON}_R2_B", "E")

    assert len(registry.list()) == 2
    assert [s.season_id for s in registry.list(season_id=NEXT_SEASON)] == [NEXT_SEASON]
    assert [s.owned_by_team_id for s in registry.list(team_id="D")] == ["D"]


def test_transfer_right_applies_same_distinctness_rule(registry):
    swap_id = registry.declare(SEASON, "best", PICK_A1, PICK_B1, "D")

    swap = registry.transfer_right(swap_id, "e")
    assert swap.owned_by_team_id == "E"

    with pytest.raises(SwapError) as ei:
        registry.transfer_right(swap_id, "B")
    assert ei.value.code == SWAP_INVALID
    assert registry.get(swap_id).owned_by_team_id == "E"


def test_withdraw_frees_both_picks(registry):
    swap_id = registry.declare(SEASON, "best", PICK_A1, PICK_B1, "D")
    registry.withdraw(swap_id)

    with pytest.raises(SwapError):
        registry.get(swap_id)
    assert registry.pending_for_pick(PICK_A1) == []
    assert registry.declare(SEASON, "worst", PICK_A1, PICK_B1, "E") == swap_id


def test_resolved_swap_is_frozen(registry, service, final_season):
    swap_id = registry.declare(SEASON, "best", PICK_A1, PICK_B1, "D")
    service.resolve_swap(swap_id)

    with pytest.raises(SwapError) as ei:
        registry.transfer_right(swap_id, "E")
    assert ei.value.code == SWAP_RESOLVED

    with pytest.raises(SwapError) as ei:
        registry.withdraw(swap_id)
    assert ei.value.code == SWAP_RESOLVED
