from __future__ import annotations

import threading

import pytest

from league_repo import LeagueRepo
from draft.errors import NOT_YET_RESOLVABLE, TEAM_NOT_FOUND, UNRESOLVABLE, LedgerError, ResolveError
from draft.ledger import PickLedger
from draft.resolution import SwapResolver
from draft.types import SwapType, TransferCause

from conftest import FINAL_STANDINGS, NEXT_SEASON, SEASON, standing

PICK_A1 = f"{SEASON}_R1_A"
PICK_B1 = f"{SEASON}_R1_B"


@pytest.fixture
def worked_example(service):
    """B's own R1 pick vs A's R1 pick now held by C; D owns the swap."""
    service.request_transfer(PICK_A1, "C", requested_by="ops")
    return service


def _declare(service, swap_type: str) -> str:
    return service.declare_swap(SEASON, swap_type, PICK_B1, PICK_A1, "D")


def test_best_swap_worked_example(worked_example, final_season):
    svc = worked_example
    swap_id = _declare(svc, "best")

    outcome = svc.resolve_swap(swap_id)

    # Order B, D, F, C, E, A: B's pick is slot 1, A's pick (held by C) is slot 4.
    assert outcome.positions == {PICK_B1: 1, PICK_A1: 4}
    assert outcome.holders == {PICK_B1: "B", PICK_A1: "C"}
    assert outcome.winning_pick_id == PICK_B1
    assert outcome.losing_pick_id == PICK_A1
    assert (outcome.from_team_id, outcome.to_team_id) == ("B", "D")
    assert outcome.already_resolved is False

    ownership = svc.get_pick_ownership(SEASON)
    assert ownership[PICK_B1] == "D"
    assert ownership[PICK_A1] == "C"  # loser untouched

    status = svc.get_swap_status(swap_id)
    assert status["status"] == "resolved"
    assert status["outcome"]["winning_pick_id"] == PICK_B1


def test_worst_swap_takes_the_later_slot(worked_example, final_season):
    svc = worked_example
    swap_id = _declare(svc, "worst")

    outcome = svc.resolve_swap(swap_id)

    assert outcome.swap_type == SwapType.WORST
    assert outcome.winning_pick_id == PICK_A1
    assert (outcome.from_team_id, outcome.to_team_id) == ("C", "D")
    ownership = svc.get_pick_ownership(SEASON)
    assert ownership[PICK_A1] == "D"
    assert ownership[PICK_B1] == "B"


def test_resolution_goes_through_the_ledger(worked_example, final_season):
    svc = worked_example
    swap_id = _declare(svc, "best")
    outcome = svc.resolve_swap(swap_id)

    history = svc.pick_history(PICK_B1)
    assert len(history) == 1
    event = history[0]
    assert event.cause == TransferCause.SWAP_RESOLUTION
    assert event.swap_id == swap_id
    assert event.event_id == outcome.event_id


def test_resolve_is_idempotent(worked_example, final_season):
    svc = worked_example
    swap_id = _declare(svc, "best")

    first = svc.resolve_swap(swap_id)
    second = svc.resolve_swap(swap_id)

    assert second == first
    assert second.already_resolved is True
    events = [e for e in final_season.list_transfer_events() if e["swap_id"] == swap_id]
    assert len(events) == 1
    final_season.validate_integrity()


def test_concurrent_resolution_logs_one_event(db_path, worked_example, final_season):
    swap_id = _declare(worked_example, "best")
    barrier = threading.Barrier(2)
    outcomes = []

    def worker() -> None:
        with LeagueRepo(db_path) as own_repo:
            barrier.wait()
            outcomes.append(SwapResolver(own_repo).resolve(swap_id))

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(outcomes) == 2
    assert sorted(o.already_resolved for o in outcomes) == [False, True]
    assert outcomes[0] == outcomes[1]
    events = [e for e in final_season.list_transfer_events() if e["swap_id"] == swap_id]
    assert len(events) == 1


def test_no_standings_is_not_yet_resolvable(worked_example, repo):
    svc = worked_example
    swap_id = _declare(svc, "best")
    before = svc.get_pick_ownership(SEASON)
    events_before = len(repo.list_transfer_events())

    with pytest.raises(ResolveError) as ei:
        svc.resolve_swap(swap_id)

    assert ei.value.code == NOT_YET_RESOLVABLE
    assert ei.value.retryable is True
    assert svc.get_pick_ownership(SEASON) == before
    assert len(repo.list_transfer_events()) == events_before
    assert svc.get_swap_status(swap_id)["status"] == "pending"


def test_invalid_bracket_is_not_yet_resolvable(worked_example, repo):
    svc = worked_example
    swap_id = _declare(svc, "best")
    # Written straight to the table: a half-entered season with two champions.
    repo.upsert_standings(SEASON, list(FINAL_STANDINGS) + [standing("D", 10, 2, 5)])

    with pytest.raises(ResolveError) as ei:
        svc.resolve_swap(swap_id)

    assert ei.value.code == NOT_YET_RESOLVABLE
    assert ei.value.details["reason"] == "invalid_bracket"
    assert svc.get_pick_ownership(SEASON)[PICK_B1] == "B"


def test_holder_without_standing_is_unresolvable(worked_example, final_season):
    svc = worked_example
    swap_id = _declare(svc, "best")
    final_season.delete_standing(SEASON, "C")

    with pytest.raises(ResolveError) as ei:
        svc.resolve_swap(swap_id)

    assert ei.value.code == UNRESOLVABLE
    assert ei.value.retryable is False
    assert ei.value.details["current_team_id"] == "C"
    assert svc.get_pick_ownership(SEASON)[PICK_B1] == "B"


def test_ambiguous_order_is_unresolvable(worked_example, repo):
    svc = worked_example
    swap_id = _declare(svc, "best")
    rows = [dict(r) for r in FINAL_STANDINGS]
    for r in rows:
        if r["team_id"] == "D":
            r.update(final_position=12, seed=0)
    repo.upsert_standings(SEASON, rows)

    with pytest.raises(ResolveError) as ei:
        svc.resolve_swap(swap_id)

    assert ei.value.code == UNRESOLVABLE
    assert ei.value.details["cause"]["code"] == "ORDER_AMBIGUOUS"


def test_equal_positions_are_unresolvable(service, final_season):
    # Both picks end up with the same holder, so both take that holder's slot.
    swap_id = service.declare_swap(SEASON, "best", PICK_B1, PICK_A1, "D")
    service.request_transfer(PICK_A1, "B", requested_by="ops")

    with pytest.raises(ResolveError) as ei:
        service.resolve_swap(swap_id)

    assert ei.value.code == UNRESOLVABLE
    assert ei.value.details["positions"] == {PICK_B1: 1, PICK_A1: 1}


def test_entitled_team_holding_a_pick_is_unresolvable(worked_example, final_season):
    svc = worked_example
    swap_id = _declare(svc, "best")
    # D trades for the pick that would win; D may not be tied to either pick.
    svc.request_transfer(PICK_B1, "D", requested_by="ops")

    with pytest.raises(ResolveError) as ei:
        svc.resolve_swap(swap_id)

    assert ei.value.code == UNRESOLVABLE
    assert ei.value.details["cause"]["code"] == "SWAP_INVALID"
    assert svc.get_swap_status(swap_id)["status"] == "resolvable"
    assert [e for e in final_season.list_transfer_events() if e["swap_id"] == swap_id] == []


class _RefusingLedger(PickLedger):
    def transfer(self, pick_id, from_team, to_team, **kwargs):
        raise LedgerError(TEAM_NOT_FOUND, "Team not found", {"team_id": to_team})


def test_ledger_refusal_is_unresolvable(worked_example, final_season):
    swap_id = _declare(worked_example, "best")
    resolver = SwapResolver(final_season, ledger=_RefusingLedger(final_season))

    with pytest.raises(ResolveError) as ei:
        resolver.resolve(swap_id)

    assert ei.value.code == UNRESOLVABLE
    assert ei.value.details["pick_id"] == PICK_B1
    assert ei.value.details["cause"]["code"] == TEAM_NOT_FOUND

    report = resolver.resolve_pending(SEASON)
    assert report["resolved"] == []
    assert [f["swap_id"] for f in report["failed"]] == [swap_id]
    assert worked_example.get_pick_ownership(SEASON)[PICK_B1] == "B"


def test_position_follows_the_current_holder(worked_example, final_season):
    svc = worked_example
    swap_id = _declare(svc, "best")
    # B's pick moves to the champion before resolution: it now takes slot 6.
    svc.request_transfer(PICK_B1, "A", requested_by="ops")

    outcome = svc.resolve_swap(swap_id)

    assert outcome.positions == {PICK_B1: 6, PICK_A1: 4}
    assert outcome.winning_pick_id == PICK_A1
    assert (outcome.from_team_id, outcome.to_team_id) == ("C", "D")


def test_resolve_pending_reports_each_swap(service, final_season):
    resolved_id = service.declare_swap(SEASON, "best", PICK_B1, PICK_A1, "D")
    deferred_id = service.declare_swap(NEXT_SEASON, "worst", f"{NEXT_SEASON}_R1_A", f"{NEXT_SEASON}_R1_B", "D")

    report = service.resolve_pending(SEASON)
    assert [o["swap_id"] for o in report["resolved"]] == [resolved_id]
    assert report["deferred"] == [] and report["failed"] == []

    report = service.resolve_pending(NEXT_SEASON)
    assert report["resolved"] == []
    assert [d["swap_id"] for d in report["deferred"]] == [deferred_id]
    assert report["deferred"][0]["error"]["code"] == NOT_YET_RESOLVABLE
