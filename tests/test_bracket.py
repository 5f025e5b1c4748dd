from __future__ import annotations

import pytest

from draft.bracket import count_by_elimination_round, find_bracket_violations, is_season_final, validate_bracket
from draft.errors import BRACKET_INVALID, BracketError
from draft.types import StandingRecord

from conftest import FINAL_STANDINGS, standing


def _records(rows):
    return [StandingRecord.from_row(r) for r in rows]


def test_empty_standings_are_valid_but_not_final():
    validate_bracket([])
    assert find_bracket_violations([]) == []
    assert is_season_final([]) is False


def test_finished_season_is_valid():
    records = _records(FINAL_STANDINGS)
    validate_bracket(records, season_id=2025)
    assert is_season_final(records) is True
    counts = count_by_elimination_round(records)
    assert counts == {0: 2, 1: 1, 2: 1, 3: 0, 4: 1, 5: 1}


def test_two_champions_rejected():
    records = _records(FINAL_STANDINGS + (standing("G", 3, 2, 5),))
    with pytest.raises(BracketError) as ei:
        validate_bracket(records, season_id=2025)
    err = ei.value
    assert err.code == BRACKET_INVALID
    assert [v.elimination_round for v in err.violations] == [5]
    assert "Only 1 team can be champion" in err.message
    assert err.details["season_id"] == 2025


def test_every_violated_rule_is_reported():
    rows = [
        standing("A", 1, 1, 5),
        standing("B", 2, 1, 5),
        standing("C", 3, 2, 3),
        standing("D", 4, 2, 3),
        standing("E", 5, 3, 3),
    ]
    rows += [standing(f"R{i}", 10 + i, i % 8 + 1, 1) for i in range(9)]
    with pytest.raises(BracketError) as ei:
        validate_bracket(_records(rows))
    violations = ei.value.violations
    assert [v.elimination_round for v in violations] == [5, 3, 1]
    assert [(v.count, v.limit) for v in violations] == [(2, 1), (3, 2), (9, 8)]
    assert len(ei.value.details["violations"]) == 3


def test_violations_are_counted_not_short_circuited():
    records = _records([standing("A", 1, 1, 4), standing("B", 2, 1, 4)])
    assert find_bracket_violations(records)[0].message == "Only 1 team can be runner-up"
    assert is_season_final(records) is False


@pytest.mark.parametrize(
    "field, value",
    [
        ("final_position", 31),
        ("final_position", -1),
        ("seed", 16),
        ("elimination_round", 6),
        ("seed", True),
    ],
)
def test_standing_record_rejects_out_of_range_fields(field, value):
    row = standing("A", 1, 1, 5)
    row[field] = value
    with pytest.raises(ValueError):
        StandingRecord.from_row(row)
