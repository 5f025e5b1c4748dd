from __future__ import annotations

"""Error taxonomy of the draft rights engine.

Every error carries a stable ``code`` plus a human ``message`` and a
``details`` dict, so API layers can surface them without a 500.

Retry semantics:
  - LedgerError(NOT_OWNER)          expected race; re-read the owner and retry
  - ResolveError(NOT_YET_RESOLVABLE) expected; retry once the season is final
  - everything else                 data/input problem; needs correction
"""

from typing import Any, Dict, Optional, Sequence

from .types import BracketViolation

# Bracket
BRACKET_INVALID = "BRACKET_INVALID"

# Draft order
ORDER_INVALID_BRACKET = "ORDER_INVALID_BRACKET"
ORDER_AMBIGUOUS = "ORDER_AMBIGUOUS"

# Ledger
NOT_OWNER = "NOT_OWNER"
PICK_NOT_FOUND = "PICK_NOT_FOUND"
PICK_EXISTS = "PICK_EXISTS"
SAME_TEAM = "SAME_TEAM"
TEAM_NOT_FOUND = "TEAM_NOT_FOUND"

# Collaborators
SEASON_NOT_FOUND = "SEASON_NOT_FOUND"

# Swap registry
SWAP_INVALID = "SWAP_INVALID"
SWAP_NOT_FOUND = "SWAP_NOT_FOUND"
SWAP_EXISTS = "SWAP_EXISTS"
PICK_IN_SWAP = "PICK_IN_SWAP"
SWAP_RESOLVED = "SWAP_RESOLVED"

# Resolution
NOT_YET_RESOLVABLE = "NOT_YET_RESOLVABLE"
UNRESOLVABLE = "UNRESOLVABLE"


class DraftRightsError(Exception):
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.details = dict(details or {})

    def to_payload(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class BracketError(DraftRightsError):
    """Standings do not describe a valid single-elimination bracket.

    ``violations`` always holds the complete set of violated rules.
    """

    def __init__(self, violations: Sequence[BracketViolation], *, season_id: Optional[int] = None):
        self.violations = list(violations)
        super().__init__(
            BRACKET_INVALID,
            "; ".join(v.message for v in self.violations) or "Invalid playoff bracket",
            {
                "season_id": season_id,
                "violations": [v.to_dict() for v in self.violations],
            },
        )


class DraftOrderError(DraftRightsError):
    pass


class LedgerError(DraftRightsError):
    pass


class SwapError(DraftRightsError):
    pass


class ResolveError(DraftRightsError):
    @property
    def retryable(self) -> bool:
        return self.code == NOT_YET_RESOLVABLE
