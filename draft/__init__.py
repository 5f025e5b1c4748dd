"""Draft pick rights package.

Modules:
  - types          : core domain dataclasses (StandingRecord, DraftOrder, DraftPick, PickSwap, ...)
  - errors         : error taxonomy (BracketError, DraftOrderError, LedgerError, SwapError, ResolveError)
  - bracket        : playoff bracket validation (pure)
  - order          : draft order derivation from final standings (pure)
  - locks          : process-local serialization lock for rights mutations
  - ledger         : pick ownership ledger; the single compare-and-set transfer path
  - swap_integrity : structural checks shared by declaration and resolution
  - swaps          : swap registry (declare / status / right transfer / withdraw)
  - resolution     : swap resolution engine (idempotent, fails closed)
  - service        : LeagueRightsService facade used by the API layer
"""

from __future__ import annotations

from .errors import BracketError, DraftOrderError, DraftRightsError, LedgerError, ResolveError, SwapError
from .types import DraftOrder, DraftPick, PickSwap, ResolvedOutcome, StandingRecord, SwapType, TransferEvent

__all__ = [
    "BracketError",
    "DraftOrderError",
    "DraftRightsError",
    "LedgerError",
    "ResolveError",
    "SwapError",
    "DraftOrder",
    "DraftPick",
    "PickSwap",
    "ResolvedOutcome",
    "StandingRecord",
    "SwapType",
    "TransferEvent",
]
