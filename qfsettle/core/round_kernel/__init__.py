"""`round_kernel`: pure-Python state machine for funding rounds and projects.

- deterministic, integer-only transitions,
- immutable state (frozen dataclasses),
- fail-closed guards and invariant checks.

The kernel does no I/O. A ledger runs `step()` under its own lock and swaps
in the post-state; that is what makes settlement compare-and-set atomic.

Public API:
- `initial_state(program_id) -> LedgerState`
- `step(state, params) -> StepResult`
- `step_or_raise(state, params) -> StepResult` (raises on rejection)
"""

from .engine import error_for_rejection, step, step_or_raise
from .errors import (
    InsufficientFundsError,
    InsufficientVaultBalanceError,
    InvalidAmountError,
    LedgerGuardError,
    LedgerInvariantError,
    LedgerParamError,
    MilestoneGateError,
    RoundClosedError,
    SettlementError,
    StaleSnapshotError,
    UnauthorizedError,
)
from .invariants import INVARIANT_REGISTRY, check_all, check_monotone
from .state import initial_state, state_from_dict, state_to_dict
from .types import Action, ActionParams, Effect, Event, LedgerState, StepResult

__all__ = [
    "step",
    "step_or_raise",
    "error_for_rejection",
    "initial_state",
    "state_from_dict",
    "state_to_dict",
    "INVARIANT_REGISTRY",
    "check_all",
    "check_monotone",
    "Action",
    "ActionParams",
    "Effect",
    "Event",
    "LedgerState",
    "StepResult",
    "SettlementError",
    "InvalidAmountError",
    "UnauthorizedError",
    "RoundClosedError",
    "InsufficientVaultBalanceError",
    "InsufficientFundsError",
    "StaleSnapshotError",
    "MilestoneGateError",
    "LedgerGuardError",
    "LedgerParamError",
    "LedgerInvariantError",
]
