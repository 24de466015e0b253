"""Dispatch-table engine for `round_kernel`.

``step(state, params)`` is the single entry point. It:

1. Validates parameter domains and normalizes addresses.
2. Dispatches to the correct guard / update / effect functions.
3. Checks all invariants on the post-state, plus monotonicity against the pre-state.
4. Returns a ``StepResult`` (accepted or rejected with a reason code).

``step`` is pure; a ledger that wants atomic check-and-update only has to run
it under its own lock and swap in ``result.state``.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable

from ...state.addresses import normalize_address
from .effects import (
    effect_close_round,
    effect_complete_milestone,
    effect_contribute,
    effect_create_project,
    effect_create_round,
    effect_create_vault,
    effect_distribute_to_owner,
    effect_fund_project_pool,
    effect_fund_round_pool,
    effect_set_area_max,
    effect_set_matching_pool_to_vault_balance,
    effect_settle_matching,
)
from .errors import (
    InsufficientFundsError,
    InsufficientVaultBalanceError,
    InvalidAmountError,
    LedgerGuardError,
    LedgerInvariantError,
    LedgerParamError,
    RoundClosedError,
    SettlementError,
    StaleSnapshotError,
    UnauthorizedError,
)
from .guards import (
    guard_close_round,
    guard_complete_milestone,
    guard_contribute,
    guard_create_project,
    guard_create_round,
    guard_create_vault,
    guard_distribute_to_owner,
    guard_fund_project_pool,
    guard_fund_round_pool,
    guard_set_area_max,
    guard_set_matching_pool_to_vault_balance,
    guard_settle_matching,
)
from .invariants import check_all, check_monotone
from .types import Action, ActionParams, Effect, LedgerState, StepResult
from .updates import (
    apply_close_round,
    apply_complete_milestone,
    apply_contribute,
    apply_create_project,
    apply_create_round,
    apply_create_vault,
    apply_distribute_to_owner,
    apply_fund_project_pool,
    apply_fund_round_pool,
    apply_set_area_max,
    apply_set_matching_pool_to_vault_balance,
    apply_settle_matching,
)

GuardFn = Callable[[LedgerState, ActionParams], "str | None"]
UpdateFn = Callable[[LedgerState, ActionParams], LedgerState]
EffectFn = Callable[[LedgerState, LedgerState, ActionParams], Effect]

_DISPATCH: dict[Action, tuple[GuardFn, UpdateFn, EffectFn]] = {
    Action.CREATE_ROUND: (
        guard_create_round, apply_create_round, effect_create_round,
    ),
    Action.CREATE_PROJECT: (
        guard_create_project, apply_create_project, effect_create_project,
    ),
    Action.CREATE_VAULT: (
        guard_create_vault, apply_create_vault, effect_create_vault,
    ),
    Action.CONTRIBUTE: (
        guard_contribute, apply_contribute, effect_contribute,
    ),
    Action.FUND_ROUND_POOL: (
        guard_fund_round_pool, apply_fund_round_pool, effect_fund_round_pool,
    ),
    Action.FUND_PROJECT_POOL: (
        guard_fund_project_pool, apply_fund_project_pool, effect_fund_project_pool,
    ),
    Action.SET_MATCHING_POOL_TO_VAULT_BALANCE: (
        guard_set_matching_pool_to_vault_balance,
        apply_set_matching_pool_to_vault_balance,
        effect_set_matching_pool_to_vault_balance,
    ),
    Action.SET_AREA_MAX: (
        guard_set_area_max, apply_set_area_max, effect_set_area_max,
    ),
    Action.SETTLE_MATCHING: (
        guard_settle_matching, apply_settle_matching, effect_settle_matching,
    ),
    Action.COMPLETE_MILESTONE: (
        guard_complete_milestone, apply_complete_milestone, effect_complete_milestone,
    ),
    Action.DISTRIBUTE_TO_OWNER: (
        guard_distribute_to_owner, apply_distribute_to_owner, effect_distribute_to_owner,
    ),
    Action.CLOSE_ROUND: (
        guard_close_round, apply_close_round, effect_close_round,
    ),
}

# -- Parameter domains -------------------------------------------------------

_INT_FIELDS: tuple[str, ...] = (
    "amount",
    "area_max",
    "expected_pool_distributed",
    "round_seed",
    "target_amount",
    "milestone_count",
    "milestone_index",
)

# Per-action (required, optional) address fields. `signer` is always required.
_ADDRESS_FIELDS: dict[Action, tuple[tuple[str, ...], tuple[str, ...]]] = {
    Action.CREATE_ROUND: ((), ()),
    Action.CREATE_PROJECT: (("round",), ()),
    Action.CREATE_VAULT: (("round",), ("project",)),
    Action.CONTRIBUTE: (("round", "project"), ()),
    Action.FUND_ROUND_POOL: (("round",), ()),
    Action.FUND_PROJECT_POOL: (("round", "project"), ()),
    Action.SET_MATCHING_POOL_TO_VAULT_BALANCE: (("round",), ()),
    Action.SET_AREA_MAX: (("round",), ()),
    Action.SETTLE_MATCHING: (("round", "project"), ()),
    Action.COMPLETE_MILESTONE: (("project",), ("round",)),
    Action.DISTRIBUTE_TO_OWNER: (("project",), ("round",)),
    Action.CLOSE_ROUND: (("round",), ()),
}


def _normalize_params(params: ActionParams) -> tuple[ActionParams | None, str | None]:
    """Check int/address domains. Returns (normalized params, None) or (None, rejection)."""
    for name in _INT_FIELDS:
        val = getattr(params, name)
        if not isinstance(val, int) or isinstance(val, bool):
            return None, f"param_domain:{name}"
        if val < 0:
            return None, "invalid_amount" if name == "amount" else f"param_domain:{name}"

    required, optional = _ADDRESS_FIELDS[params.action]
    changes: dict[str, str] = {}
    for name in ("signer",) + required + optional:
        raw = getattr(params, name)
        if name in optional and raw == "":
            continue
        try:
            changes[name] = normalize_address(raw, name=name)
        except (TypeError, ValueError):
            return None, f"param_domain:{name}"
    return replace(params, **changes), None


def step(state: LedgerState, params: ActionParams) -> StepResult:
    """Execute one action against the given state.

    Returns ``StepResult`` with ``accepted=True`` on success,
    or ``accepted=False`` with a ``rejection`` reason code.
    """
    entry = _DISPATCH.get(params.action)
    if entry is None:
        return StepResult(accepted=False, rejection=f"unknown_action:{params.action}")

    normalized, domain_err = _normalize_params(params)
    if domain_err is not None:
        return StepResult(accepted=False, rejection=domain_err)
    assert normalized is not None

    guard_fn, update_fn, effect_fn = entry

    reason = guard_fn(state, normalized)
    if reason is not None:
        return StepResult(accepted=False, rejection=reason)

    new_state = update_fn(state, normalized)

    violations = check_all(new_state) + check_monotone(state, new_state)
    if violations:
        return StepResult(
            accepted=False,
            rejection=f"invariant:{','.join(violations)}",
        )

    effect = effect_fn(state, new_state, normalized)
    return StepResult(accepted=True, state=new_state, effect=effect)


_REJECTION_ERRORS: dict[str, type[SettlementError]] = {
    "invalid_amount": InvalidAmountError,
    "unauthorized": UnauthorizedError,
    "round_closed": RoundClosedError,
    "insufficient_vault_balance": InsufficientVaultBalanceError,
    "insufficient_funds": InsufficientFundsError,
    "stale_snapshot": StaleSnapshotError,
}


def error_for_rejection(reason: str) -> SettlementError:
    """Map a rejection code to its typed exception instance."""
    if reason.startswith("param_domain:"):
        return LedgerParamError(reason)
    if reason.startswith("invariant:"):
        return LedgerInvariantError(reason.removeprefix("invariant:").split(","))
    cls = _REJECTION_ERRORS.get(reason)
    if cls is not None:
        return cls(reason)
    err = LedgerGuardError(reason)
    err.code = reason
    return err


def step_or_raise(state: LedgerState, params: ActionParams) -> StepResult:
    """Like ``step()`` but raises a ``SettlementError`` subclass on rejection."""
    result = step(state, params)
    if result.accepted:
        return result
    raise error_for_rejection(result.rejection or "")
