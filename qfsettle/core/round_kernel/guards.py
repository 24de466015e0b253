"""Guard functions for `round_kernel`.

One pure function per action. Each returns ``None`` when the action is allowed
in the given PRE-state, or a rejection code (see ``errors.py``) otherwise.
Checks run in a fixed order so the same state and params always produce the
same code.
"""

from __future__ import annotations

from ...state.addresses import derive_project_address, derive_round_address
from ..allocation import compute_settlement, settlement_input_from_accounts
from ..milestones import MAX_MILESTONES
from .types import ActionParams, LedgerState


def _round_or_code(state: LedgerState, params: ActionParams) -> str | None:
    if params.round not in state.rounds:
        return "unknown_round"
    return None


def _project_in_round(state: LedgerState, params: ActionParams) -> str | None:
    err = _round_or_code(state, params)
    if err is not None:
        return err
    project = state.projects.get(params.project)
    if project is None:
        return "unknown_project"
    if project.round != params.round:
        return "unauthorized"
    return None


def guard_create_round(state: LedgerState, params: ActionParams) -> str | None:
    address = derive_round_address(params.signer, params.round_seed, program_id=state.program_id)
    if address in state.rounds:
        return "already_exists"
    return None


def guard_create_project(state: LedgerState, params: ActionParams) -> str | None:
    err = _round_or_code(state, params)
    if err is not None:
        return err
    if not state.rounds[params.round].is_active:
        return "round_closed"
    if params.milestone_count > MAX_MILESTONES:
        return "milestone:count"
    address = derive_project_address(params.round, params.signer, program_id=state.program_id)
    if address in state.projects:
        return "already_exists"
    return None


def guard_create_vault(state: LedgerState, params: ActionParams) -> str | None:
    err = _round_or_code(state, params)
    if err is not None:
        return err
    if params.project:
        err = _project_in_round(state, params)
        if err is not None:
            return err
    if not state.rounds[params.round].is_active:
        return "round_closed"
    vault = state.projects[params.project].vault if params.project else state.rounds[params.round].vault
    if vault in state.vaults or state.balances.get(vault) > 0:
        # Idempotent: an existing or already funded account is not created again and pays no rent.
        return None
    if state.balances.get(params.signer) < params.amount:
        return "insufficient_funds"
    return None


def guard_contribute(state: LedgerState, params: ActionParams) -> str | None:
    err = _project_in_round(state, params)
    if err is not None:
        return err
    if not state.rounds[params.round].is_active:
        return "round_closed"
    if params.amount <= 0:
        return "invalid_amount"
    if state.projects[params.project].vault not in state.vaults:
        return "vault_missing"
    if state.balances.get(params.signer) < params.amount:
        return "insufficient_funds"
    return None


def guard_fund_round_pool(state: LedgerState, params: ActionParams) -> str | None:
    err = _round_or_code(state, params)
    if err is not None:
        return err
    round_ = state.rounds[params.round]
    if not round_.is_active:
        return "round_closed"
    if params.amount <= 0:
        return "invalid_amount"
    if round_.vault not in state.vaults:
        return "vault_missing"
    if state.balances.get(params.signer) < params.amount:
        return "insufficient_funds"
    return None


def guard_fund_project_pool(state: LedgerState, params: ActionParams) -> str | None:
    err = _project_in_round(state, params)
    if err is not None:
        return err
    return guard_fund_round_pool(state, params)


def _authority_guard(state: LedgerState, params: ActionParams) -> str | None:
    err = _round_or_code(state, params)
    if err is not None:
        return err
    round_ = state.rounds[params.round]
    if params.signer != round_.authority:
        return "unauthorized"
    if not round_.is_active:
        return "round_closed"
    return None


def guard_set_matching_pool_to_vault_balance(state: LedgerState, params: ActionParams) -> str | None:
    err = _authority_guard(state, params)
    if err is not None:
        return err
    if state.rounds[params.round].vault not in state.vaults:
        return "vault_missing"
    return None


def guard_set_area_max(state: LedgerState, params: ActionParams) -> str | None:
    return _authority_guard(state, params)


def guard_close_round(state: LedgerState, params: ActionParams) -> str | None:
    return _authority_guard(state, params)


def guard_settle_matching(state: LedgerState, params: ActionParams) -> str | None:
    """
    Atomic re-check of a proposed settlement.

    The caller sized `amount` from a snapshot; the ledger only accepts it if
    `pool_distributed` still matches that snapshot (compare-and-set) and the
    amount is still covered by both the vault and a fresh `compute_settlement`.
    """
    err = _project_in_round(state, params)
    if err is not None:
        return err
    round_ = state.rounds[params.round]
    project = state.projects[params.project]
    if params.signer not in (project.owner, round_.authority):
        return "unauthorized"
    if not round_.is_active:
        return "round_closed"
    if params.amount <= 0:
        return "invalid_amount"
    if round_.vault not in state.vaults or project.vault not in state.vaults:
        return "vault_missing"
    if project.pool_distributed != params.expected_pool_distributed:
        return "stale_snapshot"
    vault_balance = state.balances.get(round_.vault)
    if params.amount > vault_balance:
        return "insufficient_vault_balance"
    fresh = compute_settlement(settlement_input_from_accounts(round_, project, vault_balance))
    if params.amount > fresh.delta:
        return "stale_snapshot"
    return None


def guard_complete_milestone(state: LedgerState, params: ActionParams) -> str | None:
    project = state.projects.get(params.project)
    if project is None:
        return "unknown_project"
    if params.signer != project.owner:
        return "unauthorized"
    if params.milestone_index >= len(project.milestones):
        return "milestone:out_of_bounds"
    milestone = project.milestones[params.milestone_index]
    if milestone.is_achieved:
        return "milestone:already_completed"
    if milestone.amount > project.current_funding:
        return "milestone:insufficient_funding"
    return None


def guard_distribute_to_owner(state: LedgerState, params: ActionParams) -> str | None:
    project = state.projects.get(params.project)
    if project is None:
        return "unknown_project"
    if params.signer != project.owner:
        return "unauthorized"
    if params.amount <= 0:
        return "invalid_amount"
    if project.vault not in state.vaults:
        return "vault_missing"
    if params.amount > state.balances.get(project.vault):
        return "insufficient_vault_balance"
    if params.amount > project.withdrawable:
        return "insufficient_vault_balance"
    return None
