"""State update functions for `round_kernel`.

One pure function per action, called only after the action's guard accepted.
Each returns a NEW ``LedgerState``; the pre-state's dicts and balance table
are copied, never mutated.
"""

from __future__ import annotations

from dataclasses import replace

from ...state.accounts import FundingRound, Project, RoundStatus
from ...state.addresses import (
    derive_project_address,
    derive_project_vault_address,
    derive_round_address,
    derive_round_vault_address,
)
from ..ledger_math import add, area_increment
from ..milestones import calculate_milestones
from .types import ActionParams, LedgerState


def _with_round(state: LedgerState, round_: FundingRound, **changes) -> LedgerState:
    rounds = dict(state.rounds)
    rounds[round_.address] = round_
    return replace(state, rounds=rounds, **changes)


def _with_project(state: LedgerState, project: Project, **changes) -> LedgerState:
    projects = dict(state.projects)
    projects[project.address] = project
    return replace(state, projects=projects, **changes)


def apply_create_round(state: LedgerState, params: ActionParams) -> LedgerState:
    address = derive_round_address(params.signer, params.round_seed, program_id=state.program_id)
    round_ = FundingRound(
        address=address,
        authority=params.signer,
        vault=derive_round_vault_address(address, program_id=state.program_id),
        matching_pool=params.amount,
    )
    return _with_round(state, round_)


def apply_create_project(state: LedgerState, params: ActionParams) -> LedgerState:
    address = derive_project_address(params.round, params.signer, program_id=state.program_id)
    project = Project(
        address=address,
        owner=params.signer,
        round=params.round,
        vault=derive_project_vault_address(address, program_id=state.program_id),
        target_amount=params.target_amount,
        milestones=calculate_milestones(params.target_amount, params.milestone_count),
    )
    return _with_project(state, project)


def apply_create_vault(state: LedgerState, params: ActionParams) -> LedgerState:
    vault = state.projects[params.project].vault if params.project else state.rounds[params.round].vault
    if vault in state.vaults:
        return state
    if state.balances.get(vault) > 0:
        # Lamports were sent to the address before creation: adopt it as is.
        return replace(state, vaults=state.vaults | {vault})
    balances = state.balances.copy()
    balances.transfer(params.signer, vault, params.amount)
    return replace(state, balances=balances, vaults=state.vaults | {vault})


def apply_contribute(state: LedgerState, params: ActionParams) -> LedgerState:
    round_ = state.rounds[params.round]
    project = state.projects[params.project]

    balances = state.balances.copy()
    balances.transfer(params.signer, project.vault, params.amount)

    key = (project.address, params.signer)
    prev_total = state.contributions.get(key, 0)
    contributions = dict(state.contributions)
    contributions[key] = add(prev_total, params.amount)
    delta_area = area_increment(prev_total, params.amount)

    next_project = replace(
        project,
        current_funding=add(project.current_funding, params.amount),
        area=add(project.area, delta_area),
    )
    next_round = replace(
        round_,
        area=add(round_.area, delta_area),
        total_donations=add(round_.total_donations, params.amount),
        contributor_count=round_.contributor_count + (0 if key in state.contributions else 1),
    )
    next_state = _with_project(state, next_project, balances=balances, contributions=contributions)
    return _with_round(next_state, next_round)


def apply_fund_round_pool(state: LedgerState, params: ActionParams) -> LedgerState:
    round_ = state.rounds[params.round]
    balances = state.balances.copy()
    balances.transfer(params.signer, round_.vault, params.amount)
    return _with_round(
        state,
        replace(round_, matching_pool=add(round_.matching_pool, params.amount)),
        balances=balances,
    )


def apply_fund_project_pool(state: LedgerState, params: ActionParams) -> LedgerState:
    # Funds are held centrally in the round vault; accounting is per project.
    round_ = state.rounds[params.round]
    project = state.projects[params.project]
    balances = state.balances.copy()
    balances.transfer(params.signer, round_.vault, params.amount)
    return _with_project(
        state,
        replace(project, matching_pool=add(project.matching_pool, params.amount)),
        balances=balances,
    )


def apply_set_matching_pool_to_vault_balance(state: LedgerState, params: ActionParams) -> LedgerState:
    round_ = state.rounds[params.round]
    return _with_round(state, replace(round_, matching_pool=state.balances.get(round_.vault)))


def apply_set_area_max(state: LedgerState, params: ActionParams) -> LedgerState:
    return _with_round(state, replace(state.rounds[params.round], area_max=params.area_max))


def apply_settle_matching(state: LedgerState, params: ActionParams) -> LedgerState:
    round_ = state.rounds[params.round]
    project = state.projects[params.project]
    balances = state.balances.copy()
    balances.transfer(round_.vault, project.vault, params.amount)
    next_project = replace(
        project,
        pool_distributed=add(project.pool_distributed, params.amount),
        matching_unlocked=add(project.matching_unlocked, params.amount),
    )
    return _with_project(state, next_project, balances=balances)


def apply_complete_milestone(state: LedgerState, params: ActionParams) -> LedgerState:
    project = state.projects[params.project]
    milestones = list(project.milestones)
    milestones[params.milestone_index] = replace(milestones[params.milestone_index], is_achieved=True)
    return _with_project(state, replace(project, milestones=tuple(milestones)))


def apply_distribute_to_owner(state: LedgerState, params: ActionParams) -> LedgerState:
    project = state.projects[params.project]
    balances = state.balances.copy()
    balances.transfer(project.vault, project.owner, params.amount)
    return _with_project(
        state,
        replace(project, withdrawn=add(project.withdrawn, params.amount)),
        balances=balances,
    )


def apply_close_round(state: LedgerState, params: ActionParams) -> LedgerState:
    return _with_round(state, replace(state.rounds[params.round], status=RoundStatus.CLOSED))
