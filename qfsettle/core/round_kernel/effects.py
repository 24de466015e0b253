"""Effect functions for `round_kernel`.

One pure function per action. Effects are read from the POST-state; the
pre-state is passed only so idempotent actions can report whether anything
changed.
"""

from __future__ import annotations

from .types import ActionParams, Effect, Event, LedgerState


def _round_effect(event: Event, post: LedgerState, params: ActionParams, *, amount: int = 0) -> Effect:
    round_ = post.rounds[params.round]
    return Effect(
        event=event,
        round=round_.address,
        vault=round_.vault,
        amount=amount,
        vault_balance_after=post.balances.get(round_.vault),
        matching_pool_after=round_.matching_pool,
    )


def _project_effect(event: Event, post: LedgerState, params: ActionParams, *, amount: int = 0) -> Effect:
    project = post.projects[params.project]
    return Effect(
        event=event,
        round=project.round,
        project=project.address,
        vault=project.vault,
        amount=amount,
        vault_balance_after=post.balances.get(project.vault),
        matching_pool_after=project.matching_pool,
        pool_distributed_after=project.pool_distributed,
    )


def effect_create_round(pre: LedgerState, post: LedgerState, params: ActionParams) -> Effect:
    (address,) = set(post.rounds) - set(pre.rounds)
    round_ = post.rounds[address]
    return Effect(
        event=Event.ROUND_CREATED,
        round=address,
        vault=round_.vault,
        matching_pool_after=round_.matching_pool,
    )


def effect_create_project(pre: LedgerState, post: LedgerState, params: ActionParams) -> Effect:
    (address,) = set(post.projects) - set(pre.projects)
    project = post.projects[address]
    return Effect(
        event=Event.PROJECT_CREATED,
        round=project.round,
        project=address,
        vault=project.vault,
        amount=project.target_amount,
    )


def effect_create_vault(pre: LedgerState, post: LedgerState, params: ActionParams) -> Effect:
    vault = post.projects[params.project].vault if params.project else post.rounds[params.round].vault
    created = vault not in pre.vaults and pre.balances.get(vault) == 0
    return Effect(
        event=Event.VAULT_CREATED,
        round=params.round,
        project=params.project,
        vault=vault,
        amount=params.amount if created else 0,
        created=created,
        vault_balance_after=post.balances.get(vault),
    )


def effect_contribute(pre: LedgerState, post: LedgerState, params: ActionParams) -> Effect:
    return _project_effect(Event.CONTRIBUTION_MADE, post, params, amount=params.amount)


def effect_fund_round_pool(pre: LedgerState, post: LedgerState, params: ActionParams) -> Effect:
    return _round_effect(Event.ROUND_POOL_FUNDED, post, params, amount=params.amount)


def effect_fund_project_pool(pre: LedgerState, post: LedgerState, params: ActionParams) -> Effect:
    effect = _project_effect(Event.PROJECT_POOL_FUNDED, post, params, amount=params.amount)
    round_vault = post.rounds[params.round].vault
    return Effect(
        event=effect.event,
        round=effect.round,
        project=effect.project,
        vault=round_vault,
        amount=effect.amount,
        vault_balance_after=post.balances.get(round_vault),
        matching_pool_after=effect.matching_pool_after,
        pool_distributed_after=effect.pool_distributed_after,
    )


def effect_set_matching_pool_to_vault_balance(pre: LedgerState, post: LedgerState, params: ActionParams) -> Effect:
    return _round_effect(Event.MATCHING_POOL_RESYNCED, post, params)


def effect_set_area_max(pre: LedgerState, post: LedgerState, params: ActionParams) -> Effect:
    return _round_effect(Event.AREA_MAX_SET, post, params, amount=params.area_max)


def effect_settle_matching(pre: LedgerState, post: LedgerState, params: ActionParams) -> Effect:
    return _project_effect(Event.MATCHING_SETTLED, post, params, amount=params.amount)


def effect_complete_milestone(pre: LedgerState, post: LedgerState, params: ActionParams) -> Effect:
    project = post.projects[params.project]
    return _project_effect(
        Event.MILESTONE_COMPLETED, post, params, amount=project.milestones[params.milestone_index].amount
    )


def effect_distribute_to_owner(pre: LedgerState, post: LedgerState, params: ActionParams) -> Effect:
    return _project_effect(Event.FUNDS_DISTRIBUTED, post, params, amount=params.amount)


def effect_close_round(pre: LedgerState, post: LedgerState, params: ActionParams) -> Effect:
    return _round_effect(Event.ROUND_CLOSED, post, params)
