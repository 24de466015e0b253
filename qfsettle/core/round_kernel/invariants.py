"""Invariant checkers for `round_kernel`.

Each `inv_*` function returns True when the invariant holds on a single state;
`check_all()` returns the ids of violated invariants (empty = all pass).
`check_monotone()` compares a pre/post pair for the accumulators that must
never decrease.
"""

from __future__ import annotations

from typing import Callable

from ...state.accounts import RoundStatus
from .types import LedgerState


def inv_project_area_le_round_area(s: LedgerState) -> bool:
    for project in s.projects.values():
        round_ = s.rounds.get(project.round)
        if round_ is not None and project.area > round_.area:
            return False
    return True


def inv_pool_distributed_le_matching_pool(s: LedgerState) -> bool:
    return all(p.pool_distributed <= p.matching_pool for p in s.projects.values())


def inv_unlocked_ge_distributed(s: LedgerState) -> bool:
    return all(p.matching_unlocked >= p.pool_distributed for p in s.projects.values())


def inv_withdrawn_le_withdrawable(s: LedgerState) -> bool:
    return all(p.withdrawn <= p.current_funding + p.matching_unlocked for p in s.projects.values())


def inv_balances_non_negative(s: LedgerState) -> bool:
    return all(v >= 0 for v in s.balances.get_all_balances().values())


def inv_projects_reference_known_round(s: LedgerState) -> bool:
    return all(p.round in s.rounds for p in s.projects.values())


INVARIANT_REGISTRY: dict[str, Callable[[LedgerState], bool]] = {
    "inv_project_area_le_round_area": inv_project_area_le_round_area,
    "inv_pool_distributed_le_matching_pool": inv_pool_distributed_le_matching_pool,
    "inv_unlocked_ge_distributed": inv_unlocked_ge_distributed,
    "inv_withdrawn_le_withdrawable": inv_withdrawn_le_withdrawable,
    "inv_balances_non_negative": inv_balances_non_negative,
    "inv_projects_reference_known_round": inv_projects_reference_known_round,
}


def check_all(s: LedgerState) -> list[str]:
    return [name for name, fn in INVARIANT_REGISTRY.items() if not fn(s)]


_MONOTONE_PROJECT_FIELDS = ("area", "pool_distributed", "matching_unlocked", "current_funding", "withdrawn")


def check_monotone(pre: LedgerState, post: LedgerState) -> list[str]:
    violations: list[str] = []
    for address, before in pre.rounds.items():
        after = post.rounds.get(address)
        if after is None:
            violations.append("mono_round_removed")
            continue
        if after.area < before.area:
            violations.append("mono_round_area")
        if before.status is RoundStatus.CLOSED and after != before:
            violations.append("mono_closed_round_mutated")
    for address, before in pre.projects.items():
        after = post.projects.get(address)
        if after is None:
            violations.append("mono_project_removed")
            continue
        for name in _MONOTONE_PROJECT_FIELDS:
            if getattr(after, name) < getattr(before, name):
                violations.append(f"mono_project_{name}")
    if not pre.vaults <= post.vaults:
        violations.append("mono_vault_removed")
    return violations
