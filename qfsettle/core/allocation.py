"""
Quadratic-funding matching allocation (pure, integer-only).

Single source of truth for "how much matching should move to this project
now". The read API (`integration/snapshots.py`), the operator client
(`integration/operations.py`) and the ledger kernel guard
(`core/round_kernel/guards.py`) all call `compute_settlement`, so a quote, a
submitted instruction and the ledger's own check can never disagree.

Formula:
    denom_area = max(round_area, round_area_max) if round_area_max > 0 else round_area
    alloc      = floor(pool_total * project_area**2 / denom_area**2)
    delta      = min(max(alloc - already_unlocked, 0), vault_balance, pool_remaining)
"""

from __future__ import annotations

from dataclasses import dataclass

from ..state.accounts import FundingRound, Project
from .ledger_math import div, mul, sub


@dataclass(frozen=True)
class SettlementInput:
    """Snapshot of the values that size one settlement."""

    pool_total: int
    round_area: int
    round_area_max: int
    project_area: int
    already_unlocked: int
    vault_balance: int
    pool_distributed: int

    def __post_init__(self) -> None:
        for name in (
            "pool_total",
            "round_area",
            "round_area_max",
            "project_area",
            "already_unlocked",
            "vault_balance",
            "pool_distributed",
        ):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")


@dataclass(frozen=True)
class SettlementResult:
    delta: int
    can_settle: bool
    alloc: int
    denom_area: int
    pool_remaining: int


def effective_denominator_area(round_area: int, round_area_max: int) -> int:
    """Round area, floored at `round_area_max` when that knob is set."""
    if round_area_max > 0:
        return max(round_area, round_area_max)
    return round_area


def ideal_allocation(pool_total: int, round_area: int, round_area_max: int, project_area: int) -> int:
    """Cumulative matching a project has earned so far (before clamps)."""
    denom_area = effective_denominator_area(round_area, round_area_max)
    if pool_total == 0 or round_area == 0 or project_area == 0 or denom_area == 0:
        return 0
    return div(mul(pool_total, mul(project_area, project_area)), mul(denom_area, denom_area))


def compute_settlement(inp: SettlementInput) -> SettlementResult:
    """
    Size the next settlement for one project.

    Never raises: every valid input yields a non-negative delta. A zero delta
    means "nothing to settle", not an error.
    """
    denom_area = effective_denominator_area(inp.round_area, inp.round_area_max)
    alloc = ideal_allocation(inp.pool_total, inp.round_area, inp.round_area_max, inp.project_area)

    # A shrinking ideal allocation is clamped to zero, never clawed back.
    delta = sub(alloc, inp.already_unlocked)
    pool_remaining = sub(inp.pool_total, inp.pool_distributed)
    delta = min(delta, inp.vault_balance, pool_remaining)

    return SettlementResult(
        delta=delta,
        can_settle=delta > 0,
        alloc=alloc,
        denom_area=denom_area,
        pool_remaining=pool_remaining,
    )


def settlement_input_from_accounts(round_: FundingRound, project: Project, vault_balance: int) -> SettlementInput:
    """Build engine input from ledger account records."""
    return SettlementInput(
        pool_total=project.matching_pool,
        round_area=round_.area,
        round_area_max=round_.area_max,
        project_area=project.area,
        already_unlocked=project.matching_unlocked,
        vault_balance=vault_balance,
        pool_distributed=project.pool_distributed,
    )
