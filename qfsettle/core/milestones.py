"""
Milestone schedule kernels (deterministic, integer-only).

A project's target is split into an increasing arithmetic schedule: milestone
`i` (1-based) is worth `i * step` where `step = target // (n * (n + 1) / 2)`.
Rounding remainder is added to the last milestone so the schedule always sums
to the target exactly.
"""

from __future__ import annotations

from typing import Sequence, Tuple

from ..state.accounts import Milestone


MAX_MILESTONES = 16


def calculate_milestones(target_amount: int, milestone_count: int) -> Tuple[Milestone, ...]:
    if not isinstance(target_amount, int) or isinstance(target_amount, bool) or target_amount < 0:
        raise ValueError(f"target_amount must be a non-negative int, got {target_amount!r}")
    if not isinstance(milestone_count, int) or isinstance(milestone_count, bool):
        raise ValueError(f"milestone_count must be an int, got {milestone_count!r}")
    if not (0 <= milestone_count <= MAX_MILESTONES):
        raise ValueError(f"milestone_count must be in [0, {MAX_MILESTONES}]: {milestone_count}")

    n = milestone_count
    if n == 0:
        return ()
    step = target_amount // (n * (n + 1) // 2)
    amounts = [step * i for i in range(1, n + 1)]
    total = sum(amounts)
    if total < target_amount:
        amounts[-1] += target_amount - total
    return tuple(Milestone(amount=a) for a in amounts)


def milestone_gate_satisfied(milestones: Sequence[Milestone]) -> bool:
    """Payout gate: the first milestone is achieved (or there is no schedule)."""
    if not milestones:
        return True
    return milestones[0].is_achieved
