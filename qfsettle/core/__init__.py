"""
Core quadratic-funding algorithms
"""

from .allocation import (
    SettlementInput,
    SettlementResult,
    compute_settlement,
    effective_denominator_area,
    ideal_allocation,
    settlement_input_from_accounts,
)
from .ledger_math import (
    LAMPORTS_PER_SOL,
    area_increment,
    isqrt_floor,
    lamports_to_sol_str,
    parse_uint,
    parse_uint_checked,
)
from .milestones import MAX_MILESTONES, calculate_milestones, milestone_gate_satisfied

__all__ = [
    "SettlementInput",
    "SettlementResult",
    "compute_settlement",
    "effective_denominator_area",
    "ideal_allocation",
    "settlement_input_from_accounts",
    "LAMPORTS_PER_SOL",
    "area_increment",
    "isqrt_floor",
    "lamports_to_sol_str",
    "parse_uint",
    "parse_uint_checked",
    "MAX_MILESTONES",
    "calculate_milestones",
    "milestone_gate_satisfied",
]
