"""Data types for the `round_kernel` state machine.

All types are frozen dataclasses. `LedgerState` holds plain dicts and a
`LamportTable`; update functions never mutate them in place, they build
copies for the post-state.

Units/conventions:
- amounts and balances are integer lamports,
- areas are integer quadratic-funding scores,
- addresses are 0x-prefixed 32-byte hex strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Dict, FrozenSet, Tuple

from ...state.accounts import FundingRound, Project
from ...state.addresses import DEFAULT_PROGRAM_ID, Address
from ...state.lamports import LamportTable


@unique
class Action(Enum):
    """One member per ledger instruction."""
    CREATE_ROUND = "create_round"
    CREATE_PROJECT = "create_project"
    CREATE_VAULT = "create_vault"
    CONTRIBUTE = "contribute"
    FUND_ROUND_POOL = "fund_round_pool"
    FUND_PROJECT_POOL = "fund_project_pool"
    SET_MATCHING_POOL_TO_VAULT_BALANCE = "set_matching_pool_to_vault_balance"
    SET_AREA_MAX = "set_area_max"
    SETTLE_MATCHING = "settle_matching_for_project"
    COMPLETE_MILESTONE = "complete_milestone"
    DISTRIBUTE_TO_OWNER = "distribute_funds_to_owner"
    CLOSE_ROUND = "close_round"


@unique
class Event(Enum):
    """One member per emitted effect."""
    ROUND_CREATED = "RoundCreated"
    PROJECT_CREATED = "ProjectCreated"
    VAULT_CREATED = "VaultCreated"
    CONTRIBUTION_MADE = "ContributionMade"
    ROUND_POOL_FUNDED = "RoundPoolFunded"
    PROJECT_POOL_FUNDED = "ProjectPoolFunded"
    MATCHING_POOL_RESYNCED = "MatchingPoolResynced"
    AREA_MAX_SET = "AreaMaxSet"
    MATCHING_SETTLED = "MatchingSettled"
    MILESTONE_COMPLETED = "MilestoneCompleted"
    FUNDS_DISTRIBUTED = "FundsDistributed"
    ROUND_CLOSED = "RoundClosed"


ContributionKey = Tuple[Address, Address]  # (project, contributor)


@dataclass(frozen=True)
class LedgerState:
    """Everything the kernel reads or writes."""

    rounds: Dict[Address, FundingRound] = field(default_factory=dict)
    projects: Dict[Address, Project] = field(default_factory=dict)
    balances: LamportTable = field(default_factory=LamportTable)
    vaults: FrozenSet[Address] = frozenset()
    contributions: Dict[ContributionKey, int] = field(default_factory=dict)
    program_id: Address = DEFAULT_PROGRAM_ID


@dataclass(frozen=True)
class ActionParams:
    """Parameters for an instruction. Unused fields default to 0/empty."""

    action: Action
    signer: Address = ""                 # identity authorizing the instruction
    round: Address = ""
    project: Address = ""                # create_vault: empty => round vault
    amount: int = 0                      # transfers, create_round initial pool, create_vault rent
    area_max: int = 0                    # set_area_max
    expected_pool_distributed: int = 0   # settle_matching_for_project (compare-and-set)
    round_seed: int = 0                  # create_round
    target_amount: int = 0               # create_project
    milestone_count: int = 0             # create_project
    milestone_index: int = 0             # complete_milestone


@dataclass(frozen=True)
class Effect:
    """Observables emitted after a successful step."""

    event: Event
    round: Address = ""
    project: Address = ""
    vault: Address = ""
    amount: int = 0
    created: bool = True                 # create_vault: False when the vault already existed
    vault_balance_after: int = 0
    matching_pool_after: int = 0
    pool_distributed_after: int = 0


@dataclass(frozen=True)
class StepResult:
    """Result of a single kernel step."""

    accepted: bool
    state: LedgerState | None = None
    effect: Effect | None = None
    rejection: str | None = None
