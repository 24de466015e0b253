"""
Round and project account records.

Both records are immutable; the round kernel produces new records with
`dataclasses.replace` rather than mutating in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from .addresses import Address
from .lamports import Lamports


class RoundStatus(Enum):
    """Round lifecycle. A round missing from the ledger is uninitialized."""

    ACTIVE = "active"
    CLOSED = "closed"


def _require_non_negative(name: str, value: object) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


@dataclass(frozen=True)
class Milestone:
    amount: Lamports
    is_achieved: bool = False

    def __post_init__(self) -> None:
        _require_non_negative("amount", self.amount)


@dataclass(frozen=True)
class FundingRound:
    """
    A quadratic-funding round.

    Attributes:
        address: Derived round address
        authority: Identity allowed to administer the round (immutable)
        vault: Derived round vault address holding the matching funds
        matching_pool: Lamports committed for matching across the round
        area: Aggregate quadratic-funding score of the round
        area_max: Admin scaling target for the settlement denominator (0 = unset)
        status: Lifecycle status
        total_donations: Direct contributions received by projects in the round
        contributor_count: Distinct (project, contributor) pairs seen
    """

    address: Address
    authority: Address
    vault: Address
    matching_pool: Lamports = 0
    area: int = 0
    area_max: int = 0
    status: RoundStatus = RoundStatus.ACTIVE
    total_donations: Lamports = 0
    contributor_count: int = 0

    def __post_init__(self) -> None:
        for name in ("matching_pool", "area", "area_max", "total_donations", "contributor_count"):
            _require_non_negative(name, getattr(self, name))
        if not isinstance(self.status, RoundStatus):
            raise TypeError(f"status must be a RoundStatus: {self.status!r}")

    @property
    def is_active(self) -> bool:
        return self.status is RoundStatus.ACTIVE


@dataclass(frozen=True)
class Project:
    """
    A project competing for matching funds within one round.

    `pool_distributed` and `matching_unlocked` both advance by exactly the
    settled amount and are never decreased; payouts to the owner are tracked in
    `withdrawn`.
    """

    address: Address
    owner: Address
    round: Address
    vault: Address
    area: int = 0
    matching_pool: Lamports = 0
    pool_distributed: Lamports = 0
    matching_unlocked: Lamports = 0
    current_funding: Lamports = 0
    withdrawn: Lamports = 0
    target_amount: Lamports = 0
    milestones: Tuple[Milestone, ...] = ()

    def __post_init__(self) -> None:
        for name in (
            "area",
            "matching_pool",
            "pool_distributed",
            "matching_unlocked",
            "current_funding",
            "withdrawn",
            "target_amount",
        ):
            _require_non_negative(name, getattr(self, name))
        if not isinstance(self.milestones, tuple):
            raise TypeError("milestones must be a tuple")
        for m in self.milestones:
            if not isinstance(m, Milestone):
                raise TypeError(f"milestones entries must be Milestone: {m!r}")

    @property
    def pool_remaining(self) -> Lamports:
        return max(self.matching_pool - self.pool_distributed, 0)

    @property
    def withdrawable(self) -> Lamports:
        return max(self.current_funding + self.matching_unlocked - self.withdrawn, 0)
