"""Typed failures for the round kernel.

`step_or_raise()` in ``engine.py`` maps rejection codes to these classes so
callers can tell "rejected" apart from "nothing to settle" (a zero delta is
never an error) and decide whether a retry makes sense.
"""

from __future__ import annotations


class SettlementError(Exception):
    """Base class for every rejected ledger instruction."""

    code = "rejected"
    retryable = False


class InvalidAmountError(SettlementError):
    """A transfer-style instruction carried a non-positive amount."""

    code = "invalid_amount"


class UnauthorizedError(SettlementError):
    """The signer is not the recorded authority/owner."""

    code = "unauthorized"


class RoundClosedError(SettlementError):
    """The round is in the terminal `Closed` state."""

    code = "round_closed"


class InsufficientVaultBalanceError(SettlementError):
    """A transfer is larger than the vault's balance at submission time.

    The balance may have moved since the caller's snapshot; re-snapshot and retry.
    """

    code = "insufficient_vault_balance"
    retryable = True


class InsufficientFundsError(SettlementError):
    """The paying wallet cannot cover the transfer."""

    code = "insufficient_funds"


class StaleSnapshotError(SettlementError):
    """The settlement was sized from state that has since changed."""

    code = "stale_snapshot"
    retryable = True


class MilestoneGateError(SettlementError):
    """Payout requested before the project's milestone gate is satisfied."""

    code = "milestone_gate"


class LedgerGuardError(SettlementError):
    """Any other guard failure (unknown account, missing vault, bad milestone)."""


class LedgerParamError(SettlementError):
    """A parameter is outside its domain (wrong type, negative, bad address)."""

    code = "param_domain"


class LedgerInvariantError(SettlementError):
    """A post-state violates one or more invariants."""

    code = "invariant"

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")
