"""
Operator client for funding rounds.

`SettlementClient` turns operator intents into ledger instructions. Each
method returns the ledger's transaction id, except settlement, which returns
a `SettlementReceipt` because "nothing to settle" is a normal outcome and is
never submitted.

Settlement sizing always goes snapshot -> `compute_settlement` -> submit. On a
retryable rejection (stale snapshot, vault balance moved) the client takes a
fresh snapshot and recomputes; a previously computed delta is never resent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..core.allocation import compute_settlement
from ..core.milestones import milestone_gate_satisfied
from ..core.round_kernel import (
    Action,
    ActionParams,
    MilestoneGateError,
    RoundClosedError,
    SettlementError,
)
from ..state.addresses import Address, derive_project_address, derive_round_address, normalize_address
from .config import SettlementConfig
from .ledger import LedgerClient
from .snapshots import load_settlement_view, parse_project_snapshot, settlement_quote


_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementReceipt:
    """
    Outcome of one `settle_matching_for_project` call.

    Attributes:
        project: Project address
        delta: Lamports moved to the project vault (0 for a no-op)
        tx_id: Ledger transaction id, or None when nothing was submitted
        attempts: Snapshots taken, including the successful one
        warnings: Malformed snapshot values seen on the final attempt
    """

    project: Address
    delta: int
    tx_id: Optional[str]
    attempts: int
    warnings: Tuple[str, ...] = ()

    @property
    def settled(self) -> bool:
        return self.tx_id is not None


class SettlementClient:
    def __init__(self, ledger: LedgerClient, config: Optional[SettlementConfig] = None):
        self.ledger = ledger
        self.config = config if config is not None else SettlementConfig()

    # -- Addresses ----------------------------------------------------------

    def round_address(self, authority: Address, round_seed: int = 0) -> Address:
        return derive_round_address(authority, round_seed, program_id=self.config.program_id)

    def project_address(self, round_address: Address, owner: Address) -> Address:
        return derive_project_address(round_address, owner, program_id=self.config.program_id)

    # -- Submission ---------------------------------------------------------

    def _submit(self, params: ActionParams) -> str:
        try:
            tx_id = self.ledger.submit(params)
        except SettlementError as exc:
            _log.warning("%s rejected: %s (%s)", params.action.value, exc.code, exc)
            raise
        _log.info("%s submitted tx=%s amount=%d", params.action.value, tx_id, params.amount)
        return tx_id

    # -- Round lifecycle ----------------------------------------------------

    def create_round(self, authority: Address, *, round_seed: int = 0, initial_matching_pool: int = 0) -> str:
        return self._submit(
            ActionParams(
                action=Action.CREATE_ROUND,
                signer=authority,
                round_seed=round_seed,
                amount=initial_matching_pool,
            )
        )

    def create_project(
        self,
        owner: Address,
        round_address: Address,
        *,
        target_amount: int = 0,
        milestone_count: int = 0,
    ) -> str:
        return self._submit(
            ActionParams(
                action=Action.CREATE_PROJECT,
                signer=owner,
                round=round_address,
                target_amount=target_amount,
                milestone_count=milestone_count,
            )
        )

    def create_vault(self, payer: Address, round_address: Address, project_address: Address = "") -> str:
        """Create the round vault, or the project vault when `project_address` is given. Idempotent."""
        return self._submit(
            ActionParams(
                action=Action.CREATE_VAULT,
                signer=payer,
                round=round_address,
                project=project_address,
                amount=self.config.vault_rent_lamports,
            )
        )

    def close_round(self, authority: Address, round_address: Address) -> str:
        return self._submit(ActionParams(action=Action.CLOSE_ROUND, signer=authority, round=round_address))

    # -- Funding ------------------------------------------------------------

    def contribute(self, contributor: Address, round_address: Address, project_address: Address, amount: int) -> str:
        return self._submit(
            ActionParams(
                action=Action.CONTRIBUTE,
                signer=contributor,
                round=round_address,
                project=project_address,
                amount=amount,
            )
        )

    def fund_round_pool(self, funder: Address, round_address: Address, amount: int) -> str:
        return self._submit(
            ActionParams(action=Action.FUND_ROUND_POOL, signer=funder, round=round_address, amount=amount)
        )

    def fund_project_pool(self, funder: Address, round_address: Address, project_address: Address, amount: int) -> str:
        return self._submit(
            ActionParams(
                action=Action.FUND_PROJECT_POOL,
                signer=funder,
                round=round_address,
                project=project_address,
                amount=amount,
            )
        )

    def set_matching_pool_to_vault_balance(self, authority: Address, round_address: Address) -> str:
        return self._submit(
            ActionParams(action=Action.SET_MATCHING_POOL_TO_VAULT_BALANCE, signer=authority, round=round_address)
        )

    def set_area_max(self, authority: Address, round_address: Address, area_max: int) -> str:
        return self._submit(
            ActionParams(action=Action.SET_AREA_MAX, signer=authority, round=round_address, area_max=area_max)
        )

    # -- Settlement ---------------------------------------------------------

    def quote(self, project_address: Address) -> Dict[str, Any]:
        return settlement_quote(self.ledger, project_address, program_id=self.config.program_id)

    def settle_matching_for_project(self, signer: Address, project_address: Address) -> SettlementReceipt:
        """
        Move the project's currently earned, unpaid matching into its vault.

        Returns a receipt with `tx_id=None` when the computed delta is zero.
        Raises `RoundClosedError` for a closed round and `SnapshotError` when the
        project snapshot names no readable round. Re-raises the last retryable
        rejection once `max_settle_attempts` is exhausted.
        """
        project_address = normalize_address(project_address, name="project")
        attempt = 0
        while True:
            attempt += 1
            view = load_settlement_view(self.ledger, project_address, program_id=self.config.program_id)
            warnings = tuple(issue.describe() for issue in view.issues)
            if not view.round.is_active:
                raise RoundClosedError(f"round {view.project.round} is closed")

            result = compute_settlement(view.settlement_input())
            if not result.can_settle:
                _log.info(
                    "nothing to settle for project %s (alloc=%d unlocked=%d pool_remaining=%d vault=%d)",
                    project_address,
                    result.alloc,
                    view.project.matching_unlocked,
                    result.pool_remaining,
                    view.round_vault_balance,
                )
                return SettlementReceipt(project_address, 0, None, attempt, warnings)

            params = ActionParams(
                action=Action.SETTLE_MATCHING,
                signer=signer,
                round=view.project.round,
                project=project_address,
                amount=result.delta,
                expected_pool_distributed=view.project.pool_distributed,
            )
            try:
                tx_id = self._submit(params)
            except SettlementError as exc:
                if not exc.retryable or attempt >= self.config.max_settle_attempts:
                    raise
                _log.warning(
                    "settlement for project %s hit %s on attempt %d/%d; re-snapshotting",
                    project_address,
                    exc.code,
                    attempt,
                    self.config.max_settle_attempts,
                )
                continue
            return SettlementReceipt(project_address, result.delta, tx_id, attempt, warnings)

    # -- Milestones and payouts ---------------------------------------------

    def complete_milestone(self, owner: Address, project_address: Address, milestone_index: int) -> str:
        return self._submit(
            ActionParams(
                action=Action.COMPLETE_MILESTONE,
                signer=owner,
                project=project_address,
                milestone_index=milestone_index,
            )
        )

    def distribute_funds_to_owner(self, owner: Address, project_address: Address, amount: int) -> str:
        if self.config.enforce_milestone_gate:
            project = parse_project_snapshot(self.ledger.get_project_snapshot(project_address)).value
            if not milestone_gate_satisfied(project.milestones):
                _log.warning("payout for project %s blocked by milestone gate", project_address)
                raise MilestoneGateError(f"project {project_address}: first milestone not achieved")
        return self._submit(
            ActionParams(
                action=Action.DISTRIBUTE_TO_OWNER,
                signer=owner,
                project=project_address,
                amount=amount,
            )
        )
