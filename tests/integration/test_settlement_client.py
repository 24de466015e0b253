"""Tests for qfsettle/integration/operations.py: the operator client and retrying settlement."""

from __future__ import annotations

import logging
import threading
from typing import Any, List, Mapping

import pytest

from qfsettle.core.round_kernel import (
    Action,
    ActionParams,
    InsufficientFundsError,
    InvalidAmountError,
    LedgerGuardError,
    MilestoneGateError,
    RoundClosedError,
    StaleSnapshotError,
    UnauthorizedError,
)
from qfsettle.integration.config import SettlementConfig
from qfsettle.integration.ledger import InMemoryLedger
from qfsettle.integration.operations import SettlementClient, SettlementReceipt

SOL = 1_000_000_000
AUTH = "0x" + "a1" * 32
OWNER_A = "0x" + "b2" * 32
OWNER_B = "0x" + "b3" * 32
DONOR = "0x" + "c3" * 32
FUNDER = "0x" + "d4" * 32
STRANGER = "0x" + "e5" * 32


def _setup(config: SettlementConfig | None = None, *, ledger: Any = None):
    """Two projects of area 50 each (round area 100); project A holds a 1 SOL matching pool."""
    inner = InMemoryLedger()
    for who in (AUTH, OWNER_A, OWNER_B, DONOR, FUNDER):
        inner.airdrop(who, 10 * SOL)
    client = SettlementClient(inner, config)
    client.create_round(AUTH)
    rnd = client.round_address(AUTH)
    client.create_vault(AUTH, rnd)
    for owner in (OWNER_A, OWNER_B):
        client.create_project(owner, rnd, target_amount=1000, milestone_count=4)
        prj = client.project_address(rnd, owner)
        client.create_vault(owner, rnd, prj)
        client.contribute(DONOR, rnd, prj, 2500)
    prj_a = client.project_address(rnd, OWNER_A)
    client.fund_project_pool(FUNDER, rnd, prj_a, SOL)
    if ledger is not None:
        client = SettlementClient(ledger(inner), config)
    return inner, client, rnd, prj_a


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------

def test_settle_moves_quarter_of_pool() -> None:
    ledger, client, rnd, prj = _setup()
    receipt = client.settle_matching_for_project(OWNER_A, prj)
    assert receipt.delta == 250_000_000
    assert receipt.settled
    assert receipt.attempts == 1
    assert receipt.warnings == ()

    project = ledger.state.projects[prj]
    assert project.pool_distributed == 250_000_000
    assert project.matching_unlocked == 250_000_000
    assert ledger.get_vault_balance(project.vault) == 2500 + 250_000_000
    assert ledger.get_vault_balance(ledger.state.rounds[rnd].vault) == 750_000_000


def test_second_settle_is_a_noop() -> None:
    ledger, client, _rnd, prj = _setup()
    client.settle_matching_for_project(OWNER_A, prj)
    n_tx = len(ledger.history)
    receipt = client.settle_matching_for_project(OWNER_A, prj)
    assert receipt == SettlementReceipt(project=prj, delta=0, tx_id=None, attempts=1)
    assert not receipt.settled
    assert len(ledger.history) == n_tx


def test_area_max_scales_settlement() -> None:
    _ledger, client, rnd, prj = _setup()
    client.set_area_max(AUTH, rnd, 200)
    assert client.settle_matching_for_project(OWNER_A, prj).delta == 62_500_000


def test_projects_share_the_round_vault() -> None:
    ledger, client, rnd, prj = _setup()
    # Project B settles out of the same round vault first.
    prj_b = client.project_address(rnd, OWNER_B)
    client.fund_project_pool(FUNDER, rnd, prj_b, 100_000_000)
    client.settle_matching_for_project(OWNER_B, prj_b)  # alloc(B) = 25M
    vault_left = ledger.get_vault_balance(ledger.state.rounds[rnd].vault)
    assert vault_left == SOL + 100_000_000 - 25_000_000
    assert client.settle_matching_for_project(OWNER_A, prj).delta == 250_000_000


def test_closed_round_refuses_settlement() -> None:
    _ledger, client, rnd, prj = _setup()
    client.close_round(AUTH, rnd)
    with pytest.raises(RoundClosedError):
        client.settle_matching_for_project(OWNER_A, prj)


def test_stranger_cannot_settle() -> None:
    _ledger, client, _rnd, prj = _setup()
    with pytest.raises(UnauthorizedError):
        client.settle_matching_for_project(STRANGER, prj)


class _RacingLedger:
    """Lets a competing settlement land between our snapshot and our submit."""

    def __init__(self, inner: InMemoryLedger):
        self.inner = inner
        self.raced = False
        self.submitted: List[ActionParams] = []

    def get_round_snapshot(self, round_address: str) -> Mapping[str, Any]:
        return self.inner.get_round_snapshot(round_address)

    def get_project_snapshot(self, project_address: str) -> Mapping[str, Any]:
        return self.inner.get_project_snapshot(project_address)

    def get_vault_balance(self, vault_address: str) -> Any:
        return self.inner.get_vault_balance(vault_address)

    def vault_exists(self, address: str) -> bool:
        return self.inner.vault_exists(address)

    def submit(self, params: ActionParams) -> str:
        self.submitted.append(params)
        if params.action is Action.SETTLE_MATCHING and not self.raced:
            self.raced = True
            SettlementClient(self.inner).settle_matching_for_project(AUTH, params.project)
        return self.inner.submit(params)


def test_stale_snapshot_is_resnapshotted_not_resubmitted(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="qfsettle")
    ledger, client, _rnd, prj = _setup(ledger=_RacingLedger)
    receipt = client.settle_matching_for_project(OWNER_A, prj)

    # The competitor settled everything; our retry computed zero and submitted nothing.
    assert receipt.attempts == 2
    assert receipt.delta == 0
    assert receipt.tx_id is None
    assert ledger.state.projects[prj].pool_distributed == 250_000_000
    assert [p.action for p in client.ledger.submitted] == [Action.SETTLE_MATCHING]
    assert "stale_snapshot" in caplog.text


class _AlwaysStaleLedger(_RacingLedger):
    def submit(self, params: ActionParams) -> str:
        self.submitted.append(params)
        raise StaleSnapshotError("stale_snapshot")


def test_retry_budget_exhausted() -> None:
    _ledger, client, _rnd, prj = _setup(SettlementConfig(max_settle_attempts=3), ledger=_AlwaysStaleLedger)
    with pytest.raises(StaleSnapshotError):
        client.settle_matching_for_project(OWNER_A, prj)
    assert len(client.ledger.submitted) == 3


def test_concurrent_settlers_never_overpay() -> None:
    ledger, _client, _rnd, prj = _setup()
    receipts: List[SettlementReceipt] = []
    lock = threading.Lock()

    def settle() -> None:
        r = SettlementClient(ledger).settle_matching_for_project(OWNER_A, prj)
        with lock:
            receipts.append(r)

    threads = [threading.Thread(target=settle) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(r.delta for r in receipts) == 250_000_000
    assert len([r for r in receipts if r.settled]) == 1
    assert ledger.state.projects[prj].pool_distributed == 250_000_000


# ---------------------------------------------------------------------------
# Funding and administration
# ---------------------------------------------------------------------------

def test_fund_round_pool_and_resync() -> None:
    ledger, client, rnd, _prj = _setup()
    client.fund_round_pool(FUNDER, rnd, 2 * SOL)
    assert ledger.state.rounds[rnd].matching_pool == 2 * SOL
    client.set_matching_pool_to_vault_balance(AUTH, rnd)
    # The round vault also holds project A's 1 SOL matching pool.
    assert ledger.state.rounds[rnd].matching_pool == 3 * SOL


def test_zero_amount_rejected() -> None:
    _ledger, client, rnd, _prj = _setup()
    with pytest.raises(InvalidAmountError):
        client.fund_round_pool(FUNDER, rnd, 0)


def test_unfunded_wallet_rejected() -> None:
    _ledger, client, rnd, _prj = _setup()
    with pytest.raises(InsufficientFundsError):
        client.fund_round_pool(STRANGER, rnd, 1)


def test_non_authority_admin_rejected() -> None:
    _ledger, client, rnd, _prj = _setup()
    with pytest.raises(UnauthorizedError):
        client.set_area_max(STRANGER, rnd, 5)


def test_funding_closed_round_rejected() -> None:
    _ledger, client, rnd, prj = _setup()
    client.close_round(AUTH, rnd)
    with pytest.raises(RoundClosedError):
        client.fund_project_pool(FUNDER, rnd, prj, 1)


def test_vault_rent_from_config() -> None:
    ledger, client, rnd, _prj = _setup(SettlementConfig(vault_rent_lamports=5_000))
    assert ledger.get_vault_balance(ledger.state.rounds[rnd].vault) == SOL + 5_000
    assert ledger.balance(AUTH) == 10 * SOL - 5_000


def test_create_vault_twice_is_harmless() -> None:
    ledger, client, rnd, _prj = _setup(SettlementConfig(vault_rent_lamports=5_000))
    client.create_vault(AUTH, rnd)
    assert ledger.balance(AUTH) == 10 * SOL - 5_000


def test_prefunded_vault_address_pays_no_rent() -> None:
    ledger = InMemoryLedger()
    client = SettlementClient(ledger, SettlementConfig(vault_rent_lamports=5_000))
    ledger.airdrop(AUTH, SOL)
    client.create_round(AUTH)
    rnd = client.round_address(AUTH)
    vault = ledger.state.rounds[rnd].vault
    ledger.airdrop(vault, 7)
    client.create_vault(AUTH, rnd)
    assert ledger.vault_exists(vault)
    assert ledger.get_vault_balance(vault) == 7
    assert ledger.balance(AUTH) == SOL


def test_milestone_errors_surface_as_guard_errors() -> None:
    _ledger, client, _rnd, prj = _setup()
    with pytest.raises(LedgerGuardError) as exc:
        client.complete_milestone(OWNER_A, prj, 9)
    assert exc.value.code == "milestone:out_of_bounds"


# ---------------------------------------------------------------------------
# Payouts
# ---------------------------------------------------------------------------

def test_payout_waits_for_first_milestone() -> None:
    ledger, client, _rnd, prj = _setup()
    with pytest.raises(MilestoneGateError):
        client.distribute_funds_to_owner(OWNER_A, prj, 100)

    client.complete_milestone(OWNER_A, prj, 0)
    client.distribute_funds_to_owner(OWNER_A, prj, 100)
    assert ledger.state.projects[prj].withdrawn == 100
    assert ledger.balance(OWNER_A) == 10 * SOL + 100


def test_payout_gate_can_be_disabled() -> None:
    ledger, client, _rnd, prj = _setup(SettlementConfig(enforce_milestone_gate=False))
    client.distribute_funds_to_owner(OWNER_A, prj, 100)
    assert ledger.state.projects[prj].withdrawn == 100


def test_payout_includes_settled_matching() -> None:
    ledger, client, _rnd, prj = _setup(SettlementConfig(enforce_milestone_gate=False))
    client.settle_matching_for_project(OWNER_A, prj)
    client.distribute_funds_to_owner(OWNER_A, prj, 2500 + 250_000_000)
    assert ledger.get_vault_balance(ledger.state.projects[prj].vault) == 0


def test_payout_by_stranger_rejected() -> None:
    _ledger, client, _rnd, prj = _setup(SettlementConfig(enforce_milestone_gate=False))
    with pytest.raises(UnauthorizedError):
        client.distribute_funds_to_owner(STRANGER, prj, 1)


def test_quote_through_client() -> None:
    _ledger, client, _rnd, prj = _setup()
    assert client.quote(prj)["expectedSettlementLamports"] == "250000000"
