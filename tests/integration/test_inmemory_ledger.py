"""Tests for qfsettle/integration/ledger.py: the in-memory reference ledger."""

from __future__ import annotations

import threading

import pytest

from qfsettle.core.round_kernel import Action, ActionParams, Event, LedgerGuardError, UnauthorizedError
from qfsettle.integration.ledger import InMemoryLedger, tx_id_for
from qfsettle.state.addresses import is_address

SOL = 1_000_000_000
AUTH = "0x" + "a1" * 32
OWNER = "0x" + "b2" * 32
FUNDER = "0x" + "d4" * 32


def _ledger_with_round() -> tuple[InMemoryLedger, str]:
    ledger = InMemoryLedger()
    ledger.airdrop(FUNDER, 100 * SOL)
    ledger.submit(ActionParams(action=Action.CREATE_ROUND, signer=AUTH))
    rnd = ledger.round_address(AUTH)
    ledger.submit(ActionParams(action=Action.CREATE_VAULT, signer=AUTH, round=rnd))
    return ledger, rnd


def test_submit_returns_unique_tx_ids_and_records_history() -> None:
    ledger, rnd = _ledger_with_round()
    tx1 = ledger.submit(ActionParams(action=Action.FUND_ROUND_POOL, signer=FUNDER, round=rnd, amount=SOL))
    tx2 = ledger.submit(ActionParams(action=Action.FUND_ROUND_POOL, signer=FUNDER, round=rnd, amount=SOL))
    assert tx1 != tx2
    assert is_address(tx1)

    history = ledger.history
    assert [tx.seq for tx in history] == [0, 1, 2, 3]
    assert history[-1].tx_id == tx2
    assert history[-1].effect.event == Event.ROUND_POOL_FUNDED
    assert tx_id_for(3, history[-1].params) == tx2


def test_rejected_submit_leaves_state_untouched() -> None:
    ledger, rnd = _ledger_with_round()
    before = ledger.state_commitment()
    with pytest.raises(UnauthorizedError):
        ledger.submit(ActionParams(action=Action.SET_AREA_MAX, signer=OWNER, round=rnd, area_max=5))
    assert ledger.state_commitment() == before
    assert len(ledger.history) == 2


def test_snapshots_and_balances() -> None:
    ledger, rnd = _ledger_with_round()
    ledger.submit(ActionParams(action=Action.FUND_ROUND_POOL, signer=FUNDER, round=rnd, amount=3 * SOL))
    snap = ledger.get_round_snapshot(rnd)
    assert snap["matchingPool"] == str(3 * SOL)
    assert snap["isActive"] is True
    assert ledger.get_vault_balance(snap["vault"]) == 3 * SOL
    assert ledger.vault_exists(snap["vault"]) is True
    assert ledger.vault_exists(FUNDER) is False
    assert ledger.balance(FUNDER) == 97 * SOL


def test_unknown_accounts() -> None:
    ledger = InMemoryLedger()
    with pytest.raises(LedgerGuardError):
        ledger.get_round_snapshot(AUTH)
    with pytest.raises(LedgerGuardError):
        ledger.get_project_snapshot(AUTH)


def test_airdrop_rejects_non_positive() -> None:
    ledger = InMemoryLedger()
    with pytest.raises(ValueError):
        ledger.airdrop(FUNDER, 0)
    with pytest.raises(ValueError):
        ledger.airdrop(FUNDER, True)


def test_commitment_is_deterministic_and_sensitive() -> None:
    a, rnd_a = _ledger_with_round()
    b, rnd_b = _ledger_with_round()
    assert rnd_a == rnd_b
    assert a.state_commitment() == b.state_commitment()

    b.submit(ActionParams(action=Action.SET_AREA_MAX, signer=AUTH, round=rnd_b, area_max=1))
    assert a.state_commitment() != b.state_commitment()


def test_export_restores_identical_ledger() -> None:
    ledger, _rnd = _ledger_with_round()
    restored = InMemoryLedger.from_export(ledger.export_state())
    assert restored.state == ledger.state
    assert restored.state_commitment() == ledger.state_commitment()


def test_program_id_scopes_addresses() -> None:
    other = InMemoryLedger("0x" + "ff" * 32)
    assert other.round_address(AUTH) != InMemoryLedger().round_address(AUTH)


def test_concurrent_funding_is_serialized() -> None:
    ledger, rnd = _ledger_with_round()
    n_threads, per_thread = 8, 25

    def fund() -> None:
        for _ in range(per_thread):
            ledger.submit(ActionParams(action=Action.FUND_ROUND_POOL, signer=FUNDER, round=rnd, amount=1_000))

    threads = [threading.Thread(target=fund) for _ in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    expected = n_threads * per_thread * 1_000
    snap = ledger.get_round_snapshot(rnd)
    assert snap["matchingPool"] == str(expected)
    assert ledger.get_vault_balance(snap["vault"]) == expected
    assert len({tx.tx_id for tx in ledger.history}) == len(ledger.history)
