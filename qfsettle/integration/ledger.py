"""
Ledger access for the settlement client.

`LedgerClient` is the narrow surface the client needs from a ledger: account
snapshots, vault balances and instruction submission. `InMemoryLedger` is the
reference implementation. It serializes `submit` under a lock and runs the
round kernel against the current state, so the kernel's compare-and-set on
`pool_distributed` is atomic with the transfer it guards.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from ..core.round_kernel import (
    ActionParams,
    Effect,
    LedgerGuardError,
    LedgerState,
    initial_state,
    state_from_dict,
    state_to_dict,
    step_or_raise,
)
from ..core.round_kernel.state import STATE_VERSION
from ..state.addresses import (
    DEFAULT_PROGRAM_ID,
    Address,
    derive_project_address,
    derive_round_address,
    normalize_address,
)
from ..state.canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex
from .snapshots import project_snapshot_from_account, round_snapshot_from_account


_log = logging.getLogger(__name__)


class LedgerClient(Protocol):
    """What the settlement client needs from a ledger."""

    def get_round_snapshot(self, round_address: str) -> Mapping[str, Any]:
        """Round account as camelCase fields (numeric values may be decimal strings)."""
        ...

    def get_project_snapshot(self, project_address: str) -> Mapping[str, Any]:
        ...

    def get_vault_balance(self, vault_address: str) -> Any:
        ...

    def vault_exists(self, address: str) -> bool:
        ...

    def submit(self, params: ActionParams) -> str:
        """Apply one instruction atomically. Returns a transaction id or raises `SettlementError`."""
        ...


@dataclass(frozen=True)
class LedgerTx:
    seq: int
    tx_id: str
    params: ActionParams
    effect: Effect


def params_to_dict(params: ActionParams) -> Dict[str, Any]:
    out: Dict[str, Any] = {f.name: getattr(params, f.name) for f in fields(params)}
    out["action"] = params.action.value
    return out


def tx_id_for(seq: int, params: ActionParams) -> str:
    payload = domain_sep_bytes("tx") + canonical_json_bytes({"seq": seq, "params": params_to_dict(params)})
    return sha256_hex(payload)


class InMemoryLedger:
    """Process-local ledger. Every mutation goes through `submit` or `airdrop`."""

    def __init__(self, program_id: Address = DEFAULT_PROGRAM_ID, *, state: Optional[LedgerState] = None):
        self._lock = threading.Lock()
        self._state = state if state is not None else initial_state(program_id)
        self._history: List[LedgerTx] = []

    @property
    def program_id(self) -> Address:
        return self._state.program_id

    @property
    def state(self) -> LedgerState:
        with self._lock:
            return self._state

    @property
    def history(self) -> Tuple[LedgerTx, ...]:
        with self._lock:
            return tuple(self._history)

    # -- Addresses ----------------------------------------------------------

    def round_address(self, authority: Address, round_seed: int = 0) -> Address:
        return derive_round_address(authority, round_seed, program_id=self.program_id)

    def project_address(self, round_address: Address, owner: Address) -> Address:
        return derive_project_address(round_address, owner, program_id=self.program_id)

    # -- Queries ------------------------------------------------------------

    def get_round_snapshot(self, round_address: str) -> Mapping[str, Any]:
        address = normalize_address(round_address, name="round")
        round_ = self.state.rounds.get(address)
        if round_ is None:
            raise LedgerGuardError(f"unknown round {address}")
        return round_snapshot_from_account(round_)

    def get_project_snapshot(self, project_address: str) -> Mapping[str, Any]:
        address = normalize_address(project_address, name="project")
        project = self.state.projects.get(address)
        if project is None:
            raise LedgerGuardError(f"unknown project {address}")
        return project_snapshot_from_account(project)

    def get_vault_balance(self, vault_address: str) -> int:
        return self.balance(vault_address)

    def vault_exists(self, address: str) -> bool:
        return normalize_address(address, name="vault") in self.state.vaults

    def balance(self, address: str) -> int:
        return self.state.balances.get(normalize_address(address))

    # -- Mutations ----------------------------------------------------------

    def airdrop(self, address: str, lamports: int) -> None:
        """Credit lamports from outside the program (wallet funding, direct vault transfers)."""
        address = normalize_address(address)
        if not isinstance(lamports, int) or isinstance(lamports, bool) or lamports <= 0:
            raise ValueError(f"airdrop amount must be a positive int: {lamports!r}")
        with self._lock:
            balances = self._state.balances.copy()
            balances.add(address, lamports)
            self._state = replace(self._state, balances=balances)
        _log.debug("airdrop %d lamports to %s", lamports, address)

    def submit(self, params: ActionParams) -> str:
        with self._lock:
            result = step_or_raise(self._state, params)
            assert result.state is not None and result.effect is not None
            seq = len(self._history)
            tx_id = tx_id_for(seq, params)
            self._history.append(LedgerTx(seq=seq, tx_id=tx_id, params=params, effect=result.effect))
            self._state = result.state
        _log.debug("applied %s seq=%d tx=%s", params.action.value, seq, tx_id)
        return tx_id

    # -- Export -------------------------------------------------------------

    def export_state(self) -> Dict[str, Any]:
        return state_to_dict(self.state)

    def state_commitment(self) -> str:
        payload = domain_sep_bytes("ledger_state", version=STATE_VERSION) + canonical_json_bytes(self.export_state())
        return sha256_hex(payload)

    @classmethod
    def from_export(cls, data: Mapping[str, Any]) -> "InMemoryLedger":
        state = state_from_dict(data)
        return cls(state.program_id, state=state)
