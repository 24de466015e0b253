"""State construction and serialization for `round_kernel`.

`state_to_dict()` produces a deterministic, JSON-able dict (entries sorted by
address) suitable for `canonical_json_bytes`; `state_from_dict()` inverts it.

Round-trip property (tested): `state_from_dict(state_to_dict(s)) == s`.
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Mapping

from ...state.accounts import FundingRound, Milestone, Project, RoundStatus
from ...state.addresses import DEFAULT_PROGRAM_ID, Address, normalize_address
from ...state.lamports import LamportTable
from .types import LedgerState

STATE_VERSION = 1

_ROUND_INT_FIELDS: tuple[str, ...] = tuple(
    f.name for f in fields(FundingRound) if f.name not in ("address", "authority", "vault", "status")
)
_PROJECT_INT_FIELDS: tuple[str, ...] = tuple(
    f.name for f in fields(Project) if f.name not in ("address", "owner", "round", "vault", "milestones")
)


def initial_state(program_id: Address = DEFAULT_PROGRAM_ID) -> LedgerState:
    """Empty ledger: no rounds (every round is uninitialized), no balances."""
    return LedgerState(program_id=normalize_address(program_id, name="program_id"))


def _require_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def state_to_dict(state: LedgerState) -> dict[str, Any]:
    rounds = []
    for address in sorted(state.rounds):
        r = state.rounds[address]
        entry: dict[str, Any] = {
            "address": r.address,
            "authority": r.authority,
            "vault": r.vault,
            "status": r.status.value,
        }
        entry.update({name: getattr(r, name) for name in _ROUND_INT_FIELDS})
        rounds.append(entry)

    projects = []
    for address in sorted(state.projects):
        p = state.projects[address]
        entry = {
            "address": p.address,
            "owner": p.owner,
            "round": p.round,
            "vault": p.vault,
            "milestones": [{"amount": m.amount, "is_achieved": m.is_achieved} for m in p.milestones],
        }
        entry.update({name: getattr(p, name) for name in _PROJECT_INT_FIELDS})
        projects.append(entry)

    balances = [
        {"address": address, "lamports": amount}
        for address, amount in sorted(state.balances.get_all_balances().items())
    ]
    contributions = [
        {"project": project, "contributor": contributor, "total": total}
        for (project, contributor), total in sorted(state.contributions.items())
    ]
    return {
        "version": STATE_VERSION,
        "program_id": state.program_id,
        "rounds": rounds,
        "projects": projects,
        "balances": balances,
        "vaults": sorted(state.vaults),
        "contributions": contributions,
    }


def state_from_dict(d: Mapping[str, Any]) -> LedgerState:
    """Deserialize a dict produced by `state_to_dict`. Raises on malformed input."""
    version = d.get("version", STATE_VERSION)
    if version != STATE_VERSION:
        raise ValueError(f"unsupported state version: {version!r}")

    rounds: dict[Address, FundingRound] = {}
    for entry in d.get("rounds", []):
        r = FundingRound(
            address=normalize_address(entry["address"], name="round.address"),
            authority=normalize_address(entry["authority"], name="round.authority"),
            vault=normalize_address(entry["vault"], name="round.vault"),
            status=RoundStatus(entry["status"]),
            **{name: _require_int(entry.get(name, 0), name=f"round.{name}") for name in _ROUND_INT_FIELDS},
        )
        if r.address in rounds:
            raise ValueError("duplicate round entry (address)")
        rounds[r.address] = r

    projects: dict[Address, Project] = {}
    for entry in d.get("projects", []):
        milestones = tuple(
            Milestone(amount=_require_int(m["amount"], name="milestone.amount"), is_achieved=bool(m["is_achieved"]))
            for m in entry.get("milestones", [])
        )
        p = Project(
            address=normalize_address(entry["address"], name="project.address"),
            owner=normalize_address(entry["owner"], name="project.owner"),
            round=normalize_address(entry["round"], name="project.round"),
            vault=normalize_address(entry["vault"], name="project.vault"),
            milestones=milestones,
            **{name: _require_int(entry.get(name, 0), name=f"project.{name}") for name in _PROJECT_INT_FIELDS},
        )
        if p.address in projects:
            raise ValueError("duplicate project entry (address)")
        projects[p.address] = p

    balances = LamportTable()
    for entry in d.get("balances", []):
        address = normalize_address(entry["address"], name="balance.address")
        if balances.get(address):
            raise ValueError("duplicate balance entry (address)")
        balances.set(address, _require_int(entry["lamports"], name="balance.lamports"))

    contributions: dict[tuple[Address, Address], int] = {}
    for entry in d.get("contributions", []):
        key = (
            normalize_address(entry["project"], name="contribution.project"),
            normalize_address(entry["contributor"], name="contribution.contributor"),
        )
        if key in contributions:
            raise ValueError("duplicate contribution entry (project, contributor)")
        contributions[key] = _require_int(entry["total"], name="contribution.total")

    return LedgerState(
        rounds=rounds,
        projects=projects,
        balances=balances,
        vaults=frozenset(normalize_address(v, name="vault") for v in d.get("vaults", [])),
        contributions=contributions,
        program_id=normalize_address(d.get("program_id", DEFAULT_PROGRAM_ID), name="program_id"),
    )
