"""
Round/project snapshot adapters and the settlement read API.

Ledger queries hand back camelCase mappings whose numeric fields may be
decimal strings (the transport format for u64 values). Parsing never raises:
a malformed field becomes 0 and is reported as a `MalformedSnapshotValue`,
logged at WARNING and returned alongside the parsed value so the caller can
surface it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Generic, List, Mapping, Tuple, TypeVar

from ..core.allocation import SettlementInput, compute_settlement
from ..core.ledger_math import lamports_to_sol_str, parse_uint_checked
from ..core.round_kernel.errors import SettlementError
from ..state.accounts import FundingRound, Milestone, Project
from ..state.addresses import (
    DEFAULT_PROGRAM_ID,
    derive_project_vault_address,
    derive_round_vault_address,
    is_address,
    normalize_address,
)

if TYPE_CHECKING:
    from .ledger import LedgerClient


_log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class MalformedSnapshotValue:
    """A snapshot field that could not be parsed and was read as 0."""

    field: str
    raw: Any

    def describe(self) -> str:
        if self.raw is None:
            return f"{self.field}: missing"
        return f"{self.field}: malformed value {self.raw!r}"


@dataclass(frozen=True)
class ParsedSnapshot(Generic[T]):
    value: T
    issues: Tuple[MalformedSnapshotValue, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.issues


class SnapshotError(SettlementError):
    """A snapshot is too damaged to size a settlement from."""

    code = "malformed_snapshot"

    def __init__(self, message: str, issues: Tuple[MalformedSnapshotValue, ...] = ()) -> None:
        self.issues = issues
        super().__init__(message)


@dataclass(frozen=True)
class RoundSnapshot:
    matching_pool: int
    area: int
    area_max: int
    is_active: bool
    authority: str = ""
    vault: str = ""


@dataclass(frozen=True)
class ProjectSnapshot:
    area: int
    matching_pool: int
    pool_distributed: int
    matching_unlocked: int
    current_funding: int
    withdrawn: int = 0
    owner: str = ""
    round: str = ""
    vault: str = ""
    milestones: Tuple[Milestone, ...] = ()


class _IssueCollector:
    def __init__(self, kind: str) -> None:
        self.kind = kind
        self.issues: List[MalformedSnapshotValue] = []

    def report(self, field: str, raw: Any) -> None:
        issue = MalformedSnapshotValue(field=field, raw=raw)
        _log.warning("malformed %s snapshot value %s", self.kind, issue.describe())
        self.issues.append(issue)

    def uint(self, snap: Mapping[str, Any], key: str, *, required: bool = True) -> int:
        if key not in snap:
            if required:
                self.report(key, None)
            return 0
        raw = snap[key]
        value, ok = parse_uint_checked(raw)
        if not ok:
            self.report(key, raw)
        return value

    def address(self, snap: Mapping[str, Any], key: str) -> str:
        raw = snap.get(key)
        if raw is None:
            return ""
        if not is_address(raw):
            self.report(key, raw)
            return ""
        return normalize_address(raw, name=key)

    def flag(self, snap: Mapping[str, Any], key: str) -> bool:
        raw = snap.get(key)
        if isinstance(raw, bool):
            return raw
        # Fail closed: an unreadable status is treated as inactive.
        self.report(key, raw)
        return False

    def vault(self, ledger: "LedgerClient", derived: str, reported: str, *, field: str) -> str:
        """Check a vault against its derived address. The derived address always wins."""
        if reported and reported != derived:
            self.report(field, reported)
        elif not ledger.vault_exists(derived):
            self.report(field, None)
        return derived


def parse_round_snapshot(snap: Mapping[str, Any]) -> ParsedSnapshot[RoundSnapshot]:
    c = _IssueCollector("round")
    value = RoundSnapshot(
        matching_pool=c.uint(snap, "matchingPool"),
        area=c.uint(snap, "area"),
        area_max=c.uint(snap, "areaMax", required=False),
        is_active=c.flag(snap, "isActive"),
        authority=c.address(snap, "authority"),
        vault=c.address(snap, "vault"),
    )
    return ParsedSnapshot(value=value, issues=tuple(c.issues))


def parse_project_snapshot(snap: Mapping[str, Any]) -> ParsedSnapshot[ProjectSnapshot]:
    c = _IssueCollector("project")
    milestones: List[Milestone] = []
    raw_milestones = snap.get("milestones", [])
    if not isinstance(raw_milestones, list):
        c.report("milestones", raw_milestones)
        raw_milestones = []
    for i, entry in enumerate(raw_milestones):
        if not isinstance(entry, Mapping):
            c.report(f"milestones[{i}]", entry)
            continue
        amount, ok = parse_uint_checked(entry.get("amount"))
        if not ok:
            c.report(f"milestones[{i}].amount", entry.get("amount"))
        milestones.append(Milestone(amount=amount, is_achieved=entry.get("isAchieved") is True))

    value = ProjectSnapshot(
        area=c.uint(snap, "area"),
        matching_pool=c.uint(snap, "matchingPool"),
        pool_distributed=c.uint(snap, "poolDistributed"),
        matching_unlocked=c.uint(snap, "matchingUnlocked"),
        current_funding=c.uint(snap, "currentFunding"),
        withdrawn=c.uint(snap, "withdrawn", required=False),
        owner=c.address(snap, "owner"),
        round=c.address(snap, "round"),
        vault=c.address(snap, "vault"),
        milestones=tuple(milestones),
    )
    return ParsedSnapshot(value=value, issues=tuple(c.issues))


def round_snapshot_from_account(round_: FundingRound) -> Dict[str, Any]:
    """Render a round account the way a ledger query returns it."""
    return {
        "address": round_.address,
        "authority": round_.authority,
        "vault": round_.vault,
        "matchingPool": str(round_.matching_pool),
        "area": str(round_.area),
        "areaMax": str(round_.area_max),
        "isActive": round_.is_active,
        "totalDonations": str(round_.total_donations),
        "contributorCount": str(round_.contributor_count),
    }


def project_snapshot_from_account(project: Project) -> Dict[str, Any]:
    return {
        "address": project.address,
        "owner": project.owner,
        "round": project.round,
        "vault": project.vault,
        "area": str(project.area),
        "matchingPool": str(project.matching_pool),
        "poolDistributed": str(project.pool_distributed),
        "matchingUnlocked": str(project.matching_unlocked),
        "currentFunding": str(project.current_funding),
        "withdrawn": str(project.withdrawn),
        "targetAmount": str(project.target_amount),
        "milestones": [{"amount": str(m.amount), "isAchieved": m.is_achieved} for m in project.milestones],
    }


def settlement_input_from_snapshots(
    round_snap: RoundSnapshot, project_snap: ProjectSnapshot, vault_balance: int
) -> SettlementInput:
    return SettlementInput(
        pool_total=project_snap.matching_pool,
        round_area=round_snap.area,
        round_area_max=round_snap.area_max,
        project_area=project_snap.area,
        already_unlocked=project_snap.matching_unlocked,
        vault_balance=vault_balance,
        pool_distributed=project_snap.pool_distributed,
    )


@dataclass(frozen=True)
class SettlementView:
    """Everything one settlement decision was sized from."""

    round: RoundSnapshot
    project: ProjectSnapshot
    round_vault: str
    project_vault: str
    round_vault_balance: int
    project_vault_balance: int
    issues: Tuple[MalformedSnapshotValue, ...]

    def settlement_input(self) -> SettlementInput:
        return settlement_input_from_snapshots(self.round, self.project, self.round_vault_balance)


def _vault_balance(ledger: "LedgerClient", vault: str, *, field: str, c: _IssueCollector) -> int:
    raw = ledger.get_vault_balance(vault)
    value, ok = parse_uint_checked(raw)
    if not ok:
        c.report(field, raw)
    return value


def load_settlement_view(
    ledger: "LedgerClient", project_address: str, *, program_id: str = DEFAULT_PROGRAM_ID
) -> SettlementView:
    """
    Snapshot a project, its round and both vault balances.

    Vault addresses are derived from the round and project addresses under
    `program_id`; a vault field carried by a snapshot is only cross-checked.
    Raises `SnapshotError` when the project's round cannot be read.
    """
    project_address = normalize_address(project_address, name="project")
    project = parse_project_snapshot(ledger.get_project_snapshot(project_address))
    if not project.value.round:
        raise SnapshotError(f"project {project_address} has no readable round address", project.issues)
    round_address = project.value.round
    round_ = parse_round_snapshot(ledger.get_round_snapshot(round_address))

    c = _IssueCollector("vault")
    round_vault = c.vault(
        ledger,
        derive_round_vault_address(round_address, program_id=program_id),
        round_.value.vault,
        field="roundVault",
    )
    project_vault = c.vault(
        ledger,
        derive_project_vault_address(project_address, program_id=program_id),
        project.value.vault,
        field="projectVault",
    )
    round_vault_balance = _vault_balance(ledger, round_vault, field="roundVaultBalance", c=c)
    project_vault_balance = _vault_balance(ledger, project_vault, field="projectVaultBalance", c=c)
    return SettlementView(
        round=round_.value,
        project=project.value,
        round_vault=round_vault,
        project_vault=project_vault,
        round_vault_balance=round_vault_balance,
        project_vault_balance=project_vault_balance,
        issues=round_.issues + project.issues + tuple(c.issues),
    )


def settlement_quote(
    ledger: "LedgerClient", project_address: str, *, program_id: str = DEFAULT_PROGRAM_ID
) -> Dict[str, Any]:
    """
    Read-only settlement preview for one project.

    Lamport amounts are decimal strings; `*Sol` fields are display strings.
    `canSettle` is False for a closed round even when a delta is pending.
    """
    view = load_settlement_view(ledger, project_address, program_id=program_id)
    result = compute_settlement(view.settlement_input())

    warnings = [issue.describe() for issue in view.issues]
    if not view.round.is_active:
        warnings.append("round is closed")

    return {
        "project": normalize_address(project_address, name="project"),
        "round": view.project.round,
        "expectedSettlementLamports": str(result.delta),
        "expectedSettlementSol": lamports_to_sol_str(result.delta),
        "canSettle": result.can_settle and view.round.is_active,
        "idealAllocationLamports": str(result.alloc),
        "matchingUnlockedLamports": str(view.project.matching_unlocked),
        "projectPoolLamports": str(view.project.matching_pool),
        "projectPoolRemainingLamports": str(result.pool_remaining),
        "projectArea": str(view.project.area),
        "roundArea": str(view.round.area),
        "roundAreaMax": str(view.round.area_max),
        "denominatorArea": str(result.denom_area),
        "roundVault": view.round_vault,
        "projectVault": view.project_vault,
        "roundVaultLamports": str(view.round_vault_balance),
        "roundVaultSol": lamports_to_sol_str(view.round_vault_balance),
        "projectVaultLamports": str(view.project_vault_balance),
        "projectVaultSol": lamports_to_sol_str(view.project_vault_balance),
        "warnings": warnings,
    }
