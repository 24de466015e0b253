"""
Ledger integration layer: snapshots, reference ledger, operator client
"""

from .config import SettlementConfig, configure_logging, load_config
from .ledger import InMemoryLedger, LedgerClient
from .operations import SettlementClient, SettlementReceipt
from .snapshots import (
    MalformedSnapshotValue,
    ParsedSnapshot,
    ProjectSnapshot,
    RoundSnapshot,
    SnapshotError,
    parse_project_snapshot,
    parse_round_snapshot,
    settlement_quote,
)

__all__ = [
    "SettlementConfig",
    "configure_logging",
    "load_config",
    "InMemoryLedger",
    "LedgerClient",
    "SettlementClient",
    "SettlementReceipt",
    "MalformedSnapshotValue",
    "ParsedSnapshot",
    "ProjectSnapshot",
    "RoundSnapshot",
    "SnapshotError",
    "parse_project_snapshot",
    "parse_round_snapshot",
    "settlement_quote",
]
