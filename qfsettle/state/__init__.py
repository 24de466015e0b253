"""
Account state for quadratic-funding rounds
"""

from .accounts import FundingRound, Milestone, Project, RoundStatus
from .addresses import (
    Address,
    DEFAULT_PROGRAM_ID,
    derive_project_address,
    derive_project_vault_address,
    derive_round_address,
    derive_round_vault_address,
)
from .lamports import LamportTable, Lamports

__all__ = [
    "FundingRound",
    "Milestone",
    "Project",
    "RoundStatus",
    "Address",
    "DEFAULT_PROGRAM_ID",
    "derive_project_address",
    "derive_project_vault_address",
    "derive_round_address",
    "derive_round_vault_address",
    "LamportTable",
    "Lamports",
]
