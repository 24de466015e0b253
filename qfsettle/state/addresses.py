"""
Deterministic account addresses for rounds, projects and vaults.

Every address is a 32-byte, 0x-prefixed lowercase hex string. Derived
addresses hash a domain-separated, length-prefixed list of seeds together with
the program id, so two different seed lists can never collide by
concatenation.
"""

from __future__ import annotations

from .canonical import (
    canonical_hex_fixed_allow_0x,
    domain_sep_bytes,
    encode_bytes,
    encode_uvarint,
    sha256_hex,
)


Address = str  # 32-byte hex string (0x...)

ADDRESS_NBYTES = 32
DEFAULT_PROGRAM_ID: Address = "0x" + "00" * ADDRESS_NBYTES

ROUND_SEED = b"funding_round"
PROJECT_SEED = b"project"
ROUND_VAULT_SEED = b"round_vault"
PROJECT_VAULT_SEED = b"vault"


def normalize_address(value: str, *, name: str = "address") -> Address:
    return canonical_hex_fixed_allow_0x(value, nbytes=ADDRESS_NBYTES, name=name)


def is_address(value: object) -> bool:
    if not isinstance(value, str):
        return False
    try:
        normalize_address(value)
    except ValueError:
        return False
    return True


def derive_address(seeds: list[bytes], *, program_id: Address = DEFAULT_PROGRAM_ID) -> Address:
    """Derive an address from `seeds` under `program_id`."""
    program = bytes.fromhex(normalize_address(program_id, name="program_id")[2:])
    payload = bytearray(domain_sep_bytes("derived_address"))
    payload += encode_bytes(program)
    payload += encode_uvarint(len(seeds))
    for seed in seeds:
        payload += encode_bytes(seed)
    return sha256_hex(bytes(payload))


def _addr_bytes(address: Address, *, name: str) -> bytes:
    return bytes.fromhex(normalize_address(address, name=name)[2:])


def derive_round_address(authority: Address, round_seed: int, *, program_id: Address = DEFAULT_PROGRAM_ID) -> Address:
    return derive_address(
        [ROUND_SEED, _addr_bytes(authority, name="authority"), encode_uvarint(round_seed)],
        program_id=program_id,
    )


def derive_project_address(round_address: Address, owner: Address, *, program_id: Address = DEFAULT_PROGRAM_ID) -> Address:
    return derive_address(
        [PROJECT_SEED, _addr_bytes(round_address, name="round"), _addr_bytes(owner, name="owner")],
        program_id=program_id,
    )


def derive_round_vault_address(round_address: Address, *, program_id: Address = DEFAULT_PROGRAM_ID) -> Address:
    return derive_address([ROUND_VAULT_SEED, _addr_bytes(round_address, name="round")], program_id=program_id)


def derive_project_vault_address(project_address: Address, *, program_id: Address = DEFAULT_PROGRAM_ID) -> Address:
    return derive_address([PROJECT_VAULT_SEED, _addr_bytes(project_address, name="project")], program_id=program_id)
