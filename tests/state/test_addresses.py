"""Tests for qfsettle/state/addresses.py: deterministic address derivation."""

import pytest

from qfsettle.state.addresses import (
    DEFAULT_PROGRAM_ID,
    derive_address,
    derive_project_address,
    derive_project_vault_address,
    derive_round_address,
    derive_round_vault_address,
    is_address,
    normalize_address,
)

AUTH = "0x" + "a1" * 32
OWNER = "0x" + "b2" * 32
OTHER_PROGRAM = "0x" + "ff" * 32


class TestNormalize:
    def test_lowercases_and_prefixes(self):
        assert normalize_address("AB" * 32) == "0x" + "ab" * 32

    def test_wrong_length(self):
        with pytest.raises(ValueError):
            normalize_address("0x1234")

    def test_not_hex(self):
        with pytest.raises(ValueError):
            normalize_address("0x" + "zz" * 32)

    def test_not_str(self):
        with pytest.raises(TypeError):
            normalize_address(1234)

    def test_is_address(self):
        assert is_address(AUTH) is True
        assert is_address("alice") is False
        assert is_address(None) is False


class TestDerivation:
    def test_deterministic(self):
        assert derive_round_address(AUTH, 0) == derive_round_address(AUTH, 0)

    def test_shape(self):
        assert is_address(derive_round_address(AUTH, 0))

    def test_seed_distinguishes_rounds(self):
        assert derive_round_address(AUTH, 0) != derive_round_address(AUTH, 1)

    def test_authority_distinguishes_rounds(self):
        assert derive_round_address(AUTH, 0) != derive_round_address(OWNER, 0)

    def test_program_id_distinguishes(self):
        assert derive_round_address(AUTH, 0) != derive_round_address(AUTH, 0, program_id=OTHER_PROGRAM)

    def test_case_insensitive_inputs(self):
        assert derive_round_address(AUTH.upper().replace("0X", "0x"), 0) == derive_round_address(AUTH, 0)

    def test_vaults_distinct_from_accounts(self):
        rnd = derive_round_address(AUTH, 0)
        prj = derive_project_address(rnd, OWNER)
        addrs = {rnd, prj, derive_round_vault_address(rnd), derive_project_vault_address(prj)}
        assert len(addrs) == 4

    def test_seed_boundaries_length_prefixed(self):
        # b"ab" + b"c" and b"a" + b"bc" must not collide
        assert derive_address([b"ab", b"c"]) != derive_address([b"a", b"bc"])

    def test_default_program_id(self):
        assert derive_address([b"x"]) == derive_address([b"x"], program_id=DEFAULT_PROGRAM_ID)
