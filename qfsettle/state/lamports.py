"""
Lamport balance tracking for wallets and vaults.

Implements LamportTable[Address] -> Lamports
"""

from typing import Dict, Optional

from .addresses import Address


Lamports = int  # Non-negative integer (arbitrary precision)


class LamportTable:
    """
    Balance table mapping address -> lamports.

    Note: this class stores balances in a plain dict. Do not rely on dict
    iteration order when hashing; callers sort keys explicitly at
    serialization boundaries (see `qfsettle/integration/ledger.py`).
    """

    def __init__(self, balances: Optional[Dict[Address, Lamports]] = None):
        """Initialize the table, optionally from an existing mapping."""
        self._balances: Dict[Address, Lamports] = {}
        for address, amount in (balances or {}).items():
            self.set(address, amount)

    def get(self, address: Address) -> Lamports:
        """Get balance for `address`. Returns 0 if not found."""
        return self._balances.get(address, 0)

    def set(self, address: Address, amount: Lamports) -> None:
        """
        Set balance for `address`.

        Raises:
            ValueError: If amount is negative or not an int
        """
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise ValueError(f"Balance must be an int: {amount!r}")
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Remove zero balances to keep table sparse
            self._balances.pop(address, None)
        else:
            self._balances[address] = amount

    def add(self, address: Address, delta: Lamports) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(address)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(address, new_balance)

    def subtract(self, address: Address, delta: Lamports) -> None:
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(address, -delta)

    def transfer(self, source: Address, dest: Address, amount: Lamports) -> None:
        """Move `amount` lamports from `source` to `dest`, all or nothing."""
        if amount < 0:
            raise ValueError(f"Transfer amount must be non-negative: {amount}")
        if self.get(source) < amount:
            raise ValueError(
                f"Insufficient balance for transfer: {self.get(source)} < {amount}"
            )
        self.subtract(source, amount)
        self.add(dest, amount)

    def copy(self) -> "LamportTable":
        return LamportTable(dict(self._balances))

    def get_all_balances(self) -> Dict[Address, Lamports]:
        return dict(self._balances)

    def total(self) -> Lamports:
        return sum(self._balances.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LamportTable):
            return NotImplemented
        return self._balances == other._balances

    def __repr__(self) -> str:
        return f"LamportTable({len(self._balances)} entries)"
