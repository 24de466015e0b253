"""Pure ledger arithmetic over lamport and area quantities.

Every function is stateless and operates on plain Python ints, which are
arbitrary precision, so products such as ``pool * area**2`` never wrap.

Policy:
- results never go negative (``sub`` clamps at zero),
- division by zero yields zero rather than raising,
- floats are never accepted for money or area.

Passing a negative or non-int operand is a programming error and raises.
Transport data (decimal strings) goes through ``parse_uint_checked`` instead,
which never raises.
"""

from __future__ import annotations

import re
from typing import Any

LAMPORTS_PER_SOL: int = 1_000_000_000

# Python refuses int(str) conversions past ~4300 digits; stay well below.
MAX_DECIMAL_DIGITS: int = 4096

_DECIMAL_RE = re.compile(r"^[0-9]+$")


def _require_uint(name: str, value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")
    return value


# -- Basic operations ---------------------------------------------------------

def add(a: int, b: int) -> int:
    return _require_uint("a", a) + _require_uint("b", b)


def sub(a: int, b: int) -> int:
    """Saturating subtraction: ``max(a - b, 0)``."""
    d = _require_uint("a", a) - _require_uint("b", b)
    return d if d > 0 else 0


def mul(a: int, b: int) -> int:
    return _require_uint("a", a) * _require_uint("b", b)


def div(a: int, b: int) -> int:
    """Floor division; ``0`` when ``b == 0``."""
    _require_uint("a", a)
    if _require_uint("b", b) == 0:
        return 0
    return a // b


def clamp(value: int, lo: int, hi: int) -> int:
    """``min(max(value, lo), hi)``."""
    return min(max(value, lo), hi)


# -- Parsing ------------------------------------------------------------------

def parse_uint_checked(raw: Any) -> tuple[int, bool]:
    """Parse a non-negative integer from transport data.

    Accepts plain ints and decimal strings (surrounding whitespace allowed).
    Returns ``(value, True)`` on success and ``(0, False)`` for anything else:
    ``None``, bools, floats, negatives, hex, empty or oversized strings.
    """
    if isinstance(raw, bool):
        return 0, False
    if isinstance(raw, int):
        if raw < 0:
            return 0, False
        return int(raw), True
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("ascii")
        except UnicodeDecodeError:
            return 0, False
    if not isinstance(raw, str):
        return 0, False
    s = raw.strip()
    if not s or len(s) > MAX_DECIMAL_DIGITS or not _DECIMAL_RE.fullmatch(s):
        return 0, False
    try:
        return int(s, 10), True
    except ValueError:
        return 0, False


def parse_uint(raw: Any) -> int:
    """Like ``parse_uint_checked`` but returns only the value (0 on failure)."""
    value, _ok = parse_uint_checked(raw)
    return value


# -- Quadratic-funding area ---------------------------------------------------

def isqrt_floor(x: int) -> int:
    """Integer square root, rounded down."""
    _require_uint("x", x)
    if x == 0:
        return 0
    # Newton iteration from above; converges to floor(sqrt(x)).
    z = (x + 1) >> 1
    y = x
    while z < y:
        y = z
        z = (x // z + z) >> 1
    return y


def area_increment(prev_total: int, amount: int) -> int:
    """Area gained when a contributor's cumulative total grows by `amount`.

    Area accumulates ``sqrt(total_per_contributor)``, so the increment is
    ``isqrt(prev + amount) - isqrt(prev)``. Summed over a contributor's
    history this telescopes to ``isqrt(total)``.
    """
    return sub(isqrt_floor(add(prev_total, amount)), isqrt_floor(prev_total))


# -- Display ------------------------------------------------------------------

def lamports_to_sol_str(lamports: int) -> str:
    """Render lamports as a decimal SOL string without floating point."""
    whole, frac = divmod(_require_uint("lamports", lamports), LAMPORTS_PER_SOL)
    frac_s = f"{frac:09d}".rstrip("0")
    return f"{whole}.{frac_s}" if frac_s else str(whole)
