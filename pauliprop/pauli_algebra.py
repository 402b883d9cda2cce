# -*- coding: utf-8 -*-

# pauliprop/pauli_algebra.py
"""
Bit-level algebra on packed Pauli strings.

A Pauli string on n qubits is a plain Python ``int``. Qubit ``q`` occupies
bits ``2q`` and ``2q + 1`` and stores the symbol code
``I = 0, X = 1, Y = 2, Z = 3``. The identity string is ``0``.

Notes
-----
- The product of two strings is the XOR of their integers, up to a phase
  tracked separately as a power of ``1j``.
- None of the functions below check qubit indices; callers validate them
  at the API boundary.
"""

from functools import lru_cache
from typing import Iterable, List, Sequence, Tuple, Union

__all__ = [
    "PAULI_SYMBOLS",
    "symbol_to_int",
    "int_to_symbol",
    "alternating_mask",
    "full_mask",
    "get_pauli",
    "set_pauli",
    "get_paulis",
    "set_paulis",
    "symbols_to_pstr",
    "pauli_weight",
    "count_xy",
    "count_yz",
    "contains_xy",
    "contains_yz",
    "commutes",
    "product_phase_exponent",
    "pauli_product",
    "site_indices",
    "nonidentity_mask",
]

PAULI_SYMBOLS = "IXYZ"
_SYMBOL_TO_INT = {s: i for i, s in enumerate(PAULI_SYMBOLS)}

# Exponent k of 1j in sigma_a * sigma_b = (1j)**k * sigma_(a ^ b)
_PHASE_EXPONENT = (
    (0, 0, 0, 0),
    (0, 0, 1, 3),
    (0, 3, 0, 1),
    (0, 1, 3, 0),
)

_PHASES = (1, 1j, -1, -1j)


def symbol_to_int(symbol: Union[str, int]) -> int:
    """
    Convert a Pauli symbol (``"I"``, ``"X"``, ``"Y"``, ``"Z"``) to its code.

    Integers in ``range(4)`` are passed through unchanged.

    Raises
    ------
    ValueError
        If the symbol is not a Pauli symbol.
    """
    if isinstance(symbol, int) and not isinstance(symbol, bool):
        if 0 <= symbol <= 3:
            return symbol
        raise ValueError(f"Pauli code must be in 0..3, got {symbol}")
    try:
        return _SYMBOL_TO_INT[str(symbol).upper()]
    except KeyError:
        raise ValueError(f"Unknown Pauli symbol '{symbol}', expected one of {PAULI_SYMBOLS}") from None


def int_to_symbol(pauli: int) -> str:
    return PAULI_SYMBOLS[pauli]


@lru_cache(maxsize=256)
def alternating_mask(nqubits: int) -> int:
    """Mask with the low bit of every qubit site set (``0b0101...01``)."""
    return int("01" * nqubits, 2) if nqubits > 0 else 0


@lru_cache(maxsize=256)
def full_mask(nqubits: int) -> int:
    """Mask covering all ``2 * nqubits`` bits."""
    return (1 << (2 * nqubits)) - 1


def _site_count(*pstrs: int) -> int:
    return (max(p.bit_length() for p in pstrs) + 1) // 2


def get_pauli(pstr: int, q: int) -> int:
    """Return the symbol code of ``pstr`` on qubit ``q``."""
    return (pstr >> (2 * q)) & 3


def set_pauli(pstr: int, pauli: int, q: int) -> int:
    """Return a copy of ``pstr`` with qubit ``q`` set to ``pauli``."""
    shift = 2 * q
    return (pstr & ~(3 << shift)) | (pauli << shift)


def get_paulis(pstr: int, qinds: Sequence[int]) -> int:
    """
    Extract the local pattern of ``pstr`` on ``qinds``.

    The pattern packs the first index into its lowest two bits, so
    ``qinds = (c, t)`` gives ``pauli(c) + 4 * pauli(t)``.
    """
    local = 0
    for j, q in enumerate(qinds):
        local |= ((pstr >> (2 * q)) & 3) << (2 * j)
    return local


def set_paulis(pstr: int, local: int, qinds: Sequence[int]) -> int:
    """Write a local pattern (as returned by :func:`get_paulis`) back onto ``qinds``."""
    for j, q in enumerate(qinds):
        pstr = set_pauli(pstr, (local >> (2 * j)) & 3, q)
    return pstr


def symbols_to_pstr(symbols: Iterable[Union[str, int]], qinds: Iterable[int]) -> int:
    """Pack per-qubit symbols into a Pauli string."""
    pstr = 0
    for symbol, q in zip(symbols, qinds):
        pstr = set_pauli(pstr, symbol_to_int(symbol), q)
    return pstr


def nonidentity_mask(pstr: int) -> int:
    return (pstr | (pstr >> 1)) & alternating_mask(_site_count(pstr))


def pauli_weight(pstr: int) -> int:
    """Number of non-identity sites."""
    return nonidentity_mask(pstr).bit_count()


def count_xy(pstr: int) -> int:
    """Number of sites holding X or Y (low bit differs from high bit)."""
    return ((pstr ^ (pstr >> 1)) & alternating_mask(_site_count(pstr))).bit_count()


def count_yz(pstr: int) -> int:
    """Number of sites holding Y or Z (high bit set)."""
    return ((pstr >> 1) & alternating_mask(_site_count(pstr))).bit_count()


def contains_xy(pstr: int) -> bool:
    return count_xy(pstr) > 0


def contains_yz(pstr: int) -> bool:
    return count_yz(pstr) > 0


def commutes(a: int, b: int) -> bool:
    """
    Test whether two Pauli strings commute.

    Two strings commute iff the number of sites on which both are
    non-identity and different is even. Per site with bits ``(a0, a1)``
    and ``(b0, b1)`` that happens exactly when ``a0 & b1 ^ a1 & b0`` is 1.
    """
    if a == 0 or b == 0:
        return True
    mask = alternating_mask(_site_count(a, b))
    flags = ((a & (b >> 1)) ^ ((a >> 1) & b)) & mask
    return flags.bit_count() % 2 == 0


def site_indices(sites: int) -> List[int]:
    """Qubit indices of the set low bits in a site mask."""
    out = []
    while sites:
        low = sites & -sites
        out.append((low.bit_length() - 1) // 2)
        sites ^= low
    return out


def product_phase_exponent(a: int, b: int) -> int:
    """
    Exponent ``k`` (mod 4) such that ``a * b = (1j)**k * (a ^ b)``.

    Only sites where both operands are non-identity contribute.
    """
    both = nonidentity_mask(a) & nonidentity_mask(b)
    k = 0
    for q in site_indices(both):
        k += _PHASE_EXPONENT[(a >> (2 * q)) & 3][(b >> (2 * q)) & 3]
    return k & 3


def pauli_product(a: int, b: int) -> Tuple[complex, int]:
    """
    Multiply two Pauli strings.

    Returns
    -------
    Tuple[complex, int]
        ``(phase, result)`` with ``phase`` in ``{1, 1j, -1, -1j}``.
    """
    return _PHASES[product_phase_exponent(a, b)], a ^ b
