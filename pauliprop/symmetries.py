# -*- coding: utf-8 -*-

# pauliprop/symmetries.py
"""
Merging of symmetry-equivalent Pauli strings.

For an observable propagated through a translation-invariant circuit on a
periodic lattice, all translates of a Pauli string carry the same
expectation value in a translation-invariant state. Mapping every string to
one representative and merging shrinks the sum without changing such
expectation values.

The representative used here is the translate with the smallest packed
integer.
"""

from typing import Callable, Optional, Tuple

from .pauli_algebra import get_pauli
from .pauli_sum import PauliSum

__all__ = ["symmetry_merge", "translation_merge"]


def symmetry_merge(psum: PauliSum, mapfunc: Callable[[int], int]) -> PauliSum:
    """
    Merge a PauliSum by mapping each string to its representative.

    Parameters
    ----------
    psum : PauliSum
        Input sum, left unchanged
    mapfunc : Callable[[int], int]
        Maps a packed Pauli string to its representative

    Returns
    -------
    PauliSum
        New sum keyed by representatives
    """
    merged = psum.similar()
    for pstr, coeff in psum.items():
        merged.add(mapfunc(pstr), coeff)
    return merged


def translation_merge(psum: PauliSum, nx: Optional[int] = None, ny: Optional[int] = None) -> PauliSum:
    """
    Merge translation-equivalent strings on a periodic chain or grid.

    Without ``nx``/``ny`` the qubits form a ring. With both, they form an
    ``nx`` by ``ny`` torus where qubit ``row * nx + col`` sits at
    ``(row, col)``.

    Examples
    --------
    >>> psum = PauliSum(6)
    >>> psum.add_symbols("Z", 2)
    >>> psum.add_symbols("Z", 5)
    >>> translation_merge(psum)[3]
    2.0
    """
    nq = psum.nqubits
    if nx is None and ny is None:
        return symmetry_merge(psum, lambda pstr: _lowest_translate_1d(pstr, nq))
    if nx is None or ny is None or nx * ny != nq:
        raise ValueError(f"Number of qubits {nq} does not match grid size {nx} x {ny}")
    main_mask, wrap_mask = _shift_left_masks(nx, ny)
    return symmetry_merge(
        psum, lambda pstr: _lowest_translate_2d(pstr, nx, ny, main_mask, wrap_mask)
    )


# ---------------------------------------------------------------------------
# 1D ring
# ---------------------------------------------------------------------------

def _periodic_shift_right(pstr: int, nq: int) -> int:
    # qubit q moves to q - 1, qubit 0 wraps to nq - 1
    first = get_pauli(pstr, 0)
    return (pstr >> 2) | (first << (2 * (nq - 1)))


def _lowest_translate_1d(pstr: int, nq: int) -> int:
    if pstr == 0:
        return pstr
    lowest = pstr
    for _ in range(nq - 1):
        pstr = _periodic_shift_right(pstr, nq)
        if pstr < lowest:
            lowest = pstr
    return lowest


# ---------------------------------------------------------------------------
# 2D torus
# ---------------------------------------------------------------------------

def _shift_left_masks(nx: int, ny: int) -> Tuple[int, int]:
    """Masks of all columns but the first, and of the first column."""
    main_mask = wrap_mask = 0
    for row in range(ny):
        for col in range(nx):
            bits = 3 << (2 * (row * nx + col))
            if col == 0:
                wrap_mask |= bits
            else:
                main_mask |= bits
    return main_mask, wrap_mask


def _periodic_shift_left(pstr: int, nx: int, main_mask: int, wrap_mask: int) -> int:
    first_col = pstr & wrap_mask
    return ((pstr & main_mask) >> 2) | (first_col << (2 * nx - 2))


def _periodic_shift_up(pstr: int, nx: int, ny: int) -> int:
    shift = 2 * nx
    first_row = pstr & ((1 << shift) - 1)
    return (pstr >> shift) | (first_row << (2 * nx * ny - shift))


def _lowest_translate_2d(pstr: int, nx: int, ny: int, main_mask: int, wrap_mask: int) -> int:
    if pstr == 0:
        return pstr
    lowest = pstr
    for row in range(ny):
        # nx column shifts bring the string back to its column alignment
        for _ in range(nx):
            pstr = _periodic_shift_left(pstr, nx, main_mask, wrap_mask)
            if pstr < lowest:
                lowest = pstr
        if row < ny - 1:
            pstr = _periodic_shift_up(pstr, nx, ny)
    return lowest
