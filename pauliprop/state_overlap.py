# -*- coding: utf-8 -*-

# pauliprop/state_overlap.py
"""
Projection of a propagated observable onto reference states.

After back-propagation the expectation value ``<psi| U^† O U |psi>`` is
``sum_P c_P <psi|P|psi>``. For product states the inner factor is the
product of single-qubit expectations read from ``_EXP_TABLE``.
"""

import warnings
from typing import Iterable, List, Optional, Sequence

import numpy as np

from .pauli_algebra import contains_xy, contains_yz, get_pauli, nonidentity_mask, pauli_weight, site_indices
from .pauli_sum import PauliSum
from .path_properties import tonumber

__all__ = [
    "evaluate_expectation",
    "overlap_with_zero",
    "overlap_with_plus",
    "overlap_with_computational",
    "overlap_with_pauli_sum",
    "overlap_with_maxmixed",
    "zero_filter",
    "state_indices",
    "product_state_overlap",
    "plus_filter",
]

# -------- Expectation value lookup tables --------
# State indices mapping for the single-qubit basis states
_STATE_IDX = {'0': 0, '1': 1, '+': 2, '-': 3, 'r': 4, 'l': 5}
# <state|P|state> for P in (I, X, Y, Z)
_EXP_TABLE = np.zeros((6, 4), dtype=float)
_EXP_TABLE[_STATE_IDX['0']] = [1, 0, 0, 1]   # |0> state
_EXP_TABLE[_STATE_IDX['1']] = [1, 0, 0, -1]  # |1> state
_EXP_TABLE[_STATE_IDX['+']] = [1, 1, 0, 0]   # |+> state
_EXP_TABLE[_STATE_IDX['-']] = [1, -1, 0, 0]  # |-> state
_EXP_TABLE[_STATE_IDX['r']] = [1, 0, 1, 0]   # |r> state
_EXP_TABLE[_STATE_IDX['l']] = [1, 0, -1, 0]  # |l> state

_IMAG_TOL = 1e-10


def state_indices(reference_state: str, nqubits: int) -> List[int]:
    """Row indices into ``_EXP_TABLE`` for a product state label, qubit 0 first."""
    if len(reference_state) != nqubits:
        raise ValueError("Label length mismatch")
    try:
        return [_STATE_IDX[ch] for ch in reference_state[::-1]]
    except KeyError as exc:
        raise ValueError(f"Unknown product state symbol {exc.args[0]!r}, expected one of '01+-rl'") from None


def product_state_overlap(pstr: int, state_idxs: Sequence[int]) -> float:
    """<psi|P|psi> for the product state given by ``state_idxs``."""
    prod = 1.0
    for q in site_indices(nonidentity_mask(pstr)):
        val = _EXP_TABLE[state_idxs[q], get_pauli(pstr, q)]
        if val == 0.0:  # Early termination if product becomes zero
            return 0.0
        prod *= val
    return float(prod)


def _real_result(total, what: str) -> float:
    if isinstance(total, complex) or np.iscomplexobj(total):
        if abs(total.imag) > _IMAG_TOL * max(1.0, abs(total.real)):
            warnings.warn(
                f"{what} has a non-negligible imaginary part {total.imag:.3e}; "
                f"returning the real part. Is the observable Hermitian?",
                RuntimeWarning,
                stacklevel=3,
            )
        return float(total.real)
    return float(total)


def overlap_with_zero(psum: PauliSum):
    """Overlap with |0...0>: sum of coefficients of strings made of I and Z."""
    return sum((tonumber(c) for p, c in psum.items() if not contains_xy(p)), 0.0)


def overlap_with_plus(psum: PauliSum):
    """Overlap with |+...+>: sum of coefficients of strings made of I and X."""
    return sum((tonumber(c) for p, c in psum.items() if not contains_yz(p)), 0.0)


def overlap_with_computational(psum: PauliSum, one_indices: Iterable[int]):
    """
    Overlap with the computational basis state with ones on ``one_indices``.

    Strings made of I and Z contribute ``(-1)**(number of Z on one_indices)``
    times their coefficient.
    """
    ones = 0
    for q in one_indices:
        if not 0 <= q < psum.nqubits:
            raise ValueError(f"Qubit index {q} out of range for {psum.nqubits} qubits")
        ones |= 3 << (2 * q)
    total = 0.0
    for pstr, coeff in psum.items():
        if contains_xy(pstr):
            continue
        sign = -1 if pauli_weight(pstr & ones) % 2 else 1
        total += sign * tonumber(coeff)
    return total


def overlap_with_pauli_sum(a: PauliSum, b: PauliSum):
    """Sum of coefficient products over the Pauli strings both sums share."""
    if a.nqubits != b.nqubits:
        raise ValueError(f"PauliSum qubit count mismatch: {a.nqubits} vs {b.nqubits}")
    if len(b) < len(a):
        a, b = b, a
    return sum((tonumber(c) * tonumber(b[p]) for p, c in a.items() if p in b), 0.0)


def overlap_with_maxmixed(psum: PauliSum):
    """Normalised trace: the identity coefficient."""
    return tonumber(psum.get(0, 0.0))


def zero_filter(psum: PauliSum) -> PauliSum:
    """New PauliSum keeping only strings with a non-zero overlap with |0...0>."""
    filtered = psum.similar()
    filtered.terms = {p: c for p, c in psum.items() if not contains_xy(p)}
    return filtered


def plus_filter(psum: PauliSum) -> PauliSum:
    """New PauliSum keeping only strings with a non-zero overlap with |+...+>."""
    filtered = psum.similar()
    filtered.terms = {p: c for p, c in psum.items() if not contains_yz(p)}
    return filtered


def evaluate_expectation(psum: PauliSum, reference_state: Optional[str] = None) -> float:
    """
    Expectation value of a propagated observable in a product state.

    Parameters
    ----------
    psum : PauliSum
        Back-propagated observable
    reference_state : str | None
        Product state label over "01+-rl", rightmost character is qubit 0
        (e.g. '0+1--'). Defaults to |0...0>.

    Returns
    -------
    float
        Real part of the expectation value

    Raises
    ------
    ValueError
        If the label length doesn't match the qubit count or holds an
        unknown state symbol
    """
    if reference_state is None:
        return _real_result(overlap_with_zero(psum), "Expectation value")
    state_idxs = state_indices(reference_state, psum.nqubits)
    total = 0.0
    for pstr, coeff in psum.items():
        prod = product_state_overlap(pstr, state_idxs)
        if prod != 0.0:
            total += tonumber(coeff) * prod
    return _real_result(total, "Expectation value")
