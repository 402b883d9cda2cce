# -*- coding: utf-8 -*-

# pauliprop/utils.py
from __future__ import annotations
import random
import numpy as np
from functools import lru_cache
from qiskit.quantum_info import Pauli

from .pauli_algebra import PAULI_SYMBOLS, get_pauli, set_pauli, symbol_to_int

__all__ = [
    "encode_pauli",
    "decode_pauli",
    "decode_pauli_cached",
    "label_to_pstr",
    "pstr_to_label",
    "pauli_terms_to_matrix",
    "random_state_label",
    "random_pauli_label",
]


def encode_pauli(p: "Pauli | str") -> int:
    """
    Pack a q-qubit qiskit.Pauli (or its label) into a 2q-bit Pauli string.

    Parameters
    ----------
    p : Pauli | str
        Input Pauli operator to encode. Phases are ignored.

    Returns
    -------
    int
        Packed Pauli string, qubit i at bits (2i, 2i+1)
    """
    if isinstance(p, str):
        return label_to_pstr(p)
    pstr = 0
    for i in range(len(p.z)):
        x, z = bool(p.x[i]), bool(p.z[i])
        if x and z:
            code = 2
        elif x:
            code = 1
        elif z:
            code = 3
        else:
            continue
        pstr = set_pauli(pstr, code, i)
    return pstr


def decode_pauli(pstr: int, n: int) -> "Pauli":
    """
    Unpack a Pauli string back to qiskit.Pauli.

    Parameters
    ----------
    pstr : int
        Packed Pauli string
    n : int
        Number of qubits

    Returns
    -------
    Pauli
        Decoded Pauli operator with zero phase
    """
    codes = [get_pauli(pstr, i) for i in range(n)]
    x = np.array([c in (1, 2) for c in codes], dtype=bool)
    z = np.array([c in (2, 3) for c in codes], dtype=bool)
    return Pauli((z, x))


@lru_cache(maxsize=1024)
def decode_pauli_cached(pstr: int, n: int) -> "Pauli":
    """
    Cached version of decode_pauli for frequently used strings.
    """
    return decode_pauli(pstr, n)


def label_to_pstr(label: str) -> int:
    """
    Pack a Pauli label such as ``"IXZ"``; the rightmost character is qubit 0.
    """
    pstr = 0
    for q, ch in enumerate(reversed(label)):
        pstr = set_pauli(pstr, symbol_to_int(ch), q)
    return pstr


def pstr_to_label(pstr: int, n: int) -> str:
    """Inverse of :func:`label_to_pstr` for an n-qubit string."""
    return "".join(PAULI_SYMBOLS[get_pauli(pstr, q)] for q in reversed(range(n)))


def pauli_terms_to_matrix(terms, n: int) -> np.ndarray:
    """
    Reconstruct sum(alpha_j * P_j) as a dense 2^n x 2^n matrix.

    Parameters
    ----------
    terms : PauliTerm | Iterable[PauliTerm] | PauliSum
        Terms to sum. A PauliSum must hold numeric coefficients.
    n : int
        Number of qubits

    Returns
    -------
    np.ndarray
        Dense complex matrix in qiskit's little-endian ordering
    """
    from .pauli_sum import PauliSum
    from .pauli_term import PauliTerm
    from .path_properties import tonumber

    if isinstance(terms, PauliTerm):
        pairs = [(terms.key, terms.coeff)]
    elif isinstance(terms, PauliSum):
        pairs = list(terms.items())
    else:
        pairs = [(t.key, t.coeff) for t in terms]

    total_matrix = np.zeros((2**n, 2**n), dtype=complex)
    for pstr, coeff in pairs:
        total_matrix += tonumber(coeff) * decode_pauli_cached(pstr, n).to_matrix()
    return total_matrix


# Random state and Pauli generation utilities
SYMS_STATE = "01+-rl"
SYMS_PAULI = PAULI_SYMBOLS


def random_state_label(n):
    """
    Generate a random product state label of length n.

    Examples
    --------
    >>> label = random_state_label(3)
    >>> all(c in "01+-rl" for c in label)
    True
    """
    return "".join(random.choice(SYMS_STATE) for _ in range(n))


def random_pauli_label(n):
    """
    Generate a random non-identity Pauli label of length n.

    Examples
    --------
    >>> label = random_pauli_label(3)
    >>> set(label) != {"I"}
    True
    """
    lbl = "".join(random.choice(SYMS_PAULI) for _ in range(n))
    if set(lbl) == {"I"}:
        pos = random.randrange(n)
        lbl = lbl[:pos] + random.choice("XYZ") + lbl[pos + 1:]
    return lbl
