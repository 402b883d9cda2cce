# -*- coding: utf-8 -*-

# pauliprop/pauli_sum.py
"""
Sparse container of weighted Pauli strings.

A :class:`PauliSum` maps packed Pauli strings to coefficients. Keys are
unique and a coefficient that becomes exactly zero is removed rather than
stored. Dict insertion order is kept, which makes propagation (and hence
truncation decisions) reproducible.
"""

import copy
import numbers
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

import numpy as np

from .pauli_algebra import pauli_product, symbols_to_pstr
from .pauli_term import PauliTerm
from .path_properties import is_zero, merge, payload_kind, scale, tonumber
from .utils import decode_pauli_cached, label_to_pstr, pstr_to_label

__all__ = ["PauliSum"]


class PauliSum:
    """
    Sum of Pauli strings with coefficients on ``nqubits`` qubits.

    Parameters
    ----------
    nqubits : int
        Number of qubits
    terms : Dict[int, Any] | Iterable[PauliTerm] | PauliTerm | None
        Initial content; coefficients are accumulated with :meth:`add`

    Examples
    --------
    >>> psum = PauliSum(2)
    >>> psum.add_symbols("Z", 0, 1.0)
    >>> psum.add_symbols("ZZ", [0, 1], 0.5)
    >>> len(psum)
    2
    """

    __slots__ = ("nqubits", "terms")

    def __init__(self, nqubits: int, terms=None):
        if not isinstance(nqubits, numbers.Integral) or nqubits <= 0:
            raise ValueError(f"Number of qubits must be a positive integer, got {nqubits!r}")
        self.nqubits = int(nqubits)
        self.terms: Dict[int, Any] = {}
        if terms is None:
            return
        if isinstance(terms, PauliTerm):
            terms = [terms]
        if isinstance(terms, dict):
            for pstr, coeff in terms.items():
                self.add(pstr, coeff)
        else:
            for term in terms:
                self.add_term(term)

    # ---------------- construction helpers ----------------

    @classmethod
    def from_terms(cls, terms: Sequence[PauliTerm], nqubits: Optional[int] = None) -> "PauliSum":
        if nqubits is None:
            if not terms:
                raise ValueError("Cannot infer the qubit count from an empty term list")
            nqubits = terms[0].n
        return cls(nqubits, terms)

    @classmethod
    def from_label(cls, label: str, coeff: Any = 1.0) -> "PauliSum":
        """Single-term sum from a qiskit-ordered label."""
        psum = cls(len(label))
        psum.add(label_to_pstr(label), coeff)
        return psum

    def similar(self) -> "PauliSum":
        """Empty sum on the same number of qubits."""
        return PauliSum(self.nqubits)

    def copy(self) -> "PauliSum":
        new = PauliSum(self.nqubits)
        new.terms = dict(self.terms)
        return new

    def __deepcopy__(self, memo) -> "PauliSum":
        new = PauliSum(self.nqubits)
        new.terms = copy.deepcopy(self.terms, memo)
        return new

    # ---------------- dict-like access ----------------

    def __len__(self) -> int:
        return len(self.terms)

    def __iter__(self) -> Iterator[int]:
        return iter(self.terms)

    def __contains__(self, pstr: int) -> bool:
        return pstr in self.terms

    def __getitem__(self, pstr: int):
        return self.terms[pstr]

    def get(self, pstr: int, default: Any = 0.0):
        return self.terms.get(pstr, default)

    def items(self):
        return self.terms.items()

    def keys(self):
        return self.terms.keys()

    def values(self):
        return self.terms.values()

    def to_terms(self) -> List[PauliTerm]:
        return [PauliTerm(coeff, pstr, self.nqubits) for pstr, coeff in self.terms.items()]

    # ---------------- mutation ----------------

    def add(self, pstr: int, coeff) -> None:
        """
        Accumulate ``coeff`` onto ``pstr``.

        A zero ``coeff`` is a no-op; a key whose merged coefficient is zero
        is removed.
        """
        if is_zero(coeff):
            return
        existing = self.terms.get(pstr)
        if existing is None:
            self.terms[pstr] = coeff
            return
        merged = merge(existing, coeff)
        if is_zero(merged):
            del self.terms[pstr]
        else:
            self.terms[pstr] = merged

    def set(self, pstr: int, coeff) -> None:
        """Overwrite the coefficient of ``pstr``; zero removes the key."""
        if is_zero(coeff):
            self.terms.pop(pstr, None)
        else:
            self.terms[pstr] = coeff

    def delete(self, pstr: int) -> None:
        self.terms.pop(pstr, None)

    def clear(self) -> None:
        self.terms.clear()

    def add_term(self, term: PauliTerm) -> None:
        if term.n != self.nqubits:
            raise ValueError(f"Cannot add a {term.n}-qubit term to a {self.nqubits}-qubit PauliSum")
        self.add(term.key, term.coeff)

    def add_symbols(self, symbols: Union[str, Sequence], qinds: Union[int, Sequence[int]], coeff: Any = 1.0) -> None:
        """Add ``coeff`` times the Pauli string with ``symbols`` on ``qinds``."""
        if isinstance(qinds, numbers.Integral):
            qinds = [qinds]
        symbols = list(symbols)
        if len(symbols) != len(qinds):
            raise ValueError(f"Got {len(symbols)} symbols for {len(qinds)} qubit indices")
        for q in qinds:
            if not 0 <= q < self.nqubits:
                raise ValueError(f"Qubit index {q} out of range for {self.nqubits} qubits")
        self.add(symbols_to_pstr(symbols, qinds), coeff)

    def add_sum(self, other: "PauliSum") -> None:
        self._check_qubits(other)
        self._check_kinds(other)
        for pstr, coeff in other.items():
            self.add(pstr, coeff)

    def scale(self, factor) -> None:
        """Multiply every coefficient by ``factor`` in place."""
        if factor == 0:
            self.terms.clear()
            return
        for pstr in list(self.terms):
            self.set(pstr, scale(self.terms[pstr], factor))

    # ---------------- comparison ----------------

    def _check_qubits(self, other: "PauliSum") -> None:
        if other.nqubits != self.nqubits:
            raise ValueError(
                f"PauliSum qubit count mismatch: {self.nqubits} vs {other.nqubits}"
            )

    def _check_kinds(self, other: "PauliSum") -> None:
        if not self.terms or not other.terms:
            return
        mine, theirs = payload_kind(self), payload_kind(other)
        if mine is not theirs:
            names = [k.__name__ if k is not None else "plain numbers" for k in (mine, theirs)]
            raise TypeError(f"Cannot combine PauliSums with coefficient kinds {names[0]} and {names[1]}")

    def __eq__(self, other) -> bool:
        if not isinstance(other, PauliSum):
            return NotImplemented
        return self.nqubits == other.nqubits and self.terms == other.terms

    __hash__ = None

    def isclose(self, other: "PauliSum", rtol: float = 1e-9, atol: float = 1e-12) -> bool:
        """
        Approximate equality of numeric projections, absent keys count as zero.
        """
        if self.nqubits != other.nqubits:
            return False
        for pstr in self.terms.keys() | other.terms.keys():
            a = tonumber(self.terms.get(pstr, 0.0))
            b = tonumber(other.terms.get(pstr, 0.0))
            if not np.isclose(a, b, rtol=rtol, atol=atol):
                return False
        return True

    # ---------------- arithmetic ----------------

    def __add__(self, other):
        new = self.copy()
        if isinstance(other, PauliSum):
            new.add_sum(other)
        elif isinstance(other, PauliTerm):
            new.add_term(other)
        elif isinstance(other, numbers.Number):
            new.add(0, other)
        else:
            return NotImplemented
        return new

    __radd__ = __add__

    def __neg__(self) -> "PauliSum":
        return self * -1

    def __sub__(self, other):
        if isinstance(other, (PauliSum, PauliTerm, numbers.Number)):
            return self + (-1) * other
        return NotImplemented

    def __rsub__(self, other):
        return (-self) + other

    def __mul__(self, other):
        if isinstance(other, PauliSum):
            return self._product(other)
        if isinstance(other, PauliTerm):
            return self._product(PauliSum(other.n, other))
        if isinstance(other, (numbers.Number, np.number)):
            new = self.copy()
            new.scale(other)
            return new
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, PauliTerm):
            return PauliSum(other.n, other)._product(self)
        return self.__mul__(other)

    def __truediv__(self, other):
        if isinstance(other, (numbers.Number, np.number)):
            return self * (1 / other)
        return NotImplemented

    def _product(self, other: "PauliSum") -> "PauliSum":
        """Pointwise Pauli product; the result holds numeric coefficients."""
        self._check_qubits(other)
        result = PauliSum(self.nqubits)
        for p1, c1 in self.items():
            for p2, c2 in other.items():
                phase, pstr = pauli_product(p1, p2)
                result.add(pstr, phase * tonumber(c1) * tonumber(c2))
        return result

    # ---------------- export ----------------

    def to_matrix(self) -> np.ndarray:
        """Dense matrix of the sum (qiskit little-endian ordering)."""
        total = np.zeros((2**self.nqubits, 2**self.nqubits), dtype=complex)
        for pstr, coeff in self.items():
            total += tonumber(coeff) * decode_pauli_cached(pstr, self.nqubits).to_matrix()
        return total

    def __repr__(self) -> str:
        head = f"PauliSum(nqubits: {self.nqubits}, {len(self)} Pauli term{'s' if len(self) != 1 else ''}"
        if not self.terms:
            return head + ")"
        lines = [head + ":"]
        shown = list(self.terms.items())[:20]
        for pstr, coeff in shown:
            lines.append(f" {coeff!r} * {pstr_to_label(pstr, self.nqubits)}")
        if len(self.terms) > len(shown):
            lines.append("  ⋮")
        return "\n".join(lines) + ")"
