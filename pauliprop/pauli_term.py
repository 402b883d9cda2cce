# -*- coding: utf-8 -*-

# pauliprop/pauli_term.py
import numbers
from dataclasses import dataclass
from typing import Any, Sequence, Union

from .pauli_algebra import pauli_product, pauli_weight, symbols_to_pstr
from .utils import label_to_pstr, pstr_to_label


@dataclass(slots=True)
class PauliTerm:
    """
    A single weighted Pauli string.

    Attributes
    ----------
    coeff : Any
        Coefficient of the term. A number, or a path-properties payload
        (see :mod:`pauliprop.path_properties`)
    key : int
        Packed Pauli string, 2 bits per qubit
        - bits (2q, 2q+1) hold the symbol on qubit q
        - I = 0, X = 1, Y = 2, Z = 3
    n : int
        Number of qubits the operator acts on
    """
    coeff: Any
    key:   int
    n:     int

    @classmethod
    def from_symbols(cls, n: int, symbols: Union[str, Sequence], qinds: Union[int, Sequence[int]],
                     coeff: Any = 1.0) -> "PauliTerm":
        """
        Build a term from per-qubit symbols, e.g. ``from_symbols(4, "XY", [0, 2])``.
        """
        if isinstance(qinds, int):
            qinds = [qinds]
        symbols = list(symbols)
        if len(symbols) != len(qinds):
            raise ValueError(f"Got {len(symbols)} symbols for {len(qinds)} qubit indices")
        for q in qinds:
            if not 0 <= q < n:
                raise ValueError(f"Qubit index {q} out of range for {n} qubits")
        return cls(coeff, symbols_to_pstr(symbols, qinds), n)

    @classmethod
    def from_label(cls, label: str, coeff: Any = 1.0) -> "PauliTerm":
        """Build a term from a qiskit-ordered label (rightmost character is qubit 0)."""
        return cls(coeff, label_to_pstr(label), len(label))

    def to_label(self) -> str:
        """
        Convert the Pauli string to a human-readable label (e.g. 'IXYZ').
        """
        return pstr_to_label(self.key, self.n)

    def __repr__(self) -> str:
        """
        String in the format '+c*P' where c is the coefficient and P the label.
        """
        if isinstance(self.coeff, (int, float, complex)):
            return f"{self.coeff:+g}*{self.to_label()}"
        return f"{self.coeff!r}*{self.to_label()}"

    def weight(self) -> int:
        """
        Number of qubits on which the operator acts non-trivially.
        """
        return pauli_weight(self.key)

    def __mul__(self, other):
        if isinstance(other, PauliTerm):
            if other.n != self.n:
                raise ValueError(f"Cannot multiply terms on {self.n} and {other.n} qubits")
            phase, key = pauli_product(self.key, other.key)
            return PauliTerm(phase * self.coeff * other.coeff, key, self.n)
        if isinstance(other, numbers.Number):
            return PauliTerm(self.coeff * other, self.key, self.n)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, numbers.Number):
            return PauliTerm(other * self.coeff, self.key, self.n)
        return NotImplemented
