# -*- coding: utf-8 -*-

# pauliprop/path_properties.py
"""
Coefficient payloads carried by Pauli strings during propagation.

A coefficient is either a plain number or a :class:`PathProperties`
instance. Every payload kind declares the same explicit operations

- ``tonumber``  numeric projection
- ``is_zero``   whether the payload may be dropped from a sum
- ``merge``     combine two payloads stored under the same Pauli string
- ``scale``     multiply by a static factor (Clifford signs, noise damping)
- ``apply_cos`` / ``apply_sin``  the two branches of a Pauli rotation

and the module level functions of the same names dispatch between plain
numbers and payload objects so the propagation engine never has to.
"""

import math
from dataclasses import dataclass, replace
from typing import Any, Optional

__all__ = [
    "PathProperties",
    "PauliFreqTracker",
    "tonumber",
    "is_zero",
    "merge",
    "scale",
    "apply_cos",
    "apply_sin",
    "wrap_coefficients",
    "unwrap_coefficients",
    "payload_kind",
]


class PathProperties:
    """
    Base class of structured coefficients.

    Subclasses carrying branch counters expose them as the attributes
    ``nsins``, ``ncos`` and ``freq``; truncations test for those attributes
    to decide whether a payload supports them.
    """

    def tonumber(self):
        raise NotImplementedError

    def is_zero(self) -> bool:
        return self.tonumber() == 0

    def merge(self, other: "PathProperties") -> "PathProperties":
        raise NotImplementedError

    def scale(self, factor) -> "PathProperties":
        raise NotImplementedError

    def apply_cos(self, theta, param_idx: Optional[int] = None) -> "PathProperties":
        raise NotImplementedError

    def apply_sin(self, theta, sign: int, param_idx: Optional[int] = None) -> "PathProperties":
        raise NotImplementedError

    @classmethod
    def wrap(cls, coeff) -> "PathProperties":
        """Wrap a plain number into this payload kind."""
        return cls(coeff)

    @classmethod
    def wrap_sum(cls, psum):
        """Return a new PauliSum whose coefficients are wrapped into this kind."""
        from .pauli_sum import PauliSum

        wrapped = PauliSum(psum.nqubits)
        for pstr, coeff in psum.items():
            wrapped.set(pstr, cls.wrap(tonumber(coeff)))
        return wrapped

    def _check_kind(self, other) -> None:
        if type(other) is not type(self):
            raise TypeError(
                f"Cannot merge coefficients of kind {type(self).__name__} "
                f"and {type(other).__name__}"
            )

    def __add__(self, other):
        return self.merge(other)

    def __mul__(self, factor):
        return self.scale(factor)

    def __rmul__(self, factor):
        return self.scale(factor)

    def __truediv__(self, factor):
        return self.scale(1 / factor)

    def __neg__(self):
        return self.scale(-1)


@dataclass(frozen=True, slots=True)
class PauliFreqTracker(PathProperties):
    """
    Numeric coefficient with branch counters.

    Attributes
    ----------
    coeff : float | complex
        Numeric value of the path
    nsins : int
        Number of sin branches taken
    ncos : int
        Number of cos branches taken
    freq : int
        Number of splitting gates the path was split at

    Notes
    -----
    Merging adds the coefficients and keeps the minimum of every counter,
    so a term's bookkeeping reflects its least-branched producing path.
    """
    coeff: Any
    nsins: int = 0
    ncos:  int = 0
    freq:  int = 0

    def tonumber(self):
        return self.coeff

    def is_zero(self) -> bool:
        return self.coeff == 0

    def merge(self, other: "PauliFreqTracker") -> "PauliFreqTracker":
        self._check_kind(other)
        return PauliFreqTracker(
            self.coeff + other.coeff,
            min(self.nsins, other.nsins),
            min(self.ncos, other.ncos),
            min(self.freq, other.freq),
        )

    def scale(self, factor) -> "PauliFreqTracker":
        return replace(self, coeff=self.coeff * factor)

    def apply_cos(self, theta, param_idx=None) -> "PauliFreqTracker":
        return PauliFreqTracker(self.coeff * math.cos(theta), self.nsins, self.ncos + 1, self.freq + 1)

    def apply_sin(self, theta, sign, param_idx=None) -> "PauliFreqTracker":
        return PauliFreqTracker(self.coeff * sign * math.sin(theta), self.nsins + 1, self.ncos, self.freq + 1)


def tonumber(coeff):
    """Numeric projection of a coefficient."""
    if isinstance(coeff, PathProperties):
        return coeff.tonumber()
    return coeff


def is_zero(coeff) -> bool:
    if isinstance(coeff, PathProperties):
        return coeff.is_zero()
    return coeff == 0


def merge(a, b):
    """Combine two coefficients stored under the same Pauli string."""
    if isinstance(a, PathProperties):
        return a.merge(b)
    if isinstance(b, PathProperties):
        raise TypeError(f"Cannot merge a plain number with a {type(b).__name__} coefficient")
    return a + b


def scale(coeff, factor):
    if isinstance(coeff, PathProperties):
        return coeff.scale(factor)
    return coeff * factor


def apply_cos(coeff, theta, param_idx: Optional[int] = None):
    """Coefficient of the unchanged branch of a Pauli rotation."""
    if isinstance(coeff, PathProperties):
        return coeff.apply_cos(theta, param_idx)
    return coeff * math.cos(theta)


def apply_sin(coeff, theta, sign: int, param_idx: Optional[int] = None):
    """Coefficient of the transformed branch of a Pauli rotation."""
    if isinstance(coeff, PathProperties):
        return coeff.apply_sin(theta, sign, param_idx)
    return coeff * sign * math.sin(theta)


def payload_kind(psum) -> Optional[type]:
    """
    Return the PathProperties subclass used by ``psum``, or None for numbers.

    Raises
    ------
    TypeError
        If the sum mixes payload kinds.
    """
    kinds = {type(c) for c in psum.values() if isinstance(c, PathProperties)}
    if not kinds:
        return None
    if len(kinds) > 1:
        raise TypeError(f"PauliSum mixes coefficient kinds {sorted(k.__name__ for k in kinds)}")
    kind = kinds.pop()
    if any(not isinstance(c, kind) for c in psum.values()):
        raise TypeError(f"PauliSum mixes plain numbers with {kind.__name__} coefficients")
    return kind


def wrap_coefficients(term_or_sum, kind: type):
    """
    Wrap the coefficients of a PauliTerm or PauliSum into ``kind``.

    Parameters
    ----------
    term_or_sum : PauliTerm | PauliSum
        Input with numeric coefficients
    kind : type
        A PathProperties subclass, e.g. PauliFreqTracker or NodePathProperties

    Returns
    -------
    PauliTerm | PauliSum
        A new object of the same type as the input
    """
    from .pauli_sum import PauliSum
    from .pauli_term import PauliTerm

    if not (isinstance(kind, type) and issubclass(kind, PathProperties)):
        raise TypeError(f"Expected a PathProperties subclass, got {kind!r}")
    if isinstance(term_or_sum, PauliTerm):
        psum = PauliSum(term_or_sum.n)
        psum.set(term_or_sum.key, term_or_sum.coeff)
        wrapped = kind.wrap_sum(psum)
        if not len(wrapped):
            return PauliTerm(kind.wrap(term_or_sum.coeff), term_or_sum.key, term_or_sum.n)
        return wrapped.to_terms()[0]
    return kind.wrap_sum(term_or_sum)


def unwrap_coefficients(psum):
    """Return a new PauliSum holding the numeric projection of every coefficient."""
    from .pauli_sum import PauliSum

    unwrapped = PauliSum(psum.nqubits)
    for pstr, coeff in psum.items():
        unwrapped.add(pstr, tonumber(coeff))
    return unwrapped
