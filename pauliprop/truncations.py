# -*- coding: utf-8 -*-

# pauliprop/truncations.py
"""
Truncation predicates applied after every gate.

A predicate has the signature ``(pstr, coeff) -> bool`` and returns True
when the term should be dropped. A term is dropped as soon as one active
predicate flags it.
"""

import math
from typing import Any, Callable, List, Optional

from .pauli_algebra import pauli_weight
from .path_properties import tonumber

__all__ = [
    "truncate_weight",
    "truncate_min_coeff",
    "truncate_frequency",
    "truncate_sins",
    "truncate_damping_coeff",
    "Truncation",
    "truncate",
]


def _require(coeff, field: str, option: str):
    try:
        return getattr(coeff, field)
    except AttributeError:
        raise TypeError(
            f"{option} truncation needs coefficients that track '{field}', "
            f"got {type(coeff).__name__}. Wrap the coefficients with "
            f"wrap_coefficients(..., PauliFreqTracker) first."
        ) from None


def truncate_weight(pstr: int, max_weight) -> bool:
    return pauli_weight(pstr) > max_weight


def truncate_min_coeff(coeff, min_abs_coeff: float) -> bool:
    return abs(tonumber(coeff)) < min_abs_coeff


def truncate_frequency(coeff, max_freq) -> bool:
    return _require(coeff, "freq", "max_freq") > max_freq


def truncate_sins(coeff, max_sins) -> bool:
    return _require(coeff, "nsins", "max_sins") > max_sins


def truncate_damping_coeff(pstr: int, coeff, gamma: float, min_abs_coeff: float) -> bool:
    """
    Drop a term whose coefficient, damped by ``exp(-gamma * weight)``, is
    below ``min_abs_coeff``.

    Suited to circuits with uniform noise where high-weight terms decay
    fastest. Use through ``custom_truncation``::

        custom_truncation=lambda p, c: truncate_damping_coeff(p, c, 0.1, 1e-4)
    """
    return abs(tonumber(coeff)) * math.exp(-gamma * pauli_weight(pstr)) < min_abs_coeff


class Truncation:
    """
    Bundle of the active truncation predicates.

    Parameters
    ----------
    max_weight : int | float
        Drop strings with more non-identity sites
    min_abs_coeff : float
        Drop terms whose numeric coefficient is smaller in magnitude
    max_freq : int | float
        Drop terms split more often (needs ``freq`` on the coefficients)
    max_sins : int | float
        Drop terms with more sin branches (needs ``nsins``)
    custom_truncation : Callable[[int, Any], bool] | None
        Additional user predicate
    """

    def __init__(self,
                 max_weight=math.inf,
                 min_abs_coeff: float = 0.0,
                 max_freq=math.inf,
                 max_sins=math.inf,
                 custom_truncation: Optional[Callable[[int, Any], bool]] = None):
        for name, value in (("max_weight", max_weight), ("max_freq", max_freq), ("max_sins", max_sins)):
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        if min_abs_coeff < 0:
            raise ValueError(f"min_abs_coeff must be non-negative, got {min_abs_coeff}")
        if custom_truncation is not None and not callable(custom_truncation):
            raise TypeError("custom_truncation must be callable with signature (pstr, coeff) -> bool")
        self.max_weight = max_weight
        self.min_abs_coeff = min_abs_coeff
        self.max_freq = max_freq
        self.max_sins = max_sins
        self.custom_truncation = custom_truncation

        predicates: List[Callable[[int, Any], bool]] = []
        if max_weight < math.inf:
            predicates.append(lambda p, c: truncate_weight(p, max_weight))
        if min_abs_coeff > 0:
            predicates.append(lambda p, c: truncate_min_coeff(c, min_abs_coeff))
        if max_freq < math.inf:
            predicates.append(lambda p, c: truncate_frequency(c, max_freq))
        if max_sins < math.inf:
            predicates.append(lambda p, c: truncate_sins(c, max_sins))
        if custom_truncation is not None:
            predicates.append(custom_truncation)
        self._predicates = predicates

    @property
    def is_active(self) -> bool:
        return bool(self._predicates)

    @property
    def needs_counters(self) -> bool:
        return self.max_freq < math.inf or self.max_sins < math.inf

    def check_payload(self, coeff) -> None:
        """
        Fail fast if ``coeff`` lacks a field an active predicate reads.

        Raises
        ------
        TypeError
            Naming the missing field.
        """
        if self.max_freq < math.inf:
            _require(coeff, "freq", "max_freq")
        if self.max_sins < math.inf:
            _require(coeff, "nsins", "max_sins")
        if self.min_abs_coeff > 0:
            tonumber(coeff)

    def __call__(self, pstr: int, coeff) -> bool:
        for predicate in self._predicates:
            if predicate(pstr, coeff):
                return True
        return False

    def apply(self, psum) -> None:
        """Remove every flagged term from ``psum`` in place."""
        if not self._predicates:
            return
        for pstr in [p for p, c in psum.items() if self(p, c)]:
            psum.delete(pstr)

    def __repr__(self) -> str:
        return (f"Truncation(max_weight={self.max_weight}, min_abs_coeff={self.min_abs_coeff}, "
                f"max_freq={self.max_freq}, max_sins={self.max_sins}, "
                f"custom_truncation={self.custom_truncation})")


def truncate(psum, max_weight=math.inf, min_abs_coeff: float = 0.0, max_freq=math.inf,
             max_sins=math.inf, custom_truncation=None):
    """
    Apply truncations to ``psum`` in place and return it.
    """
    truncation = Truncation(max_weight, min_abs_coeff, max_freq, max_sins, custom_truncation)
    for coeff in psum.values():
        truncation.check_payload(coeff)
        break
    truncation.apply(psum)
    return psum
