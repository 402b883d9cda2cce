# -*- coding: utf-8 -*-

# pauliprop/gates.py
"""
Gate model for Pauli propagation.

Every gate exposes the qubit indices it acts on and a Heisenberg-picture
transformation rule on packed Pauli strings.

Notes
-----
- Static gates (Clifford gates, frozen gates) map one Pauli string to one
  Pauli string, or to a fixed set of strings for frozen noise channels.
- Parametrized gates consume one value from the circuit's parameter list.
- Pauli rotations follow the half-angle convention ``U = exp(-i θ/2 P)`` and
  split a non-commuting string ``Q`` into ``cos(θ) Q + sign sin(θ) PQ``.
- ``apply`` returns a list of ``(pstr, coeff)`` pairs and is meant for
  single-term callers; the propagation engine dispatches on gate type and
  works on whole PauliSums.
"""

import math
import numbers
from typing import Any, List, Optional, Sequence, Tuple, Union

from .clifford import DEFAULT_CLIFFORD_TABLE, CliffordTable, transpose_clifford_map
from .pauli_algebra import (
    commutes,
    get_pauli,
    get_paulis,
    product_phase_exponent,
    set_pauli,
    set_paulis,
    symbol_to_int,
    symbols_to_pstr,
    PAULI_SYMBOLS,
)
from .path_properties import apply_cos, apply_sin, scale

__all__ = [
    "Gate",
    "StaticGate",
    "ParametrizedGate",
    "CliffordGate",
    "PauliRotation",
    "MaskedPauliRotation",
    "FrozenGate",
    "PauliNoise",
    "DepolarizingNoise",
    "DephasingNoise",
    "PauliXDamping",
    "PauliYDamping",
    "PauliZDamping",
    "AmplitudeDampingNoise",
    "freeze",
    "to_masked",
    "to_schrodinger",
    "count_parameters",
    "max_qubit_index",
]


def _check_qinds(qinds: Union[int, Sequence[int]]) -> Tuple[int, ...]:
    if isinstance(qinds, numbers.Integral):
        qinds = (qinds,)
    qinds = tuple(qinds)
    if not qinds:
        raise ValueError("A gate must act on at least one qubit")
    for q in qinds:
        if not isinstance(q, numbers.Integral) or isinstance(q, bool) or q < 0:
            raise ValueError(f"Qubit indices must be non-negative integers, got {q!r}")
    if len(set(qinds)) != len(qinds):
        raise ValueError(f"Qubit indices must be unique, got {qinds}")
    return tuple(int(q) for q in qinds)


def _rotation_sign(exponent: int) -> int:
    # real(1j * 1j**k) for odd k
    return (exponent & 2) - 1


class Gate:
    """
    Common interface of all gates.

    Attributes
    ----------
    qinds : Tuple[int, ...]
        Qubit indices the gate acts on, 0-based
    is_parametrized : bool
        Whether the gate consumes a value from the parameter list
    """
    is_parametrized = False
    qinds: Tuple[int, ...] = ()

    def check_qubits(self, nqubits: int) -> None:
        """Raise if the gate acts outside an ``nqubits`` register."""
        if max(self.qinds) >= nqubits:
            raise ValueError(
                f"{type(self).__name__} acts on qubits {self.qinds}, "
                f"out of range for {nqubits} qubits"
            )

    def apply(self, pstr: int, coeff, parameter=None, param_idx: Optional[int] = None) -> List[Tuple[int, Any]]:
        raise NotImplementedError(f"No rule for gate '{type(self).__name__}'")

    def to_schrodinger(self, parameter=None) -> Tuple["Gate", Any]:
        """
        Gate and parameter implementing the adjoint action, so that the
        Heisenberg engine propagates states forward (``U rho U^dagger``).
        """
        raise NotImplementedError(
            f"No Schrödinger-picture rule for gate '{type(self).__name__}', "
            f"implement {type(self).__name__}.to_schrodinger"
        )

    def _key(self) -> tuple:
        return (self.qinds,)

    def __eq__(self, other) -> bool:
        return type(other) is type(self) and other._key() == self._key()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._key()))


class StaticGate(Gate):
    """Gate without a free parameter."""


class ParametrizedGate(Gate):
    """Gate consuming one value of the circuit parameter list."""
    is_parametrized = True

    def check_parameter(self, value) -> None:
        if not isinstance(value, numbers.Real):
            raise ValueError(f"{type(self).__name__} parameter must be a real number, got {value!r}")


# ---------------------------------------------------------------------------
# Clifford gates
# ---------------------------------------------------------------------------

class CliffordGate(StaticGate):
    """
    Clifford gate looked up by name in a Clifford table.

    Parameters
    ----------
    symbol : str
        Name of the map, e.g. ``"H"``, ``"CNOT"``
    qinds : int | Sequence[int]
        Qubit indices; the first index is the lowest two bits of the local
        pattern (control first for ``"CNOT"``)
    table : CliffordTable
        Table holding the map, defaults to ``DEFAULT_CLIFFORD_TABLE``
    """

    def __init__(self, symbol: str, qinds: Union[int, Sequence[int]],
                 table: CliffordTable = DEFAULT_CLIFFORD_TABLE):
        if symbol not in table:
            raise ValueError(f"No Clifford map for gate '{symbol}', known gates: {sorted(table)}")
        self.symbol = symbol
        self.qinds = _check_qinds(qinds)
        self.table = table
        if table.nqubits(symbol) != len(self.qinds):
            raise ValueError(
                f"Clifford gate '{symbol}' acts on {table.nqubits(symbol)} qubits, "
                f"got indices {self.qinds}"
            )
        self._map = table[symbol]

    def apply_to_pstr(self, pstr: int) -> Tuple[int, int]:
        """Return ``(new_pstr, sign)``."""
        new_local, sign = self._map[get_paulis(pstr, self.qinds)]
        return set_paulis(pstr, new_local, self.qinds), sign

    def apply(self, pstr, coeff, parameter=None, param_idx=None):
        new_pstr, sign = self.apply_to_pstr(pstr)
        return [(new_pstr, coeff if sign == 1 else scale(coeff, sign))]

    def to_schrodinger(self, parameter=None):
        if transpose_clifford_map(self._map) == self._map:
            return self, None
        name = f"{self.symbol}_transpose"
        table = self.table
        if name not in table:
            table = table.extended(name, transpose_clifford_map(self._map))
        return CliffordGate(name, self.qinds, table), None

    def _key(self) -> tuple:
        return (self.symbol, self.qinds, self._map)

    def __repr__(self) -> str:
        return f"CliffordGate({self.symbol!r}, {list(self.qinds)})"


# ---------------------------------------------------------------------------
# Pauli rotations
# ---------------------------------------------------------------------------

class PauliRotation(ParametrizedGate):
    """
    Rotation ``exp(-i θ/2 P)`` generated by a Pauli string ``P``.

    Parameters
    ----------
    symbols : str | Sequence[str]
        Pauli symbols of the generator, e.g. ``"ZZ"`` or ``["X", "Y"]``
    qinds : int | Sequence[int]
        Qubit indices, one per symbol

    Examples
    --------
    >>> gate = PauliRotation("ZZ", [0, 1])
    >>> gate.apply(0b01, 1.0, 0.4)[1][0] == 0b1110
    True
    """

    def __init__(self, symbols: Union[str, Sequence[str]], qinds: Union[int, Sequence[int]]):
        symbols = tuple(str(s).upper() for s in symbols)
        for s in symbols:
            if s not in PAULI_SYMBOLS:
                raise ValueError(f"Unknown Pauli symbol '{s}', expected one of {PAULI_SYMBOLS}")
        self.qinds = _check_qinds(qinds)
        if len(symbols) != len(self.qinds):
            raise ValueError(f"Got {len(symbols)} symbols for {len(self.qinds)} qubit indices")
        self.symbols = symbols
        self._local_generator = sum(symbol_to_int(s) << (2 * j) for j, s in enumerate(symbols))

    @property
    def generator(self) -> int:
        """Generator as a packed Pauli string on the full register."""
        return symbols_to_pstr(self.symbols, self.qinds)

    def commutes(self, pstr: int) -> bool:
        return commutes(self._local_generator, get_paulis(pstr, self.qinds))

    def transform(self, pstr: int) -> Tuple[int, int]:
        """
        Image of an anticommuting Pauli string under the generator.

        Returns
        -------
        Tuple[int, int]
            ``(G * pstr up to phase, sign)`` where sign is ``real(i * phase)``
        """
        local = get_paulis(pstr, self.qinds)
        sign = _rotation_sign(product_phase_exponent(self._local_generator, local))
        return set_paulis(pstr, local ^ self._local_generator, self.qinds), sign

    def apply(self, pstr, coeff, parameter=None, param_idx=None):
        if self.commutes(pstr):
            return [(pstr, coeff)]
        new_pstr, sign = self.transform(pstr)
        return [
            (pstr, apply_cos(coeff, parameter, param_idx)),
            (new_pstr, apply_sin(coeff, parameter, sign, param_idx)),
        ]

    def to_schrodinger(self, parameter=None):
        # exp(-i θ/2 P)^dagger = exp(i θ/2 P)
        if parameter is None:
            raise ValueError(f"{type(self).__name__} needs a numeric angle in the Schrödinger picture")
        return self, -parameter

    def _key(self) -> tuple:
        return (self.symbols, self.qinds)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({''.join(self.symbols)!r}, {list(self.qinds)})"


class MaskedPauliRotation(PauliRotation):
    """
    Pauli rotation with its generator cached as a full-register Pauli string.

    Commutation and transformation then act on whole integers without
    extracting the local pattern first.
    """

    def __init__(self, symbols, qinds, generator_mask: Optional[int] = None):
        super().__init__(symbols, qinds)
        full = symbols_to_pstr(self.symbols, self.qinds)
        if generator_mask is not None and generator_mask != full:
            raise ValueError("generator_mask does not match the rotation's symbols and indices")
        self.generator_mask = full

    @property
    def generator(self) -> int:
        return self.generator_mask

    def commutes(self, pstr: int) -> bool:
        return commutes(self.generator_mask, pstr)

    def transform(self, pstr: int) -> Tuple[int, int]:
        sign = _rotation_sign(product_phase_exponent(self.generator_mask, pstr))
        return pstr ^ self.generator_mask, sign


# ---------------------------------------------------------------------------
# Noise channels
# ---------------------------------------------------------------------------

def _check_noise_strength(gate_type: type, p) -> None:
    if not isinstance(p, numbers.Real) or not 0 <= p <= 1:
        raise ValueError(f"{gate_type.__name__} parameter must be between 0 and 1. Got {p}.")


class PauliNoise(ParametrizedGate):
    """
    Single-qubit Pauli channel damping some local Paulis by ``1 - p``.

    Subclasses list the damped symbol codes in ``damped``.
    """
    damped: frozenset = frozenset()

    def __init__(self, qind: int):
        self.qinds = _check_qinds(qind)
        if len(self.qinds) != 1:
            raise ValueError(f"{type(self).__name__} acts on a single qubit, got {self.qinds}")

    @property
    def qind(self) -> int:
        return self.qinds[0]

    def check_parameter(self, value) -> None:
        _check_noise_strength(type(self), value)

    def is_damped(self, pauli: int) -> bool:
        return pauli in self.damped

    def apply(self, pstr, coeff, parameter=None, param_idx=None):
        if self.is_damped(get_pauli(pstr, self.qind)):
            return [(pstr, scale(coeff, 1 - parameter))]
        return [(pstr, coeff)]

    def to_schrodinger(self, parameter=None):
        return self, parameter

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.qind})"


class DepolarizingNoise(PauliNoise):
    """Damps X, Y and Z equally by ``1 - p``."""
    damped = frozenset((1, 2, 3))


class DephasingNoise(PauliNoise):
    """Damps X and Y by ``1 - p``."""
    damped = frozenset((1, 2))


class PauliXDamping(PauliNoise):
    damped = frozenset((1,))


class PauliYDamping(PauliNoise):
    damped = frozenset((2,))


class PauliZDamping(PauliNoise):
    damped = frozenset((3,))


class AmplitudeDampingNoise(ParametrizedGate):
    """
    Amplitude damping with strength ``γ``.

    X and Y are damped by ``sqrt(1 - γ)``; Z splits into ``γ I + (1 - γ) Z``.
    It is the only noise channel that can create new Pauli strings.
    """

    def __init__(self, qind: int):
        self.qinds = _check_qinds(qind)
        if len(self.qinds) != 1:
            raise ValueError(f"AmplitudeDampingNoise acts on a single qubit, got {self.qinds}")

    @property
    def qind(self) -> int:
        return self.qinds[0]

    def check_parameter(self, value) -> None:
        _check_noise_strength(type(self), value)

    def apply(self, pstr, coeff, parameter=None, param_idx=None):
        pauli = get_pauli(pstr, self.qind)
        if pauli == 0:
            return [(pstr, coeff)]
        if pauli in (1, 2):
            return [(pstr, scale(coeff, math.sqrt(1 - parameter)))]
        return [
            (pstr, scale(coeff, 1 - parameter)),
            (set_pauli(pstr, 0, self.qind), scale(coeff, parameter)),
        ]

    def __repr__(self) -> str:
        return f"AmplitudeDampingNoise({self.qind})"


# ---------------------------------------------------------------------------
# Frozen gates and circuit helpers
# ---------------------------------------------------------------------------

class FrozenGate(StaticGate):
    """
    A parametrized gate with a fixed parameter.

    Parameters
    ----------
    gate : ParametrizedGate
        The wrapped gate
    parameter : float
        Fixed value, validated by the wrapped gate
    """

    def __init__(self, gate: ParametrizedGate, parameter):
        if isinstance(gate, FrozenGate):
            raise ValueError("Cannot freeze a FrozenGate")
        if not getattr(gate, "is_parametrized", False):
            raise ValueError(f"Only parametrized gates can be frozen, got {type(gate).__name__}")
        gate.check_parameter(parameter)
        self.gate = gate
        self.parameter = parameter
        self.qinds = gate.qinds

    def apply(self, pstr, coeff, parameter=None, param_idx=None):
        return self.gate.apply(pstr, coeff, self.parameter, None)

    def to_schrodinger(self, parameter=None):
        gate, value = self.gate.to_schrodinger(self.parameter)
        return FrozenGate(gate, value), None

    def _key(self) -> tuple:
        return (self.gate, self.parameter)

    def __repr__(self) -> str:
        return f"FrozenGate({self.gate!r}, {self.parameter})"


def freeze(gates, parameters):
    """
    Freeze a gate, or every parametrized gate of a circuit, at fixed values.

    Parameters
    ----------
    gates : ParametrizedGate | List[Gate]
        A single gate or a circuit
    parameters : float | Sequence[float]
        One value, or one value per parametrized gate of the circuit

    Returns
    -------
    FrozenGate | List[Gate]
    """
    if isinstance(gates, Gate):
        return FrozenGate(gates, parameters)
    parameters = list(parameters)
    if len(parameters) != count_parameters(gates):
        raise ValueError(
            f"Got {len(parameters)} parameters for {count_parameters(gates)} parametrized gates"
        )
    values = iter(parameters)
    return [FrozenGate(g, next(values)) if g.is_parametrized else g for g in gates]


def to_masked(gates, nqubits: Optional[int] = None):
    """
    Convert Pauli rotations into their masked form.

    Idempotent: masked rotations are returned unchanged and frozen rotations
    are rebuilt around a masked gate. Other gates pass through.
    """
    if isinstance(gates, Gate):
        if nqubits is not None:
            gates.check_qubits(nqubits)
        if isinstance(gates, MaskedPauliRotation):
            return gates
        if isinstance(gates, PauliRotation):
            return MaskedPauliRotation(gates.symbols, gates.qinds)
        if isinstance(gates, FrozenGate) and isinstance(gates.gate, PauliRotation):
            return FrozenGate(to_masked(gates.gate), gates.parameter)
        return gates
    return [to_masked(g, nqubits) for g in gates]


def to_schrodinger(circuit, parameters=None):
    """
    Convert a circuit and its parameters to the Schrödinger picture.

    Each gate is replaced by the gate returned from its ``to_schrodinger``
    method: rotation angles change sign, Clifford gates use the inverse map
    and Pauli channels are unchanged. Gate order is kept.

    Returns
    -------
    Tuple[List[Gate], List]
        Converted circuit and parameters

    Raises
    ------
    NotImplementedError
        For gates without a Schrödinger rule, e.g. AmplitudeDampingNoise
    """
    if isinstance(circuit, Gate):
        circuit = [circuit]
    parameters = [] if parameters is None else list(parameters)
    if len(parameters) != count_parameters(circuit):
        raise ValueError(
            f"Got {len(parameters)} parameters for {count_parameters(circuit)} parametrized gates"
        )
    values = iter(parameters)
    new_circuit, new_parameters = [], []
    for gate in circuit:
        if gate.is_parametrized:
            new_gate, value = gate.to_schrodinger(next(values))
            new_parameters.append(value)
        else:
            new_gate, _ = gate.to_schrodinger()
        new_circuit.append(new_gate)
    return new_circuit, new_parameters


def count_parameters(circuit) -> int:
    """Number of parametrized gates in a circuit."""
    if isinstance(circuit, Gate):
        return int(circuit.is_parametrized)
    return sum(1 for g in circuit if g.is_parametrized)


def max_qubit_index(circuit) -> int:
    return max((max(g.qinds) for g in circuit), default=-1)
