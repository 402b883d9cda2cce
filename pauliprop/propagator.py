# -*- coding: utf-8 -*-

# pauliprop/propagator.py
"""
Map-backed Pauli propagation engine.

The observable is propagated backwards through the circuit (Heisenberg
picture): gates are visited from last to first and parameters are consumed
from the end of the parameter list. After every gate the active
truncations are applied. This engine is single-threaded and serves as the
reference for :mod:`pauliprop.vectorized`.
"""

import copy
import math
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from qiskit import QuantumCircuit
from tqdm.auto import tqdm

from .gates import (
    AmplitudeDampingNoise,
    CliffordGate,
    FrozenGate,
    Gate,
    PauliNoise,
    PauliRotation,
    count_parameters,
    max_qubit_index,
    to_schrodinger,
)
from .pauli_algebra import get_pauli, set_pauli
from .pauli_sum import PauliSum
from .pauli_term import PauliTerm
from .path_properties import (
    PauliFreqTracker,
    apply_cos,
    apply_sin,
    payload_kind,
    scale,
    unwrap_coefficients,
    wrap_coefficients,
)
from .truncations import Truncation

__all__ = [
    "propagate",
    "propagate_in_place",
    "apply_gate",
    "check_circuit_and_parameters",
    "PauliPropagator",
]


def _as_circuit(circuit) -> List[Gate]:
    if isinstance(circuit, Gate):
        return [circuit]
    return list(circuit)


def _as_pauli_sum(term_or_sum) -> PauliSum:
    if isinstance(term_or_sum, PauliSum):
        return term_or_sum
    if isinstance(term_or_sum, PauliTerm):
        return PauliSum(term_or_sum.n, term_or_sum)
    raise TypeError(f"Expected a PauliTerm or PauliSum, got {type(term_or_sum).__name__}")


def check_circuit_and_parameters(circuit: Sequence[Gate], parameters, nqubits: int) -> List[Any]:
    """
    Validate a circuit against its parameters and register size.

    Returns
    -------
    List[Any]
        The parameters as a list (empty for a parameter-free circuit)

    Raises
    ------
    ValueError
        On a parameter count mismatch, an out-of-range qubit index or an
        invalid parameter value (e.g. a noise strength outside [0, 1]).
    """
    for gate in circuit:
        if not isinstance(gate, Gate):
            raise TypeError(f"Circuit entries must be gates, got {type(gate).__name__}")
    nparams = count_parameters(circuit)
    if parameters is None:
        if nparams:
            raise ValueError(f"The circuit has {nparams} parametrized gates but no parameters were given")
        parameters = []
    parameters = list(parameters)
    if len(parameters) != nparams:
        raise ValueError(
            f"Got {len(parameters)} parameters for {nparams} parametrized gates in the circuit"
        )
    for gate in circuit:
        gate.check_qubits(nqubits)
    values = iter(parameters)
    for gate in circuit:
        if gate.is_parametrized:
            value = next(values)
            if value is not None:
                gate.check_parameter(value)
    return parameters


# ---------------------------------------------------------------------------
# per-gate kernels
# ---------------------------------------------------------------------------

def _swap_terms(psum: PauliSum, aux: PauliSum) -> None:
    psum.terms, aux.terms = aux.terms, psum.terms
    aux.clear()


def _merge_aux(psum: PauliSum, aux: PauliSum) -> None:
    for pstr, coeff in aux.items():
        psum.add(pstr, coeff)
    aux.clear()


def _apply_clifford(gate: CliffordGate, psum: PauliSum, aux: PauliSum) -> None:
    # Clifford maps are bijections, so no two strings collide in aux
    for pstr, coeff in psum.items():
        new_pstr, sign = gate.apply_to_pstr(pstr)
        aux.set(new_pstr, coeff if sign == 1 else scale(coeff, sign))
    _swap_terms(psum, aux)


def _apply_rotation(gate: PauliRotation, psum: PauliSum, aux: PauliSum, theta, param_idx) -> None:
    for pstr, coeff in list(psum.items()):
        if gate.commutes(pstr):
            continue
        new_pstr, sign = gate.transform(pstr)
        psum.set(pstr, apply_cos(coeff, theta, param_idx))
        aux.add(new_pstr, apply_sin(coeff, theta, sign, param_idx))
    _merge_aux(psum, aux)


def _apply_pauli_noise(gate: PauliNoise, psum: PauliSum, p) -> None:
    factor = 1 - p
    for pstr, coeff in list(psum.items()):
        if gate.is_damped(get_pauli(pstr, gate.qind)):
            psum.set(pstr, scale(coeff, factor))


def _apply_amplitude_damping(gate: AmplitudeDampingNoise, psum: PauliSum, aux: PauliSum, gamma) -> None:
    q = gate.qind
    xy_factor = math.sqrt(1 - gamma)
    for pstr, coeff in list(psum.items()):
        pauli = get_pauli(pstr, q)
        if pauli == 0:
            continue
        if pauli == 3:
            psum.set(pstr, scale(coeff, 1 - gamma))
            aux.add(set_pauli(pstr, 0, q), scale(coeff, gamma))
        else:
            psum.set(pstr, scale(coeff, xy_factor))
    _merge_aux(psum, aux)


def _apply_generic(gate: Gate, psum: PauliSum, aux: PauliSum, parameter, param_idx) -> None:
    for pstr, coeff in psum.items():
        for new_pstr, new_coeff in gate.apply(pstr, coeff, parameter, param_idx):
            aux.add(new_pstr, new_coeff)
    _swap_terms(psum, aux)


def apply_gate(gate: Gate, psum: PauliSum, aux: PauliSum, parameter=None, param_idx: Optional[int] = None) -> None:
    """
    Apply one gate to every term of ``psum`` in place.

    Parameters
    ----------
    gate : Gate
        Gate to apply
    psum : PauliSum
        Authoritative state, mutated
    aux : PauliSum
        Empty scratch sum on the same qubits, left empty on return
    parameter : Any
        Value consumed by a parametrized gate
    param_idx : int | None
        Position of ``parameter`` in the circuit parameter list, recorded
        by structured coefficients; None for fixed values
    """
    if isinstance(gate, FrozenGate):
        apply_gate(gate.gate, psum, aux, gate.parameter, None)
    elif isinstance(gate, CliffordGate):
        _apply_clifford(gate, psum, aux)
    elif isinstance(gate, PauliRotation):
        _apply_rotation(gate, psum, aux, parameter, param_idx)
    elif isinstance(gate, PauliNoise):
        _apply_pauli_noise(gate, psum, parameter)
    elif isinstance(gate, AmplitudeDampingNoise):
        _apply_amplitude_damping(gate, psum, aux, parameter)
    else:
        _apply_generic(gate, psum, aux, parameter, param_idx)


def _reversed_ops(circuit: Sequence[Gate], parameters: List[Any]) -> List[Tuple[Gate, Any, Optional[int]]]:
    ops = []
    param_idx = len(parameters)
    for gate in reversed(circuit):
        if gate.is_parametrized:
            param_idx -= 1
            ops.append((gate, parameters[param_idx], param_idx))
        else:
            ops.append((gate, None, None))
    return ops


# ---------------------------------------------------------------------------
# public API
# ---------------------------------------------------------------------------

def propagate_in_place(circuit,
                       psum: PauliSum,
                       parameters: Optional[Sequence[Any]] = None,
                       max_weight=math.inf,
                       min_abs_coeff: float = 0.0,
                       max_freq=math.inf,
                       max_sins=math.inf,
                       custom_truncation: Optional[Callable[[int, Any], bool]] = None,
                       show_progress: bool = False,
                       heisenberg: bool = True) -> PauliSum:
    """
    Propagate ``psum`` through ``circuit``, mutating and returning it.

    Unlike :func:`propagate`, coefficients are never wrapped automatically:
    ``max_freq``/``max_sins`` on plain numbers raise a TypeError.

    Parameters
    ----------
    circuit : List[Gate]
        Gates in execution order
    psum : PauliSum
        Observable, overwritten with the propagated observable
    parameters : Sequence | None
        One value per parametrized gate, in circuit order
    max_weight, min_abs_coeff, max_freq, max_sins, custom_truncation
        Truncation options, see :class:`pauliprop.truncations.Truncation`
    show_progress : bool
        Display a tqdm progress bar over the gates
    heisenberg : bool
        Propagate an observable backwards (default). With False the input is
        treated as a state and propagated forwards through the
        Schrödinger-picture circuit, see :func:`pauliprop.gates.to_schrodinger`

    Returns
    -------
    PauliSum
        ``psum`` itself
    """
    if not isinstance(psum, PauliSum):
        raise TypeError(f"propagate_in_place needs a PauliSum, got {type(psum).__name__}")
    circuit = _as_circuit(circuit)
    parameters = check_circuit_and_parameters(circuit, parameters, psum.nqubits)
    truncation = Truncation(max_weight, min_abs_coeff, max_freq, max_sins, custom_truncation)
    payload_kind(psum)
    for coeff in psum.values():
        truncation.check_payload(coeff)
        break

    if heisenberg:
        ops = _reversed_ops(circuit, parameters)
    else:
        circuit, parameters = to_schrodinger(circuit, parameters)
        ops = _reversed_ops(circuit, parameters)[::-1]
    aux = psum.similar()
    for gate, parameter, param_idx in tqdm(ops, desc=f"Propagating, max weight: {max_weight}",
                                          total=len(ops), disable=not show_progress):
        apply_gate(gate, psum, aux, parameter, param_idx)
        truncation.apply(psum)
        if not psum:
            break
    return psum


def propagate(circuit,
              term_or_sum: Union[PauliTerm, PauliSum],
              parameters: Optional[Sequence[Any]] = None,
              max_weight=math.inf,
              min_abs_coeff: float = 0.0,
              max_freq=math.inf,
              max_sins=math.inf,
              custom_truncation: Optional[Callable[[int, Any], bool]] = None,
              show_progress: bool = False,
              heisenberg: bool = True) -> PauliSum:
    """
    Propagate an observable through a circuit without modifying the input.

    If ``max_freq`` or ``max_sins`` is finite and the coefficients are plain
    numbers, they are wrapped into :class:`PauliFreqTracker` for the run and
    unwrapped again in the result.

    Examples
    --------
    >>> obs = PauliTerm.from_symbols(2, "X", 0)
    >>> out = propagate([PauliRotation("ZZ", [0, 1])], obs, [0.4])
    >>> len(out)
    2
    """
    psum = copy.deepcopy(_as_pauli_sum(term_or_sum))
    wrapped = False
    if (max_freq < math.inf or max_sins < math.inf) and len(psum) and payload_kind(psum) is None:
        psum = wrap_coefficients(psum, PauliFreqTracker)
        wrapped = True
    propagate_in_place(circuit, psum, parameters,
                       max_weight=max_weight, min_abs_coeff=min_abs_coeff,
                       max_freq=max_freq, max_sins=max_sins,
                       custom_truncation=custom_truncation, show_progress=show_progress,
                       heisenberg=heisenberg)
    if wrapped:
        return unwrap_coefficients(psum)
    return psum


class PauliPropagator:
    """
    Back-propagation of Pauli observables through a fixed circuit.

    Attributes
    ----------
    circuit : List[Gate]
        Gates in execution order
    parameters : List[float] | None
        Parameters bound at construction (from a qiskit circuit), if any
    n : int
        Number of qubits
    """

    def __init__(self, circuit: Union[QuantumCircuit, Sequence[Gate]], nqubits: Optional[int] = None):
        """
        Parameters
        ----------
        circuit : QuantumCircuit | Sequence[Gate]
            A qiskit circuit (converted with :func:`pauliprop.qiskit_interface.from_qiskit`)
            or a list of gates
        nqubits : int | None
            Register size; inferred from the circuit when omitted
        """
        if isinstance(circuit, QuantumCircuit):
            from .qiskit_interface import from_qiskit

            self.circuit, self.parameters = from_qiskit(circuit)
            self.n = circuit.num_qubits
        else:
            self.circuit = _as_circuit(circuit)
            self.parameters = None
            self.n = nqubits if nqubits is not None else max_qubit_index(self.circuit) + 1
            for gate in self.circuit:
                gate.check_qubits(self.n)
        if nqubits is not None and nqubits != self.n:
            raise ValueError(f"Circuit has {self.n} qubits, got nqubits={nqubits}")

    def _observable(self, observable) -> Union[PauliTerm, PauliSum]:
        if isinstance(observable, str):
            observable = PauliSum.from_label(observable)
        if isinstance(observable, PauliTerm):
            nq = observable.n
        else:
            nq = observable.nqubits
        if nq != self.n:
            raise ValueError("Observable qubit count mismatch")
        return observable

    def propagate(self, observable, parameters=None, **options) -> PauliSum:
        """
        Propagate an observable (label, PauliTerm or PauliSum).

        ``parameters`` defaults to the values bound at construction.
        Keyword options are forwarded to :func:`propagate`.
        """
        if parameters is None:
            parameters = self.parameters
        return propagate(self.circuit, self._observable(observable), parameters, **options)

    def expectation(self, observable, product_label: Optional[str] = None, parameters=None, **options):
        """
        Expectation value of ``observable`` after the circuit acts on a product state.

        Parameters
        ----------
        observable : str | PauliTerm | PauliSum
            Observable to measure
        product_label : str | None
            Product state over "01+-rl" (rightmost character is qubit 0);
            defaults to all zeros
        """
        from .state_overlap import evaluate_expectation

        propagated = self.propagate(observable, parameters, **options)
        return evaluate_expectation(propagated, product_label)
