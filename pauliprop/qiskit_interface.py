# -*- coding: utf-8 -*-

# pauliprop/qiskit_interface.py
"""
Translation of qiskit circuits into pauliprop gate lists.

Rules are registered by qiskit instruction name in :class:`QiskitTranslator`.
Each rule receives the qubit indices and the instruction parameters and
returns ``(gate, parameter)``; ``parameter`` is None for static gates and
otherwise appended to the circuit parameter list.

Notes
-----
- Rotations follow qiskit's ``exp(-i θ/2 P)`` convention, so angles are
  passed through unchanged.
- Gates equal to a rotation up to a global phase (``p``, ``u1``, ``t``,
  ``sdg``, ...) are mapped to that rotation.
- Fixed-angle non-Clifford gates become :class:`FrozenGate`.
"""

import math
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from qiskit import QuantumCircuit
from qiskit.circuit import ParameterExpression

from .gates import CliffordGate, FrozenGate, Gate, PauliRotation

__all__ = ["QiskitTranslator", "from_qiskit", "from_qasm"]

Rule = Callable[[Tuple[int, ...], Sequence[Any]], Tuple[Gate, Optional[float]]]

# Instructions without an action on observables
_SKIPPED = frozenset(("barrier", "id", "delay"))


class QiskitTranslator:
    """
    Registry of translation rules keyed by qiskit instruction name.

    Attributes
    ----------
    _registry : Dict[str, Rule]
        Dictionary mapping instruction names to their translation rule.
    """
    _registry: Dict[str, Rule] = {}

    @classmethod
    def get(cls, name: str) -> Rule:
        """
        Get the translation rule for an instruction name.

        Raises
        ------
        NotImplementedError
            If no rule exists for the requested gate.
        """
        if name not in cls._registry:
            raise NotImplementedError(f"No rule for gate '{name}'")
        return cls._registry[name]

    @staticmethod
    def register_rule(*names: str):
        """
        Decorator to register a rule under one or more instruction names.

        Example
        -------
        @QiskitTranslator.register_rule("rx")
        def rx_rule(qinds, params):
            return PauliRotation("X", qinds), params[0]
        """
        def decorator(func):
            for name in names:
                QiskitTranslator._registry[name] = func
            return func
        return decorator


def _angle(value) -> float:
    if isinstance(value, ParameterExpression) and value.parameters:
        raise ValueError(f"Circuit parameter {value} is unbound; assign parameters before translating")
    return float(value)


def _clifford_rule(symbol: str) -> Rule:
    def rule(qinds, params):
        return CliffordGate(symbol, qinds), None
    return rule


def _frozen_rule(symbols: str, theta: float) -> Rule:
    def rule(qinds, params):
        return FrozenGate(PauliRotation(symbols, qinds), theta), None
    return rule


def _rotation_rule(symbols: str) -> Rule:
    def rule(qinds, params):
        return PauliRotation(symbols, qinds), _angle(params[0])
    return rule


# ------------------------------------------------------------------------------------------------------------------------
# Clifford gates
# ------------------------------------------------------------------------------------------------------------------------

for _name, _symbol in (("h", "H"), ("x", "X"), ("y", "Y"), ("z", "Z"), ("s", "S"), ("sx", "SX"),
                       ("cx", "CNOT"), ("cz", "CZ"), ("swap", "SWAP")):
    QiskitTranslator.register_rule(_name)(_clifford_rule(_symbol))

# ------------------------------------------------------------------------------------------------------------------------
# Fixed-angle gates, equal to a frozen rotation up to a global phase
# ------------------------------------------------------------------------------------------------------------------------

QiskitTranslator.register_rule("sdg")(_frozen_rule("Z", -math.pi / 2))
QiskitTranslator.register_rule("sxdg")(_frozen_rule("X", -math.pi / 2))
QiskitTranslator.register_rule("t")(_frozen_rule("Z", math.pi / 4))
QiskitTranslator.register_rule("tdg")(_frozen_rule("Z", -math.pi / 4))

# ------------------------------------------------------------------------------------------------------------------------
# Parametrized rotations
# ------------------------------------------------------------------------------------------------------------------------

for _name, _symbols in (("rx", "X"), ("ry", "Y"), ("rz", "Z"), ("p", "Z"), ("u1", "Z"),
                        ("rxx", "XX"), ("ryy", "YY"), ("rzz", "ZZ"),
                        # qiskit's RZX puts Z on the first qubit
                        ("rzx", "ZX")):
    QiskitTranslator.register_rule(_name)(_rotation_rule(_symbols))


def from_qiskit(qc: QuantumCircuit) -> Tuple[List[Gate], List[float]]:
    """
    Translate a bound qiskit circuit.

    Parameters
    ----------
    qc : QuantumCircuit
        Circuit whose parameters are all bound

    Returns
    -------
    Tuple[List[Gate], List[float]]
        ``(circuit, parameters)``: gates in execution order and one angle per
        parametrized gate, in circuit order

    Raises
    ------
    NotImplementedError
        For an instruction without a rule (measurements included)
    ValueError
        For unbound parameters
    """
    q2i = {q: i for i, q in enumerate(qc.qubits)}
    circuit: List[Gate] = []
    parameters: List[float] = []
    for instr in qc.data:
        name = instr.operation.name
        if name in _SKIPPED:
            continue
        qinds = tuple(q2i[q] for q in instr.qubits)
        gate, parameter = QiskitTranslator.get(name)(qinds, instr.operation.params)
        circuit.append(gate)
        if parameter is not None:
            parameters.append(parameter)
    return circuit, parameters


def from_qasm(source: str) -> Tuple[int, List[Gate], List[float]]:
    """
    Read an OpenQASM 2 program (file path or program text).

    Returns
    -------
    Tuple[int, List[Gate], List[float]]
        ``(nqubits, circuit, parameters)``
    """
    if source.lstrip().startswith("OPENQASM"):
        qc = QuantumCircuit.from_qasm_str(source)
    else:
        qc = QuantumCircuit.from_qasm_file(source)
    circuit, parameters = from_qiskit(qc)
    return qc.num_qubits, circuit, parameters
