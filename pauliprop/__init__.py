# -*- coding: utf-8 -*-

# pauliprop/__init__.py
"""
Pauli Propagation Package

This package provides tools for Heisenberg-picture back-propagation of Pauli
observables through quantum circuits made of Clifford gates, Pauli rotations
and Pauli noise channels, with truncation, a vectorized engine, surrogate
graphs for re-evaluation at new parameters, symmetry merging and Monte
Carlo path sampling with truncation-error estimates.
"""

from .pauli_term   import PauliTerm
from .pauli_sum    import PauliSum
from .gates        import (
    Gate,
    StaticGate,
    ParametrizedGate,
    CliffordGate,
    PauliRotation,
    MaskedPauliRotation,
    FrozenGate,
    PauliNoise,
    DepolarizingNoise,
    DephasingNoise,
    PauliXDamping,
    PauliYDamping,
    PauliZDamping,
    AmplitudeDampingNoise,
    freeze,
    to_masked,
    to_schrodinger,
    count_parameters,
)
from .clifford     import (
    CliffordTable,
    DEFAULT_CLIFFORD_TABLE,
    create_clifford_map,
    concatenate_clifford_maps,
    transpose_clifford_map,
)
from .path_properties import (
    PathProperties,
    PauliFreqTracker,
    tonumber,
    wrap_coefficients,
    unwrap_coefficients,
)
from .truncations  import Truncation, truncate, truncate_damping_coeff
from .propagator   import propagate, propagate_in_place, PauliPropagator
from .state_overlap import (
    evaluate_expectation,
    overlap_with_zero,
    overlap_with_plus,
    overlap_with_computational,
    overlap_with_pauli_sum,
    overlap_with_maxmixed,
    zero_filter,
    plus_filter,
)
from .vectorized   import (
    ArrayBackend,
    NumpyBackend,
    ThreadedBackend,
    PropagationCache,
    propagate_vectorized,
)
from .surrogate    import (
    SurrogateGraph,
    NodePathProperties,
    build_surrogate,
    evaluate_graph,
    surrogate_expectation,
)
from .symmetries   import symmetry_merge, translation_merge
from .qiskit_interface import from_qiskit, from_qasm
from .monte_carlo  import MonteCarlo
from .utils        import (
    encode_pauli,
    decode_pauli,
    label_to_pstr,
    pstr_to_label,
)

__all__ = [
    "PauliTerm",
    "PauliSum",
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
    "CliffordTable",
    "DEFAULT_CLIFFORD_TABLE",
    "create_clifford_map",
    "concatenate_clifford_maps",
    "transpose_clifford_map",
    "PathProperties",
    "PauliFreqTracker",
    "tonumber",
    "wrap_coefficients",
    "unwrap_coefficients",
    "Truncation",
    "truncate",
    "truncate_damping_coeff",
    "propagate",
    "propagate_in_place",
    "PauliPropagator",
    "evaluate_expectation",
    "overlap_with_zero",
    "overlap_with_plus",
    "overlap_with_computational",
    "overlap_with_pauli_sum",
    "overlap_with_maxmixed",
    "zero_filter",
    "plus_filter",
    "ArrayBackend",
    "NumpyBackend",
    "ThreadedBackend",
    "PropagationCache",
    "propagate_vectorized",
    "SurrogateGraph",
    "NodePathProperties",
    "build_surrogate",
    "evaluate_graph",
    "surrogate_expectation",
    "symmetry_merge",
    "translation_merge",
    "from_qiskit",
    "from_qasm",
    "MonteCarlo",
    "encode_pauli",
    "decode_pauli",
    "label_to_pstr",
    "pstr_to_label",
]

# Version
__version__ = "0.1.0"
