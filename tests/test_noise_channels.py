# -*- coding: utf-8 -*-

import random
import numpy as np
import pytest
from qiskit.quantum_info import Pauli

from pauliprop import PauliSum, propagate
from pauliprop.gates import (
    AmplitudeDampingNoise,
    DephasingNoise,
    DepolarizingNoise,
    FrozenGate,
    PauliRotation,
    PauliXDamping,
    PauliYDamping,
    PauliZDamping,
)
from pauliprop.utils import label_to_pstr

I2 = np.eye(2, dtype=complex)
X = Pauli("X").to_matrix()
Y = Pauli("Y").to_matrix()
Z = Pauli("Z").to_matrix()


def depolarizing_kraus(p):
    return [np.sqrt(1 - 3 * p / 4) * I2] + [np.sqrt(p / 4) * s for s in (X, Y, Z)]


def dephasing_kraus(p):
    return [np.sqrt(1 - p / 2) * I2, np.sqrt(p / 2) * Z]


def amplitude_damping_kraus(gamma):
    return [
        np.array([[1, 0], [0, np.sqrt(1 - gamma)]], dtype=complex),
        np.array([[0, np.sqrt(gamma)], [0, 0]], dtype=complex),
    ]


def adjoint_channel(kraus, P):
    """Heisenberg-picture action sum_k K^dagger P K."""
    return sum(K.conj().T @ P @ K for K in kraus)


CHANNELS = [
    (DepolarizingNoise, depolarizing_kraus),
    (DephasingNoise, dephasing_kraus),
    (AmplitudeDampingNoise, amplitude_damping_kraus),
]


@pytest.mark.parametrize("gate_cls, kraus", CHANNELS)
@pytest.mark.parametrize("label", ["I", "X", "Y", "Z"])
@pytest.mark.parametrize("p", [0.0, 0.1, 0.5, 1.0])
def test_channels_match_kraus(gate_cls, kraus, label, p):
    out = propagate([gate_cls(0)], PauliSum.from_label(label), [p])
    expected = adjoint_channel(kraus(p), Pauli(label).to_matrix())
    assert np.allclose(out.to_matrix(), expected), f"{gate_cls.__name__}({p}) on {label}"


@pytest.mark.parametrize("gate_cls, damped", [
    (PauliXDamping, "X"),
    (PauliYDamping, "Y"),
    (PauliZDamping, "Z"),
])
def test_single_pauli_damping(gate_cls, damped):
    for label in "XYZ":
        out = propagate([gate_cls(1)], PauliSum.from_label(label + "I"), [0.25])
        expected = 0.75 if label == damped else 1.0
        assert out[label_to_pstr(label + "I")] == pytest.approx(expected)


def test_amplitude_damping_splits_z():
    out = propagate([AmplitudeDampingNoise(0)], PauliSum.from_label("ZZ"), [0.3])
    assert out[label_to_pstr("ZZ")] == pytest.approx(0.7)
    assert out[label_to_pstr("ZI")] == pytest.approx(0.3)


def test_full_damping_removes_terms():
    out = propagate([DepolarizingNoise(0)], PauliSum.from_label("X"), [1.0])
    assert len(out) == 0


@pytest.mark.parametrize("p", [-0.1, 1.5, "a"])
def test_noise_strength_validation(p):
    with pytest.raises(ValueError, match="must be between 0 and 1"):
        propagate([DepolarizingNoise(0)], PauliSum.from_label("X"), [p])
    with pytest.raises(ValueError, match="must be between 0 and 1"):
        FrozenGate(AmplitudeDampingNoise(0), p)


def test_noise_acts_on_one_qubit():
    with pytest.raises(ValueError):
        DepolarizingNoise([0, 1])
    with pytest.raises(ValueError):
        AmplitudeDampingNoise([0, 1])


TRIALS = 10


@pytest.mark.parametrize("trial", range(TRIALS))
def test_noisy_circuit_matches_density_matrix(trial):
    """Single-qubit circuit of rotations and channels, checked against superoperators."""
    circuit, params = [], []
    reference = [np.eye(2, dtype=complex)]
    for _ in range(6):
        if random.random() < 0.5:
            symbol = random.choice("XYZ")
            theta = random.uniform(0, 2 * np.pi)
            circuit.append(PauliRotation(symbol, 0))
            params.append(theta)
            P = Pauli(symbol).to_matrix()
            reference.append([np.cos(theta / 2) * I2 - 1j * np.sin(theta / 2) * P])
        else:
            gate_cls, kraus = random.choice(CHANNELS)
            p = random.uniform(0, 1)
            circuit.append(gate_cls(0))
            params.append(p)
            reference.append(kraus(p))
    label = random.choice("XYZ")
    out = propagate(circuit, PauliSum.from_label(label), params)

    expected = Pauli(label).to_matrix()
    for kraus in reversed(reference[1:]):
        expected = adjoint_channel(kraus, expected)
    assert np.allclose(out.to_matrix(), expected)
