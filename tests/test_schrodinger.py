# -*- coding: utf-8 -*-

import random
import numpy as np
import pytest
from math import cos, pi, sin
from qiskit import QuantumCircuit
from qiskit.quantum_info import Operator, Pauli

from pauliprop import PauliSum, propagate
from pauliprop.clifford import DEFAULT_CLIFFORD_TABLE
from pauliprop.gates import (
    AmplitudeDampingNoise,
    CliffordGate,
    DephasingNoise,
    DepolarizingNoise,
    FrozenGate,
    PauliRotation,
    to_schrodinger,
)
from pauliprop.utils import label_to_pstr, random_pauli_label

QISKIT_CLIFFORDS = {
    "H": lambda qc: qc.h(0),
    "S": lambda qc: qc.s(0),
    "SX": lambda qc: qc.sx(0),
    "SY": lambda qc: qc.ry(pi / 2, 0),
    "CNOT": lambda qc: qc.cx(0, 1),
    "CZ": lambda qc: qc.cz(0, 1),
    "ZZpihalf": lambda qc: qc.rzz(-pi / 2, 0, 1),
}


def schrodinger_matrix(qc, label):
    """U P U^dagger for the unitary of ``qc``."""
    U = Operator(qc).data
    return U @ Pauli(label).to_matrix() @ U.conj().T


def test_rotation_changes_sign():
    theta = 0.7
    out = propagate([PauliRotation("Z", 0)], PauliSum.from_label("X"), [theta], heisenberg=False)
    assert out[label_to_pstr("X")] == pytest.approx(cos(theta))
    assert out[label_to_pstr("Y")] == pytest.approx(sin(theta))
    back = propagate([PauliRotation("Z", 0)], PauliSum.from_label("X"), [theta])
    assert back[label_to_pstr("Y")] == pytest.approx(-sin(theta))


@pytest.mark.parametrize("symbol", sorted(QISKIT_CLIFFORDS))
def test_clifford_matches_qiskit(symbol):
    nq = DEFAULT_CLIFFORD_TABLE.nqubits(symbol)
    qc = QuantumCircuit(2)
    QISKIT_CLIFFORDS[symbol](qc)
    gate = CliffordGate(symbol, list(range(nq)))
    for _ in range(8):
        label = random_pauli_label(2)
        out = propagate([gate], PauliSum.from_label(label), heisenberg=False)
        assert np.allclose(out.to_matrix(), schrodinger_matrix(qc, label)), f"{symbol} on {label}"


def test_converted_gates():
    table = DEFAULT_CLIFFORD_TABLE.extended("S2", DEFAULT_CLIFFORD_TABLE["S"])
    circuit = [
        CliffordGate("H", 0),
        CliffordGate("S2", 1, table),
        PauliRotation("XY", [0, 1]),
        FrozenGate(PauliRotation("Z", 1), 0.3),
        DepolarizingNoise(0),
    ]
    new_circuit, new_params = to_schrodinger(circuit, [1.2, 0.1])
    assert new_circuit[0] is circuit[0]
    assert new_circuit[1].symbol == "S2_transpose"
    assert new_circuit[2] is circuit[2]
    assert new_circuit[3].parameter == pytest.approx(-0.3)
    assert new_circuit[4] is circuit[4]
    assert new_params == [-1.2, 0.1]
    # the transposed map undoes the original
    for pattern in range(4):
        pstr = pattern << 2
        image, sign = circuit[1].apply_to_pstr(pstr)
        back, back_sign = new_circuit[1].apply_to_pstr(image)
        assert back == pstr and sign * back_sign == 1


def test_conversion_errors():
    with pytest.raises(NotImplementedError):
        to_schrodinger([AmplitudeDampingNoise(0)], [0.1])
    with pytest.raises(ValueError):
        to_schrodinger([PauliRotation("X", 0)], [])
    with pytest.raises(ValueError):
        to_schrodinger([PauliRotation("X", 0)], [None])
    with pytest.raises(NotImplementedError):
        propagate([AmplitudeDampingNoise(0)], PauliSum.from_label("Z"), [0.1], heisenberg=False)


TRIALS = 10


def random_unitary_circuit(n, depth):
    circuit = []
    for _ in range(depth):
        r = random.random()
        if r < 0.3:
            symbol = random.choice(["H", "S", "SX", "CNOT", "CZ"])
            qinds = random.sample(range(n), 2) if symbol in ("CNOT", "CZ") else random.randrange(n)
            circuit.append(CliffordGate(symbol, qinds))
        elif r < 0.4:
            circuit.append(FrozenGate(PauliRotation(random.choice("XYZ"), random.randrange(n)),
                                      random.uniform(0, 2 * pi)))
        else:
            k = random.randint(1, 2)
            circuit.append(PauliRotation("".join(random.choice("XYZ") for _ in range(k)),
                                         random.sample(range(n), k)))
    nparams = sum(isinstance(g, PauliRotation) for g in circuit)
    return circuit, [random.uniform(0, 2 * pi) for _ in range(nparams)]


@pytest.mark.parametrize("trial", range(TRIALS))
def test_forward_then_backward_is_identity(trial):
    n = 3
    circuit, params = random_unitary_circuit(n, 12)
    obs = PauliSum.from_label(random_pauli_label(n))
    forward = propagate(circuit, obs, params, heisenberg=False)
    assert propagate(circuit, forward, params).isclose(obs, atol=1e-10)


@pytest.mark.parametrize("trial", range(TRIALS))
def test_pictures_give_the_same_overlap(trial):
    """Tr[O U rho U^dagger] == Tr[U^dagger O U rho], Pauli channels included."""
    n = 3
    circuit, params = random_unitary_circuit(n, 10)
    position = random.randrange(len(circuit) + 1)
    circuit.insert(position, DephasingNoise(random.randrange(n)))
    nbefore = sum(g.is_parametrized for g in circuit[:position])
    params.insert(nbefore, 0.3)
    rho = PauliSum.from_label(random_pauli_label(n))
    obs = PauliSum.from_label(random_pauli_label(n))
    forward = propagate(circuit, rho, params, heisenberg=False)
    backward = propagate(circuit, obs, params)
    a = sum(c * obs.get(p) for p, c in forward.items())
    b = sum(c * rho.get(p) for p, c in backward.items())
    assert a == pytest.approx(b, abs=1e-10)
