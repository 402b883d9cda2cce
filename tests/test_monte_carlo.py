# -*- coding: utf-8 -*-

import pytest
from qiskit import QuantumCircuit

from pauliprop import MonteCarlo, PauliPropagator, PauliTerm
from pauliprop.gates import AmplitudeDampingNoise, CliffordGate, DepolarizingNoise, PauliRotation
from pauliprop.utils import label_to_pstr


def test_clifford_circuit_has_a_single_path():
    circuit = [CliffordGate("H", 0), CliffordGate("CNOT", [0, 1]), CliffordGate("S", 1)]
    mc = MonteCarlo(circuit)
    samples = mc.sample(PauliTerm.from_label("XY"), n_samples=20, seed=3)
    assert len(samples) == 20
    expected = PauliPropagator(circuit).propagate("XY")
    (pstr, coeff), = expected.items()
    assert all(s.key == pstr and s.coeff == pytest.approx(coeff) for s in samples)


def test_seed_reproducibility():
    circuit = [PauliRotation("X", 0), PauliRotation("ZY", [0, 1]), AmplitudeDampingNoise(1)]
    mc = MonteCarlo(circuit)
    term = PauliTerm.from_label("ZX")
    a = mc.sample(term, [0.4, 1.2, 0.3], n_samples=50, seed=11)
    b = mc.sample(term, [0.4, 1.2, 0.3], n_samples=50, seed=11)
    assert [(s.key, s.coeff) for s in a] == [(s.key, s.coeff) for s in b]
    assert mc._sampled_last_paulis == b


def test_estimate_converges():
    qc = QuantumCircuit(2)
    qc.h(0)
    qc.rx(0.6, 0)
    qc.cx(0, 1)
    qc.ry(0.9, 1)
    qc.rzz(0.4, 0, 1)
    exact = PauliPropagator(qc).expectation("ZZ", "00")
    mc = MonteCarlo(qc)
    estimate = mc.expectation(PauliTerm.from_label("ZZ"), n_samples=40000, reference_state="00", seed=5)
    assert estimate == pytest.approx(exact, abs=0.05)


def test_parallel_sampling_is_reproducible():
    circuit = [PauliRotation("X", 0), PauliRotation("Y", 0)]
    mc = MonteCarlo(circuit)
    term = PauliTerm.from_label("Z")
    a = mc.sample(term, [0.5, 0.8], n_samples=40, seed=2, use_parallel=True)
    b = mc.sample(term, [0.5, 0.8], n_samples=40, seed=2, use_parallel=True)
    assert len(a) == 40
    assert [(s.key, s.coeff) for s in a] == [(s.key, s.coeff) for s in b]
    assert {s.key for s in a} <= {label_to_pstr(l) for l in "XYZ"}


def test_invalid_arguments():
    mc = MonteCarlo([PauliRotation("X", 0)])
    with pytest.raises(ValueError):
        mc.sample(PauliTerm.from_label("ZZ"), [0.1])
    with pytest.raises(ValueError):
        mc.sample(PauliTerm.from_label("Z"), [0.1], n_samples=0)
    with pytest.raises(ValueError):
        mc.sample(PauliTerm.from_label("Z"))


def test_error_without_truncation_is_zero():
    mc = MonteCarlo([PauliRotation("X", 0), PauliRotation("ZY", [0, 1])])
    assert mc.estimate_average_error(PauliTerm.from_label("IZ"), n_samples=200, seed=1) == 0.0


def test_error_of_dropped_sin_branch():
    mc = MonteCarlo([PauliRotation("X", 0)])
    # averaged over angles, the dropped sin branch carries sin^2 = 1/2
    error = mc.estimate_average_error(PauliTerm.from_label("Z"), n_samples=4000, max_sins=0, seed=7)
    assert error == pytest.approx(0.5, abs=0.05)
    scaled = mc.estimate_average_error(PauliTerm(2.0, label_to_pstr("Z"), 1), n_samples=4000,
                                       max_sins=0, seed=7)
    assert scaled == pytest.approx(4 * error)
    biased = mc.estimate_average_error(PauliTerm.from_label("Z"), n_samples=4000,
                                       split_probabilities=0.25, max_sins=0, seed=7)
    assert biased == pytest.approx(0.25, abs=0.05)


def test_error_with_per_gate_split_probabilities():
    # the Z path splits again at RX and exceeds max_freq, the X path commutes with RX
    mc = MonteCarlo([PauliRotation("X", 0), PauliRotation("Y", 0)])
    error = mc.estimate_average_error(PauliTerm.from_label("Z"), n_samples=4000,
                                      split_probabilities=[0.5, 0.2], max_freq=1, seed=3)
    assert error == pytest.approx(0.8, abs=0.05)


def test_error_with_weight_truncation_and_noise():
    mc = MonteCarlo([PauliRotation("XX", [0, 1]), DepolarizingNoise(0)])
    term = PauliTerm.from_label("IZ")
    error = mc.estimate_average_error(term, n_samples=4000, parameters=[None, 0.0],
                                      max_weight=1, seed=5)
    assert error == pytest.approx(0.5, abs=0.05)
    a = mc.estimate_average_error(term, n_samples=300, parameters=[None, 0.0], max_weight=1,
                                  seed=9, use_parallel=True)
    b = mc.estimate_average_error(term, n_samples=300, parameters=[None, 0.0], max_weight=1,
                                  seed=9, use_parallel=True)
    assert a == b


def test_error_estimate_invalid_arguments():
    mc = MonteCarlo([PauliRotation("X", 0), DepolarizingNoise(0)])
    term = PauliTerm.from_label("Z")
    with pytest.raises(ValueError, match="DepolarizingNoise"):
        mc.estimate_average_error(term, max_sins=0)
    with pytest.raises(ValueError):
        mc.estimate_average_error(term, parameters=[None, 0.1], split_probabilities=1.5)
    with pytest.raises(ValueError):
        mc.estimate_average_error(term, parameters=[None, 0.1], split_probabilities=[0.5])
    with pytest.raises(ValueError):
        mc.estimate_average_error(term, parameters=[None, 0.1], max_weight=-1)
