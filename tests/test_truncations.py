# -*- coding: utf-8 -*-

import math
import random
import pytest

from pauliprop import PauliSum, propagate
from pauliprop.gates import CliffordGate, PauliRotation
from pauliprop.path_properties import PauliFreqTracker
from pauliprop.truncations import Truncation, truncate, truncate_damping_coeff, truncate_weight
from pauliprop.utils import label_to_pstr, pstr_to_label, random_pauli_label


def mixed_sum():
    psum = PauliSum(3)
    for label, coeff in [("III", 1.0), ("IIX", 0.5), ("IYX", 0.01), ("ZYX", 0.2)]:
        psum.add(label_to_pstr(label), coeff)
    return psum


def random_rotation_circuit(n, depth):
    circuit = []
    for _ in range(depth):
        if random.random() < 0.2:
            circuit.append(CliffordGate("CNOT", random.sample(range(n), 2)))
        else:
            k = random.randint(1, 2)
            circuit.append(PauliRotation("".join(random.choice("XYZ") for _ in range(k)),
                                         random.sample(range(n), k)))
    nparams = sum(isinstance(g, PauliRotation) for g in circuit)
    return circuit, [random.uniform(0, 2 * math.pi) for _ in range(nparams)]


def test_weight_truncation():
    psum = truncate(mixed_sum(), max_weight=1)
    assert sorted(psum.keys()) == [0, label_to_pstr("IIX")]
    assert truncate_weight(label_to_pstr("ZYX"), 2)
    assert not truncate_weight(label_to_pstr("ZYX"), 3)


def test_min_coeff_truncation():
    psum = truncate(mixed_sum(), min_abs_coeff=0.1)
    assert label_to_pstr("IYX") not in psum
    assert len(psum) == 3


def test_custom_truncation():
    drop_y = lambda pstr, coeff: "Y" in pstr_to_label(pstr, 3)
    psum = truncate(mixed_sum(), custom_truncation=drop_y)
    assert sorted(psum.keys()) == [0, label_to_pstr("IIX")]


def test_truncate_returns_same_sum():
    psum = mixed_sum()
    assert truncate(psum, max_weight=2) is psum


def test_damping_coeff():
    # 0.01 * e^-3 and 0.01 * e^-2 fall below 2e-3, 0.01 * e^-1 does not
    assert truncate_damping_coeff(label_to_pstr("XXX"), 0.01, 1.0, 2e-3)
    assert truncate_damping_coeff(label_to_pstr("IYX"), 0.01, 1.0, 2e-3)
    assert not truncate_damping_coeff(label_to_pstr("IIX"), 0.01, 1.0, 2e-3)
    psum = truncate(mixed_sum(), custom_truncation=lambda p, c: truncate_damping_coeff(p, c, 1.0, 2e-3))
    assert label_to_pstr("IYX") not in psum
    assert label_to_pstr("ZYX") in psum
    assert len(psum) == 3


def test_counter_truncation_needs_tracked_coefficients():
    with pytest.raises(TypeError, match="freq"):
        truncate(PauliSum.from_label("XY"), max_freq=2)
    with pytest.raises(TypeError, match="nsins"):
        truncate(PauliSum.from_label("XY"), max_sins=2)
    psum = PauliSum(2, {1: PauliFreqTracker(1.0, nsins=3, freq=3), 4: PauliFreqTracker(0.5, nsins=1, freq=1)})
    truncate(psum, max_freq=2)
    assert list(psum.keys()) == [4]


@pytest.mark.parametrize("kwargs, exc", [
    ({"max_weight": -1}, ValueError),
    ({"min_abs_coeff": -0.1}, ValueError),
    ({"max_freq": -2}, ValueError),
    ({"max_sins": -1}, ValueError),
    ({"custom_truncation": 3}, TypeError),
])
def test_invalid_options(kwargs, exc):
    with pytest.raises(exc):
        Truncation(**kwargs)


def test_inactive_truncation():
    truncation = Truncation()
    assert not truncation.is_active
    assert not truncation.needs_counters
    assert Truncation(max_sins=1).needs_counters
    psum = mixed_sum()
    truncation.apply(psum)
    assert psum == mixed_sum()


TRIALS = 10


@pytest.mark.parametrize("trial", range(TRIALS))
def test_stricter_weight_keeps_a_subset(trial):
    n = 5
    circuit, params = random_rotation_circuit(n, 12)
    obs = PauliSum.from_label(random_pauli_label(n))
    loose = propagate(circuit, obs, params, max_weight=3)
    strict = propagate(circuit, obs, params, max_weight=2)
    full = propagate(circuit, obs, params)
    assert set(strict.keys()) <= set(loose.keys()) <= set(full.keys())
    assert all(truncate_weight(p, 2) is False for p in strict.keys())


@pytest.mark.parametrize("trial", range(TRIALS))
def test_frequency_truncation_bounds_counters(trial):
    n = 4
    circuit, params = random_rotation_circuit(n, 10)
    obs = PauliSum.from_label(random_pauli_label(n))
    out = propagate(circuit, obs, params, max_freq=2)
    full = propagate(circuit, obs, params)
    assert len(out) <= len(full)
    assert set(out.keys()) <= set(full.keys())


@pytest.mark.parametrize("option, strict, loose", [
    ("max_weight", 1, 3),
    ("max_freq", 1, 3),
    ("max_sins", 1, 3),
    ("min_abs_coeff", 0.1, 0.01),
])
@pytest.mark.parametrize("trial", range(5))
def test_looser_truncation_keeps_more_terms(option, strict, loose, trial):
    n = 4
    circuit, params = random_rotation_circuit(n, 12)
    obs = PauliSum.from_label(random_pauli_label(n))
    n_strict = len(propagate(circuit, obs, params, **{option: strict}))
    n_loose = len(propagate(circuit, obs, params, **{option: loose}))
    n_full = len(propagate(circuit, obs, params))
    assert n_strict <= n_loose <= n_full
