# -*- coding: utf-8 -*-

import random
import numpy as np
import pytest
from qiskit.quantum_info import Statevector

from pauliprop import PauliSum
from pauliprop.path_properties import PauliFreqTracker
from pauliprop.state_overlap import (
    evaluate_expectation,
    overlap_with_computational,
    overlap_with_maxmixed,
    overlap_with_pauli_sum,
    overlap_with_plus,
    overlap_with_zero,
    plus_filter,
    zero_filter,
)
from pauliprop.utils import label_to_pstr, random_pauli_label, random_state_label


@pytest.fixture
def psum():
    s = PauliSum(2)
    for label, coeff in [("II", 0.1), ("ZI", 0.5), ("ZZ", 0.25), ("XI", 0.3), ("XY", 0.7)]:
        s.add(label_to_pstr(label), coeff)
    return s


def test_overlap_with_zero_and_plus(psum):
    assert overlap_with_zero(psum) == pytest.approx(0.85)
    assert overlap_with_plus(psum) == pytest.approx(0.4)
    assert overlap_with_maxmixed(psum) == pytest.approx(0.1)
    assert overlap_with_maxmixed(PauliSum.from_label("XX")) == 0.0


def test_overlap_with_computational(psum):
    # |10>: qubit 1 is one
    assert overlap_with_computational(psum, [1]) == pytest.approx(0.1 - 0.5 - 0.25)
    assert overlap_with_computational(psum, [0, 1]) == pytest.approx(0.1 - 0.5 + 0.25)
    assert overlap_with_computational(psum, []) == pytest.approx(overlap_with_zero(psum))
    with pytest.raises(ValueError):
        overlap_with_computational(psum, [2])


def test_overlap_with_pauli_sum(psum):
    other = PauliSum(2, {label_to_pstr("ZZ"): 2.0, label_to_pstr("YY"): 5.0})
    assert overlap_with_pauli_sum(psum, other) == pytest.approx(0.5)
    assert overlap_with_pauli_sum(other, psum) == pytest.approx(0.5)
    with pytest.raises(ValueError):
        overlap_with_pauli_sum(psum, PauliSum.from_label("Z"))


def test_filters(psum):
    zf = zero_filter(psum)
    pf = plus_filter(psum)
    assert sorted(zf.keys()) == sorted(label_to_pstr(l) for l in ["II", "ZI", "ZZ"])
    assert sorted(pf.keys()) == sorted(label_to_pstr(l) for l in ["II", "XI"])
    assert len(psum) == 5
    assert evaluate_expectation(zf) == pytest.approx(evaluate_expectation(psum))


def test_tracked_coefficients_are_projected():
    s = PauliSum(1, {label_to_pstr("Z"): PauliFreqTracker(0.4, freq=2)})
    assert evaluate_expectation(s) == pytest.approx(0.4)
    assert evaluate_expectation(s, "1") == pytest.approx(-0.4)


TRIALS = 20


@pytest.mark.parametrize("trial", range(TRIALS))
def test_product_state_expectation_matches_statevector(trial):
    n = random.randint(1, 4)
    s = PauliSum(n)
    for _ in range(5):
        s.add(label_to_pstr(random_pauli_label(n)), random.uniform(-1, 1))
    state = random_state_label(n)
    sv = Statevector.from_label(state).data
    expected = np.vdot(sv, s.to_matrix() @ sv).real
    assert evaluate_expectation(s, state) == pytest.approx(expected, abs=1e-12)


def test_default_state_is_all_zeros(psum):
    assert evaluate_expectation(psum) == pytest.approx(evaluate_expectation(psum, "00"))


@pytest.mark.parametrize("label", ["0", "000", "0x", "+Z"])
def test_bad_state_label(psum, label):
    with pytest.raises(ValueError):
        evaluate_expectation(psum, label)


def test_imaginary_part_warns():
    s = PauliSum(1, {label_to_pstr("Z"): 0.5 + 0.2j})
    with pytest.warns(RuntimeWarning, match="imaginary"):
        value = evaluate_expectation(s)
    assert value == pytest.approx(0.5)
    assert isinstance(value, float)
