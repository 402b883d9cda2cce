# -*- coding: utf-8 -*-

import copy
import random
import numpy as np
import pytest
from qiskit.quantum_info import Pauli

from pauliprop import PauliSum, PauliTerm
from pauliprop.path_properties import PauliFreqTracker, wrap_coefficients
from pauliprop.utils import label_to_pstr, random_pauli_label

TRIALS = 20


def _random_sum(n, nterms):
    psum = PauliSum(n)
    for _ in range(nterms):
        psum.add(label_to_pstr(random_pauli_label(n)), random.uniform(-1, 1))
    return psum


def test_add_accumulates_and_removes_zeros():
    psum = PauliSum(2)
    psum.add_symbols("Z", 0, 1.0)
    psum.add_symbols("Z", 0, 0.5)
    assert psum[label_to_pstr("IZ")] == 1.5
    psum.add_symbols("Z", 0, -1.5)
    assert len(psum) == 0
    psum.add(label_to_pstr("XX"), 0.0)
    assert len(psum) == 0


def test_set_and_delete():
    psum = PauliSum.from_label("XY", 2.0)
    pstr = label_to_pstr("XY")
    psum.set(pstr, 3.0)
    assert psum.get(pstr) == 3.0
    psum.set(pstr, 0)
    assert pstr not in psum
    psum.add(pstr, 1.0)
    psum.delete(pstr)
    assert not psum


@pytest.mark.parametrize("trial", range(TRIALS))
def test_merge_is_associative(trial):
    n = random.randint(1, 4)
    a, b, c = (_random_sum(n, 6) for _ in range(3))
    assert ((a + b) + c).isclose(a + (b + c))


@pytest.mark.parametrize("trial", range(TRIALS))
def test_matrix_arithmetic(trial):
    n = random.randint(1, 3)
    a, b = _random_sum(n, 4), _random_sum(n, 4)
    assert np.allclose((a + b).to_matrix(), a.to_matrix() + b.to_matrix())
    assert np.allclose((a - b).to_matrix(), a.to_matrix() - b.to_matrix())
    assert np.allclose((a * b).to_matrix(), a.to_matrix() @ b.to_matrix())
    assert np.allclose((2.5 * a).to_matrix(), 2.5 * a.to_matrix())


def test_scalar_goes_to_identity():
    psum = PauliSum.from_label("ZZ") + 2
    assert psum[0] == 2
    assert len(psum) == 2
    assert len(psum - 2) == 1


def test_term_products():
    x = PauliTerm.from_label("IX")
    psum = PauliSum.from_label("IY", 1.0)
    prod = x * psum
    assert prod[label_to_pstr("IZ")] == 1j
    assert (psum * x)[label_to_pstr("IZ")] == -1j


def test_qubit_mismatch_raises():
    with pytest.raises(ValueError):
        PauliSum(2) + PauliSum(3)
    with pytest.raises(ValueError):
        PauliSum(2).add_term(PauliTerm.from_label("XXX"))
    with pytest.raises(ValueError):
        PauliSum(2).add_symbols("X", 2)
    with pytest.raises(ValueError):
        PauliSum(0)


def test_coefficient_kind_mismatch_raises():
    plain = PauliSum(2, {1: 1.0})
    tracked = wrap_coefficients(PauliSum(2, {4: 1.0}), PauliFreqTracker)
    with pytest.raises(TypeError, match="plain numbers and PauliFreqTracker"):
        plain + tracked
    with pytest.raises(TypeError, match="PauliFreqTracker and plain numbers"):
        tracked.add_sum(plain)
    # empty sums combine with anything
    assert len(PauliSum(2) + tracked) == 1
    assert len(tracked + PauliSum(2)) == 1


def test_copies_are_independent():
    psum = PauliSum.from_label("XZ")
    shallow = psum.copy()
    deep = copy.deepcopy(psum)
    shallow.add(label_to_pstr("XZ"), 1.0)
    assert psum[label_to_pstr("XZ")] == 1.0
    assert deep == psum
    assert psum.similar().nqubits == 2 and not psum.similar()


def test_terms_round_trip():
    psum = PauliSum(3, [PauliTerm.from_label("XYZ", 0.5), PauliTerm.from_label("IIZ", -1.0)])
    again = PauliSum.from_terms(psum.to_terms())
    assert again == psum
    assert np.allclose(psum.to_matrix(), 0.5 * Pauli("XYZ").to_matrix() - Pauli("IIZ").to_matrix())
    assert "XYZ" in repr(psum)
