# -*- coding: utf-8 -*-

import random
import pytest

from pauliprop import PauliSum, propagate
from pauliprop.gates import PauliRotation
from pauliprop.path_properties import PauliFreqTracker, wrap_coefficients
from pauliprop.pauli_algebra import symbols_to_pstr
from pauliprop.symmetries import symmetry_merge, translation_merge
from pauliprop.utils import label_to_pstr, random_pauli_label


def test_translation_merge_on_a_ring():
    psum = PauliSum(6)
    psum.add_symbols("Z", 2)
    psum.add_symbols("Z", 5)
    merged = translation_merge(psum)
    assert merged == PauliSum(6, {label_to_pstr("IIIIIZ"): 2.0})
    assert len(psum) == 2


def test_ring_wraps_around_and_keeps_order():
    psum = PauliSum(5)
    psum.add_symbols("XY", [0, 1], 0.5)
    psum.add_symbols("XY", [4, 0], 0.25)
    psum.add_symbols("YX", [0, 1], 1.0)
    psum.add(0, 3.0)
    merged = translation_merge(psum)
    assert len(merged) == 3
    assert merged[symbols_to_pstr("XY", [0, 1])] == pytest.approx(0.75)
    assert merged[symbols_to_pstr("YX", [0, 1])] == pytest.approx(1.0)
    assert merged[0] == pytest.approx(3.0)


def test_translation_merge_on_a_torus():
    # 3 x 3 grid, qubit row * 3 + col
    psum = PauliSum(9)
    psum.add_symbols("ZZ", [4, 5])   # horizontal bond in the middle
    psum.add_symbols("ZZ", [8, 6])   # horizontal bond across the boundary
    psum.add_symbols("ZZ", [1, 4])   # vertical bond
    merged = translation_merge(psum, 3, 3)
    assert len(merged) == 2
    assert merged[symbols_to_pstr("ZZ", [0, 1])] == pytest.approx(2.0)
    assert merged[symbols_to_pstr("ZZ", [0, 3])] == pytest.approx(1.0)
    with pytest.raises(ValueError):
        translation_merge(psum, 2, 4)
    with pytest.raises(ValueError):
        translation_merge(psum, 3)


def test_single_sites_merge_to_the_first_qubit():
    psum = PauliSum(6)
    for q in range(6):
        psum.add_symbols("X", q, 0.5)
    assert translation_merge(psum, 2, 3) == PauliSum(6, {label_to_pstr("IIIIIX"): 3.0})


def test_symmetry_merge_with_custom_map():
    psum = PauliSum.from_label("XZ") + PauliSum.from_label("ZX")
    tracked = wrap_coefficients(psum, PauliFreqTracker)
    merged = symmetry_merge(tracked, lambda pstr: label_to_pstr("ZX"))
    (pstr, coeff), = merged.items()
    assert isinstance(coeff, PauliFreqTracker) and coeff.coeff == pytest.approx(2.0)


TRIALS = 10


@pytest.mark.parametrize("trial", range(TRIALS))
def test_merge_keeps_translation_invariant_overlaps(trial):
    """Overlap with a translation-invariant sum is unchanged by merging."""
    n = 4
    circuit = []
    for _ in range(3):
        for q in range(n):
            circuit.append(PauliRotation("ZZ", [q, (q + 1) % n]))
        for q in range(n):
            circuit.append(PauliRotation("X", q))
    params = [random.uniform(0, 3) for _ in range(len(circuit))]
    obs = PauliSum.from_label(random_pauli_label(n))
    out = propagate(circuit, obs, params)
    merged = translation_merge(out)
    assert len(merged) <= len(out)
    assert sum(merged.values()) == pytest.approx(sum(out.values()))
    # uniform magnetisation Z_0 + Z_1 + ... is translation invariant
    magnetisation = PauliSum(n, {symbols_to_pstr("Z", [q]): 1.0 for q in range(n)})
    a = sum(c * magnetisation.get(p) for p, c in out.items())
    b = sum(c * magnetisation.get(p) for p, c in merged.items())
    assert a == pytest.approx(b, abs=1e-12)
