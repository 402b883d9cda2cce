# -*- coding: utf-8 -*-

# pauliprop/clifford.py
"""
Clifford lookup tables.

A Clifford map for a k-qubit gate (k <= 4) is a tuple of length ``4**k``.
Entry ``i`` is ``(new_pattern, sign)``: the Heisenberg image of the local
Pauli pattern ``i``, where the gate's first qubit sits in the lowest two
bits of the pattern. Tables are immutable values; extending one returns a
new table.
"""

from collections.abc import Mapping
from typing import Dict, Iterator, Sequence, Tuple

import numpy as np

from .pauli_algebra import symbol_to_int

__all__ = [
    "CliffordMap",
    "CliffordTable",
    "DEFAULT_CLIFFORD_TABLE",
    "MAX_CLIFFORD_QUBITS",
    "create_clifford_map",
    "concatenate_clifford_maps",
    "transpose_clifford_map",
]

MAX_CLIFFORD_QUBITS = 4

CliffordMap = Tuple[Tuple[int, int], ...]


def _check_clifford_map(cmap: Sequence[Tuple[int, int]]) -> CliffordMap:
    cmap = tuple((int(p), int(s)) for p, s in cmap)
    size = len(cmap)
    nqubits = 0
    while 4**nqubits < size:
        nqubits += 1
    if size == 0 or 4**nqubits != size:
        raise ValueError(f"A Clifford map must have 4**k entries, got {size}")
    if nqubits > MAX_CLIFFORD_QUBITS:
        raise ValueError(
            f"Clifford maps act on at most {MAX_CLIFFORD_QUBITS} qubits, got {nqubits}"
        )
    if sorted(p for p, _ in cmap) != list(range(size)):
        raise ValueError("A Clifford map must be a bijection on the local Pauli patterns")
    if any(s not in (1, -1) for _, s in cmap):
        raise ValueError("Clifford map signs must be +1 or -1")
    return cmap


def _map_nqubits(cmap: CliffordMap) -> int:
    return (len(cmap).bit_length() - 1) // 2


class CliffordTable(Mapping):
    """
    Immutable table of named Clifford maps.

    Parameters
    ----------
    maps : Dict[str, Sequence[Tuple[int, int]]]
        Gate name to Clifford map

    Examples
    --------
    >>> table = DEFAULT_CLIFFORD_TABLE.extended("MyH", DEFAULT_CLIFFORD_TABLE["H"])
    >>> "MyH" in table, "MyH" in DEFAULT_CLIFFORD_TABLE
    (True, False)
    """

    def __init__(self, maps: Dict[str, Sequence[Tuple[int, int]]]):
        self._maps: Dict[str, CliffordMap] = {name: _check_clifford_map(cmap) for name, cmap in maps.items()}
        self._arrays: Dict[str, Tuple[np.ndarray, np.ndarray]] = {}

    def __getitem__(self, name: str) -> CliffordMap:
        return self._maps[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._maps)

    def __len__(self) -> int:
        return len(self._maps)

    def __repr__(self) -> str:
        return f"CliffordTable({sorted(self._maps)})"

    def nqubits(self, name: str) -> int:
        """Number of qubits the named map acts on."""
        return _map_nqubits(self[name])

    def extended(self, name: str, cmap: Sequence[Tuple[int, int]]) -> "CliffordTable":
        """Return a new table with ``name`` added or replaced."""
        maps = dict(self._maps)
        maps[name] = cmap
        return CliffordTable(maps)

    def arrays(self, name: str) -> Tuple[np.ndarray, np.ndarray]:
        """Pattern and sign lookup arrays for bulk application."""
        if name not in self._arrays:
            cmap = self[name]
            self._arrays[name] = (
                np.array([p for p, _ in cmap], dtype=np.int64),
                np.array([s for _, s in cmap], dtype=np.int64),
            )
        return self._arrays[name]

    def __reduce__(self):
        return (CliffordTable, (self._maps,))


def create_clifford_map(gate_relations: Dict[Tuple, Tuple]) -> CliffordMap:
    """
    Build a Clifford map from explicit Pauli relations.

    Parameters
    ----------
    gate_relations : Dict[Tuple, Tuple]
        Maps every tuple of k input symbols to ``(*output_symbols, sign)``,
        e.g. ``{("I",): ("I", 1), ("X",): ("Z", 1), ...}`` for a Hadamard

    Returns
    -------
    CliffordMap
        Tuple of ``(new_pattern, sign)`` indexed by local pattern

    Raises
    ------
    ValueError
        If the relations act on more than 4 qubits, miss a pattern or do not
        form a bijection.
    """
    if not gate_relations:
        raise ValueError("gate_relations must not be empty")
    nqubits = len(next(iter(gate_relations)))
    if nqubits > MAX_CLIFFORD_QUBITS:
        raise ValueError(
            f"Clifford maps act on at most {MAX_CLIFFORD_QUBITS} qubits, got {nqubits}"
        )
    cmap = [None] * 4**nqubits
    for inputs, outputs in gate_relations.items():
        if len(inputs) != nqubits or len(outputs) != nqubits + 1:
            raise ValueError(f"Relation {inputs} -> {outputs} does not act on {nqubits} qubits")
        pattern_in = sum(symbol_to_int(s) << (2 * j) for j, s in enumerate(inputs))
        pattern_out = sum(symbol_to_int(s) << (2 * j) for j, s in enumerate(outputs[:-1]))
        cmap[pattern_in] = (pattern_out, outputs[-1])
    if any(entry is None for entry in cmap):
        raise ValueError(f"gate_relations must define all {4**nqubits} Pauli patterns")
    return _check_clifford_map(cmap)


def concatenate_clifford_maps(circuit) -> CliffordMap:
    """
    Compose a circuit of Clifford gates on qubits 0..3 into a single map.

    Every local pattern is pushed through the reversed circuit, i.e. the
    result is the Heisenberg image of the whole circuit.
    """
    from .gates import CliffordGate

    if not circuit:
        raise ValueError("Cannot concatenate an empty circuit")
    for gate in circuit:
        if not isinstance(gate, CliffordGate):
            raise ValueError(f"All gates must be Clifford gates, got {type(gate).__name__}")
    nqubits = max(max(gate.qinds) for gate in circuit) + 1
    if nqubits > MAX_CLIFFORD_QUBITS:
        raise ValueError(
            f"Clifford maps act on at most {MAX_CLIFFORD_QUBITS} qubits, "
            f"circuit uses {nqubits}"
        )
    cmap = []
    for pattern in range(4**nqubits):
        pstr, sign = pattern, 1
        for gate in reversed(circuit):
            pstr, s = gate.apply_to_pstr(pstr)
            sign *= s
        cmap.append((pstr, sign))
    return _check_clifford_map(cmap)


def transpose_clifford_map(cmap: Sequence[Tuple[int, int]]) -> CliffordMap:
    """Inverse of a Clifford map."""
    cmap = _check_clifford_map(cmap)
    inverse = [None] * len(cmap)
    for pattern, (image, sign) in enumerate(cmap):
        inverse[image] = (pattern, sign)
    return tuple(inverse)


_DEFAULT_MAPS = {
    "H": [(0x00, 1), (0x03, 1), (0x02, -1), (0x01, 1)],
    "X": [(0x00, 1), (0x01, 1), (0x02, -1), (0x03, -1)],
    "Y": [(0x00, 1), (0x01, -1), (0x02, 1), (0x03, -1)],
    "Z": [(0x00, 1), (0x01, -1), (0x02, -1), (0x03, 1)],
    "SX": [(0x00, 1), (0x01, 1), (0x03, -1), (0x02, 1)],
    "SY": [(0x00, 1), (0x03, 1), (0x02, 1), (0x01, -1)],
    "S": [(0x00, 1), (0x02, -1), (0x01, 1), (0x03, 1)],
    "CNOT": [
        (0x00, 1), (0x05, 1), (0x06, 1), (0x03, 1),
        (0x04, 1), (0x01, 1), (0x02, 1), (0x07, 1),
        (0x0B, 1), (0x0E, 1), (0x0D, -1), (0x08, 1),
        (0x0F, 1), (0x0A, -1), (0x09, 1), (0x0C, 1),
    ],
    "CZ": [
        (0x00, 1), (0x0D, 1), (0x0E, 1), (0x03, 1),
        (0x07, 1), (0x0A, 1), (0x09, -1), (0x04, 1),
        (0x0B, 1), (0x06, -1), (0x05, 1), (0x08, 1),
        (0x0C, 1), (0x01, 1), (0x02, 1), (0x0F, 1),
    ],
    "SWAP": [
        (0x00, 1), (0x04, 1), (0x08, 1), (0x0C, 1),
        (0x01, 1), (0x05, 1), (0x09, 1), (0x0D, 1),
        (0x02, 1), (0x06, 1), (0x0A, 1), (0x0E, 1),
        (0x03, 1), (0x07, 1), (0x0B, 1), (0x0F, 1),
    ],
    "ZZpihalf": [
        (0x00, 1), (0x0E, 1), (0x0D, -1), (0x03, 1),
        (0x0B, 1), (0x05, 1), (0x06, 1), (0x08, 1),
        (0x07, -1), (0x09, 1), (0x0A, 1), (0x04, -1),
        (0x0C, 1), (0x02, 1), (0x01, -1), (0x0F, 1),
    ],
}

DEFAULT_CLIFFORD_TABLE = CliffordTable(_DEFAULT_MAPS)
