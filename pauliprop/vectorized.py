# -*- coding: utf-8 -*-

# pauliprop/vectorized.py
"""
Array-backed Pauli propagation engine.

Terms live in flat numpy buffers (:class:`PropagationCache`) and every gate
is applied to all active terms at once. Keys are ``uint64`` up to 32 qubits
and ``object`` arrays of Python ints beyond that. The numerical result is
the same as :func:`pauliprop.propagator.propagate`; the term order of the
returned PauliSum may differ.

Per gate
--------
- Clifford gates: table lookup on the local patterns, signs flip coefficients
- Pauli noise: coefficients damped through a boolean mask
- Pauli rotations: anticommuting terms are flagged, a cumulative sum over the
  flags places the sin branches behind the active block
- amplitude damping: Z terms get an identity copy behind the active block
- after a splitting gate, duplicates are merged by a stable sort and an
  adjacent reduction
- truncation compacts the buffers and drops exact zeros
"""

import math
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, Sequence, Union

import numpy as np
from tqdm.auto import tqdm

from .gates import AmplitudeDampingNoise, CliffordGate, FrozenGate, Gate, PauliNoise, PauliRotation
from .pauli_algebra import _PHASE_EXPONENT, alternating_mask, symbol_to_int
from .pauli_sum import PauliSum
from .pauli_term import PauliTerm
from .path_properties import PauliFreqTracker, payload_kind
from .propagator import _as_circuit, _as_pauli_sum, _reversed_ops, check_circuit_and_parameters
from .truncations import Truncation

__all__ = [
    "ArrayBackend",
    "NumpyBackend",
    "ThreadedBackend",
    "PropagationCache",
    "propagate_vectorized",
]

# Threshold for parallel processing and maximum number of worker threads
_PARALLEL_THRESHOLD = 2000
_MAX_WORKERS = 8  # or os.cpu_count()
_RESIZE_FACTOR = 2
_MIN_CAPACITY = 64
# 2 bits per qubit in a 64-bit word
_MAX_UINT64_QUBITS = 32
_UINT64_MAX = (1 << 64) - 1

_PHASE_TABLE = np.array(_PHASE_EXPONENT, dtype=np.int64)
# Counter columns
_NSINS, _NCOS, _FREQ = 0, 1, 2


# ---------------------------------------------------------------------------
# array backends
# ---------------------------------------------------------------------------

class ArrayBackend:
    """
    Bulk primitives used by the vectorized engine.

    Subclasses may run them on other devices or in parallel as long as the
    results match the sequential numpy semantics documented here.
    """

    def sortperm(self, keys: np.ndarray) -> np.ndarray:
        """Stable permutation sorting ``keys``."""
        raise NotImplementedError

    def cumsum(self, flags: np.ndarray) -> np.ndarray:
        """Inclusive cumulative sum of a boolean array, as int64."""
        raise NotImplementedError

    def compact(self, flags: np.ndarray) -> np.ndarray:
        """Indices of the True entries of ``flags``, in increasing order."""
        raise NotImplementedError

    def map(self, func: Callable, *arrays: np.ndarray, dtype=object) -> np.ndarray:
        """Apply a Python callable elementwise over equally long arrays."""
        raise NotImplementedError


class NumpyBackend(ArrayBackend):
    """Sequential numpy implementation, the default."""

    def sortperm(self, keys):
        return np.argsort(keys, kind="stable")

    def cumsum(self, flags):
        return np.cumsum(flags, dtype=np.int64)

    def compact(self, flags):
        return np.flatnonzero(flags)

    def map(self, func, *arrays, dtype=object):
        out = np.empty(len(arrays[0]), dtype=dtype)
        for i, args in enumerate(zip(*arrays)):
            out[i] = func(*args)
        return out


class ThreadedBackend(NumpyBackend):
    """
    Numpy backend running ``map`` in chunks on a thread pool.

    Parameters
    ----------
    max_workers : int
        Number of worker threads
    threshold : int
        Arrays shorter than this are mapped sequentially
    """

    def __init__(self, max_workers: int = _MAX_WORKERS, threshold: int = _PARALLEL_THRESHOLD):
        if max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        self.max_workers = max_workers
        self.threshold = threshold

    def map(self, func, *arrays, dtype=object):
        size = len(arrays[0])
        if size < self.threshold:
            return super().map(func, *arrays, dtype=dtype)
        # Split arrays into chunks for parallel processing
        chunk_size = max(1, size // self.max_workers)
        bounds = [(i, min(i + chunk_size, size)) for i in range(0, size, chunk_size)]
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            parts = list(executor.map(
                lambda b: NumpyBackend.map(self, func, *(a[b[0]:b[1]] for a in arrays), dtype=dtype),
                bounds,
            ))
        return np.concatenate(parts)

    def __repr__(self) -> str:
        return f"ThreadedBackend(max_workers={self.max_workers}, threshold={self.threshold})"


# ---------------------------------------------------------------------------
# bit helpers on key arrays
# ---------------------------------------------------------------------------

def _key_dtype(nqubits: int) -> np.dtype:
    return np.dtype(np.uint64) if nqubits <= _MAX_UINT64_QUBITS else np.dtype(object)


def _const(dtype: np.dtype, value: int):
    """Scalar usable in bit operations with an array of ``dtype``."""
    if dtype == object:
        return int(value)
    return np.uint64(value & _UINT64_MAX)


def _get_site(terms: np.ndarray, q: int) -> np.ndarray:
    dtype = terms.dtype
    return ((terms >> _const(dtype, 2 * q)) & _const(dtype, 3)).astype(np.int64)


def _get_local(terms: np.ndarray, qinds: Sequence[int]) -> np.ndarray:
    local = np.zeros(len(terms), dtype=np.int64)
    for j, q in enumerate(qinds):
        local |= _get_site(terms, q) << (2 * j)
    return local


def _set_site(terms: np.ndarray, values: np.ndarray, q: int) -> np.ndarray:
    dtype = terms.dtype
    cleared = terms & _const(dtype, ~(3 << (2 * q)))
    return cleared | (values.astype(dtype) << _const(dtype, 2 * q))


def _popcount(arr: np.ndarray, backend: ArrayBackend) -> np.ndarray:
    if arr.dtype == object:
        return backend.map(int.bit_count, arr, dtype=np.int64)
    x = arr.astype(np.uint64, copy=False)
    x = x - ((x >> np.uint64(1)) & np.uint64(0x5555555555555555))
    x = (x & np.uint64(0x3333333333333333)) + ((x >> np.uint64(2)) & np.uint64(0x3333333333333333))
    x = (x + (x >> np.uint64(4))) & np.uint64(0x0F0F0F0F0F0F0F0F)
    x = (x * np.uint64(0x0101010101010101)) >> np.uint64(56)
    return x.astype(np.int64)


def _weights(terms: np.ndarray, nqubits: int, backend: ArrayBackend) -> np.ndarray:
    dtype = terms.dtype
    nonidentity = (terms | (terms >> _const(dtype, 1))) & _const(dtype, alternating_mask(nqubits))
    return _popcount(nonidentity, backend)


# ---------------------------------------------------------------------------
# propagation cache
# ---------------------------------------------------------------------------

class PropagationCache:
    """
    Flat buffers holding the terms of a propagating observable.

    Only the first ``active_size`` entries of each buffer are meaningful.
    The ``aux_*`` buffers receive gathered or merged entries and are then
    swapped with the main ones.

    Attributes
    ----------
    nqubits : int
        Number of qubits
    terms, aux_terms : np.ndarray
        Packed Pauli strings (``uint64`` or ``object``)
    coeffs, aux_coeffs : np.ndarray
        Numeric coefficients (float64 or complex128)
    flags : np.ndarray
        Scratch boolean buffer
    indices : np.ndarray
        Scratch int64 buffer
    counters, aux_counters : np.ndarray | None
        ``(capacity, 3)`` int64 columns ``nsins, ncos, freq`` when branch
        counters are tracked
    payload : type | None
        PauliFreqTracker if the source sum held trackers, None for numbers
    """

    def __init__(self, nqubits: int, capacity: int = _MIN_CAPACITY, coeff_dtype=np.float64,
                 track_counters: bool = False, payload: Optional[type] = None):
        if nqubits <= 0:
            raise ValueError(f"Number of qubits must be positive, got {nqubits}")
        self.nqubits = nqubits
        self.key_dtype = _key_dtype(nqubits)
        self.coeff_dtype = np.dtype(coeff_dtype)
        self.payload = payload
        self.active_size = 0
        capacity = max(int(capacity), 1)
        self.terms = np.zeros(capacity, dtype=self.key_dtype)
        self.aux_terms = np.zeros(capacity, dtype=self.key_dtype)
        self.coeffs = np.zeros(capacity, dtype=self.coeff_dtype)
        self.aux_coeffs = np.zeros(capacity, dtype=self.coeff_dtype)
        self.flags = np.zeros(capacity, dtype=bool)
        self.indices = np.zeros(capacity, dtype=np.int64)
        if track_counters:
            self.counters = np.zeros((capacity, 3), dtype=np.int64)
            self.aux_counters = np.zeros((capacity, 3), dtype=np.int64)
        else:
            self.counters = None
            self.aux_counters = None

    @classmethod
    def from_pauli_sum(cls, term_or_sum: Union[PauliTerm, PauliSum], track_counters: bool = False,
                       capacity: Optional[int] = None) -> "PropagationCache":
        """
        Load a PauliTerm or PauliSum into a new cache.

        Raises
        ------
        TypeError
            For coefficient kinds other than numbers and PauliFreqTracker
        """
        psum = _as_pauli_sum(term_or_sum)
        kind = payload_kind(psum)
        if kind not in (None, PauliFreqTracker):
            raise TypeError(
                f"Vectorized propagation supports numeric and PauliFreqTracker coefficients, got {kind.__name__}"
            )
        track_counters = track_counters or kind is PauliFreqTracker
        if capacity is None:
            capacity = max(_RESIZE_FACTOR * len(psum), _MIN_CAPACITY)
        cache = cls(psum.nqubits, capacity, _coeff_dtype(psum), track_counters, kind)
        cache.load(psum)
        return cache

    def load(self, psum: PauliSum) -> None:
        """Replace the content of the cache with ``psum``."""
        if psum.nqubits != self.nqubits:
            raise ValueError(f"Cannot load a {psum.nqubits}-qubit PauliSum into a {self.nqubits}-qubit cache")
        n = len(psum)
        self.active_size = 0
        if self.coeff_dtype != np.complex128 and _coeff_dtype(psum) == np.complex128:
            self.coeff_dtype = np.dtype(np.complex128)
            self.coeffs = self.coeffs.astype(self.coeff_dtype)
            self.aux_coeffs = self.aux_coeffs.astype(self.coeff_dtype)
        self.reserve(n)
        keys = list(psum.keys())
        self.terms[:n] = np.array(keys, dtype=self.key_dtype) if n else []
        self.coeffs[:n] = [_number(c) for c in psum.values()]
        if self.counters is not None:
            self.counters[:n] = [_counter_row(c) for c in psum.values()] if n else np.zeros((0, 3))
        self.active_size = n

    def to_pauli_sum(self, wrap: Optional[bool] = None) -> PauliSum:
        """
        Export the active entries.

        Parameters
        ----------
        wrap : bool | None
            Return PauliFreqTracker coefficients; defaults to whether the
            cache was loaded from trackers
        """
        if wrap is None:
            wrap = self.payload is PauliFreqTracker
        if wrap and self.counters is None:
            raise ValueError("Cache does not track branch counters")
        psum = PauliSum(self.nqubits)
        n = self.active_size
        for i in range(n):
            coeff = self.coeffs[i].item()
            if wrap:
                nsins, ncos, freq = (int(v) for v in self.counters[i])
                coeff = PauliFreqTracker(coeff, nsins, ncos, freq)
            psum.add(int(self.terms[i]), coeff)
        return psum

    @property
    def capacity(self) -> int:
        return len(self.terms)

    def __len__(self) -> int:
        return self.active_size

    def resize(self, capacity: int) -> None:
        """Reallocate all buffers to ``capacity``, keeping the active entries."""
        n = self.active_size
        if capacity < n:
            raise ValueError(f"Cannot shrink the cache below its {n} active entries")

        def grown(arr):
            new = np.zeros((capacity,) + arr.shape[1:], dtype=arr.dtype)
            new[:n] = arr[:n]
            return new

        self.terms = grown(self.terms)
        self.coeffs = grown(self.coeffs)
        self.aux_terms = np.zeros(capacity, dtype=self.key_dtype)
        self.aux_coeffs = np.zeros(capacity, dtype=self.coeff_dtype)
        self.flags = np.zeros(capacity, dtype=bool)
        self.indices = np.zeros(capacity, dtype=np.int64)
        if self.counters is not None:
            self.counters = grown(self.counters)
            self.aux_counters = np.zeros((capacity, 3), dtype=np.int64)

    def reserve(self, size: int) -> None:
        """Grow by ``_RESIZE_FACTOR`` (or more) if ``size`` entries do not fit."""
        if size > self.capacity:
            self.resize(max(size, _RESIZE_FACTOR * self.capacity))

    def swap(self) -> None:
        self.terms, self.aux_terms = self.aux_terms, self.terms
        self.coeffs, self.aux_coeffs = self.aux_coeffs, self.coeffs
        if self.counters is not None:
            self.counters, self.aux_counters = self.aux_counters, self.counters

    def gather(self, idx: np.ndarray) -> None:
        """Keep the entries at ``idx`` (in that order) as the active block."""
        m = len(idx)
        n = self.active_size
        self.aux_terms[:m] = self.terms[:n][idx]
        self.aux_coeffs[:m] = self.coeffs[:n][idx]
        if self.counters is not None:
            self.aux_counters[:m] = self.counters[:n][idx]
        self.swap()
        self.active_size = m

    def __repr__(self) -> str:
        return (f"PropagationCache(nqubits: {self.nqubits}, active: {self.active_size}, "
                f"capacity: {self.capacity}, keys: {self.key_dtype})")


def _number(coeff):
    if isinstance(coeff, PauliFreqTracker):
        return coeff.coeff
    return coeff


def _counter_row(coeff):
    if isinstance(coeff, PauliFreqTracker):
        return (coeff.nsins, coeff.ncos, coeff.freq)
    return (0, 0, 0)


def _coeff_dtype(psum: PauliSum) -> np.dtype:
    if any(isinstance(_number(c), complex) or np.iscomplexobj(_number(c)) for c in psum.values()):
        return np.dtype(np.complex128)
    return np.dtype(np.float64)


# ---------------------------------------------------------------------------
# bulk gate kernels
# ---------------------------------------------------------------------------
# Kernels return True when they appended terms that may duplicate keys.

def _apply_clifford(gate: CliffordGate, cache: PropagationCache) -> bool:
    n = cache.active_size
    patterns, signs = gate.table.arrays(gate.symbol)
    terms = cache.terms[:n]
    local = _get_local(terms, gate.qinds)
    new_local = patterns[local]
    for j, q in enumerate(gate.qinds):
        terms = _set_site(terms, (new_local >> (2 * j)) & 3, q)
    cache.terms[:n] = terms
    flip = signs[local] == -1
    cache.coeffs[:n][flip] *= -1
    return False


def _apply_pauli_noise(gate: PauliNoise, cache: PropagationCache, p) -> bool:
    n = cache.active_size
    site = _get_site(cache.terms[:n], gate.qind)
    damped = np.isin(site, sorted(gate.damped))
    cache.coeffs[:n][damped] *= 1 - p
    return False


def _apply_rotation(gate: PauliRotation, cache: PropagationCache, theta, backend: ArrayBackend) -> bool:
    n = cache.active_size
    terms = cache.terms[:n]
    anti = np.zeros(n, dtype=bool)
    exponent = np.zeros(n, dtype=np.int64)
    for symbol, q in zip(gate.symbols, gate.qinds):
        a = symbol_to_int(symbol)
        if a == 0:
            continue
        b = _get_site(terms, q)
        # a site anticommutes when both are non-identity and different
        anti ^= (b != 0) & (b != a)
        exponent += _PHASE_TABLE[a, b]
    flags = cache.flags[:n]
    flags[:] = anti
    positions = cache.indices[:n]
    positions[:] = backend.cumsum(flags)
    idx = backend.compact(flags)
    m = len(idx)
    if m == 0:
        return False
    dest = n + positions[idx] - 1
    signs = (exponent[idx] & 2) - 1
    cache.reserve(n + m)

    generator = _const(cache.key_dtype, gate.generator)
    cache.terms[dest] = cache.terms[idx] ^ generator
    cache.coeffs[dest] = cache.coeffs[idx] * (signs * math.sin(theta))
    cache.coeffs[idx] *= math.cos(theta)
    if cache.counters is not None:
        cache.counters[dest] = cache.counters[idx]
        cache.counters[dest, _NSINS] += 1
        cache.counters[dest, _FREQ] += 1
        cache.counters[idx, _NCOS] += 1
        cache.counters[idx, _FREQ] += 1
    cache.active_size = n + m
    return True


def _apply_amplitude_damping(gate: AmplitudeDampingNoise, cache: PropagationCache, gamma,
                             backend: ArrayBackend) -> bool:
    n = cache.active_size
    site = _get_site(cache.terms[:n], gate.qind)
    cache.coeffs[:n][(site == 1) | (site == 2)] *= math.sqrt(1 - gamma)
    idx = backend.compact(site == 3)
    m = len(idx)
    if m == 0:
        return False
    cache.reserve(n + m)
    dest = np.arange(n, n + m)
    cache.terms[dest] = _set_site(cache.terms[idx], np.zeros(m, dtype=np.int64), gate.qind)
    cache.coeffs[dest] = cache.coeffs[idx] * gamma
    cache.coeffs[idx] *= 1 - gamma
    if cache.counters is not None:
        cache.counters[dest] = cache.counters[idx]
    cache.active_size = n + m
    return True


def _apply_generic(gate: Gate, cache: PropagationCache, parameter, param_idx) -> bool:
    # Gates without a bulk rule go through their scalar apply
    wrap = cache.counters is not None
    out = PauliSum(cache.nqubits)
    for pstr, coeff in cache.to_pauli_sum(wrap=wrap).items():
        for new_pstr, new_coeff in gate.apply(pstr, coeff, parameter, param_idx):
            out.add(new_pstr, new_coeff)
    cache.load(out)
    return False


def _apply_gate(gate: Gate, cache: PropagationCache, parameter, param_idx, backend: ArrayBackend) -> bool:
    if isinstance(gate, FrozenGate):
        return _apply_gate(gate.gate, cache, gate.parameter, None, backend)
    if isinstance(gate, CliffordGate):
        return _apply_clifford(gate, cache)
    if isinstance(gate, PauliRotation):
        return _apply_rotation(gate, cache, parameter, backend)
    if isinstance(gate, PauliNoise):
        return _apply_pauli_noise(gate, cache, parameter)
    if isinstance(gate, AmplitudeDampingNoise):
        return _apply_amplitude_damping(gate, cache, parameter, backend)
    return _apply_generic(gate, cache, parameter, param_idx)


def _merge(cache: PropagationCache, backend: ArrayBackend) -> None:
    """Sum coefficients of equal keys, keeping the minimum of each counter."""
    n = cache.active_size
    if n < 2:
        return
    perm = backend.sortperm(cache.terms[:n])
    sorted_terms = cache.terms[:n][perm]
    starts = np.empty(n, dtype=bool)
    starts[0] = True
    starts[1:] = sorted_terms[1:] != sorted_terms[:-1]
    first = backend.compact(starts)
    m = len(first)
    if m == n:
        return
    cache.aux_terms[:m] = sorted_terms[first]
    cache.aux_coeffs[:m] = np.add.reduceat(cache.coeffs[:n][perm], first)
    if cache.counters is not None:
        cache.aux_counters[:m] = np.minimum.reduceat(cache.counters[:n][perm], first, axis=0)
    cache.swap()
    cache.active_size = m


def _truncate(cache: PropagationCache, truncation: Truncation, backend: ArrayBackend) -> None:
    n = cache.active_size
    terms = cache.terms[:n]
    coeffs = cache.coeffs[:n]
    keep = coeffs != 0
    if truncation.max_weight < math.inf:
        keep &= _weights(terms, cache.nqubits, backend) <= truncation.max_weight
    if truncation.min_abs_coeff > 0:
        keep &= np.abs(coeffs) >= truncation.min_abs_coeff
    if truncation.max_freq < math.inf:
        keep &= cache.counters[:n, _FREQ] <= truncation.max_freq
    if truncation.max_sins < math.inf:
        keep &= cache.counters[:n, _NSINS] <= truncation.max_sins
    if truncation.custom_truncation is not None:
        keep &= ~_custom_flags(cache, truncation.custom_truncation, backend)
    idx = backend.compact(keep)
    if len(idx) < n:
        cache.gather(idx)


def _custom_flags(cache: PropagationCache, predicate, backend: ArrayBackend) -> np.ndarray:
    n = cache.active_size
    if cache.counters is None:
        return backend.map(lambda p, c: bool(predicate(int(p), c.item())),
                           cache.terms[:n], cache.coeffs[:n], dtype=bool)
    return backend.map(
        lambda p, c, k: bool(predicate(int(p), PauliFreqTracker(c.item(), int(k[0]), int(k[1]), int(k[2])))),
        cache.terms[:n], cache.coeffs[:n], cache.counters[:n], dtype=bool,
    )


# ---------------------------------------------------------------------------
# public API
# ---------------------------------------------------------------------------

def propagate_vectorized(circuit,
                         term_or_sum_or_cache: Union[PauliTerm, PauliSum, PropagationCache],
                         parameters: Optional[Sequence[Any]] = None,
                         max_weight=math.inf,
                         min_abs_coeff: float = 0.0,
                         max_freq=math.inf,
                         max_sins=math.inf,
                         custom_truncation: Optional[Callable[[int, Any], bool]] = None,
                         backend: Optional[ArrayBackend] = None,
                         show_progress: bool = False) -> PauliSum:
    """
    Propagate an observable through a circuit on array buffers.

    Parameters
    ----------
    circuit : List[Gate]
        Gates in execution order
    term_or_sum_or_cache : PauliTerm | PauliSum | PropagationCache
        Observable; a PauliTerm or PauliSum is left untouched, a
        PropagationCache is propagated in place
    parameters : Sequence[float] | None
        One numeric value per parametrized gate, in circuit order
    max_weight, min_abs_coeff, max_freq, max_sins, custom_truncation
        Truncation options, see :class:`pauliprop.truncations.Truncation`.
        ``custom_truncation`` receives a number, or a PauliFreqTracker when
        branch counters are tracked.
    backend : ArrayBackend | None
        Bulk primitives, defaults to :class:`NumpyBackend`
    show_progress : bool
        Display a tqdm progress bar over the gates

    Returns
    -------
    PauliSum
        Propagated observable; PauliFreqTracker coefficients if the input
        held trackers, numbers otherwise

    Raises
    ------
    TypeError
        For coefficient kinds other than numbers and PauliFreqTracker, or a
        cache without counters under ``max_freq``/``max_sins``
    ValueError
        On parameter or qubit index errors
    """
    backend = backend if backend is not None else NumpyBackend()
    truncation = Truncation(max_weight, min_abs_coeff, max_freq, max_sins, custom_truncation)
    if isinstance(term_or_sum_or_cache, PropagationCache):
        cache = term_or_sum_or_cache
        if truncation.needs_counters and cache.counters is None:
            raise TypeError("max_freq/max_sins truncation needs a PropagationCache tracking branch counters")
    else:
        cache = PropagationCache.from_pauli_sum(term_or_sum_or_cache, track_counters=truncation.needs_counters)

    circuit = _as_circuit(circuit)
    parameters = check_circuit_and_parameters(circuit, parameters, cache.nqubits)
    if any(value is None for value in parameters):
        raise ValueError("Vectorized propagation needs a numeric value for every parameter")

    ops = _reversed_ops(circuit, parameters)
    for gate, parameter, param_idx in tqdm(ops, desc=f"Propagating, max weight: {max_weight}",
                                          total=len(ops), disable=not show_progress):
        if cache.active_size == 0:
            break
        if _apply_gate(gate, cache, parameter, param_idx, backend):
            _merge(cache, backend)
        _truncate(cache, truncation, backend)
    return cache.to_pauli_sum()
