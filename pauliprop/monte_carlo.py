# -*- coding: utf-8 -*-

# pauliprop/monte_carlo.py
import numpy as np
from typing import List, Optional, Sequence, Tuple, Union
from qiskit import QuantumCircuit
from tqdm.auto import tqdm
from concurrent.futures import ProcessPoolExecutor, as_completed

from .gates import Gate, PauliRotation, count_parameters, max_qubit_index
from .pauli_sum import PauliSum
from .pauli_term import PauliTerm
from .path_properties import PauliFreqTracker, tonumber
from .propagator import _as_circuit, _reversed_ops, check_circuit_and_parameters
from .state_overlap import evaluate_expectation
from .truncations import Truncation

__all__ = ["MonteCarlo"]

# Maximum number of worker processes
_MAX_WORKERS = 8 # or os.cpu_count()


def _sample_one_path(ops, key: int, coeff, rng: np.random.Generator) -> Tuple[int, complex]:
    """
    Follow one Pauli path backwards through the circuit.

    At a splitting gate one branch is drawn with probability proportional to
    ``|c|^2`` and the path weight is multiplied by ``c / p``, so the final
    weighted string is an unbiased estimator of the propagated observable.
    """
    for gate, parameter, _ in ops:
        branches = gate.apply(key, 1.0, parameter, None)
        if len(branches) == 1:
            key, amp = branches[0]
            coeff *= amp
        else:
            probs = np.array([abs(c)**2 for _, c in branches], dtype=float)
            total = probs.sum()
            if total == 0:
                return key, 0.0
            probs /= total
            idx = rng.choice(len(branches), p=probs)
            key, amp = branches[idx]
            coeff *= amp / probs[idx]
        if coeff == 0:
            break
    return key, coeff


def _truncation_error_of_path(ops, split_probs, key: int, coeff, truncation: Truncation,
                               rng: np.random.Generator) -> float:
    """
    Follow one path and return its squared weight if it gets truncated.

    Free rotations do not multiply the path weight: averaged over uniform
    angles, cos^2 and sin^2 both contribute 1/2, which is what choosing the
    new string with probability ``split_prob`` samples for 0.5.
    """
    path = PauliFreqTracker(coeff)
    for (gate, parameter, _), split_prob in zip(ops, split_probs):
        if isinstance(gate, PauliRotation):
            if not gate.commutes(key):
                if rng.random() < split_prob:
                    key, _ = gate.transform(key)
                    path = PauliFreqTracker(path.coeff, path.nsins + 1, path.ncos, path.freq + 1)
                else:
                    path = PauliFreqTracker(path.coeff, path.nsins, path.ncos + 1, path.freq + 1)
        else:
            branches = gate.apply(key, 1.0, parameter, None)
            if len(branches) == 1:
                key, amp = branches[0]
                path = path.scale(amp)
            else:
                probs = np.array([abs(c)**2 for _, c in branches], dtype=float)
                total = probs.sum()
                if total == 0:
                    return 0.0
                probs /= total
                idx = rng.choice(len(branches), p=probs)
                key, amp = branches[idx]
                path = path.scale(amp / probs[idx])
        if path.coeff == 0:
            return 0.0
        if truncation(key, path):
            # the rest of the path is not followed, its overlap counts as 1
            return abs(path.coeff)**2
    return 0.0


def _truncation_errors(args) -> List[float]:
    """Helper function for ProcessPoolExecutor to sample a batch of truncation errors."""
    ops, split_probs, init_key, init_coeff, options, n_samples, seed = args
    # rebuilt in the worker, its predicates are closures
    truncation = Truncation(**options)
    rng = np.random.default_rng(seed)
    return [_truncation_error_of_path(ops, split_probs, init_key, init_coeff, truncation, rng)
            for _ in range(n_samples)]


def _sample_paths(args) -> List[Tuple[int, complex]]:
    """
    Helper function for ProcessPoolExecutor to sample a batch of paths.

    Parameters
    ----------
    args : tuple
        Contains (ops, init_key, init_coeff, n_samples, seed)
    """
    ops, init_key, init_coeff, n_samples, seed = args
    rng = np.random.default_rng(seed)
    return [_sample_one_path(ops, init_key, init_coeff, rng) for _ in range(n_samples)]


class MonteCarlo:
    """
    Monte Carlo sampling of Pauli paths through a circuit.

    Instead of keeping every branch, each sample follows a single path and
    carries an importance weight. Averaging the projected samples estimates
    the expectation value without the memory cost of full propagation.

    Attributes
    ----------
    circuit : List[Gate]
        Gates in execution order
    parameters : List[float] | None
        Parameters bound at construction (from a qiskit circuit), if any
    n : int
        Number of qubits
    _sampled_last_paulis : List[PauliTerm]
        Internal storage for the last batch of sampled final Pauli terms
    """

    def __init__(self, circuit: Union[QuantumCircuit, Sequence[Gate]], nqubits: Optional[int] = None):
        """
        Parameters
        ----------
        circuit : QuantumCircuit | Sequence[Gate]
            A qiskit circuit or a list of gates
        nqubits : int | None
            Register size; inferred from the circuit when omitted
        """
        if isinstance(circuit, QuantumCircuit):
            from .qiskit_interface import from_qiskit

            self.circuit, self.parameters = from_qiskit(circuit)
            self.n = circuit.num_qubits
        else:
            self.circuit = _as_circuit(circuit)
            self.parameters = None
            self.n = nqubits if nqubits is not None else max_qubit_index(self.circuit) + 1
            for gate in self.circuit:
                gate.check_qubits(self.n)
        if nqubits is not None and nqubits != self.n:
            raise ValueError(f"Circuit has {self.n} qubits, got nqubits={nqubits}")

        # Internal storage for sampling results
        self._sampled_last_paulis: List[PauliTerm] = []

    def sample(self,
               term: PauliTerm,
               parameters: Optional[Sequence[float]] = None,
               n_samples: int = 1000,
               seed: Optional[int] = None,
               use_parallel: bool = False,
               show_progress: bool = False) -> List[PauliTerm]:
        """
        Sample ``n_samples`` Pauli paths starting from ``term``.

        Parameters
        ----------
        term : PauliTerm
            Initial Pauli term (the observable)
        parameters : Sequence[float] | None
            One value per parametrized gate; defaults to the bound values
        n_samples : int
            Number of paths
        seed : int | None
            Seed of the random generator; the same seed gives the same
            samples for a given ``use_parallel`` setting
        use_parallel : bool
            Spread the samples over a process pool of ``_MAX_WORKERS`` workers
        show_progress : bool
            Display a tqdm progress bar

        Returns
        -------
        List[PauliTerm]
            Final weighted Pauli term of every path, in sampling order
        """
        if term.n != self.n:
            raise ValueError("Initial term qubit count mismatch")
        if n_samples < 1:
            raise ValueError(f"n_samples must be positive, got {n_samples}")
        if parameters is None:
            parameters = self.parameters
        parameters = check_circuit_and_parameters(self.circuit, parameters, self.n)
        if any(value is None for value in parameters):
            raise ValueError("Monte Carlo sampling needs a numeric value for every parameter")

        ops = _reversed_ops(self.circuit, parameters)
        init_coeff = tonumber(term.coeff)
        seed_seq = np.random.SeedSequence(seed)

        if not use_parallel:
            rng = np.random.default_rng(seed_seq)
            results = [_sample_one_path(ops, term.key, init_coeff, rng)
                       for _ in tqdm(range(n_samples), desc="MC sampling", disable=not show_progress)]
        else:
            # One batch of samples per worker, each with its own child seed
            n_batches = min(_MAX_WORKERS, n_samples)
            sizes = [len(b) for b in np.array_split(np.arange(n_samples), n_batches)]
            seeds = seed_seq.spawn(n_batches)
            batches: List[List[Tuple[int, complex]]] = [[] for _ in range(n_batches)]
            with ProcessPoolExecutor(max_workers=_MAX_WORKERS) as executor:
                future_to_batch = {
                    executor.submit(_sample_paths, (ops, term.key, init_coeff, size, child)): i
                    for i, (size, child) in enumerate(zip(sizes, seeds))
                }
                for future in tqdm(as_completed(future_to_batch), total=n_batches,
                                   desc="MC sampling", disable=not show_progress):
                    batches[future_to_batch[future]] = future.result()
            results = [path for batch in batches for path in batch]

        self._sampled_last_paulis = [PauliTerm(coeff, key, self.n) for key, coeff in results]
        return list(self._sampled_last_paulis)

    def expectation(self,
                    term: PauliTerm,
                    parameters: Optional[Sequence[float]] = None,
                    n_samples: int = 1000,
                    reference_state: Optional[str] = None,
                    seed: Optional[int] = None,
                    use_parallel: bool = False,
                    show_progress: bool = False) -> float:
        """
        Monte Carlo estimate of the expectation value of ``term``.

        The sampled terms are averaged into a PauliSum and projected on the
        product state ``reference_state`` (over "01+-rl", rightmost character
        is qubit 0; defaults to all zeros).
        """
        samples = self.sample(term, parameters, n_samples, seed=seed,
                              use_parallel=use_parallel, show_progress=show_progress)
        estimate = PauliSum(self.n)
        for sample in samples:
            estimate.add(sample.key, sample.coeff / n_samples)
        return evaluate_expectation(estimate, reference_state)

    def estimate_average_error(self,
                               term: PauliTerm,
                               n_samples: int = 1000,
                               split_probabilities: Union[float, Sequence[float]] = 0.5,
                               parameters: Optional[Sequence[float]] = None,
                               max_weight=np.inf,
                               max_freq=np.inf,
                               max_sins=np.inf,
                               custom_truncation=None,
                               seed: Optional[int] = None,
                               use_parallel: bool = False,
                               show_progress: bool = False) -> float:
        """
        Monte Carlo certificate of the truncation error.

        Estimates the mean squared error of a truncated propagation of
        ``term``, averaged over uniformly distributed rotation angles. Each
        sample follows one Pauli path; at a non-commuting rotation it moves
        to the new string with the split probability of that gate. A path
        that meets a truncation counts with its squared weight, a path that
        survives counts zero.

        Parameters
        ----------
        term : PauliTerm
            Initial Pauli term (the observable)
        n_samples : int
            Number of paths
        split_probabilities : float | Sequence[float]
            Probability of taking the new string at a rotation, one value
            for all gates or one per gate in circuit order
        parameters : Sequence[float] | None
            One value per parametrized gate. Rotation angles are not used,
            noise strengths are; None is allowed for circuits whose
            parametrized gates are all rotations
        max_weight, max_freq, max_sins, custom_truncation
            Truncation options of the propagation being certified. The
            custom predicate receives a :class:`PauliFreqTracker`
        seed : int | None
            Seed of the random generator
        use_parallel : bool
            Spread the samples over a process pool of ``_MAX_WORKERS``
            workers; ``custom_truncation`` must then be picklable
        show_progress : bool
            Display a tqdm progress bar

        Returns
        -------
        float
            Estimated mean squared error
        """
        if term.n != self.n:
            raise ValueError("Initial term qubit count mismatch")
        if n_samples < 1:
            raise ValueError(f"n_samples must be positive, got {n_samples}")
        if parameters is None:
            parameters = self.parameters
        if parameters is None:
            parameters = [None] * count_parameters(self.circuit)
        parameters = check_circuit_and_parameters(self.circuit, parameters, self.n)
        ops = _reversed_ops(self.circuit, parameters)
        for gate, parameter, _ in ops:
            if parameter is None and gate.is_parametrized and not isinstance(gate, PauliRotation):
                raise ValueError(f"{type(gate).__name__} needs a numeric parameter")

        if np.ndim(split_probabilities) == 0:
            split_probs = [float(split_probabilities)] * len(self.circuit)
        else:
            split_probs = [float(p) for p in split_probabilities]
            if len(split_probs) != len(self.circuit):
                raise ValueError(
                    f"Got {len(split_probs)} split probabilities for {len(self.circuit)} gates"
                )
        if any(not 0 <= p <= 1 for p in split_probs):
            raise ValueError("Split probabilities must be between 0 and 1")
        split_probs = split_probs[::-1]

        options = dict(max_weight=max_weight, max_freq=max_freq, max_sins=max_sins,
                       custom_truncation=custom_truncation)
        truncation = Truncation(**options)
        init_coeff = tonumber(term.coeff)
        seed_seq = np.random.SeedSequence(seed)

        if not use_parallel:
            rng = np.random.default_rng(seed_seq)
            errors = [_truncation_error_of_path(ops, split_probs, term.key, init_coeff, truncation, rng)
                      for _ in tqdm(range(n_samples), desc="MC error estimate", disable=not show_progress)]
        else:
            n_batches = min(_MAX_WORKERS, n_samples)
            sizes = [len(b) for b in np.array_split(np.arange(n_samples), n_batches)]
            seeds = seed_seq.spawn(n_batches)
            errors = []
            with ProcessPoolExecutor(max_workers=_MAX_WORKERS) as executor:
                futures = [
                    executor.submit(_truncation_errors,
                                    (ops, split_probs, term.key, init_coeff, options, size, child))
                    for size, child in zip(sizes, seeds)
                ]
                for future in tqdm(futures, desc="MC error estimate", disable=not show_progress):
                    errors.extend(future.result())
        return float(np.mean(errors))
