# -*- coding: utf-8 -*-

# pauliprop/surrogate.py
"""
Pauli propagation surrogate.

Wrapping the coefficients of an observable in :class:`NodePathProperties`
makes the regular propagation engine record a computation graph instead of
numbers. Every rotation branch creates a node whose value is

    sum_i  value(parents[i]) * signs[i] * trig_i(theta[param_indices[i]])

where ``trig_i`` is cos, sin or the constant 1 (Clifford signs, noise
damping, frozen angles). The graph is then evaluated for any parameter
vector without propagating again. Truncation decisions are taken once, at
build time.

Nodes live in an arena (:class:`SurrogateGraph`) and reference their
parents by index. Evaluation is an explicit post-order traversal with
memoisation, so deep circuits do not hit the recursion limit.
"""

import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Union

import numpy as np

from .gates import Gate, PauliRotation, count_parameters
from .pauli_sum import PauliSum
from .pauli_term import PauliTerm
from .path_properties import PathProperties, tonumber, wrap_coefficients
from .state_overlap import product_state_overlap, state_indices, zero_filter

__all__ = [
    "TRIG_CONST",
    "TRIG_COS",
    "TRIG_SIN",
    "EvalEndNode",
    "PauliGateNode",
    "SurrogateGraph",
    "NodePathProperties",
    "build_surrogate",
    "evaluate_graph",
    "surrogate_expectation",
]

TRIG_CONST = 0
TRIG_COS = 1
TRIG_SIN = -1


@dataclass(slots=True)
class EvalEndNode:
    """Leaf holding the initial coefficient of an observable term."""
    pstr: int
    coefficient: Any
    value: Any = None
    is_evaluated: bool = False


@dataclass(slots=True)
class PauliGateNode:
    """
    Branch node created at a gate.

    Attributes
    ----------
    parents : List[int]
        Arena indices of the parent nodes, one per incoming edge
    trig_inds : List[int]
        ``TRIG_COS``, ``TRIG_SIN`` or ``TRIG_CONST`` per edge
    signs : List[float]
        Factor per edge: rotation sign, Clifford sign or damping factor
    param_indices : List[int]
        Parameter index per edge, -1 for constant edges
    """
    parents: List[int]
    trig_inds: List[int]
    signs: List[float]
    param_indices: List[int]
    value: Any = None
    is_evaluated: bool = False

    @property
    def param_idx(self) -> int:
        """Parameter of the gate that created the node, -1 if none."""
        for idx in self.param_indices:
            if idx >= 0:
                return idx
        return -1


class SurrogateGraph:
    """
    Arena of surrogate nodes addressed by integer index.

    A node currently held by a term of the propagated PauliSum never has
    children, so merging two held nodes can extend one of them in place.
    """

    def __init__(self):
        self.nodes: List[Union[EvalEndNode, PauliGateNode]] = []

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, idx: int):
        return self.nodes[idx]

    def __repr__(self) -> str:
        nleaves = sum(isinstance(n, EvalEndNode) for n in self.nodes)
        return f"SurrogateGraph({len(self.nodes)} nodes, {nleaves} leaves)"

    def add_leaf(self, pstr: int, coefficient) -> int:
        self.nodes.append(EvalEndNode(pstr, coefficient))
        return len(self.nodes) - 1

    def add_branch(self, parents, trig_inds, signs, param_indices) -> int:
        self.nodes.append(PauliGateNode(list(parents), list(trig_inds), list(signs), list(param_indices)))
        return len(self.nodes) - 1

    def merge_nodes(self, a: int, b: int) -> int:
        """
        Merge node ``b`` into node ``a`` (both held by terms); return the
        index of the node now holding the sum.
        """
        node_a, node_b = self.nodes[a], self.nodes[b]
        if isinstance(node_a, EvalEndNode):
            if isinstance(node_b, EvalEndNode):
                node_a.coefficient = node_a.coefficient + node_b.coefficient
                return a
            node_b.parents.append(a)
            node_b.trig_inds.append(TRIG_CONST)
            node_b.signs.append(1.0)
            node_b.param_indices.append(-1)
            return b
        if isinstance(node_b, EvalEndNode):
            node_a.parents.append(b)
            node_a.trig_inds.append(TRIG_CONST)
            node_a.signs.append(1.0)
            node_a.param_indices.append(-1)
            return a
        node_a.parents.extend(node_b.parents)
        node_a.trig_inds.extend(node_b.trig_inds)
        node_a.signs.extend(node_b.signs)
        node_a.param_indices.extend(node_b.param_indices)
        return a

    def reset(self) -> None:
        """Clear all evaluated values."""
        for node in self.nodes:
            node.value = None
            node.is_evaluated = False

    def evaluate(self, roots: Iterable[int], parameters: Sequence[Any], xp=np) -> List[Any]:
        """
        Evaluate the nodes ``roots`` for ``parameters``.

        Parameters
        ----------
        roots : Iterable[int]
            Arena indices to evaluate
        parameters : Sequence
            Circuit parameters in circuit order
        xp : module
            Array module providing ``cos`` and ``sin``; pass e.g. ``torch``
            or ``jax.numpy`` to trace the evaluation

        Returns
        -------
        List[Any]
            Values of ``roots`` in order
        """
        self.reset()
        nodes = self.nodes
        trig_cache = {}

        def trig(kind: int, idx: int):
            key = (kind, idx)
            if key not in trig_cache:
                theta = parameters[idx]
                trig_cache[key] = xp.cos(theta) if kind == TRIG_COS else xp.sin(theta)
            return trig_cache[key]

        results = []
        for root in roots:
            stack = [root]
            while stack:
                idx = stack[-1]
                node = nodes[idx]
                if node.is_evaluated:
                    stack.pop()
                    continue
                if isinstance(node, EvalEndNode):
                    node.value = node.coefficient
                    node.is_evaluated = True
                    stack.pop()
                    continue
                pending = [p for p in node.parents if not nodes[p].is_evaluated]
                if pending:
                    stack.extend(pending)
                    continue
                total = 0.0
                for parent, kind, sign, pidx in zip(node.parents, node.trig_inds, node.signs, node.param_indices):
                    contribution = nodes[parent].value * sign
                    if kind != TRIG_CONST:
                        contribution = contribution * trig(kind, pidx)
                    total = total + contribution
                node.value = total
                node.is_evaluated = True
                stack.pop()
            results.append(nodes[root].value)
        return results


@dataclass(frozen=True, slots=True)
class NodePathProperties(PathProperties):
    """
    Coefficient referencing a node of a :class:`SurrogateGraph`.

    Attributes
    ----------
    graph : SurrogateGraph
        Arena holding the node
    node : int
        Index of the node
    nsins, ncos, freq : int
        Branch counters, as for :class:`PauliFreqTracker`
    value : float | None
        Numeric value at the build-time parameters, None if the graph was
        built without parameters
    """
    graph: SurrogateGraph = field(repr=False, compare=False)
    node: int
    nsins: int = 0
    ncos: int = 0
    freq: int = 0
    value: Any = None

    def tonumber(self):
        node = self.graph.nodes[self.node]
        if node.is_evaluated:
            return node.value
        if self.value is not None:
            return self.value
        raise TypeError(
            "NodePathProperties has no numeric value: evaluate the graph first, "
            "or build the surrogate with parameters to use min_abs_coeff"
        )

    def is_zero(self) -> bool:
        # zero for every parameter assignment: a zero leaf, or a branch whose
        # edges all carry a constant zero factor
        node = self.graph.nodes[self.node]
        if isinstance(node, EvalEndNode):
            return isinstance(node.coefficient, numbers.Number) and node.coefficient == 0
        return all(isinstance(s, numbers.Number) and s == 0 for s in node.signs)

    def _branch(self, trig_ind: int, sign, param_idx: int) -> int:
        return self.graph.add_branch([self.node], [trig_ind], [sign], [param_idx])

    def merge(self, other: "NodePathProperties") -> "NodePathProperties":
        self._check_kind(other)
        if other.graph is not self.graph:
            raise TypeError("Cannot merge NodePathProperties from different surrogate graphs")
        node = self.graph.merge_nodes(self.node, other.node)
        value = None
        if self.value is not None and other.value is not None:
            value = self.value + other.value
        return NodePathProperties(self.graph, node, min(self.nsins, other.nsins),
                                  min(self.ncos, other.ncos), min(self.freq, other.freq), value)

    def scale(self, factor) -> "NodePathProperties":
        if factor == 1:
            return self
        value = None if self.value is None else self.value * factor
        return NodePathProperties(self.graph, self._branch(TRIG_CONST, factor, -1),
                                  self.nsins, self.ncos, self.freq, value)

    def apply_cos(self, theta, param_idx=None) -> "NodePathProperties":
        if param_idx is None:
            node = self._branch(TRIG_CONST, math.cos(theta), -1)
        else:
            node = self._branch(TRIG_COS, 1, param_idx)
        value = None
        if self.value is not None and theta is not None:
            value = self.value * math.cos(theta)
        return NodePathProperties(self.graph, node, self.nsins, self.ncos + 1, self.freq + 1, value)

    def apply_sin(self, theta, sign, param_idx=None) -> "NodePathProperties":
        if param_idx is None:
            node = self._branch(TRIG_CONST, sign * math.sin(theta), -1)
        else:
            node = self._branch(TRIG_SIN, sign, param_idx)
        value = None
        if self.value is not None and theta is not None:
            value = self.value * sign * math.sin(theta)
        return NodePathProperties(self.graph, node, self.nsins + 1, self.ncos, self.freq + 1, value)

    @classmethod
    def wrap(cls, coeff):
        raise TypeError("NodePathProperties needs a graph, wrap a PauliSum with wrap_coefficients instead")

    @classmethod
    def wrap_sum(cls, psum: PauliSum) -> PauliSum:
        graph = SurrogateGraph()
        wrapped = psum.similar()
        for pstr, coeff in psum.items():
            coeff = tonumber(coeff)
            wrapped.set(pstr, cls(graph, graph.add_leaf(pstr, coeff), value=coeff))
        return wrapped


def _surrogate_roots(roots):
    if isinstance(roots, PauliSum):
        payloads = list(roots.values())
    elif isinstance(roots, NodePathProperties):
        payloads = [roots]
    else:
        payloads = list(roots)
    for payload in payloads:
        if not isinstance(payload, NodePathProperties):
            raise TypeError(f"Expected NodePathProperties coefficients, got {type(payload).__name__}")
    graphs = {id(p.graph) for p in payloads}
    if len(graphs) > 1:
        raise ValueError("All roots must belong to the same surrogate graph")
    return payloads


def evaluate_graph(roots, parameters: Sequence[Any], xp=np) -> List[Any]:
    """
    Evaluate surrogate nodes for concrete parameters.

    Parameters
    ----------
    roots : PauliSum | NodePathProperties | Iterable[NodePathProperties]
        Coefficients of a built surrogate
    parameters : Sequence
        One value per parametrized gate, in circuit order
    xp : module
        Array module providing ``cos`` and ``sin``

    Returns
    -------
    List[Any]
        One value per root; for a PauliSum in the order of ``roots.items()``
    """
    payloads = _surrogate_roots(roots)
    if not payloads:
        return []
    return payloads[0].graph.evaluate([p.node for p in payloads], parameters, xp)


def build_surrogate(circuit, observable: Union[PauliTerm, PauliSum], parameters: Optional[Sequence[Any]] = None,
                    **options) -> PauliSum:
    """
    Propagate ``observable`` symbolically and return a PauliSum of
    :class:`NodePathProperties`.

    Parameters
    ----------
    circuit : List[Gate]
        Gates in execution order
    observable : PauliTerm | PauliSum
        Observable with numeric coefficients
    parameters : Sequence | None
        Build-time parameters. Needed for ``min_abs_coeff`` truncation and
        for parametrized noise channels; with None, rotation angles stay
        symbolic.
    **options
        Truncation options of :func:`pauliprop.propagator.propagate`
    """
    from .propagator import propagate_in_place

    if isinstance(circuit, Gate):
        circuit = [circuit]
    circuit = list(circuit)
    if parameters is None:
        for gate in circuit:
            if gate.is_parametrized and not isinstance(gate, PauliRotation):
                raise ValueError(
                    f"{type(gate).__name__} needs a numeric parameter at build time; "
                    f"pass parameters or freeze the gate"
                )
        parameters = [None] * count_parameters(circuit)
    psum = observable if isinstance(observable, PauliSum) else PauliSum(observable.n, observable)
    wrapped = wrap_coefficients(psum, NodePathProperties)
    return propagate_in_place(circuit, wrapped, parameters, **options)


def surrogate_expectation(psum: PauliSum, parameters: Sequence[Any], reference_state: Optional[str] = None, xp=np):
    """
    Expectation value of a built surrogate in a product state.

    Only terms with a non-zero overlap are evaluated. The result is built
    with plain arithmetic on the values returned by ``xp``.
    """
    if reference_state is None:
        filtered = zero_filter(psum)
        return sum(evaluate_graph(filtered, parameters, xp), 0.0)
    state_idxs = state_indices(reference_state, psum.nqubits)
    overlaps = {p: product_state_overlap(p, state_idxs) for p in psum}
    filtered = psum.similar()
    filtered.terms = {p: c for p, c in psum.items() if overlaps[p] != 0.0}
    values = evaluate_graph(filtered, parameters, xp)
    return sum((v * overlaps[p] for v, p in zip(values, filtered)), 0.0)
