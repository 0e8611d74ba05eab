"""
Block topologies for generating-function matrices.

A topology describes a block upper-triangular matrix with `n_blocks`
diagonal blocks. Every diagonal block holds the base operator H; each
populated off-diagonal block (i, j), i < j, holds the sum of one or more
perturbation operators, referenced by their index in the perturbation list.

Theory
------
For M block upper-triangular with H on the diagonal, the block
exp(M)[0, m] is a sum over block paths 0 = i_0 < i_1 < ... < i_p = m.
Each path contributes the ordered simplex integral

    int_{u_0 + ... + u_p = 1} e^{u_0 H} A_1 e^{u_1 H} A_2 ... A_p e^{u_p H}

where A_r is the operator placed in block (i_{r-1}, i_r). The named
topologies pick out particular paths:

- first-order (2 blocks): the Fréchet derivative L(H, V)
- causal second-order (3 blocks, Najfeld-Havel): a single ordering E1, E2
- symmetric second-order (4 blocks, Higham): both orderings, which is the
  second Fréchet derivative D^2 exp(H)[E1, E2]

The general k-th order constructions are:

- causal: k+1 blocks with E_1, ..., E_k on the superdiagonal
- symmetric: 2^k blocks indexed by subsets of {1..k}, built recursively as
  T_k = [[T_{k-1}, E_k], [0, T_{k-1}]]; the corner block sums all k!
  orderings

References
----------
- Najfeld & Havel, "Derivatives of the matrix exponential and their
  computation", Adv. Appl. Math. 16, 321-375 (1995)
- Higham, "Functions of Matrices", SIAM (2008), Section 3.2
"""

from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union
import numpy as np

from .errors import InvalidTopology


BlockIndex = Tuple[int, int]
EntrySpec = Union[None, int, Tuple[int, ...], List[int]]

ORDERINGS = ('causal', 'symmetric')


def _normalize_entry(key, value) -> Tuple[int, ...]:
    if value is None:
        return ()
    if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
        indices = (int(value),)
    elif isinstance(value, (tuple, list)):
        indices = tuple(value)
    else:
        raise InvalidTopology(
            f"block {key}: entry must be a perturbation index, a tuple of "
            f"indices or None, got {value!r}"
        )
    for idx in indices:
        if not isinstance(idx, (int, np.integer)) or isinstance(idx, bool):
            raise InvalidTopology(f"block {key}: perturbation index {idx!r} is not an integer")
        if idx < 0:
            raise InvalidTopology(f"block {key}: perturbation index {idx} is negative")
    return tuple(int(idx) for idx in indices)


class BlockTopology:
    """
    Strictly block upper-triangular placement of perturbations.

    Parameters
    ----------
    n_blocks : int
        Number of diagonal blocks (k + 1 for a target column k)
    entries : mapping
        (i, j) -> perturbation index, tuple of indices (summed), or None
        for an explicit zero block. Missing positions are zero.
    name : str, optional
        Label used in reports

    Raises
    ------
    InvalidTopology
        If any populated position is on or below the block diagonal, or
        outside the matrix
    """

    def __init__(self, n_blocks: int, entries: Mapping[BlockIndex, EntrySpec],
                 name: Optional[str] = None):
        if n_blocks < 2:
            raise InvalidTopology(f"A topology needs at least 2 blocks, got {n_blocks}")

        normalized: Dict[BlockIndex, Tuple[int, ...]] = {}
        for key, value in entries.items():
            try:
                i, j = key
            except (TypeError, ValueError):
                raise InvalidTopology(f"Block position must be a pair (i, j), got {key!r}") from None
            indices = _normalize_entry(key, value)
            if not indices:
                continue
            if not (0 <= i < n_blocks and 0 <= j < n_blocks):
                raise InvalidTopology(f"Block {key} outside a {n_blocks}-block matrix")
            if i >= j:
                raise InvalidTopology(
                    f"Block {key} is on or below the block diagonal; "
                    "topologies must be strictly block upper-triangular"
                )
            normalized[(int(i), int(j))] = indices

        self._n_blocks = int(n_blocks)
        self._entries = dict(sorted(normalized.items()))
        self._name = name

    @classmethod
    def from_mapping(cls, entries: Mapping[BlockIndex, EntrySpec],
                     n_blocks: Optional[int] = None,
                     name: Optional[str] = None) -> 'BlockTopology':
        """Build a topology from a mapping, inferring n_blocks from the
        largest column index when not given."""
        if n_blocks is None:
            columns = [key[1] for key in entries if isinstance(key, tuple) and len(key) == 2]
            if not columns:
                raise InvalidTopology("Cannot infer the block count from an empty mapping")
            n_blocks = max(columns) + 1
        return cls(n_blocks, entries, name=name)

    @property
    def n_blocks(self) -> int:
        return self._n_blocks

    @property
    def target(self) -> int:
        """Block column holding the generating-function value."""
        return self._n_blocks - 1

    @property
    def entries(self) -> Dict[BlockIndex, Tuple[int, ...]]:
        return dict(self._entries)

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def n_perturbations(self) -> int:
        """Minimum length of the perturbation list this topology needs."""
        used = [idx for indices in self._entries.values() for idx in indices]
        return max(used) + 1 if used else 0

    def validate(self, n_perturbations: int) -> None:
        """
        Check that every referenced perturbation index is available.

        Raises
        ------
        InvalidTopology
            If an index is outside range(n_perturbations)
        """
        for key, indices in self._entries.items():
            for idx in indices:
                if idx >= n_perturbations:
                    raise InvalidTopology(
                        f"Block {key} references perturbation {idx}, "
                        f"but only {n_perturbations} were supplied"
                    )

    def paths(self, start: int = 0, end: Optional[int] = None) -> Iterator[List[BlockIndex]]:
        """
        Enumerate block paths start = i_0 < i_1 < ... < i_p = end.

        Each path is a list of populated block positions; together the paths
        decompose exp(M)[start, end] into ordered simplex integrals.
        """
        if end is None:
            end = self.target

        successors: Dict[int, List[int]] = {}
        for i, j in self._entries:
            successors.setdefault(i, []).append(j)

        def walk(node, path):
            if node == end:
                yield list(path)
                return
            for nxt in successors.get(node, []):
                if nxt <= end:
                    path.append((node, nxt))
                    yield from walk(nxt, path)
                    path.pop()

        if start == end:
            return
        yield from walk(start, [])

    def __eq__(self, other):
        if not isinstance(other, BlockTopology):
            return NotImplemented
        return self._n_blocks == other._n_blocks and self._entries == other._entries

    def __hash__(self):
        return hash((self._n_blocks, tuple(self._entries.items())))

    def __repr__(self):
        label = f"{self._name!r}, " if self._name else ""
        return f"BlockTopology({label}n_blocks={self._n_blocks}, entries={self._entries})"


# =============================================================================
# Named topologies
# =============================================================================

def first_order_topology() -> BlockTopology:
    """[[H, V], [0, H]]: block (0, 1) gives int_0^1 e^{(1-s)H} V e^{sH} ds."""
    return BlockTopology(2, {(0, 1): 0}, name='first-order')


def symmetric_second_order_topology() -> BlockTopology:
    """Higham form: block (0, 3) is D^2 exp(H)[E1, E2]."""
    return BlockTopology(
        4,
        {(0, 1): 0, (0, 2): 1, (1, 3): 1, (2, 3): 0},
        name='symmetric-second-order',
    )


def causal_second_order_topology() -> BlockTopology:
    """Najfeld-Havel form: block (0, 2) is the single ordering E1 then E2."""
    return BlockTopology(3, {(0, 1): 0, (1, 2): 1, (0, 2): None},
                         name='causal-second-order')


def _causal_entries(k: int) -> Dict[BlockIndex, Tuple[int, ...]]:
    return {(i, i + 1): (i,) for i in range(k)}


def _symmetric_entries(k: int) -> Dict[BlockIndex, Tuple[int, ...]]:
    # T_k = [[T_{k-1}, E_k (x) I], [0, T_{k-1}]] on 2^k blocks
    if k == 0:
        return {}
    previous = _symmetric_entries(k - 1)
    half = 2 ** (k - 1)
    entries = dict(previous)
    for (i, j), indices in previous.items():
        entries[(i + half, j + half)] = indices
    for i in range(half):
        entries[(i, i + half)] = (k - 1,)
    return entries


def kth_order_topology(k: int, ordering: str = 'causal') -> BlockTopology:
    """
    General k-th order topology for perturbations E_1, ..., E_k.

    Parameters
    ----------
    k : int
        Order (number of perturbation insertions), at least 1
    ordering : str
        'causal' for the single ordering E_1, ..., E_k (k+1 blocks), or
        'symmetric' for the sum over all k! orderings (2^k blocks)

    Returns
    -------
    BlockTopology
        For k = 1 and k = 2 this equals the corresponding named topology.
    """
    if k < 1:
        raise InvalidTopology(f"Order must be at least 1, got {k}")
    if ordering == 'causal':
        return BlockTopology(k + 1, _causal_entries(k), name=f'causal-order-{k}')
    if ordering == 'symmetric':
        return BlockTopology(2 ** k, _symmetric_entries(k), name=f'symmetric-order-{k}')
    raise InvalidTopology(f"Unknown ordering '{ordering}'. Available: {list(ORDERINGS)}")


NAMED_TOPOLOGIES = {
    'first-order': first_order_topology,
    'symmetric-second-order': symmetric_second_order_topology,
    'causal-second-order': causal_second_order_topology,
}


def get_topology(topology) -> BlockTopology:
    """
    Resolve a topology from a name, a mapping, or an existing BlockTopology.

    Raises
    ------
    InvalidTopology
        If the name is unknown or the mapping is malformed
    """
    if isinstance(topology, BlockTopology):
        return topology
    if isinstance(topology, str):
        factory = NAMED_TOPOLOGIES.get(topology)
        if factory is None:
            raise InvalidTopology(
                f"Unknown topology '{topology}'. Available: {sorted(NAMED_TOPOLOGIES)}"
            )
        return factory()
    if isinstance(topology, Mapping):
        return BlockTopology.from_mapping(topology)
    raise InvalidTopology(f"Cannot build a topology from {type(topology).__name__}")


def is_symmetric_order(topology: BlockTopology) -> bool:
    """True if topology is the full symmetrization over its perturbations,
    i.e. its corner block is a mixed Fréchet derivative of exp."""
    k = topology.n_perturbations
    if k < 1 or topology.n_blocks != 2 ** k:
        return False
    return topology.entries == _symmetric_entries(k)
