"""EventArena: index-addressed storage for quantum event trees

Nodes are stored in parallel arrays instead of individually linked objects.
A node's children are owned by it (an ordered list of indices), while the
parent link is a plain index and never keeps anything alive. Pruned subtrees
are released slot by slot and their generation counters are bumped so that
stale handles can be told apart from a reused slot.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple
from collections import deque
import logging

import numpy as np

logger = logging.getLogger(__name__)

NO_NODE = -1


class ArenaFullError(MemoryError):
    """Raised when the configured node limit would be exceeded"""


@dataclass
class ArenaConfig:
    """Configuration for arena storage

    Attributes:
        initial_capacity: Number of slots allocated up front
        growth_factor: Capacity multiplier applied when the arena is full
        max_nodes: Maximum number of live nodes (0 means no limit)
        reuse_released_slots: Whether pruned slots are handed out again
    """
    initial_capacity: int = 64
    growth_factor: float = 2.0
    max_nodes: int = 0
    reuse_released_slots: bool = True

    def __post_init__(self):
        if self.initial_capacity <= 0:
            raise ValueError(f"initial_capacity must be positive, got {self.initial_capacity}")
        if self.growth_factor <= 1.0:
            raise ValueError(f"growth_factor must be greater than 1, got {self.growth_factor}")
        if self.max_nodes < 0:
            raise ValueError(f"max_nodes must be non-negative, got {self.max_nodes}")


class EventArena:
    """Arena holding every node of one quantum event tree

    Index 0 is not special; the root index is tracked explicitly.
    """

    def __init__(self, config: Optional[ArenaConfig] = None):
        self.config = config or ArenaConfig()
        capacity = self.config.initial_capacity

        # Fixed-width per-node fields
        self.parent_indices = np.full(capacity, NO_NODE, dtype=np.int64)
        self.successor_indices = np.full(capacity, NO_NODE, dtype=np.int64)
        self.observed = np.zeros(capacity, dtype=bool)
        self.alive = np.zeros(capacity, dtype=bool)
        self.generations = np.zeros(capacity, dtype=np.int64)

        # Variable-width per-node fields
        self.states: List[Any] = [None] * capacity
        self.children: List[List[int]] = [[] for _ in range(capacity)]

        self.root_idx = NO_NODE
        self.num_slots = 0  # high-water mark
        self.num_nodes = 0  # live nodes
        self._free_slots: List[int] = []

        self.stats = {
            'allocations': 0,
            'releases': 0,
            'reallocations': 0,
        }

    @property
    def capacity(self) -> int:
        return self.parent_indices.shape[0]

    # Allocation

    def add_root(self, state: Any) -> int:
        """Add the observed root node and return its index"""
        if self.root_idx != NO_NODE:
            raise ValueError("Root already exists")

        idx = self._allocate(state, NO_NODE)
        self.observed[idx] = True
        self.root_idx = idx
        return idx

    def add_child(self, parent_idx: int, state: Any) -> int:
        """Append a new unobserved child to a node's ordered children"""
        self._check_alive(parent_idx)
        idx = self._allocate(state, parent_idx)
        self.children[parent_idx].append(idx)
        return idx

    def ensure_room(self, count: int):
        """Raise ArenaFullError unless count more nodes fit under max_nodes"""
        if self.config.max_nodes and self.num_nodes + count > self.config.max_nodes:
            raise ArenaFullError(
                f"Arena full: {self.num_nodes} of {self.config.max_nodes} nodes, "
                f"{count} more requested")

    def _allocate(self, state: Any, parent_idx: int) -> int:
        self.ensure_room(1)

        if self._free_slots and self.config.reuse_released_slots:
            idx = self._free_slots.pop()
        else:
            if self.num_slots >= self.capacity:
                self._grow(self.num_slots + 1)
            idx = self.num_slots
            self.num_slots += 1

        self.states[idx] = state
        self.children[idx] = []
        self.parent_indices[idx] = parent_idx
        self.successor_indices[idx] = NO_NODE
        self.observed[idx] = False
        self.alive[idx] = True

        self.num_nodes += 1
        self.stats['allocations'] += 1
        return idx

    def _grow(self, min_size: int):
        """Resize storage to hold at least min_size slots"""
        old_size = self.capacity
        new_size = max(min_size, int(old_size * self.config.growth_factor))
        extra = new_size - old_size

        self.parent_indices = np.concatenate(
            [self.parent_indices, np.full(extra, NO_NODE, dtype=np.int64)])
        self.successor_indices = np.concatenate(
            [self.successor_indices, np.full(extra, NO_NODE, dtype=np.int64)])
        self.observed = np.concatenate([self.observed, np.zeros(extra, dtype=bool)])
        self.alive = np.concatenate([self.alive, np.zeros(extra, dtype=bool)])
        self.generations = np.concatenate([self.generations, np.zeros(extra, dtype=np.int64)])
        self.states.extend([None] * extra)
        self.children.extend([] for _ in range(extra))

        self.stats['reallocations'] += 1
        logger.debug(f"Resized arena from {old_size} to {new_size} slots")

    # Access

    def is_alive(self, idx: int) -> bool:
        return 0 <= idx < self.num_slots and bool(self.alive[idx])

    def _check_alive(self, idx: int):
        if not self.is_alive(idx):
            raise LookupError(f"Arena slot {idx} holds no live node")

    def is_branchable(self, idx: int) -> bool:
        return self.successor_indices[idx] == NO_NODE

    def get_children(self, idx: int) -> Tuple[int, ...]:
        return tuple(self.children[idx])

    def iter_subtree(self, idx: int) -> Iterator[int]:
        """Yield the descendants of idx in pre-order, children in creation order

        Observed successors are not part of a subtree; only the unobserved
        children list is followed.
        """
        stack = list(reversed(self.children[idx]))
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(self.children[current]))

    # Pruning

    def resolve(self, idx: int, chosen_idx: int = NO_NODE) -> int:
        """Keep at most one child of idx and release all others

        With a chosen child, it becomes the observed successor of idx. Without
        one, every child subtree is released. Returns the number of released
        nodes.
        """
        self._check_alive(idx)
        if not self.is_branchable(idx):
            raise ValueError(f"Node {idx} already has an observed successor")

        released = 0
        for child_idx in list(self.children[idx]):
            if child_idx != chosen_idx:
                released += self.release_subtree(child_idx)
        self.children[idx] = []

        if chosen_idx != NO_NODE:
            self.observed[chosen_idx] = True
            self.successor_indices[idx] = chosen_idx

        logger.debug(f"Resolved node {idx}: kept {chosen_idx}, released {released} nodes")
        return released

    def release_subtree(self, idx: int) -> int:
        """Release a node and all of its descendants; returns the count"""
        self._check_alive(idx)
        parent_idx = int(self.parent_indices[idx])
        if parent_idx != NO_NODE and idx in self.children[parent_idx]:
            self.children[parent_idx].remove(idx)

        to_release = [idx]
        to_release.extend(self.iter_subtree(idx))

        for slot in to_release:
            self.states[slot] = None
            self.children[slot] = []
            self.parent_indices[slot] = NO_NODE
            self.successor_indices[slot] = NO_NODE
            self.observed[slot] = False
            self.alive[slot] = False
            self.generations[slot] += 1
            self._free_slots.append(slot)

        if idx == self.root_idx:
            self.root_idx = NO_NODE

        self.num_nodes -= len(to_release)
        self.stats['releases'] += len(to_release)
        return len(to_release)

    # Copying

    def copy(self) -> Tuple['EventArena', Dict[int, int]]:
        """Compacting copy of every live node reachable from the root

        The copy is laid out breadth-first with the root at index 0. Children
        keep their creation order and observed successors are remapped.

        Returns:
            Tuple of (new_arena, old_to_new index mapping)
        """
        new_arena = EventArena(ArenaConfig(
            initial_capacity=max(self.num_nodes, 1),
            growth_factor=self.config.growth_factor,
            max_nodes=self.config.max_nodes,
            reuse_released_slots=self.config.reuse_released_slots,
        ))
        if self.root_idx == NO_NODE:
            return new_arena, {}

        # Phase 1: breadth-first order over children and observed successors
        order = [self.root_idx]
        queue = deque([self.root_idx])
        while queue:
            current = queue.popleft()
            successor = int(self.successor_indices[current])
            linked = [successor] if successor != NO_NODE else []
            linked.extend(self.children[current])
            for next_idx in linked:
                order.append(next_idx)
                queue.append(next_idx)

        old_to_new = {old: new for new, old in enumerate(order)}
        old = np.asarray(order, dtype=np.int64)
        count = len(order)

        # Phase 2: remap fixed-width fields in one pass
        remap = np.full(self.num_slots + 1, NO_NODE, dtype=np.int64)
        remap[old] = np.arange(count, dtype=np.int64)
        parents = self.parent_indices[old]
        successors = self.successor_indices[old]
        new_arena.parent_indices[:count] = np.where(parents == NO_NODE, NO_NODE, remap[parents])
        new_arena.successor_indices[:count] = np.where(successors == NO_NODE, NO_NODE, remap[successors])
        new_arena.observed[:count] = self.observed[old]
        new_arena.alive[:count] = True

        # Phase 3: variable-width fields
        for new_idx, old_idx in enumerate(order):
            new_arena.states[new_idx] = self.states[old_idx]
            new_arena.children[new_idx] = [old_to_new[c] for c in self.children[old_idx]]

        new_arena.root_idx = 0
        new_arena.num_slots = count
        new_arena.num_nodes = count
        new_arena.stats['allocations'] = count
        return new_arena, old_to_new

    # Statistics

    def depth(self, idx: int) -> int:
        depth = 0
        current = int(self.parent_indices[idx])
        while current != NO_NODE:
            depth += 1
            current = int(self.parent_indices[current])
        return depth

    def get_statistics(self) -> Dict[str, Any]:
        """Get arena statistics"""
        live = np.flatnonzero(self.alive[:self.num_slots])
        branching_factors = [len(self.children[i]) for i in live if self.children[i]]

        return {
            'total_nodes': self.num_nodes,
            'observed_nodes': int(np.count_nonzero(self.observed[:self.num_slots])),
            'slots_used': self.num_slots,
            'capacity': self.capacity,
            'free_slots': len(self._free_slots),
            'depth': max((self.depth(int(i)) for i in live), default=0),
            'branching_factor': float(np.mean(branching_factors)) if branching_factors else 0.0,
            **self.stats,
        }
