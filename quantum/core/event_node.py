"""EventNode: one possible (or observed) state transition

This module provides the EventNode class, a lightweight handle onto a slot of
an EventArena. Each node represents a system arriving at a state. Observed
nodes form a single path from the root; unobserved nodes hang off the latest
observed node as a tree of speculative branches.

Probabilities are dyadic: the first branch created on a node receives half of
that node's remaining mass, the second half of what is left, and so on. The
node keeps whatever is never handed to a branch. Values are exact while the
accumulated halving exponent stays within the double mantissa
(EXACT_HALVING_LIMIT); past it they are the nearest representable
approximation.
"""

from typing import Any, Dict, List, Optional
import logging

from .event_arena import EventArena, NO_NODE
from .random_source import RandomSource

logger = logging.getLogger(__name__)

EXACT_HALVING_LIMIT = 52


class StaleEventError(LookupError):
    """Raised when a node handle refers to a pruned event"""


class EventNode:
    """A node in a quantum event tree

    Attributes:
        arena: Storage holding the node
        index: Slot of the node in the arena
        generation: Slot generation at the time the handle was created
    """

    __slots__ = ('arena', 'index', 'generation')

    def __init__(self, arena: EventArena, index: int):
        self.arena = arena
        self.index = index
        self.generation = int(arena.generations[index])

    def _wrap(self, index: int) -> 'EventNode':
        return EventNode(self.arena, index)

    def _live_index(self) -> int:
        arena = self.arena
        if not arena.is_alive(self.index) or arena.generations[self.index] != self.generation:
            raise StaleEventError(f"Event at slot {self.index} was pruned")
        return self.index

    @property
    def is_valid(self) -> bool:
        """Whether the event still exists in its arena"""
        return (self.arena.is_alive(self.index)
                and self.arena.generations[self.index] == self.generation)

    # Inspecting the event

    @property
    def state(self) -> Any:
        return self.arena.states[self._live_index()]

    @property
    def is_observed(self) -> bool:
        return bool(self.arena.observed[self._live_index()])

    @property
    def is_branchable(self) -> bool:
        """True while the event has no observed successor"""
        return self.arena.is_branchable(self._live_index())

    @property
    def is_earliest_observed(self) -> bool:
        return self.is_observed and self.parent is None

    @property
    def is_latest_observed(self) -> bool:
        return self.is_observed and self.is_branchable

    @property
    def is_final_unobserved(self) -> bool:
        return not self.is_observed and not self.arena.children[self.index]

    @property
    def parent(self) -> Optional['EventNode']:
        parent_idx = int(self.arena.parent_indices[self._live_index()])
        return None if parent_idx == NO_NODE else self._wrap(parent_idx)

    @property
    def observed_successor(self) -> Optional['EventNode']:
        successor_idx = int(self.arena.successor_indices[self._live_index()])
        return None if successor_idx == NO_NODE else self._wrap(successor_idx)

    @property
    def children(self) -> List['EventNode']:
        """Immediately succeeding unobserved events, in creation order"""
        return [self._wrap(i) for i in self.arena.children[self._live_index()]]

    # Inspecting the system

    @property
    def earliest_observed(self) -> 'EventNode':
        arena = self.arena
        current = self._live_index()
        while arena.parent_indices[current] != NO_NODE:
            current = int(arena.parent_indices[current])
        return self._wrap(current)

    @property
    def latest_observed(self) -> 'EventNode':
        arena = self.arena
        current = self._live_index()
        while not arena.observed[current]:
            current = int(arena.parent_indices[current])
        while arena.successor_indices[current] != NO_NODE:
            current = int(arena.successor_indices[current])
        return self._wrap(current)

    @property
    def preceding_observed_events(self) -> List['EventNode']:
        """Observed events before this one, earliest first"""
        events = []
        parent = self.parent
        while parent is not None:
            if parent.is_observed:
                events.append(parent)
            parent = parent.parent
        events.reverse()
        return events

    @property
    def succeeding_observed_events(self) -> List['EventNode']:
        """Observed events after this one, earliest first"""
        events = []
        successor = self.observed_successor
        while successor is not None:
            events.append(successor)
            successor = successor.observed_successor
        return events

    @property
    def preceding_unobserved_events(self) -> List['EventNode']:
        """Unobserved ancestors of this event, earliest first"""
        events = []
        parent = self.parent
        while parent is not None and not parent.is_observed:
            events.append(parent)
            parent = parent.parent
        events.reverse()
        return events

    @property
    def succeeding_unobserved_events(self) -> List['EventNode']:
        """Every unobserved descendant in pre-order; empty once not branchable"""
        index = self._live_index()
        if not self.arena.is_branchable(index):
            return []
        return [self._wrap(i) for i in self.arena.iter_subtree(index)]

    @property
    def all_observed_events(self) -> List['EventNode']:
        earliest = self.earliest_observed
        return [earliest] + earliest.succeeding_observed_events

    @property
    def all_unobserved_events(self) -> List['EventNode']:
        return self.latest_observed.succeeding_unobserved_events

    @property
    def all_branchable_events(self) -> List['EventNode']:
        latest = self.latest_observed
        return [latest] + latest.succeeding_unobserved_events

    def _same_state(self, events: List['EventNode']) -> List['EventNode']:
        state = self.state
        return [event for event in events if event.state == state]

    @property
    def equi_statal_observed_events(self) -> List['EventNode']:
        return self._same_state(self.all_observed_events)

    @property
    def equi_statal_succeeding_observed_events(self) -> List['EventNode']:
        return self._same_state(self.succeeding_observed_events)

    @property
    def equi_statal_branchable_events(self) -> List['EventNode']:
        return self._same_state(self.all_branchable_events)

    @property
    def equi_statal_unobserved_events(self) -> List['EventNode']:
        return self._same_state(self.all_unobserved_events)

    @property
    def equi_statal_succeeding_unobserved_events(self) -> List['EventNode']:
        return self._same_state(self.succeeding_unobserved_events)

    # Branching

    def branch(self, to_state: Any) -> Optional['EventNode']:
        """Add a speculative transition from this event to to_state

        Self-transitions and branches on non-branchable events are ignored.

        Returns:
            The new child event, or None if nothing was added
        """
        index = self._live_index()
        if not self.arena.is_branchable(index) or self.arena.states[index] == to_state:
            return None
        child_idx = self.arena.add_child(index, to_state)
        logger.debug(f"Branched event {index} to {to_state!r} as event {child_idx}")
        return self._wrap(child_idx)

    def branch_all(self, to_state: Any, include_self: bool = False) -> int:
        """Branch every unobserved descendant (and optionally this event) to to_state

        Candidates are collected before any branch is added, so branches
        created here are not branched again.

        Returns:
            Number of branches added
        """
        candidates = self.succeeding_unobserved_events
        if include_self:
            candidates.append(self)
        return self._branch_each(candidates, to_state)

    def branch_matching(self, from_state: Any, to_state: Any) -> int:
        """Branch every branchable event in from_state to to_state

        The branchable events are the latest observed event followed by its
        unobserved descendants in pre-order. If none of them is in from_state
        this is a no-op.

        Returns:
            Number of branches added
        """
        branchable = self.all_branchable_events
        first_match = next((event for event in branchable if event.state == from_state), None)
        if first_match is None:
            return 0
        return self._branch_each(first_match._same_state(branchable), to_state)

    def _branch_each(self, events: List['EventNode'], to_state: Any) -> int:
        """Branch all events or, if the arena cannot hold every branch, none"""
        targets = [event for event in events
                   if event.is_branchable and event.state != to_state]
        self.arena.ensure_room(len(targets))
        for event in targets:
            event.branch(to_state)
        return len(targets)

    # Observing

    def select(self, random_source: RandomSource) -> Optional['EventNode']:
        """Observe which of the immediately succeeding events happened

        The i-th child (0-indexed) wins with probability 0.5 ** (i + 1); the
        remaining mass means no transition happened. All children that were
        not selected are discarded, so this can happen only once.

        Args:
            random_source: Source of the uniform draw

        Returns:
            The selected, now observed, child event or None

        Raises:
            ValueError: If the event is unobserved or already has an observed
                successor
        """
        index = self._live_index()
        arena = self.arena
        if not arena.observed[index]:
            raise ValueError("Cannot select from an unobserved event")
        if not arena.is_branchable(index):
            raise ValueError("Cannot select from an event that already has an observed successor")

        coin_toss = random_source.uniform()
        weight = 0.5
        chosen_idx = NO_NODE
        for child_idx in arena.children[index]:
            coin_toss -= weight
            if coin_toss < 0:
                chosen_idx = child_idx
                break
            weight /= 2

        arena.resolve(index, chosen_idx)
        return None if chosen_idx == NO_NODE else self._wrap(chosen_idx)

    def probability(self) -> Dict[Any, float]:
        """Probability of each state being the outcome of a measurement

        Observed events that are no longer branchable defer to the latest
        observed event, since probability mass only exists from there on.

        Returns:
            Dictionary mapping states to probabilities summing to 1
        """
        index = self._live_index()
        arena = self.arena
        if not arena.is_branchable(index):
            return self.latest_observed.probability()

        distribution: Dict[Any, float] = {}
        max_exponent = 0
        # (slot, share of probability mass, halving exponent of that share)
        stack = [(index, 1.0, 0)]
        while stack:
            current, share, exponent = stack.pop()
            pending = []
            for child_idx in arena.children[current]:
                share /= 2
                exponent += 1
                pending.append((child_idx, share, exponent))
            stack.extend(reversed(pending))

            state = arena.states[current]
            distribution[state] = distribution.get(state, 0.0) + share
            max_exponent = max(max_exponent, exponent)

        if max_exponent > EXACT_HALVING_LIMIT:
            logger.debug(f"Probabilities from event {index} need 2**-{max_exponent}; "
                         f"values are approximate beyond 2**-{EXACT_HALVING_LIMIT}")
        return distribution

    def max_halving_exponent(self) -> int:
        """Deepest halving exponent reached by probability()"""
        index = self.latest_observed.index
        children = self.arena.children
        deepest = 0
        stack = [(index, 0)]
        while stack:
            current, exponent = stack.pop()
            for position, child_idx in enumerate(children[current], start=1):
                stack.append((child_idx, exponent + position))
            deepest = max(deepest, exponent + len(children[current]))
        return deepest

    # Identity

    def __eq__(self, other) -> bool:
        if not isinstance(other, EventNode):
            return NotImplemented
        return (self.arena is other.arena and self.index == other.index
                and self.generation == other.generation)

    def __hash__(self) -> int:
        return hash((id(self.arena), self.index, self.generation))

    def __repr__(self) -> str:
        """String representation for debugging"""
        if not self.is_valid:
            return f"EventNode(index={self.index}, pruned)"
        return (
            f"EventNode(state={self.state!r}, "
            f"observed={self.is_observed}, "
            f"branchable={self.is_branchable}, "
            f"children={len(self.arena.children[self.index])})"
        )
