"""Quantum: a value whose history is unknown until observed

A Quantum handle tracks the latest observed event of an event tree. Until a
measurement is taken, every superposition adds speculative transitions; a
measurement collapses them, one weighted coin toss per observed step, into a
single definite path.
"""

from typing import Any, Dict, List, Optional
import logging

from .event_arena import EventArena
from .event_node import EventNode
from .quantum_config import QuantumConfig
from .random_source import NumpyRandomSource, RandomSource
from ..utils.validation import QuantumValidator, ValidationLevel

logger = logging.getLogger(__name__)

_NO_STATE = object()


class Quantum:
    """A quantum mechanical system whose state is unknown until observed

    Attributes:
        config: Handle configuration
        arena: Storage for every event of this handle
        random_source: Default source for measurements
        validator: Runtime invariant checks run after each mutation
    """

    def __init__(
        self,
        initial_state: Any,
        config: Optional[QuantumConfig] = None,
        random_source: Optional[RandomSource] = None
    ):
        """Initialize a new handle in a single observed state

        Args:
            initial_state: Hashable value the system starts in
            config: Handle configuration (defaults to QuantumConfig())
            random_source: Default source for measurements (defaults to a
                NumpyRandomSource seeded from config.seed)
        """
        self.config = config or QuantumConfig()
        self.arena = EventArena(self.config.arena_config())
        self._frontier_idx = self.arena.add_root(initial_state)
        self.random_source = random_source or NumpyRandomSource(self.config.seed)
        self.validator = QuantumValidator(ValidationLevel[self.config.validation_level.upper()])

    @classmethod
    def _from_arena(cls, arena: EventArena, frontier_idx: int, config: QuantumConfig,
                    random_source: RandomSource) -> 'Quantum':
        quantum = cls.__new__(cls)
        quantum.config = config
        quantum.arena = arena
        quantum._frontier_idx = frontier_idx
        quantum.random_source = random_source
        quantum.validator = QuantumValidator(ValidationLevel[config.validation_level.upper()])
        return quantum

    @property
    def final_observed_event(self) -> EventNode:
        """The latest observed event (the frontier)"""
        return EventNode(self.arena, self._frontier_idx)

    def outcome_probabilities(self) -> Dict[Any, float]:
        """Probability of each state being returned by the next measurement"""
        return self.final_observed_event.probability()

    def measurement(self, random_source: Optional[RandomSource] = None) -> Any:
        """Observe the system, collapsing all speculative transitions

        Args:
            random_source: Source for this measurement only (defaults to the
                handle's own source)

        Returns:
            The observed state
        """
        source = random_source or self.random_source
        frontier = self.final_observed_event
        steps = 0
        while frontier.is_branchable and self.arena.children[frontier.index]:
            selected = frontier.select(source)
            if selected is None:
                break
            # The frontier follows every selection
            frontier = selected
            self._frontier_idx = frontier.index
            steps += 1

        if steps:
            logger.debug(f"Measurement advanced {steps} events to state {frontier.state!r}")
        self._validate()
        return frontier.state

    def superpose(self, state: Any, next_state: Any = _NO_STATE) -> None:
        """Superpose the system on a state

        With one argument, every branchable event (the latest observed event
        and all unobserved events) gains a transition to state. With two,
        only branchable events in the first state gain a transition to
        next_state; see superpose_matching.
        """
        if next_state is not _NO_STATE:
            self.superpose_matching(state, next_state)
            return

        added = self.final_observed_event.branch_all(state, include_self=True)
        logger.debug(f"Superposed on {state!r}: {added} branches added")
        self._validate()

    def superpose_matching(self, possible_state: Any, next_state: Any) -> None:
        """Superpose branchable events in possible_state on next_state

        No-op if no branchable event is in possible_state.
        """
        added = self.final_observed_event.branch_matching(possible_state, next_state)
        logger.debug(f"Superposed {possible_state!r} on {next_state!r}: {added} branches added")
        self._validate()

    def superposed(self, state: Any) -> 'Quantum':
        """Return an independent copy superposed on state; self is unchanged"""
        new_quantum = self.copy()
        new_quantum.superpose(state)
        return new_quantum

    def copy(self) -> 'Quantum':
        """Independent copy sharing configuration and random source only"""
        arena, old_to_new = self.arena.copy()
        return Quantum._from_arena(arena, old_to_new[self._frontier_idx],
                                   self.config, self.random_source)

    def observed_history(self) -> List[Any]:
        """States of every observed event, earliest first"""
        return [event.state for event in self.final_observed_event.all_observed_events]

    def _validate(self):
        if self.validator.level != ValidationLevel.DISABLED:
            self.validator.validate(self)

    def __copy__(self) -> 'Quantum':
        return self.copy()

    def __repr__(self) -> str:
        return (
            f"Quantum(state={self.final_observed_event.state!r}, "
            f"unobserved={self.arena.num_nodes - len(self.observed_history())})"
        )
