"""Core event tree components"""

from .event_arena import EventArena, ArenaConfig, ArenaFullError, NO_NODE
from .event_node import EventNode, StaleEventError, EXACT_HALVING_LIMIT
from .random_source import RandomSource, NumpyRandomSource, ScriptedRandomSource, CallableRandomSource
from .quantum_config import QuantumConfig
from .quantum import Quantum

__all__ = [
    "EventArena",
    "ArenaConfig",
    "ArenaFullError",
    "NO_NODE",
    "EventNode",
    "StaleEventError",
    "EXACT_HALVING_LIMIT",
    "RandomSource",
    "NumpyRandomSource",
    "ScriptedRandomSource",
    "CallableRandomSource",
    "QuantumConfig",
    "Quantum",
]
