"""
Quantum Events - values whose history is unknown until observed

This package models a value as a tree of speculative state transitions with
exact dyadic probabilities, collapsed to a single definite path by
measurement.
"""

__version__ = "0.1.0"
__author__ = "Quantum Events Team"

# Core components
from .core import (
    Quantum, QuantumConfig,
    EventNode, StaleEventError, EXACT_HALVING_LIMIT,
    EventArena, ArenaConfig, ArenaFullError,
    RandomSource, NumpyRandomSource, ScriptedRandomSource, CallableRandomSource,
)

# Utility components
from .utils import (
    ValidationLevel, ValidationResult, QuantumValidator, validate_quantum,
    LogConfig, QuantumFullConfig, setup_logging,
)

__all__ = [
    # Core
    "Quantum", "QuantumConfig",
    "EventNode", "StaleEventError", "EXACT_HALVING_LIMIT",
    "EventArena", "ArenaConfig", "ArenaFullError",
    "RandomSource", "NumpyRandomSource", "ScriptedRandomSource", "CallableRandomSource",

    # Utils
    "ValidationLevel", "ValidationResult", "QuantumValidator", "validate_quantum",
    "LogConfig", "QuantumFullConfig", "setup_logging",
]
