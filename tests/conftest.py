"""
Shared fixtures and utilities for the quantum test suite

This module provides common test fixtures, utilities, and configuration
that are shared across all test modules.
"""

import logging
import sys
from pathlib import Path

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from quantum import Quantum, QuantumConfig, ScriptedRandomSource

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)


# ============= Random Sources =============

@pytest.fixture
def scripted():
    """Factory for scripted random sources"""
    def _create(*values, cycle=False):
        return ScriptedRandomSource(values, cycle=cycle)
    return _create


# ============= Prepared Handles =============

@pytest.fixture
def debug_config():
    """Configuration running every invariant check after each mutation"""
    return QuantumConfig(seed=1234, validation_level='debug')


@pytest.fixture
def text_quantum(debug_config):
    """Text handle superposed on "bcd", "cde" and "def" in turn

    Resulting tree (children in creation order):
        abc -> [bcd -> [cde -> [def], def], cde -> [def], def]
    """
    quantum = Quantum("abc", config=debug_config)
    quantum.superpose("bcd")
    quantum.superpose("cde")
    quantum.superpose("def")
    return quantum


@pytest.fixture
def number_quantum(debug_config):
    """Number handle superposed on 1, 2 and 1 again"""
    quantum = Quantum(0, config=debug_config)
    quantum.superpose(1)
    quantum.superpose(2)
    quantum.superpose(1)
    return quantum
