"""Quantum configuration classes

Separated from the Quantum handle so that configuration can be loaded,
validated and shared without building any tree.
"""

import logging
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, Optional

from .event_arena import ArenaConfig

logger = logging.getLogger(__name__)

VALIDATION_LEVELS = ('disabled', 'basic', 'standard', 'strict', 'debug')


@dataclass
class QuantumConfig:
    """Configuration for a Quantum handle"""

    # Randomness
    seed: Optional[int] = None  # None draws fresh entropy

    # Arena storage
    initial_capacity: int = 64
    growth_factor: float = 2.0
    max_nodes: int = 0  # 0 means no limit
    reuse_released_slots: bool = True

    # Runtime checks after every mutation
    validation_level: str = 'disabled'

    def __post_init__(self):
        """Validate configuration"""
        self.validation_level = self.validation_level.lower()
        if self.validation_level not in VALIDATION_LEVELS:
            raise ValueError(f"Invalid validation_level: {self.validation_level}")

        # Arena parameters are checked by ArenaConfig
        self.arena_config()

    def arena_config(self) -> ArenaConfig:
        return ArenaConfig(
            initial_capacity=self.initial_capacity,
            growth_factor=self.growth_factor,
            max_nodes=self.max_nodes,
            reuse_released_slots=self.reuse_released_slots,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QuantumConfig':
        """Create from dictionary, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            if key in known:
                kwargs[key] = value
            else:
                logger.warning(f"Unknown config parameter: {key}")
        return cls(**kwargs)
