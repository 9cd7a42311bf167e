"""Configuration and validation utilities"""

from .validation import (
    ValidationLevel, ValidationIssue, ValidationResult,
    QuantumValidator, get_validator, validate_quantum,
)
from .config_system import LogConfig, QuantumFullConfig, convert_field_value, setup_logging

__all__ = [
    "ValidationLevel",
    "ValidationIssue",
    "ValidationResult",
    "QuantumValidator",
    "get_validator",
    "validate_quantum",
    "LogConfig",
    "QuantumFullConfig",
    "convert_field_value",
    "setup_logging",
]
