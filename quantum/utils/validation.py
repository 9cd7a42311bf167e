"""Runtime validation of quantum event trees

This module provides checks for the structural and probabilistic invariants
of an event tree, so that corrupted trees are reported as soon as a mutation
produces them rather than at measurement time.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

import numpy as np

from ..core.event_arena import NO_NODE
from ..core.event_node import EXACT_HALVING_LIMIT

logger = logging.getLogger(__name__)


class ValidationLevel(Enum):
    """Validation strictness levels"""
    DISABLED = 0      # No validation
    BASIC = 1         # Probability distribution only
    STANDARD = 2      # Plus precision and growth warnings
    STRICT = 3        # Plus tree structure
    DEBUG = 4         # Plus full reachability scan


class ValidationIssue(Enum):
    """Types of validation issues"""
    # Probability distribution
    PROBABILITY_SUM = "probability_sum"
    NON_POSITIVE_PROBABILITY = "non_positive_probability"
    NAN_VALUES = "nan_values"

    # Precision and growth
    PRECISION_LIMIT = "precision_limit"
    EXCESSIVE_TREE_GROWTH = "excessive_tree_growth"

    # Tree structure
    SELF_TRANSITION = "self_transition"
    CIRCULAR_REFERENCES = "circular_references"
    BRANCHED_OBSERVED = "branched_observed"
    OBSERVED_OFF_PATH = "observed_off_path"
    ORPHANED_NODES = "orphaned_nodes"


@dataclass
class ValidationResult:
    """Result of validation check"""
    level: ValidationLevel
    issues: List[ValidationIssue]
    details: Dict[str, Any]
    passed: bool

    def __str__(self):
        if self.passed:
            return f"Validation PASSED (level: {self.level.name})"
        else:
            issue_names = [issue.value for issue in self.issues]
            return f"Validation FAILED (level: {self.level.name}, issues: {issue_names})"


class QuantumValidator:
    """Runtime validator for quantum event trees"""

    def __init__(self, level: ValidationLevel = ValidationLevel.STANDARD):
        self.level = level
        self.validation_count = 0
        self.issue_history = []

        self.thresholds = {
            'probability_tolerance': 1e-9,
            'max_tree_nodes': 100000,
        }

    def validate(self, quantum, check_interval: int = 1) -> ValidationResult:
        """Validate the event tree behind a Quantum handle

        Args:
            quantum: Quantum instance to validate
            check_interval: Only validate every N calls

        Returns:
            ValidationResult with findings
        """
        self.validation_count += 1

        if self.level == ValidationLevel.DISABLED:
            return ValidationResult(self.level, [], {}, True)

        if self.validation_count % check_interval != 0 and self.level != ValidationLevel.DEBUG:
            return ValidationResult(self.level, [], {}, True)

        issues = []
        details = {}

        if self.level.value >= ValidationLevel.BASIC.value:
            issues.extend(self._check_distribution(quantum, details))

        if self.level.value >= ValidationLevel.STANDARD.value:
            issues.extend(self._check_growth(quantum, details))

        if self.level.value >= ValidationLevel.STRICT.value:
            issues.extend(self._check_tree_structure(quantum, details))

        if self.level.value >= ValidationLevel.DEBUG.value:
            issues.extend(self._check_reachability(quantum, details))

        passed = len(issues) == 0
        result = ValidationResult(self.level, issues, details, passed)

        if not passed:
            details['frontier_state'] = quantum.final_observed_event.state
            self.issue_history.append(result)
            self._log_issues(result)

        return result

    def _check_distribution(self, quantum, details: Dict) -> List[ValidationIssue]:
        """Check that outcome probabilities form a distribution"""
        issues = []
        probabilities = np.fromiter(quantum.outcome_probabilities().values(), dtype=float)

        if np.any(np.isnan(probabilities)):
            issues.append(ValidationIssue.NAN_VALUES)
            return issues

        total = float(probabilities.sum())
        if not math.isclose(total, 1.0, abs_tol=self.thresholds['probability_tolerance']):
            issues.append(ValidationIssue.PROBABILITY_SUM)
            details[ValidationIssue.PROBABILITY_SUM.value] = total

        if np.any(probabilities <= 0):
            issues.append(ValidationIssue.NON_POSITIVE_PROBABILITY)
            details[ValidationIssue.NON_POSITIVE_PROBABILITY.value] = int(np.sum(probabilities <= 0))

        return issues

    def _check_growth(self, quantum, details: Dict) -> List[ValidationIssue]:
        """Check precision and size limits"""
        issues = []

        exponent = quantum.final_observed_event.max_halving_exponent()
        if exponent > EXACT_HALVING_LIMIT:
            issues.append(ValidationIssue.PRECISION_LIMIT)
            details[ValidationIssue.PRECISION_LIMIT.value] = exponent

        if quantum.arena.num_nodes > self.thresholds['max_tree_nodes']:
            issues.append(ValidationIssue.EXCESSIVE_TREE_GROWTH)
            details[ValidationIssue.EXCESSIVE_TREE_GROWTH.value] = quantum.arena.num_nodes

        return issues

    def _check_tree_structure(self, quantum, details: Dict) -> List[ValidationIssue]:
        """Check edges, parent links and the observed path"""
        issues = []
        arena = quantum.arena
        live = [int(i) for i in np.flatnonzero(arena.alive[:arena.num_slots])]

        # Self-transitions and self-references
        for idx in live:
            linked = list(arena.children[idx])
            successor = int(arena.successor_indices[idx])
            if successor != NO_NODE:
                linked.append(successor)
            if idx in linked or arena.parent_indices[idx] == idx:
                issues.append(ValidationIssue.CIRCULAR_REFERENCES)
                details[ValidationIssue.CIRCULAR_REFERENCES.value] = idx
                break
            if any(arena.states[child] == arena.states[idx] for child in linked):
                issues.append(ValidationIssue.SELF_TRANSITION)
                details[ValidationIssue.SELF_TRANSITION.value] = idx
                break

        # Observed nodes with a successor own no speculative children
        branched = [idx for idx in live
                    if arena.successor_indices[idx] != NO_NODE and arena.children[idx]]
        if branched:
            issues.append(ValidationIssue.BRANCHED_OBSERVED)
            details[ValidationIssue.BRANCHED_OBSERVED.value] = branched

        # Observed nodes form exactly the path from the root to the frontier
        path = []
        current = arena.root_idx
        while current != NO_NODE and len(path) <= arena.num_slots:
            path.append(current)
            current = int(arena.successor_indices[current])
        observed = {idx for idx in live if arena.observed[idx]}
        if observed != set(path) or path[-1] != quantum.final_observed_event.index:
            issues.append(ValidationIssue.OBSERVED_OFF_PATH)
            details[ValidationIssue.OBSERVED_OFF_PATH.value] = sorted(observed.symmetric_difference(path))

        return issues

    def _check_reachability(self, quantum, details: Dict) -> List[ValidationIssue]:
        """Check that every live node is reachable from the root"""
        issues = []
        arena = quantum.arena

        reachable = set()
        to_visit = [arena.root_idx]
        while to_visit:
            node = to_visit.pop()
            if node in reachable:
                continue
            reachable.add(node)
            to_visit.extend(arena.children[node])
            successor = int(arena.successor_indices[node])
            if successor != NO_NODE:
                to_visit.append(successor)

        orphaned = [int(i) for i in np.flatnonzero(arena.alive[:arena.num_slots])
                    if int(i) not in reachable]
        if orphaned:
            issues.append(ValidationIssue.ORPHANED_NODES)
            details[ValidationIssue.ORPHANED_NODES.value] = orphaned

        return issues

    def _log_issues(self, result: ValidationResult):
        frontier = result.details.get('frontier_state')
        for issue in result.issues:
            logger.warning(
                f"Event tree at {frontier!r} failed '{issue.value}' check "
                f"({result.level.name}): {result.details.get(issue.value, 'no details')}"
            )

    def get_issue_summary(self) -> Dict[str, int]:
        """Count failed checks per issue across every recorded validation"""
        return dict(Counter(issue.value for result in self.issue_history
                            for issue in result.issues))

    def reset_history(self):
        self.issue_history.clear()
        self.validation_count = 0


# One shared validator per level
_validators: Dict[ValidationLevel, QuantumValidator] = {}


def get_validator(level: ValidationLevel = ValidationLevel.STANDARD) -> QuantumValidator:
    """Shared validator for a level, created on first use"""
    if level not in _validators:
        _validators[level] = QuantumValidator(level)
    return _validators[level]


def validate_quantum(quantum, level: ValidationLevel = ValidationLevel.STANDARD,
                     check_interval: int = 1) -> ValidationResult:
    """Validate a Quantum handle with the shared validator for level"""
    return get_validator(level).validate(quantum, check_interval)
