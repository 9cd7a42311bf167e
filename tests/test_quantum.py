"""Tests for the Quantum handle"""

import numpy as np
import pytest

from quantum import ArenaFullError, Quantum, QuantumConfig, NumpyRandomSource, ScriptedRandomSource


def assert_distribution(probabilities):
    assert sum(probabilities.values()) == pytest.approx(1.0)
    assert all(p > 0 for p in probabilities.values())


class TestSuperposition:
    """Superposition without measurement"""

    def test_initial_state_is_certain(self):
        quantum = Quantum("abc")
        assert quantum.outcome_probabilities() == {"abc": 1.0}
        assert quantum.observed_history() == ["abc"]

    def test_system_wide_superposition_text(self, text_quantum):
        assert text_quantum.outcome_probabilities() == {
            "abc": 0.125,
            "bcd": 0.125,
            "cde": 0.25,
            "def": 0.5,
        }

    def test_system_wide_superposition_numbers(self, number_quantum):
        assert number_quantum.outcome_probabilities() == {0: 0.125, 1: 0.625, 2: 0.25}

    def test_each_superposition_halves_prior_probabilities(self):
        quantum = Quantum("A")

        quantum.superpose("B")
        assert quantum.outcome_probabilities() == {"A": 0.5, "B": 0.5}

        quantum.superpose("C")
        assert quantum.outcome_probabilities() == {"A": 0.25, "B": 0.25, "C": 0.5}

    def test_state_specific_superposition_text(self):
        quantum = Quantum("abc")
        quantum.superpose("abc", "bcd")
        quantum.superpose("abc", "cde")
        quantum.superpose("abc", "def")
        quantum.superpose("abc", "def")
        quantum.superpose("efg", "abc")  # no branchable event in "efg"

        assert quantum.outcome_probabilities() == {
            "abc": 0.0625,
            "bcd": 0.5,
            "cde": 0.25,
            "def": 0.1875,
        }

    def test_state_specific_superposition_numbers(self):
        quantum = Quantum(0)
        quantum.superpose(1, 2)  # no branchable event in 1
        quantum.superpose(0, 1)
        quantum.superpose(1, 2)
        quantum.superpose(0, 3)
        quantum.superpose(3, 1)

        assert quantum.outcome_probabilities() == {0: 0.25, 1: 0.375, 2: 0.25, 3: 0.125}

    def test_state_specific_superposition_leaves_other_states_alone(self):
        quantum = Quantum("A")
        quantum.superpose("B")
        quantum.superpose("C")

        quantum.superpose_matching("A", "D")

        probabilities = quantum.outcome_probabilities()
        assert probabilities["B"] == 0.25
        assert probabilities["C"] == 0.5
        assert probabilities["A"] + probabilities["D"] == 0.25
        assert probabilities == {"A": 0.125, "B": 0.25, "C": 0.5, "D": 0.125}

    def test_superpose_on_current_state_is_noop(self):
        quantum = Quantum("abc")
        quantum.superpose("abc")
        quantum.superpose("abc", "abc")

        assert quantum.outcome_probabilities() == {"abc": 1.0}
        assert quantum.arena.num_nodes == 1

    def test_none_is_a_state(self):
        quantum = Quantum(None)
        quantum.superpose(1)
        assert quantum.outcome_probabilities() == {None: 0.5, 1: 0.5}

        quantum.superpose(None, 2)
        assert quantum.outcome_probabilities() == {None: 0.25, 1: 0.5, 2: 0.25}

    def test_superposed_does_not_mutate(self, text_quantum):
        before = text_quantum.outcome_probabilities()

        new_quantum = text_quantum.superposed("xyz")

        assert text_quantum.outcome_probabilities() == before
        expected = {state: p / 2 for state, p in before.items()}
        expected["xyz"] = 0.5
        assert new_quantum.outcome_probabilities() == expected

    def test_superposed_copies_are_independent(self, text_quantum):
        before = text_quantum.outcome_probabilities()
        new_quantum = text_quantum.superposed("xyz")

        new_quantum.superpose("uvw")
        new_quantum.measurement(ScriptedRandomSource([0.1], cycle=True))
        text_quantum.superpose("abc", "bcd")

        assert new_quantum.arena is not text_quantum.arena
        assert text_quantum.outcome_probabilities() != before
        assert len(new_quantum.outcome_probabilities()) == 1

    def test_copy(self, number_quantum):
        copy = number_quantum.copy()

        assert copy.outcome_probabilities() == number_quantum.outcome_probabilities()
        assert copy.config is number_quantum.config
        assert copy.random_source is number_quantum.random_source

        copy.superpose(7)
        assert 7 not in number_quantum.outcome_probabilities()

    def test_repr(self, text_quantum):
        assert repr(text_quantum) == "Quantum(state='abc', unobserved=7)"


class TestMeasurement:
    """Measurement collapses the event tree"""

    def test_scripted_walk(self, text_quantum):
        source = ScriptedRandomSource([0.3, 0.3, 0.3])

        assert text_quantum.measurement(source) == "def"
        assert source.remaining == 0
        assert text_quantum.observed_history() == ["abc", "bcd", "cde", "def"]
        assert text_quantum.outcome_probabilities() == {"def": 1.0}
        assert text_quantum.arena.num_nodes == 4

    def test_measurement_without_transition(self):
        quantum = Quantum("abc")
        quantum.superpose("bcd")

        assert quantum.measurement(ScriptedRandomSource([0.75])) == "abc"
        assert quantum.outcome_probabilities() == {"abc": 1.0}
        assert quantum.observed_history() == ["abc"]
        assert quantum.arena.num_nodes == 1

    def test_measurement_is_idempotent(self):
        quantum = Quantum("a", random_source=ScriptedRandomSource([0.1]))
        quantum.superpose("b")

        first = quantum.measurement()
        # The script is exhausted, so a second draw would raise
        second = quantum.measurement()

        assert first == second == "b"

    def test_explicit_source_wins(self):
        quantum = Quantum("a", random_source=ScriptedRandomSource([]))
        quantum.superpose("b")

        assert quantum.measurement(ScriptedRandomSource([0.1])) == "b"

    def test_measurement_collapses_text(self, text_quantum):
        observed = text_quantum.measurement()

        assert observed in {"abc", "bcd", "cde", "def"}
        assert text_quantum.outcome_probabilities() == {observed: 1.0}

    def test_measurement_then_superposed(self, number_quantum):
        observed = number_quantum.measurement()
        assert observed in {0, 1, 2}
        assert number_quantum.outcome_probabilities() == {observed: 1.0}

        new_quantum = number_quantum.superposed(3)

        assert new_quantum.outcome_probabilities() == {observed: 0.5, 3: 0.5}
        assert number_quantum.outcome_probabilities() == {observed: 1.0}

    @pytest.mark.parametrize("seed", range(20))
    def test_measured_state_had_positive_probability(self, seed):
        quantum = Quantum("a", random_source=NumpyRandomSource(seed))
        quantum.superpose("b")
        quantum.superpose("c")
        quantum.superpose("b", "d")
        before = quantum.outcome_probabilities()

        observed = quantum.measurement()

        assert before[observed] > 0
        assert quantum.outcome_probabilities() == {observed: 1.0}

    def test_superposition_after_measurement(self):
        quantum = Quantum("a")
        quantum.superpose("b")
        quantum.measurement(ScriptedRandomSource([0.1]))

        quantum.superpose("c")

        assert quantum.outcome_probabilities() == {"b": 0.5, "c": 0.5}
        assert quantum.observed_history() == ["a", "b"]

    def test_seeded_handles_agree(self):
        results = []
        for _ in range(2):
            quantum = Quantum(0, config=QuantumConfig(seed=99))
            observed = []
            for state in range(1, 6):
                quantum.superpose(state)
                quantum.superpose(state, state + 10)
                observed.append(quantum.measurement())
            results.append(observed)

        assert results[0] == results[1]


class TestInvariants:
    """Properties that hold for any sequence of operations"""

    def test_random_operation_sequences(self, debug_config):
        rng = np.random.default_rng(7)
        quantum = Quantum(0, config=debug_config, random_source=NumpyRandomSource(11))

        for _ in range(200):
            operation = rng.integers(3)
            if len(quantum.final_observed_event.all_unobserved_events) > 25:
                operation = 2

            if operation == 0:
                quantum.superpose(int(rng.integers(5)))
            elif operation == 1:
                quantum.superpose(int(rng.integers(5)), int(rng.integers(5)))
            else:
                observed = quantum.measurement()
                assert quantum.outcome_probabilities() == {observed: 1.0}

            assert_distribution(quantum.outcome_probabilities())

        assert quantum.validator.issue_history == []


class TestFailures:
    """Errors raised partway through an operation leave a usable handle"""

    @pytest.fixture
    def nested_quantum(self):
        """a -> [b -> [c], c]"""
        quantum = Quantum("a", config=QuantumConfig(max_nodes=5, validation_level='debug'))
        quantum.superpose("b")
        quantum.superpose("c")
        return quantum

    def test_failed_draw_keeps_frontier_on_last_selection(self, nested_quantum):
        with pytest.raises(ValueError):
            nested_quantum.measurement(ScriptedRandomSource([0.1, 1.5]))

        frontier = nested_quantum.final_observed_event
        assert frontier.is_branchable
        assert frontier.state == "b"
        assert nested_quantum.observed_history() == ["a", "b"]
        assert nested_quantum.outcome_probabilities() == {"b": 0.5, "c": 0.5}

        nested_quantum.superpose("z")
        assert nested_quantum.outcome_probabilities() == {"b": 0.25, "c": 0.25, "z": 0.5}
        assert nested_quantum.measurement(ScriptedRandomSource([0.9])) == "b"

    def test_exhausted_source_keeps_frontier_on_last_selection(self, nested_quantum):
        with pytest.raises(RuntimeError):
            nested_quantum.measurement(ScriptedRandomSource([0.1]))

        assert nested_quantum.final_observed_event.state == "b"
        assert nested_quantum.outcome_probabilities() == {"b": 0.5, "c": 0.5}

    def test_full_arena_leaves_distribution_unchanged(self, nested_quantum):
        before = nested_quantum.outcome_probabilities()
        assert before == {"a": 0.25, "b": 0.25, "c": 0.5}

        with pytest.raises(ArenaFullError):
            nested_quantum.superpose("d")
        with pytest.raises(ArenaFullError):
            nested_quantum.superpose("c", "d")

        assert nested_quantum.outcome_probabilities() == before
        assert nested_quantum.arena.num_nodes == 4

    def test_branch_that_fits_is_added(self, nested_quantum):
        nested_quantum.superpose("a", "d")

        assert nested_quantum.outcome_probabilities() == {"a": 0.125, "b": 0.25, "c": 0.5, "d": 0.125}
        assert nested_quantum.validator.issue_history == []
