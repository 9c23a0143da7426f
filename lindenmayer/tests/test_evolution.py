"""
Tests for the evolution engine and LSystem builder.
"""

from dataclasses import dataclass

import pytest
import numpy as np
from lindenmayer.core import (
    ContractViolation,
    EvolutionEngine,
    GenerationState,
    Grammar,
    LSystem,
    Module,
    ParameterState,
    PreconditionFailure,
    RandomSource,
    Rule,
    evolve,
)


@dataclass(frozen=True)
class A(Module):
    pass


@dataclass(frozen=True)
class B(Module):
    pass


@dataclass(frozen=True)
class L(Module):
    pass


@dataclass(frozen=True)
class R(Module):
    pass


@dataclass(frozen=True)
class Tag(Module):
    value: int = 0


@dataclass(frozen=True)
class Impostor(Module):
    kind = "A"


def algae() -> LSystem:
    return (
        LSystem.create(A())
        .rewrite(A, lambda a: [A(), B()])
        .rewrite(B, lambda b: [A()])
    )


def random_bush(seed: int = 7) -> LSystem:
    """Stochastic grammar drawing exactly one value per rewrite."""
    return (
        LSystem.create(A(), seed=seed, parameters={"p": 0.5})
        .rewrite_with_all(
            A,
            lambda a, params, rng: [A(), B()] if rng.p(params["p"]) else [A(), A()],
        )
        .rewrite_with_random(
            B,
            lambda b, rng: [Tag(rng.random_int(0, 9))],
        )
    )


class TestIdentity:
    """Positions without a matching rule are carried over."""

    def test_no_rules(self):
        """Empty grammar returns the input with nothing flagged new."""
        system = LSystem.create([A(), B(), Tag(3)])
        evolved = system.evolve()
        assert evolved.modules == system.modules
        assert evolved.newness.tolist() == [False, False, False]
        assert evolved.state.generation == 1

    def test_unmatched_kind(self):
        system = LSystem.create([A(), B()]).rewrite(A, lambda a: [L()])
        evolved = system.evolve()
        assert evolved.state.kinds() == ["L", "B"]
        assert evolved.newness.tolist() == [True, False]

    def test_deletion(self):
        """A rule producing nothing removes the position."""
        system = LSystem.create([A(), B(), A()]).rewrite(B, lambda b: [])
        evolved = system.evolve()
        assert evolved.state.kinds() == ["A", "A"]
        assert evolved.newness.tolist() == [False, False]


class TestGrowth:
    """Exact generation content for a context-free grammar."""

    def test_algae_generations(self):
        system = algae()
        gen1 = system.evolve()
        gen2 = gen1.evolve()
        gen3 = gen2.evolve()
        assert gen1.state.to_string() == "AB"
        assert gen2.state.to_string() == "ABA"
        assert gen3.state.to_string() == "ABAAB"

    def test_generations_matches_repeated_evolve(self):
        assert algae().generations(3).state == algae().evolve().evolve().evolve().state
        assert algae().generations(4).state.to_string() == "ABAABABA"

    def test_newness_all_produced(self):
        """Every position of a fully rewritten generation is new."""
        gen2 = algae().generations(2)
        assert gen2.newness.tolist() == [True, True, True]

    def test_output_preserves_order(self):
        system = LSystem.create([A(), B()]).rewrite(A, lambda a: [Tag(1), Tag(2), Tag(3)])
        evolved = system.evolve()
        assert [m.value for m in evolved.modules[:3]] == [1, 2, 3]
        assert evolved.state.kinds()[3] == "B"

    def test_zero_generations(self):
        system = algae()
        assert system.generations(0).state == system.state

    def test_negative_generations(self):
        with pytest.raises(ValueError):
            algae().generations(-1)

    def test_no_rescan_within_pass(self):
        """Produced modules are only rewritten in the next generation."""
        system = LSystem.create(A()).rewrite(A, lambda a: [A(), A()])
        assert len(system.evolve()) == 2
        assert len(system.generations(3)) == 8


class TestContextSensitivity:
    """Left and right context requirements."""

    def test_left_context_required(self):
        rule_system = LSystem.create([R(), A()]).rewrite(A, lambda l, a: [B()], left=L)
        assert rule_system.evolve().state.kinds() == ["R", "A"]

        matching = LSystem.create([L(), A()]).rewrite(A, lambda l, a: [B()], left=L)
        assert matching.evolve().state.kinds() == ["L", "B"]

    def test_removing_left_requirement_fires(self):
        system = LSystem.create([R(), A()]).rewrite(A, lambda a: [B()])
        assert system.evolve().state.kinds() == ["R", "B"]

    def test_left_context_at_first_position(self):
        """No left neighbor exists at position 0."""
        system = LSystem.create([A(), L()]).rewrite(A, lambda l, a: [B()], left=L)
        assert system.evolve().state.kinds() == ["A", "L"]

    def test_right_context_never_at_last_position(self):
        system = LSystem.create([A(), R(), A()]).rewrite(A, lambda a, r: [B()], right=R)
        evolved = system.evolve()
        assert evolved.state.kinds() == ["B", "R", "A"]
        assert evolved.newness.tolist() == [True, False, False]

    def test_both_sides(self):
        system = (
            LSystem.create([L(), A(), R(), A(), R()])
            .rewrite(A, lambda l, a, r: [Tag(1)], left=L, right=R)
        )
        evolved = system.evolve()
        assert evolved.state.kinds() == ["L", "Tag", "R", "A", "R"]

    def test_context_uses_previous_generation(self):
        """Context is read from the source state, not from partial output."""
        system = (
            LSystem.create([A(), A()])
            .rewrite(A, lambda b, a: [L()], left=B)
            .rewrite(A, lambda a: [B()])
        )
        assert system.evolve().state.kinds() == ["B", "B"]
        assert system.generations(2).state.kinds() == ["B", "B"]

    def test_context_at(self):
        system = LSystem.create([L(), A(), R()])
        context = system.context_at(1)
        assert (context.left_kind, context.direct_kind, context.right_kind) == ("L", "A", "R")
        with pytest.raises(PreconditionFailure):
            system.context_at(3)
        with pytest.raises(IndexError):
            system.context_at(-1)


class TestFirstMatch:
    """Rule precedence by registration order."""

    def test_second_rule_never_invoked(self):
        calls = {"first": 0, "second": 0}

        def first(a):
            calls["first"] += 1
            return [B()]

        def second(a):
            calls["second"] += 1
            return [L()]

        system = LSystem.create([A(), A(), B()]).rewrite(A, first).rewrite(A, second)
        evolved = system.generations(2)
        assert calls["first"] == 2
        assert calls["second"] == 0
        assert evolved.state.kinds() == ["B", "B", "B"]

    def test_context_rule_before_general_rule(self):
        system = (
            LSystem.create([L(), A(), A()])
            .rewrite(A, lambda l, a: [R()], left=L)
            .rewrite(A, lambda a: [B()])
        )
        assert system.evolve().state.kinds() == ["L", "R", "B"]


class TestContractViolation:
    """Kind matches on the wrong concrete class abort the generation."""

    def test_evolve_raises(self):
        system = LSystem.create([B(), Impostor()]).rewrite(A, lambda a: [B()])
        with pytest.raises(ContractViolation) as excinfo:
            system.evolve()
        assert isinstance(excinfo.value.module, Impostor)

    def test_no_partial_generation(self):
        """A failed evolve leaves the system at its previous generation."""
        system = LSystem.create([A(), Impostor()]).rewrite(A, lambda a: [B()])
        with pytest.raises(ContractViolation):
            system.evolve()
        assert system.state.generation == 0
        assert system.state.kinds() == ["A", "A"]

    def test_handles_rolled_back(self):
        """Draws and parameter updates of an aborted generation are undone."""
        handle = ParameterState(0)
        rng = RandomSource(seed=3)

        def grow(a, value, random):
            handle.update(value + 1)
            return [Tag(random.random_int(0, 9))]

        system = LSystem([A(), Impostor()], parameters=handle, random=rng).rewrite_with_all(A, grow)
        with pytest.raises(ContractViolation):
            system.evolve()

        assert rng.draws == 0
        assert handle.snapshot() == 0
        assert handle.revision == 0
        assert rng.random_int(0, 9) == RandomSource(seed=3).random_int(0, 9)


class TestBuilder:
    """LSystem values are immutable."""

    def test_rewrite_returns_new_system(self):
        base = LSystem.create(A())
        extended = base.rewrite(A, lambda a: [B()])
        assert len(base.rules) == 0
        assert len(extended.rules) == 1
        assert base.evolve().state.kinds() == ["A"]
        assert extended.evolve().state.kinds() == ["B"]

    def test_evolve_keeps_original(self):
        system = algae()
        system.generations(3)
        assert system.state.to_string() == "A"
        assert system.state.generation == 0

    def test_shared_handles(self):
        """Derived systems share the random source and parameters."""
        system = random_bush()
        evolved = system.evolve()
        assert evolved.random is system.random
        assert evolved.parameters is system.parameters

    def test_empty_axiom(self):
        with pytest.raises(ValueError):
            LSystem.create([])

    def test_axiom_type_checked(self):
        with pytest.raises(TypeError):
            LSystem.create(["A"])

    def test_add_rule(self):
        rule = Rule(direct=A, produces=lambda a: [B()], name="a_to_b")
        system = LSystem.create(A()).add_rule(rule)
        assert system.rules == (rule,)
        assert system.evolve().state.kinds() == ["B"]


class TestStochastic:
    """Seeded random productions."""

    def test_same_seed_same_output(self):
        s1 = random_bush(seed=11).generations(6)
        s2 = random_bush(seed=11).generations(6)
        assert s1.state.modules == s2.state.modules
        assert np.array_equal(s1.newness, s2.newness)

    def test_draw_count(self):
        """Each rewrite draws exactly one value."""
        fresh = random_bush()
        gen1 = fresh.evolve()
        assert fresh.random.draws == 1
        gen1.evolve()
        assert fresh.random.draws == 1 + len(gen1)

    def test_reset_reproduces(self):
        system = random_bush(seed=3)
        first = system.generations(5).state
        replay = system.reset().generations(5).state
        assert first == replay

    def test_reset_returns_axiom(self):
        system = random_bush().generations(3)
        reset = system.reset()
        assert reset.state == GenerationState.initial(A())
        assert reset.random.draws == 0

    def test_set_seed(self):
        system = random_bush(seed=1)
        system.evolve()
        assert system.set_seed(99) is system
        assert system.random.seed == 99
        assert system.random.draws == 0

    def test_random_rule_independent_of_history(self):
        """Output depends only on seed and call order."""
        rng_a = RandomSource(seed=5)
        rng_b = RandomSource(seed=5)
        grammar = Grammar().add(
            Rule(direct=A, produces=lambda a, rng: [Tag(rng.random_int(0, 100))], uses_random=True)
        )
        state = GenerationState.initial([A(), A(), A()])
        assert evolve(state, grammar, random=rng_a) == evolve(state, grammar, random=rng_b)


class TestParameters:
    """Shared parameter value threading."""

    def test_snapshot_passed_to_producer(self):
        system = (
            LSystem.create(A(), parameters={"value": 4})
            .rewrite_with_parameters(A, lambda a, params: [Tag(params["value"])])
        )
        assert system.evolve().modules == (Tag(4),)

    def test_update_visible_within_generation(self):
        """Later positions see replacements made by earlier producers."""
        handle = ParameterState(0)

        def count(a, value):
            handle.update(value + 1)
            return [Tag(value)]

        system = LSystem([A(), A(), A()], parameters=handle).rewrite_with_parameters(A, count)
        evolved = system.evolve()
        assert [m.value for m in evolved.modules] == [0, 1, 2]
        assert handle.snapshot() == 3

    def test_snapshot_mutation_does_not_leak(self):
        def mutate(a, params):
            params["value"] += 1
            return [Tag(params["value"])]

        system = LSystem.create([A(), A()], parameters={"value": 0}).rewrite_with_parameters(A, mutate)
        evolved = system.evolve()
        assert [m.value for m in evolved.modules] == [1, 1]
        assert system.parameters.snapshot() == {"value": 0}

    def test_set_parameters(self):
        system = (
            LSystem.create(A(), parameters=1)
            .rewrite_with_parameters(A, lambda a, p: [Tag(p)])
        )
        system.set_parameters(5)
        assert system.evolve().modules == (Tag(5),)
        assert system.reset().parameters.snapshot() == 1

    def test_guard_reads_parameters(self):
        system = (
            LSystem.create([Tag(1), Tag(5)], parameters={"limit": 3})
            .rewrite_with_parameters(
                Tag,
                lambda t, params: [Tag(t.value + 1)],
                where=lambda t, params: t.value < params["limit"],
            )
        )
        evolved = system.evolve()
        assert [m.value for m in evolved.modules] == [2, 5]
        assert evolved.newness.tolist() == [True, False]


class TestEvolutionEngine:
    """Tests for EvolutionEngine run bookkeeping."""

    def test_step_reports_applications(self):
        engine = algae().engine()
        state, applied = engine.step(GenerationState.initial([A(), B()]))
        assert state.to_string() == "ABA"
        assert [(m.rule.name, m.position, m.produced) for m in applied] == [
            ("A", 0, 2),
            ("B", 1, 1),
        ]

    def test_run_history(self):
        result = algae().run(3, store_history=True)
        assert [s.to_string() for s in result.history] == ["A", "AB", "ABA", "ABAAB"]
        assert result.length_series().tolist() == [1, 2, 3, 5]
        assert result.get_state_at(2).to_string() == "ABA"
        assert result.get_state_at(7) is None

    def test_run_without_history(self):
        result = algae().run(3)
        assert result.history == []
        assert result.final_state.to_string() == "ABAAB"

    def test_history_stride(self):
        result = algae().run(4, store_history=True, history_stride=2)
        assert [s.generation for s in result.history] == [0, 2, 4]

    def test_invalid_stride(self):
        with pytest.raises(ValueError):
            algae().run(2, store_history=True, history_stride=0)

    def test_stats(self):
        stats = algae().run(3).stats
        assert stats.generations == 3
        assert stats.rules_applied == 6
        assert stats.rules_by_name == {"A": 4, "B": 2}
        assert stats.module_counts == [2, 3, 5]
        assert stats.elapsed_time >= 0.0

    def test_step_callback(self):
        seen = []
        engine = EvolutionEngine(algae().grammar)
        engine.add_step_callback(lambda state, applied: seen.append((state.generation, len(applied))))
        engine.run(GenerationState.initial(A()), generations=3)
        assert seen == [(1, 1), (2, 2), (3, 3)]

    def test_default_handles(self):
        engine = EvolutionEngine(Grammar())
        assert isinstance(engine.random, RandomSource)
        assert isinstance(engine.parameters, ParameterState)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
