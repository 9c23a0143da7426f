"""
L-system values: axiom, current generation, grammar and shared handles.

An LSystem is an immutable value. Adding a rule or evolving returns a new
LSystem; every value derived from the same `create` call shares one
ParameterState and one RandomSource, so the random cursor keeps advancing
across evolutions and parameter replacements are seen by all of them.
"""

from __future__ import annotations
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Type, Union

import numpy as np

from .errors import PreconditionFailure
from .evolution import EvolutionEngine, EvolutionResult
from .inspection import ModuleInspection, inspect_state
from .module import Module, ModuleSet
from .parameters import ParameterState, as_parameter_state
from .random_source import DEFAULT_SEED, RandomSource
from .rules import Grammar, Guard, Producer, Rule
from .state import GenerationState

Axiom = Union[Module, Sequence[Module]]


class LSystem:
    """
    Context-sensitive, optionally parameterized and stochastic L-system.

    Example:
        algae = (
            LSystem.create(A())
            .rewrite(A, lambda a: [A(), B()])
            .rewrite(B, lambda b: [A()])
        )
        algae.generations(3).state.to_string()  # "ABAAB"

        bush = (
            LSystem.create(Stem(), seed=7, parameters={"p_branch": 0.4})
            .rewrite_with_all(
                Stem,
                lambda stem, params, rng: (
                    [Stem(), Branch()] if rng.p(params["p_branch"]) else [Stem()]
                ),
            )
        )
    """

    def __init__(
        self,
        axiom: Axiom,
        grammar: Optional[Grammar] = None,
        parameters: Any = None,
        random: Optional[RandomSource] = None,
        state: Optional[GenerationState] = None,
    ):
        if isinstance(axiom, Module):
            axiom = [axiom]
        axiom = tuple(axiom)
        if not axiom:
            raise ValueError("axiom must contain at least one module")
        for module in axiom:
            if not isinstance(module, Module):
                raise TypeError(f"axiom entries must be Module instances, got {module!r}")

        self._axiom: Tuple[Module, ...] = axiom
        self._grammar = grammar if grammar is not None else Grammar()
        self._parameters = as_parameter_state(parameters)
        self._random = random if random is not None else RandomSource()
        self._state = state if state is not None else GenerationState.initial(axiom)

    @classmethod
    def create(
        cls,
        axiom: Axiom,
        seed: int = DEFAULT_SEED,
        parameters: Any = None,
    ) -> "LSystem":
        """Create an L-system with its own random source and parameter handle."""
        return cls(axiom, parameters=parameters, random=RandomSource(seed))

    def _replace(
        self,
        grammar: Optional[Grammar] = None,
        state: Optional[GenerationState] = None,
    ) -> "LSystem":
        return LSystem(
            self._axiom,
            grammar=grammar if grammar is not None else self._grammar,
            parameters=self._parameters,
            random=self._random,
            state=state if state is not None else self._state,
        )

    # ===== Properties =====

    @property
    def axiom(self) -> Tuple[Module, ...]:
        return self._axiom

    @property
    def state(self) -> GenerationState:
        return self._state

    @property
    def modules(self) -> Tuple[Module, ...]:
        return self._state.modules

    @property
    def newness(self) -> np.ndarray:
        return self._state.newness

    @property
    def grammar(self) -> Grammar:
        return self._grammar

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._grammar.rules

    @property
    def parameters(self) -> ParameterState:
        return self._parameters

    @property
    def random(self) -> RandomSource:
        return self._random

    # ===== Rule builders =====

    def add_rule(self, rule: Rule) -> "LSystem":
        """Return a new L-system with `rule` appended to the grammar."""
        return self._replace(grammar=self._grammar.add(rule))

    def add_rules(self, rules: Iterable[Rule]) -> "LSystem":
        return self._replace(grammar=self._grammar.extend(rules))

    def rewrite(
        self,
        direct: Type[Module],
        produces: Producer,
        left: Optional[Type[Module]] = None,
        right: Optional[Type[Module]] = None,
        where: Optional[Guard] = None,
        name: str = "",
    ) -> "LSystem":
        """Add a rule whose closures see only the matched modules."""
        return self.add_rule(Rule(
            direct=direct, produces=produces, left=left, right=right,
            where=where, name=name,
        ))

    def rewrite_with_random(
        self,
        direct: Type[Module],
        produces: Producer,
        left: Optional[Type[Module]] = None,
        right: Optional[Type[Module]] = None,
        where: Optional[Guard] = None,
        name: str = "",
    ) -> "LSystem":
        """Add a rule whose producer also receives the random source."""
        return self.add_rule(Rule(
            direct=direct, produces=produces, left=left, right=right,
            where=where, uses_random=True, name=name,
        ))

    def rewrite_with_parameters(
        self,
        direct: Type[Module],
        produces: Producer,
        left: Optional[Type[Module]] = None,
        right: Optional[Type[Module]] = None,
        where: Optional[Guard] = None,
        name: str = "",
    ) -> "LSystem":
        """Add a rule whose guard and producer also receive the parameter snapshot."""
        return self.add_rule(Rule(
            direct=direct, produces=produces, left=left, right=right,
            where=where, uses_parameters=True, name=name,
        ))

    def rewrite_with_all(
        self,
        direct: Type[Module],
        produces: Producer,
        left: Optional[Type[Module]] = None,
        right: Optional[Type[Module]] = None,
        where: Optional[Guard] = None,
        name: str = "",
    ) -> "LSystem":
        """Add a rule receiving both the parameter snapshot and the random source."""
        return self.add_rule(Rule(
            direct=direct, produces=produces, left=left, right=right,
            where=where, uses_parameters=True, uses_random=True, name=name,
        ))

    # ===== Evolution =====

    def engine(self) -> EvolutionEngine:
        return EvolutionEngine(self._grammar, self._parameters, self._random)

    def evolve(self) -> "LSystem":
        """Return the L-system one generation later."""
        next_state, _ = self.engine().step(self._state)
        return self._replace(state=next_state)

    def generations(self, count: int) -> "LSystem":
        """Return the L-system `count` generations later."""
        result = self.engine().run(self._state, generations=count)
        return self._replace(state=result.final_state)

    def run(
        self,
        count: int,
        store_history: bool = False,
        history_stride: int = 1,
    ) -> EvolutionResult:
        """Evolve `count` generations and return the full result with statistics."""
        return self.engine().run(
            self._state,
            generations=count,
            store_history=store_history,
            history_stride=history_stride,
        )

    def with_state(self, state: GenerationState) -> "LSystem":
        """Return the L-system positioned at `state` (e.g. a run's final state)."""
        return self._replace(state=state)

    def reset(self) -> "LSystem":
        """
        Return the L-system at its axiom.

        The random source is reseeded with its current seed and the
        parameters are restored to their construction-time value.
        """
        self._random.reset()
        self._parameters.reset()
        return self._replace(state=GenerationState.initial(self._axiom))

    def set_seed(self, seed: int) -> "LSystem":
        """Reseed the shared random source."""
        self._random.reset(seed)
        return self

    def set_parameters(self, value: Any) -> "LSystem":
        """Replace the shared parameter value."""
        self._parameters.update(value)
        return self

    # ===== Diagnostics =====

    def context_at(self, index: int) -> ModuleSet:
        """Context window the rules see at `index`."""
        if not 0 <= index < len(self._state):
            raise PreconditionFailure(index, len(self._state))
        return ModuleSet.at(self._state.modules, index)

    def state_at(self, index: int) -> ModuleInspection:
        """Module at `index` with its newness flag; index must be in range."""
        return inspect_state(self._state, index)

    def attribute_names(self, index: int) -> List[str]:
        return self.state_at(index).attribute_names

    def attribute_value(self, index: int, attribute: str) -> Optional[str]:
        return self.state_at(index).value_of(attribute)

    def __len__(self) -> int:
        return len(self._state)

    def __repr__(self) -> str:
        return (
            f"LSystem(generation={self._state.generation}, "
            f"modules={len(self._state)}, rules={len(self._grammar)})"
        )
