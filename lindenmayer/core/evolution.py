"""
Evolution engine for L-system rewriting.

Implements one generation as a single left-to-right pass:
    S(n) -> S(n+1), newness(n+1)

For every position the engine builds the (left?, direct, right?) window,
asks the grammar for the first matching rule and appends either the rule's
output (flagged new) or the module itself (identity, flagged not new).
Output of a rule is never rescanned within the same pass.

Key features:
- First-match rule selection in insertion order
- Shared parameter handle and seeded random source threaded into rules
- Optional history retention with configurable stride
- Per-rule application statistics
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
import logging
import time

import numpy as np

from .module import Module, ModuleSet
from .parameters import ParameterState
from .random_source import RandomSource
from .rules import Grammar, RuleMatch
from .state import GenerationState

logger = logging.getLogger(__name__)


@dataclass
class EvolutionStats:
    """Statistics from an evolution run."""
    generations: int = 0
    rules_applied: int = 0
    rules_by_name: Dict[str, int] = field(default_factory=dict)
    module_counts: List[int] = field(default_factory=list)

    # Timing
    start_time: float = 0.0
    end_time: float = 0.0

    @property
    def elapsed_time(self) -> float:
        return self.end_time - self.start_time

    @property
    def generations_per_second(self) -> float:
        if self.elapsed_time > 0:
            return self.generations / self.elapsed_time
        return 0.0

    def record(self, state: GenerationState, applied: List[RuleMatch]) -> None:
        """Account for one finished generation."""
        self.generations += 1
        self.rules_applied += len(applied)
        for match in applied:
            name = match.rule.name
            self.rules_by_name[name] = self.rules_by_name.get(name, 0) + 1
        self.module_counts.append(len(state))


@dataclass
class EvolutionResult:
    """
    Complete result of an evolution run.

    Contains:
    - Final state
    - History (initial state plus every stride-th generation, if enabled)
    - Statistics
    """
    final_state: GenerationState
    history: List[GenerationState] = field(default_factory=list)
    stats: EvolutionStats = field(default_factory=EvolutionStats)

    def get_state_at(self, generation: int) -> Optional[GenerationState]:
        """Get state at a specific generation (if in history)."""
        for state in self.history:
            if state.generation == generation:
                return state
        return None

    def length_series(self) -> np.ndarray:
        """Module count per retained state."""
        return np.array([len(state) for state in self.history], dtype=np.int64)


class EvolutionEngine:
    """
    Generation engine for a grammar.

    The parameter handle and random source are the only pieces with identity
    across calls; the engine itself keeps no per-generation state.

    Example:
        engine = EvolutionEngine(grammar, parameters, RandomSource(seed=42))
        state, applied = engine.step(GenerationState.initial([A()]))

        result = engine.run(state, generations=5, store_history=True)
        for snapshot in result.history:
            print(f"n={snapshot.generation}: {snapshot.to_string()}")
    """

    def __init__(
        self,
        grammar: Grammar,
        parameters: Optional[ParameterState] = None,
        random: Optional[RandomSource] = None,
    ):
        """
        Initialize evolution engine.

        Args:
            grammar: Ordered rules used to rewrite each position
            parameters: Shared parameter handle for parameterized rules
            random: Seeded random source for stochastic rules
        """
        self.grammar = grammar
        self.parameters = parameters if parameters is not None else ParameterState()
        self.random = random if random is not None else RandomSource()

        # Callbacks
        self._step_callbacks: List[Callable[[GenerationState, List[RuleMatch]], None]] = []

    def add_step_callback(
        self, callback: Callable[[GenerationState, List[RuleMatch]], None]
    ) -> None:
        """Add callback to be called after each generation."""
        self._step_callbacks.append(callback)

    def remove_step_callback(
        self, callback: Callable[[GenerationState, List[RuleMatch]], None]
    ) -> None:
        self._step_callbacks.remove(callback)

    def step(self, state: GenerationState) -> Tuple[GenerationState, List[RuleMatch]]:
        """
        Perform a single generation.

        Args:
            state: Current generation (left untouched)

        Returns:
            The next generation and the rule applications that built it.
            An exception raised by a rule (e.g. ContractViolation) propagates
            before any new state exists, with the random source and the
            parameters rolled back to where the generation started.
        """
        modules = state.modules
        new_modules: List[Module] = []
        newness: List[bool] = []
        applied: List[RuleMatch] = []

        random_state = self.random.get_state()
        parameter_state = self.parameters.get_state()
        try:
            for index in range(len(modules)):
                context = ModuleSet.at(modules, index)
                rule = self.grammar.find_rule(context, self.parameters)
                if rule is None:
                    new_modules.append(context.direct)
                    newness.append(False)
                    continue

                produced = rule.produce(context, self.parameters, self.random)
                new_modules.extend(produced)
                newness.extend([True] * len(produced))
                applied.append(RuleMatch(rule=rule, position=index, produced=len(produced)))
        except Exception:
            self.random.set_state(random_state)
            self.parameters.set_state(parameter_state)
            logger.debug("generation %d aborted, random source and parameters restored",
                         state.generation + 1)
            raise

        next_state = GenerationState(
            modules=tuple(new_modules),
            newness=np.array(newness, dtype=np.bool_),
            generation=state.generation + 1,
        )
        logger.debug(
            "generation %d: %d -> %d modules, %d rules applied",
            next_state.generation, len(state), len(next_state), len(applied),
        )
        return next_state, applied

    def run(
        self,
        state: GenerationState,
        generations: int = 1,
        store_history: bool = False,
        history_stride: int = 1,
    ) -> EvolutionResult:
        """
        Run evolution for multiple generations.

        Args:
            state: Starting generation
            generations: Number of generations to apply
            store_history: Whether to retain intermediate states
            history_stride: Retain every N-th generation

        Returns:
            EvolutionResult with final state, history, and statistics
        """
        if generations < 0:
            raise ValueError(f"generations must be non-negative, got {generations}")
        if history_stride < 1:
            raise ValueError(f"history_stride must be at least 1, got {history_stride}")

        stats = EvolutionStats(start_time=time.time())
        history: List[GenerationState] = []

        if store_history:
            history.append(state)

        current = state
        for index in range(generations):
            current, applied = self.step(current)
            stats.record(current, applied)

            if store_history and (index + 1) % history_stride == 0:
                history.append(current)

            for callback in self._step_callbacks:
                callback(current, applied)

        stats.end_time = time.time()
        logger.debug(
            "ran %d generations in %.4fs, %d rules applied",
            stats.generations, stats.elapsed_time, stats.rules_applied,
        )

        return EvolutionResult(final_state=current, history=history, stats=stats)


def evolve(
    state: GenerationState,
    grammar: Grammar,
    parameters: Optional[ParameterState] = None,
    random: Optional[RandomSource] = None,
) -> GenerationState:
    """Apply one generation of `grammar` to `state`."""
    next_state, _ = EvolutionEngine(grammar, parameters, random).step(state)
    return next_state
