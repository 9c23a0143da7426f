"""
Core module for the L-system rewriting engine.

Contains:
- Module / ModuleSet: typed symbols and the (left, direct, right) window
- GenerationState: module sequence plus newness flags of one generation
- Rule / Grammar: context-sensitive rules with first-match selection
- RandomSource / ParameterState: seeded randomness and shared parameters
- EvolutionEngine: single-pass generation rewriting
- LSystem: immutable builder tying the pieces together
"""

from .errors import ContractViolation, PreconditionFailure
from .module import Module, ModuleSet, format_attribute_value
from .state import GenerationState
from .parameters import ParameterState
from .random_source import RandomSource, DEFAULT_SEED
from .rules import Rule, RuleMatch, Grammar
from .evolution import EvolutionEngine, EvolutionResult, EvolutionStats, evolve
from .inspection import ModuleInspection, inspect_state
from .system import LSystem

__all__ = [
    "ContractViolation",
    "PreconditionFailure",
    "Module",
    "ModuleSet",
    "format_attribute_value",
    "GenerationState",
    "ParameterState",
    "RandomSource",
    "DEFAULT_SEED",
    "Rule",
    "RuleMatch",
    "Grammar",
    "EvolutionEngine",
    "EvolutionResult",
    "EvolutionStats",
    "evolve",
    "ModuleInspection",
    "inspect_state",
    "LSystem",
]
