"""
Lindenmayer

A context-sensitive rewriting engine for Lindenmayer systems. Computes
successive generations of a typed module sequence from an ordered set of
rewrite rules, with optional shared parameters and a seeded random source.

Main components:
- core: modules, rules, grammar, evolution engine, L-system builder
- analysis: read-only metrics over generations
- config: run configuration
"""

__version__ = "0.1.0"
__author__ = "Lindenmayer Contributors"

from .core import (
    Module,
    ModuleSet,
    GenerationState,
    Rule,
    Grammar,
    RandomSource,
    ParameterState,
    EvolutionEngine,
    LSystem,
    ContractViolation,
    PreconditionFailure,
)
from .config import SystemConfig

__all__ = [
    "Module",
    "ModuleSet",
    "GenerationState",
    "Rule",
    "Grammar",
    "RandomSource",
    "ParameterState",
    "EvolutionEngine",
    "LSystem",
    "ContractViolation",
    "PreconditionFailure",
    "SystemConfig",
]
