"""
Lindenmayer - command-line runner for L-system grammars.

Grammars are plain Python: point the runner at an attribute holding an
LSystem, or at a zero-argument factory returning one:

    lindenmayer mypackage.grammars:algae --generations 5 --seed 7
"""

from __future__ import annotations
import argparse
import importlib
import logging
from pathlib import Path
from typing import List, Optional

from lindenmayer.analysis import summarize
from lindenmayer.config import SystemConfig
from lindenmayer.core import GenerationState, LSystem, RuleMatch


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def load_system(reference: str) -> LSystem:
    """
    Resolve "package.module:attribute" to an LSystem.

    The attribute may be an LSystem or a callable returning one.
    """
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Expected 'module:attribute', got '{reference}'")

    target = importlib.import_module(module_name)
    for part in attribute.split("."):
        target = getattr(target, part)

    if not isinstance(target, LSystem) and callable(target):
        target = target()
    if not isinstance(target, LSystem):
        raise TypeError(f"{reference} does not resolve to an LSystem")
    return target


def format_state(state: GenerationState, config: SystemConfig) -> str:
    """One display line for a generation."""
    text = state.to_string(mark_new=config.display.show_newness)
    if len(state) > config.display.max_modules:
        shown = GenerationState(
            modules=state.modules[:config.display.max_modules],
            newness=state.newness[:config.display.max_modules],
            generation=state.generation,
        )
        text = shown.to_string(mark_new=config.display.show_newness) + "..."
    return f"n={state.generation} ({len(state)}): {text}"


def run_system(system: LSystem, config: SystemConfig) -> dict:
    """
    Evolve a system according to a configuration.

    Args:
        system: L-system at its starting generation
        config: Run configuration

    Returns:
        Dictionary with the evolved system, the run result and its summary
    """
    issues = config.validate()
    for issue in issues:
        logger.warning(f"Config: {issue}")

    if config.random.seed is not None:
        system = system.set_seed(config.random.seed)
    generations = config.evolution.generations

    logger.info(f"Evolving {len(system)} modules for {generations} generations")
    logger.info(f"Using {len(system.grammar)} rules, seed {system.random.seed}")

    engine = system.engine()
    interval = config.evolution.log_interval

    def log_progress(state: GenerationState, applied: List[RuleMatch]) -> None:
        if interval and state.generation % interval == 0:
            logger.info(
                f"Generation {state.generation}/{generations} - "
                f"{len(state)} modules, rules applied: {len(applied)}"
            )

    engine.add_step_callback(log_progress)
    result = engine.run(
        system.state,
        generations=generations,
        store_history=config.evolution.store_history,
        history_stride=config.evolution.history_stride,
    )

    summary = summarize(result)
    logger.info(f"Final length: {summary['final_length']}")
    logger.info(f"Total rules applied: {summary['rules_applied']}")

    return {
        'system': system.with_state(result.final_state),
        'result': result,
        'summary': summary,
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line interface for evolving grammars."""
    parser = argparse.ArgumentParser(description="Lindenmayer system runner")

    parser.add_argument('grammar', type=str,
                        help="Grammar reference 'package.module:attribute'")
    parser.add_argument('--config', type=str, default=None,
                        help='JSON configuration file (default: built-in defaults)')
    parser.add_argument('--generations', type=int, default=None,
                        help='Number of generations (overrides config)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed (overrides config)')
    parser.add_argument('--history', action='store_true',
                        help='Print every retained generation, not only the last')
    parser.add_argument('--stride', type=int, default=None,
                        help='Keep every N-th generation in the history')

    args = parser.parse_args(argv)

    config = SystemConfig.load(Path(args.config)) if args.config else SystemConfig()
    if args.generations is not None:
        config.evolution.generations = args.generations
    if args.seed is not None:
        config.random.seed = args.seed
    if args.history:
        config.evolution.store_history = True
    if args.stride is not None:
        config.evolution.history_stride = args.stride

    try:
        system = load_system(args.grammar)
    except (ImportError, AttributeError, TypeError, ValueError) as e:
        parser.error(f"cannot load grammar: {e}")

    results = run_system(system, config)
    result = results['result']

    states = result.history if config.evolution.store_history else [result.final_state]
    for state in states:
        print(format_state(state, config))

    for name, count in results['summary']['rules_by_name'].items():
        logger.info(f"  {name}: {count}")

    logger.info("Done!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
