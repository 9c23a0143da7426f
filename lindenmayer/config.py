"""
Configuration module for L-system runs.

Contains the configurable parameters of an evolution run. Only run settings
are persisted; system state is never written to disk.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import json
from pathlib import Path

from .core.random_source import DEFAULT_SEED


@dataclass
class RandomParams:
    """Random source parameters."""
    seed: Optional[int] = None  # None keeps the seed the grammar was built with


@dataclass
class EvolutionParams:
    """Evolution run parameters."""
    generations: int = 1

    # History
    store_history: bool = False
    history_stride: int = 1     # Store every N-th generation

    # Logging
    log_interval: int = 0       # Log every N generations (0 = off)


@dataclass
class DisplayParams:
    """State display parameters."""
    show_newness: bool = True   # Mark new modules with "*"
    max_modules: int = 200      # Truncate longer states when printing


@dataclass
class SystemConfig:
    """
    Main configuration container for an L-system run.

    Example:
        config = SystemConfig(
            random=RandomParams(seed=7),
            evolution=EvolutionParams(generations=6, store_history=True),
        )
        config.save("run.json")
    """
    random: RandomParams = field(default_factory=RandomParams)
    evolution: EvolutionParams = field(default_factory=EvolutionParams)
    display: DisplayParams = field(default_factory=DisplayParams)

    def save(self, path) -> None:
        """Save configuration to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self._to_dict()
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, path) -> "SystemConfig":
        """Load configuration from JSON file."""
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls._from_dict(data)

    def _to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        def convert(obj):
            if hasattr(obj, '__dataclass_fields__'):
                return {k: convert(v) for k, v in obj.__dict__.items()}
            elif isinstance(obj, (list, tuple)):
                return [convert(x) for x in obj]
            return obj

        return convert(self)

    @classmethod
    def _from_dict(cls, data: dict) -> "SystemConfig":
        """Reconstruct from dictionary."""
        data = dict(data)
        if 'random' in data:
            data['random'] = RandomParams(**data['random'])
        if 'evolution' in data:
            data['evolution'] = EvolutionParams(**data['evolution'])
        if 'display' in data:
            data['display'] = DisplayParams(**data['display'])
        return cls(**data)

    def validate(self) -> List[str]:
        """Validate configuration, return list of warnings/errors."""
        issues = []

        if self.random.seed is not None and self.random.seed < 0:
            issues.append("seed must be non-negative")

        if self.evolution.generations < 0:
            issues.append("generations must be non-negative")
        if self.evolution.generations > 64:
            issues.append("generations > 64 may exhaust memory for growing grammars")
        if self.evolution.history_stride < 1:
            issues.append("history_stride must be at least 1")
        if self.evolution.log_interval < 0:
            issues.append("log_interval must be non-negative")

        if self.display.max_modules < 1:
            issues.append("max_modules must be at least 1")

        return issues


# Preset configurations
def minimal_config() -> SystemConfig:
    """Minimal configuration for quick testing."""
    return SystemConfig(
        evolution=EvolutionParams(generations=3, store_history=True),
    )


def standard_config() -> SystemConfig:
    """Standard configuration for typical runs."""
    return SystemConfig(
        random=RandomParams(seed=DEFAULT_SEED),
        evolution=EvolutionParams(
            generations=8,
            store_history=True,
            history_stride=1,
            log_interval=1,
        ),
    )
