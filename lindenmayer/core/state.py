"""
Generation state of an L-system.

A state is the module sequence of one generation plus a parallel record of
which positions were introduced by the most recent evolution:

    modules: [A | B | A]
    newness: [T | T | F]

States are replaced wholesale each generation and never mutated in place.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple, Union
import numpy as np

from .module import Module


@dataclass(frozen=True, eq=False)
class GenerationState:
    """
    Immutable snapshot of one generation.

    Attributes:
        modules: Module sequence of the generation
        newness: Boolean array, True where the module was produced by a rule
        generation: Number of evolutions applied since the axiom
    """
    modules: Tuple[Module, ...]
    newness: np.ndarray  # dtype=bool, shape=(N,)
    generation: int = 0

    def __post_init__(self):
        modules = tuple(self.modules)
        newness = np.array(self.newness, dtype=np.bool_)
        if newness.shape != (len(modules),):
            raise ValueError(
                f"newness length {newness.size} != module count {len(modules)}"
            )
        # Make immutable
        newness.flags.writeable = False
        object.__setattr__(self, "modules", modules)
        object.__setattr__(self, "newness", newness)

    @classmethod
    def initial(cls, axiom: Union[Module, Sequence[Module]]) -> "GenerationState":
        """State for an axiom; every axiom position counts as new."""
        if isinstance(axiom, Module):
            axiom = [axiom]
        return cls(modules=tuple(axiom), newness=np.ones(len(axiom), dtype=np.bool_))

    @property
    def size(self) -> int:
        return len(self.modules)

    @property
    def new_count(self) -> int:
        """Number of positions produced by the last evolution."""
        return int(np.count_nonzero(self.newness))

    def __len__(self) -> int:
        return len(self.modules)

    def __getitem__(self, index: int) -> Module:
        return self.modules[index]

    def __iter__(self) -> Iterator[Module]:
        return iter(self.modules)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GenerationState):
            return False
        return (self.modules == other.modules and
                np.array_equal(self.newness, other.newness))

    def __hash__(self) -> int:
        return hash((self.modules, self.newness.tobytes()))

    def kinds(self) -> List[str]:
        return [module.kind for module in self.modules]

    def to_string(self, mark_new: bool = False) -> str:
        """
        Concatenated module descriptions, e.g. "ABAAB".

        With mark_new, each new module is followed by "*".
        """
        if not mark_new:
            return "".join(module.description for module in self.modules)
        return "".join(
            f"{module.description}*" if new else module.description
            for module, new in zip(self.modules, self.newness)
        )

    def __repr__(self) -> str:
        return f"GenerationState(generation={self.generation}, modules='{self.to_string()}')"
