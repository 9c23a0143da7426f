"""
Read-only inspection of a generation's modules.

Wraps one position of a state with its newness flag and exposes the
module's declared attributes as display strings.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import PreconditionFailure
from .module import Module, format_attribute_value
from .state import GenerationState


@dataclass(frozen=True)
class ModuleInspection:
    """A module at a known index of a state, for debugging views."""
    module: Module
    index: int
    is_new: bool = False
    _attributes: dict = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_attributes", self.module.attributes())

    @property
    def attribute_names(self) -> List[str]:
        """Attribute names in sorted order."""
        return sorted(self._attributes)

    def value_of(self, attribute: str) -> Optional[str]:
        """Formatted attribute value, or None when the module has no such attribute."""
        if attribute not in self._attributes:
            return None
        return format_attribute_value(self._attributes[attribute])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModuleInspection):
            return False
        return self.index == other.index and self.module.description == other.module.description

    def __hash__(self) -> int:
        return hash((self.index, self.module.description))


def inspect_state(state: GenerationState, index: int) -> ModuleInspection:
    """
    Inspect the module at `index`.

    Callers validate 0 <= index < len(state) beforehand; anything else is a
    programming error and raises PreconditionFailure.
    """
    if not 0 <= index < len(state):
        raise PreconditionFailure(index, len(state))
    return ModuleInspection(
        module=state.modules[index],
        index=index,
        is_new=bool(state.newness[index]),
    )
