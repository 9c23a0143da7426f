"""
Module representation for L-system states.

A module is one typed symbol in the state sequence:
    [A | B | A | A | B]

Each module class carries:
- kind: stable type tag used for rule matching (defaults to the class name)
- name: short display label (may be empty, falls back to kind)
- render_commands: commands a downstream renderer reads; never executed here
- debug attributes: ordered (name, accessor) pairs used only for inspection

Modules are value types. Subclasses are frozen dataclasses:

    @dataclass(frozen=True)
    class Internode(Module):
        name: ClassVar[str] = "I"
        length: float = 1.0
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from operator import attrgetter
from typing import Any, Callable, ClassVar, Dict, Optional, Sequence, Tuple
import math
import numbers


# Bookkeeping fields never listed as attributes
HIDDEN_ATTRIBUTES = frozenset({"name"})

Accessor = Callable[["Module"], Any]


@dataclass(frozen=True)
class Module:
    """
    Base class for every symbol in an L-system state.

    Matching compares `kind` only; a rule that matched by kind still checks
    the concrete class before handing the instance to its closures.
    """
    kind: ClassVar[str] = "Module"
    name: ClassVar[str] = ""
    render_commands: ClassVar[Tuple[Any, ...]] = ()
    debug_attributes: ClassVar[Optional[Sequence[str]]] = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if "kind" not in cls.__dict__:
            cls.kind = cls.__name__

    @property
    def description(self) -> str:
        """Display label: the name if set, otherwise the kind."""
        return self.name if self.name else self.kind

    def __str__(self) -> str:
        return self.description

    @classmethod
    def attribute_accessors(cls) -> Tuple[Tuple[str, Accessor], ...]:
        """
        Ordered (name, accessor) pairs exposed for inspection.

        Uses `debug_attributes` when the class declares it, otherwise the
        dataclass fields in declaration order.
        """
        names = cls.debug_attributes
        if names is None:
            names = [f.name for f in fields(cls)]
        return tuple(
            (attr, attrgetter(attr)) for attr in names
            if attr not in HIDDEN_ATTRIBUTES
        )

    def attributes(self) -> Dict[str, Any]:
        """Raw attribute values keyed by name, in declaration order."""
        return {attr: accessor(self) for attr, accessor in self.attribute_accessors()}


def format_attribute_value(value: Any) -> str:
    """
    Render an attribute value for display.

    Numbers keep 1-2 integer digits and 0-3 fraction digits:
        3.14159 -> "3.142", 45.0 -> "45", 123.5 -> "23.5", 1234 -> "34"
    Everything else passes through str().
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return str(value)
    if isinstance(value, numbers.Integral):
        integer = int(value)
        sign = "-" if integer < 0 else ""
        return f"{sign}{abs(integer) % 100}"

    number = float(value)
    if not math.isfinite(number):
        return str(value)

    rounded = round(number, 3)
    sign = "-" if rounded < 0 else ""
    integer_part, fraction_part = f"{abs(rounded):.3f}".split(".")
    integer_part = str(int(integer_part) % 100)
    fraction_part = fraction_part.rstrip("0")
    if fraction_part:
        return f"{sign}{integer_part}.{fraction_part}"
    return f"{sign}{integer_part}"


@dataclass(frozen=True)
class ModuleSet:
    """
    Context window (left?, direct, right?) around one position of a state.

    Missing neighbors at the sequence boundaries are None.
    """
    direct: Module
    left: Optional[Module] = None
    right: Optional[Module] = None

    @property
    def direct_kind(self) -> str:
        return self.direct.kind

    @property
    def left_kind(self) -> Optional[str]:
        return self.left.kind if self.left is not None else None

    @property
    def right_kind(self) -> Optional[str]:
        return self.right.kind if self.right is not None else None

    @classmethod
    def at(cls, modules: Sequence[Module], index: int) -> "ModuleSet":
        """Build the window for position `index` of `modules`."""
        left = modules[index - 1] if index > 0 else None
        right = modules[index + 1] if index < len(modules) - 1 else None
        return cls(direct=modules[index], left=left, right=right)

    def __repr__(self) -> str:
        left = self.left.description if self.left is not None else "_"
        right = self.right.description if self.right is not None else "_"
        return f"ModuleSet({left} < {self.direct.description} > {right})"
