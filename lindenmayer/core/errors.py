"""
Exceptions raised by the rewriting engine.

Two failure classes exist and neither is retryable:
- ContractViolation: a rule matched a module by kind, but the instance is not
  of the concrete class the rule was declared against (grammar bug)
- PreconditionFailure: diagnostic access outside the bounds of a state
"""

from __future__ import annotations
from typing import Any


class ContractViolation(TypeError):
    """Raised when a matched module cannot be downcast to the rule's class."""

    def __init__(self, module: Any, message: str = ""):
        self.module = module
        description = getattr(module, "description", repr(module))
        super().__init__(message or f"Downcasting failure on module {description}")


class PreconditionFailure(IndexError):
    """Raised on out-of-range diagnostic access into a generation."""

    def __init__(self, index: int, length: int):
        self.index = index
        self.length = length
        super().__init__(f"Index {index} out of bounds [0, {length})")
