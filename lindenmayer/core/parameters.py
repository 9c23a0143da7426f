"""
Shared parameter value threaded through rule evaluation.

The value lives in a single handle created with the L-system. Rules read a
deep-copied snapshot per call, so mutating a snapshot never leaks back.
Replacing the value through `update` is visible to every later call, in the
same generation or a later one (last write wins, no isolation per position).
"""

from __future__ import annotations
from typing import Any, Generic, Tuple, TypeVar
import copy

P = TypeVar("P")


class ParameterState(Generic[P]):
    """
    Reference handle around one parameter value.

    Example:
        params = ParameterState({"angle": 25.0})
        params.update({"angle": 30.0})
        params.snapshot()["angle"]  # 30.0
    """

    def __init__(self, value: P = None):
        self._value = value
        self._initial = copy.deepcopy(value)
        self._revision = 0

    @property
    def revision(self) -> int:
        """Number of replacements since construction or the last reset."""
        return self._revision

    def snapshot(self) -> P:
        """Independent copy of the current value."""
        return copy.deepcopy(self._value)

    def update(self, value: P) -> None:
        """Replace the current value."""
        self._value = value
        self._revision += 1

    def get_state(self) -> Tuple[P, int]:
        """Copy of the current value and its revision."""
        return copy.deepcopy(self._value), self._revision

    def set_state(self, state: Tuple[P, int]) -> None:
        value, revision = state
        self._value = copy.deepcopy(value)
        self._revision = revision

    def reset(self) -> None:
        """Restore the value the handle was created with."""
        self._value = copy.deepcopy(self._initial)
        self._revision = 0

    def __repr__(self) -> str:
        return f"ParameterState({self._value!r}, revision={self._revision})"


def as_parameter_state(value: Any) -> ParameterState:
    """Wrap a raw value, passing existing handles through."""
    if isinstance(value, ParameterState):
        return value
    return ParameterState(value)
