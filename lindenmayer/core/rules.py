"""
Rewrite rules and grammars.

A rule matches a context window (left?, direct, right?) by module kind and,
on match, produces the modules that replace the direct module:

    A        -> [A, B]
    L < A    -> [B]        (fires only when the left neighbor is an L)
    A > R    -> [A, A]     (fires only when the right neighbor is an R)

Rules may also:
- carry a guard evaluated on the concrete matched instances
- receive a snapshot of the shared parameter value
- receive the seeded random source (stochastic productions)

A grammar is the ordered tuple of rules. Evaluation follows insertion order,
the first matching rule wins and no match means identity production.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Type

from .errors import ContractViolation
from .module import Module, ModuleSet
from .parameters import ParameterState
from .random_source import RandomSource

Producer = Callable[..., Any]
Guard = Callable[..., bool]


@dataclass(frozen=True)
class Rule:
    """
    Context-sensitive rewrite rule.

    Closures receive the matched instances in (left?, direct, right?) order,
    followed by the parameter snapshot when `uses_parameters` is set. The
    producer additionally receives the RandomSource when `uses_random` is set.

    Example:
        # Algae growth, A -> AB
        rule = Rule(direct=A, produces=lambda a: [A(), B()])

        # Grow only below an apex, with a parameterized length
        rule = Rule(
            direct=Internode,
            right=Apex,
            where=lambda internode, apex, params: internode.length < params["max"],
            produces=lambda internode, apex, params: [Internode(internode.length * 1.1)],
            uses_parameters=True,
        )
    """
    direct: Type[Module]
    produces: Producer
    left: Optional[Type[Module]] = None
    right: Optional[Type[Module]] = None
    where: Optional[Guard] = None
    uses_parameters: bool = False
    uses_random: bool = False
    name: str = ""

    def __post_init__(self):
        for side in ("left", "direct", "right"):
            spec = getattr(self, side)
            if spec is None:
                continue
            if not (isinstance(spec, type) and issubclass(spec, Module)):
                raise TypeError(f"{side} context must be a Module subclass, got {spec!r}")
        if not callable(self.produces):
            raise TypeError("produces must be callable")
        if self.where is not None and not callable(self.where):
            raise TypeError("where must be callable")
        if not self.name:
            object.__setattr__(self, "name", self.context_pattern)

    @property
    def context_pattern(self) -> str:
        """Matched kinds in L-system notation, e.g. "L < A > R"."""
        pattern = self.direct.kind
        if self.left is not None:
            pattern = f"{self.left.kind} < {pattern}"
        if self.right is not None:
            pattern = f"{pattern} > {self.right.kind}"
        return pattern

    @property
    def arity(self) -> int:
        """Number of module instances handed to the closures."""
        return 1 + (self.left is not None) + (self.right is not None)

    def matches(self, context: ModuleSet, parameters: Optional[ParameterState] = None) -> bool:
        """
        Check whether the rule applies to a context window.

        Kinds are tested first; a side the rule leaves open always passes,
        a side it requires fails when no neighbor exists. The guard runs only
        after every kind test succeeded.
        """
        if context.direct_kind != self.direct.kind:
            return False
        if self.left is not None and context.left_kind != self.left.kind:
            return False
        if self.right is not None and context.right_kind != self.right.kind:
            return False
        if self.where is None:
            return True

        args = list(self._instances(context))
        if self.uses_parameters:
            args.append(_snapshot(parameters))
        return bool(self.where(*args))

    def produce(
        self,
        context: ModuleSet,
        parameters: Optional[ParameterState] = None,
        random: Optional[RandomSource] = None,
    ) -> List[Module]:
        """
        Invoke the producer on a matched context.

        Returns the replacement modules in order. Raises ContractViolation
        when an instance does not downcast to the declared class or the
        producer returns something that is not a Module.
        """
        args = list(self._instances(context))
        if self.uses_parameters:
            args.append(_snapshot(parameters))
        if self.uses_random:
            if random is None:
                raise ValueError(f"Rule '{self.name}' requires a random source")
            args.append(random)

        produced = self.produces(*args)
        if isinstance(produced, Module):
            produced = [produced]
        result = list(produced)
        for module in result:
            if not isinstance(module, Module):
                raise ContractViolation(
                    module, f"Rule '{self.name}' produced a non-module value {module!r}"
                )
        return result

    def _instances(self, context: ModuleSet) -> Tuple[Module, ...]:
        """Downcast the matched window to the classes the rule declared."""
        pairs = []
        if self.left is not None:
            pairs.append((self.left, context.left))
        pairs.append((self.direct, context.direct))
        if self.right is not None:
            pairs.append((self.right, context.right))

        for expected, instance in pairs:
            if not isinstance(instance, expected):
                raise ContractViolation(instance)
        return tuple(instance for _, instance in pairs)

    def __repr__(self) -> str:
        extras = []
        if self.where is not None:
            extras.append("guarded")
        if self.uses_parameters:
            extras.append("params")
        if self.uses_random:
            extras.append("rng")
        suffix = f" w/ {', '.join(extras)}" if extras else ""
        return f"Rule('{self.name}': {self.context_pattern}{suffix})"


def _snapshot(parameters: Optional[ParameterState]) -> Any:
    return parameters.snapshot() if parameters is not None else None


@dataclass
class RuleMatch:
    """A rule that fired at a specific source position."""
    rule: Rule
    position: int
    produced: int = 0  # Number of modules the rule emitted


class Grammar:
    """
    Ordered, immutable collection of rules.

    Adding a rule returns a new Grammar; the original is untouched. Rules are
    indexed by direct kind so a lookup only scans candidates for the current
    module, still in insertion order.

    Example:
        grammar = Grammar().add(Rule(direct=A, produces=...))
        grammar = grammar.add(Rule(direct=B, produces=...))

        rule = grammar.find_rule(ModuleSet.at(modules, 0))
    """

    def __init__(self, rules: Optional[Iterable[Rule]] = None):
        self._rules: Tuple[Rule, ...] = tuple(rules) if rules else ()
        self._by_kind: Dict[str, List[Rule]] = {}
        for rule in self._rules:
            if not isinstance(rule, Rule):
                raise TypeError(f"Grammar accepts Rule instances, got {rule!r}")
            self._by_kind.setdefault(rule.direct.kind, []).append(rule)

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    def add(self, rule: Rule) -> "Grammar":
        """Return a new grammar with `rule` appended."""
        return Grammar(self._rules + (rule,))

    def extend(self, rules: Iterable[Rule]) -> "Grammar":
        """Return a new grammar with `rules` appended in order."""
        return Grammar(self._rules + tuple(rules))

    def candidates(self, kind: str) -> Sequence[Rule]:
        """Rules whose direct kind is `kind`, in insertion order."""
        return self._by_kind.get(kind, ())

    def find_rule(
        self,
        context: ModuleSet,
        parameters: Optional[ParameterState] = None,
    ) -> Optional[Rule]:
        """First rule matching the context, or None for identity production."""
        for rule in self.candidates(context.direct_kind):
            if rule.matches(context, parameters):
                return rule
        return None

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __repr__(self) -> str:
        return f"Grammar({len(self._rules)} rules)"
