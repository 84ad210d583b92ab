"""Registry of the checks run against each claim."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from .models import RuleContext, ValidationError

RuleCallable = Callable[[RuleContext], list[ValidationError]]


def rule_name(rule: RuleCallable) -> str:
    return getattr(rule, "__name__", repr(rule))


class RuleRegistry:
    """Ordered collection of claim checks keyed by function name.

    Checks run in registration order. A check can be switched off by name
    without unregistering it, e.g. to run the medical checks alone.
    """

    def __init__(self) -> None:
        self._rules: dict[str, RuleCallable] = {}
        self._disabled: set[str] = set()

    def register(self, rule: RuleCallable) -> None:
        self._rules.setdefault(rule_name(rule), rule)

    def extend(self, rules: Iterable[RuleCallable]) -> None:
        for rule in rules:
            self.register(rule)

    def disable(self, name: str) -> None:
        if name not in self._rules:
            raise KeyError(f"Unknown rule: {name}")
        self._disabled.add(name)

    def enable(self, name: str) -> None:
        self._disabled.discard(name)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._rules)

    def active_rules(self) -> tuple[RuleCallable, ...]:
        return tuple(
            rule for name, rule in self._rules.items() if name not in self._disabled
        )

    def __len__(self) -> int:
        return len(self._rules)

