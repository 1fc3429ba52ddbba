"""Rule registry and rule id resolution."""

from __future__ import annotations

import logging
from typing import TypeVar

from pydantic import BaseModel, ConfigDict

from layoutlint.engine.views import Severity
from layoutlint.exceptions import AmbiguousRuleError, UnknownRuleError
from layoutlint.rules.base import Rule

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = 'layout'

RuleT = TypeVar('RuleT', bound=type[Rule])


class RegisteredRule(BaseModel):
    """A rule class bound to its fully qualified id."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    id: str
    rule_class: type[Rule]

    @property
    def name(self) -> str:
        return self.rule_class.name

    @property
    def meta(self):
        return self.rule_class.meta

    def create(self) -> Rule:
        return self.rule_class()


class RuleSetting(BaseModel):
    """A rule enabled for a lint run, with its effective severity and options."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    id: str
    severity: Severity
    options: BaseModel | None = None


class RuleRegistry:
    """Maps fully qualified rule ids ("namespace/name") to rule classes.

    Example:
        >>> registry = RuleRegistry()
        >>> @registry.register
        ... class MyRule(SnapshotRule):
        ...     name = 'my-rule'
        >>> registry.resolve_rule_id('my-rule')
        'layout/my-rule'
    """

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        self.namespace = namespace
        self._rules: dict[str, RegisteredRule] = {}

    def register(self, rule_class: RuleT) -> RuleT:
        """Class decorator adding a rule under this registry's namespace."""
        rule_id = f'{self.namespace}/{rule_class.name}'
        if rule_id in self._rules:
            raise ValueError(f'Rule {rule_id} is already registered')
        self._rules[rule_id] = RegisteredRule(id=rule_id, rule_class=rule_class)
        logger.debug(f'Registered rule {rule_id}')
        return rule_class

    def merge(self, other: RuleRegistry) -> None:
        """Add every rule of another registry, keeping its namespace."""
        for rule_id, registered in other._rules.items():
            if rule_id in self._rules:
                raise ValueError(f'Rule {rule_id} is already registered')
            self._rules[rule_id] = registered

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def ids(self) -> list[str]:
        return sorted(self._rules)

    def get(self, rule_id: str) -> RegisteredRule:
        return self._rules[self.resolve_rule_id(rule_id)]

    def items(self) -> list[RegisteredRule]:
        return [self._rules[rule_id] for rule_id in self.ids()]

    def resolve_rule_id(self, rule_id: str) -> str:
        """Turn a full or bare rule id into a registered full id.

        Raises:
            UnknownRuleError: Nothing matches.
            AmbiguousRuleError: A bare name matches rules in several namespaces.
        """
        rule_id = rule_id.strip()
        if rule_id in self._rules:
            return rule_id
        if '/' not in rule_id:
            matches = [full for full in self.ids() if full.split('/', 1)[1] == rule_id]
            if len(matches) == 1:
                return matches[0]
            if len(matches) > 1:
                raise AmbiguousRuleError(rule_id, matches)
        raise UnknownRuleError(rule_id, self.ids())


# Populated by the rule modules imported from layoutlint.rules
builtin_rules = RuleRegistry()
