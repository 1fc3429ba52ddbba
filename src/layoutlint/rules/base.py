"""Rule definition surface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, Field

from layoutlint.engine.views import Severity, ViolationReport

if TYPE_CHECKING:
    from layoutlint.dom.views import LayoutSnapshot
    from layoutlint.engine.evaluator import RuleContext


class RuleMeta(BaseModel):
    """Static description of a rule."""

    severity: Severity = Field(default='error', description='Severity used when the config says inherit')
    has_side_effects: bool = Field(
        default=False,
        description='The rule mutates the page, the engine resets the view after it runs',
    )
    description: str = ''
    recommended: bool = False


class Rule(ABC):
    """Base class for lint rules.

    Subclasses set ``name`` (the bare rule id, without namespace), ``meta`` and
    optionally ``options_model``, a pydantic model validating the options given
    in the config file. Rules without an options model accept no options.
    """

    name: ClassVar[str]
    meta: ClassVar[RuleMeta] = RuleMeta()
    options_model: ClassVar[type[BaseModel] | None] = None

    @abstractmethod
    async def run(self, context: RuleContext) -> None:
        """Inspect the page and report violations through ``context.report``."""


class SnapshotRule(Rule):
    """Rule implemented as a pure function over one layout snapshot."""

    async def run(self, context: RuleContext) -> None:
        snapshot = await context.snapshot()
        for violation in self.detect(snapshot, context.options):
            context.report(violation)

    @abstractmethod
    def detect(self, snapshot: LayoutSnapshot, options: Any) -> Iterable[ViolationReport]:
        """Yield violations found in the snapshot."""
