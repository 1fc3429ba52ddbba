"""Lint engine: runs the enabled rules against pages and collects results."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Awaitable, Callable

from layoutlint.dom.scripts import CAPTURE_SCROLL_SCRIPT, RESTORE_SCROLL_SCRIPT
from layoutlint.dom.service import DomSnapshotService, PageLike
from layoutlint.dom.views import ElementNode
from layoutlint.engine.evaluator import ReportChannel, RuleContext
from layoutlint.engine.finder import LocationResolver, ensure_finder
from layoutlint.engine.scope import Scope
from layoutlint.engine.suppression import find_ignored_selectors, partition_messages
from layoutlint.engine.targets import Target
from layoutlint.engine.views import LintMessage, LintResult, Location, Relation, ViolationReport
from layoutlint.exceptions import ReportOutsideRuleError, RuleExecutionError
from layoutlint.rules import Rule, RuleRegistry, RuleSetting, builtin_rules

if TYPE_CHECKING:
    from layoutlint.browser.session import BrowserSession

logger = logging.getLogger(__name__)


class LintEngine:
    """Runs rules one at a time against a page.

    For every enabled rule, in rule id order, the engine opens a report
    buffer, runs the rule, resolves the locations of what it reported,
    applies ignore attributes and restores the scroll position. A rule with
    side effects is followed by a reset of the view and a fresh scope.

    Example:
        >>> engine = LintEngine(rules=resolve_rule_settings(config), session=session)
        >>> results = await engine.lint_targets([Target(url='http://localhost:3000')])
    """

    def __init__(
        self,
        rules: list[RuleSetting],
        session: BrowserSession | None = None,
        registry: RuleRegistry = builtin_rules,
        max_concurrency: int = 1,
    ):
        if max_concurrency < 1:
            raise ValueError('max_concurrency must be at least 1')
        self.rules = rules
        self.session = session
        self.registry = registry
        self.max_concurrency = max_concurrency

    @property
    def enabled_rules(self) -> list[RuleSetting]:
        return sorted((s for s in self.rules if s.severity != 'off'), key=lambda s: s.id)

    async def lint_page(
        self,
        page: PageLike,
        url: str,
        scope_selectors: list[str] | None = None,
        reset: Callable[[], Awaitable[None]] | None = None,
        target_id: str | None = None,
    ) -> LintResult:
        """Lint an already loaded page.

        Args:
            page: The page to inspect.
            url: Reported in the result and in errors.
            scope_selectors: Root selectors, the document body when empty.
            reset: Reloads the page after a rule with side effects.
            target_id: Reported in the result.

        Raises:
            ScopeResolutionError: The scope matched no element.
            RuleExecutionError: A rule raised.
            FinderRuntimeMissingError: Locations could not be resolved.
        """
        start = time.time()
        await ensure_finder(page)
        scope = await Scope.resolve(page, scope_selectors)
        channel = ReportChannel()
        snapshots = DomSnapshotService(page, logger)
        resolver = LocationResolver(page, url)

        messages: list[LintMessage] = []
        suppressed_messages: list[LintMessage] = []
        try:
            for setting in self.enabled_rules:
                registered = self.registry.get(setting.id)
                context = RuleContext(page, scope, channel, registered.id, setting.options, snapshots)
                kept, suppressed = await self._run_rule(
                    page, url, registered.create(), setting, context, channel, resolver
                )
                messages.extend(kept)
                suppressed_messages.extend(suppressed)

                if registered.meta.has_side_effects:
                    scope = await self._reset_view(page, scope, reset)
        finally:
            await scope.dispose()

        result = LintResult.build(url, messages, suppressed_messages, target_id=target_id)
        logger.info(
            f'Linted {url} in {time.time() - start:.2f}s: '
            f'{result.error_count} error(s), {result.warning_count} warning(s), {len(suppressed_messages)} suppressed'
        )
        return result

    async def _run_rule(
        self,
        page: PageLike,
        url: str,
        rule: Rule,
        setting: RuleSetting,
        context: RuleContext,
        channel: ReportChannel,
        resolver: LocationResolver,
    ) -> tuple[list[LintMessage], list[LintMessage]]:
        rule_id = context.rule_id
        scroll = await page.evaluate(CAPTURE_SCROLL_SCRIPT)
        logger.debug(f'Running rule {rule_id} on {url}')
        try:
            with channel.open(setting.severity) as buffer:
                try:
                    await rule.run(context)
                except ReportOutsideRuleError:
                    raise
                except Exception as e:
                    raise RuleExecutionError(url, rule_id, e) from e

            rule_messages = await self._to_messages(resolver, rule_id, setting, buffer)
            ignored = await find_ignored_selectors(page, rule_id, [m.location.element.selector for m in rule_messages])
            kept, suppressed = partition_messages(rule_messages, ignored)
        finally:
            await context.dispose_snapshots()
            if scroll is not None:
                await page.evaluate(RESTORE_SCROLL_SCRIPT, scroll)

        logger.debug(f'Finished rule {rule_id}: {len(kept)} message(s), {len(suppressed)} suppressed')
        return kept, suppressed

    async def _to_messages(
        self,
        resolver: LocationResolver,
        rule_id: str,
        setting: RuleSetting,
        violations: list[ViolationReport],
    ) -> list[LintMessage]:
        if not violations:
            return []

        nodes: list[ElementNode] = []
        for violation in violations:
            nodes.append(violation.element)
            nodes.extend(relation.element for relation in violation.relations)
        descriptors = iter(await resolver.resolve(nodes))

        messages = []
        for violation in violations:
            location = Location(element=next(descriptors))
            relations = [
                Relation(description=relation.description, location=Location(element=next(descriptors)))
                for relation in violation.relations
            ]
            messages.append(
                LintMessage(
                    rule_id=rule_id,
                    severity=setting.severity,
                    message=violation.message,
                    location=location,
                    relations=relations,
                )
            )
        return messages

    async def _reset_view(self, page: PageLike, scope: Scope, reset: Callable[[], Awaitable[None]] | None) -> Scope:
        await scope.dispose()
        if reset is None:
            logger.warning('Rule with side effects ran on a page without a reset hook, later rules see its changes')
        else:
            await reset()
            await ensure_finder(page)
        return await Scope.resolve(page, scope.selectors)

    async def lint_target(self, target: Target) -> LintResult:
        """Load a target in a new page, lint it, and close the page."""
        if self.session is None:
            raise RuntimeError('LintEngine needs a BrowserSession to lint targets')
        instance = await target.view().setup(self.session, target)
        try:
            return await self.lint_page(
                instance.page,
                target.display_url,
                scope_selectors=target.scope,
                reset=instance.reset,
                target_id=target.id,
            )
        finally:
            await instance.close()

    async def lint_targets(self, targets: list[Target]) -> list[LintResult]:
        """Lint targets, at most max_concurrency at a time. Results keep the order of targets."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _lint(target: Target) -> LintResult:
            async with semaphore:
                return await self.lint_target(target)

        return list(await asyncio.gather(*(_lint(target) for target in targets)))
