"""The surface a rule sees while it runs."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from pydantic import BaseModel

from layoutlint.dom.service import DomSnapshotService, PageLike
from layoutlint.dom.views import LayoutSnapshot
from layoutlint.engine.scope import Scope
from layoutlint.engine.views import Severity, ViolationReport
from layoutlint.exceptions import ReportOutsideRuleError

logger = logging.getLogger(__name__)


class ReportChannel:
    """Routes report() calls into the buffer of the rule currently running.

    Only one buffer is active at a time. Reporting while none is active is a
    programming error and raises ReportOutsideRuleError.
    """

    def __init__(self):
        self._buffer: list[ViolationReport] | None = None
        self._severity: Severity = 'off'

    @property
    def active(self) -> bool:
        return self._buffer is not None

    @contextmanager
    def open(self, severity: Severity) -> Iterator[list[ViolationReport]]:
        if self._buffer is not None:
            raise RuntimeError('A rule is already running on this page')
        buffer: list[ViolationReport] = []
        self._buffer = buffer
        self._severity = severity
        try:
            yield buffer
        finally:
            self._buffer = None
            self._severity = 'off'

    def report(self, violation: ViolationReport) -> None:
        if self._buffer is None:
            raise ReportOutsideRuleError()
        if self._severity == 'off':
            return
        self._buffer.append(violation)


class RuleContext:
    """Handed to Rule.run.

    Attributes:
        page: The live page.
        scope: Scope roots for this run.
        options: Validated rule options, or None.
        rule_id: Fully qualified id of the running rule.
    """

    def __init__(
        self,
        page: PageLike,
        scope: Scope,
        channel: ReportChannel,
        rule_id: str,
        options: BaseModel | None = None,
        snapshots: DomSnapshotService | None = None,
    ):
        self.page = page
        self.scope = scope
        self.rule_id = rule_id
        self.options = options
        self._channel = channel
        self._snapshots = snapshots or DomSnapshotService(page)
        self._snapshot: LayoutSnapshot | None = None
        self.tokens: list[str] = []

    def report(self, violation: ViolationReport) -> None:
        self._channel.report(violation)

    async def evaluate(self, page_function: str, arg: Any = None) -> Any:
        return await self.page.evaluate(page_function, arg)

    async def snapshot(self, refresh: bool = False) -> LayoutSnapshot:
        """Layout snapshot of the page, captured once per rule run unless refresh is set."""
        if self._snapshot is None or refresh:
            self._snapshot = await self._snapshots.capture()
            self.tokens.append(self._snapshot.token)
        return self._snapshot

    async def hit_test(self, snapshot: LayoutSnapshot, points: list[tuple[float, float]]) -> list[list[int]]:
        return await self._snapshots.hit_test(snapshot, points)

    async def dispose_snapshots(self) -> None:
        for token in self.tokens:
            await self._snapshots.dispose(token)
        self.tokens.clear()
        self._snapshot = None
