"""Suppression of messages through ignore attributes in the page.

An element carrying ``data-layoutlint-ignore`` (on itself or an ancestor)
silences rules for that element. The attribute value is a whitespace or comma
separated list of rule ids; an empty value, ``all`` or ``*`` silences every
rule.
"""

from __future__ import annotations

import logging

from layoutlint.dom.scripts import IGNORED_SELECTORS_SCRIPT
from layoutlint.dom.service import PageLike
from layoutlint.engine.views import LintMessage

logger = logging.getLogger(__name__)

IGNORE_ATTRIBUTE = 'data-layoutlint-ignore'


def rule_id_aliases(rule_id: str) -> list[str]:
    """Ids an ignore attribute may use for a rule: the full id and the bare name."""
    bare = rule_id.split('/', 1)[-1]
    return [bare, rule_id] if bare != rule_id else [rule_id]


async def find_ignored_selectors(page: PageLike, rule_id: str, selectors: list[str]) -> set[str]:
    """Selectors whose element or one of its ancestors ignores rule_id.

    All selectors are checked with a single page query.
    """
    unique = list(dict.fromkeys(s for s in selectors if s))
    if not unique:
        return set()
    ignored = await page.evaluate(
        IGNORED_SELECTORS_SCRIPT,
        {'ruleIds': rule_id_aliases(rule_id), 'selectors': unique, 'attribute': IGNORE_ATTRIBUTE},
    )
    return set(ignored or [])


def partition_messages(messages: list[LintMessage], ignored: set[str]) -> tuple[list[LintMessage], list[LintMessage]]:
    """Split messages into (kept, suppressed) by their primary selector."""
    kept: list[LintMessage] = []
    suppressed: list[LintMessage] = []
    for message in messages:
        selector = message.location.element.selector
        if selector and selector in ignored:
            suppressed.append(message)
        else:
            kept.append(message)
    if suppressed:
        logger.debug(f'Suppressed {len(suppressed)} message(s) for {messages[0].rule_id}')
    return kept, suppressed
