"""Built-in layout rules.

Importing this package registers every built-in rule on ``builtin_rules``.
"""

from layoutlint.rules.base import Rule, RuleMeta, SnapshotRule
from layoutlint.rules.registry import DEFAULT_NAMESPACE, RegisteredRule, RuleRegistry, RuleSetting, builtin_rules

# Rule modules register themselves on import
from layoutlint.rules import (  # noqa: F401  isort: skip
    clipped_content,
    container_overflow,
    corner_radius_coherence,
    hit_target_obscured,
    misalignment,
    overlapped_elements,
    space_misuse,
    text_overflow,
    text_proximity,
    text_ragged_lines,
    unexpected_scrollbar,
)

PRESETS = ('recommended', 'all')


def preset_rule_ids(preset: str, registry: RuleRegistry = builtin_rules) -> list[str]:
    """Rule ids enabled by a preset: 'recommended' or 'all'."""
    if preset == 'all':
        return registry.ids()
    if preset == 'recommended':
        return [rule.id for rule in registry.items() if rule.meta.recommended]
    raise ValueError(f'Unknown preset {preset!r}, expected one of {", ".join(PRESETS)}')


__all__ = [
    'DEFAULT_NAMESPACE',
    'PRESETS',
    'RegisteredRule',
    'Rule',
    'RuleMeta',
    'RuleRegistry',
    'RuleSetting',
    'SnapshotRule',
    'builtin_rules',
    'preset_rule_ids',
]
