"""Views and models for lint results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from layoutlint.dom.views import ElementNode

Severity = Literal['off', 'info', 'warn', 'error']
ReportedSeverity = Literal['info', 'warn', 'error']
SeveritySetting = Literal['inherit', 'off', 'info', 'warn', 'error']

SEVERITY_ORDER: dict[str, int] = {'error': 0, 'warn': 1, 'info': 2}


# ============================================================================
# Violations, produced by detectors during a rule run
# ============================================================================


@dataclass(slots=True)
class RelationReport:
    """A second element that explains a violation."""

    description: str
    element: ElementNode


@dataclass(slots=True)
class ViolationReport:
    """One defect found by a detector.

    Holds live snapshot nodes, so it must not outlive the rule run that
    produced it; the engine turns it into a LintMessage.
    """

    message: str
    element: ElementNode
    relations: list[RelationReport] = field(default_factory=list)


# ============================================================================
# Results, free of any reference to the page
# ============================================================================


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ElementDescriptor(_WireModel):
    """Identity of an element as shown to the user."""

    tag_name: str = Field(alias='tagName')
    id: str = ''
    classes: list[str] = Field(default_factory=list)
    selector: str = ''


class Location(_WireModel):
    element: ElementDescriptor


class Relation(_WireModel):
    description: str
    location: Location


class LintMessage(_WireModel):
    """A violation with its resolved location and configured severity."""

    rule_id: str = Field(alias='ruleId')
    severity: ReportedSeverity
    message: str
    location: Location
    relations: list[Relation] = Field(default_factory=list)


class LintResult(_WireModel):
    """Outcome of linting one target.

    Counts are derived from messages only, suppressed messages never count.
    """

    url: str
    target_id: str | None = Field(default=None, alias='targetId')
    messages: list[LintMessage] = Field(default_factory=list)
    suppressed_messages: list[LintMessage] = Field(default_factory=list, alias='suppressedMessages')
    error_count: int = Field(default=0, alias='errorCount')
    warning_count: int = Field(default=0, alias='warningCount')
    info_count: int = Field(default=0, alias='infoCount')
    recommend_count: int = Field(default=0, alias='recommendCount')

    @classmethod
    def build(
        cls,
        url: str,
        messages: list[LintMessage],
        suppressed_messages: list[LintMessage],
        target_id: str | None = None,
    ) -> LintResult:
        error_count = sum(1 for m in messages if m.severity == 'error')
        warning_count = sum(1 for m in messages if m.severity == 'warn')
        info_count = sum(1 for m in messages if m.severity == 'info')
        return cls(
            url=url,
            target_id=target_id,
            messages=messages,
            suppressed_messages=suppressed_messages,
            error_count=error_count,
            warning_count=warning_count,
            info_count=info_count,
            recommend_count=info_count,
        )
