"""Human readable output, grouped per target."""

from rich.console import Console
from rich.table import Table
from rich.text import Text

from layoutlint.engine.views import SEVERITY_ORDER, ElementDescriptor, LintResult

MAX_CLASSES = 4

SEVERITY_STYLES = {
    'error': 'bold red',
    'warn': 'yellow',
    'info': 'blue',
}


def element_label(element: ElementDescriptor) -> str:
    """Short identity like ``div#main.card.wide``, at most four classes."""
    label = element.tag_name
    if element.id:
        label += f'#{element.id}'
    for class_name in element.classes[:MAX_CLASSES]:
        label += f'.{class_name}'
    return label


def _element_text(element: ElementDescriptor) -> Text:
    text = Text(element_label(element), style='cyan')
    if element.selector and element.selector != element_label(element):
        text.append(f' {element.selector}', style='dim')
    return text


def _plural(count: int, word: str) -> str:
    return f'{count} {word}' if count == 1 else f'{count} {word}s'


def summary_line(results: list[LintResult]) -> str:
    errors = sum(r.error_count for r in results)
    warnings = sum(r.warning_count for r in results)
    infos = sum(r.info_count for r in results)
    total = errors + warnings + infos
    if total == 0:
        return '0 problems'
    parts = [_plural(errors, 'error'), _plural(warnings, 'warning')]
    if infos:
        parts.append(_plural(infos, 'info'))
    return f'{_plural(total, "problem")} ({", ".join(parts)})'


def render_stylish(results: list[LintResult], console: Console) -> None:
    """Print one table per target with messages, then a summary line."""
    for result in results:
        if not result.messages:
            continue

        console.print(Text(result.url, style='underline'))
        table = Table(box=None, show_header=False, pad_edge=False, padding=(0, 2, 0, 0))
        table.add_column('severity', no_wrap=True)
        table.add_column('rule', style='dim', no_wrap=True)
        table.add_column('message')

        messages = sorted(result.messages, key=lambda m: SEVERITY_ORDER[m.severity])
        for message in messages:
            detail = Text(message.message)
            detail.append('\n')
            detail.append_text(_element_text(message.location.element))
            for relation in message.relations:
                detail.append(f'\n  {relation.description}: ', style='dim')
                detail.append_text(_element_text(relation.location.element))
            table.add_row(Text(message.severity, style=SEVERITY_STYLES[message.severity]), message.rule_id, detail)

        console.print(table)
        console.print()

    has_errors = any(r.error_count for r in results)
    style = 'bold red' if has_errors else ('yellow' if any(r.warning_count for r in results) else 'green')
    console.print(Text(summary_line(results), style=style))
