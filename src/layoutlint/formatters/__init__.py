"""Output formats for lint results."""

from rich.console import Console

from layoutlint.engine.views import LintResult
from layoutlint.formatters.json_formatter import format_json
from layoutlint.formatters.stylish import element_label, render_stylish, summary_line

FORMATS = ('stylish', 'json')


def emit(results: list[LintResult], output_format: str, console: Console) -> None:
    """Write results to console in the requested format."""
    if output_format == 'json':
        console.out(format_json(results), highlight=False)
    elif output_format == 'stylish':
        render_stylish(results, console)
    else:
        raise ValueError(f'Unknown output format: {output_format}')


__all__ = ['FORMATS', 'element_label', 'emit', 'format_json', 'render_stylish', 'summary_line']
