"""JSON output: one object per target, keys as in the result models' aliases."""

import json

from layoutlint.engine.views import LintResult


def format_json(results: list[LintResult], indent: int | None = 2) -> str:
    return json.dumps([result.model_dump(mode='json', by_alias=True) for result in results], indent=indent)
