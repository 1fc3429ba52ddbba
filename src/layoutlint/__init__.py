"""layoutlint - find layout defects in rendered web pages."""

__version__ = "0.1.0"

from layoutlint.engine.views import LintMessage, LintResult  # noqa: E402
from layoutlint.rules import Rule, RuleMeta, RuleRegistry, SnapshotRule, builtin_rules  # noqa: E402
from layoutlint.engine.service import LintEngine  # noqa: E402
from layoutlint.engine.targets import Target  # noqa: E402
from layoutlint.browser.profile import BrowserProfile  # noqa: E402
from layoutlint.browser.session import BrowserSession  # noqa: E402
from layoutlint.config import CONFIG, ConfigFile, load_config_file, resolve_rule_settings  # noqa: E402

__all__ = [
    "__version__",
    "BrowserProfile",
    "BrowserSession",
    "CONFIG",
    "ConfigFile",
    "LintEngine",
    "LintMessage",
    "LintResult",
    "Rule",
    "RuleMeta",
    "RuleRegistry",
    "SnapshotRule",
    "Target",
    "builtin_rules",
    "load_config_file",
    "resolve_rule_settings",
]
