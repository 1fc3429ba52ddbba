"""Exception hierarchy for layoutlint.

Every error raised on purpose by the library derives from LayoutLintError so
callers (the CLI in particular) can tell a lint failure apart from a bug.
"""


class LayoutLintError(Exception):
    """Base class for all layoutlint errors."""


class ConfigError(LayoutLintError):
    """Invalid configuration file, rule options or command line override."""


class UnknownRuleError(ConfigError):
    """A rule id does not match any registered rule."""

    def __init__(self, rule_id: str, available: list[str]):
        self.rule_id = rule_id
        self.available = available
        listing = ', '.join(available) if available else '(none)'
        super().__init__(f"Unknown rule '{rule_id}'. Available rules: {listing}")


class AmbiguousRuleError(ConfigError):
    """A bare rule name matches rules from more than one namespace."""

    def __init__(self, rule_id: str, candidates: list[str]):
        self.rule_id = rule_id
        self.candidates = candidates
        super().__init__(f"Rule '{rule_id}' is ambiguous, did you mean one of: {', '.join(candidates)}")


class BrowserError(LayoutLintError):
    """Browser launch, connection, navigation or script evaluation failed."""


class ScopeResolutionError(LayoutLintError):
    """Scope selectors resolved to zero root elements."""


class FinderRuntimeMissingError(LayoutLintError):
    """The in-page selector runtime is not installed.

    Raised while resolving element locations. It means the page environment is
    broken, so the whole page visit is aborted instead of a single violation.
    """

    def __init__(self, url: str | None = None):
        self.url = url
        where = f' on {url}' if url else ''
        super().__init__(
            f'Selector finder runtime is missing{where}. '
            'Ensure it is injected before resolving element selectors.'
        )


class ReportOutsideRuleError(LayoutLintError):
    """report() was called while no rule run was active."""

    def __init__(self):
        super().__init__('report() called with no active rule')


class RuleExecutionError(LayoutLintError):
    """A rule raised while linting a page."""

    def __init__(self, url: str, rule_id: str, cause: BaseException):
        self.url = url
        self.rule_id = rule_id
        self.cause = cause
        super().__init__(f"Rule '{rule_id}' failed on {url}: {type(cause).__name__}: {cause}")
