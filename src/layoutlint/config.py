"""Configuration: environment settings and the layoutlint.json config file."""

import json
import logging
from functools import cache
from pathlib import Path
from typing import Any, Literal, Union

import psutil
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from layoutlint.browser.profile import BrowserProfile
from layoutlint.engine.targets import Target
from layoutlint.engine.views import SeveritySetting
from layoutlint.exceptions import ConfigError
from layoutlint.rules import RuleRegistry, RuleSetting, builtin_rules, preset_rule_ids

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = 'layoutlint.json'


@cache
def is_running_in_docker() -> bool:
    """Detect if we are running in a docker container.

    Used for chrome launch flags (sandbox, dev shm usage).
    """
    try:
        if Path('/.dockerenv').exists():
            return True
        cgroup_path = Path('/proc/1/cgroup')
        if cgroup_path.exists() and 'docker' in cgroup_path.read_text().lower():
            return True
    except OSError:
        pass

    try:
        # if init proc (PID 1) looks like python/uv/an app then we're in a container
        init_cmd = ' '.join(psutil.Process(1).cmdline())
        if ('py' in init_cmd) or ('uv' in init_cmd) or ('app' in init_cmd):
            return True
    except (psutil.Error, OSError):
        pass

    try:
        # fewer than 10 running procs is almost certainly a container
        if len(psutil.pids()) < 10:
            return True
    except (psutil.Error, OSError):
        pass

    return False


class EnvConfig(BaseSettings):
    """Environment variable configuration using pydantic-settings."""

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        env_ignore_empty=True,
        case_sensitive=True,
        extra='allow',
    )

    # Logging
    LAYOUTLINT_LOGGING_LEVEL: str = Field(default='warning')
    CDP_LOGGING_LEVEL: str = Field(default='WARNING')

    # Config file
    LAYOUTLINT_CONFIG_PATH: str | None = Field(default=None)

    # Browser
    LAYOUTLINT_HEADLESS: bool | None = Field(default=None)
    LAYOUTLINT_CHROME_PATH: str | None = Field(default=None)
    LAYOUTLINT_DEBUG_PORT: int | None = Field(default=None, ge=1, le=65535)

    # Runtime hints
    IN_DOCKER: bool | None = Field(default=None)


class Config:
    """Configuration read from the environment.

    Every property builds a fresh EnvConfig, so changes to the environment
    are picked up on the next access.
    """

    _instance: 'Config | None' = None

    def __new__(cls) -> 'Config':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def _env(self) -> EnvConfig:
        try:
            return EnvConfig()
        except ValidationError as e:
            raise ConfigError(f'Invalid environment settings: {e}') from e

    @property
    def LAYOUTLINT_LOGGING_LEVEL(self) -> str:
        return self._env().LAYOUTLINT_LOGGING_LEVEL.lower()

    @property
    def CDP_LOGGING_LEVEL(self) -> str:
        return self._env().CDP_LOGGING_LEVEL.upper()

    @property
    def LAYOUTLINT_CONFIG_PATH(self) -> Path | None:
        value = self._env().LAYOUTLINT_CONFIG_PATH
        return Path(value).expanduser() if value else None

    @property
    def LAYOUTLINT_HEADLESS(self) -> bool | None:
        return self._env().LAYOUTLINT_HEADLESS

    @property
    def LAYOUTLINT_CHROME_PATH(self) -> str | None:
        return self._env().LAYOUTLINT_CHROME_PATH

    @property
    def LAYOUTLINT_DEBUG_PORT(self) -> int | None:
        return self._env().LAYOUTLINT_DEBUG_PORT

    # Runtime hints
    @property
    def IN_DOCKER(self) -> bool:
        """IN_DOCKER when set, otherwise detected."""
        value = self._env().IN_DOCKER
        return is_running_in_docker() if value is None else value


CONFIG = Config()


# ============================================================================
# Config file
# ============================================================================

RuleEntry = Union[SeveritySetting, tuple[SeveritySetting, dict[str, Any]]]


class TargetEntry(BaseModel):
    """One page to lint, as written in the config file."""

    model_config = ConfigDict(extra='forbid')

    id: str | None = None
    url: str | None = None
    html: str | None = None
    scope: str | list[str] | None = Field(
        default=None,
        description='Name of an entry in "scopes", or a list of CSS selectors',
    )
    browser: dict[str, Any] = Field(default_factory=dict, description='BrowserProfile overrides')

    @model_validator(mode='after')
    def _one_source(self) -> 'TargetEntry':
        if (self.url is None) == (self.html is None):
            raise ValueError('a target needs exactly one of "url" or "html"')
        return self


class ConfigFile(BaseModel):
    """Contents of layoutlint.json.

    Example:
        {
          "preset": "recommended",
          "rules": {"misalignment": "warn", "text-ragged-lines": ["info", {"last_line_ratio": 0.4}]},
          "browser": {"viewport": {"width": 1440, "height": 900}},
          "scopes": {"main": ["main", "#app"]},
          "targets": [{"url": "http://localhost:3000", "scope": "main"}]
        }
    """

    model_config = ConfigDict(extra='forbid')

    preset: Literal['recommended', 'all'] | None = 'recommended'
    rules: dict[str, RuleEntry] = Field(default_factory=dict)
    browser: dict[str, Any] = Field(default_factory=dict)
    scopes: dict[str, list[str]] = Field(default_factory=dict)
    targets: list[TargetEntry] = Field(default_factory=list)

    def scope_selectors(self, scope: str | list[str] | None) -> list[str]:
        """Selectors for a target scope, resolving named scopes."""
        if scope is None:
            return []
        if isinstance(scope, list):
            return scope
        if scope not in self.scopes:
            raise ConfigError(f"Unknown scope '{scope}'. Defined scopes: {', '.join(sorted(self.scopes)) or '(none)'}")
        return self.scopes[scope]

    def browser_profile(self) -> BrowserProfile:
        """Profile from the "browser" section with environment overrides applied."""
        values = dict(self.browser)
        if CONFIG.LAYOUTLINT_HEADLESS is not None:
            values['headless'] = CONFIG.LAYOUTLINT_HEADLESS
        if CONFIG.LAYOUTLINT_DEBUG_PORT is not None:
            values['debug_port'] = CONFIG.LAYOUTLINT_DEBUG_PORT
        try:
            return BrowserProfile.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f'Invalid "browser" settings: {e}') from e

    def build_targets(self, urls: tuple[str, ...] = (), scope: tuple[str, ...] = ()) -> list[Target]:
        """Targets for a run.

        URLs given on the command line replace the configured targets. A
        command line scope replaces every target's own scope.
        """
        if urls:
            return [Target(url=url, scope=list(scope)) for url in urls]
        return [
            Target(
                id=entry.id,
                url=entry.url,
                html=entry.html,
                scope=list(scope) or self.scope_selectors(entry.scope),
                browser=entry.browser,
            )
            for entry in self.targets
        ]


def find_config_file(start: Path | None = None) -> Path | None:
    """Nearest layoutlint.json in start or one of its parents."""
    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: Path | None = None) -> ConfigFile:
    """Load and validate a config file.

    Without a path, LAYOUTLINT_CONFIG_PATH is used, then the nearest
    layoutlint.json. When none exists the defaults apply.

    Raises:
        ConfigError: The file cannot be read or does not validate.
    """
    path = path or CONFIG.LAYOUTLINT_CONFIG_PATH or find_config_file()
    if path is None:
        logger.debug('No config file found, using defaults')
        return ConfigFile()

    try:
        data = json.loads(Path(path).read_text(encoding='utf-8'))
    except OSError as e:
        raise ConfigError(f'Cannot read config file {path}: {e}') from e
    except json.JSONDecodeError as e:
        raise ConfigError(f'Config file {path} is not valid JSON: {e}') from e

    try:
        config = ConfigFile.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f'Invalid config file {path}: {e}') from e

    logger.debug(f'Loaded config file {path}')
    return config


def parse_rule_override(value: str) -> tuple[str, SeveritySetting]:
    """Parse a command line "RULE=SEVERITY" override."""
    rule_id, sep, severity = value.partition('=')
    severity = severity.strip().lower()
    if not sep or not rule_id.strip():
        raise ConfigError(f"Invalid rule override '{value}', expected RULE=SEVERITY")
    if severity not in ('inherit', 'off', 'info', 'warn', 'error'):
        raise ConfigError(f"Invalid severity '{severity}' for rule '{rule_id.strip()}'")
    return rule_id.strip(), severity  # type: ignore[return-value]


def resolve_rule_settings(
    config: ConfigFile,
    registry: RuleRegistry = builtin_rules,
    overrides: dict[str, RuleEntry] | None = None,
) -> list[RuleSetting]:
    """Effective severity and validated options for every configured rule.

    The preset is applied first, then the config file's rules, then
    overrides. "inherit" means the rule's default severity; an entry without
    options keeps the options set by an earlier layer.

    Returns:
        Settings sorted by rule id, "off" rules included.

    Raises:
        ConfigError: Unknown or ambiguous rule id, or invalid options.
    """
    layers: dict[str, tuple[str, dict[str, Any] | None]] = {}

    if config.preset:
        for rule_id in preset_rule_ids(config.preset, registry):
            layers[rule_id] = (registry.get(rule_id).meta.severity, None)

    for entries in (config.rules, overrides or {}):
        for raw_id, entry in entries.items():
            rule_id = registry.resolve_rule_id(raw_id)
            severity, options = (entry, None) if isinstance(entry, str) else entry
            if severity == 'inherit':
                severity = registry.get(rule_id).meta.severity
            if options is None and rule_id in layers:
                options = layers[rule_id][1]
            layers[rule_id] = (severity, options)

    settings = []
    for rule_id in sorted(layers):
        severity, options = layers[rule_id]
        settings.append(
            RuleSetting(id=rule_id, severity=severity, options=_validate_options(registry, rule_id, options))
        )
    return settings


def _validate_options(registry: RuleRegistry, rule_id: str, options: dict[str, Any] | None) -> BaseModel | None:
    model = registry.get(rule_id).rule_class.options_model
    if model is None:
        if options:
            raise ConfigError(f"Rule '{rule_id}' does not accept options")
        return None
    try:
        return model.model_validate(options or {})
    except ValidationError as e:
        raise ConfigError(f"Invalid options for rule '{rule_id}': {e}") from e
