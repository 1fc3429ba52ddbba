"""Browser profile configuration."""

import tempfile
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_VIEWPORT_WIDTH = 1280
DEFAULT_VIEWPORT_HEIGHT = 720

WaitUntil = Literal['load', 'domcontentloaded', 'networkidle']


class ViewportSize(BaseModel):
    """Viewport size configuration."""

    width: int = Field(gt=0)
    height: int = Field(gt=0)

    def __getitem__(self, key: str) -> int:
        return dict(self)[key]

    @classmethod
    def parse(cls, value: str) -> 'ViewportSize':
        """Parse a "WIDTHxHEIGHT" string, e.g. "1280x720"."""
        width, sep, height = value.lower().partition('x')
        if not sep:
            raise ValueError(f'Invalid viewport {value!r}, expected WIDTHxHEIGHT')
        return cls(width=int(width), height=int(height))


class BrowserProfile(BaseModel):
    """Browser settings for a lint run.

    Each target may override any of these fields in the config file, the
    overrides are merged over the run-wide profile with ``merged``.
    """

    model_config = ConfigDict(
        extra='ignore',
        validate_assignment=True,
        from_attributes=True,
    )

    # Connection
    cdp_url: str | None = Field(default=None, description='Connect to a running browser instead of launching one')

    # User data directory
    user_data_dir: str | Path | None = Field(
        default=None,
        description='User data directory for the Chrome profile. If None, uses a temporary directory.',
    )

    # Browser launch settings
    headless: bool = Field(default=True, description='Whether to run browser in headless mode')
    executable_path: str | Path | None = Field(default=None, description='Path to browser executable')
    args: list[str] = Field(default_factory=list, description='Additional CLI args to pass to browser')

    debug_port: int = Field(default=9222, gt=0, lt=65536, description='Remote debugging port of a launched browser')

    # Page settings
    wait_until: WaitUntil = Field(default='load', description='Lifecycle event that ends a navigation')
    timeout_ms: int = Field(default=30_000, gt=0, description='Navigation timeout in milliseconds')
    viewport: ViewportSize = Field(
        default_factory=lambda: ViewportSize(width=DEFAULT_VIEWPORT_WIDTH, height=DEFAULT_VIEWPORT_HEIGHT),
        description='Viewport size every page is emulated at',
    )
    device_scale_factor: float = Field(default=1.0, gt=0)
    disable_animations: bool = Field(
        default=True,
        description='Inject CSS stopping animations and transitions so layout is measured at rest',
    )
    user_agent: str | None = Field(default=None, description='Custom user agent string')

    def merged(self, overrides: dict | None) -> 'BrowserProfile':
        """Copy of this profile with overrides applied."""
        if not overrides:
            return self
        return BrowserProfile.model_validate({**self.model_dump(), **overrides})

    def get_args(self) -> list[str]:
        """Chrome CLI launch args for this profile."""
        user_data_dir = self.user_data_dir or tempfile.mkdtemp(prefix='layoutlint-user-data-dir-')
        args = [
            f'--user-data-dir={user_data_dir}',
            '--no-first-run',
            '--no-default-browser-check',
            '--disable-extensions',
            '--disable-background-timer-throttling',
            f'--window-size={self.viewport.width},{self.viewport.height}',
        ]

        if self.headless:
            args.append('--headless=new')

        if self.user_agent:
            args.append(f'--user-agent={self.user_agent}')

        args.extend(self.args)

        return args
