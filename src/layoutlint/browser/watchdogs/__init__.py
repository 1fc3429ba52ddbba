"""Browser watchdogs for event-driven lifecycle management."""

from layoutlint.browser.watchdogs.base import BaseWatchdog
from layoutlint.browser.watchdogs.local_browser_watchdog import LocalBrowserWatchdog

__all__ = [
    'BaseWatchdog',
    'LocalBrowserWatchdog',
]
