"""Browser process, CDP session and page handling."""

from layoutlint.browser.page import Page
from layoutlint.browser.profile import BrowserProfile, ViewportSize
from layoutlint.browser.session import BrowserSession

__all__ = [
    'BrowserProfile',
    'BrowserSession',
    'Page',
    'ViewportSize',
]
