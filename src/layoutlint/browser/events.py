"""Browser lifecycle events dispatched on the session's event bus.

BrowserSession handles start and stop; LocalBrowserWatchdog handles launch,
kill and forced stops.
"""

from typing import Any

from bubus import BaseEvent
from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EventTimeouts(BaseSettings):
    """Per-event timeout overrides read from TIMEOUT_<EventName>.

    Unparseable or negative values count as unset.
    """

    model_config = SettingsConfigDict(
        env_prefix='TIMEOUT_',
        env_file='.env',
        env_file_encoding='utf-8',
        env_ignore_empty=True,
        case_sensitive=True,
        extra='ignore',
    )

    BrowserStartEvent: float | None = None
    BrowserStopEvent: float | None = None
    BrowserLaunchEvent: float | None = None
    BrowserKillEvent: float | None = None

    @field_validator('*', mode='before')
    @classmethod
    def _valid_or_unset(cls, value: Any) -> float | None:
        try:
            parsed = float(value)
        except (TypeError, ValueError):
            return None
        return None if parsed < 0 else parsed


def _timeout(event_name: str, default: float) -> float:
    """Timeout for an event, overridable with TIMEOUT_<event_name>."""
    value = getattr(EventTimeouts(), event_name)
    return default if value is None else value


class BrowserStartEvent(BaseEvent[str]):
    """Launch or connect to the browser. The result is the CDP websocket URL."""

    event_timeout: float | None = _timeout('BrowserStartEvent', 30.0)


class BrowserStopEvent(BaseEvent[None]):
    """Close pages and disconnect, killing a launched browser when force is set."""

    force: bool = False

    event_timeout: float | None = _timeout('BrowserStopEvent', 45.0)


class BrowserLaunchResult(BaseModel):
    cdp_url: str


class BrowserLaunchEvent(BaseEvent[BrowserLaunchResult]):
    """Start a local browser process with remote debugging enabled."""

    event_timeout: float | None = _timeout('BrowserLaunchEvent', 30.0)


class BrowserKillEvent(BaseEvent[None]):
    event_timeout: float | None = _timeout('BrowserKillEvent', 30.0)
