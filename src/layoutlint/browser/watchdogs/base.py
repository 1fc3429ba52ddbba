"""Base class for components that react to browser session events."""

import logging
from typing import Any, ClassVar

from bubus import BaseEvent, EventBus
from pydantic import BaseModel, ConfigDict


class BaseWatchdog(BaseModel):
    """Registers an ``on_<EventName>`` handler for every event in LISTENS_TO.

    Attributes:
        event_bus: Bus shared with the owning BrowserSession.
        browser_session: The session whose browser this watchdog manages.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra='forbid')

    LISTENS_TO: ClassVar[list[type[BaseEvent[Any]]]] = []

    event_bus: EventBus
    browser_session: Any  # BrowserSession, not imported to avoid a cycle

    @property
    def logger(self) -> logging.Logger:
        return self.browser_session.logger

    def attach_to_session(self) -> None:
        """Subscribe the handlers to the event bus.

        Raises:
            TypeError: A listed event has no matching handler method.
        """
        for event_class in self.LISTENS_TO:
            handler = getattr(self, f'on_{event_class.__name__}', None)
            if handler is None:
                raise TypeError(f'{type(self).__name__} listens to {event_class.__name__} but has no handler for it')
            self.event_bus.on(event_class, handler)
