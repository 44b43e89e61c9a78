"""
In-process event channel.

Producers publish typed messages; subscribers register per message class and
are awaited one after another in registration order, so a publish() returns
only after every handler finished.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from saving_challenge.domain.saving import Challenge, SavingEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SavingRecorded:
    saving: SavingEvent


@dataclass(frozen=True)
class ChallengeCompleted:
    challenge: Challenge


@dataclass(frozen=True)
class PreferencesChanged:
    changes: dict[str, Any] = field(default_factory=dict)


Handler = Callable[[Any], Awaitable[None]]


class EventBus:
    def __init__(self):
        self._handlers: dict[type, list[Handler]] = {}

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: Any) -> None:
        """
        Deliver an event to its subscribers.

        Raises:
            Exception: whatever the first failing handler raised; later handlers are skipped
        """
        handlers = list(self._handlers.get(type(event), []))
        if not handlers:
            logger.debug("No subscribers for %s", type(event).__name__)
        for handler in handlers:
            await handler(event)
