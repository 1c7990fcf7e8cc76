"""
Event Bus
The CRM engine announces committed writes here; listeners (e.g. a stock
notifier or a chat assistant hook) subscribe without the engine knowing them.
"""

from typing import Callable, Dict, List, Any
import logging

logger = logging.getLogger(__name__)


class EventBus:
    """
    Synchronous in-process publish/subscribe.
    Handlers run in registration order; a failing handler is logged and skipped.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {}

    def on(self, event_name: str, handler: Callable):
        """Register handler(event_data) for event_name."""
        self._handlers.setdefault(event_name, []).append(handler)
        logger.debug(f"Registered handler for event '{event_name}': {getattr(handler, '__name__', handler)}")

    def off(self, event_name: str, handler: Callable) -> bool:
        """Unregister a handler. Returns False if it was not registered."""
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def emit(self, event_name: str, event_data: Dict[str, Any] = None):
        """
        Call every handler registered for event_name with event_data.
        The write that triggered the event is already committed, so handler
        errors are logged and never propagated.
        """
        if event_data is None:
            event_data = {}

        logger.debug(f"Emitting event '{event_name}' with keys: {sorted(event_data)}")

        for handler in list(self._handlers.get(event_name, [])):
            try:
                handler(event_data)
            except Exception as e:
                logger.error(
                    f"Error in handler {getattr(handler, '__name__', handler)} for event '{event_name}': {e}"
                )

    def clear(self):
        """Clear all handlers (useful for testing)."""
        self._handlers.clear()


# Singleton instance
bus = EventBus()


# =============================================================================
# STANDARD EVENTS
# =============================================================================

EVENT_CONTACT_CREATED = 'contact_created'
EVENT_CONTACT_UPDATED = 'contact_updated'
EVENT_CONTACT_STAGE_CHANGED = 'contact_stage_changed'

EVENT_BIKE_CREATED = 'bike_created'
EVENT_BIKE_UPDATED = 'bike_updated'
EVENT_BIKE_DELETED = 'bike_deleted'

EVENT_SALE_RECORDED = 'sale_recorded'
