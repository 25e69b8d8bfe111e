"""
Status Change Dispatch

The dispatcher sits between agents and whoever cares about their state.
Agents publish a ChangeEvent when a property changes; the dispatcher
hands it to every subscribed listener that declared interest in that
property, synchronously and in subscription order.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from config import CONFIG, SimulationConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """A single property transition, consumed synchronously and discarded."""

    property_name: str
    old_value: int
    new_value: int
    attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def is_unchanged(self) -> bool:
        return self.old_value == self.new_value


class Listener(ABC):
    """
    Something that can be subscribed to a Dispatcher.

    Subclasses declare the property names they care about in
    ``interest_set``; events for other properties are never delivered.
    """

    interest_set: FrozenSet[str] = frozenset()

    def is_interested(self, property_name: str) -> bool:
        return property_name in self.interest_set

    @abstractmethod
    def notify(self, event: ChangeEvent) -> None:
        """Handle an event for one of the properties in ``interest_set``."""


class Dispatcher:
    """
    Routes change events to interested listeners.

    Duplicates are allowed: a listener subscribed twice is notified twice.
    By default an exception raised by a listener propagates to the
    publisher and the remaining listeners for that event are skipped.
    With ``isolate_listener_failures`` enabled each failure is logged and
    recorded in ``last_failures`` and the fan-out continues.

    Publishers read ``status_property`` and ``region_attribute`` from the
    dispatcher so their events use the same keys as its listeners.
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        config = config or CONFIG
        self.status_property = config.dispatch.status_property
        self.region_attribute = config.dispatch.region_attribute
        self.notify_on_unchanged = config.dispatch.notify_on_unchanged_status
        self.isolate_failures = config.dispatch.isolate_listener_failures
        self._listeners: List[Listener] = []
        self.last_failures: List[Tuple[Listener, Exception]] = []

    @property
    def listeners(self) -> List[Listener]:
        return list(self._listeners)

    def __len__(self) -> int:
        return len(self._listeners)

    def __contains__(self, listener: object) -> bool:
        return any(existing is listener for existing in self._listeners)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)
        logger.debug(f"Subscribed {type(listener).__name__} ({len(self._listeners)} listeners)")

    def unsubscribe(self, listener: Listener) -> None:
        """Remove every occurrence of ``listener``; no-op if absent."""
        before = len(self._listeners)
        self._listeners = [existing for existing in self._listeners if existing is not listener]
        removed = before - len(self._listeners)
        if removed:
            logger.debug(f"Unsubscribed {type(listener).__name__} ({removed} removed)")

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver ``event`` to every listener interested in its property.

        Args:
            event: The change to deliver

        Returns:
            Number of listeners the event was delivered to
        """
        self.last_failures = []

        # Only status events are subject to the unchanged-value policy
        if (
            event.is_unchanged
            and not self.notify_on_unchanged
            and event.property_name == self.status_property
        ):
            logger.debug(f"Dropping unchanged {event.property_name} event")
            return 0

        # Selection is fixed before the first notify call
        matching = [
            listener for listener in self._listeners
            if listener.is_interested(event.property_name)
        ]
        logger.debug(
            f"Change in {event.property_name} detected, notifying {len(matching)} listener(s)"
        )

        delivered = 0
        for listener in matching:
            if not self.isolate_failures:
                listener.notify(event)
                delivered += 1
                continue

            try:
                listener.notify(event)
                delivered += 1
            except Exception as e:
                logger.exception(f"Listener {type(listener).__name__} failed: {e}")
                self.last_failures.append((listener, e))

        return delivered

    # Name used by property observers
    property_changed = publish
