"""
SurgeSim Agent Model

Regions are the priced service areas; agents are the mobile mechanics
working in them. An agent's status is the only observed property: every
change goes through ``Agent.set_status``, which publishes a ChangeEvent to
the attached dispatcher (if any).
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Optional, Union

from dispatcher import ChangeEvent, Dispatcher
from errors import InvalidStatus

logger = logging.getLogger(__name__)


class Status(IntEnum):
    IDLE = 0
    ON_THE_WAY = 1
    BUSY = 2

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @classmethod
    def parse(cls, value: Union["Status", int, str]) -> "Status":
        """
        Coerce an enum member, raw integer, or name into a Status.

        Accepts "OnTheWay", "on_the_way", "ON_THE_WAY" and "1" alike.

        Raises:
            InvalidStatus: if the value is not a defined status
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise InvalidStatus(value)
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise InvalidStatus(value) from None
        if isinstance(value, str):
            if value.strip().isdecimal():
                try:
                    return cls.parse(int(value))
                except ValueError:
                    raise InvalidStatus(value) from None
            key = value.strip().replace("_", "").replace(" ", "").lower()
            for member in cls:
                if member.name.replace("_", "").lower() == key:
                    return member
        raise InvalidStatus(value)


_STATUS_LABELS = {
    Status.IDLE: "Idle",
    Status.ON_THE_WAY: "OnTheWay",
    Status.BUSY: "Busy",
}


@dataclass(slots=True, eq=False)
class Region:
    """
    A priced service area.

    Identity is the region id; base rate and adjustment are mutable and
    only the supply tracker's rate sweep changes the adjustment.
    """

    region_id: str
    base_rate: float
    adjustment: float = 0.0

    def __post_init__(self):
        if not self.region_id:
            raise ValueError("region_id cannot be empty")
        if self.base_rate < 0:
            raise ValueError(f"base_rate cannot be negative, got {self.base_rate}")

    @property
    def effective_rate(self) -> float:
        return self.base_rate * (1.0 + self.adjustment)

    def __eq__(self, other):
        if not isinstance(other, Region):
            return NotImplemented
        return self.region_id == other.region_id

    def __hash__(self):
        return hash(self.region_id)

    def to_dict(self) -> Dict[str, object]:
        return {
            "region_id": self.region_id,
            "base_rate": self.base_rate,
            "adjustment": self.adjustment,
            "effective_rate": self.effective_rate,
        }


@dataclass(slots=True)
class Agent:
    """
    A mobile mechanic assigned to one region.

    The dispatcher reference is a plain back-reference: the agent never
    creates or tears down the dispatcher it publishes to.
    """

    agent_id: str
    region: Region
    name: str = ""
    status: Status = Status.IDLE
    dispatcher: Optional[Dispatcher] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        self.status = Status.parse(self.status)

    @property
    def is_idle(self) -> bool:
        return self.status == Status.IDLE

    def attach(self, dispatcher: Dispatcher) -> None:
        self.dispatcher = dispatcher

    def detach(self) -> None:
        self.dispatcher = None

    def set_status(self, new_status: Union[Status, int, str]) -> Status:
        """
        Change the agent's status and publish the transition.

        The field is updated before publishing, so listeners reading the
        agent directly already see the new value; they should rely on the
        event payload instead.

        Args:
            new_status: Target status (enum member, raw value, or name)

        Returns:
            The previous status

        Raises:
            InvalidStatus: if new_status is not a defined status
        """
        new_status = Status.parse(new_status)
        old_status = self.status
        self.status = new_status

        if self.dispatcher is None:
            return old_status

        event = ChangeEvent(
            property_name=self.dispatcher.status_property,
            old_value=int(old_status),
            new_value=int(new_status),
            attributes={self.dispatcher.region_attribute: self.region.region_id},
        )
        logger.debug(f"Agent {self.agent_id}: {old_status.label} -> {new_status.label}")
        self.dispatcher.publish(event)
        return old_status

    def to_dict(self) -> Dict[str, object]:
        return {
            "agent_id": self.agent_id,
            "name": self.name,
            "region_id": self.region.region_id,
            "status": self.status.label,
        }
