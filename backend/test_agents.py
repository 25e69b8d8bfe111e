"""
Unit tests for Region and Agent

Tests cover:
- Region identity and effective rate
- Status parsing and validation
- Status changes with and without an attached dispatcher
"""

import pytest

from agents import Agent, Region, Status
from dispatcher import Dispatcher, Listener
from errors import InvalidStatus


class SnoopingListener(Listener):
    """Records each event plus the agent's live status at delivery time."""

    interest_set = frozenset({"Status"})

    def __init__(self, agent=None):
        self.agent = agent
        self.events = []
        self.live_statuses = []

    def notify(self, event):
        self.events.append(event)
        if self.agent is not None:
            self.live_statuses.append(self.agent.status)


class TestRegion:
    """Test suite for Region"""

    def test_effective_rate_applies_adjustment(self):
        region = Region(region_id="94043", base_rate=40.0)
        assert region.effective_rate == pytest.approx(40.0)

        region.adjustment = 0.5
        assert region.effective_rate == pytest.approx(60.0)

    def test_identity_is_region_id(self):
        a = Region(region_id="94043", base_rate=40.0)
        b = Region(region_id="94043", base_rate=99.0, adjustment=0.25)
        c = Region(region_id="94063", base_rate=40.0)

        assert a == b
        assert hash(a) == hash(b)
        assert a != c
        assert len({a, b, c}) == 2

    def test_base_rate_cannot_be_negative(self):
        with pytest.raises(ValueError, match="base_rate"):
            Region(region_id="94043", base_rate=-1.0)

    def test_region_id_required(self):
        with pytest.raises(ValueError, match="region_id"):
            Region(region_id="", base_rate=10.0)


class TestStatus:
    """Test suite for Status parsing"""

    @pytest.mark.parametrize("raw, expected", [
        (Status.BUSY, Status.BUSY),
        (0, Status.IDLE),
        ("1", Status.ON_THE_WAY),
        ("OnTheWay", Status.ON_THE_WAY),
        ("on_the_way", Status.ON_THE_WAY),
        ("BUSY", Status.BUSY),
    ])
    def test_parse_accepts_members_values_and_names(self, raw, expected):
        assert Status.parse(raw) is expected

    @pytest.mark.parametrize("raw", [3, -1, "Flying", "", True, None, 1.0, "²", "٣"])
    def test_parse_rejects_undefined_values(self, raw):
        with pytest.raises(InvalidStatus):
            Status.parse(raw)

    def test_invalid_status_is_a_value_error(self):
        with pytest.raises(ValueError, match="invalid status"):
            Status.parse(42)


class TestAgent:
    """Test suite for Agent status changes"""

    def setup_method(self):
        self.region = Region(region_id="R", base_rate=40.0)

    def test_agent_starts_idle(self):
        agent = Agent(agent_id="a", region=self.region)
        assert agent.status is Status.IDLE
        assert agent.is_idle

    def test_set_status_without_dispatcher_is_silent(self):
        agent = Agent(agent_id="a", region=self.region)

        previous = agent.set_status(Status.BUSY)

        assert previous is Status.IDLE
        assert agent.status is Status.BUSY

    def test_set_status_publishes_transition(self):
        agent = Agent(agent_id="a", region=self.region)
        dispatcher = Dispatcher()
        listener = SnoopingListener()
        dispatcher.subscribe(listener)
        agent.attach(dispatcher)

        agent.set_status("OnTheWay")

        assert len(listener.events) == 1
        event = listener.events[0]
        assert event.property_name == "Status"
        assert event.old_value == int(Status.IDLE)
        assert event.new_value == int(Status.ON_THE_WAY)
        assert event.attributes == {"RegionId": "R"}

    def test_field_is_updated_before_publish(self):
        agent = Agent(agent_id="a", region=self.region)
        dispatcher = Dispatcher()
        listener = SnoopingListener(agent)
        dispatcher.subscribe(listener)
        agent.attach(dispatcher)

        agent.set_status(Status.BUSY)

        assert listener.live_statuses == [Status.BUSY]

    def test_same_status_still_publishes(self):
        agent = Agent(agent_id="a", region=self.region)
        dispatcher = Dispatcher()
        listener = SnoopingListener()
        dispatcher.subscribe(listener)
        agent.attach(dispatcher)

        agent.set_status(Status.IDLE)

        assert len(listener.events) == 1
        assert listener.events[0].old_value == listener.events[0].new_value

    def test_invalid_status_rejected_before_any_event(self):
        agent = Agent(agent_id="a", region=self.region)
        dispatcher = Dispatcher()
        listener = SnoopingListener()
        dispatcher.subscribe(listener)
        agent.attach(dispatcher)

        with pytest.raises(InvalidStatus):
            agent.set_status(7)

        assert agent.status is Status.IDLE
        assert listener.events == []

    def test_detach_stops_publishing(self):
        agent = Agent(agent_id="a", region=self.region)
        dispatcher = Dispatcher()
        listener = SnoopingListener()
        dispatcher.subscribe(listener)
        agent.attach(dispatcher)

        agent.detach()
        agent.set_status(Status.BUSY)

        assert listener.events == []
        assert agent.status is Status.BUSY

    def test_initial_status_is_validated(self):
        with pytest.raises(InvalidStatus):
            Agent(agent_id="a", region=self.region, status=9)

    def test_to_dict_uses_status_label(self):
        agent = Agent(agent_id="a", name="Ava Moreno", region=self.region, status=Status.ON_THE_WAY)
        assert agent.to_dict() == {
            "agent_id": "a",
            "name": "Ava Moreno",
            "region_id": "R",
            "status": "OnTheWay",
        }
