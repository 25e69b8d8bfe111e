"""
Market bootstrap and wiring.

Builds the regions, agents, dispatcher and supply tracker and connects
them: supply is seeded by counting idle agents before any dispatcher is
attached, the tracker is subscribed, then every agent gets the dispatcher.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from agents import Agent, Region, Status
from config import CONFIG, DemandTierConfig, SimulationConfig
from dispatcher import Dispatcher
from pricing import DemandTier, PriceUpdate, SupplyTracker, demand_tier

logger = logging.getLogger(__name__)


def count_idle_supply(regions: Iterable[Region], agents: Iterable[Agent]) -> Dict[Region, int]:
    """Count idle agents per region; every region gets an entry, even at zero."""
    supply = {region: 0 for region in regions}
    for agent in agents:
        if agent.is_idle and agent.region in supply:
            supply[agent.region] += 1
    return supply


class Market:
    """A wired-up set of regions, agents, one dispatcher and one tracker."""

    def __init__(
        self,
        regions: List[Region],
        agents: List[Agent],
        dispatcher: Dispatcher,
        tracker: SupplyTracker,
    ):
        self.regions: Dict[str, Region] = {r.region_id: r for r in regions}
        self.agents: Dict[str, Agent] = {a.agent_id: a for a in agents}
        self.dispatcher = dispatcher
        self.tracker = tracker

    def agent(self, agent_id: str) -> Agent:
        return self.agents[agent_id]

    def region(self, region_id: str) -> Region:
        return self.regions[region_id]

    @property
    def is_tracking(self) -> bool:
        return self.tracker in self.dispatcher

    def subscribe_tracker(self) -> None:
        if not self.is_tracking:
            self.dispatcher.subscribe(self.tracker)

    def unsubscribe_tracker(self) -> None:
        self.dispatcher.unsubscribe(self.tracker)

    def set_status(self, agent_id: str, status: Union[Status, int, str]) -> Optional[PriceUpdate]:
        """
        Change one agent's status.

        Returns:
            The PriceUpdate the change produced, or None when the tracker
            did not accept it (unsubscribed, dropped, or unmanaged region)
        """
        agent = self.agent(agent_id)
        before = self.tracker.last_update
        agent.set_status(status)
        after = self.tracker.last_update
        return after if after is not before else None

    def verify_supply(self) -> Dict[str, Tuple[int, int]]:
        """
        Compare the tracked supply with a fresh count of idle agents.

        Returns:
            region_id -> (tracked, actual) for every region that disagrees
        """
        actual = count_idle_supply(self.tracker.supply.keys(), self.agents.values())
        return {
            region.region_id: (tracked, actual[region])
            for region, tracked in self.tracker.supply.items()
            if tracked != actual[region]
        }

    def to_dict(self) -> Dict[str, object]:
        return {
            "tracking": self.is_tracking,
            "regions": [
                dict(r.to_dict(), supply=self.tracker.supply.get(r, 0))
                for r in self.regions.values()
            ],
            "agents": [a.to_dict() for a in self.agents.values()],
        }


def build_market(
    regions: List[Region],
    agents: List[Agent],
    config: Optional[SimulationConfig] = None,
    on_update: Optional[Callable[[PriceUpdate], None]] = None,
) -> Market:
    """
    Wire regions and agents into a running market.

    Args:
        regions: Regions to price
        agents: Agents, each bound to one of ``regions``
        config: Configuration (defaults to the global CONFIG)
        on_update: Optional callback for every PriceUpdate

    Returns:
        Market with the tracker subscribed and all agents attached
    """
    config = config or CONFIG
    supply = count_idle_supply(regions, agents)

    dispatcher = Dispatcher(config)
    tracker = SupplyTracker(regions, supply, on_update=on_update, config=config)
    dispatcher.subscribe(tracker)

    for agent in agents:
        agent.attach(dispatcher)

    logger.info(f"Market wired: {len(regions)} regions, {len(agents)} agents")
    return Market(regions, agents, dispatcher, tracker)


def compute_region_stats(
    supply: Dict[Region, int],
    tiers: Optional[DemandTierConfig] = None,
) -> Dict[str, object]:
    """
    Vectorized snapshot of region pricing.

    Pass the tracker's ``tiers`` so the tier counts match the prices it set.
    """
    if not supply:
        return {
            "regions": 0,
            "total_supply": 0,
            "mean_supply": 0.0,
            "mean_adjustment": 0.0,
            "mean_effective_rate": 0.0,
            "max_effective_rate": 0.0,
            "tier_counts": {tier.value: 0 for tier in DemandTier},
        }

    regions = list(supply)
    counts = np.array([supply[r] for r in regions], dtype=int)
    adjustments = np.array([r.adjustment for r in regions], dtype=float)
    rates = np.array([r.effective_rate for r in regions], dtype=float)

    tier_counts = {tier.value: 0 for tier in DemandTier}
    for count in counts:
        tier_counts[demand_tier(int(count), tiers)[0].value] += 1

    return {
        "regions": len(regions),
        "total_supply": int(counts.sum()),
        "mean_supply": float(counts.mean()),
        "mean_adjustment": float(adjustments.mean()),
        "mean_effective_rate": float(rates.mean()),
        "max_effective_rate": float(rates.max()),
        "tier_counts": tier_counts,
    }


# Reference seed data: region id -> base rate
DEMO_REGIONS = {
    "94043": 40.00,
    "94063": 30.00,
    "94301": 50.00,
    "94086": 35.00,
}

# agent id -> (name, region id)
DEMO_AGENTS = {
    "ava": ("Ava Moreno", "94043"),
    "ivan": ("Ivan Petrov", "94063"),
    "nina": ("Nina Alvarez", "94063"),
    "theo": ("Theo Grant", "94301"),
    "owen": ("Owen Price", "94086"),
    "zoe": ("Zoe Carter", "94086"),
    "eli": ("Eli Novak", "94086"),
    "liam": ("Liam Ortiz", "94043"),
    "emma": ("Emma Lind", "94043"),
    "maya": ("Maya Singh", "94301"),
    "noah": ("Noah Becker", "94043"),
    "omar": ("Omar Haddad", "94043"),
    "ruth": ("Ruth Adams", "94086"),
    "sami": ("Sami Okafor", "94086"),
    "lucy": ("Lucy Chen", "94043"),
}

# Replayed while the tracker is subscribed
DEMO_SCRIPT = [
    ("theo", Status.ON_THE_WAY),
    ("ava", Status.ON_THE_WAY),
    ("ava", Status.BUSY),
    ("ava", Status.IDLE),
    ("owen", Status.ON_THE_WAY),
    ("zoe", Status.ON_THE_WAY),
    ("eli", Status.ON_THE_WAY),
    ("omar", Status.ON_THE_WAY),
    ("eli", Status.BUSY),
    ("sami", Status.ON_THE_WAY),
]

# Replayed after the tracker unsubscribes; must not move any price
DEMO_TRAILING_SCRIPT = [
    ("sami", Status.IDLE),
]


def create_demo_market(
    config: Optional[SimulationConfig] = None,
    on_update: Optional[Callable[[PriceUpdate], None]] = None,
) -> Market:
    """Build the reference four-region, fifteen-mechanic market."""
    regions = [Region(region_id=rid, base_rate=rate) for rid, rate in DEMO_REGIONS.items()]
    lookup = {r.region_id: r for r in regions}
    agents = [
        Agent(agent_id=aid, name=name, region=lookup[rid])
        for aid, (name, rid) in DEMO_AGENTS.items()
    ]
    return build_market(regions, agents, config=config, on_update=on_update)
