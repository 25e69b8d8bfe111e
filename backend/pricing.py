"""
Supply-Driven Region Pricing

SupplyTracker listens for agent status changes, keeps a running count of
idle agents per region, and re-prices every tracked region after each
accepted change. The count is maintained incrementally from the event
payload; agents are never scanned.

Tiering (defaults):
    supply <= 1   -> +50% (Very High Demand)
    supply 2..3   -> +25% (High Demand)
    supply >= 4   ->  +0% (Normal Demand)
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from agents import Region, Status
from config import CONFIG, DemandTierConfig, SimulationConfig
from dispatcher import ChangeEvent, Listener
from errors import NegativeSupply

logger = logging.getLogger(__name__)


class DemandTier(Enum):
    VERY_HIGH = "Very High Demand"
    HIGH = "High Demand"
    NORMAL = "Normal Demand"


def demand_tier(supply: int, tiers: Optional[DemandTierConfig] = None) -> Tuple[DemandTier, float]:
    """
    Map a region's idle-agent supply to its demand tier and price adjustment.

    Pure function of ``supply``: calling it again with the same value
    always yields the same result.
    """
    tiers = tiers or CONFIG.tiers
    if supply <= tiers.very_high_max_supply:
        return DemandTier.VERY_HIGH, tiers.very_high_adjustment
    if supply <= tiers.high_max_supply:
        return DemandTier.HIGH, tiers.high_adjustment
    return DemandTier.NORMAL, tiers.normal_adjustment


def adjustment_for_supply(supply: int, tiers: Optional[DemandTierConfig] = None) -> float:
    return demand_tier(supply, tiers)[1]


def supply_delta(old_status: Status, new_status: Status) -> int:
    """+1 when an agent becomes idle, -1 when it stops being idle, else 0."""
    was_idle = old_status == Status.IDLE
    is_idle = new_status == Status.IDLE
    if is_idle and not was_idle:
        return 1
    if was_idle and not is_idle:
        return -1
    return 0


@dataclass(frozen=True)
class TransitionRecord:
    region_id: str
    property_name: str
    old_status: Status
    new_status: Status
    supply_delta: int


@dataclass(frozen=True)
class RegionRate:
    tier: DemandTier
    region_id: str
    adjustment: float
    effective_rate: float
    supply: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "tier": self.tier.value,
            "region_id": self.region_id,
            "adjustment": self.adjustment,
            "effective_rate": self.effective_rate,
            "supply": self.supply,
        }


@dataclass(frozen=True)
class PriceUpdate:
    """Everything one accepted notification changed."""

    transition: TransitionRecord
    rates: List[RegionRate] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "transition": {
                "region_id": self.transition.region_id,
                "property_name": self.transition.property_name,
                "old_status": self.transition.old_status.label,
                "new_status": self.transition.new_status.label,
                "supply_delta": self.transition.supply_delta,
            },
            "rates": [rate.to_dict() for rate in self.rates],
        }


class SupplyTracker(Listener):
    """
    Per-region idle supply counter and price manager.

    Args:
        regions: Regions to track (shared with the agents)
        supply: Initial idle count per region; keys must be exactly ``regions``
        on_update: Optional callback receiving each PriceUpdate
        config: Configuration (defaults to the global CONFIG)
    """

    def __init__(
        self,
        regions: Iterable[Region],
        supply: Mapping[Region, int],
        on_update: Optional[Callable[[PriceUpdate], None]] = None,
        config: Optional[SimulationConfig] = None,
    ):
        config = config or CONFIG
        self.tiers = config.tiers
        self.region_attribute = config.dispatch.region_attribute
        self.interest_set = frozenset({config.dispatch.status_property})
        self.on_update = on_update

        # Sweep order is region id order
        self.regions: Dict[str, Region] = {
            r.region_id: r for r in sorted(regions, key=lambda r: r.region_id)
        }

        if set(supply) != set(self.regions.values()):
            raise ValueError("supply keys must match the tracked regions exactly")
        for region, count in supply.items():
            if count < 0:
                raise ValueError(f"supply for region {region.region_id} cannot be negative, got {count}")

        self.supply: Dict[Region, int] = {r: int(supply[r]) for r in self.regions.values()}
        self.last_update: Optional[PriceUpdate] = None

    def supply_for(self, region_id: str) -> int:
        return self.supply[self.regions[region_id]]

    def notify(self, event: ChangeEvent) -> None:
        if event.property_name not in self.interest_set:
            return

        region_id = event.attributes.get(self.region_attribute)
        region = self.regions.get(region_id) if region_id is not None else None
        if region is None:
            logger.debug(f"Ignoring {event.property_name} change for unmanaged region {region_id}")
            return

        old_status = Status.parse(event.old_value)
        new_status = Status.parse(event.new_value)
        logger.info(f"{event.property_name} is changed from {old_status.label} to {new_status.label}")

        delta = supply_delta(old_status, new_status)
        if delta < 0 and self.supply[region] == 0:
            logger.error(f"Supply underflow in region {region.region_id}: no idle agents left to remove")
            raise NegativeSupply(region.region_id)
        self.supply[region] += delta

        transition = TransitionRecord(
            region_id=region.region_id,
            property_name=event.property_name,
            old_status=old_status,
            new_status=new_status,
            supply_delta=delta,
        )
        update = PriceUpdate(transition=transition, rates=self.update_rates())
        self.last_update = update

        if self.on_update is not None:
            self.on_update(update)

    def update_rates(self) -> List[RegionRate]:
        """
        Re-price every tracked region from its current supply.

        Always a full sweep: the outcome depends only on the supply map,
        never on which region the triggering event came from.
        """
        rates = []
        for region in self.regions.values():
            count = self.supply[region]
            tier, adjustment = demand_tier(count, self.tiers)
            region.adjustment = adjustment
            rates.append(RegionRate(
                tier=tier,
                region_id=region.region_id,
                adjustment=adjustment,
                effective_rate=region.effective_rate,
                supply=count,
            ))
        return rates

    def snapshot(self) -> Dict[str, int]:
        return {r.region_id: count for r, count in self.supply.items()}
