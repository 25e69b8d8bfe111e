"""
Run the reference SurgeSim scenario.

Builds the demo market (four regions, fifteen mechanics), replays the
scripted status changes while the supply tracker is subscribed, then
unsubscribes it and makes one more change that must leave prices alone.
Every accepted change prints the transition and the re-priced regions.
"""

import argparse
import json
import logging
from typing import Dict, List, Optional

from config import LOG_LEVELS, load_config, validate_log_level
from market import (
    DEMO_SCRIPT,
    DEMO_TRAILING_SCRIPT,
    Market,
    compute_region_stats,
    create_demo_market,
)
from pricing import PriceUpdate


def format_update(update: PriceUpdate) -> List[str]:
    """Render one PriceUpdate as printable lines."""
    t = update.transition
    lines = [f"{t.property_name} changed from {t.old_status.label} to {t.new_status.label} (region {t.region_id})"]
    for rate in update.rates:
        lines.append(
            f"  {rate.tier.value:<17} | region {rate.region_id} | "
            f"rate {rate.effective_rate:7.2f} | supply {rate.supply}"
        )
    return lines


def print_update(update: PriceUpdate) -> None:
    for line in format_update(update):
        print(line)
    print("-" * 60)


def summarize(market: Market) -> Dict[str, object]:
    return {
        "tracking": market.is_tracking,
        "supply": market.tracker.snapshot(),
        "rates": {rid: r.effective_rate for rid, r in market.regions.items()},
        "stats": compute_region_stats(market.tracker.supply, market.tracker.tiers),
        "supply_mismatches": {rid: list(pair) for rid, pair in market.verify_supply().items()},
    }


def main(
    quiet: bool = False,
    as_json: bool = False,
    suppress_unchanged: bool = False,
    isolate_failures: bool = False,
    log_level: Optional[str] = None,
) -> Dict[str, object]:
    """Replay the reference scenario and return the final summary."""
    config = load_config()
    if suppress_unchanged:
        config.dispatch.notify_on_unchanged_status = False
    if isolate_failures:
        config.dispatch.isolate_listener_failures = True

    if log_level is not None:
        config.logging.level = validate_log_level(log_level)
    logging.basicConfig(level=config.logging.level)

    on_update = None if (quiet or as_json) else print_update
    market = create_demo_market(config=config, on_update=on_update)

    if not (quiet or as_json):
        print("=" * 60)
        print(f"SURGESIM ({len(market.regions)} regions, {len(market.agents)} agents)")
        print("=" * 60)

    for agent_id, status in DEMO_SCRIPT:
        market.set_status(agent_id, status)

    market.unsubscribe_tracker()
    if not (quiet or as_json):
        print("Supply tracker unsubscribed")

    for agent_id, status in DEMO_TRAILING_SCRIPT:
        market.set_status(agent_id, status)

    summary = summarize(market)
    if as_json:
        print(json.dumps(summary, indent=2))
    else:
        stats = summary["stats"]
        print(f"Regions: {stats['regions']} | Idle supply: {stats['total_supply']} | "
              f"Mean rate: {stats['mean_effective_rate']:.2f} | Max rate: {stats['max_effective_rate']:.2f}")
        for rid, supply in summary["supply"].items():
            print(f"  {rid}: supply {supply}, rate {summary['rates'][rid]:.2f}")
    return summary


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the SurgeSim reference scenario.")
    parser.add_argument("--quiet", action="store_true", help="Only print the final summary")
    parser.add_argument("--json", action="store_true", help="Print the final summary as JSON")
    parser.add_argument(
        "--suppress-unchanged",
        action="store_true",
        help="Drop status events whose old and new values are equal"
    )
    parser.add_argument(
        "--isolate-failures",
        action="store_true",
        help="Keep notifying remaining listeners when one raises"
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default from config)"
    )
    args = parser.parse_args()

    main(
        quiet=args.quiet,
        as_json=args.json,
        suppress_unchanged=args.suppress_unchanged,
        isolate_failures=args.isolate_failures,
        log_level=args.log_level,
    )
