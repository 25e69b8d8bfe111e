"""
Tests for the reference scenario runner
"""

import json

import pytest

from agents import Status
from pricing import DemandTier, PriceUpdate, RegionRate, TransitionRecord
from run_simulation import format_update, main


def test_format_update():
    update = PriceUpdate(
        transition=TransitionRecord(
            region_id="94301",
            property_name="Status",
            old_status=Status.IDLE,
            new_status=Status.ON_THE_WAY,
            supply_delta=-1,
        ),
        rates=[RegionRate(DemandTier.VERY_HIGH, "94301", 0.5, 75.0, 1)],
    )

    lines = format_update(update)

    assert lines[0] == "Status changed from Idle to OnTheWay (region 94301)"
    assert "Very High Demand" in lines[1]
    assert "94301" in lines[1]
    assert "75.00" in lines[1]
    assert lines[1].endswith("supply 1")


def test_main_prints_every_accepted_change(capsys):
    main(log_level="WARNING")

    out = capsys.readouterr().out
    # Ten scripted changes while subscribed, each with one transition line
    assert out.count(" changed from ") == 10
    assert "Supply tracker unsubscribed" in out


def test_main_json_summary(capsys):
    summary = main(as_json=True, log_level="WARNING")

    printed = json.loads(capsys.readouterr().out)
    assert printed["supply"] == summary["supply"]
    assert printed["tracking"] is False
    assert printed["supply"] == {"94043": 5, "94063": 2, "94086": 1, "94301": 1}
    assert printed["rates"]["94301"] == 75.0
    assert printed["supply_mismatches"] == {"94086": [1, 2]}
    assert printed["stats"]["tier_counts"]["Very High Demand"] == 2


def test_main_rejects_unknown_log_level():
    with pytest.raises(ValueError, match="log level"):
        main(quiet=True, log_level="loud")
