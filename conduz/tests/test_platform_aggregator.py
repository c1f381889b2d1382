"""
Platform aggregation and ISO week tests.
"""

import pytest
from datetime import date
from types import SimpleNamespace

from conduz.app.core.exceptions import ValidationError
from conduz.app.domain.payroll.platform_aggregator import aggregate_platform_entries
from conduz.app.domain.payroll.weeks import parse_week_id, week_id_for


def _entry(driver_id, platform, total_value, total_trips=0):
    return SimpleNamespace(driver_id=driver_id, platform=platform, total_value=total_value, total_trips=total_trips)


def test_entries_grouped_per_driver_and_platform():
    totals = aggregate_platform_entries([
        _entry(1, "uber", 120.55, 10),
        _entry(1, "uber", 79.45, 6),
        _entry(1, "bolt", 300.00, 20),
        _entry(1, "myprio", 42.10),
        _entry(1, "viaverde", 13.90),
        _entry(2, "bolt", 10.00, 1),
    ])

    assert totals[1].uber_cents == 20000
    assert totals[1].bolt_cents == 30000
    assert totals[1].fuel_cents == 4210
    assert totals[1].tolls_cents == 1390
    assert totals[1].trips == {"uber": 16, "bolt": 20, "myprio": 0, "viaverde": 0}
    assert totals[2].bolt_cents == 1000
    assert totals[2].uber_cents == 0


def test_unknown_platform_skipped():
    totals = aggregate_platform_entries([_entry(1, "cabify", 99.00), _entry(1, "uber", 1.00)])

    assert totals[1].uber_cents == 100
    assert totals[1].trips == {"uber": 0}


def test_no_entries():
    assert aggregate_platform_entries([]) == {}


def test_parse_week_id():
    week = parse_week_id("2024-W40")

    assert week.start == date(2024, 9, 30)
    assert week.end == date(2024, 10, 6)


def test_week_53_only_in_long_years():
    assert parse_week_id("2020-W53").start == date(2020, 12, 28)

    with pytest.raises(ValidationError):
        parse_week_id("2021-W53")


@pytest.mark.parametrize("week_id", ["2024-40", "2024-W4", "W40-2024", "", None])
def test_malformed_week_id(week_id):
    with pytest.raises(ValidationError):
        parse_week_id(week_id)


def test_week_id_for_crosses_year_boundary():
    assert week_id_for(date(2025, 1, 1)) == "2025-W01"
    assert week_id_for(date(2021, 1, 3)) == "2020-W53"


def test_week_id_for_round_trips_through_parse():
    week = parse_week_id(week_id_for(date(2024, 10, 2)))

    assert week.week_id == "2024-W40"
    assert week.start == date(2024, 9, 30)
    assert week.end == date(2024, 10, 6)
