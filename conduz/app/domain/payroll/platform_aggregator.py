"""
Platform Earnings Aggregator.

Merges normalized per-platform weekly entries (Uber, Bolt, myprio fuel,
ViaVerde tolls) into per-driver totals.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable

from conduz.app.domain.payroll.money import to_cents
from conduz.app.models.payroll_enums import Platform

logger = logging.getLogger(__name__)

# Which bucket of PlatformTotals each platform feeds
_PLATFORM_BUCKETS = {
    Platform.UBER: "uber_cents",
    Platform.BOLT: "bolt_cents",
    Platform.MYPRIO: "fuel_cents",
    Platform.VIAVERDE: "tolls_cents",
}


@dataclass
class PlatformTotals:
    driver_id: int
    uber_cents: int = 0
    bolt_cents: int = 0
    fuel_cents: int = 0
    tolls_cents: int = 0
    trips: Dict[str, int] = field(default_factory=dict)


def aggregate_platform_entries(entries: Iterable) -> Dict[int, PlatformTotals]:
    """
    Sum normalized entries per driver.
    
    Each entry needs `driver_id`, `platform`, `total_value` and optionally
    `total_trips`. Entries for unknown platforms are skipped.
    
    Returns:
        Mapping driver_id -> PlatformTotals
    """
    totals: Dict[int, PlatformTotals] = {}
    
    for entry in entries:
        try:
            platform = Platform(entry.platform)
        except ValueError:
            logger.warning("Skipping platform entry with invalid platform %r", entry.platform)
            continue
        
        bucket = totals.setdefault(entry.driver_id, PlatformTotals(driver_id=entry.driver_id))
        attr = _PLATFORM_BUCKETS[platform]
        setattr(bucket, attr, getattr(bucket, attr) + to_cents(entry.total_value, field="total_value"))
        bucket.trips[platform.value] = bucket.trips.get(platform.value, 0) + int(entry.total_trips or 0)
    
    return totals
