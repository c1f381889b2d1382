"""
ISO week helpers.

Weekly records and payment cycles are keyed by ISO week ids such as
``2024-W40`` (Monday to Sunday).
"""

import re
from dataclasses import dataclass
from datetime import date, timedelta

from conduz.app.core.exceptions import ValidationError

WEEK_ID_PATTERN = re.compile(r"^(\d{4})-W(\d{2})$")


@dataclass(frozen=True)
class IsoWeek:
    week_id: str
    start: date
    end: date


def parse_week_id(week_id: str) -> IsoWeek:
    """
    Parse an ISO week id into its Monday and Sunday.
    
    Raises:
        ValidationError: If the id is malformed or the week does not exist
    """
    match = WEEK_ID_PATTERN.match(week_id or "")
    if not match:
        raise ValidationError(f"Invalid week id '{week_id}', expected YYYY-Www", details={"week_id": week_id})
    
    year, week = int(match.group(1)), int(match.group(2))
    try:
        start = date.fromisocalendar(year, week, 1)
    except ValueError:
        raise ValidationError(f"Week {week} does not exist in {year}", details={"week_id": week_id})
    
    return IsoWeek(week_id=week_id, start=start, end=start + timedelta(days=6))


def week_id_for(day: date) -> str:
    """Return the ISO week id (e.g. "2024-W40") of the week containing `day`."""
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"
