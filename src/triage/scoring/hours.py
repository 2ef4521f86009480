"""Working-hours membership shared by the priority scorer and the slot suggester."""

from __future__ import annotations

from datetime import datetime

from triage.domain.models import WorkingHours


def weekday_index(moment: datetime) -> int:
    """Return the weekday of *moment* with 0 meaning Sunday and 6 Saturday."""
    return (moment.weekday() + 1) % 7


def is_within_working_hours(hours: WorkingHours, moment: datetime) -> bool:
    """Return True if *moment* falls inside the working window.

    *moment* is converted to the working-hours timezone first.  Both clock
    bounds are inclusive and compared at minute precision, so with
    ``09:00``-``17:00`` both 09:00 and 17:00 count as inside.

    Args:
        hours: The user's working hours.
        moment: A timezone-aware datetime.

    Returns:
        Whether *moment* is on a working day and within the clock range.
    """
    local = moment.astimezone(hours.tzinfo)
    if weekday_index(local) not in hours.days:
        return False
    minute_of_day = local.hour * 60 + local.minute
    return hours.start_minutes <= minute_of_day <= hours.end_minutes
