"""
Minimum-notice and maximum-advance booking window.
"""

from pendulum import Date, DateTime

from .models import AvailabilityPolicy


def notice_cutoff(now: DateTime, policy: AvailabilityPolicy) -> DateTime:
    """Earliest instant a slot must start strictly after."""
    return now.add(hours=policy.min_notice_hours)


def last_bookable_date(now: DateTime, policy: AvailabilityPolicy) -> Date:
    """Furthest coach-local date that may be offered."""
    return now.in_timezone(policy.timezone).date().add(days=policy.max_advance_days)


def is_within_window(candidate_start: DateTime, now: DateTime, policy: AvailabilityPolicy) -> bool:
    """
    Check a candidate against the notice and advance limits.

    A slot starting exactly at the notice boundary is not offerable.
    """
    if candidate_start <= notice_cutoff(now, policy):
        return False

    candidate_date = candidate_start.in_timezone(policy.timezone).date()
    return candidate_date <= last_bookable_date(now, policy)
