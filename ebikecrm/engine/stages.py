"""
Stage Aggregator
Buckets contacts into the four pipeline stages and derives the lead metrics
shown on the board and the dashboard.

Every function takes an explicit snapshot (a sequence of Contact) and is pure:
running it twice on the same snapshot gives the same result.

Stage matching is exact: 'qualified' or 'Qualified ' is not 'Qualified'.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence, Tuple

from ebikecrm.engine.formatters import date_literal, parse_date
from ebikecrm.models import Contact, Stage

PERIOD_MODES = ('day', 'month', 'year')


def percent(part: int, whole: int) -> int:
    """part / whole * 100 rounded half up; 0 when whole is 0."""
    if not whole:
        return 0
    value = Decimal(part) * 100 / Decimal(whole)
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


@dataclass
class DayCount:
    """Leads created on one calendar day."""
    day: date
    label: str
    leads: int


@dataclass
class StageSummary:
    """Stage counts and rates for one period."""
    start: date
    end: date
    total: int = 0
    counts: Dict[Stage, int] = field(default_factory=dict)
    qualified_rate: int = 0
    conversion_rate: int = 0


# =============================================================================
# BUCKETS
# =============================================================================

def group_by_stage(contacts: Optional[Sequence[Contact]]) -> Dict[Stage, List[Contact]]:
    """Board columns in stage order. Contacts with an unknown stage are left out."""
    columns = {stage: [] for stage in Stage}
    for contact in contacts or ():
        stage = Stage.from_value(contact.stage)
        if stage is not None:
            columns[stage].append(contact)
    return columns


def count_by_stage(contacts: Optional[Sequence[Contact]]) -> Dict[Stage, int]:
    return {stage: len(members) for stage, members in group_by_stage(contacts).items()}


def qualified_rate(contacts: Optional[Sequence[Contact]]) -> int:
    """Share of all contacts in the snapshot that reached Qualified."""
    contacts = contacts or ()
    qualified = count_by_stage(contacts)[Stage.QUALIFIED]
    return percent(qualified, len(contacts))


def conversion_rate(contacts: Optional[Sequence[Contact]]) -> int:
    """
    Qualified count over Initial Contact count.

    The two buckets are disjoint, so this is not a funnel ratio and can go
    past 100. With no Initial Contact leads it is 100 if anything qualified,
    else 0.
    """
    counts = count_by_stage(contacts)
    qualified = counts[Stage.QUALIFIED]
    initial = counts[Stage.INITIAL_CONTACT]
    if initial == 0:
        return 100 if qualified > 0 else 0
    return percent(qualified, initial)


# =============================================================================
# PERIODS
# =============================================================================

def period_bounds(mode: str, reference: date) -> Tuple[date, date]:
    """
    Inclusive first and last day of the period containing reference.
      day   -> (reference, reference)
      month -> (1st, last day of month)
      year  -> (Jan 1, Dec 31)
    """
    if mode == 'day':
        return reference, reference
    if mode == 'month':
        last = calendar.monthrange(reference.year, reference.month)[1]
        return reference.replace(day=1), reference.replace(day=last)
    if mode == 'year':
        return date(reference.year, 1, 1), date(reference.year, 12, 31)
    raise ValueError(f"Unknown period mode {mode!r}; expected one of {', '.join(PERIOD_MODES)}")


def filter_period(contacts: Optional[Sequence[Contact]], mode: str, reference: date) -> List[Contact]:
    """Contacts created inside the period. Unparseable creation dates are dropped."""
    start, end = period_bounds(mode, reference)
    kept = []
    for contact in contacts or ():
        created = parse_date(contact.created_on)
        if created is not None and start <= created <= end:
            kept.append(contact)
    return kept


def leads_by_day(contacts: Optional[Sequence[Contact]], today: date, days: int = 7) -> List[DayCount]:
    """
    New leads per day over the trailing window ending today, oldest first.

    Days are matched on the stored 'DD-MM-YYYY' text itself, so a contact whose
    created_on is an ISO timestamp never lands in any bucket.
    """
    contacts = contacts or ()
    result = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        literal = date_literal(day)
        count = sum(1 for c in contacts if c.created_on == literal)
        result.append(DayCount(day=day, label=day.strftime('%d/%m'), leads=count))
    return result


def summarize_stages(contacts: Optional[Sequence[Contact]], mode: str, reference: date) -> StageSummary:
    """Counts and rates for the contacts created in the selected period."""
    start, end = period_bounds(mode, reference)
    in_period = filter_period(contacts, mode, reference)
    return StageSummary(
        start=start,
        end=end,
        total=len(in_period),
        counts=count_by_stage(in_period),
        qualified_rate=qualified_rate(in_period),
        conversion_rate=conversion_rate(in_period),
    )
