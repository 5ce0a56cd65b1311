"""
Subscription plans and expiry date arithmetic.

Expiry values are strings with two shapes:
- Day passes expire at an hour on the purchase day: 'YYYY-MM-DDTHH:MM:SS'
- Every other plan expires at the end of a calendar day: 'YYYY-MM-DD'

Callers tell the two apart by the 'T' separator, so the asymmetry is
part of the contract.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from gymhub.core.clock import Clock, system_clock
from gymhub.errors import ValidationError


class Plan(str, Enum):
    MONTHLY = 'Monthly'
    TWO_WEEKS = '2 Weeks'
    ONE_WEEK = '1 Week'
    DAY_MORNING = 'Day Morning'
    DAY_EVENING = 'Day Evening'
    # Legacy plans kept for imported members
    BASIC = 'Basic'
    PREMIUM = 'Premium'
    VIP = 'VIP'


# Same-day cutoff for day passes (local time)
DAY_PASS_CUTOFFS = {
    Plan.DAY_MORNING: time(11, 0, 0),
    Plan.DAY_EVENING: time(20, 0, 0),
}

# Default prices when staff don't enter an amount
PLAN_PRICES = {
    Plan.MONTHLY: Decimal('150'),
    Plan.TWO_WEEKS: Decimal('90'),
    Plan.ONE_WEEK: Decimal('50'),
    Plan.DAY_MORNING: Decimal('10'),
    Plan.DAY_EVENING: Decimal('10'),
}

# Accepted spellings from forms and imports, e.g. 'TwoWeeks', 'day_morning'
_PLAN_ALIASES = {
    'monthly': Plan.MONTHLY,
    'twoweeks': Plan.TWO_WEEKS,
    '2weeks': Plan.TWO_WEEKS,
    'oneweek': Plan.ONE_WEEK,
    '1week': Plan.ONE_WEEK,
    'daymorning': Plan.DAY_MORNING,
    'dayevening': Plan.DAY_EVENING,
    'basic': Plan.BASIC,
    'premium': Plan.PREMIUM,
    'vip': Plan.VIP,
}

DateLike = Union[date, datetime, str]


def coerce_plan(value) -> Optional[Plan]:
    """Map a stored or submitted plan value to a Plan, or None if unrecognized."""
    if isinstance(value, Plan):
        return value
    if value is None:
        return None
    key = ''.join(ch for ch in str(value).lower() if ch.isalnum())
    return _PLAN_ALIASES.get(key)


def plan_value(value) -> str:
    """Plan value as stored in the database. Unknown values are kept verbatim."""
    plan = coerce_plan(value)
    return plan.value if plan else str(value)


def is_day_pass(plan) -> bool:
    return coerce_plan(plan) in DAY_PASS_CUTOFFS


def default_price(plan) -> Optional[Decimal]:
    return PLAN_PRICES.get(coerce_plan(plan))


def today(clock: Clock = None) -> date:
    return (clock or system_clock).now().date()


def to_local_date(value: DateLike) -> date:
    """
    Reduce a date, datetime or date string to a calendar date.

    Any time portion is dropped before parsing, so '2024-03-10T00:00:00Z'
    stays on March 10 whatever the server's UTC offset is.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip().split('T')[0].split(' ')[0]
        try:
            return date.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid date: {value!r}")
    raise ValidationError(f"Invalid date: {value!r}")


def compute_expiry(plan, start_date: DateLike = None, clock: Clock = None) -> str:
    """
    Calculate the expiry value for a plan starting on start_date.

    Args:
        plan: Plan or plan value; unrecognized values use the monthly rule
        start_date: Start of the subscription (defaults to today)
        clock: Clock used when start_date is omitted

    Returns:
        'YYYY-MM-DDTHH:MM:SS' for day passes, 'YYYY-MM-DD' otherwise
    """
    if start_date is None:
        start = today(clock)
    else:
        start = to_local_date(start_date)

    plan = coerce_plan(plan)

    if plan in DAY_PASS_CUTOFFS:
        return datetime.combine(start, DAY_PASS_CUTOFFS[plan]).isoformat(timespec='seconds')

    if plan in (Plan.MONTHLY, Plan.BASIC, Plan.PREMIUM):
        expiry = start + relativedelta(months=1)
    elif plan == Plan.TWO_WEEKS:
        expiry = start + timedelta(days=14)
    elif plan == Plan.ONE_WEEK:
        expiry = start + timedelta(days=7)
    elif plan == Plan.VIP:
        expiry = start + relativedelta(months=6)
    else:
        # Unrecognized plan: charge like a monthly membership
        expiry = start + relativedelta(months=1)

    return expiry.isoformat()
