"""
Membership status derived from the stored expiry value.

The status column on members is only a cache; anything that makes a
decision or displays a member goes through resolve_status().
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from gymhub.core.plans import is_day_pass
from gymhub.errors import ValidationError

ACTIVE = 'active'
EXPIRING = 'expiring'
EXPIRED = 'expired'

STATUS_ORDER = {EXPIRED: 0, EXPIRING: 1, ACTIVE: 2}

END_OF_DAY = time(23, 59, 59, 999000)
DAY_PASS_WARNING = timedelta(hours=1)
PLAN_WARNING = timedelta(days=7)


def expiry_instant(value) -> Optional[datetime]:
    """
    Parse an expiry value into a local naive datetime.

    Bare dates mean the end of that day. Returns None for empty values.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        return datetime.combine(value, END_OF_DAY)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            if 'T' in text or ' ' in text:
                moment = datetime.fromisoformat(text.replace('Z', '+00:00'))
            else:
                return datetime.combine(date.fromisoformat(text), END_OF_DAY)
        except ValueError:
            raise ValidationError(f"Invalid expiry date: {value!r}")

    if moment.tzinfo is not None:
        moment = moment.astimezone().replace(tzinfo=None)
    return moment


def normalize_expiry(value) -> Optional[str]:
    """
    Stored form of an expiry value, local time without an offset.

    Whole days (bare dates) become 'YYYY-MM-DD', anything else
    'YYYY-MM-DDTHH:MM:SS', the same shapes compute_expiry() returns.
    """
    moment = expiry_instant(value)
    if moment is None:
        return None
    if moment.time() == END_OF_DAY:
        return moment.date().isoformat()
    return moment.replace(microsecond=0).isoformat()


def resolve_status(expiry_value, plan, now: datetime) -> str:
    """Return 'active', 'expiring' or 'expired' for a member as of now."""
    expiry = expiry_instant(expiry_value)
    if expiry is None:
        # No expiry on file: fail open
        return ACTIVE

    if expiry < now:
        return EXPIRED

    remaining = expiry - now
    window = DAY_PASS_WARNING if is_day_pass(plan) else PLAN_WARNING
    return EXPIRING if remaining <= window else ACTIVE
