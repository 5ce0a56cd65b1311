# Pure subscription logic: no database or Flask access in this package
from gymhub.core.clock import Clock, SystemClock, FixedClock, system_clock
from gymhub.core.plans import Plan, compute_expiry, coerce_plan, is_day_pass, to_local_date
from gymhub.core.status import ACTIVE, EXPIRING, EXPIRED, resolve_status, expiry_instant

__all__ = [
    'Clock', 'SystemClock', 'FixedClock', 'system_clock',
    'Plan', 'compute_expiry', 'coerce_plan', 'is_day_pass', 'to_local_date',
    'ACTIVE', 'EXPIRING', 'EXPIRED', 'resolve_status', 'expiry_instant',
]
