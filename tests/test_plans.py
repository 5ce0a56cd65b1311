from datetime import date, datetime, time

import pytest

from gymhub.core.clock import FixedClock
from gymhub.core.plans import Plan, coerce_plan, compute_expiry, default_price, to_local_date
from gymhub.core.status import expiry_instant
from gymhub.errors import ValidationError


@pytest.mark.parametrize('plan, start, expected', [
    ('Monthly', '2024-03-10', '2024-04-10'),
    ('Monthly', '2024-01-31', '2024-02-29'),
    ('Monthly', '2023-01-31', '2023-02-28'),
    ('2 Weeks', '2024-03-10', '2024-03-24'),
    ('1 Week', '2024-03-10', '2024-03-17'),
    ('Basic', '2024-03-10', '2024-04-10'),
    ('Premium', '2024-12-15', '2025-01-15'),
    ('VIP', '2024-03-10', '2024-09-10'),
    ('Day Morning', '2024-03-10', '2024-03-10T11:00:00'),
    ('Day Evening', '2024-03-10', '2024-03-10T20:00:00'),
])
def test_compute_expiry(plan, start, expected):
    assert compute_expiry(plan, start) == expected


def test_unknown_plan_falls_back_to_monthly():
    assert compute_expiry('Platinum', '2024-03-10') == '2024-04-10'


def test_time_suffix_is_ignored():
    assert compute_expiry('Monthly', '2024-03-10T00:00:00Z') == '2024-04-10'
    assert compute_expiry('Day Morning', '2024-03-10 18:30:00') == '2024-03-10T11:00:00'


def test_accepts_date_and_datetime():
    assert compute_expiry('1 Week', date(2024, 3, 10)) == '2024-03-17'
    assert compute_expiry('1 Week', datetime(2024, 3, 10, 23, 0)) == '2024-03-17'


def test_start_defaults_to_clock_today():
    clock = FixedClock(datetime(2024, 2, 29, 21, 0))
    assert compute_expiry('Monthly', clock=clock) == '2024-03-29'
    assert compute_expiry('Day Evening', clock=clock) == '2024-02-29T20:00:00'


@pytest.mark.parametrize('plan', list(Plan))
@pytest.mark.parametrize('start', [date(2024, 1, 31), date(2024, 2, 29), date(2024, 12, 31)])
def test_expiry_never_before_start(plan, start):
    expiry = expiry_instant(compute_expiry(plan, start))
    assert expiry > datetime.combine(start, time.min)


def test_invalid_start_date():
    with pytest.raises(ValidationError):
        compute_expiry('Monthly', 'not-a-date')
    with pytest.raises(ValidationError):
        to_local_date(42)


def test_coerce_plan_aliases():
    assert coerce_plan('TwoWeeks') is Plan.TWO_WEEKS
    assert coerce_plan('day_morning') is Plan.DAY_MORNING
    assert coerce_plan(' vip ') is Plan.VIP
    assert coerce_plan('Platinum') is None
    assert coerce_plan(None) is None


def test_default_price():
    assert default_price('Monthly') == 150
    assert default_price('Day Evening') == 10
    assert default_price('VIP') is None
