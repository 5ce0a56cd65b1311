from datetime import date, datetime
from types import SimpleNamespace

import pytest

from gymhub.core.status import ACTIVE, EXPIRED, EXPIRING, expiry_instant
from gymhub.errors import DuplicateEmailError, NotFoundError, ValidationError
from gymhub.models import ActivityLog, Member, Payment
from gymhub.services.subscriptions import SubscriptionService, renew


def test_renew_starts_today():
    terms = renew(SimpleNamespace(plan='Monthly'), datetime(2024, 1, 31, 18, 45))
    assert terms.start_date == date(2024, 1, 31)
    assert terms.expiry_date == '2024-02-29'
    assert terms.status == ACTIVE


def test_renew_day_pass():
    terms = renew(SimpleNamespace(plan='Day Evening'), datetime(2024, 3, 10, 7, 0))
    assert terms.expiry_date == '2024-03-10T20:00:00'


def test_renewals_on_different_days_differ():
    member = SimpleNamespace(plan='1 Week')
    assert renew(member, datetime(2024, 3, 10)) != renew(member, datetime(2024, 3, 11))


# ============== REGISTRATION ==============

def test_register_member(subscriptions, notifier):
    member = subscriptions.register_member(
        {'full_name': ' Efua Asante ', 'phone': '0271234567', 'email': 'Efua@Example.com', 'plan': '2 Weeks'},
        staff_name='Abena',
    )

    assert member.full_name == 'Efua Asante'
    assert member.email == 'efua@example.com'
    assert member.start_date == date(2024, 3, 10)
    assert member.expiry_date == '2024-03-24'
    assert member.status == ACTIVE
    assert notifier.kinds() == ['welcome']
    assert ActivityLog.query.filter_by(action='Add Member', actor='Abena').count() == 1


def test_register_with_manual_expiry(subscriptions):
    member = subscriptions.register_member({
        'full_name': 'Yaw Darko', 'phone': '0261234567',
        'start_date': '2024-01-01', 'expiry_date': '2024-06-30',
    })
    assert member.start_date == date(2024, 1, 1)
    assert member.expiry_date == '2024-06-30'


def test_register_stores_offset_expiry_in_local_form(subscriptions):
    member = subscriptions.register_member({
        'full_name': 'Yaw Darko', 'phone': '0261234567',
        'start_date': '2024-01-01', 'expiry_date': '2024-06-30T10:00:00+05:00',
    })
    assert len(member.expiry_date) <= 19
    assert expiry_instant(member.expiry_date) == expiry_instant('2024-06-30T10:00:00+05:00')


@pytest.mark.parametrize('data', [
    {'phone': '0261234567'},
    {'full_name': 'Yaw Darko'},
    {'full_name': 'Yaw Darko', 'phone': '0261234567', 'plan': 'Platinum'},
    {'full_name': 'Yaw Darko', 'phone': '0261234567', 'start_date': '2024-03-10', 'expiry_date': '2024-03-01'},
    {'full_name': 'Yaw Darko', 'phone': '0261234567', 'expiry_date': 'soon'},
])
def test_register_rejects_bad_input(subscriptions, data):
    with pytest.raises(ValidationError):
        subscriptions.register_member(data)
    assert Member.query.count() == 0


def test_register_duplicate_email(subscriptions, make_member):
    make_member(email='efua@example.com')
    with pytest.raises(DuplicateEmailError):
        subscriptions.register_member({'full_name': 'Efua Asante', 'phone': '0271234567', 'email': 'EFUA@example.com'})


def test_welcome_failure_keeps_member(app, failing_notifier, clock):
    service = SubscriptionService(notifier=failing_notifier, clock=clock)
    member = service.register_member({'full_name': 'Efua Asante', 'phone': '0271234567'})
    assert member.id is not None


# ============== RENEWAL ==============

def test_renew_member_with_cash(subscriptions, make_member, notifier):
    member = make_member(start_date=date(2024, 1, 1), expiry_date='2024-02-01')

    member, payment = subscriptions.renew_member(member.id, staff_name='Abena')

    assert member.start_date == date(2024, 3, 10)
    assert member.expiry_date == '2024-04-10'
    assert member.current_status(subscriptions.clock) == ACTIVE
    assert payment.status == Payment.CONFIRMED
    assert payment.member_id == member.id
    assert str(payment.amount) == '150.00'
    assert notifier.kinds() == ['payment']
    assert ActivityLog.query.filter_by(action='Member Renewed').count() == 1


def test_renew_onto_new_plan(subscriptions, make_member):
    member = make_member()
    member, payment = subscriptions.renew_member(member.id, staff_name='Abena', plan='one_week')
    assert member.plan == '1 Week'
    assert member.expiry_date == '2024-03-17'
    assert str(payment.amount) == '50.00'


def test_renew_with_mobile_money_waits_for_verification(subscriptions, make_member, notifier):
    member = make_member()
    member, payment = subscriptions.renew_member(
        member.id, staff_name='Abena', method='Mobile Money',
        metadata={'transaction_id': 'TX-9', 'momo_phone': '0241112222', 'network': 'Vodafone'},
    )
    assert payment.status == Payment.PENDING
    assert payment.transaction_id == 'TX-9'
    assert notifier.calls == []


def test_renew_plan_without_price_needs_amount(subscriptions, make_member):
    member = make_member(plan='VIP')
    with pytest.raises(ValidationError):
        subscriptions.renew_member(member.id, staff_name='Abena')

    _, payment = subscriptions.renew_member(member.id, staff_name='Abena', amount='600')
    assert str(payment.amount) == '600.00'


def test_invalid_renewal_changes_nothing(subscriptions, make_member):
    member = make_member(start_date=date(2024, 1, 1), expiry_date='2024-02-01')
    with pytest.raises(ValidationError):
        subscriptions.renew_member(member.id, staff_name='Abena', amount=-10)
    with pytest.raises(ValidationError):
        subscriptions.renew_member(member.id, staff_name='Abena', method='Cheque')
    with pytest.raises(ValidationError):
        subscriptions.renew_member(member.id, staff_name='Abena', plan='Platinum')

    assert member.expiry_date == '2024-02-01'
    assert Payment.query.count() == 0


def test_renew_unknown_member(subscriptions):
    with pytest.raises(NotFoundError):
        subscriptions.renew_member(404, staff_name='Abena')


# ============== SUMMARY ==============

def test_summary_orders_by_urgency(subscriptions, make_member):
    make_member(full_name='Active', expiry_date='2024-04-01')
    make_member(full_name='Expiring Later', expiry_date='2024-03-16')
    make_member(full_name='Expiring Soon', expiry_date='2024-03-12')
    make_member(full_name='Expired', expiry_date='2024-03-01')
    make_member(full_name='Stale Cache', expiry_date='2024-02-01')

    summary = subscriptions.summary()

    assert summary['counts'] == {EXPIRED: 2, EXPIRING: 2, ACTIVE: 1}
    assert [m['full_name'] for m in summary['members']] == [
        'Stale Cache', 'Expired', 'Expiring Soon', 'Expiring Later', 'Active',
    ]
    assert summary['members'][0]['status'] == EXPIRED


def test_summary_reports_unreadable_expiry_as_active(subscriptions, make_member):
    make_member(full_name='Expired', expiry_date='2024-03-01')
    make_member(full_name='Paper Record', expiry_date='31/12/2024')

    summary = subscriptions.summary()

    assert summary['counts'] == {EXPIRED: 1, EXPIRING: 0, ACTIVE: 1}
    assert [m['full_name'] for m in summary['members']] == ['Expired', 'Paper Record']
    assert summary['members'][1]['expiry_date'] == '31/12/2024'
