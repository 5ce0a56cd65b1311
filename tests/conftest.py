from datetime import date, datetime

import pytest

from gymhub import create_app, db
from gymhub.core.clock import FixedClock
from gymhub.core.plans import compute_expiry
from gymhub.services.payments import PaymentWorkflow
from gymhub.services.stores import MemberStore
from gymhub.services.subscriptions import SubscriptionService

STAFF_NAME = 'Abena'


class RecordingNotifier:
    """Stands in for the notification gateway and remembers every call."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def _result(self):
        if self.fail:
            raise RuntimeError('gateway down')
        return {'success': True, 'email': None, 'sms': None, 'error': None}

    def send_payment_confirmation(self, **kwargs):
        self.calls.append(('payment', kwargs))
        return self._result()

    def send_welcome(self, member):
        self.calls.append(('welcome', member.id))
        return self._result()

    def send_message(self, member, subject, message, message_type='general'):
        self.calls.append((message_type, member.id))
        return self._result()

    def kinds(self):
        return [kind for kind, _ in self.calls]


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 10, 9, 0, 0))


@pytest.fixture
def app(clock):
    app = create_app('testing')
    app.config['CLOCK'] = clock
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def staff_client(client):
    response = client.post('/admin/login', json={'password': 'test-password', 'staff_name': STAFF_NAME})
    assert response.status_code == 200
    return client


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def workflow(app, notifier, clock):
    return PaymentWorkflow(notifier=notifier, clock=clock)


@pytest.fixture
def subscriptions(app, notifier, clock):
    return SubscriptionService(notifier=notifier, clock=clock)


@pytest.fixture
def make_member(app):
    def _make_member(full_name='Kwame Mensah', plan='Monthly', start_date=date(2024, 3, 1), **fields):
        fields.setdefault('phone', '0241234567')
        fields.setdefault('expiry_date', compute_expiry(plan, start_date))
        return MemberStore().create(dict(fields, full_name=full_name, plan=plan, start_date=start_date, status='active'))
    return _make_member


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail=True)
