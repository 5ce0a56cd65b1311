import logging
from datetime import date

import pytest

from gymhub.logging_utils import EmailMaskingFilter, mask_emails
from gymhub.models import MessageLog
from gymhub.services.email_service import email_service
from gymhub.services.notifications import NotificationGateway, format_amount, format_expiry
from gymhub.services.sms_service import normalize_phone, sms_service


class FakeChannel:
    def __init__(self, success=True):
        self.success = success
        self.sent = []

    def _result(self, kwargs):
        self.sent.append(kwargs)
        if self.success:
            return {'success': True, 'message_id': 'fake', 'error': None}
        return {'success': False, 'message_id': None, 'error': 'channel down'}

    def send_email(self, **kwargs):
        return self._result(kwargs)

    def send_sms(self, **kwargs):
        return self._result(kwargs)


def test_format_amount(app):
    assert format_amount(150) == 'GH₵150.00'
    assert format_amount('12.5') == 'GH₵12.50'


def test_format_expiry():
    assert format_expiry('2024-03-10') == 'Mar 10, 2024'
    assert format_expiry('2024-03-10T11:00:00') == 'Mar 10, 2024 11:00'
    assert format_expiry(None) == 'N/A'


@pytest.mark.parametrize('phone, expected', [
    ('024 123 4567', '+233241234567'),
    ('+233 24 123 4567', '+233241234567'),
    ('00233241234567', '+233241234567'),
    ('233241234567', '+233241234567'),
    ('', ''),
])
def test_normalize_phone(phone, expected):
    assert normalize_phone(phone, country_code='233') == expected


def test_one_channel_is_enough(app, make_member):
    email, sms = FakeChannel(success=False), FakeChannel()
    gateway = NotificationGateway(email=email, sms=sms)

    result = gateway.send_welcome(make_member(email='kwame@example.com'))

    assert result['success'] is True
    assert len(email.sent) == 1
    assert len(sms.sent) == 1


def test_all_channels_failing(app, make_member):
    gateway = NotificationGateway(email=FakeChannel(success=False), sms=FakeChannel(success=False))
    result = gateway.send_welcome(make_member(email='kwame@example.com'))
    assert result['success'] is False
    assert result['error'] == 'channel down; channel down'


def test_phone_only_member_gets_sms_only(app, make_member):
    email, sms = FakeChannel(), FakeChannel()
    gateway = NotificationGateway(email=email, sms=sms)

    gateway.send_payment_confirmation(
        member_name='Kwame Mensah', email=None, phone='0241234567', amount=150, method='Cash',
        date=date(2024, 3, 10), expiry_date='2024-04-10', transaction_id='TX-1',
    )

    assert email.sent == []
    assert 'GH₵150.00' in sms.sent[0]['body']
    assert 'Apr 10, 2024' in sms.sent[0]['body']
    assert 'Ref: TX-1' in sms.sent[0]['body']


class RenderingChannel(FakeChannel):
    """Email channel that keeps the HTML the real service would send."""

    def send_email(self, **kwargs):
        kwargs['html'] = email_service.render(kwargs['template_file'], kwargs['params'])
        return self._result(kwargs)


def test_member_text_is_escaped_in_every_email(app, make_member):
    email = RenderingChannel()
    gateway = NotificationGateway(email=email, sms=FakeChannel())
    member = make_member(full_name='<a href="http://evil">Click</a>', email='kwame@example.com')

    gateway.send_welcome(member)
    gateway.send_payment_confirmation(
        member_name=member.full_name, email=member.email, phone=None, amount=150, method='Mobile Money',
        date=date(2024, 3, 10), expiry_date=member.expiry_date, transaction_id='<script>steal()</script>',
    )
    gateway.send_message(member, 'Hi', '<b>Closed</b> Monday')

    welcome, receipt, message = [sent['html'] for sent in email.sent]
    for html in (welcome, receipt, message):
        assert '<a href' not in html
        assert '&lt;a href=' in html
    assert '<script>' not in receipt
    assert '&lt;script&gt;steal()&lt;/script&gt;' in receipt
    assert '&lt;b&gt;Closed&lt;/b&gt; Monday' in message


def test_placeholders_inside_values_stay_literal(app):
    html = email_service.render('emails/message.html', {
        'GYM_NAME': 'Iron Temple',
        'MEMBER_NAME': '{{ params.GYM_NAME }}',
        'SUBJECT': 'Hi',
        'MESSAGE': 'See you',
    })
    assert 'Hi {{ params.GYM_NAME }},' in html
    assert '<h2>Iron Temple</h2>' in html


def test_malformed_expiry_is_shown_as_written():
    assert format_expiry('31/12/2024') == '31/12/2024'


def test_email_dry_run_is_logged(app):
    result = email_service.send_email(
        to_email='kwame@example.com',
        to_name='Kwame Mensah',
        subject='Hello',
        template_file='emails/message.html',
        params={'MEMBER_NAME': 'Kwame Mensah', 'SUBJECT': 'Hello', 'MESSAGE': 'Hi'},
        message_type='general',
    )
    assert result == {'success': True, 'message_id': 'dry_run', 'error': None}
    log = MessageLog.query.one()
    assert log.channel == 'email'
    assert log.status == 'dry_run'


def test_sms_without_credentials_fails_cleanly(app):
    result = sms_service.send_sms(
        to_phone='0241234567', to_name='Kwame Mensah', body='Hi', message_type='general', dry_run=False,
    )
    assert result['success'] is False
    assert result['error'] == 'SMS service not configured'
    assert MessageLog.query.one().status == 'failed'


def test_email_masking_filter():
    assert mask_emails('failed for ama@example.com') == 'failed for [email]'

    record = logging.LogRecord('gymhub', logging.WARNING, __file__, 1, 'Duplicate email %s', ('ama@example.com',), None)
    EmailMaskingFilter().filter(record)
    assert record.getMessage() == 'Duplicate email [email]'

    record = logging.LogRecord('gymhub', logging.INFO, __file__, 1, 'Linked %s', ('ama@example.com',), None)
    EmailMaskingFilter().filter(record)
    assert record.getMessage() == 'Linked ama@example.com'
