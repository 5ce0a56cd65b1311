"""
Member notifications: every message goes out by email and, when the
member has a phone number, by SMS.

Delivery is best-effort. Callers get a result dict and decide whether to
log it; nothing here raises for a failed send.
"""

from decimal import Decimal
from flask import current_app

from gymhub.core.status import expiry_instant
from gymhub.errors import ValidationError
from gymhub.services.email_service import email_service
from gymhub.services.sms_service import sms_service


def format_amount(amount) -> str:
    symbol = current_app.config.get('CURRENCY_SYMBOL', 'GH₵')
    return f"{symbol}{Decimal(str(amount)):.2f}"


def format_expiry(expiry_date) -> str:
    """Human readable expiry: 'Mar 10, 2024' or 'Mar 10, 2024 11:00' for day passes."""
    if not expiry_date:
        return 'N/A'
    try:
        moment = expiry_instant(expiry_date)
    except ValidationError:
        return str(expiry_date)
    if 'T' in str(expiry_date):
        return moment.strftime('%b %d, %Y %H:%M')
    return moment.strftime('%b %d, %Y')


class NotificationGateway:
    """Sends member messages through the email and SMS services."""

    def __init__(self, email=None, sms=None):
        self.email = email or email_service
        self.sms = sms or sms_service

    def _dispatch(self, *, name, email, phone, subject, template, params, sms_body, message_type, member_id):
        result = {'success': False, 'email': None, 'sms': None, 'error': None}

        if not email and not phone:
            result['error'] = 'No contact details'
            return result

        if email:
            result['email'] = self.email.send_email(
                to_email=email,
                to_name=name,
                subject=subject,
                template_file=template,
                params=params,
                message_type=message_type,
                member_id=member_id,
            )
        if phone:
            result['sms'] = self.sms.send_sms(
                to_phone=phone,
                to_name=name,
                body=sms_body,
                message_type=message_type,
                member_id=member_id,
            )

        sent = [r for r in (result['email'], result['sms']) if r and r['success']]
        result['success'] = bool(sent)
        if not sent:
            errors = [r['error'] for r in (result['email'], result['sms']) if r and r['error']]
            result['error'] = '; '.join(errors) or 'Delivery failed'
        return result

    def send_payment_confirmation(
        self,
        member_name: str,
        email: str,
        phone: str,
        amount,
        method: str,
        date,
        expiry_date=None,
        transaction_id: str = None,
        member_id: int = None,
        message_type: str = 'payment_confirmation'
    ) -> dict:
        """Receipt for a confirmed payment."""
        gym_name = current_app.config.get('GYM_NAME')
        amount_text = format_amount(amount)
        expiry_text = format_expiry(expiry_date)
        paid_on = date.isoformat() if hasattr(date, 'isoformat') else str(date)

        sms_body = (
            f"Hi {member_name}, your {method} payment of {amount_text} to {gym_name} "
            f"has been confirmed. Membership valid until {expiry_text}."
        )
        if transaction_id:
            sms_body += f" Ref: {transaction_id}"

        return self._dispatch(
            name=member_name,
            email=email,
            phone=phone,
            subject=f"Payment Confirmed - {gym_name}",
            template='emails/payment_confirmation.html',
            params={
                'MEMBER_NAME': member_name,
                'AMOUNT': amount_text,
                'PAYMENT_METHOD': method,
                'PAYMENT_DATE': paid_on,
                'TRANSACTION_ID': transaction_id or 'N/A',
                'EXPIRY_DATE': expiry_text,
            },
            sms_body=sms_body,
            message_type=message_type,
            member_id=member_id,
        )

    def send_welcome(self, member) -> dict:
        """Welcome message for a newly registered member."""
        gym_name = current_app.config.get('GYM_NAME')
        expiry_text = format_expiry(member.expiry_date)
        return self._dispatch(
            name=member.full_name,
            email=member.email,
            phone=member.phone,
            subject=f"Welcome to {gym_name}!",
            template='emails/welcome.html',
            params={
                'MEMBER_NAME': member.full_name,
                'PLAN': member.plan,
                'START_DATE': member.start_date.isoformat() if member.start_date else '',
                'EXPIRY_DATE': expiry_text,
            },
            sms_body=(
                f"Welcome to {gym_name}, {member.full_name}! Your {member.plan} plan "
                f"is active until {expiry_text}."
            ),
            message_type='welcome',
            member_id=member.id,
        )

    def send_message(self, member, subject: str, message: str, message_type: str = 'general') -> dict:
        """Free-form message from staff (reminders, announcements)."""
        return self._dispatch(
            name=member.full_name,
            email=member.email,
            phone=member.phone,
            subject=subject,
            template='emails/message.html',
            params={
                'MEMBER_NAME': member.full_name,
                'SUBJECT': subject,
                'MESSAGE': message,
            },
            sms_body=message,
            message_type=message_type,
            member_id=member.id,
        )


# Global instance
notification_gateway = NotificationGateway()
