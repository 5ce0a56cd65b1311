"""
Twilio SMS integration.

Uses the Twilio Messages REST endpoint directly. Requires
TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER.
"""

import os
import requests
from flask import current_app

from gymhub import db
from gymhub.models import MessageLog


def normalize_phone(phone: str, country_code: str = None) -> str:
    """Convert local numbers (e.g. 0241234567) to E.164 (+233241234567)."""
    if not phone:
        return ''
    country_code = country_code or os.environ.get('SMS_COUNTRY_CODE', '233')
    digits = ''.join(ch for ch in phone if ch.isdigit())
    if phone.strip().startswith('+'):
        return f"+{digits}"
    if digits.startswith('00'):
        return f"+{digits[2:]}"
    if digits.startswith('0'):
        return f"+{country_code}{digits[1:]}"
    if digits.startswith(country_code):
        return f"+{digits}"
    return f"+{country_code}{digits}"


class SmsService:
    """Service for Twilio SMS."""

    MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"

    def is_configured(self) -> bool:
        config = current_app.config
        return all([
            config.get('TWILIO_ACCOUNT_SID'),
            config.get('TWILIO_AUTH_TOKEN'),
            config.get('TWILIO_FROM_NUMBER'),
        ])

    def send_sms(
        self,
        to_phone: str,
        to_name: str,
        body: str,
        message_type: str,
        member_id: int = None,
        dry_run: bool = None
    ) -> dict:
        """
        Send an SMS.

        Returns:
            dict with 'success', 'message_id', and 'error' keys
        """
        if dry_run is None:
            dry_run = current_app.config.get('NOTIFICATIONS_DRY_RUN', False)

        result = {
            'success': False,
            'message_id': None,
            'error': None
        }

        to_number = normalize_phone(to_phone)
        if not to_number:
            result['error'] = 'No phone number'
            return result

        message_log = MessageLog(
            channel='sms',
            message_type=message_type,
            recipient=to_number,
            recipient_name=to_name,
            member_id=member_id,
            status='pending'
        )
        db.session.add(message_log)

        if dry_run:
            message_log.status = 'dry_run'
            message_log.error_message = 'Dry run - SMS not sent'
            db.session.commit()
            result['success'] = True
            result['message_id'] = 'dry_run'
            return result

        if not self.is_configured():
            message_log.status = 'failed'
            message_log.error_message = 'Twilio not configured'
            db.session.commit()
            result['error'] = 'SMS service not configured'
            current_app.logger.warning("SMS skipped: Twilio credentials not set")
            return result

        config = current_app.config
        try:
            response = requests.post(
                self.MESSAGES_URL.format(sid=config['TWILIO_ACCOUNT_SID']),
                data={
                    'To': to_number,
                    'From': config['TWILIO_FROM_NUMBER'],
                    'Body': body,
                },
                auth=(config['TWILIO_ACCOUNT_SID'], config['TWILIO_AUTH_TOKEN']),
                timeout=10
            )

            if response.status_code not in (200, 201):
                message_log.status = 'failed'
                message_log.error_message = response.text[:1000]
                db.session.commit()
                current_app.logger.error(f"Twilio API error: {response.status_code} - {response.text}")
                result['error'] = f'API error: {response.status_code}'
                return result

            sid = response.json().get('sid')
            message_log.provider_message_id = sid
            message_log.status = 'sent'
            db.session.commit()

            result['success'] = True
            result['message_id'] = sid

        except requests.exceptions.Timeout:
            message_log.status = 'failed'
            message_log.error_message = 'Request timed out'
            db.session.commit()
            current_app.logger.error("Twilio API timeout")
            result['error'] = 'Request timed out'
        except Exception as e:
            message_log.status = 'failed'
            message_log.error_message = str(e)
            db.session.commit()
            current_app.logger.error(f"SMS send error: {e}")
            result['error'] = str(e)

        return result


# Singleton instance
sms_service = SmsService()
