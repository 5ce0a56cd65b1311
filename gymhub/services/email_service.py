"""
Member email through Brevo's transactional API.

Each message type (welcome, payment_confirmation, reminder, expiry,
general) renders one template from templates/emails/ and leaves a
MessageLog row behind: sent, dry_run or failed.
"""

import os
import re
from flask import current_app
from markupsafe import escape
import sib_api_v3_sdk
from sib_api_v3_sdk.rest import ApiException

from gymhub import db
from gymhub.models import MessageLog

PLACEHOLDER = re.compile(r'\{\{\s*params\.(\w+)\s*\}\}')


class EmailService:
    """Renders and sends member emails."""

    def __init__(self):
        self._client = None

    def is_configured(self) -> bool:
        return bool(current_app.config.get('BREVO_API_KEY'))

    def _transactional_api(self):
        if self._client is None:
            configuration = sib_api_v3_sdk.Configuration()
            configuration.api_key['api-key'] = current_app.config['BREVO_API_KEY']
            self._client = sib_api_v3_sdk.TransactionalEmailsApi(sib_api_v3_sdk.ApiClient(configuration))
        return self._client

    def render(self, template_file: str, params: dict) -> str:
        """
        Fill the {{ params.X }} placeholders of an email template.

        One pass over the template: every value is HTML-escaped, and
        placeholder text inside a value is left as written. Placeholders
        without a value render empty.
        """
        path = os.path.join(current_app.root_path, 'templates', template_file)
        with open(path, 'r', encoding='utf-8') as f:
            template = f.read()

        def fill(match):
            value = params.get(match.group(1))
            return '' if value is None else str(escape(value))

        return PLACEHOLDER.sub(fill, template)

    def _finish(self, log: MessageLog, status: str, message_id: str = None, error: str = None) -> dict:
        """Close the log row for this attempt and build the caller's result."""
        log.status = status
        log.error_message = error
        if status == 'sent':
            log.provider_message_id = message_id
        db.session.commit()

        failed = status == 'failed'
        return {'success': not failed, 'message_id': message_id, 'error': error if failed else None}

    def send_email(
        self,
        to_email: str,
        to_name: str,
        subject: str,
        template_file: str,
        params: dict,
        message_type: str,
        member_id: int = None,
        dry_run: bool = None
    ) -> dict:
        """
        Render a member email and send it.

        Args:
            template_file: e.g. 'emails/payment_confirmation.html'
            params: Template values, plain text. GYM_NAME is filled in when absent.
            message_type: welcome, payment_confirmation, reminder, expiry or general
            dry_run: Log without sending. Defaults to NOTIFICATIONS_DRY_RUN.

        Returns:
            dict with 'success', 'message_id', and 'error' keys
        """
        config = current_app.config
        if dry_run is None:
            dry_run = config.get('NOTIFICATIONS_DRY_RUN', False)

        html_content = self.render(template_file, dict({'GYM_NAME': config.get('GYM_NAME')}, **params))

        log = MessageLog(
            channel='email',
            message_type=message_type,
            recipient=to_email,
            recipient_name=to_name,
            subject=subject,
            member_id=member_id,
            status='pending'
        )
        db.session.add(log)

        if dry_run:
            return self._finish(log, 'dry_run', message_id='dry_run', error='Dry run - email not sent')
        if not self.is_configured():
            current_app.logger.warning(f"{message_type} email skipped: BREVO_API_KEY not set")
            return self._finish(log, 'failed', error='Email service not configured')

        email = sib_api_v3_sdk.SendSmtpEmail(
            sender={'name': config.get('MAIL_SENDER_NAME'), 'email': config.get('MAIL_SENDER_EMAIL')},
            to=[{'email': to_email, 'name': to_name}],
            subject=subject,
            html_content=html_content,
            tags=[message_type],
        )
        try:
            response = self._transactional_api().send_transac_email(email)
        except ApiException as e:
            current_app.logger.error(f"Brevo rejected {message_type} email: {e.status} {e.reason}")
            return self._finish(log, 'failed', error=str(e))
        except Exception as e:
            # Connection errors from the SDK's HTTP client
            current_app.logger.error(f"{message_type} email not sent: {e}")
            return self._finish(log, 'failed', error=str(e))

        return self._finish(log, 'sent', message_id=response.message_id)


# Global instance
email_service = EmailService()
