"""
Membership reminder job.

Run daily via cron (`flask send-reminders`) or from the admin API:
- Expiring members get a renewal reminder
- Members who expired within the last EXPIRED_GRACE_DAYS get an expiry notice

Each message goes out once per subscription window: a member who renews
gets a fresh start_date and becomes eligible again.
"""

import logging
from datetime import datetime, timedelta

from gymhub.core.clock import system_clock
from gymhub.core.status import EXPIRED, EXPIRING, resolve_status
from gymhub.models import Member, MessageLog
from gymhub.services.notifications import format_expiry, notification_gateway

logger = logging.getLogger(__name__)

EXPIRED_GRACE_DAYS = 7


def was_reminder_already_sent(member: Member, message_type: str) -> bool:
    """Check if this reminder already went out during the member's current subscription."""
    window_start = datetime.combine(member.start_date, datetime.min.time())
    existing = MessageLog.query.filter(
        MessageLog.member_id == member.id,
        MessageLog.message_type == message_type,
        MessageLog.status.in_(['sent', 'dry_run']),
        MessageLog.sent_at >= window_start,
    ).first()
    return existing is not None


def build_reminder(member: Member, status: str) -> tuple:
    """Subject and body for a reminder."""
    expiry_text = format_expiry(member.expiry_date)
    if status == EXPIRING:
        return (
            "Your membership is about to expire",
            f"Hi {member.full_name}, your {member.plan} membership expires on {expiry_text}. "
            f"Renew at the front desk to keep training without interruption.",
        )
    return (
        "Your membership has expired",
        f"Hi {member.full_name}, your {member.plan} membership expired on {expiry_text}. "
        f"We'd love to see you back - renew any time at the front desk.",
    )


def send_membership_reminders(clock=None, notifier=None) -> dict:
    """
    Send reminders to expiring and recently expired members.

    Returns:
        dict with 'sent', 'skipped', 'failed' counts and 'errors'
    """
    clock = clock or system_clock
    notifier = notifier or notification_gateway
    now = clock.now()
    results = {'sent': 0, 'skipped': 0, 'failed': 0, 'errors': []}

    for member in Member.query.order_by(Member.id).all():
        expires = member.expires_at()
        status = resolve_status(expires, member.plan, now)
        if status == EXPIRED:
            if now - expires > timedelta(days=EXPIRED_GRACE_DAYS):
                continue
            message_type = 'expiry'
        elif status == EXPIRING:
            message_type = 'reminder'
        else:
            continue

        if was_reminder_already_sent(member, message_type):
            results['skipped'] += 1
            continue

        subject, body = build_reminder(member, status)
        result = notifier.send_message(member, subject, body, message_type=message_type)
        if result['success']:
            results['sent'] += 1
        else:
            results['failed'] += 1
            results['errors'].append({'member_id': member.id, 'error': result['error']})
            logger.warning(f"Reminder to member {member.id} failed: {result['error']}")

    logger.info(f"Reminder job finished: {results['sent']} sent, {results['skipped']} skipped, {results['failed']} failed")
    return results
