"""
Subscription lifecycle: registration, renewal and the status overview.

renew() is pure and only computes the next subscription window.
SubscriptionService applies it: persists the member, records the renewal
payment (cash renewals send the receipt) and writes the activity log.

Renewal is an explicit staff action. Calling it on two different days
gives two different windows, so nothing renews automatically.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime

from gymhub.core.clock import system_clock
from gymhub.core.plans import coerce_plan, compute_expiry, default_price, plan_value, to_local_date
from gymhub.core.status import ACTIVE, EXPIRED, EXPIRING, STATUS_ORDER, expiry_instant, normalize_expiry, resolve_status
from gymhub.errors import ValidationError
from gymhub.models import Payment
from gymhub.services.activity import activity_recorder
from gymhub.services.notifications import notification_gateway
from gymhub.services.payments import PaymentWorkflow, parse_amount, parse_method
from gymhub.services.stores import MemberStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenewalTerms:
    start_date: date
    expiry_date: str
    status: str = ACTIVE


@dataclass(frozen=True)
class _PlanView:
    """The plan a member is renewing onto, in the shape renew() reads."""
    plan: str


def renew(member, now: datetime) -> RenewalTerms:
    """Next subscription window for a member renewing at `now`. Always active."""
    start = now.date()
    return RenewalTerms(start_date=start, expiry_date=compute_expiry(member.plan, start))


class SubscriptionService:
    """Member registration and renewal."""

    def __init__(self, members=None, workflow=None, notifier=None, activity=None, clock=None):
        self.clock = clock or system_clock
        self.members = members or MemberStore()
        self.notifier = notifier or notification_gateway
        self.activity = activity or activity_recorder
        self.workflow = workflow or PaymentWorkflow(
            members=self.members, notifier=self.notifier, activity=self.activity, clock=self.clock
        )

    def register_member(self, data: dict, staff_name: str = None):
        """
        Register a member directly (staff entry). The member is active immediately.

        Expiry defaults to the plan's expiry from the start date; staff may
        enter one by hand for members moved over from paper records.
        """
        full_name = (data.get('full_name') or '').strip()
        if not full_name:
            raise ValidationError("Full name is required")
        phone = (data.get('phone') or '').strip()
        if not phone:
            raise ValidationError("Phone is required")

        raw_plan = data.get('plan') or 'Monthly'
        if coerce_plan(raw_plan) is None:
            raise ValidationError(f"Unknown plan: {raw_plan!r}")
        plan = plan_value(raw_plan)

        start = to_local_date(data['start_date']) if data.get('start_date') else self.clock.now().date()
        expiry = normalize_expiry(data.get('expiry_date')) or compute_expiry(plan, start)
        if expiry_instant(expiry).date() < start:
            raise ValidationError("Expiry date must not be before the start date")

        member = self.members.create({
            'full_name': full_name,
            'email': data.get('email'),
            'phone': phone,
            'address': data.get('address'),
            'emergency_contact': data.get('emergency_contact'),
            'photo': data.get('photo'),
            'plan': plan,
            'start_date': start,
            'expiry_date': expiry,
            'status': ACTIVE,
        })
        self.activity.record(staff_name, 'Add Member', f"Registered {member.full_name} on {plan}", 'admin')

        try:
            result = self.notifier.send_welcome(member)
            if not result.get('success'):
                logger.warning(f"Welcome message for member {member.id} not delivered: {result.get('error')}")
        except Exception:
            logger.exception(f"Welcome notification for member {member.id} failed")

        return member

    def renew_member(self, member_id, staff_name: str, plan=None, amount=None,
                     method: str = Payment.CASH, metadata: dict = None):
        """
        Renew a member's subscription from today.

        Args:
            member_id: Member to renew
            staff_name: Staff performing the renewal
            plan: Optional new plan (defaults to the member's current plan)
            amount: Amount paid (defaults to the plan price)
            method: 'Cash' or 'Mobile Money'
            metadata: Mobile money details

        Returns:
            tuple: (member, payment)
        """
        member = self.members.get_or_404(member_id)

        if plan is not None:
            if coerce_plan(plan) is None:
                raise ValidationError(f"Unknown plan: {plan!r}")
            plan = plan_value(plan)
        else:
            plan = member.plan

        if amount is None:
            amount = default_price(plan)
            if amount is None:
                raise ValidationError(f"No default price for {plan}, enter an amount")

        # Validate before anything is written
        parse_amount(amount)
        parse_method(method)

        terms = renew(_PlanView(plan), self.clock.now())

        member = self.members.update(member.id, {
            'plan': plan,
            'start_date': terms.start_date,
            'expiry_date': terms.expiry_date,
            'status': terms.status,
        })
        logger.info(f"Member {member.id} renewed on {plan} until {terms.expiry_date}")

        payment = self.workflow.record_payment(member, amount, method, metadata=metadata, staff_name=staff_name)
        self.activity.record(
            staff_name,
            'Member Renewed',
            f"Renewed {member.full_name}'s subscription ({plan}) until {terms.expiry_date}",
            'financial',
        )
        return member, payment

    def summary(self):
        """Members grouped by recomputed status, most urgent first."""
        now = self.clock.now()
        counts = {EXPIRED: 0, EXPIRING: 0, ACTIVE: 0}
        rows = []
        for member in self.members.list():
            expires = member.expires_at()
            status = resolve_status(expires, member.plan, now)
            counts[status] += 1
            rows.append((STATUS_ORDER[status], expires or datetime.max, member, status))

        rows.sort(key=lambda row: row[:2])
        return {
            'counts': counts,
            'members': [dict(member.to_dict(self.clock), status=status) for _, _, member, status in rows],
        }
