"""
Payment workflow: recording, confirming and rejecting payments.

A payment starts Pending (mobile money) or Confirmed (cash) and moves
one way only:

    Pending -> Confirmed
    Pending -> Rejected

Payments made at checkout by people who are not members yet carry the
registration in the payment itself (is_pending_member). Confirming such
a payment creates the member, or reuses the member already registered
with that email. A pending-member payment is never marked Confirmed
unless the member exists, so member creation runs first and any store
error aborts the confirmation with the payment untouched.

Confirmation order:
    member lookup -> create/merge -> payment update -> activity -> notification
"""

import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional

from gymhub.core.clock import system_clock
from gymhub.core.plans import compute_expiry, plan_value, to_local_date, today
from gymhub.core.status import ACTIVE, expiry_instant, normalize_expiry
from gymhub.errors import AlreadyFinalizedError, DuplicateEmailError, NotFoundError, ValidationError
from gymhub.models import Member, MemberSnapshot, Payment
from gymhub.services.activity import activity_recorder
from gymhub.services.notifications import format_amount, notification_gateway
from gymhub.services.stores import MemberStore, PaymentStore, normalize_email

logger = logging.getLogger(__name__)

# How a confirmation resolved its member
CONFIRMED_ONLY = 'confirmed'
MEMBER_CREATED = 'member_created'
MEMBER_LINKED = 'member_linked'

_ACTIVITY_ACTIONS = {
    CONFIRMED_ONLY: 'Confirm Payment',
    MEMBER_CREATED: 'Confirm Payment & Create Member',
    MEMBER_LINKED: 'Confirm Payment & Link Member',
}

_METHOD_ALIASES = {
    'cash': Payment.CASH,
    'mobilemoney': Payment.MOBILE_MONEY,
    'momo': Payment.MOBILE_MONEY,
}


@dataclass
class ConfirmationResult:
    payment: Payment
    member: Optional[Member]
    outcome: str
    warnings: list = field(default_factory=list)

    def to_dict(self, clock=None):
        return {
            'success': True,
            'outcome': self.outcome,
            'payment': self.payment.to_dict(),
            'member': self.member.to_dict(clock) if self.member else None,
            'warnings': self.warnings,
        }


def parse_amount(amount) -> Decimal:
    """Validate a payment amount: a positive, finite number."""
    if isinstance(amount, bool) or amount is None:
        raise ValidationError("Amount must be a positive number")
    if isinstance(amount, float) and not math.isfinite(amount):
        raise ValidationError("Amount must be a positive number")
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Amount must be a positive number")
    if not value.is_finite() or value <= 0:
        raise ValidationError("Amount must be a positive number")
    return value.quantize(Decimal('0.01'))


def parse_method(method) -> str:
    key = ''.join(ch for ch in str(method or '').lower() if ch.isalnum())
    if key not in _METHOD_ALIASES:
        raise ValidationError(f"Unknown payment method: {method!r}")
    return _METHOD_ALIASES[key]


def _clean(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class PaymentWorkflow:
    """Payment state machine. Collaborators are injectable for tests."""

    def __init__(self, members=None, payments=None, notifier=None, activity=None, clock=None):
        self.members = members or MemberStore()
        self.payments = payments or PaymentStore()
        self.notifier = notifier or notification_gateway
        self.activity = activity or activity_recorder
        self.clock = clock or system_clock

    # ============== RECORDING ==============

    def record_payment(self, target, amount, method, metadata: dict = None, staff_name: str = None) -> Payment:
        """
        Record a payment for a member or for a prospective member.

        Args:
            target: A persisted Member, or a MemberSnapshot for someone not yet registered
            amount: Positive amount
            method: 'Cash' or 'Mobile Money'
            metadata: Mobile money details: transaction_id, momo_phone, network
            staff_name: Name of the staff recording it (confirms cash payments)

        Returns:
            The stored Payment
        """
        amount = parse_amount(amount)
        method = parse_method(method)
        metadata = metadata or {}
        staff_name = _clean(staff_name) or 'Staff'

        fields = {
            'amount': amount,
            'date': today(self.clock),
            'method': method,
        }

        if method == Payment.CASH:
            fields['status'] = Payment.CONFIRMED
            fields['confirmed_by'] = staff_name
        else:
            fields['status'] = Payment.PENDING
            fields['transaction_id'] = _clean(metadata.get('transaction_id'))
            fields['momo_phone'] = _clean(metadata.get('momo_phone'))
            fields['network'] = _clean(metadata.get('network'))

        member = None
        outcome = None
        if isinstance(target, MemberSnapshot):
            snapshot = self._complete_snapshot(target)
            fields.update(self._snapshot_fields(snapshot))
            if fields['status'] == Payment.CONFIRMED:
                # Cash at the desk: the member must exist before the payment is confirmed
                member, outcome = self._materialize_member(snapshot)
                fields['member_id'] = member.id
        elif isinstance(target, Member):
            member = target
            fields['member_id'] = member.id
            fields['member_name'] = member.full_name
        else:
            raise ValidationError("Payment must be for a member or a pending registration")

        payment = self.payments.create(fields)
        logger.info(f"Payment {payment.id} recorded: {method} {amount} ({payment.status})")

        details = f"Logged {format_amount(amount)} {method} entry for {payment.member_name}"
        if outcome == MEMBER_CREATED:
            details += " and registered the member"
        self.activity.record(staff_name, 'Record Payment', details, 'financial')

        if payment.status == Payment.CONFIRMED and member is not None:
            if outcome == MEMBER_CREATED:
                self._notify_welcome(member)
            self._notify_payment(payment, member)

        return payment

    # ============== CONFIRMATION ==============

    def confirm_payment(self, payment_id, staff_name: str) -> ConfirmationResult:
        """
        Confirm a pending payment.

        Raises:
            NotFoundError: no such payment
            AlreadyFinalizedError: payment is not Pending (a concurrent confirmation
                that linked the same member returns its result instead)
            StoreUnavailableError: database failure, nothing was confirmed
        """
        staff_name = _clean(staff_name) or 'Staff'
        payment = self._get_pending(payment_id)
        warnings = payment.verification_warnings
        for warning in warnings:
            logger.warning(f"Payment {payment.id}: {warning}")

        updates = {'status': Payment.CONFIRMED, 'confirmed_by': staff_name}

        if payment.is_pending_member and payment.member_id is None:
            member, outcome = self._materialize_member(self._complete_snapshot(payment.snapshot))
            updates['member_id'] = member.id
        else:
            member = self.members.get(payment.member_id) if payment.member_id else None
            outcome = CONFIRMED_ONLY
            if member is None:
                logger.warning(f"Payment {payment.id} confirmed without a linked member")

        confirmed = self.payments.update(payment.id, updates, expected_status=Payment.PENDING)
        if confirmed is None:
            # Someone else finalized it between our read and write
            current = self.payments.get(payment.id)
            if self._same_confirmation(current, member):
                logger.info(f"Payment {current.id} was confirmed concurrently for member {member.id}")
                if outcome == MEMBER_CREATED:
                    self._notify_welcome(member)
                return ConfirmationResult(payment=current, member=member, outcome=outcome, warnings=warnings)
            raise AlreadyFinalizedError(payment.id, current.status if current else 'gone')

        logger.info(f"Payment {confirmed.id} confirmed by {staff_name} ({outcome})")
        self.activity.record(
            staff_name,
            _ACTIVITY_ACTIONS[outcome],
            self._confirmation_details(confirmed, outcome),
            'financial',
        )

        if outcome == MEMBER_CREATED:
            self._notify_welcome(member)
        if member is not None:
            self._notify_payment(confirmed, member)

        return ConfirmationResult(payment=confirmed, member=member, outcome=outcome, warnings=warnings)

    def reject_payment(self, payment_id, staff_name: str = None) -> Payment:
        """Reject a pending payment. No member is created or changed."""
        staff_name = _clean(staff_name) or 'Staff'
        payment = self._get_pending(payment_id)

        rejected = self.payments.update(payment.id, {'status': Payment.REJECTED}, expected_status=Payment.PENDING)
        if rejected is None:
            current = self.payments.get(payment.id)
            raise AlreadyFinalizedError(payment.id, current.status if current else 'gone')

        logger.info(f"Payment {rejected.id} rejected by {staff_name}")
        self.activity.record(
            staff_name,
            'Reject Payment',
            f"Rejected {rejected.method} payment of {format_amount(rejected.amount)} for {rejected.member_name}",
            'financial',
        )
        return rejected

    # ============== QUERIES ==============

    def pending_payments(self):
        return self.payments.list(status=Payment.PENDING)

    def list_payments(self, status=None, member_id=None):
        return self.payments.list(status=status, member_id=member_id)

    # ============== HELPERS ==============

    def _get_pending(self, payment_id) -> Payment:
        payment = self.payments.get(payment_id)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        if payment.status != Payment.PENDING:
            raise AlreadyFinalizedError(payment.id, payment.status)
        return payment

    @staticmethod
    def _same_confirmation(current: Optional[Payment], member: Optional[Member]) -> bool:
        """True when a concurrent confirmation already linked the payment to the same member."""
        return (
            current is not None
            and member is not None
            and current.status == Payment.CONFIRMED
            and current.member_id == member.id
        )

    def _complete_snapshot(self, snapshot: MemberSnapshot) -> MemberSnapshot:
        """Fill in start and expiry dates the registration left blank."""
        if not _clean(snapshot.full_name):
            raise ValidationError("Member name is required")
        start = to_local_date(snapshot.start_date) if snapshot.start_date else today(self.clock)
        expiry = normalize_expiry(snapshot.expiry_date) or compute_expiry(snapshot.plan, start)
        return MemberSnapshot(
            full_name=snapshot.full_name.strip(),
            email=normalize_email(snapshot.email),
            phone=(snapshot.phone or '').strip(),
            address=_clean(snapshot.address),
            photo=snapshot.photo or None,
            plan=plan_value(snapshot.plan or 'Monthly'),
            start_date=start,
            expiry_date=expiry,
        )

    def _snapshot_fields(self, snapshot: MemberSnapshot) -> dict:
        return {
            'is_pending_member': True,
            'member_name': snapshot.full_name,
            'member_email': snapshot.email,
            'member_phone': snapshot.phone,
            'member_address': snapshot.address,
            'member_photo': snapshot.photo,
            'member_plan': snapshot.plan,
            'member_start_date': snapshot.start_date,
            'member_expiry_date': snapshot.expiry_date,
        }

    def _materialize_member(self, snapshot: MemberSnapshot):
        """
        Create the member described by a registration, or reuse the one
        already registered with the same email.

        Returns:
            tuple: (member, MEMBER_CREATED or MEMBER_LINKED)
        """
        existing = self.members.find_by_email(snapshot.email)
        if existing is not None:
            logger.info(f"Member already exists with email {snapshot.email}, linking payment")
            return self._merge_into(existing, snapshot), MEMBER_LINKED

        try:
            member = self.members.create({
                'full_name': snapshot.full_name,
                'email': snapshot.email,
                'phone': snapshot.phone,
                'address': snapshot.address,
                'photo': snapshot.photo,
                'plan': snapshot.plan,
                'start_date': snapshot.start_date,
                'expiry_date': snapshot.expiry_date,
                'status': ACTIVE,
            })
        except DuplicateEmailError:
            # Another confirmation registered this email after our lookup
            logger.warning(f"Duplicate email {snapshot.email} on create, retrying as existing member")
            existing = self.members.find_by_email(snapshot.email)
            if existing is None:
                raise
            return self._merge_into(existing, snapshot), MEMBER_LINKED

        return member, MEMBER_CREATED

    def _merge_into(self, member: Member, snapshot: MemberSnapshot) -> Member:
        """Carry newer registration details onto an existing member. Status is left alone."""
        updates = {}
        if snapshot.plan and snapshot.plan != member.plan:
            updates['plan'] = snapshot.plan
        if snapshot.expiry_date and self._is_later(snapshot.expiry_date, member):
            updates['expiry_date'] = snapshot.expiry_date
        if snapshot.photo and not member.photo:
            updates['photo'] = snapshot.photo

        if not updates:
            return member
        logger.info(f"Updating member {member.id} from registration: {', '.join(sorted(updates))}")
        return self.members.update(member.id, updates)

    @staticmethod
    def _is_later(new_expiry, member: Member) -> bool:
        current = member.expires_at()
        if current is None:
            return True
        return expiry_instant(new_expiry) > current

    def _confirmation_details(self, payment: Payment, outcome: str) -> str:
        details = f"Verified {payment.method} payment of {format_amount(payment.amount)}"
        if outcome == MEMBER_CREATED:
            return f"{details} and created member {payment.member_name}"
        if outcome == MEMBER_LINKED:
            return f"{details} and linked to existing member {payment.member_name}"
        return f"{details} for {payment.member_name}"

    def _notify_payment(self, payment: Payment, member: Member):
        try:
            result = self.notifier.send_payment_confirmation(
                member_name=member.full_name,
                email=member.email,
                phone=member.phone,
                amount=payment.amount,
                method=payment.method,
                date=payment.date,
                expiry_date=member.expiry_date,
                transaction_id=payment.transaction_id,
                member_id=member.id,
            )
            if not result.get('success'):
                logger.warning(f"Payment {payment.id} confirmation not delivered: {result.get('error')}")
        except Exception:
            logger.exception(f"Payment {payment.id} confirmation notification failed")

    def _notify_welcome(self, member: Member):
        try:
            result = self.notifier.send_welcome(member)
            if not result.get('success'):
                logger.warning(f"Welcome message for member {member.id} not delivered: {result.get('error')}")
        except Exception:
            logger.exception(f"Welcome notification for member {member.id} failed")
