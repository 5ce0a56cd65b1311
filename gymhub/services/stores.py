"""
Database-backed stores for members and payments.

The payment workflow only talks to these classes, so tests can swap in
stores that fail on purpose. Every failed commit rolls the session back
and is re-raised as one of the errors in gymhub.errors:
- email uniqueness violations become DuplicateEmailError
- any other database failure becomes StoreUnavailableError
"""

import logging
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from gymhub import db
from gymhub.errors import DuplicateEmailError, NotFoundError, StoreUnavailableError, ValidationError
from gymhub.models import Member, Payment

logger = logging.getLogger(__name__)

MEMBER_FIELDS = {
    'full_name', 'email', 'phone', 'address', 'emergency_contact', 'photo',
    'plan', 'start_date', 'expiry_date', 'status',
}

PAYMENT_FIELDS = {
    'member_id', 'member_name', 'amount', 'date', 'method', 'status', 'confirmed_by',
    'transaction_id', 'momo_phone', 'network', 'is_pending_member', 'member_email',
    'member_phone', 'member_address', 'member_photo', 'member_plan',
    'member_start_date', 'member_expiry_date',
}


def normalize_email(email):
    if not email:
        return None
    return email.strip().lower() or None


def _is_email_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return 'email' in message and ('unique' in message or 'duplicate' in message)


def _commit(email=None):
    """Commit the session, translating database failures."""
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if _is_email_violation(e):
            raise DuplicateEmailError(email) from e
        logger.error(f"Integrity error: {e.orig}")
        raise ValidationError(f"Invalid record: {e.orig}") from e
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Database error: {e}")
        raise StoreUnavailableError("Database unavailable, please try again") from e


def _check_fields(fields, allowed):
    unknown = set(fields) - allowed
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")


class MemberStore:
    """Member persistence."""

    def get(self, member_id):
        try:
            return db.session.get(Member, member_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreUnavailableError("Database unavailable, please try again") from e

    def get_or_404(self, member_id):
        member = self.get(member_id)
        if member is None:
            raise NotFoundError(f"Member {member_id} not found")
        return member

    def find_by_email(self, email):
        email = normalize_email(email)
        if not email:
            return None
        try:
            return Member.query.filter_by(email=email).first()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreUnavailableError("Database unavailable, please try again") from e

    def list(self):
        return Member.query.order_by(Member.full_name).all()

    def create(self, fields):
        _check_fields(fields, MEMBER_FIELDS)
        fields = dict(fields)
        fields['email'] = normalize_email(fields.get('email'))
        member = Member(**fields)
        db.session.add(member)
        _commit(email=fields['email'])
        logger.info(f"Member created: {member.id}")
        return member

    def update(self, member_id, fields):
        _check_fields(fields, MEMBER_FIELDS)
        member = self.get_or_404(member_id)
        if 'email' in fields:
            fields = dict(fields, email=normalize_email(fields['email']))
        for key, value in fields.items():
            setattr(member, key, value)
        _commit(email=fields.get('email'))
        return member


class PaymentStore:
    """Payment persistence."""

    def get(self, payment_id):
        try:
            return db.session.get(Payment, payment_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreUnavailableError("Database unavailable, please try again") from e

    def list(self, status=None, member_id=None):
        query = Payment.query
        if status:
            query = query.filter_by(status=status)
        if member_id:
            query = query.filter_by(member_id=member_id)
        return query.order_by(Payment.date.desc(), Payment.id.desc()).all()

    def create(self, fields):
        _check_fields(fields, PAYMENT_FIELDS)
        payment = Payment(**fields)
        db.session.add(payment)
        _commit()
        return payment

    def update(self, payment_id, fields, expected_status=None):
        """
        Update a payment.

        With expected_status, the row is only changed while it still has
        that status (compare-and-set), so two staff confirming the same
        payment cannot both win. Returns None when the guard fails.
        """
        _check_fields(fields, PAYMENT_FIELDS)

        if expected_status is None:
            payment = self.get(payment_id)
            if payment is None:
                raise NotFoundError(f"Payment {payment_id} not found")
            for key, value in fields.items():
                setattr(payment, key, value)
            _commit()
            return payment

        try:
            changed = Payment.query.filter_by(id=payment_id, status=expected_status).update(
                dict(fields), synchronize_session=False
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreUnavailableError("Database unavailable, please try again") from e
        _commit()
        if not changed:
            return None

        payment = self.get(payment_id)
        db.session.refresh(payment)
        return payment
