from dataclasses import dataclass, asdict
from datetime import date, datetime
from typing import Optional
from gymhub import db


@dataclass(frozen=True)
class MemberSnapshot:
    """Registration details of a prospective member, carried by a payment until confirmation."""
    full_name: str
    email: Optional[str]
    phone: str = ''
    address: Optional[str] = None
    photo: Optional[str] = None
    plan: str = 'Monthly'
    start_date: Optional[date] = None
    expiry_date: Optional[str] = None

    def to_dict(self):
        data = asdict(self)
        data['start_date'] = self.start_date.isoformat() if self.start_date else None
        return data


class Payment(db.Model):
    """Payment against a member, or against a member still to be registered."""
    __tablename__ = 'payments'

    CASH = 'Cash'
    MOBILE_MONEY = 'Mobile Money'

    PENDING = 'Pending'
    CONFIRMED = 'Confirmed'
    REJECTED = 'Rejected'

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=True, index=True)  # empty until a pending member is confirmed
    member_name = db.Column(db.String(120), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    date = db.Column(db.Date, nullable=False)
    method = db.Column(db.String(20), nullable=False)  # Cash, Mobile Money
    status = db.Column(db.String(20), nullable=False, default=PENDING, index=True)  # Pending, Confirmed, Rejected
    confirmed_by = db.Column(db.String(120), nullable=True)

    # Mobile money details
    transaction_id = db.Column(db.String(100), nullable=True)
    momo_phone = db.Column(db.String(30), nullable=True)
    network = db.Column(db.String(30), nullable=True)

    # Pending member registration (historical marker, never cleared)
    is_pending_member = db.Column(db.Boolean, nullable=False, default=False)
    member_email = db.Column(db.String(120), nullable=True)
    member_phone = db.Column(db.String(30), nullable=True)
    member_address = db.Column(db.String(255), nullable=True)
    member_photo = db.Column(db.Text, nullable=True)
    member_plan = db.Column(db.String(20), nullable=True)
    member_start_date = db.Column(db.Date, nullable=True)
    member_expiry_date = db.Column(db.String(19), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Payment {self.id} {self.method} {self.status}>'

    @property
    def is_pending(self):
        return self.status == self.PENDING

    @property
    def snapshot(self) -> Optional[MemberSnapshot]:
        """Embedded registration, only for pending-member payments."""
        if not self.is_pending_member:
            return None
        return MemberSnapshot(
            full_name=self.member_name,
            email=self.member_email,
            phone=self.member_phone or '',
            address=self.member_address,
            photo=self.member_photo,
            plan=self.member_plan or 'Monthly',
            start_date=self.member_start_date,
            expiry_date=self.member_expiry_date,
        )

    @property
    def verification_warnings(self):
        """Missing mobile money details the confirming staff should double-check."""
        if self.method != self.MOBILE_MONEY:
            return []
        warnings = []
        if not self.transaction_id:
            warnings.append('No transaction ID recorded')
        if not self.momo_phone:
            warnings.append('No mobile money phone number recorded')
        if not self.network:
            warnings.append('No mobile network recorded')
        return warnings

    def to_dict(self):
        data = {
            'id': self.id,
            'member_id': self.member_id,
            'member_name': self.member_name,
            'amount': str(self.amount),
            'date': self.date.isoformat() if self.date else None,
            'method': self.method,
            'status': self.status,
            'confirmed_by': self.confirmed_by,
            'transaction_id': self.transaction_id,
            'momo_phone': self.momo_phone,
            'network': self.network,
            'is_pending_member': self.is_pending_member,
            'warnings': self.verification_warnings if self.is_pending else [],
        }
        if self.is_pending_member:
            data['pending_member'] = self.snapshot.to_dict()
        return data
