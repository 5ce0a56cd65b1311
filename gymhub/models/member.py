import logging
from datetime import datetime
from gymhub import db
from gymhub.core.clock import system_clock
from gymhub.core.status import expiry_instant, resolve_status
from gymhub.errors import ValidationError

logger = logging.getLogger(__name__)


class Member(db.Model):
    """Gym member with a subscription plan."""
    __tablename__ = 'members'

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=True)  # optional, stored lower-case
    phone = db.Column(db.String(30), nullable=False, default='')
    address = db.Column(db.String(255), nullable=True)
    emergency_contact = db.Column(db.String(120), nullable=True)
    photo = db.Column(db.Text, nullable=True)  # URL or data URI

    # Subscription
    plan = db.Column(db.String(20), nullable=False, default='Monthly')
    start_date = db.Column(db.Date, nullable=False)
    expiry_date = db.Column(db.String(19), nullable=True)  # 'YYYY-MM-DD' or 'YYYY-MM-DDTHH:MM:SS' for day passes
    status = db.Column(db.String(20), default='active')  # cached only, see current_status()

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    payments = db.relationship('Payment', backref='member', lazy='dynamic')

    def __repr__(self):
        return f'<Member {self.full_name}>'

    def expires_at(self):
        """Expiry as a local datetime. None when missing or unreadable."""
        try:
            return expiry_instant(self.expiry_date)
        except ValidationError:
            logger.warning(f"Member {self.id} has an unreadable expiry date {self.expiry_date!r}")
            return None

    def current_status(self, clock=None):
        """
        Status recomputed from the expiry date, never read from the column.

        A legacy row with an unreadable expiry reports active, like one with none.
        """
        return resolve_status(self.expires_at(), self.plan, (clock or system_clock).now())

    def to_dict(self, clock=None):
        return {
            'id': self.id,
            'full_name': self.full_name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'emergency_contact': self.emergency_contact,
            'photo': self.photo,
            'plan': self.plan,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'expiry_date': self.expiry_date,
            'status': self.current_status(clock),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
