from datetime import datetime
from gymhub import db


class MessageLog(db.Model):
    """Track all emails and SMS sent to members."""
    __tablename__ = 'message_logs'

    id = db.Column(db.Integer, primary_key=True)
    channel = db.Column(db.String(10), nullable=False)  # email, sms
    message_type = db.Column(db.String(50), nullable=False)  # welcome, payment_confirmation, renewal, reminder, expiry, general
    recipient = db.Column(db.String(120), nullable=False)  # email address or phone number
    recipient_name = db.Column(db.String(120), nullable=True)
    subject = db.Column(db.String(255), nullable=True)

    # Link to member if applicable
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=True)

    # Brevo message id or Twilio SID
    provider_message_id = db.Column(db.String(100), nullable=True)

    # Status tracking
    status = db.Column(db.String(20), default='pending')  # pending, sent, failed, dry_run
    error_message = db.Column(db.Text, nullable=True)

    # Timestamps
    sent_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<MessageLog {self.channel} {self.message_type} to {self.recipient}>'
