from datetime import datetime
from gymhub import db


class ActivityLog(db.Model):
    """Audit trail of staff actions."""
    __tablename__ = 'activity_logs'

    id = db.Column(db.Integer, primary_key=True)
    actor = db.Column(db.String(120), nullable=False)
    action = db.Column(db.String(100), nullable=False)
    details = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(20), nullable=False, default='admin')  # access, admin, financial
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<ActivityLog {self.action} by {self.actor}>'

    def to_dict(self):
        return {
            'id': self.id,
            'actor': self.actor,
            'action': self.action,
            'details': self.details,
            'category': self.category,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }
