"""Activity log: fire-and-forget audit trail of staff actions."""

import logging
from sqlalchemy.exc import SQLAlchemyError

from gymhub import db
from gymhub.models import ActivityLog

logger = logging.getLogger(__name__)

CATEGORIES = ('access', 'admin', 'financial')


class ActivityRecorder:
    """Writes ActivityLog rows. Failures are logged and never raised."""

    def record(self, actor: str, action: str, details: str = None, category: str = 'admin'):
        if category not in CATEGORIES:
            category = 'admin'
        try:
            entry = ActivityLog(actor=actor or 'System', action=action, details=details, category=category)
            db.session.add(entry)
            db.session.commit()
            return entry
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning(f"Could not record activity '{action}': {e}")
            return None

    def recent(self, limit: int = 50, category: str = None):
        query = ActivityLog.query
        if category:
            query = query.filter_by(category=category)
        return query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit).all()


# Global instance
activity_recorder = ActivityRecorder()
