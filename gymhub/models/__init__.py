# Import all models here so they're registered with SQLAlchemy
from gymhub.models.member import Member
from gymhub.models.payment import Payment, MemberSnapshot
from gymhub.models.activity_log import ActivityLog
from gymhub.models.message_log import MessageLog

__all__ = ['Member', 'Payment', 'MemberSnapshot', 'ActivityLog', 'MessageLog']
