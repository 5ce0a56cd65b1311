# Business logic services
from gymhub.services.notifications import notification_gateway
from gymhub.services.activity import activity_recorder
from gymhub.services.payments import PaymentWorkflow, ConfirmationResult
from gymhub.services.subscriptions import SubscriptionService, renew
from gymhub.services.reminder_jobs import send_membership_reminders

__all__ = [
    'notification_gateway',
    'activity_recorder',
    'PaymentWorkflow',
    'ConfirmationResult',
    'SubscriptionService',
    'renew',
    'send_membership_reminders',
]
