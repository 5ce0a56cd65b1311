"""
Error taxonomy for the subscription and payment engine.

Each error carries the HTTP status the API layer answers with.
"""


class GymHubError(Exception):
    """Base class for errors surfaced to the caller."""
    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__

    def to_dict(self):
        return {'success': False, 'error': self.message, 'code': self.__class__.__name__}


class ValidationError(GymHubError):
    """Invalid input."""
    status_code = 400


class NotFoundError(GymHubError):
    """Record not found."""
    status_code = 404


class AlreadyFinalizedError(GymHubError):
    """Payment is no longer pending."""
    status_code = 409

    def __init__(self, payment_id, current_status):
        super().__init__(f"Payment {payment_id} is already {current_status}")
        self.payment_id = payment_id
        self.current_status = current_status

    def to_dict(self):
        data = super().to_dict()
        data['current_status'] = self.current_status
        return data


class DuplicateEmailError(GymHubError):
    """A member with this email already exists."""
    status_code = 409

    def __init__(self, email, message=None):
        super().__init__(message or f"A member with email {email} already exists")
        self.email = email


class StoreUnavailableError(GymHubError):
    """The database could not complete the request."""
    status_code = 503


class NotificationError(GymHubError):
    """A notification could not be delivered."""
    status_code = 502
