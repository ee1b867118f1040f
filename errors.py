class TrackerError(Exception):
    """Base error; ``message`` is safe to show to the user."""

    default_message = 'Something went wrong.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TrackerError):
    default_message = 'Please check the form and try again.'


class ConflictError(TrackerError):
    default_message = 'Email already registered.'


class InvalidCredentials(TrackerError):
    default_message = 'Invalid credentials.'


class AuthorizationError(TrackerError):
    default_message = 'Please log in.'


class StoreError(TrackerError):
    default_message = 'Server error.'


class RegistrationFailed(TrackerError):
    default_message = 'Registration failed.'
