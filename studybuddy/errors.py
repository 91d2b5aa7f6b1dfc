"""Error taxonomy shared by services and the app-level error handler."""


class StudyBuddyError(Exception):
    status_code = 500
    default_message = 'Server error.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message}


class ValidationError(StudyBuddyError):
    status_code = 400
    default_message = 'Invalid request.'


class AuthError(StudyBuddyError):
    status_code = 401
    default_message = 'Invalid or expired token.'


class ForbiddenError(StudyBuddyError):
    status_code = 403
    default_message = 'Forbidden.'


class NotFoundError(StudyBuddyError):
    status_code = 404
    default_message = 'Not found.'


class Conflict(StudyBuddyError):
    status_code = 409
    default_message = 'Conflict.'


class RateLimited(StudyBuddyError):
    status_code = 429
    default_message = 'Too many requests. Please try again later.'

    def __init__(self, message=None, retry_after=1):
        super().__init__(message)
        self.retry_after = int(max(1, retry_after))

    def to_dict(self):
        return {'error': self.message, 'retry_after_seconds': self.retry_after}


class UpstreamError(StudyBuddyError):
    status_code = 500
    default_message = 'Upstream service error.'


class GenerationFormatError(UpstreamError):
    default_message = 'Invalid format received from OpenAI.'


class ConfigError(StudyBuddyError):
    status_code = 500
    default_message = 'Service is not configured.'


class PayloadTooLarge(StudyBuddyError):
    status_code = 413
    default_message = 'File too large. Maximum size is 20MB.'
