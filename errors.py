# errors.py


class JobsError(Exception):
    """Base error; carries the HTTP status and the message shown to callers."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class ValidationError(JobsError):
    status_code = 400


class NotFoundError(JobsError):
    status_code = 404


class PersistenceError(JobsError):
    status_code = 500


class ConfigurationError(JobsError):
    status_code = 500
