"""Exceptions raised by the service layer and translated by the blueprints."""


class ValidationError(ValueError):
    """Submitted data failed validation. ``details`` maps field name to reason."""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(LookupError):
    def __init__(self, message='Not found'):
        super().__init__(message)
        self.message = message


class ConflictError(ValueError):
    """The write would duplicate a unique value (e.g. an email already registered)."""

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field
