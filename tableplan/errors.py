class SchedulingError(Exception):
    """Base class for errors raised by the scheduling engine"""


class ValidationError(SchedulingError):
    """Malformed input, rejected before touching the store"""


class NotFoundError(ValidationError):
    """Unknown booking or table id"""
