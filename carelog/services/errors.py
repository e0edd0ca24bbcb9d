# carelog/services/errors.py
"""
Exceptions raised by the care log services.

Endpoints translate these into HTTP responses; services never retry.
"""


class CareLogError(Exception):
    pass


class CareLogNotFoundError(CareLogError):
    pass


class CareRecipientNotFoundError(CareLogError):
    pass


class CareLogAlreadyExistsError(CareLogError):
    pass


class CareLogLockedError(CareLogError):
    pass


class InvalidCareLogStateError(CareLogError):
    pass


class InvalidSectionError(CareLogError):
    pass


class ConcurrentModificationError(CareLogError):
    pass
