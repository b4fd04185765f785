"""
Error types for the Daily Polyglot core
"""


class PolyglotError(Exception):
    """Base class for all Daily Polyglot errors"""


class ServiceError(PolyglotError):
    """An external word-supply or pronunciation call failed"""


class StorageCorrupt(PolyglotError):
    """A persisted progress snapshot could not be decoded"""


class ImportRejected(PolyglotError):
    """An imported progress document is not acceptable"""


class DailyQuotaComplete(PolyglotError):
    """All of today's words have already been revealed"""


class ReviewUnavailable(PolyglotError):
    """No learned words exist to build a review question from"""
