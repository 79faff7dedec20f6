class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidTransition(DomainError):
    """Raised when a punch action is not allowed from the record's current state.

    Duplicate submissions of the same action land here too. Callers recover by
    re-reading the record and deciding again.
    """


class DuplicateRecord(DomainError):
    """Raised when a record already exists for the same employee and date."""


class StaleRecord(DomainError):
    """Raised when a save loses the compare-and-swap on the record version."""


class RecordNotFound(DomainError):
    """Raised when no record exists for the requested employee and date."""


class StorageUnavailable(DomainError):
    """Raised when the backing store fails or times out. Safe to retry with backoff."""
