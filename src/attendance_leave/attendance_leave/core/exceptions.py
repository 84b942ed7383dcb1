class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced employee, company or record does not exist."""


class TransientStoreError(DomainError):
    """Raised when the persistence layer fails; the next run retries."""


class ConcurrentUpdateError(TransientStoreError):
    """Raised when an employee's balances kept changing under a write."""


class AlreadyRecordedError(DomainError):
    """Raised when a write finds its effect already stored (day charged, penalty resolved, leave decided)."""
