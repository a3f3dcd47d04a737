"""
Contact Store Errors

Every backend translates its native failures into these types. The facade
passes them through unchanged.

A permission denial is not an error: request_access() returns False.
"""

from typing import Optional


class ContactStoreError(Exception):
    """Base class for all contact store errors."""

    code: str = "contact_store_error"

    def __init__(self, message: str, identifier: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.identifier = identifier


class BackendError(ContactStoreError):
    """The backend could not complete a request, enumeration or transaction."""

    code = "backend_error"


class ValidationError(BackendError):
    """The backend rejected a record or transaction as invalid."""

    code = "validation_error"


class NotFoundError(BackendError):
    """A lookup, update or delete referenced an identifier the backend does not have."""

    code = "record_does_not_exist"


class UnsupportedTransactionError(BackendError):
    """A save request of a type the executing backend does not accept."""

    code = "unsupported_transaction"
