"""
Contact Store

Backend-agnostic access to an address book.

- interface.py: ContactStoreCapability, AddressBookBackend and the shared types
- store.py: ContactStore, the facade over a backend
- save_request.py: Single-mutation save requests and their factory type
- backends/: Memory and Google Contacts implementations
- manager.py: Builds stores from config, keeps the shared one
"""

from .errors import (
    ContactStoreError, BackendError, ValidationError, NotFoundError,
    UnsupportedTransactionError
)
from .interface import (
    AddressBookBackend, AuthorizationStatus, Contact, ContactKey,
    ContactStoreCapability, FetchRequest, FieldSelector, LabeledValue,
    Predicate, SortOrder, REQUIRED_KEYS, field_selector
)
from .save_request import Mutation, MutationKind, SaveRequest, SaveRequestFactory, TransactionState
from .store import ContactStore
from .config import StoreConfig, load_config

__all__ = [
    "ContactStoreError", "BackendError", "ValidationError", "NotFoundError",
    "UnsupportedTransactionError",
    "AddressBookBackend", "AuthorizationStatus", "Contact", "ContactKey",
    "ContactStoreCapability", "FetchRequest", "FieldSelector", "LabeledValue",
    "Predicate", "SortOrder", "REQUIRED_KEYS", "field_selector",
    "Mutation", "MutationKind", "SaveRequest", "SaveRequestFactory", "TransactionState",
    "ContactStore",
    "StoreConfig", "load_config",
]
