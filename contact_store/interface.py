"""
Contact Store Interface

Core abstractions for the contact store:

- ContactStoreCapability: the contract callers program against
- AddressBookBackend: the six operations a contacts backend must provide
- Contact, Predicate, FetchRequest and the enums shared by both sides
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Dict, FrozenSet, Iterable, List, Optional

if TYPE_CHECKING:
    from .save_request import SaveRequest


class AuthorizationStatus(Enum):
    """Permission state reported by a backend."""
    NOT_DETERMINED = "not_determined"
    DENIED = "denied"
    AUTHORIZED = "authorized"
    RESTRICTED = "restricted"
    LIMITED = "limited"


class SortOrder(Enum):
    """Result ordering for fetch_all."""
    NONE = "none"
    USER_DEFAULT = "user_default"
    GIVEN_NAME = "given_name"
    FAMILY_NAME = "family_name"


class ContactKey(str, Enum):
    """Contact attributes a read can ask for. Values match Contact field names."""
    GIVEN_NAME = "given_name"
    FAMILY_NAME = "family_name"
    MIDDLE_NAME = "middle_name"
    NICKNAME = "nickname"
    ORGANIZATION_NAME = "organization_name"
    JOB_TITLE = "job_title"
    NOTE = "note"
    EMAIL_ADDRESSES = "email_addresses"
    PHONE_NUMBERS = "phone_numbers"


FieldSelector = FrozenSet[ContactKey]

# Default selector for every read
REQUIRED_KEYS: FieldSelector = frozenset(ContactKey)


def field_selector(keys: Iterable[Any]) -> FieldSelector:
    """Build a selector from ContactKey members or their string values."""
    return frozenset(ContactKey(k) for k in keys)


@dataclass
class LabeledValue:
    """A labeled contact method (email address, phone number)."""
    value: str
    label: Optional[str] = None


@dataclass
class Contact:
    """
    A contact record.

    The identifier is assigned by the backend when the contact is added and
    stays stable afterwards. Two contacts with the same identifier are the
    same person, even if the fetched fields differ.
    """
    identifier: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    middle_name: Optional[str] = None
    nickname: Optional[str] = None
    organization_name: Optional[str] = None
    job_title: Optional[str] = None
    note: Optional[str] = None
    email_addresses: List[LabeledValue] = field(default_factory=list)
    phone_numbers: List[LabeledValue] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        """Get display name."""
        parts = [self.given_name, self.middle_name, self.family_name]
        name = " ".join(p for p in parts if p)
        return name or self.nickname or self.organization_name or "(No name)"

    def same_person(self, other: "Contact") -> bool:
        return self.identifier is not None and self.identifier == other.identifier

    def populated_keys(self) -> FieldSelector:
        """Keys whose value is set on this contact."""
        return frozenset(k for k in ContactKey if getattr(self, k.value))

    def projected(self, keys: FieldSelector) -> "Contact":
        """Copy of this contact with only the selected keys populated."""
        cleared: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "identifier" or f.name in keys:
                continue
            cleared[f.name] = [] if isinstance(getattr(self, f.name), list) else None
        projected = replace(self, **cleared)
        projected.email_addresses = [replace(v) for v in projected.email_addresses]
        projected.phone_numbers = [replace(v) for v in projected.phone_numbers]
        return projected

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, list):
                value = [{"value": v.value, "label": v.label} for v in value]
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Contact":
        return cls(
            identifier=data.get("identifier"),
            given_name=data.get("given_name"),
            family_name=data.get("family_name"),
            middle_name=data.get("middle_name"),
            nickname=data.get("nickname"),
            organization_name=data.get("organization_name"),
            job_title=data.get("job_title"),
            note=data.get("note"),
            email_addresses=[LabeledValue(**v) for v in data.get("email_addresses", [])],
            phone_numbers=[LabeledValue(**v) for v in data.get("phone_numbers", [])],
        )


# Predicate operators
MATCHES = "matches"
IN = "in"
EQUALS = "=="
CONTAINS = "contains"


@dataclass(frozen=True)
class Predicate:
    """A structured search criterion: field + operator + value."""
    field: str
    operator: str
    value: Any

    NAME: ClassVar[str] = "name"
    IDENTIFIER: ClassVar[str] = "identifier"

    @classmethod
    def matching_name(cls, name: str) -> "Predicate":
        """Match contacts by name. How names match is up to the backend."""
        if not name or not name.strip():
            raise ValueError("Name to match must not be empty")
        return cls(cls.NAME, MATCHES, name.strip())

    @classmethod
    def with_identifiers(cls, identifiers: Iterable[str]) -> "Predicate":
        return cls(cls.IDENTIFIER, IN, tuple(identifiers))

    def __str__(self):
        return f"{self.field} {self.operator} {self.value!r}"


@dataclass
class FetchRequest:
    """Parameters for one enumeration of the whole address book."""
    keys: FieldSelector = REQUIRED_KEYS
    sort_order: SortOrder = SortOrder.NONE
    unify: bool = True


# Called once per enumerated record. Return a truthy value to stop early.
RecordCallback = Callable[[Contact], Optional[bool]]


class AddressBookBackend(ABC):
    """
    Base class for address book backends.

    All operations block and raise ContactStoreError subclasses on failure.
    None of them may swallow an error or return a partial result instead.
    """

    backend_type: str = "base"

    def __init__(self, config: Optional[dict] = None):
        self.config = config or {}

    @abstractmethod
    def authorization_status(self) -> AuthorizationStatus:
        """Current permission state. Never raises."""
        pass

    @abstractmethod
    def request_access(self) -> bool:
        """
        Ask for permission to the address book.

        Returns:
            True if granted, False if the user declined

        Raises:
            BackendError: If the request itself could not be completed
        """
        pass

    @abstractmethod
    def enumerate(self, request: FetchRequest, on_record: RecordCallback) -> None:
        """
        Call on_record for every contact, in order, until it returns truthy.

        Errors raised by on_record propagate out of enumerate unchanged.
        """
        pass

    @abstractmethod
    def lookup(self, identifier: str, keys: FieldSelector) -> Contact:
        """
        Fetch one unified contact.

        Raises:
            NotFoundError: If no contact has this identifier
        """
        pass

    @abstractmethod
    def search(self, predicate: Predicate, keys: FieldSelector) -> List[Contact]:
        """Unified contacts matching a predicate, in backend order."""
        pass

    @abstractmethod
    def execute(self, save_request: SaveRequest) -> None:
        """
        Apply the mutation recorded on a save request atomically.

        Raises:
            UnsupportedTransactionError: If the request type is not accepted
            NotFoundError: If an update or delete targets a missing contact
            BackendError: For any other failure
        """
        pass


class ContactStoreCapability(ABC):
    """The operations callers use to work with contacts."""

    @abstractmethod
    def authorization_status(self) -> AuthorizationStatus:
        """Current permission state."""
        pass

    @abstractmethod
    async def request_access(self) -> bool:
        """Request access. False means denied."""
        pass

    @abstractmethod
    async def fetch_all(
        self,
        keys: Optional[FieldSelector] = None,
        sort_order: Optional[SortOrder] = None,
        unify: Optional[bool] = None
    ) -> List[Contact]:
        """Every contact visible to the backend."""
        pass

    @abstractmethod
    async def fetch(self, predicate: Predicate, keys: Optional[FieldSelector] = None) -> List[Contact]:
        """Contacts matching a predicate."""
        pass

    @abstractmethod
    async def fetch_by_name(self, name: str, keys: Optional[FieldSelector] = None) -> List[Contact]:
        """Contacts matching a name."""
        pass

    @abstractmethod
    async def lookup(self, identifier: str, keys: Optional[FieldSelector] = None) -> Contact:
        """One contact by identifier."""
        pass

    @abstractmethod
    async def add(self, contact: Contact, container_id: Optional[str] = None) -> None:
        """Add a new contact, optionally to a container."""
        pass

    @abstractmethod
    async def update(self, contact: Contact) -> None:
        """Replace an existing contact."""
        pass

    @abstractmethod
    async def delete(self, contact: Contact) -> None:
        """Delete a contact."""
        pass
