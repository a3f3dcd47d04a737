"""
In-Memory Backend

Implements AddressBookBackend with plain Python objects. Used by the test
suite and for local runs without a real address book.

Name matching: a name predicate matches when every word of the query is a
case-insensitive prefix of some word in the contact's given, middle, family
or nickname. "pa" matches "Paul Smith"; "Paul Smith" does not match
"Paul Jones".

Config:
    authorization_status: Initial permission state (default: "not_determined")
    grant_access: Whether request_access grants (default: true)
    containers: Container identifiers (default: ["default"])
    contacts: Seed contacts as dicts (see Contact.from_dict)
"""

import copy
import logging
import threading
import uuid
from typing import Dict, List, Optional, Set, Tuple, Type

from ..errors import NotFoundError, UnsupportedTransactionError, ValidationError
from ..interface import (
    AddressBookBackend, AuthorizationStatus, Contact, ContactKey, FetchRequest,
    FieldSelector, Predicate, RecordCallback, SortOrder,
    CONTAINS, EQUALS, IN, MATCHES
)
from ..save_request import MutationKind, SaveRequest

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER = "default"

NAME_KEYS = (ContactKey.GIVEN_NAME, ContactKey.MIDDLE_NAME, ContactKey.FAMILY_NAME, ContactKey.NICKNAME)


def _name_words(contact: Contact) -> List[str]:
    words = []
    for key in NAME_KEYS:
        value = getattr(contact, key.value)
        if value:
            words.extend(value.lower().split())
    return words


def _matches_name(contact: Contact, query: str) -> bool:
    words = _name_words(contact)
    return all(
        any(word.startswith(term) for word in words)
        for term in query.lower().split()
    )


def _merge(primary: Contact, linked: List[Contact]) -> Contact:
    """Unify linked records into one contact carrying primary's identifier."""
    merged = copy.deepcopy(primary)
    for other in linked:
        for key in ContactKey:
            mine = getattr(merged, key.value)
            theirs = getattr(other, key.value)
            if isinstance(mine, list):
                for value in theirs:
                    if value not in mine:
                        mine.append(copy.deepcopy(value))
            elif not mine and theirs:
                setattr(merged, key.value, theirs)
    return merged


class MemoryBackend(AddressBookBackend):
    """
    Address book held in memory.

    Set `error` to make every operation except authorization_status raise
    that exact exception.
    """

    backend_type = "memory"

    # Save request types execute() accepts
    accepted_request_types: Tuple[Type[SaveRequest], ...] = (SaveRequest,)

    def __init__(self, config: Optional[dict] = None):
        super().__init__(config)
        self.status = AuthorizationStatus(
            self.config.get("authorization_status", AuthorizationStatus.NOT_DETERMINED.value)
        )
        self.grant_access = bool(self.config.get("grant_access", True))
        self.containers: Set[str] = set(self.config.get("containers", [DEFAULT_CONTAINER]))
        self.error: Optional[Exception] = None

        self._lock = threading.RLock()
        # identifier -> (contact, container_id), in insertion order
        self._records: Dict[str, Tuple[Contact, str]] = {}
        # identifier -> identifiers of the records linked to it
        self._links: Dict[str, Set[str]] = {}

        for data in self.config.get("contacts", []):
            contact = Contact.from_dict(data)
            if not contact.identifier:
                contact.identifier = self._new_identifier()
            self._records[contact.identifier] = (contact, DEFAULT_CONTAINER)

    @staticmethod
    def _new_identifier() -> str:
        return f"{str(uuid.uuid4()).upper()}:ABPerson"

    def _raise_injected(self) -> None:
        if self.error is not None:
            raise self.error

    # Permissions

    def authorization_status(self) -> AuthorizationStatus:
        return self.status

    def request_access(self) -> bool:
        self._raise_injected()
        if self.status in (AuthorizationStatus.DENIED, AuthorizationStatus.RESTRICTED):
            return False
        if self.status is AuthorizationStatus.NOT_DETERMINED:
            self.status = AuthorizationStatus.AUTHORIZED if self.grant_access else AuthorizationStatus.DENIED
        return self.status in (AuthorizationStatus.AUTHORIZED, AuthorizationStatus.LIMITED)

    # Linking

    def link(self, identifier: str, other_identifier: str) -> None:
        """Mark two records as the same person for unified reads."""
        with self._lock:
            for ident in (identifier, other_identifier):
                if ident not in self._records:
                    raise NotFoundError(f"No contact with identifier {ident}", identifier=ident)
            group = self._group(identifier) | self._group(other_identifier)
            for ident in group:
                self._links[ident] = group

    def _group(self, identifier: str) -> Set[str]:
        return set(self._links.get(identifier, {identifier}))

    def _unified(self) -> List[Contact]:
        """One contact per person, in insertion order of the first record."""
        seen: Set[str] = set()
        unified = []
        for identifier, (contact, _) in self._records.items():
            if identifier in seen:
                continue
            group = self._group(identifier)
            seen |= group
            linked = [
                self._records[i][0] for i in self._records
                if i in group and i != identifier
            ]
            unified.append(_merge(contact, linked) if linked else contact)
        return unified

    def _snapshot(self, unify: bool) -> List[Contact]:
        with self._lock:
            if unify:
                return self._unified()
            return [contact for contact, _ in self._records.values()]

    # Reads

    def enumerate(self, request: FetchRequest, on_record: RecordCallback) -> None:
        self._raise_injected()
        contacts = self._snapshot(request.unify)
        contacts = self._sorted(contacts, request.sort_order)
        for contact in contacts:
            if on_record(contact.projected(request.keys)):
                break

    @staticmethod
    def _sorted(contacts: List[Contact], order: SortOrder) -> List[Contact]:
        if order is SortOrder.GIVEN_NAME:
            return sorted(contacts, key=lambda c: ((c.given_name or "").lower(), (c.family_name or "").lower()))
        if order in (SortOrder.FAMILY_NAME, SortOrder.USER_DEFAULT):
            return sorted(contacts, key=lambda c: ((c.family_name or "").lower(), (c.given_name or "").lower()))
        return contacts

    def lookup(self, identifier: str, keys: FieldSelector) -> Contact:
        self._raise_injected()
        with self._lock:
            if identifier not in self._records:
                raise NotFoundError(f"No contact with identifier {identifier}", identifier=identifier)
            group = self._group(identifier)
            contact = self._records[identifier][0]
            linked = [self._records[i][0] for i in self._records if i in group and i != identifier]
        merged = _merge(contact, linked) if linked else contact
        return merged.projected(keys)

    def search(self, predicate: Predicate, keys: FieldSelector) -> List[Contact]:
        self._raise_injected()
        contacts = self._snapshot(unify=True)
        return [c.projected(keys) for c in contacts if self._matches(c, predicate)]

    def _matches(self, contact: Contact, predicate: Predicate) -> bool:
        if predicate.field == Predicate.NAME and predicate.operator == MATCHES:
            return _matches_name(contact, predicate.value)
        if predicate.field == Predicate.IDENTIFIER and predicate.operator == IN:
            with self._lock:
                return bool(self._group(contact.identifier) & set(predicate.value))

        try:
            key = ContactKey(predicate.field)
        except ValueError:
            raise ValidationError(f"Unsupported predicate field: {predicate}")
        value = getattr(contact, key.value)
        if isinstance(value, list):
            value = [v.value for v in value]
        if predicate.operator == EQUALS:
            return predicate.value in value if isinstance(value, list) else value == predicate.value
        if predicate.operator == CONTAINS:
            needle = str(predicate.value).lower()
            haystack = value if isinstance(value, list) else [value or ""]
            return any(needle in v.lower() for v in haystack)
        raise ValidationError(f"Unsupported predicate operator: {predicate}")

    # Mutations

    def execute(self, save_request: SaveRequest) -> None:
        self._raise_injected()
        if not isinstance(save_request, self.accepted_request_types):
            raise UnsupportedTransactionError(
                f"Unsupported save request type: {type(save_request).__name__}"
            )
        mutation = save_request.mutation
        if mutation is None:
            raise ValidationError("Save request has no mutation")

        contact = mutation.contact
        with self._lock:
            # Apply to a copy and swap it in, so a failure leaves nothing behind
            records = dict(self._records)
            links = {k: set(v) for k, v in self._links.items()}

            if mutation.kind is MutationKind.ADD:
                container = mutation.container_id or DEFAULT_CONTAINER
                if container not in self.containers:
                    raise NotFoundError(f"No container with identifier {container}", identifier=container)
                if contact.identifier in records:
                    raise ValidationError(
                        f"Contact already exists: {contact.identifier}", identifier=contact.identifier
                    )
                identifier = contact.identifier or self._new_identifier()
                stored = copy.deepcopy(contact)
                stored.identifier = identifier
                records[identifier] = (stored, container)

            elif mutation.kind is MutationKind.UPDATE:
                identifier = self._existing(contact, records)
                stored = copy.deepcopy(contact)
                records[identifier] = (stored, records[identifier][1])

            else:
                identifier = self._existing(contact, records)
                del records[identifier]
                for ident in links.pop(identifier, set()):
                    links.get(ident, set()).discard(identifier)

            self._records = records
            self._links = links

        if mutation.kind is MutationKind.ADD:
            contact.identifier = identifier
        logger.debug(f"Applied {mutation.kind.value}: {identifier}")

    @staticmethod
    def _existing(contact: Contact, records: Dict[str, Tuple[Contact, str]]) -> str:
        if not contact.identifier or contact.identifier not in records:
            raise NotFoundError(
                f"No contact with identifier {contact.identifier}", identifier=contact.identifier
            )
        return contact.identifier

    def container_of(self, identifier: str) -> str:
        with self._lock:
            if identifier not in self._records:
                raise NotFoundError(f"No contact with identifier {identifier}", identifier=identifier)
            return self._records[identifier][1]
