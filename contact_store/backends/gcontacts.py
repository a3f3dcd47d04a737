"""
Google Contacts Backend

Implements AddressBookBackend for the Google People API.

Name matching is Google's searchContacts behavior: case-insensitive prefix
matching on name words. Google always returns merged people, so the
unify flag of a fetch is accepted and has no effect.

Config:
    token_path: Authorized user token (default: /data/config/gcontacts_token.json)
    credentials_path: OAuth client secrets (default: /data/config/gdrive_credentials.json)
    oauth_port: Local port for the OAuth redirect (default: 8085)
    page_size: Connections per page when enumerating (default: 1000)
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from google.auth.exceptions import GoogleAuthError, RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from ..errors import BackendError, NotFoundError, UnsupportedTransactionError, ValidationError
from ..interface import (
    AddressBookBackend, AuthorizationStatus, Contact, ContactKey, FetchRequest,
    FieldSelector, LabeledValue, Predicate, RecordCallback, SortOrder,
    IN, MATCHES
)
from ..save_request import MutationKind, SaveRequest

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_PATH = Path("/data/config/gcontacts_token.json")
DEFAULT_CREDENTIALS_PATH = Path("/data/config/gdrive_credentials.json")

CONTACTS_SCOPE = "https://www.googleapis.com/auth/contacts"
CONTACTS_READONLY_SCOPE = "https://www.googleapis.com/auth/contacts.readonly"
SCOPES = [CONTACTS_READONLY_SCOPE, CONTACTS_SCOPE]

# People API person field for each contact key
PERSON_FIELDS = {
    ContactKey.GIVEN_NAME: "names",
    ContactKey.FAMILY_NAME: "names",
    ContactKey.MIDDLE_NAME: "names",
    ContactKey.NICKNAME: "nicknames",
    ContactKey.ORGANIZATION_NAME: "organizations",
    ContactKey.JOB_TITLE: "organizations",
    ContactKey.NOTE: "biographies",
    ContactKey.EMAIL_ADDRESSES: "emailAddresses",
    ContactKey.PHONE_NUMBERS: "phoneNumbers",
}

SORT_ORDERS = {
    SortOrder.GIVEN_NAME: "FIRST_NAME_ASCENDING",
    SortOrder.FAMILY_NAME: "LAST_NAME_ASCENDING",
}

# Raised by .execute(): HTTP status errors, auth/transport failures, socket errors
API_ERRORS = (HttpError, GoogleAuthError, HttpLib2Error, OSError)

# searchContacts page size limit
SEARCH_PAGE_SIZE = 30


def person_fields(keys: FieldSelector) -> str:
    """Comma-separated personFields for a selector. Always includes names."""
    return ",".join(sorted({"names"} | {PERSON_FIELDS[k] for k in keys}))


def _resource_name(identifier: str) -> str:
    return identifier if identifier.startswith("people/") else f"people/{identifier}"


def _translate(e: Exception, action: str, identifier: Optional[str] = None) -> BackendError:
    """Map a People API or transport error onto the contact store errors."""
    status = e.resp.status if isinstance(e, HttpError) else None
    message = f"Failed to {action}: {e}"
    if status == 404:
        return NotFoundError(message, identifier=identifier)
    if status == 400:
        return ValidationError(message, identifier=identifier)
    return BackendError(message, identifier=identifier)


class GoogleContactsBackend(AddressBookBackend):
    """Google Contacts backend using the People API."""

    backend_type = "gcontacts"

    def __init__(self, config: Optional[dict] = None, service: Any = None):
        super().__init__(config)
        self._service = service

        self._token_path = Path(self.config.get("token_path", str(DEFAULT_TOKEN_PATH)))
        self._credentials_path = Path(self.config.get("credentials_path", str(DEFAULT_CREDENTIALS_PATH)))
        self.oauth_port = int(self.config.get("oauth_port", 8085))
        self.page_size = min(int(self.config.get("page_size", 1000)), 1000)

    # Credentials

    def _load_credentials(self) -> Optional[Credentials]:
        if not self._token_path.exists():
            return None
        return Credentials.from_authorized_user_file(str(self._token_path))

    def _save_credentials(self, creds: Credentials) -> None:
        self._token_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._token_path, 'w') as f:
            f.write(creds.to_json())

    def authorization_status(self) -> AuthorizationStatus:
        if not self._token_path.exists():
            return AuthorizationStatus.NOT_DETERMINED
        try:
            creds = self._load_credentials()
        except (ValueError, OSError) as e:
            logger.warning(f"Failed to load token file: {e}")
            return AuthorizationStatus.DENIED

        scopes = set(creds.scopes or [])
        if CONTACTS_SCOPE in scopes:
            return AuthorizationStatus.AUTHORIZED
        if CONTACTS_READONLY_SCOPE in scopes:
            return AuthorizationStatus.LIMITED
        return AuthorizationStatus.RESTRICTED

    def request_access(self) -> bool:
        """Refresh the stored token, or run the browser OAuth flow."""
        try:
            creds = self._load_credentials()
        except (ValueError, OSError) as e:
            logger.warning(f"Existing token invalid: {e}")
            creds = None

        if creds and CONTACTS_SCOPE in set(creds.scopes or []):
            if creds.valid:
                return True
            if creds.expired and creds.refresh_token:
                try:
                    creds.refresh(Request())
                    self._save_credentials(creds)
                    self._service = None
                    logger.info("🔄 Refreshed Google Contacts token")
                    return True
                except RefreshError as e:
                    logger.warning(f"Token refresh failed, re-authorizing: {e}")

        if not self._credentials_path.exists():
            raise BackendError(f"Credentials file not found: {self._credentials_path}")

        from google_auth_oauthlib.flow import InstalledAppFlow
        from oauthlib.oauth2.rfc6749.errors import AccessDeniedError

        flow = InstalledAppFlow.from_client_secrets_file(str(self._credentials_path), SCOPES)
        try:
            creds = flow.run_local_server(
                port=self.oauth_port,
                prompt="consent",
                access_type="offline"
            )
        except AccessDeniedError:
            logger.warning("Google Contacts access denied by user")
            return False
        except Exception as e:
            raise BackendError(f"OAuth flow failed: {e}") from e

        self._save_credentials(creds)
        self._service = None
        logger.info(f"✅ Token saved: {self._token_path}")
        return True

    @property
    def service(self) -> Any:
        """People API service, built on first use."""
        if self._service is None:
            try:
                creds = self._load_credentials()
            except (ValueError, OSError) as e:
                raise BackendError(f"Unreadable Google Contacts token {self._token_path}: {e}") from e
            if not creds:
                raise BackendError(f"No credentials available at {self._token_path}. Request access first.")
            if creds.expired and creds.refresh_token:
                try:
                    creds.refresh(Request())
                except GoogleAuthError as e:
                    raise BackendError(f"Failed to refresh Google Contacts token: {e}") from e
                self._save_credentials(creds)
            self._service = build('people', 'v1', credentials=creds)
            logger.info("✅ Connected to Google Contacts")
        return self._service

    # Parsing

    def _parse_contact(self, person: dict) -> Contact:
        """Parse People API person into Contact object."""
        resource_name = person.get('resourceName', '')
        contact = Contact(identifier=resource_name.replace('people/', '') or None)

        names = person.get('names', [])
        if names:
            n = names[0]
            contact.given_name = n.get('givenName')
            contact.family_name = n.get('familyName')
            contact.middle_name = n.get('middleName')

        nicknames = person.get('nicknames', [])
        if nicknames:
            contact.nickname = nicknames[0].get('value')

        orgs = person.get('organizations', [])
        if orgs:
            contact.organization_name = orgs[0].get('name')
            contact.job_title = orgs[0].get('title')

        bios = person.get('biographies', [])
        if bios:
            contact.note = bios[0].get('value')

        contact.email_addresses = [
            LabeledValue(value=e.get('value', ''), label=e.get('type'))
            for e in person.get('emailAddresses', [])
        ]
        contact.phone_numbers = [
            LabeledValue(value=p.get('value', ''), label=p.get('type'))
            for p in person.get('phoneNumbers', [])
        ]
        return contact

    def _to_person(self, contact: Contact) -> Dict[str, Any]:
        """Build a People API person body from a contact."""
        person: Dict[str, Any] = {
            'names': [{
                'givenName': contact.given_name or '',
                'familyName': contact.family_name or '',
                'middleName': contact.middle_name or ''
            }],
            'nicknames': [{'value': contact.nickname}] if contact.nickname else [],
            'organizations': [],
            'biographies': [],
            'emailAddresses': [
                {'value': e.value, 'type': e.label or 'other'} for e in contact.email_addresses
            ],
            'phoneNumbers': [
                {'value': p.value, 'type': p.label or 'other'} for p in contact.phone_numbers
            ],
        }
        if contact.organization_name or contact.job_title:
            person['organizations'] = [{
                'name': contact.organization_name or '',
                'title': contact.job_title or ''
            }]
        if contact.note:
            person['biographies'] = [{'value': contact.note, 'contentType': 'TEXT_PLAIN'}]
        return person

    # Reads

    def enumerate(self, request: FetchRequest, on_record: RecordCallback) -> None:
        params = {
            'resourceName': 'people/me',
            'pageSize': self.page_size,
            'personFields': person_fields(request.keys),
        }
        if request.sort_order in SORT_ORDERS:
            params['sortOrder'] = SORT_ORDERS[request.sort_order]

        while True:
            try:
                results = self.service.people().connections().list(**params).execute()
            except API_ERRORS as e:
                raise _translate(e, "list contacts") from e

            for person in results.get('connections', []):
                if on_record(self._parse_contact(person).projected(request.keys)):
                    return

            next_page = results.get('nextPageToken')
            if not next_page:
                return
            params['pageToken'] = next_page

    def lookup(self, identifier: str, keys: FieldSelector) -> Contact:
        try:
            person = self.service.people().get(
                resourceName=_resource_name(identifier),
                personFields=person_fields(keys)
            ).execute()
        except API_ERRORS as e:
            raise _translate(e, "get contact", identifier) from e
        return self._parse_contact(person).projected(keys)

    def search(self, predicate: Predicate, keys: FieldSelector) -> List[Contact]:
        if predicate.field == Predicate.NAME and predicate.operator == MATCHES:
            return self._search_by_name(predicate.value, keys)
        if predicate.field == Predicate.IDENTIFIER and predicate.operator == IN:
            return self._get_batch(list(predicate.value), keys)
        raise BackendError(f"Unsupported predicate for Google Contacts: {predicate}")

    def _search_by_name(self, name: str, keys: FieldSelector) -> List[Contact]:
        try:
            results = self.service.people().searchContacts(
                query=name,
                pageSize=SEARCH_PAGE_SIZE,
                readMask=person_fields(keys)
            ).execute()
        except API_ERRORS as e:
            raise _translate(e, "search contacts") from e

        return [
            self._parse_contact(result.get('person', {})).projected(keys)
            for result in results.get('results', [])
        ]

    def _get_batch(self, identifiers: List[str], keys: FieldSelector) -> List[Contact]:
        if not identifiers:
            return []
        try:
            results = self.service.people().getBatchGet(
                resourceNames=[_resource_name(i) for i in identifiers],
                personFields=person_fields(keys)
            ).execute()
        except API_ERRORS as e:
            raise _translate(e, "get contacts") from e

        contacts = []
        for response in results.get('responses', []):
            person = response.get('person')
            if person:
                contacts.append(self._parse_contact(person).projected(keys))
        return contacts

    # Mutations

    def execute(self, save_request: SaveRequest) -> None:
        if not isinstance(save_request, SaveRequest):
            raise UnsupportedTransactionError(
                f"Unsupported save request type: {type(save_request).__name__}"
            )
        mutation = save_request.mutation
        if mutation is None:
            raise ValidationError("Save request has no mutation")

        if mutation.kind is MutationKind.ADD:
            self._create(mutation.contact, mutation.container_id)
        elif mutation.kind is MutationKind.UPDATE:
            self._update(mutation.contact)
        else:
            self._delete(mutation.contact)

    def _create(self, contact: Contact, container_id: Optional[str]) -> None:
        try:
            result = self.service.people().createContact(body=self._to_person(contact)).execute()
        except API_ERRORS as e:
            raise _translate(e, "create contact") from e

        resource_name = result.get('resourceName', '')
        if container_id:
            group = container_id if container_id.startswith('contactGroups/') else f"contactGroups/{container_id}"
            try:
                self.service.contactGroups().members().modify(
                    resourceName=group,
                    body={'resourceNamesToAdd': [resource_name]}
                ).execute()
            except API_ERRORS as e:
                # Roll back so the add is all or nothing
                try:
                    self.service.people().deleteContact(resourceName=resource_name).execute()
                except API_ERRORS as rollback_error:
                    logger.error(f"❌ Rollback failed, {resource_name} left outside {group}: {rollback_error}")
                raise _translate(e, "add contact to group", container_id) from e

        contact.identifier = resource_name.replace('people/', '')
        logger.info(f"✅ Created contact: {contact.display_name} (ID: {contact.identifier})")

    def _update(self, contact: Contact) -> None:
        if not contact.identifier:
            raise NotFoundError("Contact has no identifier")
        resource_name = _resource_name(contact.identifier)

        try:
            # Get current contact to get etag
            current = self.service.people().get(
                resourceName=resource_name,
                personFields='names'
            ).execute()

            person = self._to_person(contact)
            person['etag'] = current.get('etag')

            self.service.people().updateContact(
                resourceName=resource_name,
                updatePersonFields=person_fields(frozenset(ContactKey)),
                body=person
            ).execute()
        except API_ERRORS as e:
            raise _translate(e, "update contact", contact.identifier) from e

        logger.info(f"✅ Updated contact: {contact.identifier}")

    def _delete(self, contact: Contact) -> None:
        if not contact.identifier:
            raise NotFoundError("Contact has no identifier")
        try:
            self.service.people().deleteContact(resourceName=_resource_name(contact.identifier)).execute()
        except API_ERRORS as e:
            raise _translate(e, "delete contact", contact.identifier) from e

        logger.info(f"✅ Deleted contact: {contact.identifier}")
