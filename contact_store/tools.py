"""
Contact Tools

Text-returning operations behind the MCP tools in server.py. This is the
outer edge: ContactStoreError becomes a ❌ message here and nowhere else.
"""

from typing import Optional

from .errors import ContactStoreError
from .interface import REQUIRED_KEYS, AuthorizationStatus, Contact, LabeledValue, SortOrder
from .store import ContactStore

STATUS_ICONS = {
    AuthorizationStatus.AUTHORIZED: "🟢",
    AuthorizationStatus.LIMITED: "🟡",
    AuthorizationStatus.NOT_DETERMINED: "⚪",
    AuthorizationStatus.DENIED: "🔴",
    AuthorizationStatus.RESTRICTED: "🔴",
}


def format_contact(contact: Contact) -> str:
    """Format a contact as a short text block."""
    lines = [f"👤 {contact.display_name} (ID: {contact.identifier})"]
    if contact.organization_name and contact.job_title:
        lines.append(f"   🏢 {contact.organization_name} - {contact.job_title}")
    elif contact.organization_name or contact.job_title:
        lines.append(f"   🏢 {contact.organization_name or contact.job_title}")
    for email in contact.email_addresses:
        lines.append(f"   📧 {email.value}")
    for phone in contact.phone_numbers:
        lines.append(f"   📱 {phone.value}")
    if contact.note:
        lines.append(f"   📝 {contact.note}")
    return "\n".join(lines)


def format_contacts(contacts, title: str) -> str:
    if not contacts:
        return f"👥 {title}: no contacts"
    lines = [f"👥 {title} ({len(contacts)})", "─" * 40]
    lines.extend(format_contact(c) for c in contacts)
    return "\n".join(lines)


async def contacts_status(store: ContactStore) -> str:
    status = store.authorization_status()
    return f"{STATUS_ICONS[status]} Contacts access: {status.value}"


async def contacts_request_access(store: ContactStore) -> str:
    try:
        granted = await store.request_access()
    except ContactStoreError as e:
        return f"❌ Access request failed: {e}"
    return "✅ Contacts access granted" if granted else "🔴 Contacts access denied"


async def contacts_list(store: ContactStore, sort: str = "none", limit: int = 100) -> str:
    try:
        sort_order = SortOrder(sort)
    except ValueError:
        available = ", ".join(s.value for s in SortOrder)
        return f"❌ Unknown sort order '{sort}'. Available: {available}"

    try:
        contacts = await store.fetch_all(sort_order=sort_order)
    except ContactStoreError as e:
        return f"❌ Failed to list contacts: {e}"
    return format_contacts(contacts[:limit], "Contacts")


async def contacts_search(store: ContactStore, name: str) -> str:
    if not name.strip():
        return "❌ Name to search for is empty"
    try:
        contacts = await store.fetch_by_name(name)
    except ContactStoreError as e:
        return f"❌ Failed to search contacts: {e}"
    return format_contacts(contacts, f"Matches for '{name}'")


async def contacts_get(store: ContactStore, identifier: str) -> str:
    try:
        contact = await store.lookup(identifier)
    except ContactStoreError as e:
        return f"❌ Failed to get contact: {e}"
    return format_contact(contact)


async def contacts_add(
    store: ContactStore,
    given_name: Optional[str] = None,
    family_name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    organization: Optional[str] = None,
    title: Optional[str] = None,
    notes: Optional[str] = None,
    container_id: Optional[str] = None
) -> str:
    if not (given_name or family_name or organization):
        return "❌ A contact needs a name or organization"

    contact = Contact(
        given_name=given_name,
        family_name=family_name,
        organization_name=organization,
        job_title=title,
        note=notes,
        email_addresses=[LabeledValue(email)] if email else [],
        phone_numbers=[LabeledValue(phone)] if phone else []
    )
    try:
        await store.add(contact, container_id)
    except ContactStoreError as e:
        return f"❌ Failed to create contact: {e}"
    return f"✅ Created contact: {contact.display_name} (ID: {contact.identifier})"


async def contacts_update(
    store: ContactStore,
    identifier: str,
    given_name: Optional[str] = None,
    family_name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    organization: Optional[str] = None,
    title: Optional[str] = None,
    notes: Optional[str] = None
) -> str:
    try:
        contact = await store.lookup(identifier, REQUIRED_KEYS)

        if given_name is not None:
            contact.given_name = given_name
        if family_name is not None:
            contact.family_name = family_name
        if email is not None:
            contact.email_addresses = [LabeledValue(email)]
        if phone is not None:
            contact.phone_numbers = [LabeledValue(phone)]
        if organization is not None:
            contact.organization_name = organization
        if title is not None:
            contact.job_title = title
        if notes is not None:
            contact.note = notes

        await store.update(contact)
    except ContactStoreError as e:
        return f"❌ Failed to update contact: {e}"
    return f"✅ Updated contact: {contact.display_name} (ID: {identifier})"


async def contacts_delete(store: ContactStore, identifier: str) -> str:
    try:
        contact = await store.lookup(identifier, REQUIRED_KEYS)
        await store.delete(contact)
    except ContactStoreError as e:
        return f"❌ Failed to delete contact: {e}"
    return f"✅ Deleted contact: {contact.display_name} (ID: {identifier})"
