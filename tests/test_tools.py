"""Tests for the text tools behind the MCP server."""
from __future__ import annotations

import asyncio

import pytest

from contact_store import (
    REQUIRED_KEYS,
    BackendError,
    Contact,
    ContactKey,
    ContactStore,
    LabeledValue,
    StoreConfig,
)
from contact_store import tools
from contact_store.backends import GoogleContactsBackend, MemoryBackend


@pytest.fixture
def memory_store():
    return ContactStore(MemoryBackend())


def identifier_from(message: str) -> str:
    return message.rsplit("ID: ", 1)[1].rstrip(")")


class TestFormatting:
    def test_format_contact(self):
        contact = Contact(
            identifier="c1",
            given_name="Paul",
            family_name="Smith",
            organization_name="Wallstreet",
            job_title="Manager",
            email_addresses=[LabeledValue("paul@example.com")],
            phone_numbers=[LabeledValue("+380981112233")],
        )

        text = tools.format_contact(contact)

        assert text.splitlines() == [
            "👤 Paul Smith (ID: c1)",
            "   🏢 Wallstreet - Manager",
            "   📧 paul@example.com",
            "   📱 +380981112233",
        ]

    def test_format_empty_list(self):
        assert tools.format_contacts([], "Contacts") == "👥 Contacts: no contacts"


class TestTools:
    def test_status_and_request_access(self, memory_store):
        assert asyncio.run(tools.contacts_status(memory_store)) == "⚪ Contacts access: not_determined"
        assert asyncio.run(tools.contacts_request_access(memory_store)) == "✅ Contacts access granted"
        assert asyncio.run(tools.contacts_status(memory_store)) == "🟢 Contacts access: authorized"

    def test_add_search_update_delete(self, memory_store):
        added = asyncio.run(tools.contacts_add(memory_store, given_name="Paul", email="paul@example.com"))
        assert added.startswith("✅ Created contact: Paul")
        identifier = identifier_from(added)

        found = asyncio.run(tools.contacts_search(memory_store, "Paul"))
        assert "👥 Matches for 'Paul' (1)" in found
        assert "📧 paul@example.com" in found

        updated = asyncio.run(tools.contacts_update(memory_store, identifier, given_name="John"))
        assert updated.startswith("✅ Updated contact: John")
        assert "no contacts" in asyncio.run(tools.contacts_search(memory_store, "Paul"))

        deleted = asyncio.run(tools.contacts_delete(memory_store, identifier))
        assert deleted.startswith("✅ Deleted contact: John")
        assert "no contacts" in asyncio.run(tools.contacts_list(memory_store))

    def test_add_requires_a_name(self, memory_store):
        assert asyncio.run(tools.contacts_add(memory_store)).startswith("❌")

    def test_list_rejects_unknown_sort(self, memory_store):
        assert "Unknown sort order" in asyncio.run(tools.contacts_list(memory_store, sort="sideways"))

    def test_list_respects_limit(self, memory_store):
        for name in ("Ann", "Bob", "Cid"):
            asyncio.run(tools.contacts_add(memory_store, given_name=name))

        text = asyncio.run(tools.contacts_list(memory_store, sort="given_name", limit=2))

        assert "👥 Contacts (2)" in text
        assert "Cid" not in text

    def test_get_missing_contact(self, memory_store):
        assert asyncio.run(tools.contacts_get(memory_store, "missing")).startswith("❌ Failed to get contact")

    def test_backend_errors_become_messages(self, memory_store):
        memory_store.backend.error = BackendError("offline")

        assert asyncio.run(tools.contacts_list(memory_store)) == "❌ Failed to list contacts: offline"
        assert asyncio.run(tools.contacts_search(memory_store, "Paul")) == "❌ Failed to search contacts: offline"
        assert asyncio.run(tools.contacts_request_access(memory_store)) == "❌ Access request failed: offline"

    def test_update_keeps_fields_outside_default_keys(self):
        config = StoreConfig(default_keys=frozenset({ContactKey.GIVEN_NAME, ContactKey.FAMILY_NAME}))
        store = ContactStore(MemoryBackend(), config=config)
        added = asyncio.run(tools.contacts_add(store, given_name="Paul", phone="+380981112233", notes="vip"))
        identifier = identifier_from(added)

        asyncio.run(tools.contacts_update(store, identifier, family_name="Smith"))

        stored = asyncio.run(store.lookup(identifier, REQUIRED_KEYS))
        assert stored.family_name == "Smith"
        assert stored.note == "vip"
        assert stored.phone_numbers == [LabeledValue("+380981112233")]

    def test_unreadable_google_token_is_reported_as_backend_failure(self, tmp_path):
        token = tmp_path / "token.json"
        token.write_text("{not json")
        store = ContactStore(GoogleContactsBackend({"token_path": str(token)}))

        text = asyncio.run(tools.contacts_list(store))

        assert text.startswith("❌ Failed to list contacts: Unreadable Google Contacts token")
