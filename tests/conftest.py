"""Shared fixtures for contact store tests."""
from __future__ import annotations

import pytest

from contact_store import ContactStore, SaveRequest
from contact_store.backends import MemoryBackend


class RecordingSaveRequest(SaveRequest):
    """Save request that also captures which contact each mutation targets."""

    def __init__(self):
        super().__init__()
        self.added_contact = None
        self.updated_contact = None
        self.deleted_contact = None

    def add(self, contact, container_id=None):
        super().add(contact, container_id)
        self.added_contact = contact

    def update(self, contact):
        super().update(contact)
        self.updated_contact = contact

    def delete(self, contact):
        super().delete(contact)
        self.deleted_contact = contact


@pytest.fixture
def backend():
    """Memory backend that only accepts recording save requests."""
    backend = MemoryBackend({"authorization_status": "authorized"})
    backend.accepted_request_types = (RecordingSaveRequest,)
    return backend


@pytest.fixture
def save_requests():
    """Every save request the store fixture created, in order."""
    return []


@pytest.fixture
def store(backend, save_requests):
    def make_save_request():
        request = RecordingSaveRequest()
        save_requests.append(request)
        return request

    return ContactStore(backend, save_request_factory=make_save_request)
