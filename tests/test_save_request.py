"""Tests for single-mutation save requests."""
from __future__ import annotations

import pytest

from contact_store import Contact, MutationKind, SaveRequest, TransactionState


class TestSaveRequest:
    def test_starts_idle_and_empty(self):
        request = SaveRequest()
        assert request.state is TransactionState.IDLE
        assert request.mutation is None

    def test_add_records_container(self):
        contact = Contact(given_name="Paul")
        request = SaveRequest()

        request.add(contact, "work")

        assert request.state is TransactionState.BUILT
        assert request.mutation.kind is MutationKind.ADD
        assert request.mutation.contact is contact
        assert request.mutation.container_id == "work"

    @pytest.mark.parametrize("method,kind", [
        ("update", MutationKind.UPDATE),
        ("delete", MutationKind.DELETE),
    ])
    def test_update_and_delete_record_kind(self, method, kind):
        request = SaveRequest()
        getattr(request, method)(Contact(identifier="abc"))

        assert request.mutation.kind is kind
        assert request.mutation.container_id is None

    def test_second_mutation_is_rejected(self):
        request = SaveRequest()
        request.add(Contact(given_name="Paul"))

        with pytest.raises(ValueError):
            request.delete(Contact(identifier="abc"))
        assert request.mutation.kind is MutationKind.ADD

    def test_lifecycle_to_committed(self):
        request = SaveRequest()
        request.update(Contact(identifier="abc"))
        request.mark_submitted()
        request.mark_committed()
        assert request.state is TransactionState.COMMITTED

    def test_lifecycle_to_failed(self):
        request = SaveRequest()
        request.update(Contact(identifier="abc"))
        request.mark_submitted()
        request.mark_failed()
        assert request.state is TransactionState.FAILED

    def test_empty_request_cannot_be_submitted(self):
        with pytest.raises(ValueError):
            SaveRequest().mark_submitted()

    def test_request_cannot_be_submitted_twice(self):
        request = SaveRequest()
        request.delete(Contact(identifier="abc"))
        request.mark_submitted()
        request.mark_committed()

        with pytest.raises(ValueError):
            request.mark_submitted()

    def test_repr_shows_mutation(self):
        request = SaveRequest()
        assert repr(request) == "<SaveRequest idle>"

        request.delete(Contact(identifier="abc"))
        assert repr(request) == "<SaveRequest built delete abc>"
