"""
Save Requests

A SaveRequest is a single-use transaction carrying exactly one mutation
(add, update or delete). ContactStore builds a fresh one per call through
an injected factory, records the mutation and hands it to the backend.

Lifecycle:
    IDLE -> BUILT -> SUBMITTED -> COMMITTED | FAILED
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .interface import Contact


class MutationKind(Enum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


class TransactionState(Enum):
    IDLE = "idle"
    BUILT = "built"
    SUBMITTED = "submitted"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass
class Mutation:
    """The change a save request carries."""
    kind: MutationKind
    contact: Contact
    container_id: Optional[str] = None


class SaveRequest:
    """Default save request. Backends read `mutation` when executing it."""

    def __init__(self):
        self.mutation: Optional[Mutation] = None
        self.state = TransactionState.IDLE

    def add(self, contact: Contact, container_id: Optional[str] = None) -> None:
        self._record(Mutation(MutationKind.ADD, contact, container_id))

    def update(self, contact: Contact) -> None:
        self._record(Mutation(MutationKind.UPDATE, contact))

    def delete(self, contact: Contact) -> None:
        self._record(Mutation(MutationKind.DELETE, contact))

    def _record(self, mutation: Mutation) -> None:
        if self.state is not TransactionState.IDLE:
            raise ValueError(f"Save request already holds a mutation (state: {self.state.value})")
        self.mutation = mutation
        self.state = TransactionState.BUILT

    def mark_submitted(self) -> None:
        self._transition(TransactionState.BUILT, TransactionState.SUBMITTED)

    def mark_committed(self) -> None:
        self._transition(TransactionState.SUBMITTED, TransactionState.COMMITTED)

    def mark_failed(self) -> None:
        self._transition(TransactionState.SUBMITTED, TransactionState.FAILED)

    def _transition(self, expected: TransactionState, new: TransactionState) -> None:
        if self.state is not expected:
            raise ValueError(
                f"Cannot move save request to {new.value} from {self.state.value}"
            )
        self.state = new

    def __repr__(self):
        if self.mutation is None:
            return f"<{type(self).__name__} {self.state.value}>"
        return (
            f"<{type(self).__name__} {self.state.value} "
            f"{self.mutation.kind.value} {self.mutation.contact.identifier}>"
        )


# Zero-argument constructor for save requests, injected into ContactStore
SaveRequestFactory = Callable[[], SaveRequest]
