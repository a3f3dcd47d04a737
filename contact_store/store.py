"""
Contact Store

ContactStore implements ContactStoreCapability on top of any
AddressBookBackend. Backend calls block, so each one runs in a worker
thread and the caller awaits it. Errors raised by the backend reach the
caller unchanged.

Usage:
    store = ContactStore(MemoryBackend())

    contact = Contact(given_name="Paul")
    await store.add(contact)
    matches = await store.fetch_by_name("Paul")
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, TypeVar

from .config import StoreConfig
from .interface import (
    AddressBookBackend, AuthorizationStatus, Contact, ContactStoreCapability,
    FetchRequest, FieldSelector, Predicate, SortOrder
)
from .save_request import SaveRequest, SaveRequestFactory

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def _collecting() -> Iterator[List[Contact]]:
    """Buffer for enumerated records, emptied on every exit path."""
    buffer: List[Contact] = []
    try:
        yield buffer
    except Exception:
        logger.debug(f"Enumeration aborted after {len(buffer)} records")
        raise
    finally:
        buffer.clear()


class ContactStore(ContactStoreCapability):
    """Contacts facade over an address book backend."""

    def __init__(
        self,
        backend: AddressBookBackend,
        save_request_factory: Optional[SaveRequestFactory] = None,
        config: Optional[StoreConfig] = None
    ):
        """
        Args:
            backend: The address book to delegate to
            save_request_factory: Builds a fresh save request per mutation
                (default: SaveRequest)
            config: Read defaults (default: StoreConfig())
        """
        self.backend = backend
        self.config = config or StoreConfig()
        self._make_save_request = save_request_factory or SaveRequest

    async def _run(self, func: Callable[..., T], *args) -> T:
        """
        Run a blocking backend call in a worker thread.

        If the caller is cancelled the backend call is still awaited to
        completion before CancelledError propagates.
        """
        task = asyncio.ensure_future(asyncio.to_thread(func, *args))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done():
                logger.debug(f"Cancelled, waiting for {getattr(func, '__name__', func)} to finish")
                await asyncio.wait({task})
            if not task.cancelled() and task.exception() is not None:
                logger.warning(f"Backend call failed after cancellation: {task.exception()}")
            raise

    # Permissions

    def authorization_status(self) -> AuthorizationStatus:
        return self.backend.authorization_status()

    async def request_access(self) -> bool:
        granted = await self._run(self.backend.request_access)
        logger.info(f"Contacts access {'granted' if granted else 'denied'}")
        return granted

    # Reads

    async def fetch_all(
        self,
        keys: Optional[FieldSelector] = None,
        sort_order: Optional[SortOrder] = None,
        unify: Optional[bool] = None
    ) -> List[Contact]:
        """
        Fetch every contact.

        Call this on large address books only from async code: the
        enumeration itself runs in a worker thread.

        Args:
            keys: Fields to populate (default: config.default_keys)
            sort_order: Result order (default: config.sort_order)
            unify: Merge linked records for the same person (default: config.unify)

        Returns:
            All contacts in backend order. Never a partial list: an error
            during enumeration is raised instead.
        """
        request = FetchRequest(
            keys=keys if keys is not None else self.config.default_keys,
            sort_order=sort_order if sort_order is not None else self.config.sort_order,
            unify=unify if unify is not None else self.config.unify
        )
        contacts = await self._run(self._enumerate, request)
        logger.debug(f"Fetched {len(contacts)} contacts")
        return contacts

    def _enumerate(self, request: FetchRequest) -> List[Contact]:
        with _collecting() as buffer:
            self.backend.enumerate(request, buffer.append)
            return list(buffer)

    async def fetch(self, predicate: Predicate, keys: Optional[FieldSelector] = None) -> List[Contact]:
        """Unified contacts matching predicate, in backend order."""
        return await self._run(self.backend.search, predicate, self._keys(keys))

    async def fetch_by_name(self, name: str, keys: Optional[FieldSelector] = None) -> List[Contact]:
        """
        Unified contacts matching a name.

        Whether this is prefix, substring or exact matching, and whether it
        is case sensitive, is defined by the backend.

        Raises:
            ValueError: If name is empty or only whitespace. No backend
                call is made.
        """
        return await self.fetch(Predicate.matching_name(name), keys)

    async def lookup(self, identifier: str, keys: Optional[FieldSelector] = None) -> Contact:
        """Unified contact with identifier. Raises NotFoundError if absent."""
        return await self._run(self.backend.lookup, identifier, self._keys(keys))

    def _keys(self, keys: Optional[FieldSelector]) -> FieldSelector:
        return keys if keys is not None else self.config.default_keys

    # Mutations

    async def add(self, contact: Contact, container_id: Optional[str] = None) -> None:
        """
        Add contact, optionally to the container with container_id.

        On success contact.identifier holds the backend-assigned identifier.
        """
        request = self._make_save_request()
        request.add(contact, container_id)
        await self._submit(request)

    async def update(self, contact: Contact) -> None:
        request = self._make_save_request()
        request.update(contact)
        await self._submit(request)

    async def delete(self, contact: Contact) -> None:
        request = self._make_save_request()
        request.delete(contact)
        await self._submit(request)

    async def _submit(self, request: SaveRequest) -> None:
        request.mark_submitted()
        try:
            await self._run(self.backend.execute, request)
        except Exception as e:
            request.mark_failed()
            logger.error(f"❌ Save request failed: {request!r}: {e}")
            raise
        request.mark_committed()
        logger.info(f"✅ Committed {request.mutation.kind.value}: {request.mutation.contact.identifier}")
