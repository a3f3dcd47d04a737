"""
Contact Store Manager

Builds ContactStore instances from configuration and keeps one shared
store per process.

Usage:
    from contact_store.manager import store_manager

    store = store_manager.get_store()
    contacts = await store.fetch_all()
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Type

from .backends import BACKENDS
from .config import StoreConfig, load_config
from .interface import AddressBookBackend
from .save_request import SaveRequestFactory
from .store import ContactStore

logger = logging.getLogger(__name__)


class ContactStoreManager:
    """Backend registry and shared ContactStore."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path
        self.backend_classes: Dict[str, Type[AddressBookBackend]] = dict(BACKENDS)
        self._store: Optional[ContactStore] = None

    def register_backend_type(self, backend_type: str, backend_class: Type[AddressBookBackend]) -> None:
        """Register a backend implementation."""
        self.backend_classes[backend_type] = backend_class
        logger.info(f"✅ Registered contacts backend: {backend_type}")

    def list_backends(self) -> List[str]:
        return sorted(self.backend_classes)

    def create_store(
        self,
        config: Optional[StoreConfig] = None,
        save_request_factory: Optional[SaveRequestFactory] = None
    ) -> ContactStore:
        """
        Build a new ContactStore.

        Args:
            config: Store config (default: loaded from config file)
            save_request_factory: Passed through to ContactStore

        Raises:
            ValueError: If the configured backend is not registered
        """
        config = config or load_config(self.config_path)

        if config.backend not in self.backend_classes:
            available = ", ".join(self.list_backends()) or "none"
            raise ValueError(f"Unknown contacts backend '{config.backend}'. Available: {available}")

        backend = self.backend_classes[config.backend](config.backend_config)
        logger.info(f"✅ Created contact store ({config.backend})")
        return ContactStore(backend, save_request_factory=save_request_factory, config=config)

    def get_store(self) -> ContactStore:
        """Get the shared store, creating it on first use."""
        if self._store is None:
            self._store = self.create_store()
        return self._store

    def reset_store(self) -> None:
        """Drop the shared store. The next get_store() builds a new one."""
        self._store = None


# Singleton instance
store_manager = ContactStoreManager()
