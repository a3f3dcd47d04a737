"""Tests for store configuration and the store manager."""
from __future__ import annotations

import json

import pytest

from contact_store import ContactKey, ContactStore, REQUIRED_KEYS, SortOrder, StoreConfig
from contact_store.backends import GoogleContactsBackend, MemoryBackend
from contact_store.config import CONFIG_ENV, config_path, load_config, save_config
from contact_store.manager import ContactStoreManager


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "contact_store.json"
    monkeypatch.setenv(CONFIG_ENV, str(path))
    return path


class TestStoreConfig:
    def test_defaults(self):
        config = StoreConfig()
        assert config.backend == "memory"
        assert config.default_keys == REQUIRED_KEYS
        assert config.sort_order is SortOrder.NONE
        assert config.unify is True

    def test_from_dict(self):
        config = StoreConfig.from_dict({
            "backend": "gcontacts",
            "backend_config": {"page_size": 200},
            "default_keys": ["given_name", "email_addresses"],
            "sort_order": "family_name",
            "unify": False,
        })

        assert config.backend == "gcontacts"
        assert config.backend_config == {"page_size": 200}
        assert config.default_keys == frozenset({ContactKey.GIVEN_NAME, ContactKey.EMAIL_ADDRESSES})
        assert config.sort_order is SortOrder.FAMILY_NAME
        assert config.unify is False

    def test_unknown_key_is_rejected(self):
        with pytest.raises(ValueError):
            StoreConfig.from_dict({"default_keys": ["shoe_size"]})


class TestLoadConfig:
    def test_env_override(self, config_file):
        assert config_path() == config_file

    def test_missing_file_uses_defaults(self, config_file):
        assert load_config() == StoreConfig()

    def test_malformed_file_uses_defaults(self, config_file):
        config_file.write_text("{not json")
        assert load_config() == StoreConfig()

    def test_invalid_values_use_defaults(self, config_file):
        config_file.write_text(json.dumps({"sort_order": "sideways"}))
        assert load_config() == StoreConfig()

    def test_save_then_load(self, config_file):
        config = StoreConfig(
            backend="gcontacts",
            default_keys=frozenset({ContactKey.FAMILY_NAME}),
            sort_order=SortOrder.GIVEN_NAME,
        )
        save_config(config)

        assert load_config() == config


class TestManager:
    def test_create_store_uses_configured_backend(self, config_file):
        config_file.write_text(json.dumps({"backend": "google"}))
        manager = ContactStoreManager()

        store = manager.create_store()

        assert isinstance(store, ContactStore)
        assert isinstance(store.backend, GoogleContactsBackend)

    def test_unknown_backend(self, config_file):
        manager = ContactStoreManager()
        with pytest.raises(ValueError, match="Unknown contacts backend"):
            manager.create_store(StoreConfig(backend="carddav"))

    def test_register_backend_type(self, config_file):
        class CardDavBackend(MemoryBackend):
            backend_type = "carddav"

        manager = ContactStoreManager()
        manager.register_backend_type("carddav", CardDavBackend)

        store = manager.create_store(StoreConfig(backend="carddav"))
        assert isinstance(store.backend, CardDavBackend)
        assert "carddav" in manager.list_backends()

    def test_shared_store_is_reused_until_reset(self, config_file):
        manager = ContactStoreManager()

        first = manager.get_store()
        assert manager.get_store() is first

        manager.reset_store()
        assert manager.get_store() is not first

    def test_backend_config_is_passed_through(self, config_file):
        config_file.write_text(json.dumps({
            "backend": "memory",
            "backend_config": {"authorization_status": "limited"},
        }))

        store = ContactStoreManager(config_path=config_file).get_store()

        assert store.authorization_status().value == "limited"
