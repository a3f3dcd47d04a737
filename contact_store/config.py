"""
Contact Store Configuration

Loaded from /data/config/contact_store.json, or from the file named by the
CONTACT_STORE_CONFIG environment variable:

    {
        "backend": "gcontacts",
        "backend_config": {
            "token_path": "/data/config/gcontacts_token.json",
            "credentials_path": "/data/config/gdrive_credentials.json"
        },
        "default_keys": ["given_name", "family_name", "email_addresses"],
        "sort_order": "family_name",
        "unify": true
    }

Every key is optional.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .interface import REQUIRED_KEYS, FieldSelector, SortOrder, field_selector

logger = logging.getLogger(__name__)

CONFIG_DIR = Path("/data/config")
CONFIG_FILE = CONFIG_DIR / "contact_store.json"
CONFIG_ENV = "CONTACT_STORE_CONFIG"


@dataclass
class StoreConfig:
    """Backend choice and read defaults for a ContactStore."""
    backend: str = "memory"
    backend_config: Dict[str, Any] = field(default_factory=dict)
    default_keys: FieldSelector = REQUIRED_KEYS
    sort_order: SortOrder = SortOrder.NONE
    unify: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreConfig":
        """Build a config. Raises ValueError on unknown keys or sort orders."""
        keys = data.get("default_keys")
        return cls(
            backend=data.get("backend", "memory"),
            backend_config=dict(data.get("backend_config", {})),
            default_keys=field_selector(keys) if keys else REQUIRED_KEYS,
            sort_order=SortOrder(data.get("sort_order", SortOrder.NONE.value)),
            unify=bool(data.get("unify", True))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "backend_config": self.backend_config,
            "default_keys": sorted(k.value for k in self.default_keys),
            "sort_order": self.sort_order.value,
            "unify": self.unify
        }


def config_path() -> Path:
    """Path of the config file, honoring CONTACT_STORE_CONFIG."""
    override = os.getenv(CONFIG_ENV)
    return Path(override) if override else CONFIG_FILE


def load_config(path: Optional[Path] = None) -> StoreConfig:
    """Load config from file. Falls back to defaults if missing or invalid."""
    path = path or config_path()

    if not path.exists():
        logger.info("No contact store config found, using defaults")
        return StoreConfig()

    try:
        config = StoreConfig.from_dict(json.loads(path.read_text()))
        logger.info(f"✅ Loaded contact store config from {path} (backend: {config.backend})")
        return config
    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.error(f"❌ Failed to load contact store config {path}: {e}")
        return StoreConfig()


def save_config(config: StoreConfig, path: Optional[Path] = None) -> None:
    """Write config to file."""
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.to_dict(), indent=2))
