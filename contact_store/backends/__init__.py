"""
Address Book Backends

Available AddressBookBackend implementations.
"""

from .memory import MemoryBackend
from .gcontacts import GoogleContactsBackend

# Registry of available backends
BACKENDS = {
    "memory": MemoryBackend,
    "gcontacts": GoogleContactsBackend,
    "google": GoogleContactsBackend,  # Alias
}

__all__ = ["BACKENDS", "MemoryBackend", "GoogleContactsBackend"]
