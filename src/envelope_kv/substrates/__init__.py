"""Storage substrates the engine can wrap."""

from envelope_kv.substrates.base import StorageChange, Substrate
from envelope_kv.substrates.memory import InMemorySubstrate, SharedMemoryBackend

__all__ = ["InMemorySubstrate", "SharedMemoryBackend", "StorageChange", "Substrate"]
