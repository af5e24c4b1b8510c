"""Built-in plugin implementations."""

from envelope_kv.plugins.access_control import AccessControlPlugin
from envelope_kv.plugins.base import Plugin
from envelope_kv.plugins.compression import CompressionPlugin
from envelope_kv.plugins.custom import CustomPlugin

__all__ = [
    "AccessControlPlugin",
    "CompressionPlugin",
    "CustomPlugin",
    "Plugin",
]
