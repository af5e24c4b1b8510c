"""envelope_kv — namespaced, expiring, observable key-value envelopes.

Every value is wrapped in a ``{data, meta}`` envelope and written to an
injected substrate.  Plugins chain in registration order around every
read, write and delete, transforming the context as they go.
"""

from envelope_kv.codec import Envelope, EnvelopeCodec
from envelope_kv.config import EngineConfig, PluginConfigSchema
from envelope_kv.context import HookContext, HookName
from envelope_kv.engine import StorageEngine
from envelope_kv.events import ErrorInfo
from envelope_kv.exceptions import (
    AccessDeniedError,
    ConfigError,
    DecodeError,
    EnvelopeError,
    PluginError,
    QuotaExceededError,
    SubstrateError,
    TransformError,
    ValidationError,
)
from envelope_kv.factory import PluginFactory, PluginFactoryError, build_engine
from envelope_kv.result import StorageStats, TransactionResult

__all__ = [
    "AccessDeniedError",
    "ConfigError",
    "DecodeError",
    "EngineConfig",
    "Envelope",
    "EnvelopeCodec",
    "EnvelopeError",
    "ErrorInfo",
    "HookContext",
    "HookName",
    "PluginConfigSchema",
    "PluginError",
    "PluginFactory",
    "PluginFactoryError",
    "QuotaExceededError",
    "StorageEngine",
    "StorageStats",
    "SubstrateError",
    "TransactionResult",
    "TransformError",
    "ValidationError",
    "build_engine",
]
