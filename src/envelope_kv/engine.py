"""StorageEngine — the central orchestrator."""

from __future__ import annotations

import asyncio
import json
import threading
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter
from pydantic import ValidationError as DocumentError

from envelope_kv._internal.clock import Clock, SystemClock
from envelope_kv._internal.scheduler import ScheduledTask, Scheduler, ThreadScheduler
from envelope_kv.codec import (
    Deserializer,
    Envelope,
    EnvelopeCodec,
    Serializer,
    from_tagged,
    to_tagged,
)
from envelope_kv.context import HookContext, HookName
from envelope_kv.crypto import CRYPTO_ENGINES
from envelope_kv.events import EventBus, Listener, WatchCallback
from envelope_kv.exceptions import ConfigError, DecodeError, ValidationError
from envelope_kv.hooks import HookPipeline, PluginSpec, normalize_plugin
from envelope_kv.logging_config import get_logger
from envelope_kv.namespace import DEFAULT_SEPARATOR, KeyNamespacer
from envelope_kv.result import StorageStats, TransactionResult
from envelope_kv.substrates.memory import InMemorySubstrate
from envelope_kv.ttl import TTLManager

if TYPE_CHECKING:
    from envelope_kv.substrates.base import StorageChange, Substrate

log = get_logger(__name__)

RESERVED_PREFIX = "__envelope_kv_"
_SUPPORT_PROBE_KEY = f"{RESERVED_PREFIX}test__"

_MISSING: Any = object()
UNSET: Any = object()

Validator = Callable[[Any, str], bool]

_EXPORT_DOCUMENT = TypeAdapter(dict[str, Any])


def _transaction_parts(operations: Any) -> tuple[Mapping[str, Any], list[str]] | None:
    """Split ``{"set": {...}, "remove": [...]}``, or ``None`` if malformed."""
    if not isinstance(operations, Mapping):
        return None
    sets = operations.get("set") or {}
    removes = operations.get("remove") or []
    if not isinstance(sets, Mapping) or not all(isinstance(k, str) for k in sets):
        return None
    if isinstance(removes, (str, Mapping)) or not isinstance(removes, Iterable):
        return None
    removes = list(removes)
    if not all(isinstance(k, str) for k in removes):
        return None
    return sets, removes


class StorageEngine:
    """Namespaced, expiring, observable key-value store over a substrate.

    Every public operation resolves the physical key, passes a
    :class:`HookContext` through the plugin pipeline, encodes or decodes the
    envelope, touches the substrate, and emits events.  Failures inside an
    operation are reported through the ``error`` event and turned into a
    ``False`` / default return; the one exception is a plugin hook raising,
    which is reported *and* re-raised to the caller.

    Parameters:
        substrate:          Storage to wrap.  Defaults to a private
                            :class:`InMemorySubstrate`.
        namespace:          Key prefix isolating this engine.
        separator:          Separator between namespace levels and keys.
        default_ttl:        Lifetime in seconds for writes that give none.
        encryption_key:     Shared secret; when set, writes are encrypted
                            unless ``encrypt=False`` is passed.
        auto_cleanup:       Sweep expired entries now and on a timer.
        cleanup_interval:   Seconds between sweeps.
        cross_tab_sync:     Re-emit changes other processes make.
        crypto_engine:      ``"simple"`` or ``"aes"``.
        serializer:         Replaces the tagged-JSON envelope writer.
        deserializer:       Replaces the tagged-JSON envelope reader.
        validator:          ``(value, key) -> bool`` gate for writes.
        watch_interval_ms:  Default poll interval for :meth:`watch`.
        clock:              Injectable clock for testing.
        scheduler:          Injectable scheduler for testing.
    """

    def __init__(
        self,
        substrate: Substrate | None = None,
        namespace: str = "",
        *,
        separator: str = DEFAULT_SEPARATOR,
        default_ttl: float | None = None,
        encryption_key: str | None = None,
        auto_cleanup: bool = True,
        cleanup_interval: float = 60.0,
        cross_tab_sync: bool = True,
        crypto_engine: str = "simple",
        serializer: Serializer | None = None,
        deserializer: Deserializer | None = None,
        validator: Validator | None = None,
        watch_interval_ms: int = 500,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        if not separator:
            raise ConfigError("separator", "must not be empty")
        if cleanup_interval <= 0:
            raise ConfigError("cleanup_interval", "must be positive")
        self._substrate: Substrate = substrate if substrate is not None else InMemorySubstrate()
        self._namespacer = KeyNamespacer(namespace=namespace, separator=separator)
        self._clock = clock or SystemClock()
        self._scheduler = scheduler or ThreadScheduler()
        self._ttl = TTLManager(self._clock)
        self._codec = EnvelopeCodec(
            secret=encryption_key,
            crypto_engine=crypto_engine if crypto_engine in CRYPTO_ENGINES else "simple",
            serializer=serializer,
            deserializer=deserializer,
        )
        self._events = EventBus(namespace=namespace, clock=self._clock)
        self._pipeline = HookPipeline()
        self._plugins: list[PluginSpec] = []
        self._lock = threading.RLock()

        self.default_ttl = default_ttl
        self.validator = validator
        self.auto_cleanup = auto_cleanup
        self.cleanup_interval = cleanup_interval
        self.cross_tab_sync = cross_tab_sync
        self.watch_interval_ms = watch_interval_ms

        self._cleanup_task: ScheduledTask | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self.storage_available = False
        self._init()

    # ── lifecycle ────────────────────────────────────────────

    def _init(self) -> None:
        self.storage_available = self._check_substrate()
        if self.auto_cleanup:
            self.cleanup_expired()
            self._cleanup_task = self._scheduler.every(self.cleanup_interval, self.cleanup_expired)
        if self.storage_available and self.cross_tab_sync:
            self._unsubscribe = self._substrate.subscribe(self._on_substrate_change)

    def _check_substrate(self) -> bool:
        try:
            self._substrate.set_item(_SUPPORT_PROBE_KEY, _SUPPORT_PROBE_KEY)
            self._substrate.remove_item(_SUPPORT_PROBE_KEY)
            return True
        except Exception as exc:
            log.warning("substrate_unavailable", error=str(exc), namespace=self.namespace)
            return False

    def destroy(self) -> None:
        """Stop the sweep and all watchers, unsubscribe, forget listeners and plugins.

        The engine stays usable afterwards; it just holds no live resources.
        """
        with self._lock:
            if self._cleanup_task is not None:
                self._cleanup_task.cancel()
                self._cleanup_task = None
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None
            self._events.reset()
            self._pipeline.clear()
            self._plugins = []

    # ── properties ───────────────────────────────────────────

    @property
    def namespace(self) -> str:
        return self._namespacer.namespace

    @property
    def separator(self) -> str:
        return self._namespacer.separator

    @property
    def substrate(self) -> Substrate:
        return self._substrate

    @property
    def encryption_key(self) -> str | None:
        return self._codec.secret

    @property
    def crypto_engine(self) -> str:
        return self._codec.crypto_engine

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def plugins(self) -> list[str]:
        """Names of registered plugins in registration order."""
        return [p.name for p in self._plugins]

    # ── internal helpers ─────────────────────────────────────

    def _physical(self, key: str) -> str:
        return self._namespacer.to_physical(key)

    def _run_hooks(self, hook: HookName, context: HookContext) -> HookContext:
        try:
            return self._pipeline.run(hook, context)
        except Exception as exc:
            self._events.report(exc, context.operation, context.key)
            raise

    def _decode(self, raw: str) -> Envelope:
        """Decode *raw*, falling back to opaque data with empty metadata."""
        try:
            text = self._codec.unseal(raw)
        except DecodeError as exc:
            log.debug("payload_not_unsealed", error=str(exc), namespace=self.namespace)
            return Envelope(data=raw, meta={})
        try:
            return self._codec.deserialize(text)
        except DecodeError as exc:
            log.debug("payload_not_decoded", error=str(exc), namespace=self.namespace)
            return Envelope(data=text, meta={})

    def _purge(self, key: str) -> None:
        """Remove an expired entry without hooks or events."""
        self._substrate.remove_item(self._physical(key))

    def _notify_change(self, key: str, value: Any, *extra: Any) -> None:
        self._events.emit("change", key, value, *extra)
        self._events.emit(f"change:{key}", value, *extra)
        self._events.notify_watchers(key, value)

    def _notify_remove(self, key: str, old_value: Any) -> None:
        self._events.emit("remove", key, old_value)
        self._events.emit(f"remove:{key}", old_value)
        self._events.notify_watchers(key, None)

    # ── 1. core operations ───────────────────────────────────

    def set(
        self,
        key: str,
        value: Any,
        *,
        ttl: float | None = UNSET,
        encrypt: bool | None = None,
        silent: bool = False,
        **extra: Any,
    ) -> bool:
        """Store *value* under *key*.

        Args:
            ttl:     Lifetime in seconds; ``None`` for never.  Defaults to
                     the engine's ``default_ttl``.
            encrypt: Force encryption on or off.  Defaults to "on when an
                     encryption key is configured".
            silent:  Skip ``change`` events and watcher notification.
            extra:   Plugin options (e.g. ``role``), visible to hooks.

        Returns:
            ``True`` on success, ``False`` on validation or substrate failure.
        """
        if not self.storage_available:
            return False
        with self._lock:
            try:
                if self.validator is not None and not self.validator(value, key):
                    raise ValidationError(key)
            except Exception as exc:
                self._events.report(exc, "set", key)
                return False

            options = {"ttl": ttl, "encrypt": encrypt, "silent": silent, **extra}
            context = self._run_hooks(
                HookName.BEFORE_SET,
                HookContext(operation="set", key=key, value=value, options=options),
            )

            requested_ttl = context.options.get("ttl", UNSET)
            effective_ttl = self.default_ttl if requested_ttl is UNSET else requested_ttl
            requested_encrypt = context.options.get("encrypt")
            should_encrypt = (
                bool(self.encryption_key) if requested_encrypt is None else bool(requested_encrypt)
            )
            now = self._ttl.now()
            envelope = Envelope(
                data=context.value,
                meta={
                    **context.meta,
                    "created": now,
                    "expires": self._ttl.compute_expiry(effective_ttl, now),
                    "ttl": effective_ttl,
                    "encryption": should_encrypt,
                },
            )

            try:
                text = self._codec.encode(envelope, encrypt=should_encrypt)
                self._substrate.set_item(self._physical(key), text)
            except Exception as exc:
                self._events.report(exc, "set", key)
                return False

            if not context.options.get("silent", silent):
                self._notify_change(key, value)

            self._run_hooks(
                HookName.AFTER_SET,
                HookContext(
                    operation="set",
                    key=key,
                    value=context.value,
                    options=context.options,
                    meta=dict(envelope.meta),
                ),
            )
            return True

    def get(
        self,
        key: str,
        default: Any = None,
        *,
        skip_expiration: bool = False,
        **extra: Any,
    ) -> Any:
        """Return the value under *key*, or *default* if absent or expired.

        Expired entries are deleted on read.  ``skip_expiration=True``
        returns the stored value regardless of its expiry.
        """
        if not self.storage_available:
            return default
        with self._lock:
            try:
                raw = self._substrate.get_item(self._physical(key))
            except Exception as exc:
                self._events.report(exc, "get", key)
                return default
            if raw is None:
                return default

            options = {"skip_expiration": skip_expiration, **extra}
            context = self._run_hooks(
                HookName.BEFORE_GET,
                HookContext(operation="get", key=key, raw_value=raw, options=options),
            )
            envelope = self._decode(context.raw_value if context.raw_value is not None else raw)

            if not skip_expiration and not self._ttl.is_live(envelope.meta):
                try:
                    self._purge(key)
                except Exception as exc:
                    self._events.report(exc, "get", key)
                return default

            result = self._run_hooks(
                HookName.AFTER_GET,
                HookContext(
                    operation="get",
                    key=key,
                    value=envelope.data,
                    options=context.options,
                    meta=dict(envelope.meta),
                ),
            )
            return result.value

    def remove(self, key: str, *, silent: bool = False, **extra: Any) -> bool:
        """Delete *key*.  Removing an absent key succeeds without events."""
        if not self.storage_available:
            return False
        with self._lock:
            physical = self._physical(key)
            try:
                raw = self._substrate.get_item(physical)
            except Exception as exc:
                self._events.report(exc, "remove", key)
                return False
            if raw is None:
                return True

            options = {"silent": silent, **extra}
            context = self._run_hooks(
                HookName.BEFORE_REMOVE,
                HookContext(operation="remove", key=key, options=options),
            )
            old_value = None if silent else self._decode(raw).data

            try:
                self._substrate.remove_item(physical)
            except Exception as exc:
                self._events.report(exc, "remove", key)
                return False

            if not silent:
                self._notify_remove(key, old_value)

            self._run_hooks(
                HookName.AFTER_REMOVE,
                HookContext(
                    operation="remove", key=key, value=old_value, options=context.options
                ),
            )
            return True

    def clear(self, *, silent: bool = False) -> bool:
        """Remove every key in this namespace (the whole substrate without one)."""
        if not self.storage_available:
            return False
        with self._lock:
            if self.namespace:
                results = [self.remove(key, silent=True) for key in self.keys()]
                if not all(results):
                    return False
            else:
                try:
                    self._substrate.clear()
                except Exception as exc:
                    self._events.report(exc, "clear")
                    return False
            if not silent:
                self._events.emit("clear")
            return True

    def has(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def keys(self) -> list[str]:
        """Logical keys currently stored under this namespace (expired included)."""
        if not self.storage_available:
            return []
        with self._lock:
            physical_keys = [self._substrate.key(i) for i in range(self._substrate.length)]
        found = []
        for physical in physical_keys:
            if physical is None or physical.startswith(RESERVED_PREFIX):
                continue
            logical = self._namespacer.to_logical(physical)
            if logical is not None:
                found.append(logical)
        return found

    async def set_async(self, key: str, value: Any, **options: Any) -> bool:
        """Awaitable :meth:`set`; encoding (including AES) runs on a worker thread."""
        return await asyncio.to_thread(self.set, key, value, **options)

    async def get_async(self, key: str, default: Any = None, **options: Any) -> Any:
        """Awaitable :meth:`get`; decoding (including AES) runs on a worker thread."""
        return await asyncio.to_thread(self.get, key, default, **options)

    # ── 2. read-modify-write helpers ─────────────────────────

    def patch(self, key: str, updates: Mapping[str, Any], **options: Any) -> bool:
        """Shallow-merge *updates* into the mapping under *key*."""
        current = self.get(key, {})
        if not isinstance(current, dict):
            return False
        return self.set(key, {**current, **updates}, **options)

    def increment(self, key: str, amount: float = 1, **options: Any) -> float | bool:
        """Add *amount* to a numeric value (missing counts as 0).

        Returns the new value, or ``False`` if the stored value is not a number.
        """
        current = self.get(key, 0)
        if isinstance(current, bool) or not isinstance(current, (int, float)):
            return False
        new_value = current + amount
        return new_value if self.set(key, new_value, **options) else False

    def decrement(self, key: str, amount: float = 1, **options: Any) -> float | bool:
        return self.increment(key, -amount, **options)

    def toggle(self, key: str, **options: Any) -> bool | None:
        """Flip a boolean (missing counts as ``False``).

        Returns the new value, or ``None`` if the stored value is not a bool
        or the write failed.
        """
        current = self.get(key, False)
        if not isinstance(current, bool):
            return None
        new_value = not current
        return new_value if self.set(key, new_value, **options) else None

    def push(self, key: str, *items: Any, **options: Any) -> bool:
        current = self.get(key, [])
        if not isinstance(current, list):
            return False
        return self.set(key, [*current, *items], **options)

    def unshift(self, key: str, *items: Any, **options: Any) -> bool:
        current = self.get(key, [])
        if not isinstance(current, list):
            return False
        return self.set(key, [*items, *current], **options)

    def pop(self, key: str, **options: Any) -> Any:
        """Remove and return the last item, or ``None``."""
        current = self.get(key, [])
        if not isinstance(current, list) or not current:
            return None
        remaining = list(current)
        item = remaining.pop()
        return item if self.set(key, remaining, **options) else None

    def shift(self, key: str, **options: Any) -> Any:
        """Remove and return the first item, or ``None``."""
        current = self.get(key, [])
        if not isinstance(current, list) or not current:
            return None
        remaining = list(current)
        item = remaining.pop(0)
        return item if self.set(key, remaining, **options) else None

    # ── 3. TTL management ────────────────────────────────────

    def set_ttl(self, key: str, ttl: float | None, **options: Any) -> bool:
        """Rewrite *key* with a new lifetime (full read-modify-write)."""
        value = self.get(key, _MISSING, skip_expiration=True)
        if value is _MISSING:
            return False
        return self.set(key, value, **{**options, "ttl": ttl})

    def get_remaining_ttl(self, key: str) -> float:
        """Milliseconds left; ``math.inf`` when it never expires, 0 when absent."""
        if not self.storage_available:
            return 0
        try:
            raw = self._substrate.get_item(self._physical(key))
        except Exception as exc:
            self._events.report(exc, "get_remaining_ttl", key)
            return 0
        if raw is None:
            return 0
        try:
            envelope = self._codec.decode(raw)
        except DecodeError:
            return 0
        return self._ttl.remaining(envelope.meta)

    def get_expiration_date(self, key: str) -> datetime | None:
        """When *key* expires; ``None`` if absent, expired, or never expiring."""
        remaining = self.get_remaining_ttl(key)
        if remaining <= 0 or remaining == float("inf"):
            return None
        return self._clock.now() + timedelta(milliseconds=remaining)

    def cleanup_expired(self) -> int:
        """Remove every expired entry and emit one ``cleanup`` event with the count."""
        if not self.storage_available:
            return 0
        count = 0
        with self._lock:
            try:
                now = self._ttl.now()
                for key in self.keys():
                    raw = self._substrate.get_item(self._physical(key))
                    if raw is None:
                        continue
                    if not self._ttl.is_live(self._decode(raw).meta, now):
                        self._purge(key)
                        count += 1
            except Exception as exc:
                self._events.report(exc, "cleanup")
        if count > 0:
            log.info("expired_entries_removed", count=count, namespace=self.namespace)
            self._events.emit("cleanup", count)
        return count

    # ── 4. batch operations ──────────────────────────────────

    def set_many(self, items: Mapping[str, Any], **options: Any) -> dict[str, bool]:
        return {key: self.set(key, value, **options) for key, value in items.items()}

    def get_many(self, keys: Iterable[str], default: Any = None) -> dict[str, Any]:
        return {key: self.get(key, default) for key in keys}

    def remove_many(self, keys: Iterable[str], **options: Any) -> dict[str, bool]:
        return {key: self.remove(key, **options) for key in keys}

    def transaction(self, operations: Mapping[str, Any]) -> TransactionResult | bool:
        """Apply ``{"set": {...}, "remove": [...]}`` with one aggregate event.

        Individual operations run silently, then a single ``transaction``
        event fires.  There is no rollback: if one write fails, writes
        already applied stay applied and the result reports the failure.
        A plugin veto propagates immediately, leaving earlier operations
        applied.  Malformed *operations* are reported and return ``False``
        before anything is written.
        """
        parts = _transaction_parts(operations)
        if parts is None:
            self._events.report(TypeError("Malformed transaction operations"), "transaction")
            return False
        sets, removes = parts

        with self._lock:
            set_results = self.set_many(sets, silent=True)
            remove_results = self.remove_many(removes, silent=True)
            result = TransactionResult(set=set_results, remove=remove_results)
            self._events.emit("transaction", operations, result)
            return result

    # ── 5. monitoring ────────────────────────────────────────

    def get_size(self, key: str | None = None) -> int:
        """UTF-8 byte size of *key*'s stored text, or of the whole namespace."""
        if not self.storage_available:
            return 0
        targets = [key] if key is not None else self.keys()
        total = 0
        for k in targets:
            raw = self._substrate.get_item(self._physical(k))
            if raw is not None:
                total += len(raw.encode("utf-8"))
        return total

    def get_stats(self) -> StorageStats:
        available = 0
        if self.storage_available:
            try:
                available = self._substrate.probe_capacity()
            except Exception as exc:
                self._events.report(exc, "stats")
        return StorageStats(
            keys=len(self.keys()),
            size=self.get_size(),
            available=available,
            quota=self._substrate.quota,
            namespace=self.namespace,
        )

    # ── 6. backup ────────────────────────────────────────────

    def export(self, *, include_expired: bool = False) -> str:
        """Serialize the logical key space to one JSON document."""
        data = {}
        for key in self.keys():
            value = self.get(key, _MISSING, skip_expiration=include_expired)
            if value is not _MISSING:
                data[key] = value
        return json.dumps(to_tagged(data), ensure_ascii=False)

    def import_(
        self,
        document: str | Mapping[str, Any],
        *,
        merge: bool = False,
        overwrite: bool = False,
    ) -> bool:
        """Load a document produced by :meth:`export`.

        Without ``merge`` the namespace is cleared first (full replace).
        With ``merge``, existing keys are kept unless ``overwrite`` is set.
        """
        try:
            if isinstance(document, str):
                raw = _EXPORT_DOCUMENT.validate_json(document)
            else:
                raw = _EXPORT_DOCUMENT.validate_python(dict(document))
            data = from_tagged(raw)
        except (DocumentError, TypeError, ValueError) as exc:
            self._events.report(exc, "import")
            return False

        with self._lock:
            if not merge:
                self.clear(silent=True)
            for key, value in data.items():
                if not merge or overwrite or not self.has(key):
                    self.set(key, value, silent=True)
            self._events.emit("import", len(data))
        return True

    # ── 7. events ────────────────────────────────────────────

    def on(self, event: str, callback: Listener) -> StorageEngine:
        self._events.on(event, callback)
        return self

    def off(self, event: str, callback: Listener | None = None) -> StorageEngine:
        self._events.off(event, callback)
        return self

    def emit(self, event: str, *args: Any) -> None:
        self._events.emit(event, *args)

    def watch(
        self,
        key: str,
        callback: WatchCallback,
        interval_ms: int | None = None,
    ) -> Callable[[], None]:
        """Call ``callback(new, old)`` whenever *key*'s value changes.

        Returns a cancel function.
        """
        return self._events.watch(
            key,
            callback,
            reader=self.get,
            scheduler=self._scheduler,
            interval_ms=interval_ms or self.watch_interval_ms,
        )

    def _on_substrate_change(self, change: StorageChange) -> None:
        """Re-emit another process's change as local events, bypassing hooks."""
        if change.key is None or change.key.startswith(RESERVED_PREFIX):
            return
        key = self._namespacer.to_logical(change.key)
        if key is None:
            return
        old_value = self._decode(change.old_value).data if change.old_value is not None else None
        if change.new_value is None:
            self._notify_remove(key, old_value)
        elif change.new_value != change.old_value:
            new_value = self._decode(change.new_value).data
            self._notify_change(key, new_value, old_value)

    # ── 8. plugins ───────────────────────────────────────────

    def use(self, plugin: Any) -> StorageEngine:
        """Register a plugin (a ``Plugin``, a mapping, or an initializer callable)."""
        spec = normalize_plugin(plugin)
        with self._lock:
            self._plugins.append(spec)
            self._pipeline.add(spec)
            for event, callback in spec.events.items():
                self._events.on(event, callback)
        if spec.init is not None:
            spec.init(self)
        log.debug("plugin_registered", plugin=spec.name, namespace=self.namespace)
        return self

    # ── 9. security ──────────────────────────────────────────

    def encrypt_with(self, secret: str) -> StorageEngine:
        self._codec.configure(secret=secret)
        return self

    def set_crypto_engine(self, engine: str) -> StorageEngine:
        """Select ``"simple"`` or ``"aes"``; other names are ignored."""
        if engine in CRYPTO_ENGINES:
            self._codec.configure(crypto_engine=engine)
        return self

    # ── 10. namespaces ───────────────────────────────────────

    def child_scope(self, name: str, **overrides: Any) -> StorageEngine:
        """Return a new engine scoped to ``<namespace><separator><name>``.

        The child shares the substrate and copies separator, TTL, encryption
        and timing configuration; listeners, plugins and watchers are not
        shared.
        """
        child = self._namespacer.child(name)
        settings: dict[str, Any] = {
            "separator": self.separator,
            "default_ttl": self.default_ttl,
            "encryption_key": self.encryption_key,
            "crypto_engine": self.crypto_engine,
            "cleanup_interval": self.cleanup_interval,
            "watch_interval_ms": self.watch_interval_ms,
            "clock": self._clock,
            "scheduler": self._scheduler,
            **overrides,
        }
        return StorageEngine(self._substrate, child.namespace, **settings)
