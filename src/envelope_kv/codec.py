"""Envelope codec — turns ``{data, meta}`` envelopes into substrate text and back.

Values are written as JSON.  Python types JSON cannot represent natively are
wrapped in tagged objects ``{"__type": <name>, "value": ...}`` so that
decoding restores them without an external schema:

=========  ==========================================  ====================
Tag        Python type                                 ``value``
=========  ==========================================  ====================
Date       ``datetime`` / ``date``                     ISO-8601 string
Set        ``set`` / ``frozenset``                     list of members
Map        ``dict`` with non-string keys or ``__type``  list of ``[k, v]``
RegExp     ``re.Pattern``                              ``{pattern, flags}``
Tuple      ``tuple``                                   list of items
=========  ==========================================  ====================

Encrypted payloads are prefixed with ``ENC:`` followed by the transform tag.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from envelope_kv.crypto import AesGcmTransform, Transform, XorTransform, build_transforms
from envelope_kv.exceptions import DecodeError, TransformError
from envelope_kv.logging_config import get_logger

log = get_logger(__name__)

ENCRYPTION_MARKER = "ENC:"
_TYPE_KEY = "__type"

Serializer = Callable[[dict[str, Any]], str]
Deserializer = Callable[[str], dict[str, Any]]


@dataclass
class Envelope:
    """The unit written per logical key.

    Attributes:
        data: The caller's value.
        meta: ``created`` / ``expires`` (epoch ms or ``None``), ``ttl``
              (seconds or ``None``), ``encryption`` (bool) plus any flags
              plugins add.  Empty for payloads that could not be decoded.
    """

    data: Any
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data, "meta": dict(self.meta)}


# ── tagged value conversion ─────────────────────────────────


def to_tagged(value: Any) -> Any:
    """Convert *value* into a JSON-compatible structure with type tags."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, datetime):
        return {_TYPE_KEY: "Date", "value": value.isoformat()}
    if isinstance(value, date):
        return {_TYPE_KEY: "Date", "value": value.isoformat()}
    if isinstance(value, (set, frozenset)):
        return {_TYPE_KEY: "Set", "value": [to_tagged(v) for v in value]}
    if isinstance(value, re.Pattern):
        return {_TYPE_KEY: "RegExp", "value": {"pattern": value.pattern, "flags": int(value.flags)}}
    if isinstance(value, tuple):
        return {_TYPE_KEY: "Tuple", "value": [to_tagged(v) for v in value]}
    if isinstance(value, list):
        return [to_tagged(v) for v in value]
    if isinstance(value, dict):
        if all(isinstance(k, str) for k in value) and _TYPE_KEY not in value:
            return {k: to_tagged(v) for k, v in value.items()}
        return {_TYPE_KEY: "Map", "value": [[to_tagged(k), to_tagged(v)] for k, v in value.items()]}
    raise TypeError(f"Value of type {type(value).__name__} is not serializable")


def _hashable(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_hashable(v) for v in value)
    if isinstance(value, set):
        return frozenset(value)
    return value


def from_tagged(value: Any) -> Any:
    """Reverse :func:`to_tagged`."""
    if isinstance(value, list):
        return [from_tagged(v) for v in value]
    if not isinstance(value, dict):
        return value
    tag = value.get(_TYPE_KEY)
    if tag is None or "value" not in value:
        return {k: from_tagged(v) for k, v in value.items()}
    inner = value["value"]
    if tag == "Date":
        if "T" in inner:
            return datetime.fromisoformat(inner)
        return date.fromisoformat(inner)
    if tag == "Set":
        return {_hashable(from_tagged(v)) for v in inner}
    if tag == "Map":
        return {_hashable(from_tagged(k)): from_tagged(v) for k, v in inner}
    if tag == "RegExp":
        return re.compile(inner["pattern"], inner["flags"])
    if tag == "Tuple":
        return tuple(from_tagged(v) for v in inner)
    return {k: from_tagged(v) for k, v in value.items()}


def default_serializer(item: dict[str, Any]) -> str:
    return json.dumps(to_tagged(item), ensure_ascii=False, separators=(",", ":"))


def default_deserializer(text: str) -> dict[str, Any]:
    parsed = from_tagged(json.loads(text))
    if not isinstance(parsed, dict) or "data" not in parsed:
        raise DecodeError("Payload is not an envelope")
    return parsed


# ── codec ───────────────────────────────────────────────────


class EnvelopeCodec:
    """Serializes envelopes and applies the optional encryption transform.

    Parameters:
        secret:        Shared secret for the transforms.  ``None`` disables
                       encryption; requesting it then fails loudly.
        crypto_engine: ``"simple"`` (XOR) or ``"aes"`` (AES-GCM).
        serializer:    Replaces the tagged-JSON writer.
        deserializer:  Replaces the tagged-JSON reader.
    """

    def __init__(
        self,
        *,
        secret: str | None = None,
        crypto_engine: str = "simple",
        serializer: Serializer | None = None,
        deserializer: Deserializer | None = None,
    ) -> None:
        self._secret = secret
        self._crypto_engine = crypto_engine
        self._serializer = serializer or default_serializer
        self._deserializer = deserializer or default_deserializer
        self._preferred, self._fallback = build_transforms(secret, crypto_engine)

    @property
    def secret(self) -> str | None:
        return self._secret

    @property
    def crypto_engine(self) -> str:
        return self._crypto_engine

    def configure(self, *, secret: str | None = None, crypto_engine: str | None = None) -> None:
        if secret is not None:
            self._secret = secret
        if crypto_engine is not None:
            self._crypto_engine = crypto_engine
        self._preferred, self._fallback = build_transforms(self._secret, self._crypto_engine)

    @staticmethod
    def is_encrypted(text: str) -> bool:
        return text.startswith(ENCRYPTION_MARKER)

    # ── structure ───────────────────────────────────────────

    def serialize(self, envelope: Envelope) -> str:
        return self._serializer(envelope.to_dict())

    def deserialize(self, text: str) -> Envelope:
        try:
            item = self._deserializer(text)
        except DecodeError:
            raise
        except Exception as exc:
            raise DecodeError(f"Malformed envelope: {exc}") from exc
        meta = item.get("meta") or {}
        return Envelope(data=item.get("data"), meta=dict(meta))

    # ── encryption ──────────────────────────────────────────

    def _require_transforms(self) -> tuple[Transform, Transform]:
        if self._preferred is None or self._fallback is None:
            raise TransformError("Encryption requested but no encryption key is configured")
        return self._preferred, self._fallback

    def _seal(self, text: str) -> str:
        preferred, fallback = self._require_transforms()
        try:
            return ENCRYPTION_MARKER + preferred.tag + preferred.encrypt(text)
        except TransformError as exc:
            if preferred is fallback:
                raise
            log.warning("strong_transform_unavailable", error=str(exc), fallback="simple")
            return ENCRYPTION_MARKER + fallback.tag + fallback.encrypt(text)

    def _transform_for(self, payload: str) -> tuple[Transform, str]:
        if not self._secret:
            raise DecodeError("Encrypted payload found but no encryption key is configured")
        if payload.startswith(AesGcmTransform.tag):
            aes = self._preferred if isinstance(self._preferred, AesGcmTransform) else None
            return aes or AesGcmTransform(self._secret), payload[len(AesGcmTransform.tag) :]
        fast = self._fallback if isinstance(self._fallback, XorTransform) else None
        return fast or XorTransform(self._secret), payload

    def unseal(self, text: str) -> str:
        """Strip the marker and reverse the transform; plain text passes through."""
        if not self.is_encrypted(text):
            return text
        transform, body = self._transform_for(text[len(ENCRYPTION_MARKER) :])
        try:
            return transform.decrypt(body)
        except TransformError as exc:
            raise DecodeError(str(exc)) from exc

    # ── full pipeline ───────────────────────────────────────

    def encode(self, envelope: Envelope, encrypt: bool = False) -> str:
        text = self.serialize(envelope)
        return self._seal(text) if encrypt else text

    def decode(self, text: str) -> Envelope:
        return self.deserialize(self.unseal(text))

    async def encode_async(self, envelope: Envelope, encrypt: bool = False) -> str:
        return await asyncio.to_thread(self.encode, envelope, encrypt)

    async def decode_async(self, text: str) -> Envelope:
        return await asyncio.to_thread(self.decode, text)
