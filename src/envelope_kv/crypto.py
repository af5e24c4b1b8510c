"""Reversible text transforms used to encrypt envelopes.

Two strengths are available:

* :class:`XorTransform` — fast, deterministic, byte-wise XOR with a shared
  secret followed by base64.  It hides casual plaintext, nothing more.
* :class:`AesGcmTransform` — AES-GCM from ``cryptography`` with a key derived
  from the secret via HKDF.  The engine runs it on a worker thread for its
  awaitable operations.

Neither is a security boundary for the engine; they are pluggable transforms.
"""

from __future__ import annotations

import base64
import binascii
import os
from typing import Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from envelope_kv.exceptions import TransformError

HKDF_SALT = b"envelope_kv"
_NONCE_SIZE = 12

CRYPTO_ENGINES = ("simple", "aes")


class Transform(Protocol):
    """A reversible text-to-text transform.

    ``tag`` is written after the ``ENC:`` marker so that a reader can tell
    which transform produced a payload without knowing the writer's options.
    """

    tag: str

    def encrypt(self, text: str) -> str: ...

    def decrypt(self, text: str) -> str: ...


class XorTransform:
    """Byte-wise XOR against the repeated secret, base64 encoded."""

    tag = ""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise TransformError("XOR transform requires a non-empty secret")
        self._key = secret.encode("utf-8")

    def _xor(self, data: bytes) -> bytes:
        key = self._key
        return bytes(b ^ key[i % len(key)] for i, b in enumerate(data))

    def encrypt(self, text: str) -> str:
        return base64.b64encode(self._xor(text.encode("utf-8"))).decode("ascii")

    def decrypt(self, text: str) -> str:
        try:
            raw = base64.b64decode(text.encode("ascii"), validate=True)
            return self._xor(raw).decode("utf-8")
        except (binascii.Error, UnicodeError, ValueError) as exc:
            raise TransformError(f"XOR payload is corrupt: {exc}") from exc


class AesGcmTransform:
    """AES-256-GCM with a random nonce; output is ``b64(nonce || ciphertext)``."""

    tag = "AES:"

    def __init__(self, secret: str) -> None:
        if not secret:
            raise TransformError("AES transform requires a non-empty secret")
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=HKDF_SALT,
            info=b"envelope",
        )
        self._aead = AESGCM(hkdf.derive(secret.encode("utf-8")))

    def encrypt(self, text: str) -> str:
        try:
            nonce = os.urandom(_NONCE_SIZE)
            ciphertext = self._aead.encrypt(nonce, text.encode("utf-8"), None)
        except Exception as exc:
            raise TransformError(f"AES encryption failed: {exc}") from exc
        return base64.b64encode(nonce + ciphertext).decode("ascii")

    def decrypt(self, text: str) -> str:
        try:
            raw = base64.b64decode(text.encode("ascii"), validate=True)
            nonce, ciphertext = raw[:_NONCE_SIZE], raw[_NONCE_SIZE:]
            return self._aead.decrypt(nonce, ciphertext, None).decode("utf-8")
        except (binascii.Error, InvalidTag, UnicodeError, ValueError) as exc:
            raise TransformError(f"AES payload could not be decrypted: {exc}") from exc


def build_transforms(secret: str | None, engine: str) -> tuple[Transform | None, Transform | None]:
    """Return ``(preferred, fallback)`` transforms for *secret* and *engine*.

    The fallback is always the XOR transform; the preferred transform is AES
    when *engine* is ``"aes"``.  Both are ``None`` without a secret.
    """
    if not secret:
        return None, None
    fast = XorTransform(secret)
    if engine == "aes":
        return AesGcmTransform(secret), fast
    return fast, fast
