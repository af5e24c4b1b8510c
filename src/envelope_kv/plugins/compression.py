"""CompressionPlugin — shrinks large string values before they are stored."""

from __future__ import annotations

import base64
import zlib
from typing import Any, Literal

from envelope_kv.context import HookContext
from envelope_kv.plugins.base import HookResult, Plugin

Algorithm = Literal["zlib", "base64", "none"]


def compress_text(text: str, algorithm: str) -> str:
    data = text.encode("utf-8")
    if algorithm == "zlib":
        return base64.b64encode(zlib.compress(data)).decode("ascii")
    if algorithm == "base64":
        return base64.b64encode(data).decode("ascii")
    return text


def decompress_text(text: str, algorithm: str) -> str:
    if algorithm == "zlib":
        return zlib.decompress(base64.b64decode(text)).decode("utf-8")
    if algorithm == "base64":
        return base64.b64decode(text).decode("utf-8")
    return text


class CompressionPlugin(Plugin):
    """Compresses string values of at least ``min_size`` characters.

    ``before_set`` replaces the value with its compressed text and records the
    algorithm in the envelope's ``meta["compressed"]``; ``after_get`` reverses
    it.  The flag travels with the envelope, so an engine reading data written
    with a different algorithm still decodes it correctly.

    Parameters:
        name:      Unique plugin name.
        algorithm: ``"zlib"`` (deflate + base64), ``"base64"`` or ``"none"``.
        min_size:  Minimum string length worth compressing.
    """

    _plugin_type = "compression"
    _plugin_description = "Compresses large string values"

    def __init__(
        self,
        *,
        name: str = "compression",
        algorithm: Algorithm = "zlib",
        min_size: int = 100,
    ) -> None:
        self._name = name
        self.algorithm = algorithm
        self.min_size = min_size

    @property
    def name(self) -> str:
        return self._name

    def export(self) -> dict[str, Any]:
        data = super().export()
        data["config"] = {"algorithm": self.algorithm, "min_size": self.min_size}
        return data

    def should_compress(self, value: Any) -> bool:
        if self.algorithm == "none" or not isinstance(value, str):
            return False
        return len(value) >= self.min_size

    def before_set(self, context: HookContext) -> HookResult:
        if not self.should_compress(context.value):
            return None
        return {
            "value": compress_text(context.value, self.algorithm),
            "meta": {**context.meta, "compressed": self.algorithm},
        }

    def after_get(self, context: HookContext) -> HookResult:
        algorithm = context.meta.get("compressed")
        if not algorithm or not isinstance(context.value, str):
            return None
        return {"value": decompress_text(context.value, algorithm)}

    def compress_all(self) -> int:
        """Rewrite every eligible value in the engine's namespace.

        Remaining lifetimes are kept.  Returns the number of rewritten keys.
        """
        if self.engine is None:
            return 0
        count = 0
        for key in self.engine.keys():
            value = self.engine.get(key)
            if not self.should_compress(value):
                continue
            remaining = self.engine.get_remaining_ttl(key)
            ttl = None if remaining == float("inf") else remaining / 1000
            if self.engine.set(key, value, ttl=ttl, silent=True):
                count += 1
        return count
