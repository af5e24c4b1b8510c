# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Configuration models for building engines.

These Pydantic models describe an engine and the plugins installed on it,
so a whole setup can be loaded from JSON, a dict, or the environment.
"""

from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PluginConfigSchema(BaseModel):
    """Single plugin configuration.

    Attributes:
        name: Unique identifier for this plugin instance
        type: Plugin type (e.g., "access_control", "compression")
        config: Type-specific configuration parameters
    """

    name: str
    type: str
    config: dict[str, Any] = Field(default_factory=dict)


class EngineConfig(BaseModel):
    """Engine configuration.

    Attributes:
        namespace: Key prefix isolating this engine's keys
        namespace_separator: Separator between namespace levels and the key
        default_ttl: Lifetime in seconds applied when ``set`` gives none
        encryption_key: Shared secret for the encryption transforms
        auto_cleanup: Run the expired-entry sweep on a timer
        cleanup_interval: Seconds between sweeps
        cross_tab_sync: Re-emit changes other processes make to the substrate
        crypto_engine: "simple" (XOR) or "aes" (AES-GCM)
        watch_interval_ms: Default poll interval for ``watch``
        plugins: Plugins to install, in order
    """

    model_config = ConfigDict(extra="forbid")

    namespace: str = ""
    namespace_separator: str = ":"
    default_ttl: float | None = None
    encryption_key: str | None = None
    auto_cleanup: bool = True
    cleanup_interval: float = 60.0
    cross_tab_sync: bool = True
    crypto_engine: Literal["simple", "aes"] = "simple"
    watch_interval_ms: int = 500
    plugins: list[PluginConfigSchema] = Field(default_factory=list)

    @field_validator("namespace_separator")
    @classmethod
    def _separator_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("namespace_separator must not be empty")
        return value

    @field_validator("cleanup_interval")
    @classmethod
    def _interval_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("cleanup_interval must be positive")
        return value

    @classmethod
    def from_env(cls, prefix: str = "ENVELOPE_KV_", **overrides: Any) -> EngineConfig:
        """Build a config from ``<prefix><FIELD>`` environment variables.

        Only scalar fields are read; *overrides* win over the environment.
        """
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            if name == "plugins":
                continue
            raw = os.getenv(f"{prefix}{name.upper()}")
            if raw is not None:
                values[name] = raw
        values.update(overrides)
        return cls.model_validate(values)
