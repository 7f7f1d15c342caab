"""
Streaming configuration for content-reveal.

Defines the timing, speed-control and marker settings shared by the
scheduler, the interaction controller and the message surface.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any


@dataclass
class StreamingConfig:
    """Configuration for structured content streaming.

    Args:
        base_delay_ms: Base inter-event delay. Every delay rule is a
            multiple of this value.
        jitter_ms: Maximum +/- variation applied to ordinary text runs.
        min_delay_ms: Floor for jittered text-run delays.
        max_speed_multiplier: Cap for the speed-up multiplier.
        speed_step: Factor applied to the multiplier per single activation.
        debounce_ms: Window in which a second activation means "instant".
        indicator_visible_ms: How long the speed indicator stays visible.
        indicator_fade_ms: Fade-out time before the indicator is removed.
        seed: Seed for jitter; None draws fresh entropy.

    Example:
        config = StreamingConfig(base_delay_ms=30, seed=7)
    """

    base_delay_ms: float = 50.0
    jitter_ms: float = 10.0
    min_delay_ms: float = 10.0

    max_speed_multiplier: float = 8.0
    speed_step: float = 2.0
    debounce_ms: float = 300.0

    indicator_visible_ms: float = 1500.0
    indicator_fade_ms: float = 300.0

    cursor_glyph: str = "▊"
    cursor_class: str = "streaming-cursor"
    active_class: str = "streaming"
    indicator_class: str = "streaming-speed-indicator"
    activation_event: str = "click"

    seed: int | None = None

    max_active_sessions: int = 16
    """Active session count above which health reports DEGRADED."""

    health_check_interval_ms: float = 30000.0
    """Period of the resource registry's validation pass."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.base_delay_ms <= 0:
            raise ValueError("base_delay_ms must be > 0")
        if self.jitter_ms < 0:
            raise ValueError("jitter_ms must be >= 0")
        if self.min_delay_ms < 0:
            raise ValueError("min_delay_ms must be >= 0")
        if self.max_speed_multiplier < 1:
            raise ValueError("max_speed_multiplier must be >= 1")
        if self.speed_step <= 1:
            raise ValueError("speed_step must be > 1")
        if self.debounce_ms <= 0:
            raise ValueError("debounce_ms must be > 0")
        if self.indicator_visible_ms < 0 or self.indicator_fade_ms < 0:
            raise ValueError("indicator timings must be >= 0")
        if self.max_active_sessions < 1:
            raise ValueError("max_active_sessions must be >= 1")
        if self.health_check_interval_ms <= 0:
            raise ValueError("health_check_interval_ms must be > 0")

    @classmethod
    def from_env(
        cls,
        prefix: str = "CONTENT_REVEAL_",
        environ: dict[str, str] | None = None,
        **overrides: Any,
    ) -> StreamingConfig:
        """Build a config from environment variables.

        ``CONTENT_REVEAL_BASE_DELAY_MS=30`` sets ``base_delay_ms``.
        Explicit keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(prefix + f.name.upper())
            if raw is None:
                continue
            values[f.name] = _coerce(f.name, f.default, raw)
        values.update(overrides)
        return cls(**values)


def _coerce(name: str, default: Any, raw: str) -> Any:
    if name == "seed":
        return int(raw) if raw.strip() else None
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw
