"""
Delay model - Inter-event pacing for playback.

Rules (first match wins, ``base`` = config.base_delay_ms):
    1. priority HIGH                       → 2.0 × base
    2. whitespace run                      → 0.3 × base
    3. code block or table                 → 3.0 × base
    4. inline formatting or inline code    → 0.5 × base
    5. element start / end                 → 0.2 × base
    6. otherwise                           → base ± jitter, floored at min_delay_ms

Speed changes divide the computed delay; they never reorder events.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from content_reveal.config import StreamingConfig
from content_reveal.runtime.events import Priority, StructuralEvent


HIGH_PRIORITY_FACTOR = 2.0
WHITESPACE_FACTOR = 0.3
COMPLEX_BLOCK_FACTOR = 3.0
INLINE_FACTOR = 0.5
STRUCTURE_FACTOR = 0.2


class DelayModel:
    """Computes per-event delays.

    Jitter is drawn from a numpy Generator so runs can be made
    reproducible with ``StreamingConfig(seed=...)``.

    Example:
        model = DelayModel(StreamingConfig(seed=1))
        model.delay_for(event)              # e.g. 47.3
        model.delay_for(event, speed=4.0)   # about a quarter of that
    """

    def __init__(
        self,
        config: StreamingConfig | None = None,
        rng: np.random.Generator | None = None,
    ):
        self.config = config or StreamingConfig()
        self._rng = rng if rng is not None else np.random.default_rng(self.config.seed)

    def base_delay(self, event: StructuralEvent, jitter: bool = True) -> float:
        """Delay before the event following ``event``, at speed 1."""
        base = self.config.base_delay_ms

        if event.priority == Priority.HIGH:
            return base * HIGH_PRIORITY_FACTOR
        if event.is_whitespace:
            return base * WHITESPACE_FACTOR
        if event.is_code_block or event.is_table:
            return base * COMPLEX_BLOCK_FACTOR
        if event.is_inline_formatting or event.is_inline_code:
            return base * INLINE_FACTOR
        if event.is_structural:
            return base * STRUCTURE_FACTOR

        variation = 0.0
        if jitter and self.config.jitter_ms > 0:
            variation = float(self._rng.uniform(-self.config.jitter_ms, self.config.jitter_ms))
        return max(base + variation, self.config.min_delay_ms)

    def delay_for(self, event: StructuralEvent, speed: float = 1.0) -> float:
        """Delay scaled by the current speed multiplier."""
        if speed <= 0:
            raise ValueError("speed must be > 0")
        return self.base_delay(event) / speed

    def estimate(self, events: Sequence[StructuralEvent], speed: float = 1.0) -> float:
        """Nominal playback duration in ms (jitter taken as zero)."""
        if speed <= 0:
            raise ValueError("speed must be > 0")
        return sum(self.base_delay(event, jitter=False) for event in events) / speed
