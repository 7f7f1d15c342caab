"""
Interaction Controller - Viewer speed control during playback.

Pointer activations on the render target, grouped into debounce windows:

    first activation in a window   → speed ×2 (capped), "Faster" indicator
    second activation, same window → instant mode, "Instant" indicator
    further activations            → ignored until the window closes

The debounce timer is owned by the session's LifecycleManager, so it
is cleared on every exit path.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from content_reveal.config import StreamingConfig
from content_reveal.markup.nodes import Element, TextNode, UIEvent
from content_reveal.runtime.clock import Clock
from content_reveal.runtime.lifecycle import LifecycleManager
from content_reveal.runtime.state import PlaybackState

if TYPE_CHECKING:
    from content_reveal.surface.resources import ResourceRegistry

logger = logging.getLogger(__name__)

FASTER = "Faster"
INSTANT = "Instant"

SpeedCallback = Callable[[float, bool], None]


class InteractionController:
    """Maps pointer activations to speed changes for one session."""

    def __init__(
        self,
        state: PlaybackState,
        lifecycle: LifecycleManager,
        clock: Clock,
        config: StreamingConfig | None = None,
        registry: ResourceRegistry | None = None,
        on_speed_change: SpeedCallback | None = None,
    ):
        self.state = state
        self.lifecycle = lifecycle
        self.clock = clock
        self.config = config or StreamingConfig()
        self._registry = registry
        self._on_speed_change = on_speed_change
        self._activations = 0
        self.indicators: list[Element] = []

    @property
    def window_open(self) -> bool:
        return self._activations > 0

    def attach(self) -> None:
        self.lifecycle.attach_listener(self.config.activation_event, self.handle_activation)

    def handle_activation(self, event: UIEvent | None = None) -> None:
        if not self.state.is_running:
            return

        self._activations += 1

        if self._activations == 1:
            self.state.speed_multiplier = min(
                self.state.speed_multiplier * self.config.speed_step,
                self.config.max_speed_multiplier,
            )
            self.lifecycle.set_debounce_timer(
                self.clock.call_later(self.config.debounce_ms, self._close_window)
            )
            self.show_indicator(FASTER)
            self._notify(instant=False)

        elif self._activations == 2:
            self.state.instant_mode = True
            self.show_indicator(INSTANT)
            self._notify(instant=True)

    def _close_window(self) -> None:
        self._activations = 0
        # Already fired; this only drops the lifecycle's reference.
        self.lifecycle.clear_debounce_timer()

    def _notify(self, instant: bool) -> None:
        logger.debug(
            "Speed change: multiplier=%s instant=%s",
            self.state.speed_multiplier, instant,
        )
        if self._on_speed_change is not None:
            self._on_speed_change(self.state.speed_multiplier, instant)

    # -- indicator --------------------------------------------------------

    def show_indicator(self, text: str) -> Element:
        """Append a transient speed indicator to the render target.

        The indicator outlives the session on purpose so the viewer still
        sees it when "Instant" finishes playback at once. Its timers go
        through the resource registry when one is configured.
        """
        indicator = Element("div", {"class": f"{self.config.indicator_class} visible"})
        indicator.append_child(TextNode(text))
        self.lifecycle.target.append_child(indicator)
        self.indicators.append(indicator)

        def fade() -> None:
            indicator.remove_class("visible")
            self._schedule(self.config.indicator_fade_ms, remove)

        def remove() -> None:
            indicator.remove()
            if indicator in self.indicators:
                self.indicators.remove(indicator)

        self._schedule(self.config.indicator_visible_ms, fade)
        return indicator

    def _schedule(self, delay_ms: float, callback: Callable[[], None]) -> None:
        if self._registry is not None:
            self._registry.call_later(delay_ms, callback)
        else:
            self.clock.call_later(delay_ms, callback)
