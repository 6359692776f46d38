"""
Generated-Component Runtime

Python model of the lifecycle every generated component implements. The
rendering sandbox drives it for preview, and it is the reference the artifact's
JavaScript mirrors:

    UNLOADED -> HIDDEN (loaded) -> ANIMATING_IN -> VISIBLE -> ANIMATING_OUT -> HIDDEN
    any state -> DISPOSED

At most one transition timer is pending per runtime. Starting any transition
(and load/dispose) cancels the pending timer first; the superseded completion
resolves immediately with `SUPERSEDED` and its side effects never apply.
"""

import asyncio
import os
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from jinja2 import Environment, FileSystemLoader

from studio.core import get_logger

from .codegen import generate_element_styles
from .interpolate import format_value, interpolate
from .naming import tag_name
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle
from .sdk import (
    CANVAS_H,
    CANVAS_W,
    DEFAULT_ANIMATION_SETTINGS,
    FONT_FAMILY,
    AnimationSettings,
    Direction,
    Element,
)

log = get_logger("runtime")

NEUTRAL_TRANSFORM = "translateX(0) translateY(0)"
NO_TRANSITION = "none"

OFFSET_TRANSFORMS = {
    Direction.LEFT: "translateX(-100%)",
    Direction.RIGHT: "translateX(100%)",
    Direction.TOP: "translateY(-100%)",
    Direction.BOTTOM: "translateY(100%)",
}

_env = Environment(
    loader=FileSystemLoader(os.path.join(os.path.dirname(__file__), "templates")),
    autoescape=True,
    trim_blocks=True,
    lstrip_blocks=True,
)


class RuntimeState(str, Enum):
    UNLOADED = "unloaded"
    HIDDEN = "hidden"
    ANIMATING_IN = "animatingIn"
    VISIBLE = "visible"
    ANIMATING_OUT = "animatingOut"
    DISPOSED = "disposed"


class TransitionOutcome(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    SUPERSEDED = "superseded"
    NOOP = "noop"


SHOWN_STATES = (RuntimeState.ANIMATING_IN, RuntimeState.VISIBLE, RuntimeState.ANIMATING_OUT)


def offset_transform(direction: Any) -> str:
    """Container offset for a slide direction; anything unrecognised slides from the left."""
    try:
        return OFFSET_TRANSFORMS[Direction(direction)]
    except ValueError:
        return OFFSET_TRANSFORMS[Direction.LEFT]


def transition_css(duration_ms: int, easing: Any) -> str:
    easing = easing.value if isinstance(easing, Enum) else easing
    return f"transform {duration_ms}ms {easing}"


class GraphicRuntime:
    """One live instance of a generated component."""

    def __init__(
        self,
        manifest_id: str,
        elements: Iterable[Element],
        animation_settings: Optional[AnimationSettings] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.tag = tag_name(manifest_id)
        self.elements: List[Element] = [el.model_copy(deep=True) for el in elements]
        self.animation_settings = animation_settings or DEFAULT_ANIMATION_SETTINGS
        self.scheduler = scheduler or AsyncioScheduler()
        self.state = RuntimeState.UNLOADED
        self.data: Dict[str, Any] = {}
        self.html = ""
        self.transform = NEUTRAL_TRANSFORM
        self.transition = NO_TRANSITION
        # every container style applied since load, as (transform, transition)
        self.container_history: List[Tuple[str, str]] = []
        self.transition_started_ms: Optional[float] = None
        self.timers_started = 0
        self._timer: Optional[TimerHandle] = None
        self._waiter: Optional[asyncio.Future] = None

    # ---------------- Introspection ----------------

    @property
    def is_visible(self) -> bool:
        return self.state in SHOWN_STATES

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None and self._timer.pending

    def snapshot(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "state": self.state.value,
            "visible": self.is_visible,
            "transform": self.transform,
            "transition": self.transition,
            "pendingTimers": 1 if self.has_pending_timer else 0,
            "data": dict(self.data),
            "html": self.html,
        }

    # ---------------- Lifecycle ----------------

    async def load(self) -> TransitionOutcome:
        return await self.start_load()

    async def dispose(self) -> TransitionOutcome:
        return await self.start_dispose()

    async def play_action(self, skip_animation: bool = False) -> TransitionOutcome:
        return await self.start_play(skip_animation)

    async def stop_action(self, skip_animation: bool = False) -> TransitionOutcome:
        return await self.start_stop(skip_animation)

    async def update_action(self, data: Optional[Mapping[str, Any]] = None) -> TransitionOutcome:
        return await self.start_update(data)

    async def custom_action(self, action: str, data: Optional[Mapping[str, Any]] = None) -> TransitionOutcome:
        return await self.start_custom(action, data)

    # The start_* variants run the synchronous part of an operation immediately
    # and hand back the completion future, so callers can observe the state
    # mid-transition. They must be called with a running event loop.

    def start_load(self) -> "asyncio.Future[TransitionOutcome]":
        self._begin_transition()
        self.data = {}
        self.state = RuntimeState.HIDDEN
        self.container_history = []
        self._clear()
        return self._resolved(TransitionOutcome.COMPLETED)

    def start_dispose(self) -> "asyncio.Future[TransitionOutcome]":
        self._begin_transition()
        self.state = RuntimeState.DISPOSED
        self._clear()
        return self._resolved(TransitionOutcome.COMPLETED)

    def start_play(self, skip_animation: bool = False) -> "asyncio.Future[TransitionOutcome]":
        if self.state == RuntimeState.DISPOSED:
            log.debug(f"{self.tag}: play ignored after dispose")
            return self._resolved(TransitionOutcome.NOOP)
        self._begin_transition()
        if skip_animation:
            self.state = RuntimeState.VISIBLE
            self._apply(NEUTRAL_TRANSFORM, NO_TRANSITION)
            return self._resolved(TransitionOutcome.SKIPPED)

        settings = self.animation_settings
        self.state = RuntimeState.ANIMATING_IN
        self._apply(offset_transform(settings.slide_in_direction), NO_TRANSITION)
        self._apply(NEUTRAL_TRANSFORM, transition_css(settings.slide_in_duration, settings.slide_in_type))
        return self._schedule(settings.slide_in_duration, self._finish_play)

    def start_stop(self, skip_animation: bool = False) -> "asyncio.Future[TransitionOutcome]":
        if self.state == RuntimeState.DISPOSED:
            log.debug(f"{self.tag}: stop ignored after dispose")
            return self._resolved(TransitionOutcome.NOOP)
        self._begin_transition()
        if not self.is_visible:
            return self._resolved(TransitionOutcome.NOOP)
        if skip_animation:
            self._hide()
            return self._resolved(TransitionOutcome.SKIPPED)

        settings = self.animation_settings
        self.state = RuntimeState.ANIMATING_OUT
        self._apply(
            offset_transform(settings.exit_direction),
            transition_css(settings.slide_out_duration, settings.slide_out_type),
        )
        return self._schedule(settings.slide_out_duration, self._hide)

    def start_update(self, data: Optional[Mapping[str, Any]] = None) -> "asyncio.Future[TransitionOutcome]":
        if self.state == RuntimeState.DISPOSED:
            return self._resolved(TransitionOutcome.NOOP)
        self.data.update(data or {})
        if self.is_visible:
            self.html = self._render_html()
        return self._resolved(TransitionOutcome.COMPLETED)

    def start_custom(self, action: str, data: Optional[Mapping[str, Any]] = None) -> "asyncio.Future[TransitionOutcome]":
        if action == "slideIn":
            return self.start_play(False)
        if action == "slideOut":
            return self.start_stop(False)
        log.debug(f"{self.tag}: unknown custom action {action!r} ignored")
        return self._resolved(TransitionOutcome.NOOP)

    def refresh(
        self,
        elements: Iterable[Element],
        animation_settings: Optional[AnimationSettings] = None,
    ) -> None:
        """Swap in edited elements/settings without reloading; a shown graphic re-renders in place."""
        self.elements = [el.model_copy(deep=True) for el in elements]
        self.animation_settings = animation_settings or DEFAULT_ANIMATION_SETTINGS
        if self.is_visible:
            self.html = self._render_html()

    # ---------------- Timer discipline ----------------

    def _begin_transition(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        waiter, self._waiter = self._waiter, None
        if waiter is not None and not waiter.done():
            log.debug(f"{self.tag}: transition superseded while {self.state.value}")
            waiter.set_result(TransitionOutcome.SUPERSEDED)

    def _schedule(self, duration_ms: int, on_complete) -> "asyncio.Future[TransitionOutcome]":
        waiter = asyncio.get_running_loop().create_future()

        def _fire():
            if self._waiter is not waiter:
                return
            self._timer = None
            self._waiter = None
            on_complete()
            if not waiter.done():
                waiter.set_result(TransitionOutcome.COMPLETED)

        self._waiter = waiter
        self.transition_started_ms = self.scheduler.now_ms()
        self._timer = self.scheduler.call_later(duration_ms, _fire)
        self.timers_started += 1
        return waiter

    def _resolved(self, outcome: TransitionOutcome) -> "asyncio.Future[TransitionOutcome]":
        future = asyncio.get_running_loop().create_future()
        future.set_result(outcome)
        return future

    def _finish_play(self) -> None:
        self.state = RuntimeState.VISIBLE

    def _hide(self) -> None:
        self.state = RuntimeState.HIDDEN
        self._clear()

    # ---------------- Rendering ----------------

    def _clear(self) -> None:
        self.html = ""
        self.transform = NEUTRAL_TRANSFORM
        self.transition = NO_TRANSITION

    def _apply(self, transform: str, transition: str) -> None:
        self.transform = transform
        self.transition = transition
        self.container_history.append((transform, transition))
        self.html = self._render_html()

    def _render_html(self) -> str:
        return _env.get_template("preview.html.j2").render(
            canvas_width=CANVAS_W,
            canvas_height=CANVAS_H,
            font_family=FONT_FAMILY,
            element_styles=generate_element_styles(self.elements),
            transform=self.transform,
            transition=self.transition,
            elements=[self._element_view(el) for el in self.elements],
        )

    def _element_view(self, element: Element) -> Dict[str, str]:
        geometry = (
            f"left: {format_value(element.x)}px; top: {format_value(element.y)}px; "
            f"width: {format_value(element.width)}px; height: {format_value(element.height)}px;"
        )
        return {
            "id": element.id,
            "type": element.type.value,
            "geometry": geometry,
            "content": interpolate(element.content, self.data),
        }

    def __repr__(self) -> str:
        return f"GraphicRuntime(tag={self.tag!r}, state={self.state.value})"
