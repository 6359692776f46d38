"""
Rendering sandbox: hosts one runtime per active template and relays preview
commands in an order the component contract allows (load before play, no stop
without play, dispose on teardown).

All methods that touch a runtime must be called from the event loop; they
return the runtime's completion future, which callers may await or ignore.
"""

import asyncio
from typing import Any, Dict, List, Mapping, Optional

from studio.core import get_logger

from .naming import component_class_name, tag_name
from .registry import ComponentRegistry
from .runtime import GraphicRuntime, RuntimeState, TransitionOutcome
from .scheduler import Scheduler
from .sdk import SequenceError
from .template_model import GraphicTemplate

log = get_logger("sandbox")


class RenderSandbox:
    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        registry: Optional[ComponentRegistry] = None,
    ):
        self.scheduler = scheduler
        self.registry = registry or ComponentRegistry()
        self._runtimes: Dict[str, GraphicRuntime] = {}
        self._preview_data: Dict[str, Dict[str, Any]] = {}

    # ---------------- Instances ----------------

    def mount(self, template: GraphicTemplate) -> GraphicRuntime:
        """Create the single runtime for `template`, replacing (and disposing) any previous one."""
        self.registry.register(tag_name(template.id), component_class_name(template.id))
        previous = self._runtimes.pop(template.id, None)
        if previous is not None:
            previous.start_dispose()
            log.info(f"[sandbox] Replaced runtime for {template.id}")
        runtime = GraphicRuntime(
            template.id,
            template.elements,
            template.animation_settings,
            scheduler=self.scheduler,
        )
        self._runtimes[template.id] = runtime
        return runtime

    def refresh(self, template: GraphicTemplate) -> GraphicRuntime:
        runtime = self._runtimes.get(template.id)
        if runtime is None:
            return self.mount(template)
        runtime.refresh(template.elements, template.animation_settings)
        return runtime

    def unmount(self, template_id: str) -> bool:
        runtime = self._runtimes.pop(template_id, None)
        self._preview_data.pop(template_id, None)
        if runtime is None:
            return False
        runtime.start_dispose()
        return True

    def is_mounted(self, template_id: str) -> bool:
        return template_id in self._runtimes

    def get_runtime(self, template_id: str) -> Optional[GraphicRuntime]:
        return self._runtimes.get(template_id)

    def mounted(self) -> List[str]:
        return list(self._runtimes)

    def _require(self, template_id: str) -> GraphicRuntime:
        runtime = self._runtimes.get(template_id)
        if runtime is None:
            raise SequenceError(f"No component mounted for template {template_id}")
        return runtime

    def snapshot(self, template_id: str) -> Dict[str, Any]:
        return self._require(template_id).snapshot()

    # ---------------- Commands ----------------

    def load(self, template_id: str) -> "asyncio.Future[TransitionOutcome]":
        runtime = self._require(template_id)
        future = runtime.start_load()
        self._replay_preview_data(template_id, runtime)
        return future

    def dispose(self, template_id: str) -> "asyncio.Future[TransitionOutcome]":
        return self._require(template_id).start_dispose()

    def play(self, template_id: str, skip_animation: bool = False) -> "asyncio.Future[TransitionOutcome]":
        runtime = self._ensure_loaded(template_id)
        return runtime.start_play(skip_animation)

    def stop(self, template_id: str, skip_animation: bool = False) -> "asyncio.Future[TransitionOutcome]":
        runtime = self._require(template_id)
        if not runtime.is_visible:
            log.debug(f"[sandbox] stop for {template_id} without a running play; ignored")
            return _done(TransitionOutcome.NOOP)
        return runtime.start_stop(skip_animation)

    def update(self, template_id: str, data: Mapping[str, Any]) -> "asyncio.Future[TransitionOutcome]":
        runtime = self._require(template_id)
        self._preview_data.setdefault(template_id, {}).update(data)
        return runtime.start_update(data)

    def custom(
        self, template_id: str, action: str, data: Optional[Mapping[str, Any]] = None
    ) -> "asyncio.Future[TransitionOutcome]":
        runtime = self._ensure_loaded(template_id)
        return runtime.start_custom(action, data)

    def preview_data(self, template_id: str) -> Dict[str, Any]:
        return dict(self._preview_data.get(template_id, {}))

    def clear_preview_data(self, template_id: str) -> None:
        self._preview_data.pop(template_id, None)

    def _ensure_loaded(self, template_id: str) -> GraphicRuntime:
        runtime = self._require(template_id)
        if runtime.state in (RuntimeState.UNLOADED, RuntimeState.DISPOSED):
            runtime.start_load()
            self._replay_preview_data(template_id, runtime)
        return runtime

    def _replay_preview_data(self, template_id: str, runtime: GraphicRuntime) -> None:
        # load() resets the component's data map; preview data outlives reloads
        data = self._preview_data.get(template_id)
        if data:
            runtime.start_update(data)


def _done(outcome: TransitionOutcome) -> "asyncio.Future[TransitionOutcome]":
    future = asyncio.get_running_loop().create_future()
    future.set_result(outcome)
    return future
