import asyncio

import pytest

from studio.graphics.registry import ComponentRegistry
from studio.graphics.runtime import RuntimeState, TransitionOutcome
from studio.graphics.sandbox import RenderSandbox
from studio.graphics.sdk import SequenceError


def run(coro):
    return asyncio.run(coro)


def test_registry_is_register_if_absent():
    registry = ComponentRegistry()
    assert registry.register("demo-graphic", "DemoGraphic") is True
    assert registry.register("demo-graphic", "OtherGraphic") is False
    assert registry.get("demo-graphic") == "DemoGraphic"
    assert "demo-graphic" in registry
    assert len(registry) == 1
    assert registry.tags() == ["demo-graphic"]


def test_mount_registers_tag_once(lower_third, scheduler):
    sandbox = RenderSandbox(scheduler=scheduler)

    async def scenario():
        first = sandbox.mount(lower_third)
        second = sandbox.mount(lower_third)
        return first, second

    first, second = run(scenario())
    assert sandbox.registry.tags() == ["lower-third-demo-graphic"]
    assert first.state == RuntimeState.DISPOSED
    assert sandbox.get_runtime(lower_third.id) is second
    assert sandbox.mounted() == [lower_third.id]


def test_commands_require_mount(lower_third, scheduler):
    sandbox = RenderSandbox(scheduler=scheduler)

    async def scenario():
        with pytest.raises(SequenceError):
            sandbox.play(lower_third.id)
        with pytest.raises(SequenceError):
            sandbox.update(lower_third.id, {"name": "x"})

    run(scenario())


def test_play_auto_loads(lower_third, scheduler):
    sandbox = RenderSandbox(scheduler=scheduler)

    async def scenario():
        sandbox.mount(lower_third)
        outcome = await sandbox.play(lower_third.id, skip_animation=True)
        return outcome, sandbox.snapshot(lower_third.id)

    outcome, snap = run(scenario())
    assert outcome == TransitionOutcome.SKIPPED
    assert snap["state"] == "visible"


def test_stop_without_play_is_ignored(lower_third, scheduler):
    sandbox = RenderSandbox(scheduler=scheduler)

    async def scenario():
        sandbox.mount(lower_third)
        return await sandbox.stop(lower_third.id), sandbox.get_runtime(lower_third.id).state

    outcome, state = run(scenario())
    assert outcome == TransitionOutcome.NOOP
    assert state == RuntimeState.UNLOADED


def test_preview_data_survives_reload(lower_third, scheduler):
    sandbox = RenderSandbox(scheduler=scheduler)

    async def scenario():
        sandbox.mount(lower_third)
        await sandbox.load(lower_third.id)
        await sandbox.update(lower_third.id, {"name": "Alice"})
        await sandbox.load(lower_third.id)
        await sandbox.play(lower_third.id, skip_animation=True)
        return sandbox.get_runtime(lower_third.id)

    runtime = run(scenario())
    assert runtime.data == {"name": "Alice"}
    assert ">Alice</div>" in runtime.html
    assert sandbox.preview_data(lower_third.id) == {"name": "Alice"}


def test_refresh_keeps_running_instance(lower_third, scheduler):
    sandbox = RenderSandbox(scheduler=scheduler)

    async def scenario():
        runtime = sandbox.mount(lower_third)
        await sandbox.play(lower_third.id, skip_animation=True)
        lower_third.update_element("title", {"content": "Static"})
        refreshed = sandbox.refresh(lower_third)
        return runtime, refreshed

    runtime, refreshed = run(scenario())
    assert refreshed is runtime
    assert "Static" in runtime.html


def test_unmount_disposes_and_forgets(lower_third, scheduler):
    sandbox = RenderSandbox(scheduler=scheduler)

    async def scenario():
        runtime = sandbox.mount(lower_third)
        sandbox.play(lower_third.id)
        assert sandbox.unmount(lower_third.id) is True
        assert sandbox.unmount(lower_third.id) is False
        return runtime

    runtime = run(scenario())
    assert runtime.state == RuntimeState.DISPOSED
    assert not sandbox.is_mounted(lower_third.id)
    assert scheduler.pending_count() == 0
    assert sandbox.preview_data(lower_third.id) == {}
