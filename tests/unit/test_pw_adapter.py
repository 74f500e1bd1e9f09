from unittest.mock import AsyncMock, MagicMock

import pytest

from domlocator.core.options import ClickOptions, MouseButton, Offset, PollingOption, WaitForFunctionOptions
from domlocator.core.pw_adapter import (
    PlaywrightElementHandle,
    PlaywrightFrame,
    PlaywrightJSHandle,
    wrap_handle,
)


def pw_handle(element: bool = False) -> MagicMock:
    handle = MagicMock()
    handle.as_element.return_value = handle if element else None
    handle.dispose = AsyncMock()
    return handle


def make_frame(registry) -> tuple[PlaywrightFrame, MagicMock]:
    pw_frame = MagicMock()
    pw_frame.evaluate = AsyncMock()
    pw_frame.evaluate_handle = AsyncMock(return_value=pw_handle())
    pw_frame.wait_for_function = AsyncMock(return_value=pw_handle())
    return PlaywrightFrame(pw_frame, registry), pw_frame


def test_wrap_handle_picks_element_wrapper(registry):
    frame, _ = make_frame(registry)
    assert isinstance(wrap_handle(frame.main_world, pw_handle(element=True)), PlaywrightElementHandle)
    plain = wrap_handle(frame.main_world, pw_handle())
    assert type(plain) is PlaywrightJSHandle
    assert plain.as_element() is None


@pytest.mark.asyncio
async def test_click_maps_options(registry):
    frame, _ = make_frame(registry)
    raw = pw_handle(element=True)
    raw.click = AsyncMock()
    el = PlaywrightElementHandle(frame.main_world, raw)

    await el.click(ClickOptions(button=MouseButton.right, count=2, delay=5, offset=Offset(1, 2)))

    raw.click.assert_awaited_once_with(button="right", click_count=2, delay=5, position={"x": 1, "y": 2})
    assert el.frame is frame


@pytest.mark.asyncio
async def test_dispose_is_idempotent(registry):
    frame, _ = make_frame(registry)
    raw = pw_handle()
    handle = PlaywrightJSHandle(frame.main_world, raw)

    await handle.dispose()
    await handle.dispose()

    assert handle.disposed
    raw.dispose.assert_awaited_once()


@pytest.mark.asyncio
async def test_world_evaluate_packs_arguments(registry):
    frame, pw_frame = make_frame(registry)
    pw_frame.evaluate.return_value = 3

    assert await frame.evaluate("(a, b) => a + b", 1, PollingOption.raf) == 3
    pw_frame.evaluate.assert_awaited_once_with("(args) => ((a, b) => a + b)(...args)", [1, "raf"])


@pytest.mark.asyncio
async def test_handle_evaluate_unwraps_handle_arguments(registry):
    frame, _ = make_frame(registry)
    raw = pw_handle()
    raw.evaluate = AsyncMock(return_value=True)
    other_raw = pw_handle()
    handle = PlaywrightJSHandle(frame.main_world, raw)

    await handle.evaluate("(a, b) => a === b", PlaywrightJSHandle(frame.main_world, other_raw))

    raw.evaluate.assert_awaited_once_with("(target, args) => ((a, b) => a === b)(target, ...args)", [other_raw])


@pytest.mark.asyncio
async def test_wait_for_function_maps_polling_and_timeout(registry):
    frame, pw_frame = make_frame(registry)

    await frame.wait_for_function("() => 1", WaitForFunctionOptions(timeout=-5, polling=PollingOption.mutation))
    pw_frame.wait_for_function.assert_awaited_with("(args) => (() => 1)(...args)", arg=[], polling="raf", timeout=0)

    await frame.wait_for_function("() => 1", WaitForFunctionOptions(polling=50))
    pw_frame.wait_for_function.assert_awaited_with("(args) => (() => 1)(...args)", arg=[], polling=50)


@pytest.mark.asyncio
async def test_utility_installed_once_per_version(registry):
    frame, pw_frame = make_frame(registry)
    state = {"version": None, "installs": []}

    async def evaluate(script, *args):
        if script == "() => globalThis.__domLocatorUtilVersion":
            return state["version"]
        state["installs"].append(script)
        state["version"] = args[0]

    pw_frame.evaluate = AsyncMock(side_effect=evaluate)
    world = frame.main_world

    await world.get_utility()
    await world.get_utility()
    assert len(state["installs"]) == 1
    assert "customQuerySelectors" in state["installs"][0]

    registry.register_custom_query_handler("dataTest", query_one="(n, s) => n.querySelector(s)")
    await world.get_utility()
    assert len(state["installs"]) == 2
    assert 'customQuerySelectors.register("dataTest"' in state["installs"][1]


@pytest.mark.asyncio
async def test_query_ax_tree_uses_role_engine(registry):
    frame, _ = make_frame(registry)
    raw = pw_handle(element=True)
    raw.query_selector_all = AsyncMock(return_value=[pw_handle(element=True)])
    el = PlaywrightElementHandle(frame.main_world, raw)

    found = await el.query_ax_tree("Save", "button")

    raw.query_selector_all.assert_awaited_once_with('internal:role=button[name="Save"s]')
    assert len(found) == 1 and isinstance(found[0], PlaywrightElementHandle)


@pytest.mark.asyncio
async def test_binding_releases_every_handle(registry):
    frame, pw_frame = make_frame(registry)
    page = MagicMock()
    page.expose_binding = AsyncMock()
    page.add_init_script = AsyncMock()
    pw_frame.page = page
    found: list[MagicMock] = []

    async def binding(element, name):
        assert name == "Submit"
        raw = pw_handle(element=True)
        raw.evaluate = AsyncMock()
        found.append(raw)
        return PlaywrightElementHandle(element.world, raw)

    await frame.main_world._expose_binding("__ariaQuerySelector", binding)
    dispatch = page.expose_binding.await_args.args[1]

    passed: list[MagicMock] = []
    for _ in range(5):
        element, label, args = pw_handle(element=True), pw_handle(), pw_handle()
        label.json_value = AsyncMock(return_value="Submit")
        args.get_properties = AsyncMock(return_value={"0": element, "1": label})
        passed += [element, label, args]

        reply = await dispatch({"frame": pw_frame}, args)
        assert set(reply) == {"__domLocatorRef"}

    for raw in passed + found:
        raw.dispose.assert_awaited()
    assert all(raw.evaluate.await_count == 1 for raw in found)


@pytest.mark.asyncio
async def test_binding_releases_arguments_when_binding_fails(registry):
    frame, pw_frame = make_frame(registry)
    page = MagicMock()
    page.expose_binding = AsyncMock()
    page.add_init_script = AsyncMock()
    pw_frame.page = page

    async def binding(element):
        raise RuntimeError("boom")

    await frame.main_world._expose_binding("__failing", binding)
    dispatch = page.expose_binding.await_args.args[1]
    element, args = pw_handle(element=True), pw_handle()
    args.get_properties = AsyncMock(return_value={"0": element})

    with pytest.raises(RuntimeError, match="boom"):
        await dispatch({"frame": pw_frame}, args)
    element.dispose.assert_awaited()
    args.dispose.assert_awaited()
