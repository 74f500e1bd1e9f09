# domlocator/core/pw_adapter.py
from __future__ import annotations

"""Playwright adapter
---------------------
Implements the collaborator protocols (frames, worlds, handles) on top of
Playwright's async API so query handlers and locators can drive a real
browser:

    frame = PlaywrightFrame.of(page.main_frame)
    await page_locator(page, "aria/Submit[role=\\"button\\"]").click()

Playwright evaluates a single argument, so every call packs its arguments
into one array and spreads it in page. Playwright exposes no separate
isolated world to us; the isolated world is the main world.
"""

import functools
import itertools
import json
import weakref
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from playwright.async_api import ElementHandle as PWElementHandle
from playwright.async_api import Frame as PWFrame
from playwright.async_api import JSHandle as PWJSHandle
from playwright.async_api import Page as PWPage

from domlocator.core.lazy_arg import LazyArg, resolve_args
from domlocator.core.options import Binding, ClickOptions, WaitForFunctionOptions, WaitForSelectorOptions
from domlocator.core.queries import query_selector, query_selector_all, wait_for_selector
from domlocator.locators.variants import FunctionLocator, NodeLocator
from domlocator.selectors.registry import CustomQuerySelectorRegistry, default_registry
from domlocator.utils.config import get_settings
from domlocator.utils.logger import get_logger

log = get_logger(__name__)

_UTIL_GLOBAL = "__domLocatorUtil"
_UTIL_VERSION_GLOBAL = "__domLocatorUtilVersion"

_INTERSECTION_RATIO = """async (element, threshold) => {
  const ratio = await new Promise((resolve) => {
    const observer = new IntersectionObserver((entries) => {
      resolve(entries[0].intersectionRatio);
      observer.disconnect();
    });
    observer.observe(element);
  });
  return threshold === 1 ? ratio === 1 : ratio > threshold;
}"""

# Name-only accessibility match used when no role is given.
_ACCESSIBLE_NAME_MATCHES = """(root, name) => {
  const accessibleName = (el) => {
    const label = el.getAttribute('aria-label');
    if (label) {
      return label.trim();
    }
    const labelledBy = el.getAttribute('aria-labelledby');
    if (labelledBy) {
      return labelledBy
        .split(/\\s+/)
        .map((id) => document.getElementById(id))
        .filter(Boolean)
        .map((node) => node.textContent.trim())
        .join(' ');
    }
    if (el.labels && el.labels.length) {
      return Array.from(el.labels).map((l) => l.textContent.trim()).join(' ');
    }
    const alt = el.getAttribute('alt') || el.getAttribute('title');
    if (alt) {
      return alt.trim();
    }
    return (el.innerText || el.textContent || '').trim();
  };
  const isIgnored = (el) => !!el.closest('[aria-hidden="true"]') || el.hidden;
  const scope = root.nodeType === Node.DOCUMENT_NODE ? root.documentElement : root;
  const matches = [];
  for (const el of scope.querySelectorAll('*')) {
    if (isIgnored(el) || accessibleName(el) !== name) {
      continue;
    }
    // keep the innermost element carrying the name
    const child = Array.from(el.children).find((c) => !isIgnored(c) && accessibleName(c) === name);
    if (!child) {
      matches.push(el);
    }
  }
  return matches;
}"""

_BINDING_SHIM = """(() => {
  const name = %s;
  if (globalThis[name]) {
    return;
  }
  globalThis[name] = async (...args) => {
    const result = await globalThis[name + '__handle'](args);
    if (result && typeof result === 'object' && '__domLocatorRef' in result) {
      const refs = globalThis.__domLocatorRefs;
      const node = refs.get(result.__domLocatorRef);
      refs.delete(result.__domLocatorRef);
      return node;
    }
    return result;
  };
})()"""

# Parks a node in the page so the host can release its handle before replying.
_STASH_REF = "(node, ref) => { (globalThis.__domLocatorRefs ??= new Map()).set(ref, node); }"
_refs = itertools.count(1)


@functools.lru_cache(maxsize=4)
def _read_bundle(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _bundle_source() -> Optional[str]:
    path = get_settings().MATCHER_BUNDLE_PATH
    if path is None:
        return None
    return _read_bundle(path)


def _to_wire(value: Any) -> Any:
    if isinstance(value, PlaywrightJSHandle):
        return value.pw_handle
    if isinstance(value, Enum):
        return value.value
    return value


def wrap_handle(world: "PlaywrightWorld", handle: PWJSHandle) -> "PlaywrightJSHandle":
    element = handle.as_element()
    if element is not None:
        return PlaywrightElementHandle(world, element)
    return PlaywrightJSHandle(world, handle)


# ---------- Handles ----------


class PlaywrightJSHandle:
    def __init__(self, world: "PlaywrightWorld", handle: PWJSHandle) -> None:
        self._world = world
        self._handle = handle
        self._disposed = False

    @property
    def pw_handle(self) -> PWJSHandle:
        return self._handle

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def world(self) -> "PlaywrightWorld":
        return self._world

    def as_element(self) -> Optional["PlaywrightElementHandle"]:
        return None

    async def evaluate(self, script: str, *args: Any) -> Any:
        wire, temporaries = await self._world._prepare_args(args)
        try:
            return await self._handle.evaluate(f"(target, args) => ({script})(target, ...args)", wire)
        finally:
            await self._world._release(temporaries)

    async def evaluate_handle(self, script: str, *args: Any) -> "PlaywrightJSHandle":
        wire, temporaries = await self._world._prepare_args(args)
        try:
            result = await self._handle.evaluate_handle(f"(target, args) => ({script})(target, ...args)", wire)
        finally:
            await self._world._release(temporaries)
        return wrap_handle(self._world, result)

    async def json_value(self) -> Any:
        return await self._handle.json_value()

    async def get_properties(self) -> dict[str, "PlaywrightJSHandle"]:
        props = await self._handle.get_properties()
        return {key: wrap_handle(self._world, value) for key, value in props.items()}

    async def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        await self._handle.dispose()


class PlaywrightElementHandle(PlaywrightJSHandle):
    _handle: PWElementHandle

    @property
    def frame(self) -> "PlaywrightFrame":
        return self._world.frame

    def as_element(self) -> "PlaywrightElementHandle":
        return self

    async def click(self, options: Optional[ClickOptions] = None) -> None:
        options = options or ClickOptions()
        kwargs: dict[str, Any] = {
            "button": options.button.value,
            "click_count": options.count,
            "delay": options.delay,
        }
        if options.offset is not None:
            kwargs["position"] = {"x": options.offset.x, "y": options.offset.y}
        await self._handle.click(**kwargs)

    async def hover(self) -> None:
        await self._handle.hover()

    async def focus(self) -> None:
        await self._handle.focus()

    async def type(self, text: str) -> None:
        await self._handle.type(text)

    async def select(self, *values: str) -> list[str]:
        return await self._handle.select_option(value=list(values))

    async def scroll_into_view(self) -> None:
        await self._handle.scroll_into_view_if_needed()

    async def is_intersecting_viewport(self, threshold: float = 0) -> bool:
        return bool(await self.evaluate(_INTERSECTION_RATIO, threshold))

    async def query_ax_tree(self, name: Optional[str], role: Optional[str]) -> list["PlaywrightElementHandle"]:
        if role:
            selector = f"internal:role={role}"
            if name:
                selector += f"[name={json.dumps(name)}s]"
            found = await self._handle.query_selector_all(selector)
            return [PlaywrightElementHandle(self._world, el) for el in found]

        if not name:
            return []
        array = await self.evaluate_handle(_ACCESSIBLE_NAME_MATCHES, name)
        try:
            props = await array.get_properties()
        finally:
            await array.dispose()
        out: list[PlaywrightElementHandle] = []
        for item in props.values():
            element = item.as_element()
            if element is None:
                await item.dispose()
                continue
            out.append(element)
        return out


# ---------- Worlds & frames ----------


# page -> binding name -> callable currently serving it
_page_bindings: "weakref.WeakKeyDictionary[PWPage, dict[str, Binding]]" = weakref.WeakKeyDictionary()


class PlaywrightWorld:
    def __init__(self, frame: "PlaywrightFrame") -> None:
        self._frame = frame

    @property
    def frame(self) -> "PlaywrightFrame":
        return self._frame

    @property
    def pw_frame(self) -> PWFrame:
        return self._frame.pw_frame

    async def _prepare_args(self, args: tuple[Any, ...]) -> tuple[list[Any], list[PlaywrightJSHandle]]:
        resolved = await resolve_args(self, args)
        temporaries = [
            value
            for arg, value in zip(args, resolved)
            if isinstance(arg, LazyArg) and isinstance(value, PlaywrightJSHandle)
        ]
        return [_to_wire(v) for v in resolved], temporaries

    @staticmethod
    async def _release(temporaries: list[PlaywrightJSHandle]) -> None:
        for handle in temporaries:
            await handle.dispose()

    async def evaluate(self, script: str, *args: Any) -> Any:
        wire, temporaries = await self._prepare_args(args)
        try:
            return await self.pw_frame.evaluate(f"(args) => ({script})(...args)", wire)
        finally:
            await self._release(temporaries)

    async def evaluate_handle(self, script: str, *args: Any) -> PlaywrightJSHandle:
        wire, temporaries = await self._prepare_args(args)
        try:
            result = await self.pw_frame.evaluate_handle(f"(args) => ({script})(...args)", wire)
        finally:
            await self._release(temporaries)
        return wrap_handle(self, result)

    # ----- in-page utility -----

    async def _install_utility(self, expression: str, version: int) -> None:
        await self.pw_frame.evaluate(
            f"(version) => {{ globalThis.{_UTIL_GLOBAL} = {expression}; globalThis.{_UTIL_VERSION_GLOBAL} = version; }}",
            version,
        )

    async def get_utility(self) -> PlaywrightJSHandle:
        injector = self._frame.registry.injector
        version = injector.version
        installed = await self.pw_frame.evaluate(f"() => globalThis.{_UTIL_VERSION_GLOBAL}")

        async def _install(expression: str) -> None:
            await self._install_utility(expression, version)

        await injector.inject(_install, seen_version=installed, bundle_source=_bundle_source())
        return wrap_handle(self, await self.pw_frame.evaluate_handle(f"() => globalThis.{_UTIL_GLOBAL}"))

    # ----- bindings -----

    async def _expose_binding(self, name: str, binding: Binding) -> None:
        page = self.pw_frame.page
        served = _page_bindings.setdefault(page, {})
        first_time = name not in served
        served[name] = binding
        shim = _BINDING_SHIM % json.dumps(name)
        if first_time:
            registry = self._frame.registry

            async def _dispatch(source: dict, args: PWJSHandle) -> Any:
                world = PlaywrightFrame.of(source["frame"], registry).main_world
                call_args: list[Any] = []
                result = None
                try:
                    props = await args.get_properties()
                    for item in props.values():
                        if item.as_element() is not None:
                            call_args.append(wrap_handle(world, item))
                        else:
                            call_args.append(await item.json_value())
                            await item.dispose()
                    result = await served[name](*call_args)
                    if isinstance(result, PlaywrightJSHandle):
                        ref = next(_refs)
                        await result.evaluate(_STASH_REF, ref)
                        return {"__domLocatorRef": ref}
                    return _to_wire(result)
                finally:
                    for arg in call_args:
                        if isinstance(arg, PlaywrightJSHandle):
                            await arg.dispose()
                    if isinstance(result, PlaywrightJSHandle):
                        await result.dispose()
                    await args.dispose()

            await page.expose_binding(f"{name}__handle", _dispatch, handle=True)
            await page.add_init_script(script=shim)
            log.debug(f"Exposed page binding '{name}'")
        await self.pw_frame.evaluate(shim)

    async def wait_for_function(self, script: str, options: WaitForFunctionOptions, *args: Any) -> PlaywrightJSHandle:
        for name, binding in (options.bindings or {}).items():
            await self._expose_binding(name, binding)

        # Playwright only polls per animation frame or on an interval
        polling: Union[str, int] = options.polling if isinstance(options.polling, int) else "raf"
        kwargs: dict[str, Any] = {"polling": polling}
        if options.timeout is not None:
            kwargs["timeout"] = max(0, options.timeout)

        wire, temporaries = await self._prepare_args(args)
        try:
            result = await self.pw_frame.wait_for_function(
                f"(args) => ({script})(...args)", arg=wire, **kwargs
            )
        finally:
            await self._release(temporaries)
        return wrap_handle(self, result)

    async def adopt_handle(self, handle: PlaywrightElementHandle) -> PlaywrightElementHandle:
        adopted = await handle.evaluate_handle("(node) => node")
        return adopted.as_element()

    async def transfer_handle(self, handle: PlaywrightElementHandle) -> PlaywrightElementHandle:
        return handle


_frames: "weakref.WeakKeyDictionary[PWFrame, PlaywrightFrame]" = weakref.WeakKeyDictionary()


class PlaywrightFrame:
    """Frame collaborator over a Playwright frame; one adapter per frame."""

    def __init__(self, frame: PWFrame, registry: Optional[CustomQuerySelectorRegistry] = None) -> None:
        self._frame = frame
        self.registry = registry or default_registry
        self._world = PlaywrightWorld(self)

    @classmethod
    def of(cls, frame: PWFrame, registry: Optional[CustomQuerySelectorRegistry] = None) -> "PlaywrightFrame":
        adapter = _frames.get(frame)
        if adapter is None or (registry is not None and adapter.registry is not registry):
            adapter = cls(frame, registry)
            _frames[frame] = adapter
        return adapter

    @property
    def pw_frame(self) -> PWFrame:
        return self._frame

    @property
    def main_world(self) -> PlaywrightWorld:
        return self._world

    @property
    def isolated_world(self) -> PlaywrightWorld:
        return self._world

    async def evaluate(self, script: str, *args: Any) -> Any:
        return await self._world.evaluate(script, *args)

    async def evaluate_handle(self, script: str, *args: Any) -> PlaywrightJSHandle:
        return await self._world.evaluate_handle(script, *args)

    async def wait_for_function(self, script: str, options: WaitForFunctionOptions, *args: Any) -> PlaywrightJSHandle:
        return await self._world.wait_for_function(script, options, *args)

    async def wait_for_selector(
        self, selector: str, options: Optional[WaitForSelectorOptions] = None
    ) -> Optional[PlaywrightElementHandle]:
        return await wait_for_selector(self, selector, options, registry=self.registry)

    async def document(self) -> PlaywrightElementHandle:
        return (await self.evaluate_handle("() => document")).as_element()

    async def query_selector(self, selector: str) -> Optional[PlaywrightElementHandle]:
        root = await self.document()
        try:
            return await query_selector(root, selector, registry=self.registry)
        finally:
            await root.dispose()

    async def query_selector_all(self, selector: str) -> list[PlaywrightElementHandle]:
        root = await self.document()
        try:
            return await query_selector_all(root, selector, registry=self.registry)
        finally:
            await root.dispose()


# ---------- Locator helpers ----------


def _frame_of(target: Union[PWPage, PWFrame], registry: Optional[CustomQuerySelectorRegistry]) -> PlaywrightFrame:
    pw_frame = target.main_frame if isinstance(target, PWPage) else target
    return PlaywrightFrame.of(pw_frame, registry)


def page_locator(
    target: Union[PWPage, PWFrame],
    selector: str,
    registry: Optional[CustomQuerySelectorRegistry] = None,
) -> NodeLocator:
    """NodeLocator for `selector` in a Playwright page (main frame) or frame."""
    return NodeLocator(_frame_of(target, registry), selector)


def function_locator(
    target: Union[PWPage, PWFrame],
    script: str,
    registry: Optional[CustomQuerySelectorRegistry] = None,
) -> FunctionLocator:
    """FunctionLocator polling `script` in a Playwright page (main frame) or frame."""
    return FunctionLocator(_frame_of(target, registry), script)


__all__ = [
    "PlaywrightJSHandle",
    "PlaywrightElementHandle",
    "PlaywrightWorld",
    "PlaywrightFrame",
    "wrap_handle",
    "page_locator",
    "function_locator",
]
