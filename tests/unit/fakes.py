"""In-memory stand-ins for the browser collaborators (frames, worlds, handles)."""

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from domlocator.core.lazy_arg import resolve_args
from domlocator.errors import WaitTaskTimeoutError


@dataclass
class FakeNode:
    name: str = "node"
    kind: str = "typeable-input"  # answer of the fill-kind check
    value: str = ""
    disabled: bool = False
    in_viewport: bool = True
    # consumed one per stability check; an empty list means stable
    stability: list[bool] = field(default_factory=list)
    clicks: list = field(default_factory=list)
    typed: list[str] = field(default_factory=list)
    events: list[str] = field(default_factory=list)
    selected: list[str] = field(default_factory=list)
    hovered: int = 0
    focused: int = 0
    scrolled_into_view: int = 0
    scroll: tuple = (None, None)


class Tracker:
    def __init__(self) -> None:
        self.created: list["FakeHandle"] = []

    def live(self) -> list["FakeHandle"]:
        return [h for h in self.created if not h.disposed]


class FakeHandle:
    def __init__(self, world: "FakeWorld", value: Any = None) -> None:
        self._world = world
        self.value = value
        self.disposed = False
        self.dispose_calls = 0
        world.frame.tracker.created.append(self)

    @property
    def world(self) -> "FakeWorld":
        return self._world

    def as_element(self):
        return None

    async def evaluate(self, script: str, *args: Any) -> Any:
        return await self._world.frame.run_script(self, script, args)

    async def evaluate_handle(self, script: str, *args: Any) -> "FakeHandle":
        result = await self._world.frame.run_script(self, script, args)
        return result if isinstance(result, FakeHandle) else FakeHandle(self._world, result)

    async def json_value(self) -> Any:
        return self.value

    async def get_properties(self) -> dict:
        items = self.value if isinstance(self.value, list) else []
        return {str(i): item for i, item in enumerate(items)}

    async def dispose(self) -> None:
        self.dispose_calls += 1
        self.disposed = True


class FakeElement(FakeHandle):
    def __init__(self, world: "FakeWorld", node: Optional[FakeNode] = None) -> None:
        super().__init__(world, None)
        self.node = node or FakeNode()

    def __repr__(self) -> str:
        return f"FakeElement({self.node.name})"

    @property
    def frame(self) -> "FakeFrame":
        return self._world.frame

    def as_element(self):
        return self

    async def click(self, options=None) -> None:
        self.node.clicks.append(options)

    async def hover(self) -> None:
        self.node.hovered += 1

    async def focus(self) -> None:
        self.node.focused += 1

    async def type(self, text: str) -> None:
        self.node.typed.append(text)
        self.node.value += text

    async def select(self, *values: str) -> list[str]:
        self.node.selected = list(values)
        return list(values)

    async def scroll_into_view(self) -> None:
        self.node.scrolled_into_view += 1
        self.node.in_viewport = True

    async def is_intersecting_viewport(self, threshold: float = 0) -> bool:
        return self.node.in_viewport

    async def query_ax_tree(self, name, role):
        self.frame.ax_queries.append((name, role))
        return [FakeElement(self._world, node) for node in self.frame.ax_nodes]


# ---------- default script behaviour ----------


def _stable(el: FakeElement) -> bool:
    return el.node.stability.pop(0) if el.node.stability else True


def _text_to_type(el: FakeElement, value: str) -> str:
    current = el.node.value
    if len(value) <= len(current) or not value.startswith(current):
        el.node.value = ""
        return value
    return value[len(current):]


def _set_value(el: FakeElement, value: str) -> None:
    el.node.value = value
    el.node.events.extend(["input", "change"])


def _scroll(el: FakeElement, top, left) -> None:
    el.node.scroll = (top, left)


DEFAULT_RESPONDERS: list[tuple[str, Callable]] = [
    ("requestAnimationFrame", _stable),
    ("'disabled' in element", lambda el: not el.node.disabled),
    ("HTMLSelectElement", lambda el: el.node.kind),
    ("value.startsWith(current)", _text_to_type),
    ("dispatchEvent", _set_value),
    ("element.scrollTop", _scroll),
]


class FakeWorld:
    def __init__(self, frame: "FakeFrame") -> None:
        self._frame = frame
        self.utility_requests = 0

    @property
    def frame(self) -> "FakeFrame":
        return self._frame

    async def evaluate(self, script: str, *args: Any) -> Any:
        return await self._frame.run_script(None, script, args)

    async def evaluate_handle(self, script: str, *args: Any) -> FakeHandle:
        result = await self._frame.run_script(None, script, args)
        return result if isinstance(result, FakeHandle) else FakeHandle(self, result)

    async def wait_for_function(self, script: str, options, *args: Any) -> FakeHandle:
        return await self._frame.wait_for_function(script, options, *args)

    async def get_utility(self) -> FakeHandle:
        self.utility_requests += 1
        return FakeHandle(self, "utility")

    async def adopt_handle(self, handle: FakeElement) -> FakeElement:
        return FakeElement(self, handle.node)

    async def transfer_handle(self, handle: FakeElement) -> FakeElement:
        return handle


FunctionResponder = Callable[..., Any]


class FakeFrame:
    """
    Scriptable frame. `selectors` maps a selector to a FakeNode (or to
    (FakeNode, delay_seconds)); unknown selectors wait for the timeout.
    `functions` maps a script to an async callable(options, *args).
    """

    def __init__(self) -> None:
        self.tracker = Tracker()
        self.world = FakeWorld(self)
        self.responders: list[tuple[str, Callable]] = list(DEFAULT_RESPONDERS)
        self.selectors: dict[str, Any] = {}
        self.functions: dict[str, FunctionResponder] = {}
        self.selector_calls: list[tuple[str, Any]] = []
        self.function_calls: list[tuple[str, Any, list]] = []
        self.ax_nodes: list[FakeNode] = []
        self.ax_queries: list[tuple] = []

    @property
    def main_world(self) -> FakeWorld:
        return self.world

    @property
    def isolated_world(self) -> FakeWorld:
        return self.world

    def element(self, node: Optional[FakeNode] = None) -> FakeElement:
        return FakeElement(self.world, node)

    def respond(self, needle: str, fn: Callable) -> None:
        """Answer scripts containing `needle` with `fn(target, *args)` before the defaults."""
        self.responders.insert(0, (needle, fn))

    async def run_script(self, target: Optional[FakeHandle], script: str, args) -> Any:
        resolved = await resolve_args(self.world, args)
        for needle, fn in self.responders:
            if needle in script:
                call_args = ([target] if target is not None else []) + resolved
                result = fn(*call_args)
                if inspect.isawaitable(result):
                    result = await result
                return result
        raise AssertionError(f"unexpected script: {script[:60]!r}")

    async def wait_for_selector(self, selector: str, options=None):
        self.selector_calls.append((selector, options))
        entry = self.selectors.get(selector)
        if entry is None:
            timeout = getattr(options, "timeout", None)
            if timeout and timeout > 0:
                await asyncio.sleep(timeout / 1000)
                raise WaitTaskTimeoutError(f"Waiting for selector `{selector}` failed: timeout {timeout}ms exceeded")
            await asyncio.Event().wait()
        node, delay = entry if isinstance(entry, tuple) else (entry, 0)
        if delay:
            await asyncio.sleep(delay)
        return FakeElement(self.world, node)

    async def wait_for_function(self, script: str, options, *args: Any) -> FakeHandle:
        resolved = await resolve_args(self.world, args)
        self.function_calls.append((script, options, resolved))
        fn = self.functions.get(script)
        if fn is None:
            raise AssertionError(f"unexpected wait_for_function: {script[:60]!r}")
        result = await fn(options, *resolved)
        return result if isinstance(result, FakeHandle) else FakeHandle(self.world, result)

    async def evaluate(self, script: str, *args: Any) -> Any:
        return await self.world.evaluate(script, *args)

    async def evaluate_handle(self, script: str, *args: Any) -> FakeHandle:
        return await self.world.evaluate_handle(script, *args)
