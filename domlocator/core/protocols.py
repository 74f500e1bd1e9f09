"""Collaborator protocols.

The selector pipeline and the locator engine never talk to a browser
directly. They consume the small surface below, which a page adapter
(see ``domlocator.core.pw_adapter``) or a test fake implements:

- JSHandle / ElementHandle: remote object references with explicit disposal
- ExecutionWorld: a JavaScript realm inside a frame (main or isolated)
- Frame: owner of the worlds plus the selector/function wait primitives
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

from domlocator.core.options import ClickOptions, WaitForFunctionOptions, WaitForSelectorOptions


class JSHandle(Protocol):
    @property
    def disposed(self) -> bool: ...

    @property
    def world(self) -> "ExecutionWorld": ...

    def as_element(self) -> Optional["ElementHandle"]: ...

    async def evaluate(self, script: str, *args: Any) -> Any:
        """Call `script` with this handle as first argument; returns a JSON value."""
        ...

    async def evaluate_handle(self, script: str, *args: Any) -> "JSHandle": ...

    async def json_value(self) -> Any: ...

    async def get_properties(self) -> dict[str, "JSHandle"]:
        """Own enumerable properties, in insertion order."""
        ...

    async def dispose(self) -> None: ...


class ElementHandle(JSHandle, Protocol):
    @property
    def frame(self) -> "Frame": ...

    async def click(self, options: Optional[ClickOptions] = None) -> None: ...

    async def hover(self) -> None: ...

    async def focus(self) -> None: ...

    async def type(self, text: str) -> None: ...

    async def select(self, *values: str) -> list[str]: ...

    async def scroll_into_view(self) -> None: ...

    async def is_intersecting_viewport(self, threshold: float = 0) -> bool: ...

    async def query_ax_tree(self, name: Optional[str], role: Optional[str]) -> list["ElementHandle"]:
        """Accessibility-tree matches below this element (ignored and text-only nodes excluded)."""
        ...


class ExecutionWorld(Protocol):
    @property
    def frame(self) -> "Frame": ...

    async def evaluate(self, script: str, *args: Any) -> Any: ...

    async def evaluate_handle(self, script: str, *args: Any) -> JSHandle: ...

    async def wait_for_function(self, script: str, options: WaitForFunctionOptions, *args: Any) -> JSHandle: ...

    async def get_utility(self) -> JSHandle:
        """Shared in-page matcher utility, installed on first use."""
        ...

    async def adopt_handle(self, handle: ElementHandle) -> ElementHandle: ...

    async def transfer_handle(self, handle: ElementHandle) -> ElementHandle:
        """Adopt `handle` into this world and dispose the original."""
        ...


class Frame(Protocol):
    @property
    def main_world(self) -> ExecutionWorld: ...

    @property
    def isolated_world(self) -> ExecutionWorld: ...

    async def wait_for_selector(
        self, selector: str, options: Optional[WaitForSelectorOptions] = None
    ) -> Optional[ElementHandle]: ...

    async def wait_for_function(self, script: str, options: WaitForFunctionOptions, *args: Any) -> JSHandle: ...

    async def evaluate(self, script: str, *args: Any) -> Any: ...

    async def evaluate_handle(self, script: str, *args: Any) -> JSHandle: ...


__all__ = ["JSHandle", "ElementHandle", "ExecutionWorld", "Frame"]
