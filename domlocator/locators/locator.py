# domlocator/locators/locator.py
from __future__ import annotations

"""Locator base
---------------
A Locator is a reusable, retrying recipe for resolving a handle and acting on
it. Every terminal operation runs whole attempts in a loop:

    resolve handle → ensure in viewport → stable bounding box → enabled → action

Any exception inside an attempt disposes the handle it acquired and schedules
another attempt after a fixed delay. The loop ends on success, when the
locator's deadline passes (LocatorTimeoutError) or when the calling task is
cancelled (asyncio.CancelledError, propagated unchanged).

Configuration is mutated in place by the ``set_*`` methods, which return the
locator itself. One instance must not be reconfigured from several tasks
while it is being waited on.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from domlocator.core.options import ClickOptions, ScrollOptions, VisibilityOption
from domlocator.core.protocols import ElementHandle, JSHandle
from domlocator.errors import LocatorError, LocatorTimeoutError
from domlocator.selectors.handlers import dispose_quietly
from domlocator.utils.config import get_settings
from domlocator.utils.logger import get_logger
from domlocator.utils.timing import async_sleep_ms, ms_to_seconds

log = get_logger(__name__)

T = TypeVar("T")


# ---------- In-page helpers ----------

_STABLE_BOUNDING_BOX = """(element) => {
  return new Promise((resolve) => {
    window.requestAnimationFrame(() => {
      const first = element.getBoundingClientRect();
      window.requestAnimationFrame(() => {
        const second = element.getBoundingClientRect();
        resolve(
          first.x === second.x &&
          first.y === second.y &&
          first.width === second.width &&
          first.height === second.height
        );
      });
    });
  });
}"""

_IS_ENABLED = """(element) => {
  if ('disabled' in element && typeof element.disabled === 'boolean') {
    return !element.disabled;
  }
  return true;
}"""

_SCROLL = """(element, scrollTop, scrollLeft) => {
  if (scrollTop !== undefined && scrollTop !== null) {
    element.scrollTop = scrollTop;
  }
  if (scrollLeft !== undefined && scrollLeft !== null) {
    element.scrollLeft = scrollLeft;
  }
}"""

_INPUT_KIND = """(element) => {
  if (element instanceof HTMLSelectElement) {
    return 'select';
  }
  if (element instanceof HTMLTextAreaElement) {
    return 'typeable-input';
  }
  if (element instanceof HTMLInputElement) {
    const typeable = new Set(['textarea', 'text', 'url', 'tel', 'search', 'password', 'number', 'email']);
    return typeable.has(element.type) ? 'typeable-input' : 'other-input';
  }
  if (element.isContentEditable) {
    return 'contenteditable';
  }
  return 'unknown';
}"""

# Returns what still has to be typed; clears the field when the wanted value
# does not extend the current one.
_TEXT_TO_TYPE = """(element, value) => {
  const editable = element.isContentEditable;
  const current = editable ? element.innerText : element.value;
  if (value.length <= current.length || !value.startsWith(current)) {
    if (editable) {
      element.innerText = '';
    } else {
      element.value = '';
    }
    return value;
  }
  return value.substring(current.length);
}"""

_SET_VALUE = """(element, value) => {
  element.value = value;
  element.dispatchEvent(new Event('input', {bubbles: true}));
  element.dispatchEvent(new Event('change', {bubbles: true}));
}"""


class Locator:
    """Base class; subclasses implement a single resolution in `_wait_handle_core`."""

    def __init__(self) -> None:
        s = get_settings()
        self.timeout: int = s.LOCATOR_TIMEOUT_MS
        self.visibility: Optional[VisibilityOption] = None
        self.ensure_element_is_in_the_viewport: bool = s.ENSURE_IN_VIEWPORT
        self.wait_for_enabled: bool = s.WAIT_FOR_ENABLED
        self.wait_for_stable_bounding_box: bool = s.WAIT_FOR_STABLE_BOUNDING_BOX
        self.retry_delay_ms: int = s.RETRY_DELAY_MS

    def __repr__(self) -> str:
        return f"{type(self).__name__}(timeout={self.timeout}, visibility={self.visibility})"

    # ---------- Configuration ----------

    def copy_options(self, other: "Locator") -> "Locator":
        self.timeout = other.timeout
        self.visibility = other.visibility
        self.ensure_element_is_in_the_viewport = other.ensure_element_is_in_the_viewport
        self.wait_for_enabled = other.wait_for_enabled
        self.wait_for_stable_bounding_box = other.wait_for_stable_bounding_box
        self.retry_delay_ms = other.retry_delay_ms
        return self

    def set_timeout(self, timeout: int) -> "Locator":
        """Deadline in ms for every terminal operation; <= 0 waits until cancelled."""
        self.timeout = timeout
        return self

    def set_visibility(self, visibility: Optional[VisibilityOption]) -> "Locator":
        self.visibility = VisibilityOption(visibility) if visibility is not None else None
        return self

    def set_wait_for_enabled(self, value: bool) -> "Locator":
        self.wait_for_enabled = value
        return self

    def set_ensure_element_is_in_the_viewport(self, value: bool) -> "Locator":
        self.ensure_element_is_in_the_viewport = value
        return self

    def set_wait_for_stable_bounding_box(self, value: bool) -> "Locator":
        self.wait_for_stable_bounding_box = value
        return self

    # ---------- Composition ----------

    def filter(self, predicate: str) -> "Locator":
        """Keep only handles for which the in-page `predicate(handle)` becomes truthy."""
        from domlocator.locators.variants import FilteredLocator

        return FilteredLocator(self, predicate)

    def map(self, mapper: str) -> "Locator":
        """Replace the resolved handle with the result of the in-page `mapper(handle)`."""
        from domlocator.locators.variants import MappedLocator

        return MappedLocator(self, mapper)

    @staticmethod
    def race(*locators: "Locator") -> "Locator":
        from domlocator.locators.variants import RaceLocator

        return RaceLocator(*locators)

    # ---------- Resolution ----------

    async def _wait_handle_core(self) -> JSHandle:
        """One resolution attempt, no retries."""
        raise NotImplementedError

    async def _run_with_retry(self, attempt: Callable[[], Awaitable[T]]) -> T:
        timeout = self.timeout
        attempt_no = 0
        try:
            async with asyncio.timeout(ms_to_seconds(timeout)):
                while True:
                    attempt_no += 1
                    try:
                        return await attempt()
                    except Exception as exc:
                        log.debug(f"{self!r} attempt {attempt_no} failed: {exc!r}; retrying in {self.retry_delay_ms}ms")
                    await async_sleep_ms(self.retry_delay_ms)
        except TimeoutError as exc:
            raise LocatorTimeoutError(timeout) from exc

    async def wait_handle(self) -> JSHandle:
        """Resolve with retries; the caller owns (and must dispose) the returned handle."""
        return await self._run_with_retry(self._wait_handle_core)

    async def wait_value(self) -> Any:
        """JSON value of the resolved handle; the handle is disposed."""
        handle = await self.wait_handle()
        try:
            return await handle.json_value()
        finally:
            await dispose_quietly(handle)

    async def wait(self) -> None:
        handle = await self.wait_handle()
        await handle.dispose()

    # ---------- Preconditions ----------

    async def _ensure_in_viewport(self, element: ElementHandle) -> None:
        if not await element.is_intersecting_viewport(threshold=0):
            await element.scroll_into_view()

    async def _ensure_stable_bounding_box(self, element: ElementHandle) -> None:
        if not await element.evaluate(_STABLE_BOUNDING_BOX):
            raise LocatorError("Bounding box is not stable.")

    async def _ensure_enabled(self, element: ElementHandle) -> None:
        if not await element.evaluate(_IS_ENABLED):
            raise LocatorError("Element is disabled.")

    async def _perform_action(
        self,
        action: Callable[[ElementHandle], Awaitable[None]],
        *,
        check_enabled: bool,
    ) -> None:
        async def attempt() -> None:
            handle = await self._wait_handle_core()
            element = handle.as_element()
            if element is None:
                await handle.dispose()
                raise LocatorError("Locator did not resolve to an element.")
            try:
                if self.ensure_element_is_in_the_viewport:
                    await self._ensure_in_viewport(element)
                if self.wait_for_stable_bounding_box:
                    await self._ensure_stable_bounding_box(element)
                if check_enabled and self.wait_for_enabled:
                    await self._ensure_enabled(element)
                await action(element)
            finally:
                await dispose_quietly(element)

        await self._run_with_retry(attempt)

    # ---------- Actions ----------

    async def click(self, options: Optional[ClickOptions] = None) -> None:
        options = options or ClickOptions()

        async def _click(element: ElementHandle) -> None:
            await element.click(options)

        await self._perform_action(_click, check_enabled=True)

    async def hover(self) -> None:
        async def _hover(element: ElementHandle) -> None:
            await element.hover()

        await self._perform_action(_hover, check_enabled=False)

    async def scroll(self, options: Optional[ScrollOptions] = None) -> None:
        options = options or ScrollOptions()

        async def _scroll(element: ElementHandle) -> None:
            await element.evaluate(_SCROLL, options.scroll_top, options.scroll_left)

        await self._perform_action(_scroll, check_enabled=False)

    async def fill(self, value: str) -> None:
        """
        Fill a form control. Selects pick by value, text-like inputs and
        contenteditable hosts receive only the missing suffix as keystrokes,
        other inputs get their value assigned plus input/change events.
        """

        async def _fill(element: ElementHandle) -> None:
            kind = await element.evaluate(_INPUT_KIND)
            if kind == "select":
                await element.select(value)
            elif kind in ("typeable-input", "contenteditable"):
                text = await element.evaluate(_TEXT_TO_TYPE, value)
                await element.type(text)
            elif kind == "other-input":
                await element.focus()
                await element.evaluate(_SET_VALUE, value)
            else:
                raise LocatorError("Element cannot be filled out.")

        await self._perform_action(_fill, check_enabled=True)


__all__ = ["Locator"]
