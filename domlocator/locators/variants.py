# domlocator/locators/variants.py
from __future__ import annotations

"""Locator variants
-------------------
Leaves resolve against a frame (NodeLocator: selector wait, FunctionLocator:
function wait). Delegated locators wrap another locator and post-process its
handle (FilteredLocator, MappedLocator). RaceLocator runs several locators
concurrently and keeps the first handle produced.

Composite locators copy their base's configuration when constructed and
resolve the base with a single attempt; the retry loop belongs to whichever
locator the caller awaits.
"""

import asyncio
from typing import Optional

from domlocator.core.options import WaitForFunctionOptions, WaitForSelectorOptions
from domlocator.core.protocols import Frame, JSHandle
from domlocator.errors import LocatorError
from domlocator.locators.locator import Locator
from domlocator.selectors.handlers import dispose_quietly
from domlocator.utils.logger import get_logger

log = get_logger(__name__)


# ---------- Leaves ----------


class NodeLocator(Locator):
    """Waits for `selector` (any dialect) in `frame`."""

    def __init__(self, frame: Frame, selector: str) -> None:
        super().__init__()
        self.frame = frame
        self.selector = selector

    def __repr__(self) -> str:
        return f"NodeLocator({self.selector!r})"

    async def _wait_handle_core(self) -> JSHandle:
        options = WaitForSelectorOptions.for_visibility(self.visibility, self.timeout)
        handle = await self.frame.wait_for_selector(self.selector, options)
        if handle is None:
            raise LocatorError(f"Selector `{self.selector}` did not resolve to an element.")
        return handle


class FunctionLocator(Locator):
    """Waits until the in-page `script` returns a truthy value."""

    def __init__(self, frame: Frame, script: str) -> None:
        super().__init__()
        self.frame = frame
        self.script = script

    async def _wait_handle_core(self) -> JSHandle:
        return await self.frame.wait_for_function(self.script, WaitForFunctionOptions(timeout=self.timeout))


# ---------- Delegation ----------


class DelegatedLocator(Locator):
    def __init__(self, delegate: Locator) -> None:
        super().__init__()
        self.delegate = delegate
        self.copy_options(delegate)

    async def _wait_handle_core(self) -> JSHandle:
        return await self.delegate._wait_handle_core()


class FilteredLocator(DelegatedLocator):
    def __init__(self, base: Locator, predicate: str) -> None:
        super().__init__(base)
        self.predicate = predicate

    def __repr__(self) -> str:
        return f"FilteredLocator({self.delegate!r})"

    async def _wait_handle_core(self) -> JSHandle:
        handle = await self.delegate._wait_handle_core()
        try:
            matched = await handle.world.frame.wait_for_function(
                self.predicate, WaitForFunctionOptions(timeout=self.timeout), handle
            )
            await matched.dispose()
        except Exception as exc:
            await dispose_quietly(handle)
            raise LocatorError(f"Filter predicate did not match: {exc}") from exc
        except BaseException:
            await dispose_quietly(handle)
            raise
        return handle


class MappedLocator(DelegatedLocator):
    def __init__(self, base: Locator, mapper: str) -> None:
        super().__init__(base)
        self.mapper = mapper

    def __repr__(self) -> str:
        return f"MappedLocator({self.delegate!r})"

    async def _wait_handle_core(self) -> JSHandle:
        handle = await self.delegate._wait_handle_core()
        try:
            return await handle.evaluate_handle(self.mapper)
        finally:
            await dispose_quietly(handle)


# ---------- Race ----------


_late_disposals: set[asyncio.Task] = set()


def _late_result(task: asyncio.Task) -> Optional[JSHandle]:
    if task.cancelled() or task.exception() is not None:
        return None
    return task.result()


def _dispose_late_result(task: asyncio.Task) -> None:
    handle = _late_result(task)
    if handle is None:
        return
    disposal = asyncio.ensure_future(dispose_quietly(handle))
    _late_disposals.add(disposal)
    disposal.add_done_callback(_late_disposals.discard)


class RaceLocator(Locator):
    """
    First handle wins. Losers are cancelled; any handle a loser still
    produces is disposed, and a loser's error only surfaces when every
    locator failed (the last error seen is raised).
    """

    def __init__(self, *locators: Locator) -> None:
        super().__init__()
        if not locators:
            raise ValueError("Locator.race() needs at least one locator")
        self.locators = list(locators)
        self.copy_options(self.locators[0])

    def __repr__(self) -> str:
        return f"RaceLocator({len(self.locators)} locators)"

    async def _wait_handle_core(self) -> JSHandle:
        tasks = [asyncio.ensure_future(loc._wait_handle_core()) for loc in self.locators]
        # tasks whose outcome was consumed here; the rest are drained
        settled: set[asyncio.Task] = set()
        winner: Optional[JSHandle] = None
        last_error: Optional[BaseException] = None
        try:
            pending = set(tasks)
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in tasks:
                    if task not in done or task.cancelled():
                        continue
                    exc = task.exception()
                    if exc is not None:
                        settled.add(task)
                        last_error = exc
                    elif winner is None:
                        settled.add(task)
                        winner = task.result()
                if winner is not None:
                    return winner
            if last_error is not None:
                raise last_error
            raise LocatorError("Every raced locator was cancelled.")
        finally:
            try:
                await self._drain([t for t in tasks if t not in settled])
            except BaseException:
                await dispose_quietly(winner)
                raise

    @staticmethod
    async def _drain(losers: list[asyncio.Task]) -> None:
        if not losers:
            return
        for task in losers:
            task.cancel()
        try:
            await asyncio.wait(losers)
        except asyncio.CancelledError:
            # cancelled while draining: finish the cleanup in the background
            for task in losers:
                task.add_done_callback(_dispose_late_result)
            raise
        for task in losers:
            await dispose_quietly(_late_result(task))


__all__ = [
    "NodeLocator",
    "FunctionLocator",
    "DelegatedLocator",
    "FilteredLocator",
    "MappedLocator",
    "RaceLocator",
]
