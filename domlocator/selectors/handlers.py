# domlocator/selectors/handlers.py
from __future__ import annotations

"""Query handlers
-----------------
A query handler is a pair of in-page script templates, ``query_selector``
(first match) and ``query_selector_all`` (async iterable of matches). Only
one needs to be authored; the other is synthesized from it. The host side
evaluates them in the element's world, turns remote iterators into element
handles and hands ``query_selector`` to the frame's polling primitive for
waits.
"""

import json
from contextlib import aclosing
from enum import Enum
from typing import Any, AsyncIterator, Optional

from domlocator.core.lazy_arg import utility_arg
from domlocator.core.options import (
    Binding,
    PollingOption,
    WaitForFunctionOptions,
    WaitForSelectorOptions,
)
from domlocator.core.protocols import ElementHandle, Frame, JSHandle
from domlocator.errors import QueryHandlerError, WaitTaskTimeoutError
from domlocator.selectors.aria import parse_aria_selector
from domlocator.utils.logger import get_logger

log = get_logger(__name__)


class Dialect(str, Enum):
    css = "css"
    aria = "aria"
    pierce = "pierce"
    text = "text"
    xpath = "xpath"
    p = "p"            # CSS extended with >>>, >>>> and ::-p-*
    custom = "custom"


_PLACEHOLDER = "__QUERY_FUNCTION__"

_ALL_FROM_ONE = """async function* (node, selector, util) {
  const querySelector = __QUERY_FUNCTION__;
  const result = await querySelector(node, selector, util);
  if (result) {
    yield result;
  }
}"""

_ONE_FROM_ALL = """async (node, selector, util) => {
  const querySelectorAll = __QUERY_FUNCTION__;
  const results = querySelectorAll(node, selector, util);
  for await (const result of results) {
    return result;
  }
  return null;
}"""

# Runs in the isolated world on every polling tick.
_WAIT_PREDICATE = """async (util, query, selector, root, visible) => {
  if (!util) {
    return;
  }
  const querySelector = new Function(`return (${query});`)();
  const node = await querySelector(root || document, selector, util);
  if (!node) {
    return visible === false;
  }
  if (visible === undefined) {
    return node;
  }
  const element = node.nodeType === Node.TEXT_NODE ? node.parentElement : node;
  const style = window.getComputedStyle(element);
  const rect = element.getBoundingClientRect();
  const isVisible =
    !!style &&
    style.visibility !== 'hidden' &&
    style.visibility !== 'collapse' &&
    rect.width > 0 && rect.height > 0 && rect.right > 0 && rect.bottom > 0;
  return visible === isVisible ? node : false;
}"""

_AS_ASYNC_ITERATOR = "(iterable) => (async function* () { yield* iterable; })()"

_NEXT_BATCH = """async (iterator, size) => {
  const results = [];
  while (results.length < size) {
    const result = await iterator.next();
    if (result.done) {
      break;
    }
    results.push(result.value);
  }
  return results;
}"""

DEFAULT_BATCH_SIZE = 20


async def dispose_quietly(handle: Optional[JSHandle]) -> None:
    """Dispose `handle` on a cleanup path; a failed dispose must not mask the original error."""
    if handle is None:
        return
    try:
        await handle.dispose()
    except Exception as exc:
        log.debug(f"Ignoring dispose failure: {exc!r}")


async def transpose_iterable_handle(handle: JSHandle) -> AsyncIterator[JSHandle]:
    """
    Yield one handle per item of a remote (async) iterable, fetching items in
    doubling batches. Items fetched but not consumed are disposed on close.
    """
    iterator = await handle.evaluate_handle(_AS_ASYNC_ITERATOR)
    try:
        size = DEFAULT_BATCH_SIZE
        while True:
            batch = await iterator.evaluate_handle(_NEXT_BATCH, size)
            try:
                properties = await batch.get_properties()
            finally:
                await batch.dispose()

            pending = list(properties.values())
            try:
                while pending:
                    yield pending.pop(0)
            finally:
                for leftover in pending:
                    await dispose_quietly(leftover)

            if len(properties) < size:
                return
            size <<= 1
    finally:
        await dispose_quietly(iterator)


class QueryHandler:
    """Base handler; subclasses author at least one of the two templates."""

    dialect: Dialect = Dialect.css
    polling: PollingOption = PollingOption.mutation

    def __init__(self, query_selector: Optional[str] = None, query_selector_all: Optional[str] = None) -> None:
        if query_selector:
            self._query_selector = query_selector
        if query_selector_all:
            self._query_selector_all = query_selector_all

    _query_selector: Optional[str] = None
    _query_selector_all: Optional[str] = None

    @property
    def query_selector(self) -> str:
        if self._query_selector:
            return self._query_selector
        if not self._query_selector_all:
            raise QueryHandlerError("Cannot create default query selector")
        self._query_selector = _ONE_FROM_ALL.replace(_PLACEHOLDER, self._query_selector_all)
        return self._query_selector

    @property
    def query_selector_all(self) -> str:
        if self._query_selector_all:
            return self._query_selector_all
        self._query_selector_all = _ALL_FROM_ONE.replace(_PLACEHOLDER, self.query_selector)
        return self._query_selector_all

    def bindings(self) -> dict[str, Binding]:
        """Extra page bindings the templates call into (none by default)."""
        return {}

    async def query_one(self, element: ElementHandle, selector: str) -> Optional[ElementHandle]:
        result = await element.evaluate_handle(self.query_selector, selector, utility_arg())
        found = result.as_element()
        if found is not None:
            return found
        await result.dispose()
        return None

    async def query_all(self, element: ElementHandle, selector: str) -> AsyncIterator[ElementHandle]:
        """
        Lazily yield every match. Each call re-runs the remote generator; the
        sequence is not restartable.
        """
        handle = await element.evaluate_handle(self.query_selector_all, selector, utility_arg())
        try:
            async with aclosing(transpose_iterable_handle(handle)) as items:
                async for item in items:
                    found = item.as_element()
                    if found is None:
                        await item.dispose()
                        continue
                    yield found
        finally:
            await dispose_quietly(handle)

    async def wait_for(
        self,
        frame: Optional[Frame],
        element: Optional[ElementHandle],
        selector: str,
        options: Optional[WaitForSelectorOptions] = None,
        bindings: Optional[dict[str, Binding]] = None,
    ) -> Optional[ElementHandle]:
        """
        Poll in the isolated world until `selector` matches under `element`
        (or the document) and satisfies the requested visibility.
        Returns None when waiting for `hidden` succeeds without a node.
        """
        options = options or WaitForSelectorOptions()
        adopted: Optional[ElementHandle] = None
        if element is not None:
            frame = element.frame
            adopted = await frame.isolated_world.adopt_handle(element)
        if frame is None:
            raise QueryHandlerError("wait_for needs a frame or a root element")

        wants_visibility = options.visible or options.hidden
        args: list[Any] = [utility_arg(), self.query_selector, selector, adopted]
        # the predicate distinguishes "no visibility check" by an undefined arg
        if wants_visibility:
            args.append(options.visible)

        merged_bindings = dict(self.bindings())
        merged_bindings.update(bindings or {})
        polling = PollingOption.raf if wants_visibility else (options.polling or self.polling)

        handle: Optional[JSHandle] = None
        try:
            try:
                handle = await frame.isolated_world.wait_for_function(
                    _WAIT_PREDICATE,
                    WaitForFunctionOptions(
                        timeout=options.timeout,
                        polling=polling,
                        root=adopted,
                        bindings=merged_bindings,
                    ),
                    *args,
                )
            except Exception as exc:
                raise WaitTaskTimeoutError(f"Waiting for selector `{selector}` failed: {exc}") from exc
            finally:
                await dispose_quietly(adopted)

            found = handle.as_element()
            if found is None:
                await handle.dispose()
                return None
            return await frame.main_world.transfer_handle(found)
        except BaseException:
            # includes cancellation landing after the page produced a result
            await dispose_quietly(handle)
            raise


# ---------- built-in dialects ----------


class CssQueryHandler(QueryHandler):
    dialect = Dialect.css

    def __init__(self) -> None:
        super().__init__(
            query_selector="""(element, selector) => {
  if ('querySelector' in element) {
    return element.querySelector(selector);
  }
  return null;
}""",
            query_selector_all="""(element, selector) => {
  if ('querySelectorAll' in element) {
    return element.querySelectorAll(selector);
  }
  return [];
}""",
        )


class XPathQueryHandler(QueryHandler):
    dialect = Dialect.xpath

    def __init__(self) -> None:
        super().__init__(
            query_selector="""(element, selector) => {
  const doc = element.ownerDocument || document;
  return doc.evaluate(selector, element, null, XPathResult.FIRST_ORDERED_NODE_TYPE).singleNodeValue;
}""",
            query_selector_all="""function* (element, selector) {
  const doc = element.ownerDocument || document;
  const iterator = doc.evaluate(selector, element, null, XPathResult.ORDERED_NODE_ITERATOR_TYPE);
  const items = [];
  let item;
  while ((item = iterator.iterateNext())) {
    items.push(item);
  }
  yield* items;
}""",
        )


class PierceQueryHandler(QueryHandler):
    """CSS matching that descends into every open shadow root."""

    dialect = Dialect.pierce

    def __init__(self) -> None:
        super().__init__(
            query_selector="""(root, selector) => {
  let found = null;
  const search = (node) => {
    const walker = document.createTreeWalker(node, NodeFilter.SHOW_ELEMENT);
    do {
      const current = walker.currentNode;
      if (current.shadowRoot) {
        search(current.shadowRoot);
      }
      if (current instanceof ShadowRoot) {
        continue;
      }
      if (current !== node && !found && current.matches(selector)) {
        found = current;
      }
    } while (!found && walker.nextNode());
  };
  search(root instanceof Document ? root.documentElement : root);
  return found;
}""",
            query_selector_all="""(root, selector) => {
  const result = [];
  const collect = (node) => {
    const walker = document.createTreeWalker(node, NodeFilter.SHOW_ELEMENT);
    do {
      const current = walker.currentNode;
      if (current.shadowRoot) {
        collect(current.shadowRoot);
      }
      if (current instanceof ShadowRoot) {
        continue;
      }
      if (current !== node && current.matches(selector)) {
        result.push(current);
      }
    } while (walker.nextNode());
  };
  collect(root instanceof Document ? root.documentElement : root);
  return result;
}""",
        )


class TextQueryHandler(QueryHandler):
    dialect = Dialect.text

    def __init__(self) -> None:
        super().__init__(
            query_selector_all="(element, selector, util) => util.textQuerySelectorAll(element, selector)",
        )


class PQueryHandler(QueryHandler):
    """Receives the serialized selector AST produced by the parser."""

    dialect = Dialect.p

    def __init__(self) -> None:
        super().__init__(
            query_selector="(element, selector, util) => util.pQuerySelector(element, selector)",
            query_selector_all="(element, selector, util) => util.pQuerySelectorAll(element, selector)",
        )


class AriaQueryHandler(QueryHandler):
    """
    Accessible name/role matching. Host side it asks the accessibility tree;
    in-page polling reaches back to the host through the
    ``__ariaQuerySelector`` binding.
    """

    dialect = Dialect.aria
    polling = PollingOption.raf
    BINDING_NAME = "__ariaQuerySelector"

    def __init__(self) -> None:
        super().__init__(
            query_selector="""async (node, selector) => {
  return globalThis.__ariaQuerySelector(node, selector);
}""",
        )

    def bindings(self) -> dict[str, Binding]:
        return {self.BINDING_NAME: self.query_one}

    async def query_all(self, element: ElementHandle, selector: str) -> AsyncIterator[ElementHandle]:
        options = parse_aria_selector(selector)
        pending = list(await element.query_ax_tree(options.name, options.role))
        try:
            while pending:
                yield pending.pop(0)
        finally:
            for leftover in pending:
                await dispose_quietly(leftover)

    async def query_one(self, element: ElementHandle, selector: str) -> Optional[ElementHandle]:
        async with aclosing(self.query_all(element, selector)) as results:
            async for found in results:
                return found
        return None


class CustomQueryHandler(QueryHandler):
    """Forwards to a handler registered in the in-page ``customQuerySelectors`` map."""

    dialect = Dialect.custom

    def __init__(self, name: str) -> None:
        self.name = name
        key = json.dumps(name)
        super().__init__(
            query_selector=f"""(node, selector, util) => {{
  return util.customQuerySelectors.get({key}).querySelector(node, selector);
}}""",
            query_selector_all=f"""(node, selector, util) => {{
  return util.customQuerySelectors.get({key}).querySelectorAll(node, selector);
}}""",
        )


__all__ = [
    "Dialect",
    "QueryHandler",
    "CssQueryHandler",
    "XPathQueryHandler",
    "PierceQueryHandler",
    "TextQueryHandler",
    "PQueryHandler",
    "AriaQueryHandler",
    "CustomQueryHandler",
    "transpose_iterable_handle",
    "dispose_quietly",
    "DEFAULT_BATCH_SIZE",
]
