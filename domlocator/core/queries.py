# domlocator/core/queries.py
from __future__ import annotations

"""Selector queries
-------------------
Frame/element level entry points that route a selector through the dialect
registry to the matching query handler.
"""

from dataclasses import replace
from typing import Optional

from domlocator.core.options import WaitForSelectorOptions
from domlocator.core.protocols import ElementHandle, Frame
from domlocator.selectors.registry import CustomQuerySelectorRegistry, default_registry


def _registry(registry: Optional[CustomQuerySelectorRegistry]) -> CustomQuerySelectorRegistry:
    return registry or default_registry


async def query_selector(
    root: ElementHandle,
    selector: str,
    registry: Optional[CustomQuerySelectorRegistry] = None,
) -> Optional[ElementHandle]:
    """First element under `root` matching `selector`, or None."""
    resolution = _registry(registry).get_query_handler_and_selector(selector)
    return await resolution.handler.query_one(root, resolution.selector)


async def query_selector_all(
    root: ElementHandle,
    selector: str,
    registry: Optional[CustomQuerySelectorRegistry] = None,
) -> list[ElementHandle]:
    resolution = _registry(registry).get_query_handler_and_selector(selector)
    return [handle async for handle in resolution.handler.query_all(root, resolution.selector)]


async def wait_for_selector(
    frame: Optional[Frame],
    selector: str,
    options: Optional[WaitForSelectorOptions] = None,
    root: Optional[ElementHandle] = None,
    registry: Optional[CustomQuerySelectorRegistry] = None,
) -> Optional[ElementHandle]:
    """
    Wait until `selector` matches (in `frame`, or under `root` when given).
    Polling defaults to what the dialect resolution asks for.
    """
    resolution = _registry(registry).get_query_handler_and_selector(selector)
    options = options or WaitForSelectorOptions()
    if options.polling is None:
        options = replace(options, polling=resolution.polling)
    return await resolution.handler.wait_for(frame, root, resolution.selector, options)


__all__ = ["query_selector", "query_selector_all", "wait_for_selector"]
