# domlocator/core/options.py
from __future__ import annotations

"""Option structs shared by query handlers, locators and page adapters."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union


class VisibilityOption(str, Enum):
    visible = "visible"
    hidden = "hidden"


class PollingOption(str, Enum):
    raf = "raf"            # every animation frame
    mutation = "mutation"  # on DOM mutations


class MouseButton(str, Enum):
    left = "left"
    right = "right"
    middle = "middle"


@dataclass
class Offset:
    x: float
    y: float


@dataclass
class WaitForSelectorOptions:
    timeout: Optional[int] = None  # ms; None = collaborator default
    visible: bool = False
    hidden: bool = False
    polling: Optional[PollingOption] = None

    @classmethod
    def for_visibility(cls, visibility: Optional[VisibilityOption], timeout: Optional[int]) -> "WaitForSelectorOptions":
        return cls(
            timeout=timeout,
            visible=visibility == VisibilityOption.visible,
            hidden=visibility == VisibilityOption.hidden,
        )


Binding = Callable[..., Awaitable[Any]]


@dataclass
class WaitForFunctionOptions:
    timeout: Optional[int] = None
    # an int polls on a fixed interval in ms
    polling: Union[PollingOption, int] = PollingOption.raf
    root: Any = None
    bindings: dict[str, Binding] = field(default_factory=dict)


@dataclass
class ClickOptions:
    button: MouseButton = MouseButton.left
    count: int = 1
    delay: int = 0
    offset: Optional[Offset] = None


@dataclass
class ScrollOptions:
    scroll_top: Optional[float] = None
    scroll_left: Optional[float] = None


# Locator-facing names
LocatorClickOptions = ClickOptions
LocatorScrollOptions = ScrollOptions


__all__ = [
    "VisibilityOption",
    "PollingOption",
    "MouseButton",
    "Offset",
    "WaitForSelectorOptions",
    "WaitForFunctionOptions",
    "ClickOptions",
    "ScrollOptions",
    "LocatorClickOptions",
    "LocatorScrollOptions",
    "Binding",
]
