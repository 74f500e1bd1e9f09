"""
domlocator
----------
Selector dialects (CSS, ARIA, XPath, text, shadow-piercing, custom) and
retrying element locators for browser automation.

    from domlocator import page_locator
    await page_locator(page, "aria/Submit").click()
"""

from domlocator.core.options import (
    ClickOptions,
    MouseButton,
    Offset,
    PollingOption,
    ScrollOptions,
    VisibilityOption,
    WaitForSelectorOptions,
)
from domlocator.core.pw_adapter import PlaywrightFrame, function_locator, page_locator
from domlocator.errors import (
    DomLocatorError,
    LocatorError,
    LocatorTimeoutError,
    QueryHandlerError,
    QueryHandlerRegistrationError,
    SelectorError,
    UnknownAriaAttributeError,
    WaitTaskTimeoutError,
)
from domlocator.locators import (
    FilteredLocator,
    FunctionLocator,
    Locator,
    MappedLocator,
    NodeLocator,
    RaceLocator,
)
from domlocator.selectors import (
    Dialect,
    clear_custom_query_handlers,
    custom_query_handler_names,
    get_query_handler_and_selector,
    parse,
    register_custom_query_handler,
    unregister_custom_query_handler,
)

__version__ = "0.1.0"

__all__ = [
    "ClickOptions",
    "MouseButton",
    "Offset",
    "PollingOption",
    "ScrollOptions",
    "VisibilityOption",
    "WaitForSelectorOptions",
    "PlaywrightFrame",
    "page_locator",
    "function_locator",
    "DomLocatorError",
    "SelectorError",
    "UnknownAriaAttributeError",
    "QueryHandlerError",
    "QueryHandlerRegistrationError",
    "WaitTaskTimeoutError",
    "LocatorError",
    "LocatorTimeoutError",
    "Locator",
    "NodeLocator",
    "FunctionLocator",
    "FilteredLocator",
    "MappedLocator",
    "RaceLocator",
    "Dialect",
    "parse",
    "get_query_handler_and_selector",
    "register_custom_query_handler",
    "unregister_custom_query_handler",
    "custom_query_handler_names",
    "clear_custom_query_handlers",
]
