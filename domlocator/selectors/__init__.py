# domlocator/selectors/__init__.py
"""
Selectors package
-----------------
Selector parsing, dialect handlers and the custom handler registry.
"""

from .aria import AriaQueryOptions, parse_aria_selector
from .handlers import (
    AriaQueryHandler,
    CssQueryHandler,
    CustomQueryHandler,
    Dialect,
    PierceQueryHandler,
    PQueryHandler,
    QueryHandler,
    TextQueryHandler,
    XPathQueryHandler,
)
from .parser import (
    Combinator,
    ParseResult,
    PseudoSelector,
    dump_selector_list,
    load_selector_list,
    parse,
)
from .registry import (
    CustomQuerySelectorRegistry,
    HandlerResolution,
    ScriptInjector,
    clear_custom_query_handlers,
    custom_query_handler_names,
    default_registry,
    get_query_handler_and_selector,
    register_custom_query_handler,
    unregister_custom_query_handler,
)

__all__ = [
    "AriaQueryOptions",
    "parse_aria_selector",
    "Dialect",
    "QueryHandler",
    "CssQueryHandler",
    "XPathQueryHandler",
    "PierceQueryHandler",
    "TextQueryHandler",
    "PQueryHandler",
    "AriaQueryHandler",
    "CustomQueryHandler",
    "Combinator",
    "ParseResult",
    "PseudoSelector",
    "parse",
    "dump_selector_list",
    "load_selector_list",
    "CustomQuerySelectorRegistry",
    "HandlerResolution",
    "ScriptInjector",
    "default_registry",
    "get_query_handler_and_selector",
    "register_custom_query_handler",
    "unregister_custom_query_handler",
    "custom_query_handler_names",
    "clear_custom_query_handlers",
]
