# domlocator/selectors/registry.py
from __future__ import annotations

"""Selector dialect registry
---------------------------
Maps a selector string to the query handler that understands it:

  "aria/Submit"            → AriaQueryHandler,   "Submit"
  "xpath=//div"            → XPathQueryHandler,  "//div"
  "myhandler/.item"        → CustomQueryHandler, ".item"
  "div >>> span"           → PQueryHandler,      serialized AST
  "div.card"               → CssQueryHandler,    "div.card"

Built-in prefixes are checked first, then custom handlers in registration
order. Registering a custom handler also queues an amendment script on the
ScriptInjector so every world's in-page utility learns about it.
"""

import json
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, Optional

from domlocator.core.options import PollingOption
from domlocator.errors import QueryHandlerRegistrationError
from domlocator.selectors.handlers import (
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
from domlocator.selectors.parser import parse
from domlocator.utils.logger import get_logger

log = get_logger(__name__)

_NAME_RE = re.compile(r"[a-zA-Z]+")
_SEPARATORS = ("=", "/")
_UTIL_GLOBAL = "DomLocatorUtil"

# Installed when no matcher bundle is configured: enough for custom handlers,
# not for the text/P dialects.
MINIMAL_UTILITY_SOURCE = """module.exports = {
  default: {
    customQuerySelectors: (() => {
      const selectors = new Map();
      return {
        register(name, { queryOne, queryAll }) {
          if (!queryOne && !queryAll) {
            throw new Error("At least one query method must be implemented.");
          }
          selectors.set(name, {
            querySelector: queryOne ?? (async (node, selector) => {
              for await (const found of queryAll(node, selector)) {
                return found;
              }
              return null;
            }),
            querySelectorAll: queryAll ?? (async function* (node, selector) {
              const found = await queryOne(node, selector);
              if (found) {
                yield found;
              }
            }),
          });
        },
        unregister(name) { selectors.delete(name); },
        get(name) { return selectors.get(name); },
        clear() { selectors.clear(); },
      };
    })(),
  },
};"""


# ---------- Script injection ----------


class ScriptInjector:
    """
    Ordered amendment scripts applied on top of the in-page utility source.
    Amendments refer to the utility as ``DomLocatorUtil``; ``build`` rewires
    that name to the module being constructed.
    """

    def __init__(self) -> None:
        self._amendments: list[str] = []
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    @property
    def amendments(self) -> list[str]:
        return list(self._amendments)

    def append(self, statement: str) -> None:
        self._amendments.append(statement)
        self._version += 1

    def pop(self, statement: str) -> None:
        if statement in self._amendments:
            self._amendments.remove(statement)
            self._version += 1

    def build(self, bundle_source: Optional[str] = None) -> str:
        """Expression evaluating to the utility object with all amendments applied."""
        source = bundle_source or MINIMAL_UTILITY_SOURCE
        amendments = "\n".join(a.replace(_UTIL_GLOBAL, "module.exports") for a in self._amendments)
        return f"(() => {{\nconst module = {{}};\n{source}\n{amendments}\nreturn module.exports.default;\n}})()"

    async def inject(
        self,
        callback: Callable[[str], Awaitable[None]],
        *,
        seen_version: Optional[int] = None,
        force: bool = False,
        bundle_source: Optional[str] = None,
    ) -> int:
        """
        Call `callback` with a fresh utility expression when the amendment set
        changed since `seen_version`, or when `force` is set. Returns the
        version the caller is now up to date with.
        """
        version = self._version
        if force or seen_version != version:
            await callback(self.build(bundle_source))
        return version


# ---------- Registry ----------


@dataclass(frozen=True)
class HandlerResolution:
    selector: str
    handler: QueryHandler
    polling: PollingOption
    dialect: Dialect


class CustomQuerySelectorRegistry:
    def __init__(self, injector: Optional[ScriptInjector] = None) -> None:
        self.injector = injector or ScriptInjector()
        self.default_handler = CssQueryHandler()
        self.p_handler = PQueryHandler()
        self._builtins: dict[str, QueryHandler] = {
            "aria": AriaQueryHandler(),
            "pierce": PierceQueryHandler(),
            "text": TextQueryHandler(),
            "xpath": XPathQueryHandler(),
        }
        # name -> (handler, registration amendment)
        self._custom: dict[str, tuple[CustomQueryHandler, str]] = {}

    # ----- lookup -----

    def _prefixed_handlers(self) -> Iterator[tuple[str, QueryHandler]]:
        yield from self._builtins.items()
        for name, (handler, _) in self._custom.items():
            yield name, handler

    def builtin_handler(self, name: str) -> QueryHandler:
        return self._builtins[name]

    def builtin_handler_names(self) -> list[str]:
        return list(self._builtins)

    def get_query_handler_and_selector(self, selector: str) -> HandlerResolution:
        lowered = selector.lower()
        for name, handler in self._prefixed_handlers():
            for separator in _SEPARATORS:
                prefix = f"{name}{separator}".lower()
                if lowered.startswith(prefix):
                    polling = PollingOption.raf if handler.dialect is Dialect.aria else PollingOption.mutation
                    return HandlerResolution(selector[len(prefix):], handler, polling, handler.dialect)

        try:
            result = parse(selector)
        except Exception as exc:
            log.debug(f"Selector parse failed, treating as CSS: {selector!r} ({exc})")
            return HandlerResolution(selector, self.default_handler, PollingOption.mutation, Dialect.css)

        if result.is_pure_css:
            polling = PollingOption.raf if result.has_pseudo_classes else PollingOption.mutation
            return HandlerResolution(selector, self.default_handler, polling, Dialect.css)

        polling = PollingOption.raf if result.has_aria else PollingOption.mutation
        return HandlerResolution(result.json, self.p_handler, polling, Dialect.p)

    # ----- custom handlers -----

    def register_custom_query_handler(
        self,
        name: str,
        query_one: Optional[str] = None,
        query_all: Optional[str] = None,
    ) -> CustomQueryHandler:
        """
        Register in-page matcher scripts under `name`. `query_one` has the
        shape ``(node, selector) => Node | null`` and `query_all`
        ``(node, selector) => Iterable<Node>``; either may be omitted.
        """
        if name in self._builtins:
            raise QueryHandlerRegistrationError(f"Cannot register over built-in query handler: {name}")
        if name in self._custom:
            raise QueryHandlerRegistrationError(f'A query handler named "{name}" already exists')
        if not _NAME_RE.fullmatch(name or ""):
            raise QueryHandlerRegistrationError(
                f'Custom query handler names may only contain [a-zA-Z], got "{name}"'
            )
        if not query_one and not query_all:
            raise QueryHandlerRegistrationError("At least one query method must be implemented.")

        # the in-page registry derives whichever method is missing
        amendment = (
            f"{_UTIL_GLOBAL}.default.customQuerySelectors.register({json.dumps(name)}, {{\n"
            f"  queryOne: {query_one or 'undefined'},\n"
            f"  queryAll: {query_all or 'undefined'},\n"
            f"}});"
        )
        handler = CustomQueryHandler(name)
        self.injector.append(amendment)
        self._custom[name] = (handler, amendment)
        log.debug(f"Registered custom query handler '{name}'")
        return handler

    def unregister_custom_query_handler(self, name: str) -> None:
        entry = self._custom.pop(name, None)
        if entry is None:
            return
        self.injector.pop(entry[1])
        log.debug(f"Unregistered custom query handler '{name}'")

    def custom_query_handler_names(self) -> list[str]:
        return list(self._custom)

    def clear_custom_query_handlers(self) -> None:
        for name in list(self._custom):
            self.unregister_custom_query_handler(name)


default_registry = CustomQuerySelectorRegistry()


def get_query_handler_and_selector(selector: str) -> HandlerResolution:
    return default_registry.get_query_handler_and_selector(selector)


def register_custom_query_handler(
    name: str, query_one: Optional[str] = None, query_all: Optional[str] = None
) -> CustomQueryHandler:
    return default_registry.register_custom_query_handler(name, query_one=query_one, query_all=query_all)


def unregister_custom_query_handler(name: str) -> None:
    default_registry.unregister_custom_query_handler(name)


def custom_query_handler_names() -> list[str]:
    return default_registry.custom_query_handler_names()


def clear_custom_query_handlers() -> None:
    default_registry.clear_custom_query_handlers()


__all__ = [
    "ScriptInjector",
    "MINIMAL_UTILITY_SOURCE",
    "HandlerResolution",
    "CustomQuerySelectorRegistry",
    "default_registry",
    "get_query_handler_and_selector",
    "register_custom_query_handler",
    "unregister_custom_query_handler",
    "custom_query_handler_names",
    "clear_custom_query_handlers",
]
