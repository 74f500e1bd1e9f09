"""Exception hierarchy for domlocator."""

from __future__ import annotations


class DomLocatorError(Exception):
    """Base exception for all domlocator errors."""


class SelectorError(DomLocatorError):
    """A selector could not be interpreted."""


class UnknownAriaAttributeError(SelectorError):
    def __init__(self, attribute: str) -> None:
        self.attribute = attribute
        super().__init__(f'Unknown aria attribute "{attribute}" in selector')


class QueryHandlerError(DomLocatorError):
    pass


class QueryHandlerRegistrationError(QueryHandlerError):
    """Raised synchronously when a custom query handler cannot be registered."""


class WaitTaskTimeoutError(DomLocatorError):
    """A remote polling task (selector or function wait) failed or timed out."""


class LocatorError(DomLocatorError):
    """A single locator attempt failed; the retry loop treats it as transient."""


class LocatorTimeoutError(LocatorError, TimeoutError):
    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"Timed out after waiting {timeout_ms}ms")


__all__ = [
    "DomLocatorError",
    "SelectorError",
    "UnknownAriaAttributeError",
    "QueryHandlerError",
    "QueryHandlerRegistrationError",
    "WaitTaskTimeoutError",
    "LocatorError",
    "LocatorTimeoutError",
]
