# domlocator/locators/__init__.py
"""
Locators package
----------------
Retrying element locators: leaves bound to a frame, delegating wrappers
(filter/map) and races across several locators.
"""

from .locator import Locator
from .variants import (
    DelegatedLocator,
    FilteredLocator,
    FunctionLocator,
    MappedLocator,
    NodeLocator,
    RaceLocator,
)

__all__ = [
    "Locator",
    "NodeLocator",
    "FunctionLocator",
    "DelegatedLocator",
    "FilteredLocator",
    "MappedLocator",
    "RaceLocator",
]
