"""
Core package for domlocator.
Lightweight package init to avoid import cycles.

Consumers should import submodules directly, e.g.:
  from domlocator.core.options import ClickOptions, WaitForSelectorOptions
  from domlocator.core.queries import query_selector, wait_for_selector
  from domlocator.core.pw_adapter import PlaywrightFrame, page_locator
  from domlocator.core.engine import Engine
"""

__all__: list[str] = []
