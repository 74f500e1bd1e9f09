from __future__ import annotations

"""Action engine
----------------
Launches the configured Playwright browser, opens a URL and performs one
locator action (click, hover, fill, scroll, wait) against a selector written
in any supported dialect. Returns a small result dict for CLI and script use.
"""

import asyncio
from pathlib import Path
from typing import Optional

from playwright.async_api import async_playwright

from domlocator.core.options import ScrollOptions
from domlocator.core.pw_adapter import page_locator
from domlocator.locators.locator import Locator
from domlocator.selectors.catalog import register_catalog
from domlocator.selectors.registry import CustomQuerySelectorRegistry, default_registry
from domlocator.utils.config import Settings, get_settings
from domlocator.utils.logger import attach_file_logger, detach_file_logger, get_logger, log_with_context
from domlocator.utils.timing import Stopwatch, measure

ACTIONS = ("click", "hover", "fill", "scroll", "wait")


class Engine:
    """Runs single locator actions against a fresh browser context."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[CustomQuerySelectorRegistry] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry or default_registry
        self.log = get_logger(__name__)

    def load_handlers(self, path: Optional[Path] = None) -> list[str]:
        """Register catalog handlers not registered yet (HANDLERS_FILE by default)."""
        path = path or self.settings.HANDLERS_FILE
        if not path:
            return []
        return register_catalog(path, self.registry, skip_existing=True)

    async def _perform(self, locator: Locator, action: str, value: Optional[str]) -> None:
        if action == "click":
            await locator.click()
        elif action == "hover":
            await locator.hover()
        elif action == "fill":
            if value is None:
                raise ValueError("fill needs a value")
            await locator.fill(value)
        elif action == "scroll":
            top = float(value) if value is not None else None
            await locator.scroll(ScrollOptions(scroll_top=top))
        elif action == "wait":
            await locator.wait()
        else:
            raise ValueError(f"Unknown action '{action}' (expected one of {', '.join(ACTIONS)})")

    @measure("engine.run_action", level="INFO")
    async def run_action(
        self,
        url: str,
        selector: str,
        action: str = "click",
        value: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        log_file: Optional[Path] = None,
    ) -> dict:
        """Navigate to `url` and run `action` on `selector`.

        Returns {"ok": True, "elapsed_ms": ...} or
        {"ok": False, "error": str, "error_type": str}.
        """
        s = self.settings
        log = log_with_context(self.log, selector=selector, action=action)
        handler = attach_file_logger(log_file) if log_file else None
        result: dict = {"url": url, "selector": selector, "action": action}
        try:
            self.load_handlers()
            async with async_playwright() as p:
                browser_type = getattr(p, s.BROWSER_TYPE.value)
                browser = await browser_type.launch(**s.playwright_launch_kwargs())
                try:
                    context = await browser.new_context(**s.playwright_context_kwargs())
                    page = await context.new_page()
                    log.info(f"Opening {url}")
                    await page.goto(url, wait_until="domcontentloaded", timeout=s.PAGE_LOAD_TIMEOUT)

                    locator = page_locator(page, selector, registry=self.registry)
                    if timeout_ms is not None:
                        locator.set_timeout(timeout_ms)
                    with Stopwatch() as sw:
                        await self._perform(locator, action, value)
                    log.info(f"{action} on {selector!r} done in {sw.elapsed_ms()} ms")
                    result.update(ok=True, elapsed_ms=sw.elapsed_ms())
                finally:
                    await browser.close()
        except Exception as e:
            log.exception("Action failed:")
            result.update(ok=False, error=str(e), error_type=e.__class__.__name__)
        finally:
            if handler is not None:
                detach_file_logger(handler)
        return result


def run_action(
    url: str,
    selector: str,
    action: str = "click",
    value: Optional[str] = None,
    timeout_ms: Optional[int] = None,
) -> dict:
    """Synchronous shim around Engine.run_action."""
    eng = Engine(settings=get_settings())
    return asyncio.run(eng.run_action(url, selector, action=action, value=value, timeout_ms=timeout_ms))


__all__ = ["ACTIONS", "Engine", "run_action"]
