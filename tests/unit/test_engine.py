from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from domlocator.core.engine import Engine
from domlocator.core.options import ScrollOptions
from domlocator.utils.config import Settings


@pytest.fixture
def engine(registry) -> Engine:
    return Engine(settings=Settings(), registry=registry)


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["click", "hover", "wait"])
async def test_perform_dispatches_simple_actions(engine, action):
    locator = AsyncMock()
    await engine._perform(locator, action, None)
    getattr(locator, action).assert_awaited_once_with()


@pytest.mark.asyncio
async def test_perform_fill_and_scroll(engine):
    locator = AsyncMock()
    await engine._perform(locator, "fill", "hello")
    await engine._perform(locator, "scroll", "250")
    locator.fill.assert_awaited_once_with("hello")
    locator.scroll.assert_awaited_once_with(ScrollOptions(scroll_top=250.0))


@pytest.mark.asyncio
async def test_perform_rejects_bad_input(engine):
    locator = AsyncMock()
    with pytest.raises(ValueError, match="fill needs a value"):
        await engine._perform(locator, "fill", None)
    with pytest.raises(ValueError, match="Unknown action 'drag'"):
        await engine._perform(locator, "drag", None)


def test_load_handlers_skips_known_names(tmp_path: Path, engine):
    cat = tmp_path / "handlers.yaml"
    cat.write_text("handlers:\n  - name: dataTest\n    query_one: \"(n, s) => null\"\n", encoding="utf-8")

    assert engine.load_handlers(cat) == ["dataTest"]
    assert engine.load_handlers(cat) == []
    assert engine.registry.custom_query_handler_names() == ["dataTest"]


def test_load_handlers_without_catalog(engine):
    engine.settings.HANDLERS_FILE = None
    assert engine.load_handlers() == []
