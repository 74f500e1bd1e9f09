import pytest

from domlocator.selectors.registry import CustomQuerySelectorRegistry

from fakes import FakeFrame


@pytest.fixture
def frame() -> FakeFrame:
    return FakeFrame()


@pytest.fixture
def registry() -> CustomQuerySelectorRegistry:
    return CustomQuerySelectorRegistry()
