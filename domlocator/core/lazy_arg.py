# domlocator/core/lazy_arg.py
from __future__ import annotations

from typing import Any, Awaitable, Callable, Iterable


class LazyArg:
    """
    An evaluation argument computed against the world that runs the script,
    right before the call (e.g. the in-page utility handle, which only the
    executing world knows).
    """

    __slots__ = ("_resolver",)

    def __init__(self, resolver: Callable[[Any], Awaitable[Any]]) -> None:
        self._resolver = resolver

    async def resolve(self, world: Any) -> Any:
        return await self._resolver(world)


async def resolve_args(world: Any, args: Iterable[Any]) -> list[Any]:
    """Resolve every LazyArg in `args` against `world`; other values pass through."""
    out: list[Any] = []
    for arg in args:
        out.append(await arg.resolve(world) if isinstance(arg, LazyArg) else arg)
    return out


def utility_arg() -> LazyArg:
    """LazyArg resolving to the world's shared matcher utility handle."""
    return LazyArg(lambda world: world.get_utility())


__all__ = ["LazyArg", "resolve_args", "utility_arg"]
