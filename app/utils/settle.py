"""
Settle-all fan-out: run one coroutine per item concurrently and collect every
outcome, never letting one failure cancel or hide the others.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class Outcome(Generic[T, R]):
    item: T
    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle_all(
    items: Iterable[T], func: Callable[[T], Awaitable[R]]
) -> list[Outcome[T, R]]:
    """
    Await func(item) for every item concurrently.

    Returns one Outcome per item, in input order. Exceptions are captured per
    item; BaseExceptions that are not Exceptions (cancellation) propagate.
    """
    items = list(items)
    if not items:
        return []

    results: list[Any] = await asyncio.gather(
        *(func(item) for item in items), return_exceptions=True
    )

    outcomes = []
    for item, result in zip(items, results):
        if isinstance(result, Exception):
            outcomes.append(Outcome(item=item, error=result))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcomes.append(Outcome(item=item, value=result))
    return outcomes


def failures(outcomes: list[Outcome[T, R]]) -> list[Outcome[T, R]]:
    return [o for o in outcomes if not o.ok]
