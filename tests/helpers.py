"""
Fakes and polling helpers shared by the monitor tests.
"""

from __future__ import annotations

import asyncio
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

from prometheus_client import REGISTRY


def make_client(balance: int | None = None, side_effect=None) -> MagicMock:
    """Fake AsyncWeb3 exposing `eth.get_balance`."""
    client = MagicMock()
    client.eth.get_balance = AsyncMock(return_value=balance, side_effect=side_effect)
    return client


def sample(metric: str, **labels: str) -> float | None:
    return REGISTRY.get_sample_value(metric, labels)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)
