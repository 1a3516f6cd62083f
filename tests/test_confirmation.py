from __future__ import annotations

import asyncio
import threading

import pytest

from plotty.confirmation import ConfirmationBroker, ConfirmationChoice
from plotty.errors import ConfirmationTimeoutError


def test_tokens_are_single_use() -> None:
    async def _run():
        broker = ConfirmationBroker(timeout_seconds=1)
        pending = broker.open("delete plot?")
        first = broker.resolve(pending.cancel_token)
        again = broker.resolve(pending.cancel_token)
        other = broker.resolve(pending.confirm_token)
        return first, again, other, await broker.wait(pending)

    first, again, other, choice = asyncio.run(_run())

    assert (first, again, other) == (True, False, False)
    assert choice is ConfirmationChoice.CANCELLED


def test_unknown_token_is_refused() -> None:
    assert ConfirmationBroker().resolve("nope") is False


def test_resolve_from_another_thread() -> None:
    async def _run() -> ConfirmationChoice:
        broker = ConfirmationBroker(timeout_seconds=2)
        pending = broker.open("delete plot?")
        threading.Timer(0.01, broker.resolve, args=(pending.confirm_token,)).start()
        return await broker.wait(pending)

    assert asyncio.run(_run()) is ConfirmationChoice.CONFIRMED


def test_timeout_invalidates_both_tokens() -> None:
    async def _run():
        broker = ConfirmationBroker(timeout_seconds=0.01)
        pending = broker.open("delete plot?")
        with pytest.raises(ConfirmationTimeoutError, match="Timed out."):
            await broker.wait(pending)
        return broker.resolve(pending.confirm_token), broker.resolve(pending.cancel_token)

    assert asyncio.run(_run()) == (False, False)
