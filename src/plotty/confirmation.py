"""Two-token, single-use confirmations with a bounded answer window."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4

from plotty.errors import ConfirmationTimeoutError


class ConfirmationChoice(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class PendingConfirmation:
    """A question shown to the requester together with its two answer tokens."""

    subject: str
    confirm_token: str
    cancel_token: str
    _future: asyncio.Future[ConfirmationChoice] = field(repr=False)
    _loop: asyncio.AbstractEventLoop = field(repr=False)


class ConfirmationBroker:
    """Hands out confirmation tokens and routes the answering token back to its waiter.

    :meth:`resolve` may be called from any thread. Each token is accepted once;
    using either token of a pair (or letting the window elapse) invalidates both.
    """

    def __init__(self, timeout_seconds: float = 60.0, *, logger: logging.Logger | None = None) -> None:
        self._timeout_seconds = timeout_seconds
        self._logger = logger or logging.getLogger("plotty.confirmation")
        self._lock = threading.Lock()
        self._pending: dict[str, tuple[PendingConfirmation, ConfirmationChoice]] = {}

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def open(self, subject: str) -> PendingConfirmation:
        loop = asyncio.get_running_loop()
        pending = PendingConfirmation(
            subject=subject,
            confirm_token=uuid4().hex,
            cancel_token=uuid4().hex,
            _future=loop.create_future(),
            _loop=loop,
        )
        with self._lock:
            self._pending[pending.confirm_token] = (pending, ConfirmationChoice.CONFIRMED)
            self._pending[pending.cancel_token] = (pending, ConfirmationChoice.CANCELLED)
        return pending

    def resolve(self, token: str) -> bool:
        """Answer a pending confirmation; returns ``False`` for unknown or spent tokens."""
        with self._lock:
            entry = self._pending.get(token)
            if entry is None:
                return False
            pending, choice = entry
            self._discard(pending)

        pending._loop.call_soon_threadsafe(_settle, pending._future, choice)
        return True

    async def wait(self, pending: PendingConfirmation) -> ConfirmationChoice:
        try:
            return await asyncio.wait_for(asyncio.shield(pending._future), timeout=self._timeout_seconds)
        except asyncio.TimeoutError as exc:
            self.discard(pending)
            self._logger.info("confirmation_timed_out", extra={"subject": pending.subject})
            raise ConfirmationTimeoutError("Timed out.") from exc

    def discard(self, pending: PendingConfirmation) -> None:
        """Invalidate both tokens of ``pending``; safe to call more than once."""
        with self._lock:
            self._discard(pending)

    def _discard(self, pending: PendingConfirmation) -> None:
        self._pending.pop(pending.confirm_token, None)
        self._pending.pop(pending.cancel_token, None)


def _settle(future: asyncio.Future[ConfirmationChoice], choice: ConfirmationChoice) -> None:
    if not future.done():
        future.set_result(choice)
