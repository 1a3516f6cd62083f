"""Boundary for the live world tool (WorldEdit/WorldGuard behind a command transport)."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from typing import Protocol

from plotty.errors import ExternalApplicationError

# Colour code WorldEdit and WorldGuard put in front of error replies.
ERR_PREFIX = "§c"


@dataclass(frozen=True, slots=True)
class WorldCommand:
    """Canonical command payload directed to the world tool."""

    command: str


class WorldConnection(Protocol):
    """An open, authenticated session with the world tool."""

    def send(self, payload: WorldCommand) -> str:
        """Dispatch a command and return the tool's reply text.

        Raises :class:`plotty.errors.TransportError` when the transport fails.
        """


class WorldExecutor(Protocol):
    """Factory for scoped world tool sessions."""

    def session(self) -> AbstractContextManager[WorldConnection]:
        """Open a connection that is closed again when the block exits."""


def check_response(response: str) -> str:
    """Raise :class:`ExternalApplicationError` if the reply carries the error marker."""
    if response.startswith(ERR_PREFIX):
        raise ExternalApplicationError(response)
    return response


def run_sequence(connection: WorldConnection, commands: list[str]) -> list[str]:
    """Send ``commands`` in order, stopping at the first failure."""
    return [check_response(connection.send(WorldCommand(command=command))) for command in commands]


@dataclass(slots=True)
class _EchoConnection:
    sent: list[str]

    def send(self, payload: WorldCommand) -> str:
        self.sent.append(payload.command)
        return f"executed: {payload.command}"


@dataclass(slots=True)
class EchoWorldExecutor:
    """Fallback executor for dry runs; records commands instead of applying them."""

    sent: list[str] = field(default_factory=list)

    @contextmanager
    def session(self) -> Iterator[WorldConnection]:
        yield _EchoConnection(self.sent)
