"""Plot lifecycle orchestration.

Keeps three systems in step for every plot-affecting request: the collision
check against the region registry, the live world tool and the registry
itself. The world tool and the registry cannot be rolled back together, so the
registry is only ever written after the complete command sequence succeeded.
A crash between those two steps leaves the world tool ahead of the registry.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager

from plotty import commands
from plotty.adapters.world_command import WorldExecutor, run_sequence
from plotty.confirmation import ConfirmationBroker, ConfirmationChoice, PendingConfirmation
from plotty.errors import (
    CollisionError,
    ConfirmationTimeoutError,
    ExternalApplicationError,
    NotOwnerError,
    PlotNotFoundError,
    TransportError,
    ValidationError,
)
from plotty.geometry import Perimeter
from plotty.models import DeletionOutcome, Region, plot_name_for
from plotty.registry import RegionRegistry

ConfirmationPrompt = Callable[[PendingConfirmation], Awaitable[None] | None]

COLLISION_MODES = ("corners", "axis")


class PlotLifecycle:
    """Create, redefine, delete and share plots on behalf of their owners."""

    def __init__(
        self,
        registry: RegionRegistry,
        executor: WorldExecutor,
        *,
        confirmations: ConfirmationBroker | None = None,
        collision_mode: str = "corners",
        serialize_commits: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        if collision_mode not in COLLISION_MODES:
            raise ValueError(f"Unknown collision mode {collision_mode!r}, expected one of {COLLISION_MODES}")

        self._registry = registry
        self._executor = executor
        self._confirmations = confirmations or ConfirmationBroker()
        self._collision_mode = collision_mode
        self._commit_lock: asyncio.Lock | None = asyncio.Lock() if serialize_commits else None
        self._logger = logger or logging.getLogger("plotty.lifecycle")

    @property
    def confirmations(self) -> ConfirmationBroker:
        return self._confirmations

    def list_plots(self, owner: int) -> list[Region]:
        return self._registry.list_by_owner(owner)

    def find_collisions(self, owner: int, perimeter: Perimeter) -> list[Region]:
        """Regions of other owners that collide with ``perimeter``.

        Plots of the same owner may overlap each other and are never reported.
        """
        collides = perimeter.overlaps if self._collision_mode == "axis" else perimeter.intersects
        return [
            region
            for region in self._registry.list_all()
            if region.owner != owner and collides(region.perimeter)
        ]

    async def create(self, owner: int, owner_name: str, perimeter: Perimeter, world: str = "world") -> Region:
        """Claim a new plot named after the owner and their plot counter."""
        _require_token("owner name", owner_name)
        _require_token("world", world)
        perimeter.validate()

        async with self._commit_section():
            counter = self._registry.get_owner_counter(owner) or 0
            name = plot_name_for(owner_name, counter)
            if self._registry.get_by_name(name) is not None:
                raise ValidationError(f"A plot named {name} already exists.")

            self._check_collisions(owner, name, perimeter)

            region = Region(owner=owner, name=name, perimeter=perimeter)
            await self._apply(
                "create",
                region.name,
                [
                    *commands.select_perimeter(perimeter, world),
                    commands.create_region(region.name, owner_name.lower()),
                ],
            )

            self._registry.increment_owner_counter(owner)
            self._registry.insert(region)

        self._logger.info(
            "plot_created",
            extra={"plot": region.name, "owner": owner, "world": world, "size": perimeter.size()},
        )
        return region

    async def redefine(self, owner: int, plot_name: str, perimeter: Perimeter, world: str = "world") -> Region:
        """Move the boundaries of an existing plot; name and owner stay the same."""
        async with self._commit_section():
            region = self._owned_plot(owner, plot_name, "You can not update this plot.")
            _require_token("world", world)
            perimeter.validate()
            self._check_collisions(owner, region.name, perimeter)

            await self._apply(
                "redefine",
                region.name,
                [*commands.select_perimeter(perimeter, world), commands.update_region(region.name)],
            )

            self._registry.update_perimeter(region.name, perimeter)

        self._logger.info("plot_redefined", extra={"plot": region.name, "owner": owner, "world": world})
        return region.with_perimeter(perimeter)

    async def delete(
        self,
        owner: int,
        plot_name: str,
        world: str = "world",
        *,
        prompt: ConfirmationPrompt,
    ) -> DeletionOutcome:
        """Delete a plot after the owner confirmed it through ``prompt``.

        ``prompt`` receives the pending confirmation and is expected to present
        its two tokens; the answer is reported through :attr:`confirmations`.
        """
        region = self._owned_plot(owner, plot_name, "You can not delete this plot.")
        _require_token("world", world)

        pending = self._confirmations.open(f"Do you really want to delete your plot {region.name}?")
        try:
            shown = prompt(pending)
            if inspect.isawaitable(shown):
                await shown
            choice = await self._confirmations.wait(pending)
        except ConfirmationTimeoutError:
            self._logger.info("plot_delete_timed_out", extra={"plot": region.name, "owner": owner})
            raise
        finally:
            self._confirmations.discard(pending)

        if choice is ConfirmationChoice.CANCELLED:
            self._logger.info("plot_delete_cancelled", extra={"plot": region.name, "owner": owner})
            return DeletionOutcome.CANCELLED

        async with self._commit_section():
            # The plot may have changed hands or vanished while the owner was deciding.
            region = self._owned_plot(owner, region.name, "You can not delete this plot.")
            await self._apply("delete", region.name, [commands.delete_region(region.name, world)])
            self._registry.delete(region.name)

        self._logger.info("plot_deleted", extra={"plot": region.name, "owner": owner, "world": world})
        return DeletionOutcome.DELETED

    async def add_member(self, owner: int, plot_name: str, member: str, world: str = "world") -> None:
        region = self._owned_plot(owner, plot_name, "You can not alter the members of this plot.")
        _require_token("member name", member)
        _require_token("world", world)
        await self._apply("add_member", region.name, [commands.add_member(region.name, member, world)])
        self._logger.info("plot_member_added", extra={"plot": region.name, "member": member})

    async def remove_member(self, owner: int, plot_name: str, member: str, world: str = "world") -> None:
        region = self._owned_plot(owner, plot_name, "You can not alter the members of this plot.")
        _require_token("member name", member)
        _require_token("world", world)
        await self._apply("remove_member", region.name, [commands.remove_member(region.name, member, world)])
        self._logger.info("plot_member_removed", extra={"plot": region.name, "member": member})

    def _owned_plot(self, owner: int, plot_name: str, denial: str) -> Region:
        name = plot_name.lower()
        region = self._registry.get_by_name(name)
        if region is None:
            self._logger.info("plot_not_found", extra={"plot": name, "owner": owner})
            raise PlotNotFoundError(denial)
        if region.owner != owner:
            self._logger.info("plot_access_denied", extra={"plot": name, "owner": owner})
            raise NotOwnerError(denial)
        return region

    def _check_collisions(self, owner: int, name: str, perimeter: Perimeter) -> None:
        collisions = self.find_collisions(owner, perimeter)
        if collisions:
            self._logger.info(
                "plot_collision",
                extra={"plot": name, "owner": owner, "collisions": [region.name for region in collisions]},
            )
            raise CollisionError(len(collisions))

    def _commit_section(self) -> AbstractAsyncContextManager[object]:
        if self._commit_lock is None:
            return contextlib.nullcontext()
        return self._commit_lock

    async def _apply(self, operation: str, plot: str, sequence: list[str]) -> None:
        """Run one command sequence on a fresh world tool session, without retries."""
        try:
            await asyncio.to_thread(self._run_session, sequence)
        except ExternalApplicationError as exc:
            self._logger.warning(
                "world_command_rejected",
                extra={"operation": operation, "plot": plot, "response": exc.response},
            )
            raise
        except TransportError:
            self._logger.exception("world_transport_failed", extra={"operation": operation, "plot": plot})
            raise

    def _run_session(self, sequence: list[str]) -> list[str]:
        with self._executor.session() as connection:
            return run_sequence(connection, sequence)


def _require_token(label: str, value: str) -> None:
    """Names end up inside space-separated commands, so they must be single tokens."""
    if not value or any(ch.isspace() for ch in value):
        raise ValidationError(f"Invalid {label}: {value!r}")

