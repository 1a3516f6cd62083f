"""CLI entrypoint for plotty."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Awaitable, Callable
from typing import TypeVar
from uuid import UUID

import typer
from rich import print

from plotty.adapters import EchoWorldExecutor, RconWorldExecutor, WorldExecutor
from plotty.confirmation import ConfirmationBroker, PendingConfirmation
from plotty.config import settings
from plotty.errors import PlotError
from plotty.geometry import Perimeter
from plotty.idcache import MojangProfileClient
from plotty.lifecycle import PlotLifecycle
from plotty.registry import JsonRegionRegistry, RegionRegistry
from plotty.telemetry import configure_logging

app = typer.Typer(help="Claim and manage plots on a community Minecraft server")

T = TypeVar("T")

WORLD_HELP = "Target world, e.g. world, world_nether or world_the_end"
DRY_RUN_HELP = "Print the world commands instead of sending them; nothing is stored"


def _build_executor(dry_run: bool) -> WorldExecutor:
    if dry_run:
        return EchoWorldExecutor()
    return RconWorldExecutor(
        address=settings.rcon_address,
        password=settings.rcon_password,
        timeout_seconds=settings.rcon_timeout_seconds,
    )


def _build_registry(dry_run: bool) -> RegionRegistry:
    registry = JsonRegionRegistry(settings.registry_path)
    return registry.snapshot() if dry_run else registry


def _build_lifecycle(executor: WorldExecutor, dry_run: bool = False) -> PlotLifecycle:
    return PlotLifecycle(
        _build_registry(dry_run),
        executor,
        confirmations=ConfirmationBroker(settings.confirmation_timeout_seconds),
        collision_mode=settings.collision_mode,
        serialize_commits=settings.serialize_commits,
    )


def _execute(dry_run: bool, operation: Callable[[PlotLifecycle], Awaitable[T]]) -> T:
    """Build a lifecycle, run one operation on it and report plot errors as exit code 1."""
    configure_logging(settings.log_level)
    executor = _build_executor(dry_run)
    try:
        result = asyncio.run(operation(_build_lifecycle(executor, dry_run)))
    except PlotError as exc:
        print({"error": exc.message})
        raise typer.Exit(code=1)
    finally:
        if isinstance(executor, EchoWorldExecutor):
            print({"world_commands": executor.sent})
    return result


def _perimeter(x1: int, z1: int, x2: int, z2: int) -> Perimeter:
    try:
        return Perimeter.from_coords(x1, z1, x2, z2)
    except PlotError as exc:
        print({"error": exc.message})
        raise typer.Exit(code=1)


@app.command("config")
def show_config() -> None:
    """Show the effective runtime configuration."""
    print(
        {
            "app_name": settings.app_name,
            "rcon_address": settings.rcon_address,
            "registry_path": settings.registry_path,
            "default_world": settings.default_world,
            "collision_mode": settings.collision_mode,
            "serialize_commits": settings.serialize_commits,
            "confirmation_timeout_seconds": settings.confirmation_timeout_seconds,
        }
    )


@app.command("list")
def list_plots(owner: int = typer.Option(..., help="Owning account id")) -> None:
    """List the plots of an owner."""
    try:
        plots = JsonRegionRegistry(settings.registry_path).list_by_owner(owner)
    except PlotError as exc:
        print({"error": exc.message})
        raise typer.Exit(code=1)
    print({"plots": [str(plot) for plot in plots]})


@app.command()
def create(
    owner: int = typer.Option(..., help="Owning account id"),
    owner_name: str = typer.Option(..., help="Minecraft username of the owner"),
    x1: int = typer.Option(..., help="X coordinate of the first corner"),
    z1: int = typer.Option(..., help="Z coordinate of the first corner"),
    x2: int = typer.Option(..., help="X coordinate of the second corner"),
    z2: int = typer.Option(..., help="Z coordinate of the second corner"),
    world: str = typer.Option(None, help=WORLD_HELP),
    dry_run: bool = typer.Option(False, help=DRY_RUN_HELP),
) -> None:
    """Claim a new plot."""
    perimeter = _perimeter(x1, z1, x2, z2)
    region = _execute(
        dry_run,
        lambda lifecycle: lifecycle.create(owner, owner_name, perimeter, world or settings.default_world),
    )
    print({"created": str(region)})


@app.command()
def redefine(
    owner: int = typer.Option(..., help="Owning account id"),
    plot: str = typer.Option(..., help="Name of the plot"),
    x1: int = typer.Option(..., help="X coordinate of the first corner"),
    z1: int = typer.Option(..., help="Z coordinate of the first corner"),
    x2: int = typer.Option(..., help="X coordinate of the second corner"),
    z2: int = typer.Option(..., help="Z coordinate of the second corner"),
    world: str = typer.Option(None, help=WORLD_HELP),
    dry_run: bool = typer.Option(False, help=DRY_RUN_HELP),
) -> None:
    """Move the boundaries of one of your plots."""
    perimeter = _perimeter(x1, z1, x2, z2)
    region = _execute(
        dry_run,
        lambda lifecycle: lifecycle.redefine(owner, plot, perimeter, world or settings.default_world),
    )
    print({"redefined": str(region)})


@app.command()
def delete(
    owner: int = typer.Option(..., help="Owning account id"),
    plot: str = typer.Option(..., help="Name of the plot"),
    world: str = typer.Option(None, help=WORLD_HELP),
    dry_run: bool = typer.Option(False, help=DRY_RUN_HELP),
) -> None:
    """Delete one of your plots after confirmation."""

    def run(lifecycle: PlotLifecycle):
        def prompt(pending: PendingConfirmation) -> None:
            def ask() -> None:
                confirmed = typer.confirm(pending.subject, default=False)
                lifecycle.confirmations.resolve(pending.confirm_token if confirmed else pending.cancel_token)

            # Daemon thread: an unanswered prompt must not keep the process alive after the timeout.
            threading.Thread(target=ask, name="plotty-confirm", daemon=True).start()

        return lifecycle.delete(owner, plot, world or settings.default_world, prompt=prompt)

    outcome = _execute(dry_run, run)
    print({"plot": plot.lower(), "outcome": outcome.value})


@app.command("member-add")
def member_add(
    owner: int = typer.Option(..., help="Owning account id"),
    plot: str = typer.Option(..., help="Name of the plot"),
    member: str = typer.Option(..., help="Minecraft username of the member"),
    world: str = typer.Option(None, help=WORLD_HELP),
    dry_run: bool = typer.Option(False, help=DRY_RUN_HELP),
) -> None:
    """Add a member to one of your plots."""
    _execute(
        dry_run,
        lambda lifecycle: lifecycle.add_member(owner, plot, member, world or settings.default_world),
    )
    print({"plot": plot.lower(), "member_added": member})


@app.command("member-remove")
def member_remove(
    owner: int = typer.Option(..., help="Owning account id"),
    plot: str = typer.Option(..., help="Name of the plot"),
    member: str = typer.Option(..., help="Minecraft username of the member"),
    world: str = typer.Option(None, help=WORLD_HELP),
    dry_run: bool = typer.Option(False, help=DRY_RUN_HELP),
) -> None:
    """Remove a member from one of your plots."""
    _execute(
        dry_run,
        lambda lifecycle: lifecycle.remove_member(owner, plot, member, world or settings.default_world),
    )
    print({"plot": plot.lower(), "member_removed": member})


@app.command()
def lookup(uuid_or_name: str) -> None:
    """Resolve a Minecraft username to its UUID or the other way round."""
    client = MojangProfileClient(api_root=settings.mojang_api_root)
    try:
        try:
            uuid = UUID(uuid_or_name)
        except ValueError:
            print({"uuid": client.get_uuid_by_username(uuid_or_name)})
        else:
            print({"username": client.get_username_by_uuid(uuid.hex)})
    except PlotError as exc:
        print({"error": exc.message})
        raise typer.Exit(code=1)
    finally:
        client.close()


if __name__ == "__main__":
    app()
