"""Region registry: the persisted set of named plots and per-owner name counters."""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from plotty.errors import StorageError
from plotty.geometry import Perimeter, Point
from plotty.models import Region


class RegionRegistry(Protocol):
    """Persistence contract for plots, keyed by plot name."""

    def list_all(self) -> list[Region]:
        """Return every persisted region."""

    def list_by_owner(self, owner: int) -> list[Region]:
        """Return the regions owned by ``owner``."""

    def get_by_name(self, name: str) -> Region | None:
        """Return the region called ``name`` if there is one."""

    def insert(self, region: Region) -> None:
        """Persist a new region."""

    def update_perimeter(self, name: str, perimeter: Perimeter) -> None:
        """Replace the perimeter of an existing region."""

    def delete(self, name: str) -> None:
        """Remove the region called ``name``."""

    def get_owner_counter(self, owner: int) -> int | None:
        """Return the owner's plot counter, ``None`` if it was never incremented."""

    def increment_owner_counter(self, owner: int) -> None:
        """Atomically increment the owner's plot counter, starting from 0."""


class InMemoryRegionRegistry:
    """Process-local registry used for tests and dry runs."""

    def __init__(self, regions: list[Region] | None = None) -> None:
        self._lock = threading.RLock()
        self._regions: dict[str, Region] = {}
        self._counters: dict[int, int] = {}
        for region in regions or []:
            self.insert(region)

    def list_all(self) -> list[Region]:
        with self._lock:
            return list(self._regions.values())

    def list_by_owner(self, owner: int) -> list[Region]:
        with self._lock:
            return [region for region in self._regions.values() if region.owner == owner]

    def get_by_name(self, name: str) -> Region | None:
        with self._lock:
            return self._regions.get(name)

    def insert(self, region: Region) -> None:
        with self._lock:
            if region.name in self._regions:
                raise StorageError(f"A plot named {region.name} already exists.")
            self._regions[region.name] = region

    def update_perimeter(self, name: str, perimeter: Perimeter) -> None:
        with self._lock:
            region = self._regions.get(name)
            if region is None:
                raise StorageError(f"No plot named {name} is stored.")
            self._regions[name] = region.with_perimeter(perimeter)

    def delete(self, name: str) -> None:
        with self._lock:
            self._regions.pop(name, None)

    def get_owner_counter(self, owner: int) -> int | None:
        with self._lock:
            return self._counters.get(owner)

    def increment_owner_counter(self, owner: int) -> None:
        with self._lock:
            self._counters[owner] = self._counters.get(owner, 0) + 1


class JsonRegionRegistry(InMemoryRegionRegistry):
    """Registry persisted to a single JSON document.

    The whole document is rewritten on every mutation through a temporary file
    and :func:`os.replace`, so a crash never leaves a half-written file behind.
    """

    def __init__(self, file_path: str | Path, *, logger: logging.Logger | None = None) -> None:
        self._path = Path(file_path)
        self._logger = logger or logging.getLogger("plotty.registry")
        super().__init__()
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def snapshot(self) -> InMemoryRegionRegistry:
        """Detached in-memory copy; mutations of the copy are never written back."""
        with self._lock:
            copy = InMemoryRegionRegistry(list(self._regions.values()))
            copy._counters = dict(self._counters)
        return copy

    def insert(self, region: Region) -> None:
        with self._committing():
            super().insert(region)
        self._logger.info("region_inserted", extra={"plot": region.name, "owner": region.owner})

    def update_perimeter(self, name: str, perimeter: Perimeter) -> None:
        with self._committing():
            super().update_perimeter(name, perimeter)
        self._logger.info("region_updated", extra={"plot": name})

    def delete(self, name: str) -> None:
        with self._committing():
            super().delete(name)
        self._logger.info("region_deleted", extra={"plot": name})

    def increment_owner_counter(self, owner: int) -> None:
        with self._committing():
            super().increment_owner_counter(owner)

    @contextmanager
    def _committing(self) -> Iterator[None]:
        """Apply one mutation and write it out; the in-memory state is restored if the write fails."""
        with self._lock:
            regions = dict(self._regions)
            counters = dict(self._counters)
            yield
            try:
                self._flush()
            except StorageError:
                self._regions = regions
                self._counters = counters
                self._logger.error("registry_write_failed", extra={"path": str(self._path)})
                raise

    def _load(self) -> None:
        if not self._path.exists():
            return

        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
            for item in payload.get("plots", []):
                region = Region(
                    owner=int(item["owner"]),
                    name=item["name"],
                    perimeter=Perimeter(
                        Point(item["ax"], item["az"]),
                        Point(item["bx"], item["bz"]),
                    ),
                )
                self._regions[region.name] = region
            self._counters = {int(owner): int(value) for owner, value in payload.get("counters", {}).items()}
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise StorageError(f"Failed reading region registry {self._path}: {exc}") from exc

        self._logger.info("registry_loaded", extra={"path": str(self._path), "plots": len(self._regions)})

    def _flush(self) -> None:
        payload = {
            "plots": [
                {
                    "owner": region.owner,
                    "name": region.name,
                    "ax": region.perimeter.a.x,
                    "az": region.perimeter.a.z,
                    "bx": region.perimeter.b.x,
                    "bz": region.perimeter.b.z,
                }
                for region in self._regions.values()
            ],
            "counters": {str(owner): value for owner, value in self._counters.items()},
        }
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise StorageError(f"Failed writing region registry {self._path}: {exc}") from exc
