"""WorldEdit/WorldGuard command vocabulary used to apply plots to the live world."""

from __future__ import annotations

from plotty.geometry import Perimeter, Point


def select_world(world: str) -> str:
    return f"//world {world}"


def first_corner(point: Point) -> str:
    return f"//pos1 {point.x},0,{point.z}"


def second_corner(point: Point) -> str:
    return f"//pos2 {point.x},0,{point.z}"


def expand_vertical() -> str:
    return "//expand vert"


def create_region(name: str, owner_name: str) -> str:
    return f"region create {name} {owner_name}"


def update_region(name: str) -> str:
    return f"rg update {name}"


def delete_region(name: str, world: str) -> str:
    return f"rg delete -w {world} {name}"


def add_member(name: str, member: str, world: str) -> str:
    return f"rg addmember -w {world} {name} {member}"


def remove_member(name: str, member: str, world: str) -> str:
    return f"rg removemember -w {world} {name} {member}"


def select_perimeter(perimeter: Perimeter, world: str) -> list[str]:
    """Commands selecting ``perimeter`` over the full height of ``world``."""
    return [
        select_world(world),
        first_corner(perimeter.a),
        second_corner(perimeter.b),
        expand_vertical(),
    ]
