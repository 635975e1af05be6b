"""Helpers over Python's ``ast`` tree: source locations and name gathering."""

from .location import (
    Location,
    location_of,
    location_string,
    tag_origin,
    gather_names,
    relocate,
)

__all__ = [
    "Location",
    "location_of",
    "location_string",
    "tag_origin",
    "gather_names",
    "relocate",
]
