"""Cache of the most recently accepted commands."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..commands import Brightness, Category, Color, Function, Power

UNKNOWN = "unknown"


@dataclass
class RequestedState:
    """Last value accepted per category.

    This records what clients asked for, not what the strip is showing: the IR
    link is one-way and the physical remote can change the strip at any time.
    """

    raw: Optional[int] = None
    brightness: Optional[Brightness] = None
    power: Optional[Power] = None
    function: Optional[Function] = None
    color: Optional[Color] = None
    uri: Optional[str] = None

    def render(self, category: Category) -> str:
        value = getattr(self, category.value)
        if value is None:
            return UNKNOWN
        if isinstance(value, Enum):
            return value.value
        return str(value)

    def render_uri(self) -> str:
        return self.uri if self.uri is not None else UNKNOWN


__all__ = ["RequestedState", "UNKNOWN"]
