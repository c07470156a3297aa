"""Command codes understood by the IR LED strip controller.

Every remote button maps to a single byte. Categories other than ``raw`` are
closed enumerations of tokens; ``raw`` accepts any byte directly.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Dict, Generic, List, Optional, Tuple, Type, TypeVar

RAW_MIN = 0
RAW_MAX = 255
_RAW_RE = re.compile(r"^[+-]?[0-9]+$")


class Category(str, Enum):
    RAW = "raw"
    BRIGHTNESS = "brightness"
    POWER = "power"
    FUNCTION = "function"
    COLOR = "color"


class Brightness(str, Enum):
    UP = "up"
    DOWN = "down"


class Power(str, Enum):
    ON = "on"
    OFF = "off"


class Function(str, Enum):
    FLASH = "flash"
    STROBE = "strobe"
    FADE = "fade"
    SMOOTH = "smooth"


class Color(str, Enum):
    WHITE = "white"
    RED = "red"
    ORANGE = "orange"
    DARK_YELLOW = "dark-yellow"
    YELLOW = "yellow"
    LIGHT_YELLOW = "light-yellow"
    GREEN = "green"
    PEA_GREEN = "pea-green"
    CYAN = "cyan"
    LIGHT_BLUE = "light-blue"
    SKY_BLUE = "sky-blue"
    BLUE = "blue"
    DARK_ORCHID = "dark-orchid"
    PURPLE = "purple"
    MAGENTA = "magenta"
    PINK = "pink"


TokenT = TypeVar("TokenT", Brightness, Power, Function, Color)


class CommandTable(Generic[TokenT]):
    """Bidirectional token <-> code table for one category."""

    def __init__(self, category: Category, tokens: Type[TokenT], codes: Dict[TokenT, int]) -> None:
        missing = [member for member in tokens if member not in codes]
        if missing:
            raise ValueError(f"{category.value}: no code for {', '.join(m.value for m in missing)}")
        self.category = category
        self._tokens = tokens
        self._codes = dict(codes)
        self._by_code = {code: member for member, code in codes.items()}

    def member(self, token: str) -> Optional[TokenT]:
        """Return the enum member for an exact, case-sensitive token."""

        try:
            return self._tokens(token)
        except ValueError:
            return None

    def lookup(self, token: str) -> Optional[int]:
        member = self.member(token)
        if member is None:
            return None
        return self._codes[member]

    def code(self, member: TokenT) -> int:
        return self._codes[member]

    def token_for(self, code: int) -> Optional[TokenT]:
        return self._by_code.get(code)

    def tokens(self) -> List[str]:
        return [member.value for member in self._tokens]

    def items(self) -> List[Tuple[TokenT, int]]:
        return [(member, self._codes[member]) for member in self._tokens]


BRIGHTNESS_TABLE: CommandTable[Brightness] = CommandTable(
    Category.BRIGHTNESS,
    Brightness,
    {
        Brightness.DOWN: 0x04,
        Brightness.UP: 0x05,
    },
)

POWER_TABLE: CommandTable[Power] = CommandTable(
    Category.POWER,
    Power,
    {
        Power.OFF: 0x06,
        Power.ON: 0x07,
    },
)

FUNCTION_TABLE: CommandTable[Function] = CommandTable(
    Category.FUNCTION,
    Function,
    {
        Function.FLASH: 0x0F,
        Function.FADE: 0x13,
        Function.STROBE: 0x17,
        Function.SMOOTH: 0x1B,
    },
)

COLOR_TABLE: CommandTable[Color] = CommandTable(
    Category.COLOR,
    Color,
    {
        Color.GREEN: 0x08,
        Color.RED: 0x09,
        Color.BLUE: 0x0A,
        Color.WHITE: 0x0B,
        Color.PEA_GREEN: 0x0C,
        Color.ORANGE: 0x0D,
        Color.DARK_ORCHID: 0x0E,
        Color.CYAN: 0x10,
        Color.DARK_YELLOW: 0x11,
        Color.MAGENTA: 0x12,
        Color.LIGHT_BLUE: 0x14,
        Color.YELLOW: 0x15,
        Color.PINK: 0x16,
        Color.SKY_BLUE: 0x18,
        Color.LIGHT_YELLOW: 0x19,
        Color.PURPLE: 0x1A,
    },
)

TABLES: Dict[Category, CommandTable] = {
    Category.BRIGHTNESS: BRIGHTNESS_TABLE,
    Category.POWER: POWER_TABLE,
    Category.FUNCTION: FUNCTION_TABLE,
    Category.COLOR: COLOR_TABLE,
}


def table_for(category: Category) -> CommandTable:
    try:
        return TABLES[category]
    except KeyError:
        raise ValueError(f"category '{category.value}' has no command table") from None


def lookup(category: Category, token: str) -> Optional[int]:
    """Return the code for ``token`` in ``category`` or ``None`` when unknown."""

    if category is Category.RAW:
        return parse_raw(token)
    return table_for(category).lookup(token)


def parse_raw(text: str) -> Optional[int]:
    """Parse a decimal byte code, returning ``None`` when malformed or out of range."""

    candidate = text.strip()
    if not _RAW_RE.match(candidate):
        return None
    value = int(candidate)
    if value < RAW_MIN or value > RAW_MAX:
        return None
    return value


def display_name(category: Category, token: str) -> str:
    words = "-".join(part.capitalize() for part in token.split("-"))
    if category is Category.BRIGHTNESS:
        return f"Brightness-{words}"
    return words


def code_table() -> List[Tuple[int, str]]:
    """Return every known code with its remote button name, sorted by code."""

    rows: List[Tuple[int, str]] = []
    for category, table in TABLES.items():
        for member, code in table.items():
            rows.append((code, display_name(category, member.value)))
    rows.sort()
    return rows


def describe_code(code: int) -> Optional[Tuple[Category, str]]:
    """Reverse lookup from a raw code to its category and token, if any."""

    for category, table in TABLES.items():
        member = table.token_for(code)
        if member is not None:
            return category, member.value
    return None


__all__ = [
    "BRIGHTNESS_TABLE",
    "COLOR_TABLE",
    "FUNCTION_TABLE",
    "POWER_TABLE",
    "RAW_MAX",
    "RAW_MIN",
    "TABLES",
    "Brightness",
    "Category",
    "Color",
    "CommandTable",
    "Function",
    "Power",
    "code_table",
    "describe_code",
    "display_name",
    "lookup",
    "parse_raw",
    "table_for",
]
