"""Static usage text served by the dispatcher."""
from __future__ import annotations

from typing import Dict, List

from .commands import TABLES, Category, code_table

SERVICE_TITLE = "IR Controlled LED Strip Web Service"

BRIGHTNESS_TICKS = 9

_ROUTES = (
    ("/", "(GET) Arguments: none"),
    ("/routes", "(GET) Arguments: none"),
    ("/cached-state", "(GET) Arguments: none"),
    ("/raw", "(GET) Arguments:[boolean] or none, (POST) Arguments:[byte]"),
    ("/brightness", "(GET) Arguments:[boolean] or none, (POST) Arguments:[string]"),
    ("/power", "(GET) Arguments:[boolean] or none, (POST) Arguments:[string]"),
    ("/function", "(GET) Arguments:[boolean] or none, (POST) Arguments:[string]"),
    ("/color", "(GET) Arguments:[boolean] or none, (POST) Arguments:[string]"),
)

_BEHAVIOURS: Dict[Category, Dict[str, str]] = {
    Category.BRIGHTNESS: {
        "up": "Shifts LED brightness up a step",
        "down": "Shifts LED brightness down a step",
    },
    Category.POWER: {
        "on": "Commands LED controller to ON state",
        "off": "Commands LED controller to OFF state",
    },
    Category.FUNCTION: {
        "flash": "Flash a subset of preselected colors (Note)",
        "strobe": "Strobe last static color selected (Note)",
        "fade": "Fade last static color selected (Note)",
        "smooth": "Smooth last static color selected (Note)",
    },
}

_DOUBLE_PRESS = (
    "Special functions have a unique property depending if one sends the "
    "command after it is already in the selected mode. The following list "
    "describes this behavior.\n"
    "  - Pressing Flash once does same action as smooth.\n"
    "  - Pressing Flash twice strobes between color transitions of flash 1.\n"
    "  - Pressing Strobe once strobes currently displayed color.\n"
    "  - Pressing Strobe twice smoothly changes brightness of static color.\n"
    "  - Pressing Fade once fades between all colors.\n"
    "  - Pressing Fade twice fades only an rgb single cycling them.\n"
    "  - Pressing Smooth once transitions between all colors abruptly.\n"
    "  - Pressing Smooth twice flashes only an rgb single cycling them.\n"
)

_TICKS = (
    "Brightness adjustment is measured in ticks. To move from brightest "
    f"to least will take {BRIGHTNESS_TICKS} ticks.\n"
)

_SPEED = (
    "the transition speed of the current function.\n"
    f"  - During Flash increases/decreases transition speed ({BRIGHTNESS_TICKS} ticks)\n"
    f"  - During Strobe increases/decreases transition speed ({BRIGHTNESS_TICKS} ticks)\n"
    f"  - During Fade increases/decreases transition speed ({BRIGHTNESS_TICKS} ticks)\n"
    f"  - During Smooth increases/decreases transition speed ({BRIGHTNESS_TICKS} ticks)\n"
)


def _header(category: Category, domain: str) -> str:
    return (
        f"{SERVICE_TITLE}\n\n"
        f"{category.value.capitalize()} command expects POST request with a single "
        f"argument named '{category.value}'. The contents of this argument will be "
        f"{domain}.\n\n"
    )


def _token_table(category: Category) -> str:
    behaviours = _BEHAVIOURS[category]
    tokens = TABLES[category].tokens()
    token_width = max(len("String"), *(len(token) for token in tokens))
    text_width = max(len(text) for text in behaviours.values())
    lines: List[str] = [
        f"   {'String'.ljust(token_width)} | Behavior",
        f"   {'-' * token_width}-|-{'-' * text_width}",
    ]
    for token in tokens:
        lines.append(f"   {token.ljust(token_width)} | {behaviours[token]}")
    return "\n".join(lines) + "\n"


def _raw_code_table() -> str:
    lines = ["    Code Name", "    ---- ---------------"]
    for code, name in code_table():
        lines.append(f"    0x{code:02X} {name}")
    return "\n".join(lines) + "\n"


def describe_service() -> str:
    """Return the route listing shown on ``/`` and ``/routes``."""

    lines = [SERVICE_TITLE, "", "Routes:"]
    for path, usage in _ROUTES:
        lines.append(f"\t- {path} {usage}")
    return "\n".join(lines) + "\n"


def raw_documentation() -> str:
    return (
        _header(Category.RAW, "a byte code (0-255) from the table below")
        + _raw_code_table()
        + "\n"
        + _DOUBLE_PRESS
        + "\n"
        + _TICKS
        + "\n"
        + "Brightness adjustment will act as expected for static colors. However "
        "when running a special function the brightness adjustment will alter "
        + _SPEED
    )


def brightness_documentation() -> str:
    return (
        _header(Category.BRIGHTNESS, "a string enumeration from the table below")
        + _token_table(Category.BRIGHTNESS)
        + "\n"
        + _TICKS
        + "\n"
        + "Brightness adjustment will act as expected for static colors. However "
        "when running a special function the brightness adjustment will alter "
        + _SPEED
    )


def power_documentation() -> str:
    return (
        _header(Category.POWER, "a string enumeration from the table below")
        + _token_table(Category.POWER)
    )


def function_documentation() -> str:
    return (
        _header(Category.FUNCTION, "a string enumeration from the table below")
        + _token_table(Category.FUNCTION)
        + "\n"
        + _DOUBLE_PRESS
        + "\n"
        + "When running a special function the brightness adjustment will alter "
        + _SPEED
    )


def color_documentation() -> str:
    listing = "".join(f"   - {token}\n" for token in TABLES[Category.COLOR].tokens())
    return _header(Category.COLOR, "a string enumeration from the list below") + listing


_DOCUMENTATION = {
    Category.RAW: raw_documentation,
    Category.BRIGHTNESS: brightness_documentation,
    Category.POWER: power_documentation,
    Category.FUNCTION: function_documentation,
    Category.COLOR: color_documentation,
}


def documentation_for(category: Category) -> str:
    return _DOCUMENTATION[category]()


__all__ = [
    "BRIGHTNESS_TICKS",
    "SERVICE_TITLE",
    "brightness_documentation",
    "color_documentation",
    "describe_service",
    "documentation_for",
    "function_documentation",
    "power_documentation",
    "raw_documentation",
]
