"""Translation of colour names and hex strings into ANSI colour codes."""

from __future__ import annotations

from string import hexdigits
from typing import Protocol

from promptsmith.palette import Palette, PaletteKeyError, PaletteRecursiveKeyError

EMPTY_ANSI_COLOR = ""
TRANSPARENT = "transparent"

# colour name -> (foreground code, background code)
ANSI_COLOR_CODES: dict[str, tuple[str, str]] = {
    "black": ("30", "40"),
    "red": ("31", "41"),
    "green": ("32", "42"),
    "yellow": ("33", "43"),
    "blue": ("34", "44"),
    "magenta": ("35", "45"),
    "cyan": ("36", "46"),
    "white": ("37", "47"),
    "default": ("39", "49"),
    "darkGray": ("90", "100"),
    "lightRed": ("91", "101"),
    "lightGreen": ("92", "102"),
    "lightYellow": ("93", "103"),
    "lightBlue": ("94", "104"),
    "lightMagenta": ("95", "105"),
    "lightCyan": ("96", "106"),
    "lightWhite": ("97", "107"),
}


class _AnsiColorSource(Protocol):
    def ansi_color_from_string(self, color_string: str, is_background: bool) -> str: ...


def _hex_to_rgb(value: str) -> tuple[int, int, int] | None:
    value = value.strip()
    if not value:
        return None
    if value[0] == "#":
        value = value[1:]
    value = value.lower()
    if len(value) == 3:
        value = "".join(c * 2 for c in value)
    elif len(value) == 8:
        value = value.removeprefix("0x")
    if len(value) != 6 or not all(c in hexdigits for c in value):
        return None
    number = int(value, 16)
    return (number >> 16) & 0xFF, (number >> 8) & 0xFF, number & 0xFF


def is_ansi_color_name(color_string: str) -> bool:
    """Tell whether the string is one of the 16 named ANSI colours (or ``default``)."""
    return color_string in ANSI_COLOR_CODES


class DefaultColors:
    """Maps names and ``#RRGGBB`` values to ANSI colour codes."""

    def ansi_color_from_string(self, color_string: str, is_background: bool) -> str:
        if not color_string:
            return EMPTY_ANSI_COLOR
        if color_string == TRANSPARENT:
            return TRANSPARENT
        codes = ANSI_COLOR_CODES.get(color_string)
        if codes is not None:
            return codes[1] if is_background else codes[0]
        rgb = _hex_to_rgb(color_string)
        if rgb is None:
            return EMPTY_ANSI_COLOR
        base = "48" if is_background else "38"
        return f"{base};2;{rgb[0]};{rgb[1]};{rgb[2]}"


class PaletteColors:
    """Resolves palette references before delegating to another colour source."""

    def __init__(self, ansi_colors: _AnsiColorSource, palette: Palette) -> None:
        self.ansi_colors = ansi_colors
        self.palette = palette if isinstance(palette, Palette) else Palette(palette)

    def ansi_color_from_string(self, color_string: str, is_background: bool) -> str:
        try:
            resolved = self.palette.resolve_color(color_string)
        except (PaletteKeyError, PaletteRecursiveKeyError):
            return EMPTY_ANSI_COLOR
        return self.ansi_colors.ansi_color_from_string(resolved, is_background)


class CachedColors:
    """Caches lookups of another colour source."""

    def __init__(self, ansi_colors: _AnsiColorSource) -> None:
        self.ansi_colors = ansi_colors
        self._cache: dict[tuple[str, bool], str] = {}

    def ansi_color_from_string(self, color_string: str, is_background: bool) -> str:
        key = (color_string, is_background)
        if key not in self._cache:
            self._cache[key] = self.ansi_colors.ansi_color_from_string(color_string, is_background)
        return self._cache[key]


def make_colors(palette: dict[str, str] | None, cache_enabled: bool) -> _AnsiColorSource:
    """Build the colour source chain for the given palette and cache setting."""
    colors: _AnsiColorSource = DefaultColors()
    if palette is not None:
        colors = PaletteColors(colors, palette)
    if cache_enabled:
        colors = CachedColors(colors)
    return colors