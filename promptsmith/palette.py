"""Named colour palettes with ``p:`` references."""

from __future__ import annotations

PALETTE_KEY_PREFIX = "p:"
MAX_RECURSION_DEPTH = 3


class PaletteKeyError(LookupError):
    """A requested colour is not present in the palette."""

    def __init__(self, key: str, palette: dict[str, str]) -> None:
        self.key = key
        self.palette = dict(palette)
        super().__init__(str(self))

    def __str__(self) -> str:
        all_colors = ",".join(sorted(self.palette))
        return (
            f"palette: requested color {self.key} does not exist "
            f"in palette of colors {all_colors}"
        )


class PaletteRecursiveKeyError(LookupError):
    """Resolving a palette reference went deeper than allowed."""

    def __init__(self, key: str, value: str, depth: int) -> None:
        self.key = key
        self.value = value
        self.depth = depth
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            f"palette: recursive resolution of color {self.key} returned "
            f"palette reference {self.value} and reached recursion depth {self.depth}"
        )


class Palette(dict):
    """A mapping of colour names to colour values, possibly referencing each other."""

    def resolve_color(self, color_name: str) -> str:
        """Return the colour for a ``p:`` reference, or the name itself otherwise."""
        return self._resolve(color_name, 1, color_name)

    def _resolve(self, color_name: str, depth: int, original: str) -> str:
        if not color_name.startswith(PALETTE_KEY_PREFIX):
            return color_name
        key = color_name[len(PALETTE_KEY_PREFIX):]
        if key not in self:
            raise PaletteKeyError(key, self)
        color = self[key]
        if color.startswith(PALETTE_KEY_PREFIX):
            if depth > MAX_RECURSION_DEPTH:
                raise PaletteRecursiveKeyError(original, color, depth)
            return self._resolve(color, depth + 1, original)
        return color

    def maybe_resolve_color(self, color_name: str) -> str:
        """Like :meth:`resolve_color`, but return an empty string on failure."""
        try:
            return self.resolve_color(color_name)
        except (PaletteKeyError, PaletteRecursiveKeyError):
            return ""