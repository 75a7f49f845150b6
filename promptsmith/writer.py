"""Writers that turn coloured prompt text into terminal output."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from promptsmith.ansi import Ansi, measure_text
from promptsmith.colors import EMPTY_ANSI_COLOR, TRANSPARENT

PARENT_BACKGROUND = "parentBackground"
PARENT_FOREGROUND = "parentForeground"
BACKGROUND = "background"
FOREGROUND = "foreground"

_KEYWORDS = frozenset({TRANSPARENT, PARENT_BACKGROUND, PARENT_FOREGROUND, BACKGROUND, FOREGROUND})

COLOR_PATTERN = r"<(?P<foreground>[^,>]+)?,?(?P<background>[^>]+)?>(?P<content>[^<]*)</>"
_COLOR_RE = re.compile(COLOR_PATTERN)


@dataclass
class Color:
    """A background/foreground pair."""

    background: str = ""
    foreground: str = ""


@dataclass
class AnsiWriter:
    """Accumulates coloured text with inline ``<fg,bg>text</>`` overrides."""

    ansi: Ansi
    ansi_colors: object
    terminal_background: str = ""
    colors: Color | None = None
    parent_colors: list[Color | None] | None = None
    _parts: list[str] = field(default_factory=list, init=False, repr=False)
    _length: int = field(default=0, init=False, repr=False)

    def set_colors(self, background: str, foreground: str) -> None:
        self.colors = Color(background, foreground)

    def set_parent_colors(self, background: str, foreground: str) -> None:
        if self.parent_colors is None:
            self.parent_colors = []
        self.parent_colors.insert(0, Color(background, foreground))

    def clear_parent_colors(self) -> None:
        self.parent_colors = None

    def _color(self, color_string: str, is_background: bool) -> str:
        return self.ansi_colors.ansi_color_from_string(color_string, is_background)

    def _write_colored(self, background: str, foreground: str, text: str) -> None:
        if not text or (foreground == TRANSPARENT and background == TRANSPARENT):
            return
        self._length += measure_text(text)
        codes = self.ansi.codes
        if foreground == EMPTY_ANSI_COLOR:
            foreground = self._color("white", False)
        if foreground == TRANSPARENT and background != EMPTY_ANSI_COLOR:
            if self.terminal_background:
                terminal = self._color(self.terminal_background, False)
                self._parts.append(codes.color_full % (background, terminal, text))
            else:
                self._parts.append(codes.color_transparent % (background, text))
        elif background in (EMPTY_ANSI_COLOR, TRANSPARENT):
            self._parts.append(codes.color_single % (foreground, text))
        else:
            self._parts.append(codes.color_full % (background, foreground, text))

    def _write_and_remove(self, background: str, foreground: str, text: str, remove: str, parent: str) -> str:
        self._write_colored(background, foreground, text)
        return parent.replace(remove, "", 1)

    def write(self, background: str, foreground: str, text: str) -> None:
        """Write text in the given colours, honouring inline colour overrides."""
        if not text:
            return
        bg_ansi, fg_ansi = self._as_ansi_colors(background, foreground)
        text = self.ansi.escape_text(text)
        text = self.ansi.apply_markup(text)
        text = self.ansi.generate_hyperlink(text)

        for override in list(_COLOR_RE.finditer(text)):
            fg_override = override["foreground"] or ""
            bg_override = override["background"] or ""
            if fg_override == TRANSPARENT and not bg_override:
                bg_override = background
            bg_override_ansi, fg_override_ansi = self._as_ansi_colors(bg_override, fg_override)
            if bg_override_ansi == EMPTY_ANSI_COLOR:
                bg_override_ansi = bg_ansi
            if fg_override_ansi == EMPTY_ANSI_COLOR:
                fg_override_ansi = fg_ansi
            segment = override.group(0)
            inner = override["content"] or ""
            before = text.partition(segment)[0]
            text = self._write_and_remove(bg_ansi, fg_ansi, before, before, text)
            text = self._write_and_remove(bg_override_ansi, fg_override_ansi, inner, segment, text)
        self._write_colored(bg_ansi, fg_ansi, text)

    def _as_ansi_colors(self, background: str, foreground: str) -> tuple[str, str]:
        background = self._expand_keyword(background)
        foreground = self._expand_keyword(foreground)
        inverted = foreground == TRANSPARENT and background != ""
        return self._color(background, not inverted), self._color(foreground, False)

    def _resolve_parent(self, keyword: str) -> str:
        for parent in self.parent_colors or ():
            if parent is None:
                return TRANSPARENT
            if keyword == PARENT_BACKGROUND:
                keyword = parent.background
            elif keyword == PARENT_FOREGROUND:
                keyword = parent.foreground
            else:
                return keyword
        return keyword

    def _resolve_keyword(self, keyword: str) -> str:
        if keyword == BACKGROUND and self.colors is not None:
            return self.colors.background
        if keyword == FOREGROUND and self.colors is not None:
            return self.colors.foreground
        if keyword in (PARENT_BACKGROUND, PARENT_FOREGROUND) and self.parent_colors is not None:
            return self._resolve_parent(keyword)
        return TRANSPARENT

    def _expand_keyword(self, keyword: str) -> str:
        while keyword in _KEYWORDS:
            resolved = self._resolve_keyword(keyword)
            if resolved == keyword:
                break
            keyword = resolved
        return keyword

    def result(self) -> tuple[str, int]:
        """Return the written text and its visible length."""
        return "".join(self._parts), self._length

    def reset(self) -> None:
        self._parts.clear()
        self._length = 0


@dataclass
class PlainWriter:
    """Writes text without colours, stripping inline colour overrides.

    Colours handed to it are remembered but never affect the output.
    """

    colors: Color | None = None
    parent_colors: list[Color] | None = None
    _parts: list[str] = field(default_factory=list, init=False, repr=False)
    _length: int = field(default=0, init=False, repr=False)

    def set_colors(self, background: str, foreground: str) -> None:
        self.colors = Color(background, foreground)

    def set_parent_colors(self, background: str, foreground: str) -> None:
        self.parent_colors = [Color(background, foreground), *(self.parent_colors or [])]

    def clear_parent_colors(self) -> None:
        self.parent_colors = None

    def _append(self, text: str) -> None:
        self._length += measure_text(text)
        self._parts.append(text)

    def write(self, background: str, foreground: str, text: str) -> None:
        if not text:
            return
        for match in list(_COLOR_RE.finditer(text)):
            segment = match.group(0)
            inner = match["content"] or ""
            before = text.partition(segment)[0]
            self._append(before)
            text = text.replace(before, "", 1)
            self._append(inner)
            text = text.replace(segment, "", 1)
        self._append(text)

    def result(self) -> tuple[str, int]:
        """Return the written text and its visible length."""
        return "".join(self._parts), self._length

    def reset(self) -> None:
        self._parts.clear()