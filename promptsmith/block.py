"""Blocks: groups of segments rendered together on one line."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from typing import Any

from promptsmith.ansi import Ansi
from promptsmith.colors import TRANSPARENT
from promptsmith.segment import Environment, Segment, SegmentStyle, SegmentTiming
from promptsmith.writer import AnsiWriter

PLAIN_SHELL = "shell"


class BlockType(StrEnum):
    PROMPT = "prompt"
    LINE_BREAK = "newline"
    RPROMPT = "rprompt"


class BlockAlignment(StrEnum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(eq=False)
class Block:
    """A part of the prompt holding segments."""

    type: str = ""
    alignment: str = ""
    horizontal_offset: int = 0
    vertical_offset: int = 0
    segments: list[Segment] = field(default_factory=list)
    newline: bool = False
    filler: str = ""
    length: int = field(default=0, init=False)
    env: Environment | None = field(default=None, init=False, repr=False)
    writer: Any = field(default=None, init=False, repr=False)
    ansi: Ansi | None = field(default=None, init=False, repr=False)
    _active_segment: Segment | None = field(default=None, init=False, repr=False)
    _previous_active_segment: Segment | None = field(default=None, init=False, repr=False)
    _active_background: str = field(default="", init=False, repr=False)
    _active_foreground: str = field(default="", init=False, repr=False)

    def attach(self, env: Environment, writer: Any, ansi: Ansi) -> None:
        """Use the given environment, writer and escape sequences."""
        self.env = env
        self.writer = writer
        self.ansi = ansi

    def attach_plain(self, env: Environment, ansi_colors: Any, terminal_background: str) -> None:
        """Use a writer that emits unwrapped escape sequences."""
        self.ansi = Ansi(PLAIN_SHELL)
        self.writer = AnsiWriter(
            ansi=self.ansi,
            ansi_colors=ansi_colors,
            terminal_background=terminal_background,
        )
        self.env = env

    def _set_active_segment(self, segment: Segment) -> None:
        self._active_segment = segment
        self._active_background = segment.background()
        self._active_foreground = segment.foreground()
        self.writer.set_colors(self._active_background, self._active_foreground)

    def enabled(self) -> bool:
        if self.type == BlockType.LINE_BREAK:
            return True
        return any(segment.active for segment in self.segments)

    def render_segments_text(self) -> None:
        """Render every segment's text concurrently."""
        if not self.segments:
            return
        with ThreadPoolExecutor(max_workers=len(self.segments)) as pool:
            list(pool.map(lambda segment: segment.render_text(self.env), self.segments))

    def render_segments(self) -> tuple[str, int]:
        """Write the active segments and return the text and its visible length."""
        try:
            for segment in self.segments:
                if segment.active:
                    self._render_segment(segment)
            self._write_powerline(final=True)
            self.writer.clear_parent_colors()
            return self.writer.result()
        finally:
            self.writer.reset()

    def _render_segment(self, segment: Segment) -> None:
        self._set_active_segment(segment)
        self._write_powerline(final=False)
        background, foreground = self._active_background, self._active_foreground
        if segment.style in (SegmentStyle.PLAIN, SegmentStyle.POWERLINE):
            self.writer.write(background, foreground, segment.text)
        elif segment.style == SegmentStyle.DIAMOND:
            self.writer.write(TRANSPARENT, background, segment.leading_diamond)
            self.writer.write(background, foreground, segment.text)
            self.writer.write(TRANSPARENT, background, segment.trailing_diamond)
        self._previous_active_segment = segment
        self.writer.set_parent_colors(background, foreground)

    def _write_powerline(self, final: bool) -> None:
        active = self._active_segment
        if active is None:
            return
        previous = self._previous_active_segment
        symbol = ""
        if active.style == SegmentStyle.POWERLINE:
            symbol = active.powerline_symbol
        elif previous is not None and previous.style == SegmentStyle.POWERLINE:
            symbol = previous.powerline_symbol
        if not symbol:
            return
        background = active.background()
        if final or active.style != SegmentStyle.POWERLINE:
            background = TRANSPARENT
        if active.style == SegmentStyle.DIAMOND and not active.leading_diamond:
            background = active.background()
        if active.invert_powerline:
            self.writer.write(self._powerline_color(), background, symbol)
            return
        self.writer.write(background, self._powerline_color(), symbol)

    def _powerline_color(self) -> str:
        previous = self._previous_active_segment
        active = self._active_segment
        if previous is None:
            return TRANSPARENT
        if previous.style == SegmentStyle.DIAMOND and not previous.trailing_diamond:
            return previous.background()
        if active.style == SegmentStyle.DIAMOND and not active.leading_diamond:
            return previous.background()
        if previous.style != SegmentStyle.POWERLINE:
            return TRANSPARENT
        return previous.background()

    def debug(self) -> tuple[int, list[SegmentTiming]]:
        """Render each segment in turn, timing it; return the longest name length and timings."""
        timings: list[SegmentTiming] = []
        largest = 0
        for segment in self.segments:
            name = str(segment.type)
            largest = max(largest, len(name))
            start = time.perf_counter()
            segment.render_text(self.env)
            text = segment.text
            if segment.active:
                self._render_segment(segment)
                text, self.length = self.writer.result()
                self.writer.reset()
            timings.append(
                SegmentTiming(
                    name=name,
                    name_length=len(name),
                    active=segment.active,
                    text=text,
                    duration=timedelta(seconds=time.perf_counter() - start),
                )
            )
        return largest, timings