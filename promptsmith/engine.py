"""Assembling the full prompt from the configured blocks."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from promptsmith.ansi import Ansi
from promptsmith.block import Block, BlockAlignment, BlockType
from promptsmith.config import Config
from promptsmith.segment import Environment, Segment, SegmentTiming, WriterMappingError
from promptsmith.title import Title

ZSH = "zsh"
BASH = "bash"
PWSH = "pwsh"
FISH = "fish"
POWERSHELL5 = "powershell"
WIN_CMD = "cmd"
PLAIN = "shell"

PROMPT_BREATHING_ROOM = 30
DEFAULT_TRANSIENT_TEMPLATE = "{{ .Shell }}> "


def get_console_background_color(env: Environment, background_color_template: str) -> str:
    """Render the terminal background template; return the error text if it fails."""
    if not background_color_template:
        return background_color_template
    try:
        return env.render_template(background_color_template, None)
    except Exception as error:
        return str(error)


def _format_duration(seconds: float) -> str:
    if seconds <= 0:
        return "0s"
    if seconds < 1e-6:
        return f"{seconds * 1e9:g}ns"
    if seconds < 1e-3:
        return f"{seconds * 1e6:g}µs"
    if seconds < 1:
        return f"{seconds * 1e3:g}ms"
    return f"{seconds:g}s"


@dataclass(eq=False)
class Engine:
    """Renders the prompt, the right prompt, tooltips and the transient prompt."""

    config: Config
    env: Environment
    writer: Any
    ansi: Ansi
    console_title: Title | None = None
    plain: bool = False
    current_line_length: int = field(default=0, init=False)
    rprompt: str = field(default="", init=False)
    rprompt_length: int = field(default=0, init=False)
    _console: list[str] = field(default_factory=list, init=False, repr=False)

    def _write(self, text: str) -> None:
        self._console.append(text)

    def _write_ansi(self, text: str) -> None:
        if not self.plain:
            self._console.append(text)

    def _string(self) -> str:
        return "".join(self._console)

    def _terminal_width(self) -> int | None:
        try:
            return self.env.terminal_width()
        except OSError:
            return None

    def can_write_rprompt(self) -> bool:
        """Tell whether the right prompt fits next to the current line."""
        console_width = self._terminal_width()
        if not console_width:
            return True
        prompt_width = self.current_line_length
        available = console_width - prompt_width
        if available < 0:
            available = console_width - prompt_width % console_width
        return available - self.rprompt_length >= PROMPT_BREATHING_ROOM

    def render(self) -> str:
        """Render the whole prompt."""
        for block in self.config.blocks:
            self._render_block(block)
        if self.config.console_title and self.console_title is not None:
            self._write_ansi(self.console_title.get_title())
        self._write_ansi(self.ansi.codes.color_reset)
        if self.config.final_space:
            self._write(" ")
        if self.config.osc99:
            self._write_ansi(self.ansi.console_pwd(self.env.pwd()))
        return self._print()

    def _newline(self) -> None:
        self._write("\n")
        self.current_line_length = 0

    def _attach_plain(self, block: Block) -> None:
        block.attach_plain(
            self.env,
            self.config.make_colors(self.env),
            get_console_background_color(self.env, self.config.terminal_background),
        )

    def _filler(self, block: Block, block_length: int) -> str | None:
        if not block.filler:
            return None
        width = self._terminal_width()
        if not width or width <= 0:
            return None
        pad_length = width - self.current_line_length - block_length
        filler = ""
        while len(filler) < pad_length:
            filler += block.filler
        return filler

    def _render_block(self, block: Block) -> None:
        shell = self.env.shell()
        # bash needs the right prompt written plain and escaped as a whole
        if block.type == BlockType.RPROMPT and shell == BASH:
            self._attach_plain(block)
        else:
            block.attach(self.env, self.writer, self.ansi)
        block.render_segments_text()
        if not block.enabled():
            return
        if block.newline:
            self._newline()
        if block.type == BlockType.LINE_BREAK:
            self._newline()
        elif block.type == BlockType.PROMPT:
            if block.vertical_offset != 0:
                self._write_ansi(self.ansi.change_line(block.vertical_offset))
            if block.alignment == BlockAlignment.RIGHT:
                text, length = block.render_segments()
                filler = self._filler(block, length)
                if filler is not None:
                    self._write(filler)
                self._write_ansi(self.ansi.carriage_forward())
                self._write_ansi(self.ansi.cursor_for_right_write(length, block.horizontal_offset))
                self.current_line_length = 0
                self._write(text)
            elif block.alignment == BlockAlignment.LEFT:
                text, length = block.render_segments()
                self.current_line_length += length
                self._write(text)
        elif block.type == BlockType.RPROMPT:
            text, length = block.render_segments()
            self.rprompt_length = length
            if shell == BASH:
                text = self.ansi.format_text(text)
            self.rprompt = text
        # PowerShell colours the rest of the line unless it is cleared
        if shell in (PWSH, POWERSHELL5):
            self._write_ansi(self.ansi.clear_after())

    def debug(self, version: str) -> str:
        """Render every segment with timings and return a report."""
        timings: list[SegmentTiming] = []
        largest = 0
        self._write(f"\n\x1b[1mVersion:\x1b[0m {version}\n")
        self._write("\n\x1b[1mSegments:\x1b[0m\n\n")
        start = time.perf_counter()
        title = self.console_title.get_title() if self.console_title is not None else ""
        from datetime import timedelta

        timings.append(
            SegmentTiming(
                name="ConsoleTitle",
                name_length=12,
                active=self.config.console_title,
                text=title,
                duration=timedelta(seconds=time.perf_counter() - start),
            )
        )
        for block in self.config.blocks:
            block.attach(self.env, self.writer, self.ansi)
            longest, block_timings = block.debug()
            timings.extend(block_timings)
            largest = max(largest, longest)
        largest += 7
        for timing in timings:
            milliseconds = int(timing.duration.total_seconds() * 1000)
            name = f"{timing.name}({str(timing.active).lower()})"
            self._write(f"{name:<{largest}} - {milliseconds:3d} ms - {timing.text}\n")
        elapsed = _format_duration(time.perf_counter() - start)
        self._write(f"\n\x1b[1mRun duration:\x1b[0m {elapsed}\n")
        self._write(f"\n\x1b[1mCache path:\x1b[0m {self.env.cache_path()}\n")
        self._write("\n\x1b[1mLogs:\x1b[0m\n\n")
        self._write(self.env.logs())
        return self._string()

    def _print(self) -> str:
        shell = self.env.shell()
        if shell == ZSH:
            if self.env.is_eval():
                escaped = self._string().replace('"', '""')
                return f'PS1="{escaped}"\nRPROMPT="{self.rprompt}"'
        elif shell in (PWSH, POWERSHELL5, BASH, PLAIN):
            if self.rprompt and self.can_write_rprompt() and not self.plain:
                self._write(self.ansi.codes.save_cursor_position)
                self._write(self.ansi.carriage_forward())
                self._write(self.ansi.cursor_for_right_write(self.rprompt_length, 0))
                self._write(self.rprompt)
                self._write(self.ansi.codes.restore_cursor_position)
        return self._string()

    def render_tooltip(self, tip: str) -> str:
        """Render the last tooltip configured for the given command, if any."""
        tip = tip.strip(" ")
        tooltip: Segment | None = None
        for candidate in self.config.tooltips:
            if candidate.should_invoke_with_tip(tip):
                tooltip = candidate
        if tooltip is None:
            return ""
        try:
            tooltip.map_segment_with_writer(self.env)
        except WriterMappingError:
            return ""
        if not tooltip.writer.enabled():
            return ""
        tooltip.text = tooltip.render_template()
        tooltip.active = True
        block = Block(alignment=BlockAlignment.RIGHT, segments=[tooltip])
        shell = self.env.shell()
        if shell in (ZSH, WIN_CMD):
            block.attach(self.env, self.writer, self.ansi)
            text, _ = block.render_segments()
            return text
        if shell in (PWSH, POWERSHELL5):
            self._attach_plain(block)
            text, length = block.render_segments()
            self._write(self.ansi.clear_after())
            self._write(self.ansi.carriage_forward())
            self._write(self.ansi.cursor_for_right_write(length, 0))
            self._write(text)
            return self._string()
        return ""

    def render_transient_prompt(self) -> str:
        """Render the prompt that replaces a submitted one."""
        transient = self.config.transient_prompt
        if transient is None:
            return ""
        template = transient.template or DEFAULT_TRANSIENT_TEMPLATE
        try:
            prompt = self.env.render_template(template, None)
        except Exception as error:
            prompt = str(error)
        self.writer.set_colors(transient.background, transient.foreground)
        self.writer.write(transient.background, transient.foreground, prompt)
        shell = self.env.shell()
        if shell == ZSH:
            text, _ = self.writer.result()
            escaped = text.replace('"', '""')
            return f'PS1="{escaped}"\nRPROMPT=""'
        if shell in (PWSH, POWERSHELL5, WIN_CMD):
            text, _ = self.writer.result()
            return text
        return ""

    def render_rprompt(self) -> str:
        """Render only the first right-prompt block."""
        block = next((b for b in self.config.blocks if b.type == BlockType.RPROMPT), None)
        if block is None:
            return ""
        block.attach(self.env, self.writer, self.ansi)
        block.render_segments_text()
        if not block.enabled():
            return ""
        text, length = block.render_segments()
        self.rprompt_length = length
        return text