"""Shell-aware ANSI escape sequences."""

from __future__ import annotations

import re
from dataclasses import dataclass

ZSH = "zsh"
BASH = "bash"
PWSH = "pwsh"

LINK_PATTERN = r"(?P<STR>\x1b\]8;;(?P<URL>[^\x1b]*)\x1b\\(?P<TEXT>[^\x1b]*)\x1b\]8;;\x1b\\)"

_LINK_RE = re.compile(LINK_PATTERN)
_HYPERLINK_RE = re.compile(r"(?P<all>(?:\[(?P<name>.+)\])(?:\((?P<url>.*)\)))")
_MARKUP_RE = re.compile(r"(?P<context><(?P<format>[buis])>(?P<text>[^<]+)</[buis]>)")


def measure_text(text: str) -> int:
    """Count the visible characters of text, ignoring hyperlink escapes."""
    if "\x1b]8;;" not in text:
        return len(text)
    return len(_LINK_RE.sub(lambda m: m["TEXT"], text))


@dataclass(frozen=True)
class ShellCodes:
    """Escape sequence templates for one shell."""

    format: str
    linechange: str
    right: str
    left: str
    color_reset: str
    clear_below: str
    clear_line: str
    save_cursor_position: str
    restore_cursor_position: str
    title: str
    color_single: str
    color_full: str
    color_transparent: str
    escape_left: str
    escape_right: str
    hyperlink: str
    osc99: str
    bold: str
    italic: str
    underline: str
    strikethrough: str
    replacements: tuple[tuple[str, str], ...]


_BACKTICK = ("`", "'")

_ZSH_CODES = ShellCodes(
    format="%%{%s%%}",
    linechange="%%{\x1b[%d%s%%}",
    right="%%{\x1b[%dC%%}",
    left="%%{\x1b[%dD%%}",
    color_reset="%{\x1b[0m%}",
    clear_below="%{\x1b[0J%}",
    clear_line="%{\x1b[K%}",
    save_cursor_position="%{\x1b7%}",
    restore_cursor_position="%{\x1b8%}",
    title="%%{\x1b]0;%s\x07%%}",
    color_single="%%{\x1b[%sm%%}%s%%{\x1b[0m%%}",
    color_full="%%{\x1b[%sm\x1b[%sm%%}%s%%{\x1b[0m%%}",
    color_transparent="%%{\x1b[%s;49m\x1b[7m%%}%s%%{\x1b[0m%%}",
    escape_left="%{",
    escape_right="%}",
    hyperlink="%%{\x1b]8;;%s\x1b\\%%}%s%%{\x1b]8;;\x1b\\%%}",
    osc99='%%{\x1b]9;9;"%s"\x1b\\%%}',
    bold="%%{\x1b[1m%%}%s%%{\x1b[22m%%}",
    italic="%%{\x1b[3m%%}%s%%{\x1b[23m%%}",
    underline="%%{\x1b[4m%%}%s%%{\x1b[24m%%}",
    strikethrough="%%{\x1b[9m%%}%s%%{\x1b[29m%%}",
    replacements=(("\\", "\\\\"), ("%", "%%"), _BACKTICK),
)

_BASH_CODES = ShellCodes(
    format="\\[%s\\]",
    linechange="\\[\x1b[%d%s\\]",
    right="\\[\x1b[%dC\\]",
    left="\\[\x1b[%dD\\]",
    color_reset="\\[\x1b[0m\\]",
    clear_below="\\[\x1b[0J\\]",
    clear_line="\\[\x1b[K\\]",
    save_cursor_position="\\[\x1b7\\]",
    restore_cursor_position="\\[\x1b8\\]",
    title="\\[\x1b]0;%s\x07\\]",
    color_single="\\[\x1b[%sm\\]%s\\[\x1b[0m\\]",
    color_full="\\[\x1b[%sm\x1b[%sm\\]%s\\[\x1b[0m\\]",
    color_transparent="\\[\x1b[%s;49m\x1b[7m\\]%s\\[\x1b[0m\\]",
    escape_left="\\[",
    escape_right="\\]",
    hyperlink="\\[\x1b]8;;%s\x1b\\\\\\]%s\\[\x1b]8;;\x1b\\\\\\]",
    osc99='\\[\x1b]9;9;"%s"\x1b\\\\\\]',
    bold="\\[\x1b[1m\\]%s\\[\x1b[22m\\]",
    italic="\\[\x1b[3m\\]%s\\[\x1b[23m\\]",
    underline="\\[\x1b[4m\\]%s\\[\x1b[24m\\]",
    strikethrough="\\[\x1b[9m\\]%s\\[\x1b[29m\\]",
    replacements=(("\\", "\\\\"), _BACKTICK),
)

_DEFAULT_CODES = ShellCodes(
    format="%s",
    linechange="\x1b[%d%s",
    right="\x1b[%dC",
    left="\x1b[%dD",
    color_reset="\x1b[0m",
    clear_below="\x1b[0J",
    clear_line="\x1b[K",
    save_cursor_position="\x1b7",
    restore_cursor_position="\x1b8",
    title="\x1b]0;%s\x07",
    color_single="\x1b[%sm%s\x1b[0m",
    color_full="\x1b[%sm\x1b[%sm%s\x1b[0m",
    color_transparent="\x1b[%s;49m\x1b[7m%s\x1b[0m",
    escape_left="",
    escape_right="",
    hyperlink="\x1b]8;;%s\x1b\\%s\x1b]8;;\x1b\\",
    osc99='\x1b]9;9;"%s"\x1b\\',
    bold="\x1b[1m%s\x1b[22m",
    italic="\x1b[3m%s\x1b[23m",
    underline="\x1b[4m%s\x1b[24m",
    strikethrough="\x1b[9m%s\x1b[29m",
    replacements=(_BACKTICK,),
)

_CODES_BY_SHELL = {ZSH: _ZSH_CODES, BASH: _BASH_CODES}


class Ansi:
    """Produces escape sequences wrapped the way the given shell expects."""

    def __init__(self, shell: str = "") -> None:
        self.shell = shell
        self.codes = _CODES_BY_SHELL.get(shell, _DEFAULT_CODES)

    def generate_hyperlink(self, text: str) -> str:
        """Turn the first ``[name](url)`` in text into a terminal hyperlink."""
        match = _HYPERLINK_RE.search(text)
        if match is None:
            return text
        link = self.codes.hyperlink % (match["url"] or "", match["name"] or "")
        return text.replace(match["all"], link, 1)

    def apply_markup(self, text: str) -> str:
        """Replace ``<b>``, ``<u>``, ``<i>`` and ``<s>`` tags with escape sequences."""
        templates = {
            "b": self.codes.bold,
            "u": self.codes.underline,
            "i": self.codes.italic,
            "s": self.codes.strikethrough,
        }
        for match in list(_MARKUP_RE.finditer(text)):
            formatted = templates[match["format"]] % (match["text"],)
            text = text.replace(match["context"], formatted, 1)
        return text

    def carriage_forward(self) -> str:
        return self.codes.right % (1000,)

    def cursor_for_right_write(self, length: int, offset: int) -> str:
        return self.codes.left % (length - offset,)

    def change_line(self, number_of_lines: int) -> str:
        position = "B"
        if number_of_lines < 0:
            position = "F"
            number_of_lines = -number_of_lines
        return self.codes.linechange % (number_of_lines, position)

    def console_pwd(self, pwd: str) -> str:
        path = pwd
        if path.endswith(":"):
            path += "\\"
        return self.codes.osc99 % (path,)

    def clear_after(self) -> str:
        return self.codes.clear_line + self.codes.clear_below

    def escape_text(self, text: str) -> str:
        """Escape characters the shell would otherwise interpret."""
        for old, new in self.codes.replacements:
            text = text.replace(old, new)
        return text

    def title(self, title: str) -> str:
        return self.codes.title % (title,)

    def format_text(self, text: str) -> str:
        """Wrap text in the shell's non-printing markers."""
        return self.codes.format % (text,)