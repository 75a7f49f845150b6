"""The console window title."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from promptsmith.ansi import Ansi
from promptsmith.segment import Environment

_WINDOWS_ROOT = re.compile(r"^[A-Za-z]:\\$")


class TitleStyle(StrEnum):
    FOLDER_NAME = "folder"
    FULL_PATH = "path"
    TEMPLATE = "template"


def _base(env: Environment, path: str) -> str:
    if path == "/" or _WINDOWS_ROOT.match(path):
        return path
    separator = env.path_separator()
    separators = {"/", separator}
    trimmed = path
    while trimmed and trimmed[-1] in separators:
        trimmed = trimmed[:-1]
    index = max(trimmed.rfind(s) for s in separators)
    return trimmed[index + 1:] or separator


@dataclass
class Title:
    """Builds the escape sequence that sets the console title."""

    env: Environment
    ansi: Ansi
    style: str = TitleStyle.FOLDER_NAME
    template: str = ""

    def get_title(self) -> str:
        if self.style == TitleStyle.FULL_PATH:
            title = self._pwd()
        elif self.style == TitleStyle.TEMPLATE:
            title = self._template_text()
        else:
            title = _base(self.env, self._pwd())
        return self.ansi.title(self.ansi.escape_text(title))

    def _template_text(self) -> str:
        try:
            return self.env.render_template(self.template, None)
        except Exception:
            return ""

    def _pwd(self) -> str:
        return self.env.pwd().replace(self.env.home(), "~", 1)