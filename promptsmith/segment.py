"""Prompt segments: their configuration, colours and rendering."""

from __future__ import annotations

import re
import traceback
from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from typing import Any, Callable, Protocol

SEGMENT_TEMPLATE = "template"
INCLUDE_FOLDERS = "include_folders"
EXCLUDE_FOLDERS = "exclude_folders"
IGNORE_FOLDERS = "ignore_folders"

WINDOWS_PLATFORM = "windows"
DARWIN_PLATFORM = "darwin"
LINUX_PLATFORM = "linux"


class Environment(Protocol):
    """What the prompt needs to know about the shell it runs in."""

    def pwd(self) -> str: ...

    def home(self) -> str: ...

    def path_separator(self) -> str: ...

    def goos(self) -> str: ...

    def getenv(self, key: str) -> str: ...

    def shell(self) -> str: ...

    def terminal_width(self) -> int:
        """Return the terminal width; raise OSError when it cannot be determined."""
        ...

    def is_eval(self) -> bool: ...

    def cache_path(self) -> str: ...

    def logs(self) -> str: ...

    def render_template(self, template: str, context: object | None) -> str:
        """Render a prompt template against a context; raise on failure."""
        ...


class SegmentWriter(Protocol):
    """Supplies the data and the default template of a segment."""

    def enabled(self) -> bool: ...

    def template(self) -> str: ...

    def init(self, props: dict[str, Any], env: Environment) -> None: ...


class SegmentStyle(StrEnum):
    POWERLINE = "powerline"
    PLAIN = "plain"
    DIAMOND = "diamond"


class SegmentType(StrEnum):
    SESSION = "session"
    PATH = "path"
    GIT = "git"
    PLASTIC = "plastic"
    EXIT = "exit"
    PYTHON = "python"
    ROOT = "root"
    TIME = "time"
    TEXT = "text"
    CMD = "command"
    BATTERY = "battery"
    SPOTIFY = "spotify"
    SHELL = "shell"
    NODE = "node"
    OS = "os"
    AZ = "az"
    KUBECTL = "kubectl"
    DOTNET = "dotnet"
    TERRAFORM = "terraform"
    GO = "go"
    JULIA = "julia"
    YTM = "ytm"
    EXECUTIONTIME = "executiontime"
    RUBY = "ruby"
    AWS = "aws"
    JAVA = "java"
    POSHGIT = "poshgit"
    AZFUNC = "azfunc"
    CRYSTAL = "crystal"
    DART = "dart"
    NBGV = "nbgv"
    RUST = "rust"
    OWM = "owm"
    SYSTEMINFO = "sysinfo"
    ANGULAR = "angular"
    PHP = "php"
    NIGHTSCOUT = "nightscout"
    STRAVA = "strava"
    WAKATIME = "wakatime"
    WIFI = "wifi"
    WINREG = "winreg"
    BREWFATHER = "brewfather"
    IPIFY = "ipify"
    HASKELL = "haskell"


class WriterMappingError(LookupError):
    """No writer is registered for a segment type."""

    def __init__(self, segment_type: str) -> None:
        self.segment_type = segment_type
        super().__init__(f"unable to map writer for segment type {segment_type}")


_WRITER_FACTORIES: dict[str, Callable[[], SegmentWriter]] = {}


def register_writer(segment_type: str, factory: Callable[[], SegmentWriter]) -> None:
    """Make segments of the given type use writers built by factory."""
    _WRITER_FACTORIES[str(segment_type)] = factory


def _string_list(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str)]
    return []


def _dir_matches_one_of(env: Environment, patterns: list[str]) -> bool:
    if not patterns:
        return False
    cwd = env.pwd().replace("\\", "/")
    home = env.home().replace("\\", "/")
    flags = re.IGNORECASE if env.goos() in (WINDOWS_PLATFORM, DARWIN_PLATFORM) else 0
    for element in patterns:
        normalized = element.replace("\\\\", "/")
        if normalized.startswith("~"):
            normalized = home + normalized[1:]
        if re.search("^" + normalized + r"\Z", cwd, flags):
            return True
    return False


@dataclass(eq=False)
class Segment:
    """A single configured piece of the prompt."""

    type: str = ""
    tips: list[str] = field(default_factory=list)
    style: str = ""
    powerline_symbol: str = ""
    invert_powerline: bool = False
    foreground_color: str = ""
    foreground_templates: list[str] = field(default_factory=list)
    background_color: str = ""
    background_templates: list[str] = field(default_factory=list)
    leading_diamond: str = ""
    trailing_diamond: str = ""
    properties: dict[str, Any] = field(default_factory=dict)
    text: str = ""
    active: bool = False
    writer: SegmentWriter | None = field(default=None, repr=False)
    env: Environment | None = field(default=None, repr=False)

    def should_include_folder(self) -> bool:
        included = self._cwd_included()
        excluded = self._cwd_excluded()
        return included and not excluded

    def _cwd_included(self) -> bool:
        if INCLUDE_FOLDERS not in self.properties:
            return True
        patterns = _string_list(self.properties[INCLUDE_FOLDERS])
        if not patterns:
            return True
        return _dir_matches_one_of(self.env, patterns)

    def _cwd_excluded(self) -> bool:
        if EXCLUDE_FOLDERS in self.properties:
            value = self.properties[EXCLUDE_FOLDERS]
        else:
            value = self.properties.get(IGNORE_FOLDERS)
        return _dir_matches_one_of(self.env, _string_list(value))

    def _color(self, templates: list[str], default_color: str) -> str:
        for template in templates or ():
            try:
                value = self.env.render_template(template, self.writer)
            except Exception:
                continue
            if value:
                return value
        return default_color

    def should_invoke_with_tip(self, tip: str) -> bool:
        return tip in self.tips

    def foreground(self) -> str:
        return self._color(self.foreground_templates, self.foreground_color)

    def background(self) -> str:
        return self._color(self.background_templates, self.background_color)

    def map_segment_with_writer(self, env: Environment) -> None:
        """Attach the environment and a fresh writer for this segment's type."""
        self.env = env
        if self.properties is None:
            self.properties = {}
        factory = _WRITER_FACTORIES.get(str(self.type))
        if factory is None:
            raise WriterMappingError(str(self.type))
        writer = factory()
        writer.init(self.properties, env)
        self.writer = writer

    def render_template(self) -> str:
        """Render the segment's template, returning the error text on failure."""
        template = self.properties.get(SEGMENT_TEMPLATE)
        if not isinstance(template, str):
            template = self.writer.template()
        try:
            return self.env.render_template(template, self.writer)
        except Exception as error:
            return str(error)

    def render_text(self, env: Environment) -> None:
        """Compute the segment text and whether it is shown."""
        try:
            try:
                self.map_segment_with_writer(env)
            except WriterMappingError:
                return
            if not self.should_include_folder():
                return
            if self.writer.enabled():
                self.text = self.render_template()
                self.active = bool(self.text.strip())
        except Exception as error:
            print(
                f"\nfatal error rendering {self.type} segment:{error}\n\n"
                f"{traceback.format_exc()}\n"
            )
            self.text = "error"
            self.active = True


@dataclass
class SegmentTiming:
    """How long a segment took to render, and what it produced."""

    name: str
    name_length: int
    active: bool
    text: str
    duration: timedelta