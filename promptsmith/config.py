"""Loading, exporting and migrating the prompt configuration."""

from __future__ import annotations

import copy
import json
import shutil
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w
import yaml

from promptsmith.block import Block, BlockAlignment, BlockType
from promptsmith.colors import make_colors as build_colors
from promptsmith.migrate import CONFIG_VERSION, migrate_config
from promptsmith.palette import Palette
from promptsmith.segment import SEGMENT_TEMPLATE, Segment, SegmentStyle, SegmentType

JSON = "json"
YAML = "yaml"
TOML = "toml"

SCHEMA_LOCATION = "themes/schema.json"

_FORMAT_ALIASES = {"yml": YAML}

_SEGMENT_FIELDS = (
    ("type", "type"),
    ("tips", "tips"),
    ("style", "style"),
    ("powerline_symbol", "powerline_symbol"),
    ("invert_powerline", "invert_powerline"),
    ("foreground", "foreground_color"),
    ("foreground_templates", "foreground_templates"),
    ("background", "background_color"),
    ("background_templates", "background_templates"),
    ("leading_diamond", "leading_diamond"),
    ("trailing_diamond", "trailing_diamond"),
    ("properties", "properties"),
)

_BLOCK_FIELDS = (
    "type",
    "alignment",
    "horizontal_offset",
    "vertical_offset",
    "newline",
    "filler",
)


class ConfigError(Exception):
    """The configuration could not be read, converted or written."""


def _plain(value: Any) -> Any:
    """Deep-copy value into plain built-in types."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, str):
        return str(value)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return float(value)
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return copy.deepcopy(value)


def _expect(value: Any, kind: type | tuple[type, ...], what: str) -> Any:
    if not isinstance(value, kind):
        raise ConfigError(f"invalid value for {what}: {value!r}")
    return value


def _segment_from_dict(data: Any) -> Segment:
    _expect(data, dict, "segment")
    kwargs: dict[str, Any] = {}
    for key, attr in _SEGMENT_FIELDS:
        value = data.get(key)
        if value is None:
            continue
        if key in ("tips", "foreground_templates", "background_templates"):
            value = list(_expect(value, list, key))
        elif key == "properties":
            value = _plain(_expect(value, dict, key))
        elif key == "invert_powerline":
            value = bool(value)
        else:
            value = str(value)
        kwargs[attr] = value
    return Segment(**kwargs)


def _segment_to_dict(segment: Segment) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, attr in _SEGMENT_FIELDS:
        value = getattr(segment, attr)
        if value:
            out[key] = _plain(value)
    return out


def _block_from_dict(data: Any) -> Block:
    _expect(data, dict, "block")
    kwargs: dict[str, Any] = {}
    for key in _BLOCK_FIELDS:
        value = data.get(key)
        if value is None:
            continue
        if key in ("horizontal_offset", "vertical_offset"):
            value = int(_expect(value, (int, float), key))
        elif key == "newline":
            value = bool(value)
        else:
            value = str(value)
        kwargs[key] = value
    segments = data.get("segments") or []
    kwargs["segments"] = [_segment_from_dict(s) for s in _expect(segments, list, "segments")]
    return Block(**kwargs)


def _block_to_dict(block: Block) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in ("type", "alignment", "horizontal_offset", "vertical_offset"):
        value = getattr(block, key)
        if value:
            out[key] = _plain(value)
    if block.segments:
        out["segments"] = [_segment_to_dict(s) for s in block.segments]
    for key in ("newline", "filler"):
        value = getattr(block, key)
        if value:
            out[key] = _plain(value)
    return out


@dataclass
class TransientPrompt:
    """The prompt shown in place of a prompt that has been submitted."""

    template: str = ""
    background: str = ""
    foreground: str = ""

    def to_dict(self) -> dict[str, str]:
        return {k: v for k, v in (
            ("template", self.template),
            ("background", self.background),
            ("foreground", self.foreground),
        ) if v}


@dataclass(eq=False)
class Config:
    """The whole theme used to render the prompt."""

    version: int = 0
    final_space: bool = False
    osc99: bool = False
    console_title: bool = False
    console_title_style: str = ""
    console_title_template: str = ""
    terminal_background: str = ""
    blocks: list[Block] = field(default_factory=list)
    tooltips: list[Segment] = field(default_factory=list)
    transient_prompt: TransientPrompt | None = None
    palette: Palette | None = None
    format: str = field(default="", init=False)
    origin: str = field(default="", init=False)
    eval_mode: bool = field(default=False, init=False)
    updated: bool = field(default=False, init=False)
    _raw: dict[str, Any] | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Build a config from the mapping a config file holds."""
        _expect(data, dict, "config")
        transient = data.get("transient_prompt")
        if transient is None:
            transient_prompt = TransientPrompt()
        else:
            _expect(transient, dict, "transient_prompt")
            transient_prompt = TransientPrompt(
                template=str(transient.get("template") or ""),
                background=str(transient.get("background") or ""),
                foreground=str(transient.get("foreground") or ""),
            )
        palette = data.get("palette")
        return cls(
            version=int(_expect(data.get("version", 0), int, "version")),
            final_space=bool(data.get("final_space", False)),
            osc99=bool(data.get("osc99", False)),
            console_title=bool(data.get("console_title", False)),
            console_title_style=str(data.get("console_title_style") or ""),
            console_title_template=str(data.get("console_title_template") or ""),
            terminal_background=str(data.get("terminal_background") or ""),
            blocks=[_block_from_dict(b) for b in _expect(data.get("blocks") or [], list, "blocks")],
            tooltips=[
                _segment_from_dict(s) for s in _expect(data.get("tooltips") or [], list, "tooltips")
            ],
            transient_prompt=transient_prompt,
            palette=None if palette is None else Palette(_expect(palette, dict, "palette")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the config as a mapping, leaving out empty values."""
        out: dict[str, Any] = {"version": self.version}
        for key in (
            "final_space",
            "osc99",
            "console_title",
            "console_title_style",
            "console_title_template",
            "terminal_background",
        ):
            value = getattr(self, key)
            if value:
                out[key] = _plain(value)
        if self.blocks:
            out["blocks"] = [_block_to_dict(b) for b in self.blocks]
        if self.tooltips:
            out["tooltips"] = [_segment_to_dict(s) for s in self.tooltips]
        if self.transient_prompt is not None:
            transient = self.transient_prompt.to_dict()
            if transient:
                out["transient_prompt"] = transient
        if self.palette:
            out["palette"] = dict(self.palette)
        return out

    def make_colors(self, env: Any) -> Any:
        """Build the colour source for this config and environment."""
        cache_disabled = env.getenv("OMP_CACHE_DISABLED") == "1"
        return build_colors(self.palette, not cache_disabled)

    def _print(self, message: str) -> None:
        if self.eval_mode:
            print(f'echo "{message}"', end="")
            return
        print(message)

    def _data(self) -> dict[str, Any]:
        if self.updated or self._raw is None:
            return self.to_dict()
        return copy.deepcopy(self._raw)

    def export(self, fmt: str = "") -> str:
        """Serialise the config as JSON, YAML or TOML."""
        if fmt:
            self.format = fmt
        target = _FORMAT_ALIASES.get(self.format, self.format)
        data = self._data()
        if target == JSON:
            data["$schema"] = SCHEMA_LOCATION
            text = json.dumps(data, indent=2, ensure_ascii=False, sort_keys=True) + "\n"
            return escape_glyphs(text)
        if target == YAML:
            prefix = f"# yaml-language-server: $schema={SCHEMA_LOCATION}\n\n"
            text = yaml.safe_dump(data, allow_unicode=True, sort_keys=True)
        elif target == TOML:
            prefix = f"#:schema {SCHEMA_LOCATION}\n\n"
            try:
                text = tomli_w.dumps(data)
            except (TypeError, ValueError) as error:
                raise ConfigError(str(error)) from error
        else:
            raise ConfigError(f"unsupported config format {self.format!r}")
        return prefix + escape_glyphs(text)

    def migrate(self, env: Any) -> None:
        """Upgrade the config to the current version."""
        migrate_config(self, env)

    def backup_and_migrate(self, env: Any) -> None:
        """Back up the config file, migrate it and write it back."""
        backup = self._backup()
        self.migrate(env)
        self._write()
        self._print(
            f"\nConfig migrated to version {self.version}\nBackup config available at {backup}\n\n"
        )

    def _write(self) -> None:
        content = self.export(self.format)
        try:
            Path(self.origin).write_text(content, encoding="utf-8")
        except OSError as error:
            raise ConfigError(str(error)) from error

    def _backup(self) -> str:
        destination = self.origin + ".bak"
        try:
            shutil.copyfile(self.origin, destination)
        except OSError as error:
            raise ConfigError(str(error)) from error
        return destination


def _parse(text: str, fmt: str) -> Any:
    target = _FORMAT_ALIASES.get(fmt, fmt)
    try:
        if target == JSON:
            return json.loads(text)
        if target == YAML:
            return yaml.safe_load(text)
        if target == TOML:
            return tomllib.loads(text)
    except (ValueError, yaml.YAMLError) as error:
        raise ConfigError(str(error)) from error
    raise ConfigError(f"unsupported config format {fmt!r}")


def load_config(config_file: str, env: Any = None, auto_migrate: bool = True) -> Config:
    """Load the config file, or the default config when no file is given."""
    if not config_file:
        return default_config()
    path = Path(config_file)
    if not path.exists():
        raise ConfigError(f"config file {config_file} does not exist")
    fmt = path.suffix.removeprefix(".")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as error:
        raise ConfigError(str(error)) from error
    data = _parse(text, fmt)
    if not isinstance(data, dict):
        raise ConfigError(f"config file {config_file} does not hold a mapping")
    cfg = Config.from_dict(data)
    cfg._raw = data
    cfg.origin = str(path)
    cfg.format = fmt
    cfg.eval_mode = bool(env is not None and env.is_eval())
    if auto_migrate and cfg.version != CONFIG_VERSION:
        cfg.backup_and_migrate(env)
    return cfg


def escape_glyphs(s: str) -> str:
    """Write private-use glyphs as ``\\uXXXX`` escapes, leaving other text alone."""
    return "".join(
        ch if ord(ch) < 0x1000 or ord(ch) > 0x10000 else f"\\u{ord(ch):04x}" for ch in s
    )


def default_config() -> Config:
    """The config used when no config file is given."""
    return Config(
        version=1,
        final_space=True,
        blocks=[
            Block(
                type=BlockType.PROMPT,
                alignment=BlockAlignment.LEFT,
                segments=[
                    Segment(
                        type=SegmentType.SESSION,
                        style=SegmentStyle.DIAMOND,
                        background_color="#c386f1",
                        foreground_color="#ffffff",
                        leading_diamond="\uE0B6",
                        trailing_diamond="\uE0B0",
                    ),
                    Segment(
                        type=SegmentType.PATH,
                        style=SegmentStyle.POWERLINE,
                        powerline_symbol="\uE0B0",
                        background_color="#ff479c",
                        foreground_color="#ffffff",
                        properties={"style": "folder"},
                    ),
                    Segment(
                        type=SegmentType.SHELL,
                        style=SegmentStyle.POWERLINE,
                        powerline_symbol="\uE0B0",
                        background_color="#0077c2",
                        foreground_color="#ffffff",
                    ),
                    Segment(
                        type=SegmentType.TEXT,
                        style=SegmentStyle.POWERLINE,
                        powerline_symbol="\uE0B0",
                        background_color="#ffffff",
                        foreground_color="#111111",
                        properties={SEGMENT_TEMPLATE: " no config "},
                    ),
                    Segment(
                        type=SegmentType.EXIT,
                        style=SegmentStyle.DIAMOND,
                        background_color="#2e9599",
                        foreground_color="#ffffff",
                        leading_diamond="<transparent,background>\uE0B0</>",
                        trailing_diamond="\uE0B4",
                        background_templates=["{{ if gt .Code 0 }}#f1184c{{ end }}"],
                        properties={"always_enabled": True, SEGMENT_TEMPLATE: " \uE23A"},
                    ),
                ],
            )
        ],
    )