import json
import tomllib

import pytest
import yaml

from promptsmith.config import (
    SCHEMA_LOCATION,
    Config,
    ConfigError,
    TransientPrompt,
    default_config,
    escape_glyphs,
    load_config,
)


class StubEnv:
    def __init__(self, eval_mode=False, variables=None):
        self._eval = eval_mode
        self._variables = variables or {}

    def is_eval(self):
        return self._eval

    def getenv(self, key):
        return self._variables.get(key, "")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("a", "a"),
        ("\ue0b4", "\\ue0b4"),
        ("\ufd03", "\\ufd03"),
        ("}", "}"),
        ("🏚", "🏚"),
    ],
)
def test_escape_glyphs(text, expected):
    assert escape_glyphs(text) == expected


@pytest.mark.parametrize(
    "mapped, expected",
    [
        ({"folder1": "one", "folder2": "two"}, {"folder1": "one", "folder2": "two"}),
        ([["folder1", "one"], ["folder2", "two"]], [["folder1", "one"], ["folder2", "two"]]),
    ],
)
def test_parse_mapped_locations(mapped, expected):
    cfg = Config.from_dict(
        {"blocks": [{"segments": [{"type": "path", "properties": {"mapped_locations": mapped}}]}]}
    )
    assert cfg.blocks[0].segments[0].properties["mapped_locations"] == expected


def test_parse_segment_fields():
    cfg = Config.from_dict(
        {
            "version": 1,
            "blocks": [
                {
                    "type": "prompt",
                    "alignment": "left",
                    "segments": [
                        {
                            "type": "path",
                            "style": "powerline",
                            "powerline_symbol": "\uE0B0",
                            "foreground": "#ffffff",
                            "background": "#61AFEF",
                            "properties": {"style": "folder", "exclude_folders": ["/super/secret/project"]},
                        }
                    ],
                }
            ],
        }
    )
    segment = cfg.blocks[0].segments[0]
    assert segment.foreground_color == "#ffffff"
    assert segment.background_color == "#61AFEF"
    assert segment.powerline_symbol == "\uE0B0"
    assert segment.properties["exclude_folders"] == ["/super/secret/project"]
    assert cfg.transient_prompt == TransientPrompt()


def test_from_dict_rejects_non_list_blocks():
    with pytest.raises(ConfigError):
        Config.from_dict({"blocks": "nope"})


def test_default_config_values():
    cfg = default_config()
    assert cfg.version == 1
    assert cfg.final_space is True
    types = [s.type for s in cfg.blocks[0].segments]
    assert types == ["session", "path", "shell", "text", "exit"]
    assert cfg.blocks[0].segments[1].properties == {"style": "folder"}


def test_dict_round_trip():
    original = default_config().to_dict()
    assert Config.from_dict(original).to_dict() == original


def test_export_json_escapes_glyphs_and_round_trips():
    exported = default_config().export("json")
    assert "\\ue0b6" in exported
    data = json.loads(exported)
    assert data["$schema"] == SCHEMA_LOCATION
    assert data["version"] == 1
    assert data["blocks"][0]["segments"][0]["leading_diamond"] == "\ue0b6"


def test_export_toml_round_trips():
    exported = default_config().export("toml")
    assert exported.startswith(f"#:schema {SCHEMA_LOCATION}\n\n")
    data = tomllib.loads(exported)
    segment = data["blocks"][0]["segments"][4]
    assert segment["leading_diamond"] == "<transparent,background>\ue0b0</>"
    assert segment["properties"]["always_enabled"] is True


def test_export_yaml_round_trips():
    cfg = Config(version=1, final_space=True, console_title_template="{{ .PWD }}")
    exported = cfg.export("yaml")
    assert exported.startswith(f"# yaml-language-server: $schema={SCHEMA_LOCATION}\n\n")
    assert yaml.safe_load(exported) == {
        "version": 1,
        "final_space": True,
        "console_title_template": "{{ .PWD }}",
    }


def test_export_unknown_format_raises():
    with pytest.raises(ConfigError):
        default_config().export("ini")


def test_load_config_without_file_returns_default():
    cfg = load_config("", StubEnv())
    assert cfg.to_dict() == default_config().to_dict()


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.omp.json"), StubEnv())


def test_load_config_unsupported_extension(tmp_path):
    path = tmp_path / "theme.ini"
    path.write_text("version=1")
    with pytest.raises(ConfigError):
        load_config(str(path), StubEnv())


def test_load_config_invalid_json(tmp_path):
    path = tmp_path / "theme.omp.json"
    path.write_text("{ not json")
    with pytest.raises(ConfigError):
        load_config(str(path), StubEnv())


def test_load_json_config(tmp_path):
    path = tmp_path / "theme.omp.json"
    path.write_text(
        json.dumps(
            {
                "version": 1,
                "final_space": True,
                "blocks": [{"type": "prompt", "alignment": "left", "segments": [{"type": "text"}]}],
                "palette": {"red": "#FF0000"},
            }
        )
    )
    cfg = load_config(str(path), StubEnv())
    assert cfg.format == "json"
    assert cfg.origin == str(path)
    assert cfg.final_space is True
    assert cfg.blocks[0].segments[0].type == "text"
    assert cfg.palette == {"red": "#FF0000"}
    assert cfg.transient_prompt == TransientPrompt()


def test_load_yaml_config(tmp_path):
    path = tmp_path / "theme.omp.yaml"
    path.write_text("version: 1\nconsole_title: true\ntransient_prompt:\n  template: '> '\n")
    cfg = load_config(str(path), StubEnv())
    assert cfg.console_title is True
    assert cfg.transient_prompt.template == "> "


def test_load_toml_config(tmp_path):
    path = tmp_path / "theme.omp.toml"
    path.write_text('version = 1\nterminal_background = "#212F3C"\n')
    cfg = load_config(str(path), StubEnv())
    assert cfg.terminal_background == "#212F3C"
    assert cfg.format == "toml"


def test_load_config_migrates_old_version(tmp_path, capsys):
    path = tmp_path / "theme.omp.json"
    original = json.dumps(
        {
            "console_title_template": "{{ .Path }}",
            "blocks": [{"type": "prompt", "segments": [{"type": "unmapped-type"}]}],
        }
    )
    path.write_text(original)
    cfg = load_config(str(path), StubEnv(), True)
    assert cfg.version == 1
    assert (tmp_path / "theme.omp.json.bak").read_text() == original
    written = json.loads(path.read_text())
    assert written["version"] == 1
    assert written["console_title_template"] == "{{ .PWD }}"
    out = capsys.readouterr().out
    assert "migrated to version 1" in out
    assert str(path) + ".bak" in out


def test_load_config_eval_mode_message(tmp_path, capsys):
    path = tmp_path / "theme.omp.json"
    path.write_text(json.dumps({"version": 0}))
    load_config(str(path), StubEnv(eval_mode=True), True)
    assert capsys.readouterr().out.startswith('echo "')


def test_load_config_without_auto_migrate_keeps_version(tmp_path):
    path = tmp_path / "theme.omp.json"
    path.write_text(json.dumps({"version": 0}))
    cfg = load_config(str(path), StubEnv(), False)
    assert cfg.version == 0
    assert not (tmp_path / "theme.omp.json.bak").exists()


def test_make_colors_with_palette_and_cache():
    cfg = Config.from_dict({"palette": {"red": "#FF0000"}})
    colors = cfg.make_colors(StubEnv())
    assert colors.ansi_color_from_string("p:red", False) == "38;2;255;0;0"
    assert colors.ansi_color_from_string("p:missing", False) == ""


def test_make_colors_without_palette_cache_disabled():
    cfg = Config()
    colors = cfg.make_colors(StubEnv(variables={"OMP_CACHE_DISABLED": "1"}))
    assert colors.ansi_color_from_string("red", True) == "41"
    assert colors.ansi_color_from_string("p:red", False) == ""