from __future__ import annotations

from typing import Any

import pytest

from promptsmith.ansi import Ansi
from promptsmith.block import Block
from promptsmith.colors import DefaultColors
from promptsmith.config import Config, TransientPrompt
from promptsmith.engine import Engine, get_console_background_color
from promptsmith.segment import Segment, register_writer
from promptsmith.title import Title
from promptsmith.writer import AnsiWriter

FAKE = "fake-engine-writer"
SEGMENT_TEXT = "\x1b[47m\x1b[30mhi\x1b[0m"


class FakeWriter:
    def __init__(self) -> None:
        self.props: dict[str, Any] = {}

    def init(self, props: dict[str, Any], env: Any) -> None:
        self.props = props

    def enabled(self) -> bool:
        return self.props.get("enabled", True)

    def template(self) -> str:
        return ""


register_writer(FAKE, FakeWriter)


class FakeEnv:
    def __init__(self, shell="pwsh", width=0, width_error=None, templates=None, eval_mode=False):
        self._shell = shell
        self._width = width
        self._width_error = width_error
        self.templates = templates or {}
        self._eval = eval_mode
        self.rendered: list[str] = []

    def pwd(self):
        return "/usr/home/project"

    def home(self):
        return "/usr/home"

    def path_separator(self):
        return "/"

    def goos(self):
        return "linux"

    def getenv(self, key):
        return ""

    def shell(self):
        return self._shell

    def terminal_width(self):
        if self._width_error is not None:
            raise self._width_error
        return self._width

    def is_eval(self):
        return self._eval

    def cache_path(self):
        return "/tmp/cache"

    def logs(self):
        return "no logs"

    def render_template(self, template, context):
        self.rendered.append(template)
        value = self.templates.get(template, template)
        if isinstance(value, Exception):
            raise value
        return value


def make_segment(text="hi", **kwargs):
    return Segment(
        type=FAKE,
        style="plain",
        background_color="white",
        foreground_color="black",
        properties={"template": text},
        **kwargs,
    )


def make_engine(env, blocks=(), plain=False, **config_kwargs):
    ansi = Ansi(env.shell())
    config = Config(version=1, blocks=list(blocks), **config_kwargs)
    writer = AnsiWriter(ansi=ansi, ansi_colors=DefaultColors(), terminal_background="")
    title = Title(env=env, ansi=ansi)
    return Engine(config=config, env=env, writer=writer, ansi=ansi, console_title=title, plain=plain)


@pytest.mark.parametrize(
    "expected,width,error,prompt_length,rprompt_length",
    [
        (True, 0, OSError("burp"), 0, 0),
        (True, 200, None, 100, 10),
        (True, 200, None, 100, 70),
        (True, 200, None, 300, 70),
        (False, 200, None, 100, 71),
        (False, 200, None, 300, 80),
        (True, 200, None, 400, 80),
    ],
)
def test_can_write_rprompt(expected, width, error, prompt_length, rprompt_length):
    engine = make_engine(FakeEnv(width=width, width_error=error))
    engine.rprompt_length = rprompt_length
    engine.current_line_length = prompt_length
    assert engine.can_write_rprompt() is expected


VSCODE_TEMPLATE = '{{ if eq "vscode" .Env.TERM_PROGRAM }}#123456{{end}}'


@pytest.mark.parametrize("rendered,expected", [("#123456", "#123456"), ("", "")])
def test_console_background_color_template(rendered, expected):
    env = FakeEnv(templates={VSCODE_TEMPLATE: rendered})
    assert get_console_background_color(env, VSCODE_TEMPLATE) == expected


def test_console_background_color_error_returns_message():
    env = FakeEnv(templates={"bad": ValueError("template broke")})
    assert get_console_background_color(env, "bad") == "template broke"


def test_console_background_color_empty_skips_rendering():
    env = FakeEnv()
    assert get_console_background_color(env, "") == ""
    assert env.rendered == []


def test_render_left_block_pwsh():
    env = FakeEnv()
    engine = make_engine(env, [Block(type="prompt", alignment="left", segments=[make_segment()])],
                         final_space=True)
    assert engine.render() == SEGMENT_TEXT + "\x1b[K\x1b[0J" + "\x1b[0m "
    assert engine.current_line_length == 2


def test_render_plain_skips_ansi():
    env = FakeEnv()
    engine = make_engine(env, [Block(type="prompt", alignment="left", segments=[make_segment()])],
                         plain=True, final_space=True)
    assert engine.render() == SEGMENT_TEXT + " "


def test_render_disabled_block_writes_nothing():
    env = FakeEnv()
    segment = make_segment()
    segment.properties["enabled"] = False
    engine = make_engine(env, [Block(type="prompt", alignment="left", segments=[segment])])
    assert engine.render() == "\x1b[0m"


def test_render_right_block_with_filler():
    env = FakeEnv(width=10)
    block = Block(type="prompt", alignment="right", filler=".", segments=[make_segment()])
    engine = make_engine(env, [block])
    expected = "........" + "\x1b[1000C" + "\x1b[2D" + SEGMENT_TEXT + "\x1b[K\x1b[0J" + "\x1b[0m"
    assert engine.render() == expected
    assert engine.current_line_length == 0


def test_render_newline_block_and_vertical_offset():
    env = FakeEnv(shell="other")
    blocks = [
        Block(type="newline"),
        Block(type="prompt", alignment="left", vertical_offset=-2, segments=[make_segment()]),
    ]
    engine = make_engine(env, blocks)
    assert engine.render() == "\n" + "\x1b[2F" + SEGMENT_TEXT + "\x1b[0m"


def test_render_with_rprompt():
    env = FakeEnv(width=200)
    blocks = [
        Block(type="prompt", alignment="left", segments=[make_segment()]),
        Block(type="rprompt", segments=[make_segment("rp")]),
    ]
    engine = make_engine(env, blocks)
    output = engine.render()
    rprompt = "\x1b[47m\x1b[30mrp\x1b[0m"
    assert output.endswith("\x1b7\x1b[1000C\x1b[2D" + rprompt + "\x1b8")
    assert engine.rprompt_length == 2


def test_render_zsh_eval():
    env = FakeEnv(shell="zsh", eval_mode=True)
    blocks = [Block(type="rprompt", segments=[make_segment("rp")])]
    engine = make_engine(env, blocks)
    output = engine.render()
    assert output.startswith('PS1="%{\x1b[0m%}"\nRPROMPT="')
    assert "rp" in output


def test_render_osc99():
    env = FakeEnv(shell="other")
    engine = make_engine(env, osc99=True)
    assert engine.render() == "\x1b[0m" + '\x1b]9;9;"/usr/home/project"\x1b\\'


def test_render_rprompt_only():
    env = FakeEnv()
    engine = make_engine(env, [Block(type="rprompt", segments=[make_segment("rp")])])
    assert engine.render_rprompt() == "\x1b[47m\x1b[30mrp\x1b[0m"
    assert engine.rprompt_length == 2


def test_render_rprompt_without_block():
    engine = make_engine(FakeEnv(), [Block(type="prompt", alignment="left", segments=[make_segment()])])
    assert engine.render_rprompt() == ""


def test_render_tooltip_zsh():
    env = FakeEnv(shell="zsh")
    engine = make_engine(env)
    engine.config.tooltips = [make_segment("tip", tips=["git"])]
    assert engine.render_tooltip("  git ") == "%{\x1b[47m\x1b[30m%}tip%{\x1b[0m%}"


def test_render_tooltip_no_match():
    env = FakeEnv(shell="zsh")
    engine = make_engine(env)
    engine.config.tooltips = [make_segment("tip", tips=["git"])]
    assert engine.render_tooltip("ls") == ""


def test_render_tooltip_unmapped_type():
    env = FakeEnv(shell="zsh")
    engine = make_engine(env)
    engine.config.tooltips = [Segment(type="unknown-kind", tips=["git"])]
    assert engine.render_tooltip("git") == ""


def test_render_tooltip_pwsh():
    env = FakeEnv(shell="pwsh")
    engine = make_engine(env)
    engine.config.tooltips = [make_segment("tip", tips=["git"])]
    expected = "\x1b[K\x1b[0J" + "\x1b[1000C" + "\x1b[3D" + "\x1b[47m\x1b[30mtip\x1b[0m"
    assert engine.render_tooltip("git") == expected


def test_render_transient_prompt_pwsh():
    env = FakeEnv(shell="pwsh")
    engine = make_engine(env)
    engine.config.transient_prompt = TransientPrompt(template="> ", foreground="white")
    assert engine.render_transient_prompt() == "\x1b[37m> \x1b[0m"


def test_render_transient_prompt_default_template():
    env = FakeEnv(shell="pwsh", templates={"{{ .Shell }}> ": "pwsh> "})
    engine = make_engine(env)
    engine.config.transient_prompt = TransientPrompt(foreground="white")
    assert engine.render_transient_prompt() == "\x1b[37mpwsh> \x1b[0m"


def test_render_transient_prompt_zsh():
    env = FakeEnv(shell="zsh")
    engine = make_engine(env)
    engine.config.transient_prompt = TransientPrompt(template="> ", foreground="white")
    assert engine.render_transient_prompt() == 'PS1="%{\x1b[37m%}> %{\x1b[0m%}"\nRPROMPT=""'


def test_render_transient_prompt_missing_or_unknown_shell():
    engine = make_engine(FakeEnv(shell="pwsh"))
    engine.config.transient_prompt = None
    assert engine.render_transient_prompt() == ""
    other = make_engine(FakeEnv(shell="fish"))
    other.config.transient_prompt = TransientPrompt(template="> ")
    assert other.render_transient_prompt() == ""


def test_debug_report():
    env = FakeEnv()
    engine = make_engine(env, [Block(type="prompt", alignment="left", segments=[make_segment()])])
    report = engine.debug("1.2.3")
    assert "\x1b[1mVersion:\x1b[0m 1.2.3" in report
    assert "ConsoleTitle(false)" in report
    assert f"{FAKE}(true)" in report
    assert "\x1b[1mCache path:\x1b[0m /tmp/cache" in report
    assert report.endswith("no logs")