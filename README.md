# promptsmith

promptsmith renders shell prompts from a theme. A theme holds blocks, and each
block holds segments. The package turns them into ANSI-coloured text that suits
the shell in use: zsh, bash, PowerShell or a plain terminal.

## Modules

- `promptsmith.palette`: `Palette` is a `dict` of colour names. Its
  `resolve_color(name)` resolves `p:<name>` references, following chains of
  references up to three levels deep. It raises `PaletteKeyError` for a missing
  name and `PaletteRecursiveKeyError` for a chain that goes too deep.
  `maybe_resolve_color(name)` returns `""` instead of raising.
- `promptsmith.colors`: `DefaultColors.ansi_color_from_string(color, is_background)`
  turns named colours (`red`, `lightBlue`, `default`, ...) and hex values
  (`#AABBCC`, `#ABC`) into ANSI codes such as `"31"` or `"38;2;170;187;204"`.
  Unknown colours give `""`. `PaletteColors` resolves palette references first,
  and `CachedColors` caches lookups. `make_colors(palette, cache_enabled)` builds
  the chain. `is_ansi_color_name(name)` tells whether a name is one of the named
  colours.
- `promptsmith.ansi`: `Ansi(shell)` holds the escape sequences for `zsh`, for
  `bash`, and for every other shell. It provides titles, hyperlinks from
  `[name](url)`, `<b>`, `<u>`, `<i>` and `<s>` markup (`apply_markup`), cursor
  movement, shell-specific escaping (`escape_text`) and the working-directory
  notification (`console_pwd`). `measure_text(text)` counts the visible
  characters of a text, skipping hyperlink escapes.
- `promptsmith.writer`: `AnsiWriter` writes coloured text. It handles inline
  overrides such as `hello <red>world</>` or `<fg,bg>text</>`, and the colour
  keywords `foreground`, `background`, `parentForeground`, `parentBackground`
  and `transparent`. `result()` returns the text and its visible length.
  `PlainWriter` strips the overrides and writes no colours.
- `promptsmith.segment`: `Segment` holds one segment's configuration. It
  decides whether the segment shows in the current folder (`include_folders`,
  `exclude_folders`, `ignore_folders`), picks its colours from colour templates,
  and renders its text. `Environment` and `SegmentWriter` are the protocols the
  caller implements. `register_writer(segment_type, factory)` tells segments of
  a type which writer to use; an unregistered type raises `WriterMappingError`.
- `promptsmith.block`: `Block` renders its segments in the `plain`,
  `powerline` and `diamond` styles and joins them with powerline symbols.
  `debug()` times each segment.
- `promptsmith.title`: `Title` builds the console title from the folder name,
  the full path (home shown as `~`) or a template.
- `promptsmith.config`: `load_config(path, env, auto_migrate)` reads a JSON,
  YAML or TOML theme. With no path it returns `default_config()`. When the
  theme's version is older than the current one, it copies the file to
  `<path>.bak`, migrates the theme and writes the file back. `Config.export(fmt)`
  writes the theme as `json`, `yaml` or `toml`, with glyphs written as `\uXXXX`
  escapes (`escape_glyphs`). Problems raise `ConfigError`.
- `promptsmith.migrate`: the functions that move version 0 segment settings
  (prefix, postfix, icon and colour properties) into templates.
- `promptsmith.engine`: `Engine(config, env, writer, ansi, console_title, plain)`
  produces the prompt (`render`), the right prompt (`render_rprompt`), tooltips
  (`render_tooltip`), the transient prompt (`render_transient_prompt`) and a
  timing report (`debug`). `get_console_background_color(env, template)` renders
  the terminal background template.

## Example

```python
from promptsmith.ansi import Ansi
from promptsmith.colors import DefaultColors
from promptsmith.writer import AnsiWriter

ansi = Ansi("pwsh")
writer = AnsiWriter(ansi=ansi, ansi_colors=DefaultColors())
writer.set_colors("white", "black")
writer.write("white", "black", "hello <red>world</>")
text, length = writer.result()
```

Palettes resolve references like this:

```python
from promptsmith.palette import Palette

palette = Palette({"accent": "#FF0000", "warning": "p:accent"})
palette.resolve_color("p:warning")      # "#FF0000"
palette.maybe_resolve_color("p:nope")   # ""
```

## What it does not do

- It has no segment writers of its own: no git, path, session, battery or
  similar data. Register writers with `register_writer` before rendering.
- It has no template language. Templates are rendered by the `Environment`
  you supply, through its `render_template` method, and that object also
  reports the working directory, shell and terminal width.
- It has no command-line tool and no shell initialisation scripts, and it does
  not render prompts to images.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```