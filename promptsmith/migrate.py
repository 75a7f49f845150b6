"""Upgrading segment configuration written for older config versions."""

from __future__ import annotations

from typing import Any

from promptsmith.segment import SEGMENT_TEMPLATE, Segment, SegmentType, WriterMappingError

CONFIG_VERSION = 1

COLOR_BACKGROUND = "color_background"
PREFIX = "prefix"
POSTFIX = "postfix"

FETCH_VERSION = "fetch_version"
FETCH_STATUS = "fetch_status"
FETCH_STASH_COUNT = "fetch_stash_count"
FETCH_WORKTREE_COUNT = "fetch_worktree_count"
FETCH_UPSTREAM_ICON = "fetch_upstream_icon"
FETCH_VIRTUAL_ENV = "fetch_virtual_env"
FETCH_PACKAGE_MANAGER = "fetch_package_manager"

_BATTERY_ENABLED_TEMPLATE = (
    "{{{{ $stateList := list {states} }}}}"
    "{{{{ if has .State.String $stateList }}}}{{{{ .Icon }}}}{{{{ .Percentage }}}}{{{{ end }}}}"
)


def _props(segment: Segment) -> dict[str, Any]:
    if segment.properties is None:
        segment.properties = {}
    return segment.properties


def _get_string(props: dict[str, Any], key: str, default: str) -> str:
    value = props.get(key)
    return value if isinstance(value, str) else default


def _get_bool(props: dict[str, Any], key: str, default: bool) -> bool:
    value = props.get(key)
    return value if isinstance(value, bool) else default


def _get_color(props: dict[str, Any], key: str, default: str) -> str:
    value = props.get(key)
    return value if isinstance(value, str) else default


def _current_template(segment: Segment) -> str:
    value = _props(segment).get(SEGMENT_TEMPLATE)
    if isinstance(value, str):
        return value
    return segment.writer.template()


def migrate_config(config: Any, env: Any) -> None:
    """Bring every segment of the config, and its title template, up to date."""
    for block in config.blocks:
        for segment in block.segments:
            migrate_segment(segment, env, config.version)
    for segment in config.tooltips:
        migrate_segment(segment, env, config.version)
    if ".Path" in config.console_title_template:
        config.console_title_template = config.console_title_template.replace(".Path", ".PWD")
    config.updated = True
    config.version = CONFIG_VERSION


def migrate_segment(segment: Segment, env: Any, version: int) -> None:
    """Apply the migrations a segment from the given config version needs."""
    if version < 1:
        migration_one(segment, env)


def migration_one(segment: Segment, env: Any) -> None:
    """Move a segment from version 0 properties to templates."""
    try:
        segment.map_segment_with_writer(env)
    except WriterMappingError:
        return
    props = _props(segment)
    migrate_property_key(segment, "display_version", FETCH_VERSION)
    props.pop("enable_hyperlink", None)
    kind = segment.type
    if kind == SegmentType.TEXT:
        migrate_property_key(segment, "text", SEGMENT_TEMPLATE)
        migrate_template(segment)
    elif kind == SegmentType.GIT:
        _migrate_git(segment, props)
    elif kind == SegmentType.BATTERY:
        _migrate_battery(segment, props)
    elif kind == SegmentType.PYTHON:
        migrate_template(segment)
        migrate_property_key(segment, "display_virtual_env", FETCH_VIRTUAL_ENV)
    elif kind == SegmentType.SESSION:
        _migrate_session(segment, props)
    elif kind == SegmentType.NODE:
        migrate_template(segment)
        migrate_property_key(segment, "display_package_manager", FETCH_PACKAGE_MANAGER)
        if _get_bool(props, "enable_version_mismatch", False):
            del props["enable_version_mismatch"]
            migrate_color_override(segment, "version_mismatch_color", "{{ if .Mismatch }}%s{{ end }}")
    elif kind == SegmentType.EXIT:
        _migrate_exit(segment, props)
    else:
        migrate_template(segment)
    props.pop(COLOR_BACKGROUND, None)


def _migrate_git(segment: Segment, props: dict[str, Any]) -> None:
    has_template = has_property(segment, SEGMENT_TEMPLATE)
    migrate_property_key(segment, "display_status", FETCH_STATUS)
    migrate_property_key(segment, "display_stash_count", FETCH_STASH_COUNT)
    migrate_property_key(segment, "display_worktree_count", FETCH_WORKTREE_COUNT)
    migrate_property_key(segment, "display_upstream_icon", FETCH_UPSTREAM_ICON)
    migrate_template(segment)
    migrate_icon_override(segment, "local_working_icon", " \uF044 ")
    migrate_icon_override(segment, "local_staged_icon", " \uF046 ")
    migrate_icon_override(segment, "stash_count_icon", " \uF692 ")
    migrate_icon_override(segment, "worktree_count_icon", " \uf1bb ")
    migrate_icon_override(segment, "status_separator_icon", " |")
    if _get_bool(props, "status_colors_enabled", False):
        migrate_color_override(
            segment, "local_changes_color", "{{ if or (.Working.Changed) (.Staging.Changed) }}%s{{ end }}"
        )
        migrate_color_override(
            segment, "ahead_and_behind_color", "{{ if and (gt .Ahead 0) (gt .Behind 0) }}%s{{ end }}"
        )
        migrate_color_override(segment, "behind_color", "{{ if gt .Ahead 0 }}%s{{ end }}")
        migrate_color_override(segment, "ahead_color", "{{ if gt .Behind 0 }}%s{{ end }}")
    if not has_template:
        migrate_inline_color_override(segment, "working_color", "{{ .Working.String }}")
        migrate_inline_color_override(segment, "staging_color", "{{ .Staging.String }}")
    for legacy in ("display_branch_status", "display_status_detail", "status_colors_enabled"):
        props.pop(legacy, None)


def _migrate_battery(segment: Segment, props: dict[str, Any]) -> None:
    migrate_template(segment)
    migrate_color_override(segment, "charged_color", '{{ if eq "Full" .State.String }}%s{{ end }}')
    migrate_color_override(segment, "charging_color", '{{ if eq "Charging" .State.String }}%s{{ end }}')
    migrate_color_override(
        segment, "discharging_color", '{{ if eq "Discharging" .State.String }}%s{{ end }}'
    )
    states = ['"Discharging"']
    if _get_bool(props, "display_charging", True):
        states.append('"Charging"')
    if _get_bool(props, "display_charged", True):
        states.append('"Full"')
    if len(states) < 3:
        enabled = _BATTERY_ENABLED_TEMPLATE.format(states=" ".join(states))
        template = _current_template(segment)
        props[SEGMENT_TEMPLATE] = template.replace("{{ .Icon }}{{ .Percentage }}", enabled)
    for legacy in ("display_charging", "display_charged", "battery_icon"):
        props.pop(legacy, None)


def _migrate_session(segment: Segment, props: dict[str, Any]) -> None:
    has_template = has_property(segment, SEGMENT_TEMPLATE)
    migrate_template(segment)
    migrate_icon_override(segment, "ssh_icon", "\uf817 ")
    template = _current_template(segment)
    if not _get_bool(props, "display_host", True):
        template = template.replace("@{{ .HostName }}", "")
    if not _get_bool(props, "display_user", True):
        template = template.replace("@", "").replace("{{ .UserName }}", "")
    props[SEGMENT_TEMPLATE] = template
    migrate_icon_override(segment, "user_info_separator", "@")
    if not has_template:
        migrate_inline_color_override(segment, "user_color", "{{ .UserName }}")
        migrate_inline_color_override(segment, "host_color", "{{ .HostName }}")


def _migrate_exit(segment: Segment, props: dict[str, Any]) -> None:
    template = _current_template(segment)
    if ".Text" in template:
        template = template.replace(".Text", ".Meaning")
        props[SEGMENT_TEMPLATE] = template
    if _get_bool(props, "always_numeric", False):
        del props["always_numeric"]
        template = template.replace(".Meaning", ".Code")
    if not _get_bool(props, "display_exit_code", True):
        del props["display_exit_code"]
        template = "  "
    props[SEGMENT_TEMPLATE] = template
    migrate_template(segment)
    migrate_icon_override(segment, "success_icon", "\uf42e")
    migrate_icon_override(segment, "error_icon", "\uf00d")
    migrate_color_override(segment, "error_color", "{{ if gt .Code 0 }}%s{{ end }}")


def has_property(segment: Segment, prop: str) -> bool:
    return prop in (segment.properties or {})


def migrate_property_value(segment: Segment, prop: str, value: Any) -> None:
    """Replace the value of a property, if the segment has it."""
    if has_property(segment, prop):
        segment.properties[prop] = value


def migrate_property_key(segment: Segment, old_property: str, new_property: str) -> None:
    """Rename a property, if the segment has it."""
    if not has_property(segment, old_property):
        return
    props = segment.properties
    props[new_property] = props.pop(old_property)


def migrate_template(segment: Segment) -> None:
    """Make sure the segment has a template, then fold prefix and postfix into it."""
    props = _props(segment)
    if SEGMENT_TEMPLATE in props:
        props.setdefault(PREFIX, " ")
        props.setdefault(POSTFIX, " ")
    else:
        props[SEGMENT_TEMPLATE] = segment.writer.template()
    migrate_pre_and_postfix(segment)


def migrate_icon_override(segment: Segment, prop: str, override_value: str) -> None:
    """Replace a default icon in the template by the configured one."""
    if not has_property(segment, prop):
        return
    props = segment.properties
    template = _current_template(segment)
    template = template.replace(override_value, _get_string(props, prop, ""))
    props[SEGMENT_TEMPLATE] = template
    del props[prop]


def migrate_color_override(segment: Segment, prop: str, template: str) -> None:
    """Turn a colour property into a foreground or background template."""
    if not has_property(segment, prop):
        return
    props = segment.properties
    color = _get_color(props, prop, "")
    del props[prop]
    if not color:
        return
    color_template = template % (color,)
    if _get_bool(props, COLOR_BACKGROUND, False):
        segment.background_templates.append(color_template)
    else:
        segment.foreground_templates.append(color_template)


def migrate_inline_color_override(segment: Segment, prop: str, old: str) -> None:
    """Wrap a template fragment in an inline colour override."""
    if not has_property(segment, prop):
        return
    props = segment.properties
    color = _get_color(props, prop, "")
    del props[prop]
    if not color:
        return
    template = _current_template(segment)
    props[SEGMENT_TEMPLATE] = template.replace(old, f"<{color}>{old}</>")


def migrate_pre_and_postfix(segment: Segment) -> None:
    """Fold the prefix and postfix properties into the template."""
    props = _props(segment)
    template = _current_template(segment)
    default = " "
    if PREFIX in props:
        prefix = _get_string(props, PREFIX, default)
        template = prefix + template.removeprefix(default)
        del props[PREFIX]
    if POSTFIX in props:
        postfix = _get_string(props, POSTFIX, default)
        template = template.removesuffix(default) + postfix
        del props[POSTFIX]
    props[SEGMENT_TEMPLATE] = template