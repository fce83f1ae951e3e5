# viewrender/cli/interface.py
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
from click_option_group import optgroup
import structlog

from viewrender.config.loader import build_config, load_settings
from viewrender.config.settings import DEFAULT_MAX_ATTEMPTS, DEFAULT_MAX_DEPTH, DuplicatePolicy, RenderConfig
from viewrender.core.templating import Renderer, create_renderer
from viewrender.exceptions import ConfigError, ViewRenderError
from viewrender.logging_setup import configure_logging

from .console_output import print_error, write_output

log = structlog.get_logger(__name__)


def _parse_user_vars(pairs: Tuple[str, ...]) -> Dict[str, str]:
    user_vars: Dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ConfigError(f"invalid --var '{pair}', expected KEY=VALUE")
        key, value = pair.split("=", 1)
        user_vars[key.strip()] = value
    return user_vars


def _load_render_data(data_file: Optional[Path], user_vars: Tuple[str, ...]) -> Any:
    data: Any = None
    if data_file is not None:
        try:
            data = json.loads(data_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigError(f"could not load data file {data_file}: {e}") from e
    extra = _parse_user_vars(user_vars)
    if not extra:
        return data
    if data is None:
        return extra
    if not isinstance(data, dict):
        raise ConfigError("--var can only be combined with a JSON object data file")
    data.update(extra)
    return data


def _build_renderer(ctx: click.Context) -> Renderer:
    params: Dict[str, Any] = ctx.obj
    settings = load_settings(params["config_file"], params["config_profile"])
    config: RenderConfig = build_config(
        settings,
        directory=params["directory"],
        targets=list(params["targets"]) or None,
        exclude=params["exclude"],
        cache=params["cache"],
        binary=params["binary"],
        max_size=params["max_size"],
        sum_max_size=params["sum_max_size"],
        duplicate_policy=params["duplicate_policy"],
        max_depth=params["max_depth"],
        max_attempts=params["max_attempts"],
    )
    log.debug("effective_render_config", config=config)
    return create_renderer(config)


def _run(ctx: click.Context, render_call) -> None:
    # shared error handling for the render commands.
    try:
        output = render_call(_build_renderer(ctx))
        write_output(output, ctx.params.get("output_file"))
    except ViewRenderError as e:
        log.error("handled_application_error_in_cli", error_type=type(e).__name__, message=str(e))
        print_error(e)
        sys.exit(1)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@optgroup.group("View Source Options", help="Where views are read from and which files count.")
@optgroup.option("-d", "--directory", "directory", type=click.Path(path_type=Path), default=None, help="View directory. Default: current directory.")
@optgroup.option("-t", "--target", "targets", multiple=True, help="File suffix or glob treated as a view, e.g. .html. Repeatable.")
@optgroup.option("--cache/--no-cache", "cache", default=None, help="Parse every view up front (memory mode) instead of on demand.")
@optgroup.option("--binary/--no-binary", "binary", default=None, help="Serve binary files verbatim.")
@optgroup.group("Limits", help="Size, depth and retry ceilings.")
@optgroup.option("--max-size", "max_size", type=click.IntRange(min=0), default=None, help="Maximum bytes per view file. 0 disables.")
@optgroup.option("--sum-max-size", "sum_max_size", type=click.IntRange(min=0), default=None, help="Maximum total bytes in memory mode. 0 disables.")
@optgroup.option("--max-depth", "max_depth", type=click.IntRange(min=1), default=None, help=f"Maximum nested import depth. Default: {DEFAULT_MAX_DEPTH}.")
@optgroup.option("--max-attempts", "max_attempts", type=click.IntRange(min=1), default=None, help=f"Maximum lazy loads per render. Default: {DEFAULT_MAX_ATTEMPTS}.")
@optgroup.group("Output Processing", help="Post-processing of rendered text.")
@optgroup.option("-x", "--exclude", "exclude", default=None, metavar="REGEX", help="Strip matches of REGEX from the output, keeping capture groups.")
@optgroup.option("--duplicate-helpers", "duplicate_policy", type=click.Choice([p.value for p in DuplicatePolicy]), default=None, help="What happens when a helper name is registered twice.")
@optgroup.group("Application Behavior", help="Configuration profiles and logging.")
@optgroup.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None, help="Config file. Default: search .viewrender.toml, viewrender.toml, pyproject.toml.")
@optgroup.option("--config-profile", "config_profile", default=None, help="Load a profile from the config file.")
@optgroup.option("--verbose", "-v", "verbosity_level", count=True, help="Verbosity: -v info, -vv debug.")
@optgroup.option("--force-json-logs", "force_json_logs", is_flag=True, default=False, help="Force JSON logs.")
@click.version_option(package_name="viewrender", prog_name="viewrender", help="Show version and exit.")
@click.pass_context
def main_cli_group(ctx: click.Context, **cli_params: Any):
    """viewrender: render view templates from a directory with cross-file
    imports, includes and caller-supplied data."""
    log_level = "warning"
    if cli_params.get("verbosity_level", 0) == 1: log_level = "info"
    elif cli_params.get("verbosity_level", 0) >= 2: log_level = "debug"
    configure_logging(log_level_str=log_level, force_json_logs=cli_params.get("force_json_logs", False))
    log.debug("cli_command_invoked", params=cli_params)
    ctx.obj = cli_params


@main_cli_group.command("render")
@click.argument("name")
@optgroup.group("Data Options", help="Data passed to the view.")
@optgroup.option("--data", "data_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None, help="JSON file whose content becomes the view data.")
@optgroup.option("--var", "user_vars", multiple=True, metavar="KEY=VALUE", help="Extra data keys. Repeatable.")
@optgroup.option("-o", "--output", "output_file", type=click.Path(dir_okay=False, writable=True, path_type=Path), default=None, help="Write output to this file instead of stdout.")
@click.pass_context
def render_command(ctx: click.Context, name: str, data_file: Optional[Path], user_vars: Tuple[str, ...], output_file: Optional[Path]):
    """Render the view NAME, a path relative to the view directory."""
    _run(ctx, lambda renderer: renderer.render(name, _load_render_data(data_file, user_vars)))


@main_cli_group.command("string")
@click.argument("text")
@optgroup.group("Data Options", help="Data passed to the view.")
@optgroup.option("--data", "data_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None, help="JSON file whose content becomes the view data.")
@optgroup.option("--var", "user_vars", multiple=True, metavar="KEY=VALUE", help="Extra data keys. Repeatable.")
@optgroup.option("-o", "--output", "output_file", type=click.Path(dir_okay=False, writable=True, path_type=Path), default=None, help="Write output to this file instead of stdout.")
@click.pass_context
def string_command(ctx: click.Context, text: str, data_file: Optional[Path], user_vars: Tuple[str, ...], output_file: Optional[Path]):
    """Render TEXT as a template; it may import views from the view directory."""
    _run(ctx, lambda renderer: renderer.render_string(text, _load_render_data(data_file, user_vars)))
