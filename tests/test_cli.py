import json

import pytest
from pathlib import Path
from click.testing import CliRunner

from viewrender.cli.interface import main_cli_group


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def cli_project(tmp_path: Path) -> Path:
    """Creates a view directory plus a data file for end-to-end CLI runs."""
    views = tmp_path / "views"
    (views / "partials").mkdir(parents=True)
    (views / "index.html").write_text('<h1>{{ title }}</h1>{{ import("partials/footer.html") }}')
    (views / "partials" / "footer.html").write_text("<footer>{{ data.owner }}</footer>")
    (views / "broken.html").write_text("ok\n{{ import(\"gone.html\") }}\nend")
    (tmp_path / "data.json").write_text(json.dumps({"title": "Report", "owner": "ops"}))
    return tmp_path


def invoke(runner: CliRunner, project: Path, *args: str):
    with runner.isolated_filesystem(temp_dir=project):
        return runner.invoke(main_cli_group, ["-d", str(project / "views"), *args])


def test_render_with_data_file(runner: CliRunner, cli_project: Path):
    result = invoke(runner, cli_project, "render", "index.html", "--data", str(cli_project / "data.json"))
    assert result.exit_code == 0, result.output
    assert "<h1>Report</h1><footer>ops</footer>" in result.output


def test_render_with_vars_in_cache_mode(runner: CliRunner, cli_project: Path):
    result = invoke(
        runner, cli_project, "--cache", "--target", ".html",
        "render", "index.html", "--var", "title=Hi", "--var", "owner=me",
    )
    assert result.exit_code == 0, result.output
    assert "<h1>Hi</h1><footer>me</footer>" in result.output


def test_render_string(runner: CliRunner, cli_project: Path):
    result = invoke(runner, cli_project, "string", '[{{ import("partials/footer.html") }}]', "--var", "owner=x")
    assert result.exit_code == 0, result.output
    assert "[<footer>x</footer>]" in result.output


def test_exclude_option(runner: CliRunner, cli_project: Path):
    result = invoke(runner, cli_project, "--exclude", r"//=\s*(\S+)", "string", "keep //= visible")
    assert result.exit_code == 0, result.output
    assert "keep visible" in result.output


def test_output_file(runner: CliRunner, cli_project: Path):
    out = cli_project / "out" / "page.html"
    result = invoke(runner, cli_project, "render", "index.html", "--var", "title=T", "--var", "owner=o", "-o", str(out))
    assert result.exit_code == 0, result.output
    assert out.read_bytes() == b"<h1>T</h1><footer>o</footer>"


def test_missing_reference_reports_error(runner: CliRunner, cli_project: Path):
    result = invoke(runner, cli_project, "render", "broken.html")
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "gone.html" in result.output


def test_unknown_view(runner: CliRunner, cli_project: Path):
    result = invoke(runner, cli_project, "render", "nope.html")
    assert result.exit_code == 1
    assert 'template "nope.html" not defined' in result.output


def test_bad_var_is_config_error(runner: CliRunner, cli_project: Path):
    result = invoke(runner, cli_project, "render", "index.html", "--var", "novalue")
    assert result.exit_code == 1
    assert "expected KEY=VALUE" in result.output


def test_missing_directory(runner: CliRunner, tmp_path: Path):
    result = runner.invoke(main_cli_group, ["-d", str(tmp_path / "absent"), "render", "index.html"])
    assert result.exit_code == 1
    assert "no such file or directory" in result.output


def test_profile_from_config_file(runner: CliRunner, cli_project: Path):
    config_file = cli_project / "viewrender.toml"
    config_file.write_text('directory = "views"\n\n[profiles.strip]\nexclude = "//=\\\\s*(\\\\S+)"\n')
    result = runner.invoke(
        main_cli_group,
        ["--config", str(config_file), "--config-profile", "strip", "string", "a //= b"],
    )
    assert result.exit_code == 0, result.output
    assert "a b" in result.output
