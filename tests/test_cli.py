"""Tests for the staticforge CLI."""

import yaml
from click.testing import CliRunner

from staticforge import __version__
from staticforge.cli import main


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_init(site_dir):
    runner = CliRunner()

    result = runner.invoke(main, ["init", str(site_dir)])
    assert result.exit_code == 0
    assert "Initialized staticforge config" in result.output
    assert (site_dir / "staticforge.yaml").exists()

    result = runner.invoke(main, ["init", str(site_dir)])
    assert result.exit_code == 1

    result = runner.invoke(main, ["init", str(site_dir), "--force"])
    assert result.exit_code == 0


def test_build_and_status(site_dir):
    (site_dir / "staticforge.yaml").write_text(
        yaml.dump(
            {
                "pages": [
                    {"path": "/", "html": "<h1>Home</h1>"},
                    {"path": "/about/", "html": "<h1>About</h1>"},
                ],
                "logging": {"console": False},
            }
        )
    )
    (site_dir / "static").mkdir()
    (site_dir / "static" / "favicon.ico").write_bytes(b"ico")
    runner = CliRunner()

    result = runner.invoke(main, ["build", str(site_dir), "--no-workers"])

    assert result.exit_code == 0, result.output
    assert "Built 2 pages" in result.output
    dist = site_dir / "dist"
    assert "<h1>About</h1>" in (dist / "about" / "index.html").read_text()
    assert (dist / "favicon.ico").read_bytes() == b"ico"

    result = runner.invoke(main, ["status", str(site_dir)])
    assert result.exit_code == 0
    assert "Last build succeeded" in result.output
    assert "Pages:    2" in result.output


def test_status_without_build(site_dir):
    result = CliRunner().invoke(main, ["status", str(site_dir)])
    assert result.exit_code == 0
    assert "No previous build found" in result.output


def test_build_failure(site_dir):
    (site_dir / "staticforge.yaml").write_text(
        yaml.dump({"plugins": ["sf_test_missing_cli_plugin"], "logging": {"console": False}})
    )

    result = CliRunner().invoke(main, ["build", str(site_dir), "--no-workers"])

    assert result.exit_code == 1
    assert "Build failed" in result.output


def test_build_missing_config(site_dir):
    result = CliRunner().invoke(main, ["build", str(site_dir), "--config", str(site_dir / "nope.yaml")])
    assert result.exit_code == 1
    assert "Configuration file not found" in result.output
